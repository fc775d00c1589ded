"""Tests for OAuth account reconciliation."""

import pytest

from storefront.core.app_exceptions import AccountConflictError
from storefront.core.oauth import ExternalIdentity
from storefront.models.account import AccountRole, AuthProvider
from storefront.services.accounts import AccountReconciler, SqlAccountStore
from tests.helpers.seed import create_google_account, create_password_account


def _identity(**overrides) -> ExternalIdentity:
    data = {
        "provider": AuthProvider.GOOGLE,
        "provider_user_id": "g123",
        "email": "a@b.com",
        "display_name": "Ada Lovelace",
        "given_name": "Ada",
        "family_name": "Lovelace",
        "avatar_url": "https://lh3.googleusercontent.com/a/ada",
        "email_verified": True,
    }
    data.update(overrides)
    return ExternalIdentity(**data)


def test_first_login_creates_customer_account(store) -> None:
    account = AccountReconciler(store).reconcile(_identity())

    assert account.id is not None
    assert account.provider == "google"
    assert account.provider_user_id == "g123"
    assert account.email == "a@b.com"
    assert account.is_oauth_account is True
    assert account.is_email_verified is True
    assert account.role == "customer"
    assert account.password_hash is None
    assert account.last_login_at is not None
    assert store.find_by_id(str(account.id)).email == "a@b.com"


def test_new_account_is_verified_even_if_provider_says_otherwise(store) -> None:
    account = AccountReconciler(store).reconcile(_identity(email_verified=False))

    assert account.is_email_verified is True


def test_reconciliation_is_idempotent_and_takes_latest_profile(store) -> None:
    reconciler = AccountReconciler(store)

    first = reconciler.reconcile(_identity())
    second = reconciler.reconcile(
        _identity(
            display_name="Countess of Lovelace",
            given_name="Augusta",
            family_name="King",
            avatar_url="https://lh3.googleusercontent.com/a/new",
        )
    )

    assert store.count() == 1
    assert second.id == first.id
    assert second.display_name == "Countess of Lovelace"
    assert second.first_name == "Augusta"
    assert second.last_name == "King"
    assert second.avatar_url == "https://lh3.googleusercontent.com/a/new"


def test_email_is_not_rewritten_on_later_login(store) -> None:
    reconciler = AccountReconciler(store)
    first = reconciler.reconcile(_identity())

    again = reconciler.reconcile(_identity(email="changed@b.com"))

    assert again.id == first.id
    assert again.email == "a@b.com"


def test_login_never_downgrades_role_or_verification(store) -> None:
    create_google_account(store, role=AccountRole.ADMIN.value, is_email_verified=True)

    account = AccountReconciler(store).reconcile(_identity(email_verified=False))

    assert account.role == "admin"
    assert account.is_email_verified is True


def test_legacy_account_gets_provider_backfilled(store) -> None:
    legacy = create_google_account(store, provider=None, role=AccountRole.USER.value)

    account = AccountReconciler(store).reconcile(_identity())

    assert account.id == legacy.id
    assert account.provider == "google"
    assert account.role == "user"
    assert store.count() == 1


class RacingStore(SqlAccountStore):
    """A concurrent first login commits its row right after our provider lookup misses."""

    def __init__(self, db, winner_data, hide_email: bool = False):
        super().__init__(db)
        self.winner_data = winner_data
        self.hide_email = hide_email
        self.raced = False

    def find_by_provider_id(self, provider, provider_user_id):
        if not self.raced:
            self.raced = True
            super().create(dict(self.winner_data))
            return None
        return super().find_by_provider_id(provider, provider_user_id)

    def find_by_email(self, email):
        if self.hide_email:
            return None
        return super().find_by_email(email)


WINNER = {
    "provider_user_id": "g123",
    "provider": "google",
    "email": "a@b.com",
    "display_name": "Winner",
    "is_oauth_account": True,
    "is_email_verified": True,
    "role": "customer",
}


def test_race_loser_resolves_to_winner_found_by_email(db) -> None:
    store = RacingStore(db, WINNER)

    account = AccountReconciler(store).reconcile(_identity())

    assert store.count() == 1
    assert account.id == store.find_by_email("a@b.com").id
    assert account.display_name == "Ada Lovelace"


def test_race_loser_recovers_from_duplicate_insert(db) -> None:
    store = RacingStore(db, WINNER, hide_email=True)

    account = AccountReconciler(store).reconcile(_identity())

    assert store.count() == 1
    assert account.display_name == "Ada Lovelace"
    assert account.provider_user_id == "g123"


def test_provider_lookup_prefers_exact_provider_over_legacy_row(store) -> None:
    create_google_account(store, provider_user_id="g123", email="legacy@b.com", provider=None)
    current = create_google_account(store, provider_user_id="g123", email="a@b.com")

    assert store.find_by_provider_id("google", "g123").id == current.id


def test_verified_email_links_existing_password_account(store) -> None:
    existing = create_password_account(store, email="a@b.com")

    account = AccountReconciler(store).reconcile(_identity())

    assert account.id == existing.id
    assert account.provider == "google"
    assert account.provider_user_id == "g123"
    assert account.password_hash == existing.password_hash
    assert account.role == "user"
    assert store.count() == 1


def test_unverified_email_does_not_take_over_password_account(store) -> None:
    create_password_account(store, email="a@b.com")

    with pytest.raises(AccountConflictError):
        AccountReconciler(store).reconcile(_identity(email_verified=False))


def test_email_owned_by_another_provider_identity_conflicts(store) -> None:
    create_google_account(store, provider_user_id="g999", email="a@b.com")

    with pytest.raises(AccountConflictError) as exc_info:
        AccountReconciler(store).reconcile(_identity())

    assert exc_info.value.status_code == 409
    assert store.count() == 1


def test_email_lookup_is_case_insensitive(store) -> None:
    create_password_account(store, email="Shopper@Example.com")

    assert store.find_by_email("SHOPPER@example.COM") is not None
