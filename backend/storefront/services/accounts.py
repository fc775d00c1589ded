"""Account persistence and OAuth identity reconciliation."""

from datetime import datetime, timezone
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.core.app_exceptions import AccountConflictError, DuplicateAccountError
from storefront.core.logging import get_logger
from storefront.core.oauth import ExternalIdentity
from storefront.models.account import Account, AccountRole, AuthProvider

logger = get_logger(__name__)


class AccountStore(Protocol):
    """Persistence operations the authentication flows rely on."""

    def find_by_id(self, account_id: UUID | str) -> Account | None: ...

    def find_by_provider_id(self, provider: str, provider_user_id: str) -> Account | None: ...

    def find_by_email(self, email: str) -> Account | None: ...

    def create(self, data: dict[str, Any]) -> Account: ...

    def save(self, account: Account) -> Account: ...

    def count(self) -> int: ...


class SqlAccountStore:
    """AccountStore over a SQLAlchemy session.

    Uniqueness of email and of (provider, provider_user_id) is enforced by the
    table constraints; a violating insert raises DuplicateAccountError.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, account_id: UUID | str) -> Account | None:
        if isinstance(account_id, str):
            try:
                account_id = UUID(account_id)
            except ValueError:
                return None
        return self.db.get(Account, account_id)

    def find_by_provider_id(self, provider: str, provider_user_id: str) -> Account | None:
        # Rows created before provider tracking have provider NULL
        stmt = select(Account).where(
            Account.provider_user_id == provider_user_id,
            or_(Account.provider == provider, Account.provider.is_(None)),
        ).order_by(Account.provider.is_(None))
        return self.db.execute(stmt).scalars().first()

    def find_by_email(self, email: str) -> Account | None:
        stmt = select(Account).where(Account.email == email.strip().lower())
        return self.db.execute(stmt).scalars().first()

    def create(self, data: dict[str, Any]) -> Account:
        account = Account(**data)
        self.db.add(account)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateAccountError(str(e.orig)) from e
        self.db.refresh(account)
        return account

    def save(self, account: Account) -> Account:
        self.db.add(account)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateAccountError(str(e.orig)) from e
        self.db.refresh(account)
        return account

    def count(self) -> int:
        return self.db.execute(select(func.count()).select_from(Account)).scalar_one()


class AccountReconciler:
    """Find-or-create of local accounts from verified external identities.

    Role and email verification are never lowered by a login; profile fields
    always take the provider's latest values.
    """

    def __init__(self, store: AccountStore):
        self.store = store

    @staticmethod
    def _apply_profile(account: Account, identity: ExternalIdentity, now: datetime) -> None:
        account.display_name = identity.display_name
        account.first_name = identity.given_name
        account.last_name = identity.family_name
        account.avatar_url = identity.avatar_url
        account.last_login_at = now
        if not account.provider:
            account.provider = identity.provider.value
        if identity.email_verified and not account.is_email_verified:
            account.is_email_verified = True

    def _update(self, account: Account, identity: ExternalIdentity) -> Account:
        self._apply_profile(account, identity, datetime.now(timezone.utc))
        return self.store.save(account)

    def _link_by_email(self, identity: ExternalIdentity) -> Account | None:
        existing = self.store.find_by_email(identity.email)
        if existing is None:
            return None
        if existing.provider_user_id == identity.provider_user_id and existing.provider in (
            None,
            identity.provider.value,
        ):
            # Same identity, committed by a concurrent login after our provider lookup
            return self._update(existing, identity)
        if existing.provider_user_id is None and identity.email_verified:
            logger.info(
                "Linking provider identity to existing account",
                extra={"account_id": str(existing.id), "provider": identity.provider.value},
            )
            existing.provider_user_id = identity.provider_user_id
            existing.provider = identity.provider.value
            return self._update(existing, identity)
        raise AccountConflictError()

    def reconcile(self, identity: ExternalIdentity) -> Account:
        """Return the account for ``identity``, creating it on first login."""
        provider = identity.provider.value
        account = self.store.find_by_provider_id(provider, identity.provider_user_id)
        if account is not None:
            return self._update(account, identity)

        linked = self._link_by_email(identity)
        if linked is not None:
            return linked

        now = datetime.now(timezone.utc)
        try:
            account = self.store.create(
                {
                    "provider_user_id": identity.provider_user_id,
                    "provider": provider,
                    "email": identity.email,
                    "display_name": identity.display_name,
                    "first_name": identity.given_name,
                    "last_name": identity.family_name,
                    "avatar_url": identity.avatar_url,
                    "is_oauth_account": True,
                    "is_email_verified": True,
                    "role": AccountRole.CUSTOMER.value,
                    "last_login_at": now,
                }
            )
        except DuplicateAccountError:
            # Lost a race with a concurrent first login; the winner's row is the account
            account = self.store.find_by_provider_id(provider, identity.provider_user_id)
            if account is None:
                raise AccountConflictError() from None
            logger.info(
                "Concurrent account creation resolved to existing account",
                extra={"account_id": str(account.id), "provider": provider},
            )
            return self._update(account, identity)

        logger.info("Created OAuth account", extra={"account_id": str(account.id), "provider": provider})
        return account


def register_password_account(store: AccountStore, email: str, name: str, password_hash: str) -> Account:
    """Create a local (non-OAuth) account. Raises DuplicateAccountError on a taken email."""
    return store.create(
        {
            "email": email,
            "display_name": name,
            "password_hash": password_hash,
            "provider": AuthProvider.NONE.value,
            "is_oauth_account": False,
            "is_email_verified": False,
            "role": AccountRole.USER.value,
        }
    )
