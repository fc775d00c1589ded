"""Pytest configuration and shared fixtures."""

import os

os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from storefront.core.config import Settings
from storefront.core.dependencies import get_google_verifier, get_token_issuer
from storefront.core.oauth import GoogleOAuthAdapter
from storefront.core.security import TokenIssuer
from storefront.db.base import Base
from storefront.db.engine import create_db_engine
from storefront.db.session import get_db
from storefront.main import app
from storefront.models import Account  # noqa: F401
from storefront.services.accounts import AccountReconciler, SqlAccountStore
from storefront.services.oauth_flow import OAuthLoginFlow
from tests.helpers.google import FakeGoogle


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        ENV="test",
        DATABASE_URL="sqlite://",
        JWT_ACCESS_SECRET="test-access-secret-0123456789abcdefghij",
        JWT_REFRESH_SECRET="test-refresh-secret-0123456789abcdefghij",
        OAUTH_GOOGLE_CLIENT_ID="client-123",
        OAUTH_GOOGLE_CLIENT_SECRET="google-secret",
        OAUTH_GOOGLE_REDIRECT_URI=None,
        OAUTH_GOOGLE_AUDIENCES="",
        FRONTEND_URL="http://localhost:3000",
    )


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh in-memory database per test."""
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    session = Session(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def store(db) -> SqlAccountStore:
    return SqlAccountStore(db)


@pytest.fixture
def issuer(test_settings) -> TokenIssuer:
    return TokenIssuer(test_settings)


@pytest.fixture
def google() -> FakeGoogle:
    return FakeGoogle(client_id="client-123")


@pytest.fixture
def verifier(test_settings, google) -> GoogleOAuthAdapter:
    return GoogleOAuthAdapter(test_settings, http_client=google.client())


@pytest.fixture
def flow(verifier, store, issuer) -> OAuthLoginFlow:
    return OAuthLoginFlow(verifiers=[verifier], reconciler=AccountReconciler(store), issuer=issuer)


@pytest.fixture
def client(db, verifier, issuer) -> Generator[TestClient, None, None]:
    """FastAPI test client wired to the in-memory store and fake provider."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_google_verifier] = lambda: verifier
    app.dependency_overrides[get_token_issuer] = lambda: issuer
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
