"""Tests for settings parsing and validation."""

import pytest
from pydantic import ValidationError

from storefront.core.config import Settings

SECRETS = {
    "JWT_ACCESS_SECRET": "prod-access-secret-0123456789abcdefghij",
    "JWT_REFRESH_SECRET": "prod-refresh-secret-0123456789abcdefghij",
}


def test_audiences_include_client_id_and_extras() -> None:
    config = Settings(OAUTH_GOOGLE_CLIENT_ID="web-client", OAUTH_GOOGLE_AUDIENCES="ios-client, android-client,web-client")

    assert config.google_audiences == ["web-client", "ios-client", "android-client"]


def test_redirect_uri_defaults_to_frontend_callback() -> None:
    config = Settings(FRONTEND_URL="https://shop.example.com/", OAUTH_GOOGLE_REDIRECT_URI=None)

    assert config.google_redirect_uri == "https://shop.example.com/auth/callback"


def test_cors_origins_from_csv() -> None:
    config = Settings(CORS_ORIGINS="https://a.example.com, https://b.example.com")

    assert config.cors_origins == ["https://a.example.com", "https://b.example.com"]


def test_prod_requires_real_secrets() -> None:
    with pytest.raises(ValidationError):
        Settings(ENV="prod", OAUTH_GOOGLE_CLIENT_ID="id", OAUTH_GOOGLE_CLIENT_SECRET="secret")

    config = Settings(ENV="prod", OAUTH_GOOGLE_CLIENT_ID="id", OAUTH_GOOGLE_CLIENT_SECRET="secret", **SECRETS)
    assert config.ENV == "prod"


def test_timeout_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        Settings(OAUTH_HTTP_TIMEOUT_SECONDS=0)
