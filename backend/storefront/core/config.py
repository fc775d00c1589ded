"""Application settings and configuration."""

from typing import Literal

from pydantic import Field, model_validator  # type: ignore
from pydantic_settings import BaseSettings, SettingsConfigDict  # type: ignore

DEV_ACCESS_SECRET = "dev_access_secret_change_me_in_production"
DEV_REFRESH_SECRET = "dev_refresh_secret_change_me_in_production"


def _split_csv(value: str | list[str] | None) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return [item.strip() for item in value if item and item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    ENV: Literal["dev", "staging", "prod", "test"] = Field(default="dev")
    PROJECT_NAME: str = Field(default="Storefront API")

    # API
    API_PREFIX: str = Field(default="")

    # Database
    DATABASE_URL: str = Field(default="sqlite:///./storefront.db")

    # CORS - Accept string or list, will be normalized to list
    CORS_ORIGINS: str | list[str] = Field(default="http://localhost:3000")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    TRUSTED_PROXIES: str | list[str] = Field(default="")  # Peers whose X-Forwarded-For is believed

    # Session tokens (one secret per token class)
    JWT_ACCESS_SECRET: str = Field(default=DEV_ACCESS_SECRET)
    JWT_REFRESH_SECRET: str = Field(default=DEV_REFRESH_SECRET)
    JWT_ALG: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=15)
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(default=14)

    # OAuth/OIDC
    OAUTH_GOOGLE_CLIENT_ID: str | None = Field(default=None)
    OAUTH_GOOGLE_CLIENT_SECRET: str | None = Field(default=None)
    OAUTH_GOOGLE_REDIRECT_URI: str | None = Field(default=None)
    OAUTH_GOOGLE_AUDIENCES: str | list[str] = Field(default="")  # Extra accepted ID token audiences
    OAUTH_HTTP_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)
    JWKS_CACHE_TTL_SECONDS: int = Field(default=3600)  # 1 hour

    # Frontend URL for OAuth redirects
    FRONTEND_URL: str = Field(default="http://localhost:3000")

    @model_validator(mode="before")
    @classmethod
    def parse_lists(cls, data):
        """Parse list options from comma-separated strings."""
        if isinstance(data, dict):
            for key in ("CORS_ORIGINS", "OAUTH_GOOGLE_AUDIENCES", "TRUSTED_PROXIES"):
                if key in data:
                    data[key] = _split_csv(data[key])
        return data

    @model_validator(mode="after")
    def check_secrets(self) -> "Settings":
        """Fail fast on unusable signing secrets."""
        if self.JWT_ACCESS_SECRET == self.JWT_REFRESH_SECRET:
            raise ValueError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ")
        if self.ENV == "prod":
            if self.JWT_ACCESS_SECRET == DEV_ACCESS_SECRET:
                raise ValueError("JWT_ACCESS_SECRET must be set in production")
            if self.JWT_REFRESH_SECRET == DEV_REFRESH_SECRET:
                raise ValueError("JWT_REFRESH_SECRET must be set in production")
            if not self.OAUTH_GOOGLE_CLIENT_ID or not self.OAUTH_GOOGLE_CLIENT_SECRET:
                raise ValueError("OAUTH_GOOGLE_CLIENT_ID/SECRET must be set in production")
        return self

    @property
    def cors_origins(self) -> list[str]:
        return _split_csv(self.CORS_ORIGINS)

    @property
    def trusted_proxies(self) -> list[str]:
        return _split_csv(self.TRUSTED_PROXIES)

    @property
    def google_redirect_uri(self) -> str:
        """Redirect URI registered with Google for the authorization-code flow."""
        return self.OAUTH_GOOGLE_REDIRECT_URI or f"{self.FRONTEND_URL.rstrip('/')}/auth/callback"

    @property
    def google_audiences(self) -> list[str]:
        """All client ids an ID token may be issued for."""
        audiences = []
        if self.OAUTH_GOOGLE_CLIENT_ID:
            audiences.append(self.OAUTH_GOOGLE_CLIENT_ID)
        for aud in _split_csv(self.OAUTH_GOOGLE_AUDIENCES):
            if aud not in audiences:
                audiences.append(aud)
        return audiences


# Global settings instance
settings = Settings()
