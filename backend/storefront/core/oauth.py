"""OAuth/OIDC identity verification and provider adapters."""

import asyncio
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlencode

import httpx
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JOSEError, JWTClaimsError
from pydantic import BaseModel

from storefront.core.app_exceptions import (
    AudienceMismatchError,
    IncompleteProfileError,
    MalformedTokenError,
    ProfileFetchError,
    ProviderTimeoutError,
    TokenExchangeError,
    TokenVerificationError,
    UnsupportedProviderError,
)
from storefront.core.config import Settings, settings
from storefront.core.logging import get_logger
from storefront.models.account import AuthProvider

logger = get_logger(__name__)


class ExternalIdentity(BaseModel):
    """Normalized, verified profile from an external provider. Never persisted as-is."""

    provider: AuthProvider
    provider_user_id: str
    email: str
    display_name: str
    given_name: str | None = None
    family_name: str | None = None
    avatar_url: str | None = None
    email_verified: bool = False


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


class OAuthProviderAdapter:
    """Base class for OAuth provider adapters."""

    provider: AuthProvider

    def get_authorize_url(self, state: str | None = None) -> str:
        """Generate authorization URL."""
        raise NotImplementedError

    async def authenticate_code(self, code: str) -> ExternalIdentity:
        """Exchange an authorization code and fetch the profile it grants access to."""
        raise NotImplementedError

    async def verify_id_token(self, id_token: str) -> ExternalIdentity:
        """Verify a provider-signed ID token and return its identity."""
        raise NotImplementedError


class GoogleOAuthAdapter(OAuthProviderAdapter):
    """Google OAuth/OIDC adapter.

    Every outbound call is bounded by OAUTH_HTTP_TIMEOUT_SECONDS. Pass an
    ``http_client`` to reuse a connection pool (or a mock transport in tests);
    otherwise a short-lived client is opened per call.
    """

    provider = AuthProvider.GOOGLE

    AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
    JWKS_URI = "https://www.googleapis.com/oauth2/v3/certs"
    ISSUERS = ("https://accounts.google.com", "accounts.google.com")
    SCOPES = ("profile", "email")

    def __init__(self, config: Settings | None = None, http_client: httpx.AsyncClient | None = None):
        self.config = config or settings
        self.client_id = self.config.OAUTH_GOOGLE_CLIENT_ID
        self.client_secret = self.config.OAUTH_GOOGLE_CLIENT_SECRET
        self.redirect_uri = self.config.google_redirect_uri
        self.audiences = self.config.google_audiences
        self.timeout = httpx.Timeout(self.config.OAUTH_HTTP_TIMEOUT_SECONDS)
        self._http_client = http_client
        self._jwks: dict[str, Any] | None = None
        self._jwks_expires_at = 0.0

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.request(method, url, timeout=self.timeout, **kwargs)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.request(method, url, **kwargs)

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        # httpx bounds each phase separately; the whole call gets one deadline
        try:
            return await asyncio.wait_for(
                self._send(method, url, **kwargs), self.config.OAUTH_HTTP_TIMEOUT_SECONDS
            )
        except asyncio.TimeoutError as e:
            logger.warning("Google call exceeded deadline", extra={"url": url})
            raise ProviderTimeoutError() from e

    def get_authorize_url(self, state: str | None = None) -> str:
        """Generate Google consent page URL for the authorization-code flow."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.SCOPES),
        }
        if state:
            params["state"] = state
        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    # Protocol A: authorization code

    async def exchange_code(self, code: str) -> str:
        """Exchange an authorization code for a provider access token.

        Codes are single-use, so this is never retried.
        """
        try:
            response = await self._request(
                "POST",
                self.TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.redirect_uri,
                    "grant_type": "authorization_code",
                },
                headers={"Accept": "application/json"},
            )
        except httpx.TimeoutException as e:
            logger.warning("Google token exchange timed out", extra={"error": str(e)})
            raise ProviderTimeoutError() from e
        except httpx.HTTPError as e:
            logger.warning("Google token exchange failed", extra={"error": str(e)})
            raise TokenExchangeError() from e

        if response.status_code != 200:
            logger.warning(
                "Google rejected authorization code",
                extra={"status_code": response.status_code, "provider_body": response.text[:500]},
            )
            raise TokenExchangeError()

        try:
            body = response.json()
        except ValueError as e:
            raise TokenExchangeError() from e
        if not isinstance(body, dict):
            raise TokenExchangeError()

        access_token = body.get("access_token")
        if not access_token:
            raise TokenExchangeError("No access_token in token response")
        return access_token

    async def fetch_profile(self, access_token: str) -> ExternalIdentity:
        """Fetch and normalize the user-info profile."""
        try:
            response = await self._request(
                "GET",
                self.USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
            )
        except httpx.TimeoutException as e:
            logger.warning("Google profile fetch timed out", extra={"error": str(e)})
            raise ProviderTimeoutError() from e
        except httpx.HTTPError as e:
            logger.warning("Google profile fetch failed", extra={"error": str(e)})
            raise ProfileFetchError() from e

        if not response.is_success:
            logger.warning("Google profile fetch rejected", extra={"status_code": response.status_code})
            raise ProfileFetchError()

        try:
            profile = response.json()
        except ValueError as e:
            raise ProfileFetchError() from e

        if not isinstance(profile, dict):
            raise ProfileFetchError()
        if not profile.get("id") or not profile.get("email"):
            raise IncompleteProfileError()

        return ExternalIdentity(
            provider=self.provider,
            provider_user_id=str(profile["id"]),
            email=profile["email"],
            display_name=profile.get("name") or profile["email"],
            given_name=profile.get("given_name"),
            family_name=profile.get("family_name"),
            avatar_url=profile.get("picture"),
            email_verified=_as_bool(profile.get("verified_email", profile.get("email_verified", False))),
        )

    async def authenticate_code(self, code: str) -> ExternalIdentity:
        access_token = await self.exchange_code(code)
        return await self.fetch_profile(access_token)

    # Protocol B: ID token

    @staticmethod
    def read_unverified_claims(id_token: str) -> dict[str, Any]:
        """Parse the token without trusting it. Used for diagnostics only."""
        if not isinstance(id_token, str) or len(id_token.split(".")) != 3:
            raise MalformedTokenError()
        try:
            claims = jwt.get_unverified_claims(id_token)
        except JOSEError as e:
            raise MalformedTokenError() from e
        if not isinstance(claims, dict):
            raise MalformedTokenError()
        return claims

    async def _get_jwks(self, force: bool = False) -> dict[str, Any]:
        """Get JWKS (cached with TTL)."""
        now = datetime.now(timezone.utc).timestamp()
        if not force and self._jwks is not None and now < self._jwks_expires_at:
            return self._jwks

        try:
            response = await self._request("GET", self.JWKS_URI)
            response.raise_for_status()
            jwks = response.json()
        except httpx.TimeoutException as e:
            logger.warning("Google JWKS fetch timed out", extra={"error": str(e)})
            raise ProviderTimeoutError() from e
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Google JWKS fetch failed", extra={"error": str(e)})
            raise TokenVerificationError() from e

        if not isinstance(jwks, dict) or not isinstance(jwks.get("keys"), list):
            logger.warning("Google JWKS response has no key set")
            raise TokenVerificationError()

        self._jwks = jwks
        self._jwks_expires_at = now + self.config.JWKS_CACHE_TTL_SECONDS
        return jwks

    async def _signing_key(self, kid: str | None) -> dict[str, Any]:
        jwks = await self._get_jwks()
        for key in jwks.get("keys", []):
            if key.get("kid") == kid:
                return key
        # Google rotates keys; refetch once before giving up
        jwks = await self._get_jwks(force=True)
        for key in jwks.get("keys", []):
            if key.get("kid") == kid:
                return key
        raise TokenVerificationError("Signing key not found")

    async def verify_id_token(self, id_token: str) -> ExternalIdentity:
        """Validate signature, issuer, expiry and audience of a Google ID token."""
        unverified = self.read_unverified_claims(id_token)
        token_audience = unverified.get("aud")

        if not self.audiences:
            raise RuntimeError("OAUTH_GOOGLE_CLIENT_ID is not configured")

        try:
            header = jwt.get_unverified_header(id_token)
        except JOSEError as e:
            raise MalformedTokenError() from e

        key = await self._signing_key(header.get("kid"))

        try:
            payload = jwt.decode(
                id_token,
                key,
                algorithms=["RS256"],
                issuer=self.ISSUERS,
                options={"verify_aud": False, "verify_at_hash": False},
            )
        except ExpiredSignatureError as e:
            raise TokenVerificationError("ID token has expired") from e
        except JWTClaimsError as e:
            logger.info("Google ID token claims rejected", extra={"error": str(e)})
            raise TokenVerificationError() from e
        except JOSEError as e:
            logger.info("Google ID token signature rejected", extra={"error": str(e)})
            raise TokenVerificationError() from e

        verified_audience = payload.get("aud")
        audiences = [verified_audience] if isinstance(verified_audience, str) else list(verified_audience or [])
        if not any(aud in self.audiences for aud in audiences):
            raise AudienceMismatchError(
                details={
                    "token_audience": token_audience,
                    "expected_audience": self.audiences,
                },
            )

        if not payload.get("sub") or not payload.get("email"):
            raise IncompleteProfileError()

        return ExternalIdentity(
            provider=self.provider,
            provider_user_id=str(payload["sub"]),
            email=payload["email"],
            display_name=payload.get("name") or payload["email"],
            given_name=payload.get("given_name"),
            family_name=payload.get("family_name"),
            avatar_url=payload.get("picture"),
            email_verified=_as_bool(payload.get("email_verified", False)),
        )


SUPPORTED_PROVIDERS: dict[AuthProvider, type[OAuthProviderAdapter]] = {
    AuthProvider.GOOGLE: GoogleOAuthAdapter,
}


def get_provider_adapter(
    provider: str,
    config: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> OAuthProviderAdapter:
    """Get OAuth provider adapter, rejecting providers outside the supported set."""
    try:
        provider_enum = AuthProvider((provider or "").strip().lower())
    except ValueError:
        provider_enum = None
    adapter_cls = SUPPORTED_PROVIDERS.get(provider_enum) if provider_enum else None
    if adapter_cls is None:
        supported = ", ".join(p.value for p in SUPPORTED_PROVIDERS)
        raise UnsupportedProviderError(
            f"Provider '{provider}' is not supported. Supported providers: {supported}"
        )
    return adapter_cls(config=config, http_client=http_client)
