"""In-process stand-in for Google's OAuth endpoints, served through httpx.MockTransport."""

import asyncio
import time
from typing import Any
from urllib.parse import parse_qs

import httpx
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt

from storefront.core.oauth import GoogleOAuthAdapter


def _generate_key() -> tuple[str, dict[str, Any]]:
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    public_jwk = jwk.construct(public_pem, "RS256").to_dict()
    return private_pem, public_jwk


class FakeGoogle:
    """Token, user-info and JWKS endpoints with configurable answers."""

    def __init__(self, client_id: str = "client-123", kid: str = "test-key-1"):
        self.client_id = client_id
        self.kid = kid
        self.private_pem, public_jwk = _generate_key()
        self.jwks = {"keys": [{**public_jwk, "kid": kid, "use": "sig", "alg": "RS256"}]}
        self.requests: list[httpx.Request] = []
        self.timeout_urls: set[str] = set()
        self.stall_seconds: dict[str, float] = {}

        self.token_status = 200
        self.token_body: dict[str, Any] = {
            "access_token": "ya29.test-access-token",
            "token_type": "Bearer",
            "expires_in": 3599,
        }
        self.userinfo_status = 200
        self.userinfo_body: dict[str, Any] = {
            "id": "g123",
            "email": "a@b.com",
            "verified_email": True,
            "name": "Ada Lovelace",
            "given_name": "Ada",
            "family_name": "Lovelace",
            "picture": "https://lh3.googleusercontent.com/a/ada",
        }

    def requests_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url).split("?")[0] == url]

    def token_request_form(self) -> dict[str, str]:
        request = self.requests_to(GoogleOAuthAdapter.TOKEN_URL)[-1]
        return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}

    def sign_id_token(self, private_pem: str | None = None, kid: str | None = None, **overrides: Any) -> str:
        now = int(time.time())
        claims: dict[str, Any] = {
            "iss": "https://accounts.google.com",
            "aud": self.client_id,
            "sub": "g123",
            "email": "a@b.com",
            "email_verified": True,
            "name": "Ada Lovelace",
            "given_name": "Ada",
            "family_name": "Lovelace",
            "picture": "https://lh3.googleusercontent.com/a/ada",
            "iat": now,
            "exp": now + 3600,
        }
        claims.update(overrides)
        claims = {k: v for k, v in claims.items() if v is not None}
        return jwt.encode(
            claims,
            private_pem or self.private_pem,
            algorithm="RS256",
            headers={"kid": kid or self.kid},
        )

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url).split("?")[0]
        if url in self.stall_seconds:
            await asyncio.sleep(self.stall_seconds[url])
        if url in self.timeout_urls:
            raise httpx.ReadTimeout("timed out", request=request)
        if url == GoogleOAuthAdapter.TOKEN_URL:
            return httpx.Response(self.token_status, json=self.token_body)
        if url == GoogleOAuthAdapter.USERINFO_URL:
            return httpx.Response(self.userinfo_status, json=self.userinfo_body)
        if url == GoogleOAuthAdapter.JWKS_URI:
            return httpx.Response(200, json=self.jwks)
        return httpx.Response(404, json={"error": "not_found"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


def other_private_key() -> str:
    """A key Google never published."""
    return _generate_key()[0]
