"""Security utilities: password hashing and session token issuance."""

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from pydantic import BaseModel

from storefront.core.app_exceptions import InvalidRefreshTokenError
from storefront.core.config import Settings, settings
from storefront.core.logging import get_logger

logger = get_logger(__name__)

ACCESS = "access"
REFRESH = "refresh"

_password_hasher = PasswordHasher()


def hash_password(plain_password: str) -> str:
    """Hash a plain password using Argon2."""
    return _password_hasher.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify a plain password against a hash."""
    try:
        _password_hasher.verify(password_hash, plain_password)
        return True
    except VerifyMismatchError:
        return False
    except (VerificationError, InvalidHashError) as e:
        logger.warning(f"Password verification error: {e}")
        return False


class TokenClaims(BaseModel):
    """Decoded session token."""

    subject_id: str
    display_name: str | None = None
    role: str
    token_type: str
    issued_at: datetime
    expires_at: datetime

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "TokenClaims":
        return cls(
            subject_id=payload["sub"],
            display_name=payload.get("name"),
            role=payload["role"],
            token_type=payload["type"],
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )


class SessionCredentials(BaseModel):
    """Access/refresh pair handed to clients."""

    access_token: str
    refresh_token: str


class TokenIssuer:
    """Mints and verifies the service's own stateless session tokens.

    Access and refresh tokens are signed with different secrets, so a token of
    one class can never be replayed as the other. Nothing is stored server-side;
    validity is the signature plus the embedded expiry.
    """

    def __init__(self, config: Settings | None = None):
        self.config = config or settings
        self.access_ttl = timedelta(minutes=self.config.ACCESS_TOKEN_EXPIRE_MINUTES)
        self.refresh_ttl = timedelta(days=self.config.REFRESH_TOKEN_EXPIRE_DAYS)

    def _secret(self, token_type: str) -> str:
        if token_type == ACCESS:
            return self.config.JWT_ACCESS_SECRET
        return self.config.JWT_REFRESH_SECRET

    def _encode(self, subject_id: str, display_name: str | None, role: str, token_type: str) -> str:
        now = datetime.now(timezone.utc)
        ttl = self.access_ttl if token_type == ACCESS else self.refresh_ttl
        payload = {
            "sub": str(subject_id),
            "name": display_name,
            "role": role,
            "iat": now,
            "exp": now + ttl,
            "jti": str(uuid4()),
            "type": token_type,
        }
        return jwt.encode(payload, self._secret(token_type), algorithm=self.config.JWT_ALG)

    def _decode(self, token: str, token_type: str) -> TokenClaims:
        payload = jwt.decode(
            token,
            self._secret(token_type),
            algorithms=[self.config.JWT_ALG],
            options={"require": ["sub", "role", "type", "iat", "exp"]},
        )
        if payload.get("type") != token_type:
            raise jwt.InvalidTokenError(f"Token is not an {token_type} token")
        try:
            return TokenClaims.from_payload(payload)
        except (KeyError, TypeError, ValueError) as e:
            raise jwt.InvalidTokenError("Malformed token claims") from e

    def issue(self, subject_id: str, display_name: str | None, role: str) -> SessionCredentials:
        """Sign a fresh access/refresh pair for the given claims."""
        return SessionCredentials(
            access_token=self._encode(subject_id, display_name, role, ACCESS),
            refresh_token=self._encode(subject_id, display_name, role, REFRESH),
        )

    def issue_for_account(self, account: Any) -> SessionCredentials:
        return self.issue(str(account.id), account.display_name, account.role)

    def verify_access_token(self, token: str) -> TokenClaims:
        """Verify and decode an access token. Raises jwt.InvalidTokenError."""
        try:
            return self._decode(token, ACCESS)
        except jwt.ExpiredSignatureError:
            raise jwt.InvalidTokenError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise jwt.InvalidTokenError(f"Invalid token: {e}")

    def refresh(self, refresh_token: str) -> SessionCredentials:
        """Exchange a valid refresh token for a new pair bound to the same claims."""
        try:
            claims = self._decode(refresh_token, REFRESH)
        except jwt.ExpiredSignatureError as e:
            raise InvalidRefreshTokenError("Refresh token has expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidRefreshTokenError() from e
        return self.issue(claims.subject_id, claims.display_name, claims.role)
