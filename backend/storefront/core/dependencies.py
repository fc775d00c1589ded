"""FastAPI dependencies for authentication wiring."""

from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header
from sqlalchemy.orm import Session

from storefront.core.app_exceptions import UnauthorizedError
from storefront.core.config import settings
from storefront.core.oauth import GoogleOAuthAdapter
from storefront.core.security import TokenClaims, TokenIssuer
from storefront.db.session import get_db
from storefront.services.accounts import AccountReconciler, SqlAccountStore
from storefront.services.oauth_flow import OAuthLoginFlow


@lru_cache(maxsize=1)
def get_google_verifier() -> GoogleOAuthAdapter:
    """Process-wide Google verifier so its JWKS cache outlives a single request."""
    return GoogleOAuthAdapter(settings)


def get_token_issuer() -> TokenIssuer:
    return TokenIssuer(settings)


def get_account_store(db: Session = Depends(get_db)) -> SqlAccountStore:
    return SqlAccountStore(db)


def get_login_flow(
    store: SqlAccountStore = Depends(get_account_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
    google: GoogleOAuthAdapter = Depends(get_google_verifier),
) -> OAuthLoginFlow:
    return OAuthLoginFlow(verifiers=[google], reconciler=AccountReconciler(store), issuer=issuer)


def get_current_claims(
    authorization: Annotated[str | None, Header()] = None,
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> TokenClaims:
    """Dependency to get the caller's verified access-token claims."""
    if not authorization:
        raise UnauthorizedError("Authorization header is required")

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise UnauthorizedError("Authorization header format must be: Bearer <token>")

    try:
        return issuer.verify_access_token(parts[1])
    except jwt.InvalidTokenError as e:
        raise UnauthorizedError(str(e)) from e
