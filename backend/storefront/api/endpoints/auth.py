"""Password authentication, token refresh and caller identity endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, status

from storefront.core.app_exceptions import (
    AppError,
    DuplicateAccountError,
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    MissingParameterError,
    OAuthOnlyAccountError,
)
from storefront.core.dependencies import get_account_store, get_current_claims, get_token_issuer
from storefront.core.security import TokenClaims, TokenIssuer, hash_password, verify_password
from storefront.core.security_logging import log_security_event
from storefront.schemas.auth import (
    ClaimsResponse,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    SigninRequest,
    SigninResponse,
    TokensResponse,
)
from storefront.services.accounts import SqlAccountStore, register_password_account

router = APIRouter(tags=["Auth"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_200_OK,
    summary="Register a password account",
)
async def register(
    request_data: RegisterRequest,
    request: Request,
    store: SqlAccountStore = Depends(get_account_store),
) -> RegisterResponse:
    """Create a local account authenticated by email and password."""
    if store.find_by_email(request_data.email):
        raise EmailAlreadyRegisteredError()

    try:
        account = register_password_account(
            store,
            email=request_data.email,
            name=request_data.name,
            password_hash=hash_password(request_data.password),
        )
    except DuplicateAccountError as e:
        raise EmailAlreadyRegisteredError() from e

    log_security_event(request, event_type="auth_register", outcome="allow", user_id=str(account.id))
    return RegisterResponse()


@router.post(
    "/signin",
    response_model=SigninResponse,
    summary="Sign in with email and password",
)
async def signin(
    request_data: SigninRequest,
    request: Request,
    store: SqlAccountStore = Depends(get_account_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> SigninResponse:
    """Authenticate a local account and issue a session token pair."""
    account = store.find_by_email(request_data.email)

    if account is not None and not account.password_hash:
        log_security_event(request, event_type="auth_login_failed", outcome="deny", reason_code="OAUTH_ONLY_ACCOUNT")
        raise OAuthOnlyAccountError()

    if account is None or not verify_password(request_data.password, account.password_hash):
        log_security_event(request, event_type="auth_login_failed", outcome="deny", reason_code="INVALID_CREDENTIALS")
        raise InvalidCredentialsError()

    account.last_login_at = datetime.now(timezone.utc)
    store.save(account)

    credentials = issuer.issue_for_account(account)
    log_security_event(request, event_type="auth_login_success", outcome="allow", user_id=str(account.id))
    return SigninResponse(
        access_token=credentials.access_token,
        refresh_token=credentials.refresh_token,
        id_user=str(account.id),
    )


@router.post(
    "/refresh",
    response_model=TokensResponse,
    summary="Refresh tokens",
    description="Exchange a valid refresh token for a new access/refresh pair.",
)
async def refresh(
    request_data: RefreshRequest,
    request: Request,
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> TokensResponse:
    """Stateless refresh: validity is signature plus embedded expiry."""
    if not request_data.refresh_token:
        raise MissingParameterError("Refresh token is required")

    try:
        credentials = issuer.refresh(request_data.refresh_token)
    except AppError as e:
        log_security_event(request, event_type="auth_refresh_failed", outcome="deny", reason_code=e.code)
        raise

    log_security_event(request, event_type="auth_refresh_success", outcome="allow")
    return TokensResponse(access_token=credentials.access_token, refresh_token=credentials.refresh_token)


@router.get("/me", response_model=ClaimsResponse, summary="Current caller")
async def me(claims: TokenClaims = Depends(get_current_claims)) -> ClaimsResponse:
    return ClaimsResponse(
        subject_id=claims.subject_id,
        display_name=claims.display_name,
        role=claims.role,
        expires_at=claims.expires_at,
    )
