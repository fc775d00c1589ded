"""OAuth/OIDC endpoints."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from storefront.core.app_exceptions import AppError
from storefront.core.dependencies import get_login_flow
from storefront.core.security_logging import log_security_event
from storefront.schemas.oauth import (
    AccountSummary,
    OAuthCallbackRequest,
    OAuthLoginResponse,
    OAuthMobileRequest,
)
from storefront.services.oauth_flow import LoginResult, OAuthLoginFlow

router = APIRouter(tags=["OAuth"])


def _login_response(result: LoginResult) -> OAuthLoginResponse:
    return OAuthLoginResponse(
        user=AccountSummary.from_account(result.account),
        access_token=result.credentials.access_token,
        refresh_token=result.credentials.refresh_token,
    )


@router.post(
    "/google/callback",
    response_model=OAuthLoginResponse,
    summary="Google OAuth callback",
    description="Exchange the authorization code relayed by the browser client for session tokens.",
)
async def google_callback(
    request_data: OAuthCallbackRequest,
    request: Request,
    flow: OAuthLoginFlow = Depends(get_login_flow),
) -> OAuthLoginResponse:
    try:
        result = await flow.login_with_code(request_data.code)
    except AppError as e:
        log_security_event(
            request,
            event_type="oauth_callback_failed",
            outcome="deny",
            reason_code=e.code,
            provider="google",
        )
        raise

    log_security_event(
        request,
        event_type="oauth_callback_success",
        outcome="allow",
        user_id=str(result.account.id),
        provider=result.provider,
    )
    return _login_response(result)


@router.post(
    "/mobile",
    response_model=OAuthLoginResponse,
    summary="Native OAuth sign-in",
    description="Verify a provider-issued ID token from a mobile client and issue session tokens.",
)
async def oauth_mobile(
    request_data: OAuthMobileRequest,
    request: Request,
    flow: OAuthLoginFlow = Depends(get_login_flow),
) -> OAuthLoginResponse:
    try:
        result = await flow.login_with_id_token(request_data.token_id, request_data.provider)
    except AppError as e:
        log_security_event(
            request,
            event_type="oauth_mobile_failed",
            outcome="deny",
            reason_code=e.code,
            provider=request_data.provider,
        )
        raise

    log_security_event(
        request,
        event_type="oauth_mobile_success",
        outcome="allow",
        user_id=str(result.account.id),
        provider=result.provider,
    )
    return _login_response(result)


@router.get(
    "/{provider}",
    summary="Start OAuth flow",
    description="Redirect the browser to the provider's consent page.",
)
async def oauth_start(
    provider: str,
    request: Request,
    flow: OAuthLoginFlow = Depends(get_login_flow),
) -> RedirectResponse:
    verifier = flow.get_verifier(provider)

    log_security_event(request, event_type="oauth_start", outcome="allow", provider=verifier.provider.value)
    return RedirectResponse(url=verifier.get_authorize_url(), status_code=302)
