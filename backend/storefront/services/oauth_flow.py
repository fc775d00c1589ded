"""OAuth login orchestration: verify identity, reconcile account, issue session tokens."""

from dataclasses import dataclass, field
from enum import Enum

from storefront.core.app_exceptions import AppError, MissingParameterError, UnsupportedProviderError
from storefront.core.logging import get_logger, update_log_context
from storefront.core.oauth import ExternalIdentity, OAuthProviderAdapter
from storefront.core.security import SessionCredentials, TokenIssuer
from storefront.models.account import Account, AuthProvider
from storefront.services.accounts import AccountReconciler

logger = get_logger(__name__)


class FlowStage(str, Enum):
    """Per-request login stages. Nothing is carried across requests."""

    START = "start"
    CREDENTIAL_RECEIVED = "credential_received"
    IDENTITY_VERIFIED = "identity_verified"
    ACCOUNT_RESOLVED = "account_resolved"
    CREDENTIALS_ISSUED = "credentials_issued"
    RESPONDED = "responded"
    FAILED = "failed"


@dataclass
class FlowRun:
    """Stage bookkeeping for one login attempt."""

    flow: str
    provider: str | None = None
    stage: FlowStage = FlowStage.START
    failed_at: FlowStage | None = None
    history: list[FlowStage] = field(default_factory=lambda: [FlowStage.START])

    def advance(self, stage: FlowStage) -> None:
        self.stage = stage
        self.history.append(stage)
        update_log_context(auth_flow=self.flow, auth_stage=stage.value)
        logger.debug("OAuth flow advanced", extra={"flow": self.flow, "stage": stage.value})

    def fail(self, exc: BaseException) -> None:
        self.failed_at = self.stage
        self.stage = FlowStage.FAILED
        self.history.append(FlowStage.FAILED)
        reason = exc.code if isinstance(exc, AppError) else type(exc).__name__
        update_log_context(auth_flow=self.flow, auth_stage=FlowStage.FAILED.value, auth_failed_at=self.failed_at.value)
        logger.warning(
            "OAuth flow failed",
            extra={
                "flow": self.flow,
                "provider": self.provider,
                "failed_at": self.failed_at.value,
                "reason": reason,
            },
        )


@dataclass
class LoginResult:
    account: Account
    credentials: SessionCredentials
    provider: str
    run: FlowRun


class OAuthLoginFlow:
    """Entry point for both OAuth transports.

    ``login_with_code`` serves browser clients (authorization-code redirect);
    ``login_with_id_token`` serves native clients presenting a provider ID
    token. Both share the same verifiers, reconciler and issuer. No stage is
    retried: codes are single-use and ID tokens are cheap for the client to
    re-obtain.
    """

    def __init__(
        self,
        verifiers: list[OAuthProviderAdapter],
        reconciler: AccountReconciler,
        issuer: TokenIssuer,
    ):
        self.verifiers = {verifier.provider.value: verifier for verifier in verifiers}
        self.reconciler = reconciler
        self.issuer = issuer

    def get_verifier(self, provider: str) -> OAuthProviderAdapter:
        verifier = self.verifiers.get((provider or "").strip().lower())
        if verifier is None:
            supported = ", ".join(sorted(self.verifiers))
            raise UnsupportedProviderError(
                f"Provider '{provider}' is not supported. Supported providers: {supported}"
            )
        return verifier

    def _complete(self, run: FlowRun, identity: ExternalIdentity) -> LoginResult:
        run.advance(FlowStage.IDENTITY_VERIFIED)

        # The account write is committed here and survives any issuance failure below
        account = self.reconciler.reconcile(identity)
        run.advance(FlowStage.ACCOUNT_RESOLVED)

        credentials = self.issuer.issue_for_account(account)
        run.advance(FlowStage.CREDENTIALS_ISSUED)

        run.advance(FlowStage.RESPONDED)
        return LoginResult(account=account, credentials=credentials, provider=identity.provider.value, run=run)

    async def login_with_code(self, code: str | None) -> LoginResult:
        """Authorization-code flow (Google only)."""
        run = FlowRun(flow="authorization_code", provider=AuthProvider.GOOGLE.value)
        try:
            if not code:
                raise MissingParameterError("Authorization code is required")
            verifier = self.get_verifier(AuthProvider.GOOGLE.value)
            run.advance(FlowStage.CREDENTIAL_RECEIVED)
            identity = await verifier.authenticate_code(code)
            return self._complete(run, identity)
        except Exception as e:
            run.fail(e)
            raise

    async def login_with_id_token(self, token_id: str | None, provider: str | None) -> LoginResult:
        """Direct ID-token flow for mobile/native clients."""
        run = FlowRun(flow="id_token", provider=provider)
        try:
            if not token_id:
                raise MissingParameterError("Token ID is required")
            if not provider:
                raise MissingParameterError("Provider is required")
            verifier = self.get_verifier(provider)
            run.advance(FlowStage.CREDENTIAL_RECEIVED)
            identity = await verifier.verify_id_token(token_id)
            return self._complete(run, identity)
        except Exception as e:
            run.fail(e)
            raise
