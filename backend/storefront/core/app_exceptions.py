"""Application-specific exceptions for consistent error handling."""

from typing import Any

from fastapi import HTTPException, status


class AppError(HTTPException):
    """Application error with standardized error code."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | list[Any] | None = None,
    ):
        """Initialize application error."""
        super().__init__(
            status_code=status_code,
            detail={
                "code": code,
                "message": message,
                "details": details,
            },
        )
        self.code = code
        self.message = message
        self.details = details


class AuthError(AppError):
    """Base for authentication failures with a fixed status and code per subclass."""

    http_status: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "AUTH_ERROR"
    default_message: str = "Authentication failed"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | list[Any] | None = None,
    ):
        super().__init__(
            status_code=self.http_status,
            code=self.error_code,
            message=message or self.default_message,
            details=details,
        )


class MissingParameterError(AuthError):
    http_status = status.HTTP_400_BAD_REQUEST
    error_code = "MISSING_PARAMETER"
    default_message = "A required parameter is missing"


class UnsupportedProviderError(AuthError):
    http_status = status.HTTP_400_BAD_REQUEST
    error_code = "UNSUPPORTED_PROVIDER"
    default_message = "Provider is not supported"


class MalformedTokenError(AuthError):
    http_status = status.HTTP_401_UNAUTHORIZED
    error_code = "MALFORMED_TOKEN"
    default_message = "Invalid token format"


class TokenExchangeError(AuthError):
    http_status = status.HTTP_400_BAD_REQUEST
    error_code = "TOKEN_EXCHANGE_FAILED"
    default_message = "Failed to exchange authorization code for access token"


class ProfileFetchError(AuthError):
    http_status = status.HTTP_400_BAD_REQUEST
    error_code = "PROFILE_FETCH_FAILED"
    default_message = "Failed to fetch user profile from provider"


class AudienceMismatchError(AuthError):
    http_status = status.HTTP_401_UNAUTHORIZED
    error_code = "AUDIENCE_MISMATCH"
    default_message = "The token was issued for a different client ID"


class TokenVerificationError(AuthError):
    http_status = status.HTTP_401_UNAUTHORIZED
    error_code = "TOKEN_VERIFICATION_FAILED"
    default_message = "Invalid or expired ID token"


class IncompleteProfileError(AuthError):
    http_status = status.HTTP_400_BAD_REQUEST
    error_code = "INCOMPLETE_PROFILE"
    default_message = "Required user information missing from provider profile"


class InvalidRefreshTokenError(AuthError):
    http_status = status.HTTP_401_UNAUTHORIZED
    error_code = "INVALID_REFRESH_TOKEN"
    default_message = "Invalid or expired refresh token"


class ProviderTimeoutError(AuthError):
    http_status = status.HTTP_504_GATEWAY_TIMEOUT
    error_code = "PROVIDER_TIMEOUT"
    default_message = "Identity provider did not respond in time"


class AccountConflictError(AuthError):
    http_status = status.HTTP_409_CONFLICT
    error_code = "ACCOUNT_CONFLICT"
    default_message = "An account with this email already exists"


class EmailAlreadyRegisteredError(AuthError):
    http_status = status.HTTP_409_CONFLICT
    error_code = "EMAIL_ALREADY_REGISTERED"
    default_message = "Account already exists"


class InvalidCredentialsError(AuthError):
    http_status = status.HTTP_401_UNAUTHORIZED
    error_code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


class OAuthOnlyAccountError(AuthError):
    http_status = status.HTTP_403_FORBIDDEN
    error_code = "OAUTH_ONLY_ACCOUNT"
    default_message = "This account signs in with an external provider"


class UnauthorizedError(AuthError):
    http_status = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHORIZED"
    default_message = "Authentication required"


class DuplicateAccountError(Exception):
    """Raised by the account store when a uniqueness constraint is violated."""

    def __init__(self, message: str = "Duplicate account"):
        super().__init__(message)
