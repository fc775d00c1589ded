"""Security event logging utilities."""

from typing import Any

from fastapi import Request

from storefront.common.request_id import get_request_id
from storefront.core.config import settings
from storefront.core.logging import get_logger

logger = get_logger(__name__)


def get_client_ip(request: Request, trusted_proxies: list[str] | None = None) -> str:
    """Extract client IP from request.

    Forwarded headers are honored only when the direct peer is a trusted proxy.
    """
    peer = request.client.host if request.client else None
    if trusted_proxies is None:
        trusted_proxies = settings.trusted_proxies
    if peer is None or peer in trusted_proxies:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip
    return peer or "unknown"


def log_security_event(
    request: Request,
    event_type: str,
    outcome: str,  # "allow" or "deny"
    reason_code: str | None = None,
    user_id: str | None = None,
    provider: str | None = None,
    **extra_fields: Any,
) -> None:
    """
    Log an authentication event with structured fields.

    Args:
        request: FastAPI request object
        event_type: Event type (e.g., "oauth_callback_success", "auth_refresh_failed")
        outcome: "allow" or "deny"
        reason_code: Error code if outcome is "deny"
        user_id: Account ID if known
        provider: OAuth provider if relevant
        **extra_fields: Additional fields to include
    """
    log_data = {
        "event_type": event_type,
        "request_id": get_request_id(request),
        "outcome": outcome,
        "ip_address": get_client_ip(request),
        "user_agent": request.headers.get("User-Agent"),
    }

    if user_id:
        log_data["user_id"] = user_id
    if provider:
        log_data["provider"] = provider
    if reason_code:
        log_data["reason_code"] = reason_code

    log_data.update(extra_fields)

    if outcome == "deny":
        logger.warning("Security event: denied", extra=log_data)
    else:
        logger.info("Security event: allowed", extra=log_data)
