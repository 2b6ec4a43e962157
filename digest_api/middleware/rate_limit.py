"""Rate limiting middleware using SlowAPI."""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from digest_api.config import get_settings

settings = get_settings()


def get_principal_or_ip(request: Request) -> str:
    """
    Get rate limit key from the authenticated principal or IP address.

    Uses the principal if authenticated, falls back to IP address.
    """
    principal = getattr(request.state, "principal", None)
    if principal is not None:
        return f"{principal.kind}:{principal.subject}"

    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_principal_or_ip,
    storage_uri=settings.rate_limit_storage_uri,
    strategy="fixed-window",
    enabled=settings.rate_limit_enabled,
)


def rate_limit_reports():
    """Rate limit for report creation."""
    return limiter.limit(f"{settings.rate_limit_per_minute}/minute")
