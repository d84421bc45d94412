"""
Shared slowapi rate limiter and the /api request budget.

Two limits, both keyed by client IP and kept in one in-memory store:

  - AUTH_RATE_LIMIT (default 5 per 15 minutes): one budget shared by
    register and login, applied in routers/auth.py with
    @limiter.shared_limit(..., scope="auth"). Exceeding it raises slowapi's
    RateLimitExceeded -> 429 TOO_MANY_ATTEMPTS.

  - DEFAULT_RATE_LIMIT (default 100 per 15 minutes): one budget for every
    /api route together, enforced by the enforce_api_rate_limit dependency
    that both API routers declare. Exceeding it raises
    RateLimitExceededError -> 429 RATE_LIMIT_EXCEEDED.
"""

from fastapi import Request
from limits import parse
from slowapi import Limiter
from slowapi.util import get_remote_address

from invoice_api.config import settings
from invoice_api.exceptions import RateLimitExceededError

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    enabled=settings.RATE_LIMIT_ENABLED,
)

API_RATE_LIMIT = parse(settings.DEFAULT_RATE_LIMIT)
API_SCOPE = "api"


async def enforce_api_rate_limit(request: Request) -> None:
    """Count this request against the caller's /api budget."""
    if not limiter.enabled:
        return
    if not limiter.limiter.hit(API_RATE_LIMIT, get_remote_address(request), API_SCOPE):
        raise RateLimitExceededError()
