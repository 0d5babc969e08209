from fastapi import Request
from limits import parse
from slowapi import Limiter
from slowapi.util import get_remote_address

from pg_finder.core.config import Settings
from pg_finder.core.exceptions import TooManyRequests


def build_limiter(settings: Settings) -> Limiter:
    """One limiter per app, kept on app.state so its counters are never shared."""
    return Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)


def otp_rate_limit(request: Request):
    """
    Dependency for the routes that mail a code. Counts hits per client
    address and path against the app's OTP_RATE_LIMIT.
    """
    limiter: Limiter = request.app.state.limiter
    if not limiter.enabled:
        return

    item = parse(request.app.state.settings.OTP_RATE_LIMIT)
    if not limiter.limiter.hit(item, get_remote_address(request), request.url.path):
        raise TooManyRequests(f"Too many requests, limit is {request.app.state.settings.OTP_RATE_LIMIT}")
