"""
api/limiter.py -- Rate limiting for the credential endpoints.

One Limiter instance is shared by api/main.py (SlowAPIMiddleware, 429
handler) and the routes that apply limits. Counters are kept per client IP in
process memory, so a multi-worker deployment limits each worker separately.

login_rate_limit() is passed to @limiter.limit() as a callable: slowapi
evaluates it per request, so LOGIN_RATE_LIMIT is read from Settings rather
than frozen at import time.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


def login_rate_limit() -> str:
    """Limit string for POST /login, e.g. "10/minute"."""
    return get_settings().login_rate_limit
