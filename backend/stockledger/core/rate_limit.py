"""Request limiter shared by the inventory routes.

Writes and reads are budgeted per actor; unauthenticated calls fall back to
the client address.
"""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from stockledger.core.config import settings
from stockledger.core.security import decode_access_token


def actor_key(request: Request) -> str:
    """Limiter key: ``actor:<sub>`` for a valid token, else the remote address."""
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme == "Bearer" and token:
        claims = decode_access_token(token)
        if claims and claims.get("sub"):
            return f"actor:{claims['sub']}"
    return get_remote_address(request)


limiter = Limiter(key_func=actor_key, enabled=settings.rate_limit_enabled)
