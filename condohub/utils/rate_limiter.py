"""
Rate limiter for the write endpoints.

In-memory storage; one limiter per process.
"""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address


def get_real_client_ip(request: Request) -> str:
    """Client IP, honouring the headers set by a reverse proxy"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_real_client_ip,
    default_limits=["200/minute"],
)

RATE_LIMITS = {
    "booking_write": "30/minute",
    "membership_write": "30/minute",
}


def get_rate_limit(endpoint_type: str) -> str:
    return RATE_LIMITS.get(endpoint_type, "60/minute")
