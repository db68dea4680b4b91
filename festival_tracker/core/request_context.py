"""
Request Context

Explicit per-request value object handed to the tracking pipeline, so the
gate, hasher and store never read headers or query strings themselves.
"""

from dataclasses import dataclass
from typing import Optional

from starlette.requests import Request

from festival_tracker.core.setting import settings

MAX_IP_LENGTH = 45  # IPv6 max length, matches the ip_address column
UNKNOWN_IP = "UNKNOWN"


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Handles proxies and load balancers by checking Client-IP and
    X-Forwarded-For headers before the socket peer.

    Args:
        request: Starlette/FastAPI Request object

    Returns:
        IP address as string, at most 45 characters
    """
    client_ip_header = request.headers.get("Client-IP")
    forwarded_for = request.headers.get("X-Forwarded-For")

    if client_ip_header and client_ip_header.strip():
        ip = client_ip_header.strip()
    elif forwarded_for and forwarded_for.strip():
        # X-Forwarded-For can contain multiple IPs, take the first one
        ip = forwarded_for.split(",")[0].strip()
    elif request.client and request.client.host:
        ip = request.client.host
    else:
        ip = UNKNOWN_IP

    return (ip or UNKNOWN_IP)[:MAX_IP_LENGTH]


@dataclass(frozen=True)
class RequestContext:
    """What the tracking pipeline knows about one inbound request."""
    festival_id: Optional[str]
    client_ip: str
    user_agent: Optional[str]

    @classmethod
    def from_request(cls, request: Request) -> "RequestContext":
        return cls(
            festival_id=request.query_params.get(settings.TRACKING_PARAM),
            client_ip=get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
