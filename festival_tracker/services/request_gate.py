"""
Request Gate

Decides whether an anonymous tracking request is logged at all.

Checks, in order:
1. Format: the festival ID must be exactly 6 alphanumeric characters
2. Rate limit: at most TRACKING_RATE_LIMIT accepted requests per IP per
   rolling 60-second window (10/minute by default)
3. Bot filter: missing user agent or a known automation substring

Every rejection is a GateDecision, never an exception, and the caller
treats them all the same way: log nothing, continue serving the page. A
client cannot tell a rate-limited request from a malformed one.

The bot filter is a best-effort heuristic, not a security boundary. The
substring list is coarse on purpose ("java" also matches "javascript").
"""

import logging
from enum import Enum
from typing import Optional

from limits import parse
from limits.storage import MemoryStorage, Storage
from limits.strategies import MovingWindowRateLimiter

from festival_tracker.core.request_context import RequestContext
from festival_tracker.core.validators import sanitize_festival_id

logger = logging.getLogger(__name__)

BOT_PATTERNS = (
    "bot", "crawler", "spider", "scraper", "curl", "wget",
    "python", "java", "ruby", "go-http", "postman",
)

RATE_LIMIT_NAMESPACE = "festival_tracking"


class GateDecision(str, Enum):
    """Outcome of RequestGate.check."""
    ACCEPTED = "accepted"
    INVALID_ID = "invalid_id"
    RATE_LIMITED = "rate_limited"
    BOT_SUSPECTED = "bot_suspected"


def is_likely_bot(user_agent: Optional[str]) -> bool:
    """True when the user agent is absent or contains a known automation marker."""
    if not user_agent:
        return True

    lowered = user_agent.lower()
    return any(pattern in lowered for pattern in BOT_PATTERNS)


class RequestGate:
    """
    Validation, per-IP rate limiting and bot filtering for tracking requests.

    One instance is shared by all requests of the application. The counter
    storage does locked increments, so concurrent requests cannot lose
    updates and silently disable the limit.
    """

    def __init__(self, rate_limit: str = "10/minute", storage: Optional[Storage] = None):
        self.rate_limit = parse(rate_limit)
        self.storage = storage if storage is not None else MemoryStorage()
        self._limiter = MovingWindowRateLimiter(self.storage)

    def check(self, context: RequestContext) -> GateDecision:
        """
        Run all checks for one request.

        Args:
            context: Request context built by the web layer

        Returns:
            GateDecision.ACCEPTED if the request should be logged
        """
        festival_id = sanitize_festival_id(context.festival_id)
        if festival_id is None:
            return GateDecision.INVALID_ID

        if not self.allow_request(context.client_ip):
            logger.debug(f"Tracking rate limit exceeded for {context.client_ip}")
            return GateDecision.RATE_LIMITED

        if is_likely_bot(context.user_agent):
            logger.debug(f"Skipping likely bot: {context.user_agent!r}")
            return GateDecision.BOT_SUSPECTED

        return GateDecision.ACCEPTED

    def allow_request(self, client_ip: str) -> bool:
        """Count one request for this IP; False once the window's budget is spent."""
        return self._limiter.hit(self.rate_limit, RATE_LIMIT_NAMESPACE, client_ip)

    def reset(self) -> None:
        """Forget every counter."""
        self.storage.reset()
