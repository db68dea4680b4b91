"""
Tracking Service

Runs the anonymous tracking pipeline for one request:
gate -> visitor hash -> append -> redirect decision.

Nothing here raises to the visitor. A rejected request, a failed insert or
an unreadable config all degrade to "log nothing / no redirect" and the
page is served as usual.
"""

import logging
from datetime import date
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from festival_tracker.core.exceptions import StorageError
from festival_tracker.core.request_context import RequestContext
from festival_tracker.db.models import utc_today
from festival_tracker.services.event_store import EventStore
from festival_tracker.services.identity_hasher import IdentityHasher
from festival_tracker.services.option_store import OptionStore
from festival_tracker.services.redirect_service import RedirectPolicy
from festival_tracker.services.request_gate import GateDecision, RequestGate

logger = logging.getLogger(__name__)


class TrackingService:
    """
    Service tying the tracking components together.

    Each call opens its own database session, the way background work
    does, so concurrent requests never share one.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker,
        gate: RequestGate,
        hasher: IdentityHasher,
        policy: Optional[RedirectPolicy] = None,
        today: Callable[[], date] = utc_today
    ):
        self.session_maker = session_maker
        self.gate = gate
        self.hasher = hasher
        self.policy = policy or RedirectPolicy()
        self.today = today

    async def track(self, context: RequestContext) -> Optional[str]:
        """
        Log one tracking request.

        Args:
            context: Request context built by the web layer

        Returns:
            Redirect URL if the visitor should be forwarded, None otherwise
        """
        decision = self.gate.check(context)
        if decision is not GateDecision.ACCEPTED:
            return None

        festival_id = context.festival_id
        visitor_hash = self.hasher.hash(context.client_ip, context.user_agent, self.today())

        async with self.session_maker() as session:
            try:
                await EventStore(session).append(festival_id, visitor_hash, context.client_ip)
            except StorageError as e:
                logger.error(f"Dropping tracking event for {festival_id}: {e}", exc_info=True)

            try:
                config = await OptionStore(session).load_redirect_config()
            except StorageError as e:
                logger.warning(f"Redirect settings unavailable, not redirecting: {e}")
                return None

        redirect = self.policy.decide(config, festival_id)
        return redirect.url
