"""Per-client sessions, each owning its own independent pipelines."""

import asyncio
import logging

from cachetools import TTLCache

from fishcast.config import get_settings
from fishcast.models.schemas import GearItem, LocationPoint
from fishcast.services.cache import VersionedCache
from fishcast.services.gear import GearAnalysisPipeline
from fishcast.services.location import LocationOrchestrator
from fishcast.services.tips import FishingTipsService

logger = logging.getLogger(__name__)


class FishingSession:
    """
    One mounted client view.

    The conditions orchestrator, gear pipeline and tips service each keep
    their own cancellation token and never wait on one another.
    """

    def __init__(self, session_id: str, cache: VersionedCache | None = None) -> None:
        self.session_id = session_id
        self.orchestrator = LocationOrchestrator(cache=cache, session_id=session_id)
        self.gear_pipeline = GearAnalysisPipeline(cache=cache, session_id=session_id)
        self.tips = FishingTipsService(cache=cache, session_id=session_id)
        self.gear: list[GearItem] = []

    @property
    def location(self) -> LocationPoint | None:
        return self.orchestrator.current_location

    def set_location(self, point: LocationPoint) -> asyncio.Task | None:
        """Route a location change to the orchestrator and the gear pipeline."""
        task = self.orchestrator.update_location(point)
        self.gear_pipeline.sync(point, self.gear)
        return task

    def set_gear(self, gear: list[GearItem]) -> asyncio.Task | None:
        """Replace the gear collection."""
        self.gear = list(gear)
        return self.gear_pipeline.sync(self.location, self.gear)


# Session registry (idle sessions expire)
_sessions: TTLCache | None = None


def _registry() -> TTLCache:
    global _sessions
    if _sessions is None:
        settings = get_settings()
        _sessions = TTLCache(maxsize=settings.max_sessions, ttl=settings.session_ttl_seconds)
    return _sessions


def get_session(session_id: str) -> FishingSession:
    """Get or create the session for a client view."""
    sessions = _registry()
    session = sessions.get(session_id)
    if session is None:
        session = FishingSession(session_id)
        logger.info("Session created", extra={"session_id": session_id})
    # Re-insert so activity refreshes the TTL
    sessions[session_id] = session
    return session


def find_session(session_id: str) -> FishingSession | None:
    """Get an existing session without creating one."""
    return _registry().get(session_id)


def clear_sessions() -> None:
    """Drop every session and reset the registry."""
    global _sessions
    _sessions = None
