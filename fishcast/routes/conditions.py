"""Conditions, gear analysis, tips and species endpoints."""

import logging

from fastapi import APIRouter, HTTPException, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from fishcast.config import get_settings
from fishcast.logging_config import get_logger
from fishcast.models.ai_schemas import AnalysisState, FishSpecies, TipsResponse
from fishcast.models.schemas import (
    ConditionsReport,
    DailySummary,
    GearCollectionRequest,
    LocationPoint,
    SessionStatus,
)
from fishcast.services.session import FishingSession, find_session, get_session
from fishcast.services.species import SpeciesService
from fishcast.services.weather import WeatherUnavailableError, get_conditions

logger = logging.getLogger(__name__)

router = APIRouter()

limiter = Limiter(key_func=get_remote_address)
RATE_LIMIT = get_settings().rate_limit


async def _load_conditions(latitude: float, longitude: float, name: str) -> ConditionsReport:
    location = LocationPoint(latitude=latitude, longitude=longitude, name=name)
    try:
        return await get_conditions(location)
    except WeatherUnavailableError as e:
        logger.warning(f"Conditions unavailable for {location.label}: {e}")
        raise HTTPException(status_code=502, detail=str(e)) from e


def _require_session(session_id: str) -> FishingSession:
    session = find_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session {session_id}")
    return session


def _status(session: FishingSession) -> SessionStatus:
    orchestrator = session.orchestrator
    return SessionStatus(
        session_id=session.session_id,
        location=orchestrator.current_location,
        loading=orchestrator.loading,
        last_fetched_at=orchestrator.last_fetched_at,
        report=orchestrator.report,
        error=orchestrator.error,
    )


@router.get("/conditions", response_model=ConditionsReport)
@limiter.limit(RATE_LIMIT)
async def read_conditions(
    request: Request,
    latitude: float = Query(ge=-90, le=90),
    longitude: float = Query(ge=-180, le=180),
    name: str = Query(min_length=1),
) -> ConditionsReport:
    """Merged weather + marine conditions for a location."""
    return await _load_conditions(latitude, longitude, name)


@router.get("/conditions/daily", response_model=list[DailySummary])
@limiter.limit(RATE_LIMIT)
async def read_daily_conditions(
    request: Request,
    latitude: float = Query(ge=-90, le=90),
    longitude: float = Query(ge=-180, le=180),
    name: str = Query(min_length=1),
) -> list[DailySummary]:
    """Daily summaries for the weekly view."""
    report = await _load_conditions(latitude, longitude, name)
    return report.daily


@router.put("/sessions/{session_id}/location", response_model=SessionStatus)
@limiter.limit(RATE_LIMIT)
async def update_session_location(
    request: Request,
    session_id: str,
    location: LocationPoint,
    wait: bool = False,
) -> SessionStatus:
    """
    Report a location change for a client session.

    Args:
        request: Incoming request (used for rate limiting).
        session_id: Client session identifier.
        location: The new location.
        wait: Wait for the debounced fetch to finish before responding.

    Returns:
        The session's conditions state.
    """
    log = get_logger(__name__, session_id=session_id, location=location.name)
    session = get_session(session_id)
    task = session.set_location(location)
    if task is None:
        log.debug("Location unchanged")
    if wait:
        await session.orchestrator.settle()
    return _status(session)


@router.get("/sessions/{session_id}/conditions", response_model=SessionStatus)
@limiter.limit(RATE_LIMIT)
async def read_session_conditions(request: Request, session_id: str) -> SessionStatus:
    """Conditions state of a session."""
    return _status(_require_session(session_id))


@router.put("/sessions/{session_id}/gear", response_model=AnalysisState)
@limiter.limit(RATE_LIMIT)
async def update_session_gear(
    request: Request,
    session_id: str,
    body: GearCollectionRequest,
    wait: bool = False,
) -> AnalysisState:
    """Replace a session's gear collection and run the analysis when ready."""
    session = get_session(session_id)
    session.set_gear(body.gear)
    if wait:
        await session.gear_pipeline.settle()
    return session.gear_pipeline.state


@router.post("/sessions/{session_id}/gear/retry", response_model=AnalysisState)
@limiter.limit(RATE_LIMIT)
async def retry_gear_analysis(
    request: Request,
    session_id: str,
    wait: bool = False,
) -> AnalysisState:
    """Reset the gear analysis to idle and run it again."""
    session = _require_session(session_id)
    get_logger(__name__, session_id=session_id).info("Gear analysis retry requested")
    session.gear_pipeline.retry()
    if wait:
        await session.gear_pipeline.settle()
    return session.gear_pipeline.state


@router.post("/sessions/{session_id}/tips", response_model=TipsResponse)
@limiter.limit(RATE_LIMIT)
async def generate_session_tips(
    request: Request,
    session_id: str,
    include_advice: bool = False,
) -> TipsResponse:
    """Today's fishing tips for the session's location."""
    session = _require_session(session_id)
    if session.location is None:
        raise HTTPException(status_code=409, detail="Session has no location yet")

    report = session.orchestrator.report
    conditions = report.current if report is not None else None
    tips = await session.tips.load(session.location, conditions)

    advice = None
    if include_advice and conditions is not None:
        advice = await session.tips.advice(session.location, conditions)

    return TipsResponse(tips=tips, is_fallback=session.tips.is_fallback, advice=advice)


@router.get("/species", response_model=list[FishSpecies])
@limiter.limit(RATE_LIMIT)
async def read_local_species(
    request: Request,
    latitude: float = Query(ge=-90, le=90),
    longitude: float = Query(ge=-180, le=180),
    name: str = Query(min_length=1),
    page: int = Query(default=1, ge=1),
) -> list[FishSpecies]:
    """Native species near a location this month, one page at a time."""
    location = LocationPoint(latitude=latitude, longitude=longitude, name=name)
    return await SpeciesService().local_species(location, page)


@router.get("/species/toxic", response_model=list[FishSpecies])
@limiter.limit(RATE_LIMIT)
async def read_toxic_species(
    request: Request,
    latitude: float = Query(ge=-90, le=90),
    longitude: float = Query(ge=-180, le=180),
    name: str = Query(min_length=1),
) -> list[FishSpecies]:
    """Toxic species an angler may catch near a location."""
    location = LocationPoint(latitude=latitude, longitude=longitude, name=name)
    return await SpeciesService().toxic_species(location)
