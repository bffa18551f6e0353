"""
FastAPI routes: scenario simulation, facility siting, map artifact and presets.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import FileResponse

from core.errors import (
    InvalidConfig,
    NoCandidatesAvailable,
    OptimizationCancelled,
    SanitationError,
)
from core.models import Facility, ScenarioConfig, ScenarioPreset, SitingOptions
from core.presets import InMemoryPresetStore
from core.simulation import run_simulation
from core.config import Settings
from api.dependencies import get_map_writer, get_preset_store, get_sessions, get_settings
from api.map_artifact import MapArtifactWriter
from api.schemas import OptimizeResponse, PresetBody, SimulateRequest, SimulateResponse
from workflow.session import OptimizationSession, SessionRegistry

logger = logging.getLogger(__name__)
router = APIRouter()


def get_session(
    x_session_id: str = Header(default="default"),
    sessions: SessionRegistry = Depends(get_sessions),
) -> OptimizationSession:
    return sessions.get(x_session_id)


def get_known_toilets(
    x_session_id: str = Header(default="default"),
    sessions: SessionRegistry = Depends(get_sessions),
) -> List[Facility]:
    """Existing toilets from the session's last optimization; never creates a session."""
    session = sessions.peek(x_session_id)
    return session.existing_facilities() if session is not None else []


def _error_status(error: SanitationError) -> int:
    if isinstance(error, NoCandidatesAvailable):
        return 422
    if isinstance(error, OptimizationCancelled):
        return 409
    return 503


def _simulate(config: ScenarioConfig, existing: List[Facility]) -> SimulateResponse:
    try:
        result = run_simulation(config)
    except InvalidConfig as e:
        raise HTTPException(status_code=422, detail=str(e))
    return SimulateResponse.build(result, existing)


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/optimize", response_model=OptimizeResponse)
async def optimize(
    num_locations: Optional[int] = Query(default=None, ge=1, le=5),
    avoid_flood_zones: bool = False,
    session: OptimizationSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """Run greedy siting for the study area and return proposed toilet locations."""
    if num_locations is None:
        num_locations = settings.default_num_locations
    options = SitingOptions(num_locations=num_locations, avoid_flood_zones=avoid_flood_zones)
    try:
        result = await session.optimize(options)
    except SanitationError as e:
        if session.last_result is not None:
            logger.warning(f"Serving previous optimization result after failure: {e}")
            return OptimizeResponse.build(session.last_result, status="stale", error=str(e))
        raise HTTPException(
            status_code=_error_status(e),
            detail={"error": type(e).__name__, "message": str(e), "retryable": e.retryable},
        )
    return OptimizeResponse.build(result)


@router.post("/simulate/aggregate", response_model=SimulateResponse)
async def simulate_aggregate(
    req: SimulateRequest,
    existing: List[Facility] = Depends(get_known_toilets),
):
    """Run one aggregate OD simulation for the given scenario."""
    config = ScenarioConfig(
        agent_count=req.num_agents,
        subsidy_active=req.subsidy_active,
        flood_active=req.flood_active,
        step_count=req.steps,
    )
    return _simulate(config, existing)


@router.post("/simulate/presets/{preset_id}", response_model=SimulateResponse)
async def simulate_preset(
    preset_id: str,
    steps: int = 50,
    store: InMemoryPresetStore = Depends(get_preset_store),
    existing: List[Facility] = Depends(get_known_toilets),
):
    preset = store.load(preset_id)
    if preset is None:
        raise HTTPException(status_code=404, detail="Preset not found")
    return _simulate(preset.to_config(step_count=steps), existing)


@router.get("/map")
async def get_map(writer: MapArtifactWriter = Depends(get_map_writer)):
    """Return the GeoJSON map artifact from the latest successful optimization."""
    if not writer.exists():
        raise HTTPException(status_code=404, detail="No map generated yet")
    return FileResponse(writer.path, media_type="application/geo+json")


@router.get("/presets", response_model=List[ScenarioPreset])
async def list_presets(store: InMemoryPresetStore = Depends(get_preset_store)):
    return store.list()


@router.get("/presets/{preset_id}", response_model=ScenarioPreset)
async def get_preset(preset_id: str, store: InMemoryPresetStore = Depends(get_preset_store)):
    preset = store.load(preset_id)
    if preset is None:
        raise HTTPException(status_code=404, detail="Preset not found")
    return preset


@router.put("/presets/{preset_id}", response_model=ScenarioPreset)
async def save_preset(
    preset_id: str,
    body: PresetBody,
    store: InMemoryPresetStore = Depends(get_preset_store),
):
    preset = ScenarioPreset(id=preset_id, **body.model_dump())
    return store.save(preset)
