from typing import TypedDict, Optional, List, Any

from core.geodata import GeodataProvider, GeodataSnapshot
from core.models import OptimizationResult, SitingOptions, StudyArea


class OptimizationState(TypedDict):
    study_area: StudyArea
    options: SitingOptions
    provider: GeodataProvider
    cancel_token: Any  # core.siting.CancelToken or None
    snapshot: Optional[GeodataSnapshot]
    result: Optional[OptimizationResult]
    agent_logs: List[str]
    phase: str  # IDLE | GENERATING_CANDIDATES | SCORING_AND_SELECTING | COMPLETE | FAILED
    status: str  # running | completed | error
    error: Optional[Exception]
