"""
Domain data model shared by the simulation and siting pipelines.
All models are immutable pydantic models validated at construction time.
"""
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, model_validator


class SimulationStatus(str, Enum):
    STABLE = "STABLE"
    CRITICAL = "CRITICAL"


class FacilityKind(str, Enum):
    EXISTING = "EXISTING"
    PROPOSED = "PROPOSED"


class ScenarioConfig(BaseModel):
    """Scenario parameters for one simulation run. Ranges are checked by the runner."""

    model_config = ConfigDict(frozen=True)

    agent_count: int
    subsidy_active: bool = False
    flood_active: bool = False
    step_count: int = 50


class SimulationStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    demand: int
    served: int
    unserved: int
    incident_events: int
    cumulative_events: int


class SimulationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    history: Tuple[int, ...]
    steps: Tuple[SimulationStep, ...]
    total_events: int
    coverage_percent: float  # not clamped, may be negative
    status: SimulationStatus
    revenue: int = 0


class StudyArea(BaseModel):
    """Bounding box (EPSG:4326) inside which siting decisions are valid."""

    model_config = ConfigDict(frozen=True)

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    @model_validator(mode="after")
    def validate_bounds(self) -> "StudyArea":
        if not (-90 <= self.min_lat <= 90 and -90 <= self.max_lat <= 90):
            raise ValueError(f"Latitude out of range: {self.min_lat}, {self.max_lat}")
        if not (-180 <= self.min_lon <= 180 and -180 <= self.max_lon <= 180):
            raise ValueError(f"Longitude out of range: {self.min_lon}, {self.max_lon}")
        if self.min_lat >= self.max_lat:
            raise ValueError(f"Invalid lat ordering: {self.min_lat} >= {self.max_lat}")
        if self.min_lon >= self.max_lon:
            raise ValueError(f"Invalid lon ordering: {self.min_lon} >= {self.max_lon}")
        return self

    def contains(self, latitude: float, longitude: float) -> bool:
        return (
            self.min_lat <= latitude <= self.max_lat
            and self.min_lon <= longitude <= self.max_lon
        )

    def cache_key(self) -> str:
        return f"{self.min_lat:.5f}_{self.max_lat:.5f}_{self.min_lon:.5f}_{self.max_lon:.5f}"


class Candidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    latitude: float
    longitude: float


class Facility(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    latitude: float
    longitude: float
    kind: FacilityKind
    score: Optional[float] = None  # meters, PROPOSED only
    amenity: Optional[str] = None
    node_id: Optional[int] = None

    @model_validator(mode="after")
    def validate_score(self) -> "Facility":
        if self.kind == FacilityKind.EXISTING and self.score is not None:
            raise ValueError("Existing facilities do not carry a score")
        return self


class SitingOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    num_locations: int = 5
    avoid_flood_zones: bool = False

    @model_validator(mode="after")
    def validate_count(self) -> "SitingOptions":
        if not 1 <= self.num_locations <= 5:
            raise ValueError(f"num_locations must be in [1, 5], got {self.num_locations}")
        return self


class SitingStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    existing_toilets: int = 0
    graph_nodes: int = 0
    rivers_count: int = 0
    candidates_considered: int = 0
    flood_excluded: int = 0


class OptimizationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    existing: Tuple[Facility, ...]
    proposed: Tuple[Facility, ...]
    stats: SitingStats = SitingStats()


class ScenarioPreset(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    agent_count: int
    subsidy_active: bool = False
    flood_active: bool = False

    def to_config(self, step_count: int = 50) -> ScenarioConfig:
        return ScenarioConfig(
            agent_count=self.agent_count,
            subsidy_active=self.subsidy_active,
            flood_active=self.flood_active,
            step_count=step_count,
        )
