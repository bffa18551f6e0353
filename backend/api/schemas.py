"""
Wire schemas for the dashboard API.
"""
import math
from typing import List, Optional

from pydantic import BaseModel, Field

from core.models import Facility, OptimizationResult, SimulationResult, SitingStats


class SimulateRequest(BaseModel):
    num_agents: int
    subsidy_active: bool = False
    flood_active: bool = False
    steps: int = 50


class ToiletLocation(BaseModel):
    lat: float
    lon: float
    node_id: Optional[int] = None
    amenity: Optional[str] = None

    @classmethod
    def from_facility(cls, f: Facility) -> "ToiletLocation":
        return cls(lat=f.latitude, lon=f.longitude, node_id=f.node_id, amenity=f.amenity)


class ProposedLocation(BaseModel):
    id: int
    lat: float
    lon: float
    score: Optional[float] = None  # meters; null when there was nothing to measure against

    @classmethod
    def from_facility(cls, f: Facility) -> "ProposedLocation":
        score = f.score if f.score is not None and math.isfinite(f.score) else None
        return cls(id=f.id, lat=f.latitude, lon=f.longitude, score=score)


class SimulateResponse(BaseModel):
    history: List[int]
    total_od_events: int
    coverage: float
    status: str
    revenue: int
    existing_toilets: List[ToiletLocation]

    @classmethod
    def build(cls, result: SimulationResult, existing: List[Facility]) -> "SimulateResponse":
        return cls(
            history=list(result.history),
            total_od_events=result.total_events,
            coverage=result.coverage_percent,
            status=result.status.value,
            revenue=result.revenue,
            existing_toilets=[ToiletLocation.from_facility(f) for f in existing],
        )


class OptimizeResponse(BaseModel):
    status: str
    proposed_locations: List[ProposedLocation]
    existing_toilets: List[ToiletLocation]
    stats: SitingStats
    error: Optional[str] = None

    @classmethod
    def build(cls, result: OptimizationResult, status: str = "success", error: Optional[str] = None) -> "OptimizeResponse":
        return cls(
            status=status,
            proposed_locations=[ProposedLocation.from_facility(f) for f in result.proposed],
            existing_toilets=[ToiletLocation.from_facility(f) for f in result.existing],
            stats=result.stats,
            error=error,
        )


class PresetBody(BaseModel):
    name: str
    agent_count: int = Field(gt=0)
    subsidy_active: bool = False
    flood_active: bool = False
