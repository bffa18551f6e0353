"""
Geodata collaborator boundary: the engine only ever sees immutable snapshots.
"""
from typing import Any, Protocol, Tuple

from pydantic import BaseModel, ConfigDict

from core.models import Candidate, Facility, StudyArea


class GeodataSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    study_area: StudyArea
    existing: Tuple[Facility, ...] = ()
    candidates: Tuple[Candidate, ...] = ()
    flood_zones: Tuple[Any, ...] = ()  # shapely geometries, EPSG:4326
    graph_nodes: int = 0
    rivers_count: int = 0
    version: str = "v1"


class GeodataProvider(Protocol):
    def load_snapshot(self, area: StudyArea) -> GeodataSnapshot:
        """Return the snapshot for ``area``; raise UpstreamDataUnavailable on fetch failure."""
        ...


class StaticGeodataProvider:
    """Serves a pre-built snapshot, e.g. for offline runs and tests."""

    def __init__(self, snapshot: GeodataSnapshot):
        self.snapshot = snapshot

    def load_snapshot(self, area: StudyArea) -> GeodataSnapshot:
        if area != self.snapshot.study_area:
            return self.snapshot.model_copy(update={"study_area": area})
        return self.snapshot
