"""Shared fixtures: a small Kibera-sized snapshot that needs no network access."""

from __future__ import annotations

import pytest
from shapely.geometry import box

from core.geodata import GeodataSnapshot, StaticGeodataProvider
from core.models import Candidate, Facility, FacilityKind, StudyArea


@pytest.fixture
def study_area() -> StudyArea:
    return StudyArea(min_lat=-1.322, max_lat=-1.308, min_lon=36.783, max_lon=36.797)


@pytest.fixture
def existing() -> list[Facility]:
    coords = [(-1.315, 36.785), (-1.313, 36.788), (-1.310, 36.791)]
    return [
        Facility(id=i + 1, latitude=lat, longitude=lon, kind=FacilityKind.EXISTING,
                 amenity="toilets", node_id=i + 1)
        for i, (lat, lon) in enumerate(coords)
    ]


@pytest.fixture
def candidates() -> list[Candidate]:
    """6x6 grid of walk-network nodes inside the study area."""
    grid = []
    for row in range(6):
        for col in range(6):
            grid.append(Candidate(
                id=1000 + row * 6 + col,
                latitude=-1.321 + row * 0.0024,
                longitude=36.784 + col * 0.0024,
            ))
    return grid


@pytest.fixture
def flood_zone():
    """Strip along the southern edge of the study area (shapely uses lon, lat)."""
    return box(36.783, -1.322, 36.797, -1.3195)


@pytest.fixture
def snapshot(study_area, existing, candidates, flood_zone) -> GeodataSnapshot:
    return GeodataSnapshot(
        study_area=study_area,
        existing=tuple(existing),
        candidates=tuple(candidates),
        flood_zones=(flood_zone,),
        graph_nodes=36,
        rivers_count=1,
    )


@pytest.fixture
def provider(snapshot) -> StaticGeodataProvider:
    return StaticGeodataProvider(snapshot)
