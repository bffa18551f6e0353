"""
Greedy max-min facility siting.

Each pick chooses the candidate farthest (great-circle) from every facility
already placed, existing or proposed. Picking enlarges the placed set, so
later scores can only stay equal or shrink.
"""
import logging
import threading
import time
from typing import List, Optional, Sequence, Tuple

import numpy as np
from shapely.geometry import Point
from shapely.ops import unary_union
from shapely.prepared import prep

from core.errors import NoCandidatesAvailable, OptimizationCancelled, OptimizationTimeout
from core.models import (
    Candidate,
    Facility,
    FacilityKind,
    OptimizationResult,
    SitingOptions,
    SitingStats,
    StudyArea,
)

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371008.8


def haversine_m(lat1, lon1, lat2, lon2):
    """Great-circle distance in meters; accepts scalars or broadcastable arrays."""
    lat1, lon1, lat2, lon2 = map(np.radians, (lat1, lon1, lat2, lon2))
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = np.sin(dlat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_M * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))


class CancelToken:
    """Cooperative cancellation and deadline, checked between picks."""

    def __init__(self, budget_s: Optional[float] = None):
        self._event = threading.Event()
        self.budget_s = budget_s
        self.deadline = time.monotonic() + budget_s if budget_s is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OptimizationCancelled("Siting run superseded by a newer request")
        if self.deadline is not None and time.monotonic() > self.deadline:
            raise OptimizationTimeout(self.budget_s)


class DistanceScorer:
    """Nearest-facility distance for every candidate in a pool."""

    def __init__(self, candidates: Sequence[Candidate]):
        self.lats = np.array([c.latitude for c in candidates], dtype=float)
        self.lons = np.array([c.longitude for c in candidates], dtype=float)

    def distances_to(self, latitude: float, longitude: float) -> np.ndarray:
        return haversine_m(self.lats, self.lons, latitude, longitude)

    def score(self, facilities: Sequence[Facility]) -> np.ndarray:
        """min over f in facilities of distance(p, f); +inf when facilities is empty."""
        scores = np.full(self.lats.shape, np.inf)
        for f in facilities:
            scores = np.minimum(scores, self.distances_to(f.latitude, f.longitude))
        return scores


def prepare_pool(candidates: Sequence[Candidate], area: StudyArea) -> List[Candidate]:
    """Drop candidates outside the study area and coordinate duplicates, keeping order."""
    pool = []
    seen = set()
    outside = 0
    for c in candidates:
        if not area.contains(c.latitude, c.longitude):
            outside += 1
            continue
        key = (c.latitude, c.longitude)
        if key in seen:
            continue
        seen.add(key)
        pool.append(c)
    if outside:
        logger.warning(f"Dropped {outside} candidates outside the study area")
    return pool


def exclude_flood_zones(candidates: Sequence[Candidate], flood_zones: Sequence) -> Tuple[List[Candidate], int]:
    """Remove candidates intersecting any flood-zone geometry."""
    if not flood_zones:
        return list(candidates), 0
    zone = prep(unary_union(list(flood_zones)))
    kept = [c for c in candidates if not zone.intersects(Point(c.longitude, c.latitude))]
    return kept, len(candidates) - len(kept)


class GreedySiteSelector:
    """Iterative max-min placement over a fixed candidate pool."""

    def __init__(self, area: StudyArea, flood_zones: Sequence = ()):
        self.area = area
        self.flood_zones = list(flood_zones)

    def select(
        self,
        existing: Sequence[Facility],
        candidates: Sequence[Candidate],
        options: SitingOptions,
        token: Optional[CancelToken] = None,
    ) -> OptimizationResult:
        pool = prepare_pool(candidates, self.area)
        excluded = 0
        if options.avoid_flood_zones:
            pool, excluded = exclude_flood_zones(pool, self.flood_zones)
            logger.info(f"Flood-zone filter removed {excluded} candidates")
        if not pool:
            raise NoCandidatesAvailable("No candidate sites remain in the study area")

        scorer = DistanceScorer(pool)
        # running min distance to everything placed so far
        nearest = scorer.score(existing)
        available = np.ones(len(pool), dtype=bool)
        proposed: List[Facility] = []

        for _ in range(options.num_locations):
            if token is not None:
                token.raise_if_cancelled()
            if not available.any():
                logger.info(f"Candidate pool exhausted after {len(proposed)} picks")
                break

            masked = np.where(available, nearest, -np.inf)
            idx = int(np.argmax(masked))  # first maximum wins ties
            pick = pool[idx]
            score = float(nearest[idx])
            available[idx] = False
            nearest = np.minimum(nearest, scorer.distances_to(pick.latitude, pick.longitude))

            proposed.append(Facility(
                id=pick.id,
                latitude=pick.latitude,
                longitude=pick.longitude,
                kind=FacilityKind.PROPOSED,
                score=score,
                node_id=pick.id,
            ))
            logger.debug(f"Picked candidate {pick.id} with score {score:.1f}m")

        return OptimizationResult(
            existing=tuple(existing),
            proposed=tuple(proposed),
            stats=SitingStats(
                existing_toilets=len(existing),
                candidates_considered=len(pool),
                flood_excluded=excluded,
            ),
        )
