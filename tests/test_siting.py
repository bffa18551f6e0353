"""Tests for distance scoring and greedy max-min site selection."""

from __future__ import annotations

import math

import numpy as np
import pytest

from core.errors import NoCandidatesAvailable, OptimizationCancelled, OptimizationTimeout
from core.models import Candidate, Facility, FacilityKind, SitingOptions, StudyArea
from core.siting import (
    CancelToken,
    DistanceScorer,
    GreedySiteSelector,
    exclude_flood_zones,
    haversine_m,
    prepare_pool,
)

EQUATOR_AREA = StudyArea(min_lat=-0.01, max_lat=0.01, min_lon=-0.01, max_lon=0.01)


def _existing(lat: float, lon: float, fid: int = 1) -> Facility:
    return Facility(id=fid, latitude=lat, longitude=lon, kind=FacilityKind.EXISTING)


def score_point(latitude: float, longitude: float, facilities) -> float:
    """Scalar nearest-facility distance, used as an oracle for the vectorised scorer."""
    if not facilities:
        return math.inf
    return min(float(haversine_m(latitude, longitude, f.latitude, f.longitude)) for f in facilities)


# ---------------------------------------------------------------------------
# Distance scoring
# ---------------------------------------------------------------------------
def test_haversine_one_degree_of_latitude():
    assert haversine_m(0.0, 0.0, 1.0, 0.0) == pytest.approx(111_195.08, rel=1e-6)
    assert haversine_m(-1.315, 36.785, -1.315, 36.785) == 0.0


def test_haversine_is_vectorised():
    d = haversine_m(np.array([0.0, 0.0]), np.array([0.0, 0.0]), 0.0, np.array([1.0, 2.0]))
    assert d.shape == (2,)
    assert d[1] == pytest.approx(2 * d[0], rel=1e-6)


def test_score_is_distance_to_nearest_facility(candidates, existing):
    scores = DistanceScorer(candidates).score(existing)

    for c, s in zip(candidates, scores):
        assert s == pytest.approx(score_point(c.latitude, c.longitude, existing))


def test_score_without_facilities_is_infinite(candidates):
    scores = DistanceScorer(candidates).score([])
    assert np.isinf(scores).all()
    assert score_point(0.0, 0.0, []) == math.inf


# ---------------------------------------------------------------------------
# Candidate pool preparation
# ---------------------------------------------------------------------------
def test_prepare_pool_drops_outside_and_duplicates(study_area):
    pool = prepare_pool(
        [
            Candidate(id=1, latitude=-1.315, longitude=36.790),
            Candidate(id=2, latitude=-1.300, longitude=36.790),  # north of the area
            Candidate(id=3, latitude=-1.315, longitude=36.790),  # duplicate of 1
            Candidate(id=4, latitude=-1.320, longitude=36.784),
        ],
        study_area,
    )
    assert [c.id for c in pool] == [1, 4]


def test_exclude_flood_zones(candidates, flood_zone):
    kept, excluded = exclude_flood_zones(candidates, [flood_zone])

    assert excluded == 6
    assert all(c.latitude > -1.3195 for c in kept)
    assert exclude_flood_zones(candidates, []) == (list(candidates), 0)


# ---------------------------------------------------------------------------
# Greedy selection
# ---------------------------------------------------------------------------
def test_scores_non_increasing_and_within_area(study_area, existing, candidates):
    result = GreedySiteSelector(study_area).select(existing, candidates, SitingOptions(num_locations=5))

    scores = [f.score for f in result.proposed]
    assert len(scores) == 5
    assert all(a >= b for a, b in zip(scores, scores[1:]))
    assert all(study_area.contains(f.latitude, f.longitude) for f in result.proposed)
    assert all(f.kind == FacilityKind.PROPOSED for f in result.proposed)
    assert result.existing == tuple(existing)


def test_single_pick_is_global_maximum(study_area, existing, candidates):
    result = GreedySiteSelector(study_area).select(existing, candidates, SitingOptions(num_locations=1))

    best = max(candidates, key=lambda c: score_point(c.latitude, c.longitude, existing))
    assert len(result.proposed) == 1
    assert result.proposed[0].id == best.id
    assert result.proposed[0].score == pytest.approx(score_point(best.latitude, best.longitude, existing))


def test_each_pick_counts_earlier_picks(study_area, existing, candidates):
    result = GreedySiteSelector(study_area).select(existing, candidates, SitingOptions(num_locations=3))

    placed = list(existing)
    for f in result.proposed:
        assert f.score == pytest.approx(score_point(f.latitude, f.longitude, placed))
        placed.append(f)


def test_ties_broken_by_candidate_order():
    existing = [_existing(0.0, 0.0)]
    north = Candidate(id=10, latitude=0.001, longitude=0.0)
    south = Candidate(id=20, latitude=-0.001, longitude=0.0)
    selector = GreedySiteSelector(EQUATOR_AREA)

    first = selector.select(existing, [north, south], SitingOptions(num_locations=1))
    second = selector.select(existing, [south, north], SitingOptions(num_locations=1))

    assert first.proposed[0].id == 10
    assert second.proposed[0].id == 20


def test_no_existing_facilities_first_pick_is_first_candidate():
    candidates = [Candidate(id=i, latitude=0.001 * i, longitude=0.0) for i in range(1, 4)]

    result = GreedySiteSelector(EQUATOR_AREA).select([], candidates, SitingOptions(num_locations=2))

    assert result.proposed[0].id == 1
    assert math.isinf(result.proposed[0].score)
    assert result.proposed[1].id == 3


def test_exhausted_pool_returns_fewer_sites(study_area, existing):
    candidates = [
        Candidate(id=1, latitude=-1.320, longitude=36.795),
        Candidate(id=2, latitude=-1.309, longitude=36.784),
    ]
    result = GreedySiteSelector(study_area).select(existing, candidates, SitingOptions(num_locations=5))

    assert sorted(f.id for f in result.proposed) == [1, 2]


def test_empty_pool_raises(study_area, existing):
    with pytest.raises(NoCandidatesAvailable):
        GreedySiteSelector(study_area).select(existing, [], SitingOptions())


def test_all_candidates_flooded_raises(study_area, existing, flood_zone):
    flooded = [Candidate(id=1, latitude=-1.321, longitude=36.790)]
    selector = GreedySiteSelector(study_area, [flood_zone])

    with pytest.raises(NoCandidatesAvailable):
        selector.select(existing, flooded, SitingOptions(avoid_flood_zones=True))
    # without avoidance the flooded site is still eligible
    assert len(selector.select(existing, flooded, SitingOptions()).proposed) == 1


def test_flood_avoidance_skips_flooded_sites(study_area, existing, candidates, flood_zone):
    selector = GreedySiteSelector(study_area, [flood_zone])

    result = selector.select(existing, candidates, SitingOptions(avoid_flood_zones=True))

    assert result.stats.flood_excluded == 6
    assert result.stats.candidates_considered == 30
    assert all(f.latitude > -1.3195 for f in result.proposed)


def test_rerun_gives_same_sequence(study_area, existing, candidates):
    selector = GreedySiteSelector(study_area)

    first = selector.select(existing, candidates, SitingOptions())
    second = selector.select(existing, candidates, SitingOptions())

    assert [f.id for f in first.proposed] == [f.id for f in second.proposed]
    assert first == second


@pytest.mark.parametrize("count", [0, 6])
def test_num_locations_bounds(count):
    with pytest.raises(ValueError):
        SitingOptions(num_locations=count)


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------
def test_cancelled_token_stops_selection(study_area, existing, candidates):
    token = CancelToken()
    token.cancel()

    with pytest.raises(OptimizationCancelled):
        GreedySiteSelector(study_area).select(existing, candidates, SitingOptions(), token=token)


def test_expired_deadline_raises_timeout(study_area, existing, candidates):
    token = CancelToken(budget_s=-1.0)

    with pytest.raises(OptimizationTimeout) as exc_info:
        GreedySiteSelector(study_area).select(existing, candidates, SitingOptions(), token=token)
    assert exc_info.value.retryable


def test_live_token_does_not_interfere(study_area, existing, candidates):
    token = CancelToken(budget_s=60.0)

    result = GreedySiteSelector(study_area).select(existing, candidates, SitingOptions(), token=token)

    assert len(result.proposed) == 5
    assert not token.cancelled
