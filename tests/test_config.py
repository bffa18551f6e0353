"""Tests for settings, models and preset storage."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.config import load_settings
from core.models import Facility, FacilityKind, ScenarioPreset, StudyArea
from core.presets import BUILTIN_PRESETS, InMemoryPresetStore


def test_default_settings_cover_kibera(monkeypatch):
    for name in ("SANITATION_MIN_LAT", "SANITATION_CACHE_DIR", "SANITATION_OPTIMIZATION_TIMEOUT_S"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.study_area.contains(-1.315, 36.790)
    assert settings.optimization_timeout_s == 30.0
    assert settings.default_num_locations == 5


def test_settings_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("SANITATION_MIN_LAT", "-1.330")
    monkeypatch.setenv("SANITATION_CACHE_DIR", str(tmp_path))
    monkeypatch.setenv("SANITATION_OPTIMIZATION_TIMEOUT_S", "12.5")
    monkeypatch.setenv("SANITATION_GEODATA_VERSION", "2024-06")

    settings = load_settings()

    assert settings.study_area.min_lat == -1.330
    assert settings.cache_dir == Path(tmp_path)
    assert settings.optimization_timeout_s == 12.5
    assert settings.geodata_version == "2024-06"


@pytest.mark.parametrize("value", ["0", "7"])
def test_settings_reject_out_of_range_location_count(monkeypatch, value):
    monkeypatch.setenv("SANITATION_NUM_LOCATIONS", value)

    with pytest.raises(ValueError):
        load_settings()


def test_settings_session_bound(monkeypatch):
    monkeypatch.setenv("SANITATION_MAX_SESSIONS", "8")
    assert load_settings().max_sessions == 8

    monkeypatch.setenv("SANITATION_MAX_SESSIONS", "0")
    with pytest.raises(ValueError):
        load_settings()


@pytest.mark.parametrize(
    "bounds",
    [
        dict(min_lat=-1.3, max_lat=-1.4, min_lon=36.7, max_lon=36.8),
        dict(min_lat=-1.4, max_lat=-1.3, min_lon=36.8, max_lon=36.8),
        dict(min_lat=-91.0, max_lat=-1.3, min_lon=36.7, max_lon=36.8),
    ],
)
def test_study_area_rejects_bad_bounds(bounds):
    with pytest.raises(ValueError):
        StudyArea(**bounds)


def test_study_area_contains_is_inclusive():
    area = StudyArea(min_lat=-1.0, max_lat=1.0, min_lon=-1.0, max_lon=1.0)
    assert area.contains(1.0, -1.0)
    assert not area.contains(1.0001, 0.0)


def test_existing_facility_cannot_carry_score():
    with pytest.raises(ValueError):
        Facility(id=1, latitude=0.0, longitude=0.0, kind=FacilityKind.EXISTING, score=12.0)


def test_preset_store_roundtrip():
    store = InMemoryPresetStore()
    assert [p.id for p in store.list()] == [p.id for p in BUILTIN_PRESETS]

    store.save(ScenarioPreset(id="baseline", name="Baseline", agent_count=800))

    assert store.load("baseline").agent_count == 800
    assert store.load("missing") is None
    assert len(store.list()) == len(BUILTIN_PRESETS)


def test_preset_to_config():
    config = InMemoryPresetStore().load("flood").to_config(step_count=10)
    assert config.agent_count == 500
    assert config.flood_active and not config.subsidy_active
    assert config.step_count == 10


def test_stores_do_not_share_state():
    first = InMemoryPresetStore(seed=[])
    first.save(ScenarioPreset(id="x", name="X", agent_count=1))
    assert InMemoryPresetStore(seed=[]).list() == []
