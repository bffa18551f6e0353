"""
Service configuration loaded from environment variables (.env supported).
"""
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from core.models import StudyArea

# Kibera, Nairobi
DEFAULT_STUDY_AREA = {
    "min_lat": -1.322,
    "max_lat": -1.308,
    "min_lon": 36.783,
    "max_lon": 36.797,
}

DEFAULT_CACHE_DIR = Path(__file__).parent.parent / "data"


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    place_name: str = "Kibera, Nairobi, Kenya"
    study_area: StudyArea = StudyArea(**DEFAULT_STUDY_AREA)
    cache_dir: Path = DEFAULT_CACHE_DIR
    geodata_version: str = "v1"
    flood_buffer_m: float = 30.0
    optimization_timeout_s: float = 30.0
    default_num_locations: int = Field(default=5, ge=1, le=5)
    max_sessions: int = Field(default=64, ge=1)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw not in (None, "") else default


def load_settings() -> Settings:
    """Build settings from SANITATION_* environment variables."""
    area = StudyArea(
        min_lat=_env_float("SANITATION_MIN_LAT", DEFAULT_STUDY_AREA["min_lat"]),
        max_lat=_env_float("SANITATION_MAX_LAT", DEFAULT_STUDY_AREA["max_lat"]),
        min_lon=_env_float("SANITATION_MIN_LON", DEFAULT_STUDY_AREA["min_lon"]),
        max_lon=_env_float("SANITATION_MAX_LON", DEFAULT_STUDY_AREA["max_lon"]),
    )
    return Settings(
        place_name=os.getenv("SANITATION_PLACE", "Kibera, Nairobi, Kenya"),
        study_area=area,
        cache_dir=Path(os.getenv("SANITATION_CACHE_DIR", str(DEFAULT_CACHE_DIR))),
        geodata_version=os.getenv("SANITATION_GEODATA_VERSION", "v1"),
        flood_buffer_m=_env_float("SANITATION_FLOOD_BUFFER_M", 30.0),
        optimization_timeout_s=_env_float("SANITATION_OPTIMIZATION_TIMEOUT_S", 30.0),
        default_num_locations=int(os.getenv("SANITATION_NUM_LOCATIONS", "5")),
        max_sessions=int(os.getenv("SANITATION_MAX_SESSIONS", "64")),
    )
