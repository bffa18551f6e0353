"""
FastAPI dependency providers. Tests override these via app.dependency_overrides.
"""
from functools import lru_cache

from core.city_model import OSMGeodataProvider
from core.config import Settings, load_settings
from core.presets import InMemoryPresetStore
from api.map_artifact import MapArtifactWriter
from workflow.session import OptimizationSession, SessionRegistry


@lru_cache
def get_settings() -> Settings:
    return load_settings()


@lru_cache
def get_map_writer() -> MapArtifactWriter:
    return MapArtifactWriter(get_settings().cache_dir)


@lru_cache
def get_preset_store() -> InMemoryPresetStore:
    return InMemoryPresetStore()


@lru_cache
def get_sessions() -> SessionRegistry:
    settings = get_settings()
    provider = OSMGeodataProvider(
        settings.cache_dir,
        version=settings.geodata_version,
        flood_buffer_m=settings.flood_buffer_m,
    )
    writer = get_map_writer()

    def factory() -> OptimizationSession:
        return OptimizationSession(
            provider,
            settings.study_area,
            timeout_s=settings.optimization_timeout_s,
            on_complete=writer.write,
        )

    return SessionRegistry(factory, max_sessions=settings.max_sessions)
