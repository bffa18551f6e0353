"""
Scenario presets: saved parameter sets read and written through an explicit store.
"""
import logging
import threading
from typing import Dict, List, Optional, Protocol

from core.models import ScenarioPreset

logger = logging.getLogger(__name__)

BUILTIN_PRESETS = [
    ScenarioPreset(id="baseline", name="Baseline", agent_count=500),
    ScenarioPreset(id="flood", name="Flood Impact", agent_count=500, flood_active=True),
    ScenarioPreset(id="subsidized", name="Subsidized", agent_count=500, subsidy_active=True),
    ScenarioPreset(id="high-density", name="High Density", agent_count=1000),
]


class PresetStore(Protocol):
    def list(self) -> List[ScenarioPreset]: ...

    def load(self, preset_id: str) -> Optional[ScenarioPreset]: ...

    def save(self, preset: ScenarioPreset) -> ScenarioPreset: ...


class InMemoryPresetStore:
    """Process-local preset store (swap for Redis/DB in production)."""

    def __init__(self, seed: Optional[List[ScenarioPreset]] = None):
        self._lock = threading.Lock()
        self._presets: Dict[str, ScenarioPreset] = {
            p.id: p for p in (BUILTIN_PRESETS if seed is None else seed)
        }

    def list(self) -> List[ScenarioPreset]:
        with self._lock:
            return list(self._presets.values())

    def load(self, preset_id: str) -> Optional[ScenarioPreset]:
        with self._lock:
            return self._presets.get(preset_id)

    def save(self, preset: ScenarioPreset) -> ScenarioPreset:
        with self._lock:
            self._presets[preset.id] = preset
        logger.info(f"Preset saved: {preset.id}")
        return preset
