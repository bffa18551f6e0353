"""
Map artifact: GeoJSON FeatureCollection of existing and proposed toilets,
regenerated after every successful optimization.
"""
import json
import logging
import math
from pathlib import Path
from typing import Any, Dict

from core.models import OptimizationResult

logger = logging.getLogger(__name__)


def result_to_geojson(result: OptimizationResult) -> Dict[str, Any]:
    features = []
    for f in list(result.existing) + list(result.proposed):
        score = f.score if f.score is not None and math.isfinite(f.score) else None
        features.append({
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [f.longitude, f.latitude]},
            "properties": {
                "id": f.id,
                "kind": f.kind.value,
                "score": round(score, 1) if score is not None else None,
                "node_id": f.node_id,
                "amenity": f.amenity,
            },
        })
    return {"type": "FeatureCollection", "features": features}


class MapArtifactWriter:
    def __init__(self, cache_dir: Path, filename: str = "sanitation_map.geojson"):
        self.path = Path(cache_dir) / filename

    def write(self, result: OptimizationResult) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(result_to_geojson(result), f)
        logger.info(f"Map artifact regenerated: {self.path}")
        return self.path

    def exists(self) -> bool:
        return self.path.exists()
