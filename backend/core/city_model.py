"""
City model: fetches the study area's walking network, existing toilets and
waterways from OpenStreetMap via OSMnx and turns them into a geodata snapshot.
Snapshots are cached on disk keyed by bounding box and data version.
"""
import logging
import os
import pickle
import threading
from pathlib import Path
from typing import List, Tuple

import geopandas as gpd
import networkx as nx
import osmnx as ox
from osmnx._errors import InsufficientResponseError

from core.errors import UpstreamDataUnavailable
from core.geodata import GeodataSnapshot
from core.models import Candidate, Facility, FacilityKind, StudyArea

logger = logging.getLogger(__name__)

TOILET_TAGS = {"amenity": "toilets"}
WATERWAY_TAGS = {"waterway": True}


def _bbox(area: StudyArea) -> Tuple[float, float, float, float]:
    # (left, bottom, right, top)
    return (area.min_lon, area.min_lat, area.max_lon, area.max_lat)


def candidates_from_graph(G: nx.MultiDiGraph, area: StudyArea) -> List[Candidate]:
    """Walk-network nodes inside the area, deduplicated, ordered by node id."""
    candidates = []
    seen = set()
    for node_id in sorted(G.nodes):
        data = G.nodes[node_id]
        lat, lon = data.get("y"), data.get("x")
        if lat is None or lon is None or not area.contains(lat, lon):
            continue
        if (lat, lon) in seen:
            continue
        seen.add((lat, lon))
        candidates.append(Candidate(id=int(node_id), latitude=lat, longitude=lon))
    return candidates


def _feature_id(index_value) -> int:
    # features are indexed by (element type, osm id)
    if isinstance(index_value, tuple):
        index_value = index_value[-1]
    return int(index_value)


def existing_from_features(gdf, area: StudyArea) -> List[Facility]:
    facilities = []
    for idx, row in gdf.iterrows():
        point = row.geometry.centroid
        if not area.contains(point.y, point.x):
            continue
        osm_id = _feature_id(idx)
        amenity = row.get("amenity")
        if not isinstance(amenity, str):
            amenity = "toilets"
        facilities.append(Facility(
            id=osm_id,
            latitude=point.y,
            longitude=point.x,
            kind=FacilityKind.EXISTING,
            amenity=amenity,
            node_id=osm_id,
        ))
    facilities.sort(key=lambda f: f.id)
    return facilities


def flood_zones_from_waterways(gdf, buffer_m: float) -> list:
    """Buffer waterway geometries by ``buffer_m`` meters and return them in EPSG:4326."""
    if gdf.empty:
        return []
    projected = ox.projection.project_gdf(gdf)
    buffered = projected.geometry.buffer(buffer_m).to_crs("EPSG:4326")
    return [geom for geom in buffered if geom is not None and not geom.is_empty]


class OSMGeodataProvider:
    """Loads geodata snapshots from OpenStreetMap (cached locally after first fetch)."""

    def __init__(self, cache_dir: Path, version: str = "v1", flood_buffer_m: float = 30.0):
        self.cache_dir = Path(cache_dir)
        self.version = version
        self.flood_buffer_m = flood_buffer_m

    def _cache_path(self, area: StudyArea) -> Path:
        return self.cache_dir / f"geodata_{area.cache_key()}_{self.version}.pkl"

    def _features(self, area: StudyArea, tags: dict):
        try:
            return ox.features_from_bbox(_bbox(area), tags)
        except InsufficientResponseError:
            return gpd.GeoDataFrame(geometry=[], crs="EPSG:4326")

    def fetch(self, area: StudyArea) -> GeodataSnapshot:
        logger.info(f"Fetching walk network and features for {area.cache_key()} from OpenStreetMap...")
        G = ox.graph_from_bbox(_bbox(area), network_type="walk", simplify=True)
        toilets = self._features(area, TOILET_TAGS)
        waterways = self._features(area, WATERWAY_TAGS)
        return GeodataSnapshot(
            study_area=area,
            existing=tuple(existing_from_features(toilets, area)),
            candidates=tuple(candidates_from_graph(G, area)),
            flood_zones=tuple(flood_zones_from_waterways(waterways, self.flood_buffer_m)),
            graph_nodes=G.number_of_nodes(),
            rivers_count=len(waterways),
            version=self.version,
        )

    def _read_cache(self, cache: Path):
        try:
            with open(cache, "rb") as f:
                snapshot = pickle.load(f)
        except (pickle.UnpicklingError, EOFError, AttributeError, ImportError, ValueError) as e:
            logger.warning(f"Discarding unreadable geodata cache {cache.name}: {e}")
            cache.unlink(missing_ok=True)
            return None
        if not isinstance(snapshot, GeodataSnapshot):
            logger.warning(f"Discarding geodata cache {cache.name}: unexpected {type(snapshot).__name__}")
            cache.unlink(missing_ok=True)
            return None
        return snapshot

    def _write_cache(self, cache: Path, snapshot: GeodataSnapshot) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        tmp = cache.with_name(f"{cache.name}.{os.getpid()}.{threading.get_ident()}.tmp")
        try:
            with open(tmp, "wb") as f:
                pickle.dump(snapshot, f)
            os.replace(tmp, cache)
        finally:
            tmp.unlink(missing_ok=True)

    def load_snapshot(self, area: StudyArea, force_refresh: bool = False) -> GeodataSnapshot:
        cache = self._cache_path(area)
        if cache.exists() and not force_refresh:
            logger.info(f"Loading geodata snapshot from cache {cache.name}")
            snapshot = self._read_cache(cache)
            if snapshot is not None:
                return snapshot

        try:
            snapshot = self.fetch(area)
        except Exception as e:
            logger.error(f"Geodata fetch failed: {e}")
            raise UpstreamDataUnavailable(f"OpenStreetMap fetch failed: {e}") from e

        self._write_cache(cache, snapshot)
        logger.info(
            f"Snapshot cached: {snapshot.graph_nodes} nodes, {len(snapshot.candidates)} candidates, "
            f"{len(snapshot.existing)} existing toilets, {snapshot.rivers_count} waterways"
        )
        return snapshot
