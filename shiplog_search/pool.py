"""Pool of per-map search engines.

Each saved map lives in its own JSON file:
    - {maps_dir}/{map_id}.json

Engines are created on first access (or when a map is uploaded) and keep
their index until the map is replaced or removed.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional

from . import metrics
from .document import MapDocument, load_map
from .engine import SearchEngine
from .extractors import TextExtractor
from .suggest import DEFAULT_LIMIT

logger = logging.getLogger(__name__)

# Valid map ID: lowercase alphanumeric, hyphens, underscores, 1-64 chars.
_MAP_ID_RE = re.compile(r"^[a-z0-9][a-z0-9_-]{0,63}$")


class MapPool:
    """Manages per-map SearchEngine instances."""

    def __init__(
        self,
        maps_dir: str,
        extractor: Optional[TextExtractor] = None,
        suggestion_limit: int = DEFAULT_LIMIT,
    ) -> None:
        self.maps_dir = Path(maps_dir)
        self.extractor = extractor
        self.suggestion_limit = suggestion_limit
        self._engines: Dict[str, SearchEngine] = {}

    @staticmethod
    def normalize_key(map_id: Optional[str]) -> str:
        """Normalize and validate a map id.

        Raises ValueError for invalid ids (empty, path traversal).
        """
        key = (map_id or "").strip().lower()
        if not _MAP_ID_RE.match(key):
            raise ValueError(
                f"Invalid map ID '{map_id}': must match [a-z0-9][a-z0-9_-]{{0,63}}"
            )
        return key

    def _map_path(self, key: str) -> Path:
        return self.maps_dir / f"{key}.json"

    def load(self, map_id: str, document: MapDocument) -> SearchEngine:
        """(Re)index *document* under *map_id*, replacing any previous index."""
        key = self.normalize_key(map_id)
        engine = self._engines.get(key)
        if engine is None:
            engine = SearchEngine(
                name=key,
                extractor=self.extractor,
                suggestion_limit=self.suggestion_limit,
            )
        engine.rebuild(document.nodes, document.edges)
        self._engines[key] = engine
        return engine

    def get(self, map_id: str) -> SearchEngine:
        """Get the engine for *map_id*, loading its map file on first access.

        Raises KeyError when the map is neither loaded nor on disk.
        """
        key = self.normalize_key(map_id)
        if key not in self._engines:
            path = self._map_path(key)
            if not path.is_file():
                raise KeyError(key)
            self.load(key, load_map(path))
            logger.info("MapPool: loaded %s -> %s", key, path)
        return self._engines[key]

    def remove(self, map_id: str) -> bool:
        key = self.normalize_key(map_id)
        removed = self._engines.pop(key, None) is not None
        if removed:
            metrics.forget_map(key)
        return removed

    def map_ids(self) -> List[str]:
        """Ids of maps with a built index."""
        return sorted(self._engines)

    def discover(self) -> List[str]:
        """Discover map ids from map files on disk."""
        if not self.maps_dir.is_dir():
            return []
        found: List[str] = []
        for f in sorted(self.maps_dir.glob("*.json")):
            if _MAP_ID_RE.match(f.stem):
                found.append(f.stem)
        return found

    def close_all(self) -> None:
        for key in list(self._engines):
            self.remove(key)
