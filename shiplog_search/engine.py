"""Search engine holder: owns the active index snapshot for one map.

Rebuilds happen outside the read lock and the finished snapshot is swapped
in atomically, so readers always see a complete snapshot (possibly the
previous one while a rebuild is running).  Rebuilds themselves are
serialized, so the last rebuild called is the one left active.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, Iterable, List, Optional

from . import metrics
from .extractors import TextExtractor
from .hashtags import tokenize_query
from .index import IndexBuilder, IndexSnapshot
from .resolve import SearchMatches, resolve
from .suggest import DEFAULT_LIMIT, suggest

logger = logging.getLogger(__name__)


class SearchEngine:
    """Hashtag / place-name search over one map."""

    def __init__(
        self,
        name: str = "main",
        extractor: Optional[TextExtractor] = None,
        suggestion_limit: int = DEFAULT_LIMIT,
    ) -> None:
        self.name = name
        self.builder = IndexBuilder(extractor)
        self.suggestion_limit = suggestion_limit
        self._lock = threading.Lock()
        # Held for a whole rebuild so concurrent rebuilds apply in call order.
        self._rebuild_lock = threading.Lock()
        self._snapshot = IndexSnapshot()
        self._node_count = 0
        self._edge_count = 0
        self._built_at: Optional[float] = None

    @property
    def snapshot(self) -> IndexSnapshot:
        with self._lock:
            return self._snapshot

    def rebuild(self, nodes: Iterable[Any], edges: Iterable[Any]) -> IndexSnapshot:
        """Build a fresh snapshot from the current entities and make it active."""
        nodes = list(nodes)
        edges = list(edges)
        with self._rebuild_lock:
            t0 = time.time()
            snapshot = self.builder.build(nodes, edges)
            elapsed = time.time() - t0

            with self._lock:
                self._snapshot = snapshot
                self._node_count = len(nodes)
                self._edge_count = len(edges)
                self._built_at = time.time()

        stats = snapshot.stats()
        metrics.record_index_build(self.name, elapsed, stats)
        logger.info(
            "Index rebuilt for %s in %.1fms: nodes=%d edges=%d places=%d tags=%d",
            self.name, elapsed * 1000, len(nodes), len(edges), stats["places"], stats["tags"],
        )
        return snapshot

    def suggest(self, raw_input: str, limit: Optional[int] = None) -> List[str]:
        results = suggest(self.snapshot, raw_input, self.suggestion_limit if limit is None else limit)
        metrics.record_query(self.name, "suggest", empty=not results)
        return results

    def search(self, query: str) -> SearchMatches:
        """Tokenize *query* and resolve it against the active snapshot."""
        tokens = tokenize_query(query)
        matches = resolve(self.snapshot, tokens)
        metrics.record_query(self.name, "search", empty=matches.is_empty)
        logger.debug(
            "Search %s %r -> %d nodes, %d edges",
            self.name, tokens, len(matches.node_ids), len(matches.edge_ids),
        )
        return matches

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            snapshot = self._snapshot
            out: Dict[str, Any] = {
                "map": self.name,
                "nodes": self._node_count,
                "edges": self._edge_count,
                "built_at": self._built_at,
            }
        out.update(snapshot.stats())
        return out
