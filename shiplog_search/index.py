"""Hashtag and place-name index over a map's nodes and edges.

Four structures are built together from one entity snapshot:

* **hashtags**  : tag -> node ids / edge ids whose annotation mentions ``#tag``
* **labels**    : title word (and the whole lowercased title) -> node ids
* **full_names**: node id -> original-case title, for display and phrase lookup
* **word_names**: title word -> original-case titles containing it

An :class:`IndexSnapshot` is never patched: every entity change means a new
call to :meth:`IndexBuilder.build`, and the previous snapshot is simply
dropped.  Tag, label and word keys are stored in sorted order so that
suggestion order is deterministic.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, Iterable, Mapping, Optional, Set, Tuple

from .extractors import CallableExtractor, NotesExtractor, TextExtractor, field_of
from .hashtags import extract_hashtags

logger = logging.getLogger(__name__)

# Connective words that never become label/word keys on their own.
STOPWORDS: FrozenSet[str] = frozenset({"a", "an", "of", "in", "at", "on", "to"})


@dataclass(frozen=True)
class TagPostings:
    """Entities carrying one hashtag."""
    nodes: FrozenSet[str] = frozenset()
    edges: FrozenSet[str] = frozenset()


def _frozen(mapping: Dict[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(mapping)


@dataclass(frozen=True)
class IndexSnapshot:
    """Immutable bundle of the four index structures."""
    hashtags: Mapping[str, TagPostings] = field(default_factory=lambda: _frozen({}))
    labels: Mapping[str, FrozenSet[str]] = field(default_factory=lambda: _frozen({}))
    full_names: Mapping[str, str] = field(default_factory=lambda: _frozen({}))
    word_names: Mapping[str, Tuple[str, ...]] = field(default_factory=lambda: _frozen({}))

    @property
    def tags_sorted(self) -> Tuple[str, ...]:
        return tuple(self.hashtags)

    @property
    def labels_sorted(self) -> Tuple[str, ...]:
        return tuple(self.labels)

    def stats(self) -> Dict[str, int]:
        return {
            "places": len(self.full_names),
            "words": len(self.word_names),
            "labels": len(self.labels),
            "tags": len(self.hashtags),
        }


class IndexBuilder:
    """Builds :class:`IndexSnapshot` values with an injected text extractor.

    Entities need an ``id``; nodes may also carry a ``title``.  Both are read
    from mappings or attributes, and entities without an id are skipped.  All
    annotation text comes from the extractor, never from entity fields.
    """

    def __init__(
        self,
        extractor: Optional[TextExtractor] = None,
        stopwords: Iterable[str] = STOPWORDS,
    ) -> None:
        self.extractor: TextExtractor = extractor or NotesExtractor()
        self.stopwords = frozenset(stopwords)

    def build(self, nodes: Iterable[Any], edges: Iterable[Any]) -> IndexSnapshot:
        tag_nodes: Dict[str, Set[str]] = {}
        tag_edges: Dict[str, Set[str]] = {}
        labels: Dict[str, Set[str]] = {}
        full_names: Dict[str, str] = {}
        word_names: Dict[str, Dict[str, None]] = {}

        node_count = 0
        for node in nodes:
            node_count += 1
            nid = field_of(node, "id")
            if nid is None:
                continue
            for tag in extract_hashtags(self.extractor.node_text(node)):
                tag_nodes.setdefault(tag, set()).add(nid)
                tag_edges.setdefault(tag, set())

            full_name = str(field_of(node, "title") or "").strip()
            if not full_name:
                continue
            full_name_lower = full_name.lower()
            full_names[nid] = full_name
            labels.setdefault(full_name_lower, set()).add(nid)

            for word in full_name_lower.split():
                if word in self.stopwords:
                    continue
                labels.setdefault(word, set()).add(nid)
                word_names.setdefault(word, {}).setdefault(full_name, None)

        edge_count = 0
        for edge in edges:
            edge_count += 1
            eid = field_of(edge, "id")
            if eid is None:
                continue
            for tag in extract_hashtags(self.extractor.edge_text(edge)):
                tag_nodes.setdefault(tag, set())
                tag_edges.setdefault(tag, set()).add(eid)

        snapshot = IndexSnapshot(
            hashtags=_frozen({
                tag: TagPostings(nodes=frozenset(tag_nodes[tag]), edges=frozenset(tag_edges[tag]))
                for tag in sorted(tag_nodes)
            }),
            labels=_frozen({label: frozenset(labels[label]) for label in sorted(labels)}),
            full_names=_frozen(full_names),
            word_names=_frozen({word: tuple(word_names[word]) for word in sorted(word_names)}),
        )
        logger.debug(
            "Indexed %d nodes / %d edges: places=%d words=%d tags=%d",
            node_count, edge_count, len(full_names), len(word_names), len(tag_nodes),
        )
        return snapshot


def build_index(
    nodes: Iterable[Any],
    edges: Iterable[Any],
    node_text_of: Optional[Callable[[Any], Optional[str]]] = None,
    edge_text_of: Optional[Callable[[Any], Optional[str]]] = None,
) -> IndexSnapshot:
    """Functional form of :meth:`IndexBuilder.build` taking plain callbacks."""
    return IndexBuilder(CallableExtractor(node_text_of, edge_text_of)).build(nodes, edges)

