"""Resolve a submitted query to matching node and edge ids.

Tokens (from :func:`~shiplog_search.hashtags.tokenize_query`) are ANDed:
an entity matches only if every token matches it.

* ``"old ridge"``: exact, case-insensitive full title match (nodes only)
* ``#myth``      : prefix match over hashtag names (nodes and edges)
* ``ridge``      : prefix match over hashtag names and title words

Two or more plain tokens are first tried as one place name: an exact title
match, then a title prefix match.  The first hit wins and is returned on
its own, without any per-token matching.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from .hashtags import is_quoted
from .index import IndexSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchMatches:
    """Ids matched by a query."""
    node_ids: FrozenSet[str] = frozenset()
    edge_ids: FrozenSet[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.node_ids and not self.edge_ids

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_ids": sorted(self.node_ids),
            "edge_ids": sorted(self.edge_ids),
        }


def intersect_all(sets: Sequence[FrozenSet[str]]) -> FrozenSet[str]:
    """AND a sequence of id sets; no sets gives an empty set."""
    if not sets:
        return frozenset()
    acc = frozenset(sets[0])
    for s in sets[1:]:
        if not acc:
            break
        acc = acc & s
    return acc


def match_place_name(snapshot: IndexSnapshot, phrase: str) -> Optional[str]:
    """Node id of the first title equal to *phrase*, else the first title starting with it."""
    phrase = phrase.lower()
    for node_id, full_name in snapshot.full_names.items():
        if full_name.lower() == phrase:
            return node_id
    for node_id, full_name in snapshot.full_names.items():
        if full_name.lower().startswith(phrase):
            return node_id
    return None


def _match_token(snapshot: IndexSnapshot, token: str) -> Tuple[Set[str], Set[str]]:
    nodes: Set[str] = set()
    edges: Set[str] = set()

    if is_quoted(token):
        wanted = token[1:-1].lower()
        for node_id, full_name in snapshot.full_names.items():
            if full_name.lower() == wanted:
                nodes.add(node_id)
        return nodes, edges

    if token.startswith("#"):
        prefix = token[1:].lower()
        for tag, postings in snapshot.hashtags.items():
            if tag.startswith(prefix):
                nodes |= postings.nodes
                edges |= postings.edges
        return nodes, edges

    prefix = token.lower()
    for tag, postings in snapshot.hashtags.items():
        if tag.startswith(prefix):
            nodes |= postings.nodes
            edges |= postings.edges
    for label, node_ids in snapshot.labels.items():
        if label.startswith(prefix):
            nodes |= node_ids
    return nodes, edges


def resolve(snapshot: IndexSnapshot, tokens: Sequence[str]) -> SearchMatches:
    """Return the node and edge ids matched by every token."""
    if not tokens:
        return SearchMatches()

    if len(tokens) > 1 and not any(t.startswith(("#", '"')) for t in tokens):
        node_id = match_place_name(snapshot, " ".join(tokens))
        if node_id is not None:
            logger.debug("Place-name match for %r -> %s", tokens, node_id)
            return SearchMatches(node_ids=frozenset({node_id}))

    node_sets: List[FrozenSet[str]] = []
    edge_sets: List[FrozenSet[str]] = []
    for token in tokens:
        nodes, edges = _match_token(snapshot, token)
        node_sets.append(frozenset(nodes))
        edge_sets.append(frozenset(edges))

    return SearchMatches(node_ids=intersect_all(node_sets), edge_ids=intersect_all(edge_sets))
