"""Ship-log map documents.

A saved map is a JSON object::

    {
      "mapName": "solar_system",
      "nodes": [{"id": "timber_hearth", "title": "Timber Hearth", ...}],
      "edges": [{"source": "timber_hearth", "target": "observatory", ...}],
      "notes": {"timber_hearth": ["#home village", "..."]}
    }

Notes live in the map-level ``notes`` dict keyed by entity id; older
exports also carry inline ``note`` / ``notes`` fields on the entity.  Both
are folded into :attr:`MapNode.notes` / :attr:`MapEdge.notes` here, so the
search index only ever sees ``(id, title, notes)``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

logger = logging.getLogger(__name__)

DEFAULT_MAP_NAME = "default_map"


class MapDocumentError(ValueError):
    """Raised when a map file cannot be read or is not a JSON object."""


@dataclass
class MapNode:
    id: str
    title: str = ""
    notes: List[str] = field(default_factory=list)


@dataclass
class MapEdge:
    id: str
    source: str = ""
    target: str = ""
    notes: List[str] = field(default_factory=list)


@dataclass
class MapDocument:
    name: str = DEFAULT_MAP_NAME
    nodes: List[MapNode] = field(default_factory=list)
    edges: List[MapEdge] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mapName": self.name,
            "nodes": [{"id": n.id, "title": n.title} for n in self.nodes],
            "edges": [{"id": e.id, "source": e.source, "target": e.target} for e in self.edges],
            "notes": {
                ent.id: list(ent.notes)
                for ent in [*self.nodes, *self.edges]
                if ent.notes
            },
        }


def edge_id(source: str, target: str) -> str:
    """Id the editor assigns to an edge saved without one."""
    return f"{source}__{target}"


def _collect_notes(entity: Dict[str, Any], shared: Dict[str, Any], entity_id: str) -> List[str]:
    notes: List[str] = []
    inline = entity.get("note")
    if isinstance(inline, str) and inline:
        notes.append(inline)
    for source in (entity.get("notes"), shared.get(entity_id)):
        if isinstance(source, str):
            if source:
                notes.append(source)
        elif isinstance(source, list):
            notes.extend(n for n in source if isinstance(n, str))
    return notes


def parse_map(data: Dict[str, Any]) -> MapDocument:
    """Normalise a decoded map object into a :class:`MapDocument`.

    Missing collections become empty, titles fall back to ``label`` and edge
    ids to ``"{source}__{target}"``.  Entities without an id are skipped.
    """
    if not isinstance(data, dict):
        raise MapDocumentError(f"map document must be a JSON object, got {type(data).__name__}")

    raw_nodes = data.get("nodes") if isinstance(data.get("nodes"), list) else []
    raw_edges = data.get("edges") if isinstance(data.get("edges"), list) else []
    shared = data.get("notes") if isinstance(data.get("notes"), dict) else {}
    name = data.get("mapName") if isinstance(data.get("mapName"), str) else DEFAULT_MAP_NAME

    nodes: List[MapNode] = []
    for raw in raw_nodes:
        if not isinstance(raw, dict) or raw.get("id") in (None, ""):
            logger.warning("Skipping node without id in map %r: %r", name, raw)
            continue
        nid = str(raw["id"])
        title = raw.get("title")
        if title is None:
            title = raw.get("label")
        nodes.append(MapNode(
            id=nid,
            title=title if isinstance(title, str) else "",
            notes=_collect_notes(raw, shared, nid),
        ))

    edges: List[MapEdge] = []
    for raw in raw_edges:
        if not isinstance(raw, dict):
            logger.warning("Skipping malformed edge in map %r: %r", name, raw)
            continue
        source = str(raw.get("source") or "")
        target = str(raw.get("target") or "")
        eid = raw.get("id") or (edge_id(source, target) if source and target else None)
        if not eid:
            logger.warning("Skipping edge without id or endpoints in map %r: %r", name, raw)
            continue
        eid = str(eid)
        edges.append(MapEdge(
            id=eid,
            source=source,
            target=target,
            notes=_collect_notes(raw, shared, eid),
        ))

    return MapDocument(name=name, nodes=nodes, edges=edges)


def load_map(path: Union[str, Path]) -> MapDocument:
    """Read and parse a saved map file."""
    p = Path(path)
    try:
        with open(p, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError) as exc:
        raise MapDocumentError(f"cannot read map {p}: {exc}") from exc
    return parse_map(data)
