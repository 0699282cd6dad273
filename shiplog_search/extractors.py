"""Annotation text extraction strategies.

The index builder never looks at entity fields directly: it asks an
extractor for the searchable text of each node and edge.  The default
:class:`NotesExtractor` joins an entity's note entries with newlines;
hosts that want other fields searchable inject their own extractor.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Protocol


class TextExtractor(Protocol):
    """Strategy returning the searchable annotation text of an entity."""

    def node_text(self, node: Any) -> str:
        ...

    def edge_text(self, edge: Any) -> str:
        ...


def field_of(entity: Any, name: str, default: Any = None) -> Any:
    """Read *name* from a mapping entity or an attribute-style one."""
    if isinstance(entity, Mapping):
        return entity.get(name, default)
    return getattr(entity, name, default)


def _join_notes(notes: Optional[Iterable[Any]]) -> str:
    if not notes:
        return ""
    if isinstance(notes, str):
        return notes
    return "\n".join(n for n in notes if isinstance(n, str))


class NotesExtractor:
    """Default extractor: an entity's ``notes`` joined by newlines."""

    def node_text(self, node: Any) -> str:
        return _join_notes(field_of(node, "notes"))

    def edge_text(self, edge: Any) -> str:
        return _join_notes(field_of(edge, "notes"))


class CallableExtractor:
    """Adapt a pair of plain functions to the :class:`TextExtractor` shape.

    A missing function falls back to :class:`NotesExtractor` for that side.
    """

    def __init__(
        self,
        node_text_of: Optional[Callable[[Any], Optional[str]]] = None,
        edge_text_of: Optional[Callable[[Any], Optional[str]]] = None,
    ) -> None:
        default = NotesExtractor()
        self._node_text_of = node_text_of or default.node_text
        self._edge_text_of = edge_text_of or default.edge_text

    def node_text(self, node: Any) -> str:
        return self._node_text_of(node) or ""

    def edge_text(self, edge: Any) -> str:
        return self._edge_text_of(edge) or ""


class TitleAndNotesExtractor(NotesExtractor):
    """Also make hashtags written inside node titles searchable."""

    def node_text(self, node: Any) -> str:
        title = field_of(node, "title") or ""
        notes = super().node_text(node)
        return f"{title}\n{notes}" if title and notes else title or notes


_EXTRACTORS: Dict[str, Callable[[], TextExtractor]] = {
    "notes": NotesExtractor,
    "title_and_notes": TitleAndNotesExtractor,
}


def get_extractor(name: str) -> TextExtractor:
    """Instantiate a built-in extractor by its config name."""
    try:
        return _EXTRACTORS[name]()
    except KeyError:
        raise ValueError(f"Unknown extractor {name!r}: expected one of {sorted(_EXTRACTORS)}") from None
