"""Autocomplete suggestions for the search box.

The mode depends on the shape of what has been typed so far:

* **hashtag**: first word starts with ``#``: only tags, completed from the
  last word (``#myst`` -> ``#mystery``)
* **phrase** : two or more plain words: only full place names that start
  with the whole input (``the ka`` -> ``The Ka Shrine``)
* **mixed**  : one plain word: tags first, then place names containing a
  word with that prefix
"""

from __future__ import annotations

import enum
from typing import Iterable, List, Optional

from .hashtags import normalize_tag
from .index import IndexSnapshot

DEFAULT_LIMIT = 12


class SuggestionMode(str, enum.Enum):
    NONE = "none"
    HASHTAG = "hashtag"
    PHRASE = "phrase"
    MIXED = "mixed"


def detect_mode(raw_input: Optional[str]) -> SuggestionMode:
    """Pick the suggestion mode for an in-progress query."""
    words = (raw_input or "").strip().lower().split()
    if not words:
        return SuggestionMode.NONE
    if words[0].startswith("#"):
        return SuggestionMode.HASHTAG
    if len(words) > 1:
        return SuggestionMode.PHRASE
    return SuggestionMode.MIXED


class _Collector:
    """First-seen de-duplication with a hard cap."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.items: List[str] = []
        self._seen: set[str] = set()

    @property
    def full(self) -> bool:
        return len(self.items) >= self.limit

    def add(self, item: str) -> None:
        if item not in self._seen and not self.full:
            self._seen.add(item)
            self.items.append(item)


def _tags_with_prefix(snapshot: IndexSnapshot, prefix: str) -> Iterable[str]:
    for tag in snapshot.tags_sorted:
        if tag.startswith(prefix):
            yield "#" + tag


def suggest(snapshot: IndexSnapshot, raw_input: Optional[str], limit: int = DEFAULT_LIMIT) -> List[str]:
    """Return at most *limit* distinct completions for *raw_input*."""
    mode = detect_mode(raw_input)
    if mode is SuggestionMode.NONE or limit <= 0:
        return []

    query = (raw_input or "").strip().lower()
    words = query.split()
    out = _Collector(limit)

    if mode is SuggestionMode.HASHTAG:
        last = normalize_tag(words[-1])
        if not last:
            return []
        for tag in _tags_with_prefix(snapshot, last):
            out.add(tag)
            if out.full:
                break
        return out.items

    if mode is SuggestionMode.PHRASE:
        for full_name in snapshot.full_names.values():
            if full_name.lower().startswith(query):
                out.add(full_name)
                if out.full:
                    break
        return out.items

    word = words[0]
    for tag in _tags_with_prefix(snapshot, word):
        out.add(tag)
        if out.full:
            return out.items
    for key, full_names in snapshot.word_names.items():
        if not key.startswith(word):
            continue
        for full_name in full_names:
            out.add(full_name)
        if out.full:
            break
    return out.items
