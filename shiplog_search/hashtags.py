"""Hashtag extraction and query tokenisation.

* Unicode-friendly ``#tag`` parsing (letters, digits, underscore, hyphen)
* Tags are normalised to lowercase without the leading ``#``
* Query tokens are lowercased and deduplicated; ``"quoted phrases"`` are
  kept verbatim so the resolver can detect exact-title intent
"""

from __future__ import annotations

import re
from typing import List, Optional

# A '#' at start of text or right after whitespace / common punctuation,
# followed by 1-64 letters, digits, '_' or '-'.
_HASHTAG_RE = re.compile(r"""(?<![^\s.,;:!?"'(){}\[\]])#([\w-]{1,64})""", re.UNICODE)

# Quoted runs stay whole ("old ridge"); everything else splits on whitespace.
_QUERY_TOKEN_RE = re.compile(r'"[^"]*"|\S+')


def normalize_tag(tag: str) -> str:
    """Strip one leading ``#`` and lowercase.

    >>> normalize_tag("#Mystery")
    'mystery'
    """
    if tag.startswith("#"):
        tag = tag[1:]
    return tag.lower()


def extract_hashtags(text: Optional[str]) -> List[str]:
    """Return the unique normalised hashtags in *text*, in first-seen order.

    >>> extract_hashtags("#Foo #foo #bar, #bar!")
    ['foo', 'bar']
    """
    if not text:
        return []
    seen: dict[str, None] = {}
    for match in _HASHTAG_RE.finditer(text):
        tag = normalize_tag(match.group(1))
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


def is_quoted(token: str) -> bool:
    """True for a token wrapped in literal double quotes."""
    return len(token) >= 2 and token.startswith('"') and token.endswith('"')


def tokenize_query(query: Optional[str]) -> List[str]:
    """Split a submitted query into unique lowercase tokens.

    Quoted tokens are returned as typed, quotes included.

    >>> tokenize_query('#Myth  Old "Old Ridge" old')
    ['#myth', 'old', '"Old Ridge"']
    """
    if not query or not query.strip():
        return []
    tokens: dict[str, None] = {}
    for part in _QUERY_TOKEN_RE.findall(query.strip()):
        token = part if is_quoted(part) else part.lower()
        tokens.setdefault(token, None)
    return list(tokens)
