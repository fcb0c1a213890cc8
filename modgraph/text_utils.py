from __future__ import annotations

import re
from difflib import get_close_matches
from typing import List, Sequence, Tuple

from .models import ContentItem

WHITESPACE_PATTERN = re.compile(r"\s+")
SEPARATOR_PATTERN = re.compile(r"[\s_\-]+")
MAX_SUGGESTIONS = 5


def normalize_name(raw: str) -> str:
    return SEPARATOR_PATTERN.sub(" ", raw).strip().lower()


def resolve_query(items: Sequence[ContentItem], query: str) -> Tuple[ContentItem | None, List[str]]:
    """Find the item a user typed, returning close names when nothing matches.

    Lookup order: slug or id, exact name, then the name with case and
    separators ignored.
    """

    query = WHITESPACE_PATTERN.sub(" ", query).strip()
    if not query:
        return None, []

    for item in items:
        if item.matches(query):
            return item, []
    for item in items:
        if item.name and item.name == query:
            return item, []

    wanted = normalize_name(query)
    for item in items:
        if item.name and normalize_name(item.name) == wanted:
            return item, []
        if normalize_name(item.slug) == wanted:
            return item, []

    names = {normalize_name(item.name or item.slug): item.slug for item in items}
    matches = get_close_matches(wanted, list(names), n=MAX_SUGGESTIONS, cutoff=0.6)
    return None, [names[match] for match in matches]


__all__ = ["normalize_name", "resolve_query"]
