"""Lookaside cache of article image URLs.

A stored ``None`` is a negative entry: the article was looked up and has no
usable main image. Entries are never evicted; the cache lives as long as the
client that owns it. Fills are not exclusive, so two concurrent misses for the
same article both fetch and the later write wins.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterator, Optional

logger = logging.getLogger(__name__)

_MISSING = object()


class ImageUrlCache:
    """Article id → image URL (or None) mapping."""

    def __init__(self) -> None:
        self._entries: Dict[str, Optional[str]] = {}

    def __contains__(self, uuid: object) -> bool:
        return uuid in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def lookup(self, uuid: str) -> object:
        """Return the cached value, or the module sentinel when not cached."""
        return self._entries.get(uuid, _MISSING)

    def store(self, uuid: str, image_url: Optional[str]) -> None:
        self._entries[uuid] = image_url

    def snapshot(self) -> Dict[str, Optional[str]]:
        return dict(self._entries)


def is_missing(value: object) -> bool:
    """True when ``value`` is the not-cached sentinel returned by lookup()."""
    return value is _MISSING
