"""Helpers for pulling article identifiers out of free text and URLs."""
from __future__ import annotations

import re

UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
    re.IGNORECASE,
)


def extract_uuid(text: str | None) -> str | None:
    """Return the first UUID found in ``text``, lowercased, or None.

    Accepts bare identifiers as well as article or API URLs, e.g.
    ``https://www.ft.com/content/<uuid>`` or ``http://api.ft.com/things/<uuid>``.
    """
    if not text:
        return None
    match = UUID_RE.search(str(text))
    return match.group(0).lower() if match else None
