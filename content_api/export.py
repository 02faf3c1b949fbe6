"""Tabular export of search hits.

Flattens the hits of a SearchResult into a pandas DataFrame so they can be
inspected or written to CSV alongside other run outputs.
"""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, List

import pandas as pd

from .model import SearchResult

logger = logging.getLogger(__name__)

HIT_COLUMNS = ["id", "title", "lastPublishDateTime", "apiUrl"]


def _hit_row(hit: Dict[str, Any]) -> Dict[str, Any]:
    title = hit.get("title")
    if isinstance(title, dict):
        title = title.get("title")
    lifecycle = hit.get("lifecycle") or {}
    return {
        "id": hit.get("id"),
        "title": title,
        "lastPublishDateTime": lifecycle.get("lastPublishDateTime") if isinstance(lifecycle, dict) else None,
        "apiUrl": hit.get("apiUrl"),
    }


def search_hits_frame(result: SearchResult) -> pd.DataFrame:
    """Return one row per hit; an empty frame with the same columns when the search failed."""
    rows: List[Dict[str, Any]] = [_hit_row(h) for h in result.hits() if isinstance(h, dict)]
    return pd.DataFrame(rows, columns=HIT_COLUMNS)


def write_search_hits_csv(result: SearchResult, csv_path: str) -> str:
    """Write the hits of ``result`` to ``csv_path``.

    Returns:
        The path written
    """
    parent = os.path.dirname(csv_path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    df = search_hits_frame(result)
    df.to_csv(csv_path, index=False)
    logger.info("Saved %d search hit(s) to %s", len(df), csv_path)
    return csv_path
