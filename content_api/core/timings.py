"""Fetch timing records for diagnosing the upstream content APIs.

Every HTTP attempt made by the network layer can be recorded here: which kind
of call it was, how long it took and how it ended. ``summarise`` condenses the
records into the counts and durations an operator looks at when the upstream
service misbehaves.
"""
from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

logger = logging.getLogger(__name__)

_SECRET_PARAMS = {"apikey"}


def redact_url(url: str) -> str:
    """Drop the API key query parameter from a URL."""
    try:
        parts = urlparse(url)
    except ValueError:
        return url
    if not parts.query:
        return url
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k.lower() not in _SECRET_PARAMS]
    return urlunparse(parts._replace(query=urlencode(query, safe=":/")))


@dataclass
class FetchRecord:
    """One HTTP attempt."""

    kind: str
    url: str
    duration_ms: float
    status: Optional[int] = None
    ok: bool = False
    attempt: int = 0
    finished_at: float = field(default_factory=time.time)


class FetchTimings:
    """Accumulates FetchRecord entries for the lifetime of a client."""

    def __init__(self, max_records: int = 1000):
        self.max_records = max(1, int(max_records))
        self.records: List[FetchRecord] = []

    def record(
        self,
        kind: str,
        url: str,
        duration_ms: float,
        status: Optional[int] = None,
        ok: bool = False,
        attempt: int = 0,
    ) -> FetchRecord:
        rec = FetchRecord(
            kind=kind or "other",
            url=redact_url(url),
            duration_ms=round(float(duration_ms), 3),
            status=status,
            ok=bool(ok),
            attempt=attempt,
        )
        self.records.append(rec)
        if len(self.records) > self.max_records:
            del self.records[: len(self.records) - self.max_records]
        return rec

    def clear(self) -> None:
        self.records.clear()

    def summarise(self, history: int = 0) -> Dict[str, Any]:
        """Summarise the recorded fetches.

        Args:
            history: Number of most recent records to include (newest first)

        Returns:
            Dictionary with overall counts, per-kind statistics and recent records
        """
        try:
            history = max(0, int(history or 0))
        except (TypeError, ValueError):
            history = 0

        by_kind: Dict[str, Dict[str, Any]] = {}
        for rec in self.records:
            stats = by_kind.setdefault(rec.kind, {"count": 0, "ok": 0, "failed": 0, "total_ms": 0.0, "max_ms": 0.0})
            stats["count"] += 1
            stats["ok" if rec.ok else "failed"] += 1
            stats["total_ms"] += rec.duration_ms
            stats["max_ms"] = max(stats["max_ms"], rec.duration_ms)

        for stats in by_kind.values():
            stats["mean_ms"] = round(stats.pop("total_ms") / stats["count"], 3)

        ok_count = sum(1 for r in self.records if r.ok)
        recent = [asdict(r) for r in reversed(self.records[-history:])] if history else []

        return {
            "counts": {
                "total": len(self.records),
                "ok": ok_count,
                "failed": len(self.records) - ok_count,
            },
            "by_kind": by_kind,
            "history": recent,
        }
