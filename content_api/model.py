"""Data models for the content API client.

Provides the SearchParams dataclass (loose caller parameters merged over
defaults) and the SearchResult dataclass returned by the search operations.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional

DEFAULT_ASPECTS = ("title", "lifecycle", "images")
DEFAULT_ONTOLOGY = "people"

# Wire-format names accepted alongside the Python field names
_ALIASES = {
    "queryString": "query_string",
    "maxResults": "max_results",
}


@dataclass
class SearchParams:
    """Search parameters with their defaults.

    Attributes:
        query_string: Free-text query; when empty it is derived from constraints
        max_results: Maximum number of hits to return
        offset: Index of the first hit
        aspects: Slices of each article to include in the hits
        constraints: ``facet:value`` or plain-text constraints joined with "and"
        ontology: Facet category whose counts are requested
    """

    query_string: str = ""
    max_results: int = 1
    offset: int = 0
    aspects: List[str] = field(default_factory=lambda: list(DEFAULT_ASPECTS))
    constraints: List[str] = field(default_factory=list)
    ontology: str = DEFAULT_ONTOLOGY

    @classmethod
    def from_mapping(cls, params: Optional[Mapping[str, Any]] = None) -> "SearchParams":
        """Shallow-merge caller params over the defaults, field by field.

        Keys may be Python field names or wire names (``queryString``); unknown
        keys are ignored.
        """
        if params is None:
            return cls()
        if isinstance(params, SearchParams):
            return cls(**{f.name: getattr(params, f.name) for f in fields(cls)})

        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in params.items():
            name = _ALIASES.get(key, key)
            if name in known:
                kwargs[name] = value
        return cls(**kwargs)


@dataclass
class SearchResult:
    """Outcome of a search call.

    ``params`` is always the caller's parameters, so failures can be matched
    to their request. ``found`` marks a successful round trip; the body it
    carries in ``sapi_obj`` may itself be JSON null.
    """

    params: Any
    sapi_obj: Optional[Dict[str, Any]] = None
    found: bool = False

    def __post_init__(self) -> None:
        if self.sapi_obj is not None:
            self.found = True

    @property
    def ok(self) -> bool:
        return self.found

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the dictionary shape handed to collaborators.

        The ``sapiObj`` key is omitted entirely when the search failed.
        """
        d: Dict[str, Any] = {"params": self.params}
        if self.found:
            d["sapiObj"] = self.sapi_obj
        return d

    def hits(self) -> List[Dict[str, Any]]:
        """Return the hits of the first result block, or an empty list."""
        if not isinstance(self.sapi_obj, dict):
            return []
        blocks = self.sapi_obj.get("results") or []
        if not blocks or not isinstance(blocks[0], dict):
            return []
        return list(blocks[0].get("results") or [])
