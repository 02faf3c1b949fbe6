"""Search query construction.

Turns loose search parameters into the nested document the search API
expects: entity constraints are rewritten into quoted ``facet:"value"`` terms
and the facet list always carries both forms of the requested ontology.
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional, Union

from .model import SearchParams

# Only bare ontology names, optionally with the Id suffix (people, peopleId).
# Other constraint fields such as lastPublishDateTime must not match.
ENTITY_RE = re.compile(r"^([a-z]+(?:Id)?):(.+)$")

CURATIONS = ["ARTICLES", "BLOGS"]
SORT_ORDER = "DESC"
SORT_FIELD = "lastPublishDateTime"


def rephrase_entity(constraint: str) -> str:
    """Quote the value of a ``facet:value`` constraint.

    >>> rephrase_entity("people:Barack Obama")
    'people:"Barack Obama"'
    >>> rephrase_entity("lastPublishDateTime:>2020-05-20T18:40:00Z")
    'lastPublishDateTime:>2020-05-20T18:40:00Z'
    """
    match = ENTITY_RE.match(constraint)
    if match:
        return f'{match.group(1)}:"{match.group(2)}"'
    return constraint


def facet_names(ontology: str) -> List[str]:
    """Return ``[ontology, sibling]`` where sibling toggles the ``Id`` suffix."""
    if ontology.endswith("Id"):
        return [ontology, ontology[: -len("Id")]]
    return [ontology, ontology + "Id"]


def build_query(params: Optional[Union[Mapping[str, Any], SearchParams]] = None) -> Dict[str, Any]:
    """Build the search document for ``params``.

    A non-empty query string is used verbatim. Only when it is empty are the
    constraints rewritten and joined with " and ".

    Args:
        params: Partial parameters (mapping or SearchParams)

    Returns:
        The JSON-serialisable search document
    """
    combined = SearchParams.from_mapping(params)

    query_string = combined.query_string
    if query_string == "" and len(combined.constraints) > 0:
        query_string = " and ".join(rephrase_entity(c) for c in combined.constraints)

    return {
        "queryString": query_string,
        "queryContext": {
            "curations": list(CURATIONS),
        },
        "resultContext": {
            # The API expects these two as strings
            "maxResults": f"{combined.max_results}",
            "offset": f"{combined.offset}",
            "aspects": list(combined.aspects),
            "sortOrder": SORT_ORDER,
            "sortField": SORT_FIELD,
            "facets": {"names": facet_names(combined.ontology), "maxElements": -1},
        },
    }
