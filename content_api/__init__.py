"""Content retrieval and query construction for the content search APIs.

Key modules:
- core: Configuration, HTTP session/fetch primitives, fetch timings
- query: Search document construction from loose parameters
- model: SearchParams and SearchResult dataclasses
- client: ContentClient with the article, search and concordance operations
- cache: Image URL lookaside cache
- errors: Exception hierarchy
- export: pandas export of search hits
- identifiers: UUID extraction

Usage:
    from content_api import ContentClient, build_query

    client = ContentClient()
    result = await client.search_by_entity_with_facets("people:Barack Obama")
"""

from .cache import ImageUrlCache
from .client import ContentClient, get_client, reset_client
from .core.network import MAX_ATTEMPTS, RetryPolicy, fetch_text, fetch_with_retry
from .errors import (
    ConfigurationError,
    ContentApiError,
    MissingApiKeyError,
    ResponseNotOkError,
    ResponseParseError,
    RetriesExhaustedError,
)
from .model import SearchParams, SearchResult
from .query import build_query

__all__ = [
    "ContentClient",
    "get_client",
    "reset_client",
    "ImageUrlCache",
    "RetryPolicy",
    "MAX_ATTEMPTS",
    "fetch_text",
    "fetch_with_retry",
    "SearchParams",
    "SearchResult",
    "build_query",
    "ContentApiError",
    "ConfigurationError",
    "MissingApiKeyError",
    "ResponseNotOkError",
    "ResponseParseError",
    "RetriesExhaustedError",
]
