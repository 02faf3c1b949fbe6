"""Content retrieval client for the enriched content, search and concordance APIs.

Result contracts differ per operation and are kept that way on purpose:

- strict: ``get_article`` and ``get_article_image_url`` raise on transport,
  status or parse failures; callers must catch.
- lenient: ``search`` (and the ``search_*`` helpers) return a SearchResult
  without ``sapi_obj``; ``tme_id_to_v2`` and ``v2_api_call`` return None.
  The failure is logged, never raised.
"""
from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Optional
from urllib.parse import urlencode

import requests

from .cache import ImageUrlCache, is_missing
from .core.config import get_endpoint_config, get_network_config, require_api_key
from .core.network import RetryPolicy, fetch_text, fetch_with_retry, get_session
from .core.timings import FetchTimings
from .errors import ContentApiError, ResponseParseError
from .model import SearchResult
from .query import build_query

logger = logging.getLogger(__name__)

# Failures the lenient operations absorb
_LENIENT_ERRORS = (ContentApiError, requests.exceptions.RequestException)


def unix_time_to_iso_time(unix_time: float) -> str:
    """Format epoch seconds as ``YYYY-MM-DDTHH:MM:SSZ`` (UTC, no fraction)."""
    dt = datetime.fromtimestamp(int(unix_time), tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def _with_api_key(url: str, api_key: str) -> str:
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}apiKey={api_key}"


def _parse_json(text: str, params: Any = None) -> Any:
    try:
        return json.loads(text)
    except (ValueError, RecursionError) as e:
        raise ResponseParseError(e, text, params) from e


class ContentClient:
    """Client for the upstream content APIs.

    Args:
        api_key: API key; read from CAPI_KEY when omitted
        session: requests session; the shared session when omitted
        image_cache: Image URL cache; a fresh one when omitted
        retry_policy: When set, every request goes through fetch_with_retry.
            When omitted, the policy from config is used if
            ``network.retry_requests`` is true, otherwise requests are single-shot.
        endpoints: Endpoint overrides merged over the configured ones
        timings: Fetch timing recorder; a fresh one when omitted

    Raises:
        MissingApiKeyError: If no API key is given or configured
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        image_cache: Optional[ImageUrlCache] = None,
        retry_policy: Optional[RetryPolicy] = None,
        endpoints: Optional[Mapping[str, str]] = None,
        timings: Optional[FetchTimings] = None,
    ):
        self.api_key = api_key or require_api_key()
        self.session = session or get_session()
        self.image_cache = image_cache if image_cache is not None else ImageUrlCache()
        if retry_policy is None and get_network_config().get("retry_requests"):
            retry_policy = RetryPolicy.from_config()
        self.retry_policy = retry_policy
        self.endpoints = get_endpoint_config()
        if endpoints:
            self.endpoints.update(endpoints)
        self.timings = timings if timings is not None else FetchTimings()

    # ------------------------------------------------------------------
    # Transport helpers
    # ------------------------------------------------------------------

    async def _read_text(self, url: str, options: Optional[Dict[str, Any]] = None, kind: str = "other") -> str:
        if self.retry_policy is not None:
            response = await fetch_with_retry(
                url, options, policy=self.retry_policy, session=self.session, kind=kind, timings=self.timings
            )
            return response.text
        return await fetch_text(url, options, session=self.session, kind=kind, timings=self.timings)

    def article_url(self, uuid: str) -> str:
        return _with_api_key(f"{self.endpoints['enriched_content_url']}{uuid}", self.api_key)

    def search_url(self) -> str:
        return _with_api_key(self.endpoints["search_url"], self.api_key)

    def concordance_url(self, tme_id: str) -> str:
        query = urlencode(
            {
                "identifierValue": tme_id,
                "authority": self.endpoints["concordance_authority"],
                "apiKey": self.api_key,
            },
            safe=":/",
        )
        return f"{self.endpoints['concordances_url']}?{query}"

    # ------------------------------------------------------------------
    # Strict operations
    # ------------------------------------------------------------------

    async def get_article(self, uuid: str) -> Any:
        """Fetch one article's enriched content as parsed JSON.

        Raises:
            ResponseNotOkError, RetriesExhaustedError, ResponseParseError,
            requests.exceptions.RequestException
        """
        logger.debug("get_article: uuid=%s", uuid)
        text = await self._read_text(self.article_url(uuid), kind="article")
        return _parse_json(text, {"uuid": uuid})

    async def get_article_image_url(self, uuid: str) -> Optional[str]:
        """Return the article's main image URL, or None when it has none.

        Results (including None) are cached per article; a cached value is
        returned without touching the network. Fetch failures propagate and
        leave the cache untouched.
        """
        cached = self.image_cache.lookup(uuid)
        if not is_missing(cached):
            logger.debug("get_article_image_url: uuid=%s: cache hit: image_url=%s", uuid, cached)
            return cached  # type: ignore[return-value]

        article = await self.get_article(uuid)

        image_url = None
        main_image = article.get("mainImage") if isinstance(article, dict) else None
        members = main_image.get("members") if isinstance(main_image, dict) else None
        if not main_image:
            logger.debug("get_article_image_url: uuid=%s: no mainImage", uuid)
        elif not isinstance(members, list):
            logger.debug("get_article_image_url: uuid=%s: no mainImage.members", uuid)
        elif len(members) == 0:
            logger.debug("get_article_image_url: uuid=%s: empty mainImage.members", uuid)
        elif not isinstance(members[0], dict) or not members[0].get("binaryUrl"):
            logger.debug("get_article_image_url: uuid=%s: no mainImage.members[0].binaryUrl", uuid)
        else:
            image_url = members[0]["binaryUrl"]
            logger.debug("get_article_image_url: uuid=%s: cache miss: image_url=%s", uuid, image_url)

        self.image_cache.store(uuid, image_url)
        return image_url

    # ------------------------------------------------------------------
    # Lenient operations
    # ------------------------------------------------------------------

    async def search(self, params: Any = None) -> SearchResult:
        """Run a search; failures yield a SearchResult without ``sapi_obj``."""
        if params is None:
            params = {}
        query = build_query(params)
        options = {
            "method": "POST",
            "body": json.dumps(query),
            "headers": {"Content-Type": "application/json"},
        }
        logger.debug("search: query=%s", options["body"])

        try:
            text = await self._read_text(self.search_url(), options, kind="search")
            sapi_obj = _parse_json(text, params)
        except _LENIENT_ERRORS as e:
            logger.error("search: err=%s", e)
            return SearchResult(params=params)

        return SearchResult(params=params, sapi_obj=sapi_obj, found=True)

    async def search_by_uuid(self, uuid: str) -> SearchResult:
        return await self.search({"query_string": uuid})

    async def search_time_range(
        self,
        after_secs: float,
        before_secs: float,
        params: Optional[Mapping[str, Any]] = None,
    ) -> SearchResult:
        """Search for content published strictly between two epoch times.

        The two lastPublishDateTime constraints are appended to a copy of
        ``params['constraints']``; the caller's mapping is left unchanged.
        """
        time_constraints = [
            f"lastPublishDateTime:>{unix_time_to_iso_time(after_secs)}",
            f"lastPublishDateTime:<{unix_time_to_iso_time(before_secs)}",
        ]
        merged: Dict[str, Any] = dict(params or {})
        merged["constraints"] = list(merged.get("constraints") or []) + time_constraints
        return await self.search(merged)

    async def search_last_seconds(
        self,
        seconds: int,
        constraints: Optional[Iterable[str]] = None,
        max_results: Optional[int] = None,
        now: Optional[float] = None,
    ) -> SearchResult:
        """Search the window ending now and starting ``seconds`` ago."""
        now_secs = int(now if now is not None else time.time())
        params: Dict[str, Any] = {}
        if constraints:
            params["constraints"] = list(constraints)
        if max_results is not None:
            params["max_results"] = max_results
        return await self.search_time_range(now_secs - int(seconds), now_secs, params)

    async def search_by_entity_with_facets(self, entity: str) -> SearchResult:
        """Search for ``taxonomy:value`` with facets for that taxonomy."""
        ontology = entity.split(":")[0]
        return await self.search({"query_string": entity, "ontology": ontology})

    async def tme_id_to_v2(self, tme_id: str) -> Optional[Any]:
        """Resolve a legacy TME identifier to its concordance record, or None."""
        url = self.concordance_url(tme_id)
        logger.debug("tme_id_to_v2: tme_id=%s", tme_id)
        try:
            text = await self._read_text(url, kind="concordance")
            logger.debug("tme_id_to_v2: text=%s", text)
            return _parse_json(text, {"tme_id": tme_id})
        except _LENIENT_ERRORS as e:
            logger.debug("tme_id_to_v2: err=%s", e)
            return None

    async def v2_api_call(self, api_url: str) -> Optional[Any]:
        """Fetch an arbitrary API URL with the key appended, or None on failure."""
        url = _with_api_key(api_url, self.api_key)
        logger.debug("v2_api_call: api_url=%s", api_url)
        try:
            text = await self._read_text(url, kind="v2")
            logger.debug("v2_api_call: text=%s", text)
            return _parse_json(text, {"api_url": api_url})
        except _LENIENT_ERRORS as e:
            logger.debug("v2_api_call: err=%s", e)
            return None

    def summarise_fetch_timings(self, history: int = 0) -> Dict[str, Any]:
        return self.timings.summarise(history)


# Process-wide default client (lazy-initialized)
_CLIENT: Optional[ContentClient] = None


def get_client() -> ContentClient:
    """Get the process-wide client, building it on first use.

    Raises:
        MissingApiKeyError: If CAPI_KEY is not set
    """
    global _CLIENT
    if _CLIENT is None:
        _CLIENT = ContentClient()
    return _CLIENT


def reset_client() -> None:
    """Drop the process-wide client (and with it the image URL cache)."""
    global _CLIENT
    _CLIENT = None
