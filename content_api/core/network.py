"""Network utilities for HTTP requests, retry policy, and session management.

Provides the shared HTTP session plus the two fetch primitives used by the
client: ``fetch_with_retry`` (bounded attempts until a success status) and
``fetch_text`` (single request, non-success status raised as an error).

Both are coroutines. The blocking ``requests`` call of each attempt runs via
``asyncio.to_thread`` so the event loop only suspends at the I/O boundary;
attempts within one call are sequential.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..errors import ResponseNotOkError, RetriesExhaustedError, serialize_options
from .config import get_network_config
from .timings import FetchTimings

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5

# Global session (lazy-initialized)
_SESSION: Optional[requests.Session] = None


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to attempt a request and how long to wait in between.

    The default retries immediately, up to MAX_ATTEMPTS attempts in total.
    """

    max_attempts: int = MAX_ATTEMPTS
    backoff_s: float = 0.0
    backoff_multiplier: float = 1.0
    max_backoff_s: float = 60.0

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the failed zero-indexed ``attempt``."""
        if self.backoff_s <= 0:
            return 0.0
        return min(self.backoff_s * (self.backoff_multiplier ** attempt), self.max_backoff_s)

    @classmethod
    def from_config(cls) -> "RetryPolicy":
        net = get_network_config()
        return cls(
            max_attempts=max(1, int(net.get("max_attempts", MAX_ATTEMPTS) or MAX_ATTEMPTS)),
            backoff_s=max(0.0, float(net.get("backoff_s", 0.0) or 0.0)),
            backoff_multiplier=float(net.get("backoff_multiplier", 1.0) or 1.0),
            max_backoff_s=float(net.get("max_backoff_s", 60.0) or 60.0),
        )


def build_session() -> requests.Session:
    """Build a configured requests session with default headers.

    Returns:
        Configured Session instance
    """
    session = requests.Session()

    # urllib3 must not retry on its own; attempts are counted by fetch_with_retry.
    retry = Retry(total=0, connect=0, read=0, redirect=5, raise_on_status=False)
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    session.headers.update({
        "User-Agent": "content-api-client/0.1 (+python-requests)",
        "Accept": "application/json, text/plain, */*",
    })

    extra = get_network_config().get("headers") or {}
    session.headers.update({str(k): str(v) for k, v in extra.items() if v is not None})

    return session


def get_session() -> requests.Session:
    """Get the global HTTP session (lazy initialization).

    Returns:
        Configured Session instance
    """
    global _SESSION
    if _SESSION is None:
        _SESSION = build_session()
    return _SESSION


def _is_acceptable(response: Any) -> bool:
    return response is not None and bool(getattr(response, "ok", False))


async def _send(
    session: requests.Session,
    url: str,
    options: Optional[Dict[str, Any]],
    kind: str,
    attempt: int,
    timings: Optional[FetchTimings],
) -> requests.Response:
    """Issue one request off the event loop and record its timing."""
    opts = dict(options or {})
    method = str(opts.pop("method", "GET") or "GET").upper()
    timeout = opts.pop("timeout", None)
    if timeout is None:
        timeout = get_network_config().get("timeout_s")

    started = time.perf_counter()
    response = None
    try:
        response = await asyncio.to_thread(
            session.request,
            method,
            url,
            headers=opts.get("headers"),
            params=opts.get("params"),
            data=opts.get("body"),
            timeout=timeout,
        )
        return response
    finally:
        if timings is not None:
            timings.record(
                kind,
                url,
                (time.perf_counter() - started) * 1000.0,
                status=getattr(response, "status_code", None),
                ok=_is_acceptable(response),
                attempt=attempt,
            )


async def fetch_with_retry(
    url: str,
    options: Optional[Dict[str, Any]] = None,
    policy: Optional[RetryPolicy] = None,
    session: Optional[requests.Session] = None,
    kind: str = "other",
    timings: Optional[FetchTimings] = None,
) -> requests.Response:
    """Request ``url`` until a success status or the attempt ceiling.

    Bad responses and transport errors are treated the same way: logged with
    the attempt number and serialized options, then retried.

    Args:
        url: URL to request
        options: Request options (method, headers, params, body, timeout)
        policy: Retry policy; defaults to MAX_ATTEMPTS immediate attempts
        session: Session to use; defaults to the global session
        kind: Label recorded in the fetch timings
        timings: Optional FetchTimings recorder

    Returns:
        The first response whose status reports success

    Raises:
        RetriesExhaustedError: If no attempt produced an acceptable response
    """
    policy = policy or RetryPolicy()
    session = session or get_session()

    for attempt in range(policy.max_attempts):
        try:
            response = await _send(session, url, options, kind, attempt, timings)
        except requests.exceptions.RequestException as e:
            logger.warning(
                "fetch_with_retry: request error: attempt=%d, options=%s, err=%s",
                attempt, serialize_options(options), e,
            )
        else:
            if _is_acceptable(response):
                return response
            logger.warning(
                "fetch_with_retry: response not ok: attempt=%d, status=%s, options=%s",
                attempt, getattr(response, "status_code", None), serialize_options(options),
            )

        if attempt + 1 < policy.max_attempts:
            delay = policy.delay_for(attempt)
            if delay > 0:
                await asyncio.sleep(delay)

    raise RetriesExhaustedError(url, policy.max_attempts)


async def fetch_text(
    url: str,
    options: Optional[Dict[str, Any]] = None,
    session: Optional[requests.Session] = None,
    kind: str = "other",
    timings: Optional[FetchTimings] = None,
) -> str:
    """Issue a single request and return the body as text.

    Raises:
        ResponseNotOkError: If there is no response or its status is not a success
        requests.exceptions.RequestException: On transport failure
    """
    session = session or get_session()
    response = await _send(session, url, options, kind, 0, timings)
    if not _is_acceptable(response):
        raise ResponseNotOkError(
            getattr(response, "status_code", None),
            getattr(response, "reason", None),
            url,
            options,
        )
    return response.text
