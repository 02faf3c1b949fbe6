"""Exception types raised by the content API client.

Strict operations (article lookups) let these propagate to the caller;
lenient operations (search, concordance and v2 calls) log them and return a
sentinel instead.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Optional


def serialize_options(options: Optional[Dict[str, Any]]) -> str:
    """Render request options as JSON for diagnostics."""
    try:
        return json.dumps(options, default=str, sort_keys=True)
    except (TypeError, ValueError):
        return repr(options)


class ContentApiError(Exception):
    """Base class for all content API failures."""


class ConfigurationError(ContentApiError):
    """Required configuration is missing; the process must not start."""


class MissingApiKeyError(ConfigurationError):
    """The CAPI_KEY environment variable is not set."""


class RetriesExhaustedError(ContentApiError):
    """Every attempt allowed by the retry policy failed."""

    def __init__(self, url: str, attempts: int):
        self.url = url
        self.attempts = attempts
        super().__init__(f"fetch_with_retry: request failed too many times ({attempts}): url={url}")


class ResponseNotOkError(ContentApiError):
    """A single-shot request returned no response or a non-success status."""

    def __init__(
        self,
        status: Optional[int],
        reason: Optional[str],
        url: str,
        options: Optional[Dict[str, Any]] = None,
    ):
        self.status = status
        self.reason = reason
        self.url = url
        self.options = options
        super().__init__(
            f"fetch_text: response not ok: status={status}, reason={reason}, "
            f"url={url}, options={serialize_options(options)}"
        )


class ResponseParseError(ContentApiError):
    """A response body could not be decoded as JSON."""

    def __init__(self, error: Exception, text: str, params: Any = None):
        self.error = error
        self.text = text
        self.params = params
        super().__init__(f"JSON parse failed: err={error}, text={text[:200]!r}, params={params!r}")
