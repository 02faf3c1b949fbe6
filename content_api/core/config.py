"""Configuration management for the content API client.

Handles loading and caching of the JSON configuration file with environment
variable support (CONTENT_API_CONFIG_PATH) and the API key lookup.

The configuration system provides:
- Centralized config loading with caching
- Network policy (attempt ceiling, backoff, timeout, extra headers)
- Endpoint templates for the enriched content, search and concordance APIs
- API key retrieval from the environment (CAPI_KEY)
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import MissingApiKeyError

logger = logging.getLogger(__name__)

_CONFIG_CACHE: Optional[Dict[str, Any]] = None

API_KEY_ENV = "CAPI_KEY"
CONFIG_PATH_ENV = "CONTENT_API_CONFIG_PATH"
DEFAULT_CONFIG_PATH = "config.json"

DEFAULT_ENDPOINTS: Dict[str, str] = {
    "enriched_content_url": "http://api.ft.com/enrichedcontent/",
    "search_url": "http://api.ft.com/content/search/v1",
    "concordances_url": "http://api.ft.com/concordances",
    "concordance_authority": "http://api.ft.com/system/FT-TME",
}


def _read_config_file(path: Path) -> Dict[str, Any]:
    """Parse one config file; anything but a readable JSON object yields {}."""
    if not path.is_file():
        logger.debug("No config file at %s; using defaults", path)
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.error("Ignoring unreadable config %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.error("Ignoring config %s: top level is %s, not an object", path, type(data).__name__)
        return {}
    return data


def get_config(force_reload: bool = False) -> Dict[str, Any]:
    """Return the parsed config file, reading it at most once per process.

    The file is named by CONTENT_API_CONFIG_PATH (``config.json`` in the
    working directory when unset). A missing, unreadable or non-object file
    counts as an empty config. ``force_reload`` re-reads the file.
    """
    global _CONFIG_CACHE
    if force_reload or _CONFIG_CACHE is None:
        _CONFIG_CACHE = _read_config_file(Path(os.environ.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH)))
    return _CONFIG_CACHE


def get_network_config() -> Dict[str, Any]:
    """Return the network policy with defaults filled in.

    Returns:
        Network configuration dictionary with all fields populated
    """
    cfg = get_config()
    net = dict(cfg.get("network", {}) or {})

    net.setdefault("max_attempts", 5)
    net.setdefault("backoff_s", 0.0)
    net.setdefault("backoff_multiplier", 1.0)
    net.setdefault("max_backoff_s", 60.0)
    net.setdefault("timeout_s", None)
    net.setdefault("retry_requests", False)

    if not isinstance(net.get("headers", {}), dict):
        net["headers"] = {}
    net.setdefault("headers", {})

    return net


def get_endpoint_config() -> Dict[str, str]:
    """Return endpoint URLs, with configured values overriding the defaults."""
    cfg = get_config()
    endpoints = dict(DEFAULT_ENDPOINTS)
    for key, value in (cfg.get("endpoints", {}) or {}).items():
        if value:
            endpoints[str(key)] = str(value)
    return endpoints


def get_api_key() -> str | None:
    """Get the content API key from the environment."""
    # Read at call time so keys exported after import are picked up
    return os.getenv(API_KEY_ENV) or None


def require_api_key() -> str:
    """Return the API key or raise MissingApiKeyError.

    Raises:
        MissingApiKeyError: If CAPI_KEY is unset or empty
    """
    key = get_api_key()
    if not key:
        raise MissingApiKeyError(f"{API_KEY_ENV} not specified in env")
    return key
