"""Pytest configuration and shared fixtures for content API tests."""
from __future__ import annotations

import json
import os
import shutil
import tempfile
from typing import Any, Dict, Generator
from unittest.mock import MagicMock, patch

import pytest


# ============================================================================
# Path and Directory Fixtures
# ============================================================================

@pytest.fixture
def temp_dir() -> Generator[str, None, None]:
    """Create a temporary directory for test files."""
    dirpath = tempfile.mkdtemp(prefix="content_api_test_")
    yield dirpath
    shutil.rmtree(dirpath, ignore_errors=True)


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def sample_config() -> Dict[str, Any]:
    """Return a sample configuration dictionary."""
    return {
        "network": {
            "max_attempts": 3,
            "backoff_s": 0.5,
            "backoff_multiplier": 2.0,
            "max_backoff_s": 5.0,
            "timeout_s": 20,
            "retry_requests": True,
            "headers": {"X-Team": "labs"},
        },
        "endpoints": {
            "search_url": "https://search.example.com/v1",
        },
    }


@pytest.fixture
def config_file(temp_dir: str, sample_config: Dict[str, Any]) -> str:
    """Create a temporary config file."""
    config_path = os.path.join(temp_dir, "config.json")
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(sample_config, f)
    return config_path


@pytest.fixture
def api_key() -> Generator[str, None, None]:
    """Set CAPI_KEY for the duration of a test."""
    with patch.dict(os.environ, {"CAPI_KEY": "test-key"}):
        yield "test-key"


@pytest.fixture(autouse=True)
def reset_config_cache():
    """Reset config cache before each test so no config.json leaks in."""
    import content_api.core.config as config_module
    original_cache = config_module._CONFIG_CACHE
    config_module._CONFIG_CACHE = {}
    yield
    config_module._CONFIG_CACHE = original_cache


@pytest.fixture(autouse=True)
def reset_default_client():
    """Drop the process-wide client between tests."""
    from content_api.client import reset_client
    reset_client()
    yield
    reset_client()


# ============================================================================
# Mock Response Fixtures
# ============================================================================

@pytest.fixture
def mock_response():
    """Create a mock HTTP response."""
    def _create_mock(
        status_code: int = 200,
        json_data: Any = None,
        text: str | None = None,
        reason: str | None = None,
    ) -> MagicMock:
        response = MagicMock()
        response.status_code = status_code
        response.ok = status_code < 400
        response.reason = reason or ("OK" if status_code < 400 else "Internal Server Error")
        if text is None:
            text = json.dumps(json_data if json_data is not None else {})
        response.text = text
        return response
    return _create_mock


@pytest.fixture
def mock_session():
    """A stand-in for requests.Session whose request() is configured per test."""
    session = MagicMock()
    return session


@pytest.fixture
def client(api_key: str, mock_session: MagicMock):
    """ContentClient wired to the mock session, single-shot requests."""
    from content_api.client import ContentClient
    return ContentClient(session=mock_session)


# ============================================================================
# Payload Fixtures
# ============================================================================

@pytest.fixture
def article_with_image() -> Dict[str, Any]:
    """Return an enriched content payload with a main image."""
    return {
        "id": "http://www.ft.com/thing/0f9b2c4e-7a1d-11ea-af44-daa3def9ae03",
        "title": "Markets rally as lockdowns ease",
        "mainImage": {
            "id": "http://api.ft.com/content/5d1c7a2e-7a1d-11ea-af44-daa3def9ae03",
            "members": [
                {"binaryUrl": "https://com.ft.imagepublish.upp-prod-eu.s3.amazonaws.com/abc123"},
                {"binaryUrl": "https://com.ft.imagepublish.upp-prod-eu.s3.amazonaws.com/def456"},
            ],
        },
    }


@pytest.fixture
def sapi_response() -> Dict[str, Any]:
    """Return a search API response with two hits and facets."""
    return {
        "query": {"queryString": 'people:"Barack Obama"'},
        "results": [
            {
                "indexCount": 2,
                "results": [
                    {
                        "id": "0f9b2c4e-7a1d-11ea-af44-daa3def9ae03",
                        "apiUrl": "http://api.ft.com/content/0f9b2c4e-7a1d-11ea-af44-daa3def9ae03",
                        "title": {"title": "Markets rally as lockdowns ease"},
                        "lifecycle": {"lastPublishDateTime": "2020-05-20T18:50:00Z"},
                    },
                    {
                        "id": "1a2b3c4d-7a1d-11ea-af44-daa3def9ae03",
                        "apiUrl": "http://api.ft.com/content/1a2b3c4d-7a1d-11ea-af44-daa3def9ae03",
                        "title": {"title": "Obama memoir sets record"},
                        "lifecycle": {"lastPublishDateTime": "2020-05-20T19:10:00Z"},
                    },
                ],
                "facets": [
                    {"name": "people", "facetElements": [{"name": "Barack Obama", "count": 2}]},
                ],
            }
        ],
    }
