"""Core utilities for the content API client.

This package contains:
- config: Configuration loading, endpoints and API key lookup
- network: HTTP session, retry policy and the fetch primitives
- timings: Per-attempt fetch timing records
"""

__all__ = [
    "config",
    "network",
    "timings",
]
