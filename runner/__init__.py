"""Command-line entry points.

This package contains:
- lookup: CLI for ad-hoc article, search and concordance lookups
"""

__all__ = [
    "lookup",
]
