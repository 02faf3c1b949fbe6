"""CLI entry point for ad-hoc content API lookups.

Each subcommand maps onto one ContentClient operation and prints the result
as JSON. Search commands can also write their hits to CSV.

Examples:
  content-lookup article https://www.ft.com/content/<uuid>
  content-lookup search --constraint "people:Barack Obama" --max-results 20
  content-lookup last-seconds 3600 "organisations:Apple" --csv hits.csv
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, List, Optional

import requests

# Ensure parent directory is in path for direct script execution
if __package__ is None or __package__ == "":
    sys.path.append(str(Path(__file__).resolve().parents[1]))

from content_api.client import ContentClient
from content_api.errors import ContentApiError, MissingApiKeyError
from content_api.export import write_search_hits_csv
from content_api.identifiers import extract_uuid
from content_api.model import SearchResult

logger = logging.getLogger(__name__)


def create_cli_parser() -> argparse.ArgumentParser:
    """Create argument parser for the lookup CLI.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        description="Content API lookups (articles, searches, concordances)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Examples:", 1)[1] if __doc__ and "Examples:" in __doc__ else None,
    )

    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level"
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to JSON config file (overrides CONTENT_API_CONFIG_PATH)."
    )
    parser.add_argument(
        "--timings",
        type=int,
        default=None,
        metavar="N",
        help="After the command, print the fetch timing summary with the last N records."
    )

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("article", help="Fetch an article's enriched content.")
    p.add_argument("uuid", help="Article UUID or URL containing one.")

    p = sub.add_parser("image", help="Resolve an article's main image URL.")
    p.add_argument("uuid", help="Article UUID or URL containing one.")

    p = sub.add_parser("search", help="Run a search.")
    p.add_argument("query", nargs="?", default="", help="Query string (takes precedence over constraints).")
    p.add_argument("--constraint", action="append", default=[], help="facet:value constraint; repeatable.")
    p.add_argument("--ontology", default=None, help="Facet ontology (default: people).")
    p.add_argument("--max-results", type=int, default=None)
    p.add_argument("--offset", type=int, default=None)
    p.add_argument("--csv", default=None, help="Write hits to this CSV file.")

    p = sub.add_parser("last-seconds", help="Search content published in the last N seconds.")
    p.add_argument("seconds", type=int)
    p.add_argument("entities", nargs="*", help="Optional facet:value constraints.")
    p.add_argument("--max-results", type=int, default=100)
    p.add_argument("--csv", default=None, help="Write hits to this CSV file.")

    p = sub.add_parser("entity", help="Search an entity (taxonomy:value) with facets.")
    p.add_argument("entity")
    p.add_argument("--csv", default=None, help="Write hits to this CSV file.")

    p = sub.add_parser("concordance", help="Resolve a legacy TME identifier.")
    p.add_argument("tme_id")

    p = sub.add_parser("v2", help="Call an arbitrary v2 API URL.")
    p.add_argument("url")

    return parser


def _article_id(value: str) -> str:
    return extract_uuid(value) or value


async def run_command(client: ContentClient, args: argparse.Namespace) -> Any:
    """Dispatch ``args.command`` to the client and return a JSON-ready value."""
    if args.command == "article":
        return await client.get_article(_article_id(args.uuid))
    if args.command == "image":
        return {"imageUrl": await client.get_article_image_url(_article_id(args.uuid))}
    if args.command == "concordance":
        return await client.tme_id_to_v2(args.tme_id)
    if args.command == "v2":
        return await client.v2_api_call(args.url)

    if args.command == "search":
        params: dict[str, Any] = {"query_string": args.query, "constraints": list(args.constraint)}
        if args.ontology:
            params["ontology"] = args.ontology
        if args.max_results is not None:
            params["max_results"] = args.max_results
        if args.offset is not None:
            params["offset"] = args.offset
        result = await client.search(params)
    elif args.command == "last-seconds":
        result = await client.search_last_seconds(args.seconds, args.entities, max_results=args.max_results)
    elif args.command == "entity":
        result = await client.search_by_entity_with_facets(args.entity)
    else:
        raise ValueError(f"Unknown command: {args.command}")

    _maybe_write_csv(result, getattr(args, "csv", None))
    return result.to_dict()


def _maybe_write_csv(result: SearchResult, csv_path: Optional[str]) -> None:
    if not csv_path:
        return
    if not result.ok:
        logger.warning("Search failed; writing empty CSV to %s", csv_path)
    write_search_hits_csv(result, csv_path)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point.

    Returns:
        Process exit status
    """
    parser = create_cli_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )

    # Reduce noisy connection logs from urllib3
    logging.getLogger("urllib3").setLevel(logging.ERROR)
    logging.getLogger("urllib3.connectionpool").setLevel(logging.ERROR)

    if args.config:
        os.environ["CONTENT_API_CONFIG_PATH"] = args.config

    try:
        client = ContentClient()
    except MissingApiKeyError as e:
        logger.error("Refusing to start: %s", e)
        return 1

    try:
        output = asyncio.run(run_command(client, args))
    except (ContentApiError, requests.exceptions.RequestException) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1

    print(json.dumps(output, indent=2, ensure_ascii=False))
    if args.timings is not None:
        print(json.dumps(client.summarise_fetch_timings(args.timings), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
