"""Command-line entry point: serve the API or print a snapshot from a fixture."""

import argparse
import asyncio
import json
import sys
from datetime import date

from roof_insights.config import configure_logging, get_settings


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    from roof_insights.api import create_app

    settings = get_settings()
    uvicorn.run(
        create_app(),
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
    )
    return 0


async def _snapshot(args: argparse.Namespace) -> int:
    from roof_insights.api import build_pipeline
    from roof_insights.models import Locale
    from roof_insights.pipeline import InsightRequest
    from roof_insights.store import InMemoryJobStore

    pipeline = build_pipeline(InMemoryJobStore.from_json(args.fixture))
    request = InsightRequest(
        user_id=args.user,
        organization_id=args.org,
        locale=Locale(args.lang),
    )
    response = await pipeline.run(request, today=args.today)
    print(json.dumps(response.to_dict(), indent=2, ensure_ascii=False))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="roof-insights",
        description="Roofing business insights",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s serve --port 8080
  %(prog)s snapshot jobs.json --org org-1 --lang es --today 2026-10-19
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", type=str, default=None, help="Bind address")
    serve.add_argument("--port", type=int, default=None, help="Bind port")

    snapshot = subparsers.add_parser("snapshot", help="Run the pipeline on a JSON fixture")
    snapshot.add_argument("fixture", type=str, help="Path to a fixture with one list per table")
    snapshot.add_argument("--user", type=str, default="cli", help="Calling user id")
    snapshot.add_argument("--org", type=str, default=None, help="Organization id")
    snapshot.add_argument("--lang", type=str, choices=["en", "es"], default="en")
    snapshot.add_argument(
        "--today",
        type=date.fromisoformat,
        default=None,
        help="Snapshot date (YYYY-MM-DD, default: today in UTC)",
    )

    args = parser.parse_args(argv)
    # stdout carries the snapshot JSON
    configure_logging(stream=sys.stderr if args.command == "snapshot" else None)

    if args.command == "serve":
        return _serve(args)
    return asyncio.run(_snapshot(args))


if __name__ == "__main__":
    sys.exit(main())
