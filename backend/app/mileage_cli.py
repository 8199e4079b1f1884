#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.app.db.core import init_db  # noqa: E402
from backend.app.http_client import close_http_client  # noqa: E402
from backend.app.logging_config import configure_structlog  # noqa: E402
from backend.app.mileage import (  # noqa: E402
    AllProvidersFailedError,
    ResolutionOptions,
    build_mileage_service,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Resolve truck lane distances from the terminal.")
    commands = parser.add_subparsers(dest="command", required=True)

    resolve = commands.add_parser("resolve", help="Resolve one lane")
    resolve.add_argument("origin", help="Origin location, e.g. 'Chicago, IL'")
    resolve.add_argument("destination", help="Destination location")
    resolve.add_argument("--equipment", help="Equipment class (dry_van, reefer, flatbed...)")
    resolve.add_argument("--hazmat", action="store_true", help="Route as hazardous materials")
    resolve.add_argument(
        "--stop",
        dest="stops",
        action="append",
        default=[],
        help="Intermediate stop; repeat for several",
    )
    resolve.add_argument("--json", action="store_true", help="Emit JSON instead of text")

    commands.add_parser("status", help="Show the active provider and its fallbacks")
    commands.add_parser("purge", help="Delete expired cache rows")
    return parser


async def _run(args: argparse.Namespace) -> int:
    service = build_mileage_service()
    try:
        if args.command == "status":
            print(service.status().model_dump_json(indent=2))
            return 0

        await init_db()
        if args.command == "purge":
            removed = await service.purge_expired()
            print(f"Removed {removed} expired cache row(s)")
            return 0

        options = ResolutionOptions(
            equipment=args.equipment, hazmat=args.hazmat, stops=tuple(args.stops)
        )
        try:
            result = await service.calculate(args.origin, args.destination, options)
        except AllProvidersFailedError as exc:
            if args.json:
                payload = {"failures": [failure.as_dict() for failure in exc.failures]}
                print(json.dumps(payload, indent=2))
            else:
                print(str(exc), file=sys.stderr)
            return 1

        if args.json:
            print(result.model_dump_json(indent=2))
        else:
            origin_label = f"{args.origin} -> {args.destination}"
            print(
                f"{origin_label}: {result.practical_miles} mi, "
                f"{result.drive_time_hours:.1f} h ({result.source}"
                f"{', cached' if result.cached else ''})"
            )
        return 0
    finally:
        await close_http_client()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_structlog(json_logs=False)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
