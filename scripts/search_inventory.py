#!/usr/bin/env python3
"""Search the vehicle inventory from the command line.

Loads the inventory from the live backend (or a JSON dump), applies the
same filter the public inventory page uses and prints the matches.

Usage
-----
Set environment variables and run::

    export APEX_URL="https://xyz.supabase.co"
    export APEX_API_KEY="..."
    python scripts/search_inventory.py --search bmw --price "Under $100k"

Options::

    --file FILE          Read vehicles from a JSON list instead of the backend
    --search TERM        Free-text term (make, model, year, tags)
    --status STATUS      all | available | sold | reserved | maintenance
    --make MAKE          Exact make (case-insensitive)
    --year YEAR          Exact model year
    --price BRACKET      "Under $100k" | "$100k - $200k" | "$200k - $300k" | "$300k+"
    --mileage BRACKET    "Under 5k" | "5k - 15k" | "15k - 30k" | "30k+"
    --derive-tags        Show the auto tags each match would get today
    --json               Output as machine-readable JSON
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pydantic import ValidationError  # noqa: E402

from apexauto import ApexClient, ApexConfig, FilterCriteria, Vehicle, derive_tags, filter_vehicles  # noqa: E402
from apexauto.inventory.tagging import tags_diverge  # noqa: E402
from apexauto.models.criteria import MileageBracket, PriceBracket, StatusFilter  # noqa: E402


def _load_file(path: str) -> list[Vehicle]:
    rows = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(rows, dict):
        rows = rows.get("vehicles", [])
    vehicles: list[Vehicle] = []
    for row in rows:
        try:
            vehicles.append(Vehicle.model_validate(row))
        except ValidationError as exc:
            print(f"  !! skipping row {row.get('id')!r}: {exc}", file=sys.stderr)
    return vehicles


async def _load_backend() -> list[Vehicle]:
    config = ApexConfig.from_env(realtime_enabled=False)
    async with ApexClient(config) as client:
        vehicles = await client.inventory.list_vehicles()
        if client.inventory.collection.using_fallback:
            print("  !! backend unavailable or empty; showing sample inventory", file=sys.stderr)
        return list(vehicles)


def _describe(vehicle: Vehicle, *, with_derived: bool) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "id": vehicle.id,
        "title": vehicle.title,
        "status": vehicle.status.value,
        "price": vehicle.price,
        "mileage": vehicle.mileage,
        "tags": vehicle.tags,
    }
    if with_derived:
        entry["derived_tags"] = derive_tags(vehicle.make, vehicle.year, vehicle.price, vehicle.mileage)
        entry["tags_diverge"] = tags_diverge(vehicle)
    return entry


def _format_line(entry: dict[str, Any]) -> str:
    price = f"${entry['price']:,}" if entry["price"] is not None else "n/a"
    mileage = f"{entry['mileage']:,} km" if entry["mileage"] is not None else "n/a"
    line = f"  [{entry['id']}] {entry['title']:<32} {entry['status']:<12} {price:>12} {mileage:>12}"
    if entry["tags"]:
        line += f"  tags={', '.join(entry['tags'])}"
    if "derived_tags" in entry:
        marker = " (differs)" if entry["tags_diverge"] else ""
        line += f"  derived={', '.join(entry['derived_tags']) or '-'}{marker}"
    return line


async def main() -> None:
    parser = argparse.ArgumentParser(description="Search the Apex Auto vehicle inventory.")
    parser.add_argument("--file", help="Read vehicles from a JSON file instead of the backend")
    parser.add_argument("--search", default="", help="Free-text term")
    parser.add_argument("--status", default=StatusFilter.ALL.value, choices=[s.value for s in StatusFilter])
    parser.add_argument("--make", help="Exact make")
    parser.add_argument("--year", help="Exact model year")
    parser.add_argument("--price", choices=[b.value for b in PriceBracket], help="Price bracket")
    parser.add_argument("--mileage", choices=[b.value for b in MileageBracket], help="Mileage bracket")
    parser.add_argument("--derive-tags", action="store_true", help="Show derived auto tags")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    criteria = FilterCriteria(
        search=args.search,
        status=args.status,
        make=args.make,
        year=args.year,
        price=args.price,
        mileage=args.mileage,
    )

    vehicles = _load_file(args.file) if args.file else await _load_backend()
    matches = filter_vehicles(vehicles, criteria)
    entries = [_describe(vehicle, with_derived=args.derive_tags) for vehicle in matches]

    if args.json_mode:
        payload = {"criteria": criteria.active_facets(), "total": len(vehicles), "matches": entries}
        print(json.dumps(payload, indent=2, default=str, ensure_ascii=False))
        return

    facets = ", ".join(f"{k}={v}" for k, v in criteria.active_facets().items()) or "none"
    print(f"Showing {len(matches)} of {len(vehicles)} vehicles (filters: {facets})")
    for entry in entries:
        print(_format_line(entry))


if __name__ == "__main__":
    asyncio.run(main())
