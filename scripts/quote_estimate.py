#!/usr/bin/env python
"""
Quote an estimate against a tariff directory and print its trace.

Usage:
    python scripts/quote_estimate.py
    python scripts/quote_estimate.py --date 2025-06-14 --crew 3 --hours 2.5 --pickup-stairs 1
    python scripts/quote_estimate.py --tariffs path/to/tariffs --weight 5000 --volume 700
"""
import argparse
import json
import sys
from datetime import date
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from tariff_engine.config.logging_config import setup_logging
from tariff_engine.config.settings import get_settings
from tariff_engine.engine import EstimateRequest, PricingEngine, SiteAccess
from tariff_engine.errors import EngineError
from tariff_engine.tariffs import DirectoryTariffRepository, TariffResolver


def main():
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Quote a moving estimate",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--tariffs", type=Path, default=settings.tariffs_dir,
                        help="Tariff library directory (one subdirectory per tariff)")
    parser.add_argument("--date", type=date.fromisoformat, default=date.today(), help="Move date (YYYY-MM-DD)")
    parser.add_argument("--crew", type=int, default=3)
    parser.add_argument("--hours", default="2.5", help="Estimated hours")
    parser.add_argument("--weight", default="1000", help="Total weight in lbs")
    parser.add_argument("--volume", default="140", help="Total volume in cu ft")
    parser.add_argument("--distance", default="12", help="Distance in miles")
    parser.add_argument("--service", default="Moving")
    parser.add_argument("--opportunity", default="Local")
    parser.add_argument("--pickup-stairs", type=int, default=0)
    parser.add_argument("--delivery-stairs", type=int, default=0)
    parser.add_argument("--holiday", action="store_true")
    parser.add_argument("--special-item", action="append", default=[], help="Special item, e.g. piano (repeatable)")
    parser.add_argument("--season", default="standard", choices=["peak", "standard", "off_peak"])
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    args = parser.parse_args()

    setup_logging()

    engine = PricingEngine(TariffResolver(DirectoryTariffRepository(args.tariffs)))
    request = EstimateRequest(
        move_date=args.date,
        total_weight=args.weight,
        total_volume=args.volume,
        distance=args.distance,
        crew_size=args.crew,
        estimated_hours=args.hours,
        service_type=args.service,
        opportunity_type=args.opportunity,
        pickup=SiteAccess(stairs_flights=args.pickup_stairs),
        delivery=SiteAccess(stairs_flights=args.delivery_stairs),
        is_holiday=args.holiday,
        special_items=frozenset(args.special_item),
        seasonal_period=args.season,
    )

    try:
        result = engine.calculate_estimate(request)
    except EngineError as e:
        print(f"\n❌ ESTIMATE FAILED: {e.message}")
        print(json.dumps(e.to_dict(), indent=2))
        sys.exit(1)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return

    print("=" * 60)
    print(f"ESTIMATE  {result.configuration_id} v{result.configuration_version}")
    print("=" * 60)
    for item in result.breakdown:
        print(f"  {item.name:<40} ${item.amount:>10.2f}")
    print("-" * 60)
    print(f"  {'Final price':<40} ${result.final_price:>10.2f}")
    print()
    print("Trace:")
    print(result.get_trace_text())
    for warning in result.warnings:
        print(f"  WARNING: {warning}")
    print(f"\nHash: {result.deterministic_hash}")


if __name__ == "__main__":
    main()
