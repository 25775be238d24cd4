#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fetch and store businesses for one (category, city, state) triple.",
    )
    parser.add_argument("--category", required=True, help="Category slug, e.g. pizza-restaurant.")
    parser.add_argument("--state", required=True, help="State abbreviation or full name.")
    parser.add_argument("--city", required=True, help="City name or slug.")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Ignore the fetch ledger and call the provider even if the triple was fetched before.",
    )
    return parser.parse_args()


def main() -> None:
    args = _parse_args()

    from directory.config import settings, validate_provider_credentials
    from directory.database import SessionLocal
    from directory.errors import CategoryNotFound, InvalidLocation
    from directory.providers import DataForSEOClient
    from directory.services.business_repository import BusinessRepository
    from directory.services.fetch_ledger import FetchLedger
    from directory.services.ingestion_service import IngestionService
    from directory.services.location_service import LocationResolver
    from directory.services.reference_data import get_reference_data
    from directory.telemetry.logging_utils import configure_logging

    configure_logging(settings.log_level, settings.perf_log_level)
    validate_provider_credentials(settings)

    reference_data = get_reference_data()
    category = reference_data.find_category(args.category)
    if category is None:
        raise SystemExit(str(CategoryNotFound(args.category)))
    try:
        location = LocationResolver(reference_data).resolve(args.city, args.state)
    except InvalidLocation as exc:
        raise SystemExit(str(exc)) from None

    provider = DataForSEOClient.from_settings(settings)
    session = SessionLocal()
    try:
        ledger = FetchLedger(session, ttl_days=settings.fetch_ledger_ttl_days)
        service = IngestionService(
            provider,
            BusinessRepository(session),
            ledger,
            cost_per_request=settings.provider_cost_per_request_usd,
            default_country_code=settings.default_country_code,
        )
        written = service.ingest(category.name, location, force=args.force)
        print(
            "Prefetch complete: "
            f"category={category.name!r}, city={location.city!r}, state={location.state_abbr}, "
            f"businesses_written={written}"
        )
    finally:
        session.close()
        provider.close()


if __name__ == "__main__":
    main()
