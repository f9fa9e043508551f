# grain_planner/main.py
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, List, Optional

import numpy as np

from grain_planner import config as cfg
from grain_planner.climate.cache import ResponseCache
from grain_planner.climate.openmeteo import OpenMeteoClient
from grain_planner.errors import AnalysisFailed, GrainPlannerError, InvalidRequest, error_payload
from grain_planner.explain.report import generate_forecast_report, generate_report, generate_validation_report
from grain_planner.planner.daily_forecast import analyze_forecast_for_location
from grain_planner.planner.integration import PlantingWindowAnalysisService
from grain_planner.planner.regions import default_location, find_closest_region, get_region_by_name
from grain_planner.schemas.inputs import Location, PlantingAnalysisRequest
from grain_planner.schemas.outputs import _to_plain
from grain_planner.yield_model.quarter_data import QuarterlyClimateDataset
from grain_planner.yield_model.validation import check_known_data_points, score_results

PROJECT_NAME = "GR-AI-N Planting Planner"
PROJECT_VERSION = "0.1.0"

logger = logging.getLogger("grain_planner")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="grain-planner",
        description="Best quarter (MLR) and 7-day planting window for rice at a Philippine location.",
    )
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("--daily-forecast", action="store_true", help="Score each day of the 16-day forecast instead")
    mode.add_argument("--validate-known", action="store_true", help="Check the MLR formulas against the 2025 reference yields")
    p.add_argument("--year", type=int, default=None, help="Target year (2025-2100), required for planting analysis")
    p.add_argument("--lat", type=float, default=None, help="Latitude")
    p.add_argument("--lon", type=float, default=None, help="Longitude")
    p.add_argument("--name", type=str, default=None, help="Location name (default: closest rice region)")
    p.add_argument("--region", type=str, default=None, help="Rice region by name, e.g. 'Cagayan'")
    p.add_argument("--quarter", type=int, default=None, help="Override the MLR quarter (1-4)")
    p.add_argument("--alternatives", action="store_true", help="Include alternative quarters and windows")
    p.add_argument("--forecast", action="store_true", help="Use the 16-day forecast instead of archive data")
    p.add_argument("--days", type=int, default=cfg.MAX_FORECAST_DAYS, help="Forecast days for --daily-forecast (1-16)")
    p.add_argument("--seed", type=int, default=None, help="Seed for the daily forecast uncertainty (default: none)")
    p.add_argument("--json", action="store_true", help="Print the analysis as JSON")
    p.add_argument("--quarterly-csv", type=str, default=None, help="CSV of quarter averages (overrides env)")
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def _resolve_location(args: argparse.Namespace) -> Location:
    if args.region:
        region = get_region_by_name(args.region)
        if region is None:
            raise InvalidRequest([f"Unknown region: {args.region}"])
        return region.location

    if args.lat is not None and args.lon is not None:
        name = args.name
        if not name:
            name = find_closest_region(args.lat, args.lon).region
        return Location(latitude=args.lat, longitude=args.lon, name=name)

    if args.lat is not None or args.lon is not None:
        raise InvalidRequest(["--lat and --lon must be given together"])

    return default_location()


def _print_json(obj: Any) -> None:
    print(json.dumps(obj, ensure_ascii=False, indent=2))


def _report_error(e: GrainPlannerError, as_json: bool) -> int:
    payload = error_payload(e)
    if as_json:
        _print_json(payload)
    else:
        logger.error("%s: %s", payload["error"], "; ".join(payload["details"]))
    return 2 if e.is_client_error else 1


def _run_validation(args: argparse.Namespace) -> int:
    results = check_known_data_points()
    accuracy = score_results(results)
    if args.json:
        _print_json({"success": True, "data": _to_plain(accuracy)})
    else:
        print(generate_validation_report(results, accuracy))
    return 0


def _run_daily_forecast(args: argparse.Namespace, location: Location) -> int:
    if not 1 <= args.days <= cfg.MAX_FORECAST_DAYS:
        raise InvalidRequest([f"Forecast days must be between 1 and {cfg.MAX_FORECAST_DAYS}"])
    errors = location.problems()
    if errors:
        raise InvalidRequest(errors)

    rng = np.random.default_rng(args.seed) if args.seed is not None else None
    client = OpenMeteoClient(cache=ResponseCache())
    try:
        analysis = analyze_forecast_for_location(client, location, days_ahead=args.days, rng=rng)
    except GrainPlannerError:
        raise
    except Exception as e:
        raise AnalysisFailed(e, step="daily forecast") from e

    if args.json:
        _print_json({"success": True, "data": analysis.to_dict()})
    else:
        print(generate_forecast_report(PROJECT_NAME, PROJECT_VERSION, analysis))
    return 0


def _run_planting_analysis(args: argparse.Namespace, location: Location) -> int:
    request = PlantingAnalysisRequest(
        year=args.year,
        location=location,
        include_alternatives=args.alternatives,
        use_historical_data=not args.forecast,
        override_quarter=args.quarter,
    )

    try:
        dataset = QuarterlyClimateDataset.default(args.quarterly_csv or cfg.QUARTERLY_WEATHER_CSV)
    except (FileNotFoundError, ValueError) as e:
        logger.error("Quarterly weather data: %s", e)
        return 1

    service = PlantingWindowAnalysisService(OpenMeteoClient(cache=ResponseCache()), dataset=dataset)
    analysis = service.analyze(request)

    if args.json:
        _print_json({"success": True, "data": analysis.to_dict()})
    else:
        print(generate_report(PROJECT_NAME, PROJECT_VERSION, analysis))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.year is None and not (args.daily_forecast or args.validate_known):
        parser.error("--year is required unless --daily-forecast or --validate-known is given")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.validate_known:
        return _run_validation(args)

    try:
        location = _resolve_location(args)
        if args.daily_forecast:
            return _run_daily_forecast(args, location)
        return _run_planting_analysis(args, location)
    except GrainPlannerError as e:
        return _report_error(e, args.json)


if __name__ == "__main__":
    sys.exit(main())
