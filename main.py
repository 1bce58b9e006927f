"""
Rainz: Multi-Source Forecast Aggregation

Polls every configured weather model for one location, ranks and blends
the answers, and reduces the ensemble runs to hourly uncertainty bands.

Sources: Open-Meteo (ECMWF, GFS, DWD ICON, UKMO, METEOFRANCE, JMA, GEM)
         + WeatherAPI.com (key required) + Met.no
Blend:   Unweighted mean current temperature, everything else from the
         most accurate source
Bands:   Nearest-rank median/p10/p90 over up to 51 ensemble members

Usage:
    python main.py forecast --lat 40.71 --lon -74.01 --name "New York"
    python main.py serve --port 8000
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

from colorama import Fore, Style, init
from dotenv import load_dotenv

from rainz.aggregator import SourceAggregator
from rainz.config import Settings
from rainz.demo import DEMO_MESSAGE, build_demo_sources
from rainz.errors import RainzError
from rainz.fetcher import fetch_all_sources, fetch_ensemble_forecast
from rainz.logging_setup import configure_logging

# Initialize colorama for Windows terminal colors
init()

logger = logging.getLogger(__name__)

CONFIDENCE_COLORS = {
    "high": Fore.GREEN,
    "medium": Fore.YELLOW,
    "low": Fore.RED,
}


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description='Rainz - multi-source weather aggregation and ensemble bands'
    )
    sub = parser.add_subparsers(dest="command", required=True)

    forecast = sub.add_parser("forecast", help="Aggregate all sources for one location")
    forecast.add_argument("--lat", type=float, required=True, help="Latitude (-90..90)")
    forecast.add_argument("--lon", type=float, required=True, help="Longitude (-180..180)")
    forecast.add_argument("--name", default=None, help="Display name for the location")
    forecast.add_argument("--json", dest="json_path", default=None,
                          help="Also write the aggregated result to this JSON file")

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser.parse_args(argv)


def print_banner():
    """Print the system banner."""
    print(f"\n{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}")
    print(f"{Fore.CYAN}   RAINZ: MULTI-SOURCE FORECAST AGGREGATION{Style.RESET_ALL}")
    print(f"{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}")
    print(f"{Fore.WHITE}   [SOURCES] Open-Meteo x7 + WeatherAPI + Met.no{Style.RESET_ALL}")
    print(f"{Fore.WHITE}   [BANDS]   Ensemble median / p10 / p90, 72h{Style.RESET_ALL}")
    print()


async def run_forecast(args, settings: Settings) -> int:
    """Fetch, aggregate and print one location."""
    start_time = datetime.now()
    print_banner()

    logger.info("=" * 60)
    logger.info(f"[run_forecast] Rainz run for ({args.lat}, {args.lon}) at {start_time.isoformat()}")
    logger.info("=" * 60)

    if not (-90 <= args.lat <= 90 and -180 <= args.lon <= 180):
        print(f"{Fore.RED}ERROR: latitude/longitude out of range{Style.RESET_ALL}")
        return 2

    print(f"{Fore.WHITE}STEP 1: Fetching Weather Sources{Style.RESET_ALL}")
    print("-" * 40)
    sources = await fetch_all_sources(args.lat, args.lon, args.name, settings)

    demo = False
    if not sources:
        print(f"      {Fore.RED}UNAVAILABLE{Style.RESET_ALL} - {DEMO_MESSAGE}")
        logger.warning("[run_forecast] Every provider failed, falling back to demo data")
        sources = build_demo_sources(args.lat, args.lon)
        demo = True

    for source in sources:
        print(f"      {Fore.GREEN}OK{Style.RESET_ALL} - {source.source:<12} "
              f"{source.current_weather.temperature:>4}F  {source.current_weather.condition} "
              f"(accuracy {source.accuracy:.2f})")

    print(f"\n{Fore.WHITE}STEP 2: Aggregation{Style.RESET_ALL}")
    print("-" * 40)
    result = SourceAggregator().aggregate(sources)
    agreement_color = Fore.GREEN if result.model_agreement > 60 else Fore.YELLOW
    print(f"   Most accurate:   {result.most_accurate.source}")
    print(f"   Aggregated temp: {result.aggregated.current_weather.temperature}F")
    print(f"   Model agreement: {agreement_color}{result.model_agreement:.0f}%{Style.RESET_ALL}")

    print(f"\n{Fore.WHITE}STEP 3: Ensemble Uncertainty{Style.RESET_ALL}")
    print("-" * 40)
    ensemble = None
    try:
        ensemble = await fetch_ensemble_forecast(args.lat, args.lon, settings)
        color = CONFIDENCE_COLORS.get(ensemble.confidence, Fore.WHITE)
        kind = "SYNTHETIC" if ensemble.synthetic else f"{ensemble.member_count} members"
        print(f"   Confidence: {color}{ensemble.confidence.upper()}{Style.RESET_ALL} ({kind}, "
              f"{len(ensemble.time)}h)")
        if ensemble.time:
            print(f"   Next hour:  {ensemble.temperature.median[0]}F "
                  f"[{ensemble.temperature.p10[0]}..{ensemble.temperature.p90[0]}]")
    except RainzError as e:
        logger.error(f"[run_forecast] Ensemble unavailable: {e}")
        print(f"   {Fore.YELLOW}UNAVAILABLE{Style.RESET_ALL} - {e.public_message}")

    if args.json_path:
        payload = result.to_dict()
        payload["demo"] = demo
        if ensemble is not None:
            payload["ensemble"] = ensemble.to_dict()
        json_path = Path(args.json_path)
        json_path.parent.mkdir(parents=True, exist_ok=True)
        json_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        logger.info(f"[run_forecast] Result saved to: {json_path}")
        print(f"\n   Raw data: {json_path}")

    duration = (datetime.now() - start_time).total_seconds()
    print(f"\n{Fore.GREEN}{'=' * 60}{Style.RESET_ALL}")
    print(f"{Fore.GREEN}   DONE{' (DEMO DATA)' if demo else ''} in {duration:.2f} seconds{Style.RESET_ALL}")
    print(f"{Fore.GREEN}{'=' * 60}{Style.RESET_ALL}\n")
    return 0


def run_server(args, settings: Settings) -> int:
    import uvicorn

    from rainz.api import create_app

    logger.info(f"[run_server] Serving on {args.host}:{args.port}")
    uvicorn.run(create_app(settings), host=args.host, port=args.port)
    return 0


def main(argv=None) -> int:
    """Main entry point for the Rainz CLI."""
    load_dotenv()
    settings = Settings.from_env()
    configure_logging(settings)

    args = parse_args(argv)
    if args.command == "serve":
        return run_server(args, settings)

    try:
        return asyncio.run(run_forecast(args, settings))
    except RainzError as e:
        logger.error(f"FAILED: {e}", exc_info=True)
        print(f"\n{Fore.RED}ERROR: {e.public_message}{Style.RESET_ALL}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
