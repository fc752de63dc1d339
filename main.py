"""
Hardbrücke通行量レポートのコマンドライン
"""
import argparse
import logging
import sys
from pathlib import Path

from analysis.errors import FrequencyError
from analysis.filters import workdays_only
from analysis.loader import FrequencyLoader
from analysis.report import FrequencyReport
from config import CACHE_FILENAME, DATA_FOLDER, YEARS
from database.db_manager import FrequencyDatabase
from scrapers.frequency_scraper import FrequencyScraper

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Weekday frequency report for Zurich Hardbrücke")
    p.add_argument("--data-folder", type=Path, default=DATA_FOLDER)
    p.add_argument("--years", type=int, nargs="+", default=YEARS)
    p.add_argument("--download", action="store_true", help="Download missing yearly CSVs first")
    p.add_argument("--no-cache", action="store_true", help="Do not read or write the snapshot")
    p.add_argument("--refresh-cache", action="store_true", help="Rebuild the snapshot from CSVs")
    p.add_argument("--start-year", type=int, default=2020)
    p.add_argument("--compare-years", type=int, nargs="+", default=[2023, 2024])
    p.add_argument("--all-weekdays", action="store_true", help="Include weekends")
    p.add_argument("--verbose", action="store_true")
    return p


def run(args) -> str:
    if args.download:
        FrequencyScraper().download_years(args.years, args.data_folder)

    cache = None if args.no_cache else FrequencyDatabase(args.data_folder / CACHE_FILENAME)
    try:
        loader = FrequencyLoader(args.data_folder, args.years, cache=cache)
        observations = loader.load(refresh=args.refresh_cache)
    finally:
        if cache is not None:
            cache.close()

    if not args.all_weekdays:
        observations = workdays_only(observations)

    report = FrequencyReport(observations, args.start_year, args.compare_years)
    return report.generate_summary_report()


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        print(run(args))
    except (FrequencyError, FileNotFoundError) as e:
        logger.error(f"Report failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
