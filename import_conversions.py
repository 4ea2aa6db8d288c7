"""
import_conversions.py — merge a conversion CSV into the configured store

Usage:
  AFFILIATE_STORAGE_BACKEND=postgres AFFILIATE_DB_DSN=postgresql://... \
      python import_conversions.py conversions.csv

The CSV needs `affiliate_id` and `total_conversion` columns. Each row adds its
value to the affiliate's running total; importing the same file twice counts
it twice.
"""
import argparse
import logging
import sys
from pathlib import Path

from affiliate_platform.config import settings
from affiliate_platform.conversions.csv_reader import read_conversion_file
from affiliate_platform.conversions.merger import ConversionMerger
from affiliate_platform.storage.storage_factory import get_storage

log = logging.getLogger("affiliate.import")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Merge conversion totals from a CSV file.")
    parser.add_argument("csv_path", type=Path)
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.INFO))

    if not args.csv_path.is_file():
        log.error("File not found at %s", args.csv_path)
        return 1

    rows = read_conversion_file(args.csv_path)
    if not rows:
        log.info("No data to import.")
        return 0

    storage = get_storage()
    try:
        report = ConversionMerger(storage).merge_batch(rows)
    finally:
        storage.close()

    for affiliate_id, total in sorted(report.totals.items()):
        log.info("conversions for %s now %d", affiliate_id, total)
    log.info("Import complete: applied=%d skipped=%d", report.applied, report.skipped)
    return 0


if __name__ == "__main__":
    sys.exit(main())
