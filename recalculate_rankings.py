"""Recompute batch/institute ranks and percentiles for one test."""
import argparse
import logging
import sys

from db import get_supabase_uncached
from testhall.database import DatabaseClient

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    parser = argparse.ArgumentParser(description="Recalculate rankings for a test.")
    parser.add_argument("test_id", help="Test id")
    args = parser.parse_args()

    db = DatabaseClient(get_supabase_uncached())
    if db.recalculate_test_rankings(args.test_id):
        print(f"Rankings updated for test {args.test_id}")
    else:
        print(f"Failed to update rankings for test {args.test_id}")
        sys.exit(1)
