#!/usr/bin/env python3
"""
Scheduled entry point (hourly): store new matches from the public samples endpoint.
"""
import sys

from dotenv import load_dotenv

from meta_pipeline import collect_match_data, run_job
from run_config import configure_logging


def main() -> int:
    load_dotenv(override=True)
    configure_logging()
    return 0 if run_job(collect_match_data) else 1


if __name__ == "__main__":
    sys.exit(main())
