#!/usr/bin/env python3
"""
Scheduled entry point (daily): rebuild global_stats/weapon_meta from ranker matches.
"""
import sys

from dotenv import load_dotenv

from meta_pipeline import run_job, update_weapon_meta
from run_config import configure_logging


def main() -> int:
    load_dotenv(override=True)
    configure_logging()
    return 0 if run_job(update_weapon_meta) else 1


if __name__ == "__main__":
    sys.exit(main())
