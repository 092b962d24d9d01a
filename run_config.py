"""
Shared constants and run settings for the match collection and weapon meta jobs.
"""
import logging
import os

API_BASE = "https://api.pubg.com"
PLATFORM = "pc-kakao"
SEASON_ID = "division.bro.official.pc-2018-37"
LEADERBOARD_QUEUE = "squad-fpp"
API_KEY_ENV = "PUBG_API_KEY"

#pubg allows ~10 requests per minute per key
DEFAULT_CALL_DELAY = 6.1
DEFAULT_TELEMETRY_DELAY = 1.0

#function timeout is 540s, keep some room for the final writes
DEFAULT_RUN_BUDGET = 510.0

TOP_WEAPONS = 10

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ConfigurationError(RuntimeError):
    pass


class PipelineSettings:
    def __init__(
        self,
        platform=PLATFORM,
        season_id=SEASON_ID,
        queue=LEADERBOARD_QUEUE,
        sample_offset=50,
        sample_size=100,
        player_batch_size=10,
        target_matches=10,
        max_candidates=15,
        call_delay=DEFAULT_CALL_DELAY,
        telemetry_delay=DEFAULT_TELEMETRY_DELAY,
        request_timeout=30.0,
        max_retries=1,
        run_budget=DEFAULT_RUN_BUDGET,
        top_n=TOP_WEAPONS,
    ):
        self.platform = platform
        self.season_id = season_id
        self.queue = queue
        self.sample_offset = sample_offset
        self.sample_size = sample_size
        self.player_batch_size = player_batch_size
        self.target_matches = target_matches
        self.max_candidates = max_candidates
        self.call_delay = call_delay
        self.telemetry_delay = telemetry_delay
        self.request_timeout = request_timeout
        self.max_retries = max_retries
        self.run_budget = run_budget
        self.top_n = top_n


def load_api_key(environ=None) -> str:
    env = os.environ if environ is None else environ
    api_key = (env.get(API_KEY_ENV) or "").strip()
    if not api_key:
        raise ConfigurationError(f"{API_KEY_ENV} secret is not set or available.")
    return api_key


def configure_logging(level=logging.INFO):
    logging.basicConfig(level=level, format=LOG_FORMAT)
