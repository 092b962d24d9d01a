"""
The two scheduled jobs.

collect_match_data: samples endpoint -> dedup -> match detail -> store.
update_weapon_meta: leaderboard walk -> match detail -> telemetry -> top weapons.

Both run strictly sequentially under a wall-clock budget checked before each
match, and neither lets an error escape run_job.
"""
import logging
import time
from dataclasses import dataclass

from firestore_store import FirestoreStore
from match_records import DedupGate, MatchFetcher
from match_sampling import leaderboard_walk, random_sample, write_sample_cursor
from match_store import PersistenceError
from pubg_api import CallPacer, PubgApiClient, UpstreamRequestError
from run_config import ConfigurationError, PipelineSettings, load_api_key
from telemetry_mining import TelemetryMiner
from weapon_meta import WeaponTally, write_weapon_meta

logger = logging.getLogger(__name__)


class RunDeadline:
    def __init__(self, budget_seconds, clock=time.monotonic):
        self._clock = clock
        self._expires_at = clock() + budget_seconds

    def expired(self) -> bool:
        return self._clock() >= self._expires_at


@dataclass
class RunReport:
    job: str
    candidates: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    participants_written: int = 0
    participants_skipped: int = 0
    weapons_observed: int = 0
    cut_off: bool = False
    meta_written: bool = False

    def summary(self) -> str:
        text = (
            f"[{self.job}] candidates={self.candidates} processed={self.processed} "
            f"skipped={self.skipped} failed={self.failed} "
            f"participants={self.participants_written}"
        )
        if self.job == "weapon-meta":
            text += f" pickups={self.weapons_observed} meta_written={self.meta_written}"
        if self.cut_off:
            text += " (cut off by run budget)"
        return text


def _store_match(fetcher, detail, report):
    result = fetcher.persist(detail)
    report.participants_written += result.participants_written
    report.participants_skipped += detail.skipped_participants
    if result.participants_failed:
        #known gap: the match stays stored with partial participants
        logger.warning(
            "Match %s stored with %d participant writes failing.",
            detail.record.matchId, result.participants_failed,
        )


def collect_match_data(client, store, settings=None, *, deadline=None, now=None) -> RunReport:
    settings = settings or PipelineSettings()
    deadline = deadline or RunDeadline(settings.run_budget)
    report = RunReport(job="collect")

    try:
        candidates = random_sample(client, settings.max_candidates)
    except UpstreamRequestError as exc:
        logger.error("[collect] Sample request failed: %s", exc)
        report.failed += 1
        return report
    report.candidates = len(candidates)
    write_sample_cursor(store, candidates, now)

    gate = DedupGate(store)
    fetcher = MatchFetcher(client, store)
    for match_id in candidates:
        if deadline.expired():
            report.cut_off = True
            logger.warning("[collect] Run budget spent, dropping remaining candidates.")
            break
        try:
            if not gate.admit(match_id):
                report.skipped += 1
                continue
            detail = fetcher.fetch(match_id)
            _store_match(fetcher, detail, report)
        except UpstreamRequestError as exc:
            report.failed += 1
            logger.error("[collect] Match %s fetch failed: %s", match_id, exc)
            continue
        except PersistenceError as exc:
            report.failed += 1
            logger.error("[collect] Match %s not stored: %s", match_id, exc)
            continue
        report.processed += 1
        logger.info(
            "[collect] Stored match %s (%d/%d, %s, %ss).",
            match_id, report.processed, report.candidates,
            detail.record.mapName, detail.record.duration,
        )
    return report


def update_weapon_meta(client, store, settings=None, *, deadline=None, now=None) -> RunReport:
    settings = settings or PipelineSettings()
    deadline = deadline or RunDeadline(settings.run_budget)
    report = RunReport(job="weapon-meta")

    try:
        candidates = leaderboard_walk(client, settings)
    except UpstreamRequestError as exc:
        logger.error("[weapon-meta] Leaderboard request failed: %s", exc)
        report.failed += 1
        return report
    report.candidates = len(candidates)
    if not candidates:
        logger.warning("[weapon-meta] No recent matches found in the ranker sample.")
        return report

    gate = DedupGate(store)
    fetcher = MatchFetcher(client, store)
    miner = TelemetryMiner(client)
    tally = WeaponTally()
    for match_id in candidates:
        if deadline.expired():
            report.cut_off = True
            logger.warning("[weapon-meta] Run budget spent, ranking the matches mined so far.")
            break
        try:
            detail = fetcher.fetch(match_id)
        except UpstreamRequestError as exc:
            report.failed += 1
            logger.error("[weapon-meta] Match %s fetch failed: %s", match_id, exc)
            continue

        #the detail is already paid for; keep it if the match is new
        try:
            if gate.admit(match_id):
                _store_match(fetcher, detail, report)
        except PersistenceError as exc:
            report.failed += 1
            logger.error("[weapon-meta] Match %s not stored: %s", match_id, exc)

        try:
            pickups = miner.weapon_pickups(detail.record.telemetryUrl, match_id)
        except UpstreamRequestError as exc:
            report.failed += 1
            logger.error("[weapon-meta] Telemetry for %s failed: %s", match_id, exc)
            continue
        tally.update(pickups)
        report.processed += 1

    report.skipped = gate.skipped
    report.weapons_observed = tally.total
    logger.info("[weapon-meta] Finished analysing weapons. Found %d types.", len(tally))
    try:
        report.meta_written = write_weapon_meta(store, tally.top(settings.top_n), now)
    except PersistenceError as exc:
        report.failed += 1
        logger.error("[weapon-meta] Weapon meta not stored: %s", exc)
    return report


def build_client(api_key, settings, session=None, sleep=time.sleep):
    return PubgApiClient(
        api_key,
        settings.platform,
        pacer=CallPacer(settings.call_delay, sleep=sleep),
        session=session,
        request_timeout=settings.request_timeout,
        max_retries=settings.max_retries,
        telemetry_delay=settings.telemetry_delay,
    )


def run_job(job, *, settings=None, environ=None, store_factory=FirestoreStore, client_factory=build_client) -> bool:
    """Run one job end to end. True means the run completed, possibly with skipped items."""
    settings = settings or PipelineSettings()
    try:
        api_key = load_api_key(environ)
        store = store_factory()
        client = client_factory(api_key, settings)
        report = job(client, store, settings)
    except ConfigurationError as exc:
        logger.error("Run aborted: %s", exc)
        return False
    except Exception:  # noqa: BLE001 - the scheduler only sees the return value
        logger.exception("Run of %s crashed.", getattr(job, "__name__", job))
        return False
    logger.info(report.summary())
    return True
