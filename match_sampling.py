"""
Candidate match discovery: the samples endpoint, or a walk over ranked players.
"""
import datetime as dt
import logging

from match_store import SAMPLE_CURSOR_PATH, PersistenceError
from pubg_api import UpstreamRequestError, batched, latest_match_id

logger = logging.getLogger(__name__)

UTC = dt.timezone.utc


class BoundedMatchSet:
    """Insertion ordered set of match ids that refuses to grow past its capacity."""

    def __init__(self, capacity):
        self.capacity = max(0, int(capacity))
        self._ids = {}

    def add(self, match_id) -> bool:
        if not isinstance(match_id, str) or not match_id or match_id in self._ids or self.is_full():
            return False
        self._ids[match_id] = None
        return True

    def is_full(self) -> bool:
        return len(self._ids) >= self.capacity

    def __contains__(self, match_id):
        return match_id in self._ids

    def __iter__(self):
        return iter(self._ids)

    def __len__(self):
        return len(self._ids)

    def to_list(self):
        return list(self._ids)


def random_sample(client, cap):
    match_ids = client.get_sample_match_ids()
    pool = BoundedMatchSet(cap)
    for match_id in match_ids:
        if pool.is_full():
            break
        pool.add(match_id)
    logger.info("[sample] %d match ids returned, %d kept as candidates.", len(match_ids), len(pool))
    return pool.to_list()


def leaderboard_walk(client, settings):
    player_ids = client.get_leaderboard_player_ids(settings.season_id, settings.queue)
    start = settings.sample_offset
    sample = player_ids[start:start + settings.sample_size]
    pool = BoundedMatchSet(min(settings.target_matches, settings.max_candidates))
    logger.info(
        "[walk] Sampling %d of %d rankers (offset %d) in batches of %d.",
        len(sample), len(player_ids), start, settings.player_batch_size,
    )

    for batch in batched(sample, settings.player_batch_size):
        if pool.is_full():
            break
        try:
            if settings.player_batch_size <= 1:
                players = [client.get_player(batch[0])]
            else:
                players = client.get_players(batch)
        except UpstreamRequestError as exc:
            logger.warning("[walk] Player lookup for %d ids failed: %s", len(batch), exc)
            continue
        for player in players:
            pool.add(latest_match_id(player))

    if pool.is_full():
        logger.info("[walk] Reached %d unique matches.", len(pool))
    else:
        logger.info("[walk] Player sample exhausted with %d unique matches.", len(pool))
    return pool.to_list()


def write_sample_cursor(store, match_ids, now=None) -> bool:
    doc = {
        "matchIds": list(match_ids),
        "updatedAt": now or dt.datetime.now(tz=UTC),
    }
    try:
        store.set(SAMPLE_CURSOR_PATH, doc)
    except PersistenceError as exc:
        logger.warning("[sample] Could not store sample cursor: %s", exc)
        return False
    return True
