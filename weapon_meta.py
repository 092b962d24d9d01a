"""
Run-local weapon pickup counts and the top-N ranking written at the end of a run.
"""
import datetime as dt
import logging

import pandas as pd

from match_store import WEAPON_META_PATH
from run_config import TOP_WEAPONS

logger = logging.getLogger(__name__)

UTC = dt.timezone.utc


class WeaponTally:
    """Counts keyed by weapon id; dict order doubles as first-seen order for ties."""

    def __init__(self):
        self._counts = {}

    def add(self, weapon_id, count=1):
        self._counts[weapon_id] = self._counts.get(weapon_id, 0) + count

    def update(self, pickups):
        for pickup in pickups:
            self.add(pickup.weapon_id)

    def counts(self):
        return dict(self._counts)

    @property
    def total(self) -> int:
        return sum(self._counts.values())

    def __len__(self):
        return len(self._counts)

    def top(self, top_n=TOP_WEAPONS):
        return rank_weapons(self._counts, top_n)


def rank_weapons(counts, top_n=TOP_WEAPONS):
    if not counts:
        return []
    frame = pd.DataFrame({"weaponId": list(counts.keys()), "pickCount": list(counts.values())})
    #stable so equal counts keep first-seen order
    frame = frame.sort_values("pickCount", ascending=False, kind="stable")
    frame = frame.head(top_n).reset_index(drop=True)
    return [
        {"rank": idx + 1, "weaponId": str(row.weaponId), "pickCount": int(row.pickCount)}
        for idx, row in enumerate(frame.itertuples(index=False))
    ]


def write_weapon_meta(store, entries, now=None) -> bool:
    if not entries:
        logger.warning("No weapon pickups observed; keeping the previous weapon meta.")
        return False
    store.set(WEAPON_META_PATH, {
        "updatedAt": now or dt.datetime.now(tz=UTC),
        "topWeapons": list(entries),
    })
    logger.info("Stored weapon meta with %d entries (top: %s).", len(entries), entries[0]["weaponId"])
    return True
