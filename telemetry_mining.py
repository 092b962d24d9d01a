"""
Weapon pickup extraction from match telemetry.

The event format is defined upstream and changes without notice, so anything
that does not look like a weapon pickup is ignored rather than rejected.
"""
import logging
from typing import NamedTuple

logger = logging.getLogger(__name__)

PICKUP_EVENT = "LogItemPickup"
WEAPON_CATEGORY = "Weapon"


class WeaponPickup(NamedTuple):
    match_id: str
    weapon_id: str


def iter_weapon_pickups(events, match_id=""):
    for event in events or ():
        if not isinstance(event, dict) or event.get("_T") != PICKUP_EVENT:
            continue
        item = event.get("item")
        if not isinstance(item, dict) or item.get("category") != WEAPON_CATEGORY:
            continue
        weapon_id = item.get("itemId")
        if isinstance(weapon_id, str) and weapon_id:
            yield WeaponPickup(match_id, weapon_id)


class TelemetryMiner:
    def __init__(self, client):
        self._client = client

    def weapon_pickups(self, telemetry_url, match_id=""):
        if not telemetry_url:
            logger.info("Match %s has no telemetry asset.", match_id)
            return []
        events = self._client.get_telemetry(telemetry_url)
        pickups = list(iter_weapon_pickups(events, match_id))
        logger.info(
            "Match %s: %d telemetry events, %d weapon pickups.",
            match_id, len(events), len(pickups),
        )
        return pickups
