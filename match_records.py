"""
Match detail projection and persistence.

Upstream omits attributes and stats inconsistently, so the payload is read
field by field with defaults instead of being deserialised structurally.
"""
import datetime as dt
import logging
import math
from dataclasses import asdict, dataclass, field

from match_store import PersistenceError, match_path, participant_path

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"

#record field -> upstream participant stats key
PARTICIPANT_STATS = {
    "rank": "winPlace",
    "kills": "kills",
    "damageDealt": "damageDealt",
    "assists": "assists",
    "knockdowns": "DBNOs",
    "headshotKills": "headshotKills",
    "longestKill": "longestKill",
    "timeSurvived": "timeSurvived",
    "revives": "revives",
    "heals": "heals",
    "boosts": "boosts",
    "walkDistance": "walkDistance",
    "rideDistance": "rideDistance",
    "swimDistance": "swimDistance",
    "teamKills": "teamKills",
    "vehicleDestroys": "vehicleDestroys",
}


@dataclass(frozen=True)
class MatchRecord:
    matchId: str
    mapName: str = UNKNOWN
    gameMode: str = UNKNOWN
    duration: int = 0
    isRanked: bool = False
    createdAt: dt.datetime | None = None
    totalTeams: int = 0
    winningTeam: list = field(default_factory=list)
    telemetryUrl: str | None = None

    def to_document(self):
        return asdict(self)


@dataclass(frozen=True)
class ParticipantRecord:
    playerId: str
    nickname: str = UNKNOWN
    rank: int = 0
    kills: int = 0
    damageDealt: float = 0
    assists: int = 0
    knockdowns: int = 0
    headshotKills: int = 0
    longestKill: float = 0
    timeSurvived: float = 0
    revives: int = 0
    heals: int = 0
    boosts: int = 0
    walkDistance: float = 0
    rideDistance: float = 0
    swimDistance: float = 0
    teamKills: int = 0
    vehicleDestroys: int = 0

    def to_document(self):
        return asdict(self)


@dataclass
class MatchDetail:
    record: MatchRecord
    participants: list = field(default_factory=list)
    skipped_participants: int = 0


@dataclass
class PersistResult:
    participants_written: int = 0
    participants_failed: int = 0


def _dict(value):
    return value if isinstance(value, dict) else {}


def _list(value):
    return value if isinstance(value, list) else []


def _text(value, default=UNKNOWN):
    if value is None:
        return default
    value = str(value).strip()
    return value or default


def _number(value):
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    if isinstance(value, float):
        return number
    return int(number) if number.is_integer() else number


def _flag(value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def _timestamp(value):
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


def _refs(resource, name):
    relation = _dict(_dict(_dict(resource).get("relationships")).get(name))
    ids = (ref.get("id") for ref in _list(relation.get("data")) if isinstance(ref, dict))
    return [ref_id for ref_id in ids if isinstance(ref_id, str) and ref_id]


def included_of_type(payload, kind):
    return [
        item for item in _list(_dict(payload).get("included"))
        if isinstance(item, dict) and item.get("type") == kind
    ]


def winning_team(rosters, participants):
    """Names of participants on the first roster marked won, in participant order."""
    winner = next((r for r in rosters if _flag(_dict(r.get("attributes")).get("won"))), None)
    if winner is None:
        return []
    member_ids = set(_refs(winner, "participants"))
    names = []
    for participant in participants:
        participant_id = participant.get("id")
        if isinstance(participant_id, str) and participant_id in member_ids:
            stats = _dict(_dict(participant.get("attributes")).get("stats"))
            names.append(_text(stats.get("name")))
    return names


def telemetry_url(payload):
    assets = {
        item["id"]: item for item in included_of_type(payload, "asset")
        if isinstance(item.get("id"), str)
    }
    for asset_id in _refs(_dict(payload).get("data"), "assets"):
        url = _dict(_dict(assets.get(asset_id)).get("attributes")).get("URL")
        if isinstance(url, str) and url:
            return url
    return None


def parse_participant(participant):
    stats = _dict(_dict(participant.get("attributes")).get("stats"))
    player_id = _text(stats.get("playerId"), default="")
    if not player_id:
        return None
    values = {name: _number(stats.get(key)) for name, key in PARTICIPANT_STATS.items()}
    return ParticipantRecord(playerId=player_id, nickname=_text(stats.get("name")), **values)


def parse_match(payload, match_id) -> MatchDetail:
    data = _dict(_dict(payload).get("data"))
    attrs = _dict(data.get("attributes"))
    rosters = included_of_type(payload, "roster")
    participants = included_of_type(payload, "participant")

    record = MatchRecord(
        matchId=match_id,
        mapName=_text(attrs.get("mapName")),
        gameMode=_text(attrs.get("gameMode")),
        duration=max(0, int(_number(attrs.get("duration")))),
        isRanked=_flag(attrs.get("isRanked")),
        createdAt=_timestamp(attrs.get("createdAt")),
        totalTeams=len(rosters),
        winningTeam=winning_team(rosters, participants),
        telemetryUrl=telemetry_url(payload),
    )

    detail = MatchDetail(record=record)
    for participant in participants:
        parsed = parse_participant(participant)
        if parsed is None:
            detail.skipped_participants += 1
            logger.info(
                "Match %s: participant %s has no player id, skipped.",
                record.matchId, participant.get("id"),
            )
            continue
        detail.participants.append(parsed)
    return detail


class DedupGate:
    """Point lookup against stored matches; known ids are dropped before any api call."""

    def __init__(self, store):
        self._store = store
        self.skipped = 0

    def admit(self, match_id) -> bool:
        if self._store.exists(match_path(match_id)):
            self.skipped += 1
            logger.info("Match %s already stored, skipping.", match_id)
            return False
        return True


class MatchFetcher:
    def __init__(self, client, store):
        self._client = client
        self._store = store

    def fetch(self, match_id) -> MatchDetail:
        payload = self._client.get_match(match_id)
        return parse_match(payload, match_id)

    def persist(self, detail) -> PersistResult:
        record = detail.record
        #parent first; if this raises no participant is written
        self._store.set(match_path(record.matchId), record.to_document())

        result = PersistResult()
        for participant in detail.participants:
            try:
                self._store.set(
                    participant_path(record.matchId, participant.playerId),
                    participant.to_document(),
                )
            except PersistenceError as exc:
                result.participants_failed += 1
                logger.error(
                    "Match %s: participant %s not stored: %s",
                    record.matchId, participant.playerId, exc,
                )
                continue
            result.participants_written += 1
        return result
