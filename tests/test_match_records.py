from __future__ import annotations

import datetime as dt

import pytest

from match_records import DedupGate, MatchFetcher, parse_match, telemetry_url, winning_team
from match_store import MemoryStore, PersistenceError
from tests.testkit import FailingStore, FakeApi, match_payload, participant, roster


def test_winning_team_accepts_string_true():
    rosters = [roster("r1", "true", ["p1", "p2"]), roster("r2", "false", ["p3"])]
    participants = [participant("p1", "A", "acc.a"), participant("p2", "B", "acc.b"), participant("p3", "C", "acc.c")]
    assert winning_team(rosters, participants) == ["A", "B"]


def test_winning_team_accepts_boolean_true():
    rosters = [roster("r1", False, ["p1"]), roster("r2", True, ["p2", "p3"])]
    participants = [participant("p1", "A", "acc.a"), participant("p2", "B", "acc.b"), participant("p3", "C", "acc.c")]
    assert winning_team(rosters, participants) == ["B", "C"]


def test_no_won_roster_means_empty_team():
    rosters = [roster("r1", "false", ["p1"]), roster("r2", "false", ["p2"])]
    participants = [participant("p1", "A", "acc.a"), participant("p2", "B", "acc.b")]
    assert winning_team(rosters, participants) == []


def test_missing_fields_default_to_zero_values():
    payload = match_payload(
        "m1",
        attributes={"mapName": "Baltic_Main"},
        rosters=[roster("r1", "false", ["p1"])],
        participants=[participant("p1", "A", "acc.a")],
    )
    detail = parse_match(payload, "m1")

    record = detail.record
    assert record.duration == 0
    assert record.isRanked is False
    assert record.gameMode == "Unknown"
    assert record.createdAt is None
    assert record.totalTeams == 1
    assert record.telemetryUrl is None

    doc = detail.participants[0].to_document()
    for key in ("kills", "damageDealt", "assists", "knockdowns", "headshotKills", "longestKill",
                "timeSurvived", "revives", "heals", "boosts", "walkDistance", "rideDistance",
                "swimDistance", "teamKills", "vehicleDestroys", "rank"):
        assert doc[key] == 0


def test_parse_reads_attributes_and_stats():
    payload = match_payload(
        "m1",
        rosters=[roster("r1", "true", ["p1"])],
        participants=[participant("p1", "A", "acc.a", kills=4, DBNOs=2, damageDealt=512.5, winPlace=1)],
        telemetry_url="https://telemetry-cdn.example/m1.json",
    )
    detail = parse_match(payload, "m1")

    assert detail.record.mapName == "Desert_Main"
    assert detail.record.duration == 1830
    assert detail.record.createdAt == dt.datetime(2024, 5, 1, 10, 15, tzinfo=dt.timezone.utc)
    assert detail.record.winningTeam == ["A"]
    assert detail.record.telemetryUrl == "https://telemetry-cdn.example/m1.json"
    stats = detail.participants[0]
    assert (stats.kills, stats.knockdowns, stats.damageDealt, stats.rank) == (4, 2, 512.5, 1)


def test_participant_without_player_id_is_skipped():
    payload = match_payload("m1", participants=[participant("p1", "A", "acc.a"), participant("p2", "B")])
    detail = parse_match(payload, "m1")

    assert [p.playerId for p in detail.participants] == ["acc.a"]
    assert detail.skipped_participants == 1


def test_empty_payload_never_raises():
    detail = parse_match({}, "m9")
    assert detail.record.matchId == "m9"
    assert detail.record.mapName == "Unknown"
    assert detail.record.winningTeam == []
    assert detail.participants == []


def test_telemetry_url_needs_matching_included_asset():
    payload = match_payload("m1", telemetry_url="https://telemetry-cdn.example/m1.json")
    payload["included"] = [item for item in payload["included"] if item["type"] != "asset"]
    assert telemetry_url(payload) is None


def test_non_string_reference_ids_are_ignored():
    payload = match_payload(
        "m1",
        rosters=[roster("r1", True, [["p1"], "p2"])],
        participants=[participant({"id": "p1"}, "A", "acc.a"), participant("p2", "B", "acc.b")],
        telemetry_url="https://telemetry-cdn.example/m1.json",
    )
    payload["data"]["relationships"]["assets"]["data"].insert(0, {"type": "asset", "id": ["bad"]})

    detail = parse_match(payload, "m1")

    assert detail.record.winningTeam == ["B"]
    assert detail.record.telemetryUrl == "https://telemetry-cdn.example/m1.json"
    assert len(detail.participants) == 2


def test_dedup_gate_skips_stored_matches():
    store = MemoryStore({"matches/m1": {"matchId": "m1"}})
    gate = DedupGate(store)
    assert gate.admit("m1") is False
    assert gate.admit("m2") is True
    assert gate.skipped == 1


def test_persist_writes_match_then_participants():
    payload = match_payload("m1", participants=[participant("p1", "A", "acc.a"), participant("p2", "B", "acc.b")])
    store = MemoryStore()
    fetcher = MatchFetcher(FakeApi(matches={"m1": payload}), store)

    result = fetcher.persist(fetcher.fetch("m1"))

    assert result.participants_written == 2
    assert store.writes == [
        "matches/m1",
        "matches/m1/participants/acc.a",
        "matches/m1/participants/acc.b",
    ]


def test_failed_match_write_leaves_no_orphan_participants():
    payload = match_payload("m1", participants=[participant("p1", "A", "acc.a")])
    store = FailingStore("matches/m1")
    fetcher = MatchFetcher(FakeApi(matches={"m1": payload}), store)

    with pytest.raises(PersistenceError):
        fetcher.persist(fetcher.fetch("m1"))
    assert store.writes == []


def test_failed_participant_write_keeps_siblings():
    payload = match_payload("m1", participants=[participant("p1", "A", "acc.a"), participant("p2", "B", "acc.b")])
    store = FailingStore("matches/m1/participants/acc.a")
    fetcher = MatchFetcher(FakeApi(matches={"m1": payload}), store)

    result = fetcher.persist(fetcher.fetch("m1"))

    assert (result.participants_written, result.participants_failed) == (1, 1)
    assert store.paths() == ["matches/m1", "matches/m1/participants/acc.b"]
