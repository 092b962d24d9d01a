"""
PUBG API wrapper used by both jobs.

Calls are strictly sequential; every call is followed by a fixed pause so a run
stays under the per-key request ceiling.
"""
import gzip
import json
import logging
import time

import requests

from run_config import API_BASE, DEFAULT_CALL_DELAY

logger = logging.getLogger(__name__)

JSON_API = "application/vnd.api+json"
RETRY_STATUSES = (429, 500, 502, 503, 504)
MAX_BACKOFF = 30.0
GZIP_MAGIC = b"\x1f\x8b"


class UpstreamRequestError(RuntimeError):
    def __init__(self, url, message, status_code=None):
        self.url = url
        self.status_code = status_code
        super().__init__(f"{message} ({url})")


class CallPacer:
    """Fixed spacing between upstream calls. Pass a no-op sleep in tests."""

    def __init__(self, delay=DEFAULT_CALL_DELAY, sleep=time.sleep):
        self.delay = delay
        self._sleep = sleep

    def pause(self, delay=None):
        wait = self.delay if delay is None else delay
        if wait > 0:
            self._sleep(wait)

    def wait(self, seconds):
        if seconds > 0:
            self._sleep(seconds)


def batched(items, size):
    size = max(1, int(size))
    items = list(items)
    for start in range(0, len(items), size):
        yield items[start:start + size]


class PubgApiClient:
    def __init__(
        self,
        api_key,
        platform,
        *,
        pacer=None,
        session=None,
        request_timeout=30.0,
        max_retries=1,
        telemetry_delay=None,
    ):
        self.platform = platform
        self.pacer = pacer or CallPacer()
        self._session = session or requests.Session()
        self._session.headers.update({
            "Authorization": f"Bearer {api_key}",
            "Accept": JSON_API,
        })
        self._timeout = request_timeout
        self._max_retries = max(0, int(max_retries))
        self._telemetry_delay = telemetry_delay

    @property
    def shard_base(self) -> str:
        return f"{API_BASE}/shards/{self.platform}"

    def _get(self, url, params=None, headers=None, delay=None):
        backoff = self.pacer.delay or 1.0
        attempts = self._max_retries + 1
        last_error = None
        wait = backoff
        for attempt in range(attempts):
            if last_error is not None:
                logger.warning(
                    "%s (attempt %d/%d); retrying in %.1fs.",
                    last_error, attempt, attempts, wait,
                )
                self.pacer.wait(min(wait, MAX_BACKOFF))
                backoff = min(backoff * 1.5, MAX_BACKOFF)
            try:
                response = self._session.get(
                    url, params=params, headers=headers, timeout=self._timeout
                )
            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as exc:
                self.pacer.pause(delay)
                last_error = UpstreamRequestError(url, f"network failure: {exc}")
                wait = backoff
                continue
            except requests.exceptions.RequestException as exc:
                self.pacer.pause(delay)
                raise UpstreamRequestError(url, f"request failed: {exc}") from exc

            self.pacer.pause(delay)
            if response.status_code in RETRY_STATUSES:
                last_error = UpstreamRequestError(
                    url, f"HTTP {response.status_code}", status_code=response.status_code
                )
                wait = _retry_after(response, backoff)
                continue
            try:
                response.raise_for_status()
            except requests.exceptions.HTTPError as exc:
                raise UpstreamRequestError(
                    url, f"HTTP {response.status_code}", status_code=response.status_code
                ) from exc
            return response
        raise last_error

    def _get_json(self, url, params=None):
        response = self._get(url, params=params)
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamRequestError(url, "malformed JSON body", response.status_code) from exc
        if not isinstance(payload, dict):
            raise UpstreamRequestError(url, "unexpected JSON document", response.status_code)
        return payload

    def get_sample_match_ids(self):
        payload = self._get_json(f"{self.shard_base}/samples")
        refs = _relationship(payload.get("data"), "matches")
        return [ref["id"] for ref in refs if _is_id(ref.get("id"))]

    def get_leaderboard_player_ids(self, season_id, queue):
        url = f"{self.shard_base}/leaderboards/{season_id}/{queue}"
        payload = self._get_json(url)
        refs = _relationship(payload.get("data"), "players")
        player_ids = [ref["id"] for ref in refs if _is_id(ref.get("id"))]
        logger.info("Leaderboard %s/%s: %d ranked players.", season_id, queue, len(player_ids))
        return player_ids

    def get_players(self, player_ids):
        ids = [pid for pid in player_ids if _is_id(pid)]
        if not ids:
            return []
        payload = self._get_json(
            f"{self.shard_base}/players",
            params={"filter[playerIds]": ",".join(ids)},
        )
        data = payload.get("data")
        return [p for p in data if isinstance(p, dict)] if isinstance(data, list) else []

    def get_player(self, player_id):
        payload = self._get_json(f"{self.shard_base}/players/{player_id}")
        data = payload.get("data")
        return data if isinstance(data, dict) else {}

    def get_match(self, match_id):
        return self._get_json(f"{self.shard_base}/matches/{match_id}")

    def get_telemetry(self, url):
        #telemetry lives on a public cdn, the api key is not sent there
        response = self._get(
            url,
            headers={"Authorization": None, "Accept-Encoding": "gzip"},
            delay=self._telemetry_delay,
        )
        raw = response.content or b""
        try:
            if raw[:2] == GZIP_MAGIC:
                raw = gzip.decompress(raw)
            events = json.loads(raw)
        except (OSError, ValueError) as exc:
            raise UpstreamRequestError(url, "unreadable telemetry body", response.status_code) from exc
        if not isinstance(events, list):
            raise UpstreamRequestError(url, "telemetry is not an event array", response.status_code)
        return events


def latest_match_id(player):
    refs = _relationship(player, "matches")
    if not refs:
        return None
    match_id = refs[0].get("id")
    return match_id if _is_id(match_id) else None


def _is_id(value):
    return isinstance(value, str) and bool(value)


def _relationship(resource, name):
    if not isinstance(resource, dict):
        return []
    relationships = resource.get("relationships")
    relation = relationships.get(name) if isinstance(relationships, dict) else None
    refs = relation.get("data") if isinstance(relation, dict) else None
    if not isinstance(refs, list):
        return []
    return [ref for ref in refs if isinstance(ref, dict)]


def _retry_after(response, default):
    value = response.headers.get("Retry-After")
    try:
        return float(value) if value else default
    except ValueError:
        return default
