from __future__ import annotations

import pytest
from google.api_core import exceptions as gcp_exceptions

from firestore_store import FirestoreStore
from match_store import PersistenceError


class FakeSnapshot:
    def __init__(self, data):
        self._data = data
        self.exists = data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeDocument:
    def __init__(self, client, path):
        self._client = client
        self._path = path

    def get(self):
        if self._client.fail:
            raise gcp_exceptions.ServiceUnavailable("firestore down")
        return FakeSnapshot(self._client.docs.get(self._path))

    def set(self, data):
        if self._client.fail:
            raise gcp_exceptions.ServiceUnavailable("firestore down")
        self._client.docs[self._path] = dict(data)


class FakeFirestoreClient:
    def __init__(self, fail=False):
        self.docs = {}
        self.fail = fail

    def document(self, path):
        return FakeDocument(self, path)


def test_roundtrip_and_exists():
    client = FakeFirestoreClient()
    store = FirestoreStore(client=client)

    assert store.exists("matches/m1") is False
    store.set("matches/m1", {"matchId": "m1"})
    assert store.get("matches/m1") == {"matchId": "m1"}
    assert client.docs == {"matches/m1": {"matchId": "m1"}}


def test_api_errors_become_persistence_errors():
    store = FirestoreStore(client=FakeFirestoreClient(fail=True))
    with pytest.raises(PersistenceError):
        store.set("global_stats/weapon_meta", {})
    with pytest.raises(PersistenceError):
        store.get("matches/m1")


def test_collection_paths_are_rejected():
    store = FirestoreStore(client=FakeFirestoreClient())
    with pytest.raises(PersistenceError):
        store.set("matches", {})
