"""
Document store seam. Paths are slash separated collection/document pairs, e.g.
matches/{matchId}/participants/{playerId}.
"""
import copy

MATCHES = "matches"
PARTICIPANTS = "participants"
WEAPON_META_PATH = "global_stats/weapon_meta"
SAMPLE_CURSOR_PATH = "samples/recent_matches"


class PersistenceError(RuntimeError):
    pass


def match_path(match_id) -> str:
    return f"{MATCHES}/{match_id}"


def participant_path(match_id, player_id) -> str:
    return f"{MATCHES}/{match_id}/{PARTICIPANTS}/{player_id}"


def check_document_path(path):
    parts = path.split("/")
    if len(parts) < 2 or len(parts) % 2 or not all(parts):
        raise PersistenceError(f"not a document path: {path!r}")
    return path


class DocumentStore:
    def get(self, path):
        raise NotImplementedError

    def set(self, path, data):
        raise NotImplementedError

    def exists(self, path) -> bool:
        return self.get(path) is not None


class MemoryStore(DocumentStore):
    """Dict backed store for tests and dry runs."""

    def __init__(self, documents=None):
        self._documents = {}
        self.writes = []
        for path, data in (documents or {}).items():
            self._documents[check_document_path(path)] = copy.deepcopy(data)

    def get(self, path):
        doc = self._documents.get(check_document_path(path))
        return copy.deepcopy(doc) if doc is not None else None

    def set(self, path, data):
        self._documents[check_document_path(path)] = copy.deepcopy(data)
        self.writes.append(path)

    def paths(self, prefix=""):
        return sorted(p for p in self._documents if p.startswith(prefix))
