"""
Firestore implementation of the document store. set() is a full overwrite of
one document, which is what makes the cross-run dedup race harmless.
"""
import logging

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore

from match_store import DocumentStore, PersistenceError, check_document_path

logger = logging.getLogger(__name__)


class FirestoreStore(DocumentStore):
    def __init__(self, client=None, project=None):
        self._client = client if client is not None else firestore.Client(project=project)

    def get(self, path):
        ref = self._client.document(check_document_path(path))
        try:
            snapshot = ref.get()
        except gcp_exceptions.GoogleAPIError as exc:
            raise PersistenceError(f"read of {path} failed: {exc}") from exc
        return snapshot.to_dict() if snapshot.exists else None

    def set(self, path, data):
        ref = self._client.document(check_document_path(path))
        try:
            ref.set(data)
        except gcp_exceptions.GoogleAPIError as exc:
            raise PersistenceError(f"write of {path} failed: {exc}") from exc
        logger.debug("Wrote %s", path)
