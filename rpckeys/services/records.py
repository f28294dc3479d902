"""
Read access to generic store documents.

Two trust levels share this surface:
- public reads return a whole document or a whole collection and are only
  served when RECORDS_PUBLIC_READ is enabled;
- gated reads return, from one document, only the sub-fields keyed by the
  caller's proven address.
The API key collection is never readable here, whatever the mode.
"""

from typing import Any, Dict, List, Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from rpckeys.core.config import settings
from rpckeys.core.errors import Forbidden, InvalidInput, NotFound
from rpckeys.db.session import get_db
from rpckeys.models.documents import Document
from rpckeys.services.api_keys import COLLECTION_PREFIX
from rpckeys.services.document_store import DocumentStore


def _as_record(document: Document) -> Dict[str, Any]:
    return {"id": document.document_id, **(document.data or {})}


class RecordReader:
    def __init__(self, store: DocumentStore, public_read: Optional[bool] = None) -> None:
        self.store = store
        self.public_read = settings.RECORDS_PUBLIC_READ if public_read is None else public_read

    def _check_collection(self, collection: str) -> None:
        if not collection:
            raise InvalidInput("collection is required")
        if collection.startswith(COLLECTION_PREFIX):
            raise Forbidden("This collection cannot be read")

    def _load(self, collection: str, document_id: str) -> Document:
        document = self.store.get(collection, document_id)
        if document is None:
            raise NotFound(f"Document '{document_id}' not found in collection '{collection}'")
        return document

    def _check_public(self) -> None:
        if not self.public_read:
            raise Forbidden("Public record reads are disabled")

    def read_collection(self, collection: str) -> List[Dict[str, Any]]:
        self._check_public()
        self._check_collection(collection)
        return [_as_record(doc) for doc in self.store.list_collection(collection)]

    def read_document(self, collection: str, document_id: str) -> Dict[str, Any]:
        self._check_public()
        self._check_collection(collection)
        return _as_record(self._load(collection, document_id))

    def read_owned_fields(self, collection: str, document_id: str, address: str) -> Dict[str, Any]:
        """Return ``{"id": ..., <address>: ...}`` with only the caller's own sub-fields."""
        self._check_collection(collection)
        if not document_id:
            raise InvalidInput("document is required")
        document = self._load(collection, document_id)
        owned = {
            key: value
            for key, value in (document.data or {}).items()
            if isinstance(key, str) and key.lower() == address.lower()
        }
        if not owned:
            raise NotFound("No data for this address in the document")
        return {"id": document.document_id, **owned}


def get_record_reader(db: Session = Depends(get_db)) -> RecordReader:
    return RecordReader(DocumentStore(db))
