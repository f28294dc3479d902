"""
Per-owner API key lifecycle.

Keys live in one collection per deployment environment ("rpcKeys<ENVIRONMENT>"),
keyed by the key value itself. Every read or delete checks that the stored
owner equals the caller's proven address; listing only ever queries the
caller's own documents.

Key values are 128 random bits by default. Uniqueness is probabilistic: a
create never looks up the value first, it inserts conditionally and retries
with a fresh value if the insert hits an existing document.
"""

import logging
import re
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends
from eth_utils import to_checksum_address
from sqlalchemy.orm import Session

from rpckeys.core.config import settings
from rpckeys.core.errors import Forbidden, InternalError, NotFound
from rpckeys.db.session import get_db
from rpckeys.models.documents import Document
from rpckeys.services.document_store import DocumentExists, DocumentStore

logger = logging.getLogger(__name__)

COLLECTION_PREFIX = "rpcKeys"
ENVIRONMENT_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
MIN_KEY_BYTES = 16
MAX_CREATE_ATTEMPTS = 3


def collection_for_environment(environment: str) -> str:
    """Map a deployment environment to its key collection, e.g. "staging" -> "rpcKeysstaging"."""
    if not environment or not ENVIRONMENT_PATTERN.match(environment):
        raise ValueError(f"invalid environment name: {environment!r}")
    return f"{COLLECTION_PREFIX}{environment}"


# resolved once at startup
KEY_COLLECTION = collection_for_environment(settings.ENVIRONMENT)


def generate_key(num_bytes: int = MIN_KEY_BYTES) -> str:
    return secrets.token_hex(max(num_bytes, MIN_KEY_BYTES))


def _ms_to_datetime(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


@dataclass(frozen=True)
class APIKey:
    key: str
    owner: str
    created_at: datetime
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_document(cls, document: Document) -> "APIKey":
        data = document.data or {}
        return cls(
            key=document.document_id,
            owner=document.owner,
            created_at=_ms_to_datetime(document.created_at),
            metadata=dict(data.get("metadata") or {}),
        )


class ApiKeyManager:
    def __init__(
        self,
        store: DocumentStore,
        collection: str = KEY_COLLECTION,
        key_num_bytes: int = settings.KEY_NUM_BYTES,
        key_factory: Callable[[int], str] = generate_key,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.collection = collection
        self.key_num_bytes = key_num_bytes
        self.key_factory = key_factory
        self.clock = clock

    def create(self, owner: str, metadata: Optional[Dict[str, Any]] = None) -> APIKey:
        owner = to_checksum_address(owner)
        for attempt in range(1, MAX_CREATE_ATTEMPTS + 1):
            key_value = self.key_factory(self.key_num_bytes)
            created_at = int(self.clock() * 1000)
            data = {
                "keyValue": key_value,
                "ethereumAddress": owner,
                "createdAt": created_at,
                "metadata": metadata or {},
            }
            try:
                document = self.store.insert(
                    self.collection, key_value, data, owner=owner, created_at=created_at
                )
            except DocumentExists:
                logger.warning("generated key collided in %s (attempt %d)", self.collection, attempt)
                continue
            logger.info("created key %s... for %s in %s", key_value[:6], owner, self.collection)
            return APIKey.from_document(document)
        raise InternalError(reason=f"could not generate a unique key after {MAX_CREATE_ATTEMPTS} attempts")

    def list(self, owner: str) -> List[APIKey]:
        owner = to_checksum_address(owner)
        return [APIKey.from_document(doc) for doc in self.store.find_by_owner(self.collection, owner)]

    def delete(self, owner: str, key_value: str) -> None:
        """
        Delete one of the caller's keys.

        Raises:
            NotFound: no key with this value exists (including one already deleted)
            Forbidden: the key belongs to another address; the record is left untouched
        """
        owner = to_checksum_address(owner)
        document = self.store.get(self.collection, key_value)
        if document is None:
            raise NotFound("Key not found")
        if document.owner != owner:
            logger.warning("%s tried to delete a key owned by someone else", owner)
            raise Forbidden("Unauthorized to delete this key")
        if not self.store.delete(self.collection, key_value):
            # removed concurrently between the read and the delete
            raise NotFound("Key not found")
        logger.info("deleted key %s... for %s", key_value[:6], owner)


def get_key_manager(db: Session = Depends(get_db)) -> ApiKeyManager:
    return ApiKeyManager(DocumentStore(db))
