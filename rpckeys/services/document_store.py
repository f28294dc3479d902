"""
Generic document store on top of SQLAlchemy.

Documents are JSON objects grouped in named collections and keyed by a natural
identifier, in the manner of a key/value document database. Every call is a
blocking round trip to the database; backend failures are translated by
``store_errors``.
"""

import time
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rpckeys.db.session import store_errors
from rpckeys.models.documents import Document


class DocumentExists(Exception):
    """A conditional insert found a document with the same id."""


def now_ms() -> int:
    return int(time.time() * 1000)


class DocumentStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, collection: str, document_id: str) -> Optional[Document]:
        with store_errors(self.db, "document get"):
            return self.db.get(Document, (collection, document_id))

    def insert(
        self,
        collection: str,
        document_id: str,
        data: Dict[str, Any],
        *,
        owner: Optional[str] = None,
        created_at: Optional[int] = None,
    ) -> Document:
        """
        Insert a document only if its id is free in the collection.

        Raises:
            DocumentExists: a document with this id already exists; nothing is overwritten
        """
        values = {
            "collection": collection,
            "document_id": document_id,
            "owner": owner,
            "data": data,
            "created_at": created_at if created_at is not None else now_ms(),
        }
        with store_errors(self.db, "document insert"):
            try:
                self.db.execute(insert(Document).values(**values))
                self.db.commit()
            except IntegrityError as e:
                self.db.rollback()
                raise DocumentExists(f"{collection}/{document_id}") from e
        return Document(**values)

    def delete(self, collection: str, document_id: str) -> bool:
        with store_errors(self.db, "document delete"):
            result = self.db.execute(
                delete(Document)
                .where(Document.collection == collection, Document.document_id == document_id)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        return result.rowcount == 1

    def find_by_owner(self, collection: str, owner: str) -> List[Document]:
        """Documents of one owner, newest first; equal timestamps ordered by id descending."""
        query = (
            select(Document)
            .where(Document.collection == collection, Document.owner == owner)
            .order_by(Document.created_at.desc(), Document.document_id.desc())
        )
        with store_errors(self.db, "document query"):
            return list(self.db.scalars(query))

    def list_collection(self, collection: str) -> List[Document]:
        query = select(Document).where(Document.collection == collection).order_by(Document.document_id)
        with store_errors(self.db, "collection read"):
            return list(self.db.scalars(query))
