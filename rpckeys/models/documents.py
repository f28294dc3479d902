from sqlalchemy import JSON, BigInteger, Column, Index, String

from rpckeys.db.base import Base


class Document(Base):
    """Model for the generic document store.

    Documents are grouped in named collections (one per deployment environment
    for API keys) and keyed by a natural identifier. ``owner`` mirrors the
    owning address of owner-scoped documents so it can be queried.

    Example:
    {
        "collection": "rpcKeysproduction",
        "document_id": "3f9a0c6e1b7d4a25c8e0f1a2b3c4d5e6",
        "owner": "0x90F79bf6EB2c4f870365E785982E1f101E93b906",
        "data": {
            "keyValue": "3f9a0c6e1b7d4a25c8e0f1a2b3c4d5e6",
            "ethereumAddress": "0x90F79bf6EB2c4f870365E785982E1f101E93b906",
            "createdAt": 1763461800123,
            "metadata": {"telegram": "@someone"}
        },
        "created_at": 1763461800123
    }
    """

    __tablename__ = "documents"
    __table_args__ = (Index("ix_documents_collection_owner", "collection", "owner"),)

    collection = Column(String(128), primary_key=True)
    document_id = Column(String(255), primary_key=True)
    owner = Column(String(64), nullable=True)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(BigInteger, nullable=False)  # epoch milliseconds
