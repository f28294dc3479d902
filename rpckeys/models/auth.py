from sqlalchemy import BigInteger, Column, String

from rpckeys.db.base import Base


class AuthNonce(Base):
    """Model for storing single-use wallet authentication nonces.

    Example:
    {
        "nonce": "9f2c...e41a",
        "created_at": 1763461800,
        "expires_at": 1763462100,
        "consumed_at": null
    }
    """

    __tablename__ = "auth_nonce"

    nonce = Column(String(128), primary_key=True)
    created_at = Column(BigInteger, nullable=False)
    expires_at = Column(BigInteger, nullable=False, index=True)
    consumed_at = Column(BigInteger, nullable=True)
