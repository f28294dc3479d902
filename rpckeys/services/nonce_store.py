"""
Single-use authentication nonces.

A nonce is issued on GET /auth/nonce, embedded by the client in the message it
signs, and redeemed exactly once when that message is verified. Redemption is a
single conditional UPDATE, so when several requests race on the same nonce the
database picks exactly one winner.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends
from sqlalchemy import delete, update
from sqlalchemy.orm import Session

from rpckeys.core.config import settings
from rpckeys.core.errors import ExpiredNonce, UnknownOrConsumedNonce
from rpckeys.core.siwe_auth import generate_nonce
from rpckeys.db.session import get_db, store_errors
from rpckeys.models.auth import AuthNonce

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Nonce:
    value: str
    issued_at: int
    expires_at: int


class NonceStore:
    def __init__(
        self,
        db: Session,
        ttl_seconds: int = settings.NONCE_EXPIRY_SECONDS,
        num_bytes: int = settings.NONCE_NUM_BYTES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.db = db
        self.ttl_seconds = ttl_seconds
        self.num_bytes = num_bytes
        self.clock = clock

    def _now(self) -> int:
        return int(self.clock())

    def issue(self) -> Nonce:
        """Generate and persist a fresh nonce, dropping the ones that already expired."""
        now = self._now()
        nonce = Nonce(value=generate_nonce(self.num_bytes), issued_at=now, expires_at=now + self.ttl_seconds)
        with store_errors(self.db, "nonce issue"):
            self.db.execute(delete(AuthNonce).where(AuthNonce.expires_at <= now))
            self.db.add(AuthNonce(nonce=nonce.value, created_at=nonce.issued_at, expires_at=nonce.expires_at))
            self.db.commit()
        return nonce

    def redeem(self, value: str) -> None:
        """
        Mark the nonce consumed if it exists, is unexpired and was never consumed.

        Raises:
            ExpiredNonce: the nonce exists but its expiry has passed
            UnknownOrConsumedNonce: the nonce was never issued or was already redeemed
        """
        value = (value or "").strip()
        if not value:
            raise UnknownOrConsumedNonce(reason="empty nonce")

        now = self._now()
        with store_errors(self.db, "nonce redeem"):
            result = self.db.execute(
                update(AuthNonce)
                .where(
                    AuthNonce.nonce == value,
                    AuthNonce.consumed_at.is_(None),
                    AuthNonce.expires_at > now,
                )
                .values(consumed_at=now)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
            if result.rowcount == 1:
                return
            record: Optional[AuthNonce] = self.db.get(AuthNonce, value)

        if record is not None and record.consumed_at is None and record.expires_at <= now:
            logger.info("rejected expired nonce %s...", value[:8])
            raise ExpiredNonce(reason=f"nonce expired at {record.expires_at}")
        logger.info("rejected unknown or consumed nonce %s...", value[:8])
        raise UnknownOrConsumedNonce(reason="nonce unknown or already consumed")


def get_nonce_store(db: Session = Depends(get_db)) -> NonceStore:
    return NonceStore(db)
