"""
Ethereum Wallet Authentication Utilities

This module handles the cryptographic side of wallet sign-in using
Sign-In With Ethereum (EIP-4361) messages signed as EIP-191 personal messages.

Authentication Flow:
1. Backend generates a random nonce -> generate_nonce() (stored by NonceStore)
2. Frontend builds an EIP-4361 message embedding the nonce and signs it (personal_sign)
3. Frontend sends: message, signature
4. Backend verifies: verify_auth_message()
   - message domain is ours and the message is inside its validity window
   - nonce is redeemed (single use)
   - signer recovered from the signature equals the claimed address
   - Returns the checksummed address if valid

The signature verification uses:
- secp256k1 public key recovery (eth_account)
- eth_utils for address validation and checksumming
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Optional

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import to_checksum_address
from siwe import SiweMessage

from rpckeys.core.config import settings
from rpckeys.core.errors import (
    DomainMismatch,
    InvalidNonce,
    MessageExpired,
    NonceError,
    SignatureMismatch,
)
from rpckeys.core.siwe_message import optional_timestamp, parse_timestamp

if TYPE_CHECKING:
    from rpckeys.services.nonce_store import NonceStore

logger = logging.getLogger(__name__)

NONCE_NUM_BYTES = 32  # 32 bytes = 64 hex characters
MIN_RANDOM_BYTES = 16
SIGNATURE_NUM_BYTES = 65
CLOCK_SKEW_SECONDS = 60


def generate_nonce(num_bytes: int = NONCE_NUM_BYTES) -> str:
    """
    Generate a cryptographically secure random nonce for wallet authentication.

    The nonce is a random hex string the user embeds in the message they sign,
    which prevents replay of an old signature.

    Args:
        num_bytes: Number of random bytes to generate (default: 32 = 64 hex chars),
            never less than 16

    Returns:
        Hex-encoded random string (e.g., "a1b2c3d4...")
    """
    if num_bytes < MIN_RANDOM_BYTES:
        num_bytes = NONCE_NUM_BYTES
    return secrets.token_hex(num_bytes)


def _decode_signature(signature: str) -> bytes:
    """Helper: Decode a 0x-prefixed (or bare) hex signature to its 65 bytes."""
    value = signature.strip()
    if value[:2].lower() == "0x":
        value = value[2:]
    raw = bytes.fromhex(value)
    if len(raw) != SIGNATURE_NUM_BYTES:
        raise ValueError(f"signature must be {SIGNATURE_NUM_BYTES} bytes, got {len(raw)}")
    return raw


def recover_address(message_text: str, signature: str) -> str:
    """
    Recover the checksummed address that produced ``signature`` over ``message_text``.

    Raises:
        ValueError: the signature is not valid hex of the right length
    """
    signable = encode_defunct(text=message_text)
    return Account.recover_message(signable, signature=_decode_signature(signature))


def _check_validity_window(message: SiweMessage, now: datetime, max_age_seconds: int) -> None:
    expiration = optional_timestamp(message.expiration_time)
    if expiration is not None and now >= expiration:
        raise MessageExpired(reason=f"message expired at {message.expiration_time}")

    not_before = optional_timestamp(message.not_before)
    if not_before is not None and now < not_before:
        raise MessageExpired(reason=f"message not valid before {message.not_before}")

    issued_at = parse_timestamp(message.issued_at)
    if issued_at - now > timedelta(seconds=CLOCK_SKEW_SECONDS):
        raise MessageExpired(reason=f"message issued in the future at {message.issued_at}")

    if max_age_seconds > 0 and now - issued_at > timedelta(seconds=max_age_seconds):
        raise MessageExpired(reason=f"message issued at {message.issued_at} is older than {max_age_seconds}s")


def verify_auth_message(
    message: SiweMessage,
    signature: str,
    nonce_store: "NonceStore",
    *,
    text: Optional[str] = None,
    domain: Optional[str] = None,
    max_age_seconds: Optional[int] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Verify a signed authentication message and return the proven address.

    This is the only path by which an address becomes "proven". Checks run in
    order and the first failure wins:
    1. message.domain equals the service domain -> DomainMismatch
    2. message is inside its validity window -> MessageExpired
    3. the embedded nonce is redeemed -> InvalidNonce
    4. the recovered signer equals message.address (case-insensitive) -> SignatureMismatch

    ``text`` is the exact plaintext the wallet signed when the client sent it;
    otherwise the canonical text is rebuilt from the message fields.

    The nonce is consumed by step 3, so replaying the same (message, signature)
    always fails with InvalidNonce.

    Returns:
        Checksummed address of the signer
    """
    expected_domain = settings.AUTH_DOMAIN if domain is None else domain
    max_age = settings.AUTH_MESSAGE_MAX_AGE_SECONDS if max_age_seconds is None else max_age_seconds
    now = now or datetime.now(timezone.utc)

    if message.domain != expected_domain:
        raise DomainMismatch(reason=f"domain {message.domain!r} != {expected_domain!r}")

    _check_validity_window(message, now, max_age)

    try:
        nonce_store.redeem(message.nonce)
    except NonceError as e:
        raise InvalidNonce(reason=e.reason) from e

    try:
        recovered = recover_address(message.prepare_message() if text is None else text, signature)
    except Exception as e:
        raise SignatureMismatch(reason=f"signature recovery failed: {e}") from e

    if recovered.lower() != message.address.lower():
        raise SignatureMismatch(reason=f"recovered {recovered} for claimed {message.address}")

    address = to_checksum_address(message.address)
    logger.info("verified wallet signature for %s", address)
    return address
