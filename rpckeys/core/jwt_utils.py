"""
JWT Session Utilities

This module issues and validates the session token handed out after a wallet
signature has been verified. The token is stateless: the server keeps no
session table and no revocation list, so expiry alone bounds how long a leaked
token stays usable. Clients drop the token when the wallet disconnects or
switches account.

Flow:
1. User verifies wallet signature -> create_session_token() generates JWT
2. User sends the JWT back (Authorization: Bearer <token> header or session cookie)
   -> validate_session_token() returns the proven address
3. Protected endpoints use get_current_address() from dependencies.py

The JWT contains:
- sub: The verified, checksummed wallet address (never changes for a token)
- iat: Issued at timestamp
- exp: Expiration timestamp (configurable via ACCESS_TOKEN_EXPIRE_SECONDS)
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from eth_utils import is_hex_address, to_checksum_address

from rpckeys.core.config import settings
from rpckeys.core.errors import InvalidSession, SessionExpired


if not settings.ENCODE_KEY:
    raise RuntimeError("ENCODE_KEY is not configured")


def create_session_token(address: str, *, now: Optional[datetime] = None) -> str:
    """
    Create a signed session token for an address proven by verify_auth_message().

    Args:
        address: The verified wallet address
        now: Issue time, defaults to the current UTC time

    Returns:
        A JWT token string usable as a bearer token or session cookie

    Raises:
        ValueError: If address is empty or not a hex address
    """
    if not address or not is_hex_address(address):
        raise ValueError("a valid address is required")

    now = now or datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": to_checksum_address(address),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=settings.ACCESS_TOKEN_EXPIRE_SECONDS)).timestamp()),
    }
    return jwt.encode(payload, settings.ENCODE_KEY, algorithm=settings.ENCODE_ALGORITHM)


def decode_session_token(token: str) -> Dict[str, Any]:
    """
    Verify signature and expiry of a session token and return its claims.

    Raises:
        SessionExpired: the token is past its exp claim
        InvalidSession: the token is missing, tampered with, or lacks a valid subject
    """
    if not token:
        raise InvalidSession(reason="missing token")

    try:
        payload = jwt.decode(
            token,
            settings.ENCODE_KEY,
            algorithms=[settings.ENCODE_ALGORITHM],
            options={"require": ["sub", "exp", "iat"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise SessionExpired(reason="token expired") from e
    except jwt.InvalidTokenError as e:
        raise InvalidSession(reason=f"invalid token: {e}") from e

    if not isinstance(payload["sub"], str) or not is_hex_address(payload["sub"]):
        raise InvalidSession(reason="invalid token subject")

    return payload


def validate_session_token(token: str) -> str:
    """Return the address a valid session token was issued for."""
    return to_checksum_address(decode_session_token(token)["sub"])
