"""
FastAPI Authentication Dependencies
This module resolves the caller's proven wallet address for protected routes.
Two credential forms are supported and never mixed within one request:
- SessionCredential: a session token from the Authorization header
  ("Bearer <token>" or the bare token) or, failing that, the session cookie
- SignedMessageCredential: a fresh signed EIP-4361 message sent in the body
  (one-shot, consumes a nonce)
Usage in endpoints:
    @router.get("/protected")
    def protected_route(address: str = Depends(get_current_address)):
        # address is the verified, checksummed wallet address
        return {"user": address}
An address sent as plain request data is never trusted on its own.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from fastapi import Cookie, Depends, Header
from siwe import SiweMessage

from rpckeys.core.config import settings
from rpckeys.core.errors import SignatureMismatch, Unauthorized
from rpckeys.core.jwt_utils import validate_session_token
from rpckeys.core.siwe_auth import verify_auth_message
from rpckeys.core.siwe_message import coerce_auth_message
from rpckeys.services.nonce_store import NonceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionCredential:
    token: str


@dataclass(frozen=True)
class SignedMessageCredential:
    message: Union[SiweMessage, Dict[str, Any], str]
    signature: str
    address: Optional[str] = None


Credential = Union[SessionCredential, SignedMessageCredential]


def resolve_caller(credential: Optional[Credential], nonce_store: Optional[NonceStore] = None) -> str:
    """
    Resolve the proven address behind a credential.

    Raises:
        Unauthorized: the credential is missing, invalid or expired; the specific
            cause is only kept as the internal reason
        InvalidInput: a signed message could not be parsed
    """
    if isinstance(credential, SessionCredential):
        try:
            return validate_session_token(credential.token)
        except Unauthorized as e:
            raise type(e)(reason=f"session rejected: {e.reason}") from e

    if isinstance(credential, SignedMessageCredential):
        if nonce_store is None:
            raise RuntimeError("signed message credentials need a nonce store")
        parsed = coerce_auth_message(credential.message)
        try:
            address = verify_auth_message(parsed.message, credential.signature, nonce_store, text=parsed.text)
        except Unauthorized as e:
            raise type(e)(reason=f"signature rejected: {e.reason}") from e
        if credential.address and credential.address.strip().lower() != address.lower():
            raise SignatureMismatch(reason=f"body address {credential.address} != signer {address}")
        return address

    raise Unauthorized(reason="no credential presented")


def _token_from_header(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    authorization = authorization.strip()
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return authorization or None


def get_session_credential(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    session_token: Optional[str] = Cookie(None, alias=settings.SESSION_COOKIE_NAME),
) -> Optional[SessionCredential]:
    token = _token_from_header(authorization) or session_token
    return SessionCredential(token=token) if token else None


def get_current_address(
    credential: Optional[SessionCredential] = Depends(get_session_credential),
) -> str:
    """
    returning the session's wallet address.
    """
    return resolve_caller(credential)
