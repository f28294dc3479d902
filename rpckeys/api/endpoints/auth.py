import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import JSONResponse

from rpckeys.core.config import settings
from rpckeys.core.dependencies import (
    SessionCredential,
    SignedMessageCredential,
    get_session_credential,
    resolve_caller,
)
from rpckeys.core.errors import InvalidSession
from rpckeys.core.jwt_utils import create_session_token, decode_session_token
from rpckeys.services.nonce_store import NonceStore, get_nonce_store
import rpckeys.schemas.auth as schemas
from rpckeys.schemas.my_base_model import Message

router = APIRouter()
group_tags = ["Auth"]
logger = logging.getLogger(__name__)


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_SECONDS,
        httponly=True,
        samesite="lax",
        path="/",
        secure=settings.SESSION_COOKIE_SECURE,
    )


def _clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=settings.SESSION_COOKIE_NAME, path="/")


@router.get(
    "/nonce",
    tags=group_tags,
    response_model=schemas.NonceResponse,
    status_code=status.HTTP_200_OK,
)
def request_nonce(nonce_store: NonceStore = Depends(get_nonce_store)) -> schemas.NonceResponse:
    """Generate and store a single-use nonce to embed in the sign-in message."""
    nonce = nonce_store.issue()
    return schemas.NonceResponse(nonce=nonce.value, expires_at=nonce.expires_at)


@router.post(
    "/session",
    tags=group_tags,
    response_model=schemas.SessionResponse,
    status_code=status.HTTP_200_OK,
)
def create_session(
    body: schemas.SessionRequest,
    response: Response,
    nonce_store: NonceStore = Depends(get_nonce_store),
) -> schemas.SessionResponse:
    """
    Verify a signed EIP-4361 message and open a session.

    The session token is returned in the body and set as an HTTP-only cookie.
    Any verification failure answers 401 without saying which check failed.

    *Sample request body:*
    {
        "message": {
            "domain": "localhost:3000",
            "address": "0x90F79bf6EB2c4f870365E785982E1f101E93b906",
            "statement": "Sign in with Ethereum to access your RPC keys.",
            "uri": "http://localhost:3000/login",
            "version": "1",
            "chainId": 1,
            "nonce": "<nonce from /auth/nonce>",
            "issuedAt": "2025-01-01T12:00:00.000Z"
        },
        "signature": "0x..."
    }
    """
    credential = SignedMessageCredential(message=body.message, signature=body.signature)
    address = resolve_caller(credential, nonce_store)

    token = create_session_token(address)
    claims = decode_session_token(token)
    _set_session_cookie(response, token)
    logger.info("session opened for %s", address)
    return schemas.SessionResponse(access_token=token, address=address, expires_at=claims["exp"])


@router.get(
    "/session",
    tags=group_tags,
    response_model=schemas.SessionInfo,
    status_code=status.HTTP_200_OK,
)
def get_session(
    address: Optional[str] = Query(default=None, description="Wallet address currently connected on the client"),
    credential: Optional[SessionCredential] = Depends(get_session_credential),
):
    """
    Return the session's address.

    When the client passes the address its wallet currently reports and it
    differs from the session subject, the session is dropped: the cookie is
    cleared and the call answers 401 so the client signs in again.
    """
    subject = resolve_caller(credential)
    claims = decode_session_token(credential.token)
    if address is not None and address.strip().lower() != subject.lower():
        logger.info("wallet changed from %s to %s, dropping session", subject, address)
        error = InvalidSession(reason=f"wallet changed to {address}")
        response = JSONResponse(
            status_code=error.status_code,
            content={"success": False, "error": error.kind, "detail": error.detail},
        )
        _clear_session_cookie(response)
        return response
    return schemas.SessionInfo(address=subject, expires_at=claims["exp"], issued_at=claims["iat"])


@router.delete(
    "/session",
    tags=group_tags,
    response_model=Message,
    status_code=status.HTTP_200_OK,
)
def delete_session(response: Response) -> Message:
    """Sign out: clear the session cookie. The token itself stays valid until it expires."""
    _clear_session_cookie(response)
    return Message(message="Signed out")
