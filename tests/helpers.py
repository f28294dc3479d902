"""Shared test database and wallet helpers."""

from datetime import datetime, timezone
from typing import Generator, Optional, Union

from eth_account.messages import encode_defunct
from fastapi.testclient import TestClient
from pydantic.alias_generators import to_camel
from siwe import SiweMessage
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rpckeys.core.siwe_message import MESSAGE_FIELDS


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ALICE_KEY = "0x" + "11" * 32
BOB_KEY = "0x" + "22" * 32
DOMAIN = "svc"


def override_get_db() -> Generator:
    """Override database dependency for testing"""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


def iso_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.000Z")


def build_message(address: str, nonce: str, domain: str = DOMAIN, **fields) -> SiweMessage:
    """EIP-4361 message as a browser wallet would build it"""
    values = {
        "domain": domain,
        "address": address,
        "statement": "Sign in with Ethereum to access your RPC keys.",
        "uri": f"https://{domain}/login",
        "version": "1",
        "chain_id": 1,
        "nonce": nonce,
        "issued_at": iso_now(),
    }
    values.update(fields)
    return SiweMessage(**values)


def message_json(message: SiweMessage) -> dict:
    """camelCase object form, as the siwe JS library serialises a message"""
    values = message.model_dump(mode="json", exclude_none=True)
    return {to_camel(name): values[name] for name in MESSAGE_FIELDS if name in values}


def sign(account, message: Union[SiweMessage, str]) -> str:
    text = message if isinstance(message, str) else message.prepare_message()
    signed = account.sign_message(encode_defunct(text=text))
    return "0x" + bytes(signed.signature).hex()


def signed_payload(client: TestClient, account, signer=None, **fields) -> dict:
    """Fetch a nonce and return a {message, signature} body for ``account``"""
    nonce = client.get("/auth/nonce").json()["nonce"]
    message = build_message(account.address, nonce, **fields)
    return {
        "message": message_json(message),
        "signature": sign(signer or account, message),
    }


def sign_in(client: TestClient, account) -> str:
    """Open a session for ``account`` and return its bearer token; the cookie jar is left empty"""
    response = client.post("/auth/session", json=signed_payload(client, account))
    assert response.status_code == 200, response.text
    client.cookies.clear()
    return response.json()["access_token"]


def bearer(token: Optional[str]) -> dict:
    return {"Authorization": f"Bearer {token}"}
