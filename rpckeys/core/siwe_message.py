"""
Sign-In With Ethereum (EIP-4361) message handling.

Messages are modelled and rendered by ``siwe.SiweMessage``. Clients may send
the message as a JSON object (snake_case or the camelCase names used by the
``siwe`` JS library), as a JSON string of that object, or as the EIP-4361
plaintext itself. For the plaintext form the signature is checked against the
exact text received; for the object forms it is checked against the canonical
text rebuilt by ``SiweMessage.prepare_message``.
"""

import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, NamedTuple, Optional, Union

from eth_utils import is_hex_address
from pydantic.alias_generators import to_snake
from siwe import SiweMessage

from rpckeys.core.errors import InvalidInput

NONCE_PATTERN = re.compile(r"^[A-Za-z0-9]{8,}$")

MESSAGE_FIELDS = (
    "domain",
    "address",
    "statement",
    "uri",
    "version",
    "chain_id",
    "nonce",
    "issued_at",
    "expiration_time",
    "not_before",
    "request_id",
    "resources",
)


class SignedAuthMessage(NamedTuple):
    message: SiweMessage
    text: str  # exact bytes the wallet signed


def parse_timestamp(value: Any) -> datetime:
    """Parse an RFC 3339 / ISO-8601 timestamp; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def optional_timestamp(value: Any) -> Optional[datetime]:
    return parse_timestamp(value) if value else None


def _check_fields(message: SiweMessage) -> None:
    if not message.domain or any(ch.isspace() for ch in message.domain):
        raise ValueError("domain must be a non-empty host without whitespace")
    if not is_hex_address(str(message.address)):
        raise ValueError("address must be a 20-byte hex account address")
    if message.statement is not None and "\n" in message.statement:
        raise ValueError("statement must be a single line")
    if not NONCE_PATTERN.match(message.nonce):
        raise ValueError("nonce must be at least 8 alphanumeric characters")
    if message.resources is not None and len(message.resources) == 0:
        raise ValueError("resources must list at least one URI when present")
    for name in ("issued_at", "expiration_time", "not_before"):
        optional_timestamp(getattr(message, name))


def _from_fields(values: Dict[str, Any]) -> SiweMessage:
    fields = {}
    for key, value in values.items():
        name = to_snake(key)
        if name in MESSAGE_FIELDS and value is not None:
            fields[name] = value
    return SiweMessage(**fields)


def coerce_auth_message(value: Union[SiweMessage, Dict[str, Any], str]) -> SignedAuthMessage:
    """
    Build a SiweMessage from any accepted wire form, paired with the text to verify.

    Raises:
        InvalidInput: the message cannot be parsed or fails field validation
    """
    try:
        if isinstance(value, SiweMessage):
            message = value
            text = message.prepare_message()
        elif isinstance(value, dict):
            message = _from_fields(value)
            text = message.prepare_message()
        elif isinstance(value, str) and value.strip().startswith("{"):
            message = _from_fields(json.loads(value))
            text = message.prepare_message()
        elif isinstance(value, str):
            text = value
            message = SiweMessage.from_message(message=text)
        else:
            raise TypeError(f"unsupported message type {type(value).__name__}")
        _check_fields(message)
    except Exception as e:
        # any parser or validation failure on client input is malformed input
        raise InvalidInput("Malformed authentication message", reason=f"{type(e).__name__}: {e}") from e
    return SignedAuthMessage(message=message, text=text)
