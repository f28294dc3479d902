from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field

from rpckeys.schemas.my_base_model import CustomBaseModel


class NonceResponse(CustomBaseModel):
    """Response model for nonce generation - output"""

    nonce: str = ""
    expires_at: int = 0


class SessionRequest(BaseModel):
    """Request model for sign-in - input validation"""

    message: Union[Dict[str, Any], str] = Field(
        ..., description="EIP-4361 message as an object, a JSON string, or the signed plaintext"
    )
    signature: str = Field(..., min_length=1, description="0x-prefixed signature of the message")


class SessionResponse(CustomBaseModel):
    """Response model for sign-in - output"""

    access_token: str = ""
    token_type: str = "bearer"
    address: str = ""
    expires_at: int = 0


class SessionInfo(CustomBaseModel):
    """Response model for the current session"""

    address: str = ""
    expires_at: int = 0
    issued_at: Optional[int] = None
