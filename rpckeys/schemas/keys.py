from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, Field

from rpckeys.schemas.my_base_model import CustomBaseModel


class CreateKeyRequest(BaseModel):
    """Request model for key creation - input validation"""

    metadata: Dict[str, Any] = Field(default_factory=dict, description="Optional free-form metadata")


class CreateKeyResponse(CustomBaseModel):
    """Response model for key creation"""

    success: bool = True
    key: str = ""


class KeyItem(CustomBaseModel):
    """One key of the caller"""

    keyValue: str = ""
    createdAt: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ListKeysResponse(CustomBaseModel):
    """Response model for the caller's keys, newest first"""

    success: bool = True
    keys: List[KeyItem] = Field(default_factory=list)


class DeleteKeyRequest(BaseModel):
    """Request model for key deletion - input validation"""

    keyValue: str = Field(..., min_length=1, description="Key to delete")
