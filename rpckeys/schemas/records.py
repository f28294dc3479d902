from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from rpckeys.schemas.my_base_model import CustomBaseModel


class RecordRequest(BaseModel):
    """Request model for a gated record read.

    Sending ``message`` and ``signature`` authenticates this one request by
    signature; otherwise the session is used.
    """

    collection: str = Field(..., min_length=1)
    document: str = Field(..., min_length=1)
    message: Optional[Union[Dict[str, Any], str]] = None
    signature: Optional[str] = None
    address: Optional[str] = None


class DocumentResponse(CustomBaseModel):
    success: bool = True
    data: Dict[str, Any] = Field(default_factory=dict)


class CollectionResponse(CustomBaseModel):
    success: bool = True
    count: int = 0
    data: List[Dict[str, Any]] = Field(default_factory=list)
