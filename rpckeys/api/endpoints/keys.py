from fastapi import APIRouter, Depends, status

from rpckeys.core.dependencies import get_current_address
from rpckeys.schemas.keys import (
    CreateKeyRequest,
    CreateKeyResponse,
    DeleteKeyRequest,
    KeyItem,
    ListKeysResponse,
)
from rpckeys.schemas.my_base_model import Message
from rpckeys.services.api_keys import ApiKeyManager, get_key_manager

router = APIRouter()
group_tags = ["Keys"]


@router.post(
    "",
    tags=group_tags,
    response_model=CreateKeyResponse,
    status_code=status.HTTP_200_OK,
)
def create_key(
    body: CreateKeyRequest | None = None,
    address: str = Depends(get_current_address),
    manager: ApiKeyManager = Depends(get_key_manager),
) -> CreateKeyResponse:
    """Create a new key owned by the signed-in address."""
    api_key = manager.create(address, metadata=body.metadata if body else None)
    return CreateKeyResponse(key=api_key.key)


@router.get(
    "",
    tags=group_tags,
    response_model=ListKeysResponse,
    status_code=status.HTTP_200_OK,
)
def list_keys(
    address: str = Depends(get_current_address),
    manager: ApiKeyManager = Depends(get_key_manager),
) -> ListKeysResponse:
    """
    List the signed-in address's keys.

    Returns:
    - keys ordered by createdAt DESC (newest first)
    """
    keys = [
        KeyItem(keyValue=api_key.key, createdAt=api_key.created_at, metadata=api_key.metadata)
        for api_key in manager.list(address)
    ]
    return ListKeysResponse(keys=keys)


@router.delete(
    "",
    tags=group_tags,
    response_model=Message,
    status_code=status.HTTP_200_OK,
)
def delete_key(
    body: DeleteKeyRequest,
    address: str = Depends(get_current_address),
    manager: ApiKeyManager = Depends(get_key_manager),
) -> Message:
    """
    Delete one of the signed-in address's keys.

    - 404 if the key does not exist (or was already deleted)
    - 403 if the key belongs to another address
    """
    manager.delete(address, body.keyValue.strip())
    return Message(message="Key deleted successfully")
