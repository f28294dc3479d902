from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from rpckeys.core.dependencies import (
    SessionCredential,
    SignedMessageCredential,
    get_session_credential,
    resolve_caller,
)
from rpckeys.core.errors import InvalidInput
from rpckeys.schemas.records import CollectionResponse, DocumentResponse, RecordRequest
from rpckeys.services.nonce_store import NonceStore, get_nonce_store
from rpckeys.services.records import RecordReader, get_record_reader

router = APIRouter()
group_tags = ["Records"]


@router.get(
    "",
    tags=group_tags,
    response_model=DocumentResponse | CollectionResponse,
    status_code=status.HTTP_200_OK,
)
def read_records(
    collection: str = Query(..., min_length=1, description="Collection to read"),
    document: Optional[str] = Query(default=None, description="Single document id, default: whole collection"),
    reader: RecordReader = Depends(get_record_reader),
):
    """
    Unauthenticated read of a document or of a whole collection.

    Disabled (403) unless RECORDS_PUBLIC_READ is set. API key collections are
    never readable.
    """
    if document:
        return DocumentResponse(data=reader.read_document(collection, document))
    records = reader.read_collection(collection)
    return CollectionResponse(count=len(records), data=records)


@router.post(
    "",
    tags=group_tags,
    response_model=DocumentResponse,
    status_code=status.HTTP_200_OK,
)
def read_own_record_fields(
    body: RecordRequest,
    session: Optional[SessionCredential] = Depends(get_session_credential),
    nonce_store: NonceStore = Depends(get_nonce_store),
    reader: RecordReader = Depends(get_record_reader),
) -> DocumentResponse:
    """
    Read the caller's own sub-fields of one document.

    Authenticated by a signed message in the body when ``message`` and
    ``signature`` are present, by the session otherwise. Only the document
    fields keyed by the proven address are returned.
    """
    if (body.message is None) != (body.signature is None):
        raise InvalidInput("message and signature must be sent together")

    if body.message is not None:
        credential = SignedMessageCredential(message=body.message, signature=body.signature, address=body.address)
        address = resolve_caller(credential, nonce_store)
    else:
        address = resolve_caller(session)

    return DocumentResponse(data=reader.read_owned_fields(body.collection, body.document, address))
