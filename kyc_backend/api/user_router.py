from typing import Any, List

from fastapi import APIRouter, Body, Depends, Query, status

from kyc_backend.api.dependencies import (
    get_app_settings, get_blob_store, get_document_store, get_event_sink, require_principal
)
from kyc_backend.core.config import Settings
from kyc_backend.core.observability import EventSink
from kyc_backend.core.security import Principal
from kyc_backend.crud.document_store import DocumentStore
from kyc_backend.core.logging import get_logger
from kyc_backend.models.user_models import RegisterUserResponse, UserModel
from kyc_backend.services.blob_store import BlobStore
from kyc_backend.services.user_services import list_users, register_user

router = APIRouter()
logger = get_logger("user-endpoints")


@router.post(
    "/registerUser",
    response_description="Register a new user",
    status_code=status.HTTP_201_CREATED,
    response_model=RegisterUserResponse,
)
def register_user_route(
    principal: Principal = Depends(require_principal),
    payload: Any = Body(None),
    store: DocumentStore = Depends(get_document_store),
    sink: EventSink = Depends(get_event_sink),
    settings: Settings = Depends(get_app_settings),
):
    """
    Validates the registration data and creates the user.

    Every field is checked in one pass; a 400 response lists all violations, not
    just the first one.
    """
    logger.info(f"Registration requested by '{principal.subject}'.")
    user_id = register_user(payload, store, sink, settings)
    return {"message": "User registered successfully", "id": user_id}


@router.get(
    "/getAllUsers",
    response_description="Get all users",
    response_model=List[UserModel],
)
def get_all_users_route(
    principal: Principal = Depends(require_principal),
    with_document_url: bool = Query(False, alias="withDocumentUrl", description="Attach a fresh URL of each user's document image."),
    document_type: str = Query("front", alias="documentType", description="Document image used for 'documentUrl'."),
    store: DocumentStore = Depends(get_document_store),
    blob_store: BlobStore = Depends(get_blob_store),
    sink: EventSink = Depends(get_event_sink),
    settings: Settings = Depends(get_app_settings),
):
    """
    Retrieves every registered user, including the URLs of their uploaded images.
    """
    logger.info(f"User list requested by '{principal.subject}'. withDocumentUrl={with_document_url}")
    return list_users(
        store, blob_store, sink, settings,
        with_document_url=with_document_url,
        document_type=document_type,
    )
