from datetime import datetime, timezone
from typing import Any, Dict, List

from kyc_backend.core.config import Settings
from kyc_backend.core.errors import NotFoundError, ValidationError
from kyc_backend.core.logging import get_logger
from kyc_backend.core.observability import EventSink
from kyc_backend.crud.document_store import DocumentStore
from kyc_backend.services.blob_store import BlobStore
from kyc_backend.services.image_services import document_image_path, validate_path_segment
from kyc_backend.services.user_validation import cleaned_user_fields, validate_user_payload

logger = get_logger("user-services")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def register_user(payload: Any, store: DocumentStore, sink: EventSink, settings: Settings) -> str:
    """
    Validates a registration payload and stores it as a new user.

    Args:
        payload: The decoded JSON body of the request.
        store: Document store the user is written to.
        sink: Event sink for the pipeline steps.
        settings: Supplies the users collection name.

    Returns:
        The key of the new user.

    Raises:
        ValidationError: with every field violation, before anything is written.
        StoreUnavailable: the insert failed.
    """
    result = validate_user_payload(payload)
    if not result.valid:
        violations = [violation.model_dump() for violation in result.violations]
        sink.warning("register.validation_failed", fields=[v["field"] for v in violations])
        raise ValidationError("User data is invalid", violations=violations)

    fields = cleaned_user_fields(payload)
    now = _now()
    fields["createdAt"] = now
    fields["updatedAt"] = now

    user_id = store.create(settings.USERS_COLLECTION, fields)
    sink.info("register.created", user_id=user_id)
    return user_id


def list_users(
    store: DocumentStore,
    blob_store: BlobStore,
    sink: EventSink,
    settings: Settings,
    with_document_url: bool = False,
    document_type: str = "front",
) -> List[Dict[str, Any]]:
    """
    Returns every user. With `with_document_url`, each record also gets a fresh
    `documentUrl` for its `document_type` image, or None when that image was never
    uploaded.
    """
    users = list(store.list_all(settings.USERS_COLLECTION))
    sink.info("users.listed", count=len(users))

    if with_document_url:
        validate_path_segment("documentType", document_type)
        for user in users:
            path = document_image_path(settings.ID_DOCUMENTS_PREFIX, user["id"], document_type)
            try:
                user["documentUrl"] = blob_store.get_url(path)
            except NotFoundError:
                logger.info(f"No '{document_type}' document image for user '{user['id']}'.")
                user["documentUrl"] = None
        sink.info("users.document_urls_attached", count=len(users), document_type=document_type)

    return users
