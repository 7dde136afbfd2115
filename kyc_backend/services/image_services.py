import re
import uuid
from datetime import datetime, timezone

from kyc_backend.core.config import Settings
from kyc_backend.core.errors import ValidationError
from kyc_backend.core.logging import get_logger
from kyc_backend.core.observability import EventSink
from kyc_backend.crud.document_store import DocumentStore
from kyc_backend.models.image_models import ALLOWED_IMAGE_TYPES, UploadedImage
from kyc_backend.services.blob_store import BlobStore
from kyc_backend.services.face_detection import FaceDetectionClient

logger = get_logger("image-services")

PATH_SEGMENT_PATTERN = re.compile(r'^[A-Za-z0-9_-]{1,64}$')


# --- Blob paths ---

def document_image_path(prefix: str, user_id: str, document_type: str) -> str:
    return f"{prefix}/{user_id}-{document_type}"


def selfie_image_path(prefix: str, user_id: str) -> str:
    return f"{prefix}/{user_id}-selfie"


def temporary_image_path(prefix: str) -> str:
    # One object per detection call, so concurrent callers never read each other's image.
    return f"{prefix}/{uuid.uuid4().hex}"


# --- Input checks ---

def validate_path_segment(name: str, value: str | None) -> str:
    """User ids and document types end up in blob paths; only plain tokens are accepted."""
    if value is None or not value.strip():
        raise ValidationError(f"{name} is required")
    if not PATH_SEGMENT_PATTERN.match(value):
        raise ValidationError(f"{name} may only contain letters, digits, '-' and '_'")
    return value


def validate_image(image: UploadedImage, max_bytes: int) -> None:
    """
    Rejects empty, oversized and non jpeg/png bodies. Runs before any blob or
    store call.
    """
    if image.size == 0:
        raise ValidationError("No image provided")
    if image.media_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError(
            f"Content type '{image.content_type}' is not supported. Allowed: {', '.join(ALLOWED_IMAGE_TYPES)}"
        )
    if image.size > max_bytes:
        raise ValidationError(f"Image is too large: {image.size} bytes (limit {max_bytes} bytes)")


def _store_image(blob_store: BlobStore, path: str, image: UploadedImage, uploaded_by: str) -> str:
    blob_store.upload(path, image.content, image.media_type, metadata={"uploaded-by": uploaded_by})
    return blob_store.get_url(path)


# --- Pipelines ---

def upload_document_image(
    user_id: str,
    document_type: str,
    image: UploadedImage,
    uploaded_by: str,
    store: DocumentStore,
    blob_store: BlobStore,
    sink: EventSink,
    settings: Settings,
) -> str:
    """
    Stores an identity document image and appends its URL to the user's
    `documentImageUrl` list (created as a one-element list on the first upload).

    Returns:
        The URL of the stored image.

    Raises:
        ValidationError: bad user id, document type or image.
        NotFoundError: the user does not exist. The image is already stored by then.
        UpstreamError: the blob store or document store failed.
    """
    validate_path_segment("userId", user_id)
    validate_path_segment("type", document_type)
    validate_image(image, settings.MAX_UPLOAD_BYTES)

    path = document_image_path(settings.ID_DOCUMENTS_PREFIX, user_id, document_type)
    image_url = _store_image(blob_store, path, image, uploaded_by)
    sink.info("document.uploaded", user_id=user_id, document_type=document_type, path=path, size=image.size)

    user = store.get(settings.USERS_COLLECTION, user_id)
    existing = user.get("documentImageUrl")
    # Read-modify-write: two concurrent uploads for one user can lose an append.
    if isinstance(existing, list) and existing:
        document_urls = existing + [image_url]
    else:
        document_urls = [image_url]

    store.update(settings.USERS_COLLECTION, user_id, {
        "documentImageUrl": document_urls,
        "updatedAt": datetime.now(timezone.utc).isoformat(),
    })
    sink.info("document.linked", user_id=user_id, document_count=len(document_urls))
    return image_url


def upload_selfie_image(
    user_id: str,
    image: UploadedImage,
    uploaded_by: str,
    store: DocumentStore,
    blob_store: BlobStore,
    sink: EventSink,
    settings: Settings,
) -> str:
    """Stores a selfie and points the user's `selfieImage` at it, replacing any earlier one."""
    validate_path_segment("userId", user_id)
    validate_image(image, settings.MAX_UPLOAD_BYTES)

    path = selfie_image_path(settings.ID_DOCUMENTS_PREFIX, user_id)
    image_url = _store_image(blob_store, path, image, uploaded_by)
    sink.info("selfie.uploaded", user_id=user_id, path=path, size=image.size)

    store.update(settings.USERS_COLLECTION, user_id, {
        "selfieImage": image_url,
        "updatedAt": datetime.now(timezone.utc).isoformat(),
    })
    sink.info("selfie.linked", user_id=user_id)
    return image_url


def detect_face(
    image: UploadedImage,
    uploaded_by: str,
    blob_store: BlobStore,
    face_client: FaceDetectionClient,
    sink: EventSink,
    settings: Settings,
) -> bool:
    """
    Uploads the image to a temporary path and asks the detection service whether it
    contains at least one face. Temporary images are not cleaned up.
    """
    validate_image(image, settings.MAX_UPLOAD_BYTES)

    path = temporary_image_path(settings.TEMP_IMAGE_PREFIX)
    image_url = _store_image(blob_store, path, image, uploaded_by)
    sink.info("detection.image_uploaded", path=path, size=image.size)

    face_count = face_client.detect(image_url)
    valid_face = face_count > 0
    logger.info(f"Detection on '{path}': {face_count} face(s).")
    sink.info("detection.completed", path=path, face_count=face_count, valid_face=valid_face)
    return valid_face
