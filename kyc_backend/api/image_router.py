from fastapi import APIRouter, Depends, status

from kyc_backend.api.dependencies import (
    get_app_settings, get_blob_store, get_document_store, get_event_sink,
    get_face_client, read_uploaded_image, require_principal
)
from kyc_backend.core.config import Settings
from kyc_backend.core.errors import ValidationError
from kyc_backend.core.logging import get_logger
from kyc_backend.core.observability import EventSink
from kyc_backend.core.security import Principal
from kyc_backend.crud.document_store import DocumentStore
from kyc_backend.models.image_models import UploadedImage
from kyc_backend.models.user_models import FaceDetectionResponse, ImageUploadResponse
from kyc_backend.services.blob_store import BlobStore
from kyc_backend.services.face_detection import FaceDetectionClient
from kyc_backend.services.image_services import detect_face, upload_document_image, upload_selfie_image

router = APIRouter()
logger = get_logger("image-endpoints")

IMAGE_BODY = {
    "requestBody": {
        "required": True,
        "content": {
            "image/jpeg": {"schema": {"type": "string", "format": "binary"}},
            "image/png": {"schema": {"type": "string", "format": "binary"}},
        },
    }
}


@router.post(
    "/imageUpload/{user_id}/{document_type}",
    response_description="Upload an identity document image",
    status_code=status.HTTP_201_CREATED,
    response_model=ImageUploadResponse,
    openapi_extra=IMAGE_BODY,
)
def upload_document_route(
    user_id: str,
    document_type: str,
    principal: Principal = Depends(require_principal),
    image: UploadedImage = Depends(read_uploaded_image),
    store: DocumentStore = Depends(get_document_store),
    blob_store: BlobStore = Depends(get_blob_store),
    sink: EventSink = Depends(get_event_sink),
    settings: Settings = Depends(get_app_settings),
):
    """
    Stores the raw jpeg/png body as the user's `document_type` image (for example
    'front' or 'back') and appends its URL to the user's `documentImageUrl`.
    """
    logger.info(f"Document upload '{document_type}' for user '{user_id}' ({image.size} bytes).")
    image_url = upload_document_image(
        user_id, document_type, image, principal.subject, store, blob_store, sink, settings
    )
    return {"message": "Image uploaded successfully", "imageUrl": image_url}


@router.post(
    "/selfieUpload/{user_id}",
    response_description="Upload a selfie",
    status_code=status.HTTP_201_CREATED,
    response_model=ImageUploadResponse,
    openapi_extra=IMAGE_BODY,
)
def upload_selfie_route(
    user_id: str,
    principal: Principal = Depends(require_principal),
    image: UploadedImage = Depends(read_uploaded_image),
    store: DocumentStore = Depends(get_document_store),
    blob_store: BlobStore = Depends(get_blob_store),
    sink: EventSink = Depends(get_event_sink),
    settings: Settings = Depends(get_app_settings),
):
    """
    Stores the raw jpeg/png body as the user's selfie. A new selfie replaces the
    previous one.
    """
    logger.info(f"Selfie upload for user '{user_id}' ({image.size} bytes).")
    image_url = upload_selfie_image(user_id, image, principal.subject, store, blob_store, sink, settings)
    return {"message": "Selfie uploaded successfully", "imageUrl": image_url}


@router.post(
    "/detectFace",
    response_description="Check whether an image contains a face",
    response_model=FaceDetectionResponse,
    openapi_extra=IMAGE_BODY,
)
def detect_face_route(
    principal: Principal = Depends(require_principal),
    image: UploadedImage = Depends(read_uploaded_image),
    blob_store: BlobStore = Depends(get_blob_store),
    face_client: FaceDetectionClient = Depends(get_face_client),
    sink: EventSink = Depends(get_event_sink),
    settings: Settings = Depends(get_app_settings),
):
    """
    Runs face detection on the raw jpeg/png body. `validFace` is true when at least
    one face was found.
    """
    valid_face = detect_face(image, principal.subject, blob_store, face_client, sink, settings)
    return {"validFace": valid_face}


@router.post("/imageUpload", include_in_schema=False)
@router.post("/imageUpload/{segment}", include_in_schema=False)
@router.post("/selfieUpload", include_in_schema=False)
def missing_user_id_route(principal: Principal = Depends(require_principal)):
    # Upload paths without a user id would otherwise fall through to a 404.
    raise ValidationError("userId and image type are required in the path")
