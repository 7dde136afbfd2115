"""
FastAPI dependencies. The clients themselves are built once in the application
lifespan (see main.py) and kept on `app.state`; these functions hand them to the
routes, which also makes them easy to swap out with `app.dependency_overrides`.
"""

from fastapi import Depends, Request

from kyc_backend.core.config import Settings
from kyc_backend.core.errors import InvalidCredential, MissingCredential, ValidationError
from kyc_backend.core.observability import EventSink
from kyc_backend.core.security import JWTTokenVerifier, Principal, authenticate
from kyc_backend.crud.document_store import DocumentStore
from kyc_backend.models.image_models import UploadedImage
from kyc_backend.services.blob_store import BlobStore
from kyc_backend.services.face_detection import FaceDetectionClient


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_event_sink(request: Request) -> EventSink:
    return request.app.state.event_sink


def get_token_verifier(request: Request) -> JWTTokenVerifier:
    return request.app.state.token_verifier


def get_document_store(request: Request) -> DocumentStore:
    return request.app.state.document_store


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_face_client(request: Request) -> FaceDetectionClient:
    return request.app.state.face_client


def require_principal(
    request: Request,
    verifier: JWTTokenVerifier = Depends(get_token_verifier),
    sink: EventSink = Depends(get_event_sink),
) -> Principal:
    """
    Credential gate for the protected routes. Listed as the first dependency of
    every protected route, so a rejected request never reaches a store.
    """
    try:
        principal = authenticate(request.headers.get("Authorization"), verifier)
    except (MissingCredential, InvalidCredential) as e:
        sink.warning("auth.rejected", path=request.url.path, reason=e.message)
        raise
    sink.info("auth.accepted", path=request.url.path, subject=principal.subject)
    return principal


async def read_uploaded_image(request: Request, settings: Settings = Depends(get_app_settings)) -> UploadedImage:
    """
    Reads the raw request body as an image. A declared Content-Length above the
    upload limit is refused before the body is read, and the stream is refused as
    soon as it grows past the limit.
    """
    limit = settings.MAX_UPLOAD_BYTES
    declared_length = request.headers.get("Content-Length")
    if declared_length and declared_length.isdigit() and int(declared_length) > limit:
        raise ValidationError(f"Image is too large: {declared_length} bytes (limit {limit} bytes)")

    chunks = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > limit:
            raise ValidationError(f"Image is too large: more than {limit} bytes")
        chunks.append(chunk)
    return UploadedImage(content=b"".join(chunks), content_type=request.headers.get("Content-Type", ""))
