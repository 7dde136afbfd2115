# kyc_backend/main.py

from contextlib import asynccontextmanager

import boto3
import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from kyc_backend.api.image_router import router as image_router
from kyc_backend.api.user_router import router as user_router
from kyc_backend.core.config import Settings, get_settings
from kyc_backend.core.errors import AppError, InternalError, ValidationError
from kyc_backend.core.logging import configure_logging, get_logger
from kyc_backend.core.observability import build_event_sink
from kyc_backend.core.security import JWTTokenVerifier
from kyc_backend.crud.document_store import DocumentStore
from kyc_backend.db.mongodb import create_mongo_client, get_database
from kyc_backend.services.blob_store import BlobStore
from kyc_backend.services.face_detection import FaceDetectionClient

logger = get_logger("identity-base")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Owns every external client for the lifetime of the process: built once on
    startup, shared by all requests through app.state, closed on shutdown.
    """
    settings: Settings = app.state.settings
    region = settings.AWS_REGION or None

    mongo_client = create_mongo_client(settings)
    http_client = httpx.Client(timeout=settings.FACE_API_TIMEOUT)

    app.state.event_sink = build_event_sink(settings)
    app.state.token_verifier = JWTTokenVerifier(
        settings.JWT_SECRET, [settings.JWT_ALGORITHM], audience=settings.JWT_AUDIENCE
    )
    app.state.document_store = DocumentStore(get_database(mongo_client, settings))
    app.state.blob_store = BlobStore(
        boto3.client("s3", region_name=region),
        settings.S3_ID_DOCUMENTS_BUCKET,
        url_expiration=settings.PRESIGNED_URL_EXPIRATION,
    )
    app.state.face_client = FaceDetectionClient(http_client, settings.FACE_API_ENDPOINT, settings.FACE_API_KEY)
    logger.info("External clients initialised.")

    try:
        yield
    finally:
        http_client.close()
        mongo_client.close()
        logger.info("External clients closed.")


async def app_error_handler(request: Request, exc: AppError):
    sink = getattr(request.app.state, "event_sink", None)
    if sink is not None:
        emit = sink.error if exc.status_code >= 500 else sink.warning
        emit("request.failed", path=request.url.path, status=exc.status_code,
             error=type(exc).__name__, message=exc.message, context=exc.context)
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Reports malformed bodies and bad query values as a 400 ValidationError."""
    violations = []
    for error in exc.errors():
        location = error.get("loc", ())
        # loc starts with "body" or "query"; a bare location means the whole body failed to parse.
        field = ".".join(part for part in location[1:] if isinstance(part, str))
        field = field or (str(location[0]) if location else "body")
        violations.append({"field": field, "message": error.get("msg", "Invalid value")})
    return await app_error_handler(request, ValidationError("Request is malformed", violations=violations))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return await app_error_handler(request, InternalError(str(exc) or "An unexpected error occurred"))


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_DIR)

    app = FastAPI(
        title="Identity registration API",
        description="Registers users, stores their identity document images and selfies, and checks images for faces.",
        version="1.0.0",
        lifespan=lifespan,
        license_info={
            "name": "MIT",
            "url": "https://opensource.org/licenses/MIT",
        }
    )
    app.state.settings = settings

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.get("/", response_class=PlainTextResponse)
    def index():
        return "Welcome to the identity registration API"

    @app.get("/health", tags=["Health"])
    def health():
        return {"status": "ok"}

    app.include_router(user_router, tags=["Users"])
    app.include_router(image_router, tags=["Images"])
    return app


app = create_app()
