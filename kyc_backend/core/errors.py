"""
Error types raised by the services and converted to HTTP responses by the
exception handlers registered in main.py.

    AppError
    ├── ValidationError        400  bad or missing input
    ├── AuthError
    │   ├── MissingCredential  401  no bearer token on the request
    │   └── InvalidCredential  403  token rejected by the verifier
    ├── NotFoundError          404  referenced user or blob is absent
    ├── UpstreamError          500  an external service failed
    │   ├── StoreUnavailable       document store
    │   ├── BlobStoreError         object store
    │   └── DetectionFailed        face detection API
    └── InternalError          500  anything unexpected
"""

from typing import Any, Dict, List, Optional
from fastapi import status


class AppError(Exception):
    """
    Base class for every error the API knows how to report.

    `message` is returned to the client; `context` is only logged.
    """
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "An unexpected error occurred", context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def to_response(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(AppError):
    """Client input failed validation. Carries the per-field violations, if any."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Validation failed", violations: Optional[List[Dict[str, str]]] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context)
        self.violations = violations or []

    def to_response(self) -> Dict[str, Any]:
        body = super().to_response()
        if self.violations:
            body["violations"] = self.violations
        return body


class AuthError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED


class MissingCredential(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Authorization header with a Bearer token is required",
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context)


class InvalidCredential(AuthError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Invalid or expired credential", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context)


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str = "resource", resource_id: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        message = f"{resource} '{resource_id}' was not found" if resource_id else f"{resource} was not found"
        super().__init__(message, context)
        self.resource = resource
        self.resource_id = resource_id


class UpstreamError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class StoreUnavailable(UpstreamError):
    pass


class BlobStoreError(UpstreamError):
    pass


class DetectionFailed(UpstreamError):
    """The face detection call failed. `upstream_detail` holds what the service said, if anything."""

    def __init__(self, message: str = "Face detection failed", upstream_detail: Any = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context)
        self.upstream_detail = upstream_detail

    def to_response(self) -> Dict[str, Any]:
        body = super().to_response()
        if self.upstream_detail is not None:
            body["detail"] = self.upstream_detail
        return body


class InternalError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
