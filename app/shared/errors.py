"""
Error taxonomy and standardized error responses for the document service.

Every exposed operation either returns its success value or raises exactly one
of the ``DocumentError`` subclasses below. The web layer turns those into the
standard JSON envelope with the request's correlation ID attached.

Usage:
    from app.shared.errors import NotFound, register_exception_handlers

    raise NotFound("Document not found", resource_type="document", resource_id=doc_id)

    # In main.py:
    register_exception_handlers(app)

Error envelope:
    {
        "error": {
            "code": "NOT_FOUND",
            "message": "Document not found",
            "details": {"resource_type": "document", "resource_id": "..."},
            "correlation_id": "abc123"
        }
    }
"""

from enum import Enum
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Error codes returned by the document service."""

    # Client errors (4xx)
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"
    INSUFFICIENT_CONTENT = "INSUFFICIENT_CONTENT"
    PARSE_FAILED = "PARSE_FAILED"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"
    BACKEND_UNAVAILABLE = "BACKEND_UNAVAILABLE"


class ErrorDetail(BaseModel):
    """Structured error detail model."""
    code: str
    message: str
    details: Optional[dict[str, Any]] = None
    correlation_id: Optional[str] = None


class ErrorResponse(BaseModel):
    """Standard error response wrapper."""
    error: ErrorDetail


# =============================================================================
# DOMAIN EXCEPTIONS
# =============================================================================

class DocumentError(Exception):
    """
    Base class for every failure the document core reports to callers.

    Attributes:
        message: Human-readable message, stating the corrective action for
                 user-correctable errors
        details: Optional safe-to-expose context
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or None


class InvalidInput(DocumentError):
    """Upload violates the size or type policy of its category."""
    code = ErrorCode.INVALID_INPUT
    status_code = 400


class FileTooLarge(InvalidInput):
    """Upload exceeds the category's maximum size."""
    status_code = 413


class StorageUnavailable(DocumentError):
    """A mandatory backend could not take the write; the upload failed."""
    code = ErrorCode.STORAGE_UNAVAILABLE
    status_code = 503
    retryable = True


class BackendUnavailable(DocumentError):
    """Transient backend failure (network, disk, permissions)."""
    code = ErrorCode.BACKEND_UNAVAILABLE
    status_code = 503
    retryable = True

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        merged = dict(details or {})
        if provider:
            merged["provider"] = provider
        super().__init__(message, merged)
        self.provider = provider


class NotFound(DocumentError):
    """No record, or the bytes are missing on every backend."""
    code = ErrorCode.NOT_FOUND
    status_code = 404

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
    ):
        details = {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(message, details)


class Unauthorized(DocumentError):
    """No authenticated identity accompanied the request."""
    code = ErrorCode.UNAUTHORIZED
    status_code = 401


class Forbidden(DocumentError):
    """The authorization policy denied the requester."""
    code = ErrorCode.FORBIDDEN
    status_code = 403


class UnsupportedFormat(DocumentError):
    """No text extractor exists for the document's mimetype."""
    code = ErrorCode.UNSUPPORTED_FORMAT
    status_code = 415


class InsufficientContent(DocumentError):
    """Extracted text is too short to be parsed."""
    code = ErrorCode.INSUFFICIENT_CONTENT
    status_code = 422


class ParseFailed(DocumentError):
    """The structured extraction service returned empty or invalid output."""
    code = ErrorCode.PARSE_FAILED
    status_code = 422


# =============================================================================
# RESPONSE HELPERS
# =============================================================================

def get_correlation_id(request: Optional[Request] = None) -> Optional[str]:
    """
    Extract correlation ID from request state.

    Args:
        request: FastAPI request object (optional)

    Returns:
        Correlation ID string or None if not available
    """
    if request is None:
        return None
    return getattr(request.state, "correlation_id", None)


def error_response(
    code: ErrorCode,
    message: str,
    status_code: int,
    details: Optional[dict[str, Any]] = None,
    correlation_id: Optional[str] = None,
) -> JSONResponse:
    """
    Create a standardized JSON error response.

    Args:
        code: Error code from ErrorCode enum
        message: Human-readable error message
        status_code: HTTP status code
        details: Optional additional error details
        correlation_id: Request correlation ID for tracing

    Returns:
        JSONResponse with standardized error format
    """
    error_detail = ErrorDetail(
        code=code.value,
        message=message,
        details=details,
        correlation_id=correlation_id,
    )
    return JSONResponse(
        status_code=status_code,
        content={"error": error_detail.model_dump(exclude_none=True)},
    )


def document_error_response(
    exc: DocumentError,
    correlation_id: Optional[str] = None,
) -> JSONResponse:
    """Render a domain exception with its own code and status."""
    response = error_response(
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        correlation_id=correlation_id,
    )
    if exc.retryable:
        response.headers["Retry-After"] = "5"
    return response


def internal_error(
    message: str = "Internal server error",
    details: Optional[dict[str, Any]] = None,
    correlation_id: Optional[str] = None,
) -> JSONResponse:
    """
    Create a 500 internal error response.

    Note: Be careful not to expose sensitive internal details to clients.
    """
    return error_response(
        code=ErrorCode.INTERNAL_ERROR,
        message=message,
        status_code=500,
        details=details,
        correlation_id=correlation_id,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the domain exception handler on a FastAPI application."""

    @app.exception_handler(DocumentError)
    async def _handle_document_error(request: Request, exc: DocumentError) -> JSONResponse:
        return document_error_response(exc, correlation_id=get_correlation_id(request))
