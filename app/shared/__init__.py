# Shared error taxonomy, logging and request correlation
from .errors import (
    DocumentError,
    InvalidInput,
    FileTooLarge,
    StorageUnavailable,
    BackendUnavailable,
    NotFound,
    Forbidden,
    Unauthorized,
    UnsupportedFormat,
    InsufficientContent,
    ParseFailed,
)

__all__ = [
    "DocumentError",
    "InvalidInput",
    "FileTooLarge",
    "StorageUnavailable",
    "BackendUnavailable",
    "NotFound",
    "Forbidden",
    "Unauthorized",
    "UnsupportedFormat",
    "InsufficientContent",
    "ParseFailed",
]
