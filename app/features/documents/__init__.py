"""
Documents Feature - Recruitment document storage, retrieval and extraction

Stores candidate resumes, cover letters, job-description files and images with:
- Bytes on the object store (GCS) or the local filesystem, per category policy
- Immutable metadata records in Supabase
- Singleton slots (a candidate's current resume) replaced new-before-old
- Text extraction and structured parsing of resumes and job descriptions

Import the service from ``app.features.documents.service``; this package
only re-exports the domain types so the storage backends can import them.
"""

from app.features.documents.models import (
    DocumentCategory,
    DocumentRecord,
    ExtractionResult,
    ParseKind,
    StorageProvider,
)

__all__ = [
    "DocumentCategory",
    "DocumentRecord",
    "ExtractionResult",
    "ParseKind",
    "StorageProvider",
]
