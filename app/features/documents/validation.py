"""
Upload policy: size and type limits per category, content checksums and
storage names.

Nothing here touches a backend. Every upload passes through
``validate_upload`` and ``compute_checksum`` before a single byte is written.
"""

import hashlib
import logging
import re
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Optional, Tuple

from app.core.config import StorageConfig
from app.features.documents.models import DocumentCategory, DocumentRecord
from app.shared.errors import FileTooLarge, InvalidInput

logger = logging.getLogger("Recruit.Documents.Validation")

CHECKSUM_ALGORITHM = "sha256"

MB = 1024 * 1024

PDF = "application/pdf"
MSWORD = "application/msword"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

_DOCUMENT_TYPES = frozenset({PDF, MSWORD, DOCX})
_DOCUMENT_EXTENSIONS = frozenset({".pdf", ".doc", ".docx"})
_IMAGE_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"})
_IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp"})


@dataclass(frozen=True)
class CategoryPolicy:
    """Limits and storage rules for one document category."""
    max_size_bytes: int
    mimetypes: FrozenSet[str]
    extensions: FrozenSet[str]
    requires_object_store: bool
    kind_label: str

    @property
    def max_size_mb(self) -> float:
        return self.max_size_bytes / MB


def build_policies(config: StorageConfig) -> Dict[DocumentCategory, CategoryPolicy]:
    """Per-category policy table derived from the storage configuration."""
    document_limit = config.max_file_size_mb * MB
    image_limit = config.max_image_size_mb * MB
    return {
        DocumentCategory.RESUME: CategoryPolicy(
            max_size_bytes=config.max_resume_size_mb * MB,
            mimetypes=_DOCUMENT_TYPES,
            extensions=_DOCUMENT_EXTENSIONS,
            requires_object_store=True,
            kind_label="PDF, DOC or DOCX",
        ),
        DocumentCategory.COVER_LETTER: CategoryPolicy(
            max_size_bytes=document_limit,
            mimetypes=_DOCUMENT_TYPES,
            extensions=_DOCUMENT_EXTENSIONS,
            requires_object_store=True,
            kind_label="PDF, DOC or DOCX",
        ),
        DocumentCategory.JOB_DESCRIPTION: CategoryPolicy(
            max_size_bytes=document_limit,
            mimetypes=_DOCUMENT_TYPES,
            extensions=_DOCUMENT_EXTENSIONS,
            requires_object_store=False,
            kind_label="PDF, DOC or DOCX",
        ),
        DocumentCategory.PROFILE_IMAGE: CategoryPolicy(
            max_size_bytes=image_limit,
            mimetypes=_IMAGE_TYPES,
            extensions=_IMAGE_EXTENSIONS,
            requires_object_store=False,
            kind_label="JPEG, PNG, GIF or WebP",
        ),
        DocumentCategory.COMPANY_LOGO: CategoryPolicy(
            max_size_bytes=image_limit,
            mimetypes=_IMAGE_TYPES,
            extensions=_IMAGE_EXTENSIONS,
            requires_object_store=False,
            kind_label="JPEG, PNG, GIF or WebP",
        ),
    }


def _format_mb(value: float) -> str:
    return f"{value:g} MB"


def normalize_mimetype(declared_mimetype: Optional[str]) -> str:
    """Canonical form of a declared mimetype: parameters dropped, lowercased."""
    return (declared_mimetype or "").split(";")[0].strip().lower()


def validate_upload(
    data: bytes,
    declared_mimetype: str,
    size: int,
    category: DocumentCategory,
    policies: Dict[DocumentCategory, CategoryPolicy],
    original_name: Optional[str] = None,
) -> CategoryPolicy:
    """
    Enforce the size and type policy of ``category`` before any write.

    Args:
        data: Uploaded bytes
        declared_mimetype: Mimetype claimed by the client
        size: Declared size in bytes; must agree with ``len(data)``
        category: Target category
        policies: Table from ``build_policies``
        original_name: User-supplied filename, checked against the extension allow-list

    Returns:
        The policy that applied, so callers can read ``requires_object_store``

    Raises:
        InvalidInput: Empty file, size mismatch, disallowed type or extension
        FileTooLarge: Over the category limit
    """
    policy = policies.get(category)
    if policy is None:
        raise InvalidInput(f"Unknown document category '{category}'")

    if not data or size <= 0:
        raise InvalidInput("File is empty. Please choose a file with content.")

    if len(data) != size:
        raise InvalidInput(
            f"Declared size {size} does not match received {len(data)} bytes. Please upload the file again.",
            details={"declared": size, "received": len(data)},
        )

    if size > policy.max_size_bytes:
        limit = _format_mb(policy.max_size_mb)
        raise FileTooLarge(
            f"File exceeds {limit}. Please upload a {category.value} smaller than {limit}.",
            details={"size": size, "max_size": policy.max_size_bytes},
        )

    mimetype = normalize_mimetype(declared_mimetype)
    if mimetype not in policy.mimetypes:
        raise InvalidInput(
            f"Unsupported file type '{mimetype or 'unknown'}'. Only {policy.kind_label} files are allowed.",
            details={"mimetype": mimetype, "allowed": sorted(policy.mimetypes)},
        )

    if original_name:
        ext = Path(original_name).suffix.lower()
        if ext not in policy.extensions:
            raise InvalidInput(
                f"Unsupported file extension '{ext or 'none'}'. Only {policy.kind_label} files are allowed.",
                details={"extension": ext, "allowed": sorted(policy.extensions)},
            )

    return policy


def compute_checksum(data: bytes) -> Tuple[str, str]:
    """Content digest and the algorithm that produced it."""
    return hashlib.sha256(data).hexdigest(), CHECKSUM_ALGORITHM


def verify_checksum(record: DocumentRecord, data: bytes) -> bool:
    """True when ``data`` hashes to the checksum stored on ``record``."""
    if record.checksum_algorithm != CHECKSUM_ALGORITHM:
        logger.warning(
            f"Cannot verify {record.id}: unsupported checksum algorithm {record.checksum_algorithm}"
        )
        return False
    digest, _ = compute_checksum(data)
    return secrets.compare_digest(digest, record.checksum)


_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9]+")


def storage_filename(original_name: str) -> str:
    """
    Collision-resistant storage name: ``{base}-{epoch_ms}-{random6}{ext}``.

    The base keeps only alphanumerics (runs of anything else collapse to
    ``-``) and is capped at 50 characters.
    """
    path = Path(original_name or "file")
    ext = path.suffix.lower()
    base = _UNSAFE_CHARS.sub("-", path.stem).strip("-")[:50] or "file"
    stamp = int(time.time() * 1000)
    suffix = secrets.token_hex(3)
    return f"{base}-{stamp}-{suffix}{ext}"
