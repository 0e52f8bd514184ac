"""
Document domain types.

A ``DocumentRecord`` is written once, after its bytes have landed on a
backend, and never updated afterwards. Replacing a document means creating a
new record and deleting the old one.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from app.features.documents.profiles import JobDescriptionProfile, ResumeProfile


class DocumentCategory(str, Enum):
    """What a stored document is for; drives size/type policy and storage policy."""
    RESUME = "resume"
    JOB_DESCRIPTION = "job-description"
    COVER_LETTER = "cover-letter"
    PROFILE_IMAGE = "profile-image"
    COMPANY_LOGO = "company-logo"


class StorageProvider(str, Enum):
    """Backend that holds a record's bytes."""
    OBJECT_STORE = "object-store"
    LOCAL = "local"


class EntityType(str, Enum):
    """Kinds of entity a document can point back to."""
    CANDIDATE = "candidate"
    JOB = "job"
    APPLICATION = "application"
    INTERVIEW = "interview"
    COMPANY = "company"
    USER = "user"


class DispositionMode(str, Enum):
    INLINE = "inline"
    ATTACHMENT = "attachment"


class ParseKind(str, Enum):
    """Which structured record the extraction service should produce."""
    RESUME = "resume"
    JOB_DESCRIPTION = "job-description"


@dataclass(frozen=True)
class RelatedEntity:
    """Non-owning back-reference from a document to a domain entity."""
    type: EntityType
    id: str


@dataclass(frozen=True)
class DocumentMetadata:
    """Optional, explicitly-typed facts about a document's content."""
    page_count: Optional[int] = None
    title: Optional[str] = None
    author: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class Requester:
    """Authenticated caller, as supplied by the authentication layer."""
    id: str
    role: str


@dataclass(frozen=True)
class UploadMeta:
    """Caller-supplied facts about an upload."""
    mimetype: str
    original_name: str
    related_entity: Optional[RelatedEntity] = None


@dataclass(frozen=True)
class DocumentRecord:
    """
    Metadata of one stored binary object.

    ``storage_provider`` names the backend that actually holds the bytes at
    ``locator``; readers go there and nowhere else first.

    ``owner_id`` is the entity whose slot the document was uploaded into and
    is what access checks run against. ``uploaded_by`` is the acting user,
    which differs when HR or an agent uploads on a candidate's behalf.
    """
    id: str
    filename: str
    original_name: str
    mimetype: str
    size: int
    category: DocumentCategory
    storage_provider: StorageProvider
    locator: str
    checksum: str
    checksum_algorithm: str
    uploaded_by: str
    owner_id: Optional[str] = None
    public_url: Optional[str] = None
    related_entity: Optional[RelatedEntity] = None
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def owner(self) -> str:
        """Slot owner; rows written before ``owner_id`` existed fall back to the uploader."""
        return self.owner_id or self.uploaded_by

    def to_row(self) -> Dict[str, Any]:
        """Serialize for the ``document_records`` table."""
        return {
            "id": self.id,
            "filename": self.filename,
            "original_name": self.original_name,
            "mimetype": self.mimetype,
            "size": self.size,
            "category": self.category.value,
            "storage_provider": self.storage_provider.value,
            "locator": self.locator,
            "public_url": self.public_url,
            "checksum": self.checksum,
            "checksum_algorithm": self.checksum_algorithm,
            "uploaded_by": self.uploaded_by,
            "owner_id": self.owner,
            "related_entity_type": self.related_entity.type.value if self.related_entity else None,
            "related_entity_id": self.related_entity.id if self.related_entity else None,
            "metadata": self.metadata.to_dict(),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "DocumentRecord":
        related = None
        if row.get("related_entity_type") and row.get("related_entity_id"):
            related = RelatedEntity(
                type=EntityType(row["related_entity_type"]),
                id=str(row["related_entity_id"]),
            )
        created_at = row.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
        return cls(
            id=str(row["id"]),
            filename=row["filename"],
            original_name=row["original_name"],
            mimetype=row["mimetype"],
            size=int(row["size"]),
            category=DocumentCategory(row["category"]),
            storage_provider=StorageProvider(row["storage_provider"]),
            locator=row["locator"],
            public_url=row.get("public_url"),
            checksum=row["checksum"],
            checksum_algorithm=row.get("checksum_algorithm") or "sha256",
            uploaded_by=str(row["uploaded_by"]),
            owner_id=str(row["owner_id"]) if row.get("owner_id") else None,
            related_entity=related,
            metadata=DocumentMetadata(**(row.get("metadata") or {})),
            created_at=created_at or datetime.now(timezone.utc),
        )


@dataclass
class ExtractionResult:
    """
    Output of one extraction pipeline run. Never persisted here; the caller
    decides what to save.

    Attributes:
        kind: Which parser produced ``record``
        text: Raw text extracted from the document
        record: Structured profile or job description
        populated_fields: For resumes, the profile fields that came back non-empty
    """
    kind: ParseKind
    text: str
    record: Union[ResumeProfile, JobDescriptionProfile]
    populated_fields: List[str] = field(default_factory=list)

