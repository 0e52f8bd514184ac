"""
File API Routes

Endpoints for:
- Uploading or replacing the document in a slot (resume, JD, photo, logo)
- Looking up and clearing the current slot document
- Viewing (inline) and downloading (attachment) stored documents
- Parsing a stored resume or job description into structured fields

Domain errors propagate to the exception handler registered in ``main.py``.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from app.api.dependencies import get_requester, get_service
from app.features.documents.models import (
    DocumentCategory,
    DocumentRecord,
    EntityType,
    ParseKind,
    RelatedEntity,
    Requester,
)
from app.features.documents.retrieval import DocumentStream
from app.features.documents.service import DocumentService
from app.shared.errors import InvalidInput

router = APIRouter(prefix="/files", tags=["Files"])
logger = logging.getLogger("Recruit.API.Files")


# ============================================================================
# RESPONSE MODELS
# ============================================================================

class DocumentInfo(BaseModel):
    """Public view of a DocumentRecord."""
    id: str
    filename: str
    original_name: str
    mimetype: str
    size: int
    category: str
    storage_provider: str
    checksum: str
    checksum_algorithm: str
    uploaded_by: str
    owner_id: str
    public_url: Optional[str] = None
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_record(cls, record: DocumentRecord) -> "DocumentInfo":
        return cls(
            id=record.id,
            filename=record.filename,
            original_name=record.original_name,
            mimetype=record.mimetype,
            size=record.size,
            category=record.category.value,
            storage_provider=record.storage_provider.value,
            checksum=record.checksum,
            checksum_algorithm=record.checksum_algorithm,
            uploaded_by=record.uploaded_by,
            owner_id=record.owner,
            public_url=record.public_url,
            related_entity_type=record.related_entity.type.value if record.related_entity else None,
            related_entity_id=record.related_entity.id if record.related_entity else None,
            created_at=record.created_at,
        )


class DocumentResponse(BaseModel):
    status: str
    document: Optional[DocumentInfo] = None
    message: Optional[str] = None


class DocumentListResponse(BaseModel):
    status: str
    count: int
    documents: List[DocumentInfo]


class ParseResponse(BaseModel):
    """Structured fields extracted from a document; nothing is saved."""
    status: str
    kind: str
    document_id: str
    text_length: int
    record: Dict[str, Any]
    populated_fields: List[str] = []


class VerifyResponse(BaseModel):
    document_id: str
    valid: bool


def _streaming_response(stream: DocumentStream) -> StreamingResponse:
    return StreamingResponse(stream.chunks, media_type=stream.media_type, headers=stream.headers)


# ============================================================================
# DOCUMENT ENDPOINTS (by id)
# ============================================================================

@router.get("/documents", response_model=DocumentListResponse)
async def list_documents(
    owner_id: Optional[str] = Query(None, description="Defaults to the requester"),
    requester: Requester = Depends(get_requester),
    service: DocumentService = Depends(get_service),
):
    """List every document uploaded by an owner, newest first."""
    records = await run_in_threadpool(service.list_for_owner, owner_id or requester.id, requester)
    return DocumentListResponse(
        status="success",
        count=len(records),
        documents=[DocumentInfo.from_record(r) for r in records],
    )


@router.get("/documents/{document_id}")
async def view_document(
    document_id: str,
    requester: Requester = Depends(get_requester),
    service: DocumentService = Depends(get_service),
):
    """Stream a document inline for preview."""
    stream = await run_in_threadpool(service.view, document_id, requester)
    return _streaming_response(stream)


@router.get("/documents/{document_id}/download")
async def download_document(
    document_id: str,
    requester: Requester = Depends(get_requester),
    service: DocumentService = Depends(get_service),
):
    """Stream a document as an attachment."""
    stream = await run_in_threadpool(service.download, document_id, requester)
    return _streaming_response(stream)


@router.get("/documents/{document_id}/verify", response_model=VerifyResponse)
async def verify_document(
    document_id: str,
    requester: Requester = Depends(get_requester),
    service: DocumentService = Depends(get_service),
):
    """Re-hash the stored bytes and compare with the recorded checksum."""
    valid = await run_in_threadpool(service.verify, document_id, requester)
    return VerifyResponse(document_id=document_id, valid=valid)


@router.post("/documents/{document_id}/parse", response_model=ParseResponse)
async def parse_document(
    document_id: str,
    kind: ParseKind = Query(ParseKind.RESUME),
    requester: Requester = Depends(get_requester),
    service: DocumentService = Depends(get_service),
):
    """
    Extract structured fields from a stored resume or job description.

    The result is returned for the caller to review and save; the stored
    document and any profile are left unchanged.
    """
    result = await run_in_threadpool(service.parse, document_id, requester, kind)
    return ParseResponse(
        status="success",
        kind=result.kind.value,
        document_id=document_id,
        text_length=len(result.text),
        record=result.record.model_dump(mode="json"),
        populated_fields=result.populated_fields,
    )


# ============================================================================
# SLOT ENDPOINTS (by owner and category)
# ============================================================================

@router.post("/{category}", response_model=DocumentResponse)
async def upload_file(
    category: DocumentCategory,
    file: UploadFile = File(...),
    owner_id: Optional[str] = Form(None),
    related_entity_type: Optional[EntityType] = Form(None),
    related_entity_id: Optional[str] = Form(None),
    requester: Requester = Depends(get_requester),
    service: DocumentService = Depends(get_service),
):
    """
    Upload a file into the owner's ``category`` slot, replacing any previous one.

    Args:
        category: resume, cover-letter, job-description, profile-image or company-logo
        file: The uploaded file
        owner_id: Slot owner (job or company id for JDs and logos); defaults to the requester
        related_entity_type: Optional back-reference type
        related_entity_id: Optional back-reference id
    """
    if bool(related_entity_type) != bool(related_entity_id):
        raise InvalidInput("related_entity_type and related_entity_id must be provided together")
    related = RelatedEntity(type=related_entity_type, id=related_entity_id) if related_entity_type else None

    # One byte past the limit is enough for validation to reject an oversized upload
    data = await file.read(service.policies[category].max_size_bytes + 1)
    record = await run_in_threadpool(
        service.upload,
        owner_id or requester.id,
        category,
        data,
        file.content_type or "",
        file.filename or "file",
        requester,
        related,
    )
    logger.info(f"Uploaded {category.value} {record.id} for {owner_id or requester.id}")
    return DocumentResponse(
        status="success",
        document=DocumentInfo.from_record(record),
        message=f"{category.value} uploaded",
    )


@router.get("/{category}", response_model=DocumentResponse)
async def get_current_file(
    category: DocumentCategory,
    owner_id: Optional[str] = Query(None),
    requester: Requester = Depends(get_requester),
    service: DocumentService = Depends(get_service),
):
    """Info about the document currently in the slot."""
    record = await run_in_threadpool(service.current, owner_id or requester.id, category, requester)
    if record is None:
        return DocumentResponse(status="empty", message=f"No {category.value} uploaded")
    return DocumentResponse(status="success", document=DocumentInfo.from_record(record))


@router.delete("/{category}", response_model=DocumentResponse)
async def delete_file(
    category: DocumentCategory,
    owner_id: Optional[str] = Query(None),
    requester: Requester = Depends(get_requester),
    service: DocumentService = Depends(get_service),
):
    """Clear the slot and delete its document."""
    await run_in_threadpool(service.delete, owner_id or requester.id, category, requester)
    return DocumentResponse(status="success", message=f"{category.value} deleted")
