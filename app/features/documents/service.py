"""
Document Service - the operations callers use.

Features:
- Upload into a slot (validate, store, record, swap the slot reference)
- View and download with authorization and backend fallback
- Clear a slot
- Parse a stored resume or job description into a structured record
- Slot lookup, per-owner listing and checksum verification

Every method returns its success value or raises one ``DocumentError``
subclass; nothing is swallowed except logged best-effort deletions.
"""

import logging
from functools import lru_cache
from typing import Dict, List, Optional

from app.core.config import StorageConfig
from app.core.database import get_supabase
from app.features.documents.extractor import DocumentExtractor
from app.features.documents.models import (
    DispositionMode,
    DocumentCategory,
    DocumentRecord,
    ExtractionResult,
    ParseKind,
    RelatedEntity,
    Requester,
    UploadMeta,
)
from app.features.documents.pipeline import ExtractionPipeline, StructuredParser
from app.features.documents.repository import DocumentRecordStore
from app.features.documents.retrieval import (
    AccessPolicy,
    DocumentStream,
    RetrievalGateway,
    RoleAccessPolicy,
)
from app.features.documents.slots import SlotManager, SlotReferenceStore, SupabaseSlotReferenceStore
from app.features.documents.validation import CategoryPolicy, build_policies, verify_checksum
from app.features.storage import LocalFilesystemBackend, ObjectStoreBackend, StorageRouter
from app.services.llm import StructuredProfileParser
from app.shared.errors import Forbidden

logger = logging.getLogger("Recruit.Documents.Service")


class DocumentService:
    """
    Facade over the slot manager, retrieval gateway and extraction pipeline.

    Construct it with explicit collaborators (tests do), or use
    ``get_document_service()`` for the process-wide instance wired from
    environment settings.
    """

    def __init__(
        self,
        records: DocumentRecordStore,
        storage: StorageRouter,
        slot_store: SlotReferenceStore,
        access_policy: AccessPolicy,
        parser: StructuredParser,
        config: StorageConfig,
        extractor=DocumentExtractor,
    ):
        self.policies: Dict[DocumentCategory, CategoryPolicy] = build_policies(config)
        self.records = records
        self.storage = storage
        self.access_policy = access_policy
        self.slots = SlotManager(records, storage, slot_store, self.policies)
        self.gateway = RetrievalGateway(records, storage, access_policy)
        self.pipeline = ExtractionPipeline(storage, parser, config, extractor=extractor)

    def _authorize_owner(self, owner_id: str, requester: Optional[Requester]) -> None:
        if requester is None:
            return
        if not self.access_policy.can_access(requester.id, requester.role, owner_id):
            logger.warning(f"{requester.id} ({requester.role}) denied access to slots of {owner_id}")
            raise Forbidden("You do not have access to this owner's documents")

    def upload(
        self,
        owner_id: str,
        category: DocumentCategory,
        data: bytes,
        mimetype: str,
        original_name: str,
        requester: Optional[Requester] = None,
        related_entity: Optional[RelatedEntity] = None,
    ) -> DocumentRecord:
        """
        Store ``data`` as the current ``category`` document of ``owner_id``.

        Raises:
            InvalidInput: Size or type policy violated
            StorageUnavailable: Mandatory backend (or every fallback) unavailable
            Forbidden: ``requester`` may not manage this owner's documents
        """
        self._authorize_owner(owner_id, requester)
        meta = UploadMeta(mimetype=mimetype, original_name=original_name, related_entity=related_entity)
        uploaded_by = requester.id if requester else owner_id
        return self.slots.replace(owner_id, category, data, meta, uploaded_by=uploaded_by)

    def view(self, document_id: str, requester: Requester) -> DocumentStream:
        """Inline stream for previewing."""
        record = self.gateway.resolve(document_id, requester)
        return self.gateway.stream(record, DispositionMode.INLINE)

    def download(self, document_id: str, requester: Requester) -> DocumentStream:
        """Attachment stream for forced download."""
        record = self.gateway.resolve(document_id, requester)
        return self.gateway.stream(record, DispositionMode.ATTACHMENT)

    def delete(
        self,
        owner_id: str,
        category: DocumentCategory,
        requester: Optional[Requester] = None,
    ) -> None:
        self._authorize_owner(owner_id, requester)
        self.slots.clear(owner_id, category)

    def parse(self, document_id: str, requester: Requester, kind: ParseKind) -> ExtractionResult:
        """
        Extract a structured record from a stored document.

        Raises:
            NotFound, Forbidden, UnsupportedFormat, InsufficientContent, ParseFailed
        """
        record = self.gateway.resolve(document_id, requester)
        return self.pipeline.run(record, kind)

    def current(
        self,
        owner_id: str,
        category: DocumentCategory,
        requester: Optional[Requester] = None,
    ) -> Optional[DocumentRecord]:
        self._authorize_owner(owner_id, requester)
        return self.slots.current(owner_id, category)

    def list_for_owner(self, owner_id: str, requester: Optional[Requester] = None) -> List[DocumentRecord]:
        self._authorize_owner(owner_id, requester)
        return self.records.list_for_owner(owner_id)

    def verify(self, document_id: str, requester: Requester) -> bool:
        """Re-read the stored bytes and compare them with the recorded checksum."""
        record = self.gateway.resolve(document_id, requester)
        data = b"".join(self.storage.open(record))
        ok = verify_checksum(record, data)
        if not ok:
            logger.warning(f"Checksum mismatch for document {document_id}")
        return ok


@lru_cache(maxsize=1)
def get_document_service() -> DocumentService:
    """Process-wide document service wired from environment settings."""
    config = StorageConfig.from_settings()
    storage = StorageRouter(
        object_store=ObjectStoreBackend(config),
        local=LocalFilesystemBackend(config),
    )
    client = get_supabase()
    service = DocumentService(
        records=DocumentRecordStore(client),
        storage=storage,
        slot_store=SupabaseSlotReferenceStore(client),
        access_policy=RoleAccessPolicy(),
        parser=StructuredProfileParser(),
        config=config,
    )
    logger.info(
        f"Document service ready (object store {'enabled' if config.gcs_enabled else 'disabled'}, "
        f"local root {config.uploads_path})"
    )
    return service
