"""
Slot Manager - "at most one current document per (owner, category)".

A slot is the reference an owning entity holds to its current document
(``candidates.resume_file_id``, ``users.profile_photo_file_id``...). The
reference itself lives in the owning entity's table; this module only reads
and writes it through ``SlotReferenceStore``.

Replacement order is new-before-old:

    1. validate and checksum the new bytes
    2. store the bytes, then create the new record
    3. point the slot at the new record
    4. best-effort delete of the previous record and its bytes

A failure in 1-3 leaves the slot and the previous document untouched. A
failure in 4 leaves an orphan, which is logged and tolerated.

Concurrent replacements of the same slot are not serialised: the last writer
of step 3 wins and the loser's document becomes an orphan.
"""

import logging
from typing import Dict, Optional, Protocol, Tuple
from uuid import uuid4

from postgrest.exceptions import APIError

from app.features.documents.models import (
    DocumentCategory,
    DocumentRecord,
    UploadMeta,
)
from app.features.documents.repository import DocumentRecordStore
from app.features.documents.validation import (
    CategoryPolicy,
    compute_checksum,
    normalize_mimetype,
    storage_filename,
    validate_upload,
)
from app.features.storage.base import StoredObject, build_locator
from app.features.storage.router import StorageRouter
from app.shared.errors import BackendUnavailable, DocumentError, NotFound, StorageUnavailable

logger = logging.getLogger("Recruit.Documents.Slots")


class SlotReferenceStore(Protocol):
    """Owning-entity side of a slot; each call is a single atomic write."""

    def get_slot_reference(self, owner_id: str, category: DocumentCategory) -> Optional[str]:
        ...

    def set_slot_reference(
        self, owner_id: str, category: DocumentCategory, document_id: Optional[str]
    ) -> None:
        ...


# category -> (table, owner column, reference column)
SLOT_COLUMNS: Dict[DocumentCategory, Tuple[str, str, str]] = {
    DocumentCategory.RESUME: ("candidates", "user_id", "resume_file_id"),
    DocumentCategory.COVER_LETTER: ("candidates", "user_id", "cover_letter_file_id"),
    DocumentCategory.PROFILE_IMAGE: ("users", "id", "profile_photo_file_id"),
    DocumentCategory.JOB_DESCRIPTION: ("jobs", "id", "jd_file_id"),
    DocumentCategory.COMPANY_LOGO: ("companies", "id", "logo_file_id"),
}


class SupabaseSlotReferenceStore:
    """Slot references stored as foreign-key columns on the owning tables."""

    def __init__(self, client):
        self.client = client

    def get_slot_reference(self, owner_id: str, category: DocumentCategory) -> Optional[str]:
        table, owner_column, ref_column = SLOT_COLUMNS[category]
        try:
            result = self.client.table(table).select(ref_column).eq(owner_column, owner_id).limit(1).execute()
        except APIError as e:
            logger.error(f"Failed to read {table}.{ref_column} for {owner_id}: {e}")
            raise BackendUnavailable("Owner store unavailable", provider="supabase") from e
        if not result.data:
            return None
        value = result.data[0].get(ref_column)
        return str(value) if value else None

    def set_slot_reference(
        self, owner_id: str, category: DocumentCategory, document_id: Optional[str]
    ) -> None:
        table, owner_column, ref_column = SLOT_COLUMNS[category]
        try:
            result = self.client.table(table).update({ref_column: document_id}).eq(owner_column, owner_id).execute()
        except APIError as e:
            logger.error(f"Failed to update {table}.{ref_column} for {owner_id}: {e}")
            raise BackendUnavailable("Owner store unavailable", provider="supabase") from e
        if not result.data:
            raise NotFound(f"No {table} entry for owner", resource_type=table, resource_id=owner_id)


class SlotManager:
    """Replaces and clears slot documents with new-before-old ordering."""

    def __init__(
        self,
        records: DocumentRecordStore,
        storage: StorageRouter,
        slots: SlotReferenceStore,
        policies: Dict[DocumentCategory, CategoryPolicy],
    ):
        self._records = records
        self._storage = storage
        self._slots = slots
        self._policies = policies

    def replace(
        self,
        owner_id: str,
        category: DocumentCategory,
        data: bytes,
        meta: UploadMeta,
        uploaded_by: Optional[str] = None,
    ) -> DocumentRecord:
        """
        Store ``data`` as the new current document of the slot.

        Args:
            owner_id: Entity owning the slot (user, job, company)
            category: Slot category
            data: Uploaded bytes
            meta: Declared mimetype, original name, optional related entity
            uploaded_by: Uploading user, defaults to ``owner_id``

        Returns:
            The new DocumentRecord, already referenced by the slot

        Raises:
            InvalidInput: Size or type policy violated; nothing was written
            StorageUnavailable: Bytes or record could not be stored; slot unchanged
        """
        policy = validate_upload(
            data, meta.mimetype, len(data), category, self._policies, meta.original_name
        )
        checksum, algorithm = compute_checksum(data)
        mimetype = normalize_mimetype(meta.mimetype)

        filename = storage_filename(meta.original_name)
        locator = build_locator(category, filename)
        stored = self._storage.put(data, locator, mimetype, policy.requires_object_store)

        record = DocumentRecord(
            id=str(uuid4()),
            filename=filename,
            original_name=meta.original_name,
            mimetype=mimetype,
            size=len(data),
            category=category,
            storage_provider=stored.provider,
            locator=stored.locator,
            public_url=stored.public_url,
            checksum=checksum,
            checksum_algorithm=algorithm,
            uploaded_by=uploaded_by or owner_id,
            owner_id=owner_id,
            related_entity=meta.related_entity,
        )
        try:
            record = self._records.create(record)
        except BackendUnavailable as e:
            self._discard_bytes(stored, record.id)
            raise StorageUnavailable(
                "Document storage is temporarily unavailable. Please try again shortly."
            ) from e

        try:
            previous_id = self._slots.get_slot_reference(owner_id, category)
            self._slots.set_slot_reference(owner_id, category, record.id)
        except DocumentError as e:
            logger.error(f"Slot update failed for {category.value} of {owner_id}; discarding {record.id}")
            self._discard(record)
            if isinstance(e, BackendUnavailable):
                raise StorageUnavailable(
                    "Document storage is temporarily unavailable. Please try again shortly."
                ) from e
            raise

        logger.info(
            f"Slot {category.value} of {owner_id} now -> {record.id} "
            f"({record.storage_provider.value}, {record.size} bytes)"
        )

        if previous_id and previous_id != record.id:
            self._discard_by_id(previous_id)

        return record

    def clear(self, owner_id: str, category: DocumentCategory) -> None:
        """Unset the slot, then best-effort delete the document it referenced."""
        previous_id = self._slots.get_slot_reference(owner_id, category)
        if not previous_id:
            logger.info(f"Slot {category.value} of {owner_id} already empty")
            return

        self._slots.set_slot_reference(owner_id, category, None)
        logger.info(f"Cleared slot {category.value} of {owner_id} (was {previous_id})")
        self._discard_by_id(previous_id)

    def current(self, owner_id: str, category: DocumentCategory) -> Optional[DocumentRecord]:
        """Record occupying the slot, or None."""
        document_id = self._slots.get_slot_reference(owner_id, category)
        if not document_id:
            return None
        try:
            return self._records.get(document_id)
        except NotFound:
            logger.warning(f"Slot {category.value} of {owner_id} references missing record {document_id}")
            return None

    # -------------------------------------------------------------------------
    # Best-effort cleanup; failures are logged and never raised
    # -------------------------------------------------------------------------

    def _discard_by_id(self, document_id: str) -> None:
        try:
            record = self._records.get(document_id)
        except NotFound:
            logger.info(f"Previous document {document_id} already gone")
            return
        except DocumentError as e:
            logger.warning(f"Orphaned document {document_id}: could not load record: {e.message}")
            return
        self._discard(record)

    def _discard(self, record: DocumentRecord) -> None:
        try:
            self._storage.delete(record)
        except DocumentError as e:
            # Keep the record so the orphaned bytes stay discoverable
            logger.warning(
                f"Orphaned document {record.id}: failed to delete bytes at "
                f"{record.storage_provider.value}:{record.locator}: {e.message}"
            )
            return
        try:
            self._records.delete(record.id)
        except DocumentError as e:
            logger.warning(f"Orphaned record {record.id}: bytes deleted but record remains: {e.message}")
            return
        logger.info(f"Deleted document {record.id}")

    def _discard_bytes(self, stored: StoredObject, document_id: str) -> None:
        try:
            self._storage.backend(stored.provider).delete(stored.locator)
        except DocumentError as e:
            logger.warning(
                f"Orphaned bytes for unrecorded document {document_id} at "
                f"{stored.provider.value}:{stored.locator}: {e.message}"
            )
