"""
Document Record Repository - metadata persistence for stored documents.

Records live in the ``document_records`` table. There is deliberately no
update operation: a record is written once, after its bytes are stored, and
only ever deleted afterwards.
"""

import logging
from typing import List

from postgrest.exceptions import APIError

from app.features.documents.models import DocumentRecord
from app.shared.errors import BackendUnavailable, NotFound

logger = logging.getLogger("Recruit.Documents.Repository")

TABLE = "document_records"


class DocumentRecordStore:
    """Repository for ``DocumentRecord`` rows."""

    def __init__(self, client):
        """Initialize with Supabase client."""
        self.client = client

    def create(self, record: DocumentRecord) -> DocumentRecord:
        try:
            result = self.client.table(TABLE).insert(record.to_row()).execute()
        except APIError as e:
            logger.error(f"Failed to create document record {record.id}: {e}")
            raise BackendUnavailable("Document record store unavailable", provider="supabase") from e

        logger.info(f"Created document record {record.id} ({record.category.value})")
        if result.data:
            return DocumentRecord.from_row(result.data[0])
        return record

    def get(self, document_id: str) -> DocumentRecord:
        """
        Fetch one record.

        Raises:
            NotFound: No record with this id
        """
        try:
            result = self.client.table(TABLE).select("*").eq("id", document_id).limit(1).execute()
        except APIError as e:
            logger.error(f"Failed to load document record {document_id}: {e}")
            raise BackendUnavailable("Document record store unavailable", provider="supabase") from e

        if not result.data:
            raise NotFound("Document not found", resource_type="document", resource_id=document_id)
        return DocumentRecord.from_row(result.data[0])

    def delete(self, document_id: str) -> None:
        try:
            self.client.table(TABLE).delete().eq("id", document_id).execute()
        except APIError as e:
            logger.error(f"Failed to delete document record {document_id}: {e}")
            raise BackendUnavailable("Document record store unavailable", provider="supabase") from e
        logger.info(f"Deleted document record {document_id}")

    def list_for_owner(self, owner_id: str, limit: int = 50) -> List[DocumentRecord]:
        """Records owned by ``owner_id``, newest first."""
        try:
            result = self.client.table(TABLE).select("*").eq(
                "owner_id", owner_id
            ).order("created_at", desc=True).limit(limit).execute()
        except APIError as e:
            logger.error(f"Failed to list documents for {owner_id}: {e}")
            raise BackendUnavailable("Document record store unavailable", provider="supabase") from e
        return [DocumentRecord.from_row(row) for row in result.data or []]
