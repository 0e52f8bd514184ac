"""
Retrieval Gateway - resolve, authorize and stream stored documents.

Authorization is a collaborator: ``AccessPolicy.can_access`` decides whether a
requester may see documents owned by someone else. The gateway only asks.
"""

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterator, Protocol
from urllib.parse import quote

from app.features.documents.models import DispositionMode, DocumentRecord, Requester
from app.features.documents.repository import DocumentRecordStore
from app.features.storage.router import StorageRouter
from app.shared.errors import Forbidden

logger = logging.getLogger("Recruit.Documents.Retrieval")


class AccessPolicy(Protocol):
    def can_access(self, requester_id: str, requester_role: str, owner_id: str) -> bool:
        ...


class RoleAccessPolicy:
    """Owners see their own documents; privileged roles see everyone's."""

    DEFAULT_PRIVILEGED_ROLES = frozenset({"hr", "admin", "agent", "superadmin"})

    def __init__(self, privileged_roles: FrozenSet[str] = DEFAULT_PRIVILEGED_ROLES):
        self.privileged_roles = frozenset(role.lower() for role in privileged_roles)

    def can_access(self, requester_id: str, requester_role: str, owner_id: str) -> bool:
        if requester_id and requester_id == owner_id:
            return True
        return (requester_role or "").lower() in self.privileged_roles


def content_disposition(mode: DispositionMode, filename: str) -> str:
    """``Content-Disposition`` value carrying an ASCII fallback and the UTF-8 name."""
    fallback = "".join(c if 32 <= ord(c) < 127 and c not in '"\\' else "_" for c in filename) or "document"
    return f"{mode.value}; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


@dataclass
class DocumentStream:
    """Bytes of one document plus the headers to send them with."""
    record: DocumentRecord
    mode: DispositionMode
    chunks: Iterator[bytes]

    @property
    def media_type(self) -> str:
        return self.record.mimetype

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": self.record.mimetype,
            "Content-Disposition": content_disposition(self.mode, self.record.original_name),
            "Content-Length": str(self.record.size),
            "X-Content-Type-Options": "nosniff",
        }

    def __iter__(self) -> Iterator[bytes]:
        return iter(self.chunks)


class RetrievalGateway:
    """Looks up records, enforces the access policy and opens byte streams."""

    def __init__(self, records: DocumentRecordStore, storage: StorageRouter, policy: AccessPolicy):
        self._records = records
        self._storage = storage
        self._policy = policy

    def resolve(self, document_id: str, requester: Requester) -> DocumentRecord:
        """
        Raises:
            NotFound: No record with this id
            Forbidden: The policy denied the requester
        """
        record = self._records.get(document_id)
        if not self._policy.can_access(requester.id, requester.role, record.owner):
            logger.warning(f"Access to document {document_id} denied for {requester.id} ({requester.role})")
            raise Forbidden("You do not have access to this document")
        return record

    def stream(self, record: DocumentRecord, mode: DispositionMode) -> DocumentStream:
        """
        Open the bytes of ``record`` for streaming.

        Raises:
            NotFound: Bytes missing on the recorded backend and the local probe
            BackendUnavailable: Transient backend failure; retry later
        """
        chunks = self._storage.open(record)
        logger.info(f"Streaming document {record.id} ({mode.value}) from {record.storage_provider.value}")
        return DocumentStream(record=record, mode=mode, chunks=chunks)
