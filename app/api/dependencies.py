from typing import Optional

from fastapi import Header

from app.features.documents.models import Requester
from app.features.documents.service import DocumentService, get_document_service
from app.shared.errors import Unauthorized


def get_requester(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> Requester:
    """Authenticated caller, as forwarded by the upstream auth gateway."""
    if not x_user_id:
        raise Unauthorized("Authentication required")
    return Requester(id=x_user_id, role=(x_user_role or "candidate").lower())


def get_service() -> DocumentService:
    """Provide the singleton document service for request handlers."""
    return get_document_service()
