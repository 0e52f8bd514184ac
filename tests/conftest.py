"""
Shared fixtures: in-memory Supabase tables, an in-memory object store, a
tmp_path local backend and a scripted structured parser.
"""

import re
from typing import Any, Dict, Iterator, List, Optional

import pytest
from postgrest.exceptions import APIError

from app.core.config import StorageConfig
from app.features.documents.models import DocumentMetadata, ParseKind, Requester, StorageProvider
from app.features.documents.profiles import JobDescriptionProfile, ResumeProfile
from app.features.documents.repository import DocumentRecordStore
from app.features.documents.retrieval import RoleAccessPolicy
from app.features.documents.service import DocumentService
from app.features.documents.slots import SupabaseSlotReferenceStore
from app.features.storage.base import CHUNK_SIZE, StorageBackend, StoredObject
from app.features.storage.local import LocalFilesystemBackend
from app.features.storage.router import StorageRouter
from app.shared.errors import BackendUnavailable, NotFound


# =============================================================================
# SUPABASE
# =============================================================================

class FakeResult:
    def __init__(self, data: List[Dict[str, Any]]):
        self.data = data


class FakeQuery:
    """The subset of the postgrest query builder the repositories use."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload: Optional[Dict[str, Any]] = None
        self.filters: List[tuple] = []
        self._limit: Optional[int] = None
        self._order: Optional[tuple] = None

    def select(self, *columns):
        self.op = "select"
        return self

    def insert(self, row):
        self.op, self.payload = "insert", row
        return self

    def update(self, values):
        self.op, self.payload = "update", values
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def limit(self, count):
        self._limit = count
        return self

    def order(self, column, desc=False):
        self._order = (column, desc)
        return self

    def execute(self) -> FakeResult:
        if (self.table, self.op) in self.db.failures or (self.table, "*") in self.db.failures:
            raise APIError({"message": f"{self.op} on {self.table} failed", "code": "500"})

        rows = self.db.tables.setdefault(self.table, [])
        if self.op == "insert":
            row = dict(self.payload)
            rows.append(row)
            return FakeResult([dict(row)])

        matched = [r for r in rows if all(r.get(c) == v for c, v in self.filters)]
        if self.op == "update":
            for row in matched:
                row.update(self.payload)
            return FakeResult([dict(r) for r in matched])
        if self.op == "delete":
            self.db.tables[self.table] = [r for r in rows if r not in matched]
            return FakeResult([dict(r) for r in matched])

        if self._order:
            column, desc = self._order
            matched = sorted(matched, key=lambda r: r.get(column) or "", reverse=desc)
        if self._limit is not None:
            matched = matched[: self._limit]
        return FakeResult([dict(r) for r in matched])


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.failures: set = set()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def fail(self, table: str, op: str = "*") -> None:
        self.failures.add((table, op))

    def heal(self) -> None:
        self.failures.clear()


# =============================================================================
# STORAGE
# =============================================================================

class FakeObjectStore(StorageBackend):
    """Object store double; flip ``available`` or set ``fail_*`` to inject failures."""

    provider = StorageProvider.OBJECT_STORE

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.available = True
        self.fail_delete = False
        self.get_calls = 0

    def _check(self):
        if not self.available:
            raise BackendUnavailable("Object store is down", provider=self.provider.value)

    def put(self, data, locator, mimetype, make_public=False):
        self._check()
        self.objects[locator] = bytes(data)
        return StoredObject(provider=self.provider, locator=locator)

    def get(self, locator, chunk_size=CHUNK_SIZE) -> Iterator[bytes]:
        self.get_calls += 1
        self._check()
        if locator not in self.objects:
            raise NotFound("Stored object not found", resource_type="object", resource_id=locator)
        data = self.objects[locator]
        return iter([data[i:i + chunk_size] for i in range(0, len(data), chunk_size)] or [b""])

    def delete(self, locator):
        self._check()
        if self.fail_delete:
            raise BackendUnavailable("Delete refused", provider=self.provider.value)
        self.objects.pop(locator, None)

    def exists(self, locator):
        self._check()
        return locator in self.objects


# =============================================================================
# EXTRACTION
# =============================================================================

class FakeParser:
    """
    Stand-in for the structured-extraction service.

    Resumes: picks up ``Skills: X`` tokens. Job descriptions: first line is
    the title, the rest the description. ``result`` overrides both;
    ``error`` is raised instead of parsing.
    """

    def __init__(self):
        self.calls: List[tuple] = []
        self.result = None
        self.error: Optional[Exception] = None

    def parse(self, text, kind, document_id=None):
        self.calls.append((text, kind, document_id))
        if self.error is not None:
            raise self.error
        if self.result is not None:
            return self.result
        if kind == ParseKind.RESUME:
            skills = re.findall(r"Skills:\s*([A-Za-z+#.]+)", text)
            return ResumeProfile.from_raw({"skills": skills})
        title, _, body = text.partition("\n")
        return JobDescriptionProfile.from_raw({"title": title, "description": body or title})


class FakeExtractor:
    """Returns ``text`` for any file and records the path it was handed."""

    def __init__(self, text: str = ""):
        self.text = text
        self.seen_paths: List = []
        self.existed_during_extract: List[bool] = []

    def extract(self, path, mimetype):
        self.seen_paths.append(path)
        self.existed_during_extract.append(path.exists())
        return self.text, DocumentMetadata()


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def storage_config(tmp_path) -> StorageConfig:
    return StorageConfig(
        uploads_path=tmp_path / "uploads",
        gcs_bucket="test-bucket",
        gcs_enabled=True,
        extraction_temp_dir=tmp_path / "extract",
    )


@pytest.fixture
def fake_db() -> FakeSupabase:
    db = FakeSupabase()
    db.tables["candidates"] = [
        {"user_id": "U1", "resume_file_id": None, "cover_letter_file_id": None},
        {"user_id": "U2", "resume_file_id": None, "cover_letter_file_id": None},
    ]
    db.tables["users"] = [{"id": "U1", "profile_photo_file_id": None}, {"id": "HR1", "profile_photo_file_id": None}]
    db.tables["jobs"] = [{"id": "J1", "jd_file_id": None}]
    db.tables["companies"] = [{"id": "C1", "logo_file_id": None}]
    return db


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def local_backend(storage_config) -> LocalFilesystemBackend:
    return LocalFilesystemBackend(storage_config)


@pytest.fixture
def router(object_store, local_backend) -> StorageRouter:
    return StorageRouter(object_store=object_store, local=local_backend)


@pytest.fixture
def records(fake_db) -> DocumentRecordStore:
    return DocumentRecordStore(fake_db)


@pytest.fixture
def slot_store(fake_db) -> SupabaseSlotReferenceStore:
    return SupabaseSlotReferenceStore(fake_db)


@pytest.fixture
def parser() -> FakeParser:
    return FakeParser()


@pytest.fixture
def extractor() -> FakeExtractor:
    return FakeExtractor("John Doe, Skills: Go, 5 years experience")


@pytest.fixture
def service(records, router, slot_store, parser, storage_config, extractor) -> DocumentService:
    return DocumentService(
        records=records,
        storage=router,
        slot_store=slot_store,
        access_policy=RoleAccessPolicy(),
        parser=parser,
        config=storage_config,
        extractor=extractor,
    )


@pytest.fixture
def candidate() -> Requester:
    return Requester(id="U1", role="candidate")


@pytest.fixture
def hr_user() -> Requester:
    return Requester(id="HR1", role="hr")


@pytest.fixture
def pdf_bytes() -> bytes:
    return b"%PDF-1.4\n" + b"0" * (100 * 1024)
