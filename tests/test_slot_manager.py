"""Slot replacement ordering, singleton invariant and best-effort cleanup."""

import pytest

from app.features.documents.models import (
    DocumentCategory,
    EntityType,
    RelatedEntity,
    StorageProvider,
    UploadMeta,
)
from app.features.documents.slots import SlotManager
from app.features.documents.validation import build_policies
from app.shared.errors import InvalidInput, NotFound, StorageUnavailable

PDF = "application/pdf"


@pytest.fixture
def manager(records, router, slot_store, storage_config):
    return SlotManager(records, router, slot_store, build_policies(storage_config))


def _meta(name="cv.pdf", mimetype=PDF, related=None):
    return UploadMeta(mimetype=mimetype, original_name=name, related_entity=related)


def _slot(fake_db, table, owner_column, owner_id, column):
    return next(r for r in fake_db.tables[table] if r[owner_column] == owner_id)[column]


class TestReplace:
    def test_first_upload_fills_empty_slot(self, manager, fake_db, object_store):
        record = manager.replace("U1", DocumentCategory.RESUME, b"%PDF one", _meta())

        assert _slot(fake_db, "candidates", "user_id", "U1", "resume_file_id") == record.id
        assert record.category == DocumentCategory.RESUME
        assert record.storage_provider == StorageProvider.OBJECT_STORE
        assert record.original_name == "cv.pdf"
        assert record.uploaded_by == "U1"
        assert record.size == len(b"%PDF one")
        assert object_store.objects[record.locator] == b"%PDF one"
        assert record.locator.startswith("resume/")

    def test_replacement_deletes_previous_document(self, manager, records, object_store):
        first = manager.replace("U1", DocumentCategory.RESUME, b"%PDF one", _meta())
        second = manager.replace("U1", DocumentCategory.RESUME, b"%PDF two", _meta("cv2.pdf"))

        assert manager.current("U1", DocumentCategory.RESUME).id == second.id
        with pytest.raises(NotFound):
            records.get(first.id)
        assert first.locator not in object_store.objects
        assert object_store.objects[second.locator] == b"%PDF two"

    def test_singleton_invariant_over_many_replacements(self, manager, fake_db):
        for i in range(5):
            last = manager.replace("U1", DocumentCategory.RESUME, f"%PDF {i}".encode(), _meta())

        assert _slot(fake_db, "candidates", "user_id", "U1", "resume_file_id") == last.id
        resumes = [r for r in fake_db.tables["document_records"] if r["category"] == "resume"]
        assert [r["id"] for r in resumes] == [last.id]

    def test_failed_backend_write_leaves_slot_and_previous_document(
        self, manager, fake_db, object_store, records, router
    ):
        first = manager.replace("U1", DocumentCategory.RESUME, b"%PDF one", _meta())
        object_store.available = False

        with pytest.raises(StorageUnavailable):
            manager.replace("U1", DocumentCategory.RESUME, b"%PDF two", _meta())

        object_store.available = True
        assert _slot(fake_db, "candidates", "user_id", "U1", "resume_file_id") == first.id
        assert b"".join(router.open(records.get(first.id))) == b"%PDF one"
        assert len(fake_db.tables["document_records"]) == 1

    def test_invalid_upload_writes_nothing(self, manager, fake_db, object_store):
        with pytest.raises(InvalidInput):
            manager.replace("U1", DocumentCategory.RESUME, b"text", _meta("cv.txt", "text/plain"))
        assert object_store.objects == {}
        assert fake_db.tables.get("document_records", []) == []

    def test_record_store_failure_discards_new_bytes(self, manager, fake_db, object_store):
        fake_db.fail("document_records", "insert")
        with pytest.raises(StorageUnavailable):
            manager.replace("U1", DocumentCategory.RESUME, b"%PDF one", _meta())
        assert object_store.objects == {}
        assert _slot(fake_db, "candidates", "user_id", "U1", "resume_file_id") is None

    def test_slot_update_failure_keeps_previous_and_discards_new(self, manager, fake_db, records):
        first = manager.replace("U1", DocumentCategory.RESUME, b"%PDF one", _meta())
        fake_db.fail("candidates", "update")

        with pytest.raises(StorageUnavailable):
            manager.replace("U1", DocumentCategory.RESUME, b"%PDF two", _meta())

        fake_db.heal()
        assert _slot(fake_db, "candidates", "user_id", "U1", "resume_file_id") == first.id
        assert [r["id"] for r in fake_db.tables["document_records"]] == [first.id]

    def test_failed_cleanup_leaves_logged_orphan(self, manager, object_store, records, caplog):
        first = manager.replace("U1", DocumentCategory.RESUME, b"%PDF one", _meta())
        object_store.fail_delete = True

        second = manager.replace("U1", DocumentCategory.RESUME, b"%PDF two", _meta())

        assert manager.current("U1", DocumentCategory.RESUME).id == second.id
        assert records.get(first.id).id == first.id
        assert object_store.objects[first.locator] == b"%PDF one"
        assert f"Orphaned document {first.id}" in caplog.text

    def test_job_description_falls_back_to_local(self, manager, object_store, local_backend, fake_db, records):
        object_store.available = False
        record = manager.replace(
            "J1",
            DocumentCategory.JOB_DESCRIPTION,
            b"%PDF jd",
            _meta("jd.pdf", related=RelatedEntity(EntityType.JOB, "J1")),
            uploaded_by="HR1",
        )

        assert record.storage_provider == StorageProvider.LOCAL
        assert local_backend.read_all(record.locator) == b"%PDF jd"
        assert record.related_entity == RelatedEntity(EntityType.JOB, "J1")
        assert record.uploaded_by == "HR1"
        assert records.get(record.id).owner == "J1"
        assert _slot(fake_db, "jobs", "id", "J1", "jd_file_id") == record.id

    def test_resume_without_object_store_creates_no_record(self, manager, object_store, fake_db):
        object_store.available = False
        with pytest.raises(StorageUnavailable):
            manager.replace("U1", DocumentCategory.RESUME, b"%PDF one", _meta())
        assert fake_db.tables.get("document_records", []) == []

    def test_slots_are_independent_per_category(self, manager):
        resume = manager.replace("U1", DocumentCategory.RESUME, b"%PDF cv", _meta())
        letter = manager.replace("U1", DocumentCategory.COVER_LETTER, b"%PDF letter", _meta("letter.pdf"))
        photo = manager.replace("U1", DocumentCategory.PROFILE_IMAGE, b"\x89PNG", _meta("me.png", "image/png"))

        assert manager.current("U1", DocumentCategory.RESUME).id == resume.id
        assert manager.current("U1", DocumentCategory.COVER_LETTER).id == letter.id
        assert manager.current("U1", DocumentCategory.PROFILE_IMAGE).id == photo.id


class TestClear:
    def test_clear_unsets_slot_and_deletes(self, manager, fake_db, records, object_store):
        record = manager.replace("U1", DocumentCategory.RESUME, b"%PDF one", _meta())

        manager.clear("U1", DocumentCategory.RESUME)

        assert manager.current("U1", DocumentCategory.RESUME) is None
        with pytest.raises(NotFound):
            records.get(record.id)
        assert record.locator not in object_store.objects

    def test_clear_empty_slot_is_noop(self, manager):
        manager.clear("U2", DocumentCategory.RESUME)
        assert manager.current("U2", DocumentCategory.RESUME) is None

    def test_clear_survives_delete_failure(self, manager, object_store):
        manager.replace("U1", DocumentCategory.RESUME, b"%PDF one", _meta())
        object_store.fail_delete = True

        manager.clear("U1", DocumentCategory.RESUME)

        assert manager.current("U1", DocumentCategory.RESUME) is None


class TestCurrent:
    def test_dangling_reference_reads_as_empty(self, manager, fake_db):
        fake_db.tables["candidates"][0]["resume_file_id"] = "does-not-exist"
        assert manager.current("U1", DocumentCategory.RESUME) is None
