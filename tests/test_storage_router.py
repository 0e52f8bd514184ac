"""Upload and read fallback policy."""

import pytest

from app.features.documents.models import DocumentCategory, DocumentRecord, StorageProvider
from app.shared.errors import BackendUnavailable, NotFound, StorageUnavailable


def _record(provider, locator="job-description/2026/10/jd.pdf"):
    return DocumentRecord(
        id="doc-1", filename="jd.pdf", original_name="jd.pdf", mimetype="application/pdf", size=3,
        category=DocumentCategory.JOB_DESCRIPTION, storage_provider=provider, locator=locator,
        checksum="x", checksum_algorithm="sha256", uploaded_by="U1",
    )


class TestUploadPolicy:
    def test_prefers_object_store(self, router, object_store, local_backend):
        stored = router.put(b"abc", "job-description/2026/10/jd.pdf", "application/pdf", require_object_store=False)
        assert stored.provider == StorageProvider.OBJECT_STORE
        assert "job-description/2026/10/jd.pdf" in object_store.objects
        assert not local_backend.exists("job-description/2026/10/jd.pdf")

    def test_optional_category_falls_back_to_local(self, router, object_store, local_backend, caplog):
        object_store.available = False
        stored = router.put(b"abc", "job-description/2026/10/jd.pdf", "application/pdf", require_object_store=False)

        assert stored.provider == StorageProvider.LOCAL
        assert local_backend.read_all("job-description/2026/10/jd.pdf") == b"abc"
        assert "falling back to local storage" in caplog.text

    def test_mandatory_category_fails_without_object_store(self, router, object_store, local_backend):
        object_store.available = False
        with pytest.raises(StorageUnavailable):
            router.put(b"abc", "resume/2026/10/cv.pdf", "application/pdf", require_object_store=True)
        assert not local_backend.exists("resume/2026/10/cv.pdf")

    def test_every_backend_failing_is_storage_unavailable(self, router, object_store, monkeypatch, local_backend):
        object_store.available = False

        def broken_put(*args, **kwargs):
            raise BackendUnavailable("disk full", provider="local")

        monkeypatch.setattr(local_backend, "put", broken_put)
        with pytest.raises(StorageUnavailable):
            router.put(b"abc", "job-description/2026/10/jd.pdf", "application/pdf", require_object_store=False)


class TestReadPolicy:
    def test_reads_recorded_backend(self, router, object_store, local_backend):
        object_store.objects["job-description/2026/10/jd.pdf"] = b"remote"
        local_backend.put(b"local", "job-description/2026/10/jd.pdf", "application/pdf")

        assert b"".join(router.open(_record(StorageProvider.OBJECT_STORE))) == b"remote"
        assert b"".join(router.open(_record(StorageProvider.LOCAL))) == b"local"

    def test_local_record_never_touches_object_store(self, router, object_store, local_backend):
        local_backend.put(b"local", "job-description/2026/10/jd.pdf", "application/pdf")
        b"".join(router.open(_record(StorageProvider.LOCAL)))
        assert object_store.get_calls == 0

    def test_missing_remote_object_probes_local_once(self, router, object_store, local_backend):
        local_backend.put(b"local copy", "job-description/2026/10/jd.pdf", "application/pdf")
        assert b"".join(router.open(_record(StorageProvider.OBJECT_STORE))) == b"local copy"
        assert object_store.get_calls == 1

    def test_missing_everywhere_is_not_found(self, router):
        with pytest.raises(NotFound):
            router.open(_record(StorageProvider.OBJECT_STORE))

    def test_missing_local_record_is_not_found(self, router):
        with pytest.raises(NotFound):
            router.open(_record(StorageProvider.LOCAL))

    def test_transient_error_is_not_masked_as_not_found(self, router, object_store, local_backend):
        object_store.available = False
        local_backend.put(b"local copy", "job-description/2026/10/jd.pdf", "application/pdf")
        with pytest.raises(BackendUnavailable):
            router.open(_record(StorageProvider.OBJECT_STORE))
