"""Extraction pipeline: temp-file lifecycle, sufficiency gate and parser outcomes."""

import io

import pytest
from docx import Document
from PyPDF2 import PdfWriter

from app.features.documents.extractor import DocumentExtractor
from app.features.documents.models import DocumentCategory, ParseKind, StorageProvider
from app.features.documents.pipeline import ExtractionPipeline
from app.features.documents.profiles import JobDescriptionProfile, ResumeProfile
from app.features.documents.validation import DOCX, MSWORD
from app.shared.errors import InsufficientContent, NotFound, ParseFailed, UnsupportedFormat

RESUME_TEXT = (
    "Jane Smith\nSenior Backend Engineer\nSkills: Python, PostgreSQL, Kubernetes\n"
    "Experience: Acme Corp 2019-2024, built payment services handling millions of requests.\n"
    "Education: BSc Computer Science, State University.\n"
)


def _docx_bytes(*paragraphs):
    doc = Document()
    for text in paragraphs:
        doc.add_paragraph(text)
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def _blank_pdf_bytes():
    writer = PdfWriter()
    writer.add_blank_page(width=200, height=200)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture
def pipeline(router, parser, storage_config, extractor):
    return ExtractionPipeline(router, parser, storage_config, extractor=extractor)


@pytest.fixture
def temp_dir(storage_config):
    return storage_config.extraction_temp_dir


def _leftovers(temp_dir):
    return list(temp_dir.iterdir()) if temp_dir.exists() else []


@pytest.fixture
def remote_record(service):
    record = service.upload("U1", DocumentCategory.RESUME, b"%PDF remote", "application/pdf", "cv.pdf")
    assert record.storage_provider == StorageProvider.OBJECT_STORE
    return record


class TestSufficiencyGate:
    @pytest.mark.parametrize("text", ["", "ab", "   \n\t  "])
    def test_rejects_short_text(self, pipeline, text):
        with pytest.raises(InsufficientContent) as exc:
            pipeline.validate_sufficiency(text)
        assert "text-based PDF or DOCX" in exc.value.message

    def test_accepts_200_character_resume(self, pipeline):
        text = (RESUME_TEXT * 2)[:200]
        assert len(text) == 200
        pipeline.validate_sufficiency(text)

    def test_accepts_short_resume_sentence(self, pipeline):
        pipeline.validate_sufficiency("John Doe, Skills: Go, 5 years experience")


class TestTempFileLifecycle:
    def test_remote_bytes_go_through_temp_file_removed_on_success(
        self, pipeline, remote_record, extractor, temp_dir
    ):
        result = pipeline.run(remote_record, ParseKind.RESUME)

        assert result.record.skills == ["Go"]
        assert extractor.existed_during_extract == [True]
        assert extractor.seen_paths[0].parent == temp_dir
        assert remote_record.id in extractor.seen_paths[0].name
        assert not extractor.seen_paths[0].exists()
        assert _leftovers(temp_dir) == []

    def test_temp_file_removed_on_insufficient_content(self, pipeline, remote_record, extractor, temp_dir):
        extractor.text = "ab"
        with pytest.raises(InsufficientContent):
            pipeline.run(remote_record, ParseKind.RESUME)
        assert extractor.existed_during_extract == [True]
        assert _leftovers(temp_dir) == []

    def test_temp_file_removed_on_parse_failure(self, pipeline, remote_record, parser, temp_dir):
        parser.error = ParseFailed("model returned garbage")
        with pytest.raises(ParseFailed):
            pipeline.run(remote_record, ParseKind.RESUME)
        assert _leftovers(temp_dir) == []

    def test_temp_file_removed_on_unexpected_error(self, pipeline, remote_record, parser, temp_dir):
        parser.error = TimeoutError("request timed out")
        with pytest.raises(TimeoutError):
            pipeline.run(remote_record, ParseKind.RESUME)
        assert _leftovers(temp_dir) == []

    def test_temp_names_are_unique_per_invocation(self, pipeline, remote_record):
        assert pipeline.temp_path_for(remote_record) != pipeline.temp_path_for(remote_record)

    def test_local_document_is_read_in_place(self, pipeline, service, object_store, extractor, temp_dir):
        object_store.available = False
        record = service.upload("J1", DocumentCategory.JOB_DESCRIPTION, b"%PDF jd", "application/pdf", "jd.pdf")
        extractor.text = "Backend Engineer\nBuild and operate payment services in Go."

        result = pipeline.run(record, ParseKind.JOB_DESCRIPTION)

        assert record.storage_provider == StorageProvider.LOCAL
        assert extractor.seen_paths[0].parent != temp_dir
        assert extractor.seen_paths[0].exists()
        assert result.record.title == "Backend Engineer"
        assert result.populated_fields == []

    def test_missing_bytes_is_not_found(self, pipeline, remote_record, object_store, temp_dir):
        object_store.objects.clear()
        with pytest.raises(NotFound):
            pipeline.run(remote_record, ParseKind.RESUME)
        assert _leftovers(temp_dir) == []


class TestParserOutcomes:
    def test_empty_resume_profile_is_parse_failed(self, pipeline, remote_record, parser):
        parser.result = ResumeProfile()
        with pytest.raises(ParseFailed):
            pipeline.run(remote_record, ParseKind.RESUME)

    def test_none_is_parse_failed(self, pipeline, remote_record, parser, monkeypatch):
        monkeypatch.setattr(parser, "parse", lambda text, kind, document_id=None: None)
        with pytest.raises(ParseFailed):
            pipeline.run(remote_record, ParseKind.RESUME)

    def test_wrong_record_type_is_parse_failed(self, pipeline, remote_record, parser):
        parser.result = JobDescriptionProfile(title="x", description="y")
        with pytest.raises(ParseFailed):
            pipeline.run(remote_record, ParseKind.RESUME)

    def test_resume_returns_populated_fields(self, pipeline, remote_record, parser):
        parser.result = ResumeProfile.from_raw({"skills": ["Go"], "summary": "Backend engineer"})
        result = pipeline.run(remote_record, ParseKind.RESUME)
        assert result.populated_fields == ["skills", "summary"]
        assert result.kind == ParseKind.RESUME

    def test_parser_receives_document_id(self, pipeline, remote_record, parser):
        pipeline.run(remote_record, ParseKind.RESUME)
        assert parser.calls[0][1] == ParseKind.RESUME
        assert parser.calls[0][2] == remote_record.id


class TestDocumentExtractor:
    def test_docx_paragraphs_and_tables(self, tmp_path):
        doc = Document()
        doc.add_paragraph("Jane Smith")
        table = doc.add_table(rows=1, cols=2)
        table.rows[0].cells[0].text = "Python"
        table.rows[0].cells[1].text = "Go"
        path = tmp_path / "cv.docx"
        doc.save(str(path))

        text, _ = DocumentExtractor.extract(path, DOCX)

        assert "Jane Smith" in text
        assert "Python | Go" in text

    def test_blank_pdf_yields_no_text(self, tmp_path):
        path = tmp_path / "scan.pdf"
        path.write_bytes(_blank_pdf_bytes())

        text, metadata = DocumentExtractor.extract(path, "application/pdf")

        assert text == ""
        assert metadata.page_count == 1

    def test_corrupt_pdf_is_insufficient_content(self, tmp_path):
        path = tmp_path / "broken.pdf"
        path.write_bytes(b"not really a pdf")
        with pytest.raises(InsufficientContent) as exc:
            DocumentExtractor.extract(path, "application/pdf")
        assert "readable PDF or DOCX" in exc.value.message

    def test_unsupported_mimetype(self, tmp_path):
        path = tmp_path / "photo.png"
        path.write_bytes(b"\x89PNG")
        with pytest.raises(UnsupportedFormat):
            DocumentExtractor.extract(path, "image/png")

    def test_binary_doc_asks_for_docx(self, tmp_path):
        path = tmp_path / "cv.doc"
        path.write_bytes(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 512)
        with pytest.raises(InsufficientContent) as exc:
            DocumentExtractor.extract(path, MSWORD)
        assert "save it as DOCX" in exc.value.message


class TestRealExtraction:
    """Pipeline with the real extractor on documents stored in the object store."""

    @pytest.fixture
    def real_pipeline(self, router, parser, storage_config):
        return ExtractionPipeline(router, parser, storage_config)

    def test_docx_resume_end_to_end(self, real_pipeline, service, temp_dir):
        data = _docx_bytes("Jane Smith", "Skills: Python", "Eight years building distributed systems.")
        record = service.upload("U1", DocumentCategory.RESUME, data, DOCX, "cv.docx")

        result = real_pipeline.run(record, ParseKind.RESUME)

        assert result.record.skills == ["Python"]
        assert "Jane Smith" in result.text
        assert _leftovers(temp_dir) == []

    @pytest.mark.parametrize("declared", [DOCX.upper(), f"{DOCX}; charset=binary", f" {DOCX.title()} ; q=1"])
    def test_declared_mimetype_variants_still_parse(self, real_pipeline, service, declared):
        data = _docx_bytes("Jane Smith", "Skills: Python", "Eight years building distributed systems.")
        record = service.upload("U1", DocumentCategory.RESUME, data, declared, "cv.docx")

        assert record.mimetype == DOCX
        assert real_pipeline.run(record, ParseKind.RESUME).record.skills == ["Python"]

    def test_scanned_pdf_is_insufficient_content(self, real_pipeline, service, temp_dir):
        record = service.upload("U1", DocumentCategory.RESUME, _blank_pdf_bytes(), "application/pdf", "scan.pdf")
        with pytest.raises(InsufficientContent):
            real_pipeline.run(record, ParseKind.RESUME)
        assert _leftovers(temp_dir) == []

    def test_image_document_is_unsupported(self, real_pipeline, service, temp_dir):
        record = service.upload("U1", DocumentCategory.PROFILE_IMAGE, b"\x89PNG data", "image/png", "me.png")
        with pytest.raises(UnsupportedFormat):
            real_pipeline.run(record, ParseKind.RESUME)
        assert _leftovers(temp_dir) == []
