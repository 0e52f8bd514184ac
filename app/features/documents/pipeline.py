"""
Extraction Pipeline - turn a stored document into a structured record.

Stages per run:

    RESOLVED -> BYTES_FETCHED -> TEXT_EXTRACTED -> VALIDATED -> PARSED -> DONE

Each stage can fail with its own error. Remote documents are streamed into a
uniquely named temporary file that is removed on every exit path, including
parser failures and aborted calls.

The pipeline never persists anything; the caller decides what to save.
"""

import logging
import tempfile
import time
import uuid
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional, Protocol, Tuple, Union

from app.core.config import StorageConfig
from app.core.tracing import get_tracer
from app.features.documents.extractor import DocumentExtractor
from app.features.documents.models import DocumentRecord, ExtractionResult, ParseKind, StorageProvider
from app.features.documents.profiles import JobDescriptionProfile, ResumeProfile
from app.features.storage.router import StorageRouter
from app.shared.errors import DocumentError, InsufficientContent, NotFound, ParseFailed

logger = logging.getLogger("Recruit.Documents.Pipeline")
tracer = get_tracer(__name__)

StructuredRecord = Union[ResumeProfile, JobDescriptionProfile]


class PipelineStage(str, Enum):
    RESOLVED = "resolved"
    BYTES_FETCHED = "bytes_fetched"
    TEXT_EXTRACTED = "text_extracted"
    VALIDATED = "validated"
    PARSED = "parsed"
    DONE = "done"


class StructuredParser(Protocol):
    """External structured-extraction service."""

    def parse(self, text: str, kind: ParseKind, document_id: Optional[str] = None) -> StructuredRecord:
        ...


class ExtractionPipeline:
    """Fetch, extract, validate and parse one document per ``run`` call."""

    def __init__(
        self,
        storage: StorageRouter,
        parser: StructuredParser,
        config: StorageConfig,
        extractor=DocumentExtractor,
    ):
        self._storage = storage
        self._parser = parser
        self._extractor = extractor
        self._min_text_length = config.min_extracted_text_length
        self._temp_dir = config.extraction_temp_dir

    def run(self, record: DocumentRecord, kind: ParseKind) -> ExtractionResult:
        """
        Run every stage for an already resolved and authorized record.

        Raises:
            NotFound: Bytes missing on every backend
            BackendUnavailable: Transient backend failure while fetching
            UnsupportedFormat: No text extractor for the record's mimetype
            InsufficientContent: Too little text to parse
            ParseFailed: The parser returned nothing usable
        """
        stage = PipelineStage.RESOLVED
        with tracer.start_as_current_span("pipeline.run") as span:
            span.set_attribute("document.id", record.id)
            span.set_attribute("pipeline.kind", kind.value)
            try:
                with self.fetch_bytes(record) as path:
                    stage = PipelineStage.BYTES_FETCHED
                    text = self.extract_text(path, record.mimetype)
                    stage = PipelineStage.TEXT_EXTRACTED
                self.validate_sufficiency(text)
                stage = PipelineStage.VALIDATED
                structured, populated = self.invoke_parser(text, kind, record.id)
                stage = PipelineStage.PARSED
            except DocumentError as e:
                span.set_attribute("pipeline.failed_stage", stage.value)
                logger.warning(f"Extraction of {record.id} failed after {stage.value}: {e.code.value}")
                raise

            stage = PipelineStage.DONE
            span.set_attribute("pipeline.stage", stage.value)

        logger.info(
            f"Extracted {kind.value} from {record.id}: {len(text)} chars, "
            f"{len(populated)} populated fields"
        )
        return ExtractionResult(kind=kind, text=text, record=structured, populated_fields=populated)

    def temp_path_for(self, record: DocumentRecord) -> Path:
        """Unique temp file per invocation: timestamp plus a random component."""
        directory = self._temp_dir or Path(tempfile.gettempdir())
        ext = Path(record.filename).suffix
        return directory / f"extract-{record.id}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{ext}"

    @contextmanager
    def fetch_bytes(self, record: DocumentRecord) -> Iterator[Path]:
        """
        Yield a local path holding the document bytes.

        Local documents are read in place. Remote documents are streamed into
        a temporary file which is deleted when the context exits, however it
        exits.
        """
        with tracer.start_as_current_span("pipeline.fetch_bytes"):
            if record.storage_provider == StorageProvider.LOCAL:
                path = self._storage.local.local_path(record.locator)
                if path is None:
                    raise NotFound("Document file not found", resource_type="document", resource_id=record.id)
                yield path
                return

            temp_path = self.temp_path_for(record)
            try:
                temp_path.parent.mkdir(parents=True, exist_ok=True)
                with open(temp_path, "wb") as handle:
                    for chunk in self._storage.open(record):
                        handle.write(chunk)
                logger.debug(f"Fetched {record.id} into {temp_path.name}")
                yield temp_path
            finally:
                temp_path.unlink(missing_ok=True)
                logger.debug(f"Removed temp file {temp_path.name}")

    def extract_text(self, path: Path, mimetype: str) -> str:
        with tracer.start_as_current_span("pipeline.extract_text"):
            text, _ = self._extractor.extract(path, mimetype)
            return text

    def validate_sufficiency(self, text: str) -> None:
        """Reject empty, corrupted or image-only documents."""
        length = len((text or "").strip())
        if length < self._min_text_length:
            raise InsufficientContent(
                "Could not extract enough text from the document. Please upload a text-based "
                "PDF or DOCX file; scanned images are not supported.",
                details={"extracted_length": length, "minimum_length": self._min_text_length},
            )

    def invoke_parser(
        self,
        text: str,
        kind: ParseKind,
        document_id: Optional[str] = None,
    ) -> Tuple[StructuredRecord, List[str]]:
        """Structured record plus, for resumes, the fields that came back non-empty."""
        with tracer.start_as_current_span("pipeline.invoke_parser"):
            structured = self._parser.parse(text, kind, document_id=document_id)

        if structured is None:
            raise ParseFailed("The document could not be parsed. Please try a different file.")

        if kind == ParseKind.RESUME:
            if not isinstance(structured, ResumeProfile):
                raise ParseFailed("The resume could not be parsed. Please try a different file.")
            populated = structured.populated_fields()
            if not populated:
                raise ParseFailed(
                    "No profile information could be found in the resume. Please upload a more detailed resume."
                )
            return structured, populated

        if not isinstance(structured, JobDescriptionProfile):
            raise ParseFailed("The job description could not be parsed. Please try a different file.")
        return structured, []
