"""
Document Extractor - Extract text and metadata from stored documents.

Supports:
- PDF: Using PyPDF2
- DOC/DOCX: Using python-docx (paragraphs and tables)
"""

import logging
from pathlib import Path
from typing import Callable, Dict, Tuple

from docx import Document
from PyPDF2 import PdfReader

from app.features.documents.models import DocumentMetadata
from app.features.documents.validation import DOCX, MSWORD, PDF
from app.shared.errors import InsufficientContent, UnsupportedFormat

logger = logging.getLogger("Recruit.Documents.Extractor")


class DocumentExtractor:
    """Extract text content and metadata from a local file, by mimetype."""

    @classmethod
    def handlers(cls) -> Dict[str, Callable[[Path], Tuple[str, DocumentMetadata]]]:
        return {
            PDF: cls._extract_pdf,
            DOCX: cls._extract_docx,
            MSWORD: cls._extract_docx,
        }

    @classmethod
    def supports(cls, mimetype: str) -> bool:
        return mimetype in cls.handlers()

    @classmethod
    def extract(cls, path: Path, mimetype: str) -> Tuple[str, DocumentMetadata]:
        """
        Extract text content and metadata from a document.

        Args:
            path: Local file holding the document bytes
            mimetype: Recorded mimetype of the document

        Returns:
            Tuple of (extracted_text, metadata)

        Raises:
            UnsupportedFormat: No extractor for this mimetype
            InsufficientContent: The file could not be read as its declared type
        """
        handler = cls.handlers().get(mimetype)
        if handler is None:
            raise UnsupportedFormat(
                f"Cannot extract text from '{mimetype}' files. Please upload a PDF, DOC or DOCX document.",
                details={"mimetype": mimetype},
            )
        try:
            return handler(path)
        except Exception as e:
            logger.error(f"Failed to extract {mimetype} from {path.name}: {e}")
            if mimetype == MSWORD:
                # python-docx only reads the OOXML container, not binary Word 97-2003 files
                raise InsufficientContent(
                    "Legacy Word (.doc) files cannot be read. Please open the file in Word, "
                    "save it as DOCX or PDF and upload it again.",
                    details={"mimetype": mimetype},
                ) from e
            raise InsufficientContent(
                "The document could not be read. It may be corrupted or password protected; "
                "please upload a readable PDF or DOCX file.",
                details={"mimetype": mimetype},
            ) from e

    @classmethod
    def _extract_pdf(cls, path: Path) -> Tuple[str, DocumentMetadata]:
        """Extract text from PDF."""
        with open(path, "rb") as handle:
            reader = PdfReader(handle)
            text = "\n\n".join(page.extract_text() or "" for page in reader.pages)
            info = reader.metadata
            metadata = DocumentMetadata(
                page_count=len(reader.pages),
                title=info.title if info and info.title else None,
                author=info.author if info and info.author else None,
            )

        logger.info(f"Extracted {len(text)} chars from PDF ({metadata.page_count} pages)")
        return text.strip(), metadata

    @classmethod
    def _extract_docx(cls, path: Path) -> Tuple[str, DocumentMetadata]:
        """Extract text from DOCX including tables."""
        doc = Document(str(path))

        text_parts = [para.text for para in doc.paragraphs if para.text.strip()]

        # Resumes often lay out skills and dates in tables
        for table in doc.tables:
            for row in table.rows:
                row_text = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if row_text:
                    text_parts.append(" | ".join(row_text))

        text = "\n\n".join(text_parts)
        props = doc.core_properties
        metadata = DocumentMetadata(
            title=props.title or None,
            author=props.author or None,
        )

        logger.info(f"Extracted {len(text)} chars from DOCX")
        return text.strip(), metadata
