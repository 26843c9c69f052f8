"""
Reverse path: extract text (and simplified HTML) from uploaded documents.

Backends decode the binary formats (PyMuPDF for PDF, python-docx for DOCX,
plain UTF-8 text) and classify failures as encrypted, corrupted or
unsupported-structure.  The extractor then normalizes the text and rejects
output too short to be useful, so every failure reaches the caller as one of
four distinct ``ExtractionError`` kinds.
"""
from __future__ import annotations

import io
import logging
import re
import threading
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import fitz  # PyMuPDF
from docx import Document as DocxDocument
from docx.oxml.ns import qn
from docx.table import Table as DocxTable
from docx.text.paragraph import Paragraph as DocxParagraph

from lexdoc.config import settings
from lexdoc.errors import ExtractionError, ExtractionFailure, UnsupportedFileType
from lexdoc.models.document_model import Heading, ListItem, Paragraph, TextRun
from lexdoc.services.html_renderer import render_blocks
from lexdoc.services.projections import to_html
from lexdoc.utils.helpers import word_count

logger = logging.getLogger(__name__)

# Compound File Binary header: legacy .doc files and password-protected OOXML
_OLE_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
_OLE_ENCRYPTION_STREAM = "EncryptionInfo".encode("utf-16-le")

# MuPDF is not thread-safe; PdfBackend holds this for all of its fitz work
_FITZ_LOCK = threading.Lock()

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_INLINE_SPACE_RE = re.compile(r"[ \t\f\v\xa0]+")
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")

_DOCX_HEADING_STYLES: Dict[str, int] = {
    "title": 1,
    "subtitle": 2,
    "heading 1": 1,
    "heading 2": 2,
    "heading 3": 3,
    "heading 4": 4,
    "heading 5": 5,
    "heading 6": 6,
}
_W_P = qn("w:p")
_W_TBL = qn("w:tbl")


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass
class RawExtraction:
    """What a backend hands back before normalization."""

    text: str
    html: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ExtractedDocument:
    """
    Normalized, validated extraction output.

    Attributes:
        text:          Normalized plain text (at least the minimum length).
        html:          Simplified HTML suitable for the editor.
        source_format: "pdf", "docx" or "txt".
        metadata:      page_count, title, author, word_count, character_count.
    """

    text: str
    html: str
    source_format: str
    metadata: Dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------

class ExtractionBackend:
    """Decodes one binary format into text.  Raises ExtractionError on failure."""

    source_format: str = ""

    def extract(self, data: bytes) -> RawExtraction:
        raise NotImplementedError


class PdfBackend(ExtractionBackend):
    source_format = "pdf"

    def extract(self, data: bytes) -> RawExtraction:
        with _FITZ_LOCK:
            page_texts, has_images, metadata = self._read(data)

        text = "\n\n".join(page_texts)
        if not text.strip() and has_images:
            # Pages are pictures of text; there is no text layer to extract
            raise ExtractionError(
                ExtractionFailure.UNSUPPORTED_STRUCTURE, "PDF is image-only (scanned)"
            )
        return RawExtraction(text=text, metadata=metadata)

    def _read(self, data: bytes):
        """Open the PDF and collect page text, image presence and metadata."""
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:
            raise ExtractionError(ExtractionFailure.CORRUPTED, f"Cannot open PDF: {exc}") from exc

        try:
            if doc.needs_pass:
                raise ExtractionError(ExtractionFailure.ENCRYPTED, "PDF requires a password")
            if doc.page_count == 0:
                raise ExtractionError(ExtractionFailure.UNSUPPORTED_STRUCTURE, "PDF has no pages")

            page_texts: List[str] = []
            has_images = False
            try:
                for page in doc:
                    page_texts.append(page.get_text("text"))
                    if not has_images and page.get_images():
                        has_images = True
            except Exception as exc:
                raise ExtractionError(
                    ExtractionFailure.CORRUPTED, f"Cannot read PDF page content: {exc}"
                ) from exc

            raw_meta = doc.metadata or {}
            metadata = {
                "page_count": doc.page_count,
                "title": raw_meta.get("title", "") or "",
                "author": raw_meta.get("author", "") or "",
            }
        finally:
            doc.close()
        return page_texts, has_images, metadata


class DocxBackend(ExtractionBackend):
    source_format = "docx"

    def extract(self, data: bytes) -> RawExtraction:
        if data.startswith(_OLE_SIGNATURE):
            if _OLE_ENCRYPTION_STREAM in data:
                raise ExtractionError(ExtractionFailure.ENCRYPTED, "DOCX is password-protected")
            raise ExtractionError(
                ExtractionFailure.UNSUPPORTED_STRUCTURE, "legacy binary Word document"
            )

        if not zipfile.is_zipfile(io.BytesIO(data)):
            raise ExtractionError(ExtractionFailure.CORRUPTED, "DOCX is not a ZIP package")

        try:
            doc = DocxDocument(io.BytesIO(data))
        except ValueError as exc:
            # A valid package whose main part is not a Word document
            raise ExtractionError(ExtractionFailure.UNSUPPORTED_STRUCTURE, str(exc)) from exc
        except Exception as exc:
            raise ExtractionError(ExtractionFailure.CORRUPTED, f"Cannot open DOCX: {exc}") from exc

        blocks = []
        text_parts: List[str] = []

        # Body children in document order so tables stay between their paragraphs
        for child in doc.element.body.iterchildren():
            if child.tag == _W_P:
                para = DocxParagraph(child, doc)
                block = self._paragraph_block(para)
                if block is not None:
                    text_parts.append(para.text.strip())
                    blocks.append(block)
            elif child.tag == _W_TBL:
                for row_text in self._table_rows(DocxTable(child, doc)):
                    text_parts.append(row_text)
                    blocks.append(Paragraph(runs=(TextRun(text=row_text),)))

        core = doc.core_properties
        return RawExtraction(
            text="\n\n".join(text_parts),
            html="".join(render_blocks(blocks)),
            metadata={
                "page_count": None,   # python-docx cannot report rendered page count
                "title": core.title or "",
                "author": core.author or "",
            },
        )

    @staticmethod
    def _paragraph_block(para):
        text = para.text.strip()
        if not text:
            return None

        runs = tuple(
            TextRun(
                text=run.text,
                bold=bool(run.bold),
                italic=bool(run.italic),
                underline=bool(run.underline),
                strike=bool(run.font.strike),
            )
            for run in para.runs
            if run.text
        ) or (TextRun(text=text),)

        style_name = para.style.name.lower() if para.style is not None and para.style.name else ""
        level = _DOCX_HEADING_STYLES.get(style_name, 0)
        if level:
            return Heading(level=level, runs=runs)
        if style_name.startswith("list"):
            return ListItem(ordered="number" in style_name, runs=runs)
        return Paragraph(runs=runs)

    @staticmethod
    def _table_rows(table) -> List[str]:
        """One ``a | b`` line per row with any non-empty cell."""
        rows = []
        for row in table.rows:
            non_empty = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if non_empty:
                rows.append(" | ".join(non_empty))
        return rows


class PlainTextBackend(ExtractionBackend):
    source_format = "txt"

    def extract(self, data: bytes) -> RawExtraction:
        if b"\x00" in data:
            raise ExtractionError(ExtractionFailure.CORRUPTED, "binary data in text file")
        for encoding in ("utf-8-sig", "cp1252"):
            try:
                return RawExtraction(text=data.decode(encoding))
            except UnicodeDecodeError:
                continue
        raise ExtractionError(ExtractionFailure.CORRUPTED, "text is not UTF-8 or Windows-1252")


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------

class DocumentExtractor:
    """Dispatches uploads to a backend, then normalizes and validates the text."""

    def __init__(
        self,
        min_length: Optional[int] = None,
        backends: Optional[Dict[str, ExtractionBackend]] = None,
    ) -> None:
        self.min_length = (
            settings.MIN_EXTRACTED_TEXT_LENGTH if min_length is None else min_length
        )
        self.backends = backends or {
            ".pdf": PdfBackend(),
            ".docx": DocxBackend(),
            ".txt": PlainTextBackend(),
        }

    def extract(self, data: bytes, filename: str) -> ExtractedDocument:
        """
        Extract and validate text from an uploaded file.

        Raises:
            UnsupportedFileType: extension has no backend.
            ExtractionError:     encrypted, corrupted, unsupported structure,
                                 or insufficient content.
        """
        ext = Path(filename or "").suffix.lower()
        backend = self.backends.get(ext)
        if backend is None:
            raise UnsupportedFileType(
                f"Unsupported file type '{ext or filename}'. "
                f"Accepted: {', '.join(sorted(self.backends))}"
            )

        try:
            raw = backend.extract(data)
        except ExtractionError as exc:
            logger.warning(f"Extraction failed for {filename!r}: {exc}")
            raise

        text = normalize_extracted_text(raw.text)
        if len(text) < self.min_length:
            logger.warning(
                "Extraction for %r yielded %d chars (minimum %d)",
                filename,
                len(text),
                self.min_length,
            )
            raise ExtractionError(
                ExtractionFailure.INSUFFICIENT_CONTENT,
                f"{len(text)} characters extracted",
            )

        metadata = dict(raw.metadata)
        metadata["word_count"] = word_count(text)
        metadata["character_count"] = len(text)

        logger.info(
            "Extracted %d words from %r (%s)",
            metadata["word_count"],
            filename,
            backend.source_format,
        )
        return ExtractedDocument(
            text=text,
            html=raw.html or to_html(text),
            source_format=backend.source_format,
            metadata=metadata,
        )


def normalize_extracted_text(text: str) -> str:
    """
    Normalize collaborator output before reuse.

    Unifies line endings, drops control characters, collapses inline
    whitespace, trims each line and collapses 3+ newlines to 2.
    """
    if not text:
        return ""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _CONTROL_CHARS_RE.sub("", text)
    lines = [_INLINE_SPACE_RE.sub(" ", line).strip() for line in text.split("\n")]
    text = "\n".join(lines)
    text = _EXCESS_NEWLINES_RE.sub("\n\n", text)
    return text.strip()
