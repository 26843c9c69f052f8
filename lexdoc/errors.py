"""
Typed errors raised by the conversion pipeline.

Stage-local anomalies (malformed markup, undecodable images) are absorbed and
logged inside the services.  Only pipeline-level failures surface as the
exceptions below; routers translate them into HTTP responses.
"""
from __future__ import annotations

import enum


class LexdocError(Exception):
    """Base class for all conversion-engine errors."""


class SerializationError(LexdocError):
    """The DOCX package could not be produced.  No partial output exists."""


class ConversionCancelled(LexdocError):
    """A conversion was cancelled at a stage boundary."""


class ConversionTimeout(LexdocError):
    """A conversion did not finish within the configured time budget."""


class UnsupportedFileType(LexdocError, ValueError):
    """An upload's extension is not one the extractor accepts."""


class ExtractionFailure(str, enum.Enum):
    ENCRYPTED = "encrypted"
    CORRUPTED = "corrupted"
    UNSUPPORTED_STRUCTURE = "unsupported_structure"
    INSUFFICIENT_CONTENT = "insufficient_content"


_EXTRACTION_MESSAGES = {
    ExtractionFailure.ENCRYPTED: (
        "This document appears to be password-protected. Please upload an "
        "unprotected copy or convert it to TXT format."
    ),
    ExtractionFailure.CORRUPTED: (
        "This document appears to be corrupted or invalid. Please try "
        "re-exporting it or convert it to TXT format."
    ),
    ExtractionFailure.UNSUPPORTED_STRUCTURE: (
        "This document uses a structure we cannot read (for example a scanned "
        "or legacy-format file). Please convert it to a text-based PDF, DOCX "
        "or TXT file and try again."
    ),
    ExtractionFailure.INSUFFICIENT_CONTENT: (
        "Could not extract sufficient content from the file. Please ensure "
        "the file contains readable text."
    ),
}


class ExtractionError(LexdocError):
    """
    A classified failure from the reverse (upload → text) path.

    Attributes:
        kind:    One of the ExtractionFailure classes.
        message: User-actionable message for this class.
        reason:  Optional low-level detail, for logs only.
    """

    def __init__(self, kind: ExtractionFailure, reason: str = "") -> None:
        self.kind = kind
        self.message = _EXTRACTION_MESSAGES[kind]
        self.reason = reason
        super().__init__(f"{kind.value}: {reason or self.message}")
