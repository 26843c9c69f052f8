"""
In-memory document model shared by every conversion target.

A DocumentModel is built once per request from sanitized markup, consumed by
exactly one target (DOCX serializer, HTML renderer or a projection) and then
discarded.  All types are frozen so no stage can mutate what an earlier stage
produced.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple, Union


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DocumentMetadata:
    """Descriptive fields carried into the title, header and core properties."""

    title: str
    author: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Runs and blocks
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TextRun:
    """A contiguous span of text sharing one formatting state."""

    text: str
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strike: bool = False

    @property
    def flags(self) -> Tuple[bool, bool, bool, bool]:
        return (self.bold, self.italic, self.underline, self.strike)

    def is_empty(self) -> bool:
        return not self.text.strip()


@dataclass(frozen=True)
class Heading:
    level: int
    runs: Tuple[TextRun, ...] = ()

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)


@dataclass(frozen=True)
class Paragraph:
    runs: Tuple[TextRun, ...] = ()

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)


@dataclass(frozen=True)
class ListItem:
    ordered: bool = False
    runs: Tuple[TextRun, ...] = ()

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)


@dataclass(frozen=True)
class ImageBlock:
    """An inline image: raw bytes, a data URI, or an (unfetched) URL."""

    src: Union[bytes, str]
    alt_text: str = ""


@dataclass(frozen=True)
class Break:
    """A thematic break between sections (rendered as a horizontal rule)."""


Block = Union[Heading, Paragraph, ListItem, ImageBlock, Break]

# Blocks whose content lives in runs
TEXT_BLOCK_TYPES = (Heading, Paragraph, ListItem)


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SignatureEntry:
    """
    One signer in the trailing signature section.

    Attributes:
        signer_name:     Required, non-empty.
        signer_role:     Optional title shown in italics.
        signed_at:       Optional signing timestamp.
        signature_image: Raw image bytes or a ``data:image/...;base64`` URI.
                         An undecodable image never drops the entry.
    """

    signer_name: str
    signer_role: Optional[str] = None
    signed_at: Optional[datetime] = None
    signature_image: Optional[Union[bytes, str]] = None

    def __post_init__(self) -> None:
        if not self.signer_name or not self.signer_name.strip():
            raise ValueError("SignatureEntry.signer_name must be non-empty")


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DocumentModel:
    metadata: DocumentMetadata
    blocks: Tuple[Block, ...] = ()
    signatures: Tuple[SignatureEntry, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.blocks and not self.signatures
