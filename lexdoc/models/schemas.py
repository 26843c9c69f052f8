"""
Pydantic schemas for request/response validation.
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime

from lexdoc.models.document_model import DocumentMetadata, SignatureEntry


# Signature Schemas
class SignatureIn(BaseModel):
    """A signer to render in the trailing signature section."""

    signer_name: str = Field(..., min_length=1, max_length=255)
    signer_role: Optional[str] = Field(None, max_length=255)
    signed_at: Optional[datetime] = None
    # data:image/png;base64,... as captured by the signature pad
    signature_data: Optional[str] = None

    def to_entry(self) -> SignatureEntry:
        return SignatureEntry(
            signer_name=self.signer_name,
            signer_role=self.signer_role or None,
            signed_at=self.signed_at,
            signature_image=self.signature_data or None,
        )


# Export Schemas
class ExportRequest(BaseModel):
    """Schema for exporting an editor document to DOCX or HTML."""

    title: str = Field(..., min_length=1, max_length=500)
    author: Optional[str] = Field(None, max_length=255)
    content: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    signatures: List[SignatureIn] = Field(default_factory=list)

    def to_metadata(self) -> DocumentMetadata:
        return DocumentMetadata(
            title=self.title,
            author=self.author or None,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def to_signatures(self) -> List[SignatureEntry]:
        return [sig.to_entry() for sig in self.signatures]


# Projection Schemas
class PlainTextRequest(BaseModel):
    """Editor markup to flatten into plain text."""

    content: str = ""


class PlainTextResponse(BaseModel):
    text: str
    word_count: int = 0


class TextToHtmlRequest(BaseModel):
    """Plain or markdown-ish text to render as simplified HTML."""

    text: str = ""


class TextToHtmlResponse(BaseModel):
    html: str


# Extraction Schemas
class ExtractionResponse(BaseModel):
    """Schema for text extracted from an uploaded document."""

    filename: str
    source_format: str
    text: str
    html: str
    preview: str
    word_count: int
    character_count: int
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ExtractionErrorDetail(BaseModel):
    """Body of a 422 returned for a classified extraction failure."""

    code: str
    message: str


# Health Schemas
class HealthCheckResponse(BaseModel):
    """Schema for health check response."""

    status: str
    version: str
    conversion_workers: int
    timestamp: datetime
