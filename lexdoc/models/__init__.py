"""Document model and schema models for Lexdoc."""
from lexdoc.models.document_model import (
    Block,
    Break,
    DocumentMetadata,
    DocumentModel,
    Heading,
    ImageBlock,
    ListItem,
    Paragraph,
    SignatureEntry,
    TextRun,
)
from lexdoc.models.schemas import (
    ExportRequest,
    ExtractionErrorDetail,
    ExtractionResponse,
    HealthCheckResponse,
    PlainTextRequest,
    PlainTextResponse,
    SignatureIn,
    TextToHtmlRequest,
    TextToHtmlResponse,
)

__all__ = [
    # Document model
    "Block",
    "Break",
    "DocumentMetadata",
    "DocumentModel",
    "Heading",
    "ImageBlock",
    "ListItem",
    "Paragraph",
    "SignatureEntry",
    "TextRun",
    # Pydantic schemas
    "ExportRequest",
    "ExtractionErrorDetail",
    "ExtractionResponse",
    "HealthCheckResponse",
    "PlainTextRequest",
    "PlainTextResponse",
    "SignatureIn",
    "TextToHtmlRequest",
    "TextToHtmlResponse",
]
