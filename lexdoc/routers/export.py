"""
Document export endpoints.

POST /docx  — editor markup + metadata + signatures → DOCX download
              (Word-HTML .doc when packaging fails and the fallback is on).
POST /html  — same input → standalone HTML document.
POST /print — same input → A4 print-ready HTML, printed to PDF by the browser.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response

from lexdoc.config import settings
from lexdoc.dependencies.conversion import get_conversion_service
from lexdoc.errors import ConversionTimeout, SerializationError
from lexdoc.models.schemas import ExportRequest
from lexdoc.services.conversion import ConversionArtifact, ConversionService
from lexdoc.utils.helpers import sanitize_filename

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_size(request: ExportRequest) -> None:
    if len(request.content) > settings.MAX_MARKUP_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=(
                f"Document content exceeds the {settings.MAX_MARKUP_LENGTH:,} "
                "character limit."
            ),
        )


def _download(artifact: ConversionArtifact, title: str) -> Response:
    filename = f"{sanitize_filename(title)}.{artifact.extension}"
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    if artifact.fallback:
        headers["X-Conversion-Fallback"] = "true"
    return Response(content=artifact.data, media_type=artifact.media_type, headers=headers)


# ---------------------------------------------------------------------------
# DOCX
# ---------------------------------------------------------------------------

@router.post("/docx", response_class=Response)
async def export_docx(
    request: ExportRequest,
    service: ConversionService = Depends(get_conversion_service),
) -> Response:
    """
    Render the document as a Word file.

    - Title, running header and "Page X of Y" footer are always present
    - Signers are appended in request order under a "Signatures" heading
    - If packaging fails, a Word-compatible ``.doc`` is returned with
      ``X-Conversion-Fallback: true`` (when ENABLE_DOC_FALLBACK is set)
    """
    _check_size(request)
    try:
        artifact = await service.convert_to_docx_async(
            request.content, request.to_metadata(), request.to_signatures()
        )
    except SerializationError as exc:
        logger.error("export_docx: serialization failed for %r: %s", request.title, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate DOCX document.",
        )
    except ConversionTimeout as exc:
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(exc))

    return _download(artifact, request.title)


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------

@router.post("/html", response_class=Response)
async def export_html(
    request: ExportRequest,
    service: ConversionService = Depends(get_conversion_service),
) -> Response:
    """Render the document as a standalone HTML page."""
    _check_size(request)
    try:
        artifact = await service.convert_to_html_async(
            request.content, request.to_metadata(), request.to_signatures()
        )
    except ConversionTimeout as exc:
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(exc))

    return _download(artifact, request.title)


# ---------------------------------------------------------------------------
# Print
# ---------------------------------------------------------------------------

@router.post("/print", response_class=Response)
async def export_print(
    request: ExportRequest,
    service: ConversionService = Depends(get_conversion_service),
) -> Response:
    """
    Render an A4 print-ready HTML page.

    Signatures are laid out two to a row and a "Generated on" footer closes
    the page. Print it from a browser to get a PDF.
    """
    _check_size(request)
    try:
        artifact = await service.convert_to_html_async(
            request.content, request.to_metadata(), request.to_signatures(), print_layout=True
        )
    except ConversionTimeout as exc:
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(exc))

    return _download(artifact, request.title)
