"""
Lightweight projection endpoints (previews and search indexing).
"""
from fastapi import APIRouter, HTTPException, status

from lexdoc.config import settings
from lexdoc.models.schemas import (
    PlainTextRequest,
    PlainTextResponse,
    TextToHtmlRequest,
    TextToHtmlResponse,
)
from lexdoc.services.projections import to_html, to_plain_text
from lexdoc.utils.helpers import word_count

router = APIRouter()


def _check_size(value: str) -> None:
    if len(value) > settings.MAX_MARKUP_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Input exceeds the {settings.MAX_MARKUP_LENGTH:,} character limit.",
        )


@router.post("/text", response_model=PlainTextResponse)
async def markup_to_text(request: PlainTextRequest) -> PlainTextResponse:
    """Flatten editor markup into plain text."""
    _check_size(request.content)
    text = to_plain_text(request.content)
    return PlainTextResponse(text=text, word_count=word_count(text))


@router.post("/html", response_model=TextToHtmlResponse)
async def text_to_html(request: TextToHtmlRequest) -> TextToHtmlResponse:
    """Render plain or markdown-ish text as simplified HTML."""
    _check_size(request.text)
    return TextToHtmlResponse(html=to_html(request.text))
