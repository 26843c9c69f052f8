"""
Upload extraction endpoint.

POST /  — read a PDF, DOCX or TXT upload and return normalized text plus
          simplified HTML.  Classified failures return 422 with a distinct
          code and user-actionable message.
"""
from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from lexdoc.config import settings
from lexdoc.dependencies.conversion import get_conversion_service
from lexdoc.errors import ConversionTimeout, ExtractionError, UnsupportedFileType
from lexdoc.models.schemas import ExtractionErrorDetail, ExtractionResponse
from lexdoc.services.conversion import ConversionService
from lexdoc.utils.helpers import truncate_text

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/", response_model=ExtractionResponse)
async def extract_document(
    file: UploadFile = File(...),
    service: ConversionService = Depends(get_conversion_service),
) -> ExtractionResponse:
    """
    Extract text from an uploaded document.

    - Max file size: 10 MB (configurable via MAX_UPLOAD_SIZE)
    - 422 ``detail.code`` is one of ``encrypted``, ``corrupted``,
      ``unsupported_structure`` or ``insufficient_content``
    """
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Upload must include a filename.",
        )

    file_ext = Path(file.filename).suffix.lower()
    if file_ext not in settings.SUPPORTED_UPLOAD_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Unsupported file type '{file_ext}'. "
                f"Accepted: {', '.join(settings.SUPPORTED_UPLOAD_TYPES)}"
            ),
        )

    # Read in slices while enforcing the size limit
    chunks = []
    file_size = 0
    while True:
        chunk = await file.read(1024 * 1024)   # 1 MB slices
        if not chunk:
            break
        file_size += len(chunk)
        if file_size > settings.MAX_UPLOAD_SIZE:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=(
                    f"File exceeds the {settings.MAX_UPLOAD_SIZE // (1024 * 1024)} MB "
                    "size limit."
                ),
            )
        chunks.append(chunk)
    data = b"".join(chunks)

    logger.info(f"Received {file.filename!r} ({file_size:,} bytes)")

    try:
        extracted = await service.extract_async(data, file.filename)
    except UnsupportedFileType as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except ExtractionError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=ExtractionErrorDetail(code=exc.kind.value, message=exc.message).model_dump(),
        )
    except ConversionTimeout as exc:
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(exc))

    return ExtractionResponse(
        filename=file.filename,
        source_format=extracted.source_format,
        text=extracted.text,
        html=extracted.html,
        preview=truncate_text(extracted.text),
        word_count=extracted.metadata.get("word_count", 0),
        character_count=extracted.metadata.get("character_count", len(extracted.text)),
        metadata=extracted.metadata,
    )
