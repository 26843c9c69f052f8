"""
Lexdoc HTTP service.

Wires the conversion routers into one FastAPI app, configures logging once
for the process, and owns the lifetime of the shared conversion worker pool.
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lexdoc import __version__
from lexdoc.config import settings
from lexdoc.dependencies.conversion import get_conversion_service, shutdown_conversion_service
from lexdoc.errors import (
    ConversionCancelled,
    ConversionTimeout,
    ExtractionError,
    LexdocError,
    SerializationError,
    UnsupportedFileType,
)
from lexdoc.routers import convert, export, extract, health

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Paths polled by load balancers; not worth a log line each
_QUIET_PATHS = frozenset({"/", "/api/health", "/api/health/"})

# Status for typed pipeline errors that reach the app without a router mapping
_ERROR_STATUS = {
    UnsupportedFileType: status.HTTP_400_BAD_REQUEST,
    ExtractionError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ConversionTimeout: status.HTTP_504_GATEWAY_TIMEOUT,
    ConversionCancelled: status.HTTP_503_SERVICE_UNAVAILABLE,
    SerializationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the worker pool eagerly and drain it on shutdown."""
    logger.info("=" * 60)
    logger.info("  Lexdoc %s starting", __version__)
    logger.info("=" * 60)

    service = get_conversion_service()
    logger.info(
        "✓ Conversion pool: %d worker(s), %.1fs timeout", service.workers, service.timeout
    )
    if service.enable_fallback:
        logger.info("✓ Word-HTML .doc fallback enabled")
    else:
        logger.warning("⚠ DOCX fallback disabled: packaging failures return 500")
    if settings.IMPLICIT_HEADINGS:
        logger.warning("⚠ Implicit heading detection is on; short bare lines become headings")
    logger.info(
        "✓ Upload limits: %d MB, types %s",
        settings.MAX_UPLOAD_SIZE // (1024 * 1024),
        ", ".join(settings.SUPPORTED_UPLOAD_TYPES),
    )

    logger.info("  Listening on http://%s:%d  (docs at /docs)", settings.HOST, settings.PORT)
    logger.info("=" * 60)

    yield

    logger.info("Draining conversion pool …")
    shutdown_conversion_service()
    logger.info("✓ Lexdoc stopped.")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Document conversion engine for legal documents.\n\n"
        "Editor markup becomes a Word document with a running header, "
        "page-numbered footer and signature block. Uploaded PDF, DOCX and TXT "
        "files become normalized text.\n\n"
        "| Endpoint | Purpose |\n"
        "|---|---|\n"
        "| `POST /api/export/docx` | markup + signatures to DOCX |\n"
        "| `POST /api/export/html` | markup + signatures to HTML |\n"
        "| `POST /api/export/print` | markup + signatures to print-ready A4 HTML |\n"
        "| `POST /api/convert/text` | markup to plain text |\n"
        "| `POST /api/convert/html` | text or light markdown to HTML |\n"
        "| `POST /api/extract/` | upload to normalized text |\n"
    ),
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Conversion-Fallback", "X-Process-Time"],
)


# ---------------------------------------------------------------------------
# Request timing
# ---------------------------------------------------------------------------

@app.middleware("http")
async def time_requests(request: Request, call_next):
    """
    Time each request and report it in ``X-Process-Time`` (milliseconds).

    Conversion requests are logged with their declared body size so slow
    documents can be matched to large inputs.
    """
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000

    if request.url.path not in _QUIET_PATHS:
        logger.info(
            "%s %s (%s bytes) → %d in %.1f ms",
            request.method,
            request.url.path,
            request.headers.get("content-length", "?"),
            response.status_code,
            elapsed_ms,
        )

    response.headers["X-Process-Time"] = f"{elapsed_ms:.2f}ms"
    return response


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------

def _error_body(request: Request, detail, error: str) -> dict:
    return {
        "detail": detail,
        "error": error,
        "path": request.url.path,
        "timestamp": datetime.utcnow().isoformat(),
    }


@app.exception_handler(LexdocError)
async def lexdoc_error_handler(request: Request, exc: LexdocError):
    """Translate a typed pipeline error that no router handled."""
    code = next(
        (status_code for cls, status_code in _ERROR_STATUS.items() if isinstance(exc, cls)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)

    if isinstance(exc, ExtractionError):
        detail = {"code": exc.kind.value, "message": exc.message}
    elif code >= 500:
        detail = "Document conversion failed"
    else:
        detail = str(exc)
    return JSONResponse(status_code=code, content=_error_body(request, detail, type(exc).__name__))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled %s on %s %s", type(exc).__name__, request.method, request.url.path,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(request, "Internal server error", type(exc).__name__),
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(health.router, prefix="/api/health", tags=["Health"])
app.include_router(export.router, prefix="/api/export", tags=["Export"])
app.include_router(convert.router, prefix="/api/convert", tags=["Convert"])
app.include_router(extract.router, prefix="/api/extract", tags=["Extract"])


@app.get("/", include_in_schema=False)
async def root():
    return {
        "name": settings.APP_NAME,
        "version": __version__,
        "docs": "/docs",
        "endpoints": {
            "health": "/api/health",
            "export_docx": "/api/export/docx",
            "export_html": "/api/export/html",
            "export_print": "/api/export/print",
            "to_text": "/api/convert/text",
            "to_html": "/api/convert/html",
            "extract": "/api/extract",
        },
    }


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "lexdoc.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
