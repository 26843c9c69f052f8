"""
Conversion pipeline orchestration.

markup → sanitize → segment → extract runs → build model → {DOCX | HTML}

Every stage is a pure function, so conversions for different documents run in
parallel without coordination.  ``ConversionService`` runs them on a bounded
thread pool so CPU-heavy packaging never blocks the event loop, and enforces a
per-request timeout.  On timeout the worker is asked to stop through a
``threading.Event`` that is checked between stages and between blocks, never
inside run extraction, so a torn model can't be produced.

Usage
-----
    service = ConversionService()
    artifact = await service.convert_to_docx_async(markup, metadata, signatures)
    if artifact.fallback:
        ...  # Word-HTML .doc instead of .docx
"""
from __future__ import annotations

import asyncio
import functools
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional

from lexdoc.config import settings
from lexdoc.errors import ConversionCancelled, ConversionTimeout, SerializationError
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
)
from lexdoc.services import segmenter
from lexdoc.services.docx_serializer import DOCX_MEDIA_TYPE, DocxSerializer
from lexdoc.services.extraction import DocumentExtractor, ExtractedDocument
from lexdoc.services.html_renderer import (
    HTML_MEDIA_TYPE,
    WORD_HTML_MEDIA_TYPE,
    render_html_document,
    render_print_html,
    render_word_html,
)
from lexdoc.services.inline_runs import extract_runs
from lexdoc.services.model_builder import build_document_model
from lexdoc.services.sanitizer import sanitize_markup
from lexdoc.services.segmenter import HeadingClassifier, LengthHeuristicClassifier, RawBlock

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Artifact
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ConversionArtifact:
    """A complete rendered document ready to be returned to the caller."""

    data: bytes
    media_type: str
    extension: str
    fallback: bool = False


# ---------------------------------------------------------------------------
# Pure pipeline
# ---------------------------------------------------------------------------

def _checkpoint(cancel_event: Optional[threading.Event], stage: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ConversionCancelled(f"Conversion cancelled before {stage}")


def raw_block_to_block(raw: RawBlock) -> Optional[Block]:
    """Turn a segmented span into a model block (``None`` if it has no text)."""
    if raw.kind == segmenter.BREAK:
        return Break()
    if raw.kind == segmenter.IMAGE:
        return ImageBlock(src=raw.src, alt_text=raw.alt)

    runs = tuple(extract_runs(raw.markup))
    if not runs:
        return None
    if raw.kind == segmenter.HEADING:
        return Heading(level=raw.level, runs=runs)
    if raw.kind == segmenter.LIST_ITEM:
        return ListItem(ordered=raw.ordered, runs=runs)
    return Paragraph(runs=runs)


def parse_markup(
    markup: str,
    heading_classifier: Optional[HeadingClassifier] = None,
    cancel_event: Optional[threading.Event] = None,
) -> List[Block]:
    """Sanitize, segment and extract runs; returns blocks in document order."""
    _checkpoint(cancel_event, "sanitize")
    clean = sanitize_markup(markup or "")

    _checkpoint(cancel_event, "segment")
    raw_blocks = segmenter.segment_blocks(clean, heading_classifier)

    blocks: List[Block] = []
    for raw in raw_blocks:
        _checkpoint(cancel_event, "run extraction")
        block = raw_block_to_block(raw)
        if block is not None:
            blocks.append(block)
    return blocks


def markup_to_model(
    markup: str,
    metadata: DocumentMetadata,
    signatures: Optional[Iterable[SignatureEntry]] = None,
    heading_classifier: Optional[HeadingClassifier] = None,
    cancel_event: Optional[threading.Event] = None,
) -> DocumentModel:
    blocks = parse_markup(markup, heading_classifier, cancel_event)
    _checkpoint(cancel_event, "model build")
    return build_document_model(metadata, blocks, signatures)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class ConversionService:
    """
    Runs conversions on a bounded worker pool with a per-request timeout.

    * ``CONVERSION_WORKERS`` caps concurrent conversions
    * ``CONVERSION_TIMEOUT_SECONDS`` fails a request that runs too long
    * ``ENABLE_DOC_FALLBACK`` serves Word-HTML when DOCX packaging fails
    """

    def __init__(
        self,
        workers: Optional[int] = None,
        timeout: Optional[float] = None,
        enable_fallback: Optional[bool] = None,
        heading_classifier: Optional[HeadingClassifier] = None,
        extractor: Optional[DocumentExtractor] = None,
    ) -> None:
        self.workers = workers or settings.CONVERSION_WORKERS
        self.timeout = settings.CONVERSION_TIMEOUT_SECONDS if timeout is None else timeout
        self.enable_fallback = (
            settings.ENABLE_DOC_FALLBACK if enable_fallback is None else enable_fallback
        )
        if heading_classifier is None and settings.IMPLICIT_HEADINGS:
            heading_classifier = LengthHeuristicClassifier()
        self.heading_classifier = heading_classifier
        self.extractor = extractor or DocumentExtractor()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Synchronous API (pure, runs in the caller's thread)
    # ------------------------------------------------------------------

    def build_model(
        self,
        markup: str,
        metadata: DocumentMetadata,
        signatures: Optional[Iterable[SignatureEntry]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> DocumentModel:
        return markup_to_model(
            markup, metadata, signatures, self.heading_classifier, cancel_event
        )

    def convert_to_docx(
        self,
        markup: str,
        metadata: DocumentMetadata,
        signatures: Optional[Iterable[SignatureEntry]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ConversionArtifact:
        """
        Convert markup to a DOCX artifact.

        Raises:
            SerializationError:  packaging failed and the fallback is disabled.
            ConversionCancelled: ``cancel_event`` was set between stages.
        """
        t0 = time.monotonic()
        model = self.build_model(markup, metadata, signatures, cancel_event)
        _checkpoint(cancel_event, "serialize")

        try:
            data = DocxSerializer().serialize(model)
        except SerializationError:
            if not self.enable_fallback:
                raise
            logger.warning(
                "DOCX packaging failed for %r — serving Word-HTML fallback",
                metadata.title,
            )
            return ConversionArtifact(
                data=render_word_html(model).encode("utf-8"),
                media_type=WORD_HTML_MEDIA_TYPE,
                extension="doc",
                fallback=True,
            )

        logger.info(
            "convert_to_docx: %r done in %.2f ms",
            metadata.title,
            (time.monotonic() - t0) * 1000,
        )
        return ConversionArtifact(data=data, media_type=DOCX_MEDIA_TYPE, extension="docx")

    def convert_to_html(
        self,
        markup: str,
        metadata: DocumentMetadata,
        signatures: Optional[Iterable[SignatureEntry]] = None,
        print_layout: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ) -> ConversionArtifact:
        """Standalone HTML, or the A4 print layout when ``print_layout`` is set."""
        model = self.build_model(markup, metadata, signatures, cancel_event)
        _checkpoint(cancel_event, "render")
        render = render_print_html if print_layout else render_html_document
        return ConversionArtifact(
            data=render(model).encode("utf-8"),
            media_type=HTML_MEDIA_TYPE,
            extension="html",
        )

    def extract(self, data: bytes, filename: str) -> ExtractedDocument:
        return self.extractor.extract(data, filename)

    # ------------------------------------------------------------------
    # Async API (worker pool + timeout)
    # ------------------------------------------------------------------

    async def convert_to_docx_async(self, markup, metadata, signatures=None) -> ConversionArtifact:
        return await self.run_cancellable(self.convert_to_docx, markup, metadata, signatures)

    async def convert_to_html_async(
        self, markup, metadata, signatures=None, print_layout=False
    ) -> ConversionArtifact:
        return await self.run_cancellable(
            self.convert_to_html, markup, metadata, signatures, print_layout
        )

    async def extract_async(self, data: bytes, filename: str) -> ExtractedDocument:
        return await self.run(self.extract, data, filename)

    async def run(self, func: Callable[..., Any], *args: Any) -> Any:
        """Run ``func(*args)`` on the pool, failing with ConversionTimeout."""
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(self._get_executor(), functools.partial(func, *args))
        try:
            return await asyncio.wait_for(future, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(
                "%s timed out after %.1fs",
                getattr(func, "__name__", "conversion"),
                self.timeout,
            )
            raise ConversionTimeout(
                f"Conversion did not finish within {self.timeout:g} seconds"
            ) from None

    async def run_cancellable(self, func: Callable[..., Any], *args: Any) -> Any:
        """Like ``run`` but passes a cancel event that is set on timeout."""
        cancel_event = threading.Event()
        try:
            return await self.run(
                functools.partial(func, cancel_event=cancel_event), *args
            )
        except ConversionTimeout:
            cancel_event.set()
            raise

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.workers, thread_name_prefix="lexdoc-convert"
                )
            return self._executor

    def shutdown(self) -> None:
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False, cancel_futures=True)
                self._executor = None
