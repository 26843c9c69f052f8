"""
DOCX serializer: renders a DocumentModel into a Word document with python-docx.

Layout rules
------------
* 1-inch (1440 twip) margins on every side.
* Centered ``Title`` paragraph, present even for an empty body.
* Running header with the title (10pt, grey, right aligned) and a footer
  reading "Page X of Y" built from live PAGE / NUMPAGES fields.
* Headings map to ``Heading 1``–``Heading 6`` (levels clamped).
* Optional trailing signature section: image (fixed 200×60 px box), rule line,
  bold name, italic role, grey signed date.

The ZIP container is re-packed with fixed entry timestamps, so the same model
always produces the same bytes.  Any packaging failure raises
``SerializationError``; a partially written buffer is never returned.
"""
from __future__ import annotations

import io
import logging
import zipfile
from typing import Optional

from docx import Document
from docx.document import Document as DocxDocument
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Emu, Inches, Pt, RGBColor, Twips

from lexdoc.config import settings
from lexdoc.errors import SerializationError
from lexdoc.models.document_model import (
    Break,
    DocumentModel,
    Heading,
    ImageBlock,
    ListItem,
    Paragraph,
    SignatureEntry,
    TextRun,
)
from lexdoc.utils.helpers import format_long_date
from lexdoc.utils.images import DecodedImage, decode_image

logger = logging.getLogger(__name__)

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

PAGE_MARGIN = Twips(1440)
EMU_PER_PIXEL = 9525
SIGNATURE_IMAGE_WIDTH = Emu(200 * EMU_PER_PIXEL)
SIGNATURE_IMAGE_HEIGHT = Emu(60 * EMU_PER_PIXEL)
MAX_IMAGE_WIDTH = Inches(6.5)   # text column between the margins
SIGNATURE_RULE = "_" * 32

HEADER_COLOR = RGBColor(0x99, 0x99, 0x99)
MUTED_COLOR = RGBColor(0x66, 0x66, 0x66)
SMALL_TEXT = Pt(10)

_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


def clamp_heading_level(level: int) -> int:
    """Clamp a heading level into the 1..6 range Word styles support here."""
    return min(max(int(level), 1), 6)


class DocxSerializer:
    """Builds one DOCX document per call; holds no state between documents."""

    def __init__(self, creator: Optional[str] = None) -> None:
        self.creator = creator or settings.DOCUMENT_CREATOR

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def serialize(self, model: DocumentModel) -> bytes:
        """
        Render ``model`` to DOCX bytes.

        Raises:
            SerializationError: python-docx or the ZIP writer failed.
        """
        try:
            doc = Document()
            self._apply_page_setup(doc)
            self._apply_core_properties(doc, model)
            self._add_header_footer(doc, model.metadata.title)
            self._add_title(doc, model.metadata.title)

            for block in model.blocks:
                self._add_block(doc, block)

            if model.signatures:
                self._add_signatures(doc, model.signatures)

            buffer = io.BytesIO()
            doc.save(buffer)
            data = _repack_deterministic(buffer.getvalue())
        except SerializationError:
            raise
        except Exception as exc:
            logger.error(
                "DOCX serialization failed for %r: %s", model.metadata.title, exc
            )
            raise SerializationError(f"Could not build DOCX package: {exc}") from exc

        logger.info(
            "Serialized %r: %d block(s), %d signature(s), %d bytes",
            model.metadata.title,
            len(model.blocks),
            len(model.signatures),
            len(data),
        )
        return data

    # ------------------------------------------------------------------
    # Document setup
    # ------------------------------------------------------------------

    def _apply_page_setup(self, doc: DocxDocument) -> None:
        for section in doc.sections:
            section.top_margin = PAGE_MARGIN
            section.right_margin = PAGE_MARGIN
            section.bottom_margin = PAGE_MARGIN
            section.left_margin = PAGE_MARGIN

    def _apply_core_properties(self, doc: DocxDocument, model: DocumentModel) -> None:
        meta = model.metadata
        props = doc.core_properties
        props.title = meta.title
        props.author = meta.author or self.creator
        props.last_modified_by = meta.author or self.creator
        props.comments = f"Document created with {self.creator}"
        props.revision = 1
        if meta.created_at:
            props.created = meta.created_at
        modified = meta.updated_at or meta.created_at
        if modified:
            props.modified = modified

    def _add_header_footer(self, doc: DocxDocument, title: str) -> None:
        section = doc.sections[0]

        header = section.header
        paragraph = header.paragraphs[0] if header.paragraphs else header.add_paragraph()
        paragraph.alignment = WD_ALIGN_PARAGRAPH.RIGHT
        _style_small(paragraph.add_run(title), HEADER_COLOR)

        footer = section.footer
        paragraph = footer.paragraphs[0] if footer.paragraphs else footer.add_paragraph()
        paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        _style_small(paragraph.add_run("Page "), HEADER_COLOR)
        _add_field(paragraph, "PAGE")
        _style_small(paragraph.add_run(" of "), HEADER_COLOR)
        _add_field(paragraph, "NUMPAGES")

    def _add_title(self, doc: DocxDocument, title: str) -> None:
        paragraph = doc.add_heading(title, level=0)
        paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        paragraph.paragraph_format.space_after = Pt(20)

    # ------------------------------------------------------------------
    # Body blocks
    # ------------------------------------------------------------------

    def _add_block(self, doc: DocxDocument, block) -> None:
        if isinstance(block, Heading):
            level = clamp_heading_level(block.level)
            paragraph = doc.add_paragraph(style=f"Heading {level}")
            paragraph.paragraph_format.space_before = Pt(12)
            paragraph.paragraph_format.space_after = Pt(6)
            _add_runs(paragraph, block.runs)
        elif isinstance(block, ListItem):
            style = "List Number" if block.ordered else "List Bullet"
            paragraph = doc.add_paragraph(style=style)
            _add_runs(paragraph, block.runs)
        elif isinstance(block, Paragraph):
            paragraph = doc.add_paragraph()
            paragraph.paragraph_format.space_after = Pt(10)
            _add_runs(paragraph, block.runs)
        elif isinstance(block, ImageBlock):
            self._add_image_block(doc, block)
        elif isinstance(block, Break):
            _add_horizontal_rule(doc.add_paragraph())
        else:
            raise TypeError(f"Unknown block type: {type(block).__name__}")

    def _add_image_block(self, doc: DocxDocument, block: ImageBlock) -> None:
        image = decode_image(block.src)
        if image is not None:
            width = min(image.width * EMU_PER_PIXEL, MAX_IMAGE_WIDTH)
            height = int(width * image.height / image.width) if image.width else width
            if _add_picture(doc, image, Emu(width), Emu(height)):
                return
        if block.alt_text.strip():
            paragraph = doc.add_paragraph()
            run = paragraph.add_run(f"[Image: {block.alt_text.strip()}]")
            run.italic = True

    # ------------------------------------------------------------------
    # Signatures
    # ------------------------------------------------------------------

    def _add_signatures(self, doc: DocxDocument, signatures) -> None:
        heading = doc.add_heading("Signatures", level=2)
        heading.paragraph_format.space_before = Pt(30)
        heading.paragraph_format.space_after = Pt(10)

        for entry in signatures:
            self._add_signature_entry(doc, entry)

    def _add_signature_entry(self, doc: DocxDocument, entry: SignatureEntry) -> None:
        if entry.signature_image:
            image = decode_image(entry.signature_image)
            if image is None:
                logger.warning(
                    "Signature image for %r could not be decoded — rendering without it",
                    entry.signer_name,
                )
            else:
                _add_picture(
                    doc, image, SIGNATURE_IMAGE_WIDTH, SIGNATURE_IMAGE_HEIGHT,
                    space_after=Pt(5),
                )

        doc.add_paragraph().add_run(SIGNATURE_RULE)

        name = doc.add_paragraph().add_run(entry.signer_name)
        name.bold = True

        if entry.signer_role:
            role = doc.add_paragraph().add_run(entry.signer_role)
            role.italic = True

        if entry.signed_at:
            paragraph = doc.add_paragraph()
            paragraph.paragraph_format.space_after = Pt(15)
            run = paragraph.add_run(f"Signed: {format_long_date(entry.signed_at)}")
            _style_small(run, MUTED_COLOR)


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------

def serialize_docx(model: DocumentModel, creator: Optional[str] = None) -> bytes:
    """Convenience wrapper around ``DocxSerializer().serialize``."""
    return DocxSerializer(creator=creator).serialize(model)


def _add_runs(paragraph, runs) -> None:
    for data in runs:
        _add_text_run(paragraph, data)


def _add_text_run(paragraph, data: TextRun):
    run = paragraph.add_run(data.text)
    # Only set flags that are on, so heading styles keep their own bold
    if data.bold:
        run.bold = True
    if data.italic:
        run.italic = True
    if data.underline:
        run.underline = True
    if data.strike:
        run.font.strike = True
    return run


def _style_small(run, color: RGBColor) -> None:
    run.font.size = SMALL_TEXT
    run.font.color.rgb = color


def _add_field(paragraph, instruction: str, placeholder: str = "1") -> None:
    """Append a complex field (e.g. PAGE) that Word recalculates on open."""
    run = paragraph.add_run()
    _style_small(run, HEADER_COLOR)

    begin = OxmlElement("w:fldChar")
    begin.set(qn("w:fldCharType"), "begin")
    instr = OxmlElement("w:instrText")
    instr.set(qn("xml:space"), "preserve")
    instr.text = f" {instruction} "
    separate = OxmlElement("w:fldChar")
    separate.set(qn("w:fldCharType"), "separate")
    cached = OxmlElement("w:t")
    cached.text = placeholder
    end = OxmlElement("w:fldChar")
    end.set(qn("w:fldCharType"), "end")

    for element in (begin, instr, separate, cached, end):
        run._r.append(element)


def _add_horizontal_rule(paragraph) -> None:
    p_pr = paragraph._p.get_or_add_pPr()
    borders = OxmlElement("w:pBdr")
    bottom = OxmlElement("w:bottom")
    bottom.set(qn("w:val"), "single")
    bottom.set(qn("w:sz"), "6")
    bottom.set(qn("w:space"), "1")
    bottom.set(qn("w:color"), "auto")
    borders.append(bottom)
    p_pr.append(borders)


def _add_picture(
    doc: DocxDocument,
    image: DecodedImage,
    width: Emu,
    height: Emu,
    space_after: Optional[Pt] = None,
) -> bool:
    """
    Embed an image in its own paragraph.  Returns False (and adds nothing)
    when python-docx rejects the image.
    """
    try:
        inline = doc.part.new_pic_inline(io.BytesIO(image.data), width, height)
    except Exception as exc:
        logger.warning(f"Could not embed {image.format} image: {exc}")
        return False

    paragraph = doc.add_paragraph()
    if space_after is not None:
        paragraph.paragraph_format.space_after = space_after
    paragraph.add_run()._r.add_drawing(inline)
    return True


def _repack_deterministic(raw: bytes) -> bytes:
    """Rewrite the ZIP container with fixed timestamps and permissions."""
    out = io.BytesIO()
    with zipfile.ZipFile(io.BytesIO(raw)) as source, zipfile.ZipFile(
        out, "w", zipfile.ZIP_DEFLATED
    ) as target:
        for info in source.infolist():
            entry = zipfile.ZipInfo(info.filename, date_time=_ZIP_EPOCH)
            entry.compress_type = zipfile.ZIP_DEFLATED
            entry.external_attr = 0o644 << 16
            target.writestr(entry, source.read(info.filename))
    return out.getvalue()
