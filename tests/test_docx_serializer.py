"""Tests for the DOCX serializer."""
import io
import zipfile
from datetime import datetime

import pytest
from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Inches, Pt, RGBColor

from lexdoc.errors import SerializationError
from lexdoc.models.document_model import (
    DocumentMetadata,
    DocumentModel,
    Heading,
    SignatureEntry,
    TextRun,
)
from lexdoc.services.conversion import markup_to_model
from lexdoc.services.docx_serializer import (
    EMU_PER_PIXEL,
    DocxSerializer,
    clamp_heading_level,
    serialize_docx,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _render(markup, metadata, signatures=None):
    data = serialize_docx(markup_to_model(markup, metadata, signatures))
    return data, Document(io.BytesIO(data))


def _zip_parts(data: bytes) -> dict:
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return {name: zf.read(name) for name in zf.namelist()}


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------

def test_empty_document_has_only_centered_title():
    meta = DocumentMetadata(title="Empty Doc", created_at=datetime(2024, 1, 1))
    _, doc = _render("", meta)
    assert len(doc.paragraphs) == 1
    title = doc.paragraphs[0]
    assert title.text == "Empty Doc"
    assert title.style.name == "Title"
    assert title.alignment == WD_ALIGN_PARAGRAPH.CENTER


def test_one_inch_margins(metadata):
    _, doc = _render("<p>Body</p>", metadata)
    section = doc.sections[0]
    for margin in (section.top_margin, section.right_margin, section.bottom_margin, section.left_margin):
        assert margin == Inches(1)


def test_header_carries_title(metadata):
    _, doc = _render("<p>Body</p>", metadata)
    header = doc.sections[0].header
    assert "Services Agreement" in header.paragraphs[0].text
    assert header.paragraphs[0].alignment == WD_ALIGN_PARAGRAPH.RIGHT


def test_footer_has_live_page_fields(metadata):
    data, _ = _render("<p>Body</p>", metadata)
    footers = [v.decode("utf-8") for k, v in _zip_parts(data).items() if k.startswith("word/footer")]
    assert footers
    xml = footers[0]
    assert 'w:fldCharType="begin"' in xml
    assert " PAGE " in xml
    assert " NUMPAGES " in xml
    assert "Page " in xml and " of " in xml


def test_core_properties_from_metadata(metadata):
    _, doc = _render("<p>Body</p>", metadata)
    props = doc.core_properties
    assert props.title == "Services Agreement"
    assert props.author == "Jane Doe"
    assert props.created.replace(tzinfo=None) == datetime(2024, 1, 1, 9, 0, 0)


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------

def test_paragraph_runs_keep_formatting(metadata):
    _, doc = _render(
        "<h1>Agreement</h1><p>This is <strong>binding</strong>.</p>", metadata
    )
    heading, body = doc.paragraphs[1], doc.paragraphs[2]
    assert heading.style.name == "Heading 1"
    assert heading.text == "Agreement"
    assert [r.text for r in body.runs] == ["This is ", "binding."]
    assert body.runs[1].bold is True
    assert not body.runs[0].bold


def test_heading_levels_are_clamped(metadata):
    model = DocumentModel(
        metadata=metadata,
        blocks=(
            Heading(level=9, runs=(TextRun("Deep"),)),
            Heading(level=0, runs=(TextRun("Zero"),)),
        ),
    )
    doc = Document(io.BytesIO(serialize_docx(model)))
    assert doc.paragraphs[1].style.name == "Heading 6"
    assert doc.paragraphs[2].style.name == "Heading 1"
    assert clamp_heading_level(-3) == 1
    assert clamp_heading_level(4) == 4


def test_list_styles(metadata):
    _, doc = _render("<ol><li>One</li></ol><ul><li>Dot</li></ul>", metadata)
    assert doc.paragraphs[1].style.name == "List Number"
    assert doc.paragraphs[2].style.name == "List Bullet"


def test_break_renders_as_bordered_paragraph(metadata):
    _, doc = _render("<p>a</p><hr><p>b</p>", metadata)
    assert [p.text for p in doc.paragraphs[1:]] == ["a", "", "b"]
    assert "w:pBdr" in doc.paragraphs[2]._p.xml


def test_inline_image_is_embedded(metadata, png_data_uri):
    _, doc = _render(f'<p>Seal</p><img src="{png_data_uri}" alt="Seal">', metadata)
    assert len(doc.inline_shapes) == 1
    assert doc.inline_shapes[0].width == 40 * EMU_PER_PIXEL


def test_remote_image_is_not_fetched(metadata):
    _, doc = _render('<img src="https://example.com/logo.png" alt="Logo">', metadata)
    assert len(doc.inline_shapes) == 0
    placeholder = doc.paragraphs[1]
    assert placeholder.text == "[Image: Logo]"
    assert placeholder.runs[0].italic is True


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------

def test_signature_block_order_and_styles(metadata, png_bytes):
    signer = SignatureEntry(
        signer_name="Jane Doe",
        signer_role="CEO",
        signed_at=datetime(2024, 1, 1),
        signature_image=png_bytes,
    )
    _, doc = _render("", metadata, [signer])

    texts = [p.text for p in doc.paragraphs]
    assert texts[1] == "Signatures"
    assert texts[2] == ""                       # image paragraph
    assert set(texts[3]) == {"_"}               # rule line
    assert texts[4:] == ["Jane Doe", "CEO", "Signed: January 1, 2024"]

    assert "graphic" in doc.paragraphs[2]._p.xml
    assert len(doc.inline_shapes) == 1
    shape = doc.inline_shapes[0]
    assert shape.width == 200 * EMU_PER_PIXEL
    assert shape.height == 60 * EMU_PER_PIXEL

    assert doc.paragraphs[4].runs[0].bold is True
    assert doc.paragraphs[5].runs[0].italic is True
    date_run = doc.paragraphs[6].runs[0]
    assert date_run.font.size == Pt(10)
    assert date_run.font.color.rgb == RGBColor(0x66, 0x66, 0x66)


def test_multiple_signers_keep_order(metadata):
    signers = [SignatureEntry("Amy Adams"), SignatureEntry("Bob Brown", signer_role="Witness")]
    _, doc = _render("", metadata, signers)
    texts = [p.text for p in doc.paragraphs]
    assert texts.index("Amy Adams") < texts.index("Bob Brown") < texts.index("Witness")


@pytest.mark.parametrize(
    "bad_image",
    [b"definitely not a png", "data:image/png;base64,@@@@", "https://example.com/sig.png"],
)
def test_undecodable_signature_image_keeps_entry(metadata, bad_image):
    signer = SignatureEntry(signer_name="Jane Doe", signature_image=bad_image)
    _, doc = _render("", metadata, [signer])
    assert len(doc.inline_shapes) == 0
    assert "Jane Doe" in [p.text for p in doc.paragraphs]


# ---------------------------------------------------------------------------
# Package
# ---------------------------------------------------------------------------

def test_same_model_gives_identical_bytes(metadata, png_bytes):
    model = markup_to_model(
        "<h2>Terms</h2><p>Text <em>here</em></p>",
        metadata,
        [SignatureEntry("Jane Doe", signature_image=png_bytes, signed_at=datetime(2024, 1, 1))],
    )
    assert serialize_docx(model) == serialize_docx(model)


def test_script_content_absent_from_every_part(metadata):
    data, _ = _render("<script>alert('pwned')</script><p>Hello</p>", metadata)
    for name, content in _zip_parts(data).items():
        assert b"pwned" not in content, name
        assert b"alert(" not in content, name


def test_packaging_failure_raises_serialization_error(metadata, monkeypatch):
    def _boom(*args, **kwargs):
        raise RuntimeError("template missing")

    monkeypatch.setattr("lexdoc.services.docx_serializer.Document", _boom)
    with pytest.raises(SerializationError):
        DocxSerializer().serialize(markup_to_model("<p>x</p>", metadata))
