"""Tests for the HTML export and the Word-HTML fallback rendering."""
from datetime import datetime

from lexdoc.models.document_model import (
    Break,
    DocumentModel,
    ImageBlock,
    ListItem,
    Paragraph,
    SignatureEntry,
    TextRun,
)
from lexdoc.services.conversion import markup_to_model
from lexdoc.services.html_renderer import (
    render_blocks,
    render_html_document,
    render_print_html,
    render_runs,
    render_word_html,
)


def test_export_document_structure(metadata):
    model = markup_to_model("<h2>Terms</h2><p>This is <strong>binding</strong>.</p>", metadata)
    html = render_html_document(model)
    assert html.startswith("<!DOCTYPE html>")
    assert '<h1 class="title">Services Agreement</h1>' in html
    assert "Last updated: January 2, 2024" in html
    assert "<h2>Terms</h2>" in html
    assert "<p>This is <strong>binding.</strong></p>" in html


def test_consecutive_list_items_share_a_list():
    blocks = [
        ListItem(ordered=True, runs=(TextRun("A"),)),
        ListItem(ordered=True, runs=(TextRun("B"),)),
        ListItem(ordered=False, runs=(TextRun("C"),)),
        Paragraph(runs=(TextRun("after"),)),
        Break(),
    ]
    assert render_blocks(blocks) == [
        "<ol>", "<li>A</li>", "<li>B</li>", "</ol>",
        "<ul>", "<li>C</li>", "</ul>",
        "<p>after</p>",
        "<hr>",
    ]


def test_runs_are_escaped_and_styled():
    runs = [TextRun("<x> & "), TextRun("all", bold=True, italic=True, underline=True, strike=True)]
    assert render_runs(runs) == "&lt;x&gt; &amp; <strong><em><u><s>all</s></u></em></strong>"


def test_decoded_entities_never_become_tags(metadata):
    model = markup_to_model("<p>&lt;script&gt;alert(1)&lt;/script&gt;</p>", metadata)
    html = render_html_document(model)
    assert "<script>" not in html
    assert "&lt;script&gt;" in html


def test_unsafe_image_sources_become_placeholders(metadata):
    model = DocumentModel(
        metadata=metadata,
        blocks=(
            ImageBlock(src="javascript:alert(1)", alt_text="Logo"),
            ImageBlock(src="https://example.com/seal.png", alt_text="Seal"),
        ),
    )
    html = render_html_document(model)
    assert "javascript:" not in html
    assert "<p><em>[Image: Logo]</em></p>" in html
    assert '<img src="https://example.com/seal.png" alt="Seal">' in html


def test_signature_section(metadata, png_data_uri):
    model = DocumentModel(
        metadata=metadata,
        signatures=(
            SignatureEntry(
                signer_name="Jane Doe",
                signer_role="CEO",
                signed_at=datetime(2024, 1, 1),
                signature_image=png_data_uri,
            ),
        ),
    )
    html = render_html_document(model)
    assert "<h2>Signatures</h2>" in html
    assert 'class="signature-image"' in html
    assert "data:image/png;base64," in html
    assert "<strong>Jane Doe</strong>" in html
    assert "Signed: January 1, 2024" in html
    assert html.index("Jane Doe") < html.index("CEO") < html.index("Signed:")


def test_word_html_fallback(metadata):
    model = markup_to_model(
        "<p>Hello</p>", metadata, [SignatureEntry("Jane Doe", signed_at=datetime(2024, 1, 1))]
    )
    html = render_word_html(model)
    assert 'xmlns:w="urn:schemas-microsoft-com:office:word"' in html
    assert '<h1 class="title">Services Agreement</h1>' in html
    assert "<p>Hello</p>" in html
    assert 'class="signature-line"' in html
    assert "<p>Signed: January 1, 2024</p>" in html


def test_print_layout_is_a4_with_footer(metadata):
    model = markup_to_model("<p>First clause.</p><p>Second clause.</p>", metadata)
    html = render_print_html(model, generated_on=datetime(2024, 3, 5, 14, 0))
    assert "@page { size: A4; margin: 2cm; }" in html
    assert "'Times New Roman', serif" in html
    assert '<div class="content">\n<p>First clause.</p>\n<p>Second clause.</p>\n</div>' in html
    assert '<div class="footer">Generated on March 5, 2024</div>' in html
    assert "Last updated" not in html
    assert "<h2>Signatures</h2>" not in html


def test_print_layout_signatures_in_two_columns(metadata, png_data_uri):
    signers = [
        SignatureEntry("Jane Doe", signer_role="CEO", signed_at=datetime(2024, 1, 1),
                       signature_image=png_data_uri),
        SignatureEntry("John Roe"),
    ]
    model = markup_to_model("<p>Body</p>", metadata, signers)
    html = render_print_html(model, generated_on=datetime(2024, 1, 2))

    assert ".signature-block { display: inline-block; width: 45%;" in html
    assert html.count('<div class="signature-block">') == 2
    assert html.count('<div class="signature-line">') == 2
    assert '<div class="signature-line"><img src="data:image/png;base64,' in html
    assert '<div class="signature-line"></div>' in html
    assert '<div class="signature-name">Jane Doe</div>' in html
    assert '<div class="signature-role">CEO</div>' in html
    assert '<div class="signature-date">Signed: January 1, 2024</div>' in html
    assert html.index("Jane Doe") < html.index("John Roe") < html.index('class="footer"')
