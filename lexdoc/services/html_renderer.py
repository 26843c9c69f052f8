"""
HTML renderings of a DocumentModel.

* ``render_html_document``: standalone HTML export.
* ``render_print_html``: A4 print layout, printed to PDF by the browser.
* ``render_word_html``: Word-compatible HTML served as ``.doc`` when DOCX
  packaging fails.  It is rendered from the same model, so it carries the same
  content at lower fidelity.

All three render the sanitized model, never the caller's raw markup.
"""
from __future__ import annotations

from datetime import datetime
from html import escape
from typing import Iterable, List, Optional

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
from lexdoc.services.docx_serializer import clamp_heading_level
from lexdoc.utils.helpers import format_long_date
from lexdoc.utils.images import decode_image, is_data_uri

WORD_HTML_MEDIA_TYPE = "application/vnd.ms-word"
HTML_MEDIA_TYPE = "text/html"

_EXPORT_CSS = """
    body { font-family: system-ui, -apple-system, sans-serif; max-width: 800px;
           margin: 0 auto; padding: 2rem; line-height: 1.6; }
    h1.title { border-bottom: 2px solid #e5e7eb; padding-bottom: 1rem; }
    .meta { color: #6b7280; font-size: 0.875rem; margin-bottom: 2rem; }
    .signatures { margin-top: 3rem; padding-top: 1rem; border-top: 1px solid #e5e7eb; }
    .signature-block { margin-bottom: 1.5rem; padding: 1rem; background: #f9fafb; }
    .signature-image { width: 200px; height: 60px; margin-bottom: 0.5rem; }
    .signature-role { font-style: italic; }
    .signature-date { font-size: 10pt; color: #666666; }
"""

_WORD_CSS = """
    body { font-family: 'Times New Roman', serif; font-size: 12pt; line-height: 1.5; }
    h1.title { font-size: 18pt; text-align: center; margin-bottom: 24pt; }
    p { margin-bottom: 12pt; }
    .signatures { margin-top: 36pt; }
    .signature-block { margin-bottom: 24pt; }
    .signature-line { border-bottom: 1pt solid black; margin-bottom: 6pt; height: 48pt; }
"""

_PRINT_CSS = """
    @page { size: A4; margin: 2cm; }
    body { font-family: 'Times New Roman', serif; font-size: 12pt; line-height: 1.6;
           color: #000; max-width: 21cm; margin: 0 auto; padding: 2cm; }
    h1.title { font-size: 18pt; text-align: center; margin-bottom: 1.5em;
               border-bottom: 2px solid #000; padding-bottom: 0.5em; }
    .content { text-align: justify; }
    .content p { margin-bottom: 1em; text-indent: 2em; }
    .content p:first-child { text-indent: 0; }
    .signatures { margin-top: 3em; page-break-inside: avoid; }
    .signatures h2 { font-size: 14pt; margin-bottom: 1em; border-bottom: 1px solid #ccc;
                     padding-bottom: 0.5em; }
    .signature-block { display: inline-block; width: 45%; margin-right: 5%;
                       margin-bottom: 2em; vertical-align: top; }
    .signature-block:nth-child(even) { margin-right: 0; }
    .signature-image { max-width: 200px; max-height: 60px; margin-bottom: 0.5em; }
    .signature-line { border-bottom: 1px solid #000; margin-bottom: 0.3em; min-height: 60px; }
    .signature-name { font-weight: bold; }
    .signature-role { font-style: italic; color: #666; }
    .signature-date { font-size: 10pt; color: #666; }
    .footer { margin-top: 3em; padding-top: 1em; border-top: 1px solid #ccc;
              font-size: 10pt; color: #666; text-align: center; }
    @media print { body { padding: 0; } }
"""


def render_html_document(model: DocumentModel) -> str:
    meta = model.metadata
    parts: List[str] = [
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        '<meta charset="UTF-8">',
        f"<title>{escape(meta.title)}</title>",
        f"<style>{_EXPORT_CSS}</style>",
        "</head>",
        "<body>",
        f'<h1 class="title">{escape(meta.title)}</h1>',
    ]
    updated = meta.updated_at or meta.created_at
    if updated:
        parts.append(f'<div class="meta">Last updated: {format_long_date(updated)}</div>')
    parts.append('<div class="content">')
    parts.extend(render_blocks(model.blocks))
    parts.append("</div>")
    parts.extend(_render_signatures(model.signatures, style="export"))
    parts.extend(["</body>", "</html>"])
    return "\n".join(parts)


def render_word_html(model: DocumentModel) -> str:
    title = escape(model.metadata.title)
    parts: List[str] = [
        "<!DOCTYPE html>",
        '<html xmlns:o="urn:schemas-microsoft-com:office:office" '
        'xmlns:w="urn:schemas-microsoft-com:office:word">',
        "<head>",
        '<meta charset="UTF-8">',
        '<meta http-equiv="Content-Type" content="text/html; charset=utf-8">',
        f"<title>{title}</title>",
        "<!--[if gte mso 9]><xml><w:WordDocument><w:View>Print</w:View>"
        "<w:Zoom>100</w:Zoom></w:WordDocument></xml><![endif]-->",
        f"<style>{_WORD_CSS}</style>",
        "</head>",
        "<body>",
        f'<h1 class="title">{title}</h1>',
    ]
    parts.extend(render_blocks(model.blocks))
    parts.extend(_render_signatures(model.signatures, style="word"))
    parts.extend(["</body>", "</html>"])
    return "\n".join(parts)


def render_print_html(model: DocumentModel, generated_on: Optional[datetime] = None) -> str:
    """
    Print-ready HTML: A4 pages, serif body, signatures in two columns and a
    "Generated on" footer.  Opening it in a browser and printing to PDF gives
    the paper copy; no PDF is produced server-side.
    """
    title = escape(model.metadata.title)
    parts: List[str] = [
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        '<meta charset="UTF-8">',
        f"<title>{title}</title>",
        f"<style>{_PRINT_CSS}</style>",
        "</head>",
        "<body>",
        f'<h1 class="title">{title}</h1>',
        '<div class="content">',
    ]
    parts.extend(render_blocks(model.blocks))
    parts.append("</div>")
    parts.extend(_render_signatures(model.signatures, style="print"))
    parts.append(
        f'<div class="footer">Generated on {format_long_date(generated_on or datetime.now())}</div>'
    )
    parts.extend(["</body>", "</html>"])
    return "\n".join(parts)


def render_blocks(blocks: Iterable) -> List[str]:
    """Render body blocks; consecutive list items share one list element."""
    parts: List[str] = []
    open_list = None    # "ol" / "ul" while inside a list

    for block in blocks:
        if isinstance(block, ListItem):
            tag = "ol" if block.ordered else "ul"
            if open_list != tag:
                if open_list:
                    parts.append(f"</{open_list}>")
                parts.append(f"<{tag}>")
                open_list = tag
            parts.append(f"<li>{render_runs(block.runs)}</li>")
            continue

        if open_list:
            parts.append(f"</{open_list}>")
            open_list = None

        if isinstance(block, Heading):
            level = clamp_heading_level(block.level)
            parts.append(f"<h{level}>{render_runs(block.runs)}</h{level}>")
        elif isinstance(block, Paragraph):
            parts.append(f"<p>{render_runs(block.runs)}</p>")
        elif isinstance(block, ImageBlock):
            parts.append(_render_image(block))
        elif isinstance(block, Break):
            parts.append("<hr>")

    if open_list:
        parts.append(f"</{open_list}>")
    return parts


def render_runs(runs: Iterable[TextRun]) -> str:
    out: List[str] = []
    for run in runs:
        text = escape(run.text, quote=False)
        if run.strike:
            text = f"<s>{text}</s>"
        if run.underline:
            text = f"<u>{text}</u>"
        if run.italic:
            text = f"<em>{text}</em>"
        if run.bold:
            text = f"<strong>{text}</strong>"
        out.append(text)
    return "".join(out)


def _render_image(block: ImageBlock) -> str:
    alt = escape(block.alt_text)
    image = decode_image(block.src)
    if image is not None:
        return f'<p><img src="{image.to_data_uri()}" alt="{alt}"></p>'
    if isinstance(block.src, str) and not is_data_uri(block.src):
        src = block.src.strip()
        if src.lower().startswith(("http://", "https://")):
            return f'<p><img src="{escape(src)}" alt="{alt}"></p>'
    return f"<p><em>[Image: {alt}]</em></p>" if alt else ""


def _render_signatures(signatures: Iterable[SignatureEntry], style: str) -> List[str]:
    """Signature section for the ``export``, ``word`` or ``print`` layout."""
    signatures = list(signatures)
    if not signatures:
        return []

    parts = ['<div class="signatures">', "<h2>Signatures</h2>"]
    for entry in signatures:
        parts.append('<div class="signature-block">')
        image = decode_image(entry.signature_image) if entry.signature_image else None
        img = ""
        if image is not None:
            size = "" if style == "print" else ' width="200" height="60"'
            img = f'<img src="{image.to_data_uri()}" class="signature-image"{size} alt="Signature">'
        name = escape(entry.signer_name)
        role = escape(entry.signer_role) if entry.signer_role else ""
        signed = f"Signed: {format_long_date(entry.signed_at)}" if entry.signed_at else ""

        if style == "word":
            parts.append(f'<div class="signature-line">{img}</div>')
            parts.append(f"<p><strong>{name}</strong></p>")
            if role:
                parts.append(f"<p><em>{role}</em></p>")
            if signed:
                parts.append(f"<p>{signed}</p>")
        else:
            if style == "print":
                # Printed copies keep a line to sign on even when no image was captured
                parts.append(f'<div class="signature-line">{img}</div>')
                parts.append(f'<div class="signature-name">{name}</div>')
            else:
                if img:
                    parts.append(img)
                parts.append(f"<div><strong>{name}</strong></div>")
            if role:
                parts.append(f'<div class="signature-role">{role}</div>')
            if signed:
                parts.append(f'<div class="signature-date">{signed}</div>')
        parts.append("</div>")
    parts.append("</div>")
    return parts
