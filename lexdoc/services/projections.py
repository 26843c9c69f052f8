"""
Lossy one-way projections used for previews, search indexing and fallbacks.

``to_plain_text`` works on raw editor markup; ``to_html`` works on plain or
markdown-ish text.  Neither is the inverse of the other and neither touches
the DOCX serializer.
"""
from __future__ import annotations

import html
import re
from typing import List

from lexdoc.services.sanitizer import decode_entities, strip_non_content

_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_LI_END_RE = re.compile(r"</li\s*>", re.IGNORECASE)
_BLOCK_END_RE = re.compile(r"</(?:p|div|h[1-6])\s*>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")

_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
_STAR_EM_RE = re.compile(r"\*(.+?)\*")
_UNDERSCORE_EM_RE = re.compile(r"_(.+?)_")
_HEADING_RE = re.compile(r"^(#{1,3}) (.+)$")
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")


def to_plain_text(markup: str) -> str:
    """
    Convert editor markup to plain text.

    Breaks and list items end with one newline; paragraphs, divs and headings
    end with two.  Runs of three or more newlines collapse to two.
    """
    if not markup:
        return ""
    text = strip_non_content(markup)
    text = _BR_RE.sub("\n", text)
    text = _LI_END_RE.sub("\n", text)
    text = _BLOCK_END_RE.sub("\n\n", text)
    text = _TAG_RE.sub("", text)
    text = decode_entities(text)
    text = _EXCESS_NEWLINES_RE.sub("\n\n", text)
    return text.strip()


def to_html(text: str) -> str:
    """
    Convert plain text with light markdown to simplified HTML.

    Supports ``**bold**``, ``*em*``/``_em_`` and ``#``/``##``/``###``
    headings.  Blank lines separate paragraphs; single newlines become
    ``<br>``.
    """
    if not text or not text.strip():
        return ""

    text = text.replace("\r\n", "\n").replace("\r", "\n")
    escaped = html.escape(text, quote=False)
    escaped = _BOLD_RE.sub(r"<strong>\1</strong>", escaped)
    escaped = _STAR_EM_RE.sub(r"<em>\1</em>", escaped)
    escaped = _UNDERSCORE_EM_RE.sub(r"<em>\1</em>", escaped)

    parts: List[str] = []
    for chunk in _PARAGRAPH_SPLIT_RE.split(escaped.strip()):
        lines = [line for line in chunk.split("\n") if line.strip()]
        if not lines:
            continue
        buffer: List[str] = []
        for line in lines:
            heading = _HEADING_RE.match(line)
            if heading:
                if buffer:
                    parts.append("<p>" + "<br>".join(buffer) + "</p>")
                    buffer = []
                level = len(heading.group(1))
                parts.append(f"<h{level}>{heading.group(2)}</h{level}>")
            else:
                buffer.append(line)
        if buffer:
            parts.append("<p>" + "<br>".join(buffer) + "</p>")

    return "".join(parts)
