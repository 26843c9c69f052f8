"""
Block segmenter: splits sanitized markup into ordered block-level spans.

No DOM is built.  Every block tag, opening or closing, is a split point, so
malformed nesting degrades into extra boundaries instead of stalling: an
unterminated ``<p>`` simply ends at the next block tag.  Each span remembers
the innermost block tag that opened it, which is the only tag evidence used
to classify headings and list items.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from lexdoc.services.sanitizer import decode_entities

logger = logging.getLogger(__name__)

_SPLIT_TAGS = (
    "h[1-6]|p|div|ul|ol|li|table|thead|tbody|tfoot|tr|td|th|"
    "blockquote|section|article|header|footer|pre|br|hr|img"
)
_BLOCK_TAG_RE = re.compile(rf"<(/?)({_SPLIT_TAGS})\b([^>]*)>", re.IGNORECASE)
_ANY_TAG_RE = re.compile(r"<[^>]*>")
_ATTR_RE = re.compile(
    r"""([a-zA-Z_:][-a-zA-Z0-9_:.]*)\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+))"""
)
_BLANK_LINE_RE = re.compile(r"\n[ \t\r\f\v]*\n")

PARAGRAPH = "paragraph"
HEADING = "heading"
LIST_ITEM = "list_item"
IMAGE = "image"
BREAK = "break"


@dataclass(frozen=True)
class RawBlock:
    """
    One block-level span of markup, before inline run extraction.

    ``markup`` still contains inline tags; ``tag`` is the block tag that opened
    the span (``None`` for bare text outside any block tag).
    """

    kind: str
    markup: str = ""
    tag: Optional[str] = None
    level: int = 0
    ordered: bool = False
    src: str = ""
    alt: str = ""


# ---------------------------------------------------------------------------
# Implicit heading detection
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HeadingGuess:
    level: int
    confidence: float


class HeadingClassifier:
    """
    Infers headings for spans that carry no heading tag.

    Contract: ``classify`` receives the span's visible text and returns a
    ``HeadingGuess`` or ``None``.  The segmenter only applies guesses whose
    confidence is at least ``threshold`` and only to bare-text spans; tagged
    spans are never reclassified.
    """

    threshold: float = 0.5

    def classify(self, text: str) -> Optional[HeadingGuess]:
        raise NotImplementedError


class LengthHeuristicClassifier(HeadingClassifier):
    """
    Treat short lines without a terminal period as level-2 headings.

    This misclassifies short declarative sentences that omit the period, so it
    is opt-in (``IMPLICIT_HEADINGS``).
    """

    def __init__(self, max_length: int = 100, level: int = 2) -> None:
        self.max_length = max_length
        self.level = level

    def classify(self, text: str) -> Optional[HeadingGuess]:
        stripped = text.strip()
        if not stripped or "\n" in stripped or len(stripped) >= self.max_length:
            return None
        if stripped.endswith((".", ":", ";", ",")):
            return None
        # Shorter lines look more like titles
        confidence = 1.0 - (len(stripped) / self.max_length) * 0.5
        return HeadingGuess(level=self.level, confidence=confidence)


# ---------------------------------------------------------------------------
# Segmentation
# ---------------------------------------------------------------------------

def visible_text(markup: str) -> str:
    """Strip all tags and decode entities; used for emptiness checks."""
    return decode_entities(_ANY_TAG_RE.sub("", markup)).strip()


def parse_attributes(raw: str) -> dict:
    attrs = {}
    for match in _ATTR_RE.finditer(raw or ""):
        value = next((g for g in match.groups()[1:] if g is not None), "")
        attrs[match.group(1).lower()] = decode_entities(value)
    return attrs


def segment_blocks(
    markup: str,
    heading_classifier: Optional[HeadingClassifier] = None,
) -> List[RawBlock]:
    """
    Split sanitized markup into ordered RawBlocks.

    Args:
        markup:             Output of ``sanitize_markup``.
        heading_classifier: Optional implicit-heading capability for bare text.

    Returns:
        RawBlocks in document order; whitespace-only spans are discarded.
    """
    blocks: List[RawBlock] = []
    if not markup:
        return blocks

    current: Optional[str] = None       # innermost open block tag
    anomalies = 0                       # mismatched or unterminated block tags
    list_stack: List[bool] = []         # True for <ol>, False for <ul>
    pos = 0

    for match in _BLOCK_TAG_RE.finditer(markup):
        _emit_span(
            blocks, markup[pos:match.start()], current, list_stack, heading_classifier
        )
        pos = match.end()

        closing = match.group(1) == "/"
        tag = match.group(2).lower()

        if tag == "br":
            continue
        if tag == "hr":
            if not closing:
                blocks.append(RawBlock(kind=BREAK, tag="hr"))
            continue
        if tag == "img":
            if not closing:
                attrs = parse_attributes(match.group(3))
                src = attrs.get("src", "").strip()
                if src:
                    blocks.append(
                        RawBlock(kind=IMAGE, tag="img", src=src, alt=attrs.get("alt", ""))
                    )
                else:
                    logger.debug("Skipping <img> without src")
            continue
        if tag in ("ul", "ol"):
            if closing:
                if list_stack:
                    list_stack.pop()
                else:
                    anomalies += 1
            else:
                list_stack.append(tag == "ol")
            current = None
            continue

        if closing and current is not None and current != tag:
            anomalies += 1
        current = None if closing else tag

    _emit_span(blocks, markup[pos:], current, list_stack, heading_classifier)
    if current is not None or list_stack:
        anomalies += 1
    if anomalies:
        logger.warning("segment_blocks: absorbed %d malformed block tag(s)", anomalies)
    return blocks


def _emit_span(
    blocks: List[RawBlock],
    span: str,
    tag: Optional[str],
    list_stack: List[bool],
    heading_classifier: Optional[HeadingClassifier],
) -> None:
    if not visible_text(span):
        return

    if tag is None:
        # Bare text: blank lines separate paragraphs, as in plain-text input
        for chunk in _BLANK_LINE_RE.split(span):
            text = visible_text(chunk)
            if not text:
                continue
            guess = heading_classifier.classify(text) if heading_classifier else None
            if guess is not None and guess.confidence >= heading_classifier.threshold:
                level = min(max(guess.level, 1), 6)
                blocks.append(RawBlock(kind=HEADING, markup=chunk, level=level))
            else:
                blocks.append(RawBlock(kind=PARAGRAPH, markup=chunk))
        return

    if len(tag) == 2 and tag[0] == "h" and tag[1].isdigit():
        blocks.append(RawBlock(kind=HEADING, markup=span, tag=tag, level=int(tag[1])))
    elif tag == "li":
        ordered = list_stack[-1] if list_stack else False
        blocks.append(RawBlock(kind=LIST_ITEM, markup=span, tag=tag, ordered=ordered))
    else:
        blocks.append(RawBlock(kind=PARAGRAPH, markup=span, tag=tag))
