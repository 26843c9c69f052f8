"""
Inline run extractor: turns one block span into an ordered list of TextRuns.

Formatting is tracked with one depth counter per flag.  Nested or partially
overlapping tags therefore OR-combine their flags on each contiguous text
segment instead of producing a tree of runs.  Counters start at zero for
every span, so an unclosed ``<b>`` never leaks into the next block.
"""
from __future__ import annotations

import re
from typing import Dict, List, Tuple

from lexdoc.models.document_model import TextRun
from lexdoc.services.sanitizer import decode_entities

_TAG_RE = re.compile(r"<(/?)([a-zA-Z][a-zA-Z0-9]*)\b[^>]*?(/?)>")
_WHITESPACE_RE = re.compile(r"\s+")
_PUNCTUATION_ONLY_RE = re.compile(r"^[^\w\s]+$")

_FLAG_TAGS: Dict[str, str] = {
    "strong": "bold",
    "b": "bold",
    "em": "italic",
    "i": "italic",
    "u": "underline",
    "s": "strike",
    "strike": "strike",
    "del": "strike",
}
_FLAG_ORDER = ("bold", "italic", "underline", "strike")

Flags = Tuple[bool, bool, bool, bool]


def extract_runs(markup: str) -> List[TextRun]:
    """
    Extract styled runs from a block span's markup.

    Runs are emitted left to right.  Whitespace collapses as in HTML,
    whitespace-only gaps become a single space on the preceding run,
    punctuation-only fragments without formatting of their own attach to the
    preceding run, and adjacent runs with identical flags are merged.  Every
    returned run has non-blank text.
    """
    segments = _tokenize(markup)
    if not segments:
        return []

    runs: List[List] = []   # [text, flags] pairs, mutable while building
    for text, flags in segments:
        if not text.strip():
            if runs and not runs[-1][0].endswith(" "):
                runs[-1][0] += " "
            continue
        if (
            runs
            and _PUNCTUATION_ONLY_RE.match(text.strip())
            and not text[0].isspace()
            and (flags == runs[-1][1] or not any(flags))
        ):
            # Unformatted punctuation joins its word; styled punctuation keeps its flags
            runs[-1][0] += text
            continue
        if not runs:
            text = text.lstrip()
        if runs and runs[-1][0].endswith(" ") and text.startswith(" "):
            text = text.lstrip()
        if runs and runs[-1][1] == flags:
            runs[-1][0] += text
        else:
            runs.append([text, flags])

    if runs:
        runs[-1][0] = runs[-1][0].rstrip()

    return [
        TextRun(text=text, bold=flags[0], italic=flags[1], underline=flags[2], strike=flags[3])
        for text, flags in runs
        if text.strip()
    ]


def _tokenize(markup: str) -> List[Tuple[str, Flags]]:
    """Split markup into (collapsed text, flags) segments in document order."""
    depth = {name: 0 for name in _FLAG_ORDER}
    segments: List[Tuple[str, Flags]] = []
    pos = 0

    def _push(raw: str) -> None:
        if not raw:
            return
        text = _WHITESPACE_RE.sub(" ", decode_entities(raw))
        if text:
            segments.append((text, tuple(depth[name] > 0 for name in _FLAG_ORDER)))

    for match in _TAG_RE.finditer(markup):
        _push(markup[pos:match.start()])
        pos = match.end()

        flag = _FLAG_TAGS.get(match.group(2).lower())
        if flag is None or match.group(3):      # unknown or self-closing tag
            continue
        if match.group(1):
            depth[flag] = max(depth[flag] - 1, 0)
        else:
            depth[flag] += 1

    _push(markup[pos:])
    return segments
