"""
Markup sanitizer: removes non-content regions and decodes character entities.

Sanitization never fails.  Removal patterns only match complete regions, so an
unterminated ``<script>`` or comment leaves its residual text in place.
"""
from __future__ import annotations

import html
import re

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script\s*>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style\s*>", re.IGNORECASE)
_COMMENT_RE = re.compile(r"<!--[\s\S]*?-->")

_ENTITY_RE = re.compile(r"&(?:#[0-9]+|#[xX][0-9a-fA-F]+|[A-Za-z][A-Za-z0-9]*);")

# Characters that would change markup structure if decoded early
_MARKUP_CHARS = frozenset("<>&")


def strip_non_content(markup: str) -> str:
    """Remove script, style and comment regions."""
    if not markup:
        return ""
    text = _SCRIPT_RE.sub("", markup)
    text = _STYLE_RE.sub("", text)
    return _COMMENT_RE.sub("", text)


def decode_entities(text: str, keep_markup: bool = False) -> str:
    """
    Decode named and numeric character entities.

    ``&nbsp;`` becomes a plain space.  With ``keep_markup=True`` entities that
    decode to ``<``, ``>`` or ``&`` stay encoded, so the result is still safe
    to split on tags.
    """
    if not text or "&" not in text:
        return text

    def _replace(match: re.Match) -> str:
        decoded = html.unescape(match.group(0))
        if keep_markup and decoded in _MARKUP_CHARS:
            return match.group(0)
        return decoded.replace("\xa0", " ")

    return _ENTITY_RE.sub(_replace, text)


def sanitize_markup(markup: str) -> str:
    """Strip non-content regions and decode every entity that cannot form markup."""
    return decode_entities(strip_non_content(markup), keep_markup=True)
