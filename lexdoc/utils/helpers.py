"""
Common utility functions and helpers.
"""
from datetime import datetime
import re
import unicodedata

_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def format_long_date(value: datetime) -> str:
    """
    Format a date the way signature blocks display it.

    Args:
        value: Date or datetime

    Returns:
        e.g. "January 1, 2024" (independent of the process locale)
    """
    return f"{_MONTHS[value.month - 1]} {value.day}, {value.year}"


def sanitize_filename(title: str, default: str = "document") -> str:
    """
    Turn a document title into a safe download filename stem.

    Args:
        title: Raw document title
        default: Stem used when nothing printable remains

    Returns:
        Filename stem without extension
    """
    name = unicodedata.normalize("NFKD", title or "")
    name = name.encode("ascii", "ignore").decode("ascii")
    # Keep word characters, spaces, dots and dashes
    name = re.sub(r"[^\w\s.-]", "", name)
    name = re.sub(r"\s+", "_", name).strip("._")
    return name[:100] or default


def word_count(text: str) -> int:
    """Count whitespace-separated words."""
    return len(text.split())


def truncate_text(text: str, max_length: int = 200, suffix: str = "...") -> str:
    """
    Truncate text to maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix
