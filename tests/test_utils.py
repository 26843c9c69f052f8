"""Tests for image decoding and small helpers."""
import base64
from datetime import datetime

from lexdoc.utils.helpers import format_long_date, sanitize_filename, truncate_text, word_count
from lexdoc.utils.images import decode_image, is_data_uri


def test_decode_png_bytes(png_bytes):
    image = decode_image(png_bytes)
    assert image is not None
    assert (image.format, image.width, image.height) == ("PNG", 40, 12)
    assert image.mime_type == "image/png"


def test_decode_data_uri_round_trips(png_data_uri):
    image = decode_image(png_data_uri)
    assert image is not None
    assert image.to_data_uri() == png_data_uri


def test_decode_rejects_non_images():
    not_png = "data:image/png;base64," + base64.b64encode(b"plain words").decode()
    assert decode_image(not_png) is None
    assert decode_image("data:image/svg+xml,<svg/>") is None
    assert decode_image("https://example.com/sig.png") is None
    assert decode_image(b"") is None
    assert decode_image(None) is None


def test_is_data_uri():
    assert is_data_uri(" data:image/jpeg;base64,AAAA")
    assert not is_data_uri("data:text/html,<b>x</b>")


def test_format_long_date():
    assert format_long_date(datetime(2024, 1, 1)) == "January 1, 2024"
    assert format_long_date(datetime(2025, 12, 31, 23, 59)) == "December 31, 2025"


def test_sanitize_filename():
    assert sanitize_filename("Services Agreement") == "Services_Agreement"
    assert sanitize_filename('Lease: "Unit 4/B"') == "Lease_Unit_4B"
    assert sanitize_filename("Café Contrat") == "Cafe_Contrat"
    assert sanitize_filename("???") == "document"


def test_word_count_and_truncate():
    assert word_count("  one two\nthree ") == 3
    assert truncate_text("short") == "short"
    assert truncate_text("x" * 300, max_length=10) == "xxxxxxx..."
