"""Tests for markup sanitization."""
from lexdoc.services.sanitizer import decode_entities, sanitize_markup, strip_non_content


def test_strips_script_style_and_comments():
    markup = (
        "<style>p { color: red }</style>"
        "<p>Keep</p>"
        "<script type='text/javascript'>alert('x')</script>"
        "<!-- internal note -->"
    )
    assert strip_non_content(markup) == "<p>Keep</p>"


def test_script_removal_is_case_insensitive():
    assert strip_non_content("<SCRIPT>bad()</SCRIPT><p>ok</p>") == "<p>ok</p>"


def test_unterminated_script_is_left_in_place():
    # Only complete regions are removed
    assert strip_non_content("<p>a</p><script>never closed") == "<p>a</p><script>never closed"


def test_decodes_named_and_numeric_entities():
    assert decode_entities("&quot;Smith&quot; &#39;s &#x41;&copy;") == "\"Smith\" 's A©"


def test_nbsp_becomes_plain_space():
    assert decode_entities("a&nbsp;b") == "a b"


def test_unknown_entity_is_left_alone():
    assert decode_entities("&bogus; value") == "&bogus; value"


def test_markup_entities_stay_encoded_when_keeping_markup():
    text = "&lt;script&gt;alert(1)&lt;/script&gt; &amp; co"
    assert decode_entities(text, keep_markup=True) == text
    assert decode_entities(text) == "<script>alert(1)</script> & co"


def test_sanitize_markup_never_creates_tags_from_entities():
    clean = sanitize_markup("<p>&lt;b&gt;not bold&lt;/b&gt;&nbsp;&eacute;</p>")
    assert clean == "<p>&lt;b&gt;not bold&lt;/b&gt; é</p>"


def test_empty_input():
    assert sanitize_markup("") == ""
