import pytest

from core.utils.formatting import (
    PLACEHOLDER,
    apply_heading,
    apply_inline_format,
    apply_line_format,
)

# --- INLINE ---

@pytest.mark.parametrize("fmt, expected", [
    ("bold", "a **word** b"),
    ("italic", "a *word* b"),
    ("strikethrough", "a ~~word~~ b"),
    ("code", "a `word` b"),
    ("link", "a [word](url) b"),
    ("image", "a ![word](image-url) b"),
])
def test_inline_wraps_selection(fmt, expected):
    result = apply_inline_format("a word b", 2, 6, fmt)
    assert result.text == expected
    assert result.text[result.selection_start:result.selection_end] == "word"


def test_inline_empty_selection_inserts_placeholder():
    result = apply_inline_format("ab", 1, 1, "bold")
    assert result.text == f"a**{PLACEHOLDER}**b"
    assert result.text[result.selection_start:result.selection_end] == PLACEHOLDER


def test_inline_reversed_and_out_of_range_selection():
    result = apply_inline_format("hello", 99, 1, "italic")
    assert result.text == "h*ello*"


def test_unknown_format_returns_none():
    assert apply_inline_format("x", 0, 1, "blink") is None
    assert apply_line_format("x", 0, 1, "blink") is None
    assert apply_heading("x", 0, "h9") is None

# --- LINE ---

@pytest.mark.parametrize("fmt, prefix", [
    ("quote", "> "),
    ("bullet", "- "),
    ("number", "1. "),
    ("task", "- [ ] "),
])
def test_line_format_prefixes_selection(fmt, prefix):
    result = apply_line_format("buy milk", 0, 8, fmt)
    assert result.text == prefix + "buy milk"
    assert result.selection_start == len(prefix)

# --- HEADINGS ---

def test_heading_goes_to_line_start():
    text = "first\nsecond line"
    result = apply_heading(text, 10, "h2")
    assert result.text == "first\n## second line"
    assert result.selection_start == result.selection_end == 13


def test_heading_on_first_line():
    assert apply_heading("title", 3, "h1").text == "# title"
