import re

import pytest

from core.models.document import Entry, Page
from core.pagination import SPLIT_THRESHOLD, join_pages, paginate, repaginate_entry


def _contents(pages):
    return [p.content for p in pages]


def _non_whitespace(text):
    return re.sub(r"\s+", "", text)


def test_split_at_newline_inside_threshold():
    assert _contents(paginate("abcdefghij\nklmno", 10)) == ["abcdefghij", "klmno"]


def test_hard_cut_without_newline():
    assert _contents(paginate("abcdefghijklmno", 10)) == ["abcdefghij", "klmno"]


def test_newline_too_far_back_forces_hard_cut():
    # Newline at index 2 is well before 0.7 * 10
    assert SPLIT_THRESHOLD == 0.7
    assert _contents(paginate("ab\ncdefghijklmnop", 10)) == ["ab\ncdefghi", "jklmnop"]


def test_paragraph_split_prefers_latest_newline():
    text = "first para\nsecond\nthird paragraph here"
    pages = _contents(paginate(text, 20))
    assert pages[0] == "first para\nsecond"
    assert all(len(p) <= 20 for p in pages)


def test_short_text_is_one_page():
    assert _contents(paginate("  hello  ", 100)) == ["hello"]


@pytest.mark.parametrize("text", ["", "   ", "\n\n\n"])
def test_blank_text_yields_single_empty_page(text):
    assert _contents(paginate(text, 10)) == [""]


def test_invalid_limit_rejected():
    with pytest.raises(ValueError):
        paginate("abc", 0)


@pytest.mark.parametrize("limit", [1, 7, 10, 33, 250])
def test_order_of_non_whitespace_characters_is_preserved(limit):
    text = "# Title\n\nLorem ipsum dolor sit amet,\nconsectetur adipiscing elit.\n\n" * 12
    pages = paginate(text, limit)
    assert all(len(p.content) <= limit for p in pages)
    assert _non_whitespace("".join(_contents(pages))) == _non_whitespace(text)


def test_join_pages_uses_blank_line():
    assert join_pages([Page(content="a"), Page(content="b")]) == "a\n\nb"


def test_repaginate_is_noop_for_short_single_page():
    entry = Entry(id="e", pages=[Page(content="short text")])
    assert repaginate_entry(entry, 100) is False
    assert _contents(entry.pages) == ["short text"]


def test_repaginate_merges_short_pages():
    entry = Entry(id="e", pages=[Page(content="a"), Page(content="b")])
    assert repaginate_entry(entry, 100) is True
    assert _contents(entry.pages) == ["a\n\nb"]


def test_repaginate_splits_long_entry():
    entry = Entry(id="e", pages=[Page(content="x" * 25)])
    assert repaginate_entry(entry, 10) is True
    assert _contents(entry.pages) == ["x" * 10, "x" * 10, "x" * 5]


def test_repaginate_seeds_empty_entry():
    entry = Entry(id="e", pages=[])
    assert repaginate_entry(entry, 10) is True
    assert _contents(entry.pages) == [""]
