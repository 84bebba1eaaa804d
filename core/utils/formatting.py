from typing import NamedTuple, Optional

PLACEHOLDER = "text"


class FormatResult(NamedTuple):
    """Edited text plus the selection to restore in the editor."""
    text: str
    selection_start: int
    selection_end: int


# Wrap the selection: (before, after)
INLINE_FORMATS = {
    "bold": ("**", "**"),
    "italic": ("*", "*"),
    "strikethrough": ("~~", "~~"),
    "link": ("[", "](url)"),
    "image": ("![", "](image-url)"),
    "code": ("`", "`"),
}

# Insert in front of the selection
LINE_FORMATS = {
    "quote": "> ",
    "bullet": "- ",
    "number": "1. ",
    "task": "- [ ] ",
}

HEADINGS = {
    "h1": "# ",
    "h2": "## ",
    "h3": "### ",
}


def _wrap(text: str, start: int, end: int, before: str, after: str) -> FormatResult:
    start, end = sorted((max(0, start), max(0, end)))
    start, end = min(start, len(text)), min(end, len(text))
    selected = text[start:end] or PLACEHOLDER
    new_text = text[:start] + before + selected + after + text[end:]
    sel_start = start + len(before)
    return FormatResult(new_text, sel_start, sel_start + len(selected))


def apply_inline_format(text: str, start: int, end: int, fmt: str) -> Optional[FormatResult]:
    """
    Wraps the selection in markdown markup ('bold', 'italic', ...).
    An empty selection is replaced by a placeholder word, which stays selected.
    Returns None for unknown formats.
    """
    markers = INLINE_FORMATS.get(fmt)
    if markers is None:
        return None
    return _wrap(text, start, end, *markers)


def apply_line_format(text: str, start: int, end: int, fmt: str) -> Optional[FormatResult]:
    """Prefixes the selection with a block marker ('quote', 'bullet', 'number', 'task')."""
    prefix = LINE_FORMATS.get(fmt)
    if prefix is None:
        return None
    return _wrap(text, start, end, prefix, "")


def apply_heading(text: str, cursor: int, level: str) -> Optional[FormatResult]:
    """
    Inserts a heading marker at the start of the line holding the cursor.
    The cursor keeps its place relative to the text.
    """
    prefix = HEADINGS.get(level)
    if prefix is None:
        return None
    cursor = max(0, min(cursor, len(text)))
    line_start = text.rfind("\n", 0, cursor) + 1
    new_text = text[:line_start] + prefix + text[line_start:]
    new_cursor = cursor + len(prefix)
    return FormatResult(new_text, new_cursor, new_cursor)
