"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           core/rendering.py
Version:        1.0.0
Description:    Markdown to HTML conversion for page display. Wraps
                Python-Markdown and adds strikethrough and task-list checkboxes.
------------------------------------------------------------------------------
"""

import re
import threading

import markdown

EXTENSIONS = ["tables", "fenced_code", "sane_lists", "nl2br"]

_STRIKE_RE = re.compile(r"~~(?=\S)(.+?)(?<=\S)~~")
_TASK_RE = re.compile(r"<li>\[([ xX])\]\s*")


class MarkupRenderer:
    """
    Converts page markdown to HTML. One instance may be shared by worker
    threads; conversions are serialized because a Markdown instance keeps
    per-document state.
    """

    def __init__(self) -> None:
        self._md = markdown.Markdown(extensions=EXTENSIONS, output_format="html")
        self._lock = threading.Lock()

    def render(self, text: str) -> str:
        if not text:
            return ""
        with self._lock:
            self._md.reset()
            html = self._md.convert(text)
        html = _STRIKE_RE.sub(r"<del>\1</del>", html)
        return _TASK_RE.sub(self._task_checkbox, html)

    @staticmethod
    def _task_checkbox(match: re.Match) -> str:
        checked = " checked" if match.group(1).lower() == "x" else ""
        return f'<li class="task-list-item"><input type="checkbox" disabled{checked}> '
