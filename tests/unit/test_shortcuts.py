import pytest

from core.shortcuts import format_chord, normalize_chord


@pytest.mark.parametrize("raw, expected", [
    ("Ctrl+B", "Ctrl+B"),
    ("shift + ctrl + b", "Ctrl+Shift+B"),
    ("Cmd+Option+k", "Alt+Meta+K"),
    ("control+F5", "Ctrl+F5"),
    ("Alt++", "Alt++"),
    ("+", "+"),
    ("q", "Q"),
])
def test_normalize_chord(raw, expected):
    assert normalize_chord(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "Ctrl+", "Ctrl+Shift", "Hyper+K"])
def test_invalid_chords(raw):
    assert normalize_chord(raw) is None


def test_format_chord_orders_modifiers():
    assert format_chord(["Meta", "Shift", "Ctrl"], "x") == "Ctrl+Shift+Meta+X"
    assert format_chord([], "Space") == "SPACE"
    assert format_chord(["Ctrl"], "Shift") is None
    assert format_chord(["Ctrl"], "") is None


def test_equivalent_chords_compare_equal():
    assert normalize_chord("ctrl+alt+del") == normalize_chord("Alt+Control+DEL")
