"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           core/shortcuts.py
Version:        1.0.0
Description:    Keyboard chord normalization. A chord is a modifier
                combination plus one key, written 'Ctrl+Alt+K'. Modifiers are
                always emitted in a fixed order so chords compare as strings.
------------------------------------------------------------------------------
"""

from typing import Iterable, Optional

MODIFIER_ORDER = ("Ctrl", "Alt", "Shift", "Meta")

MODIFIER_ALIASES = {
    "ctrl": "Ctrl",
    "control": "Ctrl",
    "ctl": "Ctrl",
    "alt": "Alt",
    "option": "Alt",
    "opt": "Alt",
    "shift": "Shift",
    "meta": "Meta",
    "cmd": "Meta",
    "command": "Meta",
    "super": "Meta",
    "win": "Meta",
}


def format_chord(modifiers: Iterable[str], key: str) -> Optional[str]:
    """
    Builds a canonical chord from modifier names and a key name.
    Returns None when `key` is itself a modifier or empty.
    """
    key = (key or "").strip()
    if not key or key.lower() in MODIFIER_ALIASES:
        return None

    mods = set()
    for mod in modifiers:
        canonical = MODIFIER_ALIASES.get(mod.strip().lower())
        if canonical is None:
            return None
        mods.add(canonical)

    ordered = [m for m in MODIFIER_ORDER if m in mods]
    return "+".join(ordered + [key.upper()])


def normalize_chord(chord: Optional[str]) -> Optional[str]:
    """
    Parses a user or persisted chord string ('ctrl + shift + b', 'Alt++')
    into its canonical form. Returns None for empty or modifier-only chords.
    """
    if chord is None:
        return None
    text = chord.replace(" ", "")
    if not text:
        return None

    # A trailing '+' after a separator is the plus key itself
    if text.endswith("++"):
        parts = text[:-2].split("+") + ["+"]
    elif text == "+":
        parts = ["+"]
    else:
        parts = text.split("+")

    parts = [p for p in parts if p]
    if not parts:
        return None
    return format_chord(parts[:-1], parts[-1])
