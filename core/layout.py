"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           core/layout.py
Version:        1.0.0
Description:    Window geometry and viewport boundary clamping. Each of the
                four viewport edges can be enforced independently with an
                inset offset. Repositioning is preferred over shrinking, and
                the minimum window size always wins over a boundary.
------------------------------------------------------------------------------
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from core.models.document import BoundaryConfig, WindowState

MIN_WINDOW_WIDTH: int = 300
MIN_WINDOW_HEIGHT: int = 200


@dataclass(frozen=True)
class Rect:
    left: int
    top: int
    width: int
    height: int

    @classmethod
    def from_window_state(cls, state: WindowState) -> "Rect":
        return cls(left=state.left, top=state.top, width=state.width, height=state.height)

    def moved_to(self, left: int, top: int) -> "Rect":
        return replace(self, left=left, top=top)


@dataclass(frozen=True)
class Viewport:
    width: int
    height: int


def clamp_axis(
    pos: int,
    size: int,
    low: Optional[int],
    high: Optional[int],
    min_size: int,
) -> Tuple[int, int]:
    """
    Clamps one axis of a window.

    Args:
        pos: Leading-edge coordinate (left or top).
        size: Extent along the axis (width or height).
        low: Smallest allowed leading coordinate, or None if unconstrained.
        high: Largest allowed trailing coordinate, or None if unconstrained.
        min_size: Floor for `size`.

    Returns:
        The (pos, size) pair after clamping.
    """
    size = max(size, min_size)

    if low is not None and high is not None:
        available = high - low
        if size > available:
            # Repositioning alone cannot satisfy both edges
            size = max(min_size, available)
        if size > available:
            # The minimum size does not fit: pin to the leading edge
            return low, size

    if high is not None and pos + size > high:
        pos = high - size
    if low is not None and pos < low:
        pos = low
    return pos, size


def clamp_rect(
    rect: Rect,
    viewport: Viewport,
    boundaries: BoundaryConfig,
    min_width: int = MIN_WINDOW_WIDTH,
    min_height: int = MIN_WINDOW_HEIGHT,
    cap_to_viewport: bool = False,
) -> Rect:
    """
    Applies the configured edge constraints to a window rectangle.
    With `cap_to_viewport` the size never exceeds the viewport even when the
    corresponding edges are not enforced (used for resizes).
    """
    width, height = rect.width, rect.height
    if cap_to_viewport:
        width = min(width, viewport.width)
        height = min(height, viewport.height)

    left_low = boundaries.left.offset if boundaries.left.enabled else None
    right_high = viewport.width - boundaries.right.offset if boundaries.right.enabled else None
    top_low = boundaries.top.offset if boundaries.top.enabled else None
    bottom_high = viewport.height - boundaries.bottom.offset if boundaries.bottom.enabled else None

    left, width = clamp_axis(rect.left, width, left_low, right_high, min_width)
    top, height = clamp_axis(rect.top, height, top_low, bottom_high, min_height)
    return Rect(left=left, top=top, width=width, height=height)
