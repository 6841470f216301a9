"""
Translation between PDF user space and on-screen pixels.

PDF user space has its origin at the bottom-left corner of the page with y
growing upward. A rendered page is drawn from the top-left corner with y
growing downward and is scaled to fit its container width, so one uniform
factor applies to both axes.

Every function here is pure: it takes the page size, the scale (or the
container width it comes from) and a rectangle, and returns a new value.
"""
import math
from typing import NamedTuple


class PageSize(NamedTuple):
    width: float
    height: float


class Rect(NamedTuple):
    """x, y is the lower-left corner in PDF units, or the top-left corner on screen."""

    x: float
    y: float
    width: float
    height: float


def scale_for(page: PageSize, width_px: float) -> float:
    if page.width <= 0:
        raise ValueError(f"Page width must be positive, got {page.width}")
    return width_px / page.width


def to_screen(rect: Rect, page: PageSize, scale: float) -> Rect:
    return Rect(
        x=rect.x * scale,
        y=(page.height - rect.y - rect.height) * scale,
        width=rect.width * scale,
        height=rect.height * scale,
    )


def to_document(screen: Rect, page: PageSize, scale: float) -> Rect:
    if scale <= 0:
        raise ValueError(f"Scale must be positive, got {scale}")
    width = screen.width / scale
    height = screen.height / scale
    return Rect(
        x=screen.x / scale,
        y=page.height - screen.y / scale - height,
        width=width,
        height=height,
    )


def _clamp(value, low, high):
    return max(low, min(value, high))


def clamp_move(rect: Rect, page: PageSize) -> Rect:
    """Keep a moved rectangle on the page without changing its size where possible."""
    width = _clamp(rect.width, 0, page.width)
    height = _clamp(rect.height, 0, page.height)
    return Rect(
        x=_clamp(rect.x, 0, page.width - width),
        y=_clamp(rect.y, 0, page.height - height),
        width=width,
        height=height,
    )


def clamp_resize(rect: Rect, page: PageSize) -> Rect:
    """Fit a resized rectangle on the page, size first, then position.

    Width and height are limited to the room left between the (clamped)
    corner and the far page edge, then the corner is pulled onto the page.
    """
    width = _clamp(rect.width, 0, page.width - _clamp(rect.x, 0, page.width))
    height = _clamp(rect.height, 0, page.height - _clamp(rect.y, 0, page.height))
    return Rect(
        x=_clamp(rect.x, 0, page.width - width),
        y=_clamp(rect.y, 0, page.height - height),
        width=width,
        height=height,
    )


def within_page(rect: Rect, page: PageSize) -> bool:
    return (
        rect.x >= 0
        and rect.y >= 0
        and rect.x + rect.width <= page.width
        and rect.y + rect.height <= page.height
    )


def round_rect(rect: Rect) -> Rect:
    # Only applied when persisting; in-memory values keep full precision.
    return Rect(*(int(math.floor(v + 0.5)) for v in rect))
