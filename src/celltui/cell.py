"""Cell and style value types.

A ``Cell`` is one grid position: a grapheme cluster, its ``Style`` and its
column ``width``.  Wide glyphs occupy two cells -- the primary (``width
== 2``) and a continuation (``width == 0``) that repeats the primary's
grapheme and style, so replacing a wide glyph changes both columns.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import NamedTuple, Union

from celltui.utils import cluster_width, is_single_cluster


class RGB(NamedTuple):
    """A 24-bit color."""

    r: int
    g: int
    b: int


# None -> terminal default, int -> palette index 0-255, RGB -> 24-bit
Color = Union[None, int, RGB]


class Attr(enum.IntFlag):
    """SGR text attributes."""

    NONE = 0
    BOLD = enum.auto()
    DIM = enum.auto()
    ITALIC = enum.auto()
    UNDERLINE = enum.auto()
    BLINK = enum.auto()
    REVERSE = enum.auto()
    STRIKE = enum.auto()


def _check_color(color: Color) -> None:
    if color is None:
        return
    if isinstance(color, RGB):
        if not all(0 <= c <= 255 for c in color):
            raise ValueError(f"RGB components must be 0-255, got {color}")
        return
    if isinstance(color, int) and not isinstance(color, bool):
        if not 0 <= color <= 255:
            raise ValueError(f"palette index must be 0-255, got {color}")
        return
    raise TypeError(f"unsupported color value {color!r}")


@dataclass(frozen=True)
class Style:
    """Foreground, background and attribute set of a cell."""

    fg: Color = None
    bg: Color = None
    attrs: Attr = Attr.NONE

    def __post_init__(self) -> None:
        if isinstance(self.fg, tuple) and not isinstance(self.fg, RGB):
            object.__setattr__(self, "fg", RGB(*self.fg))
        if isinstance(self.bg, tuple) and not isinstance(self.bg, RGB):
            object.__setattr__(self, "bg", RGB(*self.bg))
        _check_color(self.fg)
        _check_color(self.bg)
        if not isinstance(self.attrs, Attr):
            object.__setattr__(self, "attrs", Attr(self.attrs))

    def merge(self, other: Style) -> Style:
        """Return *other* layered on top of this style.

        Colors set in *other* win; attributes are unioned.
        """
        return Style(
            fg=other.fg if other.fg is not None else self.fg,
            bg=other.bg if other.bg is not None else self.bg,
            attrs=self.attrs | other.attrs,
        )

    @property
    def is_default(self) -> bool:
        return self == DEFAULT_STYLE


DEFAULT_STYLE = Style()


@dataclass(frozen=True)
class Cell:
    """One character position's content, color and style."""

    char: str = " "
    style: Style = field(default=DEFAULT_STYLE)
    width: int = 1

    @property
    def is_wide(self) -> bool:
        return self.width == 2

    @property
    def is_continuation(self) -> bool:
        return self.width == 0

    def validate(self) -> None:
        """Raise ``ValueError`` unless this cell can be written to a buffer."""
        if self.width not in (1, 2):
            raise ValueError(
                "only primary cells (width 1 or 2) can be written; "
                "continuations are derived from their wide glyph"
            )
        if not is_single_cluster(self.char):
            raise ValueError(
                f"cell text must be exactly one grapheme cluster: {self.char!r}"
            )
        measured = cluster_width(self.char)
        if measured != self.width:
            raise ValueError(
                f"{self.char!r} is {measured} columns wide, cell declares "
                f"{self.width}"
            )

    def continuation(self) -> Cell:
        """Return the trailing half of this wide glyph."""
        return Cell(self.char, self.style, 0)


def make_cell(char: str, style: Style = DEFAULT_STYLE) -> Cell:
    """Build a cell, measuring *char* to pick its width."""
    return Cell(char, style, cluster_width(char))


BLANK = Cell()
