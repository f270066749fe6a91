"""Screen buffer fixtures shared by the diff, emitter and interpreter tests."""

from __future__ import annotations

import random

from celltui.buffer import ScreenBuffer
from celltui.cell import DEFAULT_STYLE, RGB, Attr, Cell, Style, make_cell

# Single clusters.  The regional indicators, the emoji with its skin-tone
# modifier and the Hangul jamo with its syllable fuse into one grapheme
# when written next to each other.
GLYPHS = (
    "a",
    "b",
    "Z",
    "#",
    " ",
    "\u00e9",
    "e\u0301",
    "中",
    "文",
    "😀",
    "\U0001F1FA",
    "\U0001F1F8",
    "\U0001F44D",
    "\U0001F3FD",
    "\u1100",
    "\uAC00",
)

STYLES = (
    DEFAULT_STYLE,
    Style(fg=1, attrs=Attr.BOLD),
    Style(fg=RGB(10, 200, 30), bg=236),
    Style(bg=12, attrs=Attr.UNDERLINE | Attr.ITALIC),
    Style(attrs=Attr.DIM | Attr.REVERSE | Attr.STRIKE),
    Style(fg=9, bg=RGB(0, 0, 0), attrs=Attr.BLINK),
)


def random_buffer(
    rng: random.Random,
    width: int,
    height: int,
    *,
    density: float = 0.6,
    narrow_only: bool = False,
) -> ScreenBuffer:
    """Fill a buffer with random glyphs and styles.

    With *narrow_only* every cell holds a single-codepoint, one-column
    glyph.

    A few extra writes land on arbitrary columns afterwards so that some
    wide glyphs get split and leave orphan blanks behind.
    """
    if narrow_only:
        glyphs = [g for g in GLYPHS if len(g) == 1 and make_cell(g).width == 1]
    else:
        glyphs = list(GLYPHS)
    buf = ScreenBuffer(width, height)
    for y in range(height):
        x = 0
        while x < width:
            if rng.random() >= density:
                x += 1
                continue
            cell = make_cell(rng.choice(glyphs), rng.choice(STYLES))
            if x + cell.width > width:
                x += 1
                continue
            buf.set_cell(x, y, cell)
            x += cell.width

    if width and height and not narrow_only:
        for _ in range(width * height // 8):
            buf.set_cell(
                rng.randrange(width),
                rng.randrange(height),
                Cell(rng.choice("xyz"), rng.choice(STYLES)),
            )
    return buf


def mutate(rng: random.Random, buf: ScreenBuffer, changes: int) -> ScreenBuffer:
    """Return a copy of *buf* with *changes* random cell writes applied."""
    out = buf.clone_as_snapshot()
    for _ in range(changes):
        cell = make_cell(rng.choice(GLYPHS), rng.choice(STYLES))
        x = rng.randrange(max(1, out.width - cell.width + 1))
        out.set_cell(x, rng.randrange(out.height), cell)
    return out
