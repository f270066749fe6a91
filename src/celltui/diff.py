"""Diff engine: turn two screen buffers into an ordered list of operations.

Rows are scanned top to bottom.  Within a row, maximal spans of changed
cells become write-runs; unchanged cells are skipped, never rewritten.  A
run is preceded by a cursor move only when the cursor is not already at
its first column or when its first glyph would fuse with the one just
written, and by a style change only when the pen differs.  Cells
of one style inside a changed span are coalesced into a single run, and a
span never splits a wide glyph from its continuation.

Operations come out row-major, left to right.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence, Union

from celltui.buffer import ScreenBuffer
from celltui.cell import DEFAULT_STYLE, Cell, Style
from celltui.errors import DimensionMismatchError
from celltui.utils import is_single_cluster

__all__ = [
    "MoveCursor",
    "SetStyle",
    "WriteRun",
    "DiffOp",
    "diff_buffers",
    "full_frame_ops",
    "cells_touched",
    "final_state",
]


@dataclass(frozen=True)
class MoveCursor:
    x: int
    y: int


@dataclass(frozen=True)
class SetStyle:
    style: Style


@dataclass(frozen=True)
class WriteRun:
    """Primary cells written left to right starting at ``(x, y)``."""

    x: int
    y: int
    cells: tuple[Cell, ...]

    @property
    def text(self) -> str:
        return "".join(cell.char for cell in self.cells)

    @property
    def width(self) -> int:
        return sum(cell.width for cell in self.cells)


DiffOp = Union[MoveCursor, SetStyle, WriteRun]


# ---------------------------------------------------------------------------
# Span detection
# ---------------------------------------------------------------------------


def _changed_mask(prev: Sequence[Cell], cur: Sequence[Cell]) -> list[bool]:
    """Flag differing columns, widened so wide glyphs stay whole."""
    width = len(cur)
    mask = [p != c for p, c in zip(prev, cur)]
    work = [x for x in range(width) if mask[x]]
    while work:
        x = work.pop()
        for row in (prev, cur):
            cell = row[x]
            partner = None
            if cell.width == 0 and x > 0:
                partner = x - 1
            elif cell.width == 2 and x + 1 < width:
                partner = x + 1
            if partner is not None and not mask[partner]:
                mask[partner] = True
                work.append(partner)
    return mask


def _spans(mask: list[bool]) -> Iterator[tuple[int, int]]:
    """Yield ``(start, end)`` for each maximal run of ``True``."""
    x = 0
    width = len(mask)
    while x < width:
        if not mask[x]:
            x += 1
            continue
        start = x
        while x < width and mask[x]:
            x += 1
        yield start, x


def _fuses(left: str | None, right: str) -> bool:
    """True if *left* followed by *right* would render as one grapheme."""
    return left is not None and is_single_cluster(left + right)


# ---------------------------------------------------------------------------
# Op builder
# ---------------------------------------------------------------------------


class _OpBuilder:
    def __init__(self, pen: Style, cursor: tuple[int, int] | None) -> None:
        self.ops: list[DiffOp] = []
        self.pen = pen
        self.cursor = cursor

    def span(self, y: int, row: Sequence[Cell], start: int, end: int) -> None:
        run: list[Cell] = []
        run_x = start
        run_style: Style | None = None

        for x in range(start, end):
            cell = row[x]
            if cell.width == 0:
                # Continuation: covered by its primary in this span
                continue
            if run and (cell.style != run_style or _fuses(run[-1].char, cell.char)):
                self._run(run_x, y, run, row)
                run = []
            if not run:
                run_x = x
                run_style = cell.style
            run.append(cell)
        if run:
            self._run(run_x, y, run, row)

    def _run(self, x: int, y: int, cells: list[Cell], row: Sequence[Cell]) -> None:
        left = row[x - 1].char if x else None
        if self.cursor != (x, y) or _fuses(left, cells[0].char):
            # An explicit move keeps the glyph apart from its left neighbour
            self.ops.append(MoveCursor(x, y))
        style = cells[0].style
        if style != self.pen:
            self.ops.append(SetStyle(style))
            self.pen = style
        run = WriteRun(x, y, tuple(cells))
        self.ops.append(run)
        self.cursor = (x + run.width, y)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def diff_buffers(
    previous: ScreenBuffer,
    current: ScreenBuffer,
    *,
    pen: Style = DEFAULT_STYLE,
    cursor: tuple[int, int] | None = None,
) -> list[DiffOp]:
    """Return the operations that turn *previous* into *current*.

    *pen* is the style the terminal is known to be using and *cursor* its
    known position (``None`` when unknown).  Buffers of different sizes
    raise :class:`DimensionMismatchError`; emit a full frame instead.
    """
    if previous.size != current.size:
        raise DimensionMismatchError(previous.size, current.size)

    builder = _OpBuilder(pen, cursor)
    for y in range(current.height):
        prev_row = previous.row(y)
        cur_row = current.row(y)
        if prev_row == cur_row:
            continue
        for start, end in _spans(_changed_mask(prev_row, cur_row)):
            builder.span(y, cur_row, start, end)
    return builder.ops


def full_frame_ops(current: ScreenBuffer) -> list[DiffOp]:
    """Return operations that paint every cell of *current*.

    Assumes a freshly cleared screen with the default pen.
    """
    builder = _OpBuilder(DEFAULT_STYLE, None)
    for y in range(current.height):
        if current.width:
            builder.span(y, current.row(y), 0, current.width)
    return builder.ops


def cells_touched(ops: Sequence[DiffOp]) -> int:
    """Number of grid columns written by the write-runs in *ops*."""
    return sum(op.width for op in ops if isinstance(op, WriteRun))


def final_state(
    ops: Sequence[DiffOp],
    pen: Style = DEFAULT_STYLE,
    cursor: tuple[int, int] | None = None,
) -> tuple[Style, tuple[int, int] | None]:
    """Return the pen and cursor the terminal is left with after *ops*."""
    for op in ops:
        if isinstance(op, MoveCursor):
            cursor = (op.x, op.y)
        elif isinstance(op, SetStyle):
            pen = op.style
        else:
            cursor = (op.x + op.width, op.y)
    return pen, cursor
