"""Clipped drawing surface handed to ``Component.draw``."""

from __future__ import annotations

from celltui.buffer import ScreenBuffer
from celltui.cell import DEFAULT_STYLE, Cell, Style
from celltui.layout import Rect
from celltui.utils import iter_clusters

# top-left, top, top-right, left, right, bottom-left, bottom, bottom-right
BOX_CHARS = ("┌", "─", "┐", "│", "│", "└", "─", "┘")


class Canvas:
    """A view of a :class:`ScreenBuffer` at an instance's bounds.

    Coordinates are relative to the bounds' top-left corner.  Writes that
    land outside the clip rectangle are silently discarded; a wide glyph
    cut by the clip edge is replaced by a space on the visible half.
    """

    def __init__(self, buffer: ScreenBuffer, bounds: Rect, clip: Rect) -> None:
        self._buffer = buffer
        self.bounds = bounds
        self.clip = clip.intersect(Rect(0, 0, buffer.width, buffer.height))

    @property
    def width(self) -> int:
        return self.bounds.width

    @property
    def height(self) -> int:
        return self.bounds.height

    def set_cell(self, x: int, y: int, cell: Cell) -> None:
        ax = self.bounds.x + x
        ay = self.bounds.y + y
        if cell.width == 2:
            left_in = self.clip.contains(ax, ay)
            right_in = self.clip.contains(ax + 1, ay)
            if left_in and right_in:
                self._buffer.set_cell(ax, ay, cell)
            elif left_in:
                self._buffer.set_cell(ax, ay, Cell(" ", cell.style))
            elif right_in:
                self._buffer.set_cell(ax + 1, ay, Cell(" ", cell.style))
            return
        if self.clip.contains(ax, ay):
            self._buffer.set_cell(ax, ay, cell)

    def put_text(self, x: int, y: int, text: str, style: Style = DEFAULT_STYLE) -> int:
        """Draw *text* at ``(x, y)``; returns the columns it spans."""
        col = x
        for cluster, w in iter_clusters(text.replace("\t", "   ")):
            if w == 0:
                continue
            self.set_cell(col, y, Cell(cluster, style, w))
            col += w
        return col - x

    def fill(self, style: Style = DEFAULT_STYLE, char: str = " ") -> None:
        region = self.bounds.intersect(self.clip)
        if region.empty:
            return
        self._buffer.fill(region, Cell(char, style))

    def draw_border(self, style: Style = DEFAULT_STYLE, chars: tuple[str, ...] = BOX_CHARS) -> None:
        w, h = self.width, self.height
        if w < 2 or h < 2:
            return
        tl, top, tr, left, right, bl, bottom, br = chars
        self.set_cell(0, 0, Cell(tl, style))
        self.set_cell(w - 1, 0, Cell(tr, style))
        self.set_cell(0, h - 1, Cell(bl, style))
        self.set_cell(w - 1, h - 1, Cell(br, style))
        for x in range(1, w - 1):
            self.set_cell(x, 0, Cell(top, style))
            self.set_cell(x, h - 1, Cell(bottom, style))
        for y in range(1, h - 1):
            self.set_cell(0, y, Cell(left, style))
            self.set_cell(w - 1, y, Cell(right, style))
