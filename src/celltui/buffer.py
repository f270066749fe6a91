"""Screen buffer: a fixed-size grid of styled cells.

The frame pipeline owns exactly two of these (previous and current) and
compares them cell-for-cell to produce a diff.
"""

from __future__ import annotations

from typing import Iterator

from celltui.cell import BLANK, DEFAULT_STYLE, Cell, Style
from celltui.errors import OutOfBoundsError
from celltui.layout import Rect
from celltui.utils import iter_clusters


class ScreenBuffer:
    """A width x height grid of :class:`Cell` values plus a cursor.

    ``generation`` increases every time the grid is cleared or resized, so
    a snapshot can be matched to the frame it was taken from.
    """

    def __init__(self, width: int, height: int) -> None:
        if width < 0 or height < 0:
            raise ValueError(f"invalid buffer size {width}x{height}")
        self._width = width
        self._height = height
        self._rows: list[list[Cell]] = self._blank_rows(width, height)
        self.cursor: tuple[int, int] = (0, 0)
        self.generation: int = 0

    @staticmethod
    def _blank_rows(width: int, height: int) -> list[list[Cell]]:
        return [[BLANK] * width for _ in range(height)]

    # -- properties ---------------------------------------------------------

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def size(self) -> tuple[int, int]:
        return (self._width, self._height)

    # -- cell access --------------------------------------------------------

    def _check(self, x: int, y: int) -> None:
        if not (0 <= x < self._width and 0 <= y < self._height):
            raise OutOfBoundsError(x, y, self._width, self._height)

    def get_cell(self, x: int, y: int) -> Cell:
        self._check(x, y)
        return self._rows[y][x]

    def set_cell(self, x: int, y: int, cell: Cell) -> None:
        """Write *cell* at ``(x, y)``.

        A wide cell also fills ``x + 1`` with its continuation and fails
        with :class:`OutOfBoundsError` when that column does not exist.
        Any wide glyph partially overwritten here has its other half
        replaced by a blank carrying the same style.
        """
        self._check(x, y)
        cell.validate()
        if cell.width == 2:
            self._check(x + 1, y)

        row = self._rows[y]
        self._orphan(row, x)
        if cell.width == 2:
            self._orphan(row, x + 1)
            row[x] = cell
            row[x + 1] = cell.continuation()
        else:
            row[x] = cell

    def _orphan(self, row: list[Cell], x: int) -> None:
        """Blank the partner column of a wide glyph about to lose column *x*."""
        old = row[x]
        if old.width == 0 and x > 0:
            partner = row[x - 1]
            row[x - 1] = Cell(" ", partner.style)
        elif old.width == 2 and x + 1 < self._width:
            partner = row[x + 1]
            row[x + 1] = Cell(" ", partner.style)

    def row(self, y: int) -> tuple[Cell, ...]:
        if not 0 <= y < self._height:
            raise OutOfBoundsError(0, y, self._width, self._height)
        return tuple(self._rows[y])

    def __iter__(self) -> Iterator[tuple[Cell, ...]]:
        for row in self._rows:
            yield tuple(row)

    # -- bulk operations ----------------------------------------------------

    def clear(self) -> None:
        """Reset every cell to a blank and bump the generation."""
        self._rows = self._blank_rows(self._width, self._height)
        self.generation += 1

    def resize(self, width: int, height: int) -> None:
        """Change dimensions; content is cleared and the cursor reset."""
        if width < 0 or height < 0:
            raise ValueError(f"invalid buffer size {width}x{height}")
        self._width = width
        self._height = height
        self._rows = self._blank_rows(width, height)
        self.cursor = (0, 0)
        self.generation += 1

    def fill(self, rect: Rect, cell: Cell = BLANK) -> None:
        """Fill the part of *rect* that lies inside the grid with *cell*."""
        clipped = rect.intersect(Rect(0, 0, self._width, self._height))
        if clipped.empty:
            return
        step = cell.width
        for y in range(clipped.y, clipped.bottom):
            x = clipped.x
            while x + step <= clipped.right:
                self.set_cell(x, y, cell)
                x += step
            if x < clipped.right:
                # Odd column left over by a wide fill glyph
                self.set_cell(x, y, Cell(" ", cell.style))

    def write_text(
        self,
        x: int,
        y: int,
        text: str,
        style: Style = DEFAULT_STYLE,
        max_width: int | None = None,
    ) -> int:
        """Write *text* starting at ``(x, y)`` and return the columns used.

        Output is clipped at *max_width* columns (default: the right edge).
        A wide glyph that would be cut by the limit is replaced by a
        space.  Zero-width clusters are dropped.  Tabs expand to 3 spaces.
        """
        if not 0 <= y < self._height:
            return 0
        limit = self._width if max_width is None else min(self._width, x + max_width)
        col = x
        for cluster, w in iter_clusters(text.replace("\t", "   ")):
            if w == 0:
                continue
            if col + w > limit:
                if w == 2 and col < limit and col >= 0:
                    self.set_cell(col, y, Cell(" ", style))
                    col += 1
                break
            if col >= 0:
                self.set_cell(col, y, Cell(cluster, style, w))
            col += w
        return max(0, col - x)

    def clone_as_snapshot(self) -> ScreenBuffer:
        """Return an independent copy sharing no mutable state."""
        copy = ScreenBuffer.__new__(ScreenBuffer)
        copy._width = self._width
        copy._height = self._height
        copy._rows = [list(row) for row in self._rows]
        copy.cursor = self.cursor
        copy.generation = self.generation
        return copy

    # -- inspection ---------------------------------------------------------

    def lines(self) -> list[str]:
        """Return each row as plain text, continuation columns omitted."""
        return [
            "".join(c.char for c in row if c.width != 0) for row in self._rows
        ]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ScreenBuffer):
            return NotImplemented
        return self.size == other.size and self._rows == other._rows

    def __repr__(self) -> str:
        return (
            f"ScreenBuffer({self._width}x{self._height}, "
            f"generation={self.generation})"
        )
