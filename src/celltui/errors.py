"""Exception types raised by the rendering core."""

from __future__ import annotations

from typing import Hashable


class CellTuiError(Exception):
    """Base class for every error raised by celltui."""


class OutOfBoundsError(CellTuiError, IndexError):
    """A coordinate falls outside the buffer grid."""

    def __init__(self, x: int, y: int, width: int, height: int) -> None:
        super().__init__(
            f"cell ({x}, {y}) is outside a {width}x{height} buffer"
        )
        self.x = x
        self.y = y


class DimensionMismatchError(CellTuiError, ValueError):
    """Two buffers handed to the diff engine have different sizes.

    The caller resolves this by emitting a full frame instead of a diff.
    """

    def __init__(
        self, previous: tuple[int, int], current: tuple[int, int]
    ) -> None:
        super().__init__(
            f"cannot diff a {previous[0]}x{previous[1]} buffer against "
            f"a {current[0]}x{current[1]} buffer"
        )
        self.previous = previous
        self.current = current


class ParseError(CellTuiError):
    """The virtual terminal met a sequence outside the emitted vocabulary."""

    def __init__(self, message: str, offset: int) -> None:
        super().__init__(f"{message} at byte offset {offset}")
        self.offset = offset


class DuplicateKeyError(CellTuiError):
    """Two sibling elements of the same type share a key."""

    def __init__(self, type_name: str, key: Hashable, parent_id: int) -> None:
        super().__init__(
            f"duplicate key {key!r} for {type_name} children of instance "
            f"{parent_id}"
        )
        self.type_name = type_name
        self.key = key
        self.parent_id = parent_id


class IncompleteSequenceError(CellTuiError):
    """An input escape sequence never completed within the timeout."""

    def __init__(self, data: bytes) -> None:
        super().__init__(f"incomplete input sequence dropped: {data!r}")
        self.data = data


class FlushError(CellTuiError):
    """Writing a frame to the output stream failed."""


class TerminalRestoreError(CellTuiError):
    """The terminal's original mode could not be restored on shutdown."""
