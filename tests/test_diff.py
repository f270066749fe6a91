"""Tests for celltui.diff."""

from __future__ import annotations

import random

import pytest

from celltui.buffer import ScreenBuffer
from celltui.cell import DEFAULT_STYLE, Attr, Cell, Style, make_cell
from celltui.diff import (
    MoveCursor,
    SetStyle,
    WriteRun,
    cells_touched,
    diff_buffers,
    final_state,
    full_frame_ops,
)
from celltui.errors import DimensionMismatchError
from celltui.utils import is_single_cluster

from .screens import mutate, random_buffer

BOLD_RED = Style(fg=1, attrs=Attr.BOLD)
GREEN = Style(fg=2)


def differing_columns(prev: ScreenBuffer, cur: ScreenBuffer) -> int:
    return sum(
        1
        for prev_row, cur_row in zip(prev, cur)
        for p, c in zip(prev_row, cur_row)
        if p != c
    )


# ---------------------------------------------------------------------------
# Basic behaviour
# ---------------------------------------------------------------------------


class TestDiffBasics:
    def test_identical_buffers_produce_nothing(self) -> None:
        buf = random_buffer(random.Random(1), 12, 5)
        assert diff_buffers(buf, buf.clone_as_snapshot()) == []

    def test_single_cell_change(self) -> None:
        prev = ScreenBuffer(10, 5)
        cur = prev.clone_as_snapshot()
        cur.set_cell(2, 3, Cell("X", BOLD_RED))
        ops = diff_buffers(prev, cur)
        assert ops == [
            MoveCursor(2, 3),
            SetStyle(BOLD_RED),
            WriteRun(2, 3, (Cell("X", BOLD_RED),)),
        ]

    def test_known_cursor_skips_move(self) -> None:
        prev = ScreenBuffer(10, 5)
        cur = prev.clone_as_snapshot()
        cur.set_cell(2, 3, Cell("X"))
        ops = diff_buffers(prev, cur, cursor=(2, 3))
        assert ops == [WriteRun(2, 3, (Cell("X"),))]

    def test_matching_pen_skips_style(self) -> None:
        prev = ScreenBuffer(10, 5)
        cur = prev.clone_as_snapshot()
        cur.set_cell(0, 0, Cell("X", GREEN))
        ops = diff_buffers(prev, cur, pen=GREEN)
        assert not any(isinstance(op, SetStyle) for op in ops)

    def test_separate_spans_on_one_row(self) -> None:
        prev = ScreenBuffer(10, 1)
        cur = prev.clone_as_snapshot()
        cur.write_text(1, 0, "ab")
        cur.write_text(6, 0, "cd")
        ops = diff_buffers(prev, cur)
        assert ops == [
            MoveCursor(1, 0),
            WriteRun(1, 0, (Cell("a"), Cell("b"))),
            MoveCursor(6, 0),
            WriteRun(6, 0, (Cell("c"), Cell("d"))),
        ]

    def test_style_change_splits_run_without_extra_move(self) -> None:
        prev = ScreenBuffer(6, 1)
        cur = prev.clone_as_snapshot()
        cur.write_text(0, 0, "ab", GREEN)
        cur.write_text(2, 0, "cd", BOLD_RED)
        ops = diff_buffers(prev, cur)
        assert ops == [
            MoveCursor(0, 0),
            SetStyle(GREEN),
            WriteRun(0, 0, (Cell("a", GREEN), Cell("b", GREEN))),
            SetStyle(BOLD_RED),
            WriteRun(2, 0, (Cell("c", BOLD_RED), Cell("d", BOLD_RED))),
        ]

    def test_rows_scanned_top_to_bottom(self) -> None:
        prev = ScreenBuffer(4, 3)
        cur = prev.clone_as_snapshot()
        cur.set_cell(3, 2, Cell("z"))
        cur.set_cell(0, 0, Cell("a"))
        runs = [op for op in diff_buffers(prev, cur) if isinstance(op, WriteRun)]
        assert [(r.x, r.y) for r in runs] == [(0, 0), (3, 2)]

    def test_dimension_mismatch(self) -> None:
        with pytest.raises(DimensionMismatchError):
            diff_buffers(ScreenBuffer(3, 3), ScreenBuffer(4, 3))


# ---------------------------------------------------------------------------
# Wide glyphs
# ---------------------------------------------------------------------------


class TestWideGlyphs:
    def test_wide_glyph_written_as_one_cell(self) -> None:
        prev = ScreenBuffer(6, 1)
        cur = prev.clone_as_snapshot()
        cur.set_cell(2, 0, Cell("中", GREEN, 2))
        ops = diff_buffers(prev, cur)
        runs = [op for op in ops if isinstance(op, WriteRun)]
        assert len(runs) == 1
        assert runs[0].x == 2
        assert runs[0].width == 2
        assert runs[0].text == "中"

    def test_replacing_wide_with_narrow_rewrites_both_columns(self) -> None:
        prev = ScreenBuffer(4, 1)
        prev.set_cell(0, 0, Cell("中", GREEN, 2))
        cur = ScreenBuffer(4, 1)
        cur.set_cell(0, 0, Cell("a"))
        ops = diff_buffers(prev, cur)
        assert cells_touched(ops) == 2
        runs = [op for op in ops if isinstance(op, WriteRun)]
        assert "".join(r.text for r in runs) == "a "

    def test_run_never_starts_on_a_continuation(self) -> None:
        rng = random.Random(7)
        for _ in range(50):
            prev = random_buffer(rng, 9, 3)
            cur = mutate(rng, prev, 6)
            for op in diff_buffers(prev, cur):
                if isinstance(op, WriteRun):
                    assert not cur.get_cell(op.x, op.y).is_continuation
                    assert all(cell.width in (1, 2) for cell in op.cells)


# ---------------------------------------------------------------------------
# Neighbours that fuse into one grapheme
# ---------------------------------------------------------------------------


class TestFusingNeighbours:
    @pytest.mark.parametrize(
        "left,right",
        [
            ("\U0001F1FA", "\U0001F1F8"),
            ("\U0001F44D", "\U0001F3FD"),
            ("\u1100", "\uAC00"),
        ],
    )
    def test_fusing_pair_split_by_a_move(self, left: str, right: str) -> None:
        prev = ScreenBuffer(6, 1)
        cur = prev.clone_as_snapshot()
        first = make_cell(left)
        cur.set_cell(0, 0, first)
        cur.set_cell(first.width, 0, make_cell(right))
        ops = diff_buffers(prev, cur, cursor=(0, 0))
        assert ops == [
            WriteRun(0, 0, (first,)),
            MoveCursor(first.width, 0),
            WriteRun(first.width, 0, (make_cell(right),)),
        ]

    def test_unchanged_left_neighbour_forces_move(self) -> None:
        prev = ScreenBuffer(4, 1)
        prev.set_cell(0, 0, Cell("\U0001F1FA"))
        cur = prev.clone_as_snapshot()
        cur.set_cell(1, 0, Cell("\U0001F1F8"))
        ops = diff_buffers(prev, cur, cursor=(1, 0))
        assert ops == [MoveCursor(1, 0), WriteRun(1, 0, (Cell("\U0001F1F8"),))]

    def test_plain_neighbours_stay_in_one_run(self) -> None:
        prev = ScreenBuffer(4, 1)
        cur = prev.clone_as_snapshot()
        cur.write_text(0, 0, "\U0001F1FAa")
        runs = [op for op in diff_buffers(prev, cur) if isinstance(op, WriteRun)]
        assert len(runs) == 1


# ---------------------------------------------------------------------------
# Minimality and helpers
# ---------------------------------------------------------------------------


class TestMinimality:
    def test_only_changed_cells_are_written(self) -> None:
        rng = random.Random(3)
        for _ in range(40):
            prev = random_buffer(rng, 15, 4, narrow_only=True)
            cur = random_buffer(rng, 15, 4, narrow_only=True)
            ops = diff_buffers(prev, cur)
            assert cells_touched(ops) == differing_columns(prev, cur)

    def test_no_redundant_moves_or_styles(self) -> None:
        rng = random.Random(11)
        prev = random_buffer(rng, 20, 6)
        cur = mutate(rng, prev, 15)
        pen, cursor = DEFAULT_STYLE, None
        for op in diff_buffers(prev, cur):
            if isinstance(op, MoveCursor):
                if (op.x, op.y) == cursor:
                    # Only to keep a glyph from fusing with its neighbour
                    left = cur.get_cell(op.x - 1, op.y).char
                    assert is_single_cluster(left + cur.get_cell(op.x, op.y).char)
                cursor = (op.x, op.y)
            elif isinstance(op, SetStyle):
                assert op.style != pen
                pen = op.style
            else:
                assert cursor == (op.x, op.y)
                assert all(cell.style == pen for cell in op.cells)
                cursor = (op.x + op.width, op.y)


class TestFullFrame:
    def test_full_frame_covers_every_column(self) -> None:
        buf = random_buffer(random.Random(5), 13, 4)
        assert cells_touched(full_frame_ops(buf)) == 13 * 4

    def test_empty_buffer(self) -> None:
        assert full_frame_ops(ScreenBuffer(0, 0)) == []


class TestFinalState:
    def test_tracks_pen_and_cursor(self) -> None:
        ops = [
            MoveCursor(1, 2),
            SetStyle(GREEN),
            WriteRun(1, 2, (Cell("a", GREEN), Cell("中", GREEN, 2))),
        ]
        assert final_state(ops) == (GREEN, (4, 2))

    def test_no_ops_keeps_state(self) -> None:
        assert final_state([], GREEN, (3, 3)) == (GREEN, (3, 3))
