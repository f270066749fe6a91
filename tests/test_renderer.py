"""Tests for celltui.renderer.FramePipeline, checked against a virtual screen."""

from __future__ import annotations

import asyncio

import pytest

from celltui.cell import Attr, Style
from celltui.component import Component
from celltui.diff import SetStyle, cells_touched
from celltui.element import box, element, text
from celltui.errors import FlushError
from celltui.reconciler import Reconciler
from celltui.renderer import FramePipeline, FrameState
from celltui.scheduler import FrameScheduler

from .virtual_terminal import VirtualTerminal


class Counter(Component):
    def init(self) -> None:
        self.state["count"] = 0

    def build(self):
        style = Style(attrs=Attr.BOLD) if self.state.get("bold") else Style()
        return text(f"count {self.state['count']}", key="label", style=style)


class Builds(Component):
    """Counts how often it is built."""

    builds = 0

    def build(self):
        type(self).builds += 1
        return self.children


def make_pipeline(rows: int = 3, columns: int = 10):
    terminal = VirtualTerminal(rows=rows, columns=columns)
    scheduler = FrameScheduler()
    reconciler = Reconciler(scheduler=scheduler)
    pipeline = FramePipeline(terminal, reconciler, scheduler)
    return pipeline, terminal


def assert_in_sync(pipeline: FramePipeline, terminal: VirtualTerminal) -> None:
    assert terminal.screen.buffer == pipeline.screen


# ---------------------------------------------------------------------------
# Frames
# ---------------------------------------------------------------------------


class TestFirstFrame:
    def test_mount_schedules_full_frame(self) -> None:
        pipeline, terminal = make_pipeline()
        pipeline.mount(element(Counter))
        assert pipeline.scheduler.pending
        pipeline.render_pending()

        assert pipeline.full_frame_count == 1
        assert terminal.output.startswith("\x1b[0m\x1b[2J")
        assert terminal.lines()[0] == "count 0   "
        assert_in_sync(pipeline, terminal)

    def test_single_write_per_frame(self) -> None:
        pipeline, terminal = make_pipeline()
        pipeline.mount(box(text("a"), text("b")))
        pipeline.render_pending()
        assert terminal.write_count == 1

    def test_idle_after_frame(self) -> None:
        pipeline, _ = make_pipeline()
        pipeline.mount(element(Counter))
        pipeline.render_pending()
        assert pipeline.state is FrameState.IDLE
        assert not pipeline.scheduler.pending


class TestIncrementalFrames:
    def test_only_changed_cells_written(self) -> None:
        pipeline, terminal = make_pipeline()
        root = pipeline.mount(element(Counter))
        pipeline.render_pending()
        terminal.clear_buffer()

        root.component.set_state(count=1)
        pipeline.render_pending()

        assert pipeline.full_frame_count == 1
        assert cells_touched(pipeline.last_ops) == 1
        assert terminal.output == "\x1b[1;7H1"
        assert terminal.lines()[0] == "count 1   "
        assert_in_sync(pipeline, terminal)

    def test_style_change_carries_pen(self) -> None:
        pipeline, terminal = make_pipeline()
        root = pipeline.mount(element(Counter))
        pipeline.render_pending()

        root.component.set_state(bold=True)
        pipeline.render_pending()
        assert any(isinstance(op, SetStyle) for op in pipeline.last_ops)
        assert terminal.screen.pen == Style(attrs=Attr.BOLD)

        root.component.set_state(count=2)
        pipeline.render_pending()
        assert not any(isinstance(op, SetStyle) for op in pipeline.last_ops)
        assert_in_sync(pipeline, terminal)

    def test_nothing_dirty_writes_nothing(self) -> None:
        pipeline, terminal = make_pipeline()
        pipeline.mount(element(Counter))
        pipeline.render_pending()
        before = terminal.write_count
        assert pipeline.render_frame() == ""
        assert terminal.write_count == before

    def test_shrinking_text_clears_leftovers(self) -> None:
        pipeline, terminal = make_pipeline()
        root = pipeline.mount(element(Counter))
        pipeline.render_pending()
        root.component.set_state(count=12345)
        pipeline.render_pending()
        root.component.set_state(count=1)
        pipeline.render_pending()
        assert terminal.lines()[0] == "count 1   "
        assert_in_sync(pipeline, terminal)


class TestResize:
    def test_resize_forces_full_repaint(self) -> None:
        pipeline, terminal = make_pipeline()
        pipeline.mount(element(Counter))
        pipeline.render_pending()

        terminal.simulate_resize(rows=4, columns=12)
        pipeline.resize(12, 4)
        pipeline.render_pending()

        assert pipeline.size == (12, 4)
        assert pipeline.full_frame_count == 2
        assert cells_touched(pipeline.last_ops) == 12 * 4
        assert terminal.lines()[0] == "count 0     "
        assert_in_sync(pipeline, terminal)

    def test_resize_before_mount(self) -> None:
        pipeline, _ = make_pipeline()
        pipeline.resize(5, 2)
        assert pipeline.scheduler.pending
        pipeline.render_pending()
        assert pipeline.size == (5, 2)


class TestFlushFailure:
    def test_raises_and_stops_terminal(self) -> None:
        pipeline, terminal = make_pipeline()
        root = pipeline.mount(element(Counter))
        pipeline.render_pending()

        terminal.fail_writes = True
        root.component.set_state(count=3)
        with pytest.raises(FlushError):
            pipeline.render_pending()
        assert terminal.stop_calls == 1
        assert pipeline.state is FrameState.IDLE

    def test_next_frame_is_full(self) -> None:
        pipeline, terminal = make_pipeline()
        root = pipeline.mount(element(Counter))
        pipeline.render_pending()
        terminal.fail_writes = True
        root.component.set_state(count=3)
        with pytest.raises(FlushError):
            pipeline.render_pending()

        terminal.fail_writes = False
        root.component.set_state(count=4)
        pipeline.render_pending()
        assert pipeline.full_frame_count == 2
        assert terminal.lines()[0] == "count 4   "


# ---------------------------------------------------------------------------
# Build / draw details
# ---------------------------------------------------------------------------


class TestDirtyRoots:
    def test_descendant_of_dirty_ancestor_skipped(self) -> None:
        pipeline, _ = make_pipeline()
        root = pipeline.mount(box(element(Counter, key="c")))
        pipeline.render_pending()
        child = pipeline.tree.find("c").id
        assert pipeline._dirty_roots({child, root.id}) == [root.id]

    def test_disposed_ids_ignored(self) -> None:
        pipeline, _ = make_pipeline()
        root = pipeline.mount(box())
        assert pipeline._dirty_roots({root.id, 999}) == [root.id]

    def test_only_dirty_subtree_rebuilt(self) -> None:
        Builds.builds = 0
        pipeline, _ = make_pipeline()
        pipeline.mount(
            box(element(Builds, key="a"), element(Builds, element(Counter, key="c"), key="b"))
        )
        pipeline.render_pending()
        assert Builds.builds == 2

        pipeline.tree.find("c").component.set_state(count=9)
        pipeline.render_pending()
        assert Builds.builds == 2


class TestDrawing:
    def test_children_clipped_to_parent(self) -> None:
        pipeline, terminal = make_pipeline(rows=2, columns=8)
        pipeline.mount(box(box(text("abcdef"), width=3)))
        pipeline.render_pending()
        assert terminal.lines() == ["abc     ", "        "]

    def test_later_siblings_draw_on_top(self) -> None:
        pipeline, terminal = make_pipeline(rows=1, columns=6)
        pipeline.mount(
            box(text("aaaaaa"), text("XY", position="absolute", x=2))
        )
        pipeline.render_pending()
        assert terminal.lines() == ["aaXYaa"]

    def test_border_and_title(self) -> None:
        pipeline, terminal = make_pipeline(rows=3, columns=8)
        pipeline.mount(box(text("hi"), border=True, title="t"))
        pipeline.render_pending()
        assert terminal.lines() == ["┌─ t ──┐", "│hi    │", "└──────┘"]

    def test_state_change_during_draw_schedules_next_frame(self) -> None:
        class Restless(Component):
            def draw(self, canvas) -> None:
                if not self.state.get("drawn"):
                    self.set_state(drawn=True)

        pipeline, _ = make_pipeline()
        pipeline.mount(element(Restless))
        pipeline.render_pending()
        assert pipeline.frame_count == 1
        assert pipeline.scheduler.pending


class TestShutdown:
    def test_flushes_and_disposes(self) -> None:
        pipeline, terminal = make_pipeline()
        pipeline.mount(element(Counter))
        pipeline.shutdown()
        assert terminal.lines()[0] == "count 0   "
        assert len(pipeline.tree) == 0
        assert not pipeline.scheduler.pending


class TestEventLoop:
    @pytest.mark.asyncio
    async def test_state_change_renders_automatically(self) -> None:
        pipeline, terminal = make_pipeline()
        root = pipeline.mount(element(Counter))
        await asyncio.sleep(0)
        assert pipeline.frame_count == 1

        root.component.set_state(count=7)
        root.component.set_state(count=8)
        await asyncio.sleep(0)
        assert pipeline.frame_count == 2
        assert terminal.lines()[0] == "count 8   "
