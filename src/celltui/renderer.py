"""Frame pipeline: build, layout, draw, diff and flush one frame at a time.

The pipeline owns the two screen buffers.  Each frame it

1.  takes the dirty set from the scheduler and rebuilds the topmost dirty
    instances (a dirty ancestor already covers its descendants),
2.  lays the whole tree out against the viewport,
3.  clears the current buffer and lets every instance draw into it, in
    tree order, through a :class:`Canvas` clipped to its ancestors,
4.  diffs the current buffer against the previous one (or paints a full
    frame after a resize or a failed flush),
5.  writes the encoded bytes to the terminal in a single call and swaps
    the buffers.

Frames never overlap: a state change made while a frame is in progress
schedules the next frame instead of touching this one.
"""

from __future__ import annotations

import enum
import logging

from celltui.buffer import ScreenBuffer
from celltui.canvas import Canvas
from celltui.cell import DEFAULT_STYLE, Style
from celltui.diff import DiffOp, diff_buffers, final_state, full_frame_ops
from celltui.element import Element
from celltui.emitter import EscapeEmitter
from celltui.errors import FlushError
from celltui.instance import Instance, InstanceTree
from celltui.layout import Rect, layout_tree
from celltui.reconciler import Reconciler
from celltui.scheduler import FrameScheduler
from celltui.terminal import Terminal

logger = logging.getLogger(__name__)


class FrameState(enum.Enum):
    IDLE = "idle"
    BUILDING = "building"
    LAYOUT = "layout"
    DRAW = "draw"
    DIFFING = "diffing"
    FLUSHING = "flushing"


class FramePipeline:
    """Drives frames from dirty marks to bytes on the terminal."""

    def __init__(
        self,
        terminal: Terminal,
        reconciler: Reconciler,
        scheduler: FrameScheduler,
        emitter: EscapeEmitter | None = None,
    ) -> None:
        self.terminal = terminal
        self.reconciler = reconciler
        self.scheduler = scheduler
        self.emitter = emitter or EscapeEmitter()

        width, height = terminal.columns, terminal.rows
        self._previous = ScreenBuffer(width, height)
        self._current = ScreenBuffer(width, height)
        self._force_full = True
        self._pen: Style = DEFAULT_STYLE
        self._cursor: tuple[int, int] | None = None
        self._state = FrameState.IDLE

        # Metrics
        self.frame_count = 0
        self.full_frame_count = 0
        self.bytes_written = 0
        self.last_ops: list[DiffOp] = []

        self.scheduler.set_callback(self.render_pending)

    # -- properties ---------------------------------------------------------

    @property
    def state(self) -> FrameState:
        return self._state

    @property
    def size(self) -> tuple[int, int]:
        return self._current.size

    @property
    def screen(self) -> ScreenBuffer:
        """The buffer the terminal is currently showing."""
        return self._previous

    @property
    def tree(self) -> InstanceTree:
        return self.reconciler.tree

    # -- lifecycle ----------------------------------------------------------

    def mount(self, element: Element) -> Instance:
        """Mount *element* as the root and schedule the first frame."""
        root = self.reconciler.mount(element)
        self._force_full = True
        self.scheduler.request_frame()
        return root

    def resize(self, width: int, height: int) -> None:
        """Adopt a new terminal size; the next frame repaints everything."""
        logger.info("viewport resized to %dx%d", width, height)
        self._previous.resize(width, height)
        self._current.resize(width, height)
        self._force_full = True
        self._cursor = None
        if self.tree.root is not None:
            self.scheduler.mark_dirty(self.tree.root)
        else:
            self.scheduler.request_frame()

    def render_pending(self) -> None:
        """Render a frame if one is pending (the scheduler callback)."""
        if self.scheduler.pending and self._state is FrameState.IDLE:
            self.render_frame()

    def shutdown(self) -> None:
        """Flush any pending frame, then dispose the whole tree."""
        try:
            self.render_pending()
        finally:
            self.scheduler.cancel()
            self.reconciler.unmount()

    # -- the frame ----------------------------------------------------------

    def render_frame(self) -> str:
        """Run one complete frame and return the bytes written."""
        if self._state is not FrameState.IDLE:
            raise RuntimeError(f"frame already in progress ({self._state.value})")
        try:
            dirty = self.scheduler.take()

            self._state = FrameState.BUILDING
            for instance_id in self._dirty_roots(dirty):
                self.reconciler.rebuild(instance_id)

            self._state = FrameState.LAYOUT
            root = self.tree.root
            viewport = Rect(0, 0, self._current.width, self._current.height)
            if root is not None:
                layout_tree(self.tree, root, viewport)

            self._state = FrameState.DRAW
            self._current.clear()
            if root is not None:
                self._draw(root, viewport)

            self._state = FrameState.DIFFING
            data = self._encode()

            self._state = FrameState.FLUSHING
            self._flush(data)

            self._previous, self._current = self._current, self._previous
            self.frame_count += 1
            return data
        finally:
            self._state = FrameState.IDLE

    def _dirty_roots(self, dirty: set[int]) -> list[int]:
        """Return the dirty ids with no dirty ancestor, in tree order."""
        roots = {
            instance_id
            for instance_id in dirty
            if instance_id in self.tree
            and not any(a in dirty for a in self.tree.ancestors(instance_id))
        }
        return [inst.id for inst in self.tree.walk() if inst.id in roots]

    def _draw(self, root: int, viewport: Rect) -> None:
        clips: dict[int, Rect] = {}
        for instance in self.tree.walk(root):
            clip = instance.bounds.intersect(clips.get(instance.parent, viewport))
            clips[instance.id] = clip
            if clip.empty:
                continue
            instance.component.draw(Canvas(self._current, instance.bounds, clip))

    def _encode(self) -> str:
        if self._force_full or self._previous.size != self._current.size:
            ops = full_frame_ops(self._current)
            data = self.emitter.full_frame(ops)
            self._pen, self._cursor = final_state(ops, DEFAULT_STYLE, None)
            self.full_frame_count += 1
            self._force_full = False
        else:
            ops = diff_buffers(
                self._previous, self._current, pen=self._pen, cursor=self._cursor
            )
            data = self.emitter.encode(ops, pen=self._pen, cursor=self._cursor)
            self._pen, self._cursor = final_state(ops, self._pen, self._cursor)
        self.last_ops = ops
        logger.debug("frame %d: %d op(s), %d byte(s)", self.scheduler.frame, len(ops), len(data))
        return data

    def _flush(self, data: str) -> None:
        if not data:
            return
        try:
            self.terminal.write(data)
        except OSError as exc:
            # The screen no longer matches either buffer
            self._force_full = True
            self._cursor = None
            logger.error("frame flush failed: %s", exc)
            try:
                self.terminal.stop()
            except Exception as stop_exc:
                logger.error("terminal restore after flush failure failed: %s", stop_exc)
            raise FlushError(f"failed to write frame: {exc}") from exc
        self.bytes_written += len(data)
