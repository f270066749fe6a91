"""Frame scheduling: dirty marking and coalesced frame requests.

Every state mutation goes through :meth:`FrameScheduler.mark_dirty`, which
records the instance and returns a :class:`DirtyToken`.  Any number of
marks before the next frame collapse into a single pending frame.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirtyToken:
    """Proof that *instance_id* will be rebuilt in frame number *frame*."""

    instance_id: int
    frame: int


class FrameScheduler:
    """Tracks dirty instances and keeps at most one frame pending.

    With a running event loop the frame fires after *delay* seconds (the
    coalescing window; ``0`` means the next loop iteration).  Without one,
    the owner drives frames itself via :meth:`take`.
    """

    def __init__(self, *, delay: float = 0.0) -> None:
        self._delay = delay
        self._dirty: set[int] = set()
        self._pending: bool = False
        self._handle: asyncio.Handle | None = None
        self._callback: Callable[[], None] | None = None
        self._frame: int = 0

    def set_callback(self, callback: Callable[[], None] | None) -> None:
        """Set the function run when a scheduled frame fires."""
        self._callback = callback

    # -- properties ---------------------------------------------------------

    @property
    def pending(self) -> bool:
        return self._pending

    @property
    def dirty(self) -> frozenset[int]:
        return frozenset(self._dirty)

    @property
    def frame(self) -> int:
        """Number of frames taken so far."""
        return self._frame

    # -- marking ------------------------------------------------------------

    def mark_dirty(self, instance_id: int) -> DirtyToken:
        self._dirty.add(instance_id)
        self.request_frame()
        return DirtyToken(instance_id, self._frame + 1)

    def discard(self, instance_id: int) -> None:
        """Forget a dirty mark, e.g. for an instance that was disposed."""
        self._dirty.discard(instance_id)

    def request_frame(self) -> None:
        """Schedule a frame unless one is already pending."""
        if self._pending:
            return
        self._pending = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No running event loop -- the owner renders explicitly
            return
        if self._delay > 0:
            self._handle = loop.call_later(self._delay, self._fire)
        else:
            self._handle = loop.call_soon(self._fire)

    def _fire(self) -> None:
        self._handle = None
        if not self._pending:
            return
        if self._callback is not None:
            self._callback()

    def take(self) -> set[int]:
        """Consume the pending frame and return the dirty instance ids."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        dirty = self._dirty
        self._dirty = set()
        self._pending = False
        self._frame += 1
        logger.debug("frame %d: %d dirty instance(s)", self._frame, len(dirty))
        return dirty

    def cancel(self) -> None:
        """Drop any pending frame without rendering it."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._pending = False
