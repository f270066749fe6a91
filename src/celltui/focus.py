"""Focus ring: ordered focusable instances and the one holding focus."""

from __future__ import annotations

import logging
from typing import Callable, Iterable

logger = logging.getLogger(__name__)

FocusListener = Callable[[int | None, int | None], None]


class FocusRing:
    """Ordered list of focusable instance ids with at most one focused."""

    def __init__(self) -> None:
        self._ids: list[int] = []
        self._current: int | None = None
        self._listeners: list[FocusListener] = []

    def add_listener(self, listener: FocusListener) -> None:
        """Register ``listener(old_id, new_id)``, called on every change."""
        self._listeners.append(listener)

    @property
    def ids(self) -> tuple[int, ...]:
        return tuple(self._ids)

    @property
    def current(self) -> int | None:
        return self._current

    def __contains__(self, instance_id: object) -> bool:
        return instance_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def _set(self, instance_id: int | None) -> None:
        old = self._current
        if old == instance_id:
            return
        self._current = instance_id
        logger.debug("focus %s -> %s", old, instance_id)
        for listener in self._listeners:
            listener(old, instance_id)

    def sync(self, ordered_ids: Iterable[int]) -> None:
        """Replace the ring's order, keeping focus if its holder survived."""
        self._ids = list(ordered_ids)
        if self._current is not None and self._current not in self._ids:
            self._set(None)

    def focus(self, instance_id: int | None) -> None:
        if instance_id is not None and instance_id not in self._ids:
            raise ValueError(f"instance {instance_id} is not focusable")
        self._set(instance_id)

    def blur(self) -> None:
        self._set(None)

    def remove(self, instance_id: int) -> None:
        if instance_id in self._ids:
            self._ids.remove(instance_id)
        if self._current == instance_id:
            self._set(None)

    def _step(self, delta: int) -> int | None:
        if not self._ids:
            self._set(None)
            return None
        if self._current is None:
            index = 0 if delta > 0 else len(self._ids) - 1
        else:
            index = (self._ids.index(self._current) + delta) % len(self._ids)
        self._set(self._ids[index])
        return self._current

    def next(self) -> int | None:
        """Move focus forward (wrapping) and return the new holder."""
        return self._step(1)

    def prev(self) -> int | None:
        """Move focus backward (wrapping) and return the new holder."""
        return self._step(-1)
