"""Component base class: the capability interface of a live instance.

Every instance in the tree is backed by a :class:`Component` object.  The
two host primitives (see :mod:`celltui.host`) and user components share
this one interface -- ``init``, ``build``, ``measure``, ``draw``,
``dispose`` and ``handle_event`` -- and the pipeline never needs to know
which kind it is talking to.

State changes go through :meth:`Component.set_state`, which returns the
:class:`~celltui.scheduler.DirtyToken` that schedules the next frame.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Mapping, Sequence, Union

from celltui.layout import LayoutProps

if TYPE_CHECKING:
    from celltui.canvas import Canvas
    from celltui.element import Element
    from celltui.events import Event
    from celltui.scheduler import DirtyToken, FrameScheduler

BuildResult = Union["Element", Sequence["Element | None"], None]


class Component:
    """Base class for stateful components.

    Subclasses override the hooks they need:

    * ``init()`` runs once, after the instance is created and bound.
    * ``build()`` returns the child elements; it is re-run whenever the
      instance (or an ancestor) is dirty.  The default passes the
      element's own children through.
    * ``measure(max_width, max_height)`` reports a content size, or
      ``None`` to be measured as stacked children.
    * ``draw(canvas)`` paints into the instance's bounds.
    * ``dispose()`` runs once when the instance leaves the tree.
    * ``handle_event(event)`` returns ``True`` to consume an event of a
      category listed in ``subscriptions``.
    """

    focusable: ClassVar[bool] = False
    subscriptions: ClassVar[frozenset[str]] = frozenset()

    def __init__(self) -> None:
        self.props: Mapping[str, Any] = {}
        self.children: tuple[Element, ...] = ()
        self.layout: LayoutProps = LayoutProps()
        self.state: dict[str, Any] = {}
        self.focused: bool = False
        self._instance_id: int | None = None
        self._scheduler: FrameScheduler | None = None

    # -- binding (managed by the reconciler) --------------------------------

    def _bind(self, instance_id: int, scheduler: FrameScheduler) -> None:
        self._instance_id = instance_id
        self._scheduler = scheduler

    def _unbind(self) -> None:
        self._instance_id = None
        self._scheduler = None

    @property
    def instance_id(self) -> int | None:
        return self._instance_id

    @property
    def mounted(self) -> bool:
        return self._instance_id is not None

    # -- state --------------------------------------------------------------

    def set_state(self, **changes: Any) -> DirtyToken:
        """Apply *changes* to ``state`` and mark this instance dirty."""
        if self._scheduler is None or self._instance_id is None:
            raise RuntimeError(
                f"{type(self).__name__} is not mounted; set_state needs a live instance"
            )
        self.state.update(changes)
        return self._scheduler.mark_dirty(self._instance_id)

    def invalidate(self) -> DirtyToken:
        """Mark this instance dirty without changing state."""
        return self.set_state()

    # -- lifecycle hooks ----------------------------------------------------

    def init(self) -> None:
        pass

    def did_update(self, previous_props: Mapping[str, Any]) -> None:
        """Called when a rebuild reuses this instance with new props."""

    def build(self) -> BuildResult:
        return self.children

    def measure(self, max_width: int, max_height: int) -> tuple[int, int] | None:
        return None

    def insets(self) -> tuple[int, int, int, int]:
        """Return ``(left, top, right, bottom)`` space reserved around children."""
        p = self.layout.padding
        return (p, p, p, p)

    def draw(self, canvas: Canvas) -> None:
        pass

    def dispose(self) -> None:
        pass

    def handle_event(self, event: Event) -> bool:
        return False

    def __repr__(self) -> str:
        return f"<{type(self).__name__} instance={self._instance_id}>"
