"""Instance arena: live nodes addressed by integer id.

Parents reference children by id rather than by object, so there is no
ownership cycle and a whole subtree can be collected and dropped from the
arena in one sweep.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator

from celltui.layout import EMPTY_RECT, Rect

if TYPE_CHECKING:
    from celltui.component import Component
    from celltui.element import Element


@dataclass(eq=False)
class Instance:
    """A live node: the element it was last built from plus its state holder."""

    id: int
    element: Element
    component: Component
    parent: int | None
    children: list[int] = field(default_factory=list)
    bounds: Rect = EMPTY_RECT

    def __repr__(self) -> str:
        return (
            f"Instance(id={self.id}, type={self.element.type_name}, "
            f"key={self.element.key!r}, children={self.children})"
        )


class InstanceTree:
    """Arena storage for :class:`Instance` nodes."""

    def __init__(self) -> None:
        self._nodes: dict[int, Instance] = {}
        self._next_id = 1
        self.root: int | None = None

    def add(
        self, element: Element, component: Component, parent: int | None
    ) -> Instance:
        instance = Instance(self._next_id, element, component, parent)
        self._next_id += 1
        self._nodes[instance.id] = instance
        if parent is None:
            self.root = instance.id
        return instance

    def remove(self, instance_id: int) -> None:
        """Drop a single node.  Callers detach it from its parent first."""
        self._nodes.pop(instance_id, None)
        if self.root == instance_id:
            self.root = None

    def __getitem__(self, instance_id: int) -> Instance:
        return self._nodes[instance_id]

    def get(self, instance_id: int) -> Instance | None:
        return self._nodes.get(instance_id)

    def __contains__(self, instance_id: object) -> bool:
        return instance_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def walk(self, start: int | None = None) -> Iterator[Instance]:
        """Yield instances in tree order (pre-order, children left to right)."""
        start = self.root if start is None else start
        if start is None or start not in self._nodes:
            return
        stack = [start]
        while stack:
            instance = self._nodes[stack.pop()]
            yield instance
            stack.extend(reversed(instance.children))

    def subtree(self, instance_id: int) -> list[int]:
        """Return the ids under *instance_id*, children before parents."""
        order = [inst.id for inst in self.walk(instance_id)]
        order.reverse()
        return order

    def ancestors(self, instance_id: int) -> Iterator[int]:
        parent = self._nodes[instance_id].parent
        while parent is not None:
            yield parent
            parent = self._nodes[parent].parent

    def find(self, key: object) -> Instance | None:
        """Return the first instance, in tree order, whose element has *key*."""
        for instance in self.walk():
            if instance.element.key == key:
                return instance
        return None
