"""Reconciliation: map a fresh element tree onto the live instance tree.

Within one sibling list an element's identity is ``(type, key)``; unkeyed
elements are identified by ``(type, None, n)`` where *n* counts earlier
unkeyed siblings of the same type.  A previous instance with the same
identity is reused -- its component object, and therefore its state, is
untouched apart from receiving the new props.  Everything else is created
fresh, and previous instances left unmatched are disposed in the same
pass.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Hashable, Sequence

from celltui.component import BuildResult
from celltui.dispatcher import SubscriberRegistry
from celltui.element import Element, flatten_children
from celltui.errors import DuplicateKeyError
from celltui.focus import FocusRing
from celltui.instance import Instance, InstanceTree
from celltui.scheduler import FrameScheduler

logger = logging.getLogger(__name__)

Identity = tuple[type, Hashable, int]


@dataclass
class ReconcileStats:
    created: int = 0
    reused: int = 0
    disposed: int = 0

    def reset(self) -> None:
        self.created = self.reused = self.disposed = 0


def _normalize(result: BuildResult) -> tuple[Element, ...]:
    if result is None:
        return ()
    if isinstance(result, Element):
        return (result,)
    return flatten_children(result)


def identities(elements: Sequence[Element], parent_id: int) -> list[Identity]:
    """Compute the identity of each element, rejecting duplicate keys."""
    seen: set[Identity] = set()
    unkeyed: dict[type, int] = {}
    out: list[Identity] = []
    for el in elements:
        if el.key is None:
            n = unkeyed.get(el.type, 0)
            unkeyed[el.type] = n + 1
            ident: Identity = (el.type, None, n)
        else:
            ident = (el.type, el.key, -1)
            if ident in seen:
                raise DuplicateKeyError(el.type_name, el.key, parent_id)
        seen.add(ident)
        out.append(ident)
    return out


class Reconciler:
    """Owns instance creation, reuse and disposal for an :class:`InstanceTree`."""

    def __init__(
        self,
        tree: InstanceTree | None = None,
        *,
        registry: SubscriberRegistry | None = None,
        focus: FocusRing | None = None,
        scheduler: FrameScheduler | None = None,
    ) -> None:
        self.tree = tree if tree is not None else InstanceTree()
        self.registry = registry if registry is not None else SubscriberRegistry()
        self.focus = focus if focus is not None else FocusRing()
        self.scheduler = scheduler if scheduler is not None else FrameScheduler()
        self.stats = ReconcileStats()
        self.errors: list[DuplicateKeyError] = []
        self.focus.add_listener(self._on_focus_change)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def mount(self, element: Element) -> Instance:
        """Create the root instance for *element* and build its subtree."""
        if self.tree.root is not None:
            self.dispose(self.tree.root)
        root = self._create(element, None)
        self.rebuild(root.id)
        return root

    def rebuild(self, instance_id: int) -> None:
        """Re-run ``build`` for an instance and all of its descendants.

        A duplicate key aborts reconciliation of the affected child list
        only: that instance keeps its previous children, the error is
        logged and appended to ``errors``, and siblings carry on.
        """
        self._rebuild(instance_id)
        self.sync_focus()

    def _rebuild(self, instance_id: int) -> None:
        instance = self.tree[instance_id]
        elements = _normalize(instance.component.build())
        try:
            self.reconcile_children(instance_id, elements)
        except DuplicateKeyError as exc:
            logger.error("reconciliation aborted for subtree %d: %s", instance_id, exc)
            self.errors.append(exc)
            return
        for child_id in list(instance.children):
            self._rebuild(child_id)

    def reconcile_children(self, parent_id: int, elements: Sequence[Element]) -> list[int]:
        """Match *elements* against the current children of *parent_id*.

        Returns the new ordered child ids.  Raises
        :class:`DuplicateKeyError` before touching anything if two
        siblings of one type share a key.
        """
        parent = self.tree[parent_id]
        new_identities = identities(elements, parent_id)

        previous_children = [self.tree[cid] for cid in parent.children]
        old_identities = identities(
            [child.element for child in previous_children], parent_id
        )
        available = {
            ident: child.id for ident, child in zip(old_identities, previous_children)
        }

        new_children: list[int] = []
        for ident, el in zip(new_identities, elements):
            match = available.pop(ident, None)
            if match is not None:
                self._update(match, el)
                self.stats.reused += 1
                new_children.append(match)
            else:
                new_children.append(self._create(el, parent_id).id)

        parent.children = new_children
        for stale_id in available.values():
            self.dispose(stale_id)
        return new_children

    def dispose(self, instance_id: int) -> None:
        """Tear down *instance_id* and its subtree, children first."""
        instance = self.tree.get(instance_id)
        if instance is None:
            return
        if instance.parent is not None:
            parent = self.tree.get(instance.parent)
            if parent is not None and instance_id in parent.children:
                parent.children.remove(instance_id)

        for node_id in self.tree.subtree(instance_id):
            node = self.tree[node_id]
            try:
                node.component.dispose()
            finally:
                self.registry.unsubscribe(node_id)
                self.focus.remove(node_id)
                self.scheduler.discard(node_id)
                node.component._unbind()
                self.tree.remove(node_id)
                self.stats.disposed += 1
        logger.debug("disposed subtree %d", instance_id)

    def unmount(self) -> None:
        if self.tree.root is not None:
            self.dispose(self.tree.root)

    def sync_focus(self) -> None:
        """Refresh the focus ring from the focusable instances in tree order."""
        self.focus.sync(
            inst.id for inst in self.tree.walk() if inst.component.focusable
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _create(self, el: Element, parent_id: int | None) -> Instance:
        component = el.type()
        component.props = el.props
        component.children = el.children
        component.layout = el.layout
        instance = self.tree.add(el, component, parent_id)
        component._bind(instance.id, self.scheduler)
        if component.subscriptions:
            self.registry.subscribe(instance.id, component.subscriptions)
        component.init()
        self.stats.created += 1
        return instance

    def _update(self, instance_id: int, el: Element) -> None:
        instance = self.tree[instance_id]
        component = instance.component
        previous_props = component.props
        instance.element = el
        component.props = el.props
        component.children = el.children
        component.layout = el.layout
        component.did_update(previous_props)

    def _on_focus_change(self, old: int | None, new: int | None) -> None:
        for instance_id in (old, new):
            if instance_id is None or instance_id not in self.tree:
                continue
            instance = self.tree[instance_id]
            instance.component.focused = instance_id == new
            self.scheduler.mark_dirty(instance_id)
