"""Event routing: focused instance first, then tree-order broadcast."""

from __future__ import annotations

import logging
from typing import Iterable

from celltui.events import CATEGORIES, Event
from celltui.focus import FocusRing
from celltui.instance import InstanceTree

logger = logging.getLogger(__name__)


class SubscriberRegistry:
    """Maps instance ids to the event categories they subscribe to."""

    def __init__(self) -> None:
        self._subscriptions: dict[int, frozenset[str]] = {}

    def subscribe(self, instance_id: int, categories: Iterable[str]) -> None:
        wanted = frozenset(categories)
        unknown = wanted - CATEGORIES
        if unknown:
            raise ValueError(f"unknown event categories: {sorted(unknown)}")
        if wanted:
            self._subscriptions[instance_id] = wanted
        else:
            self._subscriptions.pop(instance_id, None)

    def unsubscribe(self, instance_id: int) -> None:
        self._subscriptions.pop(instance_id, None)

    def categories(self, instance_id: int) -> frozenset[str]:
        return self._subscriptions.get(instance_id, frozenset())

    def is_subscribed(self, instance_id: int, category: str) -> bool:
        return category in self._subscriptions.get(instance_id, ())

    def __contains__(self, instance_id: object) -> bool:
        return instance_id in self._subscriptions

    def __len__(self) -> int:
        return len(self._subscriptions)


class EventDispatcher:
    """Delivers events to subscribed instances.

    The focused instance gets the first chance if it subscribes to the
    event's category.  If it does not consume the event (or nothing is
    focused), every other subscriber is offered it in tree order until one
    returns ``True`` from ``handle_event``.
    """

    def __init__(
        self,
        tree: InstanceTree,
        registry: SubscriberRegistry,
        focus: FocusRing,
    ) -> None:
        self._tree = tree
        self._registry = registry
        self._focus = focus

    def dispatch(self, event: Event) -> bool:
        """Route *event*; return ``True`` if some instance consumed it."""
        category = event.category
        focused = self._focus.current

        if focused is not None and self._registry.is_subscribed(focused, category):
            if self._deliver(focused, event):
                return True

        targets = [
            inst.id
            for inst in self._tree.walk()
            if inst.id != focused and self._registry.is_subscribed(inst.id, category)
        ]
        for instance_id in targets:
            if self._deliver(instance_id, event):
                return True

        logger.debug("unhandled %s event", category)
        return False

    def _deliver(self, instance_id: int, event: Event) -> bool:
        instance = self._tree.get(instance_id)
        if instance is None:
            return False
        return bool(instance.component.handle_event(event))
