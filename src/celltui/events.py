"""Structured input events.

Every event carries a ``category`` (used for subscription routing) and a
monotonic ``timestamp`` taken when it was decoded.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import ClassVar, Literal, Union

EventCategory = Literal["key", "mouse", "resize", "paste"]
CATEGORIES: frozenset[str] = frozenset(("key", "mouse", "resize", "paste"))

MouseAction = Literal["press", "release", "move", "scroll"]
MouseButton = Literal["left", "middle", "right", "none", "wheel_up", "wheel_down"]

# Canonical modifier order used in key ids like "ctrl+shift+a"
MODIFIER_ORDER = ("ctrl", "shift", "alt")


def format_key_id(code: str, modifiers: frozenset[str]) -> str:
    prefix = "".join(f"{m}+" for m in MODIFIER_ORDER if m in modifiers)
    return prefix + code


@dataclass(frozen=True)
class KeyEvent:
    code: str
    modifiers: frozenset[str] = frozenset()
    text: str = ""
    timestamp: float = field(default_factory=time.monotonic, compare=False)

    category: ClassVar[str] = "key"

    @property
    def key_id(self) -> str:
        """Identifier such as ``"ctrl+a"`` or ``"shift+tab"``."""
        return format_key_id(self.code, self.modifiers)

    def matches(self, key_id: str) -> bool:
        return self.key_id == key_id.lower() or self.key_id == key_id


@dataclass(frozen=True)
class MouseEvent:
    x: int
    y: int
    button: MouseButton
    action: MouseAction
    modifiers: frozenset[str] = frozenset()
    timestamp: float = field(default_factory=time.monotonic, compare=False)

    category: ClassVar[str] = "mouse"


@dataclass(frozen=True)
class ResizeEvent:
    width: int
    height: int
    timestamp: float = field(default_factory=time.monotonic, compare=False)

    category: ClassVar[str] = "resize"


@dataclass(frozen=True)
class PasteEvent:
    text: str
    timestamp: float = field(default_factory=time.monotonic, compare=False)

    category: ClassVar[str] = "paste"


Event = Union[KeyEvent, MouseEvent, ResizeEvent, PasteEvent]
