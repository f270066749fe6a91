"""Declarative element descriptors.

An :class:`Element` is an immutable description of what should be on
screen.  It is a tagged variant: ``kind`` says whether it is one of the two
host primitives (``TEXT``, ``BOX``) or a user ``COMPONENT``, and ``type``
is the class that will back the live instance.  Reconciliation compares
elements by ``(type, key)`` only, never by deep equality of their props.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Hashable, Iterable, Mapping, Union

from celltui.cell import DEFAULT_STYLE, Style
from celltui.layout import LAYOUT_FIELDS, LayoutProps

if TYPE_CHECKING:
    from celltui.component import Component

__all__ = ["ElementKind", "Element", "Child", "text", "box", "element"]


class ElementKind(enum.Enum):
    TEXT = "text"
    BOX = "box"
    COMPONENT = "component"


_EMPTY_PROPS: Mapping[str, Any] = MappingProxyType({})


@dataclass(frozen=True, eq=False)
class Element:
    kind: ElementKind
    type: type[Component]
    key: Hashable | None = None
    props: Mapping[str, Any] = field(default_factory=lambda: _EMPTY_PROPS)
    children: tuple[Element, ...] = ()
    layout: LayoutProps = field(default_factory=LayoutProps)

    @property
    def type_name(self) -> str:
        if self.kind is ElementKind.COMPONENT:
            return self.type.__name__
        return self.kind.value

    def with_key(self, key: Hashable) -> Element:
        return Element(self.kind, self.type, key, self.props, self.children, self.layout)

    def __repr__(self) -> str:
        key = f" key={self.key!r}" if self.key is not None else ""
        return f"<{self.type_name}{key} children={len(self.children)}>"


# A build step may return an element, a list of elements, or nothing;
# ``None`` entries inside a list are skipped.
Child = Union[Element, None]


def flatten_children(children: Iterable[Any]) -> tuple[Element, ...]:
    """Flatten nested lists/tuples of elements, dropping ``None`` entries."""
    out: list[Element] = []
    for child in children:
        if child is None:
            continue
        if isinstance(child, Element):
            out.append(child)
        elif isinstance(child, (list, tuple)):
            out.extend(flatten_children(child))
        else:
            raise TypeError(f"expected an Element, got {type(child).__name__}")
    return tuple(out)


def _split_layout(options: dict[str, Any]) -> tuple[LayoutProps, dict[str, Any]]:
    layout_kwargs = {k: options.pop(k) for k in list(options) if k in LAYOUT_FIELDS}
    return LayoutProps(**layout_kwargs), options


def text(
    content: str,
    *,
    key: Hashable | None = None,
    style: Style = DEFAULT_STYLE,
    wrap: bool = False,
    align: str = "left",
    **options: Any,
) -> Element:
    """Describe a run of text.  Layout options (``x``, ``width`` ...) apply."""
    from celltui.host import Text

    if align not in ("left", "center", "right"):
        raise ValueError(f"unknown alignment {align!r}")
    layout, rest = _split_layout(options)
    if rest:
        raise TypeError(f"unexpected text options: {', '.join(sorted(rest))}")
    props = MappingProxyType(
        {"text": content, "style": style, "wrap": wrap, "align": align}
    )
    return Element(ElementKind.TEXT, Text, key, props, (), layout)


def box(
    *children: Child | Iterable[Child],
    key: Hashable | None = None,
    style: Style = DEFAULT_STYLE,
    border: bool = False,
    border_style: Style | None = None,
    title: str = "",
    **options: Any,
) -> Element:
    """Describe a container that fills its bounds and holds children."""
    from celltui.host import Box

    layout, rest = _split_layout(options)
    if rest:
        raise TypeError(f"unexpected box options: {', '.join(sorted(rest))}")
    props = MappingProxyType(
        {
            "style": style,
            "border": border,
            "border_style": border_style if border_style is not None else style,
            "title": title,
        }
    )
    return Element(
        ElementKind.BOX, Box, key, props, flatten_children(children), layout
    )


def element(
    component: type[Component],
    *children: Child | Iterable[Child],
    key: Hashable | None = None,
    layout: LayoutProps | None = None,
    **props: Any,
) -> Element:
    """Describe an instance of a user :class:`Component` subclass."""
    from celltui.component import Component

    if not (isinstance(component, type) and issubclass(component, Component)):
        raise TypeError(f"{component!r} is not a Component subclass")
    return Element(
        ElementKind.COMPONENT,
        component,
        key,
        MappingProxyType(dict(props)),
        flatten_children(children),
        layout if layout is not None else LayoutProps(),
    )
