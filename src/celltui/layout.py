"""Layout: assign bounds to every instance, depth-first.

Only two placement policies exist.  *Relative* children stack along their
parent's direction (column or row) after the previous relative sibling,
shifted by their own ``x``/``y`` offset.  *Absolute* children sit at
``(x, y)`` inside the parent's content box and do not affect the flow.

Sizes are resolved per axis from a :data:`SizeValue`:

* ``int``   -> exact number of cells
* ``"50%"`` -> percentage of the parent's content size
* ``"fit"`` -> the instance's measured content size
* ``None``  -> fill the remaining space on the cross axis, fit on the
  main axis
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Union

if TYPE_CHECKING:
    from celltui.instance import Instance, InstanceTree

__all__ = [
    "Rect",
    "LayoutProps",
    "SizeValue",
    "Position",
    "Direction",
    "parse_size_value",
    "measure",
    "layout_tree",
]

Position = Literal["relative", "absolute"]
Direction = Literal["column", "row"]

# int  ->  exact number of columns/rows
# str  ->  percentage string like "50%" or the literal "fit"
SizeValue = Union[int, str, None]


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def contains(self, x: int, y: int) -> bool:
        return self.x <= x < self.right and self.y <= y < self.bottom

    def intersect(self, other: Rect) -> Rect:
        x = max(self.x, other.x)
        y = max(self.y, other.y)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        return Rect(x, y, max(0, right - x), max(0, bottom - y))

    def inset(self, left: int, top: int, right: int, bottom: int) -> Rect:
        return Rect(
            self.x + left,
            self.y + top,
            max(0, self.width - left - right),
            max(0, self.height - top - bottom),
        )


EMPTY_RECT = Rect(0, 0, 0, 0)


@dataclass(frozen=True)
class LayoutProps:
    """Sizing preferences and placement policy of one element."""

    position: Position = "relative"
    x: int = 0
    y: int = 0
    width: SizeValue = None
    height: SizeValue = None
    direction: Direction = "column"
    padding: int = 0
    gap: int = 0

    def __post_init__(self) -> None:
        if self.position not in ("relative", "absolute"):
            raise ValueError(f"unknown position policy {self.position!r}")
        if self.direction not in ("column", "row"):
            raise ValueError(f"unknown direction {self.direction!r}")
        if self.padding < 0 or self.gap < 0:
            raise ValueError("padding and gap must be non-negative")


LAYOUT_FIELDS = frozenset(
    ("position", "x", "y", "width", "height", "direction", "padding", "gap")
)


def parse_size_value(value: SizeValue, reference_size: int) -> int | None:
    """Resolve a fixed or percentage ``SizeValue`` against *reference_size*.

    * ``None`` / ``"fit"`` -> ``None`` (the caller decides)
    * ``int``              -> returned as-is
    * ``"50%"``            -> ``math.floor(reference_size * 50 / 100)``
    """
    if value is None or value == "fit":
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.endswith("%"):
        try:
            pct = float(value[:-1])
        except ValueError:
            raise ValueError(f"invalid percentage size {value!r}") from None
        return math.floor(reference_size * pct / 100)
    raise ValueError(f"invalid size value {value!r}")


# ---------------------------------------------------------------------------
# Measurement
# ---------------------------------------------------------------------------


def _relative_children(tree: InstanceTree, instance: Instance) -> list[Instance]:
    return [
        tree[cid]
        for cid in instance.children
        if tree[cid].element.layout.position == "relative"
    ]


def measure(
    tree: InstanceTree, instance_id: int, max_width: int, max_height: int
) -> tuple[int, int]:
    """Return the content-fitting ``(width, height)`` of an instance.

    Components that implement ``measure`` answer for themselves; anything
    else is measured as its relative children stacked along its direction,
    plus insets.
    """
    instance = tree[instance_id]
    component = instance.component
    left, top, right, bottom = component.insets()
    inner_w = max(0, max_width - left - right)
    inner_h = max(0, max_height - top - bottom)

    own = component.measure(inner_w, inner_h)
    if own is not None:
        w, h = own
        return (min(max_width, w + left + right), min(max_height, h + top + bottom))

    props = instance.element.layout
    children = _relative_children(tree, instance)
    total_main = 0
    max_cross = 0
    for i, child in enumerate(children):
        lp = child.element.layout
        if props.direction == "column":
            remaining = max(0, inner_h - total_main)
            cw, ch = _outer_size(tree, child, inner_w, remaining, "column", fill=False)
            total_main += lp.y + ch
            max_cross = max(max_cross, lp.x + cw)
        else:
            remaining = max(0, inner_w - total_main)
            cw, ch = _outer_size(tree, child, remaining, inner_h, "row", fill=False)
            total_main += lp.x + cw
            max_cross = max(max_cross, lp.y + ch)
        if i < len(children) - 1:
            total_main += props.gap

    if props.direction == "column":
        w, h = max_cross, total_main
    else:
        w, h = total_main, max_cross
    return (min(max_width, w + left + right), min(max_height, h + top + bottom))


def _resolve_axis(
    value: SizeValue, reference: int, available: int, fit: int | None, fill: bool
) -> int:
    fixed = parse_size_value(value, reference)
    if fixed is not None:
        size = fixed
    elif value is None and fill:
        size = available
    else:
        size = fit if fit is not None else 0
    return max(0, min(size, available))


def _outer_size(
    tree: InstanceTree,
    instance: Instance,
    avail_w: int,
    avail_h: int,
    flow: Direction,
    fill: bool = True,
) -> tuple[int, int]:
    """Resolve an instance's width and height inside its parent's flow.

    Width is resolved first; a fitted height is then measured at that
    width so wrapped text reports the right number of lines.
    """
    lp = instance.element.layout
    avail_w = max(0, avail_w - max(0, lp.x))
    avail_h = max(0, avail_h - max(0, lp.y))

    # Cross axis fills by default, main axis fits.  Measuring fits both.
    fill_w = fill and flow == "column"
    fill_h = fill and flow == "row"

    fit_w: int | None = None
    if lp.width == "fit" or (lp.width is None and not fill_w):
        fit_w = measure(tree, instance.id, avail_w, avail_h)[0]
    width = _resolve_axis(lp.width, avail_w, avail_w, fit_w, fill_w)

    fit_h: int | None = None
    if lp.height == "fit" or (lp.height is None and not fill_h):
        fit_h = measure(tree, instance.id, width, avail_h)[1]
    height = _resolve_axis(lp.height, avail_h, avail_h, fit_h, fill_h)
    return width, height


# ---------------------------------------------------------------------------
# Layout pass
# ---------------------------------------------------------------------------


def layout_tree(tree: InstanceTree, root_id: int, viewport: Rect) -> None:
    """Assign ``bounds`` to the root (the whole viewport) and its subtree."""
    root = tree[root_id]
    root.bounds = viewport
    _layout_children(tree, root)


def _layout_children(tree: InstanceTree, parent: Instance) -> None:
    props = parent.element.layout
    left, top, right, bottom = parent.component.insets()
    content = parent.bounds.inset(left, top, right, bottom)
    offset = 0

    for cid in parent.children:
        child = tree[cid]
        lp = child.element.layout

        if lp.position == "absolute":
            w, h = _outer_size(tree, child, content.width, content.height, props.direction)
            child.bounds = Rect(content.x + lp.x, content.y + lp.y, w, h)
        elif props.direction == "column":
            remaining = max(0, content.height - offset)
            w, h = _outer_size(tree, child, content.width, remaining, "column")
            child.bounds = Rect(content.x + lp.x, content.y + offset + lp.y, w, h)
            offset += lp.y + h + props.gap
        else:
            remaining = max(0, content.width - offset)
            w, h = _outer_size(tree, child, remaining, content.height, "row")
            child.bounds = Rect(content.x + offset + lp.x, content.y + lp.y, w, h)
            offset += lp.x + w + props.gap

        _layout_children(tree, child)
