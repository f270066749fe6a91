"""Escape emitter: serialize diff operations to the wire format.

The wire format is a small subset of ANSI/VT sequences:

* ``CSI row;col H`` and ``CSI n C`` -- cursor positioning
* ``CSI ... m`` -- SGR style and color (8-color, 256-color, 24-bit)
* plain UTF-8 text runs
* ``CSI 2 J`` -- full-screen clear
* ``CSI ? 1049 h/l`` and ``CSI ? 25 h/l`` -- alternate screen, cursor

Whenever two encodings of the same operation are possible, the shorter one
in bytes wins; on a tie, the one with fewer parameters, then the
self-contained form (absolute position, reset-based SGR).
"""

from __future__ import annotations

from typing import Sequence

from celltui.capabilities import ColorDepth, TerminalCapabilities
from celltui.cell import DEFAULT_STYLE, RGB, Attr, Color, Style
from celltui.diff import DiffOp, MoveCursor, SetStyle, WriteRun

CSI = "\x1b["
RESET = "\x1b[0m"
CLEAR_SCREEN = "\x1b[2J"
ENTER_ALT_SCREEN = "\x1b[?1049h"
EXIT_ALT_SCREEN = "\x1b[?1049l"
HIDE_CURSOR = "\x1b[?25l"
SHOW_CURSOR = "\x1b[?25h"

ATTR_ON: dict[Attr, str] = {
    Attr.BOLD: "1",
    Attr.DIM: "2",
    Attr.ITALIC: "3",
    Attr.UNDERLINE: "4",
    Attr.BLINK: "5",
    Attr.REVERSE: "7",
    Attr.STRIKE: "9",
}

# SGR 22 turns off both bold and dim
ATTR_OFF: dict[Attr, str] = {
    Attr.ITALIC: "23",
    Attr.UNDERLINE: "24",
    Attr.BLINK: "25",
    Attr.REVERSE: "27",
    Attr.STRIKE: "29",
}
_INTENSITY = Attr.BOLD | Attr.DIM


# ---------------------------------------------------------------------------
# Color conversion
# ---------------------------------------------------------------------------

_ANSI16_RGB: tuple[RGB, ...] = (
    RGB(0, 0, 0), RGB(205, 0, 0), RGB(0, 205, 0), RGB(205, 205, 0),
    RGB(0, 0, 238), RGB(205, 0, 205), RGB(0, 205, 205), RGB(229, 229, 229),
    RGB(127, 127, 127), RGB(255, 0, 0), RGB(0, 255, 0), RGB(255, 255, 0),
    RGB(92, 92, 255), RGB(255, 0, 255), RGB(0, 255, 255), RGB(255, 255, 255),
)
_CUBE_LEVELS = (0, 95, 135, 175, 215, 255)


def palette_to_rgb(index: int) -> RGB:
    if index < 16:
        return _ANSI16_RGB[index]
    if index < 232:
        n = index - 16
        return RGB(_CUBE_LEVELS[n // 36], _CUBE_LEVELS[(n // 6) % 6], _CUBE_LEVELS[n % 6])
    level = 8 + 10 * (index - 232)
    return RGB(level, level, level)


def _nearest_level(value: int) -> int:
    return min(range(6), key=lambda i: abs(_CUBE_LEVELS[i] - value))


def rgb_to_256(color: RGB) -> int:
    r, g, b = (_nearest_level(c) for c in color)
    return 16 + 36 * r + 6 * g + b


def rgb_to_8(color: RGB) -> int:
    def distance(candidate: RGB) -> int:
        return sum((a - b) ** 2 for a, b in zip(candidate, color))

    return min(range(8), key=lambda i: distance(_ANSI16_RGB[i]))


def degrade_color(color: Color, depth: ColorDepth) -> Color:
    """Map *color* onto what a terminal of *depth* can display."""
    if color is None or depth is ColorDepth.TRUECOLOR:
        return color
    if depth is ColorDepth.ANSI256:
        return rgb_to_256(color) if isinstance(color, RGB) else color
    if isinstance(color, RGB):
        return rgb_to_8(color)
    if color < 8:
        return color
    if color < 16:
        return color - 8
    return rgb_to_8(palette_to_rgb(color))


def color_params(color: Color, base: int) -> list[str]:
    """SGR parameters selecting *color*; *base* is 30 (fg) or 40 (bg)."""
    if color is None:
        return [str(base + 9)]
    if isinstance(color, RGB):
        return [str(base + 8), "2", str(color.r), str(color.g), str(color.b)]
    if color < 8:
        return [str(base + color)]
    if color < 16:
        return [str(base + 60 + color - 8)]
    return [str(base + 8), "5", str(color)]


def _attr_on_params(attrs: Attr) -> list[str]:
    return [code for attr, code in ATTR_ON.items() if attrs & attr]


# ---------------------------------------------------------------------------
# Emitter
# ---------------------------------------------------------------------------


class EscapeEmitter:
    """Encodes diff operations for a terminal with given capabilities."""

    def __init__(self, capabilities: TerminalCapabilities | None = None) -> None:
        self.capabilities = capabilities or TerminalCapabilities()

    def _degrade(self, style: Style) -> Style:
        depth = self.capabilities.color_depth
        if depth is ColorDepth.TRUECOLOR:
            return style
        return Style(
            degrade_color(style.fg, depth), degrade_color(style.bg, depth), style.attrs
        )

    # -- single operations --------------------------------------------------

    def encode_move(self, x: int, y: int, cursor: tuple[int, int] | None = None) -> str:
        absolute = f"{CSI}H" if x == 0 and y == 0 else f"{CSI}{y + 1};{x + 1}H"
        if cursor is not None and cursor[1] == y and x > cursor[0]:
            n = x - cursor[0]
            forward = f"{CSI}C" if n == 1 else f"{CSI}{n}C"
            if len(forward) < len(absolute):
                return forward
        return absolute

    def encode_style(self, style: Style, pen: Style = DEFAULT_STYLE) -> str:
        """Return the shortest SGR sequence switching *pen* to *style*."""
        target = self._degrade(style)
        current = self._degrade(pen)
        if target == current:
            return ""

        reset = [] if target.is_default else ["0"]
        reset += _attr_on_params(target.attrs)
        if target.fg is not None:
            reset += color_params(target.fg, 30)
        if target.bg is not None:
            reset += color_params(target.bg, 40)

        delta: list[str] = []
        removed = current.attrs & ~target.attrs
        added = target.attrs & ~current.attrs
        if removed & _INTENSITY:
            delta.append("22")
            added |= target.attrs & _INTENSITY
        for attr, code in ATTR_OFF.items():
            if removed & attr:
                delta.append(code)
        delta += _attr_on_params(added)
        if target.fg != current.fg:
            delta += color_params(target.fg, 30)
        if target.bg != current.bg:
            delta += color_params(target.bg, 40)

        def cost(params: list[str]) -> tuple[int, int]:
            return (len(";".join(params)), len(params))

        params = delta if cost(delta) < cost(reset) else reset
        return f"{CSI}{';'.join(params)}m"

    # -- sequences of operations --------------------------------------------

    def encode(
        self,
        ops: Sequence[DiffOp],
        *,
        pen: Style = DEFAULT_STYLE,
        cursor: tuple[int, int] | None = None,
    ) -> str:
        """Serialize *ops*, starting from a known *pen* and *cursor*."""
        out: list[str] = []
        for op in ops:
            if isinstance(op, MoveCursor):
                out.append(self.encode_move(op.x, op.y, cursor))
                cursor = (op.x, op.y)
            elif isinstance(op, SetStyle):
                out.append(self.encode_style(op.style, pen))
                pen = op.style
            elif isinstance(op, WriteRun):
                out.append(op.text)
                cursor = (op.x + op.width, op.y)
            else:
                raise TypeError(f"unknown diff operation {op!r}")
        return "".join(out)

    def full_frame(self, ops: Sequence[DiffOp]) -> str:
        """Reset, clear and repaint: used when no valid previous frame exists."""
        return RESET + CLEAR_SCREEN + self.encode(ops)

    # -- terminal modes -----------------------------------------------------

    def clear_screen(self) -> str:
        return RESET + CLEAR_SCREEN

    def reset(self) -> str:
        return RESET

    def enter_alt_screen(self) -> str:
        return ENTER_ALT_SCREEN

    def exit_alt_screen(self) -> str:
        return EXIT_ALT_SCREEN

    def hide_cursor(self) -> str:
        return HIDE_CURSOR

    def show_cursor(self) -> str:
        return SHOW_CURSOR
