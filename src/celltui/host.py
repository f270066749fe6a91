"""Host primitives backing ``text`` and ``box`` elements."""

from __future__ import annotations

from celltui.canvas import Canvas
from celltui.cell import DEFAULT_STYLE
from celltui.component import Component
from celltui.utils import visible_width, wrap_plain_text


class Text(Component):
    """Plain text, optionally wrapped to the available width."""

    def _lines(self, width: int) -> list[str]:
        content: str = self.props.get("text", "")
        if self.props.get("wrap"):
            return wrap_plain_text(content, width)
        return content.split("\n")

    def measure(self, max_width: int, max_height: int) -> tuple[int, int]:
        lines = self._lines(max_width)
        if not lines:
            return (0, 0)
        return (max(visible_width(line) for line in lines), len(lines))

    def draw(self, canvas: Canvas) -> None:
        style = self.props.get("style", DEFAULT_STYLE)
        align = self.props.get("align", "left")
        for row, line in enumerate(self._lines(canvas.width)):
            if row >= canvas.height:
                break
            x = 0
            if align != "left":
                slack = max(0, canvas.width - visible_width(line))
                x = slack if align == "right" else slack // 2
            canvas.put_text(x, row, line, style)


class Box(Component):
    """A container that fills its bounds and may draw a border."""

    def insets(self) -> tuple[int, int, int, int]:
        p = self.layout.padding + (1 if self.props.get("border") else 0)
        return (p, p, p, p)

    def draw(self, canvas: Canvas) -> None:
        style = self.props.get("style", DEFAULT_STYLE)
        if not style.is_default:
            canvas.fill(style)
        if self.props.get("border"):
            border_style = self.props.get("border_style") or style
            canvas.draw_border(border_style)
            title = self.props.get("title", "")
            if title and canvas.width > 4:
                canvas.put_text(2, 0, f" {title} "[: canvas.width - 4], border_style)
