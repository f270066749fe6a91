"""Virtual terminal interpreter: replay emitted bytes onto a screen buffer.

This is the consumer half of the wire format produced by
:mod:`celltui.emitter`.  Feeding it the bytes of a diff, starting from the
previous frame, reconstructs the current frame exactly; that equivalence
is what the test-suite leans on to check the diff engine and the emitter
together.

The interpreter is deliberately strict.  Anything outside the emitted
vocabulary raises :class:`ParseError` carrying the byte offset (counted
from the first byte ever fed) where the offending sequence begins:

* control bytes other than ESC, and escapes that are not CSI
* CSI sequences with an unknown final byte or parameters
* cursor positions outside the grid
* invalid UTF-8, zero-width clusters and writes past the right margin

Input may arrive in arbitrary chunks.  An escape sequence or UTF-8
character cut by a chunk boundary is held until the next :meth:`feed`;
:meth:`finish` raises if anything is still held.  A grapheme cluster split
across two chunks is treated as two clusters.
"""

from __future__ import annotations

import logging

from celltui.buffer import ScreenBuffer
from celltui.cell import DEFAULT_STYLE, RGB, Attr, Cell, Color, Style
from celltui.errors import ParseError
from celltui.utils import iter_clusters

logger = logging.getLogger(__name__)

ESC = 0x1B
_LBRACKET = ord("[")

_SGR_ATTR_ON: dict[int, Attr] = {
    1: Attr.BOLD,
    2: Attr.DIM,
    3: Attr.ITALIC,
    4: Attr.UNDERLINE,
    5: Attr.BLINK,
    7: Attr.REVERSE,
    9: Attr.STRIKE,
}

_SGR_ATTR_OFF: dict[int, Attr] = {
    22: Attr.BOLD | Attr.DIM,
    23: Attr.ITALIC,
    24: Attr.UNDERLINE,
    25: Attr.BLINK,
    27: Attr.REVERSE,
    29: Attr.STRIKE,
}

ALT_SCREEN_MODE = "1049"
CURSOR_MODE = "25"


class VirtualTerminalInterpreter:
    """A strict, minimal VT that maintains a :class:`ScreenBuffer`."""

    def __init__(self, width: int, height: int) -> None:
        self.buffer = ScreenBuffer(width, height)
        self.pen: Style = DEFAULT_STYLE
        self.cursor_visible = True
        self.alt_screen = False
        self.modes: set[str] = set()
        self._saved_main: ScreenBuffer | None = None
        self._pending = b""
        self._consumed = 0

    @classmethod
    def from_buffer(cls, buffer: ScreenBuffer) -> VirtualTerminalInterpreter:
        """Start from a copy of *buffer*, e.g. the previous frame."""
        interp = cls(buffer.width, buffer.height)
        interp.buffer = buffer.clone_as_snapshot()
        return interp

    # -- properties ---------------------------------------------------------

    @property
    def cursor(self) -> tuple[int, int]:
        return self.buffer.cursor

    @property
    def width(self) -> int:
        return self.buffer.width

    @property
    def height(self) -> int:
        return self.buffer.height

    @property
    def bytes_consumed(self) -> int:
        return self._consumed

    @property
    def pending(self) -> bytes:
        return self._pending

    # -- lifecycle ----------------------------------------------------------

    def resize(self, width: int, height: int) -> None:
        """Resize the grid; contents are cleared and the cursor homed."""
        self.buffer.resize(width, height)
        logger.debug("virtual terminal resized to %dx%d", width, height)

    def reset(self) -> None:
        self.buffer.clear()
        self.buffer.cursor = (0, 0)
        self.pen = DEFAULT_STYLE
        self.cursor_visible = True
        self.alt_screen = False
        self.modes.clear()
        self._saved_main = None
        self._pending = b""

    def finish(self) -> None:
        """Assert that the stream ended on a sequence boundary."""
        if self._pending:
            raise ParseError(
                f"truncated input {self._pending!r}", self._consumed
            )

    # -- parsing ------------------------------------------------------------

    def feed(self, data: bytes | str) -> None:
        """Interpret *data*, updating the buffer, cursor and pen."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        buf = self._pending + data
        base = self._consumed
        i = 0
        length = len(buf)

        while i < length:
            byte = buf[i]
            if byte == ESC:
                if i + 1 >= length:
                    break
                if buf[i + 1] != _LBRACKET:
                    raise ParseError("unsupported escape sequence", base + i)
                j = i + 2
                while j < length and 0x30 <= buf[j] <= 0x3F:
                    j += 1
                if j >= length:
                    break
                final = buf[j]
                if not 0x40 <= final <= 0x7E:
                    raise ParseError("malformed CSI sequence", base + i)
                params = buf[i + 2 : j].decode("ascii")
                self._csi(params, chr(final), base + i)
                i = j + 1
            elif byte < 0x20 or byte == 0x7F:
                raise ParseError(f"unexpected control byte 0x{byte:02x}", base + i)
            else:
                j = i
                while j < length and buf[j] >= 0x20 and buf[j] != 0x7F and buf[j] != ESC:
                    j += 1
                consumed = self._text(buf[i:j], base + i, at_end=j == length)
                if consumed < j - i:
                    # Incomplete UTF-8 at the end of the chunk
                    i += consumed
                    break
                i = j

        self._pending = buf[i:]
        self._consumed = base + i

    def _text(self, chunk: bytes, offset: int, *, at_end: bool) -> int:
        """Write a run of printable bytes; return how many were consumed."""
        try:
            text = chunk.decode("utf-8")
        except UnicodeDecodeError as exc:
            truncated = at_end and exc.reason == "unexpected end of data"
            if not truncated:
                raise ParseError("invalid UTF-8", offset + exc.start) from exc
            chunk = chunk[: exc.start]
            text = chunk.decode("utf-8")

        position = offset
        for cluster, w in iter_clusters(text):
            if w == 0:
                raise ParseError(f"zero-width cluster {cluster!r}", position)
            x, y = self.buffer.cursor
            if x + w > self.buffer.width:
                raise ParseError("write past the right margin", position)
            self.buffer.set_cell(x, y, Cell(cluster, self.pen, w))
            self.buffer.cursor = (x + w, y)
            position += len(cluster.encode("utf-8"))
        return len(chunk)

    def _csi(self, params: str, final: str, offset: int) -> None:
        if params.startswith("?"):
            if final not in "hl":
                raise ParseError(f"unsupported private sequence ?{params[1:]}{final}", offset)
            self._private_mode(params[1:], final == "h", offset)
        elif final in "Hf":
            self._cursor_position(params, offset)
        elif final == "C":
            n = _int_param(params or "1", offset) or 1
            x, y = self.buffer.cursor
            self.buffer.cursor = (min(x + n, self.buffer.width - 1), y)
        elif final == "m":
            self._sgr(params, offset)
        elif final == "J":
            if params != "2":
                raise ParseError(f"unsupported erase mode {params!r}", offset)
            self.buffer.clear()
        else:
            raise ParseError(f"unsupported CSI final byte {final!r}", offset)

    def _cursor_position(self, params: str, offset: int) -> None:
        parts = params.split(";") if params else []
        if len(parts) > 2:
            raise ParseError(f"bad cursor position {params!r}", offset)
        row = _int_param(parts[0], offset) if parts and parts[0] else 1
        col = _int_param(parts[1], offset) if len(parts) > 1 and parts[1] else 1
        row, col = max(row, 1), max(col, 1)
        if row > self.buffer.height or col > self.buffer.width:
            raise ParseError(f"cursor position {row};{col} outside the grid", offset)
        self.buffer.cursor = (col - 1, row - 1)

    def _private_mode(self, mode: str, enable: bool, offset: int) -> None:
        if not mode.isdigit():
            raise ParseError(f"bad private mode {mode!r}", offset)
        if mode == ALT_SCREEN_MODE:
            if enable and not self.alt_screen:
                self._saved_main = self.buffer.clone_as_snapshot()
                self.buffer.clear()
            elif not enable and self.alt_screen:
                if self._saved_main is not None and self._saved_main.size == self.buffer.size:
                    self.buffer = self._saved_main
                else:
                    self.buffer.clear()
                self._saved_main = None
            self.alt_screen = enable
        elif mode == CURSOR_MODE:
            self.cursor_visible = enable
        elif enable:
            self.modes.add(mode)
        else:
            self.modes.discard(mode)

    def _sgr(self, params: str, offset: int) -> None:
        codes = [_int_param(p, offset) if p else 0 for p in params.split(";")]
        fg, bg, attrs = self.pen.fg, self.pen.bg, self.pen.attrs
        i = 0
        while i < len(codes):
            code = codes[i]
            i += 1
            if code == 0:
                fg, bg, attrs = None, None, Attr.NONE
            elif code in _SGR_ATTR_ON:
                attrs |= _SGR_ATTR_ON[code]
            elif code in _SGR_ATTR_OFF:
                attrs &= ~_SGR_ATTR_OFF[code]
            elif 30 <= code <= 37:
                fg = code - 30
            elif code == 39:
                fg = None
            elif 40 <= code <= 47:
                bg = code - 40
            elif code == 49:
                bg = None
            elif 90 <= code <= 97:
                fg = code - 90 + 8
            elif 100 <= code <= 107:
                bg = code - 100 + 8
            elif code in (38, 48):
                color, i = _extended_color(codes, i, offset)
                if code == 38:
                    fg = color
                else:
                    bg = color
            else:
                raise ParseError(f"unsupported SGR code {code}", offset)
        self.pen = Style(fg, bg, attrs)


def _int_param(value: str, offset: int) -> int:
    if not value.isdigit():
        raise ParseError(f"bad numeric parameter {value!r}", offset)
    return int(value)


def _extended_color(codes: list[int], i: int, offset: int) -> tuple[Color, int]:
    """Parse the tail of an SGR 38/48; return the color and next index."""
    if i < len(codes) and codes[i] == 5 and i + 1 < len(codes):
        index = codes[i + 1]
        if index > 255:
            raise ParseError(f"palette index {index} out of range", offset)
        return index, i + 2
    if i < len(codes) and codes[i] == 2 and i + 3 < len(codes):
        r, g, b = codes[i + 1 : i + 4]
        if max(r, g, b) > 255:
            raise ParseError("RGB component out of range", offset)
        return RGB(r, g, b), i + 4
    raise ParseError("truncated extended color", offset)
