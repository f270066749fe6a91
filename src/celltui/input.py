"""Input decoding: raw bytes to structured events.

Terminal input arrives in arbitrary chunks, so escape sequences (arrow
keys, mouse reports) can be split across reads.  :class:`InputDecoder`
buffers partial sequences until they complete.  If a partial sequence is
still incomplete once ``timeout`` has elapsed it is dropped and recorded
as a :class:`DroppedSequence` diagnostic.  A lone ESC byte is the one
exception: it times out into an Escape key press.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Callable, Literal

from celltui.errors import IncompleteSequenceError
from celltui.events import Event, KeyEvent, MouseEvent, PasteEvent, ResizeEvent
from celltui.keys import parse_key

logger = logging.getLogger(__name__)

ESC = "\x1b"
BRACKETED_PASTE_START = "\x1b[200~"
BRACKETED_PASTE_END = "\x1b[201~"

_SGR_MOUSE_RE = re.compile(r"^\x1b\[<(\d+);(\d+);(\d+)([Mm])$")
_RESIZE_REPORT_RE = re.compile(r"^\x1b\[8;(\d+);(\d+)t$")

SequenceStatus = Literal["complete", "incomplete", "not-escape"]


@dataclass(frozen=True)
class DroppedSequence:
    """Diagnostic for input that never became an event."""

    data: bytes
    reason: Literal["timeout", "unrecognized"]
    timestamp: float = field(default_factory=time.monotonic)

    def as_error(self) -> IncompleteSequenceError:
        return IncompleteSequenceError(self.data)


# ---------------------------------------------------------------------------
# Sequence completeness
# ---------------------------------------------------------------------------


def is_complete_sequence(data: str) -> SequenceStatus:
    """Check if a string is a complete escape sequence or needs more data."""
    if not data.startswith(ESC):
        return "not-escape"

    if len(data) == 1:
        return "incomplete"

    after_esc = data[1:]

    # CSI sequences: ESC [
    if after_esc.startswith("["):
        if after_esc.startswith("[M"):
            # X10 mouse: ESC [ M Cb Cx Cy
            return "complete" if len(data) >= 6 else "incomplete"
        return _is_complete_csi_sequence(data)

    # OSC, DCS and APC strings end with ST (or BEL for OSC)
    if after_esc.startswith("]"):
        if data.endswith(f"{ESC}\\") or data.endswith("\x07"):
            return "complete"
        return "incomplete"
    if after_esc.startswith(("P", "_")):
        return "complete" if data.endswith(f"{ESC}\\") else "incomplete"

    # SS3 sequences: ESC O, optionally with a modifier digit
    if after_esc.startswith("O"):
        if len(after_esc) < 2:
            return "incomplete"
        if after_esc[1:].isdigit():
            return "incomplete"
        return "complete"

    # Meta key: ESC followed by a single character
    return "complete"


def _is_complete_csi_sequence(data: str) -> SequenceStatus:
    if len(data) < 3:
        return "incomplete"

    payload = data[2:]
    last_char_code = ord(payload[-1])

    if 0x40 <= last_char_code <= 0x7E:
        if payload.startswith("<"):
            # SGR mouse only ends on M/m after three numeric fields
            if _SGR_MOUSE_RE.match(data):
                return "complete"
            return "incomplete" if payload[-1] not in "Mm" else "complete"
        return "complete"

    return "incomplete"


def extract_complete_sequences(buffer: str) -> tuple[list[str], str]:
    """Split accumulated input into complete sequences.

    Returns ``(sequences, remainder)`` where *remainder* is a trailing
    partial escape sequence.
    """
    sequences: list[str] = []
    pos = 0

    while pos < len(buffer):
        if buffer[pos] != ESC:
            sequences.append(buffer[pos])
            pos += 1
            continue

        remaining = buffer[pos:]
        seq_end = 1
        while seq_end <= len(remaining):
            candidate = remaining[:seq_end]
            if is_complete_sequence(candidate) == "complete":
                sequences.append(candidate)
                pos += seq_end
                break
            seq_end += 1
        else:
            return sequences, remaining

    return sequences, ""


# ---------------------------------------------------------------------------
# Sequence -> event
# ---------------------------------------------------------------------------

_MOUSE_BUTTONS = {0: "left", 1: "middle", 2: "right", 3: "none"}


def _decode_mouse(code: int, x: int, y: int, released: bool) -> MouseEvent:
    modifiers = frozenset(
        name
        for name, bit in (("shift", 4), ("alt", 8), ("ctrl", 16))
        if code & bit
    )
    if code & 64:
        button = "wheel_down" if code & 1 else "wheel_up"
        return MouseEvent(x, y, button, "scroll", modifiers)
    button = _MOUSE_BUTTONS[code & 3]
    if code & 32:
        action = "move"
    elif released or button == "none":
        action = "release"
    else:
        action = "press"
    return MouseEvent(x, y, button, action, modifiers)  # type: ignore[arg-type]


def sequence_to_event(sequence: str) -> Event | None:
    """Map one complete sequence to an event, or ``None`` if unrecognized."""
    m = _SGR_MOUSE_RE.match(sequence)
    if m:
        code, col, row = int(m.group(1)), int(m.group(2)), int(m.group(3))
        return _decode_mouse(code, col - 1, row - 1, m.group(4) == "m")

    if sequence.startswith("\x1b[M") and len(sequence) == 6:
        code, col, row = (ord(c) - 32 for c in sequence[3:])
        return _decode_mouse(code, col - 1, row - 1, False)

    m = _RESIZE_REPORT_RE.match(sequence)
    if m:
        return ResizeEvent(width=int(m.group(2)), height=int(m.group(1)))

    parsed = parse_key(sequence)
    if parsed is None:
        return None
    code, modifiers = parsed
    text = sequence if len(sequence) == 1 and sequence.isprintable() else ""
    return KeyEvent(code, modifiers, text)


# ---------------------------------------------------------------------------
# InputDecoder
# ---------------------------------------------------------------------------


class InputDecoder:
    """Buffers raw input and decodes complete events.

    ``feed`` returns the events completed by a chunk.  Events produced
    later by a timeout (a lone ESC becoming the Escape key) go to the
    callback set with :meth:`on_event`.
    """

    def __init__(
        self,
        *,
        timeout: float = 0.05,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._timeout = timeout
        self._clock = clock
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer: str = ""
        self._pending_since: float | None = None
        self._paste_mode: bool = False
        self._paste_buffer: str = ""
        self._timeout_handle: asyncio.TimerHandle | None = None
        self._on_event: Callable[[Event], None] | None = None
        self.diagnostics: list[DroppedSequence] = []

    def on_event(self, callback: Callable[[Event], None] | None) -> None:
        """Set the callback receiving events produced by timeouts."""
        self._on_event = callback

    # -- properties ---------------------------------------------------------

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def pending(self) -> str:
        """Buffered partial sequence (or unfinished paste)."""
        return self._paste_buffer if self._paste_mode else self._buffer

    @property
    def _held_bytes(self) -> bytes:
        """Bytes of a multi-byte character still waiting for the rest."""
        if self._paste_mode:
            return b""
        return self._utf8.getstate()[0]

    @property
    def deadline(self) -> float | None:
        if self._pending_since is None:
            return None
        return self._pending_since + self._timeout

    # -- feeding ------------------------------------------------------------

    def feed(self, data: bytes | str) -> list[Event]:
        """Feed a chunk of input and return the events it completes."""
        self._cancel_timer()
        text = self._utf8.decode(data) if isinstance(data, bytes) else data
        events: list[Event] = []
        self._process(text, events)

        if self._buffer or self._held_bytes:
            if self._pending_since is None:
                self._pending_since = self._clock()
            self._start_timer()
        else:
            self._pending_since = None
        return events

    def _process(self, text: str, events: list[Event]) -> None:
        if self._paste_mode:
            self._paste_buffer += text
            self._finish_paste(events)
            return

        self._buffer += text

        start_index = self._buffer.find(BRACKETED_PASTE_START)
        if start_index != -1:
            before, after = (
                self._buffer[:start_index],
                self._buffer[start_index + len(BRACKETED_PASTE_START) :],
            )
            sequences, _ = extract_complete_sequences(before)
            self._emit_sequences(sequences, events)
            self._buffer = ""
            self._paste_mode = True
            self._paste_buffer = after
            self._finish_paste(events)
            return

        sequences, remainder = extract_complete_sequences(self._buffer)
        self._buffer = remainder
        self._emit_sequences(sequences, events)

    def _finish_paste(self, events: list[Event]) -> None:
        end_index = self._paste_buffer.find(BRACKETED_PASTE_END)
        if end_index == -1:
            return
        content = self._paste_buffer[:end_index]
        remaining = self._paste_buffer[end_index + len(BRACKETED_PASTE_END) :]
        self._paste_mode = False
        self._paste_buffer = ""
        events.append(PasteEvent(content))
        if remaining:
            self._process(remaining, events)

    def _emit_sequences(self, sequences: list[str], events: list[Event]) -> None:
        for sequence in sequences:
            event = sequence_to_event(sequence)
            if event is None:
                self._drop(sequence, "unrecognized")
            else:
                events.append(event)

    def _drop(
        self, sequence: str, reason: Literal["timeout", "unrecognized"], held: bytes = b""
    ) -> DroppedSequence:
        dropped = DroppedSequence(sequence.encode("utf-8", "replace") + held, reason)
        self.diagnostics.append(dropped)
        if reason == "timeout":
            logger.warning("dropped incomplete input sequence %r", dropped.data)
        else:
            logger.debug("ignored unrecognized input sequence %r", dropped.data)
        return dropped

    # -- timeouts -----------------------------------------------------------

    def expire(self, now: float | None = None) -> list[Event]:
        """Resolve a partial sequence whose timeout has elapsed.

        A lone ESC becomes an Escape key event; anything longer, including
        the leading bytes of an unfinished UTF-8 character, is dropped and
        recorded in ``diagnostics``.  Returns the events produced.
        """
        deadline = self.deadline
        held = self._held_bytes
        if not (self._buffer or held) or deadline is None:
            return []
        now = self._clock() if now is None else now
        if now < deadline:
            return []

        self._cancel_timer()
        stale = self._buffer
        self._buffer = ""
        self._pending_since = None
        if held:
            self._utf8.reset()

        if stale == ESC and not held:
            return [KeyEvent("escape")]
        self._drop(stale, "timeout", held)
        return []

    def _start_timer(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop -- the owner calls expire() itself
            return
        delay = max(0.0, (self.deadline or 0.0) - self._clock())
        self._timeout_handle = loop.call_later(delay, self._on_timeout)

    def _cancel_timer(self) -> None:
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None

    def _on_timeout(self) -> None:
        self._timeout_handle = None
        deadline = self.deadline
        if deadline is None:
            return
        # The loop may fire a hair before the deadline on the monotonic clock
        for event in self.expire(now=deadline):
            if self._on_event is not None:
                self._on_event(event)

    def reset(self) -> None:
        """Discard all buffered input."""
        self._cancel_timer()
        self._buffer = ""
        self._pending_since = None
        self._paste_mode = False
        self._paste_buffer = ""
        self._utf8.reset()
