"""Terminal abstraction for raw-mode stdin/stdout interaction.

Provides a ``Terminal`` protocol and a concrete ``ProcessTerminal``
implementation that manages raw mode, bracketed paste, optional SGR mouse
reporting and SIGWINCH-based resize detection.  Everything that draws goes
through :meth:`Terminal.write`; input is delivered as raw bytes so the
input decoder sees exactly what the terminal sent.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
import termios
import tty
from typing import Callable, Protocol

from celltui.errors import TerminalRestoreError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# ANSI escape constants
# ---------------------------------------------------------------------------

_BRACKETED_PASTE_ENABLE = "\x1b[?2004h"
_BRACKETED_PASTE_DISABLE = "\x1b[?2004l"

# Button events plus SGR extended coordinates
_MOUSE_ENABLE = "\x1b[?1000h\x1b[?1006h"
_MOUSE_DISABLE = "\x1b[?1006l\x1b[?1000l"


# ---------------------------------------------------------------------------
# Terminal protocol
# ---------------------------------------------------------------------------


class Terminal(Protocol):
    """Interface for terminal I/O operations."""

    def start(
        self,
        on_input: Callable[[bytes], None],
        on_resize: Callable[[], None],
    ) -> None: ...

    def stop(self) -> None: ...

    def write(self, data: str) -> None: ...

    @property
    def columns(self) -> int: ...

    @property
    def rows(self) -> int: ...


# ---------------------------------------------------------------------------
# ProcessTerminal implementation
# ---------------------------------------------------------------------------


class ProcessTerminal:
    """Concrete terminal implementation backed by ``sys.stdin``/``sys.stdout``.

    Manages raw mode via :mod:`tty` and :mod:`termios`, bracketed paste
    mode, optional mouse reporting and SIGWINCH-based resize detection.
    """

    def __init__(self, *, write_log: str = "", mouse: bool = False) -> None:
        self._was_raw: bool = False
        self._input_handler: Callable[[bytes], None] | None = None
        self._resize_handler: Callable[[], None] | None = None
        self._stdin_reader_active: bool = False
        self._original_termios: list | None = None
        self._prev_sigwinch_handler: signal.Handlers | None = None
        self._write_log_path: str = write_log
        self._mouse = mouse

    # -- properties ---------------------------------------------------------

    @property
    def columns(self) -> int:
        try:
            return os.get_terminal_size(sys.stdout.fileno()).columns
        except (ValueError, OSError):
            return 80

    @property
    def rows(self) -> int:
        try:
            return os.get_terminal_size(sys.stdout.fileno()).lines
        except (ValueError, OSError):
            return 24

    @property
    def was_raw(self) -> bool:
        return self._was_raw

    # -- start / stop -------------------------------------------------------

    def start(
        self,
        on_input: Callable[[bytes], None],
        on_resize: Callable[[], None],
    ) -> None:
        """Enable raw mode, bracketed paste, and begin reading stdin."""
        self._input_handler = on_input
        self._resize_handler = on_resize

        fd = sys.stdin.fileno()

        # Save previous terminal state
        self._original_termios = termios.tcgetattr(fd)
        self._was_raw = _is_raw_mode(fd)

        tty.setraw(fd)

        self.write(_BRACKETED_PASTE_ENABLE)
        if self._mouse:
            self.write(_MOUSE_ENABLE)

        self._prev_sigwinch_handler = signal.getsignal(signal.SIGWINCH)
        signal.signal(signal.SIGWINCH, self._on_sigwinch)

        self._start_stdin_reader()
        logger.debug("terminal started (%dx%d)", self.columns, self.rows)

    def stop(self) -> None:
        """Restore terminal state and clean up all handlers.

        Raises :class:`TerminalRestoreError` if the saved terminal mode
        cannot be reapplied.
        """
        try:
            if self._mouse:
                self._raw_write(_MOUSE_DISABLE)
            self._raw_write(_BRACKETED_PASTE_DISABLE)
        except OSError as exc:
            logger.warning("could not reset terminal modes: %s", exc)

        self._remove_stdin_reader()

        if self._prev_sigwinch_handler is not None:
            signal.signal(signal.SIGWINCH, self._prev_sigwinch_handler)
            self._prev_sigwinch_handler = None

        self._input_handler = None
        self._resize_handler = None

        if self._original_termios is not None:
            saved, self._original_termios = self._original_termios, None
            try:
                termios.tcsetattr(sys.stdin.fileno(), termios.TCSADRAIN, saved)
            except (termios.error, OSError) as exc:
                raise TerminalRestoreError(
                    f"failed to restore terminal mode: {exc}"
                ) from exc

    # -- write --------------------------------------------------------------

    def write(self, data: str) -> None:
        """Write data to stdout and optionally to the write log.

        Errors from stdout propagate; the frame pipeline turns them into
        :class:`~celltui.errors.FlushError`.
        """
        self._raw_write(data)

        if self._write_log_path:
            try:
                with open(self._write_log_path, "a", encoding="utf-8") as f:
                    f.write(data)
            except OSError as exc:
                logger.warning("write log %s disabled: %s", self._write_log_path, exc)
                self._write_log_path = ""

    # -- private: stdin reading --------------------------------------------

    def _start_stdin_reader(self) -> None:
        """Register an asyncio reader on stdin to feed the input handler."""
        if self._stdin_reader_active:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No running event loop -- cannot register reader
            logger.debug("no running event loop; stdin reader not installed")
            return
        loop.add_reader(sys.stdin.fileno(), self._on_stdin_readable)
        self._stdin_reader_active = True

    def _remove_stdin_reader(self) -> None:
        """Remove the asyncio reader from stdin."""
        if not self._stdin_reader_active:
            return
        try:
            loop = asyncio.get_running_loop()
            loop.remove_reader(sys.stdin.fileno())
        except (RuntimeError, ValueError):
            pass
        self._stdin_reader_active = False

    def _on_stdin_readable(self) -> None:
        """Callback invoked by the event loop when stdin has data."""
        try:
            raw = os.read(sys.stdin.fileno(), 4096)
        except OSError as exc:
            logger.warning("stdin read failed: %s", exc)
            return

        if raw and self._input_handler is not None:
            self._input_handler(raw)

    # -- private: SIGWINCH -------------------------------------------------

    def _on_sigwinch(
        self,
        signum: int,
        frame: object,
    ) -> None:
        """Handle terminal resize signals."""
        if self._resize_handler is not None:
            self._resize_handler()

    # -- private: raw write ------------------------------------------------

    def _raw_write(self, data: str) -> None:
        """Write directly to stdout, bypassing buffering."""
        sys.stdout.write(data)
        sys.stdout.flush()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _is_raw_mode(fd: int) -> bool:
    """Heuristic check for whether the terminal fd is already in raw mode.

    Raw mode is characterised by the absence of ICANON and ECHO in the
    local-mode flags.
    """
    try:
        attrs = termios.tcgetattr(fd)
        lflag = attrs[3]  # c_lflag
        return not bool(lflag & (termios.ICANON | termios.ECHO))
    except termios.error:
        return False
