"""Application runner: wires terminal, input, reconciler and frame pipeline.

:class:`App` is the single place where the pieces meet.  Terminal input is
decoded into events and dispatched synchronously in arrival order; state
changes made by handlers mark instances dirty, and the scheduler turns
those marks into frames on the event loop.
"""

from __future__ import annotations

import asyncio
import logging

from celltui.capabilities import TerminalCapabilities, get_capabilities
from celltui.config import RenderConfig
from celltui.dispatcher import EventDispatcher, SubscriberRegistry
from celltui.element import Element
from celltui.emitter import EscapeEmitter
from celltui.errors import FlushError, TerminalRestoreError
from celltui.events import Event, KeyEvent, ResizeEvent
from celltui.focus import FocusRing
from celltui.input import InputDecoder
from celltui.instance import InstanceTree
from celltui.keys import Key
from celltui.reconciler import Reconciler
from celltui.renderer import FramePipeline
from celltui.scheduler import FrameScheduler
from celltui.terminal import ProcessTerminal, Terminal

logger = logging.getLogger(__name__)


class App:
    """Runs an element tree against a terminal until shutdown."""

    def __init__(
        self,
        root: Element,
        *,
        terminal: Terminal | None = None,
        config: RenderConfig | None = None,
        capabilities: TerminalCapabilities | None = None,
    ) -> None:
        self.config = config if config is not None else RenderConfig.from_env()
        self.terminal: Terminal = terminal or ProcessTerminal(
            write_log=self.config.write_log, mouse=self.config.mouse
        )
        if capabilities is None:
            if self.config.color_depth is not None:
                capabilities = TerminalCapabilities(self.config.color_depth)
            else:
                capabilities = get_capabilities()
        self.capabilities = capabilities

        self.tree = InstanceTree()
        self.registry = SubscriberRegistry()
        self.focus = FocusRing()
        self.scheduler = FrameScheduler(delay=self.config.frame_delay)
        self.reconciler = Reconciler(
            self.tree, registry=self.registry, focus=self.focus, scheduler=self.scheduler
        )
        self.emitter = EscapeEmitter(capabilities)
        self.pipeline = FramePipeline(
            self.terminal, self.reconciler, self.scheduler, self.emitter
        )
        self.dispatcher = EventDispatcher(self.tree, self.registry, self.focus)
        self.decoder = InputDecoder(timeout=self.config.input_timeout)

        self.decoder.on_event(self._dispatch)
        self.scheduler.set_callback(self._on_frame)

        self._root_element = root
        self._started = False
        self._closed = False
        self._done: asyncio.Event | None = None
        self._error: FlushError | None = None

    # -- lifecycle ----------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._started and not self._closed

    @property
    def error(self) -> FlushError | None:
        return self._error

    def start(self) -> None:
        """Take over the terminal and mount the root element."""
        if self._started:
            return
        self._started = True
        self.terminal.start(self.handle_input, self.handle_resize)
        setup = self.emitter.hide_cursor()
        if self.config.alt_screen:
            setup = self.emitter.enter_alt_screen() + setup
        self.terminal.write(setup)
        self.pipeline.mount(self._root_element)
        logger.info("app started at %dx%d", *self.pipeline.size)

    def render(self) -> None:
        """Render the pending frame now (for callers without an event loop)."""
        self.pipeline.render_pending()

    async def run(self) -> None:
        """Start, process events until :meth:`request_shutdown`, then clean up.

        A frame that could not be written ends the run and is re-raised as
        :class:`FlushError` once the terminal has been restored.
        """
        self._done = asyncio.Event()
        self.start()
        try:
            await self._done.wait()
        finally:
            self.shutdown()
        if self._error is not None:
            raise self._error

    def request_shutdown(self) -> None:
        logger.debug("shutdown requested")
        if self._done is not None:
            self._done.set()

    def shutdown(self) -> None:
        """Flush the last frame, dispose the tree and restore the terminal."""
        if self._closed or not self._started:
            return
        self._closed = True
        try:
            try:
                self.pipeline.shutdown()
            except FlushError as exc:
                logger.error("final frame could not be written: %s", exc)
                self._error = self._error or exc
            teardown = self.emitter.reset() + self.emitter.show_cursor()
            if self.config.alt_screen:
                teardown += self.emitter.exit_alt_screen()
            try:
                self.terminal.write(teardown)
            except OSError as exc:
                logger.warning("could not reset terminal output: %s", exc)
        finally:
            self.decoder.reset()
            try:
                self.terminal.stop()
            except TerminalRestoreError:
                logger.exception("terminal mode was not restored")
                raise
        logger.info("app stopped")

    # -- input --------------------------------------------------------------

    def handle_input(self, data: bytes) -> None:
        """Decode *data* and dispatch the resulting events in order."""
        if self._closed:
            return
        for event in self.decoder.feed(data):
            self._dispatch(event)

    def handle_resize(self) -> None:
        self._dispatch(ResizeEvent(self.terminal.columns, self.terminal.rows))

    def _dispatch(self, event: Event) -> None:
        if isinstance(event, ResizeEvent):
            self.pipeline.resize(event.width, event.height)

        if self.dispatcher.dispatch(event):
            return

        if isinstance(event, KeyEvent):
            if event.matches(Key.tab):
                self.focus.next()
            elif event.matches(Key.shift(Key.tab)):
                self.focus.prev()
            elif self.config.exit_on_ctrl_c and event.matches(Key.ctrl("c")):
                self.request_shutdown()

    # -- frames -------------------------------------------------------------

    def _on_frame(self) -> None:
        try:
            self.pipeline.render_pending()
        except FlushError as exc:
            self._error = exc
            self.request_shutdown()
