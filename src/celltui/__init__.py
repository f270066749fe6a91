"""celltui: Terminal UI framework with a cell-grid diff renderer."""

# Application runner
from celltui.app import App

# Screen model
from celltui.buffer import ScreenBuffer
from celltui.canvas import Canvas
from celltui.cell import BLANK, DEFAULT_STYLE, RGB, Attr, Cell, Color, Style, make_cell

# Terminal capabilities and configuration
from celltui.capabilities import (
    ColorDepth,
    TerminalCapabilities,
    detect_capabilities,
    get_capabilities,
    reset_capabilities_cache,
)
from celltui.config import RenderConfig

# Components and elements
from celltui.component import Component
from celltui.element import Element, ElementKind, box, element, text
from celltui.host import Box, Text

# Diffing and the wire format
from celltui.diff import (
    DiffOp,
    MoveCursor,
    SetStyle,
    WriteRun,
    cells_touched,
    diff_buffers,
    full_frame_ops,
)
from celltui.emitter import EscapeEmitter
from celltui.interpreter import VirtualTerminalInterpreter

# Errors
from celltui.errors import (
    CellTuiError,
    DimensionMismatchError,
    DuplicateKeyError,
    FlushError,
    IncompleteSequenceError,
    OutOfBoundsError,
    ParseError,
    TerminalRestoreError,
)

# Events and input
from celltui.dispatcher import EventDispatcher, SubscriberRegistry
from celltui.events import Event, KeyEvent, MouseEvent, PasteEvent, ResizeEvent
from celltui.focus import FocusRing
from celltui.input import DroppedSequence, InputDecoder
from celltui.keys import Key, parse_key

# Tree and frames
from celltui.instance import Instance, InstanceTree
from celltui.layout import LayoutProps, Rect
from celltui.reconciler import Reconciler
from celltui.renderer import FramePipeline, FrameState
from celltui.scheduler import DirtyToken, FrameScheduler

# Terminal interface and implementations
from celltui.terminal import ProcessTerminal, Terminal

# Utilities
from celltui.utils import iter_clusters, visible_width, wrap_plain_text

__all__ = [
    # App
    "App",
    # Screen model
    "ScreenBuffer",
    "Canvas",
    "BLANK",
    "DEFAULT_STYLE",
    "RGB",
    "Attr",
    "Cell",
    "Color",
    "Style",
    "make_cell",
    # Capabilities / config
    "ColorDepth",
    "TerminalCapabilities",
    "detect_capabilities",
    "get_capabilities",
    "reset_capabilities_cache",
    "RenderConfig",
    # Components
    "Component",
    "Element",
    "ElementKind",
    "box",
    "element",
    "text",
    "Box",
    "Text",
    # Diff / wire format
    "DiffOp",
    "MoveCursor",
    "SetStyle",
    "WriteRun",
    "cells_touched",
    "diff_buffers",
    "full_frame_ops",
    "EscapeEmitter",
    "VirtualTerminalInterpreter",
    # Errors
    "CellTuiError",
    "DimensionMismatchError",
    "DuplicateKeyError",
    "FlushError",
    "IncompleteSequenceError",
    "OutOfBoundsError",
    "ParseError",
    "TerminalRestoreError",
    # Events
    "EventDispatcher",
    "SubscriberRegistry",
    "Event",
    "KeyEvent",
    "MouseEvent",
    "PasteEvent",
    "ResizeEvent",
    "FocusRing",
    "DroppedSequence",
    "InputDecoder",
    "Key",
    "parse_key",
    # Tree / frames
    "Instance",
    "InstanceTree",
    "LayoutProps",
    "Rect",
    "Reconciler",
    "FramePipeline",
    "FrameState",
    "DirtyToken",
    "FrameScheduler",
    # Terminal
    "ProcessTerminal",
    "Terminal",
    # Utilities
    "iter_clusters",
    "visible_width",
    "wrap_plain_text",
]
