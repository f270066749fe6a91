"""Runtime configuration for an :class:`~celltui.app.App`."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Callable, Mapping, TypeVar

from celltui.capabilities import ColorDepth

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _parse_seconds(value: str) -> float:
    seconds = float(value)
    if seconds < 0:
        raise ValueError(f"negative duration: {value!r}")
    return seconds


@dataclass
class RenderConfig:
    """Render loop configuration.

    ``color_depth`` of ``None`` means "detect from the environment".
    """

    input_timeout: float = 0.05
    frame_delay: float = 0.0
    color_depth: ColorDepth | None = None
    alt_screen: bool = True
    mouse: bool = False
    exit_on_ctrl_c: bool = True
    write_log: str = ""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RenderConfig:
        """Build a config from ``CELLTUI_*`` environment variables.

        Malformed values are logged and replaced by the default.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def read(name: str, parse: Callable[[str], T], default: T) -> T:
            raw = env.get(name)
            if raw is None or raw == "":
                return default
            try:
                return parse(raw)
            except ValueError:
                logger.warning("ignoring invalid %s=%r", name, raw)
                return default

        return cls(
            input_timeout=read("CELLTUI_INPUT_TIMEOUT", _parse_seconds, defaults.input_timeout),
            frame_delay=read("CELLTUI_FRAME_DELAY", _parse_seconds, defaults.frame_delay),
            color_depth=read("CELLTUI_COLOR_DEPTH", ColorDepth.parse, defaults.color_depth),
            alt_screen=read("CELLTUI_ALT_SCREEN", _parse_bool, defaults.alt_screen),
            mouse=read("CELLTUI_MOUSE", _parse_bool, defaults.mouse),
            exit_on_ctrl_c=defaults.exit_on_ctrl_c,
            write_log=env.get("CELLTUI_WRITE_LOG", defaults.write_log),
        )
