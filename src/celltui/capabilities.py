"""Terminal capability descriptor and environment-based detection."""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass
from typing import Mapping


class ColorDepth(enum.Enum):
    TRUECOLOR = "truecolor"
    ANSI256 = "256"
    ANSI8 = "8"

    @classmethod
    def parse(cls, value: str) -> ColorDepth:
        normalized = value.strip().lower()
        aliases = {"24bit": "truecolor", "256color": "256", "8color": "8", "16": "8"}
        return cls(aliases.get(normalized, normalized))


@dataclass(frozen=True)
class TerminalCapabilities:
    color_depth: ColorDepth = ColorDepth.TRUECOLOR

    @property
    def true_color(self) -> bool:
        return self.color_depth is ColorDepth.TRUECOLOR


_cached_capabilities: TerminalCapabilities | None = None

_TRUECOLOR_PROGRAMS = ("kitty", "ghostty", "wezterm", "iterm.app", "vscode", "alacritty")


def detect_capabilities(environ: Mapping[str, str] | None = None) -> TerminalCapabilities:
    env = os.environ if environ is None else environ
    term_program = env.get("TERM_PROGRAM", "").lower()
    term = env.get("TERM", "").lower()
    color_term = env.get("COLORTERM", "").lower()

    if color_term in ("truecolor", "24bit"):
        return TerminalCapabilities(ColorDepth.TRUECOLOR)

    if term_program in _TRUECOLOR_PROGRAMS or env.get("KITTY_WINDOW_ID") or env.get("WEZTERM_PANE"):
        return TerminalCapabilities(ColorDepth.TRUECOLOR)

    if "ghostty" in term or "kitty" in term or term.endswith("-direct"):
        return TerminalCapabilities(ColorDepth.TRUECOLOR)

    if "256color" in term:
        return TerminalCapabilities(ColorDepth.ANSI256)

    return TerminalCapabilities(ColorDepth.ANSI8)


def get_capabilities() -> TerminalCapabilities:
    global _cached_capabilities
    if _cached_capabilities is None:
        _cached_capabilities = detect_capabilities()
    return _cached_capabilities


def reset_capabilities_cache() -> None:
    global _cached_capabilities
    _cached_capabilities = None
