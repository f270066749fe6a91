"""Keyboard sequence parsing.

Turns one complete input sequence into a ``(code, modifiers)`` pair.
Handles legacy single bytes, ESC-prefixed meta keys, xterm CSI/SS3 keys
with modifier parameters, ``modifyOtherKeys`` and kitty ``CSI u`` keys.
"""

from __future__ import annotations

import re


# ---------------------------------------------------------------------------
# Key helper object
# ---------------------------------------------------------------------------


class Key:
    """Named key constants and modifier combinators."""

    escape = "escape"
    enter = "enter"
    tab = "tab"
    space = "space"
    backspace = "backspace"
    delete = "delete"
    insert = "insert"
    home = "home"
    end = "end"
    page_up = "pageUp"
    page_down = "pageDown"
    up = "up"
    down = "down"
    left = "left"
    right = "right"

    @staticmethod
    def ctrl(key: str) -> str:
        return f"ctrl+{key}"

    @staticmethod
    def shift(key: str) -> str:
        return f"shift+{key}"

    @staticmethod
    def alt(key: str) -> str:
        return f"alt+{key}"


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MODIFIERS: dict[str, int] = {
    "shift": 1,
    "alt": 2,
    "ctrl": 4,
}

LOCK_MASK = 64 + 128

CODEPOINTS: dict[int, str] = {
    27: "escape",
    9: "tab",
    13: "enter",
    32: "space",
    127: "backspace",
    57414: "enter",  # keypad enter
}

# Final byte of CSI 1;<mod> X / SS3 X sequences
LETTER_KEYS: dict[str, str] = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "H": "home",
    "F": "end",
    "E": "clear",
    "P": "f1",
    "Q": "f2",
    "R": "f3",
    "S": "f4",
}

# Parameter of CSI <n>[;<mod>] ~ sequences
TILDE_KEYS: dict[int, str] = {
    1: "home",
    2: "insert",
    3: "delete",
    4: "end",
    5: "pageUp",
    6: "pageDown",
    7: "home",
    8: "end",
    15: "f5",
    17: "f6",
    18: "f7",
    19: "f8",
    20: "f9",
    21: "f10",
    23: "f11",
    24: "f12",
}

_CSI_LETTER_RE = re.compile(r"^\x1b\[(?:1;(\d+)(?::(\d+))?)?([ABCDEFHPQRS])$")
_SS3_RE = re.compile(r"^\x1bO(\d*)([ABCDEFHPQRS])$")
_CSI_TILDE_RE = re.compile(r"^\x1b\[(\d+)(?:;(\d+)(?::(\d+))?)?~$")
_MODIFY_OTHER_KEYS_RE = re.compile(r"^\x1b\[27;(\d+);(\d+)~$")
_KITTY_CSI_U_RE = re.compile(
    r"^\x1b\[(\d+)(?::(\d*)(?::(\d+))?)?(?:;(\d+)(?::(\d+))?)?u$"
)

_KEY_RELEASE = 3


def decode_modifiers(param: int) -> frozenset[str]:
    """Decode an xterm modifier parameter (``1 + bitmask``)."""
    if param <= 1:
        return frozenset()
    mask = (param - 1) & ~LOCK_MASK
    return frozenset(name for name, bit in MODIFIERS.items() if mask & bit)


def _codepoint_key(cp: int, modifiers: frozenset[str]) -> tuple[str, frozenset[str]] | None:
    name = CODEPOINTS.get(cp)
    if name is not None:
        return name, modifiers
    if cp <= 0 or cp > 0x10FFFF:
        return None
    ch = chr(cp)
    if not ch.isprintable():
        return None
    return ch.lower(), modifiers


def parse_key(data: str) -> tuple[str, frozenset[str]] | None:  # noqa: C901
    """Parse raw terminal input into ``(code, modifiers)``, or ``None``.

    Codes are named keys (``"enter"``, ``"up"``, ``"f5"``) or the
    character itself for printable keys.  Kitty key-release reports
    return ``None`` so that only presses and repeats become events.
    """
    if not data:
        return None

    # --- Single bytes ---
    if len(data) == 1:
        if data in ("\r", "\n"):
            return "enter", frozenset()
        if data == "\t":
            return "tab", frozenset()
        if data in ("\x7f", "\x08"):
            return "backspace", frozenset()
        if data == "\x1b":
            return "escape", frozenset()
        if data == "\x00":
            return "space", frozenset({"ctrl"})
        if 1 <= ord(data) <= 26:
            return chr(ord(data) + ord("a") - 1), frozenset({"ctrl"})
        if data == " ":
            return "space", frozenset()
        if data.isprintable():
            return data, frozenset()
        return None

    if data == "\x1b[Z":
        return "tab", frozenset({"shift"})

    # --- CSI letter keys: ESC[A, ESC[1;5A ---
    m = _CSI_LETTER_RE.match(data)
    if m:
        if m.group(2) and int(m.group(2)) == _KEY_RELEASE:
            return None
        mods = decode_modifiers(int(m.group(1))) if m.group(1) else frozenset()
        return LETTER_KEYS[m.group(3)], mods

    # --- SS3 keys: ESCOA, ESCO5P ---
    m = _SS3_RE.match(data)
    if m:
        mods = decode_modifiers(int(m.group(1))) if m.group(1) else frozenset()
        return LETTER_KEYS[m.group(2)], mods

    # --- modifyOtherKeys: CSI 27;modifier;keycode ~ ---
    m = _MODIFY_OTHER_KEYS_RE.match(data)
    if m:
        return _codepoint_key(int(m.group(2)), decode_modifiers(int(m.group(1))))

    # --- Tilde keys: ESC[3~, ESC[5;5~ ---
    m = _CSI_TILDE_RE.match(data)
    if m:
        name = TILDE_KEYS.get(int(m.group(1)))
        if name is None:
            return None
        if m.group(3) and int(m.group(3)) == _KEY_RELEASE:
            return None
        mods = decode_modifiers(int(m.group(2))) if m.group(2) else frozenset()
        return name, mods

    # --- Kitty CSI u ---
    m = _KITTY_CSI_U_RE.match(data)
    if m:
        if m.group(5) and int(m.group(5)) == _KEY_RELEASE:
            return None
        mods = decode_modifiers(int(m.group(4))) if m.group(4) else frozenset()
        return _codepoint_key(int(m.group(1)), mods)

    # --- Alt + key (ESC prefix) ---
    if len(data) == 2 and data[0] == "\x1b":
        inner = parse_key(data[1])
        if inner is None:
            return None
        code, mods = inner
        if data[1].isupper():
            return data[1].lower(), mods | {"alt", "shift"}
        return code, mods | {"alt"}

    return None
