"""Terminal text utilities: grapheme segmentation and column widths.

Every cell in a ``ScreenBuffer`` holds exactly one grapheme cluster, so the
buffer, the drawing helpers and the virtual terminal interpreter all
segment and measure text through the functions here.  Keeping one
measurement routine is what lets the interpreter reconstruct the exact
grid the diff engine was given.
"""

from __future__ import annotations

import unicodedata
from typing import Iterator

import grapheme
import wcwidth as _wcwidth


# ---------------------------------------------------------------------------
# Width cache (capped at 512 entries)
# ---------------------------------------------------------------------------

_width_cache: dict[str, int] = {}
_WIDTH_CACHE_MAX = 512


def _cache_width(key: str, value: int) -> int:
    if len(_width_cache) >= _WIDTH_CACHE_MAX:
        _width_cache.clear()
    _width_cache[key] = value
    return value


# ---------------------------------------------------------------------------
# Grapheme width
# ---------------------------------------------------------------------------


def _grapheme_width(g: str) -> int:
    """Return the terminal display width of a single grapheme cluster.

    Rules:
    1. Zero-width characters (control, combining marks, etc.) -> 0
    2. Emoji (multi-codepoint, contains VS16 U+FE0F, ZWJ sequences, etc.) -> 2
    3. Otherwise delegate to wcwidth for the first meaningful codepoint.
    """
    if not g:
        return 0

    # Single codepoint fast path
    if len(g) == 1:
        cp = ord(g)
        if cp < 0x20 or (0x7F <= cp <= 0x9F):
            return 0
        w = _wcwidth.wcwidth(g)
        return max(w, 0)

    codepoints = list(g)

    for ch in codepoints:
        cp = ord(ch)
        if cp == 0xFE0F:  # VS16
            return 2
        if cp == 0x200D:  # ZWJ
            return 2
        if 0x1F3FB <= cp <= 0x1F3FF:  # Skin tone modifiers
            return 2
        if 0x1F1E6 <= cp <= 0x1F1FF:  # Regional indicators
            return 2

    first_cp = ord(codepoints[0])
    if first_cp >= 0x1F000:
        return 2
    if 0x2600 <= first_cp <= 0x27BF:
        return 2

    cat = unicodedata.category(codepoints[0])
    if cat.startswith("M") or cat == "Cf":
        return 0

    w = _wcwidth.wcwidth(codepoints[0])
    return max(w, 0)


def cluster_width(cluster: str) -> int:
    """Return the column width (0, 1 or 2) of one grapheme cluster."""
    if len(cluster) == 1 and 0x20 <= ord(cluster) <= 0x7E:
        return 1

    cached = _width_cache.get(cluster)
    if cached is not None:
        return cached
    return _cache_width(cluster, min(_grapheme_width(cluster), 2))


# ---------------------------------------------------------------------------
# Segmentation
# ---------------------------------------------------------------------------


def iter_clusters(text: str) -> Iterator[tuple[str, int]]:
    """Yield ``(cluster, width)`` pairs for every grapheme cluster in *text*.

    Zero-width clusters are yielded too; callers decide whether to attach
    or drop them.
    """
    if text.isascii():
        for ch in text:
            yield ch, (1 if 0x20 <= ord(ch) <= 0x7E else 0)
        return

    for g in grapheme.graphemes(text):
        yield g, cluster_width(g)


def is_single_cluster(text: str) -> bool:
    """Return ``True`` if *text* is exactly one grapheme cluster."""
    if not text:
        return False
    if len(text) == 1:
        return True
    return grapheme.length(text) == 1


def visible_width(text: str) -> int:
    """Calculate the visible terminal width of plain *text*.

    Tabs count as 3 columns, matching how ``write_text`` expands them.
    """
    if not text:
        return 0
    text = text.replace("\t", "   ")
    if text.isascii() and text.isprintable():
        return len(text)
    return sum(width for _, width in iter_clusters(text))


def wrap_plain_text(text: str, width: int) -> list[str]:
    """Hard-wrap *text* to *width* columns, honouring existing newlines.

    Wraps at the last space that fits when there is one; otherwise breaks
    mid-word.  Wide glyphs never straddle a line boundary.
    """
    if width <= 0:
        return []

    lines: list[str] = []
    for paragraph in text.replace("\t", "   ").split("\n"):
        current: list[str] = []
        current_width = 0
        last_space: int | None = None

        for cluster, w in iter_clusters(paragraph):
            if current_width + w > width and current:
                if last_space is not None and last_space > 0:
                    head = current[:last_space]
                    tail = current[last_space + 1 :]
                else:
                    head, tail = current, []
                lines.append("".join(head))
                current = tail
                current_width = sum(cluster_width(c) for c in current)
                last_space = None
                if cluster == " " and not current:
                    continue
            if cluster == " ":
                last_space = len(current)
            current.append(cluster)
            current_width += w

        lines.append("".join(current))
    return lines
