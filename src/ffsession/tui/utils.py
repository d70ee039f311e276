"""Terminal text utilities: width measurement, slicing and wrapping.

Widths are measured per grapheme cluster; ANSI escape sequences are treated as
zero-width and carried along with the text they style.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Callable, Iterator

import grapheme
import wcwidth as _wcwidth

# ---------------------------------------------------------------------------
# ANSI sequences
# ---------------------------------------------------------------------------

_ANSI_RE = re.compile(
    r"\x1b\[[0-9;:?<>]*[@-~]"  # CSI
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"  # OSC
    r"|\x1b_[^\x07\x1b]*(?:\x07|\x1b\\)"  # APC
)
_SGR_RE = re.compile(r"^\x1b\[[0-9;]*m$")

SGR_RESET = "\x1b[0m"


def strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text)


def _tokens(text: str) -> Iterator[tuple[str, int]]:
    """Yield ``(token, width)`` pairs: escape sequences with width 0 and
    grapheme clusters with their display width."""
    pos = 0
    for match in _ANSI_RE.finditer(text):
        if match.start() > pos:
            for g in grapheme.graphemes(text[pos : match.start()]):
                yield g, _grapheme_width(g)
        yield match.group(), 0
        pos = match.end()
    if pos < len(text):
        for g in grapheme.graphemes(text[pos:]):
            yield g, _grapheme_width(g)


# ---------------------------------------------------------------------------
# Widths
# ---------------------------------------------------------------------------

_width_cache: dict[str, int] = {}
_WIDTH_CACHE_MAX = 512


def _grapheme_width(g: str) -> int:
    """Display width of one grapheme cluster."""
    if not g:
        return 0
    if g == "\t":
        return 3
    if len(g) == 1:
        cp = ord(g)
        if cp < 0x20 or 0x7F <= cp <= 0x9F:
            return 0
        return max(_wcwidth.wcwidth(g), 0)

    for ch in g:
        cp = ord(ch)
        # VS16, ZWJ, skin tones and regional indicators mean emoji presentation.
        if cp in (0xFE0F, 0x200D) or 0x1F3FB <= cp <= 0x1F3FF or 0x1F1E6 <= cp <= 0x1F1FF:
            return 2
    first = g[0]
    if ord(first) >= 0x1F000:
        return 2
    if unicodedata.category(first) in ("Mn", "Me", "Mc", "Cf"):
        return 0
    return max(_wcwidth.wcwidth(first), 0)


def visible_width(text: str) -> int:
    """Number of terminal columns *text* occupies."""
    if not text:
        return 0
    stripped = _ANSI_RE.sub("", text) if "\x1b" in text else text
    if stripped.isascii() and stripped.isprintable():
        return len(stripped)
    cached = _width_cache.get(stripped)
    if cached is not None:
        return cached
    total = sum(_grapheme_width(g) for g in grapheme.graphemes(stripped))
    if len(_width_cache) >= _WIDTH_CACHE_MAX:
        _width_cache.clear()
    _width_cache[stripped] = total
    return total


# ---------------------------------------------------------------------------
# Truncation / padding / slicing
# ---------------------------------------------------------------------------


def truncate_to_width(
    text: str,
    max_width: int,
    ellipsis: str = "...",
    pad: bool = False,
) -> str:
    """Fit *text* into *max_width* columns, appending *ellipsis* when cut."""
    if max_width <= 0:
        return ""
    width = visible_width(text)
    if width <= max_width:
        return text + " " * (max_width - width) if pad else text

    target = max_width - visible_width(ellipsis)
    if target <= 0:
        return slice_by_column(ellipsis, 0, max_width)
    result = slice_by_column(text, 0, target)
    if "\x1b" in result:
        result += SGR_RESET
    result += ellipsis
    if pad:
        result += " " * max(0, max_width - visible_width(result))
    return result


def pad_to_width(text: str, width: int) -> str:
    """Right-pad *text* with spaces up to *width* columns (never truncates)."""
    missing = width - visible_width(text)
    return text + " " * missing if missing > 0 else text


def slice_by_column(line: str, start_col: int, length: int) -> str:
    """Return the columns ``[start_col, start_col + length)`` of *line*.

    Wide characters straddling either edge are replaced by spaces. SGR codes
    seen before *start_col* are replayed at the start of the slice so the
    slice keeps its styling.
    """
    if length <= 0:
        return ""
    end_col = start_col + length
    out: list[str] = []
    pending_sgr: list[str] = []
    col = 0
    for token, width in _tokens(line):
        if width == 0:
            if col < start_col:
                if _SGR_RE.match(token):
                    if token == SGR_RESET or token == "\x1b[m":
                        pending_sgr.clear()
                    else:
                        pending_sgr.append(token)
            elif col <= end_col:
                out.append(token)
            continue
        if col >= end_col:
            break
        next_col = col + width
        if next_col <= start_col:
            col = next_col
            continue
        if col < start_col or next_col > end_col:
            # Partially covered wide character.
            visible = min(next_col, end_col) - max(col, start_col)
            out.append(" " * visible)
        else:
            out.append(token)
        col = next_col
    if pending_sgr:
        out.insert(0, "".join(pending_sgr))
    return "".join(out)


def splice_line(
    base: str,
    insert: str,
    col: int,
    insert_width: int,
    total_width: int,
) -> str:
    """Overwrite columns ``[col, col + insert_width)`` of *base* with *insert*.

    *insert* is padded to *insert_width*; *base* is padded so the inserted
    text lands at *col* even when *base* is shorter.
    """
    before = slice_by_column(base, 0, col)
    before = pad_to_width(before, col)
    if "\x1b" in before:
        before += SGR_RESET
    inserted = slice_by_column(insert, 0, insert_width)
    inserted = pad_to_width(inserted, insert_width)
    if "\x1b" in inserted:
        inserted += SGR_RESET
    after_start = col + insert_width
    after = ""
    if after_start < total_width:
        after = slice_by_column(base, after_start, total_width - after_start)
    return before + inserted + after


# ---------------------------------------------------------------------------
# Wrapping
# ---------------------------------------------------------------------------


def naive_wrap(line: str, width: int) -> list[str]:
    """Cut *line* into rows of *width* code points.

    Cheap and layout-free: wide glyphs and escape sequences are not
    accounted for.
    """
    width = max(1, width)
    if not line:
        return [""]
    return [line[ix : ix + width] for ix in range(0, len(line), width)]


def wrap_line(line: str, width: int) -> list[str]:
    """Word-wrap one physical line to *width* columns.

    Breaks after the last space that fits; words wider than *width* are cut
    hard. Whitespace is preserved; a space that still fits stays on the upper
    row.
    """
    width = max(1, width)
    if visible_width(line) <= width:
        return [line]

    rows: list[str] = []
    current: list[str] = []
    current_width = 0
    # Index into ``current`` just past the most recent space, and the width
    # of the row up to that point.
    break_at = -1
    break_width = 0

    for token, token_width in _tokens(line):
        if token_width == 0:
            current.append(token)
            continue
        if current_width + token_width > width and current_width > 0:
            if break_at > 0 and token != " ":
                rows.append("".join(current[:break_at]))
                current = current[break_at:]
                current_width -= break_width
                if current_width + token_width > width and current_width > 0:
                    # The carried word still leaves no room for a wide glyph.
                    rows.append("".join(current))
                    current = []
                    current_width = 0
            else:
                rows.append("".join(current))
                current = []
                current_width = 0
            break_at = -1
            break_width = 0
        current.append(token)
        current_width += token_width
        if token == " ":
            break_at = len(current)
            break_width = current_width
    rows.append("".join(current))
    return rows


def wrap_text(
    text: str,
    width: int,
    should_stop: Callable[[], bool] | None = None,
) -> list[str]:
    """Word-wrap every line of *text* to *width* columns.

    *should_stop* is polled between physical lines; when it returns ``True``
    wrapping stops early and the partial result is returned.
    """
    result: list[str] = []
    for index, line in enumerate(text.split("\n")):
        if should_stop is not None and index % 64 == 0 and should_stop():
            break
        result.extend(wrap_line(line, width))
    return result
