"""SGR mouse reporting: terminal mode codes and a stateless event decoder.

Terminals in SGR extended mode report pointer activity on stdin as
``ESC [ < Cb ; Px ; Py (M|m)`` where ``Cb`` is a decimal button code, ``Px``
and ``Py`` are 1-based cell coordinates and the final byte is ``M`` for a
press (or a wheel step) and ``m`` for a release.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal, Union

# ---------------------------------------------------------------------------
# Mode switching sequences (written to stdout)
# ---------------------------------------------------------------------------

MOUSE_BUTTON_ON = "\x1b[?1000h"
MOUSE_BUTTON_OFF = "\x1b[?1000l"
MOUSE_DRAG_ON = "\x1b[?1002h"
MOUSE_DRAG_OFF = "\x1b[?1002l"
MOUSE_MOTION_ON = "\x1b[?1003h"
MOUSE_MOTION_OFF = "\x1b[?1003l"
MOUSE_UTF8_ON = "\x1b[?1005h"
MOUSE_UTF8_OFF = "\x1b[?1005l"
MOUSE_SGR_ON = "\x1b[?1006h"
MOUSE_SGR_OFF = "\x1b[?1006l"
MOUSE_URXVT_ON = "\x1b[?1015h"
MOUSE_URXVT_OFF = "\x1b[?1015l"

ENABLE_MOUSE = MOUSE_BUTTON_ON + MOUSE_MOTION_ON + MOUSE_URXVT_ON + MOUSE_SGR_ON
DISABLE_MOUSE = MOUSE_MOTION_OFF + MOUSE_SGR_OFF + MOUSE_URXVT_OFF + MOUSE_BUTTON_OFF

# ---------------------------------------------------------------------------
# Response codes (read from stdin)
# ---------------------------------------------------------------------------

SGR_MOUSE_PREFIX = "\x1b[<"

# Bits of the button code that select the event class.
EVENT_MASK = 0b1100011

CTRL_FLAG = 16
ALT_FLAG = 8

SCROLL_UP = 64
SCROLL_DOWN = 65

MOVE_NONE = 35
MOVE_RIGHT = 34
MOVE_MIDDLE = 33
MOVE_LEFT = 32

CLICK_RIGHT = 2
CLICK_MIDDLE = 1
CLICK_LEFT = 0

# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

MouseButton = Literal["left", "middle", "right"]
ButtonState = Literal["pressed", "released"]
ScrollDirection = Literal["up", "down"]


@dataclass(frozen=True)
class MousePosition:
    """1-based terminal cell coordinates."""

    x: int
    y: int


@dataclass(frozen=True)
class ScrollEvent:
    """The scroll wheel was turned."""

    direction: ScrollDirection
    x: int
    y: int
    ctrl: bool = False
    alt: bool = False

    @property
    def position(self) -> MousePosition:
        return MousePosition(self.x, self.y)


@dataclass(frozen=True)
class MoveEvent:
    """The pointer moved.

    Some terminals only report motion while a button is held, in which case
    ``button`` names that button.
    """

    button: MouseButton | Literal["none"]
    state: ButtonState
    x: int
    y: int
    ctrl: bool = False
    alt: bool = False

    @property
    def position(self) -> MousePosition:
        return MousePosition(self.x, self.y)


@dataclass(frozen=True)
class ClickEvent:
    """A mouse button was pressed or released."""

    button: MouseButton
    state: ButtonState
    x: int
    y: int
    ctrl: bool = False
    alt: bool = False

    @property
    def position(self) -> MousePosition:
        return MousePosition(self.x, self.y)


MouseEvent = Union[ScrollEvent, MoveEvent, ClickEvent]

_SCROLL_CODES: dict[int, ScrollDirection] = {
    SCROLL_UP: "up",
    SCROLL_DOWN: "down",
}
_MOVE_CODES: dict[int, MouseButton | Literal["none"]] = {
    MOVE_NONE: "none",
    MOVE_RIGHT: "right",
    MOVE_MIDDLE: "middle",
    MOVE_LEFT: "left",
}
_CLICK_CODES: dict[int, MouseButton] = {
    CLICK_RIGHT: "right",
    CLICK_MIDDLE: "middle",
    CLICK_LEFT: "left",
}
_KNOWN_CODES = frozenset([*_SCROLL_CODES, *_MOVE_CODES, *_CLICK_CODES])


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def _as_text(chunk: str | bytes) -> str:
    if isinstance(chunk, bytes):
        return chunk.decode("utf-8", errors="replace")
    return chunk


_INT_RE = re.compile(r"[+-]?[0-9]{1,9}")


def _parse_int(text: str) -> int | None:
    # ASCII digits only, bounded length.
    text = text.strip()
    if _INT_RE.fullmatch(text) is None:
        return None
    return int(text)


def _read_code(data: str) -> tuple[int, str] | None:
    """Return ``(button_code, rest)`` for an SGR mouse report, else ``None``."""
    if not data.startswith(SGR_MOUSE_PREFIX):
        return None
    body = data[len(SGR_MOUSE_PREFIX) :]
    end = body.find(";")
    if end < 0:
        return None
    code = _parse_int(body[:end])
    if code is None:
        return None
    return code, body[end + 1 :]


def is_mouse_event(chunk: str | bytes) -> bool:
    """Cheap check used to keep mouse reports out of the keystroke channel."""
    read = _read_code(_as_text(chunk))
    if read is None:
        return False
    return (read[0] & EVENT_MASK) in _KNOWN_CODES


def parse_mouse_event(chunk: str | bytes) -> MouseEvent | None:
    """Decode one SGR mouse report.

    Returns ``None`` for anything that is not a recognised mouse report.
    Never raises. Unparsable coordinates decode as ``0``.
    """
    read = _read_code(_as_text(chunk))
    if read is None:
        return None
    code, rest = read
    event_code = code & EVENT_MASK
    if event_code not in _KNOWN_CODES:
        return None

    ctrl = (code & CTRL_FLAG) != 0
    alt = (code & ALT_FLAG) != 0

    x_end = rest.find(";")
    y_end = rest.lower().find("m", x_end + 1)
    x = _parse_int(rest[:x_end]) if x_end > 0 else None
    y = _parse_int(rest[x_end + 1 : y_end]) if y_end > 0 else None
    x = x if x is not None else 0
    y = y if y is not None else 0
    terminator = rest[y_end] if y_end >= 0 else ""

    direction = _SCROLL_CODES.get(event_code)
    if direction is not None:
        # Terminals never report a wheel "release".
        if terminator != "M":
            return None
        return ScrollEvent(direction=direction, x=x, y=y, ctrl=ctrl, alt=alt)

    state: ButtonState = "pressed" if terminator == "M" else "released"

    move_button = _MOVE_CODES.get(event_code)
    if move_button is not None:
        if move_button == "none" and state == "released":
            return None
        return MoveEvent(
            button=move_button, state=state, x=x, y=y, ctrl=ctrl, alt=alt
        )

    return ClickEvent(
        button=_CLICK_CODES[event_code], state=state, x=x, y=y, ctrl=ctrl, alt=alt
    )


decode = parse_mouse_event
