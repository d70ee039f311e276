"""Scrollbar geometry and a one-column scrollbar component."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Protocol

from ffsession.tui.config import ScrollbarMode
from ffsession.tui.geometry import Element, Region, is_intersecting, measure
from ffsession.tui.mouse import ClickEvent, MouseEvent, MoveEvent

HANDLE_CHAR = "█"


@dataclass(frozen=True)
class ScrollbarGeometry:
    track_height: int
    handle_height: int
    max_offset: int
    handle_offset: int

    @property
    def is_full_size(self) -> bool:
        return self.handle_height >= self.track_height


def scrollbar_geometry(value: int, max_value: int, track_height: int) -> ScrollbarGeometry:
    """Thumb size and position for a track of *track_height* rows.

    The thumb shrinks as the overflow grows but never below 3 rows on tracks
    taller than 16 rows (1 row otherwise).
    """
    denominator = max(max_value, value)
    ratio = value / denominator if denominator > 0 else 0.0
    handle_height = max(3 if track_height > 16 else 1, track_height - max_value)
    max_offset = max(0, track_height - handle_height)
    return ScrollbarGeometry(
        track_height=track_height,
        handle_height=handle_height,
        max_offset=max_offset,
        handle_offset=math.floor(ratio * max_offset),
    )


def drag_to_value(
    pointer_row: int,
    track_top: int,
    geometry: ScrollbarGeometry,
    max_value: int,
) -> int:
    """Scroll value for a thumb dragged to *pointer_row*.

    *pointer_row* is the 1-based row reported by the terminal and
    *track_top* the 0-based top of the track, so grabbing the thumb by its
    middle keeps it under the pointer.
    """
    if geometry.max_offset <= 0:
        return 0
    # Round half up.
    half_handle = math.floor(geometry.handle_height / 2 + 0.5)
    offset = min(geometry.max_offset, max(0, pointer_row - track_top - half_handle))
    value = math.ceil(max_value * (offset / geometry.max_offset))
    return max(0, min(max_value, value))


def scrollbar_visible(mode: ScrollbarMode, geometry: ScrollbarGeometry) -> bool:
    """Whether the scrollbar takes up a column."""
    if mode == "never":
        return False
    if mode == "auto":
        return not geometry.is_full_size
    return True


class ScrollbarTheme(Protocol):
    handle: Callable[[str], str]
    handle_hover: Callable[[str], str]
    handle_drag: Callable[[str], str]


class Scrollbar:
    """Renders a scrollbar column and turns thumb drags into scroll values."""

    def __init__(
        self,
        mode: ScrollbarMode = "auto",
        theme: ScrollbarTheme | None = None,
        on_scroll: Callable[[int], None] | None = None,
        parent: Element | None = None,
    ) -> None:
        self.mode = mode
        self.theme = theme
        self.on_scroll = on_scroll
        self.element = Element(parent, name="scrollbar-track")
        self.hovering = False
        self.dragging = False
        self._value = 0
        self._max_value = 0
        self._geometry = scrollbar_geometry(0, 0, 0)

    @property
    def geometry(self) -> ScrollbarGeometry:
        return self._geometry

    def update(self, value: int, max_value: int, track_height: int) -> ScrollbarGeometry:
        self._value = value
        self._max_value = max_value
        self._geometry = scrollbar_geometry(value, max_value, track_height)
        return self._geometry

    @property
    def visible(self) -> bool:
        return scrollbar_visible(self.mode, self._geometry)

    @property
    def width(self) -> int:
        return 1 if self.visible else 0

    def render_rows(self) -> list[str]:
        """One cell per track row; empty strings when the bar takes no space."""
        geometry = self._geometry
        if not self.visible:
            return [""] * geometry.track_height
        if self.mode == "auto-invisible" and geometry.is_full_size:
            return [" "] * geometry.track_height
        handle = HANDLE_CHAR
        if self.theme is not None:
            if self.dragging:
                handle = self.theme.handle_drag(HANDLE_CHAR)
            elif self.hovering:
                handle = self.theme.handle_hover(HANDLE_CHAR)
            else:
                handle = self.theme.handle(HANDLE_CHAR)
        start = geometry.handle_offset
        end = start + geometry.handle_height
        return [handle if start <= row < end else " " for row in range(geometry.track_height)]

    def handle_region(self) -> Region | None:
        track = measure(self.element)
        if track is None or not self.visible:
            return None
        return Region(
            left=track.left,
            top=track.top + self._geometry.handle_offset,
            width=1,
            height=self._geometry.handle_height,
        )

    def handle_mouse(self, event: MouseEvent) -> bool:
        """Track hover and drag state. Returns ``True`` if anything changed."""
        if not isinstance(event, (ClickEvent, MoveEvent)):
            return False
        before = (self.hovering, self.dragging)
        on_handle = is_intersecting(event, self.handle_region())
        self.hovering = on_handle
        if isinstance(event, ClickEvent) and event.button == "left":
            self.dragging = on_handle and event.state == "pressed"
        elif event.button == "left" and self.dragging:
            track = measure(self.element)
            if track is not None:
                value = drag_to_value(event.y, track.top, self._geometry, self._max_value)
                if value != self._value and self.on_scroll is not None:
                    self.on_scroll(value)
                return True
        return before != (self.hovering, self.dragging)
