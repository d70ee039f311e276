"""Scroll offset bookkeeping for a fixed-height viewport."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

from ffsession.tui.config import get_config
from ffsession.tui.geometry import Element, measure

GeometryProbe = Callable[[], Optional[tuple[int, int]]]


@dataclass
class ScrollState:
    scroll_y: int = 0
    max_scroll_y: int = 0
    outer_view_height: int = 0


class Scroller:
    """Owns one ``ScrollState`` and keeps ``0 <= scroll_y <= max_scroll_y``.

    ``on_scroll`` listeners are told about every effective change of the
    offset, including corrections made after the geometry shrank.
    """

    def __init__(
        self,
        on_scroll: Callable[[int], None] | None = None,
        recheck_interval: float | None = None,
    ) -> None:
        self._state = ScrollState()
        self._listeners: list[Callable[[int], None]] = []
        if on_scroll is not None:
            self._listeners.append(on_scroll)
        self._recheck_interval = (
            recheck_interval
            if recheck_interval is not None
            else get_config().scroll_recheck_interval
        )
        self._watch_handle: asyncio.TimerHandle | None = None
        # Element whose layout is the scrolled content; ``ensure_element_visible``
        # measures relative to it.
        self.inner_element: Element | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> ScrollState:
        return ScrollState(self.scroll_y, self._state.max_scroll_y, self._state.outer_view_height)

    @property
    def scroll_y(self) -> int:
        return self._reclamp()

    def _reclamp(self) -> int:
        value = self._state.scroll_y
        valid = self.as_valid_scroll_y(value)
        if valid != value:
            self._state.scroll_y = valid
            self._notify(valid)
        return valid

    @property
    def max_scroll_y(self) -> int:
        return self._state.max_scroll_y

    @property
    def outer_view_height(self) -> int:
        return self._state.outer_view_height

    def as_valid_scroll_y(self, value: int) -> int:
        return max(0, min(self._state.max_scroll_y, value))

    def on_scroll(self, listener: Callable[[int], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, value: int) -> None:
        for listener in list(self._listeners):
            listener(value)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def get_scroll(self) -> int:
        return self.scroll_y

    def set_scroll(self, value: int) -> None:
        value = self.as_valid_scroll_y(value)
        if value == self._state.scroll_y:
            return
        self._state.scroll_y = value
        self._notify(value)

    def apply_delta(self, delta: int) -> None:
        self.set_scroll(self.scroll_y + delta)

    def ensure_visible(self, row: int, margin: int = 0) -> None:
        """Scroll the minimum amount that brings *row* into view."""
        self._ensure_rows_visible(row, 1, margin)

    def ensure_element_visible(
        self,
        element: Element | None,
        margin: int = 0,
        relative_to: Element | None = None,
    ) -> None:
        """Bring *element* into view, keeping *margin* rows around it.

        When the element is taller than the viewport its top row wins.
        Unmeasured elements are ignored.
        """
        anchor = relative_to if relative_to is not None else self.inner_element
        if anchor is None:
            return
        region = measure(element, anchor)
        if region is None:
            return
        self._ensure_rows_visible(region.top, region.height, margin)

    def _ensure_rows_visible(self, top: int, height: int, margin: int) -> None:
        scroll_y = self.scroll_y
        outer = self._state.outer_view_height
        wanted_top = max(0, top - margin)
        if wanted_top < scroll_y:
            self.set_scroll(wanted_top)
            return
        last_visible_row = top + min(height + margin, outer) - 1
        if scroll_y + outer <= last_visible_row:
            self.set_scroll(last_visible_row - outer + 1)

    def update_geometry(self, inner_height: int, outer_height: int) -> bool:
        """Record new content/viewport heights.

        Returns ``True`` when ``max_scroll_y`` changed. The offset is clamped
        (and listeners notified) when it no longer fits.
        """
        self._state.outer_view_height = max(0, outer_height)
        new_max = max(0, inner_height - outer_height)
        changed = new_max != self._state.max_scroll_y
        self._state.max_scroll_y = new_max
        self._reclamp()
        return changed

    # ------------------------------------------------------------------
    # Periodic re-measurement
    # ------------------------------------------------------------------

    @property
    def watching(self) -> bool:
        return self._watch_handle is not None

    def start_watch(
        self,
        probe: GeometryProbe,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        """Re-measure with *probe* every ``recheck_interval`` seconds.

        *probe* returns ``(inner_height, outer_height)`` or ``None`` when
        nothing can be measured yet. *on_change* runs when the maximum
        offset moved. Needs a running event loop; without one this is a
        no-op.
        """
        self.stop_watch()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return

        def tick() -> None:
            geometry = probe()
            if geometry is not None and self.update_geometry(*geometry):
                if on_change is not None:
                    on_change()
            self._watch_handle = loop.call_later(self._recheck_interval, tick)

        self._watch_handle = loop.call_later(self._recheck_interval, tick)

    def stop_watch(self) -> None:
        if self._watch_handle is not None:
            self._watch_handle.cancel()
            self._watch_handle = None
