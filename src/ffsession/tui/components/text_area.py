"""Read-only scrollable text that stays responsive for very large values.

Up to ``virtualize_threshold`` characters the text is wrapped and drawn in
full. Beyond that it is wrapped on an executor thread (a naive fixed-width
split stands in until the result arrives) and only the chunks of rows near
the viewport are drawn; the rest are blank placeholders of the same height
so the scroll extent stays correct.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ffsession.tui.components.scrollable import Scrollable
from ffsession.tui.config import TuiConfig, get_config
from ffsession.tui.geometry import Element, measure
from ffsession.tui.keybindings import get_keybindings
from ffsession.tui.mouse import MousePosition
from ffsession.tui.utils import naive_wrap, truncate_to_width, wrap_text
from ffsession.tui.wrap import BackgroundWrapper, WrapResult

if TYPE_CHECKING:
    from ffsession.tui.overlay import OverlayLayer
    from ffsession.tui.tui import TUI

logger = logging.getLogger(__name__)

MIN_WRAP_WIDTH = 5


@dataclass(frozen=True)
class TextChunk:
    start: int
    rows: int
    visible: bool


def plan_chunks(
    total_rows: int,
    scroll_y: int,
    outer_height: int,
    chunk_rows: int = 100,
    margin: int = 5,
) -> list[TextChunk]:
    """Split *total_rows* into chunks and mark the ones near the viewport.

    A chunk is visible when its rows overlap
    ``[scroll_y - margin, scroll_y + outer_height + margin)``.
    """
    chunks: list[TextChunk] = []
    low = scroll_y - margin
    high = scroll_y + outer_height + margin
    for start in range(0, total_rows, max(1, chunk_rows)):
        rows = min(chunk_rows, total_rows - start)
        visible = start + rows > low and start < high
        chunks.append(TextChunk(start=start, rows=rows, visible=visible))
    return chunks


class _TextBody:
    """The scrolled content of a ``TextArea``."""

    def __init__(self, area: TextArea) -> None:
        self._area = area
        self.element = Element(name="text-body")

    def invalidate(self) -> None:
        pass

    def render(self, width: int) -> list[str]:
        return self._area._render_rows(width)


class TextArea:
    """Scrollable read-only text with keyboard and mouse navigation."""

    def __init__(
        self,
        value: str = "",
        height: int = 10,
        ui: TUI | None = None,
        layer: OverlayLayer | None = None,
        config: TuiConfig | None = None,
        executor: Executor | None = None,
    ) -> None:
        self.focused = False
        self._value = value
        self._ui = ui
        self._config = config or get_config()
        self._wrapper = BackgroundWrapper(on_result=self._on_wrapped, executor=executor)
        self._body = _TextBody(self)
        self.scrollable = Scrollable(
            self._body,
            height,
            show_scrollbar=self._config.show_scrollbar,
            ui=ui,
            layer=layer,
        )
        self.element = self.scrollable.element

        self._wrap_width = 0
        self._fallback: tuple[int, list[str]] | None = None
        self._chunks: list[TextChunk] = []
        self._width_timer: asyncio.TimerHandle | None = None
        self._unsubscribe_click = None
        if ui is not None:
            self._unsubscribe_click = ui.mouse.on_click(
                self.element, self._on_click, self.scrollable.is_active
            )

    # ------------------------------------------------------------------
    # Value
    # ------------------------------------------------------------------

    @property
    def value(self) -> str:
        return self._value

    def set_value(self, value: str) -> None:
        if value == self._value:
            return
        self._value = value
        self._fallback = None
        self._wrapper.cancel()
        self._request_render()

    @property
    def virtualized(self) -> bool:
        return len(self._value) > self._config.virtualize_threshold

    @property
    def wrapper(self) -> BackgroundWrapper:
        return self._wrapper

    def chunks(self) -> list[TextChunk]:
        """Chunk plan of the last virtualized render (empty otherwise)."""
        return list(self._chunks)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def invalidate(self) -> None:
        self._fallback = None

    def render(self, width: int) -> list[str]:
        return self.scrollable.render(width)

    def _render_rows(self, width: int) -> list[str]:
        wrap_width = max(MIN_WRAP_WIDTH, width)
        self._wrap_width = width
        if not self.virtualized:
            self._chunks = []
            return [
                truncate_to_width(line, width, "") or " "
                for line in wrap_text(self._value, wrap_width)
            ]

        lines = self._wrapped_lines(wrap_width)
        scroller = self.scrollable.scroller
        self._chunks = plan_chunks(
            len(lines),
            scroller.scroll_y,
            scroller.outer_view_height or self.scrollable.height,
            self._config.chunk_rows,
            self._config.draw_margin,
        )
        rows: list[str] = []
        for chunk in self._chunks:
            if not chunk.visible:
                rows.extend([""] * chunk.rows)
                continue
            for line in lines[chunk.start : chunk.start + chunk.rows]:
                rows.append(truncate_to_width(line, width, "") or " ")
        return rows

    def _wrapped_lines(self, width: int) -> list[str]:
        lines = self._wrapper.lines_for(self._value, width)
        if lines is not None:
            return lines
        self._wrapper.request(self._value, width)
        if self._fallback is None or self._fallback[0] != width:
            fallback: list[str] = []
            for raw in self._value.split("\n"):
                fallback.extend(naive_wrap(raw, width))
            self._fallback = (width, fallback)
        return self._fallback[1]

    def _on_wrapped(self, result: WrapResult) -> None:
        logger.debug("Wrapped %d rows at width %d", len(result.lines), result.width)
        self._fallback = None
        self._request_render()

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def handle_input(self, data: str) -> None:
        kb = get_keybindings()
        page = max(1, self.scrollable.outer_view_height)
        if kb.matches(data, "cursorUp"):
            self.scrollable.apply_delta(-1)
        elif kb.matches(data, "cursorDown"):
            self.scrollable.apply_delta(1)
        elif kb.matches(data, "pageUp"):
            self.scrollable.apply_delta(-page)
        elif kb.matches(data, "pageDown"):
            self.scrollable.apply_delta(page)

    def _on_click(self, hit: bool, position: MousePosition) -> None:
        if hit and self._ui is not None:
            self._ui.set_focus(self)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the geometry and width re-checks."""
        self.scrollable.start()
        self._schedule_width_check()

    def stop(self) -> None:
        self.scrollable.stop()
        if self._width_timer is not None:
            self._width_timer.cancel()
            self._width_timer = None

    def dispose(self) -> None:
        self.stop()
        self._wrapper.cancel()
        self.scrollable.dispose()
        if self._unsubscribe_click is not None:
            self._unsubscribe_click()
            self._unsubscribe_click = None

    def _schedule_width_check(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._width_timer = loop.call_later(
            self._config.width_recheck_interval, self._check_width
        )

    def _check_width(self) -> None:
        self._width_timer = None
        if self.virtualized:
            region = measure(self.element)
            if region is not None:
                width = region.width - self.scrollable.scrollbar.width
                if width != self._wrap_width:
                    self._request_render()
        self._schedule_width_check()

    def _request_render(self) -> None:
        if self._ui is not None:
            self._ui.request_render()
