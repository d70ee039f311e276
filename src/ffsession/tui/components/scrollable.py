"""Fixed-height viewport around a taller child component."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from ffsession.tui.config import ScrollbarMode, get_config
from ffsession.tui.geometry import Element
from ffsession.tui.mouse import MouseEvent, ScrollDirection
from ffsession.tui.scroll import Scroller
from ffsession.tui.scrollbar import Scrollbar, ScrollbarTheme
from ffsession.tui.utils import pad_to_width, truncate_to_width

if TYPE_CHECKING:
    from ffsession.tui.overlay import OverlayLayer
    from ffsession.tui.tui import TUI


class Scrollable:
    """Shows ``height`` rows of *child* plus an optional scrollbar column.

    The child's element is laid out at ``top = -scroll_y`` inside
    ``inner_element``, so anything measured through it reports the position
    it is actually drawn at.
    """

    def __init__(
        self,
        child: object,
        height: int,
        show_scrollbar: ScrollbarMode | None = None,
        ui: TUI | None = None,
        layer: OverlayLayer | None = None,
        theme: ScrollbarTheme | None = None,
        on_scroll: Callable[[int], None] | None = None,
    ) -> None:
        self.child = child
        self.height = max(0, height)
        self.layer = layer
        self._ui = ui

        self.element = Element(name="scrollable")
        self.inner_element = Element(self.element, name="scrollable-inner")
        child_element = getattr(child, "element", None)
        if isinstance(child_element, Element) and child_element.parent is None:
            child_element.parent = self.inner_element

        self.scroller = Scroller(on_scroll=on_scroll)
        self.scroller.inner_element = self.inner_element
        self.scroller.on_scroll(self._scrolled)
        self.scrollbar = Scrollbar(
            show_scrollbar or get_config().show_scrollbar,
            theme,
            on_scroll=self.scroller.set_scroll,
            parent=self.element,
        )

        self._rendering = False
        self._child_width = 0
        self._inner_height = 0
        self._pending_reveal: tuple[Element, int] | None = None
        self._unsubscribers: list[Callable[[], None]] = []
        if ui is not None:
            self._unsubscribers.append(
                ui.mouse.on_scroll(self.element, self._on_wheel, self.is_active)
            )
            self._unsubscribers.append(ui.mouse.on("all", self._on_mouse_event))

    # ------------------------------------------------------------------
    # Scroll control
    # ------------------------------------------------------------------

    @property
    def outer_view_height(self) -> int:
        return self.scroller.outer_view_height

    def get_scroll(self) -> int:
        return self.scroller.get_scroll()

    def set_scroll(self, value: int) -> None:
        self.scroller.set_scroll(value)

    def apply_delta(self, delta: int) -> None:
        self.scroller.apply_delta(delta)

    def ensure_visible(self, row: int, margin: int = 0) -> None:
        self.scroller.ensure_visible(row, margin)

    def ensure_element_visible(self, element: Element, margin: int = 0) -> None:
        """Scroll *element* into view now and again after the next render.

        The second pass covers elements whose layout is not known yet.
        """
        self.scroller.ensure_element_visible(element, margin)
        self._pending_reveal = (element, margin)

    def set_height(self, height: int) -> None:
        self.height = max(0, height)
        self._request_render()

    def is_active(self) -> bool:
        if self._ui is None:
            return True
        return self._ui.overlays.is_top_layer(self.layer)

    # ------------------------------------------------------------------
    # Component
    # ------------------------------------------------------------------

    def invalidate(self) -> None:
        invalidate = getattr(self.child, "invalidate", None)
        if invalidate is not None:
            invalidate()

    def render(self, width: int) -> list[str]:
        self._rendering = True
        try:
            # Publish the viewport height before the child renders; it may
            # want to know which rows are on screen.
            self.scroller.update_geometry(self._inner_height, self.height)
            return self._render_pass(width, retry=True)
        finally:
            self._rendering = False

    def _render_pass(self, width: int, retry: bool) -> list[str]:
        bar_width = self.scrollbar.width
        child_width = max(1, width - bar_width)
        child_lines: list[str] = self.child.render(child_width)
        self._child_width = child_width
        self._inner_height = len(child_lines)

        child_element = getattr(self.child, "element", None)
        if isinstance(child_element, Element):
            child_element.set_layout(0, 0, child_width, len(child_lines))
        self.scroller.update_geometry(len(child_lines), self.height)

        if self._pending_reveal is not None:
            element, margin = self._pending_reveal
            self._pending_reveal = None
            self.scroller.ensure_element_visible(element, margin)

        scroll_y = self.scroller.scroll_y
        self.inner_element.set_layout(0, -scroll_y, child_width, len(child_lines))
        self.scrollbar.update(scroll_y, self.scroller.max_scroll_y, self.height)
        if self.scrollbar.width != bar_width and retry:
            # The scrollbar appeared or went away; the child gets a new width.
            return self._render_pass(width, retry=False)

        if self.scrollbar.visible:
            self.scrollbar.element.set_layout(child_width, 0, 1, self.height)
        else:
            self.scrollbar.element.clear_layout()

        rows = child_lines[scroll_y : scroll_y + self.height]
        rows.extend([""] * (self.height - len(rows)))
        lines: list[str] = []
        for row, cell in zip(rows, self.scrollbar.render_rows()):
            if cell:
                lines.append(pad_to_width(truncate_to_width(row, child_width, ""), child_width) + cell)
            else:
                lines.append(truncate_to_width(row, width, ""))
        return lines

    # ------------------------------------------------------------------
    # Mouse
    # ------------------------------------------------------------------

    def _on_wheel(self, direction: ScrollDirection) -> None:
        self.scroller.apply_delta(-1 if direction == "up" else 1)

    def _on_mouse_event(self, event: MouseEvent) -> None:
        if not self.scrollbar.dragging and not self.is_active():
            return
        if self.scrollbar.handle_mouse(event):
            self._request_render()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _probe(self) -> tuple[int, int] | None:
        if self._child_width <= 0:
            return None
        return len(self.child.render(self._child_width)), self.height

    def start(self) -> None:
        """Re-measure the child periodically to catch changes nobody rendered."""
        self.scroller.start_watch(self._probe, self._request_render)

    def stop(self) -> None:
        self.scroller.stop_watch()

    def dispose(self) -> None:
        """Stop timers and drop mouse listeners."""
        self.stop()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    def _scrolled(self, value: int) -> None:
        if not self._rendering:
            self._request_render()

    def _request_render(self) -> None:
        if self._ui is not None:
            self._ui.request_render()
