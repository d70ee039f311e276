"""Core TUI framework with differential rendering.

Provides the ``Component`` and ``Focusable`` protocols, a ``Container`` that
lays its children out top to bottom (and records where each one landed), and
the ``TUI`` class that drives rendering, input routing, overlays and mouse
events against a ``Terminal`` back-end.
"""

from __future__ import annotations

import asyncio
import logging
from typing import (
    TYPE_CHECKING,
    Callable,
    Protocol,
    TypedDict,
    TypeVar,
    runtime_checkable,
)

from ffsession.tui.config import TuiConfig, get_config
from ffsession.tui.geometry import Element
from ffsession.tui.keys import is_key_release
from ffsession.tui.mouse import is_mouse_event
from ffsession.tui.mouse_events import MouseEvents
from ffsession.tui.overlay import (
    Overlay,
    OverlayInfo,
    OverlayOptions,
    OverlayStack,
    composite_layers,
)
from ffsession.tui.utils import visible_width

if TYPE_CHECKING:
    from ffsession.tui.terminal import Terminal

logger = logging.getLogger(__name__)

T = TypeVar("T")

__all__ = [
    "Component",
    "Focusable",
    "is_focusable",
    "visible_width",
    "OverlayHandle",
    "Container",
    "TUI",
]

# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


class Component(Protocol):
    """A renderable terminal component.

    ``handle_input``, ``wants_key_release`` and ``element`` are optional and
    looked up with ``getattr`` where they are used. A component with an
    ``element`` gets that element measured by its container on every render.
    """

    def render(self, width: int) -> list[str]:
        """Render the component into a list of terminal lines."""
        ...

    def invalidate(self) -> None:
        """Mark the component as needing a re-render."""
        ...


@runtime_checkable
class Focusable(Protocol):
    """A component that can receive focus."""

    focused: bool


def is_focusable(component: object | None) -> bool:
    return component is not None and hasattr(component, "focused")


# ---------------------------------------------------------------------------
# OverlayHandle
# ---------------------------------------------------------------------------


class OverlayHandle:
    """Handle returned by :meth:`TUI.show_overlay`."""

    def __init__(self, tui: TUI, overlay: Overlay) -> None:
        self._tui = tui
        self.overlay = overlay

    def hide(self) -> None:
        """Remove the overlay for good and restore focus."""
        self._tui.hide_overlay(self.overlay.component)

    def set_hidden(self, hidden: bool) -> None:
        """Close or reopen the overlay without forgetting it."""
        self._tui.set_overlay_hidden(self.overlay.component, hidden)

    def is_hidden(self) -> bool:
        return not self.overlay.enabled


class _OverlayEntry(TypedDict):
    overlay: Overlay
    pre_focus: object | None


# ---------------------------------------------------------------------------
# Container
# ---------------------------------------------------------------------------


class Container:
    """Renders its children one below the other."""

    def __init__(self) -> None:
        self.children: list[object] = []
        self.element = Element(name=type(self).__name__)

    def add_child(self, component: object) -> None:
        self.children.append(component)
        element = getattr(component, "element", None)
        if isinstance(element, Element) and element.parent is None:
            element.parent = self.element

    def remove_child(self, component: object) -> None:
        try:
            self.children.remove(component)
        except ValueError:
            return
        element = getattr(component, "element", None)
        if isinstance(element, Element):
            if element.parent is self.element:
                element.parent = None
            element.clear_layout()

    def clear(self) -> None:
        for child in list(self.children):
            self.remove_child(child)

    def invalidate(self) -> None:
        for child in self.children:
            inv = getattr(child, "invalidate", None)
            if inv is not None:
                inv()

    def render(self, width: int) -> list[str]:
        """Render all children and record each child's row range."""
        lines: list[str] = []
        for child in self.children:
            render = getattr(child, "render", None)
            if render is None:
                continue
            child_lines = render(width)
            element = getattr(child, "element", None)
            if isinstance(element, Element):
                element.set_layout(0, len(lines), width, len(child_lines))
            lines.extend(child_lines)
        return lines


# ---------------------------------------------------------------------------
# TUI
# ---------------------------------------------------------------------------


class TUI(Container):
    """Main TUI controller.

    * Differential rendering -- only changed lines are re-written.
    * Overlay layers composited above the base UI, owned by ``overlays``.
    * Mouse reports decoded and published on ``mouse``.
    * Key input routed to the topmost overlay, else the focused component.
    """

    def __init__(
        self,
        terminal: Terminal,
        show_hardware_cursor: bool | None = None,
        config: TuiConfig | None = None,
    ) -> None:
        super().__init__()
        self.terminal: Terminal = terminal
        self.config = config or get_config()

        self.overlays = OverlayStack()
        self.overlays.add_observer(self.request_render)
        self.mouse = MouseEvents(self.config.null_event_delay)

        self._previous_lines: list[str] = []
        self._previous_width = 0
        self._focused_component: object | None = None
        self._render_requested = False
        self._rendering = False
        self._deferred_render = False
        self._cursor_row = 0
        self._max_lines_rendered = 0
        self._full_redraw_count = 0
        self._stopped = False
        self._started = False

        self._show_hardware_cursor = (
            show_hardware_cursor
            if show_hardware_cursor is not None
            else self.config.show_hardware_cursor
        )
        self._clear_on_shrink = self.config.clear_on_shrink

        self._overlay_entries: list[_OverlayEntry] = []

    # ------------------------------------------------------------------
    # Properties / accessors
    # ------------------------------------------------------------------

    @property
    def full_redraws(self) -> int:
        """Number of full (non-differential) redraws performed."""
        return self._full_redraw_count

    @property
    def focused_component(self) -> object | None:
        return self._focused_component

    def get_show_hardware_cursor(self) -> bool:
        return self._show_hardware_cursor

    def set_show_hardware_cursor(self, value: bool) -> None:
        self._show_hardware_cursor = value
        self.invalidate()

    def get_clear_on_shrink(self) -> bool:
        return self._clear_on_shrink

    def set_clear_on_shrink(self, value: bool) -> None:
        self._clear_on_shrink = value

    def layer_info(self, layer: Overlay | None = None) -> OverlayInfo:
        """Topmost-layer query for components living on *layer* (``None`` = base UI)."""
        return self.overlays.info(layer)

    # ------------------------------------------------------------------
    # Focus
    # ------------------------------------------------------------------

    def set_focus(self, component: object | None) -> None:
        """Set the focused component, unfocusing the previous one."""
        if self._focused_component is component:
            return
        prev = self._focused_component
        if is_focusable(prev):
            prev.focused = False  # type: ignore[union-attr]
        self._focused_component = component
        if is_focusable(component):
            component.focused = True  # type: ignore[union-attr]

    # ------------------------------------------------------------------
    # Overlay management
    # ------------------------------------------------------------------

    def show_overlay(
        self,
        component: object,
        options: OverlayOptions | None = None,
    ) -> OverlayHandle:
        """Open *component* as the topmost layer and give it focus."""
        overlay = Overlay(self.overlays, component, options)
        self._overlay_entries.append(
            {"overlay": overlay, "pre_focus": self._focused_component}
        )
        overlay.open()
        self.set_focus(component)
        self.invalidate()
        return OverlayHandle(self, overlay)

    def hide_overlay(self, component: object) -> None:
        """Destroy the overlay showing *component* and restore focus."""
        for index, entry in enumerate(self._overlay_entries):
            if entry["overlay"].component is component:
                break
        else:
            return

        entry = self._overlay_entries.pop(index)
        entry["overlay"].destroy()

        if self._focused_component is component:
            topmost = self._get_topmost_visible_overlay()
            self.set_focus(topmost if topmost is not None else entry["pre_focus"])
        self.invalidate()

    def set_overlay_hidden(self, component: object, hidden: bool) -> None:
        """Close or reopen a known overlay, moving focus with it.

        Hiding gives focus back to the next visible overlay, or to whatever
        was focused before the overlay opened. Showing it again focuses it.
        """
        for entry in self._overlay_entries:
            if entry["overlay"].component is component:
                break
        else:
            return

        overlay = entry["overlay"]
        if overlay.enabled == (not hidden):
            return
        overlay.set_enabled(not hidden)
        if hidden:
            if self._focused_component is component:
                topmost = self._get_topmost_visible_overlay()
                self.set_focus(topmost if topmost is not None else entry["pre_focus"])
        elif overlay.enabled:
            self.set_focus(component)
        self.invalidate()

    def has_overlay(self) -> bool:
        return bool(self._overlay_entries)

    def is_overlay_known(self, component: object) -> bool:
        return any(e["overlay"].component is component for e in self._overlay_entries)

    def is_overlay_visible(self, component: object) -> bool:
        for entry in self._overlay_entries:
            if entry["overlay"].component is component:
                return entry["overlay"].enabled
        return False

    def _get_topmost_visible_overlay(self) -> object | None:
        for entry in reversed(self._overlay_entries):
            if entry["overlay"].enabled:
                return entry["overlay"].component
        return None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def invalidate(self) -> None:
        """Schedule a re-render (no-op if stopped)."""
        if self._stopped:
            return
        self.request_render()

    def start(self) -> None:
        """Start the terminal and the render loop."""
        self._stopped = False
        if not self._started:
            on_mouse = self.handle_mouse if self.config.mouse else None
            self.terminal.start(self.handle_input, self.request_render, on_mouse)
            self._started = True
        self.request_render()

    def stop(self) -> None:
        """Stop rendering and hand the terminal back."""
        self._stopped = True
        lines_below = len(self._previous_lines) - self._cursor_row - 1
        if lines_below > 0:
            self.terminal.write(f"\x1b[{lines_below}B")
        self.terminal.write("\n")
        self.mouse.cancel_pending()
        if self._started:
            self.terminal.stop()
            self._started = False

    def run_on_main_buffer(self, callback: Callable[[], T]) -> T:
        """Let *callback* use the normal screen, then redraw everything."""
        logger.debug("Handing the main screen buffer to a callback")
        try:
            return self.terminal.run_on_main_buffer(callback)
        finally:
            self._previous_lines = []
            self._previous_width = 0
            self._cursor_row = 0
            self.request_render()

    # ------------------------------------------------------------------
    # Render scheduling
    # ------------------------------------------------------------------

    def request_render(self) -> None:
        """Schedule a render on the next event-loop tick.

        Multiple calls coalesce into a single render pass. Without a running
        loop the render happens immediately.
        """
        if self._render_requested:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if self._rendering:
                # Requested from inside a pass; run once it finishes.
                self._deferred_render = True
                return
            self._render_requested = True
            self._do_render_tick()
            return
        self._render_requested = True
        loop.call_soon(self._do_render_tick)

    def _do_render_tick(self) -> None:
        self._render_requested = False
        if self._stopped:
            return
        self._rendering = True
        try:
            self.do_render()
        finally:
            self._rendering = False
        if self._deferred_render:
            self._deferred_render = False
            self.request_render()

    # ------------------------------------------------------------------
    # Input handling
    # ------------------------------------------------------------------

    def handle_mouse(self, data: str) -> None:
        if self._stopped:
            return
        self.mouse.dispatch(data)

    def handle_input(self, data: str) -> None:
        """Route terminal input.

        * Mouse reports go to the mouse bus only.
        * Key releases reach only a focused component that asked for them.
        * Keys go to the topmost overlay, or to the focused component.
        """
        if self._stopped:
            return

        if is_mouse_event(data):
            self.handle_mouse(data)
            return

        if is_key_release(data):
            focused = self._focused_component
            if focused is not None and getattr(focused, "wants_key_release", False):
                handler = getattr(focused, "handle_input", None)
                if callable(handler):
                    handler(data)
            return

        topmost = self.overlays.top()
        if topmost is not None:
            handler = getattr(topmost, "handle_input", None)
            if callable(handler):
                handler(data)
            return

        if self._focused_component is not None:
            handler = getattr(self._focused_component, "handle_input", None)
            if callable(handler):
                handler(data)

    # ------------------------------------------------------------------
    # Main render
    # ------------------------------------------------------------------

    def compose_frame(self, term_width: int, term_height: int) -> tuple[list[str], bool]:
        """Render the base UI and every open layer into one frame.

        Returns the frame and whether a layer asked for another pass.
        """
        base_lines = self.render(term_width)
        self.element.set_layout(0, 0, term_width, len(base_lines))
        needs_redraw = False
        if len(self.overlays):
            lines, needs_redraw = composite_layers(
                base_lines, self.overlays, term_width, term_height
            )
        else:
            lines = base_lines
        return lines[:term_height], needs_redraw

    def do_render(self) -> None:  # noqa: C901
        """Perform a differential (or full) render pass."""
        if self._stopped:
            return

        term_width: int = self.terminal.columns
        term_height: int = self.terminal.rows
        if term_width <= 0 or term_height <= 0:
            return

        lines, needs_redraw = self.compose_frame(term_width, term_height)

        force_full = term_width != self._previous_width
        if self._clear_on_shrink and len(lines) < self._max_lines_rendered:
            force_full = True
        if force_full:
            self._full_redraw_count += 1

        out: list[str] = []
        if self._cursor_row > 0:
            out.append(f"\x1b[{self._cursor_row}A")
        out.append("\r")
        if self._show_hardware_cursor:
            out.append("\x1b[?25l")

        num_new = len(lines)
        num_old = len(self._previous_lines)

        if force_full:
            out.append("\x1b[J")
            for i, line in enumerate(lines):
                if i > 0:
                    out.append("\n")
                out.append(line)
                out.append("\x1b[K")
            last_row = max(0, num_new - 1)
        else:
            total = max(num_new, num_old)
            for i in range(total):
                if i > 0:
                    out.append("\n")
                if i >= num_new:
                    out.append("\r\x1b[K")
                    continue
                new_line = lines[i]
                old_line = self._previous_lines[i] if i < num_old else None
                if new_line != old_line:
                    out.append("\r")
                    out.append(new_line)
                    out.append("\x1b[K")
            last_row = max(0, total - 1)

        self._previous_lines = lines
        self._previous_width = term_width
        self._max_lines_rendered = max(self._max_lines_rendered, num_new)

        # Park the cursor on the last content row.
        cursor_row = max(0, num_new - 1)
        delta = last_row - cursor_row
        if delta > 0:
            out.append(f"\x1b[{delta}A")
        out.append("\r")
        self._cursor_row = cursor_row

        if self._show_hardware_cursor:
            out.append("\x1b[?25h")

        self.terminal.write("".join(out))

        if needs_redraw:
            self.request_render()
