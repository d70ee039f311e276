"""Button and Checkbox components.

Both react to Enter/Space while focused and to clicks from the mouse bus,
but only while the layer they live on is the topmost one.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Literal

from ffsession.tui.geometry import Element
from ffsession.tui.keybindings import get_keybindings
from ffsession.tui.mouse import MousePosition
from ffsession.tui.utils import pad_to_width, truncate_to_width, visible_width

if TYPE_CHECKING:
    from ffsession.tui.overlay import OverlayLayer
    from ffsession.tui.tui import TUI

# ---------------------------------------------------------------------------
# Box drawing
# ---------------------------------------------------------------------------

# top-left, horizontal, top-right, vertical, bottom-left, bottom-right
SINGLE = ("┌", "─", "┐", "│", "└", "┘")
DOUBLE = ("╔", "═", "╗", "║", "╚", "╝")
SINGLE_DOUBLE = ("╓", "─", "╖", "║", "╙", "╜")


def boxed(lines: list[str], width: int, chars: tuple[str, ...] = SINGLE) -> list[str]:
    """Surround *lines* with a border *width* columns wide."""
    tl, h, tr, v, bl, br = chars
    inner = max(0, width - 2)
    out = [tl + h * inner + tr]
    for line in lines:
        out.append(v + pad_to_width(truncate_to_width(line, inner, ""), inner) + v)
    out.append(bl + h * inner + br)
    return out


# ---------------------------------------------------------------------------
# Button
# ---------------------------------------------------------------------------


class Button:
    """A boxed label that calls ``on_click`` when pressed.

    The border is double while the mouse button is held on it and gets
    double sides while hovered.
    """

    def __init__(
        self,
        ui: TUI,
        label: str,
        on_click: Callable[[], None] | None = None,
        layer: OverlayLayer | None = None,
    ) -> None:
        self.focused = False
        self.label = label
        self.on_click = on_click
        self.layer = layer
        self.element = Element(name="button")
        self.hovering = False
        self.clicking = False
        self._ui = ui
        self._unsubscribers = [
            ui.mouse.on_click(self.element, self._on_click, self.is_active),
            ui.mouse.on_hover(self.element, self._on_hover, self.is_active),
        ]

    def is_active(self) -> bool:
        return self._ui.overlays.is_top_layer(self.layer)

    def press(self) -> None:
        if self.on_click is not None:
            self.on_click()

    def invalidate(self) -> None:
        pass

    def render(self, width: int) -> list[str]:
        content = f" {self.label} "
        box_width = min(width, visible_width(content) + 2)
        if self.clicking:
            chars = DOUBLE
        elif self.hovering:
            chars = SINGLE_DOUBLE
        else:
            chars = SINGLE
        return boxed([content], box_width, chars)

    def handle_input(self, data: str) -> None:
        if get_keybindings().matches(data, "toggleSelect"):
            self.press()

    def _on_click(self, hit: bool, position: MousePosition) -> None:
        if hit != self.clicking:
            self.clicking = hit
            self._ui.request_render()
        if hit:
            self._ui.set_focus(self)
            self.press()

    def _on_hover(self, inside: bool) -> None:
        if inside != self.hovering:
            self.hovering = inside
            self._ui.request_render()

    def dispose(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()


# ---------------------------------------------------------------------------
# Checkbox
# ---------------------------------------------------------------------------

CheckboxStyle = Literal["simple", "mark", "thick-mark"]

_MARKS: dict[str, tuple[str, str]] = {
    "simple": ("☑ ", "☐ "),
    "mark": ("✓ ", "✗ "),
    "thick-mark": ("✔ ", "✘ "),
}


class Checkbox:
    """A mark followed by a label.

    ``on_toggle(checked)`` receives the new state. Without ``on_toggle`` the
    checkbox is read-only: clicks still focus it but change nothing.
    """

    def __init__(
        self,
        ui: TUI,
        label: str = "",
        checked: bool = False,
        on_toggle: Callable[[bool], None] | None = None,
        style: CheckboxStyle = "simple",
        layer: OverlayLayer | None = None,
    ) -> None:
        self.focused = False
        self.label = label
        self.checked = checked
        self.on_toggle = on_toggle
        self.style = style
        self.layer = layer
        self.element = Element(name="checkbox")
        self._ui = ui
        self._unsubscribe = ui.mouse.on_click(self.element, self._on_click, self.is_active)

    @property
    def read_only(self) -> bool:
        return self.on_toggle is None

    def is_active(self) -> bool:
        return self._ui.overlays.is_top_layer(self.layer)

    def toggle(self) -> None:
        if self.on_toggle is None:
            return
        self.checked = not self.checked
        self.on_toggle(self.checked)
        self._ui.request_render()

    def invalidate(self) -> None:
        pass

    def render(self, width: int) -> list[str]:
        on, off = _MARKS.get(self.style, _MARKS["simple"])
        mark = on if self.checked else off
        return [truncate_to_width(mark + self.label, width, "")]

    def handle_input(self, data: str) -> None:
        if get_keybindings().matches(data, "toggleSelect"):
            self.toggle()

    def _on_click(self, hit: bool, position: MousePosition) -> None:
        if hit:
            self._ui.set_focus(self)
            self.toggle()

    def dispose(self) -> None:
        self._unsubscribe()
