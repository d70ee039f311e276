"""DropDown component: a button that opens a single-select popup list."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from ffsession.tui.components.button import DOUBLE, SINGLE, boxed
from ffsession.tui.components.selectable_list import SelectableList, SelectableListTheme
from ffsession.tui.geometry import Element, is_intersecting, measure
from ffsession.tui.keybindings import get_keybindings
from ffsession.tui.mouse import ClickEvent, MousePosition
from ffsession.tui.overlay import OverlayLayer, OverlayOptions
from ffsession.tui.utils import pad_to_width, visible_width

if TYPE_CHECKING:
    from ffsession.tui.tui import TUI, OverlayHandle

BUTTON_HEIGHT = 3
ARROW = "▼"


@dataclass
class DropDownItem:
    id: str
    name: str


def popup_placement(
    anchor_left: int,
    anchor_top: int,
    rows: int,
    popup_height: int,
    overlap_button: bool = True,
) -> tuple[int, int, bool]:
    """Return ``(col, row, above)`` for a popup attached to a button.

    The popup opens upwards once the button sits in the lower half of the
    screen.
    """
    above = anchor_top + BUTTON_HEIGHT > rows / 2
    if above:
        bottom = anchor_top + (BUTTON_HEIGHT if overlap_button else 0)
        row = max(0, bottom - popup_height)
    else:
        row = anchor_top + (0 if overlap_button else BUTTON_HEIGHT)
    return anchor_left, row, above


class _DropDownPopup:
    """Overlay content: a bordered single-select list."""

    def __init__(self, owner: DropDown, ui: TUI) -> None:
        self._owner = owner
        self._ui = ui
        self.element = Element(name="drop-down-popup")
        self.list = SelectableList(
            selected_ids=[owner.selected_id],
            on_selection_change=self._on_selection,
            height=min(len(owner.items), owner.max_visible),
            ui=ui,
            theme=owner.theme,
        )
        self.list.element.parent = self.element
        for item in owner.items:
            self.list.register(item.id, item.name)
        self.list.keyboard_select_item(owner.selected_id)
        self._unsubscribe_click = ui.mouse.on("click", self._on_any_click)

    def bind(self, layer: OverlayLayer) -> None:
        self.list.layer = layer

    def invalidate(self) -> None:
        pass

    def render(self, width: int) -> list[str]:
        self._owner._update_popup_position()
        lines = self.list.render(max(1, width - 2))
        self.list.element.set_layout(1, 1, max(1, width - 2), len(lines))
        return boxed(lines, width)

    def handle_input(self, data: str) -> None:
        if get_keybindings().matches(data, "cancel"):
            self._owner.close(None)
            return
        self.list.handle_input(data)

    def _on_selection(self, selected_ids: list[str], was_destroyed: bool) -> None:
        if was_destroyed:
            return
        if not selected_ids:
            # The current value was clicked again: keep it.
            self._owner.close(None)
        else:
            self._owner.close(selected_ids[-1])

    def _on_any_click(self, position: MousePosition, event: ClickEvent | None) -> None:
        if event is None or event.state != "pressed" or self._owner.popup is not self:
            return
        if not self._ui.overlays.is_top_layer(self.list.layer):
            return
        if not is_intersecting(position, measure(self.element)):
            self._owner.close(None)

    def dispose(self) -> None:
        self._unsubscribe_click()
        self.list.dispose()


class DropDown:
    """Button showing the selected item's name.

    Enter, Space or a click opens the popup. Picking another item commits
    it through ``on_change``; Escape, a click outside the popup or picking
    the current item again closes it without a change.
    """

    def __init__(
        self,
        ui: TUI,
        items: list[DropDownItem],
        selected_id: str,
        on_change: Callable[[str], None] | None = None,
        layer: OverlayLayer | None = None,
        theme: SelectableListTheme | None = None,
        max_visible: int = 10,
        overlap_button: bool = True,
    ) -> None:
        self.focused = False
        self.items = list(items)
        self.selected_id = selected_id
        self.on_change = on_change
        self.layer = layer
        self.theme = theme
        self.max_visible = max_visible
        self.overlap_button = overlap_button
        self.element = Element(name="drop-down")
        self.hovering = False
        self.clicking = False
        self._box_width = 0

        self._ui = ui
        self._popup: _DropDownPopup | None = None
        self._handle: OverlayHandle | None = None
        self.above = False
        self._unsubscribers = [
            ui.mouse.on_click(self.element, self._on_click, self._is_active),
            ui.mouse.on_hover(self.element, self._on_hover, self._is_active),
        ]

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    @property
    def popup(self) -> _DropDownPopup | None:
        return self._popup

    @property
    def selected_name(self) -> str:
        for item in self.items:
            if item.id == self.selected_id:
                return item.name
        return ""

    def _is_active(self) -> bool:
        return self._ui.overlays.is_top_layer(self.layer)

    def _label_width(self) -> int:
        return max((visible_width(item.name) for item in self.items), default=0)

    # ------------------------------------------------------------------
    # Open / close
    # ------------------------------------------------------------------

    def toggle(self) -> None:
        if self.is_open:
            self.close(None)
        else:
            self.open()

    def open(self) -> None:
        if self.is_open or not self.items:
            return
        popup = _DropDownPopup(self, self._ui)
        self._popup = popup
        self._handle = self._ui.show_overlay(popup, self._popup_options())
        popup.bind(self._handle.overlay)
        self._ui.set_focus(popup)

    def close(self, chosen_id: str | None) -> None:
        """Close the popup, committing *chosen_id* unless it is ``None``."""
        if self._popup is None:
            return
        popup = self._popup
        self._popup = None
        self._handle = None
        popup.dispose()
        self._ui.hide_overlay(popup)
        self._ui.set_focus(self)
        if chosen_id is not None and chosen_id != self.selected_id:
            self.selected_id = chosen_id
            if self.on_change is not None:
                self.on_change(chosen_id)
        self._ui.request_render()

    def _popup_height(self) -> int:
        return min(len(self.items), self.max_visible) + 2

    def _popup_options(self) -> OverlayOptions:
        region = measure(self.element)
        left = region.left if region is not None else 0
        top = region.top if region is not None else 0
        col, row, above = popup_placement(
            left, top, self._ui.terminal.rows, self._popup_height(), self.overlap_button
        )
        self.above = above
        # prefix, marker, list borders and a scrollbar column
        width = self._label_width() + 4 + 2 + 1
        width = max(width, self._box_width)
        return {"row": row, "col": col, "width": width, "anchor": "top-left"}

    def _update_popup_position(self) -> None:
        if self._handle is not None:
            self._handle.overlay.options = self._popup_options()

    # ------------------------------------------------------------------
    # Component
    # ------------------------------------------------------------------

    def invalidate(self) -> None:
        pass

    def render(self, width: int) -> list[str]:
        label = pad_to_width(self.selected_name, self._label_width())
        content = f" {label} {ARROW} "
        box_width = min(width, visible_width(content) + 2)
        self._box_width = box_width
        chars = DOUBLE if self.clicking or self.hovering else SINGLE
        return boxed([content], box_width, chars)

    def handle_input(self, data: str) -> None:
        if get_keybindings().matches(data, "toggleSelect"):
            self.toggle()

    def _on_click(self, hit: bool, position: MousePosition) -> None:
        # Null click events reset the pressed look.
        if hit != self.clicking:
            self.clicking = hit
            self._ui.request_render()
        if hit:
            self._ui.set_focus(self)
            self.toggle()

    def _on_hover(self, inside: bool) -> None:
        if inside != self.hovering:
            self.hovering = inside
            self._ui.request_render()

    def dispose(self) -> None:
        self.close(None)
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
