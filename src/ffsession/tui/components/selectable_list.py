"""SelectableList component: a registry of named items with multi-selection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Protocol

from ffsession.tui.components.scrollable import Scrollable
from ffsession.tui.geometry import Element, is_intersecting, measure
from ffsession.tui.keybindings import get_keybindings
from ffsession.tui.mouse import MousePosition
from ffsession.tui.utils import truncate_to_width

if TYPE_CHECKING:
    from ffsession.tui.overlay import OverlayLayer
    from ffsession.tui.tui import TUI

SelectionCallback = Callable[[list[str], bool], None]


@dataclass
class ListItem:
    id: str
    name: str
    element: Element = field(default_factory=lambda: Element(name="list-item"))


class SelectableListTheme(Protocol):
    active: Callable[[str], str]
    selected: Callable[[str], str]
    active_selected: Callable[[str], str]
    hover: Callable[[str], str]


class _ListBody:
    def __init__(self, owner: SelectableList) -> None:
        self._owner = owner
        self.element = Element(name="list-body")

    def invalidate(self) -> None:
        pass

    def render(self, width: int) -> list[str]:
        return self._owner._render_items(width)


class SelectableList:
    """Keyboard and mouse navigable list.

    Items are registered in display order. ``active_id`` is the keyboard
    cursor; ``selected_ids`` the toggled items, reported to
    ``on_selection_change(selected_ids, was_destroyed)`` on every change.
    ``was_destroyed`` is true when an item left the selection because it was
    unregistered rather than deselected.
    """

    def __init__(
        self,
        selected_ids: list[str] | None = None,
        on_selection_change: SelectionCallback | None = None,
        height: int = 10,
        scroll_margin: int = 1,
        ui: TUI | None = None,
        layer: OverlayLayer | None = None,
        theme: SelectableListTheme | None = None,
        on_name_change: Callable[[str, str], None] | None = None,
    ) -> None:
        self.focused = False
        self.on_selection_change = on_selection_change
        self.on_name_change = on_name_change
        self.scroll_margin = scroll_margin
        self._theme = theme
        self._ui = ui

        self._items: list[ListItem] = []
        self._active_id: str | None = None
        self._selected_ids: list[str] = list(selected_ids or [])
        self._hover_id: str | None = None

        self._body = _ListBody(self)
        self.scrollable = Scrollable(self._body, height, ui=ui, layer=layer)
        self.element = self.scrollable.element

        self._unsubscribers: list[Callable[[], None]] = []
        if ui is not None:
            is_active = self.scrollable.is_active
            self._unsubscribers.append(ui.mouse.on_click(self.element, self._on_click, is_active))
            self._unsubscribers.append(ui.mouse.on_hover(self.element, self._on_hover, is_active))

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def layer(self) -> OverlayLayer | None:
        return self.scrollable.layer

    @layer.setter
    def layer(self, value: OverlayLayer | None) -> None:
        self.scrollable.layer = value

    @property
    def items(self) -> tuple[ListItem, ...]:
        return tuple(self._items)

    @property
    def active_id(self) -> str | None:
        return self._active_id

    @property
    def selected_ids(self) -> list[str]:
        return list(self._selected_ids)

    @property
    def hover_id(self) -> str | None:
        return self._hover_id

    def get_name(self, item_id: str) -> str | None:
        """Name of a registered item, or ``None`` if it is not registered."""
        item = self._find(item_id)
        return item.name if item is not None else None

    def _find(self, item_id: str) -> ListItem | None:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def _active_index(self) -> int | None:
        for index, item in enumerate(self._items):
            if item.id == self._active_id:
                return index
        return None

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register(self, item_id: str, name: str) -> ListItem:
        if self._find(item_id) is not None:
            raise ValueError(f"Duplicate list item id: {item_id!r}")
        item = ListItem(item_id, name)
        item.element.parent = self._body.element
        self._items.append(item)
        if self._active_id is None:
            self._active_id = item_id
        if self.on_name_change is not None:
            self.on_name_change(item_id, name)
        self._request_render()
        return item

    def rename(self, item_id: str, name: str) -> None:
        item = self._find(item_id)
        if item is None or item.name == name:
            return
        item.name = name
        if self.on_name_change is not None:
            self.on_name_change(item_id, name)
        self._request_render()

    def unregister(self, item_id: str) -> None:
        """Forget an item; its selection is dropped with ``was_destroyed``."""
        item = self._find(item_id)
        if item is None:
            return
        index = self._items.index(item)
        self._items.remove(item)
        item.element.clear_layout()
        if self._active_id == item_id:
            if self._items:
                self._active_id = self._items[max(0, index - 1)].id
            else:
                self._active_id = None
        if self._hover_id == item_id:
            self._hover_id = None
        if item_id in self._selected_ids:
            self.toggle_selected(item_id, was_destroyed=True)
        self._request_render()

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def toggle_selected(self, item_id: str, was_destroyed: bool = False) -> None:
        """Add *item_id* to the selection, or remove it if already there."""
        if not was_destroyed and self._find(item_id) is None:
            return
        if item_id in self._selected_ids:
            selected = [other for other in self._selected_ids if other != item_id]
        else:
            selected = [*self._selected_ids, item_id]
        self._selected_ids = selected
        if self.on_selection_change is not None:
            self.on_selection_change(list(selected), was_destroyed)
        self._request_render()

    def set_selected_ids(self, selected_ids: list[str]) -> None:
        self._selected_ids = list(selected_ids)
        self._request_render()

    def keyboard_select_item(self, item_id: str) -> bool:
        """Move the keyboard cursor to *item_id*; ``False`` if unknown."""
        item = self._find(item_id)
        if item is None:
            return False
        self._change_active(item)
        return True

    def _change_active(self, item: ListItem) -> None:
        self._active_id = item.id
        self.scrollable.ensure_element_visible(item.element, self.scroll_margin)
        self._request_render()

    def move_active(self, delta: int) -> None:
        """Step the cursor by one item; stops at either end."""
        if not self._items:
            return
        index = self._active_index()
        if index is None:
            self._change_active(self._items[0])
            return
        target = index + (1 if delta > 0 else -1)
        if 0 <= target < len(self._items):
            self._change_active(self._items[target])

    # ------------------------------------------------------------------
    # Component
    # ------------------------------------------------------------------

    def invalidate(self) -> None:
        pass

    def render(self, width: int) -> list[str]:
        return self.scrollable.render(width)

    def _render_items(self, width: int) -> list[str]:
        lines: list[str] = []
        for row, item in enumerate(self._items):
            item.element.set_layout(0, row, width, 1)
            lines.append(self._render_item(item, width))
        return lines

    def _render_item(self, item: ListItem, width: int) -> str:
        active = item.id == self._active_id
        selected = item.id in self._selected_ids
        prefix = "→ " if active else "  "
        marker = "✓ " if selected else "  "
        line = truncate_to_width(prefix + marker + item.name, width, "")
        theme = self._theme
        if theme is None:
            return line
        if item.id == self._hover_id:
            return theme.hover(line)
        if selected and active:
            return theme.active_selected(line)
        if selected:
            return theme.selected(line)
        if active:
            return theme.active(line)
        return line

    def handle_input(self, data: str) -> None:
        kb = get_keybindings()
        if kb.matches(data, "cursorUp"):
            self.move_active(-1)
        elif kb.matches(data, "cursorDown"):
            self.move_active(1)
        elif kb.matches(data, "toggleSelect"):
            if self._active_id is not None:
                self.toggle_selected(self._active_id)
        elif kb.matches(data, "pageUp"):
            self.scrollable.apply_delta(-self.scrollable.outer_view_height)
        elif kb.matches(data, "pageDown"):
            self.scrollable.apply_delta(self.scrollable.outer_view_height)

    # ------------------------------------------------------------------
    # Mouse
    # ------------------------------------------------------------------

    def _item_at(self, position: MousePosition) -> ListItem | None:
        for item in self._items:
            if is_intersecting(position, measure(item.element)):
                return item
        return None

    def _on_click(self, hit: bool, position: MousePosition) -> None:
        if not hit:
            return
        if self._ui is not None:
            self._ui.set_focus(self)
        item = self._item_at(position)
        if item is None:
            return
        self._active_id = item.id
        self.toggle_selected(item.id)

    def _on_hover(self, inside: bool) -> None:
        hover_id = None
        if inside and self._ui is not None:
            item = self._item_at(self._ui.mouse.position)
            hover_id = item.id if item is not None else None
        if hover_id != self._hover_id:
            self._hover_id = hover_id
            self._request_render()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def dispose(self) -> None:
        """Drop mouse listeners and stop the scroll re-check."""
        self.scrollable.dispose()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    def _request_render(self) -> None:
        if self._ui is not None:
            self._ui.request_render()
