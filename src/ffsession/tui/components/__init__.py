"""TUI components."""

from ffsession.tui.components.button import Button, Checkbox
from ffsession.tui.components.drop_down import DropDown, DropDownItem
from ffsession.tui.components.scrollable import Scrollable
from ffsession.tui.components.selectable_list import (
    ListItem,
    SelectableList,
    SelectableListTheme,
)
from ffsession.tui.components.text_area import TextArea, TextChunk, plan_chunks

__all__ = [
    "Button",
    "Checkbox",
    "DropDown",
    "DropDownItem",
    "ListItem",
    "Scrollable",
    "SelectableList",
    "SelectableListTheme",
    "TextArea",
    "TextChunk",
    "plan_chunks",
]
