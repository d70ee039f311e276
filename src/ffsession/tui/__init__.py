"""ffsession-tui: terminal interaction engine with mouse, overlays and scrolling."""

# Components (re-exported from components package)
from ffsession.tui.components import (
    Button,
    Checkbox,
    DropDown,
    DropDownItem,
    ListItem,
    Scrollable,
    SelectableList,
    SelectableListTheme,
    TextArea,
    TextChunk,
    plan_chunks,
)

# Configuration
from ffsession.tui.config import ScrollbarMode, TuiConfig, get_config, set_config

# Layout geometry
from ffsession.tui.geometry import Element, Region, clip_region, is_intersecting, measure

# Keybindings
from ffsession.tui.keybindings import (
    DEFAULT_KEYBINDINGS,
    KeybindingsManager,
    NavigationAction,
    get_keybindings,
    set_keybindings,
)

# Keyboard input handling
from ffsession.tui.keys import Key, KeyId, is_key_release, matches_key, parse_key

# Mouse protocol and event bus
from ffsession.tui.mouse import (
    ClickEvent,
    MouseEvent,
    MousePosition,
    MoveEvent,
    ScrollEvent,
    decode,
    is_mouse_event,
    parse_mouse_event,
)
from ffsession.tui.mouse_events import MouseEvents

# Overlays
from ffsession.tui.overlay import (
    Overlay,
    OverlayAnchor,
    OverlayInfo,
    OverlayLayer,
    OverlayMargin,
    OverlayOptions,
    OverlayStack,
    SizeValue,
    composite_layers,
)

# Scrolling
from ffsession.tui.scroll import Scroller, ScrollState
from ffsession.tui.scrollbar import (
    Scrollbar,
    ScrollbarGeometry,
    ScrollbarTheme,
    drag_to_value,
    scrollbar_geometry,
)

# Input buffering
from ffsession.tui.stdin_buffer import StdinBuffer

# Terminal interface and implementations
from ffsession.tui.terminal import ProcessTerminal, Terminal

# Core TUI
from ffsession.tui.tui import (
    TUI,
    Component,
    Container,
    Focusable,
    OverlayHandle,
    is_focusable,
)

# Utilities
from ffsession.tui.utils import truncate_to_width, visible_width, wrap_text

# Background wrapping
from ffsession.tui.wrap import BackgroundWrapper, WrapResult

__all__ = [
    # Components
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
    # Config
    "ScrollbarMode",
    "TuiConfig",
    "get_config",
    "set_config",
    # Geometry
    "Element",
    "Region",
    "clip_region",
    "is_intersecting",
    "measure",
    # Keybindings
    "DEFAULT_KEYBINDINGS",
    "KeybindingsManager",
    "NavigationAction",
    "get_keybindings",
    "set_keybindings",
    # Keys
    "Key",
    "KeyId",
    "is_key_release",
    "matches_key",
    "parse_key",
    # Mouse
    "ClickEvent",
    "MouseEvent",
    "MouseEvents",
    "MousePosition",
    "MoveEvent",
    "ScrollEvent",
    "decode",
    "is_mouse_event",
    "parse_mouse_event",
    # Overlays
    "Overlay",
    "OverlayAnchor",
    "OverlayInfo",
    "OverlayLayer",
    "OverlayMargin",
    "OverlayOptions",
    "OverlayStack",
    "SizeValue",
    "composite_layers",
    # Scrolling
    "ScrollState",
    "Scrollbar",
    "ScrollbarGeometry",
    "ScrollbarTheme",
    "Scroller",
    "drag_to_value",
    "scrollbar_geometry",
    # Stdin buffer
    "StdinBuffer",
    # Terminal
    "ProcessTerminal",
    "Terminal",
    # TUI core
    "Component",
    "Container",
    "Focusable",
    "OverlayHandle",
    "TUI",
    "is_focusable",
    # Utils
    "truncate_to_width",
    "visible_width",
    "wrap_text",
    # Wrap
    "BackgroundWrapper",
    "WrapResult",
]
