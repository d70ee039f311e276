"""Overlay layers and the compositor that stacks them.

A terminal has no compositor of its own: when a layer is drawn above the
base UI, every cell it claims must be explicitly overwritten. Each layer
therefore reports *clear regions* (rectangles blanked before it draws) in
addition to its own content.

Only the topmost layer of an ``OverlayStack`` receives input; the base UI is
topmost while the stack is empty.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from typing import (
    Callable,
    Literal,
    Protocol,
    TypedDict,
    Union,
)

from ffsession.tui.geometry import Element, Region, clip_region, measure
from ffsession.tui.utils import splice_line

logger = logging.getLogger(__name__)

__all__ = [
    "OverlayAnchor",
    "OverlayMargin",
    "SizeValue",
    "OverlayOptions",
    "OverlayLayer",
    "OverlayStack",
    "OverlayInfo",
    "Overlay",
    "resolve_overlay_layout",
    "composite_layers",
]

# ---------------------------------------------------------------------------
# Placement options
# ---------------------------------------------------------------------------

OverlayAnchor = Literal[
    "center",
    "top-left",
    "top-right",
    "bottom-left",
    "bottom-right",
    "top-center",
    "bottom-center",
    "left-center",
    "right-center",
]


class OverlayMargin(TypedDict, total=False):
    top: int
    right: int
    bottom: int
    left: int


# int  ->  exact number of columns/rows
# str  ->  percentage string like "50%"
SizeValue = Union[int, str]


class OverlayOptions(TypedDict, total=False):
    width: SizeValue
    min_width: int
    max_height: SizeValue
    anchor: OverlayAnchor
    offset_x: int
    offset_y: int
    row: SizeValue
    col: SizeValue
    margin: OverlayMargin | int
    visible: Callable[[int, int], bool]


def _parse_size_value(value: SizeValue | None, reference_size: int) -> int | None:
    """Resolve a ``SizeValue`` (``"50%"`` or a plain int) against *reference_size*."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.endswith("%"):
        try:
            return math.floor(reference_size * float(value[:-1]) / 100)
        except ValueError:
            return None
    return None


def _resolve_anchor_row(
    anchor: OverlayAnchor, term_height: int, height: int, m_top: int, m_bottom: int
) -> int:
    if anchor in ("top-left", "top-right", "top-center"):
        return m_top
    if anchor in ("bottom-left", "bottom-right", "bottom-center"):
        return term_height - height - m_bottom
    available = term_height - m_top - m_bottom
    return m_top + max(0, (available - height) // 2)


def _resolve_anchor_col(
    anchor: OverlayAnchor, term_width: int, width: int, m_left: int, m_right: int
) -> int:
    if anchor in ("top-left", "bottom-left", "left-center"):
        return m_left
    if anchor in ("top-right", "bottom-right", "right-center"):
        return term_width - width - m_right
    available = term_width - m_left - m_right
    return m_left + max(0, (available - width) // 2)


def resolve_overlay_layout(
    options: OverlayOptions | None,
    term_width: int,
    term_height: int,
    content_height: int,
) -> Region:
    """Compute an overlay's absolute placement, clamped to the screen."""
    options = options or {}

    margin_raw = options.get("margin")
    if isinstance(margin_raw, int):
        margin: OverlayMargin = {
            "top": margin_raw,
            "right": margin_raw,
            "bottom": margin_raw,
            "left": margin_raw,
        }
    else:
        margin = margin_raw or {}
    m_top = margin.get("top", 0)
    m_right = margin.get("right", 0)
    m_bottom = margin.get("bottom", 0)
    m_left = margin.get("left", 0)

    available_width = term_width - m_left - m_right
    available_height = term_height - m_top - m_bottom

    width = _parse_size_value(options.get("width"), term_width)
    if width is None:
        width = available_width
    min_width = options.get("min_width")
    if min_width is not None and width < min_width:
        width = min_width
    width = max(1, min(width, term_width))

    max_height = _parse_size_value(options.get("max_height"), term_height)
    height = content_height
    if max_height is not None and height > max_height:
        height = max_height
    height = max(1, min(height, max(1, available_height)))

    anchor: OverlayAnchor = options.get("anchor", "center")
    offset_x = options.get("offset_x", 0)
    offset_y = options.get("offset_y", 0)

    explicit_row = _parse_size_value(options.get("row"), term_height)
    if explicit_row is not None:
        row = explicit_row + offset_y
    else:
        row = _resolve_anchor_row(anchor, term_height, height, m_top, m_bottom) + offset_y

    explicit_col = _parse_size_value(options.get("col"), term_width)
    if explicit_col is not None:
        col = explicit_col + offset_x
    else:
        col = _resolve_anchor_col(anchor, term_width, width, m_left, m_right) + offset_x

    row = max(0, min(row, term_height - 1))
    col = max(0, min(col, term_width - width))
    return Region(left=col, top=row, width=width, height=height)


# ---------------------------------------------------------------------------
# Layers and the stack
# ---------------------------------------------------------------------------


class OverlayLayer(Protocol):
    """Something the compositor can draw above the base UI."""

    enabled: bool
    element: Element

    def clear_regions(self) -> list[Region]:
        """Screen rectangles to blank before the layer is drawn."""
        ...

    def render_frame(self, columns: int, rows: int) -> tuple[list[str], Region] | None:
        """Render the layer's content and return it with its placement."""
        ...

    def check_clear_regions(self) -> bool:
        """Return ``True`` when the regions changed since they were blanked."""
        ...

    def mark_drawn(self, regions: list[Region]) -> None:
        """Remember the regions blanked for the current frame."""
        ...


class OverlayStack:
    """Ordered set of enabled layers; the last one is topmost.

    Changes are reported synchronously to observers so that everything
    depending on "am I on top?" sees the new state before the next render.
    """

    def __init__(self) -> None:
        self._layers: list[OverlayLayer] = []
        self._observers: list[Callable[[], None]] = []

    @property
    def layers(self) -> tuple[OverlayLayer, ...]:
        return tuple(self._layers)

    def __len__(self) -> int:
        return len(self._layers)

    def add(self, layer: OverlayLayer) -> None:
        if layer in self._layers:
            return
        self._layers.append(layer)
        logger.debug("Overlay added, depth=%d", len(self._layers))
        self._notify()

    def remove(self, layer: OverlayLayer) -> None:
        if layer not in self._layers:
            return
        self._layers.remove(layer)
        logger.debug("Overlay removed, depth=%d", len(self._layers))
        self._notify()

    def top(self) -> OverlayLayer | None:
        return self._layers[-1] if self._layers else None

    def is_top_layer(self, layer: OverlayLayer | None) -> bool:
        """``None`` stands for the base UI; a closed layer is never on top."""
        if not self._layers:
            return layer is None
        return self._layers[-1] is layer

    def info(self, layer: OverlayLayer | None = None) -> OverlayInfo:
        return OverlayInfo(self, layer)

    def add_observer(self, observer: Callable[[], None]) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self) -> None:
        for observer in list(self._observers):
            observer()


@dataclass(frozen=True)
class OverlayInfo:
    """Read-only view of one layer's standing within a stack."""

    stack: OverlayStack
    layer: OverlayLayer | None = None

    def is_top_layer(self) -> bool:
        return self.stack.is_top_layer(self.layer)


def _regions_json(regions: list[Region]) -> str:
    return json.dumps([r.to_dict() for r in regions])


class Overlay:
    """A component drawn as a modal layer.

    The layer is on the stack exactly while it is enabled. Its clear regions
    are the area its content was last drawn at plus the measured regions of
    any element registered with ``add_clear_element``.
    """

    def __init__(
        self,
        stack: OverlayStack,
        component: object,
        options: OverlayOptions | None = None,
        enabled: bool = False,
    ) -> None:
        self.stack = stack
        self.component = component
        self.options = options
        self.element = Element(name="overlay")
        child = getattr(component, "element", None)
        if isinstance(child, Element) and child.parent is None:
            child.parent = self.element
        self._clear_elements: list[Element] = []
        self._drawn_regions: str | None = None
        self._enabled = False
        self._destroyed = False
        if enabled:
            self.open()

    # ------------------------------------------------------------------
    # Enable / disable
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self.set_enabled(value)

    def set_enabled(self, value: bool) -> None:
        if self._destroyed:
            value = False
        if value == self._enabled:
            return
        self._enabled = value
        if value:
            self.stack.add(self)
        else:
            self.stack.remove(self)
            self.element.clear_layout()
            self._drawn_regions = None

    def open(self) -> None:
        self.set_enabled(True)

    def close(self) -> None:
        self.set_enabled(False)

    def destroy(self) -> None:
        """Close for good. Always unregisters, even if already closed."""
        self.close()
        self._destroyed = True
        self.stack.remove(self)

    @property
    def info(self) -> OverlayInfo:
        return self.stack.info(self)

    def is_top_layer(self) -> bool:
        return self.stack.is_top_layer(self)

    # ------------------------------------------------------------------
    # Clear regions
    # ------------------------------------------------------------------

    def add_clear_element(self, element: Element) -> None:
        if element not in self._clear_elements:
            self._clear_elements.append(element)

    def remove_clear_element(self, element: Element) -> None:
        if element in self._clear_elements:
            self._clear_elements.remove(element)

    def clear_regions(self) -> list[Region]:
        if not self._enabled:
            return []
        regions: list[Region] = []
        for element in (self.element, *self._clear_elements):
            region = measure(element)
            if region is not None:
                regions.append(region)
        return regions

    def check_clear_regions(self) -> bool:
        regions = self.clear_regions()
        if not regions:
            return False
        return _regions_json(regions) != self._drawn_regions

    # ------------------------------------------------------------------
    # Rendering / input
    # ------------------------------------------------------------------

    def render_frame(self, columns: int, rows: int) -> tuple[list[str], Region] | None:
        if self.options is not None:
            visible = self.options.get("visible")
            if visible is not None and not visible(columns, rows):
                return None
        render = getattr(self.component, "render", None)
        if render is None:
            return None
        # Render at the provisional width to learn the content height.
        provisional = resolve_overlay_layout(self.options, columns, rows, rows)
        lines: list[str] = render(provisional.width)
        placement = resolve_overlay_layout(self.options, columns, rows, len(lines))
        lines = lines[: placement.height]
        child = getattr(self.component, "element", None)
        if isinstance(child, Element):
            child.set_layout(0, 0, placement.width, len(lines))
        return lines, placement

    def mark_drawn(self, regions: list[Region]) -> None:
        self._drawn_regions = _regions_json(regions)

    def handle_input(self, data: str) -> None:
        handler = getattr(self.component, "handle_input", None)
        if callable(handler):
            handler(data)

    def invalidate(self) -> None:
        invalidate = getattr(self.component, "invalidate", None)
        if invalidate is not None:
            invalidate()


# ---------------------------------------------------------------------------
# Compositing
# ---------------------------------------------------------------------------


def blank_region(lines: list[str], region: Region, columns: int) -> None:
    """Overwrite *region* of *lines* with spaces, in place."""
    if region.width <= 0:
        return
    blank = " " * region.width
    for row in range(region.top, region.top + region.height):
        if row >= len(lines):
            break
        lines[row] = splice_line(lines[row], blank, region.left, region.width, columns)


def composite_layers(
    base_lines: list[str],
    stack: OverlayStack,
    columns: int,
    rows: int,
) -> tuple[list[str], bool]:
    """Draw every enabled layer of *stack* over *base_lines*, bottom to top.

    Returns the composited lines and whether any layer's clear regions
    changed while drawing (so the frame should be redrawn once more).
    """
    result = list(base_lines)
    while len(result) < rows:
        result.append("")

    needs_redraw = False
    for layer in stack.layers:
        if not layer.enabled:
            continue

        regions = layer.clear_regions()
        for region in regions:
            blank_region(result, clip_region(region, columns, rows), columns)
        layer.mark_drawn(regions)

        frame = layer.render_frame(columns, rows)
        if frame is None:
            layer.element.clear_layout()
            continue
        lines, placement = frame
        for index, line in enumerate(lines):
            row = placement.top + index
            if row >= len(result):
                break
            result[row] = splice_line(
                result[row], line, placement.left, placement.width, columns
            )
        layer.element.set_layout(
            placement.left, placement.top, placement.width, len(lines)
        )
        if layer.check_clear_regions():
            needs_redraw = True

    return result, needs_redraw
