"""Terminal-cell geometry: regions, layout handles and hit testing.

Rendered components only know their position relative to their parent, so an
absolute region is found by walking the ancestor chain and summing offsets.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Protocol


@dataclass(frozen=True)
class Region:
    """Axis-aligned rectangle of terminal cells (0-based)."""

    left: int
    top: int
    width: int
    height: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class Position(Protocol):
    x: int
    y: int


def empty_region() -> Region:
    return Region(left=0, top=0, width=0, height=0)


class Element:
    """Layout handle for a rendered component.

    ``layout`` is relative to ``parent`` and stays ``None`` until the owning
    component has been rendered at least once.
    """

    __slots__ = ("parent", "layout", "name")

    def __init__(self, parent: Element | None = None, name: str = "") -> None:
        self.parent = parent
        self.layout: Region | None = None
        self.name = name

    def set_layout(
        self, left: int, top: int, width: int, height: int
    ) -> None:
        self.layout = Region(left=left, top=top, width=width, height=height)

    def clear_layout(self) -> None:
        self.layout = None

    def __repr__(self) -> str:
        return f"Element({self.name or hex(id(self))}, layout={self.layout})"


def measure(
    element: Element | None, relative_to: Element | None = None
) -> Region | None:
    """Return *element*'s region in terminal cells.

    Offsets of every measured ancestor are added until *relative_to* (or an
    unmeasured ancestor) is reached. Returns ``None`` when *element* itself
    has not been measured yet.
    """
    if element is None or element.layout is None:
        return None
    layout = element.layout
    x = 0
    y = 0
    parent = element.parent
    while parent is not None:
        if parent.layout is None or parent is relative_to:
            break
        x += parent.layout.left
        y += parent.layout.top
        parent = parent.parent
    return Region(
        left=layout.left + x,
        top=layout.top + y,
        width=layout.width,
        height=layout.height,
    )


def is_intersecting(position: Position, region: Region | None) -> bool:
    """Check whether a 1-based pointer *position* falls inside *region*."""
    if region is None:
        return False
    x = position.x - 1
    y = position.y - 1
    outside_x = x < region.left or x > region.left + region.width - 1
    outside_y = y < region.top or y > region.top + region.height - 1
    return not outside_x and not outside_y


def clip_region(region: Region, columns: int, rows: int) -> Region:
    """Clamp *region* to the drawable area of a ``columns`` x ``rows`` screen.

    The last column and row are left alone so that writing the final cell
    never scrolls the terminal.
    """
    left = max(0, region.left)
    top = max(0, region.top)
    max_height = max(0, rows - 1 - top)
    max_width = max(0, columns - 1 - left)
    return Region(
        left=left,
        top=top,
        width=max(0, min(max_width, region.width)),
        height=max(0, min(max_height, region.height)),
    )
