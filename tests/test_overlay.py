"""Tests for ffsession.tui.overlay -- the layer stack and the compositor."""

from __future__ import annotations

from ffsession.tui.geometry import Element, Region
from ffsession.tui.overlay import (
    Overlay,
    OverlayStack,
    blank_region,
    composite_layers,
    resolve_overlay_layout,
)


class StaticLines:
    def __init__(self, lines: list[str]) -> None:
        self.lines = lines
        self.inputs: list[str] = []
        self.widths: list[int] = []

    def render(self, width: int) -> list[str]:
        self.widths.append(width)
        return list(self.lines)

    def invalidate(self) -> None:
        pass

    def handle_input(self, data: str) -> None:
        self.inputs.append(data)


# ---------------------------------------------------------------------------
# Stack
# ---------------------------------------------------------------------------


class TestOverlayStack:
    def test_base_is_topmost_when_empty(self) -> None:
        stack = OverlayStack()
        assert stack.is_top_layer(None)
        assert stack.top() is None

    def test_open_a_then_b_then_close(self) -> None:
        stack = OverlayStack()
        a = Overlay(stack, StaticLines(["a"]))
        b = Overlay(stack, StaticLines(["b"]))
        a.open()
        b.open()
        assert b.is_top_layer()
        assert not a.is_top_layer()
        assert not stack.is_top_layer(None)
        b.close()
        assert a.is_top_layer()
        a.close()
        assert stack.is_top_layer(None)
        assert len(stack) == 0

    def test_closed_layer_is_never_topmost(self) -> None:
        stack = OverlayStack()
        overlay = Overlay(stack, StaticLines(["x"]))
        assert not overlay.is_top_layer()
        overlay.open()
        overlay.close()
        assert not overlay.is_top_layer()
        assert not overlay.info.is_top_layer()
        assert stack.is_top_layer(None)

    def test_removal_is_idempotent(self) -> None:
        stack = OverlayStack()
        overlay = Overlay(stack, StaticLines(["x"]), enabled=True)
        notified: list[int] = []
        stack.add_observer(lambda: notified.append(len(stack)))
        overlay.close()
        overlay.close()
        stack.remove(overlay)
        assert notified == [0]

    def test_observers_see_new_state_synchronously(self) -> None:
        stack = OverlayStack()
        overlay = Overlay(stack, StaticLines(["x"]))
        seen: list[bool] = []
        stack.add_observer(lambda: seen.append(overlay.is_top_layer()))
        overlay.open()
        assert seen == [True]

    def test_observer_unsubscribe(self) -> None:
        stack = OverlayStack()
        calls: list[int] = []
        off = stack.add_observer(lambda: calls.append(1))
        off()
        Overlay(stack, StaticLines(["x"]), enabled=True)
        assert calls == []

    def test_layers_are_read_only_copies(self) -> None:
        stack = OverlayStack()
        Overlay(stack, StaticLines(["x"]), enabled=True)
        assert isinstance(stack.layers, tuple)
        assert len(stack.layers) == 1

    def test_destroy_removes_and_blocks_reopen(self) -> None:
        stack = OverlayStack()
        overlay = Overlay(stack, StaticLines(["x"]), enabled=True)
        overlay.destroy()
        assert len(stack) == 0
        overlay.open()
        assert not overlay.enabled
        assert len(stack) == 0

    def test_info_is_bound_to_layer(self) -> None:
        stack = OverlayStack()
        overlay = Overlay(stack, StaticLines(["x"]))
        base_info = stack.info(None)
        overlay_info = overlay.info
        overlay.open()
        assert overlay_info.is_top_layer()
        assert not base_info.is_top_layer()


# ---------------------------------------------------------------------------
# Clear regions
# ---------------------------------------------------------------------------


class TestClearRegions:
    def test_disabled_layer_has_no_regions(self) -> None:
        stack = OverlayStack()
        overlay = Overlay(stack, StaticLines(["x"]))
        overlay.element.set_layout(0, 0, 3, 3)
        assert overlay.clear_regions() == []

    def test_regions_include_extra_elements(self) -> None:
        stack = OverlayStack()
        overlay = Overlay(stack, StaticLines(["x"]), enabled=True)
        overlay.element.set_layout(1, 1, 3, 3)
        extra = Element()
        extra.set_layout(10, 0, 2, 2)
        overlay.add_clear_element(extra)
        assert overlay.clear_regions() == [Region(1, 1, 3, 3), Region(10, 0, 2, 2)]
        overlay.remove_clear_element(extra)
        assert overlay.clear_regions() == [Region(1, 1, 3, 3)]

    def test_check_clear_regions_compares_with_drawn(self) -> None:
        stack = OverlayStack()
        overlay = Overlay(stack, StaticLines(["x"]), enabled=True)
        assert overlay.check_clear_regions() is False
        overlay.element.set_layout(0, 0, 2, 2)
        assert overlay.check_clear_regions() is True
        overlay.mark_drawn(overlay.clear_regions())
        assert overlay.check_clear_regions() is False

    def test_component_element_is_parented(self) -> None:
        stack = OverlayStack()
        component = StaticLines(["x"])
        component.element = Element()  # type: ignore[attr-defined]
        overlay = Overlay(stack, component)
        assert component.element.parent is overlay.element  # type: ignore[attr-defined]


# ---------------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------------


class TestResolveLayout:
    def test_centered_by_default(self) -> None:
        region = resolve_overlay_layout({"width": 10}, 40, 20, 4)
        assert region == Region(left=15, top=8, width=10, height=4)

    def test_explicit_row_and_col(self) -> None:
        region = resolve_overlay_layout({"width": 5, "row": 2, "col": 3}, 40, 20, 1)
        assert region == Region(3, 2, 5, 1)

    def test_percentage_width(self) -> None:
        region = resolve_overlay_layout({"width": "50%", "anchor": "top-left"}, 40, 20, 1)
        assert region.width == 20
        assert (region.left, region.top) == (0, 0)

    def test_max_height_clamps(self) -> None:
        region = resolve_overlay_layout({"max_height": 3}, 40, 20, 10)
        assert region.height == 3

    def test_clamped_to_screen(self) -> None:
        region = resolve_overlay_layout({"width": 10, "col": 38, "row": 30}, 40, 20, 1)
        assert region.left == 30
        assert region.top == 19


# ---------------------------------------------------------------------------
# Compositing
# ---------------------------------------------------------------------------


class TestComposite:
    def test_layer_drawn_over_base(self) -> None:
        stack = OverlayStack()
        Overlay(stack, StaticLines(["XX"]), {"width": 2, "row": 1, "col": 1}, enabled=True)
        lines, _ = composite_layers(["abcd", "efgh", "ijkl"], stack, 4, 4)
        assert lines[1].startswith("eXXh")
        assert lines[0] == "abcd"

    def test_frame_padded_to_rows(self) -> None:
        stack = OverlayStack()
        Overlay(stack, StaticLines(["x"]), {"row": 0, "col": 0, "width": 1}, enabled=True)
        lines, _ = composite_layers([], stack, 10, 5)
        assert len(lines) == 5

    def test_first_pass_requests_redraw_second_is_stable(self) -> None:
        stack = OverlayStack()
        overlay = Overlay(stack, StaticLines(["XX"]), {"width": 2, "row": 0, "col": 0}, enabled=True)
        _, first = composite_layers(["    "], stack, 4, 3)
        _, second = composite_layers(["    "], stack, 4, 3)
        assert first is True
        assert second is False
        assert overlay.element.layout == Region(0, 0, 2, 1)

    def test_previous_area_is_blanked(self) -> None:
        stack = OverlayStack()
        component = StaticLines(["XXX"])
        overlay = Overlay(stack, component, {"width": 3, "row": 0, "col": 0}, enabled=True)
        composite_layers(["abcdef", "ghijkl"], stack, 7, 3)
        # The layer moves; the old area is blanked before it is redrawn.
        overlay.options = {"width": 3, "row": 1, "col": 3}
        lines, needs_redraw = composite_layers(["abcdef", "ghijkl"], stack, 7, 3)
        assert lines[0].startswith("   def")
        assert lines[1].startswith("ghiXXX")
        assert needs_redraw is True

    def test_invisible_layer_is_skipped(self) -> None:
        stack = OverlayStack()
        overlay = Overlay(
            stack,
            StaticLines(["XX"]),
            {"width": 2, "row": 0, "col": 0, "visible": lambda cols, rows: cols > 10},
            enabled=True,
        )
        lines, _ = composite_layers(["abcd"], stack, 4, 2)
        assert lines[0] == "abcd"
        assert overlay.element.layout is None

    def test_disabled_layer_not_drawn(self) -> None:
        stack = OverlayStack()
        Overlay(stack, StaticLines(["XX"]), {"width": 2, "row": 0, "col": 0})
        lines, needs_redraw = composite_layers(["abcd"], stack, 4, 2)
        assert lines[0] == "abcd"
        assert needs_redraw is False

    def test_blank_region_in_place(self) -> None:
        lines = ["abcdef"]
        blank_region(lines, Region(1, 0, 2, 1), 6)
        assert lines[0].startswith("a  def")

    def test_input_forwarded_to_component(self) -> None:
        stack = OverlayStack()
        component = StaticLines(["x"])
        overlay = Overlay(stack, component, enabled=True)
        overlay.handle_input("q")
        assert component.inputs == ["q"]
