"""Tests for TUI rendering -- Container layout, render scheduling and routing.

Uses the VirtualTerminal to capture output and verify that components are
rendered correctly by the TUI framework.
"""

from __future__ import annotations

import asyncio

import pytest

from ffsession.tui.components.selectable_list import SelectableList
from ffsession.tui.config import TuiConfig
from ffsession.tui.geometry import Element, Region
from ffsession.tui.tui import TUI, Container

from .virtual_terminal import VirtualTerminal

# ---------------------------------------------------------------------------
# Minimal test components
# ---------------------------------------------------------------------------


class SimpleText:
    """A minimal component that renders static lines."""

    def __init__(self, *lines: str, measured: bool = False) -> None:
        self.lines = list(lines)
        self.renders = 0
        if measured:
            self.element = Element(name="text")

    def render(self, width: int) -> list[str]:
        self.renders += 1
        return list(self.lines)

    def invalidate(self) -> None:
        pass


class Input:
    """Focusable component that records the input it receives."""

    def __init__(self, wants_key_release: bool = False) -> None:
        self.focused = False
        self.inputs: list[str] = []
        self.wants_key_release = wants_key_release

    def render(self, width: int) -> list[str]:
        return ["input"]

    def invalidate(self) -> None:
        pass

    def handle_input(self, data: str) -> None:
        self.inputs.append(data)


def _tui(rows: int = 24, columns: int = 80) -> tuple[TUI, VirtualTerminal]:
    term = VirtualTerminal(rows=rows, columns=columns)
    return TUI(term, config=TuiConfig()), term


# ---------------------------------------------------------------------------
# Container
# ---------------------------------------------------------------------------


class TestContainer:
    def test_children_render_in_order(self) -> None:
        container = Container()
        container.add_child(SimpleText("line1", "line2"))
        container.add_child(SimpleText("after"))
        assert container.render(80) == ["line1", "line2", "after"]

    def test_remove_absent_child_is_noop(self) -> None:
        container = Container()
        c1 = SimpleText("a")
        container.add_child(c1)
        container.remove_child(SimpleText("b"))
        assert container.children == [c1]

    def test_children_are_measured(self) -> None:
        container = Container()
        first = SimpleText("a", measured=True)
        second = SimpleText("b", "c", measured=True)
        container.add_child(first)
        container.add_child(second)
        container.render(30)
        assert first.element.layout == Region(0, 0, 30, 1)
        assert second.element.layout == Region(0, 1, 30, 2)
        assert second.element.parent is container.element

    def test_removed_child_is_detached(self) -> None:
        container = Container()
        child = SimpleText("a", measured=True)
        container.add_child(child)
        container.render(30)
        container.remove_child(child)
        assert child.element.parent is None
        assert child.element.layout is None

    def test_clear(self) -> None:
        container = Container()
        container.add_child(SimpleText("a"))
        container.add_child(SimpleText("b"))
        container.clear()
        assert container.children == []


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class TestTUIRender:
    def test_render_writes_children(self) -> None:
        tui, term = _tui()
        tui.add_child(SimpleText("AAA"))
        tui.add_child(SimpleText("BBB"))
        tui.do_render()
        output = term.output
        assert 0 <= output.find("AAA") < output.find("BBB")

    def test_second_render_skips_unchanged_lines(self) -> None:
        tui, term = _tui()
        tui.add_child(SimpleText("static line"))
        tui.do_render()
        term.clear_buffer()
        tui.do_render()
        assert "static line" not in term.output

    def test_width_change_triggers_full_redraw(self) -> None:
        tui, term = _tui()
        tui.add_child(SimpleText("content"))
        tui.do_render()
        before = tui.full_redraws
        term.columns = 100
        tui.do_render()
        assert tui.full_redraws > before

    def test_frame_clipped_to_terminal_height(self) -> None:
        tui, _ = _tui(rows=3, columns=10)
        tui.add_child(SimpleText(*[str(i) for i in range(10)]))
        lines, _ = tui.compose_frame(10, 3)
        assert lines == ["0", "1", "2"]

    def test_zero_dimensions_no_crash(self) -> None:
        tui, term = _tui(rows=0, columns=0)
        tui.add_child(SimpleText("text"))
        tui.do_render()
        assert term.output == ""

    def test_stopped_tui_does_not_render(self) -> None:
        tui, term = _tui()
        text = SimpleText("visible")
        tui.add_child(text)
        tui.stop()
        tui.invalidate()
        tui.do_render()
        assert text.renders == 0


class TestRenderScheduling:
    def test_without_loop_renders_immediately(self) -> None:
        tui, _ = _tui()
        text = SimpleText("x")
        tui.add_child(text)
        tui.request_render()
        assert text.renders == 1

    def test_request_during_render_runs_after_it(self) -> None:
        tui, _ = _tui()

        class Reentrant(SimpleText):
            def render(self, width: int) -> list[str]:
                lines = super().render(width)
                if self.renders == 1:
                    tui.request_render()
                return lines

        text = Reentrant("x")
        tui.add_child(text)
        tui.request_render()
        assert text.renders == 2

    @pytest.mark.asyncio
    async def test_requests_coalesce_on_loop(self) -> None:
        tui, _ = _tui()
        text = SimpleText("x")
        tui.add_child(text)
        tui.start()
        tui.request_render()
        tui.request_render()
        assert text.renders == 0
        await asyncio.sleep(0.01)
        assert text.renders == 1
        tui.stop()


# ---------------------------------------------------------------------------
# Overlays and focus
# ---------------------------------------------------------------------------


class TestOverlays:
    def test_overlay_composited_over_base(self) -> None:
        tui, _ = _tui(rows=5, columns=10)
        tui.add_child(SimpleText("abcdef"))
        tui.show_overlay(SimpleText("XX"), {"row": 0, "col": 1, "width": 2})
        lines, _ = tui.compose_frame(10, 5)
        assert lines[0].startswith("aXXdef")

    def test_focus_restored_after_hide(self) -> None:
        tui, _ = _tui()
        base = Input()
        tui.add_child(base)
        tui.set_focus(base)
        popup = Input()
        tui.show_overlay(popup)
        assert tui.focused_component is popup
        assert not base.focused
        tui.hide_overlay(popup)
        assert tui.focused_component is base
        assert base.focused
        assert not tui.has_overlay()

    def test_keys_go_to_topmost_overlay(self) -> None:
        tui, term = _tui()
        base = Input()
        tui.add_child(base)
        tui.set_focus(base)
        tui.start()
        popup = Input()
        tui.show_overlay(popup)
        term.simulate_input("q")
        assert popup.inputs == ["q"]
        assert base.inputs == []
        tui.stop()

    def test_hidden_overlay_stays_known(self) -> None:
        tui, _ = _tui()
        popup = Input()
        handle = tui.show_overlay(popup)
        handle.set_hidden(True)
        assert handle.is_hidden()
        assert tui.is_overlay_known(popup)
        assert not tui.is_overlay_visible(popup)
        assert len(tui.overlays) == 0
        handle.set_hidden(False)
        assert tui.is_overlay_visible(popup)
        handle.hide()
        assert not tui.is_overlay_known(popup)

    def test_hidden_overlay_gets_no_input(self) -> None:
        tui, term = _tui()
        tui.start()
        changes: list[list[str]] = []
        lst = SelectableList(
            on_selection_change=lambda ids, destroyed: changes.append(ids),
            height=3,
            ui=tui,
        )
        lst.register("a", "A")
        lst.register("b", "B")
        handle = tui.show_overlay(lst, {"row": 5, "col": 5, "width": 10})
        lst.layer = handle.overlay
        assert tui.focused_component is lst

        handle.set_hidden(True)
        assert tui.focused_component is None
        assert not lst.focused
        term.simulate_click(3, 2)
        term.simulate_input("\r")
        assert changes == []

        handle.set_hidden(False)
        assert tui.focused_component is lst
        term.simulate_input("\r")
        assert changes == [["a"]]
        tui.stop()

    def test_hiding_returns_focus_to_previous_component(self) -> None:
        tui, _ = _tui()
        base = Input()
        tui.set_focus(base)
        popup = Input()
        handle = tui.show_overlay(popup)
        handle.set_hidden(True)
        assert tui.focused_component is base
        assert base.focused
        assert not popup.focused

    def test_layer_info(self) -> None:
        tui, _ = _tui()
        handle = tui.show_overlay(SimpleText("x"))
        assert tui.layer_info(handle.overlay).is_top_layer()
        assert not tui.layer_info(None).is_top_layer()


# ---------------------------------------------------------------------------
# Input routing
# ---------------------------------------------------------------------------


class TestInputRouting:
    def test_mouse_reports_bypass_focused_component(self) -> None:
        tui, term = _tui()
        focused = Input()
        tui.set_focus(focused)
        tui.start()
        clicks: list[object] = []
        tui.mouse.on("click", lambda pos, event: clicks.append(event))
        term.simulate_click(3, 4)
        assert focused.inputs == []
        assert len(clicks) == 2
        tui.stop()

    def test_mouse_disabled_by_config(self) -> None:
        term = VirtualTerminal()
        tui = TUI(term, config=TuiConfig(mouse=False))
        focused = Input()
        tui.set_focus(focused)
        tui.start()
        term.simulate_input("\x1b[<0;1;1M")
        # Without a mouse handler the report arrives as input and is routed
        # to the mouse bus by the TUI itself.
        assert focused.inputs == []
        tui.stop()

    def test_key_release_only_when_requested(self) -> None:
        tui, _ = _tui()
        plain = Input()
        tui.set_focus(plain)
        tui.handle_input("\x1b[97;1:3u")
        assert plain.inputs == []
        wants = Input(wants_key_release=True)
        tui.set_focus(wants)
        tui.handle_input("\x1b[97;1:3u")
        assert wants.inputs == ["\x1b[97;1:3u"]

    def test_stopped_tui_ignores_input(self) -> None:
        tui, _ = _tui()
        focused = Input()
        tui.set_focus(focused)
        tui.stop()
        tui.handle_input("a")
        assert focused.inputs == []


class TestMainBuffer:
    def test_callback_result_and_full_redraw(self) -> None:
        tui, term = _tui()
        tui.add_child(SimpleText("screen"))
        tui.start()
        term.clear_buffer()
        result = tui.run_on_main_buffer(lambda: 42)
        assert result == 42
        assert term.main_buffer_calls == 1
        assert not term.on_main_buffer
        assert "screen" in term.output
        tui.stop()

    def test_redraws_even_if_callback_fails(self) -> None:
        tui, term = _tui()
        tui.add_child(SimpleText("screen"))
        tui.start()
        term.clear_buffer()

        def fail() -> None:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            tui.run_on_main_buffer(fail)
        assert "screen" in term.output
        tui.stop()
