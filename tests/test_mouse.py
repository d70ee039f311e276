"""Tests for ffsession.tui.mouse -- SGR mouse report decoding."""

from __future__ import annotations

import pytest

from ffsession.tui.mouse import (
    ClickEvent,
    MousePosition,
    MoveEvent,
    ScrollEvent,
    decode,
    is_mouse_event,
    parse_mouse_event,
)


# ---------------------------------------------------------------------------
# Event classes
# ---------------------------------------------------------------------------


class TestEventClasses:
    @pytest.mark.parametrize(
        "code, direction",
        [(64, "up"), (65, "down")],
    )
    def test_scroll_codes(self, code: int, direction: str) -> None:
        event = decode(f"\x1b[<{code};3;4M")
        assert event == ScrollEvent(direction=direction, x=3, y=4)

    @pytest.mark.parametrize(
        "code, button",
        [(35, "none"), (34, "right"), (33, "middle"), (32, "left")],
    )
    def test_move_codes(self, code: int, button: str) -> None:
        event = decode(f"\x1b[<{code};7;8M")
        assert isinstance(event, MoveEvent)
        assert event.button == button
        assert event.state == "pressed"

    @pytest.mark.parametrize(
        "code, button",
        [(0, "left"), (1, "middle"), (2, "right")],
    )
    def test_click_codes(self, code: int, button: str) -> None:
        event = decode(f"\x1b[<{code};1;2M")
        assert event == ClickEvent(button=button, state="pressed", x=1, y=2)

    def test_unknown_class_is_not_an_event(self) -> None:
        # 3 masks to itself and is not in the table.
        assert decode("\x1b[<3;1;1M") is None


class TestExamples:
    def test_scroll_up(self) -> None:
        assert decode("\x1b[<64;10;5M") == ScrollEvent(
            direction="up", x=10, y=5, ctrl=False, alt=False
        )

    def test_move_none_released_is_discarded(self) -> None:
        assert decode("\x1b[<35;1;1m") is None

    def test_left_click_pressed_and_released(self) -> None:
        assert decode("\x1b[<0;1;1M") == ClickEvent(
            button="left", state="pressed", x=1, y=1, ctrl=False, alt=False
        )
        assert decode("\x1b[<0;1;1m") == ClickEvent(
            button="left", state="released", x=1, y=1, ctrl=False, alt=False
        )

    def test_move_with_button_released_is_kept(self) -> None:
        event = decode("\x1b[<32;4;4m")
        assert event == MoveEvent(button="left", state="released", x=4, y=4)


# ---------------------------------------------------------------------------
# Modifiers, terminators and malformed input
# ---------------------------------------------------------------------------


class TestModifiers:
    def test_ctrl_flag(self) -> None:
        event = decode("\x1b[<16;1;1M")
        assert isinstance(event, ClickEvent)
        assert event.ctrl is True
        assert event.alt is False

    def test_alt_flag(self) -> None:
        event = decode("\x1b[<8;1;1M")
        assert isinstance(event, ClickEvent)
        assert event.alt is True
        assert event.ctrl is False

    def test_ctrl_alt_scroll(self) -> None:
        event = decode("\x1b[<88;2;2M")
        assert event == ScrollEvent(direction="up", x=2, y=2, ctrl=True, alt=True)


class TestMalformed:
    def test_scroll_release_is_invalid(self) -> None:
        assert decode("\x1b[<64;10;5m") is None

    def test_bad_coordinates_default_to_zero(self) -> None:
        event = decode("\x1b[<0;abc;5M")
        assert isinstance(event, ClickEvent)
        assert (event.x, event.y) == (0, 5)

    def test_missing_terminator_counts_as_release(self) -> None:
        event = decode("\x1b[<0;1;1")
        assert isinstance(event, ClickEvent)
        assert event.state == "released"

    @pytest.mark.parametrize(
        "data",
        [
            "",
            "a",
            "\x1b[A",
            "\x1b[<",
            "\x1b[<x;1;1M",
            "\x1b[<0",
            "\x1b[M !!",
            "\x1b[<\u00b2;1;1M",
            "\x1b[<" + "1" * 5000 + ";1;1M",
        ],
    )
    def test_garbage_never_raises(self, data: str) -> None:
        assert decode(data) is None
        assert not is_mouse_event(data)

    @pytest.mark.parametrize("coordinate", ["\u00b2", "9" * 5000])
    def test_non_ascii_or_huge_coordinates_default_to_zero(self, coordinate: str) -> None:
        event = decode(f"\x1b[<0;{coordinate};4M")
        assert isinstance(event, ClickEvent)
        assert (event.x, event.y) == (0, 4)

    def test_bytes_input(self) -> None:
        assert decode(b"\x1b[<65;1;1M") == ScrollEvent(direction="down", x=1, y=1)

    def test_decode_is_pure(self) -> None:
        assert parse_mouse_event("\x1b[<2;9;9M") == parse_mouse_event("\x1b[<2;9;9M")


class TestPredicate:
    def test_recognises_reports(self) -> None:
        assert is_mouse_event("\x1b[<0;1;1M")
        assert is_mouse_event(b"\x1b[<64;1;1M")

    def test_rejects_keys_and_unknown_classes(self) -> None:
        assert not is_mouse_event("\x1b[A")
        assert not is_mouse_event("q")
        assert not is_mouse_event("\x1b[<3;1;1M")

    def test_position_property(self) -> None:
        event = decode("\x1b[<0;6;7M")
        assert event is not None
        assert event.position == MousePosition(6, 7)
