"""Tests for ffsession.tui.stdin_buffer.StdinBuffer."""

from __future__ import annotations

import asyncio

import pytest

from ffsession.tui.stdin_buffer import (
    BRACKETED_PASTE_END,
    BRACKETED_PASTE_START,
    ESC,
    StdinBuffer,
    classify_sequence,
    split_sequences,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class Collector:
    """Collects emitted data/paste/mouse events for assertions."""

    def __init__(self) -> None:
        self.data: list[str] = []
        self.pastes: list[str] = []
        self.mouse: list[str] = []

    def on_data(self, d: str) -> None:
        self.data.append(d)

    def on_paste(self, d: str) -> None:
        self.pastes.append(d)

    def on_mouse(self, d: str) -> None:
        self.mouse.append(d)


def make_buffer(timeout: float = 0.01, mouse: bool = True) -> tuple[StdinBuffer, Collector]:
    buf = StdinBuffer(timeout=timeout)
    col = Collector()
    buf.on_data(col.on_data)
    buf.on_paste(col.on_paste)
    if mouse:
        buf.on_mouse(col.on_mouse)
    return buf, col


# ---------------------------------------------------------------------------
# classify_sequence
# ---------------------------------------------------------------------------


class TestClassifySequence:
    def test_non_escape(self) -> None:
        assert classify_sequence("a") == "not-escape"

    def test_lone_esc_is_incomplete(self) -> None:
        assert classify_sequence(ESC) == "incomplete"

    def test_meta_key_is_complete(self) -> None:
        assert classify_sequence("\x1ba") == "complete"

    def test_csi(self) -> None:
        assert classify_sequence("\x1b[") == "incomplete"
        assert classify_sequence("\x1b[1;5") == "incomplete"
        assert classify_sequence("\x1b[A") == "complete"
        assert classify_sequence("\x1b[1;5A") == "complete"

    def test_sgr_mouse(self) -> None:
        assert classify_sequence("\x1b[<35;1") == "incomplete"
        assert classify_sequence("\x1b[<35;10;5") == "incomplete"
        assert classify_sequence("\x1b[<35;10;5M") == "complete"
        assert classify_sequence("\x1b[<0;1;1m") == "complete"

    def test_legacy_mouse(self) -> None:
        assert classify_sequence("\x1b[M ") == "incomplete"
        assert classify_sequence("\x1b[M !!") == "complete"

    def test_string_sequences(self) -> None:
        assert classify_sequence("\x1b]0;title") == "incomplete"
        assert classify_sequence("\x1b]0;title\x07") == "complete"
        assert classify_sequence("\x1b]0;title\x1b\\") == "complete"
        assert classify_sequence("\x1b_Gi=1\x1b\\") == "complete"

    def test_ss3(self) -> None:
        assert classify_sequence("\x1bO") == "incomplete"
        assert classify_sequence("\x1bOA") == "complete"


# ---------------------------------------------------------------------------
# split_sequences
# ---------------------------------------------------------------------------


class TestSplitSequences:
    def test_empty(self) -> None:
        assert split_sequences("") == ([], "")

    def test_mixed(self) -> None:
        assert split_sequences("ab\x1b[Ac") == (["a", "b", "\x1b[A", "c"], "")

    def test_incomplete_tail(self) -> None:
        assert split_sequences("x\x1b[<0;1") == (["x"], "\x1b[<0;1")

    def test_back_to_back_mouse_reports(self) -> None:
        sequences, rest = split_sequences("\x1b[<35;1;1M\x1b[<35;2;1M")
        assert sequences == ["\x1b[<35;1;1M", "\x1b[<35;2;1M"]
        assert rest == ""


# ---------------------------------------------------------------------------
# process
# ---------------------------------------------------------------------------


class TestProcess:
    def test_characters_emitted_individually(self) -> None:
        buf, col = make_buffer()
        buf.process("abc")
        assert col.data == ["a", "b", "c"]

    def test_empty_data_emits_once(self) -> None:
        buf, col = make_buffer()
        buf.process("")
        assert col.data == [""]

    def test_no_callback_does_not_raise(self) -> None:
        buf = StdinBuffer()
        buf.process("abc\x1b[A")

    def test_mouse_reports_routed_separately(self) -> None:
        buf, col = make_buffer()
        buf.process("a\x1b[<0;3;4Mb")
        assert col.mouse == ["\x1b[<0;3;4M"]
        assert col.data == ["a", "b"]

    def test_mouse_without_callback_goes_to_data(self) -> None:
        buf, col = make_buffer(mouse=False)
        buf.process("\x1b[<0;3;4M")
        assert col.data == ["\x1b[<0;3;4M"]

    def test_partial_without_loop_is_flushed(self) -> None:
        buf, col = make_buffer()
        buf.process("\x1b[")
        assert col.data == ["\x1b["]
        assert buf.get_buffer() == ""

    @pytest.mark.asyncio
    async def test_split_mouse_report_reassembled(self) -> None:
        buf, col = make_buffer()
        buf.process("\x1b[<35;1")
        assert col.mouse == []
        assert buf.get_buffer() == "\x1b[<35;1"
        buf.process("0;5M")
        assert col.mouse == ["\x1b[<35;10;5M"]
        assert col.data == []

    @pytest.mark.asyncio
    async def test_lone_escape_emitted_after_timeout(self) -> None:
        buf, col = make_buffer(timeout=0.01)
        buf.process(ESC)
        assert col.data == []
        await asyncio.sleep(0.05)
        assert col.data == [ESC]

    @pytest.mark.asyncio
    async def test_flush_returns_buffered_content(self) -> None:
        buf, col = make_buffer(timeout=1.0)
        buf.process("\x1b[1;")
        assert buf.flush() == ["\x1b[1;"]
        assert buf.get_buffer() == ""
        assert buf.flush() == []


# ---------------------------------------------------------------------------
# Bracketed paste
# ---------------------------------------------------------------------------


class TestBracketedPaste:
    def test_paste_in_one_chunk(self) -> None:
        buf, col = make_buffer()
        buf.process(f"x{BRACKETED_PASTE_START}hello\nworld{BRACKETED_PASTE_END}y")
        assert col.pastes == ["hello\nworld"]
        assert col.data == ["x", "y"]

    def test_paste_split_across_chunks(self) -> None:
        buf, col = make_buffer()
        buf.process(f"{BRACKETED_PASTE_START}hel")
        assert buf.in_paste
        buf.process(f"lo{BRACKETED_PASTE_END}")
        assert col.pastes == ["hello"]
        assert not buf.in_paste

    def test_mouse_looking_text_inside_paste_is_not_routed(self) -> None:
        buf, col = make_buffer()
        buf.process(f"{BRACKETED_PASTE_START}\x1b[<0;1;1M{BRACKETED_PASTE_END}")
        assert col.pastes == ["\x1b[<0;1;1M"]
        assert col.mouse == []

    def test_empty_paste(self) -> None:
        buf, col = make_buffer()
        buf.process(f"{BRACKETED_PASTE_START}{BRACKETED_PASTE_END}")
        assert col.pastes == [""]


class TestLifecycle:
    def test_clear_drops_partial_input(self) -> None:
        buf, col = make_buffer()
        buf.process(BRACKETED_PASTE_START + "abc")
        buf.clear()
        assert not buf.in_paste
        assert buf.get_buffer() == ""

    def test_destroy_detaches_callbacks(self) -> None:
        buf, col = make_buffer()
        buf.destroy()
        buf.process("a\x1b[<0;1;1M")
        assert col.data == []
        assert col.mouse == []
