"""Reassembles terminal input into complete sequences.

Reads from stdin can end in the middle of an escape sequence (SGR mouse
reports are long enough that this happens regularly while the pointer moves).
``StdinBuffer`` holds on to partial sequences until they complete, splits
bracketed pastes out of the stream and routes mouse reports to their own
callback.
"""

from __future__ import annotations

import asyncio
import re
from typing import Callable, Literal

from ffsession.tui.mouse import SGR_MOUSE_PREFIX, is_mouse_event

ESC = "\x1b"
BRACKETED_PASTE_START = "\x1b[200~"
BRACKETED_PASTE_END = "\x1b[201~"

Completeness = Literal["complete", "incomplete", "not-escape"]

_SGR_MOUSE_RE = re.compile(r"^\x1b\[<\d+;\d+;\d+[Mm]$")
_SGR_MOUSE_PARTIAL_RE = re.compile(r"^\x1b\[<[\d;]*$")

# Terminators of string-type sequences: BEL or ST (ESC \).
_STRING_INTRODUCERS = {"]": ("\x07", "\x1b\\"), "P": ("\x1b\\",), "_": ("\x1b\\",)}


def classify_sequence(data: str) -> Completeness:
    """Tell whether *data* is a whole escape sequence or needs more input."""
    if not data.startswith(ESC):
        return "not-escape"
    if len(data) == 1:
        return "incomplete"

    kind = data[1]
    if kind == "[":
        return _classify_csi(data)
    terminators = _STRING_INTRODUCERS.get(kind)
    if terminators is not None:
        return "complete" if data.endswith(terminators) and len(data) > 2 else "incomplete"
    if kind == "O":
        return "complete" if len(data) >= 3 else "incomplete"
    # ESC + one character is an alt-modified key.
    return "complete"


def _classify_csi(data: str) -> Completeness:
    if len(data) < 3:
        return "incomplete"
    # Legacy X10 mouse: ESC [ M followed by three raw bytes.
    if data.startswith("\x1b[M"):
        return "complete" if len(data) >= 6 else "incomplete"
    if data.startswith(SGR_MOUSE_PREFIX):
        if _SGR_MOUSE_RE.match(data):
            return "complete"
        if _SGR_MOUSE_PARTIAL_RE.match(data):
            return "incomplete"
        # Malformed report: hand it over rather than stalling the stream.
        return "complete" if 0x40 <= ord(data[-1]) <= 0x7E else "incomplete"
    return "complete" if 0x40 <= ord(data[-1]) <= 0x7E else "incomplete"


def split_sequences(buffer: str) -> tuple[list[str], str]:
    """Split *buffer* into complete sequences and an incomplete tail."""
    sequences: list[str] = []
    pos = 0
    while pos < len(buffer):
        if buffer[pos] != ESC:
            sequences.append(buffer[pos])
            pos += 1
            continue
        end = pos + 1
        while True:
            if end > len(buffer):
                return sequences, buffer[pos:]
            if classify_sequence(buffer[pos:end]) != "incomplete":
                break
            end += 1
        sequences.append(buffer[pos:end])
        pos = end
    return sequences, ""


class StdinBuffer:
    """Buffers raw input and emits complete key, mouse and paste events."""

    def __init__(self, *, timeout: float = 0.01) -> None:
        self._buffer = ""
        self._paste: str | None = None
        self._timeout = timeout
        self._timeout_handle: asyncio.TimerHandle | None = None

        self._on_data: Callable[[str], None] | None = None
        self._on_paste: Callable[[str], None] | None = None
        self._on_mouse: Callable[[str], None] | None = None

    def on_data(self, callback: Callable[[str], None]) -> None:
        """Set callback for complete key sequences."""
        self._on_data = callback

    def on_paste(self, callback: Callable[[str], None]) -> None:
        """Set callback for the content of a bracketed paste."""
        self._on_paste = callback

    def on_mouse(self, callback: Callable[[str], None] | None) -> None:
        """Set callback for SGR mouse reports.

        Without one, mouse reports go through ``on_data`` like any other
        sequence.
        """
        self._on_mouse = callback

    @property
    def in_paste(self) -> bool:
        return self._paste is not None

    def get_buffer(self) -> str:
        return self._buffer

    def _emit(self, sequence: str) -> None:
        if self._on_mouse is not None and is_mouse_event(sequence):
            self._on_mouse(sequence)
        elif self._on_data is not None:
            self._on_data(sequence)

    def _cancel_timeout(self) -> None:
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None

    def process(self, data: str) -> None:
        """Feed a chunk of input."""
        self._cancel_timeout()
        if not data and not self._buffer and self._paste is None:
            if self._on_data is not None:
                self._on_data("")
            return

        if self._paste is not None:
            self._paste += data
            self._finish_paste()
            return

        self._buffer += data
        start = self._buffer.find(BRACKETED_PASTE_START)
        if start != -1:
            before = self._buffer[:start]
            self._paste = self._buffer[start + len(BRACKETED_PASTE_START) :]
            self._buffer = ""
            sequences, tail = split_sequences(before)
            # A partial sequence right before a paste cannot complete anymore.
            if tail:
                sequences.append(tail)
            for sequence in sequences:
                self._emit(sequence)
            self._finish_paste()
            return

        sequences, self._buffer = split_sequences(self._buffer)
        for sequence in sequences:
            self._emit(sequence)
        if self._buffer:
            self._schedule_flush()

    def _finish_paste(self) -> None:
        assert self._paste is not None
        end = self._paste.find(BRACKETED_PASTE_END)
        if end == -1:
            return
        content = self._paste[:end]
        rest = self._paste[end + len(BRACKETED_PASTE_END) :]
        self._paste = None
        if self._on_paste is not None:
            self._on_paste(content)
        if rest:
            self.process(rest)

    def _schedule_flush(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Nothing to wait on; hand over what we have.
            self._flush_timeout()
            return
        self._timeout_handle = loop.call_later(self._timeout, self._flush_timeout)

    def _flush_timeout(self) -> None:
        self._timeout_handle = None
        for sequence in self.flush():
            self._emit(sequence)

    def flush(self) -> list[str]:
        """Return (and forget) whatever partial input is buffered."""
        self._cancel_timeout()
        if not self._buffer:
            return []
        pending = [self._buffer]
        self._buffer = ""
        return pending

    def clear(self) -> None:
        self._cancel_timeout()
        self._buffer = ""
        self._paste = None

    def destroy(self) -> None:
        self.clear()
        self._on_data = None
        self._on_paste = None
        self._on_mouse = None
