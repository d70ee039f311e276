"""Terminal back-ends.

``Terminal`` is the interface the renderer talks to. ``ProcessTerminal``
drives the real tty: raw mode, bracketed paste, SGR mouse reporting, the
kitty keyboard protocol and the alternate screen buffer. It can hand the
main screen back temporarily so that an interactive prompt (for example a
permission request) can talk to the user.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import signal
import sys
import termios
import tty
from typing import Callable, Protocol, TypeVar

from ffsession.tui.config import TuiConfig, get_config
from ffsession.tui.mouse import DISABLE_MOUSE, ENABLE_MOUSE
from ffsession.tui.stdin_buffer import (
    BRACKETED_PASTE_END,
    BRACKETED_PASTE_START,
    StdinBuffer,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ---------------------------------------------------------------------------
# ANSI escape constants
# ---------------------------------------------------------------------------

BRACKETED_PASTE_ENABLE = "\x1b[?2004h"
BRACKETED_PASTE_DISABLE = "\x1b[?2004l"

KITTY_QUERY = "\x1b[?u"
KITTY_ENABLE = "\x1b[>1u"
KITTY_DISABLE = "\x1b[<u"
_KITTY_RESPONSE_RE = re.compile(r"^\x1b\[\?(\d+)u$")

USE_ALTERNATE_BUFFER = "\x1b[?1049h"
USE_MAIN_BUFFER = "\x1b[?1049l"
HIDE_CURSOR = "\x1b[?25l"
SHOW_CURSOR = "\x1b[?25h"
CLEAR_LINE = "\x1b[2K\r"
CLEAR_FROM_CURSOR = "\x1b[0J"
CLEAR_SCREEN = "\x1b[2J\x1b[H"

# Entering: switch, hide the cursor, start from a blank screen.
ENTER_ALTERNATE_SCREEN = USE_ALTERNATE_BUFFER + HIDE_CURSOR + CLEAR_SCREEN
# Leaving: blank the alternate buffer first so it is empty next time.
LEAVE_ALTERNATE_SCREEN = CLEAR_SCREEN + USE_MAIN_BUFFER + SHOW_CURSOR

# ---------------------------------------------------------------------------
# Terminal protocol
# ---------------------------------------------------------------------------


class Terminal(Protocol):
    """Interface for terminal I/O operations."""

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
        on_mouse: Callable[[str], None] | None = None,
    ) -> None: ...

    def stop(self) -> None: ...

    def write(self, data: str) -> None: ...

    @property
    def columns(self) -> int: ...

    @property
    def rows(self) -> int: ...

    def move_by(self, lines: int) -> None: ...

    def hide_cursor(self) -> None: ...

    def show_cursor(self) -> None: ...

    def clear_line(self) -> None: ...

    def clear_from_cursor(self) -> None: ...

    def clear_screen(self) -> None: ...

    def run_on_main_buffer(self, callback: Callable[[], T]) -> T: ...


# ---------------------------------------------------------------------------
# ProcessTerminal implementation
# ---------------------------------------------------------------------------


class ProcessTerminal:
    """Terminal backed by ``sys.stdin`` / ``sys.stdout``."""

    def __init__(self, config: TuiConfig | None = None) -> None:
        self._config = config or get_config()
        self._input_handler: Callable[[str], None] | None = None
        self._resize_handler: Callable[[], None] | None = None
        self._mouse_handler: Callable[[str], None] | None = None
        self._kitty_protocol_active = False
        self._stdin_buffer: StdinBuffer | None = None
        self._stdin_reader_active = False
        self._original_termios: list | None = None
        self._prev_sigwinch_handler: signal.Handlers | None = None
        self._mouse_enabled = False
        self._alternate_screen = False
        self._started = False

    # -- properties ---------------------------------------------------------

    @property
    def kitty_protocol_active(self) -> bool:
        return self._kitty_protocol_active

    @property
    def mouse_enabled(self) -> bool:
        return self._mouse_enabled

    @property
    def columns(self) -> int:
        try:
            return os.get_terminal_size(sys.stdout.fileno()).columns
        except (ValueError, OSError):
            return 80

    @property
    def rows(self) -> int:
        try:
            return os.get_terminal_size(sys.stdout.fileno()).lines
        except (ValueError, OSError):
            return 24

    # -- start / stop -------------------------------------------------------

    def start(
        self,
        on_input: Callable[[str], None],
        on_resize: Callable[[], None],
        on_mouse: Callable[[str], None] | None = None,
    ) -> None:
        """Enter raw mode and start delivering input."""
        self._input_handler = on_input
        self._resize_handler = on_resize
        self._mouse_handler = on_mouse

        fd = sys.stdin.fileno()
        self._original_termios = termios.tcgetattr(fd)
        tty.setraw(fd)

        if self._config.alternate_screen:
            self._raw_write(ENTER_ALTERNATE_SCREEN)
            self._alternate_screen = True
        self._raw_write(BRACKETED_PASTE_ENABLE)
        if self._config.mouse and on_mouse is not None:
            self.enable_mouse()

        self._prev_sigwinch_handler = signal.getsignal(signal.SIGWINCH)
        signal.signal(signal.SIGWINCH, self._on_sigwinch)

        self._setup_stdin_buffer()
        self._start_stdin_reader()
        self._raw_write(KITTY_QUERY)
        self._started = True
        logger.debug(
            "Terminal started (%dx%d, mouse=%s, alternate_screen=%s)",
            self.columns,
            self.rows,
            self._mouse_enabled,
            self._alternate_screen,
        )

    def stop(self) -> None:
        """Restore the terminal to the state ``start`` found it in."""
        self.disable_mouse()
        self._raw_write(BRACKETED_PASTE_DISABLE)
        if self._kitty_protocol_active:
            self._raw_write(KITTY_DISABLE)
            self._kitty_protocol_active = False
        if self._alternate_screen:
            self._raw_write(LEAVE_ALTERNATE_SCREEN)
            self._alternate_screen = False

        if self._stdin_buffer is not None:
            self._stdin_buffer.destroy()
            self._stdin_buffer = None
        self._remove_stdin_reader()

        if self._prev_sigwinch_handler is not None:
            signal.signal(signal.SIGWINCH, self._prev_sigwinch_handler)
            self._prev_sigwinch_handler = None

        self._restore_termios()
        self._input_handler = None
        self._resize_handler = None
        self._mouse_handler = None
        self._started = False
        logger.debug("Terminal stopped")

    # -- mouse --------------------------------------------------------------

    def enable_mouse(self) -> None:
        if self._mouse_enabled:
            return
        self._raw_write(ENABLE_MOUSE)
        self._mouse_enabled = True
        logger.debug("Mouse reporting enabled")

    def disable_mouse(self) -> None:
        if not self._mouse_enabled:
            return
        self._raw_write(DISABLE_MOUSE)
        self._mouse_enabled = False
        logger.debug("Mouse reporting disabled")

    # -- main buffer hand-over -----------------------------------------------

    def run_on_main_buffer(self, callback: Callable[[], T]) -> T:
        """Run *callback* with the user's normal screen and cooked mode.

        The alternate buffer is cleared and left, the cursor shown and raw
        mode dropped while *callback* runs (it may read from stdin). Raw
        mode and the alternate buffer come back afterwards, also when
        *callback* raises.
        """
        if not self._started:
            return callback()

        mouse_was_enabled = self._mouse_enabled
        self.disable_mouse()
        self._remove_stdin_reader()
        if self._alternate_screen:
            self._raw_write(LEAVE_ALTERNATE_SCREEN)
        else:
            self._raw_write(SHOW_CURSOR)
        self._restore_termios(keep=True)
        try:
            return callback()
        finally:
            tty.setraw(sys.stdin.fileno())
            if self._alternate_screen:
                self._raw_write(ENTER_ALTERNATE_SCREEN)
            if mouse_was_enabled:
                self.enable_mouse()
            self._start_stdin_reader()

    # -- write --------------------------------------------------------------

    def write(self, data: str) -> None:
        self._raw_write(data)

    # -- cursor / screen manipulation --------------------------------------

    def move_by(self, lines: int) -> None:
        """Move the cursor up (negative) or down (positive) by *lines*."""
        if lines < 0:
            self._raw_write(f"\x1b[{-lines}A")
        elif lines > 0:
            self._raw_write(f"\x1b[{lines}B")

    def hide_cursor(self) -> None:
        self._raw_write(HIDE_CURSOR)

    def show_cursor(self) -> None:
        self._raw_write(SHOW_CURSOR)

    def clear_line(self) -> None:
        self._raw_write(CLEAR_LINE)

    def clear_from_cursor(self) -> None:
        self._raw_write(CLEAR_FROM_CURSOR)

    def clear_screen(self) -> None:
        self._raw_write(CLEAR_SCREEN)

    # -- private: input -----------------------------------------------------

    def _setup_stdin_buffer(self) -> None:
        buffer = StdinBuffer(timeout=0.01)

        def on_data(data: str) -> None:
            if _KITTY_RESPONSE_RE.match(data):
                self._kitty_protocol_active = True
                self._raw_write(KITTY_ENABLE)
                return
            if self._input_handler is not None:
                self._input_handler(data)

        def on_paste(data: str) -> None:
            if self._input_handler is not None:
                self._input_handler(BRACKETED_PASTE_START + data + BRACKETED_PASTE_END)

        buffer.on_data(on_data)
        buffer.on_paste(on_paste)
        buffer.on_mouse(self._mouse_handler)
        self._stdin_buffer = buffer

    def _start_stdin_reader(self) -> None:
        if self._stdin_reader_active:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        loop.add_reader(sys.stdin.fileno(), self._on_stdin_readable)
        self._stdin_reader_active = True

    def _remove_stdin_reader(self) -> None:
        if not self._stdin_reader_active:
            return
        try:
            asyncio.get_running_loop().remove_reader(sys.stdin.fileno())
        except (RuntimeError, ValueError):
            pass
        self._stdin_reader_active = False

    def _on_stdin_readable(self) -> None:
        try:
            raw = os.read(sys.stdin.fileno(), 4096)
        except OSError:
            return
        if not raw:
            return
        data = raw.decode("utf-8", errors="replace")
        if self._stdin_buffer is not None:
            self._stdin_buffer.process(data)
        elif self._input_handler is not None:
            self._input_handler(data)

    def _on_sigwinch(self, signum: int, frame: object) -> None:
        if self._resize_handler is not None:
            self._resize_handler()

    # -- private: tty state ---------------------------------------------------

    def _restore_termios(self, keep: bool = False) -> None:
        if self._original_termios is None:
            return
        termios.tcsetattr(sys.stdin.fileno(), termios.TCSADRAIN, self._original_termios)
        if not keep:
            self._original_termios = None

    def _raw_write(self, data: str) -> None:
        try:
            sys.stdout.write(data)
            sys.stdout.flush()
        except OSError:
            pass
