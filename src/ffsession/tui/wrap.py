"""Word wrapping of large text off the render path.

Wrapping hundreds of thousands of characters takes long enough to be
visible, so it runs on an executor thread. Only the newest request matters:
starting a new one cancels the previous job cooperatively and any result
that still arrives for a superseded request is dropped.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Callable

from ffsession.tui.utils import wrap_text

logger = logging.getLogger(__name__)


class WrapCancelled(Exception):
    """Raised inside a wrap job whose token was cancelled."""


class CancellationToken:
    """Thread-safe cancellation flag shared with one background job."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise WrapCancelled()


@dataclass(frozen=True)
class WrapResult:
    text: str
    width: int
    lines: list[str]


def run_wrap_job(text: str, width: int, token: CancellationToken) -> list[str]:
    """Wrap *text* to *width*, stopping early once *token* is cancelled."""
    token.raise_if_cancelled()
    lines = wrap_text(text, width, should_stop=lambda: token.cancelled)
    token.raise_if_cancelled()
    return lines


class BackgroundWrapper:
    """Keeps the latest finished wrap and at most one job in flight."""

    def __init__(
        self,
        on_result: Callable[[WrapResult], None] | None = None,
        executor: Executor | None = None,
    ) -> None:
        self.on_result = on_result
        self._executor = executor
        self._result: WrapResult | None = None
        self._token: CancellationToken | None = None
        self._pending: tuple[str, int] | None = None
        self._future: asyncio.Future[list[str]] | None = None

    @property
    def result(self) -> WrapResult | None:
        return self._result

    @property
    def pending(self) -> bool:
        return self._token is not None

    def lines_for(self, text: str, width: int) -> list[str] | None:
        """Wrapped lines for exactly this text and width, if already known."""
        result = self._result
        if result is None or result.width != width:
            return None
        if result.text is not text and result.text != text:
            return None
        return result.lines

    def request(self, text: str, width: int) -> bool:
        """Start wrapping *text* at *width* unless it is done or under way.

        Returns ``True`` when a new job was started. Needs a running event
        loop; without one nothing happens.
        """
        if self.lines_for(text, width) is not None:
            return False
        if self._pending is not None and self._pending[1] == width and self._pending[0] == text:
            return False
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return False

        self.cancel()
        token = CancellationToken()
        self._token = token
        self._pending = (text, width)
        logger.debug("Starting wrap job: %d chars at width %d", len(text), width)
        future = loop.run_in_executor(self._executor, run_wrap_job, text, width, token)
        future.add_done_callback(
            lambda fut: self._finished(token, text, width, fut)
        )
        self._future = future
        return True

    def _finished(
        self,
        token: CancellationToken,
        text: str,
        width: int,
        future: asyncio.Future[list[str]],
    ) -> None:
        exc = None if future.cancelled() else future.exception()
        if token is not self._token:
            logger.debug("Discarding stale wrap result for width %d", width)
            return
        self._token = None
        self._pending = None
        self._future = None
        if future.cancelled():
            return
        if exc is not None:
            if not isinstance(exc, WrapCancelled):
                logger.debug("Wrap job failed", exc_info=exc)
            return
        self._result = WrapResult(text=text, width=width, lines=future.result())
        if self.on_result is not None:
            self.on_result(self._result)

    def cancel(self) -> None:
        """Cancel the job in flight, if any. Its result will be ignored."""
        if self._token is not None:
            logger.debug("Cancelling wrap job")
            self._token.cancel()
        self._token = None
        self._pending = None
        self._future = None

    def clear(self) -> None:
        self.cancel()
        self._result = None

    async def wait(self) -> WrapResult | None:
        """Wait for the job in flight (if any) and return the latest result."""
        future = self._future
        if future is not None:
            await asyncio.wait([future])
        return self._result
