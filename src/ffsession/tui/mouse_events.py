"""Mouse event bus.

Raw SGR reports are decoded once and fanned out to listeners by event kind.
Region helpers (``on_click``, ``on_hover``, ``on_scroll``) filter events to a
measured element and to the topmost overlay layer.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Literal

from ffsession.tui.config import get_config
from ffsession.tui.geometry import Element, is_intersecting, measure
from ffsession.tui.mouse import (
    ClickEvent,
    MouseEvent,
    MousePosition,
    MoveEvent,
    ScrollDirection,
    ScrollEvent,
    parse_mouse_event,
)

logger = logging.getLogger(__name__)

EventName = Literal["all", "position", "drag", "click", "scroll"]
EVENT_NAMES: tuple[EventName, ...] = ("all", "position", "drag", "click", "scroll")

Unsubscribe = Callable[[], None]
IsActive = Callable[[], bool]


def _always_active() -> bool:
    return True


class MouseEvents:
    """Decodes mouse input and notifies listeners.

    Listener signatures per event:

    * ``all(event)``
    * ``position(position)``
    * ``drag(position, event)`` -- motion with a button held
    * ``click(position, event_or_None)``
    * ``scroll(position, event_or_None)``

    A click or scroll is followed by the same event with ``None`` once
    ``null_event_delay`` seconds pass without another one, so listeners can
    drop transient highlight state.
    """

    def __init__(self, null_event_delay: float | None = None) -> None:
        self.position = MousePosition(0, 0)
        self._null_event_delay = (
            null_event_delay
            if null_event_delay is not None
            else get_config().null_event_delay
        )
        self._listeners: dict[str, list[Callable[..., Any]]] = {
            name: [] for name in EVENT_NAMES
        }
        self._null_timers: dict[str, asyncio.TimerHandle] = {}

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def on(self, name: EventName, listener: Callable[..., Any]) -> Unsubscribe:
        """Register *listener* for *name*; returns a callable that removes it."""
        if name not in self._listeners:
            raise ValueError(f"Unknown mouse event: {name!r}")
        self._listeners[name].append(listener)
        return lambda: self.off(name, listener)

    def off(self, name: EventName, listener: Callable[..., Any]) -> None:
        try:
            self._listeners[name].remove(listener)
        except (KeyError, ValueError):
            pass

    def listener_count(self, name: EventName) -> int:
        return len(self._listeners.get(name, ()))

    def _emit(self, name: EventName, *args: Any) -> None:
        for listener in list(self._listeners[name]):
            listener(*args)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def dispatch(self, data: str | bytes) -> MouseEvent | None:
        """Decode *data* and emit the resulting events.

        Returns the decoded event, or ``None`` when *data* was not a mouse
        report (nothing is emitted in that case).
        """
        event = parse_mouse_event(data)
        if event is None:
            return None

        self._emit("all", event)
        self.position = event.position
        self._emit("position", self.position)

        if isinstance(event, MoveEvent):
            if event.button != "none":
                self._emit("drag", self.position, event)
        elif isinstance(event, ClickEvent):
            self._emit("click", self.position, event)
            self._schedule_null("click")
        elif isinstance(event, ScrollEvent):
            self._emit("scroll", self.position, event)
            self._schedule_null("scroll")
        return event

    def _schedule_null(self, name: Literal["click", "scroll"]) -> None:
        previous = self._null_timers.pop(name, None)
        if previous is not None:
            previous.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to time against; listeners simply never get the reset.
            return
        self._null_timers[name] = loop.call_later(
            self._null_event_delay, self._emit_null, name
        )

    def _emit_null(self, name: Literal["click", "scroll"]) -> None:
        self._null_timers.pop(name, None)
        self._emit(name, self.position, None)

    def cancel_pending(self) -> None:
        """Cancel null events that have not fired yet."""
        for handle in self._null_timers.values():
            handle.cancel()
        self._null_timers.clear()

    def close(self) -> None:
        """Cancel pending null events and drop every listener."""
        self.cancel_pending()
        for listeners in self._listeners.values():
            listeners.clear()
        logger.debug("Mouse event bus closed")

    # ------------------------------------------------------------------
    # Region helpers
    # ------------------------------------------------------------------

    def on_click(
        self,
        element: Element,
        callback: Callable[[bool, MousePosition], None],
        is_active: IsActive | None = None,
    ) -> Unsubscribe:
        """Report every click as ``callback(hit, position)``.

        ``hit`` is true only for a press inside *element* while the owning
        layer is active. Releases, null events and misses report ``False``.
        """
        active = is_active or _always_active

        def handler(position: MousePosition, event: ClickEvent | None) -> None:
            hit = (
                event is not None
                and event.state == "pressed"
                and active()
                and is_intersecting(position, measure(element))
            )
            callback(hit, position)

        return self.on("click", handler)

    def on_hover(
        self,
        element: Element,
        callback: Callable[[bool], None],
        is_active: IsActive | None = None,
    ) -> Unsubscribe:
        """Report on every pointer movement whether it is over *element*."""
        active = is_active or _always_active

        def handler(position: MousePosition) -> None:
            callback(active() and is_intersecting(position, measure(element)))

        return self.on("position", handler)

    def on_scroll(
        self,
        element: Element,
        callback: Callable[[ScrollDirection], None],
        is_active: IsActive | None = None,
    ) -> Unsubscribe:
        """Report wheel turns over *element* as ``callback(direction)``."""
        active = is_active or _always_active

        def handler(position: MousePosition, event: ScrollEvent | None) -> None:
            if event is None:
                return
            if active() and is_intersecting(position, measure(element)):
                callback(event.direction)

        return self.on("scroll", handler)

    def recheck_hover(
        self, element: Element, callback: Callable[[bool], None], is_active: IsActive | None = None
    ) -> None:
        """Re-evaluate hover against the last known pointer position."""
        active = is_active or _always_active
        callback(active() and is_intersecting(self.position, measure(element)))
