"""Listener registry used by the game owner and the hint coordinator."""

from __future__ import annotations

import logging
from typing import Any, Callable

from lineup.errors import AnalysisInvariantViolation

logger = logging.getLogger(__name__)

# Game owner -> subscribers
MOVE_APPLIED = "move_applied"
MOVE_UNDONE = "move_undone"
GAME_OVER = "game_over"
GAME_RESET = "game_reset"

# Hint coordinator -> UI
HINTS_UPDATED = "hints_updated"
HINTS_TOGGLED = "hints_toggled"

Listener = Callable[[Any], None]


class EventEmitter:
    """Synchronous publish/subscribe by event name.

    Listeners run in subscription order. A failing listener is logged and
    does not prevent the remaining listeners from running, except for
    AnalysisInvariantViolation, which always propagates.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def subscribe(self, event: str, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for ``event`` and return a callable that removes it."""
        self._listeners.setdefault(event, []).append(listener)
        logger.debug("Subscribed %r to %s", listener, event)

        def unsubscribe() -> None:
            self.unsubscribe(event, listener)

        return unsubscribe

    def unsubscribe(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(event)
        if not listeners:
            return
        self._listeners[event] = [cb for cb in listeners if cb is not listener]

    def emit(self, event: str, payload: Any = None) -> None:
        # Copy so listeners may unsubscribe while being notified.
        for listener in list(self._listeners.get(event, ())):
            try:
                listener(payload)
            except AnalysisInvariantViolation:
                raise
            except Exception:
                logger.exception("Listener for %s failed", event)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))
