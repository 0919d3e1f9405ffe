"""Observable base for explicit state objects.

State holders publish a new value after every change and views subscribe
to re-render. Listeners run synchronously in publish order.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

log = logging.getLogger("nozule_admin.observable")

Listener = Callable[[Any], None]


class Observable:
    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _publish(self, value: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:
                # Listener errors are logged, never propagated
                log.exception("Listener %r failed", listener)
