"""Per-session toast store.

One NotificationStore is created per AdminSession and passed to every
screen that reports action results. Toasts are kept in insertion order in a
dict keyed by id, so removal by id is O(1). Non-persistent toasts expire on
their own when an event loop is running.

Changes are delivered two ways:
  - listeners (``subscribe``) get each NotificationEvent synchronously
  - stream queues (``open_stream``) feed the WebSocket endpoint; a full queue
    drops its oldest event
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from typing import TypedDict, get_args

from nozule_admin.models.state import Notification, NotificationType
from nozule_admin.observable import Observable

log = logging.getLogger("nozule_admin.notifications")

NOTIFICATION_TYPES = frozenset(get_args(NotificationType))


class NotificationEvent(TypedDict):
    event: str          # push | remove
    timestamp: float
    notification: dict


class NotificationStore(Observable):
    """Ordered toast queue with auto-expiry."""

    def __init__(self, ttl: float = 10.0, queue_size: int = 200) -> None:
        super().__init__()
        self._ttl = ttl
        self._queue_size = queue_size
        self._items: dict[str, Notification] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._streams: list[asyncio.Queue[NotificationEvent]] = []

    # ── Queue operations ─────────────────────────────────────────

    def push(
        self, type: NotificationType, message: str, persistent: bool = False
    ) -> str:
        """Append a toast and return its id."""
        if type not in NOTIFICATION_TYPES:
            raise ValueError(f"Unknown notification type: {type!r}")

        notification_id = f"toast_{secrets.token_hex(6)}"
        notification = Notification(
            id=notification_id,
            type=type,
            message=message,
            persistent=persistent,
        )
        self._items[notification_id] = notification
        if not persistent and self._ttl > 0:
            self._schedule_expiry(notification_id)

        log.debug("Toast %s (%s): %s", notification_id, type, message)
        self._emit("push", notification)
        return notification_id

    def remove(self, notification_id: str) -> bool:
        """Drop a toast by id. Returns False if it was already gone."""
        notification = self._items.pop(notification_id, None)
        timer = self._timers.pop(notification_id, None)
        if timer is not None:
            timer.cancel()
        if notification is None:
            return False
        self._emit("remove", notification)
        return True

    def expire(self, now: float | None = None) -> list[str]:
        """Remove every non-persistent toast older than the TTL."""
        if now is None:
            now = time.time()
        due = [
            n.id
            for n in self._items.values()
            if not n.persistent and n.created_at + self._ttl <= now
        ]
        for notification_id in due:
            self.remove(notification_id)
        return due

    def clear(self) -> None:
        for notification_id in list(self._items):
            self.remove(notification_id)

    def close(self) -> None:
        """Cancel pending expiry timers. The store stays readable."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

    @property
    def items(self) -> list[Notification]:
        return list(self._items.values())

    def get(self, notification_id: str) -> Notification | None:
        return self._items.get(notification_id)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, notification_id: object) -> bool:
        return notification_id in self._items

    # ── Streams ───────────────────────────────────────────────────

    def open_stream(self) -> asyncio.Queue[NotificationEvent]:
        """Create a new subscriber queue and return it."""
        q: asyncio.Queue[NotificationEvent] = asyncio.Queue(maxsize=self._queue_size)
        self._streams.append(q)
        log.info("Notification stream opened (total: %d)", len(self._streams))
        return q

    def close_stream(self, q: asyncio.Queue[NotificationEvent]) -> None:
        try:
            self._streams.remove(q)
        except ValueError:
            pass
        log.info("Notification stream closed (total: %d)", len(self._streams))

    @property
    def stream_count(self) -> int:
        return len(self._streams)

    # ── Internal ──────────────────────────────────────────────────

    def _schedule_expiry(self, notification_id: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop (sync callers, tests); expire() covers this case
            return
        self._timers[notification_id] = loop.call_later(
            self._ttl, self.remove, notification_id
        )

    def _emit(self, event_type: str, notification: Notification) -> None:
        event: NotificationEvent = {
            "event": event_type,
            "timestamp": time.time(),
            "notification": notification.model_dump(mode="json"),
        }
        self._publish(event)

        for q in self._streams:
            try:
                q.put_nowait(event)
            except asyncio.QueueFull:
                # Drop oldest event to make room
                try:
                    q.get_nowait()
                    q.put_nowait(event)
                except (asyncio.QueueEmpty, asyncio.QueueFull):
                    pass
