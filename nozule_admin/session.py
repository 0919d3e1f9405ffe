"""Per-admin session: one NotificationStore shared by every screen.

Each browser tab that opens the admin gets an AdminSession that:
  1. Owns the REST transport (HttpTransport unless one is injected)
  2. Owns the toast store all screens post their action results to
  3. Builds the screens lazily, on first access by URL slug
  4. Tears everything down on close(): debounce tasks, toast timers and
     the transport

Sessions are kept in a module-level registry keyed by a URL-safe token so
the FastAPI host can find them between requests. Tabs that close without
calling DELETE are swept by expire_idle_sessions() once idle for longer
than Settings.session_idle_minutes.
"""

from __future__ import annotations

import logging
import secrets
import time
from datetime import date
from typing import Any

from nozule_admin.api.base import AdminTransport
from nozule_admin.api.http import HttpTransport
from nozule_admin.config import Settings
from nozule_admin.config import settings as default_settings
from nozule_admin.models.entities import EntityId
from nozule_admin.notifications import NotificationStore
from nozule_admin.screens import (
    SCREENS,
    BookingManager,
    CalendarView,
    ChannelSyncScreen,
    ChannelsScreen,
    EmployeesScreen,
    InventoryScreen,
    Screen,
)

log = logging.getLogger("nozule_admin.session")


# ── Session registry ─────────────────────────────────────────────

_active_sessions: dict[str, "AdminSession"] = {}


def register_session(session: "AdminSession") -> str:
    """Register a session and return its unique ID."""
    session_id = secrets.token_urlsafe(18)
    session.session_id = session_id
    _active_sessions[session_id] = session
    log.info("Session registered: %s", session_id)
    return session_id


def unregister_session(session_id: str) -> "AdminSession | None":
    """Remove a session from the registry and return it."""
    session = _active_sessions.pop(session_id, None)
    log.info("Session unregistered: %s", session_id)
    return session


def get_active_sessions() -> dict[str, "AdminSession"]:
    """Return all active sessions."""
    return _active_sessions


def get_session(session_id: str) -> "AdminSession | None":
    """Look up a session by ID and mark it as active."""
    session = _active_sessions.get(session_id)
    if session is not None:
        session.touch()
    return session


def expire_idle_sessions(
    max_idle: float, now: float | None = None
) -> list["AdminSession"]:
    """Unregister sessions idle for longer than ``max_idle`` seconds.

    Sessions with an open notification stream count as active. The caller
    closes the returned sessions. ``max_idle <= 0`` disables expiry.
    """
    if max_idle <= 0:
        return []
    now = time.time() if now is None else now
    expired = [
        sid for sid, s in _active_sessions.items()
        if s.notifications.stream_count == 0 and now - s.last_active > max_idle
    ]
    for sid in expired:
        log.info("Session %s idle, expiring", sid)
    return [_active_sessions.pop(sid) for sid in expired]


class AdminSession:
    """State for one admin user working in the dashboard.

    Typical lifecycle::

        async with AdminSession(current_user_id=7) as session:
            bookings = session.screen("bookings")
            await bookings.load()
            await bookings.set_filters(status="pending")
            await bookings.perform("confirm", 42)
            print(session.notifications.items)
    """

    def __init__(
        self,
        transport: AdminTransport | None = None,
        settings: Settings | None = None,
        current_user_id: EntityId | None = None,
        today: date | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self.transport = transport or HttpTransport(
            base_url=self.settings.api_url,
            nonce=self.settings.nonce,
            timeout=self.settings.request_timeout,
        )
        self.notifications = NotificationStore(ttl=self.settings.toast_ttl_seconds)
        if current_user_id is None:
            current_user_id = self.settings.current_user_id or None
        self.current_user_id = current_user_id
        self.today = today
        self.session_id: str = ""
        self.started_at = time.time()
        self.last_active = self.started_at
        self._screens: dict[str, Screen] = {}
        self._closed = False

    # ── Screens ──────────────────────────────────────────────

    def screen(self, name: str) -> Screen:
        """Return the screen for URL slug ``name``, building it on first use."""
        if self._closed:
            raise RuntimeError("Session is closed")
        existing = self._screens.get(name)
        if existing is not None:
            return existing
        if name not in SCREENS:
            raise KeyError(f"Unknown screen: {name!r}")
        created = self._build(name)
        self._screens[name] = created
        log.debug("Session %s opened screen %s", self.session_id or "-", name)
        return created

    def _build(self, name: str) -> Screen:
        s = self.settings
        if name == BookingManager.name:
            return BookingManager(
                self.transport, self.notifications,
                per_page=s.per_page, debounce=s.search_debounce_ms / 1000,
            )
        if name == CalendarView.name:
            return CalendarView(
                self.transport, self.notifications,
                view=s.calendar_view, today=self.today,
            )
        if name == ChannelsScreen.name:
            return ChannelsScreen(self.transport, self.notifications)
        if name == ChannelSyncScreen.name:
            return ChannelSyncScreen(
                self.transport, self.notifications,
                debounce=s.search_debounce_ms / 1000,
            )
        if name == EmployeesScreen.name:
            return EmployeesScreen(
                self.transport, self.notifications,
                current_user_id=self.current_user_id,
            )
        if name == InventoryScreen.name:
            return InventoryScreen(
                self.transport, self.notifications,
                today=self.today, days_ahead=s.inventory_days_ahead,
            )
        raise KeyError(f"Unknown screen: {name!r}")

    def touch(self) -> None:
        self.last_active = time.time()

    @property
    def open_screens(self) -> list[str]:
        return list(self._screens)

    @property
    def closed(self) -> bool:
        return self._closed

    # ── Lifecycle ────────────────────────────────────────────

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for screen in self._screens.values():
            screen.close()
        self._screens.clear()
        self.notifications.close()
        await self.transport.close()
        log.info("Session %s closed", self.session_id or "-")

    async def __aenter__(self) -> "AdminSession":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def to_dict(self, detail: bool = False) -> dict[str, Any]:
        """Serialize session state for the API.

        With detail=True the current toasts are included too.
        """
        d: dict[str, Any] = {
            "session_id": self.session_id,
            "started_at": self.started_at,
            "last_active": self.last_active,
            "current_user_id": self.current_user_id,
            "screens": sorted(SCREENS),
            "open_screens": self.open_screens,
        }
        if detail:
            d["notifications"] = [
                n.model_dump(mode="json") for n in self.notifications.items
            ]
        return d
