"""Room-type × date booking calendar."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

from nozule_admin.api.base import AdminTransport
from nozule_admin.config import CALENDAR_VIEWS, settings
from nozule_admin.errors import FormValidationError
from nozule_admin.filters import FilterState
from nozule_admin.grid import Grid, build_calendar_grid, date_window
from nozule_admin.loader import ListLoader
from nozule_admin.models.entities import Booking, RoomType
from nozule_admin.models.state import Filter, Page
from nozule_admin.notifications import NotificationStore

from .base import Handler, Screen, dump, parse_items

VIEW_DAYS = {"week": 7, "2week": 14, "month": 30}


class CalendarView(Screen):
    name = "calendar"
    component = "nzlCalendarView"
    title = "Calendar"

    def __init__(
        self,
        transport: AdminTransport,
        notifications: NotificationStore,
        view: str | None = None,
        today: date | None = None,
    ) -> None:
        super().__init__(transport, notifications)
        view = view or settings.calendar_view
        _check_view(view)
        self._today = today or date.today()
        self.loader = ListLoader(self._fetch, name="calendar")
        self.filters = FilterState(
            self.loader.load,
            Filter(
                date_from=self._today,
                date_to=self._today + timedelta(days=VIEW_DAYS[view] - 1),
                extra={"view": view},
            ),
        )
        self.loader.subscribe(self._changed)
        self.filters.subscribe(self._changed)

    # ── Window ────────────────────────────────────────────────

    @property
    def view(self) -> str:
        return self.filters.filter.extra.get("view") or settings.calendar_view

    @property
    def days(self) -> int:
        return VIEW_DAYS[self.view]

    @property
    def start(self) -> date:
        return self.filters.filter.date_from or self._today

    @property
    def end(self) -> date:
        return self.start + timedelta(days=self.days - 1)

    @property
    def dates(self) -> list[date]:
        return date_window(self.start, self.days)

    async def _fetch(self, filter: Filter) -> Page:
        params = filter.to_params("start_date", "end_date", paginate=False)
        response = await self._transport.get("/admin/calendar", params)
        data = (response or {}).get("data") or {}
        bookings = parse_items(Booking, data.get("bookings"))
        return Page(
            items=bookings,
            total=len(bookings),
            meta={"room_types": parse_items(RoomType, data.get("room_types"))},
        )

    async def load(self) -> None:
        await self.loader.load(self.filters.filter)

    async def _go(self, start: date, view: str | None = None) -> None:
        view = view or self.view
        end = start + timedelta(days=VIEW_DAYS[view] - 1)
        await self.filters.update(date_from=start, date_to=end, view=view)

    async def prev_period(self) -> None:
        await self._go(self.start - timedelta(days=self.days))

    async def next_period(self) -> None:
        await self._go(self.start + timedelta(days=self.days))

    async def go_to_today(self) -> None:
        await self._go(self._today)

    async def set_view(self, view: str) -> None:
        _check_view(view)
        await self._go(self.start, view)

    # ── Rendering ─────────────────────────────────────────────

    def grid(self) -> Grid:
        state = self.loader.state
        return build_calendar_grid(
            state.meta.get("room_types", []), state.items, self.dates
        )

    def handlers(self) -> dict[str, Handler]:
        return {
            "prev": lambda eid, p: self.prev_period(),
            "next": lambda eid, p: self.next_period(),
            "today": lambda eid, p: self.go_to_today(),
            "set_view": lambda eid, p: self.set_view(p.get("view", "")),
        }

    def render(self) -> dict[str, Any]:
        state = self.loader.state
        return {
            "loading": state.loading,
            "error": state.error,
            "view": self.view,
            "views": list(CALENDAR_VIEWS),
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "room_types": [dump(rt) for rt in state.meta.get("room_types", [])],
            "bookings": [dump(b) for b in state.items],
            "grid": self.grid().to_dict(),
        }


def _check_view(view: str) -> None:
    if view not in VIEW_DAYS:
        raise FormValidationError(
            {"view": f"View must be one of {', '.join(CALENDAR_VIEWS)}."}
        )
