"""Booking manager screen: filtered, paginated bookings list with row actions."""

from __future__ import annotations

import logging
from typing import Any

from nozule_admin.actions import ActionDispatcher, ActionOutcome, ActionSpec
from nozule_admin.api.base import AdminTransport
from nozule_admin.config import settings
from nozule_admin.errors import AdminError
from nozule_admin.filters import FilterState
from nozule_admin.loader import ListLoader
from nozule_admin.models.entities import Booking, BookingLog, EntityId
from nozule_admin.models.forms import BookingForm, CancelForm, PaymentForm
from nozule_admin.models.state import Filter, Page
from nozule_admin.notifications import NotificationStore

from .base import Handler, Screen, dump, list_summary, parse_items

log = logging.getLogger("nozule_admin.screens.bookings")

BOOKING_STATUSES = (
    "pending",
    "confirmed",
    "checked_in",
    "checked_out",
    "cancelled",
    "no_show",
    "refunded",
)

BOOKING_ACTIONS = (
    ActionSpec(
        "confirm", "POST", "/admin/bookings/{id}/confirm",
        success_message="Booking confirmed",
        failure_message="Failed to confirm booking",
        allowed_statuses=frozenset({"pending"}),
        row_action=True,
    ),
    ActionSpec(
        "check_in", "POST", "/admin/bookings/{id}/check-in",
        success_message="Guest checked in",
        failure_message="Failed to check in",
        allowed_statuses=frozenset({"confirmed"}),
        row_action=True,
    ),
    ActionSpec(
        "check_out", "POST", "/admin/bookings/{id}/check-out",
        success_message="Guest checked out",
        failure_message="Failed to check out",
        allowed_statuses=frozenset({"checked_in"}),
        row_action=True,
    ),
    ActionSpec(
        "cancel", "POST", "/admin/bookings/{id}/cancel",
        success_message="Booking cancelled",
        failure_message="Failed to cancel booking",
        allowed_statuses=frozenset({"pending", "confirmed"}),
        row_action=True,
    ),
    ActionSpec(
        "add_payment", "POST", "/admin/bookings/{id}/payments",
        success_message="Payment recorded",
        failure_message="Failed to record payment",
    ),
    ActionSpec(
        "create", "POST", "/admin/bookings",
        success_message="Booking created",
        failure_message="Failed to create booking",
    ),
)


def status_class(status: str) -> str:
    if status in BOOKING_STATUSES:
        return f"nzl-badge-{status.replace('_', '-')}"
    return "nzl-badge-default"


class BookingManager(Screen):
    name = "bookings"
    component = "nzlBookingManager"
    title = "Bookings"

    def __init__(
        self,
        transport: AdminTransport,
        notifications: NotificationStore,
        per_page: int | None = None,
        debounce: float | None = None,
    ) -> None:
        super().__init__(transport, notifications)
        self.loader = ListLoader(self._fetch, name="bookings")
        self.filters = FilterState(
            self.loader.load,
            Filter(per_page=per_page or settings.per_page),
            debounce=debounce,
        )
        self.actions = ActionDispatcher(
            transport, notifications, BOOKING_ACTIONS, on_settled=self.loader.reload
        )
        self.selected: Booking | None = None
        self.logs: list[BookingLog] = []
        self.loader.subscribe(self._changed)
        self.filters.subscribe(self._changed)

    async def _fetch(self, filter: Filter) -> Page:
        response = await self._transport.get("/admin/bookings", filter.to_params())
        data = (response or {}).get("data") or {}
        pagination = data.get("pagination") or {}
        return Page(
            items=parse_items(Booking, data.get("items")),
            page=pagination.get("page") or filter.page,
            total_pages=pagination.get("total_pages") or 1,
            total=pagination.get("total") or 0,
        )

    # ── Loading / filtering ───────────────────────────────────

    async def load(self) -> None:
        await self.loader.load(self.filters.filter)

    async def clear_filters(self) -> None:
        await self.filters.clear()

    async def go_to_page(self, page: int) -> None:
        await self.filters.set_page(page, self.loader.state.total_pages)

    async def next_page(self) -> None:
        await self.filters.next_page(self.loader.state.total_pages)

    async def prev_page(self) -> None:
        await self.filters.prev_page()

    def find(self, booking_id: EntityId) -> Booking | None:
        key = str(booking_id)
        for booking in self.loader.state.items:
            if booking.key == key:
                return booking
        return None

    # ── Row actions ───────────────────────────────────────────

    async def confirm(self, booking_id: EntityId) -> ActionOutcome | None:
        return await self._run(booking_id, "confirm")

    async def check_in(
        self, booking_id: EntityId, room_id: EntityId | None = None
    ) -> ActionOutcome | None:
        return await self._run(booking_id, "check_in", {"room_id": room_id})

    async def check_out(self, booking_id: EntityId) -> ActionOutcome | None:
        return await self._run(booking_id, "check_out")

    async def cancel(self, booking_id: EntityId, reason: str) -> ActionOutcome | None:
        form = CancelForm.parse({"reason": reason})
        form.check()
        outcome = await self._run(booking_id, "cancel", {"reason": form.reason})
        if outcome and outcome.ok and self._is_selected(booking_id):
            self.close_detail()
        return outcome

    async def add_payment(
        self, booking_id: EntityId, data: dict[str, Any]
    ) -> ActionOutcome | None:
        form = PaymentForm.parse(data)
        form.check()
        return await self._run(booking_id, "add_payment", form.model_dump(mode="json"))

    async def create(self, data: dict[str, Any]) -> ActionOutcome | None:
        form = BookingForm.parse(data)
        form.check()
        return await self.actions.dispatch("new", "create", form.payload())

    async def _run(
        self, booking_id: EntityId, kind: str, payload: dict[str, Any] | None = None
    ) -> ActionOutcome | None:
        outcome = await self.actions.dispatch(booking_id, kind, payload)
        self._changed()
        if outcome and outcome.ok and kind != "cancel" and self._is_selected(booking_id):
            await self.view_booking(booking_id)
        return outcome

    # ── Detail panel ──────────────────────────────────────────

    async def view_booking(self, booking_id: EntityId) -> Booking | None:
        """Open the detail panel for a booking and fetch its history log."""
        booking = self.find(booking_id)
        try:
            if booking is None:
                response = await self._transport.get(f"/admin/bookings/{booking_id}")
                booking = parse_items(Booking, [(response or {}).get("data")])[0]
            response = await self._transport.get(f"/admin/bookings/{booking_id}/logs")
            self.logs = parse_items(BookingLog, (response or {}).get("data"))
        except AdminError as exc:
            log.warning("Could not load booking %s: %s", booking_id, exc.message)
            self._notifications.push("error", exc.message)
            self.logs = []
        self.selected = booking
        self._changed()
        return booking

    def close_detail(self) -> None:
        self.selected = None
        self.logs = []
        self._changed()

    def _is_selected(self, booking_id: EntityId) -> bool:
        return self.selected is not None and self.selected.key == str(booking_id)

    # ── Rendering ─────────────────────────────────────────────

    def handlers(self) -> dict[str, Handler]:
        return {
            "confirm": lambda eid, p: self.confirm(eid),
            "check_in": lambda eid, p: self.check_in(eid, p.get("room_id")),
            "check_out": lambda eid, p: self.check_out(eid),
            "cancel": lambda eid, p: self.cancel(eid, p.get("reason", "")),
            "add_payment": self.add_payment,
            "create": lambda eid, p: self.create(p),
            "view": lambda eid, p: self.view_booking(eid),
        }

    def _row(self, booking: Booking) -> dict[str, Any]:
        row = dump(booking)
        row["status_class"] = status_class(booking.status)
        row["actions"] = self.actions.available_actions(booking)
        row["busy"] = self.actions.busy_kinds(booking.id)
        return row

    def render(self) -> dict[str, Any]:
        state = self.loader.state
        detail = None
        if self.selected is not None:
            detail = self._row(self.selected)
            detail["logs"] = [dump(entry) for entry in self.logs]
        return {
            **list_summary(state),
            "filters": self.filters.filter.model_dump(mode="json"),
            "statuses": list(BOOKING_STATUSES),
            "rows": [self._row(b) for b in state.items],
            "detail": detail,
        }
