"""Room availability grid with single-cell and bulk edits."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any

from nozule_admin.actions import ActionDispatcher, ActionOutcome, ActionSpec
from nozule_admin.api.base import AdminTransport
from nozule_admin.config import settings
from nozule_admin.errors import AdminError, FormValidationError
from nozule_admin.filters import FilterState
from nozule_admin.grid import Grid, build_inventory_grid, date_span
from nozule_admin.loader import ListLoader
from nozule_admin.models.entities import EntityId, InventoryRow, RoomType
from nozule_admin.models.forms import BulkInventoryForm, InventoryCellForm
from nozule_admin.models.state import Filter, Page
from nozule_admin.notifications import NotificationStore

from .base import Handler, Screen, dump, parse_items

log = logging.getLogger("nozule_admin.screens.inventory")

INVENTORY_ACTIONS = (
    ActionSpec(
        "set_availability", "POST", "/admin/inventory",
        success_message="Inventory updated",
        failure_message="Failed to update inventory",
    ),
    ActionSpec(
        "bulk_update", "POST", "/admin/inventory/bulk",
        success_message="Bulk update complete",
        failure_message="Bulk update failed",
    ),
)


class InventoryScreen(Screen):
    name = "inventory"
    component = "nzlInventory"
    title = "Inventory"

    def __init__(
        self,
        transport: AdminTransport,
        notifications: NotificationStore,
        today: date | None = None,
        days_ahead: int | None = None,
    ) -> None:
        super().__init__(transport, notifications)
        today = today or date.today()
        if days_ahead is None:
            days_ahead = settings.inventory_days_ahead
        self.loader = ListLoader(self._fetch, name="inventory")
        self.filters = FilterState(
            self.loader.load,
            Filter(
                date_from=today,
                date_to=today + timedelta(days=days_ahead),
                extra={"room_type_id": ""},
            ),
        )
        self.actions = ActionDispatcher(
            transport, notifications, INVENTORY_ACTIONS, on_settled=self.loader.reload
        )
        self.room_types: list[RoomType] = []
        self.loader.subscribe(self._changed)
        self.filters.subscribe(self._changed)

    async def _fetch(self, filter: Filter) -> Page:
        params = filter.to_params("start_date", "end_date", paginate=False)
        response = await self._transport.get("/admin/inventory", params)
        data = (response or {}).get("data") or {}
        rows = parse_items(InventoryRow, data.get("inventory"))
        dates = [date.fromisoformat(str(d)[:10]) for d in data.get("dates") or []]
        return Page(items=rows, total=len(rows), meta={"dates": dates})

    async def load(self) -> None:
        await self.load_room_types()
        await self.loader.load(self.filters.filter)

    async def load_room_types(self) -> None:
        try:
            response = await self._transport.get("/admin/room-types") or {}
            raw = response if isinstance(response, list) else response.get("data")
            self.room_types = parse_items(RoomType, raw)
        except AdminError as exc:
            log.warning("Could not load room types: %s", exc.message)
        self._changed()

    async def set_filters(self, **changes: Any) -> None:
        current = self.filters.filter
        start = changes.get("date_from", current.date_from)
        end = changes.get("date_to", current.date_to)
        if start and end and str(end) < str(start):
            raise FormValidationError({"date_to": "End date must not be before start date."})
        await super().set_filters(**changes)

    # ── Edits ─────────────────────────────────────────────────

    async def edit_cell(
        self, room_type_id: EntityId, day: date | str, available: Any
    ) -> ActionOutcome | None:
        form = InventoryCellForm.parse(
            {"room_type_id": room_type_id, "date": day, "available": available}
        )
        form.check()
        return await self.actions.dispatch(
            f"{form.room_type_id}:{form.day.isoformat()}",
            "set_availability",
            form.payload(),
        )

    async def bulk_update(self, data: dict[str, Any]) -> ActionOutcome | None:
        form = BulkInventoryForm.parse(data)
        form.check()
        return await self.actions.dispatch("bulk", "bulk_update", form.payload())

    # ── Rendering ─────────────────────────────────────────────

    @property
    def dates(self) -> list[date]:
        loaded = self.loader.state.meta.get("dates")
        if loaded:
            return list(loaded)
        current = self.filters.filter
        if current.date_from is None or current.date_to is None:
            return []
        return date_span(current.date_from, current.date_to)

    def grid(self) -> Grid:
        return build_inventory_grid(self.loader.state.items, self.dates)

    def handlers(self) -> dict[str, Handler]:
        return {
            "edit_cell": lambda eid, p: self.edit_cell(
                p.get("room_type_id", eid), p.get("date", ""), p.get("available")
            ),
            "bulk_update": lambda eid, p: self.bulk_update(p),
        }

    def render(self) -> dict[str, Any]:
        state = self.loader.state
        return {
            "loading": state.loading,
            "error": state.error,
            "filters": self.filters.filter.model_dump(mode="json"),
            "room_types": [dump(rt) for rt in self.room_types],
            "rows": [dump(row) for row in state.items],
            "grid": self.grid().to_dict(),
            "saving": sorted(eid for eid, _ in self.actions.in_flight),
        }
