"""Channel sync screen: OTA connections, rate mappings and the sync log.

Three tabs share one screen. Each tab has its own loader and only the
active tab's data is fetched when switching. Connection passwords are sent
on save but never rendered back.
"""

from __future__ import annotations

import logging
from typing import Any

from nozule_admin.actions import ActionDispatcher, ActionOutcome, ActionSpec
from nozule_admin.api.base import AdminTransport
from nozule_admin.errors import AdminError, FormValidationError
from nozule_admin.filters import FilterState
from nozule_admin.loader import ListLoader
from nozule_admin.models.entities import (
    ChannelConnection,
    EntityId,
    RateMapping,
    RatePlan,
    RoomType,
    SyncLogEntry,
)
from nozule_admin.models.forms import ConnectionForm, RateMappingForm
from nozule_admin.models.state import Filter, Page
from nozule_admin.notifications import NotificationStore

from .base import Handler, Screen, dump, list_summary, parse_items

log = logging.getLogger("nozule_admin.screens.channel_sync")

TABS = ("connections", "rate_mapping", "sync_log")
DEFAULT_CHANNEL = "booking_com"
SYNC_LOG_PER_PAGE = 20
BASE_RATE_LABEL = "Base Rate"

MAPPING_FIELDS = frozenset(
    {"channel_room_id", "channel_rate_id", "local_rate_plan_id", "is_active"}
)

CONNECTION_ACTIONS = (
    ActionSpec(
        "save", "POST", "/admin/channels/connections",
        success_message="Connection saved",
        failure_message="Failed to save connection",
    ),
    ActionSpec(
        "delete", "DELETE", "/admin/channels/connections/{id}",
        success_message="Connection deleted",
        failure_message="Failed to delete connection",
    ),
    ActionSpec(
        "test", "POST", "/admin/channels/connections/{id}/test",
        success_message="Connection test successful",
        failure_message="Connection test failed",
        check_success=True,
        reload=False,
    ),
    ActionSpec(
        "sync", "POST", "/admin/channels/sync/{id}",
        success_message="Sync completed",
        failure_message="Sync failed",
    ),
)

MAPPING_ACTIONS = (
    ActionSpec(
        "save", "POST", "/admin/channels/rate-mappings",
        success_message="Mapping saved",
        failure_message="Failed to save mapping",
    ),
    ActionSpec(
        "update", "POST", "/admin/channels/rate-mappings",
        failure_message="Failed to update mapping",
        reload=False,
        notify_success=False,
    ),
    ActionSpec(
        "delete", "DELETE", "/admin/channels/rate-mappings/{id}",
        success_message="Mapping deleted",
        failure_message="Failed to delete mapping",
    ),
)


def _unwrap(response: Any, *keys: str) -> Any:
    """Pull a list out of ``{key: [...]}`` or ``{data: [...]}`` or a bare list."""
    if isinstance(response, list):
        return response
    response = response or {}
    for key in keys + ("data",):
        if key in response:
            return response[key]
    return []


class ChannelSyncScreen(Screen):
    name = "channel-sync"
    component = "nzlChannelSync"
    title = "Channel Sync"

    def __init__(
        self,
        transport: AdminTransport,
        notifications: NotificationStore,
        debounce: float | None = None,
    ) -> None:
        super().__init__(transport, notifications)
        self.active_tab = TABS[0]

        self.connections = ListLoader(self._fetch_connections, name="connections")
        self.connection_actions = ActionDispatcher(
            transport, notifications, CONNECTION_ACTIONS,
            on_settled=self.connections.reload,
        )

        self.mappings = ListLoader(self._fetch_mappings, name="rate_mappings")
        self.mapping_filters = FilterState(
            self.mappings.load, Filter(), debounce=debounce
        )
        self.mapping_actions = ActionDispatcher(
            transport, notifications, MAPPING_ACTIONS,
            on_settled=self.mappings.reload,
        )
        self.room_types: list[RoomType] = []
        self.rate_plans: list[RatePlan] = []

        self.sync_log = ListLoader(self._fetch_sync_log, name="sync_log")
        self.filters = FilterState(
            self.sync_log.load, Filter(per_page=SYNC_LOG_PER_PAGE), debounce=debounce
        )

        for observable in (
            self.connections, self.mappings, self.mapping_filters,
            self.sync_log, self.filters,
        ):
            observable.subscribe(self._changed)

    # ── Fetchers ──────────────────────────────────────────────

    async def _fetch_connections(self, filter: Filter) -> Page:
        response = await self._transport.get("/admin/channels/connections")
        connections = parse_items(ChannelConnection, _unwrap(response, "connections"))
        return Page(items=connections, total=len(connections))

    async def _fetch_mappings(self, filter: Filter) -> Page:
        channel = filter.extra.get("channel", "")
        if not channel:
            return Page()
        response = await self._transport.get(f"/admin/channels/rate-mappings/{channel}")
        mappings = parse_items(RateMapping, _unwrap(response, "mappings"))
        return Page(items=mappings, total=len(mappings))

    async def _fetch_sync_log(self, filter: Filter) -> Page:
        response = await self._transport.get(
            "/admin/channels/sync-log", filter.to_params()
        ) or {}
        return Page(
            items=parse_items(SyncLogEntry, response.get("items")),
            page=filter.page,
            total_pages=response.get("pages") or 1,
            total=response.get("total") or 0,
        )

    # ── Tabs ──────────────────────────────────────────────────

    async def load(self) -> None:
        await self.switch_tab(self.active_tab)

    async def switch_tab(self, tab: str) -> None:
        if tab not in TABS:
            raise FormValidationError({"tab": f"Tab must be one of {', '.join(TABS)}."})
        self.active_tab = tab
        self._changed()
        if tab == "connections":
            await self.connections.reload()
        elif tab == "rate_mapping":
            await self.load_lookups()
            if self.selected_channel:
                await self.mappings.load(self.mapping_filters.filter)
        else:
            await self.sync_log.load(self.filters.filter)

    # ── Connections ───────────────────────────────────────────

    def get_connection(self, channel_name: str) -> ChannelConnection | None:
        for connection in self.connections.state.items:
            if connection.channel_name == channel_name:
                return connection
        return None

    def connection_form(self, channel_name: str = DEFAULT_CHANNEL) -> dict[str, Any]:
        """Form defaults, prefilled from the saved connection when there is one."""
        form = ConnectionForm()
        connection = self.get_connection(channel_name)
        if connection is not None:
            form = ConnectionForm(
                hotel_id=connection.hotel_id,
                api_endpoint=connection.api_endpoint,
                use_sandbox=connection.use_sandbox,
                is_active=connection.is_active,
            )
        return form.model_dump(exclude={"password"})

    async def save_connection(
        self, data: dict[str, Any], channel_name: str = DEFAULT_CHANNEL
    ) -> ActionOutcome | None:
        form = ConnectionForm.parse(data)
        form.check()
        existing = self.get_connection(channel_name)
        payload = form.payload(channel_name, existing.id if existing else None)
        return await self.connection_actions.dispatch(channel_name, "save", payload)

    async def delete_connection(
        self, channel_name: str = DEFAULT_CHANNEL
    ) -> ActionOutcome | None:
        connection = self.get_connection(channel_name)
        if connection is None:
            return None
        return await self.connection_actions.dispatch(connection.id, "delete")

    async def test_connection(
        self, channel_name: str = DEFAULT_CHANNEL
    ) -> ActionOutcome | None:
        connection = self.get_connection(channel_name)
        if connection is None:
            self._notifications.push("error", "Save the connection before testing it.")
            return None
        return await self.connection_actions.dispatch(connection.id, "test")

    async def trigger_sync(
        self, channel_name: str = DEFAULT_CHANNEL
    ) -> ActionOutcome | None:
        return await self.connection_actions.dispatch(channel_name, "sync")

    # ── Rate mappings ─────────────────────────────────────────

    @property
    def selected_channel(self) -> str:
        return self.mapping_filters.filter.extra.get("channel", "")

    async def select_channel(self, channel_name: str) -> None:
        await self.mapping_filters.update(channel=channel_name)

    async def load_lookups(self) -> None:
        """Room types and rate plans for the mapping dropdowns."""
        try:
            response = await self._transport.get("/admin/room-types")
            self.room_types = parse_items(RoomType, _unwrap(response, "room_types"))
            response = await self._transport.get("/admin/rate-plans")
            self.rate_plans = parse_items(RatePlan, _unwrap(response, "rate_plans"))
        except AdminError as exc:
            log.warning("Could not load mapping lookups: %s", exc.message)
        self._changed()

    def room_type_name(self, room_type_id: Any) -> str:
        for room_type in self.room_types:
            if room_type.key == str(room_type_id):
                return room_type.name
        return f"#{room_type_id}"

    def rate_plan_name(self, rate_plan_id: Any) -> str:
        if not rate_plan_id or str(rate_plan_id) == "0":
            return BASE_RATE_LABEL
        for rate_plan in self.rate_plans:
            if rate_plan.key == str(rate_plan_id):
                return rate_plan.name
        return f"#{rate_plan_id}"

    def _require_channel(self) -> str:
        channel = self.selected_channel
        if not channel:
            raise FormValidationError({"channel": "Please select a channel."})
        return channel

    async def save_mapping(self, data: dict[str, Any]) -> ActionOutcome | None:
        channel = self._require_channel()
        form = RateMappingForm.parse(data)
        form.check()
        return await self.mapping_actions.dispatch("new", "save", form.payload(channel))

    async def update_mapping_field(
        self, mapping_id: EntityId, field: str, value: Any
    ) -> ActionOutcome | None:
        """Save one inline-edited column without a success toast."""
        if field not in MAPPING_FIELDS:
            raise FormValidationError({field: "This field cannot be edited inline."})
        mapping = self._find_mapping(mapping_id)
        if mapping is None:
            raise KeyError(f"Unknown rate mapping: {mapping_id!r}")
        payload = {
            "id": mapping.id,
            "channel_name": mapping.channel_name or self.selected_channel,
            "local_room_type_id": mapping.local_room_type_id,
            field: value,
        }
        return await self.mapping_actions.dispatch(mapping_id, "update", payload)

    async def delete_mapping(self, mapping_id: EntityId) -> ActionOutcome | None:
        return await self.mapping_actions.dispatch(mapping_id, "delete")

    def _find_mapping(self, mapping_id: EntityId) -> RateMapping | None:
        key = str(mapping_id)
        for mapping in self.mappings.state.items:
            if mapping.key == key:
                return mapping
        return None

    # ── Sync log ──────────────────────────────────────────────

    async def next_log_page(self) -> None:
        await self.filters.next_page(self.sync_log.state.total_pages)

    async def prev_log_page(self) -> None:
        await self.filters.prev_page()

    # ── Rendering ─────────────────────────────────────────────

    def handlers(self) -> dict[str, Handler]:
        return {
            "switch_tab": lambda eid, p: self.switch_tab(p.get("tab", "")),
            "save_connection": lambda eid, p: self.save_connection(
                p, eid or DEFAULT_CHANNEL
            ),
            "delete_connection": lambda eid, p: self.delete_connection(
                eid or DEFAULT_CHANNEL
            ),
            "test_connection": lambda eid, p: self.test_connection(
                eid or DEFAULT_CHANNEL
            ),
            "sync": lambda eid, p: self.trigger_sync(eid or DEFAULT_CHANNEL),
            "select_channel": lambda eid, p: self.select_channel(
                p.get("channel", eid or "")
            ),
            "save_mapping": lambda eid, p: self.save_mapping(p),
            "update_mapping": lambda eid, p: self.update_mapping_field(
                eid, p.get("field", ""), p.get("value")
            ),
            "delete_mapping": lambda eid, p: self.delete_mapping(eid),
            "next_log_page": lambda eid, p: self.next_log_page(),
            "prev_log_page": lambda eid, p: self.prev_log_page(),
        }

    @staticmethod
    def _connection_row(connection: ChannelConnection) -> dict[str, Any]:
        row = dump(connection)
        row.pop("password", None)
        return row

    def _busy(self, kind: str) -> bool:
        return any(k == kind for _, k in self.connection_actions.in_flight)

    def render(self) -> dict[str, Any]:
        connections = self.connections.state
        mappings = self.mappings.state
        rate_mappings = []
        for mapping in mappings.items:
            row = dump(mapping)
            row["room_type_name"] = self.room_type_name(mapping.local_room_type_id)
            row["rate_plan_name"] = self.rate_plan_name(mapping.local_rate_plan_id)
            rate_mappings.append(row)
        return {
            "active_tab": self.active_tab,
            "tabs": list(TABS),
            "connections": {
                "loading": connections.loading,
                "error": connections.error,
                "rows": [self._connection_row(c) for c in connections.items],
                "form": self.connection_form(),
                "saving": self._busy("save"),
                "testing": self._busy("test"),
                "syncing": self._busy("sync"),
            },
            "rate_mapping": {
                "loading": mappings.loading,
                "error": mappings.error,
                "selected_channel": self.selected_channel,
                "rows": rate_mappings,
                "room_types": [dump(rt) for rt in self.room_types],
                "rate_plans": [dump(rp) for rp in self.rate_plans],
            },
            "sync_log": {
                **list_summary(self.sync_log.state),
                "filters": self.filters.filter.model_dump(mode="json"),
                "rows": [dump(entry) for entry in self.sync_log.state.items],
            },
        }

    def close(self) -> None:
        super().close()
        self.mapping_filters.cancel()
