"""OTA channel mappings screen."""

from __future__ import annotations

from typing import Any

from nozule_admin.actions import ActionDispatcher, ActionOutcome, ActionSpec
from nozule_admin.api.base import AdminTransport
from nozule_admin.errors import FormValidationError
from nozule_admin.loader import ListLoader
from nozule_admin.models.entities import ChannelMapping, EntityId
from nozule_admin.models.forms import ChannelForm
from nozule_admin.models.state import Filter, Page
from nozule_admin.notifications import NotificationStore

from .base import Handler, Screen, dump, parse_items

CHANNEL_STATUSES = ("active", "inactive")

CHANNEL_ACTIONS = (
    ActionSpec(
        "create", "POST", "/admin/channels",
        success_message="Channel mapping created",
        failure_message="Failed to create channel mapping",
    ),
    ActionSpec(
        "sync", "POST", "/admin/channels/{id}/sync",
        success_message="Channel synced successfully",
        failure_message="Sync failed",
        row_action=True,
    ),
    ActionSpec(
        "update", "PUT", "/admin/channels/{id}",
        success_message="Channel updated",
        failure_message="Failed to update channel",
        row_action=True,
    ),
    ActionSpec(
        "delete", "DELETE", "/admin/channels/{id}",
        success_message="Channel mapping deleted",
        failure_message="Failed to delete channel mapping",
        row_action=True,
    ),
)


class ChannelsScreen(Screen):
    name = "channels"
    component = "vhmChannels"
    title = "Channels"

    def __init__(
        self, transport: AdminTransport, notifications: NotificationStore
    ) -> None:
        super().__init__(transport, notifications)
        self.loader = ListLoader(self._fetch, name="channels")
        self.actions = ActionDispatcher(
            transport, notifications, CHANNEL_ACTIONS, on_settled=self.loader.reload
        )
        self.loader.subscribe(self._changed)

    async def _fetch(self, filter: Filter) -> Page:
        response = await self._transport.get("/admin/channels") or {}
        mappings = parse_items(ChannelMapping, response.get("mappings"))
        return Page(
            items=mappings,
            total=len(mappings),
            meta={"available_channels": list(response.get("available_channels") or [])},
        )

    async def load(self) -> None:
        await self.loader.load(Filter())

    @property
    def syncing(self) -> list[str]:
        return sorted(eid for eid, kind in self.actions.in_flight if kind == "sync")

    async def create(self, data: dict[str, Any]) -> ActionOutcome | None:
        form = ChannelForm.parse(data)
        form.check()
        return await self.actions.dispatch("new", "create", form.payload())

    async def sync(self, mapping_id: EntityId) -> ActionOutcome | None:
        return await self.actions.dispatch(mapping_id, "sync")

    async def update_status(
        self, mapping_id: EntityId, status: str
    ) -> ActionOutcome | None:
        if status not in CHANNEL_STATUSES:
            raise FormValidationError({"status": "Status must be active or inactive."})
        return await self.actions.dispatch(mapping_id, "update", {"status": status})

    async def delete(self, mapping_id: EntityId) -> ActionOutcome | None:
        return await self.actions.dispatch(mapping_id, "delete")

    def handlers(self) -> dict[str, Handler]:
        return {
            "create": lambda eid, p: self.create(p),
            "sync": lambda eid, p: self.sync(eid),
            "update": lambda eid, p: self.update_status(eid, p.get("status", "")),
            "delete": lambda eid, p: self.delete(eid),
        }

    def render(self) -> dict[str, Any]:
        state = self.loader.state
        rows = []
        for mapping in state.items:
            row = dump(mapping)
            row["name"] = mapping.name
            row["syncing"] = self.actions.is_in_flight(mapping.id, "sync")
            row["busy"] = self.actions.busy_kinds(mapping.id)
            rows.append(row)
        return {
            "loading": state.loading,
            "error": state.error,
            "rows": rows,
            "available_channels": state.meta.get("available_channels", []),
            "syncing": self.syncing,
        }
