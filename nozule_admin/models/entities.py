"""Pydantic models for records returned by the hotel REST API.

Field names follow the backend payloads. Unknown fields are kept so a
screen can pass them through to the client unchanged.
"""

from __future__ import annotations

from datetime import date
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict

EntityId = Union[int, str]


class Entity(BaseModel):
    """Opaque record keyed by ``id``."""

    model_config = ConfigDict(extra="allow")

    id: EntityId

    @property
    def key(self) -> str:
        return str(self.id)


class Booking(Entity):
    booking_number: str = ""
    status: str = "pending"
    source: str = ""
    guest_name: str = ""
    room_type_id: Optional[EntityId] = None
    room_id: Optional[EntityId] = None
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    total_amount: float = 0.0
    currency: str = ""


class BookingLog(Entity):
    action: str = ""
    note: str = ""
    created_at: str = ""


class RoomType(Entity):
    name: str = ""
    total_rooms: int = 0


class RatePlan(Entity):
    name: str = ""


class ChannelMapping(Entity):
    """Room-type ↔ OTA room mapping shown on the channels screen."""

    channel_name: str = ""
    room_type_id: Optional[EntityId] = None
    external_room_id: str = ""
    status: str = "inactive"
    last_sync_at: Optional[str] = None

    @property
    def name(self) -> str:
        return self.channel_name or "Unknown"


class ChannelConnection(Entity):
    channel_name: str = ""
    hotel_id: str = ""
    api_endpoint: str = ""
    use_sandbox: bool = False
    is_active: bool = False
    last_sync_at: Optional[str] = None


class RateMapping(Entity):
    channel_name: str = ""
    local_room_type_id: Optional[EntityId] = None
    local_rate_plan_id: EntityId = 0
    channel_room_id: str = ""
    channel_rate_id: str = ""
    is_active: bool = True


class SyncLogEntry(Entity):
    channel: str = ""
    direction: str = ""
    status: str = ""
    message: str = ""
    created_at: str = ""


class Employee(Entity):
    display_name: str = ""
    email: str = ""
    username: str = ""
    role: str = "nzl_reception"
    capabilities: list[str] = []
    registered: Optional[str] = None


class InventoryRow(Entity):
    """One room type's availability over the requested dates."""

    name: str = ""
    total_rooms: int = 0
    availability: dict[date, Optional[int]] = {}
