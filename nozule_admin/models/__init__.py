"""Data models for the admin screens."""

from .entities import (
    Booking,
    BookingLog,
    ChannelConnection,
    ChannelMapping,
    Employee,
    Entity,
    EntityId,
    InventoryRow,
    RateMapping,
    RatePlan,
    RoomType,
    SyncLogEntry,
)
from .state import Filter, ListState, Notification, NotificationType, Page

__all__ = [
    "Booking",
    "BookingLog",
    "ChannelConnection",
    "ChannelMapping",
    "Employee",
    "Entity",
    "EntityId",
    "Filter",
    "InventoryRow",
    "ListState",
    "Notification",
    "NotificationType",
    "Page",
    "RateMapping",
    "RatePlan",
    "RoomType",
    "SyncLogEntry",
]
