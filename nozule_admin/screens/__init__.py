"""Admin screens, keyed by URL slug in SCREENS."""

from .base import Screen
from .bookings import BookingManager
from .calendar import CalendarView
from .channel_sync import ChannelSyncScreen
from .channels import ChannelsScreen
from .employees import EmployeesScreen
from .inventory import InventoryScreen

SCREENS: dict[str, type[Screen]] = {
    cls.name: cls
    for cls in (
        BookingManager,
        CalendarView,
        ChannelsScreen,
        ChannelSyncScreen,
        EmployeesScreen,
        InventoryScreen,
    )
}

__all__ = [
    "SCREENS",
    "BookingManager",
    "CalendarView",
    "ChannelSyncScreen",
    "ChannelsScreen",
    "EmployeesScreen",
    "InventoryScreen",
    "Screen",
]
