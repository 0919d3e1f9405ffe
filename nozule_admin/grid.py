"""Room × date grid derivation for the calendar and inventory screens.

Everything here is a pure function of its inputs: no network, no clock,
no mutation of the arguments. Calling a builder twice with equal inputs
returns equal grids.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Iterable, Mapping, Optional, Sequence

# Calendar cell classes, by booking status priority
FREE = "free"
OCCUPIED = "occupied"
CONFIRMED = "confirmed"
PENDING = "pending"
BOOKED = "booked"

# Inventory cell classes
SOLD_OUT = "sold-out"
LOW_AVAILABILITY = "low-availability"
HIGH_AVAILABILITY = "high-availability"
NO_DATA = ""

LOW_AVAILABILITY_RATIO = 0.3

_STATUS_PRIORITY = (
    ("checked_in", OCCUPIED),
    ("confirmed", CONFIRMED),
    ("pending", PENDING),
)


@dataclass(frozen=True)
class GridCell:
    row_id: str
    day: date
    css_class: str
    bookings: tuple[Any, ...] = ()
    available: Optional[int] = None
    total: Optional[int] = None


@dataclass(frozen=True)
class Grid:
    rows: tuple[str, ...]
    dates: tuple[date, ...]
    cells: Mapping[tuple[str, date], GridCell] = field(default_factory=dict)

    def cell(self, row_id: Any, day: date) -> GridCell | None:
        return self.cells.get((str(row_id), day))

    def css_class(self, row_id: Any, day: date) -> str:
        cell = self.cell(row_id, day)
        return cell.css_class if cell else NO_DATA

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form: ``{"dates": [...], "rows": {row: [cell, ...]}}``."""
        return {
            "dates": [d.isoformat() for d in self.dates],
            "rows": {
                row_id: [
                    {
                        "date": d.isoformat(),
                        "class": self.cells[(row_id, d)].css_class,
                        "available": self.cells[(row_id, d)].available,
                        "total": self.cells[(row_id, d)].total,
                        "bookings": [
                            _field(b, "id") for b in self.cells[(row_id, d)].bookings
                        ],
                    }
                    for d in self.dates
                ]
                for row_id in self.rows
            },
        }


# ── Date ranges ─────────────────────────────────────────────────


def date_window(start: date, days: int) -> list[date]:
    """``days`` consecutive dates beginning at ``start``."""
    return [start + timedelta(days=i) for i in range(max(0, days))]


def date_span(start: date, end: date) -> list[date]:
    """Every date from ``start`` to ``end`` inclusive (empty if reversed)."""
    return date_window(start, (end - start).days + 1)


# ── Helpers ─────────────────────────────────────────────────────


def _field(record: Any, name: str, default: Any = None) -> Any:
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


def _as_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def bookings_for(bookings: Iterable[Any], row_id: Any, day: date) -> list[Any]:
    """Non-cancelled bookings of room type ``row_id`` that occupy ``day``.

    A booking occupies the nights from check-in up to, not including,
    check-out.
    """
    key = str(row_id)
    found = []
    for booking in bookings:
        if str(_field(booking, "room_type_id")) != key:
            continue
        if _field(booking, "status") == "cancelled":
            continue
        check_in = _as_date(_field(booking, "check_in"))
        check_out = _as_date(_field(booking, "check_out"))
        if check_in is None or check_out is None:
            continue
        if check_in <= day < check_out:
            found.append(booking)
    return found


def booking_cell_class(bookings: Sequence[Any]) -> str:
    if not bookings:
        return FREE
    statuses = {_field(b, "status") for b in bookings}
    for status, css_class in _STATUS_PRIORITY:
        if status in statuses:
            return css_class
    return BOOKED


def occupancy_class(available: Optional[int], total: Optional[int]) -> str:
    """Classify availability against capacity.

    ``available <= 0`` is sold out; at most 30% of capacity left is low;
    anything else is high. A missing or zero capacity counts as 1.
    """
    if available is None:
        return NO_DATA
    if available <= 0:
        return SOLD_OUT
    ratio = available / (total or 1)
    if ratio <= LOW_AVAILABILITY_RATIO:
        return LOW_AVAILABILITY
    return HIGH_AVAILABILITY


# ── Builders ────────────────────────────────────────────────────


def build_calendar_grid(
    room_types: Iterable[Any], bookings: Iterable[Any], dates: Iterable[date]
) -> Grid:
    days = tuple(dates)
    booking_list = list(bookings)
    rows = tuple(str(_field(rt, "id")) for rt in room_types)
    cells: dict[tuple[str, date], GridCell] = {}
    for row_id in rows:
        for day in days:
            found = tuple(bookings_for(booking_list, row_id, day))
            cells[(row_id, day)] = GridCell(
                row_id=row_id,
                day=day,
                css_class=booking_cell_class(found),
                bookings=found,
            )
    return Grid(rows=rows, dates=days, cells=cells)


def build_inventory_grid(rows: Iterable[Any], dates: Iterable[date]) -> Grid:
    days = tuple(dates)
    row_ids: list[str] = []
    cells: dict[tuple[str, date], GridCell] = {}
    for row in rows:
        row_id = str(_field(row, "id"))
        row_ids.append(row_id)
        total = _field(row, "total_rooms") or 0
        availability = {
            _as_date(k): v for k, v in (_field(row, "availability") or {}).items()
        }
        for day in days:
            available = availability.get(day)
            cells[(row_id, day)] = GridCell(
                row_id=row_id,
                day=day,
                css_class=occupancy_class(available, total),
                available=available,
                total=total,
            )
    return Grid(rows=tuple(row_ids), dates=days, cells=cells)
