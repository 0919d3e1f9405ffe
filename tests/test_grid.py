"""Tests for the calendar and inventory grid builders."""

import sys
import os
from datetime import date

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from nozule_admin.grid import (
    BOOKED,
    CONFIRMED,
    FREE,
    HIGH_AVAILABILITY,
    LOW_AVAILABILITY,
    NO_DATA,
    OCCUPIED,
    PENDING,
    SOLD_OUT,
    booking_cell_class,
    bookings_for,
    build_calendar_grid,
    build_inventory_grid,
    date_span,
    date_window,
    occupancy_class,
)
from nozule_admin.models.entities import Booking, InventoryRow, RoomType

D1 = date(2025, 3, 1)


def booking(id, room_type_id, check_in, check_out, status="confirmed"):
    return {
        "id": id,
        "room_type_id": room_type_id,
        "check_in": check_in,
        "check_out": check_out,
        "status": status,
    }


class TestDateRanges:
    def test_window(self):
        days = date_window(D1, 3)
        assert days == [date(2025, 3, 1), date(2025, 3, 2), date(2025, 3, 3)]

    def test_window_crosses_month(self):
        days = date_window(date(2025, 2, 27), 3)
        assert days[-1] == date(2025, 3, 1)

    def test_span_inclusive(self):
        assert len(date_span(D1, date(2025, 3, 15))) == 15

    def test_reversed_span_empty(self):
        assert date_span(date(2025, 3, 5), D1) == []


class TestBookingCells:
    def test_check_out_day_not_occupied(self):
        b = booking(1, 10, "2025-03-01", "2025-03-03")
        assert bookings_for([b], 10, date(2025, 3, 1)) == [b]
        assert bookings_for([b], 10, date(2025, 3, 2)) == [b]
        assert bookings_for([b], 10, date(2025, 3, 3)) == []

    def test_cancelled_ignored(self):
        b = booking(1, 10, "2025-03-01", "2025-03-03", status="cancelled")
        assert bookings_for([b], 10, D1) == []

    def test_room_type_compared_as_string(self):
        b = booking(1, "10", "2025-03-01", "2025-03-02")
        assert bookings_for([b], 10, D1) == [b]
        assert bookings_for([b], 11, D1) == []

    def test_missing_dates_skipped(self):
        b = booking(1, 10, None, "2025-03-02")
        assert bookings_for([b], 10, D1) == []

    def test_status_priority(self):
        assert booking_cell_class([]) == FREE
        assert booking_cell_class([{"status": "pending"}, {"status": "checked_in"}]) == OCCUPIED
        assert booking_cell_class([{"status": "pending"}, {"status": "confirmed"}]) == CONFIRMED
        assert booking_cell_class([{"status": "pending"}]) == PENDING
        assert booking_cell_class([{"status": "checked_out"}]) == BOOKED


class TestCalendarGrid:
    def test_grid_cells(self):
        room_types = [RoomType(id=10, name="Double"), RoomType(id=11, name="Suite")]
        bookings = [
            Booking(id=1, room_type_id=10, check_in=D1, check_out=date(2025, 3, 3), status="checked_in"),
            Booking(id=2, room_type_id=11, check_in=date(2025, 3, 2), check_out=date(2025, 3, 3), status="pending"),
        ]
        grid = build_calendar_grid(room_types, bookings, date_window(D1, 3))

        assert grid.rows == ("10", "11")
        assert grid.css_class(10, D1) == OCCUPIED
        assert grid.css_class(10, date(2025, 3, 3)) == FREE
        assert grid.css_class(11, D1) == FREE
        assert grid.css_class(11, date(2025, 3, 2)) == PENDING
        assert [b.id for b in grid.cell(10, D1).bookings] == [1]

    def test_unknown_cell(self):
        grid = build_calendar_grid([], [], date_window(D1, 2))
        assert grid.cell(99, D1) is None
        assert grid.css_class(99, D1) == NO_DATA

    def test_deterministic_and_pure(self):
        room_types = [{"id": 1}]
        bookings = [booking(5, 1, "2025-03-01", "2025-03-02")]
        dates = date_window(D1, 7)
        first = build_calendar_grid(room_types, bookings, dates)
        second = build_calendar_grid(room_types, bookings, dates)
        assert first == second
        assert first.to_dict() == second.to_dict()
        assert bookings == [booking(5, 1, "2025-03-01", "2025-03-02")]

    def test_to_dict_shape(self):
        grid = build_calendar_grid([{"id": 1}], [booking(5, 1, "2025-03-01", "2025-03-02")], [D1])
        data = grid.to_dict()
        assert data["dates"] == ["2025-03-01"]
        assert data["rows"]["1"][0]["class"] == CONFIRMED
        assert data["rows"]["1"][0]["bookings"] == [5]


class TestInventoryGrid:
    def test_occupancy_class(self):
        assert occupancy_class(None, 10) == NO_DATA
        assert occupancy_class(0, 10) == SOLD_OUT
        assert occupancy_class(-1, 10) == SOLD_OUT
        assert occupancy_class(3, 10) == LOW_AVAILABILITY
        assert occupancy_class(4, 10) == HIGH_AVAILABILITY
        assert occupancy_class(1, 0) == HIGH_AVAILABILITY

    def test_grid_from_rows(self):
        rows = [
            InventoryRow(
                id=10, name="Double", total_rooms=10,
                availability={"2025-03-01": 0, "2025-03-02": 2},
            ),
        ]
        grid = build_inventory_grid(rows, date_window(D1, 3))
        assert grid.css_class(10, D1) == SOLD_OUT
        assert grid.css_class(10, date(2025, 3, 2)) == LOW_AVAILABILITY
        assert grid.css_class(10, date(2025, 3, 3)) == NO_DATA
        cell = grid.cell(10, date(2025, 3, 2))
        assert (cell.available, cell.total) == (2, 10)

    def test_grid_from_dicts(self):
        rows = [{"id": 1, "total_rooms": 4, "availability": {"2025-03-01": 4}}]
        grid = build_inventory_grid(rows, [D1])
        assert grid.css_class(1, D1) == HIGH_AVAILABILITY
