"""Tests for BookingManager — filters, pagination, row actions, detail panel."""

import asyncio
import sys
import os

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from fakes import FakeTransport
from nozule_admin.errors import ApiError, FormValidationError, NetworkError
from nozule_admin.loader import PAYLOAD_ERROR
from nozule_admin.notifications import NotificationStore
from nozule_admin.screens.bookings import BookingManager, status_class

BOOKINGS = [
    {"id": 1, "booking_number": "BK-1", "status": "pending", "guest_name": "Amy Lee"},
    {"id": 2, "booking_number": "BK-2", "status": "confirmed", "guest_name": "Bo Chen"},
    {"id": 3, "booking_number": "BK-3", "status": "checked_in", "guest_name": "Cy Diaz"},
]


def listing(items, page=1, total_pages=1):
    return {
        "data": {
            "items": items,
            "pagination": {"total": len(items), "page": page, "per_page": 20, "total_pages": total_pages},
        }
    }


def pending_only(params):
    if params and params.get("status") == "pending":
        return listing([b for b in BOOKINGS if b["status"] == "pending"])
    return listing(BOOKINGS, total_pages=3)


def make(routes=None):
    transport = FakeTransport({("GET", "/admin/bookings"): pending_only, **(routes or {})})
    store = NotificationStore(ttl=0)
    return BookingManager(transport, store, per_page=20, debounce=0.01), transport, store


class TestLoading:
    @pytest.mark.asyncio
    async def test_initial_load(self):
        screen, transport, _ = make()
        await screen.load()
        state = screen.render()
        assert [r["booking_number"] for r in state["rows"]] == ["BK-1", "BK-2", "BK-3"]
        assert state["total_pages"] == 3
        assert state["can_next"] is True
        assert transport.last("GET", "/admin/bookings") == {"page": 1, "per_page": 20}

    @pytest.mark.asyncio
    async def test_status_filter_offers_confirm_only_on_pending(self):
        screen, transport, _ = make()
        await screen.load()
        await screen.set_filters(status="pending")
        rows = screen.render()["rows"]
        assert [r["status"] for r in rows] == ["pending"]
        assert "confirm" in rows[0]["actions"]
        assert transport.last("GET", "/admin/bookings")["status"] == "pending"

    @pytest.mark.asyncio
    async def test_row_actions_follow_status(self):
        screen, _, _ = make()
        await screen.load()
        actions = {r["id"]: r["actions"] for r in screen.render()["rows"]}
        assert actions[1] == ["confirm", "cancel"]
        assert actions[2] == ["check_in", "cancel"]
        assert actions[3] == ["check_out"]

    @pytest.mark.asyncio
    async def test_filter_change_resets_page(self):
        screen, transport, _ = make()
        await screen.load()
        await screen.next_page()
        assert screen.filters.page == 2
        await screen.set_filters(source="direct")
        assert screen.filters.page == 1
        assert transport.last("GET", "/admin/bookings")["source"] == "direct"

    @pytest.mark.asyncio
    async def test_search_is_debounced(self):
        screen, transport, _ = make()
        await screen.load()
        before = transport.count("GET", "/admin/bookings")
        await screen.set_filters(search="a")
        await screen.set_filters(search="am")
        await screen.filters.flush()
        assert transport.count("GET", "/admin/bookings") == before + 1
        assert transport.last("GET", "/admin/bookings")["search"] == "am"

    @pytest.mark.asyncio
    async def test_load_error_shown_inline(self):
        screen, _, store = make({("GET", "/admin/bookings"): NetworkError()})
        await screen.load()
        state = screen.render()
        assert state["error"] == NetworkError.default_message
        assert state["loading"] is False
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_unexpected_payload_becomes_error(self):
        screen, _, _ = make({("GET", "/admin/bookings"): listing([{"no_id": True}])})
        await screen.load()
        assert screen.render()["error"]

    @pytest.mark.asyncio
    async def test_out_of_order_filters(self):
        screen, transport, _ = make()
        gate_a = transport.hold("GET", "/admin/bookings")
        gate_b = transport.hold("GET", "/admin/bookings")
        a = asyncio.create_task(screen.set_filters(status="confirmed"))
        b = asyncio.create_task(screen.set_filters(status="pending"))
        await asyncio.sleep(0)
        gate_b.set_result(listing([BOOKINGS[0]]))
        await b
        gate_a.set_result(listing([BOOKINGS[1]]))
        await a
        assert [r["id"] for r in screen.render()["rows"]] == [1]

    @pytest.mark.asyncio
    async def test_list_body_instead_of_object_shows_error(self):
        screen, _, _ = make({("GET", "/admin/bookings"): {"data": [{"id": 1}]}})
        await screen.load()
        state = screen.render()
        assert state["loading"] is False
        assert state["error"] == PAYLOAD_ERROR
        assert state["rows"] == []


class TestActions:
    @pytest.mark.asyncio
    async def test_confirm_posts_and_reloads(self):
        screen, transport, store = make()
        await screen.load()
        loads = transport.count("GET", "/admin/bookings")
        outcome = await screen.confirm(1)
        assert outcome.ok
        assert transport.count("POST", "/admin/bookings/1/confirm") == 1
        assert transport.count("GET", "/admin/bookings") == loads + 1
        assert store.items[-1].message == "Booking confirmed"

    @pytest.mark.asyncio
    async def test_double_cancel_single_call(self):
        screen, transport, store = make()
        await screen.load()
        gate = transport.hold("POST", "/admin/bookings/42/cancel")
        first = asyncio.create_task(screen.cancel("42", "Guest request"))
        await asyncio.sleep(0)
        assert "cancel" in screen.actions.busy_kinds(42)
        assert await screen.cancel("42", "Guest request") is None
        gate.set_result({})
        await first
        assert transport.count("POST", "/admin/bookings/42/cancel") == 1
        assert transport.last("POST", "/admin/bookings/42/cancel") == {"reason": "Guest request"}

    @pytest.mark.asyncio
    async def test_cancel_requires_reason(self):
        screen, transport, _ = make()
        with pytest.raises(FormValidationError):
            await screen.cancel(1, "")
        assert transport.count("POST", "/admin/bookings/1/cancel") == 0

    @pytest.mark.asyncio
    async def test_check_in_sends_room(self):
        screen, transport, _ = make()
        await screen.check_in(2, room_id=101)
        assert transport.last("POST", "/admin/bookings/2/check-in") == {"room_id": 101}

    @pytest.mark.asyncio
    async def test_failed_action_toasts_error(self):
        screen, _, store = make({
            ("POST", "/admin/bookings/3/check-out"): ApiError("Balance due", status=400),
        })
        outcome = await screen.check_out(3)
        assert not outcome.ok
        assert store.items[-1].type == "error"
        assert store.items[-1].message == "Balance due"

    @pytest.mark.asyncio
    async def test_payment_validation(self):
        screen, transport, _ = make()
        with pytest.raises(FormValidationError):
            await screen.add_payment(1, {"amount": "-5"})
        await screen.add_payment(1, {"amount": "50", "method": "card"})
        assert transport.last("POST", "/admin/bookings/1/payments") == {
            "amount": 50.0, "method": "card", "notes": "",
        }

    @pytest.mark.asyncio
    async def test_create_booking(self):
        screen, transport, store = make()
        await screen.create({
            "guest_first_name": "Amy", "guest_last_name": "Lee",
            "guest_email": "amy@example.com", "room_type_id": "2",
            "check_in": "2025-04-01", "check_out": "2025-04-03",
        })
        body = transport.last("POST", "/admin/bookings")
        assert body["room_type_id"] == 2
        assert store.items[-1].message == "Booking created"

    @pytest.mark.asyncio
    async def test_perform_unknown_kind(self):
        screen, _, _ = make()
        with pytest.raises(KeyError):
            await screen.perform("teleport", 1)

    @pytest.mark.asyncio
    async def test_perform_routes_payload(self):
        screen, transport, _ = make()
        await screen.perform("cancel", 2, {"reason": "Duplicate"})
        assert transport.last("POST", "/admin/bookings/2/cancel") == {"reason": "Duplicate"}


class TestDetail:
    @pytest.mark.asyncio
    async def test_view_booking_loads_logs(self):
        screen, transport, _ = make({
            ("GET", "/admin/bookings/1/logs"): {"data": [{"id": 9, "action": "created"}]},
        })
        await screen.load()
        await screen.view_booking(1)
        detail = screen.render()["detail"]
        assert detail["booking_number"] == "BK-1"
        assert detail["logs"][0]["action"] == "created"

    @pytest.mark.asyncio
    async def test_cancel_closes_detail(self):
        screen, _, _ = make({("GET", "/admin/bookings/1/logs"): {"data": []}})
        await screen.load()
        await screen.view_booking(1)
        await screen.cancel(1, "Changed plans")
        assert screen.render()["detail"] is None

    @pytest.mark.asyncio
    async def test_log_failure_toasts(self):
        screen, _, store = make({("GET", "/admin/bookings/1/logs"): NetworkError()})
        await screen.load()
        await screen.view_booking(1)
        assert screen.render()["detail"]["logs"] == []
        assert store.items[-1].type == "error"


class TestRendering:
    def test_status_class(self):
        assert status_class("checked_in") == "nzl-badge-checked-in"
        assert status_class("mystery") == "nzl-badge-default"

    @pytest.mark.asyncio
    async def test_listeners_receive_renders(self):
        screen, _, _ = make()
        renders = []
        screen.subscribe(renders.append)
        await screen.load()
        assert renders[-1]["rows"]
        assert renders[0]["loading"] is True

    def test_shell(self):
        screen, _, _ = make()
        shell = screen.shell()
        assert shell["component"] == "nzlBookingManager"
        assert shell["title"] == "Bookings"
        assert shell["state"]["rows"] == []
