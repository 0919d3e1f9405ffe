"""Tests for EmployeesScreen — modal form, role presets, self-edit handling."""

import sys
import os

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from fakes import FakeTransport
from nozule_admin.errors import ConflictError, FormValidationError, NetworkError
from nozule_admin.notifications import NotificationStore
from nozule_admin.screens.employees import ROLE_PRESETS, EmployeesScreen, role_capabilities

EMPLOYEES = {
    "data": [
        {"id": 7, "display_name": "Admin Ann", "email": "ann@hotel.test", "username": "ann",
         "role": "nzl_manager", "capabilities": ROLE_PRESETS["nzl_manager"]},
        {"id": 8, "display_name": "Desk Dan", "email": "dan@hotel.test", "username": "dan",
         "role": "nzl_reception", "capabilities": ROLE_PRESETS["nzl_reception"]},
    ]
}


def make(routes=None, current_user_id=7):
    transport = FakeTransport({
        ("GET", "/admin/employees"): EMPLOYEES,
        ("GET", "/admin/employees/capabilities"): {"data": ["nzl_staff", "nzl_admin"]},
        **(routes or {}),
    })
    store = NotificationStore(ttl=0)
    return EmployeesScreen(transport, store, current_user_id=current_user_id), transport, store


NEW_EMPLOYEE = {
    "display_name": "New Nina", "email": "nina@hotel.test",
    "username": "nina", "password": "pw12345",
}


class TestPresets:
    def test_known_role(self):
        assert role_capabilities("nzl_housekeeper") == [
            "nzl_staff", "nzl_manage_housekeeping", "nzl_view_calendar",
        ]

    def test_unknown_role_falls_back(self):
        assert role_capabilities("nzl_gardener") == ["nzl_staff"]

    def test_presets_are_copies(self):
        caps = role_capabilities("nzl_finance")
        caps.append("nzl_admin")
        assert "nzl_admin" not in ROLE_PRESETS["nzl_finance"]

    def test_apply_preset_to_form(self):
        screen, _, _ = make()
        screen.open_modal()
        caps = screen.apply_role_preset("nzl_concierge")
        assert screen.form.role == "nzl_concierge"
        assert caps == ROLE_PRESETS["nzl_concierge"]


class TestLoading:
    @pytest.mark.asyncio
    async def test_load(self):
        screen, _, _ = make()
        await screen.load()
        state = screen.render()
        assert [r["role_label"] for r in state["rows"]] == ["Manager", "Reception"]
        assert state["rows"][0]["is_self"] is True
        assert state["rows"][1]["is_self"] is False
        assert state["capabilities"] == ["nzl_staff", "nzl_admin"]

    @pytest.mark.asyncio
    async def test_capabilities_failure_is_empty(self):
        screen, _, store = make({("GET", "/admin/employees/capabilities"): NetworkError()})
        await screen.load()
        state = screen.render()
        assert state["capabilities"] == []
        assert len(state["rows"]) == 2
        assert len(store) == 0


class TestSave:
    @pytest.mark.asyncio
    async def test_create(self):
        screen, transport, store = make()
        await screen.load()
        screen.open_modal()
        outcome = await screen.save(NEW_EMPLOYEE)
        assert outcome.ok
        body = transport.last("POST", "/admin/employees")
        assert body["username"] == "nina"
        assert body["role"] == "nzl_reception"
        assert body["capabilities"] == ROLE_PRESETS["nzl_reception"]
        assert store.items[-1].message == "Employee created"
        assert screen.show_modal is False

    @pytest.mark.asyncio
    async def test_create_missing_fields(self):
        screen, transport, _ = make()
        screen.open_modal()
        with pytest.raises(FormValidationError) as exc:
            await screen.save({"display_name": "Only Name"})
        assert set(exc.value.errors) == {"email", "username", "password"}
        assert transport.count("POST", "/admin/employees") == 0
        assert screen.show_modal is True

    @pytest.mark.asyncio
    async def test_duplicate_username_is_error_toast(self):
        screen, _, store = make({
            ("POST", "/admin/employees"): ConflictError("Sorry, that username already exists!", status=400, code="existing_user_login"),
        })
        screen.open_modal()
        outcome = await screen.save(NEW_EMPLOYEE)
        assert isinstance(outcome.error, ConflictError)
        assert store.items[-1].type == "error"
        assert store.items[-1].message == "Sorry, that username already exists!"
        assert screen.show_modal is True

    @pytest.mark.asyncio
    async def test_edit_other_includes_role(self):
        screen, transport, _ = make()
        await screen.load()
        screen.open_modal(8)
        assert screen.is_self() is False
        await screen.save({"role": "nzl_finance"})
        body = transport.last("PUT", "/admin/employees/8")
        assert body["role"] == "nzl_finance"
        assert "username" not in body
        assert "password" not in body

    @pytest.mark.asyncio
    async def test_edit_self_omits_role_and_capabilities(self):
        screen, transport, _ = make()
        await screen.load()
        screen.open_modal(7)
        assert screen.is_self() is True
        assert screen.render()["modal"]["is_self"] is True
        await screen.save({"display_name": "Ann A."})
        body = transport.last("PUT", "/admin/employees/7")
        assert body == {"display_name": "Ann A.", "email": "ann@hotel.test"}

    @pytest.mark.asyncio
    async def test_no_current_user_never_self(self):
        screen, _, _ = make(current_user_id=0)
        await screen.load()
        screen.open_modal(7)
        assert screen.is_self() is False

    @pytest.mark.asyncio
    async def test_perform_save_opens_editor(self):
        screen, transport, _ = make()
        await screen.load()
        await screen.perform("save", 8, {"display_name": "Dan D."})
        assert transport.last("PUT", "/admin/employees/8")["display_name"] == "Dan D."

    @pytest.mark.asyncio
    async def test_deactivate(self):
        screen, transport, store = make()
        await screen.load()
        await screen.deactivate(8)
        assert transport.count("DELETE", "/admin/employees/8") == 1
        assert store.items[-1].message == "Employee deactivated"

    def test_modal_render_hides_password(self):
        screen, _, _ = make()
        screen.open_modal()
        assert "password" not in screen.render()["modal"]["form"]
