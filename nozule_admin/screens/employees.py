"""Hotel staff accounts screen."""

from __future__ import annotations

import logging
from typing import Any

from nozule_admin.actions import ActionDispatcher, ActionOutcome, ActionSpec
from nozule_admin.api.base import AdminTransport
from nozule_admin.config import settings
from nozule_admin.errors import AdminError
from nozule_admin.loader import ListLoader
from nozule_admin.models.entities import Employee, EntityId
from nozule_admin.models.forms import EmployeeForm
from nozule_admin.models.state import Filter, Page
from nozule_admin.notifications import NotificationStore

from .base import Handler, Screen, dump, parse_items

log = logging.getLogger("nozule_admin.screens.employees")

DEFAULT_CAPABILITIES = ["nzl_staff"]

ROLE_PRESETS: dict[str, list[str]] = {
    "nzl_manager": [
        "nzl_admin", "nzl_staff", "nzl_manage_rooms", "nzl_manage_rates",
        "nzl_manage_inventory", "nzl_manage_bookings", "nzl_manage_guests",
        "nzl_view_reports", "nzl_view_calendar", "nzl_manage_channels",
        "nzl_manage_settings", "nzl_manage_employees",
        "nzl_manage_housekeeping", "nzl_manage_billing",
        "nzl_manage_pos", "nzl_manage_messaging",
    ],
    "nzl_reception": [
        "nzl_staff", "nzl_manage_bookings", "nzl_manage_guests",
        "nzl_view_calendar", "nzl_manage_billing",
    ],
    "nzl_housekeeper": [
        "nzl_staff", "nzl_manage_housekeeping", "nzl_view_calendar",
    ],
    "nzl_finance": [
        "nzl_staff", "nzl_manage_billing", "nzl_view_reports",
        "nzl_manage_rates", "nzl_manage_pos",
    ],
    "nzl_concierge": [
        "nzl_staff", "nzl_manage_guests", "nzl_manage_bookings",
        "nzl_view_calendar", "nzl_manage_messaging",
    ],
}

ROLE_LABELS = {
    "nzl_manager": "Manager",
    "nzl_reception": "Reception",
    "nzl_housekeeper": "Housekeeper",
    "nzl_finance": "Finance",
    "nzl_concierge": "Concierge",
}

EMPLOYEE_ACTIONS = (
    ActionSpec(
        "create", "POST", "/admin/employees",
        success_message="Employee created",
        failure_message="Failed to save employee",
    ),
    ActionSpec(
        "update", "PUT", "/admin/employees/{id}",
        success_message="Employee updated",
        failure_message="Failed to save employee",
    ),
    ActionSpec(
        "deactivate", "DELETE", "/admin/employees/{id}",
        success_message="Employee deactivated",
        failure_message="Failed to deactivate employee",
        row_action=True,
    ),
)


def role_capabilities(role: str) -> list[str]:
    return list(ROLE_PRESETS.get(role, DEFAULT_CAPABILITIES))


class EmployeesScreen(Screen):
    """Employee list plus a create/edit modal.

    ``is_self()`` only hides the role and capability inputs when admins edit
    their own account. Permission checks happen on the backend.
    """

    name = "employees"
    component = "nzlEmployees"
    title = "Employees"

    def __init__(
        self,
        transport: AdminTransport,
        notifications: NotificationStore,
        current_user_id: EntityId | None = None,
    ) -> None:
        super().__init__(transport, notifications)
        if current_user_id is None:
            current_user_id = settings.current_user_id or None
        self.current_user_id = current_user_id
        self.loader = ListLoader(self._fetch, name="employees")
        self.actions = ActionDispatcher(
            transport, notifications, EMPLOYEE_ACTIONS, on_settled=self.loader.reload
        )
        self.capabilities: list[str] = []
        self.show_modal = False
        self.editing_id: EntityId | None = None
        self.form = EmployeeForm(capabilities=role_capabilities("nzl_reception"))
        self.loader.subscribe(self._changed)

    async def _fetch(self, filter: Filter) -> Page:
        response = await self._transport.get("/admin/employees") or {}
        employees = parse_items(Employee, response.get("data"))
        return Page(items=employees, total=len(employees))

    async def load(self) -> None:
        await self.load_capabilities()
        await self.loader.load(Filter())

    async def load_capabilities(self) -> None:
        try:
            response = await self._transport.get("/admin/employees/capabilities") or {}
            self.capabilities = list(response.get("data") or [])
        except AdminError as exc:
            log.warning("Could not load capabilities: %s", exc.message)
            self.capabilities = []
        self._changed()

    def find(self, employee_id: EntityId) -> Employee | None:
        key = str(employee_id)
        for employee in self.loader.state.items:
            if employee.key == key:
                return employee
        return None

    # ── Modal ─────────────────────────────────────────────────

    def open_modal(self, employee_id: EntityId | None = None) -> None:
        employee = self.find(employee_id) if employee_id is not None else None
        if employee is not None:
            self.editing_id = employee.id
            self.form = EmployeeForm(
                display_name=employee.display_name,
                email=employee.email,
                username=employee.username,
                role=employee.role,
                capabilities=list(employee.capabilities),
            )
        else:
            self.editing_id = None
            self.form = EmployeeForm(capabilities=role_capabilities("nzl_reception"))
        self.show_modal = True
        self._changed()

    def close_modal(self) -> None:
        self.show_modal = False
        self.editing_id = None
        self._changed()

    def apply_role_preset(self, role: str | None = None) -> list[str]:
        role = role or self.form.role
        self.form = self.form.model_copy(
            update={"role": role, "capabilities": role_capabilities(role)}
        )
        self._changed()
        return self.form.capabilities

    def is_self(self) -> bool:
        if self.editing_id is None or not self.current_user_id:
            return False
        return str(self.editing_id) == str(self.current_user_id)

    async def save(self, data: dict[str, Any] | None = None) -> ActionOutcome | None:
        if data:
            self.form = EmployeeForm.parse({**self.form.model_dump(), **data})
        creating = self.editing_id is None
        self.form.check_for(creating)
        payload = self.form.payload(creating, is_self=self.is_self())
        if creating:
            outcome = await self.actions.dispatch("new", "create", payload)
        else:
            outcome = await self.actions.dispatch(self.editing_id, "update", payload)
        if outcome is not None and outcome.ok:
            self.close_modal()
        return outcome

    async def deactivate(self, employee_id: EntityId) -> ActionOutcome | None:
        return await self.actions.dispatch(employee_id, "deactivate")

    # ── Rendering ─────────────────────────────────────────────

    def handlers(self) -> dict[str, Handler]:
        return {
            "save": lambda eid, p: self._open_and_save(eid, p),
            "deactivate": lambda eid, p: self.deactivate(eid),
            "apply_role_preset": self._apply_preset,
        }

    async def _open_and_save(
        self, employee_id: EntityId | None, data: dict[str, Any]
    ) -> ActionOutcome | None:
        if not self.show_modal or str(self.editing_id) != str(employee_id):
            self.open_modal(employee_id)
        return await self.save(data)

    async def _apply_preset(self, employee_id: Any, data: dict[str, Any]) -> list[str]:
        return self.apply_role_preset(data.get("role"))

    def _saving(self) -> bool:
        key = "new" if self.editing_id is None else str(self.editing_id)
        return any(eid == key for eid, _ in self.actions.in_flight)

    def render(self) -> dict[str, Any]:
        state = self.loader.state
        rows = []
        for employee in state.items:
            row = dump(employee)
            row["role_label"] = ROLE_LABELS.get(employee.role, employee.role)
            row["is_self"] = bool(self.current_user_id) and (
                employee.key == str(self.current_user_id)
            )
            row["busy"] = self.actions.busy_kinds(employee.id)
            rows.append(row)
        return {
            "loading": state.loading,
            "error": state.error,
            "rows": rows,
            "capabilities": list(self.capabilities),
            "roles": dict(ROLE_LABELS),
            "modal": {
                "open": self.show_modal,
                "editing_id": self.editing_id,
                "is_self": self.is_self(),
                "saving": self._saving(),
                "form": self.form.model_dump(exclude={"password"}),
            },
        }
