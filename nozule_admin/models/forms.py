"""Form models for create/update dialogs.

Each form is parsed from raw user input with ``Form.parse`` and checked
with ``check()`` before anything is sent to the backend. Both raise
:class:`~nozule_admin.errors.FormValidationError` keyed by field name so the
view can show the message next to the input.
"""

from __future__ import annotations

from datetime import date
from typing import Annotated, Any, Optional, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from nozule_admin.errors import FormValidationError
from nozule_admin.models.entities import EntityId

REQUIRED = "This field is required."


def _none_if_blank(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


OptionalDate = Annotated[Optional[date], BeforeValidator(_none_if_blank)]
OptionalInt = Annotated[Optional[int], BeforeValidator(_none_if_blank)]
OptionalFloat = Annotated[Optional[float], BeforeValidator(_none_if_blank)]
OptionalId = Annotated[Optional[EntityId], BeforeValidator(_none_if_blank)]

_F = TypeVar("_F", bound="Form")


def _as_int(value: Any) -> Any:
    """Send numeric ids as numbers, leave anything else alone."""
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return value


def _require(errors: dict[str, str], **fields: Any) -> None:
    for name, value in fields.items():
        if value is None or (isinstance(value, str) and not value.strip()):
            errors[name] = REQUIRED


class Form(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    @classmethod
    def parse(cls: type[_F], data: dict[str, Any] | None) -> _F:
        try:
            return cls.model_validate(data or {})
        except ValidationError as exc:
            errors = {
                ".".join(str(p) for p in err["loc"]) or "form": err["msg"]
                for err in exc.errors()
            }
            raise FormValidationError(errors) from exc

    def check(self) -> None:
        errors = self._errors()
        if errors:
            raise FormValidationError(errors)

    def _errors(self) -> dict[str, str]:
        return {}


class BookingForm(Form):
    guest_first_name: str = ""
    guest_last_name: str = ""
    guest_email: str = ""
    guest_phone: str = ""
    room_type_id: OptionalId = None
    status: str = "pending"
    check_in: OptionalDate = None
    check_out: OptionalDate = None
    adults: int = 1
    children: int = 0
    notes: str = ""

    def _errors(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        _require(
            errors,
            guest_first_name=self.guest_first_name,
            guest_last_name=self.guest_last_name,
            guest_email=self.guest_email,
            room_type_id=self.room_type_id,
            check_in=self.check_in,
            check_out=self.check_out,
        )
        if self.guest_email and "@" not in self.guest_email:
            errors["guest_email"] = "Enter a valid email address."
        if self.check_in and self.check_out and self.check_out <= self.check_in:
            errors["check_out"] = "Check-out must be after check-in."
        if self.adults < 1:
            errors["adults"] = "At least one adult is required."
        if self.children < 0:
            errors["children"] = "Children cannot be negative."
        return errors

    def payload(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        data["room_type_id"] = _as_int(self.room_type_id)
        return data


class PaymentForm(Form):
    amount: OptionalFloat = None
    method: str = "cash"
    notes: str = ""

    def _errors(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        _require(errors, amount=self.amount, method=self.method)
        if self.amount is not None and self.amount <= 0:
            errors["amount"] = "Amount must be greater than zero."
        return errors


class CancelForm(Form):
    reason: str = ""

    def _errors(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        _require(errors, reason=self.reason)
        return errors


class ChannelForm(Form):
    channel_name: str = ""
    room_type_id: OptionalId = None
    external_room_id: str = ""
    status: str = "active"
    sync_availability: bool = True
    sync_rates: bool = True
    sync_reservations: bool = True

    def _errors(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        _require(
            errors,
            channel_name=self.channel_name,
            room_type_id=self.room_type_id,
            external_room_id=self.external_room_id,
        )
        if self.status not in ("active", "inactive"):
            errors["status"] = "Status must be active or inactive."
        return errors

    def payload(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        data["room_type_id"] = _as_int(self.room_type_id)
        return data


class ConnectionForm(Form):
    hotel_id: str = ""
    username: str = ""
    password: str = ""
    api_endpoint: str = ""
    use_sandbox: bool = False
    is_active: bool = False

    def _errors(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        _require(errors, hotel_id=self.hotel_id)
        return errors

    def payload(self, channel_name: str, connection_id: EntityId | None = None) -> dict[str, Any]:
        data: dict[str, Any] = {
            "channel_name": channel_name,
            "hotel_id": self.hotel_id,
            "username": self.username,
            "password": self.password,
            "api_endpoint": self.api_endpoint,
            "use_sandbox": self.use_sandbox,
            "is_active": 1 if self.is_active else 0,
        }
        if connection_id is not None:
            data["id"] = connection_id
        return data


class RateMappingForm(Form):
    local_room_type_id: OptionalId = None
    local_rate_plan_id: OptionalId = 0
    channel_room_id: str = ""
    channel_rate_id: str = ""

    def _errors(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        if self.local_room_type_id is None:
            errors["local_room_type_id"] = "Please select a room type."
        if not self.channel_room_id:
            errors["channel_room_id"] = "Please enter the channel room ID."
        return errors

    def payload(self, channel_name: str) -> dict[str, Any]:
        return {
            "channel_name": channel_name,
            "local_room_type_id": _as_int(self.local_room_type_id),
            "local_rate_plan_id": _as_int(self.local_rate_plan_id) or 0,
            "channel_room_id": self.channel_room_id,
            "channel_rate_id": self.channel_rate_id,
            "is_active": 1,
        }


class EmployeeForm(Form):
    display_name: str = ""
    email: str = ""
    username: str = ""
    password: str = ""
    role: str = "nzl_reception"
    capabilities: list[str] = []

    def check_for(self, creating: bool) -> None:
        errors: dict[str, str] = {}
        if creating:
            _require(
                errors,
                display_name=self.display_name,
                username=self.username,
                email=self.email,
                password=self.password,
            )
        else:
            _require(errors, display_name=self.display_name, email=self.email)
        if errors:
            raise FormValidationError(errors)

    def payload(self, creating: bool, is_self: bool = False) -> dict[str, Any]:
        """Build the request body.

        Role and capabilities are left out when an admin edits their own
        account. The backend decides what is actually allowed.
        """
        data: dict[str, Any] = {
            "display_name": self.display_name,
            "email": self.email,
        }
        if creating or not is_self:
            data["role"] = self.role
            data["capabilities"] = list(self.capabilities)
        if creating:
            data["username"] = self.username
            data["password"] = self.password
        elif self.password:
            data["password"] = self.password
        return data


class InventoryCellForm(Form):
    model_config = ConfigDict(
        extra="ignore", str_strip_whitespace=True, populate_by_name=True
    )

    room_type_id: EntityId
    day: date = Field(alias="date")
    available: OptionalInt = None

    def _errors(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        _require(errors, available=self.available)
        if self.available is not None and self.available < 0:
            errors["available"] = "Available rooms cannot be negative."
        return errors

    def payload(self) -> dict[str, Any]:
        return {
            "room_type_id": _as_int(self.room_type_id),
            "date": self.day.isoformat(),
            "available": self.available,
        }


class BulkInventoryForm(Form):
    room_type_id: OptionalId = None
    start_date: OptionalDate = None
    end_date: OptionalDate = None
    available: OptionalInt = None

    def _errors(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        _require(
            errors,
            start_date=self.start_date,
            end_date=self.end_date,
            available=self.available,
        )
        if self.start_date and self.end_date and self.end_date < self.start_date:
            errors["end_date"] = "End date must not be before start date."
        if self.available is not None and self.available < 0:
            errors["available"] = "Available rooms cannot be negative."
        return errors

    def payload(self) -> dict[str, Any]:
        return {
            "room_type_id": _as_int(self.room_type_id),
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "available": self.available,
        }
