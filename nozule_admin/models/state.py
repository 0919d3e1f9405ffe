"""Pydantic models for screen state: filters, list results and toasts."""

from __future__ import annotations

import time
from datetime import date
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

NotificationType = Literal["success", "error", "info"]


class Filter(BaseModel):
    """One immutable snapshot of a screen's query.

    ``extra`` holds screen-specific keys (booking ``source``, inventory
    ``room_type_id``, calendar ``view``, sync-log ``channel``/``direction``).
    """

    model_config = ConfigDict(frozen=True)

    status: str = ""
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: str = ""
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=20, ge=1)
    extra: dict[str, str] = {}

    @field_validator("date_from", "date_to", mode="before")
    @classmethod
    def _blank_date_is_none(cls, value: Any) -> Any:
        if value == "":
            return None
        return value

    def to_params(
        self,
        from_key: str = "date_from",
        to_key: str = "date_to",
        paginate: bool = True,
    ) -> dict[str, Any]:
        """Render the non-empty fields as REST query parameters."""
        params: dict[str, Any] = {}
        if self.status:
            params["status"] = self.status
        if self.date_from is not None:
            params[from_key] = self.date_from.isoformat()
        if self.date_to is not None:
            params[to_key] = self.date_to.isoformat()
        if self.search:
            params["search"] = self.search
        for key, value in self.extra.items():
            if value:
                params[key] = value
        if paginate:
            params["page"] = self.page
            params["per_page"] = self.per_page
        return params


class Page(BaseModel):
    """One fetch result as returned by a screen's fetch function."""

    items: list[Any] = []
    page: int = 1
    total_pages: int = 1
    total: int = 0
    meta: dict[str, Any] = {}


class ListState(BaseModel):
    """What a list/table currently shows."""

    items: list[Any] = []
    loading: bool = False
    error: str = ""
    page: int = 1
    total_pages: int = 1
    total: int = 0
    meta: dict[str, Any] = {}


class Notification(BaseModel):
    """A transient, dismissible toast."""

    id: str
    type: NotificationType = "info"
    message: str
    persistent: bool = False
    created_at: float = Field(default_factory=time.time)
