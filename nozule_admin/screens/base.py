"""Screen ABC: one explicit state object per admin page.

A screen composes loaders, a filter holder and an action dispatcher around
the session's NotificationStore. ``render()`` derives the whole view model
from current state without side effects. Listeners get a fresh render after
every state change.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Iterable, TypeVar

from pydantic import BaseModel, ValidationError

from nozule_admin.api.base import AdminTransport
from nozule_admin.errors import ApiError
from nozule_admin.filters import FilterState
from nozule_admin.models.state import ListState
from nozule_admin.notifications import NotificationStore
from nozule_admin.observable import Observable

log = logging.getLogger("nozule_admin.screens")

Handler = Callable[[Any, dict[str, Any]], Awaitable[Any]]

_M = TypeVar("_M", bound=BaseModel)


def parse_items(model: type[_M], raw: Iterable[Any] | None) -> list[_M]:
    """Validate backend records, turning schema drift into an ApiError."""
    try:
        return [model.model_validate(item) for item in raw or []]
    except ValidationError as exc:
        log.warning("Unexpected %s payload: %s", model.__name__, exc)
        raise ApiError(
            "The server returned data in an unexpected format.",
            code="INVALID_PAYLOAD",
        ) from exc


def list_summary(state: ListState) -> dict[str, Any]:
    return {
        "loading": state.loading,
        "error": state.error,
        "page": state.page,
        "total_pages": state.total_pages,
        "total": state.total,
        "can_prev": state.page > 1,
        "can_next": state.page < state.total_pages,
    }


def dump(record: BaseModel) -> dict[str, Any]:
    return record.model_dump(mode="json")


class Screen(Observable, ABC):
    """Abstract admin screen.

    Subclasses set ``name`` (URL slug), ``component`` (client component the
    page shell bootstraps) and ``title``, and implement :meth:`load` and
    :meth:`render`.
    """

    name: str = ""
    component: str = ""
    title: str = ""

    filters: FilterState | None = None

    def __init__(
        self, transport: AdminTransport, notifications: NotificationStore
    ) -> None:
        super().__init__()
        self._transport = transport
        self._notifications = notifications

    @property
    def notifications(self) -> NotificationStore:
        return self._notifications

    @abstractmethod
    async def load(self) -> None:
        """Fetch everything the screen shows on first paint."""

    @abstractmethod
    def render(self) -> dict[str, Any]:
        """Derive the view model. Must not mutate state or do I/O."""

    def handlers(self) -> dict[str, Handler]:
        """Map of action kind -> ``handler(entity_id, payload)``."""
        return {}

    async def perform(
        self, kind: str, entity_id: Any = None, payload: dict[str, Any] | None = None
    ) -> Any:
        handler = self.handlers().get(kind)
        if handler is None:
            raise KeyError(f"Unknown action for {self.name}: {kind!r}")
        return await handler(entity_id, payload or {})

    async def set_filters(self, **changes: Any) -> None:
        if self.filters is None:
            raise LookupError(f"Screen {self.name!r} has no filters")
        await self.filters.update(**changes)

    def shell(self) -> dict[str, Any]:
        """Bootstrap document for the page: which component, with what state."""
        return {
            "screen": self.name,
            "component": self.component,
            "title": self.title,
            "state": self.render(),
        }

    def close(self) -> None:
        if self.filters is not None:
            self.filters.cancel()

    def _changed(self, *_: Any) -> None:
        if self.listener_count:
            self._publish(self.render())
