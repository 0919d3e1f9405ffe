"""Row action dispatcher.

Actions are declared once per screen as :class:`ActionSpec` entries.
``dispatch`` guards them with a set of in-flight ``(entity_id, kind)`` pairs,
so a repeated click while a request is pending makes no network call. Every
settled action clears its marker, posts a toast and reloads the list.

``ActionSpec.allowed_statuses`` only decides which buttons a row shows. The
backend still validates every transition.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional

from nozule_admin.api.base import AdminTransport
from nozule_admin.errors import AdminError, ApiError
from nozule_admin.notifications import NotificationStore

log = logging.getLogger("nozule_admin.actions")

SettledFn = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class ActionSpec:
    """One mutating REST call a screen can trigger."""

    kind: str
    method: str
    path: str                       # "{id}" is replaced with the entity id
    success_message: str = ""
    failure_message: str = "Action failed"
    allowed_statuses: Optional[frozenset[str]] = None
    row_action: bool = False        # offered as a per-row button
    check_success: bool = False     # treat {"success": false} bodies as failures
    reload: bool = True
    notify_success: bool = True

    def endpoint(self, entity_id: Any) -> str:
        return self.path.format(id=entity_id)

    def is_available(self, entity: Any) -> bool:
        if self.allowed_statuses is None:
            return True
        if isinstance(entity, dict):
            status = entity.get("status")
        else:
            status = getattr(entity, "status", None)
        return status in self.allowed_statuses


@dataclass
class ActionOutcome:
    entity_id: str
    kind: str
    ok: bool
    data: Any = None
    error: Optional[AdminError] = None
    notification_id: str = ""


class ActionDispatcher:
    """Runs :class:`ActionSpec` calls with per-(entity, kind) de-duplication."""

    def __init__(
        self,
        transport: AdminTransport,
        notifications: NotificationStore,
        actions: Iterable[ActionSpec],
        on_settled: SettledFn | None = None,
    ) -> None:
        self._transport = transport
        self._notifications = notifications
        self._actions: dict[str, ActionSpec] = {a.kind: a for a in actions}
        self._on_settled = on_settled
        self._in_flight: set[tuple[str, str]] = set()

    # ── Queries ───────────────────────────────────────────────

    @property
    def kinds(self) -> list[str]:
        return list(self._actions)

    @property
    def in_flight(self) -> frozenset[tuple[str, str]]:
        return frozenset(self._in_flight)

    def spec(self, kind: str) -> ActionSpec:
        try:
            return self._actions[kind]
        except KeyError:
            raise KeyError(f"Unknown action: {kind!r}") from None

    def is_in_flight(self, entity_id: Any, kind: str) -> bool:
        return (str(entity_id), kind) in self._in_flight

    def busy_kinds(self, entity_id: Any) -> list[str]:
        key = str(entity_id)
        return sorted(kind for eid, kind in self._in_flight if eid == key)

    def available_actions(self, entity: Any) -> list[str]:
        """Row actions whose allowed-status set admits ``entity``."""
        return [
            spec.kind
            for spec in self._actions.values()
            if spec.row_action and spec.is_available(entity)
        ]

    # ── Dispatch ──────────────────────────────────────────────

    async def dispatch(
        self,
        entity_id: Any,
        kind: str,
        payload: dict[str, Any] | None = None,
    ) -> ActionOutcome | None:
        """Run action ``kind`` for ``entity_id``.

        Returns None without calling the backend when the same action is
        already in flight for this entity.
        """
        spec = self.spec(kind)
        key = (str(entity_id), kind)
        if key in self._in_flight:
            log.debug("Ignoring %s on %s: already in flight", kind, entity_id)
            return None

        self._in_flight.add(key)
        log.info("Dispatching %s %s", kind, spec.endpoint(entity_id))
        data: Any = None
        error: AdminError | None = None
        try:
            data = await self._transport.request(
                spec.method, spec.endpoint(entity_id), payload
            )
            if spec.check_success and isinstance(data, dict) and data.get("success") is False:
                raise ApiError(
                    data.get("message") or spec.failure_message, code="ACTION_FAILED"
                )
        except AdminError as exc:
            error = exc
        finally:
            self._in_flight.discard(key)

        outcome = ActionOutcome(
            entity_id=key[0], kind=kind, ok=error is None, data=data, error=error
        )
        if error is not None:
            log.warning("%s on %s failed: %s", kind, entity_id, error.message)
            message = error.message
            if isinstance(error, ApiError) and message == ApiError.default_message:
                message = spec.failure_message
            outcome.notification_id = self._notifications.push("error", message)
        elif spec.notify_success:
            message = spec.success_message
            if isinstance(data, dict) and data.get("message"):
                message = data["message"]
            if message:
                outcome.notification_id = self._notifications.push("success", message)

        if spec.reload and self._on_settled is not None:
            await self._on_settled()
        return outcome
