"""Filter/query state holder.

Holds the current Filter snapshot for one list and turns every mutation
into a reload:

  - free-text ``search`` edits are debounced, so a burst of keystrokes
    produces a single reload once typing pauses
  - every other change reloads immediately and cancels a pending
    debounced reload (the immediate one already carries the latest text)
  - changing anything other than ``page`` resets ``page`` to 1
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from nozule_admin.config import settings
from nozule_admin.errors import FormValidationError
from nozule_admin.models.state import Filter
from nozule_admin.observable import Observable

log = logging.getLogger("nozule_admin.filters")

ReloadFn = Callable[[Filter], Awaitable[Any]]

DEBOUNCED_FIELDS = frozenset({"search"})
_MODEL_FIELDS = frozenset(Filter.model_fields) - {"extra"}
_TEXT_FIELDS = frozenset({"status", "search"})


class FilterState(Observable):
    """Mutable holder around an immutable :class:`Filter`.

    ``reload`` is awaited with the new snapshot. Listeners receive every new
    snapshot before the reload starts.
    """

    def __init__(
        self,
        reload: ReloadFn,
        initial: Filter | None = None,
        debounce: float | None = None,
    ) -> None:
        super().__init__()
        self._reload = reload
        self._initial = initial or Filter(per_page=settings.per_page)
        self._filter = self._initial
        self._debounce = (
            settings.search_debounce_ms / 1000 if debounce is None else debounce
        )
        self._pending: asyncio.Task | None = None

    @property
    def filter(self) -> Filter:
        return self._filter

    @property
    def page(self) -> int:
        return self._filter.page

    @property
    def has_pending_reload(self) -> bool:
        return self._pending is not None and not self._pending.done()

    # ── Mutation ──────────────────────────────────────────────

    async def set(self, field: str, value: Any) -> None:
        await self.update(**{field: value})

    async def update(self, **changes: Any) -> None:
        """Apply one or more field changes and schedule the reload."""
        if not changes:
            return

        new = self._apply(changes)
        if new == self._filter:
            return
        self._filter = new
        self._publish(new)

        if set(changes) <= DEBOUNCED_FIELDS:
            self._schedule()
        else:
            self.cancel()
            await self._reload(new)

    async def set_page(self, page: int, total_pages: int | None = None) -> None:
        page = max(1, page)
        if total_pages:
            page = min(page, total_pages)
        await self.update(page=page)

    async def next_page(self, total_pages: int) -> None:
        if self._filter.page < total_pages:
            await self.set_page(self._filter.page + 1)

    async def prev_page(self) -> None:
        if self._filter.page > 1:
            await self.set_page(self._filter.page - 1)

    async def clear(self) -> None:
        """Back to the initial filter, always reloading."""
        self.cancel()
        self._filter = self._initial
        self._publish(self._filter)
        await self._reload(self._filter)

    # ── Debounce control ──────────────────────────────────────

    async def flush(self) -> None:
        """Wait for a pending debounced reload to finish."""
        task = self._pending
        if task is None:
            return
        if not task.done():
            await asyncio.wait([task])
        if not task.cancelled():
            task.result()

    def cancel(self) -> None:
        """Drop a pending debounced reload without running it."""
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    # ── Internal ──────────────────────────────────────────────

    def _apply(self, changes: dict[str, Any]) -> Filter:
        data = self._filter.model_dump()
        extra = dict(self._filter.extra)
        for field, value in changes.items():
            if field in _MODEL_FIELDS:
                if value is None and field in _TEXT_FIELDS:
                    value = ""
                data[field] = value
            else:
                extra[field] = "" if value is None else str(value)
        data["extra"] = extra

        try:
            new = Filter.model_validate(data)
        except ValidationError as exc:
            errors = {
                ".".join(str(p) for p in err["loc"]) or "filter": err["msg"]
                for err in exc.errors()
            }
            raise FormValidationError(errors, "Invalid filter value.") from exc

        if new.model_dump(exclude={"page"}) != self._filter.model_dump(exclude={"page"}):
            new = new.model_copy(update={"page": 1})
        return new

    def _schedule(self) -> None:
        self.cancel()
        self._pending = asyncio.ensure_future(self._debounced())
        self._pending.add_done_callback(self._log_failure)

    async def _debounced(self) -> None:
        await asyncio.sleep(self._debounce)
        await self._reload(self._filter)

    @staticmethod
    def _log_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("Debounced reload failed", exc_info=exc)
