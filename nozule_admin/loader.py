"""List loader with stale-response protection.

Every ``load()`` is tagged with a monotonically increasing sequence number.
Responses may complete in any order; only the one whose number is still
the latest is applied, so the list never shows an older query's result.
Superseded requests are not aborted, their results are just dropped.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from nozule_admin.errors import AdminError, ApiError
from nozule_admin.models.state import Filter, ListState, Page
from nozule_admin.observable import Observable

log = logging.getLogger("nozule_admin.loader")

FetchFn = Callable[[Filter], Awaitable[Page]]

PAYLOAD_ERROR = "The server returned data in an unexpected format."


class ListLoader(Observable):
    """Fetches one collection and publishes each new :class:`ListState`."""

    def __init__(self, fetch: FetchFn, name: str = "list") -> None:
        super().__init__()
        self._fetch = fetch
        self._name = name
        self._seq = 0
        self._state = ListState()
        self._last_filter: Filter | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> ListState:
        return self._state

    @property
    def latest_sequence(self) -> int:
        return self._seq

    @property
    def last_filter(self) -> Filter | None:
        return self._last_filter

    async def load(self, filter: Filter) -> ListState:
        """Fetch ``filter`` and apply the result if it is still current.

        On an AdminError the error message is shown and the previous items
        stay in place. A response the screen cannot parse is reported the
        same way, as an INVALID_PAYLOAD ApiError.
        """
        self._seq += 1
        seq = self._seq
        self._last_filter = filter
        self._set(self._state.model_copy(update={"loading": True}))

        try:
            try:
                page = await self._fetch(filter)
            except (ValueError, TypeError, KeyError, AttributeError) as exc:
                log.debug("%s: unparseable response for #%d: %r", self._name, seq, exc)
                raise ApiError(PAYLOAD_ERROR, code="INVALID_PAYLOAD") from exc
        except AdminError as exc:
            if seq != self._seq:
                log.debug("%s: dropping stale error from request #%d", self._name, seq)
                return self._state
            log.warning("%s: load #%d failed: %s", self._name, seq, exc.message)
            self._set(
                self._state.model_copy(update={"loading": False, "error": exc.message})
            )
            return self._state

        if seq != self._seq:
            log.debug(
                "%s: dropping stale response #%d (latest is #%d)",
                self._name, seq, self._seq,
            )
            return self._state

        self._set(
            ListState(
                items=list(page.items),
                loading=False,
                error="",
                page=page.page,
                total_pages=max(1, page.total_pages),
                total=page.total,
                meta=dict(page.meta),
            )
        )
        return self._state

    async def reload(self) -> ListState:
        """Re-issue the last filter (or an empty one if nothing loaded yet)."""
        return await self.load(self._last_filter or Filter())

    retry = reload

    def reset(self) -> None:
        """Empty the list and invalidate anything in flight."""
        self._seq += 1
        self._set(ListState())

    def _set(self, state: ListState) -> None:
        self._state = state
        self._publish(state)
