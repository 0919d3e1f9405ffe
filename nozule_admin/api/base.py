"""Abstract base class for the REST transport.

Screens talk to the hotel backend only through this interface, so tests and
alternative backends can supply their own implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class AdminTransport(ABC):
    """JSON request/response transport for the admin REST API.

    Subclasses must implement :meth:`request`. The verb helpers and
    :meth:`close` have working defaults.
    """

    @abstractmethod
    async def request(
        self,
        method: str,
        endpoint: str,
        data: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Args:
            method: HTTP method (``GET``, ``POST``, ``PUT``, ``DELETE``).
            endpoint: Path below the API base, e.g. ``/admin/bookings``.
            data: Query parameters for ``GET``; JSON body otherwise.

        Raises:
            NetworkError: The request could not be completed.
            ApiError: The backend answered with an error status.
        """

    async def get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", endpoint, params)

    async def post(self, endpoint: str, data: dict[str, Any] | None = None) -> Any:
        return await self.request("POST", endpoint, data)

    async def put(self, endpoint: str, data: dict[str, Any] | None = None) -> Any:
        return await self.request("PUT", endpoint, data)

    async def delete(self, endpoint: str) -> Any:
        return await self.request("DELETE", endpoint)

    async def close(self) -> None:
        """Release transport resources. Safe to call multiple times."""
