"""httpx transport for the WordPress REST API.

Every request carries the ``X-WP-Nonce`` header. GET data becomes query
parameters (``None`` values dropped); other methods send it as a JSON body.
Transport failures become :class:`NetworkError`. Error statuses become
:class:`ApiError`, or :class:`ConflictError` for duplicates.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from nozule_admin.config import settings
from nozule_admin.errors import ApiError, ConflictError, NetworkError, is_conflict

from .base import AdminTransport

logger = logging.getLogger(__name__)


class HttpTransport(AdminTransport):
    """AdminTransport backed by ``httpx.AsyncClient``.

    Pass ``client`` to reuse a long-lived client (or an ``httpx.MockTransport``
    in tests). Without one, each request opens a short-lived client.
    """

    def __init__(
        self,
        base_url: str | None = None,
        nonce: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = (base_url or settings.api_url).rstrip("/")
        self._nonce = settings.nonce if nonce is None else nonce
        self._timeout = timeout or settings.request_timeout
        self._client = client

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _url(self, endpoint: str) -> str:
        return f"{self._base_url}/{endpoint.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-WP-Nonce": self._nonce,
        }

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(method, url, **kwargs)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.request(method, url, **kwargs)

    @staticmethod
    def _error_details(body: Any) -> tuple[str, str]:
        """Pull (message, code) out of either error shape the API uses.

        ``{"error": {"code", "message"}}`` from the plugin controllers, or
        WordPress' own ``{"code", "message"}``.
        """
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict):
                return (
                    error.get("message") or ApiError.default_message,
                    error.get("code") or "UNKNOWN_ERROR",
                )
            if body.get("message"):
                return body["message"], body.get("code") or "UNKNOWN_ERROR"
        return ApiError.default_message, "UNKNOWN_ERROR"

    # ------------------------------------------------------------------
    # AdminTransport interface
    # ------------------------------------------------------------------

    async def request(
        self,
        method: str,
        endpoint: str,
        data: dict[str, Any] | None = None,
    ) -> Any:
        method = method.upper()
        url = self._url(endpoint)
        kwargs: dict[str, Any] = {"headers": self._headers()}
        if method == "GET":
            if data:
                kwargs["params"] = {k: v for k, v in data.items() if v is not None}
        elif data is not None:
            kwargs["json"] = data

        try:
            response = await self._send(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning("%s %s timed out", method, endpoint)
            raise NetworkError(
                "The server took too long to respond. Please try again."
            ) from exc
        except httpx.TransportError as exc:
            logger.warning("%s %s failed: %s", method, endpoint, exc)
            raise NetworkError() from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_success:
            if body is None and response.content:
                raise ApiError(
                    "The server returned an invalid response.",
                    status=response.status_code,
                    code="INVALID_JSON",
                )
            return body if body is not None else {}

        message, code = self._error_details(body)
        logger.warning(
            "%s %s -> %d %s: %s", method, endpoint, response.status_code, code, message
        )
        error_cls = ConflictError if is_conflict(response.status_code, code) else ApiError
        raise error_cls(message, status=response.status_code, code=code)

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
