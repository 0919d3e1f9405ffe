"""FastAPI application — JSON shell host for the admin screens.

Endpoints:

  GET    /health                                         Health check
  POST   /api/sessions                                   Open an admin session
  GET    /api/sessions                                   List sessions
  GET    /api/sessions/{sid}                             Session summary
  DELETE /api/sessions/{sid}                             Close a session
  GET    /api/sessions/{sid}/screens/{screen}            Page shell {component, title, state}
  POST   /api/sessions/{sid}/screens/{screen}/load       Initial fetch
  PATCH  /api/sessions/{sid}/screens/{screen}/filters    Change filters
  POST   /api/sessions/{sid}/screens/{screen}/actions/{kind}
  GET    /api/sessions/{sid}/notifications               Current toasts
  DELETE /api/sessions/{sid}/notifications/{nid}         Dismiss a toast
  WS     /api/sessions/{sid}/notifications/stream        Toast push/remove events

A client page asks for a screen's shell, mounts the named component with
the embedded state, then drives it through the load/filters/actions calls.
Every mutating call answers with the freshly rendered state.

Sessions idle for longer than Settings.session_idle_minutes (and with no
notification stream open) are closed whenever a session is opened or listed.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Callable, Optional

# Configure root logger early so all nozule_admin.* loggers have a handler
# when run via `uvicorn nozule_admin.app:app`.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)-28s %(levelname)-7s %(message)s",
)

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from nozule_admin.actions import ActionOutcome
from nozule_admin.api.base import AdminTransport
from nozule_admin.config import settings
from nozule_admin.errors import FormValidationError
from nozule_admin.models.entities import EntityId
from nozule_admin.screens import SCREENS, Screen
from nozule_admin.session import (
    AdminSession,
    expire_idle_sessions,
    get_active_sessions,
    get_session,
    register_session,
    unregister_session,
)

log = logging.getLogger("nozule_admin.app")

_START_TIME = time.time()

TransportFactory = Callable[[], AdminTransport]


class SessionRequest(BaseModel):
    current_user_id: Optional[EntityId] = None


class ActionRequest(BaseModel):
    entity_id: Optional[EntityId] = None
    payload: dict[str, Any] = {}


def _not_found(what: str) -> JSONResponse:
    return JSONResponse({"error": f"{what} not found"}, status_code=404)


def _invalid(exc: FormValidationError) -> JSONResponse:
    return JSONResponse({"error": exc.message, "errors": exc.errors}, status_code=422)


def _outcome(result: Any) -> dict[str, Any]:
    if isinstance(result, ActionOutcome):
        return {
            "accepted": True,
            "ok": result.ok,
            "error": result.error.message if result.error else None,
            "notification_id": result.notification_id or None,
            "data": jsonable_encoder(result.data),
        }
    if result is None:
        return {"accepted": False}
    return {"accepted": True, "ok": True, "data": jsonable_encoder(result)}


def create_app(transport_factory: TransportFactory | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    ``transport_factory`` builds the REST transport for each new session.
    By default every session gets an HttpTransport from the settings.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        for warning in settings.validate_startup():
            log.warning("Config: %s", warning)
        yield
        for session_id in list(get_active_sessions()):
            session = unregister_session(session_id)
            if session is not None:
                await session.close()

    app = FastAPI(
        title="Nozule Admin",
        description="Hotel admin screens: bookings, calendar, channels, staff, inventory",
        version="0.1.0",
        lifespan=lifespan,
    )

    async def _sweep_idle() -> None:
        for session in expire_idle_sessions(settings.session_idle_minutes * 60):
            await session.close()

    def _lookup(session_id: str, screen_name: str) -> tuple[AdminSession | None, Screen | None]:
        session = get_session(session_id)
        if session is None or screen_name not in SCREENS:
            return session, None
        return session, session.screen(screen_name)

    # ── Health check ───────────────────────────────────────────

    @app.get("/health")
    async def health() -> JSONResponse:
        uptime = round(time.time() - _START_TIME, 1)
        return JSONResponse({
            "status": "ok",
            "uptime": uptime,
            "sessions": len(get_active_sessions()),
        })

    # ── Sessions ───────────────────────────────────────────────

    @app.post("/api/sessions")
    async def open_session(body: Optional[SessionRequest] = None) -> JSONResponse:
        await _sweep_idle()
        transport = transport_factory() if transport_factory else None
        session = AdminSession(
            transport=transport,
            current_user_id=body.current_user_id if body else None,
        )
        session_id = register_session(session)
        return JSONResponse(
            {"session_id": session_id, "screens": sorted(SCREENS)}, status_code=201
        )

    @app.get("/api/sessions")
    async def list_sessions() -> JSONResponse:
        await _sweep_idle()
        return JSONResponse({
            "sessions": [s.to_dict() for s in get_active_sessions().values()],
        })

    @app.get("/api/sessions/{session_id}")
    async def session_detail(session_id: str) -> JSONResponse:
        session = get_session(session_id)
        if session is None:
            return _not_found("Session")
        return JSONResponse(session.to_dict(detail=True))

    @app.delete("/api/sessions/{session_id}")
    async def close_session(session_id: str) -> JSONResponse:
        session = unregister_session(session_id)
        if session is None:
            return _not_found("Session")
        await session.close()
        return JSONResponse({"closed": True})

    # ── Screens ────────────────────────────────────────────────

    @app.get("/api/sessions/{session_id}/screens/{screen_name}")
    async def screen_shell(session_id: str, screen_name: str) -> JSONResponse:
        session, screen = _lookup(session_id, screen_name)
        if session is None:
            return _not_found("Session")
        if screen is None:
            return _not_found("Screen")
        return JSONResponse(screen.shell())

    @app.post("/api/sessions/{session_id}/screens/{screen_name}/load")
    async def load_screen(session_id: str, screen_name: str) -> JSONResponse:
        session, screen = _lookup(session_id, screen_name)
        if session is None:
            return _not_found("Session")
        if screen is None:
            return _not_found("Screen")
        await screen.load()
        return JSONResponse({"state": screen.render()})

    @app.patch("/api/sessions/{session_id}/screens/{screen_name}/filters")
    async def update_filters(
        session_id: str, screen_name: str, request: Request
    ) -> JSONResponse:
        session, screen = _lookup(session_id, screen_name)
        if session is None:
            return _not_found("Session")
        if screen is None:
            return _not_found("Screen")
        changes = await request.json()
        if not isinstance(changes, dict):
            return JSONResponse(
                {"error": "Expected a JSON object of filter changes"}, status_code=400
            )
        try:
            await screen.set_filters(**changes)
            if screen.filters is not None:
                # Apply debounced search edits before answering
                await screen.filters.flush()
        except FormValidationError as exc:
            return _invalid(exc)
        except LookupError as exc:
            return JSONResponse({"error": str(exc)}, status_code=400)
        return JSONResponse({"state": screen.render()})

    @app.post("/api/sessions/{session_id}/screens/{screen_name}/actions/{kind}")
    async def perform_action(
        session_id: str, screen_name: str, kind: str, body: ActionRequest
    ) -> JSONResponse:
        session, screen = _lookup(session_id, screen_name)
        if session is None:
            return _not_found("Session")
        if screen is None:
            return _not_found("Screen")
        if kind not in screen.handlers():
            return _not_found("Action")
        try:
            result = await screen.perform(kind, body.entity_id, body.payload)
        except FormValidationError as exc:
            return _invalid(exc)
        except KeyError as exc:
            log.warning("Action %s on %s failed: %s", kind, screen_name, exc)
            message = str(exc.args[0]) if exc.args else "Not found"
            return JSONResponse({"error": message}, status_code=404)
        return JSONResponse({**_outcome(result), "state": screen.render()})

    # ── Notifications ──────────────────────────────────────────

    @app.get("/api/sessions/{session_id}/notifications")
    async def list_notifications(session_id: str) -> JSONResponse:
        session = get_session(session_id)
        if session is None:
            return _not_found("Session")
        return JSONResponse({
            "notifications": [
                n.model_dump(mode="json") for n in session.notifications.items
            ],
        })

    @app.delete("/api/sessions/{session_id}/notifications/{notification_id}")
    async def dismiss_notification(session_id: str, notification_id: str) -> JSONResponse:
        session = get_session(session_id)
        if session is None:
            return _not_found("Session")
        if not session.notifications.remove(notification_id):
            return _not_found("Notification")
        return JSONResponse({"removed": notification_id})

    @app.websocket("/api/sessions/{session_id}/notifications/stream")
    async def notification_stream(websocket: WebSocket, session_id: str) -> None:
        """Streams toast push/remove events, starting with a snapshot."""
        session = get_session(session_id)
        if session is None:
            await websocket.close(code=4004, reason="Session not found")
            return

        await websocket.accept()
        queue = session.notifications.open_stream()
        try:
            await websocket.send_json({
                "event": "snapshot",
                "timestamp": time.time(),
                "notifications": [
                    n.model_dump(mode="json") for n in session.notifications.items
                ],
            })
            while True:
                event = await queue.get()
                await websocket.send_json(event)
        except WebSocketDisconnect:
            pass
        except Exception as e:
            log.warning("Notification stream error for %s: %s", session_id, e)
        finally:
            session.notifications.close_stream(queue)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.getLogger().setLevel(settings.log_level.upper())

    log_config = uvicorn.config.LOGGING_CONFIG
    log_config["formatters"]["default"]["fmt"] = (
        "%(asctime)s %(name)-12s %(levelname)-8s %(message)s"
    )

    uvicorn.run(
        "nozule_admin.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=log_config,
    )
