"""
Lunchbell FastAPI application.

Thin transport over the service layer:

  POST   /users          Twilio SMS webhook: register / unsubscribe, answered in TwiML
  GET    /users          registry snapshot (subscribers and displays)
  POST   /lunch          start the lunch dispatch, returns before it finishes
  POST   /display        register a display room, or rename one (newRoom, oldRoom)
  DELETE /display/{room} remove a display room
  GET    /health

Usage:
    python -m lunchbell.api
    uvicorn lunchbell.api:app --host 0.0.0.0 --port 5000
"""

import logging
from contextlib import asynccontextmanager
from xml.sax.saxutils import escape

import uvicorn
from fastapi import FastAPI, Form, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from lunchbell.config import configure_logging
from lunchbell.domain.errors import InvalidDisplayError
from lunchbell.domain.models import CommandReply, RegistryState
from lunchbell.services.factory import ServiceFactory

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build services up front, run the menu schedule, drain dispatches on the way out."""
    ServiceFactory.get_registry()
    ServiceFactory.get_displays()
    backend = await ServiceFactory.get_backend()
    refresher = ServiceFactory.get_menu_refresher()
    if refresher is not None:
        refresher.start()
    else:
        logger.info("Cater2Me not configured, lunch goes out without a menu")
    try:
        yield
    finally:
        if refresher is not None:
            refresher.shutdown()
        await backend.drain()


def render_twiml(reply: CommandReply) -> str:
    messages = "".join(f"<Message>{escape(message)}</Message>" for message in reply.messages)
    return f'<?xml version="1.0" encoding="UTF-8"?><Response>{messages}</Response>'


def create_app() -> FastAPI:
    app = FastAPI(title="Lunchbell", description="Tells everyone lunch has arrived", lifespan=lifespan)

    # The Chrome extension and display pages call in from other origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["X-Requested-With"],
    )

    @app.post("/users")
    async def register_user(From: str = Form(""), Body: str = Form("")) -> Response:
        logger.info("POST /users From:%s Body: %s", From, Body)
        reply = await ServiceFactory.get_signup_service().handle(From, Body)
        return Response(
            content=render_twiml(reply),
            media_type="application/xml",
            headers={"X-Lunchbell-Outcome": reply.outcome.value},
        )

    @app.get("/users")
    async def list_users() -> RegistryState:
        logger.info("GET /users")
        return RegistryState(
            users=ServiceFactory.get_registry().snapshot(),
            displays=ServiceFactory.get_displays().snapshot(),
        )

    @app.post("/lunch")
    async def lunch() -> JSONResponse:
        logger.info("POST /lunch")
        service = await ServiceFactory.get_lunch_service()
        dispatch_id = await service.trigger()
        return JSONResponse({"status": "Notifying", "dispatch_id": dispatch_id})

    @app.post("/display")
    async def register_display(request: Request) -> PlainTextResponse:
        fields = await _read_fields(request)
        logger.info("POST /display %s", fields)
        try:
            await ServiceFactory.get_displays().rename(fields.get("oldRoom"), fields.get("newRoom"))
        except InvalidDisplayError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return PlainTextResponse("done")

    @app.delete("/display/{room}")
    async def remove_display(room: str) -> PlainTextResponse:
        logger.info("DELETE /display/%s", room)
        if not await ServiceFactory.get_displays().remove(room):
            raise HTTPException(status_code=404, detail=f"No display {room}")
        return PlainTextResponse("done")

    @app.get("/health")
    async def health() -> dict:
        return {
            "status": "ok",
            "subscribers": len(ServiceFactory.get_registry()),
            "displays": len(ServiceFactory.get_displays()),
        }

    return app


async def _read_fields(request: Request) -> dict[str, str]:
    """Accept both JSON and form-encoded bodies, as the display pages send either."""
    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            return {}
        return {key: str(value) for key, value in body.items() if value is not None} if isinstance(body, dict) else {}
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


app = create_app()


def main() -> None:
    settings = ServiceFactory.get_settings()
    configure_logging(settings.log_level)
    logger.warning("Starting up...")
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
