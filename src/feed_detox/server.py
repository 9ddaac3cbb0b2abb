"""
HTTP and WebSocket entrypoint.

POST /detox/start validates that the required fields are present,
acknowledges immediately and spawns the run in the background. Progress
is delivered only through the /ws push channel.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Optional, Union

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .config import DetoxConfig
from .events import EventReporter, FanoutReporter
from .orchestrator import SessionOrchestrator, create_orchestrator
from .push.hub import ConnectionHub
from .tui import ConsoleReporter

logger = logging.getLogger(__name__)


MISSING_PARAMETERS = "Missing required parameters."


class StartRequest(BaseModel):
    """Body of POST /detox/start. Presence is checked by the endpoint."""

    topic: Optional[str] = None
    # Only an absent duration falls back to the default; an explicit 0 runs a
    # zero-length session
    duration: Optional[float] = Field(default=None, allow_inf_nan=False)
    userCookies: Optional[Union[str, list[dict[str, Any]]]] = None
    socketId: Optional[str] = None

    def raw_cookies(self) -> Optional[str]:
        """Cookies as the serialized blob the orchestrator expects."""
        if isinstance(self.userCookies, list):
            return json.dumps(self.userCookies)
        return self.userCookies

    @property
    def has_required_fields(self) -> bool:
        return bool(self.topic and self.userCookies and self.socketId)


class StartResponse(BaseModel):
    success: bool
    message: str


def _reject(message: str = MISSING_PARAMETERS) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=StartResponse(success=False, message=message).model_dump(),
    )


def create_app(
    config: Optional[DetoxConfig] = None,
    orchestrator: Optional[SessionOrchestrator] = None,
    hub: Optional[ConnectionHub] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Service configuration (uses env if None)
        orchestrator: Run orchestrator (built from config if None)
        hub: WebSocket subscriber registry (new one if None)

    Returns:
        Configured FastAPI app
    """
    config = config or DetoxConfig.from_env()
    hub = hub or ConnectionHub()

    if orchestrator is None:
        reporter: EventReporter = hub
        if config.echo_events:
            reporter = FanoutReporter(hub, ConsoleReporter())
        orchestrator = create_orchestrator(reporter, config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await orchestrator.resolver.close()

    app = FastAPI(title="Feed Detox", lifespan=lifespan)
    app.state.hub = hub
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request, exc: RequestValidationError) -> JSONResponse:
        logger.debug(f"Rejected start request: {exc.errors()}")
        return _reject()

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "subscribers": len(hub),
            "active_runs": orchestrator.active_runs,
        }

    @app.post("/detox/start", response_model=StartResponse)
    async def start_detox(request: StartRequest):
        if not request.has_required_fields:
            return _reject()

        logger.info(
            f"API Request received (Socket ID: {request.socketId}). "
            f'Starting detox for topic "{request.topic}".'
        )
        orchestrator.start(
            request.topic,
            request.duration,
            request.raw_cookies(),
            request.socketId,
        )
        return StartResponse(success=True, message="Process initiated.")

    @app.websocket("/ws")
    async def push_channel(websocket: WebSocket) -> None:
        subscriber_id = await hub.connect(websocket)
        try:
            # Clients only listen; inbound frames are ignored
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.debug(f"WebSocket closed by client {subscriber_id}")
        finally:
            hub.disconnect(subscriber_id)

    return app
