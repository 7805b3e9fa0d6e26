"""FastAPI-based ingestion server for OneBot 11 (Napcat) HTTP event posts."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

import uvicorn
from fastapi import BackgroundTasks, FastAPI, HTTPException, Request

from .config import EventServerConfig
from .logger import get_logger

logger = get_logger("event_server")

EventHandler = Callable[[dict[str, Any]], Awaitable[None]]


class EventServer:
    """Receive Napcat event posts and forward them to the bot.

    Each accepted event is acknowledged immediately and handled in a
    background task, so a slow API call never blocks Napcat's HTTP post.
    """

    def __init__(
        self,
        config: EventServerConfig,
        handler: EventHandler,
        access_token: str | None = None,
    ) -> None:
        """Initialize event server.

        Args:
            config: Event server configuration
            handler: Coroutine function receiving each event payload
            access_token: Token Napcat must present, if any
        """
        self._config = config
        self._handler = handler
        self._access_token = access_token
        self._app = FastAPI()
        self._server: uvicorn.Server | None = None

        self._create_routes()

    @property
    def app(self) -> FastAPI:
        return self._app

    # ------------------------------------------------------------------
    # FastAPI setup
    # ------------------------------------------------------------------
    def _create_routes(self) -> None:
        @self._app.get("/healthz")
        async def health() -> dict[str, str]:  # pragma: no cover - trivial
            return {"status": "ok"}

        @self._app.post(self._config.path)
        async def receive_qq_event(
            request: Request, background_tasks: BackgroundTasks
        ) -> dict[str, str]:
            self._verify_access_token(request)

            try:
                payload = await request.json()
            except ValueError:
                raise HTTPException(status_code=400, detail="Invalid JSON")

            if not isinstance(payload, dict):
                raise HTTPException(status_code=400, detail="Event must be a JSON object")

            background_tasks.add_task(self._run_handler, payload)
            return {"status": "ok"}

    async def _run_handler(self, payload: dict[str, Any]) -> None:
        try:
            await self._handler(payload)
        except Exception as exc:
            logger.error("QQ event handler failure: %s", exc, exc_info=True)

    # ------------------------------------------------------------------
    # Security helpers
    # ------------------------------------------------------------------
    def _verify_access_token(self, request: Request) -> None:
        if not self._access_token:
            return

        auth_header = request.headers.get("Authorization")
        if not auth_header:
            logger.warning("QQ event received without Authorization header")
            raise HTTPException(status_code=401, detail="Missing Authorization header")

        # Both "Bearer <token>" and plain token formats
        token = auth_header
        if token.startswith("Bearer "):
            token = token[7:].strip()

        if token != self._access_token:
            logger.warning("QQ event received with invalid access token")
            raise HTTPException(status_code=403, detail="Invalid access token")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def serve(self) -> None:
        """Serve until ``stop()`` is called."""
        if not self._config.enabled:
            logger.info("Event server disabled")
            return

        config = uvicorn.Config(
            self._app,
            host=self._config.host,
            port=self._config.port,
            log_level="info",
        )
        self._server = uvicorn.Server(config)
        logger.info(
            "QQ event server listening on http://%s:%s%s",
            self._config.host,
            self._config.port,
            self._config.path,
        )
        try:
            await self._server.serve()
        finally:
            self._server = None
            logger.info("QQ event server stopped")

    def stop(self) -> None:
        if self._server:
            self._server.should_exit = True

    @property
    def is_running(self) -> bool:
        return self._server is not None
