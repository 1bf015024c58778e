from __future__ import annotations

import logging
from typing import Any, Callable, Optional
from urllib.parse import urlsplit

import websockets
from websockets.asyncio.server import Server, ServerConnection, broadcast, serve
from websockets.datastructures import Headers
from websockets.http11 import Request, Response

from contracts.ui_protocol import (
    EVENT_ERROR,
    EVENT_HELLO,
    EVENT_SESSION,
    EVENT_STATE_UPDATE,
    STATE_IDLE,
)

from .config import HEALTHZ_PATH, UIServerConfig
from .events import StickyEventStore, make_event, parse_command

CommandHandler = Callable[[str, dict[str, Any]], None]


class UIServer:
    """Websocket channel between the focus session and a host shell.

    Runs on the same event loop as the session, so ``publish`` is a plain
    synchronous call. Host shells receive session events and may send back
    ``acknowledge`` or ``abort`` commands, which go to the command handler.
    """

    def __init__(
        self,
        config: UIServerConfig,
        logger: Optional[logging.Logger] = None,
        command_handler: Optional[CommandHandler] = None,
    ):
        self._config = config
        self._logger = logger or logging.getLogger("ui_server")
        self._command_handler = command_handler
        self._server: Optional[Server] = None
        self._connected_clients: set[ServerConnection] = set()
        self._sticky = StickyEventStore()

    @property
    def host(self) -> str:
        return self._config.host

    @property
    def port(self) -> int:
        return self._config.port

    @property
    def websocket_path(self) -> str:
        return self._config.websocket_path

    @property
    def is_running(self) -> bool:
        return self._server is not None

    def set_command_handler(self, handler: Optional[CommandHandler]) -> None:
        self._command_handler = handler

    async def __aenter__(self) -> "UIServer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    async def start(self) -> None:
        if self._server is not None:
            self._logger.warning("UI server is already running")
            return

        try:
            self._server = await serve(
                self._handler,
                host=self._config.host,
                port=self._config.port,
                process_request=self._process_request,
                logger=self._logger,
            )
        except OSError as error:
            raise RuntimeError(f"UI server startup failed: {error}") from error

        self._logger.info(
            "Host shell channel at ws://%s:%d%s",
            self._config.host,
            self._config.port,
            self._config.websocket_path,
        )

    async def stop(self) -> None:
        if self._server is None:
            return
        server, self._server = self._server, None
        server.close()
        await server.wait_closed()
        self._connected_clients.clear()
        self._logger.info("Host shell channel closed")

    def publish_state(self, state: str, *, message: Optional[str] = None, **payload) -> None:
        event_payload = {"state": state, **payload}
        if message:
            event_payload["message"] = message
        self.publish(EVENT_STATE_UPDATE, **event_payload)

    def publish(self, event_type: str, **payload) -> None:
        message = make_event(event_type, **payload)
        self._sticky.remember(event_type, message)
        if event_type == EVENT_SESSION and payload.get("state") == STATE_IDLE:
            # A fresh idle session supersedes any error from the previous one.
            self._sticky.forget(EVENT_ERROR)

        if self._server is None or not self._connected_clients:
            return
        broadcast(self._connected_clients, message)

    async def _handler(self, websocket: ServerConnection) -> None:
        request_path = (
            urlsplit(websocket.request.path).path
            if websocket.request is not None
            else ""
        )
        if request_path != self._config.websocket_path:
            await websocket.close(code=1008, reason="Invalid websocket path")
            return

        self._connected_clients.add(websocket)
        self._logger.info("Host shell connected: %s", websocket.remote_address)
        try:
            await websocket.send(
                make_event(EVENT_HELLO, state=STATE_IDLE, message="Session channel connected")
            )
            for message in self._sticky.snapshot():
                await websocket.send(message)
            async for raw in websocket:
                await self._handle_message(websocket, raw)
        except websockets.exceptions.ConnectionClosed:
            self._logger.info("Host shell disconnected: %s", websocket.remote_address)
        finally:
            self._connected_clients.discard(websocket)

    async def _handle_message(self, websocket: ServerConnection, raw: str | bytes) -> None:
        try:
            command, payload = parse_command(raw)
        except ValueError as error:
            self._logger.warning("Ignoring host shell message: %s", error)
            await websocket.send(make_event(EVENT_ERROR, message=f"Invalid command: {error}"))
            return

        self._logger.debug("Host shell command: %s %s", command, payload)
        if self._command_handler is None:
            return
        self._command_handler(command, payload)

    async def _process_request(
        self,
        connection: ServerConnection,
        request: Request,
    ) -> Response | None:
        del connection  # Unused in plain HTTP routing.
        path = urlsplit(request.path).path

        if path == self._config.websocket_path:
            return None

        if path == HEALTHZ_PATH:
            return self._response(200, "OK", b"ok\n")

        return self._response(404, "Not Found", b"not found\n")

    @staticmethod
    def _response(status_code: int, reason_phrase: str, body: bytes) -> Response:
        headers = Headers()
        headers["Content-Type"] = "text/plain; charset=utf-8"
        headers["Content-Length"] = str(len(body))
        headers["Cache-Control"] = "no-store"
        return Response(status_code, reason_phrase, headers, body)
