import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from pulumi_plugin import __version__
from pulumi_plugin.config.provider import DEFAULT_PORT, ServerConfig
from pulumi_plugin.logging_config import get_logging_config
from pulumi_plugin.modules.api.models import (
    ApplyRequest,
    BuildRequest,
    CommandMessage,
    CommandName,
)
from pulumi_plugin.modules.events import EventEmitter
from pulumi_plugin.modules.stack import BaseModule

logger = logging.getLogger(__name__)


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten a pydantic error into one line for the caller."""
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'request'}: {err['msg']}"
        for err in exc.errors()
    )


def decode_state(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Decode the JSON-encoded state string of an apply request.

    Raises:
        ValueError: If state is a non-empty string that is not JSON
    """
    payload = dict(payload)
    state = payload.get("state")
    if isinstance(state, str):
        if not state:
            payload["state"] = None
        else:
            try:
                payload["state"] = json.loads(state)
            except json.JSONDecodeError as e:
                raise ValueError(f"state: not valid JSON ({e.msg})") from None
    return payload


class PluginServer:
    """
    WebSocket front end of a module.

    Every inbound frame carries one command. The server decodes it,
    hands it to the module together with an emitter bound to the
    connection, and sends the module's result (or error) back.
    """

    def __init__(self, module: BaseModule, config: Optional[ServerConfig] = None):
        """
        Initialize plugin server.

        Args:
            module: The one module that serves every command
            config: Listener settings (defaults when omitted)
        """
        self.module = module
        self.config = config or ServerConfig(
            host="0.0.0.0", port=DEFAULT_PORT, ws_path="/ws", log_level="INFO", debug=False
        )

    async def handle_message(self, emitter: EventEmitter, raw: str) -> None:
        """
        Decode and dispatch one frame.

        Protocol errors are reported on the emitter; nothing is raised,
        so the connection stays usable for the next frame.
        """
        message = None
        try:
            data = json.loads(raw)
            if isinstance(data, dict):
                message = CommandMessage.model_validate(data)
        except (json.JSONDecodeError, ValidationError):
            message = None

        if message is None or not message.command:
            logger.warning("Received frame without a command")
            await emitter.error(f"Invalid message: {raw}")
            return

        logger.info(f"Received command: {message.command}")

        if message.command == CommandName.BUILD:
            await self._build(emitter, message.request or {})
        elif message.command == CommandName.APPLY:
            await self._apply(emitter, message.request or {})
        else:
            await emitter.error(f"Invalid command: {message.command}")

    async def _build(self, emitter: EventEmitter, payload: Dict[str, Any]) -> None:
        try:
            request = BuildRequest.model_validate(payload)
        except ValidationError as e:
            await emitter.error(f"Invalid request: {describe_validation_error(e)}")
            return

        try:
            result = await self.module.build(emitter, request)
        except Exception as e:
            logger.exception(f"Module {self.module.name} failed during build")
            await emitter.error(f"Internal error: {e}")
            return

        if result.error:
            logger.error(f"Build failed: {result.error}")
            await emitter.error(result.error)
        elif not result.digest:
            await emitter.error("Build did not produce an image digest")
        else:
            logger.info(f"Build succeeded: {result.digest}")
            await emitter.build_output(result.digest)

    async def _apply(self, emitter: EventEmitter, payload: Dict[str, Any]) -> None:
        try:
            request = ApplyRequest.model_validate(decode_state(payload))
        except ValidationError as e:
            await emitter.error(f"Invalid request: {describe_validation_error(e)}")
            return
        except ValueError as e:
            await emitter.error(f"Invalid request: {e}")
            return

        try:
            result = await self.module.apply(emitter, request)
        except Exception as e:
            logger.exception(f"Module {self.module.name} failed during apply")
            await emitter.error(f"Internal error: {e}")
            return

        if result.error:
            logger.error(f"Apply failed for stack {request.datacenter_id}")
            await emitter.error(result.error)
        else:
            logger.info(f"Apply succeeded for stack {request.datacenter_id}")
            await emitter.apply_output(result.state or "", result.outputs or {})

    async def serve_connection(self, websocket: WebSocket) -> None:
        """Read frames until the client goes away, one command at a time."""
        await websocket.accept()
        client = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else "unknown"
        logger.info(f"Connection opened from {client}")

        emitter = EventEmitter(websocket)
        try:
            while not emitter.closed:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    break

                raw = frame.get("text")
                if raw is None:
                    raw = (frame.get("bytes") or b"").decode("utf-8", errors="replace")

                await self.handle_message(emitter, raw)
        except WebSocketDisconnect:
            pass

        logger.info(f"Connection closed from {client}")

    def create_app(self) -> FastAPI:
        """Build the FastAPI application serving this plugin."""

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            logger.info(f"Started server on port {self.config.port} (module: {self.module.name})")
            yield
            logger.info("Plugin server shutdown complete")

        app = FastAPI(
            title="Pulumi Plugin",
            description="Builds images and applies Pulumi stacks on request",
            version=__version__,
            debug=self.config.debug,
            lifespan=lifespan,
        )

        @app.websocket(self.config.ws_path)
        async def websocket_endpoint(websocket: WebSocket):
            await self.serve_connection(websocket)

        @app.get("/health")
        async def health_check():
            """Liveness check for the orchestrator."""
            return {"status": "healthy", "module": self.module.name, "version": __version__}

        return app

    def run(self) -> None:
        """Serve until the process is stopped."""
        uvicorn.run(
            self.create_app(),
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower(),
            log_config=get_logging_config(self.config.log_level),
        )
