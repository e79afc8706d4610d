import logging
from typing import Protocol

from pydantic import BaseModel
from fastapi import WebSocketDisconnect

from pulumi_plugin.modules.api.models import (
    ApplyOutputMessage,
    BuildOutputMessage,
    ErrorMessage,
    ImageDigest,
    ImageResult,
    Outputs,
    PulumiStateString,
    StateResult,
    VerboseOutputMessage,
)

logger = logging.getLogger(__name__)


class TextTransport(Protocol):
    """Anything that can deliver one text frame to the caller."""

    async def send_text(self, data: str) -> None:
        ...


class EventEmitter:
    """
    Handles emitting events (logs, errors and results) over one connection.

    Modules never see the WebSocket itself; they get an emitter bound to
    the connection the command arrived on. Every call writes exactly one
    frame, so frames arrive in call order.

    Writes are fire-and-forget: once the transport fails the emitter is
    marked closed and later calls do nothing, so a command already running
    finishes even after its caller has gone away.
    """

    def __init__(self, transport: TextTransport):
        """
        Initialize emitter.

        Args:
            transport: Connection to write frames to (a Starlette WebSocket)
        """
        self.transport = transport
        self.closed = False

    async def _send(self, message: BaseModel) -> None:
        if self.closed:
            return

        payload = message.model_dump_json(by_alias=True)
        logger.debug(f"Emitting frame: {payload}")
        try:
            await self.transport.send_text(payload)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            logger.debug(f"Caller went away, dropping further frames: {e!r}")
            self.closed = True

    async def log(self, message: str) -> None:
        """
        Send verbose output to the caller.

        Displayed by the orchestrator when running with its verbose flag.
        """
        await self._send(VerboseOutputMessage(verbose_output=message))

    async def error(self, message: str) -> None:
        """
        Send an error to the caller.

        The caller treats the connection as finished after this; the
        socket itself is left open.
        """
        await self._send(ErrorMessage(error=message))

    async def build_output(self, image_digest: ImageDigest) -> None:
        """
        Send the build result.

        Args:
            image_digest: Digest of the built image, used later by apply
        """
        await self._send(BuildOutputMessage(result=ImageResult(image=image_digest)))

    async def apply_output(self, state: PulumiStateString, outputs: Outputs) -> None:
        """
        Send the apply result.

        Args:
            state: Exported stack state for the caller to store
            outputs: Stack outputs produced by this apply
        """
        await self._send(
            ApplyOutputMessage(result=StateResult(state=state, outputs=outputs or {}))
        )
