from abc import ABC, abstractmethod

from pulumi_plugin.modules.api.models import ApplyRequest, ApplyResult, BuildRequest, BuildResult
from pulumi_plugin.modules.events import EventEmitter


class BaseModule(ABC):
    """
    Contract every execution backend implements.

    Expected failures (tool missing, nonzero exit, bad output) are
    returned in the result's ``error`` field, never raised. The emitter
    is for progress logs only; the server sends the final result.
    """

    name: str = "base"

    @abstractmethod
    async def build(self, emitter: EventEmitter, inputs: BuildRequest) -> BuildResult:
        """Build a deployable image from a source directory."""

    @abstractmethod
    async def apply(self, emitter: EventEmitter, inputs: ApplyRequest) -> ApplyResult:
        """Converge (or destroy) the stack and return its new state and outputs."""
