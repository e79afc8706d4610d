"""
Shared pytest fixtures for Pulumi plugin tests.

This module provides common fixtures including:
- DockerMocker: Mock docker subprocess calls with canned responses
- RecordingTransport: In-memory stand-in for a WebSocket connection
"""

import json
import os
import re
import subprocess
import sys
from dataclasses import dataclass
from typing import List, Optional, Pattern, Union
from unittest.mock import MagicMock, patch

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pulumi_plugin.modules.events import EventEmitter


# =============================================================================
# Docker Mocking Infrastructure
# =============================================================================

@dataclass
class ToolResponse:
    """Represents a mocked docker command response."""
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

    def to_completed_process(self) -> MagicMock:
        """Convert to a subprocess.CompletedProcess-like mock."""
        result = MagicMock()
        result.stdout = self.stdout
        result.stderr = self.stderr
        result.returncode = self.returncode
        return result


@dataclass
class ToolCall:
    """Record of a docker call made during testing."""
    command: List[str]
    full_command_str: str
    cwd: Optional[str] = None
    matched_pattern: Optional[str] = None
    response: Optional[ToolResponse] = None


class DockerMocker:
    """
    Mock docker subprocess calls with pattern-matched responses.

    Pulumi runs inside the container through ``docker exec``, so every
    external call the module makes goes through here.

    Usage:
        def test_build(docker_mocker):
            docker_mocker.register("build ", ToolResponse(stdout="sha256:abc\\n"))

            result = await module.build(emitter, BuildRequest(directory="/src"))

            assert docker_mocker.was_called_with("build /src --quiet")
    """

    def __init__(self):
        self._responses = []
        self._call_history: List[ToolCall] = []
        self._default_response = ToolResponse(
            stderr="Error: mock not configured for this command",
            returncode=1
        )

    def register(
        self,
        pattern: Union[str, Pattern],
        response: ToolResponse,
        priority: int = 0
    ) -> "DockerMocker":
        """
        Register a response for commands matching the pattern.

        Args:
            pattern: String (substring match) or regex pattern
            response: ToolResponse to return when matched
            priority: Higher priority patterns are checked first

        Returns:
            self for chaining
        """
        self._responses.append((pattern, response, priority))
        self._responses.sort(key=lambda x: x[2], reverse=True)
        return self

    def register_apply(
        self,
        state: str = '{"version": 3}\n',
        outputs: str = "{}",
        container_id: str = "c0ffee",
    ) -> "DockerMocker":
        """Register a successful response for every step of an apply."""
        self.register("run -d", ToolResponse(stdout=f"{container_id}\n"))
        self.register("rm -f", ToolResponse(stdout=f"{container_id}\n"))
        self.register(re.compile(r"^cp "), ToolResponse())
        self.register("pulumi login", ToolResponse(stdout="Logged in to local\n"))
        self.register("pulumi stack init", ToolResponse(stdout="Created stack\n"))
        self.register("pulumi stack import", ToolResponse(stdout="Import complete.\n"))
        self.register("pulumi refresh", ToolResponse(stdout="Refreshing...\n"))
        self.register("pulumi config set-all", ToolResponse())
        self.register("pulumi up", ToolResponse(stdout="Updating...\n"))
        self.register("pulumi destroy", ToolResponse(stdout="Destroying...\n"))
        self.register("pulumi stack export", ToolResponse(stdout=state))
        self.register("pulumi stack output", ToolResponse(stdout=outputs))
        return self

    def set_default_response(self, response: ToolResponse) -> "DockerMocker":
        """Set the default response for unmatched commands."""
        self._default_response = response
        return self

    def mock_run(
        self,
        cmd: List[str],
        capture_output: bool = True,
        text: bool = True,
        timeout: Optional[int] = None,
        cwd: Optional[str] = None,
        **kwargs
    ) -> MagicMock:
        """
        Mock implementation of subprocess.run for docker commands.

        This method is used as a side_effect for patching subprocess.run.
        """
        cmd_str = " ".join(cmd)

        if cmd[0] != "docker":
            raise FileNotFoundError(2, "No such file or directory", cmd[0])

        docker_args = " ".join(cmd[1:])
        matched_pattern = None
        response = self._default_response

        for pattern, resp, _ in self._responses:
            if isinstance(pattern, str):
                if pattern in docker_args:
                    matched_pattern = pattern
                    response = resp
                    break
            else:
                if pattern.search(docker_args):
                    matched_pattern = pattern.pattern
                    response = resp
                    break

        self._call_history.append(ToolCall(
            command=cmd,
            full_command_str=cmd_str,
            cwd=cwd,
            matched_pattern=matched_pattern,
            response=response
        ))

        return response.to_completed_process()

    @property
    def calls(self) -> List[ToolCall]:
        """Get all docker calls made during the test."""
        return self._call_history

    @property
    def call_count(self) -> int:
        return len(self._call_history)

    def was_called_with(self, pattern: str) -> bool:
        """Check if any call contained the given pattern."""
        return any(pattern in call.full_command_str for call in self._call_history)

    def get_calls_matching(self, pattern: str) -> List[ToolCall]:
        """Get all calls containing the given pattern."""
        return [c for c in self._call_history if pattern in c.full_command_str]

    def pulumi_steps(self) -> List[str]:
        """Pulumi subcommands in the order they ran, e.g. ['login', 'stack init', ...]."""
        steps = []
        for call in self._call_history:
            if "pulumi" in call.command:
                args = call.command[call.command.index("pulumi") + 1:]
                steps.append(" ".join(a for a in args[:2] if not a.startswith("-")))
        return steps


@pytest.fixture
def docker_mocker():
    """
    Fixture that provides a DockerMocker with subprocess.run patched.

    Usage:
        def test_something(docker_mocker):
            docker_mocker.register("build ", ToolResponse(stdout="..."))
            # Your test code that calls docker
            assert docker_mocker.was_called_with("build ")
    """
    mocker = DockerMocker()
    with patch("subprocess.run", side_effect=mocker.mock_run):
        yield mocker


# =============================================================================
# Transport Infrastructure
# =============================================================================

class RecordingTransport:
    """Collects frames an EventEmitter would send over the WebSocket."""

    def __init__(self):
        self.sent: List[str] = []

    async def send_text(self, data: str) -> None:
        self.sent.append(data)

    @property
    def frames(self) -> List[dict]:
        return [json.loads(frame) for frame in self.sent]


class DroppingTransport(RecordingTransport):
    """Delivers the first `delivered` frames, then fails like a closed socket."""

    def __init__(self, delivered: int = 1, exc: Exception = None):
        super().__init__()
        self.delivered = delivered
        self.exc = exc or OSError("client disconnected")
        self.attempts = 0

    async def send_text(self, data: str) -> None:
        self.attempts += 1
        if self.attempts > self.delivered:
            raise self.exc
        self.sent.append(data)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def emitter(transport):
    return EventEmitter(transport)


# =============================================================================
# Test Markers Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "docker_mock: Tests using mocked docker subprocess calls"
    )
    config.addinivalue_line(
        "markers", "integration: Tests driving the server over a WebSocket"
    )
