"""
Pulumi backend.

Builds images with ``docker build`` and runs Pulumi inside the built
image. An apply starts one long-lived container and drives each Pulumi
step through ``docker exec`` so every step is checked on its own and the
sequence stops at the first failure.
"""

import json
import logging
import os
import re
import tempfile
import uuid
from typing import Any, List, Optional

from pulumi_plugin.config.provider import ModuleConfig
from pulumi_plugin.modules.api.models import ApplyRequest, ApplyResult, BuildRequest, BuildResult
from pulumi_plugin.modules.events import EventEmitter
from pulumi_plugin.modules.runner import ProcessResult, ProcessRunner

from .base import BaseModule

logger = logging.getLogger(__name__)

# Empty passphrase skips Pulumi's interactive prompt for local secrets
PASSPHRASE_ENV = "PULUMI_CONFIG_PASSPHRASE"
CONTAINER_STATE_DIR = "/tmp"
DIGEST_PREFIX = "sha256:"


def default_module_config() -> ModuleConfig:
    return ModuleConfig(
        docker_binary="docker",
        pulumi_binary="pulumi",
        state_file_name="pulumi-state.json",
        command_timeout=None,
    )


def make_delimiter() -> str:
    """Delimiter line with a per-invocation token so tool output cannot forge it."""
    return f"****PULUMI_DELIMITER:{uuid.uuid4().hex}****"


def split_output(stdout: str, delimiter: str) -> ApplyResult:
    """
    Split captured output into preamble, exported state and outputs JSON.

    The line break that follows each delimiter belongs to the delimiter
    line and is not part of the next segment.

    Returns:
        ApplyResult with state and outputs, or with error set when the
        stream has no delimiter (error is the whole stream), the wrong
        number of delimiters, or outputs that are not a JSON object
    """
    parts = re.split(re.escape(delimiter) + r"\r?\n?", stdout)

    if len(parts) == 1:
        return ApplyResult(error=stdout)
    if len(parts) != 3:
        return ApplyResult(
            error=f"Expected 2 output delimiters in stack output, found {len(parts) - 1}"
        )

    state, outputs_text = parts[1], parts[2]
    try:
        outputs = json.loads(outputs_text) if outputs_text.strip() else {}
    except json.JSONDecodeError as e:
        return ApplyResult(error=f"Failed to parse stack outputs: {e}")

    if not isinstance(outputs, dict):
        return ApplyResult(error=f"Stack outputs must be a JSON object, got: {outputs_text.strip()}")

    return ApplyResult(state=state, outputs=outputs)


def config_set_args(inputs: List[tuple]) -> List[str]:
    """Arguments for ``pulumi config set-all``, one --plaintext per pair, in order."""
    args: List[str] = []
    for key, value in inputs:
        args.extend(["--plaintext", f"{key}={value}"])
    return args


def config_path_args(inputs: List[tuple]) -> List[str]:
    """Structured (--path) variants for namespaced keys, "a:b" -> "a.b"."""
    args: List[str] = []
    for key, value in inputs:
        if ":" in key:
            args.extend(["--plaintext", f"{key.replace(':', '.', 1)}={value}"])
    if args:
        args.insert(0, "--path")
    return args


def failure_message(step: str, result: ProcessResult) -> str:
    """Pick the most useful text to report for a failed step."""
    if result.error:
        return result.error
    if result.stderr:
        return result.stderr
    if result.stdout:
        return result.stdout
    return f"{step} exited with status {result.returncode}"


class StackSession:
    """
    Pulumi steps for one apply, run inside one container.

    Collects the stdout of every step into a single capture stream.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        config: ModuleConfig,
        container_id: str,
        stack: str,
        emitter: EventEmitter,
    ):
        self.runner = runner
        self.config = config
        self.container_id = container_id
        self.stack = stack
        self.emitter = emitter
        self._captured: List[str] = []

    @property
    def stdout(self) -> str:
        return "".join(self._captured)

    def mark(self, delimiter: str) -> None:
        self._captured.append(f"{delimiter}\n")

    async def pulumi(self, *args: str) -> Optional[str]:
        """
        Run one pulumi command in the container.

        Returns:
            Error message if the step failed, None otherwise
        """
        step = "pulumi " + " ".join(arg for arg in args[:2] if not arg.startswith("-"))
        await self.emitter.log(f"Running {step} on stack {self.stack}")

        result = await self.runner.run(
            [
                self.config.docker_binary,
                "exec",
                "-e",
                f"{PASSPHRASE_ENV}=",
                self.container_id,
                self.config.pulumi_binary,
                *args,
            ]
        )

        if not result.launched or result.returncode != 0 or result.stderr:
            logger.error(f"{step} failed for stack {self.stack}")
            return failure_message(step, result)

        self._captured.append(result.stdout)
        return None

    async def import_state(self, state: Any) -> Optional[str]:
        """Write state to a file, copy it into the container and import it."""
        container_path = f"{CONTAINER_STATE_DIR}/{self.config.state_file_name}"

        with tempfile.TemporaryDirectory(prefix="pulumi-plugin-") as tmp_dir:
            host_path = os.path.join(tmp_dir, self.config.state_file_name)
            with open(host_path, "w") as f:
                f.write(state if isinstance(state, str) else json.dumps(state))

            copied = await self.runner.run(
                [self.config.docker_binary, "cp", host_path, f"{self.container_id}:{container_path}"]
            )
            if not copied.succeeded:
                return failure_message("docker cp", copied)

        return await self.pulumi("stack", "import", "--stack", self.stack, "--file", container_path)


class PulumiModule(BaseModule):
    """Module that builds with docker and applies with pulumi inside the image."""

    name = "pulumi"

    def __init__(self, config: Optional[ModuleConfig] = None, runner: Optional[ProcessRunner] = None):
        """
        Initialize Pulumi module.

        Args:
            config: Tool binaries and file names (defaults when omitted)
            runner: Process runner (built from config.command_timeout when omitted)
        """
        self.config = config or default_module_config()
        self.runner = runner or ProcessRunner(timeout=self.config.command_timeout)

    async def build(self, emitter: EventEmitter, inputs: BuildRequest) -> BuildResult:
        """
        Build the image that the Pulumi program runs in.

        Digest and error are derived independently: a build that writes
        to stderr can still report the digest it printed.
        """
        args = [self.config.docker_binary, "build", inputs.directory, "--quiet"]
        logger.info(f"Building image from {inputs.directory}")
        await emitter.log(f"Building image with args: {' '.join(args[1:])}")

        result = await self.runner.run(args, cwd=inputs.directory)

        error = None
        if result.error:
            error = result.error
        elif result.stderr:
            error = result.stderr
        elif result.returncode != 0:
            error = f"docker build exited with status {result.returncode}"

        digest = None
        if result.launched:
            digest = result.stdout.replace(DIGEST_PREFIX, "", 1).strip() or None

        return BuildResult(digest=digest, error=error)

    async def apply(self, emitter: EventEmitter, inputs: ApplyRequest) -> ApplyResult:
        """
        Run pulumi up (or destroy) for the requested stack.

        Steps: login, stack init, optional state import, refresh, config,
        up/destroy, then export and outputs behind delimiter lines.
        """
        action = "destroy" if inputs.destroy else "up"
        logger.info(f"Applying stack {inputs.datacenter_id} ({action}) with image {inputs.image}")
        await emitter.log(f"Starting container from image {inputs.image}")

        started = await self.runner.run(
            [
                self.config.docker_binary,
                "run",
                "-d",
                "--entrypoint",
                "sleep",
                "-e",
                f"{PASSPHRASE_ENV}=",
                inputs.image,
                "infinity",
            ]
        )
        if not started.succeeded:
            return ApplyResult(error=failure_message("docker run", started))

        container_id = started.stdout.strip()
        try:
            return await self._apply_in_container(emitter, container_id, inputs)
        finally:
            removed = await self.runner.run([self.config.docker_binary, "rm", "-f", container_id])
            if not removed.succeeded:
                logger.warning(f"Failed to remove container {container_id}: {failure_message('docker rm', removed)}")

    async def _apply_in_container(
        self, emitter: EventEmitter, container_id: str, inputs: ApplyRequest
    ) -> ApplyResult:
        stack = inputs.datacenter_id
        session = StackSession(self.runner, self.config, container_id, stack, emitter)

        error = await session.pulumi("login", "--local")
        if error is None:
            error = await session.pulumi("stack", "init", "--stack", stack)
        if error is None and inputs.state is not None:
            error = await session.import_state(inputs.state)
        if error is None:
            error = await session.pulumi(
                "refresh", "--stack", stack, "--non-interactive", "--yes"
            )
        if error is None and inputs.inputs:
            error = await session.pulumi(
                "config", "set-all", "--stack", stack, *config_set_args(inputs.inputs)
            )
            path_args = config_path_args(inputs.inputs)
            if error is None and path_args:
                error = await session.pulumi("config", "set-all", "--stack", stack, *path_args)
        if error is None:
            action = "destroy" if inputs.destroy else "up"
            error = await session.pulumi(action, "--stack", stack, "--non-interactive", "--yes")
        if error is not None:
            return ApplyResult(error=error)

        delimiter = make_delimiter()
        session.mark(delimiter)
        error = await session.pulumi("stack", "export", "--stack", stack)
        if error is None:
            session.mark(delimiter)
            error = await session.pulumi("stack", "output", "--stack", stack, "--show-secrets", "-j")
        if error is not None:
            return ApplyResult(error=error)

        return split_output(session.stdout, delimiter)
