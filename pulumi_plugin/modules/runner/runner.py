import asyncio
import logging
import subprocess
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    """Captured outcome of one external command."""

    args: List[str]
    stdout: str = ""
    stderr: str = ""
    returncode: Optional[int] = None
    error: Optional[str] = None  # set when the process could not be run at all

    @property
    def launched(self) -> bool:
        return self.error is None

    @property
    def succeeded(self) -> bool:
        return self.launched and self.returncode == 0


class ProcessRunner:
    def __init__(self, timeout: Optional[int] = None):
        """
        Initialize process runner.

        Args:
            timeout: Seconds before a command is killed (None = wait forever)
        """
        self.timeout = timeout

    def run_sync(self, args: List[str], cwd: Optional[str] = None) -> ProcessResult:
        """
        Execute a command and wait for it to exit.

        Args:
            args: Program and its arguments
            cwd: Working directory for the command

        Returns:
            ProcessResult with captured output, or with error set when the
            program could not be started or timed out
        """
        logger.debug(f"Running: {' '.join(args)}")

        try:
            process = subprocess.run(
                args,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                cwd=cwd,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            logger.error(f"Command timed out after {self.timeout}s: {args[0]}")
            return ProcessResult(args=args, error=f"Command timed out after {self.timeout}s")
        except OSError as e:
            logger.error(f"Failed to launch {args[0]}: {e}")
            return ProcessResult(args=args, error=str(e))

        if process.returncode != 0:
            logger.debug(f"{args[0]} exited with status {process.returncode}")

        return ProcessResult(
            args=args,
            stdout=process.stdout or "",
            stderr=process.stderr or "",
            returncode=process.returncode,
        )

    async def run(self, args: List[str], cwd: Optional[str] = None) -> ProcessResult:
        """Run a command in a worker thread so the event loop keeps serving."""
        return await asyncio.to_thread(self.run_sync, args, cwd)
