"""
Runner Module - Black Box Interface

Purpose: Execute external tools (docker, pulumi) and capture their output
Interface: ProcessRunner.run(), ProcessRunner.run_sync(), ProcessResult
Hidden: subprocess handling, timeouts, launch failures

Commands run to completion; output is returned once the process exits.
"""

from .runner import ProcessResult, ProcessRunner

__all__ = ["ProcessResult", "ProcessRunner"]
