"""
Pulumi Plugin - Infrastructure Module Host

A long-running process that builds container images and applies (or
destroys) Pulumi stacks on request of an external orchestrator.

Architecture:
- Each module is self-contained with clear interfaces
- The server only knows the module contract, never the backend
- All communication with the caller goes through the event channel

Modules:
- api: Wire models for commands, requests and results
- events: Per-connection event channel (logs, errors, results)
- runner: External process execution
- stack: Module contract and the Pulumi backend
- server: WebSocket command dispatcher
"""

__version__ = "1.0.0"
