"""
Server Module - Black Box Interface

Purpose: Accept orchestrator connections and dispatch build/apply commands
Interface: PluginServer.create_app(), PluginServer.run(), PluginServer.handle_message()
Hidden: WebSocket handling, frame decoding, result-to-event mapping

Agnostic to the module it serves; any BaseModule can be injected.
"""

from .server import PluginServer, decode_state

__all__ = ["PluginServer", "decode_state"]
