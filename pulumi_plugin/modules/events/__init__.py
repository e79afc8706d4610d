"""
Events Module - Black Box Interface

Purpose: Report progress and outcomes of a command back to the caller
Interface: log(), error(), build_output(), apply_output()
Hidden: Frame encoding, transport writes

Can be bound to any transport exposing an async send_text().
"""

from .emitter import EventEmitter, TextTransport

__all__ = ["EventEmitter", "TextTransport"]
