"""
Pulumi plugin modules.

Each package below exposes its public interface from ``__init__`` and
keeps the implementation in sibling files. The server depends only on
``stack.BaseModule`` and ``events.EventEmitter``; swapping the backend
means providing another ``BaseModule``.
"""
