"""
Stack Module - Black Box Interface

Purpose: Build images and apply infrastructure stacks
Interface: BaseModule.build(), BaseModule.apply(), PulumiModule
Hidden: docker and pulumi invocations, state import/export, output parsing

Can be replaced with any backend that implements BaseModule.
"""

from .base import BaseModule
from .pulumi import PulumiModule, split_output

__all__ = ["BaseModule", "PulumiModule", "split_output"]
