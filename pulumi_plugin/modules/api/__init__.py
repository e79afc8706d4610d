"""
API Module - Black Box Interface

Purpose: Wire format of the plugin protocol
Interface: Pydantic models for inbound commands, module results and outbound frames
Hidden: Field aliases, defaults and validation rules

Every other module speaks in these types; none of them touches raw JSON.
"""

from .models import (
    DEFAULT_DATACENTER_ID,
    ApplyOutputMessage,
    ApplyRequest,
    ApplyResult,
    BuildOutputMessage,
    BuildRequest,
    BuildResult,
    CommandMessage,
    CommandName,
    ErrorMessage,
    ImageDigest,
    ImageResult,
    Outputs,
    PulumiStateString,
    StateResult,
    VerboseOutputMessage,
)

__all__ = [
    "DEFAULT_DATACENTER_ID",
    "ApplyOutputMessage",
    "ApplyRequest",
    "ApplyResult",
    "BuildOutputMessage",
    "BuildRequest",
    "BuildResult",
    "CommandMessage",
    "CommandName",
    "ErrorMessage",
    "ImageDigest",
    "ImageResult",
    "Outputs",
    "PulumiStateString",
    "StateResult",
    "VerboseOutputMessage",
]
