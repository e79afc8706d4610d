"""
Pulumi plugin wire models.

These models define the structure of all data passed between the
orchestrator, the plugin server and the stack modules.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

DEFAULT_DATACENTER_ID = "default"

# Type Aliases for clarity

ImageDigest = str
PulumiStateString = str
Outputs = Dict[str, Any]


class CommandName:
    """Commands understood by the plugin server."""

    BUILD = "build"
    APPLY = "apply"


# Inbound Models (Orchestrator -> Plugin)


class CommandMessage(BaseModel):
    """Envelope of one inbound frame."""

    model_config = ConfigDict(extra="ignore")

    command: Optional[str] = Field(None, description="Command name (build or apply)")
    request: Optional[Dict[str, Any]] = Field(None, description="Command specific request body")


class BuildRequest(BaseModel):
    """Request to build an image from a source directory."""

    directory: str = Field(..., min_length=1, description="Directory holding the Dockerfile")


class ApplyRequest(BaseModel):
    """Request to apply or destroy a stack using a built image."""

    model_config = ConfigDict(populate_by_name=True)

    datacenter_id: str = Field(
        default=DEFAULT_DATACENTER_ID,
        validation_alias=AliasChoices("datacenterId", "datacenterid", "datacenter_id"),
        description="Stack identifier",
    )
    image: ImageDigest = Field(..., min_length=1, description="Digest of the image to run")
    inputs: List[Tuple[str, str]] = Field(
        default_factory=list, description="Ordered key/value pairs set as stack config"
    )
    state: Optional[Any] = Field(None, description="Previously exported stack state")
    destroy: bool = Field(default=False, description="Destroy the stack instead of updating it")

    @field_validator("datacenter_id", mode="before")
    @classmethod
    def default_datacenter_id(cls, v):
        """Empty or missing stack ids fall back to the default stack."""
        return v or DEFAULT_DATACENTER_ID

    @field_validator("inputs", mode="before")
    @classmethod
    def default_inputs(cls, v):
        return v or []

    @field_validator("destroy", mode="before")
    @classmethod
    def default_destroy(cls, v):
        return bool(v)


# Module Results


class BuildResult(BaseModel):
    """Outcome of a build. Digest and error are reported independently."""

    digest: Optional[ImageDigest] = None
    error: Optional[str] = None


class ApplyResult(BaseModel):
    """Outcome of an apply or destroy."""

    state: Optional[PulumiStateString] = None
    outputs: Optional[Outputs] = None
    error: Optional[str] = None


# Outbound Models (Plugin -> Orchestrator)


class VerboseOutputMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    verbose_output: str = Field(..., alias="verboseOutput")


class ErrorMessage(BaseModel):
    error: str


class ImageResult(BaseModel):
    image: ImageDigest


class StateResult(BaseModel):
    state: PulumiStateString
    outputs: Outputs = Field(default_factory=dict)


class BuildOutputMessage(BaseModel):
    result: ImageResult


class ApplyOutputMessage(BaseModel):
    result: StateResult


__all__ = [
    "DEFAULT_DATACENTER_ID",
    "ImageDigest",
    "PulumiStateString",
    "Outputs",
    "CommandName",
    # Inbound
    "CommandMessage",
    "BuildRequest",
    "ApplyRequest",
    # Results
    "BuildResult",
    "ApplyResult",
    # Outbound
    "VerboseOutputMessage",
    "ErrorMessage",
    "ImageResult",
    "StateResult",
    "BuildOutputMessage",
    "ApplyOutputMessage",
]
