"""
Shared data contract between the Discovery and Coordination engines.

The Capability Manifest and the Expert Descriptor are what a discovery run
produces and a serve session consumes. JSON keys keep the camelCase names
used on disk and on the wire; Python attributes are snake_case.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ---------------------------------------------------------------------------
# Capability Manifest
# ---------------------------------------------------------------------------

class _Descriptor(BaseModel):
    """Base for peer-supplied descriptors. Unknown keys are kept verbatim."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ToolDescriptor(_Descriptor):
    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}}, alias="inputSchema"
    )


class ResourceDescriptor(_Descriptor):
    uri: str
    name: str
    description: str | None = None
    mime_type: str | None = Field(default=None, alias="mimeType")


class PromptDescriptor(_Descriptor):
    name: str
    description: str | None = None
    arguments: list[dict[str, Any]] = Field(default_factory=list)


class CapabilityManifest(BaseModel):
    """Declared surface of a peer. Resources and prompts may be empty."""

    model_config = ConfigDict(populate_by_name=True)

    tools: list[ToolDescriptor] = Field(default_factory=list)
    resources: list[ResourceDescriptor] = Field(default_factory=list)
    prompts: list[PromptDescriptor] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_tool_names(self) -> "CapabilityManifest":
        seen: set[str] = set()
        for tool in self.tools:
            if tool.name in seen:
                raise ValueError(f"duplicate tool name '{tool.name}'")
            seen.add(tool.name)
        return self

    def tool_names(self) -> list[str]:
        return [t.name for t in self.tools]

    def counts(self) -> tuple[int, int, int]:
        return len(self.tools), len(self.resources), len(self.prompts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tools": [t.to_dict() for t in self.tools],
            "resources": [r.to_dict() for r in self.resources],
            "prompts": [p.to_dict() for p in self.prompts],
        }


# ---------------------------------------------------------------------------
# Expert Descriptor
# ---------------------------------------------------------------------------

class Provenance(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    analyzed_at: str = Field(alias="analyzedAt")
    tool_count: int = Field(alias="toolCount", ge=0)
    resource_count: int = Field(alias="resourceCount", ge=0)
    prompt_count: int = Field(alias="promptCount", ge=0)


class ConnectionSpec(BaseModel):
    """Executable path and argument list needed to (re-)spawn a peer."""

    model_config = ConfigDict(frozen=True)

    command: str
    args: list[str] = Field(default_factory=list)


class ExpertDescriptor(BaseModel):
    """Persisted identity, guidance, manifest and provenance for one peer."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    description: str
    server_path: str = Field(alias="serverPath")
    args: list[str] = Field(default_factory=list)
    guidance: str = Field(alias="systemPrompt")
    capabilities: CapabilityManifest
    provenance: Provenance = Field(alias="metadata")

    @model_validator(mode="after")
    def _provenance_matches_manifest(self) -> "ExpertDescriptor":
        expected = self.capabilities.counts()
        recorded = (
            self.provenance.tool_count,
            self.provenance.resource_count,
            self.provenance.prompt_count,
        )
        if expected != recorded:
            raise ValueError(
                f"metadata counts {recorded} do not match capabilities {expected} "
                "(tools, resources, prompts)"
            )
        return self

    @property
    def connection_spec(self) -> ConnectionSpec:
        return ConnectionSpec(command=self.server_path, args=list(self.args))

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "serverPath": self.server_path,
            "args": list(self.args),
            "systemPrompt": self.guidance,
            "capabilities": self.capabilities.to_dict(),
            "metadata": self.provenance.model_dump(mode="json", by_alias=True),
        }


# ---------------------------------------------------------------------------
# Planner output shapes
# ---------------------------------------------------------------------------

class CapabilityNames(BaseModel):
    tools: list[str] = Field(default_factory=list)
    resources: list[str] = Field(default_factory=list)
    prompts: list[str] = Field(default_factory=list)


class ExpertAnalysis(BaseModel):
    """What the planner returns when summarizing a peer."""

    model_config = ConfigDict(populate_by_name=True)

    expert_name: str = Field(alias="expertName", min_length=1)
    expert_description: str = Field(alias="expertDescription")
    system_prompt: str = Field(alias="systemPrompt")
    capabilities: CapabilityNames = Field(default_factory=CapabilityNames)


class PlannedCall(BaseModel):
    name: str = Field(min_length=1)
    arguments: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _null_arguments(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("arguments") is None:
            data = {**data, "arguments": {}}
        return data


class InvocationPlan(BaseModel):
    """Ordered tool calls plus a human-readable explanation. Never persisted."""

    model_config = ConfigDict(populate_by_name=True)

    tool_calls: list[PlannedCall] = Field(default_factory=list, alias="toolCalls")
    explanation: str = ""


# ---------------------------------------------------------------------------
# Runtime results
# ---------------------------------------------------------------------------

@dataclass
class InvocationResult:
    tool: str
    result: list[dict[str, Any]] | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        if self.error is not None:
            return {"tool": self.tool, "error": self.error}
        return {"tool": self.tool, "result": self.result}


class ExpertMode(str, Enum):
    DISCOVER = "discover"
    EXECUTE = "execute"
    EXPLAIN = "explain"


class ExpertQuery(BaseModel):
    """Arguments accepted by the expert entry point."""

    model_config = ConfigDict(extra="ignore")

    query: str = Field(description="Your request or question")
    mode: ExpertMode = Field(default=ExpertMode.EXECUTE, description="Operation mode")

    @model_validator(mode="before")
    @classmethod
    def _null_mode(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("mode") is None:
            data = {k: v for k, v in data.items() if k != "mode"}
        return data


@dataclass
class AnalysisResult:
    expert_name: str
    expert_description: str
    guidance: str
    capabilities: CapabilityManifest
    config_path: Path

    def to_dict(self) -> dict[str, Any]:
        return {
            "expertName": self.expert_name,
            "expertDescription": self.expert_description,
            "systemPrompt": self.guidance,
            "capabilities": self.capabilities.to_dict(),
            "configPath": str(self.config_path),
        }
