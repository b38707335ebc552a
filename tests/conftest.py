"""Shared fixtures for the contextsaver test suite."""

import json
from collections.abc import Callable
from typing import Any

import pytest

from contextsaver.config import ContextSaverConfig, PlannerConfig
from contextsaver.core.errors import PeerConnectionError, PeerError, PeerInvocationError
from contextsaver.core.types import (
    ConnectionSpec,
    ExpertDescriptor,
    PromptDescriptor,
    ResourceDescriptor,
    ToolDescriptor,
)
from contextsaver.peer import PeerClient
from contextsaver.planners import BasePlanner, PlannerError

# ---------------------------------------------------------------------------
# Doubles
# ---------------------------------------------------------------------------

DEMO_TOOLS = [
    ToolDescriptor(
        name="echo",
        description="Echo back the message",
        input_schema={"type": "object", "properties": {"message": {"type": "string"}}, "required": ["message"]},
    ),
    ToolDescriptor(
        name="add",
        description="Add two numbers",
        input_schema={
            "type": "object",
            "properties": {"a": {"type": "number"}, "b": {"type": "number"}},
            "required": ["a", "b"],
        },
    ),
    ToolDescriptor(name="getCurrentTime", description="Get the current time"),
]


def _text(value: Any) -> list[dict[str, Any]]:
    return [{"type": "text", "text": str(value)}]


DEMO_HANDLERS: dict[str, Callable[[dict[str, Any]], list[dict[str, Any]]]] = {
    "echo": lambda args: _text(f"Echo: {args.get('message', '')}"),
    "add": lambda args: _text(args["a"] + args["b"]),
    "getCurrentTime": lambda args: _text("2025-01-01T00:00:00Z"),
}


class FakePeer(PeerClient):
    """In-memory peer. Inherits list_optional from the real client."""

    def __init__(
        self,
        tools: list[ToolDescriptor] | None = None,
        resources: list[ResourceDescriptor] | None = None,
        prompts: list[PromptDescriptor] | None = None,
        handlers: dict[str, Callable] | None = None,
        supports_tools: bool = True,
        supports_resources: bool = True,
        supports_prompts: bool = True,
        connect_error: Exception | None = None,
    ):
        super().__init__(ConnectionSpec(command="fake-server"))
        self.tools = list(DEMO_TOOLS if tools is None else tools)
        self.resources = resources or []
        self.prompts = prompts or []
        self.handlers = dict(DEMO_HANDLERS if handlers is None else handlers)
        self.supports_tools = supports_tools
        self.supports_resources = supports_resources
        self.supports_prompts = supports_prompts
        self.connect_error = connect_error
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.list_calls: list[str] = []
        self.connect_count = 0
        self.close_count = 0
        self.is_open = False

    async def connect(self):
        self.connect_count += 1
        if self.connect_error:
            raise PeerConnectionError(f"Failed to connect to MCP server: {self.connect_error}") from self.connect_error
        self.is_open = True
        return self

    async def close(self):
        self.close_count += 1
        self.is_open = False

    async def list_tools(self):
        self.list_calls.append("tools")
        if not self.supports_tools:
            raise PeerError("Failed to list tools: Method not found")
        return list(self.tools)

    async def list_resources(self):
        self.list_calls.append("resources")
        if not self.supports_resources:
            raise PeerError("Failed to list resources: Method not found")
        return list(self.resources)

    async def list_prompts(self):
        self.list_calls.append("prompts")
        if not self.supports_prompts:
            raise PeerError("Failed to list prompts: Method not found")
        return list(self.prompts)

    async def call_tool(self, name, arguments=None):
        self.calls.append((name, dict(arguments or {})))
        handler = self.handlers.get(name)
        if handler is None:
            raise PeerInvocationError(name, f"Unknown tool: {name}")
        try:
            return handler(arguments or {})
        except Exception as e:
            raise PeerInvocationError(name, str(e)) from e


class ScriptedPlanner(BasePlanner):
    """Planner that replays canned responses and records every prompt."""

    name = "scripted"

    def __init__(self, *responses: str | Exception):
        super().__init__(PlannerConfig(name="scripted", base_url="http://localhost:9999",
                                       api_key_env=None, default_model="scripted-model"))
        self.responses = list(responses)
        self.prompts: list[str] = []
        self.temperatures: list[float | None] = []
        self.closed = False

    async def generate(self, prompt, temperature=None):
        self.prompts.append(prompt)
        self.temperatures.append(temperature)
        if not self.responses:
            raise PlannerError("no scripted response left", self.name)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self):
        self.closed = True


def peer_factory_for(peer: FakePeer):
    """Factory with the PeerClient constructor signature that hands out ``peer``."""
    specs: list[ConnectionSpec] = []

    def factory(spec, client_name=None):
        specs.append(spec)
        return peer

    factory.specs = specs
    return factory


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def planner_config():
    """An OpenAI planner config with a key already resolved."""
    return PlannerConfig(
        name="openai",
        base_url="https://api.openai.com/v1",
        api_key_env="OPENAI_API_KEY",
        default_model="gpt-4o-mini",
        api_key="sk-test",
    )


@pytest.fixture
def config(tmp_path, planner_config):
    return ContextSaverConfig(planner=planner_config, configs_dir=tmp_path / "configs")


@pytest.fixture
def keyless_config(tmp_path):
    planner = PlannerConfig(
        name="openai",
        base_url="https://api.openai.com/v1",
        api_key_env="OPENAI_API_KEY",
        default_model="gpt-4o-mini",
    )
    return ContextSaverConfig(planner=planner, configs_dir=tmp_path / "configs")


@pytest.fixture
def fake_peer():
    return FakePeer()


@pytest.fixture
def descriptor_data():
    """A valid on-disk descriptor document for the demo tools."""
    return {
        "name": "Demo Tools Expert",
        "description": "Echoes messages, adds numbers and tells the time",
        "serverPath": "node",
        "args": ["demo-server.js"],
        "systemPrompt": "Use add for arithmetic, echo for repeating text, getCurrentTime for the time.",
        "capabilities": {
            "tools": [t.to_dict() for t in DEMO_TOOLS],
            "resources": [],
            "prompts": [],
        },
        "metadata": {
            "analyzedAt": "2025-01-01T00:00:00+00:00",
            "toolCount": 3,
            "resourceCount": 0,
            "promptCount": 0,
        },
    }


@pytest.fixture
def descriptor(descriptor_data):
    return ExpertDescriptor.model_validate(descriptor_data)


@pytest.fixture
def descriptor_path(tmp_path, descriptor_data):
    path = tmp_path / "demo-tools-expert-1735689600000.json"
    path.write_text(json.dumps(descriptor_data, indent=2), encoding="utf-8")
    return path
