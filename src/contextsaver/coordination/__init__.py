"""contextsaver coordination — serve an Expert Descriptor as one MCP tool."""

from .expert import ExpertCoordinator, build_coordination_prompt
from .server import ExpertServer, SessionState, build_expert_tool, run, serve

__all__ = [
    "ExpertCoordinator",
    "ExpertServer",
    "SessionState",
    "build_coordination_prompt",
    "build_expert_tool",
    "run",
    "serve",
]
