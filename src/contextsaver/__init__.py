"""
contextsaver — wrap any MCP server as a single natural-language expert.

Analyze a server once, then serve it as one tool that plans and runs the
underlying tool calls for you::

    from contextsaver import analyze_server, run

    result = await analyze_server("node", ["my-server.js"])
    run(result.config_path)   # stdio MCP server exposing one expert tool

Requires OPENAI_API_KEY (or the key of the configured planner provider).
"""

__version__ = "0.1.0"

from contextsaver.config import ContextSaverConfig, PlannerConfig, load_config
from contextsaver.coordination import ExpertCoordinator, ExpertServer, run, serve
from contextsaver.core.errors import (
    AnalysisError,
    ContextSaverError,
    CoordinationError,
    DescriptorLoadError,
    MissingCredentialError,
    PeerConnectionError,
)
from contextsaver.core.types import (
    AnalysisResult,
    CapabilityManifest,
    ExpertDescriptor,
    ExpertMode,
    InvocationPlan,
)
from contextsaver.descriptors import load_descriptor, save_descriptor
from contextsaver.discovery import DiscoveryEngine, analyze_server

__all__ = [
    # Core types
    "AnalysisResult",
    "CapabilityManifest",
    "ExpertDescriptor",
    "ExpertMode",
    "InvocationPlan",
    # Config
    "ContextSaverConfig",
    "PlannerConfig",
    "load_config",
    # Descriptors
    "load_descriptor",
    "save_descriptor",
    # Engines
    "DiscoveryEngine",
    "analyze_server",
    "ExpertCoordinator",
    "ExpertServer",
    "serve",
    "run",
    # Errors
    "ContextSaverError",
    "AnalysisError",
    "CoordinationError",
    "DescriptorLoadError",
    "MissingCredentialError",
    "PeerConnectionError",
]
