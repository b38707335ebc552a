"""contextsaver discovery — build Expert Descriptors from live MCP servers."""

from .analyzer import DiscoveryEngine, analyze_server, build_analysis_prompt

__all__ = ["DiscoveryEngine", "analyze_server", "build_analysis_prompt"]
