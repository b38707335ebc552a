"""Planner construction from configuration."""

from contextsaver.config import PlannerConfig
from contextsaver.core.errors import ConfigurationError
from contextsaver.planners.base import BasePlanner

LOCAL_PLANNERS = ("ollama", "vllm", "llamacpp")


def create_planner(config: PlannerConfig) -> BasePlanner:
    """Pick the adapter for ``config.name``. Adapters are imported lazily."""
    name = config.name
    if name == "openai":
        from contextsaver.planners.openai import OpenAIPlanner
        return OpenAIPlanner(config)
    if name == "anthropic":
        from contextsaver.planners.anthropic import AnthropicPlanner
        return AnthropicPlanner(config)
    if name in LOCAL_PLANNERS:
        from contextsaver.planners.local import LocalPlanner
        return LocalPlanner(config)
    raise ConfigurationError(f"No planner adapter for provider '{name}'")
