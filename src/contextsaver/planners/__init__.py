"""contextsaver planners — one text-in/text-out interface, several LLM backends."""

from .base import (
    AuthenticationError,
    BasePlanner,
    ModelNotFoundError,
    PlannerError,
    RateLimitError,
)
from .factory import create_planner

__all__ = [
    "BasePlanner",
    "PlannerError",
    "RateLimitError",
    "AuthenticationError",
    "ModelNotFoundError",
    "create_planner",
]
