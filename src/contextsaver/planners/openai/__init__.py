from .adapter import OpenAIPlanner

__all__ = ["OpenAIPlanner"]
