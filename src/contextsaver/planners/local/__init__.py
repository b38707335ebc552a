from .adapter import LocalPlanner

__all__ = ["LocalPlanner"]
