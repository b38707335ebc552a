from .adapter import AnthropicPlanner

__all__ = ["AnthropicPlanner"]
