"""
Local planner adapter — Ollama, vLLM, llama.cpp.

All three expose an OpenAI-compatible /v1/chat/completions endpoint,
so one adapter covers them all. No API key required.
"""

import logging
from typing import Any

from contextsaver import __version__
from contextsaver.planners.base import BasePlanner, PlannerError

logger = logging.getLogger(__name__)


class LocalPlanner(BasePlanner):
    """Planner for local LLM servers that speak the OpenAI-compatible API."""

    name = "local"
    display_name = "Local (Ollama / vLLM / llama.cpp)"

    def _get_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "User-Agent": f"contextsaver/{__version__}"}

    @property
    def _chat_path(self) -> str:
        return "/v1/chat/completions"

    async def generate(self, prompt: str, temperature: float | None = None) -> str:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self._temperature(temperature),
            "max_tokens": self.config.max_tokens,
        }
        data = await self._post(self._chat_path, payload)

        try:
            return data["choices"][0]["message"].get("content") or ""
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise PlannerError(f"unexpected response shape: {e}", self.config.name) from e
