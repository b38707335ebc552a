"""
Anthropic (Claude) planner adapter.

Talks to the Messages API directly over httpx.
"""

import logging
import time
from typing import Any

from contextsaver import __version__
from contextsaver.planners.base import BasePlanner, PlannerError

logger = logging.getLogger(__name__)


class AnthropicPlanner(BasePlanner):
    name = "anthropic"
    display_name = "Anthropic (Claude)"
    API_VERSION = "2023-06-01"

    def _get_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.config.api_key or "",
            "anthropic-version": self.API_VERSION,
            "User-Agent": f"contextsaver/{__version__}",
        }

    async def generate(self, prompt: str, temperature: float | None = None) -> str:
        start = time.time()
        body: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self._temperature(temperature),
            "messages": [{"role": "user", "content": prompt}],
        }
        data = await self._post("/v1/messages", body)

        blocks = data.get("content")
        if not isinstance(blocks, list):
            raise PlannerError("response contained no content blocks", self.name)
        text = "".join(b.get("text", "") for b in blocks if b.get("type") == "text")
        logger.debug(f"anthropic generate: {len(text)} chars in {(time.time() - start) * 1000:.0f}ms")
        return text
