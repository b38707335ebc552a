"""
OpenAI planner adapter.

Uses the official openai Python SDK (Chat Completions API).
"""

import logging
import time
from typing import Any

import openai

from contextsaver.config import PlannerConfig
from contextsaver.planners.base import (
    AuthenticationError,
    BasePlanner,
    ModelNotFoundError,
    PlannerError,
    RateLimitError,
)

logger = logging.getLogger(__name__)


class OpenAIPlanner(BasePlanner):
    """OpenAI planner using the official openai Python SDK."""

    name = "openai"
    display_name = "OpenAI"

    def __init__(self, config: PlannerConfig):
        super().__init__(config)
        self._sdk_client = openai.AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=0,
        )

    async def generate(self, prompt: str, temperature: float | None = None) -> str:
        start = time.time()
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self._temperature(temperature),
            "max_completion_tokens": self.config.max_tokens,
        }

        try:
            response = await self._sdk_client.chat.completions.create(**kwargs)
        except openai.AuthenticationError as exc:
            raise AuthenticationError(str(exc), self.name, 401) from exc
        except openai.RateLimitError as exc:
            raise RateLimitError(str(exc), self.name, 429) from exc
        except openai.NotFoundError as exc:
            raise ModelNotFoundError(str(exc), self.name, 404) from exc
        except openai.OpenAIError as exc:
            raise PlannerError(str(exc), self.name, getattr(exc, "status_code", None)) from exc

        if not response.choices:
            raise PlannerError("response contained no choices", self.name)

        text = response.choices[0].message.content or ""
        logger.debug(f"openai generate: {len(text)} chars in {(time.time() - start) * 1000:.0f}ms")
        return text

    async def close(self):
        await self._sdk_client.close()
        await super().close()
