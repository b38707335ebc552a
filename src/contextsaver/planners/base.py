"""
Base planner — abstract class all language-model planner adapters inherit from.

A planner is a single text-in/text-out round trip. It makes no promise about
structure; callers parse its output themselves.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from contextsaver import __version__
from contextsaver.config import PlannerConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class PlannerError(Exception):
    def __init__(self, message: str, provider: str, status_code: int | None = None):
        self.message = message
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"[{provider}] {message}")


class RateLimitError(PlannerError):
    pass


class AuthenticationError(PlannerError):
    pass


class ModelNotFoundError(PlannerError):
    pass


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------

class BasePlanner(ABC):
    """
    Abstract base for all planner adapters.

    Subclasses implement ``generate``. HTTP-based adapters use the shared
    ``client`` and ``_handle_error``.
    """

    name: str = "base"
    display_name: str = "Base Planner"

    def __init__(self, config: PlannerConfig):
        self.config = config
        self._client: httpx.AsyncClient | None = None

    @property
    def model(self) -> str:
        return self.config.default_model

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                headers=self._get_headers(),
                timeout=httpx.Timeout(self.config.timeout),
            )
        return self._client

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    def _get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "User-Agent": f"contextsaver/{__version__}"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    # --- Abstract ---

    @abstractmethod
    async def generate(self, prompt: str, temperature: float | None = None) -> str: ...

    # --- Helpers ---

    def _temperature(self, temperature: float | None) -> float:
        return self.config.temperature if temperature is None else temperature

    def _handle_error(self, response: httpx.Response) -> None:
        if response.status_code == 401:
            raise AuthenticationError("Authentication failed.", self.name, 401)
        if response.status_code == 429:
            raise RateLimitError("Rate limit exceeded.", self.name, 429)
        if response.status_code == 404:
            raise ModelNotFoundError("Model not found.", self.name, 404)
        if response.status_code >= 400:
            try:
                msg = response.json().get("error", {}).get("message", response.text)
            except Exception:
                msg = response.text
            raise PlannerError(msg, self.name, response.status_code)

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        try:
            resp = await self.client.post(path, json=body, headers=self._get_headers())
        except httpx.HTTPError as e:
            raise PlannerError(f"request failed: {e}", self.name) from e
        if resp.status_code >= 400:
            self._handle_error(resp)
        return resp.json()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name}, model={self.model})>"
