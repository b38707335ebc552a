"""
contextsaver configuration.

Planner settings and storage locations.
Reads from ~/.contextsaver/config.toml with environment variable overrides.

The environment is read once, in ``load_config``; the resulting
``ContextSaverConfig`` (credential included) is what the engines receive.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from contextsaver.core.errors import ConfigurationError, MissingCredentialError

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

def _home(env: Mapping[str, str]) -> Path:
    return Path(env.get("CONTEXTSAVER_HOME", Path.home() / ".contextsaver"))


# ---------------------------------------------------------------------------
# Planner config
# ---------------------------------------------------------------------------

@dataclass
class PlannerConfig:
    """Configuration for the language-model planner."""

    name: str
    base_url: str
    api_key_env: str | None
    default_model: str
    temperature: float = 0.3
    timeout: float = 60.0
    max_tokens: int = 4096
    api_key: str | None = None

    @property
    def requires_key(self) -> bool:
        return self.api_key_env is not None

    @property
    def is_available(self) -> bool:
        if self.requires_key:
            return bool(self.api_key)
        return True  # local planners don't need keys


DEFAULT_PLANNERS: dict[str, PlannerConfig] = {
    "openai": PlannerConfig(
        name="openai",
        base_url="https://api.openai.com/v1",
        api_key_env="OPENAI_API_KEY",
        default_model="gpt-4o-mini",
    ),
    "anthropic": PlannerConfig(
        name="anthropic",
        base_url="https://api.anthropic.com",
        api_key_env="ANTHROPIC_API_KEY",
        default_model="claude-haiku-4-5-20251001",
    ),
    "ollama": PlannerConfig(
        name="ollama",
        base_url="http://localhost:11434",
        api_key_env=None,
        default_model="llama3.1:8b",
    ),
    "vllm": PlannerConfig(
        name="vllm",
        base_url="http://localhost:8000",
        api_key_env=None,
        default_model="meta-llama/Llama-3.1-8B-Instruct",
    ),
    "llamacpp": PlannerConfig(
        name="llamacpp",
        base_url="http://localhost:8080",
        api_key_env=None,
        default_model="default",
    ),
}

DEFAULT_PLANNER = "openai"


# ---------------------------------------------------------------------------
# Main config
# ---------------------------------------------------------------------------

@dataclass
class ContextSaverConfig:
    """Top-level contextsaver configuration."""

    planner: PlannerConfig = field(default_factory=lambda: replace(DEFAULT_PLANNERS[DEFAULT_PLANNER]))

    # Where discovery writes Expert Descriptors
    configs_dir: Path = field(default_factory=lambda: Path.cwd() / "configs")

    # Identity presented by the wrapper server and the peer client
    server_name: str = "mcp-context-saver"
    client_name: str = "mcp-context-saver-client"

    def require_credential(self) -> str | None:
        """Fail fast when the planner needs a key and none was configured."""
        if self.planner.requires_key and not self.planner.api_key:
            raise MissingCredentialError(self.planner.api_key_env)
        return self.planner.api_key


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def _select_planner(name: str) -> PlannerConfig:
    if name not in DEFAULT_PLANNERS:
        raise ConfigurationError(
            f"Unknown planner provider '{name}'. Choose one of: {', '.join(sorted(DEFAULT_PLANNERS))}"
        )
    return replace(DEFAULT_PLANNERS[name])


def _apply_toml(config: ContextSaverConfig, data: dict[str, Any]) -> None:
    """Overlay TOML data onto a ContextSaverConfig."""
    planner = data.get("planner", {})
    if "provider" in planner:
        config.planner = _select_planner(planner["provider"])
    if "model" in planner:
        config.planner.default_model = planner["model"]
    if "base_url" in planner:
        config.planner.base_url = planner["base_url"]
    if "temperature" in planner:
        config.planner.temperature = float(planner["temperature"])
    if "timeout" in planner:
        config.planner.timeout = float(planner["timeout"])
    if "max_tokens" in planner:
        config.planner.max_tokens = int(planner["max_tokens"])

    storage = data.get("storage", {})
    if "configs_dir" in storage:
        config.configs_dir = Path(storage["configs_dir"]).expanduser()

    server = data.get("server", {})
    if "name" in server:
        config.server_name = server["name"]


def load_config(config_path: Path | None = None, env: Mapping[str, str] | None = None) -> ContextSaverConfig:
    """
    Build config from defaults → TOML file → environment variables.

    Precedence (highest wins):
        1. Environment variables
        2. ~/.contextsaver/config.toml
        3. Built-in defaults
    """
    env = os.environ if env is None else env
    config = ContextSaverConfig()

    path = config_path or _home(env) / "config.toml"
    if path.exists():
        try:
            with open(path, "rb") as f:
                toml_data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid config file {path}: {e}") from e
        _apply_toml(config, toml_data)

    # Env overrides
    if env.get("CONTEXTSAVER_PLANNER"):
        config.planner = _select_planner(env["CONTEXTSAVER_PLANNER"])
    if env.get("CONTEXTSAVER_MODEL"):
        config.planner.default_model = env["CONTEXTSAVER_MODEL"]
    if env.get("CONTEXTSAVER_CONFIGS_DIR"):
        config.configs_dir = Path(env["CONTEXTSAVER_CONFIGS_DIR"]).expanduser()

    if config.planner.api_key_env:
        config.planner.api_key = env.get(config.planner.api_key_env) or None

    return config
