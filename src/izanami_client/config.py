"""Client configuration.

Values are layered, lowest precedence first:
1. YAML config file (``ClientConfig.from_file``)
2. ``IZANAMI_*`` environment variables (``ClientConfig.from_env``)
3. Explicit overrides (``with_overrides``), e.g. CLI flags
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

ENV_PREFIX = "IZANAMI_"

# YAML key -> field name
_FILE_KEYS: dict[str, str] = {
    "leader-url": "base_url",
    "base-url": "base_url",
    "worker-url": "worker_url",
    "client-id": "client_id",
    "client-secret": "client_secret",
    "timeout": "timeout",
    "verbose": "verbose",
}

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings for the Izanami client API."""

    base_url: str = ""
    worker_url: str = ""
    client_id: str = ""
    client_secret: str = ""
    timeout: float = 30.0
    verbose: bool = False

    @property
    def effective_url(self) -> str:
        """Worker URL when one is configured, otherwise the leader URL."""
        return self.worker_url or self.base_url

    def validate(self) -> None:
        if not self.effective_url:
            raise ConfigError("base URL is required")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")

    def validate_client_auth(self) -> None:
        """Check that client-key credentials are present."""
        self.validate()
        if not self.client_id or not self.client_secret:
            raise ConfigError(
                "client credentials are required: set client-id and client-secret "
                f"(or {ENV_PREFIX}CLIENT_ID / {ENV_PREFIX}CLIENT_SECRET)"
            )

    def with_overrides(self, **overrides: Any) -> ClientConfig:
        """Return a copy with every non-empty override applied."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigError(f"unknown config keys: {', '.join(sorted(unknown))}")
        changes = {k: v for k, v in overrides.items() if v not in (None, "")}
        return replace(self, **changes)

    @classmethod
    def from_file(cls, path: str | Path, base: ClientConfig | None = None) -> ClientConfig:
        """Load settings from a YAML file on top of ``base``."""
        path = Path(path)
        try:
            with open(path) as f:
                raw = yaml.safe_load(f) or {}
        except FileNotFoundError as e:
            raise ConfigError(f"config file not found: {path}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {path}: {e}") from e

        if not isinstance(raw, dict):
            raise ConfigError(f"config file {path} must contain a mapping")

        values: dict[str, Any] = {}
        for key, value in raw.items():
            name = _FILE_KEYS.get(str(key))
            if name is not None and value is not None:
                values[name] = value
        return (base or cls()).with_overrides(**_coerce(values))

    @classmethod
    def from_env(
        cls,
        environ: dict[str, str] | None = None,
        base: ClientConfig | None = None,
    ) -> ClientConfig:
        """Load settings from ``IZANAMI_*`` environment variables on top of ``base``."""
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for f in fields(cls):
            env_value = env.get(ENV_PREFIX + f.name.upper())
            if env_value:
                values[f.name] = env_value
        return (base or cls()).with_overrides(**_coerce(values))

    @classmethod
    def load(cls, path: str | Path | None = None, **overrides: Any) -> ClientConfig:
        """Resolve file, environment and explicit overrides in precedence order."""
        config = cls()
        if path is not None:
            config = cls.from_file(path, base=config)
        config = cls.from_env(base=config)
        return config.with_overrides(**overrides)


def _coerce(values: dict[str, Any]) -> dict[str, Any]:
    """Convert raw file/env values to the dataclass field types."""
    result = dict(values)
    if "timeout" in result:
        try:
            result["timeout"] = float(result["timeout"])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid timeout: {result['timeout']!r}") from e
    if "verbose" in result and not isinstance(result["verbose"], bool):
        result["verbose"] = str(result["verbose"]).strip().lower() in _TRUTHY
    for key in ("base_url", "worker_url", "client_id", "client_secret"):
        if key in result:
            result[key] = str(result[key])
    return result
