"""Client configuration.

Options are immutable once the client is built and are validated eagerly,
so a bad base URL or timeout fails at construction rather than on the
first request.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from urllib.parse import urlparse

DEFAULT_BASE_URL = "http://localhost:9123"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MESSAGE_TIMEOUT = 300.0

ENV_PREFIX = "OPENCODE_"


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class OpenCodeClientOptions:
    """Configuration for OpenCodeClient."""

    # Connection settings
    base_url: str = DEFAULT_BASE_URL
    directory: str | None = None
    default_timeout: float = DEFAULT_TIMEOUT
    message_timeout: float = DEFAULT_MESSAGE_TIMEOUT  # AI responses are slow
    headers: Mapping[str, str] = field(default_factory=dict, hash=False)

    # Retry settings
    enable_retry: bool = True
    max_retry_attempts: int = 3
    retry_delay: float = 2.0
    retry_jitter: float = 0.0

    # Circuit breaker (optional)
    circuit_breaker_enabled: bool = False
    circuit_breaker_threshold: int = 5
    circuit_breaker_duration: float = 30.0

    def __post_init__(self) -> None:
        # Detached read-only copy of the caller's headers
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        errors = self.validate()
        if errors:
            raise ValueError("Invalid OpenCode client options: " + "; ".join(errors))

    def validate(self) -> list[str]:
        """Return a list of validation failures (empty when valid)."""
        errors: list[str] = []

        parsed = urlparse(self.base_url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append(f"base_url must be an absolute http or https URL, got {self.base_url!r}")

        if self.default_timeout <= 0:
            errors.append("default_timeout must be greater than zero")
        if self.message_timeout <= 0:
            errors.append("message_timeout must be greater than zero")
        if self.max_retry_attempts < 0:
            errors.append("max_retry_attempts must be zero or greater")
        if self.retry_delay < 0:
            errors.append("retry_delay must be zero or greater")
        if self.retry_jitter < 0:
            errors.append("retry_jitter must be zero or greater")
        if self.circuit_breaker_threshold < 1:
            errors.append("circuit_breaker_threshold must be at least 1")
        if self.circuit_breaker_duration <= 0:
            errors.append("circuit_breaker_duration must be greater than zero")

        return errors

    @property
    def port(self) -> int:
        """Port the server is expected on, used in connection hints."""
        parsed = urlparse(self.base_url)
        if parsed.port:
            return parsed.port
        return 443 if parsed.scheme == "https" else 80

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None, **overrides) -> OpenCodeClientOptions:
        """Build options from OPENCODE_* environment variables.

        Recognized variables: OPENCODE_BASE_URL, OPENCODE_DIRECTORY,
        OPENCODE_TIMEOUT, OPENCODE_MESSAGE_TIMEOUT, OPENCODE_ENABLE_RETRY,
        OPENCODE_MAX_RETRY_ATTEMPTS, OPENCODE_RETRY_DELAY, OPENCODE_RETRY_JITTER.

        Args:
            environ: Mapping to read instead of os.environ
            **overrides: Explicit values that win over the environment

        Returns:
            Validated OpenCodeClientOptions
        """
        env = os.environ if environ is None else environ
        values: dict = {}

        def read(name: str):
            return env.get(f"{ENV_PREFIX}{name}")

        if (value := read("BASE_URL")) is not None:
            values["base_url"] = value
        if (value := read("DIRECTORY")) is not None:
            values["directory"] = value
        if (value := read("TIMEOUT")) is not None:
            values["default_timeout"] = float(value)
        if (value := read("MESSAGE_TIMEOUT")) is not None:
            values["message_timeout"] = float(value)
        if (value := read("ENABLE_RETRY")) is not None:
            values["enable_retry"] = _env_bool(value)
        if (value := read("MAX_RETRY_ATTEMPTS")) is not None:
            values["max_retry_attempts"] = int(value)
        if (value := read("RETRY_DELAY")) is not None:
            values["retry_delay"] = float(value)
        if (value := read("RETRY_JITTER")) is not None:
            values["retry_jitter"] = float(value)

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
