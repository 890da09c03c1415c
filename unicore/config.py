"""Runtime configuration, with environment overrides (UNICORE_*)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from .errors import ConfigError
from .token import TOKEN_VERSION


@dataclass
class UnicoreConfig:
    # Seconds to wait on a service submission; None waits forever
    service_timeout: float | None = 10.0
    # Threads used by verify_tokens
    max_workers: int = 4
    token_version: str = TOKEN_VERSION

    def __post_init__(self) -> None:
        if self.service_timeout is not None and self.service_timeout <= 0:
            raise ConfigError(f"service_timeout must be positive, got {self.service_timeout}")
        if self.max_workers < 1:
            raise ConfigError(f"max_workers must be at least 1, got {self.max_workers}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "UnicoreConfig":
        """Build a config from UNICORE_* variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        kwargs: dict = {}

        timeout = env.get("UNICORE_SERVICE_TIMEOUT")
        if timeout is not None:
            if timeout.strip().lower() in ("", "none", "0"):
                kwargs["service_timeout"] = None
            else:
                try:
                    kwargs["service_timeout"] = float(timeout)
                except ValueError:
                    raise ConfigError(f"UNICORE_SERVICE_TIMEOUT is not a number: {timeout!r}") from None

        workers = env.get("UNICORE_MAX_WORKERS")
        if workers is not None:
            try:
                kwargs["max_workers"] = int(workers)
            except ValueError:
                raise ConfigError(f"UNICORE_MAX_WORKERS is not an integer: {workers!r}") from None

        version = env.get("UNICORE_TOKEN_VERSION")
        if version:
            kwargs["token_version"] = version

        return cls(**kwargs)
