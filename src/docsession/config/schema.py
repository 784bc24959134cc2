"""Configuration schema dataclasses for docsession.

All fields have defaults so partial configs from several levels
(system, user, project) can be merged together.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_IGNORE_PATTERNS = [
    "**/.git/**",
    "**/node_modules/**",
    "**/__pycache__/**",
    "**/.venv/**",
    "**/dist/**",
    "**/build/**",
    "**/*.pyc",
]


@dataclass
class BackendConfig:
    """Remote generation backend settings.

    Example config.yaml:
        backend:
          endpoint: https://docgen.example.com/v1
          timeout: 60
          poll_interval: 10
          max_poll_attempts: 180
    """

    endpoint: str = "http://localhost:8080"
    timeout: float = 60.0  # Seconds per HTTP request
    poll_interval: float = 10.0  # Seconds between code generation status polls
    max_poll_attempts: int = 180


@dataclass
class SessionConfig:
    """Workspace packaging and session defaults."""

    max_repo_size_bytes: int = 200 * 1024 * 1024
    ignore_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_IGNORE_PATTERNS))
    ide_category: str = "CLI"


@dataclass
class TelemetryConfig:
    """Telemetry submission settings."""

    opt_out: bool = False
    product: str = "DocGeneration"
    client_id_file: str | None = None  # Default: <user config dir>/client_id.yaml


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    file: str | None = None  # Log file path


@dataclass
class Config:
    """Root configuration object."""

    backend: BackendConfig = field(default_factory=BackendConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    reference_log: str | None = None  # Path of the accepted-reference log file

    # Unknown top-level sections are preserved here
    extra: dict[str, Any] = field(default_factory=dict)
