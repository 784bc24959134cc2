"""Configuration file loading and caching.

Handles:
- YAML file parsing
- Cascading merge of system, user and project files
- Environment variable overrides
- Conversion from dict to the typed Config dataclass
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from docsession.config.paths import get_config_paths
from docsession.config.schema import (
    DEFAULT_IGNORE_PATTERNS,
    BackendConfig,
    Config,
    LoggingConfig,
    SessionConfig,
    TelemetryConfig,
)

# Module logger (may not be configured yet at import time)
_log = logging.getLogger("docsession.config")

_cached_config: Config | None = None

_KNOWN_SECTIONS = {"backend", "session", "telemetry", "logging", "reference_log"}
_TRUTHY = {"1", "true", "yes", "on"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning an empty dict if missing or invalid."""
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge `override` onto `base` without mutating either.

    Nested dicts merge, lists and scalars replace, and a None in the
    override leaves the base value in place.
    """
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_dicts(current, value)
        else:
            merged[key] = value
    return merged


def env_overrides() -> dict[str, Any]:
    """Build a config dict from DOCSESSION_* environment variables.

    The bearer token is not loaded here; see `fetch_secret`.
    """
    overrides: dict[str, Any] = {}

    log_path = os.environ.get("DOCSESSION_LOG")
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    endpoint = os.environ.get("DOCSESSION_ENDPOINT")
    if endpoint:
        overrides.setdefault("backend", {})["endpoint"] = endpoint

    opt_out = os.environ.get("DOCSESSION_TELEMETRY_OPT_OUT")
    if opt_out is not None:
        overrides.setdefault("telemetry", {})["opt_out"] = opt_out.strip().lower() in _TRUTHY

    return overrides


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert a merged dict to the typed Config dataclass."""
    backend_data = data.get("backend") or {}
    defaults = BackendConfig()
    backend = BackendConfig(
        endpoint=str(backend_data.get("endpoint", defaults.endpoint)).rstrip("/"),
        timeout=float(backend_data.get("timeout", defaults.timeout)),
        poll_interval=float(backend_data.get("poll_interval", defaults.poll_interval)),
        max_poll_attempts=int(backend_data.get("max_poll_attempts", defaults.max_poll_attempts)),
    )

    session_data = data.get("session") or {}
    session_defaults = SessionConfig()
    ignore = session_data.get("ignore_patterns", DEFAULT_IGNORE_PATTERNS)
    session = SessionConfig(
        max_repo_size_bytes=int(
            session_data.get("max_repo_size_bytes", session_defaults.max_repo_size_bytes)
        ),
        ignore_patterns=[p for p in ignore if isinstance(p, str)],
        ide_category=session_data.get("ide_category", session_defaults.ide_category),
    )

    telemetry_data = data.get("telemetry") or {}
    telemetry = TelemetryConfig(
        opt_out=bool(telemetry_data.get("opt_out", False)),
        product=telemetry_data.get("product", TelemetryConfig.product),
        client_id_file=telemetry_data.get("client_id_file"),
    )

    log_data = data.get("logging") or {}
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        file=log_data.get("file"),
    )

    extra = {k: v for k, v in data.items() if k not in _KNOWN_SECTIONS}

    return Config(
        backend=backend,
        session=session,
        telemetry=telemetry,
        logging=logging_config,
        reference_log=data.get("reference_log"),
        extra=extra,
    )


def load_config(project_root: str | None = None, reload: bool = False) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. Environment variables
    2. Project config (<project_root>/.docsession/config.yaml)
    3. User config
    4. System config

    Args:
        project_root: Workspace directory for project-level config.
        reload: Force reload even if cached.
    """
    global _cached_config

    if _cached_config is not None and not reload and project_root is None:
        return _cached_config

    merged: dict[str, Any] = {}
    for path in get_config_paths(project_root):
        config_data = load_yaml_file(path)
        if config_data:
            _log.debug("Loaded config from %s", path)
            merged = merge_dicts(merged, config_data)

    merged = merge_dicts(merged, env_overrides())
    config = dict_to_config(merged)

    # Only the global (project-less) config is cached
    if project_root is None:
        _cached_config = config

    return config


def get_config() -> Config:
    """Get the cached global config, loading it on first use."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Drop the cached config (used by tests)."""
    global _cached_config
    _cached_config = None
