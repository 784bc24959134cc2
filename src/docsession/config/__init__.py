"""Configuration management for docsession.

Hierarchical YAML configuration:
- System-level config (/etc/docsession/ or %PROGRAMDATA%)
- User-level config (~/.config/docsession/ or %APPDATA%)
- Project-level config (<workspace>/.docsession/)
- Environment variable overrides (highest priority)

Example usage:
    from docsession.config import load_config

    config = load_config(project_root="/path/to/project")
    print(config.backend.endpoint)
"""

from docsession.config.loader import (
    get_config,
    load_config,
    reset_config,
)
from docsession.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_system_config_path,
    get_user_config_dir,
    get_user_config_path,
)
from docsession.config.schema import (
    BackendConfig,
    Config,
    LoggingConfig,
    SessionConfig,
    TelemetryConfig,
)
from docsession.config.secrets import (
    TOKEN_KEY,
    clear_secret_cache,
    fetch_secret,
)

__all__ = [
    "Config",
    "load_config",
    "get_config",
    "reset_config",
    "BackendConfig",
    "SessionConfig",
    "TelemetryConfig",
    "LoggingConfig",
    "TOKEN_KEY",
    "fetch_secret",
    "clear_secret_cache",
    "get_config_paths",
    "get_system_config_path",
    "get_user_config_dir",
    "get_user_config_path",
    "get_project_config_path",
]
