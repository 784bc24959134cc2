"""Secret lookup for the backend bearer token.

Environment variables win; a `.env.secrets` file in the working
directory is the fallback for local development.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import dotenv_values

SECRETS_FILE = ".env.secrets"
TOKEN_KEY = "DOCSESSION_TOKEN"


@lru_cache(maxsize=1)
def _load_secrets(secrets_path: Path | None = None) -> dict[str, str | None]:
    path = secrets_path or Path(SECRETS_FILE)
    if path.exists():
        return dotenv_values(path)
    return {}


def fetch_secret(
    key: str,
    default: str | None = None,
    secrets_path: Path | None = None,
) -> str | None:
    """Fetch a secret from the environment or `.env.secrets`.

    Args:
        key: Environment variable name (e.g., "DOCSESSION_TOKEN")
        default: Value returned when the key is found nowhere
        secrets_path: Optional explicit secrets file

    Returns:
        Secret value or default.
    """
    value = os.environ.get(key)
    if value is not None:
        return value

    secrets = _load_secrets(secrets_path)
    if secrets.get(key) is not None:
        return secrets[key]

    return default


def clear_secret_cache() -> None:
    """Forget the cached `.env.secrets` contents."""
    _load_secrets.cache_clear()
