"""
Bitstream store configuration.

Reads a StorageDescriptor from environment variables. A ``.env`` file in the
working directory is loaded first; variables already set in the environment
win over values from the file.
"""
from __future__ import annotations

import os

from dotenv import find_dotenv, load_dotenv

from bitstore.models import Provider, StorageDescriptor

DEFAULT_CONTAINER = "./assetstore"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _get_env_var(*names: str, default: str = "") -> str:
    """Return the first non-empty variable among ``names``."""
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def load_descriptor(env_file: str | None = None) -> StorageDescriptor:
    """Build a StorageDescriptor from ``BITSTORE_*`` environment variables.

    Raises:
        ValueError: unknown provider or malformed boolean/integer values.
    """
    load_dotenv(env_file or find_dotenv(usecwd=True))

    return StorageDescriptor(
        provider=Provider.parse(_get_env_var("BITSTORE_PROVIDER", default="filesystem")),
        container=_get_env_var("BITSTORE_CONTAINER", default=DEFAULT_CONTAINER),
        subfolder=_get_env_var("BITSTORE_SUBFOLDER"),
        identity=_get_env_var("BITSTORE_IDENTITY", "AWS_ACCESS_KEY_ID"),
        credential=_get_env_var("BITSTORE_CREDENTIAL", "AWS_SECRET_ACCESS_KEY"),
        region=_get_env_var("BITSTORE_REGION", "AWS_REGION"),
        endpoint=_get_env_var("BITSTORE_ENDPOINT"),
        use_relative_path=_get_bool("BITSTORE_USE_RELATIVE_PATH", True),
        enabled=_get_bool("BITSTORE_ENABLED", True),
        staging_dir=_get_env_var("BITSTORE_STAGING_DIR") or None,
        digits_per_level=_get_int("BITSTORE_DIGITS_PER_LEVEL", 2),
        directory_levels=_get_int("BITSTORE_DIRECTORY_LEVELS", 3),
    )
