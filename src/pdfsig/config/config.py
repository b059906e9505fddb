"""
Signing defaults for pdfsig.

Stores the default reason, location, contact info, placeholder size and
TSA URL in ~/.pdfsig/config.json.  Environment variables override the
file; built-in constants fill whatever is left.
"""

from __future__ import annotations

__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE",
    "SigningDefaults",
    "get_signing_defaults",
    "reset_config",
    "save_signing_defaults",
]

import logging
import os
from dataclasses import dataclass

from ..constants import (
    DEFAULT_CONTACT_INFO,
    DEFAULT_LOCATION,
    DEFAULT_PLACEHOLDER_SIZE,
    DEFAULT_REASON,
    ENV_CONTACT,
    ENV_LOCATION,
    ENV_PLACEHOLDER_SIZE,
    ENV_REASON,
    ENV_TSA_URL,
    MAX_PLACEHOLDER_SIZE,
    MIN_PLACEHOLDER_SIZE,
)
from ..errors import ConfigError
from ._storage import CONFIG_DIR, CONFIG_FILE, read_config, update_config, write_config

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SigningDefaults:
    """Resolved defaults applied when a caller leaves an option unset."""

    reason: str = DEFAULT_REASON
    location: str = DEFAULT_LOCATION
    contact_info: str = DEFAULT_CONTACT_INFO
    placeholder_size: int = DEFAULT_PLACEHOLDER_SIZE
    tsa_url: str | None = None


def _env_str(name: str) -> str | None:
    value = os.environ.get(name, "").strip()
    return value or None


def _env_placeholder_size() -> int | None:
    raw = _env_str(ENV_PLACEHOLDER_SIZE)
    if raw is None:
        return None
    try:
        size = int(raw)
    except ValueError:
        _logger.warning("Invalid %s value %r, ignoring", ENV_PLACEHOLDER_SIZE, raw)
        return None
    if not MIN_PLACEHOLDER_SIZE <= size <= MAX_PLACEHOLDER_SIZE:
        _logger.warning(
            "%s=%d out of range [%d, %d], ignoring",
            ENV_PLACEHOLDER_SIZE,
            size,
            MIN_PLACEHOLDER_SIZE,
            MAX_PLACEHOLDER_SIZE,
        )
        return None
    return size


def _file_str(stored: dict[str, object], key: str) -> str | None:
    value = stored.get(key)
    return value if isinstance(value, str) else None


def _file_placeholder_size(stored: dict[str, object]) -> int | None:
    value = stored.get("placeholder_size")
    # bool is an int subclass; true is not a size
    if not isinstance(value, int) or isinstance(value, bool):
        return None
    if not MIN_PLACEHOLDER_SIZE <= value <= MAX_PLACEHOLDER_SIZE:
        _logger.warning(
            "Config placeholder_size=%d out of range [%d, %d], ignoring",
            value,
            MIN_PLACEHOLDER_SIZE,
            MAX_PLACEHOLDER_SIZE,
        )
        return None
    return value


def get_signing_defaults() -> SigningDefaults:
    """
    Resolve signing defaults.

    Priority: env vars > config file > built-in constants.  File values
    of the wrong type are skipped.
    """
    stored = read_config()
    size = _env_placeholder_size() or _file_placeholder_size(stored)
    return SigningDefaults(
        reason=_env_str(ENV_REASON) or _file_str(stored, "reason") or DEFAULT_REASON,
        location=_env_str(ENV_LOCATION) or _file_str(stored, "location") or DEFAULT_LOCATION,
        contact_info=(
            _env_str(ENV_CONTACT) or _file_str(stored, "contact_info") or DEFAULT_CONTACT_INFO
        ),
        placeholder_size=size or DEFAULT_PLACEHOLDER_SIZE,
        tsa_url=_env_str(ENV_TSA_URL) or _file_str(stored, "tsa_url"),
    )


def save_signing_defaults(
    *,
    reason: str | None = None,
    location: str | None = None,
    contact_info: str | None = None,
    placeholder_size: int | None = None,
    tsa_url: str | None = None,
) -> None:
    """Merge the given values into the config file.

    Arguments left as None keep their saved value; an empty string
    removes the key.

    Raises:
        ConfigError: If placeholder_size is out of range.
    """
    if placeholder_size is not None and not (
        MIN_PLACEHOLDER_SIZE <= placeholder_size <= MAX_PLACEHOLDER_SIZE
    ):
        raise ConfigError(
            f"placeholder_size must be between {MIN_PLACEHOLDER_SIZE} "
            f"and {MAX_PLACEHOLDER_SIZE}, got {placeholder_size}"
        )

    changes: dict[str, object | None] = {}
    for key, value in (
        ("reason", reason),
        ("location", location),
        ("contact_info", contact_info),
        ("tsa_url", tsa_url),
    ):
        if value is not None:
            changes[key] = value or None
    if placeholder_size is not None:
        changes["placeholder_size"] = placeholder_size
    update_config(changes)
    _logger.info("Saved signing defaults (%s) to %s", ", ".join(sorted(changes)), CONFIG_FILE)


def reset_config() -> None:
    """Clear every saved default."""
    write_config({})
