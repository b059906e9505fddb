"""
On-disk store for saved signing defaults (~/.pdfsig/config.json).

The file is a flat JSON object.  Reads are tolerant: a missing,
corrupted or non-object file reads as empty.  Writes replace the file
atomically and keep it private to the user.
"""

from __future__ import annotations

__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE",
    "read_config",
    "update_config",
    "write_config",
]

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, cast

from ..ui.helpers import atomic_write

_logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".pdfsig"
CONFIG_FILE = CONFIG_DIR / "config.json"


def read_config() -> dict[str, object]:
    """Return the stored JSON object as-is, or ``{}`` if there is none."""
    try:
        data: Any = json.loads(CONFIG_FILE.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except json.JSONDecodeError as e:
        _logger.warning("Config file %s corrupted, ignoring: %s", CONFIG_FILE, e)
        return {}
    except OSError as e:
        _logger.warning("Cannot read config file %s: %s", CONFIG_FILE, e)
        return {}
    if not isinstance(data, dict):
        _logger.warning("Config file %s is not a JSON object, ignoring", CONFIG_FILE)
        return {}
    return cast("dict[str, object]", data)


def write_config(data: Mapping[str, object]) -> None:
    """Replace the config file with data (directory 0700, file 0600)."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True, mode=0o700)
    if os.name != "nt":
        try:
            CONFIG_DIR.chmod(0o700)
        except OSError:
            _logger.warning("Failed to set restrictive permissions on %s", CONFIG_DIR)
    content = json.dumps(dict(data), indent=2, ensure_ascii=False) + "\n"
    # mkstemp creates the temp file 0600, and the rename keeps that mode
    atomic_write(CONFIG_FILE, content.encode("utf-8"))


def update_config(changes: Mapping[str, object | None]) -> dict[str, object]:
    """Apply changes to the stored object and write it back.

    A None value removes its key.  Keys not named in changes, including
    ones this version does not know, are kept.

    Returns:
        The object that was written.
    """
    data = read_config()
    for key, value in changes.items():
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value
    write_config(data)
    return data
