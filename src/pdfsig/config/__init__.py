"""
Configuration management.

Import from this package directly instead of the individual submodules.
"""

from __future__ import annotations

from .config import (
    CONFIG_DIR,
    CONFIG_FILE,
    SigningDefaults,
    get_signing_defaults,
    reset_config,
    save_signing_defaults,
)

__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE",
    "SigningDefaults",
    "get_signing_defaults",
    "reset_config",
    "save_signing_defaults",
]
