"""
Application-wide constants for pdfsig.

Placeholder sizes, PDF markers, environment variable names and signing
defaults are centralized here.
"""

from __future__ import annotations

import importlib.metadata

try:
    __version__ = importlib.metadata.version("pdfsig")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.3.0"

__all__ = [
    "DEFAULT_CONTACT_INFO",
    "DEFAULT_LOCATION",
    "DEFAULT_MEDIA_BOX",
    "DEFAULT_PLACEHOLDER_SIZE",
    "DEFAULT_REASON",
    "ENV_CONTACT",
    "ENV_LOCATION",
    "ENV_LOG_LEVEL",
    "ENV_PLACEHOLDER_SIZE",
    "ENV_REASON",
    "ENV_TSA_URL",
    "MAX_PLACEHOLDER_SIZE",
    "MIN_PLACEHOLDER_SIZE",
    "PDF_MAGIC",
    "SIGNATURE_FIELD_PREFIX",
    "__version__",
]

# ── PDF markers ──────────────────────────────────────────────────────

# PDF files start with this magic header
PDF_MAGIC = b"%PDF-"

# US Letter, used when a page has no readable /MediaBox
DEFAULT_MEDIA_BOX = (0.0, 0.0, 612.0, 792.0)

# Signature fields are named Signature1, Signature2, ...
SIGNATURE_FIELD_PREFIX = "Signature"


# ── Placeholder sizes (bytes of DER) ─────────────────────────────────

# 8 KB comfortably holds a CMS container with a short certificate chain
DEFAULT_PLACEHOLDER_SIZE = 8192

MIN_PLACEHOLDER_SIZE = 1024

# 1 MB of DER is already far beyond any realistic chain + timestamp
MAX_PLACEHOLDER_SIZE = 1024 * 1024


# ── Signing defaults ─────────────────────────────────────────────────

DEFAULT_REASON = ""
DEFAULT_LOCATION = ""
DEFAULT_CONTACT_INFO = ""


# ── Environment variables ────────────────────────────────────────────

ENV_REASON = "PDFSIG_REASON"
ENV_LOCATION = "PDFSIG_LOCATION"
ENV_CONTACT = "PDFSIG_CONTACT"
ENV_PLACEHOLDER_SIZE = "PDFSIG_PLACEHOLDER_SIZE"
ENV_TSA_URL = "PDFSIG_TSA_URL"
ENV_LOG_LEVEL = "PDFSIG_LOG_LEVEL"
