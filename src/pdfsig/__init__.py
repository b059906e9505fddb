"""
pdfsig -- PAdES-B-B digital signatures for existing PDF documents.

Appends signatures as incremental updates, builds detached CMS
containers over the ByteRange, supports two-phase external signing,
and verifies embedded signatures structurally.
"""

from __future__ import annotations

from .api import complete_file, load_identity, overlay_file, prepare_file, sign_file, verify_file
from .constants import __version__
from .core.appearance import ImageData, load_signature_image
from .core.identity import LocalSigner, Signer, SigningIdentity
from .core.pdf import (
    Placement,
    SignatureInfo,
    add_signature_image,
    add_signature_images,
    build_cms_container,
    verify_signatures,
)
from .core.signing import (
    PreparedSignature,
    SignatureOptions,
    complete_external_signing,
    prepare_for_external_signing,
    prepare_signature,
    sign_pdf,
)
from .errors import CapacityError, ConfigError, CryptoError, PdfSigError, StructuralError

__all__ = [
    "CapacityError",
    "ConfigError",
    "CryptoError",
    "ImageData",
    "LocalSigner",
    "PdfSigError",
    "Placement",
    "PreparedSignature",
    "SignatureInfo",
    "SignatureOptions",
    "Signer",
    "SigningIdentity",
    "StructuralError",
    "__version__",
    "add_signature_image",
    "add_signature_images",
    "build_cms_container",
    "complete_external_signing",
    "complete_file",
    "load_identity",
    "load_signature_image",
    "overlay_file",
    "prepare_file",
    "prepare_for_external_signing",
    "prepare_signature",
    "sign_file",
    "sign_pdf",
    "verify_file",
    "verify_signatures",
]
