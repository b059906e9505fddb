"""High-level file API.

Each function reads its whole input, runs the in-memory pipeline from
:mod:`pdfsig.core`, and only then writes the result with an atomic
rename.  If any stage fails, no output file is created or replaced.

Unset signing options are filled from :func:`~pdfsig.config.get_signing_defaults`.
For lower-level control use :func:`~pdfsig.core.signing.sign_pdf` and
friends directly on bytes.
"""

from __future__ import annotations

__all__ = [
    "complete_file",
    "load_identity",
    "overlay_file",
    "prepare_file",
    "sign_file",
    "verify_file",
]

import logging
from collections.abc import Iterable
from dataclasses import replace
from pathlib import Path

from .config import get_signing_defaults
from .core.appearance import load_signature_image
from .core.identity import SigningIdentity
from .core.pdf import Placement, SignatureInfo, add_signature_images, verify_signatures
from .core.signing import (
    SignatureOptions,
    complete_external_signing,
    prepare_for_external_signing,
    sign_pdf,
)
from .ui.helpers import atomic_write

_logger = logging.getLogger(__name__)


def _options_with_defaults(options: SignatureOptions | None) -> SignatureOptions:
    """Use configured defaults when the caller passed no options object."""
    if options is not None:
        return options
    defaults = get_signing_defaults()
    return SignatureOptions(
        reason=defaults.reason,
        location=defaults.location,
        contact_info=defaults.contact_info,
        placeholder_size=defaults.placeholder_size,
        tsa_url=defaults.tsa_url,
    )


def load_identity(p12_path: str | Path, password: str | bytes | None = None) -> SigningIdentity:
    """Load a signing identity from a PKCS#12 file.

    Raises:
        OSError: If the file cannot be read.
        CryptoError: If the file cannot be decrypted.
    """
    return SigningIdentity.from_pkcs12(Path(p12_path).read_bytes(), password)


def sign_file(
    input_path: str | Path,
    output_path: str | Path,
    identity: SigningIdentity,
    options: SignatureOptions | None = None,
    **kwargs: object,
) -> Path:
    """Sign a PDF file and write the signed copy to output_path.

    Keyword arguments override fields of ``options`` (see
    :class:`~pdfsig.core.signing.SignatureOptions`).

    Returns:
        The output path.
    """
    src = Path(input_path)
    dst = Path(output_path)
    pdf_bytes = src.read_bytes()
    opts = replace(_options_with_defaults(options), **kwargs)  # type: ignore[arg-type]
    signed = sign_pdf(pdf_bytes, identity, opts)
    atomic_write(dst, signed)
    _logger.info("Wrote signed PDF %s (%d bytes)", dst, len(signed))
    return dst


def prepare_file(
    input_path: str | Path,
    output_path: str | Path,
    options: SignatureOptions | None = None,
    **kwargs: object,
) -> tuple[bytes, str]:
    """Write a prepared PDF for external signing.

    Returns:
        (digest, hash_algorithm_name) to hand to the external signer.
    """
    src = Path(input_path)
    dst = Path(output_path)
    pdf_bytes = src.read_bytes()
    opts = replace(_options_with_defaults(options), **kwargs)  # type: ignore[arg-type]
    prepared, digest, algorithm = prepare_for_external_signing(pdf_bytes, opts)
    atomic_write(dst, prepared)
    _logger.info("Wrote prepared PDF %s (%d bytes)", dst, len(prepared))
    return digest, algorithm


def complete_file(
    prepared_path: str | Path,
    cms: bytes | str | Path,
    output_path: str | Path,
) -> Path:
    """Embed an external CMS container into a prepared PDF file.

    Args:
        prepared_path: PDF written by :func:`prepare_file`.
        cms: DER bytes, or the path of a .p7s file holding them.
        output_path: Where to write the signed PDF.

    Returns:
        The output path.
    """
    prepared = Path(prepared_path).read_bytes()
    cms_der = cms if isinstance(cms, bytes) else Path(cms).read_bytes()
    signed = complete_external_signing(prepared, cms_der)
    dst = Path(output_path)
    atomic_write(dst, signed)
    _logger.info("Wrote signed PDF %s (%d bytes)", dst, len(signed))
    return dst


def verify_file(path: str | Path) -> list[SignatureInfo]:
    """Return the signatures found in a PDF file."""
    return verify_signatures(Path(path).read_bytes())


def overlay_file(
    input_path: str | Path,
    output_path: str | Path,
    image_path: str | Path,
    placements: Iterable[Placement],
) -> Path:
    """Draw an image on one or more pages and write the result.

    Each placement becomes its own incremental update, applied in order.

    Returns:
        The output path.
    """
    pdf_bytes = Path(input_path).read_bytes()
    image = load_signature_image(image_path)
    result = add_signature_images(pdf_bytes, image, placements)
    dst = Path(output_path)
    atomic_write(dst, result)
    _logger.info("Wrote overlaid PDF %s (%d bytes)", dst, len(result))
    return dst
