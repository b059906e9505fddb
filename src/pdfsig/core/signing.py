"""
Core signing pipelines -- local PAdES-B-B signing and the two-phase
external signing split.

All functions take and return ``bytes``; nothing here touches the file
system.  File-level wrappers with atomic writes live in ``api.py``.
"""

from __future__ import annotations

__all__ = [
    "HASH_ALGORITHM_NAME",
    "PreparedSignature",
    "SignatureOptions",
    "complete_external_signing",
    "prepare_for_external_signing",
    "prepare_signature",
    "sign_pdf",
]

import logging
from dataclasses import dataclass, replace
from datetime import datetime

from ..constants import (
    DEFAULT_PLACEHOLDER_SIZE,
    MAX_PLACEHOLDER_SIZE,
    MIN_PLACEHOLDER_SIZE,
    PDF_MAGIC,
)
from ..errors import CryptoError, StructuralError
from .cert_info import signer_name_from_certificate
from .identity import SigningIdentity
from .pdf import (
    ByteRange,
    apply_byte_range,
    build_cms_container,
    build_signature_update,
    compute_byte_range,
    embed_cms,
    find_append_point,
    find_eof,
    find_last_byte_range,
    find_object_dict,
    find_page_obj_num,
    hash_byte_range,
    next_signature_field_name,
    parse_trailer,
    pdf_text,
    read_page_info,
    verify_signatures,
)

_logger = logging.getLogger(__name__)

# Name reported alongside the digest for external signers
HASH_ALGORITHM_NAME = "SHA-256"


@dataclass(frozen=True)
class SignatureOptions:
    """Options for the signature dictionary and its placement.

    Attributes:
        reason: /Reason entry.
        location: /Location entry.
        contact_info: /ContactInfo entry.
        signer_name: /Name entry. For local signing, defaults to the
            certificate's CN.
        page_index: 0-based page the signature widget is attached to.
        placeholder_size: Bytes reserved for the DER CMS container.
        signing_time: /M timestamp; defaults to now (UTC).
        tsa_url: Timestamp authority URL. Accepted for forward
            compatibility; no timestamp is requested.
    """

    reason: str = ""
    location: str = ""
    contact_info: str = ""
    signer_name: str | None = None
    page_index: int = 0
    placeholder_size: int = DEFAULT_PLACEHOLDER_SIZE
    signing_time: datetime | None = None
    tsa_url: str | None = None


_OPTIONS_FIELDS = frozenset(
    (
        "reason",
        "location",
        "contact_info",
        "signer_name",
        "page_index",
        "placeholder_size",
        "signing_time",
        "tsa_url",
    )
)


@dataclass(frozen=True)
class PreparedSignature:
    """A PDF with a signature field whose /Contents is still zeros."""

    pdf_bytes: bytes
    byte_range: ByteRange
    digest: bytes
    hash_algorithm: str
    contents_offset: int  # offset of '<'
    placeholder_size: int


def _resolve_options(
    options: SignatureOptions | None, kwargs: dict[str, object]
) -> SignatureOptions:
    """Merge explicit keyword arguments into an options instance.

    Unknown keys raise TypeError.
    """
    unknown = set(kwargs) - _OPTIONS_FIELDS
    if unknown:
        raise TypeError(f"Unexpected keyword arguments: {', '.join(sorted(unknown))}")
    if options is None:
        options = SignatureOptions()
    if not kwargs:
        return options
    return replace(options, **kwargs)  # type: ignore[arg-type]


def _validate_pdf(pdf_bytes: bytes) -> None:
    """Raise StructuralError if bytes don't look like a PDF."""
    if not pdf_bytes or not pdf_bytes.startswith(PDF_MAGIC):
        raise StructuralError("Input does not appear to be a PDF file.")


def _validate_options(opts: SignatureOptions) -> None:
    if not MIN_PLACEHOLDER_SIZE <= opts.placeholder_size <= MAX_PLACEHOLDER_SIZE:
        raise ValueError(
            f"placeholder_size={opts.placeholder_size} out of range "
            f"[{MIN_PLACEHOLDER_SIZE}, {MAX_PLACEHOLDER_SIZE}]"
        )
    if opts.page_index < 0:
        raise ValueError(f"page_index must be non-negative, got {opts.page_index}")


# ── Preparation ──────────────────────────────────────────────────────


def prepare_signature(
    pdf_bytes: bytes,
    options: SignatureOptions | None = None,
    **kwargs: object,
) -> PreparedSignature:
    """Append a signature field and compute the ByteRange digest.

    No key material is involved.  The returned PDF is final except for
    the zero-filled /Contents placeholder.

    Raises:
        StructuralError: If the PDF structure cannot be read.
        ValueError: If an option is out of range.
    """
    _validate_pdf(pdf_bytes)
    opts = _resolve_options(options, kwargs)
    _validate_options(opts)

    if opts.tsa_url:
        _logger.warning("Timestamping is not supported; ignoring TSA URL %s", opts.tsa_url)

    # Step 1: Parse existing structure
    _logger.debug("Step 1: Parsing PDF structure (%d bytes)", len(pdf_bytes))
    eof = find_eof(pdf_bytes)
    trailer = parse_trailer(pdf_bytes, eof)
    text = pdf_text(pdf_bytes)
    page_num = find_page_obj_num(text, trailer.root_obj_num, opts.page_index)
    page_info = read_page_info(text, page_num)
    root_content = find_object_dict(text, trailer.root_obj_num)
    if root_content is None:
        raise StructuralError(f"Cannot read catalog object {trailer.root_obj_num}.")
    field_name = next_signature_field_name(text)
    append_point = find_append_point(pdf_bytes, eof)

    # Step 2: Build the incremental update
    _logger.debug("Step 2: Building update for field %s on page object %d", field_name, page_num)
    update = build_signature_update(
        trailer,
        page_info,
        root_content,
        text,
        field_name=field_name,
        append_offset=append_point,
        reason=opts.reason,
        location=opts.location,
        contact_info=opts.contact_info,
        signer_name=opts.signer_name,
        signing_time=opts.signing_time,
        placeholder_size=opts.placeholder_size,
    )
    prepared = pdf_bytes[:append_point] + update.data

    # Step 3: Fill in the ByteRange
    gap_start = append_point + update.contents_hex_offset
    byte_range = compute_byte_range(len(prepared), gap_start, opts.placeholder_size)
    _logger.debug("Step 3: ByteRange %s", list(byte_range))
    byterange_at = append_point + update.byterange_placeholder_offset
    prepared = apply_byte_range(prepared, byte_range, byterange_at)

    # Step 4: Hash everything outside the gap
    digest = hash_byte_range(prepared, byte_range)
    _logger.debug("Step 4: ByteRange SHA-256 %s", digest.hex())

    return PreparedSignature(
        pdf_bytes=prepared,
        byte_range=byte_range,
        digest=digest,
        hash_algorithm=HASH_ALGORITHM_NAME,
        contents_offset=gap_start,
        placeholder_size=opts.placeholder_size,
    )


# ── Local signing ────────────────────────────────────────────────────


def sign_pdf(
    pdf_bytes: bytes,
    identity: SigningIdentity,
    options: SignatureOptions | None = None,
    **kwargs: object,
) -> bytes:
    """
    Sign a PDF with an embedded PAdES-B-B signature.

    1. Prepare the signature field and hash the ByteRange
    2. Build the CMS container with the identity's signer
    3. Embed the CMS into the placeholder
    4. Check the result with the verifier

    Args:
        pdf_bytes: Raw PDF file content.
        identity: Signer capability and certificate chain.
        options: Signature options; keyword arguments (reason, location,
            contact_info, signer_name, page_index, placeholder_size,
            signing_time, tsa_url) override its fields.

    Returns:
        The signed PDF: the original bytes plus one incremental update.

    Raises:
        StructuralError: If the PDF structure cannot be read.
        CryptoError: If the key algorithm is unsupported or signing fails.
        CapacityError: If the CMS container does not fit the placeholder.
    """
    opts = _resolve_options(options, kwargs)
    if opts.signer_name is None:
        try:
            opts = replace(opts, signer_name=signer_name_from_certificate(identity.certificate))
        except CryptoError as e:
            _logger.warning("Cannot read signer name from certificate: %s", e)

    _logger.info(
        "Signing PDF: %d bytes, page=%d, algorithm=%s",
        len(pdf_bytes),
        opts.page_index,
        identity.signer.algorithm,
    )

    prepared = prepare_signature(pdf_bytes, opts)

    # messageDigest must use the same algorithm the SignerInfo declares
    digest = prepared.digest
    if identity.signer.hash_algorithm != "sha256":
        digest = hash_byte_range(
            prepared.pdf_bytes, prepared.byte_range, identity.signer.hash_algorithm
        )

    _logger.debug("Building CMS container (%s)", identity.signer.hash_algorithm)
    cms_der = build_cms_container(digest, identity)
    _logger.debug("CMS container: %d bytes", len(cms_der))

    signed = embed_cms(
        prepared.pdf_bytes, prepared.contents_offset, prepared.placeholder_size, cms_der
    )

    # Post-sign check on the signature just written
    infos = verify_signatures(signed)
    last = infos[-1] if infos else None
    if last is None or not last.valid or last.digest_ok is False:
        _logger.error("Post-sign check failed: %r", last)
        raise StructuralError("Post-sign check failed -- the signed PDF may be corrupt.")

    _logger.info("Signed PDF complete: %d bytes", len(signed))
    return signed


# ── External signing ─────────────────────────────────────────────────


def prepare_for_external_signing(
    pdf_bytes: bytes,
    options: SignatureOptions | None = None,
    **kwargs: object,
) -> tuple[bytes, bytes, str]:
    """Prepare a PDF for a signer outside this process.

    Returns:
        (prepared_bytes, digest, "SHA-256"). The external signer builds a
        CMS container whose messageDigest is digest and hands it to
        :func:`complete_external_signing`.
    """
    prepared = prepare_signature(pdf_bytes, options, **kwargs)
    _logger.info(
        "Prepared PDF for external signing: %d bytes, digest %s",
        len(prepared.pdf_bytes),
        prepared.digest.hex(),
    )
    return prepared.pdf_bytes, prepared.digest, prepared.hash_algorithm


def complete_external_signing(prepared_bytes: bytes, cms_der: bytes) -> bytes:
    """Embed an externally produced CMS container into a prepared PDF.

    The placeholder is found through the last /ByteRange, whose gap must
    still be all zeros.  The input bytes are never modified.

    Raises:
        CapacityError: If the CMS hex is longer than the placeholder.
        StructuralError: If there is no unfilled placeholder.
    """
    byte_range = find_last_byte_range(prepared_bytes)
    _, gap_start, gap_end, _ = byte_range
    placeholder_size = (gap_end - gap_start - 2) // 2
    if placeholder_size <= 0:
        raise StructuralError(f"Invalid ByteRange {list(byte_range)} in prepared PDF.")

    hex_body = prepared_bytes[gap_start + 1 : gap_end - 1]
    if hex_body.strip(b"0"):
        raise StructuralError("The last signature placeholder is already filled.")

    signed = embed_cms(prepared_bytes, gap_start, placeholder_size, cms_der)
    _logger.info("Completed external signing: %d-byte CMS embedded", len(cms_der))
    return signed
