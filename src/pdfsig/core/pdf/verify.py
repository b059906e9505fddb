# pyright: reportUnknownMemberType=false
"""
Structural verification of embedded PDF signatures.

Every ``/Type /Sig`` dictionary is located by a tolerant text scan and
its ByteRange, Contents, Reason, Location, M and Name entries are read.
``valid`` means the Contents hex holds a plausibly sized DER blob; it
says nothing about the cryptographic signature or the trust chain, and
``trusted`` is always False.  ``digest_ok`` is reported separately: the
CMS messageDigest compared with a fresh hash of the ByteRange, using the
SignerInfo digestAlgorithm.
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass

from ...constants import MAX_PLACEHOLDER_SIZE
from ...errors import CryptoError, StructuralError
from ..cert_info import extract_cert_info_from_cms
from .asn1 import MIN_CMS_SIZE, der_from_padded_hex
from .byterange import BYTERANGE_PATTERN, hash_byte_range
from .cms import extract_digest_algorithm, extract_message_digest
from .dictionary import scan_literal_string
from .parser import pdf_text

__all__ = [
    "DocumentCheck",
    "SignatureInfo",
    "check_document_structure",
    "decode_literal_string",
    "verify_signatures",
]

_logger = logging.getLogger(__name__)

_SIG_TYPE_RE = re.compile(r"/Type\s*/Sig\b")
_OBJ_HEADER_RE = re.compile(r"(?<![0-9])(\d+)\s+(\d+)\s+obj\b")
_CONTENTS_RE = re.compile(r"/Contents\s*<([0-9A-Fa-f\s]*)>")

# Bytes searched before /Type /Sig for the enclosing object header
_LOOKBEHIND = 500
# Bytes searched after /Type /Sig; must cover a full default placeholder
_LOOKAHEAD = 8192 * 2 + 2000
# Upper bound when the dictionary ends with endobj (large placeholders)
_MAX_LOOKAHEAD = MAX_PLACEHOLDER_SIZE * 2 + 2000

_UNKNOWN_SIGNER = "Unknown"

_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "b": "\b", "f": "\f", "(": "(", ")": ")", "\\": "\\"}


@dataclass(frozen=True)
class SignatureInfo:
    """What the verifier learned about one signature dictionary."""

    signer_name: str
    signed_at: str
    valid: bool  # structural only
    trusted: bool  # always False; no chain validation is performed
    reason: str
    field_name: str | None = None
    location: str = ""
    byte_range: tuple[int, int, int, int] | None = None
    digest_ok: bool | None = None  # None when the digest could not be compared


@dataclass(frozen=True)
class DocumentCheck:
    """Result of opening the whole document with pikepdf (informational)."""

    ok: bool
    page_count: int
    detail: str


def decode_literal_string(raw: str) -> str:
    """Unescape the body of a PDF literal string (without the parentheses)."""
    out: list[str] = []
    i = 0
    n = len(raw)
    while i < n:
        c = raw[i]
        if c != "\\" or i + 1 >= n:
            out.append(c)
            i += 1
            continue
        nxt = raw[i + 1]
        if nxt in _ESCAPES:
            out.append(_ESCAPES[nxt])
            i += 2
        elif nxt in "01234567":
            j = i + 1
            while j < n and j < i + 4 and raw[j] in "01234567":
                j += 1
            out.append(chr(int(raw[i + 1 : j], 8) & 0xFF))
            i = j
        elif nxt in "\r\n":
            # Line continuation
            i += 2
            if nxt == "\r" and i < n and raw[i] == "\n":
                i += 1
        else:
            out.append(nxt)
            i += 2
    return "".join(out)


def _parse_string_field(name: str, window: str) -> str | None:
    m = re.search(rf"/{name}\s*\(", window)
    if not m:
        return None
    start = m.end() - 1
    try:
        end = scan_literal_string(window, start)
    except StructuralError:
        return None
    return decode_literal_string(window[start + 1 : end - 1])


def _signature_window(text: str, sig_pos: int) -> tuple[str, int | None]:
    """Return the text of the object holding /Type /Sig and its object number."""
    back_start = max(0, sig_pos - _LOOKBEHIND)
    headers = list(_OBJ_HEADER_RE.finditer(text, back_start, sig_pos))
    if headers:
        start = headers[-1].start()
        obj_num: int | None = int(headers[-1].group(1))
    else:
        start = back_start
        obj_num = None
    endobj = text.find("endobj", sig_pos, sig_pos + _MAX_LOOKAHEAD)
    end = endobj if endobj >= 0 else min(len(text), sig_pos + _LOOKAHEAD)
    return text[start:end], obj_num


def _find_field_name(text: str, sig_obj_num: int) -> str | None:
    """Return /T of the (last) widget whose /V points at the signature object."""
    name = None
    for m in re.finditer(rf"/V\s+{sig_obj_num}\s+\d+\s+R(?![0-9])", text):
        obj_start = text.rfind(" obj", 0, m.start())
        obj_end = text.find("endobj", m.end())
        if obj_start < 0 or obj_end < 0:
            continue
        found = _parse_string_field("T", text[obj_start:obj_end])
        if found is not None:
            name = found
    return name


def _signer_name(window: str, cms_der: bytes | None) -> str:
    name = _parse_string_field("Name", window)
    if name:
        return name
    if cms_der is not None:
        try:
            cn = extract_cert_info_from_cms(cms_der).get("name")
        except CryptoError:
            _logger.debug("No signer certificate readable from CMS", exc_info=True)
            cn = None
        if cn:
            return cn
    return _UNKNOWN_SIGNER


def _digest_matches(
    pdf_bytes: bytes, byte_range: tuple[int, int, int, int], cms_der: bytes
) -> bool | None:
    expected = extract_message_digest(cms_der)
    algorithm = extract_digest_algorithm(cms_der)
    if expected is None or algorithm is None:
        return None
    try:
        actual = hash_byte_range(pdf_bytes, byte_range, algorithm)
    except StructuralError as e:
        _logger.debug("Cannot hash ByteRange %s: %s", byte_range, e)
        return False
    return actual == expected


def verify_signatures(pdf_bytes: bytes) -> list[SignatureInfo]:
    """Return one SignatureInfo per signature dictionary, in file order.

    Dictionaries without a ByteRange or Contents entry are skipped.  An
    unsigned document yields an empty list.
    """
    text = pdf_text(pdf_bytes)
    results: list[SignatureInfo] = []

    for sig_match in _SIG_TYPE_RE.finditer(text):
        window, obj_num = _signature_window(text, sig_match.start())

        br_match = re.search(BYTERANGE_PATTERN.decode("ascii"), window)
        contents_match = _CONTENTS_RE.search(window)
        if br_match is None or contents_match is None:
            _logger.debug("Skipping /Type /Sig at %d: no ByteRange or Contents", sig_match.start())
            continue

        byte_range = (
            int(br_match.group(1)),
            int(br_match.group(2)),
            int(br_match.group(3)),
            int(br_match.group(4)),
        )
        hex_str = re.sub(r"\s", "", contents_match.group(1))
        cms_der: bytes | None
        try:
            cms_der = der_from_padded_hex(hex_str)
        except ValueError as e:
            _logger.debug("Contents at %d is not a DER blob: %s", sig_match.start(), e)
            cms_der = None
        valid = cms_der is not None and len(cms_der) > MIN_CMS_SIZE

        if valid and cms_der is not None:
            digest_ok = _digest_matches(pdf_bytes, byte_range, cms_der)
        else:
            digest_ok = None

        info = SignatureInfo(
            signer_name=_signer_name(window, cms_der if valid else None),
            signed_at=_parse_string_field("M", window) or "",
            valid=valid,
            trusted=False,
            reason=_parse_string_field("Reason", window) or "",
            field_name=_find_field_name(text, obj_num) if obj_num is not None else None,
            location=_parse_string_field("Location", window) or "",
            byte_range=byte_range,
            digest_ok=digest_ok,
        )
        _logger.debug(
            "Signature %s: valid=%s digest_ok=%s signer=%r",
            info.field_name,
            info.valid,
            info.digest_ok,
            info.signer_name,
        )
        results.append(info)

    _logger.info("Found %d signature(s)", len(results))
    return results


def check_document_structure(pdf_bytes: bytes) -> DocumentCheck:
    """Open the document with pikepdf as a sanity check.

    Informational only: some valid PDFs have page trees pikepdf rejects,
    and the outcome never changes a SignatureInfo.
    """
    import pikepdf  # C extension, loaded only when a structure check runs

    try:
        with pikepdf.open(io.BytesIO(pdf_bytes)) as pdf:
            page_count = len(pdf.pages)
    except (ValueError, RuntimeError, OSError, pikepdf.PdfError) as e:
        _logger.warning("pikepdf structural check failed (non-fatal): %s", e)
        return DocumentCheck(ok=False, page_count=0, detail=f"structural warning -- {e}")
    return DocumentCheck(ok=True, page_count=page_count, detail=f"valid PDF, {page_count} page(s)")
