"""ByteRange computation, hashing and fixed-length placeholder substitution.

The signed region of a PDF is everything except the ``/Contents`` hex
string, delimiters included::

    [0, gap_start, gap_end, total - gap_end]

where ``pdf[gap_start] == '<'`` and ``pdf[gap_end - 1] == '>'``.  Both
placeholders are written at their final length before hashing, so
filling them in never moves a byte.
"""

from __future__ import annotations

import hashlib
import logging
import re

from ...errors import CapacityError, StructuralError
from .objects import BYTERANGE_PLACEHOLDER
from .parser import replace_fixed_length

__all__ = [
    "BYTERANGE_PATTERN",
    "ByteRange",
    "apply_byte_range",
    "compute_byte_range",
    "embed_cms",
    "find_last_byte_range",
    "format_byte_range",
    "hash_byte_range",
]

_logger = logging.getLogger(__name__)

BYTERANGE_PATTERN = rb"/ByteRange\s*\[\s*(\d+)\s+(\d+)\s+(\d+)\s+(\d+)\s*\]"

ByteRange = tuple[int, int, int, int]


def compute_byte_range(total_length: int, gap_start: int, placeholder_size: int) -> ByteRange:
    """Return the ByteRange for a ``<hex>`` gap of placeholder_size bytes at gap_start."""
    gap_end = gap_start + placeholder_size * 2 + 2
    if gap_end > total_length:
        raise StructuralError(
            f"Contents gap [{gap_start}, {gap_end}) extends past end of file ({total_length})."
        )
    return (0, gap_start, gap_end, total_length - gap_end)


def format_byte_range(byte_range: ByteRange, width: int = len(BYTERANGE_PLACEHOLDER)) -> bytes:
    """Render ``[a b c d]`` right-padded with spaces to exactly width bytes.

    Raises:
        CapacityError: If the literal is longer than width.
    """
    literal = "[{} {} {} {}]".format(*byte_range).encode("ascii")
    if len(literal) > width:
        raise CapacityError(
            f"ByteRange {literal.decode('ascii')} does not fit in {width} bytes.",
            required=len(literal),
            available=width,
        )
    return literal.ljust(width, b" ")


def apply_byte_range(pdf_bytes: bytes, byte_range: ByteRange, search_from: int) -> bytes:
    """Overwrite the first ByteRange placeholder at or after search_from."""
    return replace_fixed_length(
        pdf_bytes, BYTERANGE_PLACEHOLDER, format_byte_range(byte_range), search_from
    )


def _check_gap(pdf_bytes: bytes, byte_range: ByteRange) -> None:
    start, length1, offset2, length2 = byte_range
    if start != 0 or length1 < 0 or length2 < 0 or offset2 < length1:
        raise StructuralError(f"Invalid ByteRange {list(byte_range)}.")
    if offset2 + length2 > len(pdf_bytes):
        raise StructuralError(
            f"ByteRange {list(byte_range)} extends past end of file ({len(pdf_bytes)} bytes)."
        )
    if pdf_bytes[length1 : length1 + 1] != b"<" or pdf_bytes[offset2 - 1 : offset2] != b">":
        raise StructuralError(
            f"Contents gap at {length1}..{offset2} is not delimited by '<' and '>'."
        )


def hash_byte_range(pdf_bytes: bytes, byte_range: ByteRange, algorithm: str = "sha256") -> bytes:
    """Hash both signed ranges of the PDF.

    Raises:
        StructuralError: If the ByteRange is malformed or does not bracket
            a ``<...>`` gap.
    """
    _check_gap(pdf_bytes, byte_range)
    _, length1, offset2, length2 = byte_range
    h = hashlib.new(algorithm)
    h.update(pdf_bytes[:length1])
    h.update(pdf_bytes[offset2 : offset2 + length2])
    return h.digest()


def embed_cms(pdf_bytes: bytes, gap_start: int, placeholder_size: int, cms_der: bytes) -> bytes:
    """Write cms_der as zero-padded lowercase hex into the ``<...>`` gap.

    Raises:
        CapacityError: If the hex encoding exceeds 2 x placeholder_size.
        StructuralError: If gap_start does not point at the placeholder.
    """
    hex_capacity = placeholder_size * 2
    cms_hex = cms_der.hex().encode("ascii")
    if len(cms_hex) > hex_capacity:
        raise CapacityError(
            f"CMS too large: {len(cms_der)} bytes (placeholder holds {placeholder_size}).",
            required=len(cms_der),
            available=placeholder_size,
        )

    gap_end = gap_start + hex_capacity + 2
    if pdf_bytes[gap_start : gap_start + 1] != b"<" or pdf_bytes[gap_end - 1 : gap_end] != b">":
        raise StructuralError(f"No /Contents placeholder at offset {gap_start}.")

    padded = cms_hex.ljust(hex_capacity, b"0")
    result = pdf_bytes[: gap_start + 1] + padded + pdf_bytes[gap_end - 1 :]
    if len(result) != len(pdf_bytes):
        raise StructuralError(
            f"PDF size changed after embedding CMS: {len(pdf_bytes)} -> {len(result)}"
        )
    _logger.debug("Embedded %d-byte CMS into %d-byte placeholder", len(cms_der), placeholder_size)
    return result


def find_last_byte_range(pdf_bytes: bytes) -> ByteRange:
    """Return the values of the last ``/ByteRange`` in the file.

    Raises:
        StructuralError: If the file has no ByteRange.
    """
    matches = list(re.finditer(BYTERANGE_PATTERN, pdf_bytes))
    if not matches:
        raise StructuralError("No /ByteRange found in PDF -- not prepared for signing?")
    m = matches[-1]
    return (int(m.group(1)), int(m.group(2)), int(m.group(3)), int(m.group(4)))
