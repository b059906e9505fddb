"""DER helpers for CMS blobs stored as zero-padded hex."""

from __future__ import annotations

__all__ = [
    "ASN1_SEQUENCE_TAG",
    "MIN_CMS_SIZE",
    "der_from_padded_hex",
]

# First byte of any CMS ContentInfo
ASN1_SEQUENCE_TAG = 0x30

# A signature blob at or below this size cannot hold a certificate
MIN_CMS_SIZE = 100

# Length fields of more than 4 bytes would claim over 4 GB
_MAX_LENGTH_BYTES = 4


def der_from_padded_hex(hex_str: str) -> bytes:
    """Return the exact DER blob from a right-zero-padded hex string.

    The TLV header gives the real length, so a blob that legitimately ends
    in 0x00 bytes is not truncated the way ``rstrip("0")`` would.

    Raises:
        ValueError: If the hex is not a definite-length SEQUENCE that fits
            in the available data.
    """
    if len(hex_str) < 4:
        raise ValueError("Hex string too short for an ASN.1 header")

    tag = int(hex_str[0:2], 16)
    if tag != ASN1_SEQUENCE_TAG:
        raise ValueError(f"Expected ASN.1 SEQUENCE (0x30), got 0x{tag:02x}")

    first = int(hex_str[2:4], 16)
    header_len = 2
    if first < 0x80:
        content_len = first
    elif first == 0x80:
        raise ValueError("Indefinite length encoding is not valid in DER")
    else:
        num_len_bytes = first & 0x7F
        if num_len_bytes > _MAX_LENGTH_BYTES:
            raise ValueError(f"ASN.1 length field too large: {num_len_bytes} bytes")
        header_len += num_len_bytes
        if len(hex_str) < header_len * 2:
            raise ValueError("Hex string too short for the ASN.1 length field")
        content_len = int(hex_str[4 : header_len * 2], 16)

    total_hex = (header_len + content_len) * 2
    if total_hex > len(hex_str):
        raise ValueError(
            f"ASN.1 length ({total_hex // 2} bytes) exceeds available data ({len(hex_str) // 2} bytes)"
        )
    return bytes.fromhex(hex_str[:total_hex])
