"""Tests for pdfsig.core.pdf.byterange and asn1 -- gap arithmetic and embedding."""

from __future__ import annotations

import hashlib

import pytest

from pdfsig.core.pdf.asn1 import der_from_padded_hex
from pdfsig.core.pdf.byterange import (
    apply_byte_range,
    compute_byte_range,
    embed_cms,
    find_last_byte_range,
    format_byte_range,
    hash_byte_range,
)
from pdfsig.core.pdf.objects import BYTERANGE_PLACEHOLDER
from pdfsig.errors import CapacityError, StructuralError

# 10 bytes, a 4-byte placeholder gap, 5 bytes
GAPPED = b"A" * 10 + b"<" + b"00" * 4 + b">" + b"B" * 5

# ── compute / format / apply ─────────────────────────────────────────


def test_compute_byte_range():
    assert compute_byte_range(1000, 100, 10) == (0, 100, 122, 878)


def test_compute_byte_range_covers_whole_file():
    br = compute_byte_range(len(GAPPED), 10, 4)
    assert br == (0, 10, 20, 5)
    assert br[1] + (br[2] - br[1]) + br[3] == len(GAPPED)


def test_compute_byte_range_past_end():
    with pytest.raises(StructuralError, match="past end"):
        compute_byte_range(50, 40, 10)


def test_format_byte_range_pads_to_placeholder_width():
    out = format_byte_range((0, 840, 17226, 1234))
    assert len(out) == len(BYTERANGE_PLACEHOLDER)
    assert out == b"[0 840 17226 1234]".ljust(len(BYTERANGE_PLACEHOLDER))


def test_format_byte_range_too_long():
    with pytest.raises(CapacityError) as exc_info:
        format_byte_range((0, 10**11, 10**11, 10**11))
    assert exc_info.value.available == len(BYTERANGE_PLACEHOLDER)
    assert exc_info.value.required > exc_info.value.available


def test_apply_byte_range_only_after_search_from():
    data = BYTERANGE_PLACEHOLDER + b" middle " + BYTERANGE_PLACEHOLDER
    out = apply_byte_range(data, (0, 1, 2, 3), len(BYTERANGE_PLACEHOLDER))
    assert out.startswith(BYTERANGE_PLACEHOLDER)
    assert out.endswith(b"[0 1 2 3]".ljust(len(BYTERANGE_PLACEHOLDER)))
    assert len(out) == len(data)


# ── hash_byte_range ──────────────────────────────────────────────────


def test_hash_byte_range_skips_gap():
    digest = hash_byte_range(GAPPED, (0, 10, 20, 5))
    assert digest == hashlib.sha256(b"A" * 10 + b"B" * 5).digest()


def test_hash_byte_range_ignores_gap_content():
    other = GAPPED[:11] + b"deadbeef" + GAPPED[19:]
    assert hash_byte_range(other, (0, 10, 20, 5)) == hash_byte_range(GAPPED, (0, 10, 20, 5))


def test_hash_byte_range_detects_tampering():
    tampered = b"C" + GAPPED[1:]
    assert hash_byte_range(tampered, (0, 10, 20, 5)) != hash_byte_range(GAPPED, (0, 10, 20, 5))


@pytest.mark.parametrize(
    "byte_range",
    [(0, 9, 20, 5), (0, 10, 21, 4), (1, 10, 20, 5), (0, 10, 20, 50)],
    ids=["bad-start", "bad-end", "nonzero-offset", "past-eof"],
)
def test_hash_byte_range_rejects_bad_ranges(byte_range):
    with pytest.raises(StructuralError):
        hash_byte_range(GAPPED, byte_range)


# ── embed_cms ────────────────────────────────────────────────────────


def test_embed_cms_pads_lowercase_hex():
    out = embed_cms(GAPPED, 10, 4, b"\xab\xcd")
    assert out == b"A" * 10 + b"<abcd0000>" + b"B" * 5
    assert len(out) == len(GAPPED)


def test_embed_cms_exact_fit():
    out = embed_cms(GAPPED, 10, 4, b"\x01\x02\x03\x04")
    assert b"<01020304>" in out


def test_embed_cms_too_large():
    with pytest.raises(CapacityError) as exc_info:
        embed_cms(GAPPED, 10, 4, b"\x00" * 5)
    assert exc_info.value.required == 5
    assert exc_info.value.available == 4


def test_embed_cms_wrong_offset():
    with pytest.raises(StructuralError, match="placeholder"):
        embed_cms(GAPPED, 9, 4, b"\x01")


# ── find_last_byte_range ─────────────────────────────────────────────


def test_find_last_byte_range():
    data = b"/ByteRange [0 1 2 3] ... /ByteRange [ 0 10 20 5 ]"
    assert find_last_byte_range(data) == (0, 10, 20, 5)


def test_find_last_byte_range_missing():
    with pytest.raises(StructuralError, match="ByteRange"):
        find_last_byte_range(b"%PDF-1.7 nothing here")


# ── der_from_padded_hex ──────────────────────────────────────────────


def test_der_from_padded_hex_short_form():
    assert der_from_padded_hex("3003020100" + "0" * 20) == bytes.fromhex("3003020100")


def test_der_from_padded_hex_keeps_trailing_zero_bytes():
    assert der_from_padded_hex("300400000000" + "0000") == bytes.fromhex("300400000000")


def test_der_from_padded_hex_long_form():
    body = "ab" * 300
    assert der_from_padded_hex("3082012c" + body + "00" * 10) == bytes.fromhex("3082012c" + body)


@pytest.mark.parametrize(
    "hex_str",
    ["", "04020000", "3080", "3085ffffffffff", "3010ab"],
    ids=["empty", "not-sequence", "indefinite", "huge-length", "truncated"],
)
def test_der_from_padded_hex_rejects(hex_str):
    with pytest.raises(ValueError):
        der_from_padded_hex(hex_str)


def test_der_from_padded_hex_zero_placeholder():
    with pytest.raises(ValueError):
        der_from_padded_hex("0" * 64)
