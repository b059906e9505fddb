"""Tests for pdfsig.core.pdf.verify -- structural signature verification."""

from __future__ import annotations

import pytest

from pdfsig.core.pdf.verify import (
    DocumentCheck,
    check_document_structure,
    decode_literal_string,
    verify_signatures,
)
from pdfsig.core.signing import complete_external_signing, prepare_for_external_signing, sign_pdf

from .conftest import FAKE_CMS

# ── Unsigned / placeholder-only ──────────────────────────────────────


def test_unsigned_pdf_has_no_signatures(simple_pdf):
    assert verify_signatures(simple_pdf) == []


def test_unfilled_placeholder_is_invalid(simple_pdf):
    prepared, _, _ = prepare_for_external_signing(simple_pdf, reason="Pending")
    infos = verify_signatures(prepared)
    assert len(infos) == 1
    assert infos[0].valid is False
    assert infos[0].digest_ok is None
    assert infos[0].signer_name == "Unknown"
    assert infos[0].reason == "Pending"


def test_sig_dict_without_byte_range_is_skipped():
    data = b"%PDF-1.7\n5 0 obj\n<< /Type /Sig /Filter /Adobe.PPKLite >>\nendobj\n%%EOF\n"
    assert verify_signatures(data) == []


# ── Signed documents ─────────────────────────────────────────────────


def test_signed_fields(simple_pdf, rsa_identity):
    signed = sign_pdf(simple_pdf, rsa_identity, reason="Test", location="Office")
    (info,) = verify_signatures(signed)
    assert info.reason == "Test"
    assert info.location == "Office"
    assert info.signer_name == "Test Signer"
    assert info.signed_at.startswith("D:")
    assert info.field_name == "Signature1"
    assert info.trusted is False


def test_escaped_reason_is_decoded(simple_pdf, rsa_identity):
    signed = sign_pdf(simple_pdf, rsa_identity, reason="Approved (v2) \\ final")
    assert verify_signatures(signed)[0].reason == "Approved (v2) \\ final"


def test_tampered_document_fails_digest(simple_pdf, rsa_identity):
    signed = sign_pdf(simple_pdf, rsa_identity)
    pos = signed.index(b"Hello page 1")
    tampered = signed[:pos] + b"J" + signed[pos + 1 :]
    (info,) = verify_signatures(tampered)
    assert info.valid is True
    assert info.digest_ok is False


def test_foreign_cms_digest_mismatch(simple_pdf):
    """A CMS without a matching messageDigest is structurally valid only."""
    prepared, _, _ = prepare_for_external_signing(simple_pdf)
    (info,) = verify_signatures(complete_external_signing(prepared, FAKE_CMS))
    assert info.valid is True
    assert info.digest_ok is None
    assert info.signer_name == "Unknown"


def test_large_placeholder(simple_pdf, ec_identity):
    signed = sign_pdf(simple_pdf, ec_identity, placeholder_size=64 * 1024)
    (info,) = verify_signatures(signed)
    assert info.valid is True
    assert info.digest_ok is True


# ── decode_literal_string ────────────────────────────────────────────


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("plain", "plain"),
        (r"a\(b\)", "a(b)"),
        (r"back\\slash", "back\\slash"),
        (r"line\nbreak", "line\nbreak"),
        (r"\101\102", "AB"),
        ("con\\\ntinued", "continued"),
        (r"\q", "q"),
    ],
    ids=["plain", "parens", "backslash", "newline", "octal", "continuation", "unknown"],
)
def test_decode_literal_string(raw, expected):
    assert decode_literal_string(raw) == expected


# ── check_document_structure ─────────────────────────────────────────


def test_check_document_structure_signed(simple_pdf, rsa_identity):
    check = check_document_structure(sign_pdf(simple_pdf, rsa_identity))
    assert check == DocumentCheck(ok=True, page_count=1, detail="valid PDF, 1 page(s)")


def test_check_document_structure_garbage():
    check = check_document_structure(b"%PDF-1.7\nthis is not a pdf body")
    assert check.ok is False
    assert check.page_count == 0
