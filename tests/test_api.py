"""Tests for pdfsig.api -- file-level wrappers."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from PIL import Image

import pdfsig
from pdfsig.api import (
    complete_file,
    load_identity,
    overlay_file,
    prepare_file,
    sign_file,
    verify_file,
)
from pdfsig.config import SigningDefaults
from pdfsig.core.pdf import Placement, build_cms_container
from pdfsig.core.signing import SignatureOptions
from pdfsig.errors import CapacityError, CryptoError, StructuralError

from .conftest import P12_PASSWORD


@pytest.fixture(autouse=True)
def no_saved_defaults():
    with patch("pdfsig.api.get_signing_defaults", return_value=SigningDefaults()) as defaults:
        yield defaults


@pytest.fixture
def pdf_file(tmp_path, simple_pdf):
    path = tmp_path / "doc.pdf"
    path.write_bytes(simple_pdf)
    return path


def test_public_exports():
    for name in ("sign_pdf", "sign_file", "verify_signatures", "SigningIdentity", "PdfSigError"):
        assert name in pdfsig.__all__
        assert hasattr(pdfsig, name)


def test_load_identity(p12_file):
    identity = load_identity(p12_file, P12_PASSWORD)
    assert identity.signer.algorithm == "sha256_rsa"


def test_load_identity_wrong_password(p12_file):
    with pytest.raises(CryptoError):
        load_identity(str(p12_file), "nope")


# ── sign_file ────────────────────────────────────────────────────────


def test_sign_file(pdf_file, tmp_path, rsa_identity):
    out = sign_file(pdf_file, tmp_path / "signed.pdf", rsa_identity, reason="Filed")
    assert out == tmp_path / "signed.pdf"
    (info,) = verify_file(out)
    assert info.reason == "Filed"
    assert info.digest_ok is True


def test_sign_file_applies_saved_defaults(pdf_file, tmp_path, rsa_identity, no_saved_defaults):
    no_saved_defaults.return_value = SigningDefaults(reason="Routine", location="Archive")
    out = sign_file(pdf_file, tmp_path / "signed.pdf", rsa_identity, location="Desk")
    (info,) = verify_file(out)
    assert info.reason == "Routine"
    assert info.location == "Desk"


def test_sign_file_explicit_options(pdf_file, tmp_path, rsa_identity, no_saved_defaults):
    no_saved_defaults.return_value = SigningDefaults(reason="Routine")
    out = sign_file(pdf_file, tmp_path / "signed.pdf", rsa_identity, SignatureOptions())
    assert verify_file(out)[0].reason == ""
    no_saved_defaults.assert_not_called()


def test_sign_file_failure_writes_nothing(tmp_path, rsa_identity):
    src = tmp_path / "broken.pdf"
    src.write_bytes(b"%PDF-1.7\nno trailer here\n")
    dst = tmp_path / "signed.pdf"
    with pytest.raises(StructuralError):
        sign_file(src, dst, rsa_identity)
    assert not dst.exists()
    assert sorted(p.name for p in tmp_path.iterdir()) == ["broken.pdf"]


def test_sign_file_in_place(pdf_file, simple_pdf, rsa_identity):
    sign_file(pdf_file, pdf_file, rsa_identity)
    data = pdf_file.read_bytes()
    assert data.startswith(simple_pdf)
    assert len(verify_file(pdf_file)) == 1


# ── prepare_file / complete_file ─────────────────────────────────────


def test_prepare_and_complete_with_p7s_path(pdf_file, tmp_path, rsa_identity):
    prepared = tmp_path / "prepared.pdf"
    digest, algorithm = prepare_file(pdf_file, prepared, reason="Two phase")
    assert algorithm == "SHA-256"
    assert len(digest) == 32

    p7s = tmp_path / "sig.p7s"
    p7s.write_bytes(build_cms_container(digest, rsa_identity))
    out = complete_file(prepared, p7s, tmp_path / "signed.pdf")
    (info,) = verify_file(out)
    assert info.reason == "Two phase"
    assert info.signer_name == "Test Signer"
    assert info.digest_ok is True


def test_complete_file_with_bytes(pdf_file, tmp_path, ec_identity):
    prepared = tmp_path / "prepared.pdf"
    digest, _ = prepare_file(pdf_file, prepared)
    out = complete_file(prepared, build_cms_container(digest, ec_identity), tmp_path / "out.pdf")
    assert verify_file(out)[0].signer_name == "EC Signer"


def test_complete_file_capacity_error_writes_nothing(pdf_file, tmp_path, rsa_identity):
    prepared = tmp_path / "prepared.pdf"
    digest, _ = prepare_file(pdf_file, prepared, placeholder_size=1024)
    prepared_bytes = prepared.read_bytes()
    oversized = build_cms_container(digest, rsa_identity) + b"\x00" * 1024
    dst = tmp_path / "signed.pdf"
    with pytest.raises(CapacityError) as exc_info:
        complete_file(prepared, oversized, dst)
    assert exc_info.value.available == 1024
    assert not dst.exists()
    assert sorted(p.name for p in tmp_path.iterdir()) == ["doc.pdf", "prepared.pdf"]
    assert prepared.read_bytes() == prepared_bytes


# ── overlay_file ─────────────────────────────────────────────────────


def test_overlay_file(pdf_file, tmp_path):
    image = tmp_path / "sig.png"
    Image.new("RGBA", (6, 3), (10, 10, 10, 200)).save(image)
    out = overlay_file(
        pdf_file, tmp_path / "stamped.pdf", image, [Placement(0, 0.6, 0.8, 0.3, 0.1)]
    )
    data = out.read_bytes()
    assert b"/SMask" in data
    assert b"/SigImg Do" in data


def test_overlay_file_bad_image_writes_nothing(pdf_file, tmp_path):
    image = tmp_path / "sig.png"
    image.write_text("no pixels")
    dst = tmp_path / "stamped.pdf"
    with pytest.raises(ValueError):
        overlay_file(pdf_file, dst, image, [Placement(0, 0.1, 0.1, 0.1, 0.1)])
    assert not dst.exists()
