"""Shared test fixtures for the pdfsig test suite."""

from __future__ import annotations

import io
import re
from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

from pdfsig.core.identity import SigningIdentity

P12_PASSWORD = "secret"

# Fake CMS blob that passes the DER header and size checks (~1 KB).
FAKE_CMS = b"\x30\x82\x03\xfc" + b"\xab" * 1020


# ── PDF builders ─────────────────────────────────────────────────────


def stream_object(data: str) -> str:
    """Serialize a stream object body with a correct /Length."""
    return f"<< /Length {len(data)} >>\nstream\n{data}\nendstream"


def build_pdf(objects: dict[int, str], root: int = 1) -> bytes:
    """Build a classic-xref PDF whose xref offsets are exact."""
    out = bytearray("%PDF-1.7\n%\xe2\xe3\xcf\xd3\n".encode("latin-1"))
    offsets: dict[int, int] = {}
    for num in sorted(objects):
        offsets[num] = len(out)
        out += f"{num} 0 obj\n{objects[num]}\nendobj\n".encode("latin-1")
    size = max(objects) + 1
    xref_offset = len(out)
    lines = ["xref", f"0 {size}", "0000000000 65535 f "]
    for num in range(1, size):
        if num in offsets:
            lines.append(f"{offsets[num]:010d} 00000 n ")
        else:
            lines.append("0000000000 00000 f ")
    out += ("\n".join(lines) + "\n").encode("latin-1")
    out += (
        f"trailer\n<< /Size {size} /Root {root} 0 R >>\nstartxref\n{xref_offset}\n%%EOF\n"
    ).encode("latin-1")
    return bytes(out)


def page_objects(pages: int = 1) -> dict[int, str]:
    """Catalog 1, page tree 2, then (page, content) pairs and a shared font.

    One page: page 3, content 4, font 5 (/Size 6).
    """
    font = 3 + pages * 2
    kids = " ".join(f"{3 + i * 2} 0 R" for i in range(pages))
    objects = {
        1: "<< /Type /Catalog /Pages 2 0 R >>",
        2: f"<< /Type /Pages /Kids [{kids}] /Count {pages} >>",
        font: "<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    }
    for i in range(pages):
        page = 3 + i * 2
        objects[page] = (
            "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            f"/Resources << /Font << /F1 {font} 0 R >> >> /Contents {page + 1} 0 R >>"
        )
        objects[page + 1] = stream_object(f"BT /F1 24 Tf 72 700 Td (Hello page {i + 1}) Tj ET")
    return objects


def last_xref_entries(pdf_bytes: bytes) -> dict[int, int]:
    """Parse the xref section the last startxref points at."""
    text = pdf_bytes.decode("latin-1")
    start = int(re.findall(r"startxref\s+(\d+)", text)[-1])
    section = text[start : text.index("trailer", start)]
    lines = section.splitlines()[1:]
    entries: dict[int, int] = {}
    i = 0
    while i < len(lines):
        first, count = (int(x) for x in lines[i].split())
        for k in range(count):
            entries[first + k] = int(lines[i + 1 + k][:10])
        i += count + 1
    return entries


@pytest.fixture
def simple_pdf() -> bytes:
    return build_pdf(page_objects())


@pytest.fixture
def two_page_pdf() -> bytes:
    return build_pdf(page_objects(2))


@pytest.fixture
def annotated_pdf() -> bytes:
    """Page 3 already carries a link annotation (object 6)."""
    objects = page_objects()
    objects[3] = objects[3][:-2] + "/Annots [6 0 R] >>"
    objects[6] = "<< /Type /Annot /Subtype /Link /Rect [72 72 144 96] /Border [0 0 0] >>"
    return build_pdf(objects)


@pytest.fixture
def indirect_annots_pdf() -> bytes:
    """Page 3 /Annots points at an array object (6) holding annotation 7."""
    objects = page_objects()
    objects[3] = objects[3][:-2] + "/Annots 6 0 R >>"
    objects[6] = "[7 0 R]"
    objects[7] = "<< /Type /Annot /Subtype /Link /Rect [72 72 144 96] /Border [0 0 0] >>"
    return build_pdf(objects)


@pytest.fixture
def acroform_pdf() -> bytes:
    """Catalog references an indirect /AcroForm (6) with a /DA entry."""
    objects = page_objects()
    objects[1] = "<< /Type /Catalog /Pages 2 0 R /AcroForm 6 0 R >>"
    objects[6] = "<< /Fields [] /DA (/Helv 0 Tf 0 g) >>"
    return build_pdf(objects)


@pytest.fixture
def valid_pdf_bytes() -> bytes:
    """Create a minimal valid PDF using pikepdf."""
    import pikepdf

    pdf = pikepdf.Pdf.new()
    pdf.add_blank_page(page_size=(612, 792))
    buf = io.BytesIO()
    pdf.save(buf)
    return buf.getvalue()


# ── Identities ───────────────────────────────────────────────────────


def make_certificate(
    key: object,
    common_name: str = "Test Signer",
    issuer_key: object | None = None,
    issuer_name: x509.Name | None = None,
) -> x509.Certificate:
    """Issue a certificate for key (self-signed unless issuer_key is given)."""
    subject = x509.Name(
        [
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "pdfsig tests"),
        ]
    )
    now = datetime.now(timezone.utc)
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer_name or subject)
        .public_key(key.public_key())  # type: ignore[attr-defined]
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=365))
    )
    return builder.sign(issuer_key or key, hashes.SHA256())  # type: ignore[arg-type]


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_certificate(rsa_key) -> x509.Certificate:
    return make_certificate(rsa_key)


@pytest.fixture(scope="session")
def rsa_identity(rsa_key, rsa_certificate) -> SigningIdentity:
    return SigningIdentity.from_key_and_certificates(rsa_key, rsa_certificate)


@pytest.fixture(scope="session")
def ec_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def ec_identity(ec_key) -> SigningIdentity:
    return SigningIdentity.from_key_and_certificates(ec_key, make_certificate(ec_key, "EC Signer"))


@pytest.fixture(scope="session")
def p521_identity() -> SigningIdentity:
    key = ec.generate_private_key(ec.SECP521R1())
    return SigningIdentity.from_key_and_certificates(key, make_certificate(key, "P521 Signer"))


@pytest.fixture(scope="session")
def chained_identity(rsa_key) -> tuple[SigningIdentity, x509.Certificate, x509.Certificate]:
    """Leaf signed by a separate CA; returns (identity, leaf, ca)."""
    ca_key = ec.generate_private_key(ec.SECP256R1())
    ca_cert = make_certificate(ca_key, "Test CA")
    leaf = make_certificate(
        rsa_key, "Chained Signer", issuer_key=ca_key, issuer_name=ca_cert.subject
    )
    identity = SigningIdentity.from_key_and_certificates(rsa_key, leaf, [ca_cert])
    return identity, leaf, ca_cert


@pytest.fixture
def p12_file(tmp_path, rsa_key, rsa_certificate):
    """PKCS#12 file holding the RSA key and certificate, password P12_PASSWORD."""
    data = pkcs12.serialize_key_and_certificates(
        b"test",
        rsa_key,
        rsa_certificate,
        None,
        serialization.BestAvailableEncryption(P12_PASSWORD.encode()),
    )
    path = tmp_path / "signer.p12"
    path.write_bytes(data)
    return path
