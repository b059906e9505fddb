# pyright: reportUnknownMemberType=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""
Signature verification and inspection.

cmd_verify reads embedded PDF signatures; cmd_info dumps the
certificates of a detached CMS file (asn1crypto, no external tools).
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

from asn1crypto import cms as asn1_cms

from ...core.pdf import check_document_structure, verify_signatures
from ...errors import PdfSigError
from ..helpers import format_size_kb, safe_read_file

if TYPE_CHECKING:
    import argparse

    from ...core.pdf import SignatureInfo


def _detail_lines(info: SignatureInfo) -> list[str]:
    lines = [f"Signer: {info.signer_name}"]
    if info.field_name:
        lines.append(f"Field: {info.field_name}")
    if info.signed_at:
        lines.append(f"Signed at: {info.signed_at}")
    if info.reason:
        lines.append(f"Reason: {info.reason}")
    if info.location:
        lines.append(f"Location: {info.location}")
    if info.byte_range:
        lines.append(f"ByteRange: {list(info.byte_range)}")
    lines.append("Structure: OK" if info.valid else "Structure: INVALID")
    if info.digest_ok is True:
        lines.append("Digest: MATCH")
    elif info.digest_ok is False:
        lines.append("Digest: MISMATCH (document modified after signing)")
    else:
        lines.append("Digest: not checked")
    lines.append("Trust: not checked")
    return lines


def cmd_verify(args: argparse.Namespace) -> None:
    """List every embedded signature; exit 1 if any is broken."""
    pdf_path = Path(args.pdf)
    pdf_bytes = safe_read_file(pdf_path, "PDF")
    if pdf_bytes is None:
        sys.exit(1)

    print(f"Checking {pdf_path.name} ({format_size_kb(len(pdf_bytes))})...")

    try:
        results = verify_signatures(pdf_bytes)
    except PdfSigError as e:
        print(f"  ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    if not results:
        print("  No signatures found.")
        sys.exit(1)

    total = len(results)
    for i, info in enumerate(results):
        if total > 1:
            print(f"\n  Signature {i + 1}/{total}:")
            indent = "    "
        else:
            indent = "  "
        for line in _detail_lines(info):
            print(f"{indent}{line}")

    check = check_document_structure(pdf_bytes)
    print(f"\n  Document: {check.detail}")

    failed = sum(1 for info in results if not info.valid or info.digest_ok is False)
    print()
    if failed:
        print(f"  RESULT: {failed} of {total} signature(s) FAILED")
        sys.exit(1)
    print(f"  RESULT: {total} signature(s) structurally valid")


def cmd_info(args: argparse.Namespace) -> None:
    """Show the certificates inside a detached CMS file."""
    sig_path = Path(args.signature)
    sig_bytes = safe_read_file(sig_path, "signature")
    if sig_bytes is None:
        sys.exit(1)
    print(f"Signature: {sig_path.name} ({len(sig_bytes)} bytes)")

    try:
        content_info = asn1_cms.ContentInfo.load(sig_bytes)
        signed_data = content_info["content"]
        certs = signed_data["certificates"]
    except (ValueError, TypeError, KeyError, OSError) as e:
        print(f"  Error parsing signature: {e}", file=sys.stderr)
        sys.exit(1)

    if not certs:
        print("  No certificates found in signature.")
        return

    cert_count = len(certs)
    print(f"\nCertificates ({cert_count}):")
    for i in range(cert_count):
        cert = certs[i].chosen
        if cert_count > 1:
            print(f"\n  [{i + 1}]")
        print(f"  Subject: {cert.subject.human_friendly}")
        print(f"  Issuer:  {cert.issuer.human_friendly}")
        print(f"  Serial:  {cert.serial_number}")
        print(
            f"  Valid:   {cert['tbs_certificate']['validity']['not_before'].native}"
            f" - {cert['tbs_certificate']['validity']['not_after'].native}"
        )
