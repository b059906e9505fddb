"""Signing command handlers: sign, prepare, complete."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from ...api import complete_file, load_identity, prepare_file, sign_file
from ...config import get_signing_defaults
from ...core.signing import SignatureOptions
from ...errors import CapacityError, CryptoError, PdfSigError
from ..helpers import default_output_path, default_prepared_path, format_size_kb, read_password


def _build_options(args: argparse.Namespace) -> SignatureOptions:
    """Merge command-line values over the configured defaults."""
    defaults = get_signing_defaults()

    def pick(value: str | None, fallback: str) -> str:
        return fallback if value is None else value

    return SignatureOptions(
        reason=pick(args.reason, defaults.reason),
        location=pick(args.location, defaults.location),
        contact_info=pick(args.contact, defaults.contact_info),
        signer_name=args.name,
        page_index=args.page - 1,
        placeholder_size=args.placeholder_size or defaults.placeholder_size,
        tsa_url=args.tsa_url or defaults.tsa_url,
    )


def _check_page(args: argparse.Namespace) -> None:
    if args.page < 1:
        print(f"Error: --page must be 1 or greater, got {args.page}", file=sys.stderr)
        sys.exit(1)


def add_signature_arguments(parser: argparse.ArgumentParser) -> None:
    """Options shared by `sign` and `prepare`."""
    parser.add_argument("--reason", default=None, help="Signature reason (default: from config)")
    parser.add_argument("--location", default=None, help="Signing location (default: from config)")
    parser.add_argument("--contact", default=None, help="Contact info (default: from config)")
    parser.add_argument("--name", default=None, help="Signer name written to /Name")
    parser.add_argument(
        "--page",
        type=int,
        default=1,
        help="1-based page the signature field is attached to (default: 1)",
    )
    parser.add_argument(
        "--placeholder-size",
        type=int,
        default=None,
        help="Bytes reserved for the CMS container (default: 8192)",
    )
    parser.add_argument("--tsa-url", default=None, help="Timestamp authority URL (not used yet)")


def cmd_sign(args: argparse.Namespace) -> None:
    """Sign a PDF with a PKCS#12 identity."""
    _check_page(args)
    pdf_path = Path(args.pdf)
    out_path = Path(args.output) if args.output else default_output_path(pdf_path)

    password = args.password
    if password is None:
        password = read_password()
        if password is None:
            sys.exit(1)

    try:
        identity = load_identity(args.p12, password)
    except OSError as e:
        print(f"Error: cannot read {args.p12}: {e}", file=sys.stderr)
        sys.exit(1)
    except CryptoError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Signing {pdf_path.name}...")
    try:
        sign_file(pdf_path, out_path, identity, _build_options(args))
    except CapacityError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("  Try a larger --placeholder-size.", file=sys.stderr)
        sys.exit(1)
    except (PdfSigError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"  Saved: {out_path} ({format_size_kb(out_path.stat().st_size)})")


def cmd_prepare(args: argparse.Namespace) -> None:
    """Prepare a PDF for an external signer and print the digest."""
    _check_page(args)
    pdf_path = Path(args.pdf)
    out_path = Path(args.output) if args.output else default_prepared_path(pdf_path)

    try:
        digest, algorithm = prepare_file(pdf_path, out_path, _build_options(args))
    except (PdfSigError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Prepared: {out_path}")
    print(f"  {algorithm}: {digest.hex()}")


def cmd_complete(args: argparse.Namespace) -> None:
    """Embed an external CMS signature into a prepared PDF."""
    prepared_path = Path(args.prepared)
    out_path = Path(args.output) if args.output else default_output_path(prepared_path)

    try:
        complete_file(prepared_path, Path(args.signature), out_path)
    except (PdfSigError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Signed: {out_path} ({format_size_kb(out_path.stat().st_size)})")
