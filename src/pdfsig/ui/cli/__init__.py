"""
Command-line interface for pdfsig.

Argument parsing, dispatch, logging setup and the config subcommand.
Signing, verification and overlay handlers live in their own modules.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from ...config import CONFIG_FILE, get_signing_defaults, reset_config, save_signing_defaults
from ...constants import ENV_LOG_LEVEL, __version__
from ...errors import ConfigError
from .overlay import cmd_overlay
from .sign import add_signature_arguments, cmd_complete, cmd_prepare, cmd_sign
from .verify import cmd_info, cmd_verify


def _configure_logging(verbose: int) -> None:
    """-v is INFO, -vv DEBUG; otherwise PDFSIG_LOG_LEVEL, else WARNING."""
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        name = os.environ.get(ENV_LOG_LEVEL, "").strip().upper()
        level = logging.getLevelName(name) if name else logging.WARNING
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _cmd_config(args: argparse.Namespace) -> None:
    """Show or update the saved signing defaults."""
    if args.reset:
        reset_config()
        print("Signing defaults cleared.")
        return

    values = {
        "reason": args.reason,
        "location": args.location,
        "contact_info": args.contact,
        "placeholder_size": args.placeholder_size,
        "tsa_url": args.tsa_url,
    }
    if any(v is not None for v in values.values()):
        try:
            save_signing_defaults(**values)  # type: ignore[arg-type]
        except (ConfigError, OSError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"Saved to {CONFIG_FILE}")

    defaults = get_signing_defaults()
    print(f"  reason:           {defaults.reason or '(none)'}")
    print(f"  location:         {defaults.location or '(none)'}")
    print(f"  contact_info:     {defaults.contact_info or '(none)'}")
    print(f"  placeholder_size: {defaults.placeholder_size}")
    print(f"  tsa_url:          {defaults.tsa_url or '(none)'}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pdfsig",
        description="PAdES-B-B signatures for existing PDF documents.",
        epilog=(
            "Environment variables:\n"
            "  PDFSIG_REASON            Default signature reason\n"
            "  PDFSIG_LOCATION          Default signing location\n"
            "  PDFSIG_CONTACT           Default contact info\n"
            "  PDFSIG_PLACEHOLDER_SIZE  Bytes reserved for the CMS container\n"
            "  PDFSIG_TSA_URL           Timestamp authority URL\n"
            "  PDFSIG_LOG_LEVEL         Logging level (DEBUG, INFO, WARNING, ...)\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-V", "--version", action="version", version=f"pdfsig {__version__}")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="More log output (-vv for debug)"
    )

    sub = parser.add_subparsers(dest="command", help="Available commands")

    # sign
    p_sign = sub.add_parser("sign", help="Sign a PDF with a PKCS#12 identity")
    p_sign.add_argument("pdf", help="PDF file to sign")
    p_sign.add_argument("--p12", required=True, help="PKCS#12 (.p12/.pfx) file with key and chain")
    p_sign.add_argument("--password", default=None, help="PKCS#12 password (prompted if omitted)")
    p_sign.add_argument("-o", "--output", help="Output file (default: <name>_signed.pdf)")
    add_signature_arguments(p_sign)

    # prepare
    p_prepare = sub.add_parser("prepare", help="Prepare a PDF for an external signer")
    p_prepare.add_argument("pdf", help="PDF file to prepare")
    p_prepare.add_argument("-o", "--output", help="Output file (default: <name>_prepared.pdf)")
    add_signature_arguments(p_prepare)

    # complete
    p_complete = sub.add_parser("complete", help="Embed an external CMS signature")
    p_complete.add_argument("prepared", help="Prepared PDF file")
    p_complete.add_argument("signature", help="DER CMS signature file (.p7s)")
    p_complete.add_argument("-o", "--output", help="Output file (default: <name>_signed.pdf)")

    # verify
    p_verify = sub.add_parser("verify", help="Check the embedded signatures of a PDF")
    p_verify.add_argument("pdf", help="Signed PDF file")

    # info
    p_info = sub.add_parser("info", help="Show certificates in a CMS signature file")
    p_info.add_argument("signature", help="CMS signature file (.p7s)")

    # overlay
    p_overlay = sub.add_parser("overlay", help="Draw an image on PDF page(s)")
    p_overlay.add_argument("pdf", help="PDF file")
    p_overlay.add_argument("image", help="Image file (PNG, JPEG, ...)")
    p_overlay.add_argument(
        "--page", type=int, action="append", help="1-based page (repeatable, default: 1)"
    )
    p_overlay.add_argument("--x", type=float, required=True, help="Left edge, 0..1 of page width")
    p_overlay.add_argument("--y", type=float, required=True, help="Top edge, 0..1 of page height")
    p_overlay.add_argument("--width", type=float, required=True, help="Width, 0..1 of page width")
    p_overlay.add_argument(
        "--height", type=float, required=True, help="Height, 0..1 of page height"
    )
    p_overlay.add_argument("-o", "--output", help="Output file (default: <name>_signed.pdf)")

    # config
    p_config = sub.add_parser("config", help="Show or change saved signing defaults")
    p_config.add_argument("--reason", default=None)
    p_config.add_argument("--location", default=None)
    p_config.add_argument("--contact", default=None)
    p_config.add_argument("--placeholder-size", type=int, default=None)
    p_config.add_argument("--tsa-url", default=None)
    p_config.add_argument("--reset", action="store_true", default=False, help="Clear all defaults")

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command == "sign":
        cmd_sign(args)
    elif args.command == "prepare":
        cmd_prepare(args)
    elif args.command == "complete":
        cmd_complete(args)
    elif args.command == "verify":
        cmd_verify(args)
    elif args.command == "info":
        cmd_info(args)
    elif args.command == "overlay":
        cmd_overlay(args)
    elif args.command == "config":
        _cmd_config(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
