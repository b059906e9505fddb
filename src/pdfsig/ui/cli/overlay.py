"""Image overlay command handler."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from ...api import overlay_file
from ...core.pdf import Placement
from ...errors import PdfSigError
from ..helpers import default_output_path


def cmd_overlay(args: argparse.Namespace) -> None:
    """Draw an image at the same normalized rectangle on each --page."""
    pdf_path = Path(args.pdf)
    out_path = Path(args.output) if args.output else default_output_path(pdf_path)
    pages = args.page or [1]
    if any(p < 1 for p in pages):
        print("Error: --page values must be 1 or greater", file=sys.stderr)
        sys.exit(1)

    placements = [Placement(p - 1, args.x, args.y, args.width, args.height) for p in pages]
    try:
        overlay_file(pdf_path, out_path, args.image, placements)
    except (PdfSigError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Saved: {out_path}")
