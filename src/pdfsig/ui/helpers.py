"""
Common helper functions for the pdfsig front ends and file API.
"""

from __future__ import annotations

import getpass
import os
import sys
import tempfile
from pathlib import Path

__all__ = [
    "atomic_write",
    "default_output_path",
    "default_prepared_path",
    "format_size_kb",
    "read_password",
    "safe_read_file",
]

_BYTES_PER_KB = 1024


def format_size_kb(size_bytes: int) -> str:
    """Format a byte count as a human-readable KB string (e.g. '123.4 KB')."""
    return f"{size_bytes / _BYTES_PER_KB:.1f} KB"


def default_output_path(pdf_path: Path) -> Path:
    """Compute default output path for a signed PDF: '<stem>_signed.pdf'."""
    return pdf_path.with_name(f"{pdf_path.stem}_signed.pdf")


def default_prepared_path(pdf_path: Path) -> Path:
    """Compute default output path for a prepared PDF: '<stem>_prepared.pdf'."""
    return pdf_path.with_name(f"{pdf_path.stem}_prepared.pdf")


def safe_read_file(path: Path, kind: str = "file") -> bytes | None:
    """
    Read a file with uniform error handling.

    Args:
        path: Path to the file to read.
        kind: Descriptive name for error messages (e.g., "PDF", "image").

    Returns:
        File contents as bytes, or None if the file doesn't exist or can't
        be read (the reason is printed to stderr).
    """
    if not path.exists():
        print(f"Error: {kind} not found: {path}", file=sys.stderr)
        return None
    try:
        return path.read_bytes()
    except OSError as e:
        print(f"Error reading {kind}: {e}", file=sys.stderr)
        return None


def read_password(prompt: str = "PKCS#12 password: ") -> str | None:
    """Prompt for a password without echo; None on Ctrl-C / Ctrl-D."""
    try:
        return getpass.getpass(prompt)
    except (EOFError, KeyboardInterrupt):
        print()
        return None


def atomic_write(path: Path, data: bytes) -> None:
    """Write data to a file atomically using temp file + rename.

    An interrupted write (disk full, Ctrl-C) never leaves a partial
    output file behind.

    Args:
        path: Target file path.
        data: Bytes to write.
    """
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        view = memoryview(data)
        while view:
            view = view[os.write(fd, view) :]
        os.fsync(fd)
        os.close(fd)
        fd = -1
        tmp.replace(path)
    except Exception:
        if fd >= 0:
            os.close(fd)
        tmp.unlink(missing_ok=True)
        raise
