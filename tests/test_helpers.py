"""Tests for pdfsig.ui.helpers."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from pdfsig.ui.helpers import (
    atomic_write,
    default_output_path,
    default_prepared_path,
    format_size_kb,
    read_password,
    safe_read_file,
)


def test_format_size_kb():
    assert format_size_kb(2048) == "2.0 KB"
    assert format_size_kb(1536) == "1.5 KB"


def test_default_paths():
    assert default_output_path(Path("/tmp/report.pdf")) == Path("/tmp/report_signed.pdf")
    assert default_prepared_path(Path("/tmp/report.pdf")) == Path("/tmp/report_prepared.pdf")


# ── safe_read_file ───────────────────────────────────────────────────


def test_safe_read_file(tmp_path):
    path = tmp_path / "a.pdf"
    path.write_bytes(b"%PDF-")
    assert safe_read_file(path) == b"%PDF-"


def test_safe_read_file_missing(tmp_path, capsys):
    assert safe_read_file(tmp_path / "missing.pdf", "PDF") is None
    assert "PDF not found" in capsys.readouterr().err


def test_safe_read_file_directory(tmp_path, capsys):
    assert safe_read_file(tmp_path, "PDF") is None
    assert "Error reading PDF" in capsys.readouterr().err


# ── read_password ────────────────────────────────────────────────────


def test_read_password():
    with patch("pdfsig.ui.helpers.getpass.getpass", return_value="pw"):
        assert read_password() == "pw"


@pytest.mark.parametrize("exc", [EOFError, KeyboardInterrupt])
def test_read_password_cancelled(exc):
    with patch("pdfsig.ui.helpers.getpass.getpass", side_effect=exc):
        assert read_password() is None


# ── atomic_write ─────────────────────────────────────────────────────


def test_atomic_write_creates_and_replaces(tmp_path):
    path = tmp_path / "out.pdf"
    atomic_write(path, b"first")
    atomic_write(path, b"second")
    assert path.read_bytes() == b"second"
    assert [p.name for p in tmp_path.iterdir()] == ["out.pdf"]


def test_atomic_write_handles_short_writes(tmp_path):
    path = tmp_path / "out.pdf"
    real_write = os.write

    def short_write(fd, data):
        return real_write(fd, bytes(data[:3]))

    with patch("pdfsig.ui.helpers.os.write", side_effect=short_write):
        atomic_write(path, b"0123456789")
    assert path.read_bytes() == b"0123456789"


def test_atomic_write_failure_leaves_nothing(tmp_path):
    path = tmp_path / "out.pdf"
    path.write_bytes(b"original")
    with (
        patch("pdfsig.ui.helpers.os.fsync", side_effect=OSError("disk full")),
        pytest.raises(OSError, match="disk full"),
    ):
        atomic_write(path, b"new data")
    assert path.read_bytes() == b"original"
    assert [p.name for p in tmp_path.iterdir()] == ["out.pdf"]
