"""
Entry point for `python -m pdfsig`.

Usage:
    python -m pdfsig sign document.pdf --p12 signer.p12
    python -m pdfsig verify document_signed.pdf
"""

from .ui.cli import main

main()
