"""pdfsig error types."""

from __future__ import annotations

__all__ = [
    "CapacityError",
    "ConfigError",
    "CryptoError",
    "PdfSigError",
    "StructuralError",
]


class PdfSigError(Exception):
    """Base error for pdfsig operations."""


class StructuralError(PdfSigError):
    """The input PDF is malformed or lacks a structure the signer needs.

    Raised for a missing ``%%EOF``, ``startxref``, ``/Root`` or ``/Size``,
    an unresolvable page tree, or a missing placeholder during completion.
    """


class CapacityError(PdfSigError):
    """Data does not fit into a fixed-size placeholder.

    Args:
        message: Human-readable error description.
        required: Number of bytes (or characters) that were needed.
        available: Number of bytes (or characters) reserved.
    """

    def __init__(self, message: str, *, required: int = 0, available: int = 0) -> None:
        super().__init__(message)
        self.required = required
        self.available = available

    def __reduce__(self) -> tuple[type[CapacityError], tuple[str], dict[str, int]]:
        """Preserve sizes across pickle/unpickle."""
        return (type(self), (str(self),), {"required": self.required, "available": self.available})

    def __setstate__(self, state: dict[str, int] | None) -> None:
        if state is None:
            return
        self.required = state.get("required", 0)
        self.available = state.get("available", 0)


class CryptoError(PdfSigError):
    """Unsupported key algorithm or signing failure."""


class ConfigError(PdfSigError):
    """Configuration validation error."""
