"""Ordered PDF dictionary model.

A ``PdfDict`` is parsed once from the text between ``<<`` and ``>>`` and
keeps every value as raw PDF syntax (names, numbers, references, arrays,
nested dictionaries, literal and hex strings).  Updates edit single
entries; ``serialize()`` writes the whole dictionary back out, so
unrelated entries survive byte-for-byte.
"""

from __future__ import annotations

import re
from collections.abc import Iterator

from ...errors import StructuralError

__all__ = [
    "REFERENCE_PATTERN",
    "PdfDict",
    "scan_literal_string",
    "scan_value",
]

_WHITESPACE = " \t\r\n\f\x00"
_DELIMITERS = "()<>[]{}/%"

# Indirect reference "N G R", not followed by a regular character
REFERENCE_PATTERN = re.compile(r"(\d+)\s+(\d+)\s+R(?![A-Za-z0-9_.\-])")


# ── Low-level scanning ───────────────────────────────────────────────


def _skip_whitespace(text: str, pos: int) -> int:
    """Skip whitespace and comments starting at pos."""
    n = len(text)
    while pos < n:
        c = text[pos]
        if c in _WHITESPACE:
            pos += 1
        elif c == "%":
            while pos < n and text[pos] not in "\r\n":
                pos += 1
        else:
            break
    return pos


def scan_literal_string(text: str, pos: int) -> int:
    """Return the offset just past a ``(...)`` string that starts at pos."""
    depth = 0
    i = pos
    n = len(text)
    while i < n:
        c = text[i]
        if c == "\\":
            i += 2
            continue
        if c == "(":
            depth += 1
        elif c == ")":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    raise StructuralError(f"Unterminated literal string at offset {pos}")


def _scan_hex_string(text: str, pos: int) -> int:
    end = text.find(">", pos + 1)
    if end < 0:
        raise StructuralError(f"Unterminated hex string at offset {pos}")
    return end + 1


def _scan_nested(text: str, pos: int) -> int:
    """Return the offset just past a balanced ``<<...>>`` or ``[...]`` value."""
    depth = 0
    i = pos
    n = len(text)
    while i < n:
        if text.startswith("<<", i):
            depth += 1
            i += 2
            continue
        if text.startswith(">>", i):
            depth -= 1
            i += 2
            if depth == 0:
                return i
            continue
        c = text[i]
        if c == "[":
            depth += 1
        elif c == "]":
            depth -= 1
            if depth == 0:
                return i + 1
        elif c == "(":
            i = scan_literal_string(text, i)
            continue
        elif c == "<":
            i = _scan_hex_string(text, i)
            continue
        elif c == "%":
            i = _skip_whitespace(text, i)
            continue
        i += 1
    raise StructuralError(f"Unbalanced container at offset {pos}")


def _scan_token(text: str, pos: int) -> int:
    """Return the offset just past a regular token (name body, number, keyword)."""
    n = len(text)
    while pos < n and text[pos] not in _WHITESPACE and text[pos] not in _DELIMITERS:
        pos += 1
    return pos


def scan_value(text: str, pos: int) -> int:
    """Return the offset just past the PDF value that starts at pos.

    References (``12 0 R``) are treated as a single value.

    Raises:
        StructuralError: If no value starts at pos or it is unterminated.
    """
    if pos >= len(text):
        raise StructuralError("Unexpected end of dictionary")
    c = text[pos]
    if text.startswith("<<", pos) or c == "[":
        return _scan_nested(text, pos)
    if c == "<":
        return _scan_hex_string(text, pos)
    if c == "(":
        return scan_literal_string(text, pos)
    if c == "/":
        return _scan_token(text, pos + 1)
    m = REFERENCE_PATTERN.match(text, pos)
    if m:
        return m.end()
    end = _scan_token(text, pos)
    if end == pos:
        raise StructuralError(f"Unexpected character {c!r} at offset {pos}")
    return end


# ── Dictionary model ─────────────────────────────────────────────────


class PdfDict:
    """Ordered key -> raw value mapping for a PDF dictionary.

    Keys include the leading slash (``"/Annots"``), matching how they
    appear in the file.
    """

    def __init__(self, entries: list[tuple[str, str]] | None = None) -> None:
        self._entries: list[tuple[str, str]] = list(entries or [])

    @classmethod
    def parse(cls, content: str) -> PdfDict:
        """Parse dictionary content, with or without the outer ``<< >>``.

        Raises:
            StructuralError: If the content is not a well-formed dictionary.
        """
        text = content.strip()
        if text.startswith("<<"):
            end = _scan_nested(text, 0)
            text = text[2 : end - 2]

        entries: list[tuple[str, str]] = []
        pos = _skip_whitespace(text, 0)
        while pos < len(text):
            if text[pos] != "/":
                raise StructuralError(f"Expected a name key at offset {pos}, got {text[pos]!r}")
            key_end = _scan_token(text, pos + 1)
            key = text[pos:key_end]
            value_start = _skip_whitespace(text, key_end)
            value_end = scan_value(text, value_start)
            entries.append((key, text[value_start:value_end]))
            pos = _skip_whitespace(text, value_end)
        return cls(entries)

    def __contains__(self, key: object) -> bool:
        return any(k == key for k, _ in self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return (k for k, _ in self._entries)

    def __getitem__(self, key: str) -> str:
        for k, v in self._entries:
            if k == key:
                return v
        raise KeyError(key)

    def __setitem__(self, key: str, value: str) -> None:
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        if not self.remove(key):
            raise KeyError(key)

    def __repr__(self) -> str:
        return f"PdfDict({self._entries!r})"

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return the raw value for key, or default."""
        for k, v in self._entries:
            if k == key:
                return v
        return default

    def set(self, key: str, value: str) -> None:
        """Replace the value in place, or append a new entry."""
        for i, (k, _) in enumerate(self._entries):
            if k == key:
                self._entries[i] = (key, value)
                return
        self._entries.append((key, value))

    def remove(self, key: str) -> bool:
        """Remove every entry for key. Returns True if anything was removed."""
        before = len(self._entries)
        self._entries = [(k, v) for k, v in self._entries if k != key]
        return len(self._entries) != before

    def copy(self) -> PdfDict:
        return PdfDict(self._entries)

    def reference(self, key: str) -> int | None:
        """Return the object number if the value is a single indirect reference."""
        value = self.get(key)
        if value is None:
            return None
        m = REFERENCE_PATTERN.fullmatch(value.strip())
        return int(m.group(1)) if m else None

    def references(self, key: str) -> list[str]:
        """Return the ``N G R`` references held by key.

        Works for a single reference and for an array of references.
        Nested dictionaries are not searched.
        """
        value = self.get(key)
        if value is None:
            return []
        value = value.strip()
        if value.startswith("["):
            return [f"{m.group(1)} {m.group(2)} R" for m in REFERENCE_PATTERN.finditer(value)]
        m = REFERENCE_PATTERN.fullmatch(value)
        return [f"{m.group(1)} {m.group(2)} R"] if m else []

    def append_reference(self, key: str, ref: str) -> None:
        """Add ref to the array under key.

        A single reference becomes a two-element array, an existing array
        is extended in place, and a missing key gets a new array.
        """
        value = self.get(key)
        if value is None:
            self.set(key, f"[{ref}]")
            return
        value = value.strip()
        if value.startswith("[") and value.endswith("]"):
            inner = value[1:-1].strip()
            self.set(key, f"[{inner} {ref}]" if inner else f"[{ref}]")
        else:
            self.set(key, f"[{value} {ref}]")

    def serialize(self, inline: bool = False) -> str:
        """Render the dictionary as ``<<`` / one entry per line / ``>>``.

        With inline=True everything goes on one line, for nesting a
        dictionary as a value.
        """
        if inline:
            return " ".join(["<<", *(f"{k} {v}" for k, v in self._entries), ">>"])
        lines = ["<<"]
        lines.extend(f"{k} {v}" for k, v in self._entries)
        lines.append(">>")
        return "\n".join(lines)
