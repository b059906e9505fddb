"""PDF structure analysis.

Locates the trailer, indirect objects, the page tree and page geometry
in raw PDF bytes.  All scanning runs over a latin-1 text view of the
bytes, so string offsets are byte offsets.

Only flat page trees (every page a direct kid of the root /Pages node)
are supported.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from ...constants import DEFAULT_MEDIA_BOX, SIGNATURE_FIELD_PREFIX
from ...errors import StructuralError
from .dictionary import REFERENCE_PATTERN, PdfDict, scan_value

__all__ = [
    "PageInfo",
    "TrailerInfo",
    "find_append_point",
    "find_eof",
    "find_object_body",
    "find_object_dict",
    "find_page_obj_num",
    "next_signature_field_name",
    "parse_trailer",
    "pdf_text",
    "read_object_dict",
    "read_page_info",
    "read_page_media_box",
    "replace_fixed_length",
    "resolve_reference_array",
]

_logger = logging.getLogger(__name__)

_EOF_MARKER = b"%%EOF"
_ROOT_RE = re.compile(r"/Root\s+(\d+)\s+\d+\s+R")
_SIZE_RE = re.compile(r"/Size\s+(\d+)")
_STARTXREF_RE = re.compile(r"startxref\s+(\d+)")
_OBJ_HEADER_AT_RE = re.compile(r"\s*\d+\s+\d+\s+obj")

# How far past startxref an xref stream dictionary is searched for /Root and /Size
_XREF_STREAM_WINDOW = 2000


@dataclass(frozen=True)
class TrailerInfo:
    """Values read from the last trailer (or xref stream dictionary)."""

    root_obj_num: int
    size: int  # next free object number
    prev_startxref: int


@dataclass(frozen=True)
class PageInfo:
    """A page object and the annotation references it already carries."""

    obj_num: int
    dict_content: str
    existing_annot_refs: list[str] | None  # None when the page has no /Annots


def pdf_text(pdf_bytes: bytes) -> str:
    """Return a 1:1 text view of PDF bytes (latin-1 keeps offsets aligned)."""
    return pdf_bytes.decode("latin-1")


# ── Trailer ──────────────────────────────────────────────────────────


def find_eof(pdf_bytes: bytes) -> int:
    """Return the offset of the last ``%%EOF`` marker.

    Raises:
        StructuralError: If the file has no ``%%EOF``.
    """
    pos = pdf_bytes.rfind(_EOF_MARKER)
    if pos < 0:
        raise StructuralError("Cannot find %%EOF marker -- not a complete PDF?")
    return pos


def parse_trailer(pdf_bytes: bytes, eof_offset: int) -> TrailerInfo:
    """Read /Root, /Size and the startxref offset from the last trailer.

    Traditional ``trailer << >>`` dictionaries are preferred.  When the last
    startxref points at an object (cross-reference stream), its dictionary
    is read instead.

    Raises:
        StructuralError: If startxref, /Root or /Size cannot be found.
    """
    text = pdf_text(pdf_bytes[: eof_offset + len(_EOF_MARKER)])

    startxref_idx = text.rfind("startxref")
    if startxref_idx < 0:
        raise StructuralError("Cannot find startxref in PDF.")
    m = _STARTXREF_RE.match(text, startxref_idx)
    if not m:
        raise StructuralError("Malformed startxref value.")
    prev_startxref = int(m.group(1))

    points_at_object = prev_startxref < len(text) and bool(
        _OBJ_HEADER_AT_RE.match(text, prev_startxref)
    )
    trailer_idx = text.rfind("trailer", 0, startxref_idx)

    if trailer_idx >= 0 and not points_at_object:
        source = "trailer"
        trailer_text = text[trailer_idx:startxref_idx]
    else:
        if prev_startxref >= len(text):
            raise StructuralError(f"startxref offset {prev_startxref} is beyond end of file.")
        source = "xref stream"
        trailer_text = text[prev_startxref : prev_startxref + _XREF_STREAM_WINDOW]

    root_m = _ROOT_RE.search(trailer_text)
    if not root_m:
        raise StructuralError(f"Cannot find /Root in {source}.")
    size_m = _SIZE_RE.search(trailer_text)
    if not size_m:
        raise StructuralError(f"Cannot find /Size in {source}.")

    info = TrailerInfo(
        root_obj_num=int(root_m.group(1)),
        size=int(size_m.group(1)),
        prev_startxref=prev_startxref,
    )
    _logger.debug(
        "Trailer (%s): root=%d size=%d startxref=%d",
        source,
        info.root_obj_num,
        info.size,
        info.prev_startxref,
    )
    return info


def find_append_point(pdf_bytes: bytes, eof_offset: int) -> int:
    """Return the offset just past ``%%EOF`` and any trailing CR/LF bytes.

    The update is written at this offset, so anything else after the
    marker is discarded; a warning is logged when that happens.
    """
    pos = eof_offset + len(_EOF_MARKER)
    while pos < len(pdf_bytes) and pdf_bytes[pos] in b"\r\n":
        pos += 1
    if pos < len(pdf_bytes):
        _logger.warning(
            "Discarding %d trailing bytes after the last %%%%EOF at offset %d",
            len(pdf_bytes) - pos,
            eof_offset,
        )
    return pos


# ── Indirect objects ─────────────────────────────────────────────────


def _find_object_header(text: str, obj_num: int) -> int:
    """Return the offset just past the LAST ``N G obj`` header, or -1.

    Later definitions win: incremental updates redefine objects by
    appending.  The lookbehind keeps object 2 from matching ``12 0 obj``.
    """
    pattern = re.compile(rf"(?<![0-9]){obj_num}\s+\d+\s+obj\b")
    end = -1
    for m in pattern.finditer(text):
        end = m.end()
    return end


def find_object_body(text: str, obj_num: int) -> str | None:
    """Return the raw value of the last definition of an object, or None."""
    header_end = _find_object_header(text, obj_num)
    if header_end < 0:
        return None
    start = header_end
    while start < len(text) and text[start] in " \t\r\n\f\x00":
        start += 1
    try:
        end = scan_value(text, start)
    except StructuralError:
        return None
    return text[start:end]


def find_object_dict(text: str, obj_num: int) -> str | None:
    """Return the content between the outer ``<< >>`` of an object, stripped.

    Returns None if the object does not exist or is not a dictionary.
    """
    body = find_object_body(text, obj_num)
    if body is None or not body.startswith("<<"):
        return None
    return body[2:-2].strip()


def read_object_dict(text: str, obj_num: int, what: str = "object") -> PdfDict:
    """Parse an object's dictionary.

    Raises:
        StructuralError: If the object is missing or not a dictionary.
    """
    content = find_object_dict(text, obj_num)
    if content is None:
        raise StructuralError(f"Cannot read {what} {obj_num}.")
    return PdfDict.parse(content)


def resolve_reference_array(text: str, pdf_dict: PdfDict, key: str) -> list[str] | None:
    """Return the references held by key, resolving an indirect array.

    ``/Annots 7 0 R`` may point at an array object rather than a single
    annotation; in that case the array's own references are returned.
    Returns None when key is absent.
    """
    if key not in pdf_dict:
        return None
    ref_num = pdf_dict.reference(key)
    if ref_num is not None:
        body = find_object_body(text, ref_num)
        if body is not None and body.startswith("["):
            return [f"{m.group(1)} {m.group(2)} R" for m in REFERENCE_PATTERN.finditer(body)]
    return pdf_dict.references(key)


# ── Page tree ────────────────────────────────────────────────────────


def find_page_obj_num(text: str, root_obj_num: int, page_index: int = 0) -> int:
    """Resolve Root -> /Pages -> /Kids[page_index] to an object number.

    Raises:
        StructuralError: If the catalog, page tree or kid cannot be read,
            if the index is out of range, or if the tree is nested.
    """
    root = read_object_dict(text, root_obj_num, "catalog")
    pages_num = root.reference("/Pages")
    if pages_num is None:
        raise StructuralError("Cannot find /Pages in catalog.")

    pages = read_object_dict(text, pages_num, "page tree")
    kids = resolve_reference_array(text, pages, "/Kids")
    if not kids:
        raise StructuralError("Cannot find /Kids in page tree.")

    if page_index < 0 or page_index >= len(kids):
        raise StructuralError(f"Page index {page_index} out of range (0..{len(kids) - 1}).")

    page_num = int(kids[page_index].split()[0])
    kid_type = (PdfDict.parse(find_object_dict(text, page_num) or "").get("/Type") or "").strip()
    if kid_type == "/Pages":
        raise StructuralError("Nested page trees are not supported.")
    return page_num


def read_page_info(text: str, page_obj_num: int) -> PageInfo:
    """Read a page's dictionary and its existing /Annots references."""
    content = find_object_dict(text, page_obj_num)
    if content is None:
        raise StructuralError(f"Cannot read page object {page_obj_num}.")
    page = PdfDict.parse(content)
    return PageInfo(
        obj_num=page_obj_num,
        dict_content=content,
        existing_annot_refs=resolve_reference_array(text, page, "/Annots"),
    )


def _parse_box(value: str | None) -> tuple[float, float, float, float] | None:
    if value is None:
        return None
    value = value.strip()
    if not (value.startswith("[") and value.endswith("]")):
        return None
    parts = value[1:-1].split()
    if len(parts) != 4:
        return None
    try:
        llx, lly, urx, ury = (float(p) for p in parts)
    except ValueError:
        return None
    return llx, lly, urx, ury


def read_page_media_box(text: str, page_obj_num: int) -> tuple[float, float, float, float]:
    """Return the page /MediaBox as (llx, lly, urx, ury).

    An inherited box on the parent node is honoured.  Anything unreadable
    falls back to US Letter.
    """
    try:
        page = read_object_dict(text, page_obj_num, "page")
        box = _parse_box(page.get("/MediaBox"))
        if box is None:
            parent_num = page.reference("/Parent")
            if parent_num is not None:
                box = _parse_box(read_object_dict(text, parent_num, "page tree").get("/MediaBox"))
    except StructuralError as e:
        _logger.warning("Cannot read page %d for /MediaBox: %s", page_obj_num, e)
        box = None

    if box is None:
        _logger.warning("No readable /MediaBox on page %d, assuming US Letter", page_obj_num)
        return DEFAULT_MEDIA_BOX
    return box


# ── Signature fields ─────────────────────────────────────────────────


def next_signature_field_name(text: str) -> str:
    """Return the first unused ``SignatureN`` field name (N starts at 1)."""
    n = 1
    while f"/T ({SIGNATURE_FIELD_PREFIX}{n})" in text:
        n += 1
    return f"{SIGNATURE_FIELD_PREFIX}{n}"


# ── Byte-level helpers ───────────────────────────────────────────────


def replace_fixed_length(data: bytes, target: bytes, replacement: bytes, search_from: int) -> bytes:
    """Replace the first target at or after search_from without changing length.

    Raises:
        ValueError: If target and replacement differ in length.
        StructuralError: If target is not found.
    """
    if len(target) != len(replacement):
        raise ValueError(
            f"Replacement length {len(replacement)} differs from target length {len(target)}"
        )
    pos = data.find(target, search_from)
    if pos < 0:
        raise StructuralError(f"Placeholder not found (searched from offset {search_from}).")
    return data[:pos] + replacement + data[pos + len(target) :]
