"""Incremental update assembly.

Appends new and revised objects after the original ``%%EOF``, followed
by a cross-reference section and a trailer whose /Prev chains back to
the previous startxref.  The original bytes are never rewritten.

Object-level construction is in objects.py.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from ...constants import DEFAULT_PLACEHOLDER_SIZE
from ...errors import StructuralError
from .objects import (
    BYTERANGE_PLACEHOLDER,
    build_catalog_override,
    build_page_override,
    build_signature_dict,
    build_widget_dict,
    format_indirect_object,
)
from .parser import PageInfo, TrailerInfo

__all__ = [
    "IncrementalUpdateResult",
    "UpdateWriter",
    "build_signature_update",
    "build_xref_and_trailer",
]

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IncrementalUpdateResult:
    """Bytes of a signature update plus placeholder offsets within them."""

    data: bytes
    contents_hex_offset: int  # offset of the '<' opening the /Contents placeholder
    byterange_placeholder_offset: int
    byterange_placeholder_length: int


# ── Xref table builder ──────────────────────────────────────────────


def build_xref_and_trailer(
    xref_entries: dict[int, int],
    xref_offset: int,
    new_size: int,
    root_obj_num: int,
    prev_startxref: int,
) -> bytes:
    """Build an xref section and trailer for an incremental update.

    Args:
        xref_entries: Mapping of object number to absolute byte offset.
        xref_offset: Absolute byte offset where this xref section starts.
        new_size: Next free object number (/Size value).
        root_obj_num: Catalog object number for /Root.
        prev_startxref: Previous xref offset (/Prev value).

    Returns:
        Raw bytes of the xref section, trailer, startxref and %%EOF.

    Raises:
        StructuralError: If there are no entries.
    """
    if not xref_entries:
        raise StructuralError("Cannot build xref table: no objects to reference.")

    # Group consecutive object numbers into subsections
    sorted_nums = sorted(xref_entries)
    groups: list[list[int]] = []
    current_group = [sorted_nums[0]]
    for n in sorted_nums[1:]:
        if n == current_group[-1] + 1:
            current_group.append(n)
        else:
            groups.append(current_group)
            current_group = [n]
    groups.append(current_group)

    lines = ["xref\n"]
    for group in groups:
        lines.append(f"{group[0]} {len(group)}\n")
        # 20 bytes per entry: 10-digit offset, 5-digit generation, 'n', space + LF
        lines.extend(f"{xref_entries[obj_num]:010d} 00000 n \n" for obj_num in group)

    lines.append("trailer\n")
    lines.append(f"<< /Size {new_size} /Root {root_obj_num} 0 R /Prev {prev_startxref} >>\n")
    lines.append("startxref\n")
    lines.append(f"{xref_offset}\n")
    lines.append("%%EOF\n")
    return "".join(lines).encode("latin-1")


# ── Update writer ───────────────────────────────────────────────────


class UpdateWriter:
    """Collects objects for one incremental update and tracks their offsets.

    Offsets are absolute: append_offset is where the update will start in
    the combined file.  The update opens with a newline so it never runs
    into the preceding ``%%EOF``.
    """

    def __init__(self, append_offset: int) -> None:
        self._append_offset = append_offset
        self._parts: list[bytes] = [b"\n"]
        self._length = 1
        self._xref_entries: dict[int, int] = {}

    @property
    def length(self) -> int:
        """Bytes written so far, relative to the start of the update."""
        return self._length

    def add(self, obj_num: int, body: str | bytes) -> int:
        """Append an indirect object. Returns its offset within the update."""
        if obj_num in self._xref_entries:
            raise StructuralError(f"Object {obj_num} written twice in one update.")
        relative = self._length
        raw = format_indirect_object(obj_num, body)
        self._xref_entries[obj_num] = self._append_offset + relative
        self._parts.append(raw)
        self._length += len(raw)
        return relative

    def finish(self, new_size: int, root_obj_num: int, prev_startxref: int) -> bytes:
        """Append xref + trailer and return the complete update bytes."""
        xref = build_xref_and_trailer(
            xref_entries=self._xref_entries,
            xref_offset=self._append_offset + self._length,
            new_size=new_size,
            root_obj_num=root_obj_num,
            prev_startxref=prev_startxref,
        )
        return b"".join([*self._parts, xref])


# ── Signature update ────────────────────────────────────────────────


def build_signature_update(
    trailer: TrailerInfo,
    page_info: PageInfo,
    root_dict_content: str,
    pdf_text: str,
    *,
    field_name: str,
    append_offset: int,
    reason: str = "",
    location: str = "",
    contact_info: str = "",
    signer_name: str | None = None,
    signing_time: datetime | None = None,
    placeholder_size: int = DEFAULT_PLACEHOLDER_SIZE,
) -> IncrementalUpdateResult:
    """Build the incremental update that adds one signature field.

    Appends, in order: the signature value, the field/widget, the revised
    page and the revised catalog.  New object numbers start at
    ``trailer.size``; the page and catalog keep their numbers.
    """
    next_obj_num = trailer.size
    sig_obj_num = next_obj_num
    field_obj_num = next_obj_num + 1
    new_size = next_obj_num + 2

    writer = UpdateWriter(append_offset)

    sig_body = build_signature_dict(
        reason=reason,
        location=location,
        contact_info=contact_info,
        signing_time=signing_time,
        signer_name=signer_name,
        placeholder_size=placeholder_size,
    )
    sig_offset = writer.add(sig_obj_num, sig_body)
    header_len = len(f"{sig_obj_num} 0 obj\n")
    sig_text = sig_body.encode("latin-1")
    byterange_offset = sig_offset + header_len + sig_text.index(BYTERANGE_PLACEHOLDER)
    contents_offset = sig_offset + header_len + sig_text.index(b"/Contents <") + len(b"/Contents ")

    writer.add(field_obj_num, build_widget_dict(field_name, sig_obj_num, page_info.obj_num))

    field_ref = f"{field_obj_num} 0 R"
    writer.add(
        page_info.obj_num,
        build_page_override(page_info.dict_content, page_info.existing_annot_refs, field_ref),
    )
    writer.add(
        trailer.root_obj_num,
        build_catalog_override(pdf_text, root_dict_content, field_ref),
    )

    data = writer.finish(new_size, trailer.root_obj_num, trailer.prev_startxref)
    _logger.debug(
        "Signature update: sig=%d field=%d page=%d root=%d size=%d (%d bytes)",
        sig_obj_num,
        field_obj_num,
        page_info.obj_num,
        trailer.root_obj_num,
        new_size,
        len(data),
    )
    return IncrementalUpdateResult(
        data=data,
        contents_hex_offset=contents_offset,
        byterange_placeholder_offset=byterange_offset,
        byterange_placeholder_length=len(BYTERANGE_PLACEHOLDER),
    )
