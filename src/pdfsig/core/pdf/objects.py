"""Low-level PDF object construction.

Placeholders, string escaping, and the dictionaries appended by a
signature incremental update: the signature value, the signature
field/widget, and the revised page and catalog objects.

Update assembly (offsets, xref, trailer) is in incremental.py.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from ...constants import DEFAULT_PLACEHOLDER_SIZE
from .dictionary import PdfDict
from .parser import find_object_dict, resolve_reference_array

__all__ = [
    "ANNOT_FLAGS_SIG_WIDGET",
    "BYTERANGE_PLACEHOLDER",
    "build_catalog_override",
    "build_page_override",
    "build_signature_dict",
    "build_widget_dict",
    "contents_placeholder",
    "format_float",
    "format_indirect_object",
    "pdf_date",
    "pdf_string",
]

_logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────────

# Four zero-filled slots; replaced in place by a space-padded literal of the same length
BYTERANGE_PLACEHOLDER = b"[0 0000000000 0000000000 0000000000]"

# PDF annotation flags for signature widget (/F entry).
# Print flag is 4, Locked flag is 128; combined value is 132.
_ANNOT_FLAG_PRINT = 4
_ANNOT_FLAG_LOCKED = 128
ANNOT_FLAGS_SIG_WIDGET = _ANNOT_FLAG_PRINT | _ANNOT_FLAG_LOCKED  # 132

# SignaturesExist | AppendOnly
_SIG_FLAGS = 3


# ── PDF string/number helpers ────────────────────────────────────────


def pdf_string(text: str) -> str:
    """Escape text for a PDF literal string (without the parentheses).

    Handles backslash, parentheses and control characters.  Characters
    outside Latin-1 are replaced with '?' and a warning is logged, since
    that is data loss in the output.
    """
    result: list[str] = []
    replaced_count = 0
    for char in text:
        code = ord(char)
        if char == "\\":
            result.append("\\\\")
        elif char == "(":
            result.append("\\(")
        elif char == ")":
            result.append("\\)")
        elif char == "\n":
            result.append("\\n")
        elif char == "\r":
            result.append("\\r")
        elif char == "\t":
            result.append("\\t")
        elif code < 0x20 or code == 0x7F:
            result.append(f"\\{code:03o}")
        elif code > 0xFF:
            result.append("?")
            replaced_count += 1
        else:
            result.append(char)
    if replaced_count > 0:
        _logger.warning(
            "pdf_string: %d non-Latin1 character(s) replaced with '?' in: %r", replaced_count, text
        )
    return "".join(result)


def format_float(value: float) -> str:
    """Format a number for content streams: fixed 4 decimals, '.' separator."""
    return f"{value:.4f}"


def pdf_date(when: datetime | None = None) -> str:
    """Return a PDF date string in UTC: ``D:YYYYMMDDHHmmss+00'00'``."""
    if when is None:
        when = datetime.now(timezone.utc)
    elif when.tzinfo is not None:
        when = when.astimezone(timezone.utc)
    return when.strftime("D:%Y%m%d%H%M%S+00'00'")


def contents_placeholder(placeholder_size: int = DEFAULT_PLACEHOLDER_SIZE) -> bytes:
    """Return ``<`` + 2 x placeholder_size hex zeros + ``>``."""
    return b"<" + b"0" * (placeholder_size * 2) + b">"


def format_indirect_object(obj_num: int, body: str | bytes) -> bytes:
    """Wrap a serialized value as ``N 0 obj ... endobj`` followed by a blank line."""
    if isinstance(body, str):
        body = body.encode("latin-1")
    return f"{obj_num} 0 obj\n".encode("latin-1") + body + b"\nendobj\n\n"


# ── Signature objects ────────────────────────────────────────────────


def build_signature_dict(
    *,
    reason: str,
    location: str,
    contact_info: str,
    signing_time: datetime | None = None,
    signer_name: str | None = None,
    placeholder_size: int = DEFAULT_PLACEHOLDER_SIZE,
) -> str:
    """Serialize the signature value dictionary with both placeholders."""
    lines = [
        "<<",
        "/Type /Sig",
        "/Filter /Adobe.PPKLite",
        "/SubFilter /ETSI.CAdES.detached",
        f"/ByteRange {BYTERANGE_PLACEHOLDER.decode('ascii')}",
        f"/Contents {contents_placeholder(placeholder_size).decode('ascii')}",
        f"/Reason ({pdf_string(reason)})",
        f"/Location ({pdf_string(location)})",
        f"/ContactInfo ({pdf_string(contact_info)})",
        f"/M ({pdf_date(signing_time)})",
    ]
    if signer_name:
        lines.append(f"/Name ({pdf_string(signer_name)})")
    lines.append(">>")
    return "\n".join(lines)


def build_widget_dict(field_name: str, sig_obj_num: int, page_obj_num: int) -> str:
    """Serialize the merged signature field + invisible widget annotation."""
    widget = PdfDict(
        [
            ("/Type", "/Annot"),
            ("/Subtype", "/Widget"),
            ("/FT", "/Sig"),
            ("/T", f"({pdf_string(field_name)})"),
            ("/V", f"{sig_obj_num} 0 R"),
            ("/Rect", "[0 0 0 0]"),
            ("/F", str(ANNOT_FLAGS_SIG_WIDGET)),
            ("/P", f"{page_obj_num} 0 R"),
        ]
    )
    return widget.serialize()


def build_page_override(
    page_dict_content: str, existing_annot_refs: list[str] | None, new_ref: str
) -> str:
    """Serialize the page dictionary with new_ref appended to /Annots.

    existing_annot_refs are the already-resolved references (an indirect
    /Annots array is replaced by an inline one).
    """
    page = PdfDict.parse(page_dict_content)
    refs = list(existing_annot_refs or [])
    refs.append(new_ref)
    page.set("/Annots", f"[{' '.join(refs)}]")
    return page.serialize()


def build_catalog_override(pdf_text: str, root_dict_content: str, field_ref: str) -> str:
    """Serialize the catalog with an inline /AcroForm that lists field_ref.

    An existing /AcroForm, inline or indirect, is replaced by an inline
    dictionary that keeps its other entries and existing /Fields.
    """
    catalog = PdfDict.parse(root_dict_content)

    acroform = PdfDict()
    value = catalog.get("/AcroForm")
    if value is not None:
        ref_num = catalog.reference("/AcroForm")
        if ref_num is not None:
            content = find_object_dict(pdf_text, ref_num)
            if content is None:
                _logger.warning("Cannot resolve /AcroForm %d, starting a new one", ref_num)
            else:
                acroform = PdfDict.parse(content)
        elif value.strip().startswith("<<"):
            acroform = PdfDict.parse(value)

    fields = resolve_reference_array(pdf_text, acroform, "/Fields") or []
    fields.append(field_ref)
    acroform.set("/Fields", f"[{' '.join(fields)}]")
    acroform.set("/SigFlags", str(_SIG_FLAGS))

    catalog.remove("/AcroForm")
    catalog.set("/AcroForm", acroform.serialize(inline=True))
    return catalog.serialize()
