"""Tests for pdfsig.core.pdf.incremental and objects -- update assembly."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import pytest

from pdfsig.core.pdf.incremental import UpdateWriter, build_signature_update, build_xref_and_trailer
from pdfsig.core.pdf.objects import (
    ANNOT_FLAGS_SIG_WIDGET,
    BYTERANGE_PLACEHOLDER,
    build_catalog_override,
    build_signature_dict,
    build_widget_dict,
    contents_placeholder,
    format_float,
    pdf_date,
    pdf_string,
)
from pdfsig.core.pdf.parser import (
    find_append_point,
    find_eof,
    find_object_dict,
    parse_trailer,
    pdf_text,
    read_page_info,
)
from pdfsig.errors import StructuralError

from .conftest import last_xref_entries

# ── Object helpers ───────────────────────────────────────────────────


def test_pdf_string_escapes():
    assert pdf_string("a(b)c\\d") == "a\\(b\\)c\\\\d"
    assert pdf_string("line\nnext\ttab") == "line\\nnext\\ttab"
    assert pdf_string("\x01") == "\\001"


def test_pdf_string_replaces_non_latin1(caplog):
    with caplog.at_level(logging.WARNING, logger="pdfsig.core.pdf.objects"):
        assert pdf_string("café Ա") == "café ?"
    assert "non-Latin1" in caplog.text


def test_pdf_date_utc():
    when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone(timedelta(hours=2)))
    assert pdf_date(when) == "D:20240102010405+00'00'"


def test_contents_placeholder():
    assert contents_placeholder(4) == b"<00000000>"


def test_format_float():
    assert format_float(1) == "1.0000"
    assert format_float(61.2) == "61.2000"


def test_build_signature_dict():
    text = build_signature_dict(
        reason="Approve (final)",
        location="Yerevan",
        contact_info="a@b.c",
        signing_time=datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc),
        signer_name="Jane",
        placeholder_size=16,
    )
    assert "/Type /Sig" in text
    assert "/Filter /Adobe.PPKLite" in text
    assert "/SubFilter /ETSI.CAdES.detached" in text
    assert f"/ByteRange {BYTERANGE_PLACEHOLDER.decode()}" in text
    assert "/Contents <" + "0" * 32 + ">" in text
    assert "/Reason (Approve \\(final\\))" in text
    assert "/Location (Yerevan)" in text
    assert "/ContactInfo (a@b.c)" in text
    assert "/M (D:20240506070809+00'00')" in text
    assert "/Name (Jane)" in text


def test_build_signature_dict_without_name():
    text = build_signature_dict(reason="", location="", contact_info="")
    assert "/Name" not in text


def test_build_widget_dict():
    text = build_widget_dict("Signature1", 7, 3)
    assert "/FT /Sig" in text
    assert "/T (Signature1)" in text
    assert "/V 7 0 R" in text
    assert "/P 3 0 R" in text
    assert "/Rect [0 0 0 0]" in text
    assert f"/F {ANNOT_FLAGS_SIG_WIDGET}" in text
    assert ANNOT_FLAGS_SIG_WIDGET == 132


def test_build_catalog_override_new_acroform():
    out = build_catalog_override("", "/Type /Catalog /Pages 2 0 R", "8 0 R")
    assert "/Pages 2 0 R" in out
    assert "/AcroForm << /Fields [8 0 R] /SigFlags 3 >>" in out


def test_build_catalog_override_inline_acroform_keeps_entries():
    root = "/Type /Catalog /Pages 2 0 R /AcroForm << /Fields [5 0 R] /DA (/Helv 0 Tf 0 g) >>"
    out = build_catalog_override("", root, "8 0 R")
    assert "/AcroForm << /Fields [5 0 R 8 0 R] /DA (/Helv 0 Tf 0 g) /SigFlags 3 >>" in out
    assert out.count("/AcroForm") == 1


def test_build_catalog_override_indirect_fields():
    text = "9 0 obj\n[5 0 R]\nendobj\n"
    out = build_catalog_override(text, "/Pages 2 0 R /AcroForm << /Fields 9 0 R >>", "8 0 R")
    assert "/Fields [5 0 R 8 0 R]" in out


# ── build_xref_and_trailer ───────────────────────────────────────────


def test_xref_groups_contiguous_runs():
    xref = build_xref_and_trailer({5: 100, 6: 200, 3: 300, 1: 400}, 999, 7, 1, 50)
    assert xref == (
        b"xref\n"
        b"1 1\n0000000400 00000 n \n"
        b"3 1\n0000000300 00000 n \n"
        b"5 2\n0000000100 00000 n \n0000000200 00000 n \n"
        b"trailer\n<< /Size 7 /Root 1 0 R /Prev 50 >>\n"
        b"startxref\n999\n%%EOF\n"
    )


def test_xref_entries_are_20_bytes():
    xref = build_xref_and_trailer({1: 12345}, 0, 2, 1, 0)
    entry = xref.split(b"\n")[2] + b"\n"
    assert len(entry) == 20


def test_xref_requires_entries():
    with pytest.raises(StructuralError):
        build_xref_and_trailer({}, 0, 1, 1, 0)


# ── UpdateWriter ─────────────────────────────────────────────────────


def test_update_writer_offsets():
    writer = UpdateWriter(append_offset=1000)
    first = writer.add(8, "<< >>")
    second = writer.add(9, b"[1 2]")
    assert first == 1
    assert second == 1 + len(b"8 0 obj\n<< >>\nendobj\n\n")
    data = writer.finish(10, 1, 500)
    assert data.startswith(b"\n8 0 obj\n")
    assert last_xref_entries(b"x" * 1000 + data) == {8: 1001, 9: 1000 + second}


def test_update_writer_rejects_duplicate_object():
    writer = UpdateWriter(0)
    writer.add(4, "<< >>")
    with pytest.raises(StructuralError, match="twice"):
        writer.add(4, "<< >>")


# ── build_signature_update ───────────────────────────────────────────


def _signature_update(pdf: bytes, **kwargs):
    eof = find_eof(pdf)
    trailer = parse_trailer(pdf, eof)
    text = pdf_text(pdf)
    append_point = find_append_point(pdf, eof)
    update = build_signature_update(
        trailer,
        read_page_info(text, 3),
        find_object_dict(text, trailer.root_obj_num) or "",
        text,
        field_name="Signature1",
        append_offset=append_point,
        **kwargs,
    )
    return pdf[:append_point] + update.data, update, append_point


def test_signature_update_object_numbers(simple_pdf):
    combined, _, _ = _signature_update(simple_pdf)
    entries = last_xref_entries(combined)
    assert sorted(entries) == [1, 3, 6, 7]
    for num, offset in entries.items():
        assert combined[offset:].startswith(f"{num} 0 obj".encode())
    assert b"/Size 8 /Root 1 0 R" in combined


def test_signature_update_preserves_original_bytes(simple_pdf):
    combined, _, append_point = _signature_update(simple_pdf)
    assert append_point == len(simple_pdf)
    assert combined.startswith(simple_pdf)


def test_signature_update_prev_chains_to_old_xref(simple_pdf):
    combined, _, _ = _signature_update(simple_pdf)
    old_startxref = int(simple_pdf.rsplit(b"startxref", 1)[1].split()[0])
    assert f"/Prev {old_startxref} >>".encode() in combined


def test_signature_update_placeholder_offsets(simple_pdf):
    combined, update, append_point = _signature_update(simple_pdf, placeholder_size=1024)
    contents = append_point + update.contents_hex_offset
    byterange = append_point + update.byterange_placeholder_offset
    assert combined[contents : contents + 1] == b"<"
    assert combined[contents + 1 + 2048 : contents + 2 + 2048] == b">"
    end = byterange + update.byterange_placeholder_length
    assert combined[byterange:end] == BYTERANGE_PLACEHOLDER


def test_signature_update_appends_to_existing_annots(annotated_pdf):
    combined, _, _ = _signature_update(annotated_pdf)
    assert b"/Annots [6 0 R 8 0 R]" in combined


def test_signature_update_resolves_indirect_annots(indirect_annots_pdf):
    combined, _, _ = _signature_update(indirect_annots_pdf)
    assert b"/Annots [7 0 R 9 0 R]" in combined
