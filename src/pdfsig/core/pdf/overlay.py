"""Raster image overlay via incremental update.

Places an image XObject on a page by appending: an optional grayscale
soft mask, the RGB image, a small content stream that draws it, and a
revised page object whose /Contents and /Resources pick both up.
Existing page content is never touched.

Positions are normalized to the page (0..1) with a top-down y axis, the
way a placement UI reports them.
"""

from __future__ import annotations

import logging
import zlib
from collections.abc import Iterable
from dataclasses import dataclass

from ..appearance.image import ImageData
from .dictionary import REFERENCE_PATTERN, PdfDict
from .incremental import UpdateWriter
from .objects import format_float
from .parser import (
    find_append_point,
    find_eof,
    find_object_dict,
    find_page_obj_num,
    parse_trailer,
    pdf_text,
    read_object_dict,
    read_page_media_box,
    resolve_reference_array,
)

__all__ = [
    "IMAGE_RESOURCE_NAME",
    "Placement",
    "add_signature_image",
    "add_signature_images",
    "compute_image_rect",
]

_logger = logging.getLogger(__name__)

IMAGE_RESOURCE_NAME = "SigImg"


@dataclass(frozen=True)
class Placement:
    """Where to draw an image: page index plus a normalized rectangle."""

    page_index: int
    x: float
    y: float
    width: float
    height: float


def _check_normalized(x: float, y: float, width: float, height: float) -> None:
    for name, value in (("x", x), ("y", y)):
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"{name}={value} is outside 0..1")
    for name, value in (("width", width), ("height", height)):
        if not 0.0 < value <= 1.0:
            raise ValueError(f"{name}={value} must be in (0, 1]")


def compute_image_rect(
    media_box: tuple[float, float, float, float],
    x: float,
    y: float,
    width: float,
    height: float,
) -> tuple[float, float, float, float]:
    """Map a normalized top-down rectangle to PDF user space.

    Returns:
        (x, y, width, height) in points, y measured from the bottom.
    """
    llx, lly, urx, ury = media_box
    page_w = urx - llx
    page_h = ury - lly
    return (
        x * page_w + llx,
        (1.0 - y - height) * page_h + lly,
        width * page_w,
        height * page_h,
    )


def _image_stream(
    image: ImageData, samples: bytes, color_space: str, smask_ref: str | None = None
) -> bytes:
    entries = [
        ("/Type", "/XObject"),
        ("/Subtype", "/Image"),
        ("/Width", str(image.width)),
        ("/Height", str(image.height)),
        ("/BitsPerComponent", "8"),
        ("/ColorSpace", color_space),
        ("/Filter", "/FlateDecode"),
    ]
    if smask_ref:
        entries.append(("/SMask", smask_ref))
    entries.append(("/Length", str(len(samples))))
    header = PdfDict(entries).serialize().encode("latin-1")
    return header + b"\nstream\n" + samples + b"\nendstream"


def _content_stream(resource_name: str, rect: tuple[float, float, float, float]) -> bytes:
    sx, sy, sw, sh = rect
    ff = format_float
    content = f"q\n{ff(sw)} 0 0 {ff(sh)} {ff(sx)} {ff(sy)} cm\n/{resource_name} Do\nQ\n".encode(
        "latin-1"
    )
    header = f"<< /Length {len(content)} >>".encode("latin-1")
    return header + b"\nstream\n" + content + b"endstream"


def _resolve_dict_value(text: str, value: str | None) -> PdfDict:
    """Return an inline or indirect dictionary value as a PdfDict (empty if absent)."""
    if value is None:
        return PdfDict()
    value = value.strip()
    if value.startswith("<<"):
        return PdfDict.parse(value)
    m = REFERENCE_PATTERN.fullmatch(value)
    if m:
        content = find_object_dict(text, int(m.group(1)))
        if content is not None:
            return PdfDict.parse(content)
        _logger.warning("Cannot resolve indirect dictionary %s, starting empty", value)
    return PdfDict()


def _unique_resource_name(xobjects: PdfDict) -> str:
    name = IMAGE_RESOURCE_NAME
    n = 1
    while f"/{name}" in xobjects:
        n += 1
        name = f"{IMAGE_RESOURCE_NAME}{n}"
    return name


def _build_page_with_image(
    text: str, page: PdfDict, img_ref: str, content_ref: str
) -> tuple[str, str]:
    """Return (serialized page, resource name) with the overlay wired in."""
    page = page.copy()

    contents = resolve_reference_array(text, page, "/Contents") or []
    contents.append(content_ref)
    page.set("/Contents", f"[{' '.join(contents)}]")

    resources_value = page.get("/Resources")
    if resources_value is None:
        # Inherited resources must be carried over or existing text loses its fonts
        parent_num = page.reference("/Parent")
        if parent_num is not None:
            parent_content = find_object_dict(text, parent_num)
            if parent_content is not None:
                resources_value = PdfDict.parse(parent_content).get("/Resources")
    resources = _resolve_dict_value(text, resources_value)

    xobjects = _resolve_dict_value(text, resources.get("/XObject"))
    name = _unique_resource_name(xobjects)
    xobjects.set(f"/{name}", img_ref)
    resources.set("/XObject", xobjects.serialize(inline=True))
    page.set("/Resources", resources.serialize(inline=True))
    return page.serialize(), name


def add_signature_image(
    pdf_bytes: bytes,
    image: ImageData,
    page_index: int,
    x: float,
    y: float,
    width: float,
    height: float,
) -> bytes:
    """Draw image on a page via an incremental update.

    Args:
        pdf_bytes: Original PDF.
        image: Raw RGB (+ optional alpha) pixels.
        page_index: 0-based page index (flat page trees only).
        x, y: Normalized top-left corner, y measured from the top.
        width, height: Normalized size.

    Returns:
        New PDF bytes; the input is not modified.

    Raises:
        ValueError: If the rectangle is not normalized.
        StructuralError: If the PDF structure cannot be read.
    """
    _check_normalized(x, y, width, height)

    eof = find_eof(pdf_bytes)
    trailer = parse_trailer(pdf_bytes, eof)
    text = pdf_text(pdf_bytes)
    page_num = find_page_obj_num(text, trailer.root_obj_num, page_index)
    page = read_object_dict(text, page_num, "page")
    rect = compute_image_rect(read_page_media_box(text, page_num), x, y, width, height)

    append_point = find_append_point(pdf_bytes, eof)
    writer = UpdateWriter(append_point)

    next_obj_num = trailer.size
    smask_ref = None
    if image.alpha is not None:
        smask_num = next_obj_num
        next_obj_num += 1
        writer.add(smask_num, _image_stream(image, zlib.compress(image.alpha), "/DeviceGray"))
        smask_ref = f"{smask_num} 0 R"

    img_num = next_obj_num
    content_num = next_obj_num + 1
    new_size = next_obj_num + 2

    writer.add(img_num, _image_stream(image, zlib.compress(image.rgb), "/DeviceRGB", smask_ref))
    page_text, name = _build_page_with_image(text, page, f"{img_num} 0 R", f"{content_num} 0 R")
    writer.add(content_num, _content_stream(name, rect))
    writer.add(page_num, page_text)

    update = writer.finish(new_size, trailer.root_obj_num, trailer.prev_startxref)
    _logger.info(
        "Image %dx%d placed on page %d at (%.1f, %.1f) size %.1fx%.1f pt",
        image.width,
        image.height,
        page_index,
        *rect,
    )
    return pdf_bytes[:append_point] + update


def add_signature_images(
    pdf_bytes: bytes, image: ImageData, placements: Iterable[Placement]
) -> bytes:
    """Apply several placements in order, each as its own incremental update."""
    result = pdf_bytes
    for placement in placements:
        result = add_signature_image(
            result,
            image,
            placement.page_index,
            placement.x,
            placement.y,
            placement.width,
            placement.height,
        )
    return result
