"""PDF parsing, incremental updates, CMS containers, verification and overlays."""

from .byterange import (
    BYTERANGE_PATTERN,
    ByteRange,
    apply_byte_range,
    compute_byte_range,
    embed_cms,
    find_last_byte_range,
    format_byte_range,
    hash_byte_range,
)
from .cms import (
    build_cms_container,
    build_signed_attributes,
    extract_digest_algorithm,
    extract_message_digest,
    normalize_sha256_algorithm_ids,
    strip_excluded_attributes,
)
from .dictionary import PdfDict
from .incremental import (
    IncrementalUpdateResult,
    UpdateWriter,
    build_signature_update,
    build_xref_and_trailer,
)
from .objects import (
    ANNOT_FLAGS_SIG_WIDGET,
    BYTERANGE_PLACEHOLDER,
    contents_placeholder,
    pdf_date,
    pdf_string,
)
from .overlay import Placement, add_signature_image, add_signature_images, compute_image_rect
from .parser import (
    PageInfo,
    TrailerInfo,
    find_append_point,
    find_eof,
    find_object_dict,
    find_page_obj_num,
    next_signature_field_name,
    parse_trailer,
    pdf_text,
    read_page_info,
    read_page_media_box,
    replace_fixed_length,
)
from .verify import DocumentCheck, SignatureInfo, check_document_structure, verify_signatures

__all__ = [
    "ANNOT_FLAGS_SIG_WIDGET",
    "BYTERANGE_PATTERN",
    "BYTERANGE_PLACEHOLDER",
    "ByteRange",
    "DocumentCheck",
    "IncrementalUpdateResult",
    "PageInfo",
    "PdfDict",
    "Placement",
    "SignatureInfo",
    "TrailerInfo",
    "UpdateWriter",
    "add_signature_image",
    "add_signature_images",
    "apply_byte_range",
    "build_cms_container",
    "build_signature_update",
    "build_signed_attributes",
    "build_xref_and_trailer",
    "check_document_structure",
    "compute_byte_range",
    "compute_image_rect",
    "contents_placeholder",
    "embed_cms",
    "extract_digest_algorithm",
    "extract_message_digest",
    "find_append_point",
    "find_eof",
    "find_last_byte_range",
    "find_object_dict",
    "find_page_obj_num",
    "format_byte_range",
    "hash_byte_range",
    "next_signature_field_name",
    "normalize_sha256_algorithm_ids",
    "parse_trailer",
    "pdf_date",
    "pdf_string",
    "pdf_text",
    "read_page_info",
    "read_page_media_box",
    "replace_fixed_length",
    "strip_excluded_attributes",
    "verify_signatures",
]
