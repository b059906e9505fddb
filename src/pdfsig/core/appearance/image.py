# pyright: reportUnknownMemberType=false
"""
Image loading for signature overlays.

Loads PNG/JPEG (and a few other) images with Pillow, downscales large
ones, and splits off the alpha channel so it can become a PDF soft mask.
Pixel data is returned raw; the overlay compresses it.
"""

from __future__ import annotations

__all__ = [
    "ImageData",
    "image_from_pillow",
    "load_signature_image",
]

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from PIL import Image

if TYPE_CHECKING:
    from PIL.Image import Image as PILImage


@dataclass(frozen=True)
class ImageData:
    """Raw pixels for an image XObject."""

    rgb: bytes  # 3 bytes per pixel, row-major
    alpha: bytes | None  # 1 byte per pixel, or None if fully opaque
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid image size {self.width}x{self.height}")
        pixels = self.width * self.height
        if len(self.rgb) != pixels * 3:
            raise ValueError(f"RGB data is {len(self.rgb)} bytes, expected {pixels * 3}")
        if self.alpha is not None and len(self.alpha) != pixels:
            raise ValueError(f"Alpha data is {len(self.alpha)} bytes, expected {pixels}")


# Drawn signatures don't need more than this on the long side
_MAX_IMAGE_PX = 1000

# Maximum input file size (5 MB)
_MAX_FILE_SIZE = 5 * 1024 * 1024

# Allowed image formats (Pillow format names).
_ALLOWED_FORMATS = {"PNG", "JPEG", "GIF", "BMP", "TIFF", "WEBP"}

# Reject decompression bombs before any pixel data is decoded
_MAX_IMAGE_PIXELS = 4000 * 4000


def image_from_pillow(img: PILImage) -> ImageData:
    """Convert a Pillow image to ImageData, downscaling if needed.

    An alpha channel (RGBA, LA, PA, or a palette with transparency) is kept
    as a separate grayscale mask.
    """
    max_dim = max(img.width, img.height)
    if max_dim > _MAX_IMAGE_PX:
        scale = _MAX_IMAGE_PX / max_dim
        new_w = max(1, int(img.width * scale))
        new_h = max(1, int(img.height * scale))
        img = img.resize((new_w, new_h), Image.Resampling.LANCZOS)

    if img.mode == "P" and "transparency" in img.info:
        img = img.convert("RGBA")

    alpha = None
    if img.mode in ("RGBA", "LA", "PA"):
        alpha = img.getchannel("A").tobytes()
        img = img.convert("RGB")
    elif img.mode != "RGB":
        img = img.convert("RGB")

    return ImageData(rgb=img.tobytes(), alpha=alpha, width=img.width, height=img.height)


def load_signature_image(image_path: str | Path) -> ImageData:
    """Load an image file for placement on a PDF page.

    Raises:
        FileNotFoundError: If image_path does not exist.
        ValueError: If the file is empty, too large, or not a supported image.
    """
    path = Path(image_path).resolve()
    if not path.exists():
        raise FileNotFoundError(f"Signature image not found: {path}")

    file_size = path.stat().st_size
    if file_size > _MAX_FILE_SIZE:
        raise ValueError(
            f"Signature image too large: {file_size / 1024 / 1024:.1f} MB "
            f"(max {_MAX_FILE_SIZE / 1024 / 1024:.0f} MB)"
        )
    if file_size == 0:
        raise ValueError("Signature image file is empty")

    try:
        img = Image.open(path)
    except OSError as exc:
        # UnidentifiedImageError is an OSError subclass
        raise ValueError(f"Cannot load image file: {exc}") from exc

    try:
        # Image.open() only reads the header, so this runs before decompression
        pixel_count = img.width * img.height
        if pixel_count > _MAX_IMAGE_PIXELS:
            raise ValueError(
                f"Image too large: {img.width}x{img.height} ({pixel_count:,} pixels). "
                f"Maximum: {_MAX_IMAGE_PIXELS:,} pixels."
            )
        if not img.format or img.format not in _ALLOWED_FORMATS:
            actual = img.format or "unknown"
            raise ValueError(
                f"Unsupported image format: {actual}. "
                f"Supported: {', '.join(sorted(_ALLOWED_FORMATS))}"
            )
        return image_from_pillow(img)
    finally:
        img.close()
