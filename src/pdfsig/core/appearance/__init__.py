"""Signature visual appearance -- raster images placed on a page."""

from .image import ImageData, image_from_pillow, load_signature_image

__all__ = [
    "ImageData",
    "image_from_pillow",
    "load_signature_image",
]
