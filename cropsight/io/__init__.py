"""
Image I/O for CropSight
"""

from .codec import CodecError, decode_image, expand_palette

__all__ = [
    "CodecError",
    "decode_image",
    "expand_palette",
]
