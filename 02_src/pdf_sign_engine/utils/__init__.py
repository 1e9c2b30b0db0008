"""Utility helpers: data URIs, image decoding, logging setup."""

from .data_uri import decode_data_uri, is_data_uri, to_bytes
from .images import DecodedImage, decode_image
from .logging_setup import setup_logging

__all__ = [
    "decode_data_uri",
    "is_data_uri",
    "to_bytes",
    "DecodedImage",
    "decode_image",
    "setup_logging",
]
