"""Signature image decoding."""

from dataclasses import dataclass
from io import BytesIO
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

from ..exceptions import ImageDecodeError
from .data_uri import to_bytes

SUPPORTED_FORMATS = ("PNG", "JPEG")


@dataclass(frozen=True)
class DecodedImage:
    """Decoded signature raster.

    Attributes:
        data: Raw PNG/JPEG bytes, suitable for embedding
        width: Intrinsic pixel width
        height: Intrinsic pixel height
        format: "PNG" or "JPEG"
    """
    data: bytes
    width: int
    height: int
    format: str

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


def decode_image(
    image_data: Union[bytes, str],
    signature_id: Optional[str] = None,
) -> DecodedImage:
    """Decode signature image bytes or a data URI and read its pixel size.

    The raster is fully loaded so truncated files are rejected here rather
    than when the PDF is written.

    Raises:
        ImageDecodeError: If data is missing, not PNG/JPEG, or corrupt
    """
    if image_data is None or len(image_data) == 0:
        raise ImageDecodeError("no image data", signature_id)

    try:
        raw = to_bytes(image_data)
    except ValueError as exc:
        raise ImageDecodeError(str(exc), signature_id) from exc

    try:
        with Image.open(BytesIO(raw)) as img:
            fmt = img.format
            img.load()
            width, height = img.size
    except (UnidentifiedImageError, OSError, EOFError, SyntaxError, ValueError) as exc:
        raise ImageDecodeError(str(exc) or type(exc).__name__, signature_id) from exc

    if fmt not in SUPPORTED_FORMATS:
        raise ImageDecodeError(f"unsupported format {fmt}", signature_id)

    if width <= 0 or height <= 0:
        raise ImageDecodeError(f"empty image {width}x{height}", signature_id)

    return DecodedImage(data=raw, width=width, height=height, format=fmt)
