"""Tests for signature image decoding."""

import base64
from io import BytesIO

import pytest
from PIL import Image

from pdf_sign_engine.exceptions import ImageDecodeError
from pdf_sign_engine.utils.images import decode_image


class TestDecodeImage:
    """Test suite for decode_image."""

    def test_png(self, make_image) -> None:
        decoded = decode_image(make_image(200, 100))
        assert (decoded.width, decoded.height, decoded.format) == (200, 100, "PNG")
        assert decoded.aspect_ratio == 2

    def test_jpeg(self, make_image) -> None:
        decoded = decode_image(make_image(120, 40, fmt="JPEG"))
        assert decoded.format == "JPEG"
        assert (decoded.width, decoded.height) == (120, 40)

    def test_data_uri(self, make_image) -> None:
        png = make_image(30, 10)
        decoded = decode_image("data:image/png;base64," + base64.b64encode(png).decode())
        assert decoded.data == png

    def test_unsupported_format(self) -> None:
        buf = BytesIO()
        Image.new("RGB", (10, 10)).save(buf, format="GIF")
        with pytest.raises(ImageDecodeError, match="unsupported format GIF"):
            decode_image(buf.getvalue(), signature_id="g")

    def test_truncated(self, make_image) -> None:
        png = make_image(300, 300, color="red")
        with pytest.raises(ImageDecodeError):
            decode_image(png[: len(png) // 2])

    @pytest.mark.parametrize("data", [b"", None, b"\x00\x01garbage", "data:image/png;base64,!!"])
    def test_invalid_input(self, data) -> None:
        with pytest.raises(ImageDecodeError) as exc_info:
            decode_image(data, signature_id="x")
        assert exc_info.value.code == "IMAGE_DECODE_ERROR"
        assert exc_info.value.signature_id == "x"
