"""Data-URI helpers for PDF and image payloads."""

import base64
import binascii
import re
from typing import Optional, Tuple, Union

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^,;]+)*),(?P<data>.*)$", re.DOTALL)


def is_data_uri(value: object) -> bool:
    """Return True if value is a string starting with ``data:``."""
    return isinstance(value, str) and value.startswith("data:")


def decode_data_uri(value: str) -> Tuple[Optional[str], bytes]:
    """Decode a data URI into (mime_type, payload).

    Supports base64 payloads (``;base64``) and percent-free plain payloads.

    Args:
        value: Data URI, e.g. "data:image/png;base64,iVBOR..."

    Returns:
        Tuple of mime type (None if absent) and decoded bytes

    Raises:
        ValueError: If value is not a data URI or the payload is not valid base64

    Examples:
        >>> decode_data_uri("data:text/plain;base64,aGk=")
        ('text/plain', b'hi')
    """
    match = _DATA_URI_RE.match(value.strip())
    if not match:
        raise ValueError("Not a data URI")

    mime = match.group("mime")
    params = match.group("params") or ""
    data = match.group("data")

    if ";base64" in params:
        try:
            payload = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"Invalid base64 payload in data URI: {exc}") from exc
    else:
        payload = data.encode("utf-8")

    return mime, payload


def to_bytes(value: Union[bytes, bytearray, memoryview, str]) -> bytes:
    """Normalize raw bytes, a data URI or a bare base64 string to bytes.

    Raises:
        ValueError: If a string is neither a data URI nor valid base64
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)

    if is_data_uri(value):
        return decode_data_uri(value)[1]

    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"String payload is neither a data URI nor base64: {exc}") from exc
