"""Error taxonomy for geometry extraction, flattening and signature placement."""

from typing import Any, Dict, Optional


class PdfSignError(Exception):
    """Base exception for the signature placement engine."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ParseError(PdfSignError):
    """Input is not a readable PDF, or a requested page does not exist.

    Fatal for the operation: the caller cannot retry without different input.
    """

    def __init__(self, message: str, page_number: Optional[int] = None):
        details = {"page_number": page_number} if page_number is not None else None
        super().__init__("PARSE_ERROR", message, details)
        self.page_number = page_number


class ImageDecodeError(PdfSignError):
    """Signature image is not a decodable PNG or JPEG."""

    def __init__(self, reason: str, signature_id: Optional[str] = None):
        message = f"Signature image could not be decoded: {reason}"
        super().__init__("IMAGE_DECODE_ERROR", message, {"signature_id": signature_id})
        self.signature_id = signature_id


class PageCopyError(PdfSignError):
    """A page could not be copied into the flattened document."""

    def __init__(self, page_number: int, strategy: str, reason: Optional[str] = None):
        message = f"Page {page_number} could not be copied with strategy '{strategy}'"
        if reason:
            message += f": {reason}"
        super().__init__(
            "PAGE_COPY_ERROR",
            message,
            {"page_number": page_number, "strategy": strategy},
        )
        self.page_number = page_number
        self.strategy = strategy


class PlacementOutOfBoundsError(PdfSignError):
    """Final signature box falls outside the page after all adjustments."""

    def __init__(self, page_number: int, box: Any, page_size: Any):
        message = f"Signature box {box} does not fit page {page_number} of size {page_size}"
        super().__init__(
            "PLACEMENT_OUT_OF_BOUNDS",
            message,
            {"page_number": page_number, "box": box, "page_size": page_size},
        )
        self.page_number = page_number


class InvalidCoordinateError(PdfSignError, ValueError):
    """Malformed coordinate input (NaN, infinite, negative size, bad scale)."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__("INVALID_COORDINATE", message, {"field": field})
        self.field = field


class SourceFetchError(PdfSignError):
    """PDF source could not be fetched after all retries."""

    def __init__(self, url: str, reason: Optional[str] = None):
        message = f"Failed to fetch PDF from {url}"
        if reason:
            message += f": {reason}"
        super().__init__("SOURCE_FETCH_ERROR", message, {"url": url})
        self.url = url
