"""PDF source loading: raw bytes, data URIs, local paths and URLs."""

import logging
import time
from pathlib import Path
from typing import Optional, Union

import requests

from ..exceptions import ParseError, SourceFetchError
from ..schemas.config import SourceConfig
from ..utils.data_uri import decode_data_uri, is_data_uri

logger = logging.getLogger(__name__)

PdfSource = Union[bytes, bytearray, memoryview, str, Path]


def is_url(value: object) -> bool:
    return isinstance(value, str) and value.lower().startswith(("http://", "https://"))


class PdfSourceLoader:
    """Resolves a PDF source to bytes.

    URLs are fetched with requests, retrying on 429, 5xx and connection
    errors with exponential backoff.
    """

    def __init__(self, config: Optional[SourceConfig] = None, session: Optional[requests.Session] = None) -> None:
        """Initialize loader.

        Args:
            config: Timeout, retry and size settings
            session: requests session (module-level requests is used if None)
        """
        self.config = config if config is not None else SourceConfig()
        self.session = session

    def load(self, source: PdfSource) -> bytes:
        """Load PDF bytes from any supported source.

        Raises:
            ParseError: If source is empty or of an unsupported type
            SourceFetchError: If a URL cannot be fetched
        """
        if isinstance(source, (bytes, bytearray, memoryview)):
            data = bytes(source)
        elif isinstance(source, Path):
            data = source.read_bytes()
        elif is_data_uri(source):
            try:
                _, data = decode_data_uri(source)
            except ValueError as exc:
                raise ParseError(f"Invalid PDF data URI: {exc}") from exc
        elif is_url(source):
            data = self.fetch(source)
        else:
            raise ParseError(f"Unsupported PDF source of type {type(source).__name__}")

        if not data:
            raise ParseError("PDF data is empty")
        return data

    def fetch(self, url: str) -> bytes:
        """Download a PDF with retries.

        Raises:
            SourceFetchError: If all attempts fail or the response is too large
        """
        http = self.session or requests
        last_error: Optional[str] = None

        for attempt in range(1, self.config.max_retries + 1):
            start_time = time.time()
            try:
                resp = http.get(url, timeout=self.config.timeout_sec)
                status = resp.status_code
                latency_ms = int((time.time() - start_time) * 1000)

                if status == 429 or (500 <= status < 600):
                    last_error = f"status={status}"
                    logger.warning(
                        f"PDF fetch attempt {attempt}/{self.config.max_retries}: "
                        f"status={status}, latency={latency_ms}ms, will retry"
                    )
                    if attempt < self.config.max_retries:
                        time.sleep(self.config.backoff_base ** (attempt - 1))
                        continue
                    break

                resp.raise_for_status()
                content = resp.content
                if len(content) > self.config.max_bytes:
                    raise SourceFetchError(url, f"response of {len(content)} bytes exceeds {self.config.max_bytes}")

                logger.info(f"Fetched PDF from {url} ({len(content)} bytes, latency={latency_ms}ms)")
                return content

            except requests.HTTPError as exc:
                # 4xx other than 429 will not succeed on retry
                raise SourceFetchError(url, str(exc)) from exc

            except requests.RequestException as exc:
                latency_ms = int((time.time() - start_time) * 1000)
                last_error = str(exc)
                logger.warning(
                    f"PDF fetch error: attempt={attempt}/{self.config.max_retries}, "
                    f"latency={latency_ms}ms, error={str(exc)[:200]}"
                )
                if attempt < self.config.max_retries:
                    time.sleep(self.config.backoff_base ** (attempt - 1))
                    continue

        raise SourceFetchError(url, last_error)
