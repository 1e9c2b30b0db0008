"""Page previews whose pixels are screen-space coordinates."""

import io
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import fitz  # pymupdf
from PIL import Image

from ..core.geometry import open_pdf
from ..exceptions import ParseError

logger = logging.getLogger(__name__)


@dataclass
class RenderConfig:
    """Preview settings.

    Attributes:
        scale: Pixels per point; a preview at scale s is the SCREEN space at s
        format: Pillow output format
    """

    scale: float = 1.0
    format: str = "PNG"


class PDFRenderer:
    """Rasterizes pages as a viewer displays them (rotation applied).

    A page displayed at W x H points renders to round(W*s) x round(H*s)
    pixels, so a box drawn on the preview converts to points by dividing
    by s.
    """

    def __init__(self, config: Optional[RenderConfig] = None):
        self.config = config if config is not None else RenderConfig()

    def _scale(self, scale: Optional[float]) -> float:
        value = self.config.scale if scale is None else scale
        if value <= 0:
            raise ValueError(f"scale must be positive, got {value}")
        return value

    def render_document(
        self,
        pdf_bytes: bytes,
        page_numbers: Optional[Iterable[int]] = None,
        scale: Optional[float] = None,
    ) -> List[Tuple[int, bytes]]:
        """Render several pages.

        Args:
            pdf_bytes: Raw PDF content
            page_numbers: 1-based page numbers, None = every page.
                Numbers outside the document are logged and skipped.
            scale: Pixels per point, None = config default

        Returns:
            (page_number, image_bytes) pairs in request order
        """
        render_scale = self._scale(scale)
        doc = open_pdf(pdf_bytes)
        try:
            wanted = list(page_numbers) if page_numbers is not None else range(1, doc.page_count + 1)
            previews: List[Tuple[int, bytes]] = []

            for page_number in wanted:
                if not 1 <= page_number <= doc.page_count:
                    logger.warning(f"Preview skipped: page {page_number} not in 1-{doc.page_count}")
                    continue
                previews.append((page_number, self._render(doc.load_page(page_number - 1), render_scale)))

            logger.info(f"Rendered {len(previews)}/{doc.page_count} pages at scale {render_scale}")
            return previews
        finally:
            doc.close()

    def render_page(
        self,
        pdf_bytes: bytes,
        page_num: int,
        scale: Optional[float] = None,
    ) -> bytes:
        """Render one page.

        Raises:
            ParseError: If the PDF is unreadable or page_num does not exist
            ValueError: If scale is not positive
        """
        render_scale = self._scale(scale)
        doc = open_pdf(pdf_bytes)
        try:
            if not 1 <= page_num <= doc.page_count:
                raise ParseError(
                    f"Cannot preview page {page_num}: document has {doc.page_count} pages",
                    page_number=page_num,
                )
            preview = self._render(doc.load_page(page_num - 1), render_scale)
        finally:
            doc.close()

        logger.debug(f"Preview of page {page_num} at scale {render_scale}: {len(preview)} bytes")
        return preview

    def _render(self, page: fitz.Page, scale: float) -> bytes:
        pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
        out = io.BytesIO()
        Image.frombytes("RGB", (pix.width, pix.height), pix.samples).save(out, format=self.config.format)
        return out.getvalue()
