"""Page geometry extraction with PyMuPDF."""

import logging
from typing import Dict, Optional

import fitz  # pymupdf

from ..exceptions import ParseError
from ..schemas.geometry import DocumentGeometry, PageGeometry

logger = logging.getLogger(__name__)

METADATA_FIELDS = ("creator", "producer", "title", "subject", "author")


def open_pdf(pdf_bytes: bytes) -> fitz.Document:
    """Open PDF bytes as a PyMuPDF document.

    Args:
        pdf_bytes: Raw PDF file content

    Returns:
        Open fitz.Document (caller closes it)

    Raises:
        ParseError: If bytes are empty, not a PDF, encrypted, or have no pages
    """
    if not pdf_bytes:
        raise ParseError("PDF data is empty")

    try:
        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    except (RuntimeError, ValueError) as exc:
        raise ParseError(f"Could not parse PDF: {exc}") from exc

    if not doc.is_pdf:
        doc.close()
        raise ParseError("Input is not a PDF document")

    if doc.needs_pass:
        doc.close()
        raise ParseError("PDF is encrypted and requires a password")

    if doc.page_count == 0:
        doc.close()
        raise ParseError("PDF has no pages")

    return doc


class PageGeometryExtractor:
    """Reads declared page boxes and rotation; never renders.

    The declared box is the CropBox, the area viewers display. No heuristic
    correction happens here: scanned-document handling belongs to
    ScanAnomalyDetector.
    """

    def extract(self, pdf_bytes: bytes, source_key: Optional[str] = None) -> DocumentGeometry:
        """Extract geometry of every page from PDF bytes.

        Args:
            pdf_bytes: Raw PDF file content
            source_key: Identity recorded on the result (URL or content hash)

        Returns:
            DocumentGeometry for all pages

        Raises:
            ParseError: If the PDF cannot be read
        """
        doc = open_pdf(pdf_bytes)
        try:
            return self.extract_document(doc, source_key=source_key)
        finally:
            doc.close()

    def extract_document(
        self,
        doc: fitz.Document,
        source_key: Optional[str] = None,
    ) -> DocumentGeometry:
        """Extract geometry from an already-open document."""
        pages: Dict[int, PageGeometry] = {}

        for index in range(doc.page_count):
            try:
                page = doc.load_page(index)
            except (RuntimeError, ValueError) as exc:
                raise ParseError(f"Page {index + 1} is unreadable: {exc}", page_number=index + 1) from exc
            pages[index + 1] = self.extract_page(page)

        geometry = DocumentGeometry(
            total_pages=doc.page_count,
            pages=pages,
            source_key=source_key,
            metadata=self.read_metadata(doc),
        )

        rotated = sum(1 for g in pages.values() if g.rotation)
        logger.info(f"Extracted geometry for {geometry.total_pages} pages ({rotated} rotated)")
        return geometry

    def extract_page(self, page: fitz.Page) -> PageGeometry:
        """Extract geometry of one page (1-based number taken from page.number)."""
        box = page.cropbox
        geometry = PageGeometry.from_declared(
            page_number=page.number + 1,
            width=box.width,
            height=box.height,
            rotation=page.rotation,
        )
        logger.debug(
            f"Page {geometry.page_number}: {geometry.original_width}x{geometry.original_height} "
            f"rot={geometry.rotation} -> {geometry.display_width}x{geometry.display_height}"
        )
        return geometry

    @staticmethod
    def read_metadata(doc: fitz.Document) -> Dict[str, str]:
        """Document info fields, empty strings dropped."""
        raw = doc.metadata or {}
        return {key: raw[key] for key in METADATA_FIELDS if raw.get(key)}
