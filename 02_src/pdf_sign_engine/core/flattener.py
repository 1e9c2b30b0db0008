"""Page flattening: bake /Rotate into content so every page has rotation 0.

After flattening, each page is exactly the size the viewer displayed and
its content looks the same, so top-left screen coordinates map to PDF
space with a single Y flip.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import fitz  # pymupdf

from ..exceptions import PageCopyError
from ..schemas.geometry import DocumentGeometry, FlattenedPageInfo, PageGeometry
from .geometry import METADATA_FIELDS, PageGeometryExtractor, open_pdf
from .scan_detector import ScanAnomalyDetector
from .transform import counter_rotation_matrix

logger = logging.getLogger(__name__)

BLANK_STRATEGY = "blank"


class PageCopyStrategy(ABC):
    """Copies one source page into the target document at rotation 0.

    Implementations append exactly one page on success. On failure they
    raise PageCopyError; pages they appended are removed by the caller.
    """

    name: str = ""

    @abstractmethod
    def copy_page_content(
        self,
        source: fitz.Document,
        page_index: int,
        target: fitz.Document,
        geometry: PageGeometry,
    ) -> fitz.Page:
        """Copy page ``page_index`` (0-based) of source to the end of target.

        Args:
            source: Source document
            page_index: 0-based source page index
            target: Document receiving the flattened page
            geometry: Geometry of the source page

        Returns:
            The new page in target

        Raises:
            PageCopyError: If the page cannot be copied
        """
        raise NotImplementedError


class EmbedDocumentStrategy(PageCopyStrategy):
    """Draws the source page as a form XObject, rotated by -rotation.

    The source page's /Rotate is set to 0 while it is embedded so that
    PyMuPDF maps the unrotated box and only the explicit counter-rotation
    applies; it is restored afterwards. Annotations and links of the
    source page are not carried over.
    """

    name = "embed"

    def copy_page_content(self, source, page_index, target, geometry):
        declared = None
        source_page = None
        try:
            source_page = source.load_page(page_index)
            declared = source_page.rotation
            if declared:
                source_page.set_rotation(0)

            page = target.new_page(width=geometry.display_width, height=geometry.display_height)
            page.show_pdf_page(page.rect, source, page_index, rotate=-geometry.rotation)
            return page
        except Exception as exc:
            raise PageCopyError(geometry.page_number, self.name, str(exc)) from exc
        finally:
            if declared:
                source_page.set_rotation(declared)


class PerPageCopyStrategy(PageCopyStrategy):
    """Copies the page object and prepends a counter-rotation matrix to its content."""

    name = "per_page_copy"

    def copy_page_content(self, source, page_index, target, geometry):
        try:
            target.insert_pdf(source, from_page=page_index, to_page=page_index)
            page = target.load_page(target.page_count - 1)

            matrix = counter_rotation_matrix(
                geometry.rotation,
                geometry.display_width,
                geometry.display_height,
                origin=_box_origin(page),
            )
            _prepend_matrix(target, page, matrix)

            page.set_rotation(0)
            page.set_mediabox(fitz.Rect(0, 0, geometry.display_width, geometry.display_height))
            return target.load_page(page.number)
        except Exception as exc:
            raise PageCopyError(geometry.page_number, self.name, str(exc)) from exc


def _box_origin(page: fitz.Page) -> Tuple[float, float]:
    """Bottom-left corner of the visible box in PDF coordinates.

    PyMuPDF resolves inherited boxes and reports the CropBox with a
    top-left y axis measured from the MediaBox top.
    """
    crop = page.cropbox
    return crop.x0, page.mediabox.y1 - crop.y1


def _new_stream(doc: fitz.Document, data: bytes) -> int:
    xref = doc.get_new_xref()
    doc.update_object(xref, "<<>>")
    doc.update_stream(xref, data, new=True)
    return xref


def _prepend_matrix(doc: fitz.Document, page: fitz.Page, matrix: fitz.Matrix) -> None:
    """Wrap the page content in ``q <matrix> cm ... Q``."""
    contents = list(page.get_contents())
    head = _new_stream(doc, b"q\n%.6f %.6f %.6f %.6f %.6f %.6f cm\n" % tuple(matrix))
    tail = _new_stream(doc, b"\nQ\n")

    refs = " ".join(f"{x} 0 R" for x in [head] + contents + [tail])
    doc.xref_set_key(page.xref, "Contents", f"[{refs}]")


@dataclass
class FlattenResult:
    """Output of PageFlattener.

    Attributes:
        document: Document to draw on (the original when nothing was flattened)
        page_info: Per-page outcome, in page order
        was_flattened: True if the document was rewritten
        strategy: Copy strategy chosen on the first page, or None
        copy_failures: Pages that were replaced by blank pages
    """
    document: fitz.Document
    page_info: List[FlattenedPageInfo]
    was_flattened: bool
    strategy: Optional[str] = None
    copy_failures: List[PageCopyError] = field(default_factory=list)

    @property
    def failed_pages(self) -> List[int]:
        return [failure.page_number for failure in self.copy_failures]

    def close(self) -> None:
        self.document.close()


class PageFlattener:
    """Rewrites documents so every page has rotation 0 and its displayed size."""

    def __init__(
        self,
        detector: Optional[ScanAnomalyDetector] = None,
        strategies: Optional[Sequence[PageCopyStrategy]] = None,
    ) -> None:
        """Initialize flattener.

        Args:
            detector: Anomaly detector used by flatten()
            strategies: Copy strategies in preference order
        """
        self.detector = detector if detector is not None else ScanAnomalyDetector()
        self.strategies: List[PageCopyStrategy] = list(strategies) if strategies is not None else [
            EmbedDocumentStrategy(),
            PerPageCopyStrategy(),
        ]
        if not self.strategies:
            raise ValueError("At least one page copy strategy is required")
        self.extractor = PageGeometryExtractor()

    def flatten(self, pdf_bytes: bytes) -> FlattenResult:
        """Flatten a document if the detector says it needs it.

        Returns the original document untouched (was_flattened=False on every
        page) when no page is rotated and the document does not look scanned.

        Raises:
            ParseError: If the PDF cannot be read
        """
        source = open_pdf(pdf_bytes)
        geometry = self.extractor.extract_document(source)

        if not self.detector.needs_flattening(geometry):
            logger.info("No flattening needed")
            page_info = [
                FlattenedPageInfo(
                    original_rotation=g.rotation,
                    effective_width=g.display_width,
                    effective_height=g.display_height,
                    was_flattened=False,
                )
                for _, g in sorted(geometry.pages.items())
            ]
            return FlattenResult(document=source, page_info=page_info, was_flattened=False)

        try:
            return self.flatten_document(source, geometry, anomalous=True)
        finally:
            source.close()

    def flatten_document(
        self,
        source: fitz.Document,
        geometry: Optional[DocumentGeometry] = None,
        anomalous: bool = True,
    ) -> FlattenResult:
        """Rewrite every page of source into a new document at rotation 0.

        The first page that copies successfully decides the document strategy.
        A later page that fails with it is retried with the remaining
        strategies; if all fail a blank page of the effective size takes its
        place and the failure is reported in copy_failures.

        Args:
            source: Open source document (left open)
            geometry: Source geometry, extracted if not given
            anomalous: Mark every page as flattened even if unrotated

        Returns:
            FlattenResult owning a new document
        """
        if geometry is None:
            geometry = self.extractor.extract_document(source)

        target = fitz.open()
        metadata = source.metadata or {}
        target.set_metadata({k: metadata[k] for k in METADATA_FIELDS if metadata.get(k)})

        primary: Optional[PageCopyStrategy] = None
        page_info: List[FlattenedPageInfo] = []
        copy_failures: List[PageCopyError] = []

        for page_number, page_geometry in sorted(geometry.pages.items()):
            ordered = self._ordered_strategies(primary)
            used: Optional[PageCopyStrategy] = None
            errors: List[str] = []

            for strategy in ordered:
                before = target.page_count
                try:
                    strategy.copy_page_content(source, page_number - 1, target, page_geometry)
                    used = strategy
                    break
                except PageCopyError as exc:
                    while target.page_count > before:
                        target.delete_page(target.page_count - 1)
                    errors.append(exc.message)
                    logger.warning(exc.message)

            if used is None:
                target.new_page(width=page_geometry.display_width, height=page_geometry.display_height)
                failure = PageCopyError(page_number, BLANK_STRATEGY, "; ".join(errors))
                copy_failures.append(failure)
                logger.warning(f"Page {page_number} replaced by a blank page: {failure.message}")
                strategy_name = BLANK_STRATEGY
            else:
                if primary is None:
                    primary = used
                    logger.info(f"Flattening with strategy '{used.name}'")
                strategy_name = used.name

            page_info.append(
                FlattenedPageInfo(
                    original_rotation=page_geometry.rotation,
                    effective_width=page_geometry.display_width,
                    effective_height=page_geometry.display_height,
                    was_flattened=anomalous or page_geometry.rotation != 0,
                    copy_strategy=strategy_name,
                )
            )

        logger.info(
            f"Flattened {len(page_info)} pages "
            f"(strategy={primary.name if primary else BLANK_STRATEGY}, failures={len(copy_failures)})"
        )

        return FlattenResult(
            document=target,
            page_info=page_info,
            was_flattened=True,
            strategy=primary.name if primary else BLANK_STRATEGY,
            copy_failures=copy_failures,
        )

    def _ordered_strategies(self, primary: Optional[PageCopyStrategy]) -> List[PageCopyStrategy]:
        if primary is None:
            return list(self.strategies)
        return [primary] + [s for s in self.strategies if s is not primary]
