"""MergeOrchestrator - Main entry point for placing signatures on a PDF."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

import fitz  # pymupdf

from ..exceptions import ImageDecodeError, InvalidCoordinateError, ParseError, PlacementOutOfBoundsError
from ..preprocessing.renderer import PDFRenderer
from ..preprocessing.source_loader import PdfSource, PdfSourceLoader, is_url
from ..schemas.config import EngineConfig
from ..schemas.geometry import DocumentGeometry
from ..schemas.placement import SignaturePlacement
from ..schemas.result import MergeResult, MergeStats, SkippedSignature
from .cache import GeometryCache, content_key
from .flattener import PageFlattener
from .geometry import PageGeometryExtractor, open_pdf
from .placer import SignaturePlacer
from .scan_detector import ScanAnomalyDetector
from .transform import clamp_box, to_pdf_box

logger = logging.getLogger(__name__)

DIRECT_STRATEGY = "direct"

# Per-signature errors that skip the signature instead of failing the merge
RECOVERABLE_ERRORS = (ImageDecodeError, PlacementOutOfBoundsError, InvalidCoordinateError)


class MergeState(str, Enum):
    """Stages of a merge."""
    LOADED = "loaded"
    ANALYZED = "analyzed"
    FLATTENED = "flattened"
    DIRECT = "direct"
    SIGNATURES_APPLIED = "signatures_applied"
    SERIALIZED = "serialized"


_TRANSITIONS = {
    MergeState.LOADED: (MergeState.ANALYZED,),
    MergeState.ANALYZED: (MergeState.FLATTENED, MergeState.DIRECT),
    MergeState.FLATTENED: (MergeState.SIGNATURES_APPLIED,),
    MergeState.DIRECT: (MergeState.SIGNATURES_APPLIED,),
    MergeState.SIGNATURES_APPLIED: (MergeState.SERIALIZED,),
    MergeState.SERIALIZED: (),
}


@dataclass
class MergeSession:
    """Progress of one merge request.

    Attributes:
        state: Current stage
        history: Every stage entered, in order
    """
    state: MergeState = MergeState.LOADED
    history: List[MergeState] = field(default_factory=lambda: [MergeState.LOADED])

    def advance(self, state: MergeState) -> None:
        """Move to the next stage.

        Raises:
            RuntimeError: If the transition is not allowed
        """
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid merge transition {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)
        logger.debug(f"Merge state: {state.value}")


class MergeOrchestrator:
    """Coordinates geometry extraction, flattening and signature placement.

    Features:
    - Geometry extraction with an LRU cache keyed by document identity
    - Automatic flattening of rotated or scanned documents
    - Partial-failure reporting: bad signatures are skipped, not fatal
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        cache: Optional[GeometryCache] = None,
        loader: Optional[PdfSourceLoader] = None,
        detector: Optional[ScanAnomalyDetector] = None,
        flattener: Optional[PageFlattener] = None,
        placer: Optional[SignaturePlacer] = None,
        renderer: Optional[PDFRenderer] = None,
    ):
        """Initialize orchestrator. Components not given are built from config.

        Args:
            config: Engine configuration
            cache: Geometry cache (shared between requests)
            loader: PDF source loader
            detector: Anomaly detector
            flattener: Page flattener
            placer: Signature placer
            renderer: Preview renderer
        """
        self.config = config if config is not None else EngineConfig()
        self.cache = cache if cache is not None else GeometryCache(self.config.cache_max_entries)
        self.loader = loader if loader is not None else PdfSourceLoader(self.config.source)
        self.detector = detector if detector is not None else ScanAnomalyDetector(self.config.scan_detection)
        self.flattener = flattener if flattener is not None else PageFlattener(detector=self.detector)
        self.placer = placer if placer is not None else SignaturePlacer(self.config.placement)
        self.renderer = renderer if renderer is not None else PDFRenderer()
        self.extractor = PageGeometryExtractor()
        self.last_session: Optional[MergeSession] = None

        logger.info(
            f"MergeOrchestrator initialized (cache={self.cache.max_entries}, "
            f"compress={self.config.compress})"
        )

    def extract_geometry(self, source: PdfSource) -> DocumentGeometry:
        """Geometry of every page, served from cache when possible.

        URLs are cached by URL without re-downloading; bytes and data URIs
        by content hash.

        Raises:
            ParseError: If the PDF cannot be read
            SourceFetchError: If a URL cannot be fetched
        """
        if is_url(source):
            return self.cache.get_or_compute(
                source,
                lambda: self.extractor.extract(self.loader.load(source), source_key=source),
            )

        pdf_bytes = self.loader.load(source)
        return self._geometry_for_bytes(pdf_bytes)

    def _geometry_for_bytes(self, pdf_bytes: bytes) -> DocumentGeometry:
        key = content_key(pdf_bytes)
        return self.cache.get_or_compute(key, lambda: self.extractor.extract(pdf_bytes, source_key=key))

    def merge_signatures(
        self,
        pdf_source: PdfSource,
        signatures: Sequence[Union[SignaturePlacement, Dict[str, Any]]],
    ) -> MergeResult:
        """Draw signatures onto the PDF and serialize it.

        Args:
            pdf_source: PDF bytes, data URI, path or URL
            signatures: Placements or dicts in the external signature shape

        Returns:
            MergeResult with the signed PDF and a report of applied/skipped signatures

        Raises:
            ParseError: If the PDF is unreadable or a signature targets a missing page
            SourceFetchError: If a URL cannot be fetched
        """
        session = MergeSession()
        self.last_session = session

        pdf_bytes = self.loader.load(pdf_source)
        placements = [s if isinstance(s, SignaturePlacement) else SignaturePlacement.from_dict(s) for s in signatures]
        logger.info(f"Merging {len(placements)} signatures into PDF ({len(pdf_bytes)} bytes)")

        geometry = self._geometry_for_bytes(pdf_bytes)
        for placement in placements:
            if not geometry.has_page(placement.page_number):
                raise ParseError(
                    f"Signature targets page {placement.page_number}, "
                    f"document has {geometry.total_pages} pages",
                    page_number=placement.page_number,
                )

        source = open_pdf(pdf_bytes)
        flattened = None
        try:
            needs_flattening = self.detector.needs_flattening(geometry)
            session.advance(MergeState.ANALYZED)

            if needs_flattening:
                flattened = self.flattener.flatten_document(source, geometry, anomalous=True)
                doc = flattened.document
                strategy = flattened.strategy
                session.advance(MergeState.FLATTENED)
            else:
                doc = source
                strategy = DIRECT_STRATEGY
                session.advance(MergeState.DIRECT)

            applied_ids, skipped = self._apply_signatures(doc, geometry, placements)
            session.advance(MergeState.SIGNATURES_APPLIED)

            if self.config.compress:
                output = doc.tobytes(garbage=self.config.garbage, deflate=True)
            else:
                output = doc.tobytes()
            session.advance(MergeState.SERIALIZED)

            pages_processed = doc.page_count
        finally:
            if flattened is not None:
                flattened.close()
            source.close()

        stats = MergeStats(
            original_size=len(pdf_bytes),
            final_size=len(output),
            compression_ratio=round(len(output) / len(pdf_bytes), 4),
            signatures_requested=len(placements),
            signatures_applied=len(applied_ids),
            pages_processed=pages_processed,
            was_flattened=flattened is not None,
            strategy=strategy,
            copy_failures=flattened.failed_pages if flattened is not None else [],
        )

        logger.info(
            f"Merge complete: {stats.signatures_applied}/{stats.signatures_requested} signatures, "
            f"strategy={stats.strategy}, size {stats.original_size} -> {stats.final_size}"
        )
        return MergeResult(pdf_bytes=output, stats=stats, applied_ids=applied_ids, skipped=skipped)

    def _apply_signatures(
        self,
        doc: fitz.Document,
        geometry: DocumentGeometry,
        placements: List[SignaturePlacement],
    ):
        applied_ids: List[Optional[str]] = []
        skipped: List[SkippedSignature] = []

        for index, placement in enumerate(placements):
            page_geometry = geometry.page(placement.page_number)
            try:
                pdf_box = to_pdf_box(placement.box, placement.space, page_geometry, placement.scale)
                pdf_box = clamp_box(pdf_box, page_geometry.display_width, page_geometry.display_height)

                page = doc.load_page(placement.page_number - 1)
                self.placer.place(
                    page,
                    pdf_box,
                    placement.image_data,
                    source=placement.source,
                    signature_id=placement.id,
                )
                applied_ids.append(placement.id)
            except RECOVERABLE_ERRORS as exc:
                skipped.append(
                    SkippedSignature(
                        index=index,
                        signature_id=placement.id,
                        page_number=placement.page_number,
                        code=exc.code,
                        reason=exc.message,
                    )
                )
                logger.warning(f"Skipped signature {placement.id or index} on page {placement.page_number}: {exc.message}")

        return applied_ids, skipped

    def render_preview(self, source: PdfSource, page_number: int, scale: float = 1.0) -> bytes:
        """PNG preview of one page whose pixels are screen space at scale.

        Raises:
            ParseError: If the PDF is unreadable or the page does not exist
        """
        pdf_bytes = self.loader.load(source)
        return self.renderer.render_page(pdf_bytes, page_number, scale=scale)


_default_orchestrator: Optional[MergeOrchestrator] = None


def get_default_orchestrator() -> MergeOrchestrator:
    """Process-wide orchestrator configured from PDF_SIGN_* environment variables."""
    global _default_orchestrator
    if _default_orchestrator is None:
        _default_orchestrator = MergeOrchestrator(EngineConfig.from_env())
    return _default_orchestrator


def extract_geometry(source: PdfSource) -> DocumentGeometry:
    """Geometry of every page of a PDF given as bytes, data URI or URL."""
    return get_default_orchestrator().extract_geometry(source)


def merge_signatures(
    pdf_source: PdfSource,
    signatures: Sequence[Union[SignaturePlacement, Dict[str, Any]]],
) -> MergeResult:
    """Draw signatures onto a PDF using the default orchestrator."""
    return get_default_orchestrator().merge_signatures(pdf_source, signatures)


def render_preview(source: PdfSource, page_number: int, scale: float = 1.0) -> bytes:
    """Page preview PNG using the default orchestrator."""
    return get_default_orchestrator().render_preview(source, page_number, scale)
