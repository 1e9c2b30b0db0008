"""Core components: geometry, transforms, detection, flattening, placement, orchestration."""

from .cache import CacheStats, GeometryCache, content_key
from .geometry import PageGeometryExtractor, open_pdf
from .scan_detector import ScanAnomalyDetector, ScanAssessment, score_scan_indicators
from .flattener import (
    EmbedDocumentStrategy,
    FlattenResult,
    PageCopyStrategy,
    PageFlattener,
    PerPageCopyStrategy,
)
from .placer import FitStrategy, SignaturePlacer, StandardFit, WacomFit, apply_minimum_size
from .orchestrator import (
    MergeOrchestrator,
    MergeSession,
    MergeState,
    extract_geometry,
    merge_signatures,
    render_preview,
)

__all__ = [
    # Geometry
    "PageGeometryExtractor",
    "open_pdf",
    "GeometryCache",
    "CacheStats",
    "content_key",
    # Detection and flattening
    "ScanAnomalyDetector",
    "ScanAssessment",
    "score_scan_indicators",
    "PageCopyStrategy",
    "EmbedDocumentStrategy",
    "PerPageCopyStrategy",
    "PageFlattener",
    "FlattenResult",
    # Placement
    "FitStrategy",
    "StandardFit",
    "WacomFit",
    "SignaturePlacer",
    "apply_minimum_size",
    # Orchestration
    "MergeOrchestrator",
    "MergeSession",
    "MergeState",
    "extract_geometry",
    "merge_signatures",
    "render_preview",
]
