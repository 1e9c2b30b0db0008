"""
PDF Sign Engine - signature placement on PDFs that matches what the user saw on screen.

This package provides:
- Page geometry extraction (display size, rotation, orientation)
- Coordinate conversion between screen, relative and PDF spaces
- Flattening of rotated and scanned documents to rotation 0
- Aspect-preserving signature placement with partial-failure reporting
"""

__version__ = "0.1.0"

# Core classes
from .core.orchestrator import (
    MergeOrchestrator,
    extract_geometry,
    merge_signatures,
    render_preview,
)
from .core.geometry import PageGeometryExtractor
from .core.cache import GeometryCache
from .core.scan_detector import ScanAnomalyDetector
from .core.flattener import PageFlattener
from .core.placer import SignaturePlacer
from .core import transform

# Errors
from .exceptions import (
    ImageDecodeError,
    InvalidCoordinateError,
    PageCopyError,
    ParseError,
    PdfSignError,
    PlacementOutOfBoundsError,
    SourceFetchError,
)

# Schemas
from .schemas.config import EngineConfig, PlacementConfig, ScanDetectionConfig, SourceConfig
from .schemas.geometry import DocumentGeometry, PageGeometry
from .schemas.placement import Box, CoordinateSpace, RelativeBox, SignatureField, SignaturePlacement
from .schemas.result import MergeResult, MergeStats

__all__ = [
    # Version
    "__version__",

    # Core classes
    "MergeOrchestrator",
    "PageGeometryExtractor",
    "GeometryCache",
    "ScanAnomalyDetector",
    "PageFlattener",
    "SignaturePlacer",
    "transform",

    # Public functions
    "extract_geometry",
    "merge_signatures",
    "render_preview",

    # Errors
    "PdfSignError",
    "ParseError",
    "ImageDecodeError",
    "PageCopyError",
    "PlacementOutOfBoundsError",
    "InvalidCoordinateError",
    "SourceFetchError",

    # Schemas - Config
    "EngineConfig",
    "PlacementConfig",
    "ScanDetectionConfig",
    "SourceConfig",

    # Schemas - Geometry and placement
    "DocumentGeometry",
    "PageGeometry",
    "Box",
    "CoordinateSpace",
    "RelativeBox",
    "SignatureField",
    "SignaturePlacement",

    # Schemas - Results
    "MergeResult",
    "MergeStats",
]
