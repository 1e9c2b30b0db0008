"""Data schemas for the PDF signature placement engine."""

from .geometry import (
    ConsistencyReport,
    DocumentGeometry,
    FlattenedPageInfo,
    Orientation,
    PageGeometry,
)
from .placement import (
    Box,
    CoordinateSpace,
    FinalBox,
    Point,
    RelativeBox,
    SignatureField,
    SignaturePlacement,
    SignatureSource,
)
from .config import EngineConfig, PlacementConfig, ScanDetectionConfig, SourceConfig
from .result import MergeResult, MergeStats, SkippedSignature

__all__ = [
    "ConsistencyReport",
    "DocumentGeometry",
    "FlattenedPageInfo",
    "Orientation",
    "PageGeometry",
    "Box",
    "CoordinateSpace",
    "FinalBox",
    "Point",
    "RelativeBox",
    "SignatureField",
    "SignaturePlacement",
    "SignatureSource",
    "EngineConfig",
    "PlacementConfig",
    "ScanDetectionConfig",
    "SourceConfig",
    "MergeResult",
    "MergeStats",
    "SkippedSignature",
]
