"""Configuration schemas for detection, placement, source loading and the engine."""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Tuple, Type, TypeVar

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_SCANNER_KEYWORDS: Tuple[str, ...] = (
    "scan", "scanner", "scanned", "xerox", "canon", "hp", "epson", "brother",
    "konica", "ricoh", "sharp", "toshiba", "kyocera", "panasonic", "samsung",
    "adobe scan", "camscanner", "genius scan", "office lens", "notes",
    "mobileiron", "neat", "readdle", "evernote", "microsoft lens",
)


@dataclass
class ScanDetectionConfig:
    """Weights and threshold for the scanned-document heuristic.

    The values are empirical. False positives only cost an unnecessary
    rewrite, false negatives misplace signatures, so tune toward detection.

    Attributes:
        creator_weight: Added when creator matches a scanner keyword
        producer_weight: Added when producer matches
        title_weight: Added when title matches
        subject_weight: Added when subject matches
        mixed_orientation_weight: Added for mixed portrait/landscape pages
        threshold: Confidence at or above which a document is treated as scanned
        keywords: Case-insensitive substrings identifying scan software
    """
    creator_weight: float = 0.6
    producer_weight: float = 0.5
    title_weight: float = 0.3
    subject_weight: float = 0.2
    mixed_orientation_weight: float = 0.3
    threshold: float = 0.4
    keywords: Tuple[str, ...] = DEFAULT_SCANNER_KEYWORDS

    def __post_init__(self):
        self.keywords = tuple(k.lower() for k in self.keywords)


@dataclass
class PlacementConfig:
    """Signature sizing rules.

    Attributes:
        min_width: Absolute minimum drawn width in points
        min_height: Absolute minimum drawn height in points
        wacom_aspect_tolerance: Aspect difference below which a Wacom image fills its box
        wacom_min_thickness: Minimum short-axis size for Wacom signatures in points
        wacom_min_fill_ratio: Short-axis share of the box a Wacom signature grows toward
        wacom_min_dimension: Smallest Wacom width or height, unless the box itself is smaller
        bounds_tolerance: Slack in points when validating page bounds
    """
    min_width: float = 20.0
    min_height: float = 10.0
    wacom_aspect_tolerance: float = 0.1
    wacom_min_thickness: float = 18.0
    wacom_min_fill_ratio: float = 0.4
    wacom_min_dimension: float = 10.0
    bounds_tolerance: float = 1e-6


@dataclass
class SourceConfig:
    """HTTP settings for fetching PDFs by URL.

    Attributes:
        timeout_sec: Request timeout in seconds
        max_retries: Maximum number of attempts
        backoff_base: Base for exponential backoff between attempts
        max_bytes: Refuse responses larger than this
    """
    timeout_sec: int = 30
    max_retries: int = 3
    backoff_base: float = 1.5
    max_bytes: int = 100 * 1024 * 1024


@dataclass
class EngineConfig:
    """Configuration for MergeOrchestrator.

    Attributes:
        cache_max_entries: Geometry cache size (LRU eviction)
        compress: Deflate streams and collect garbage when serializing
        garbage: PyMuPDF garbage collection level used when compressing
        preview_dpi: Default DPI for page previews
        log_level: Logging level (default: INFO)
    """
    cache_max_entries: int = 64
    compress: bool = True
    garbage: int = 3
    preview_dpi: int = 96
    log_level: str = "INFO"
    scan_detection: ScanDetectionConfig = field(default_factory=ScanDetectionConfig)
    placement: PlacementConfig = field(default_factory=PlacementConfig)
    source: SourceConfig = field(default_factory=SourceConfig)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build config from PDF_SIGN_* environment variables (.env supported)."""
        load_dotenv()
        config = cls()

        if os.getenv("PDF_SIGN_CACHE_SIZE"):
            config.cache_max_entries = int(os.environ["PDF_SIGN_CACHE_SIZE"])
        if os.getenv("PDF_SIGN_LOG_LEVEL"):
            config.log_level = os.environ["PDF_SIGN_LOG_LEVEL"].upper()
        if os.getenv("PDF_SIGN_COMPRESS"):
            config.compress = os.environ["PDF_SIGN_COMPRESS"].lower() in ("1", "true", "yes")
        if os.getenv("PDF_SIGN_SCAN_THRESHOLD"):
            config.scan_detection.threshold = float(os.environ["PDF_SIGN_SCAN_THRESHOLD"])
        if os.getenv("PDF_SIGN_FETCH_TIMEOUT"):
            config.source.timeout_sec = int(os.environ["PDF_SIGN_FETCH_TIMEOUT"])
        if os.getenv("PDF_SIGN_FETCH_RETRIES"):
            config.source.max_retries = int(os.environ["PDF_SIGN_FETCH_RETRIES"])

        logger.debug(f"Loaded EngineConfig from environment: {config}")
        return config

    @classmethod
    def from_yaml(cls, path: Path) -> "EngineConfig":
        """Load config from a YAML file.

        Top-level keys map to EngineConfig fields; ``scan_detection``,
        ``placement`` and ``source`` are nested sections.

        Raises:
            ValueError: If the file contains unknown keys
        """
        with Path(path).open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")

        nested = {
            "scan_detection": ScanDetectionConfig,
            "placement": PlacementConfig,
            "source": SourceConfig,
        }
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key in nested:
                kwargs[key] = _build(nested[key], value or {})
            else:
                kwargs[key] = value

        config = _build(cls, kwargs)
        logger.info(f"Loaded EngineConfig from {path}")
        return config


def _build(cls: Type[T], data: Dict[str, Any]) -> T:
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} keys: {sorted(unknown)}")
    if "keywords" in data and data["keywords"] is not None:
        data = dict(data, keywords=tuple(data["keywords"]))
    return cls(**data)
