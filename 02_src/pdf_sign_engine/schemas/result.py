"""Merge result schemas."""

import base64
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class SkippedSignature:
    """A signature that did not make it onto the document.

    Attributes:
        index: Position in the request list (0-based)
        signature_id: Caller-supplied id, if any
        page_number: Requested page (1-based)
        code: Error code (e.g. IMAGE_DECODE_ERROR)
        reason: Human-readable explanation
    """
    index: int
    signature_id: Optional[str]
    page_number: int
    code: str
    reason: str


@dataclass
class MergeStats:
    """Processing statistics reported with every merge.

    Attributes:
        original_size: Input size in bytes
        final_size: Output size in bytes
        compression_ratio: final_size / original_size
        signatures_requested: Number of signatures in the request
        signatures_applied: Number of signatures actually drawn
        pages_processed: Pages in the output document
        was_flattened: True if the document went through PageFlattener
        strategy: "direct" or the copy strategy used for flattening
        copy_failures: Pages replaced by blank pages during flattening
    """
    original_size: int
    final_size: int
    compression_ratio: float
    signatures_requested: int
    signatures_applied: int
    pages_processed: int
    was_flattened: bool
    strategy: str
    copy_failures: List[int] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return self.signatures_applied < self.signatures_requested or bool(self.copy_failures)


@dataclass
class MergeResult:
    """Signed PDF plus the report of what was applied."""
    pdf_bytes: bytes
    stats: MergeStats
    applied_ids: List[Optional[str]] = field(default_factory=list)
    skipped: List[SkippedSignature] = field(default_factory=list)

    def to_base64(self) -> str:
        return base64.b64encode(self.pdf_bytes).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:application/pdf;base64,{self.to_base64()}"
