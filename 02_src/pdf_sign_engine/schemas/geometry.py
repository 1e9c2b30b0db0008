"""Page and document geometry schemas."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ..exceptions import ParseError

VALID_ROTATIONS = (0, 90, 180, 270)


class Orientation(str, Enum):
    """Displayed page orientation."""
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


def swaps_axes(rotation: int) -> bool:
    """Return True if a rotation swaps width and height when displayed."""
    return rotation % 360 in (90, 270)


@dataclass(frozen=True)
class PageGeometry:
    """Geometry of a single page as a viewer displays it.

    Attributes:
        page_number: Page number (1-based)
        original_width: Declared box width in points, before rotation
        original_height: Declared box height in points, before rotation
        rotation: Declared rotation (0, 90, 180 or 270)
        display_width: Width after applying rotation
        display_height: Height after applying rotation
    """
    page_number: int
    original_width: float
    original_height: float
    rotation: int
    display_width: float
    display_height: float

    @classmethod
    def from_declared(
        cls,
        page_number: int,
        width: float,
        height: float,
        rotation: int,
    ) -> "PageGeometry":
        """Build geometry from declared box size and rotation.

        Raises:
            ParseError: If rotation is not a multiple of 90
        """
        normalized = rotation % 360
        if normalized not in VALID_ROTATIONS:
            raise ParseError(
                f"Unsupported rotation {rotation} on page {page_number}",
                page_number=page_number,
            )

        if swaps_axes(normalized):
            display_width, display_height = height, width
        else:
            display_width, display_height = width, height

        return cls(
            page_number=page_number,
            original_width=float(width),
            original_height=float(height),
            rotation=normalized,
            display_width=float(display_width),
            display_height=float(display_height),
        )

    @property
    def orientation(self) -> Orientation:
        if self.display_width > self.display_height:
            return Orientation.LANDSCAPE
        return Orientation.PORTRAIT

    @property
    def aspect_ratio(self) -> float:
        return self.display_width / self.display_height


@dataclass(frozen=True)
class ConsistencyReport:
    """Result of comparing every page against the first page."""
    is_consistent: bool
    variations: List[PageGeometry] = field(default_factory=list)


@dataclass(frozen=True)
class DocumentGeometry:
    """Geometry for a whole document.

    Attributes:
        total_pages: Number of pages
        pages: Mapping of page_number (1-based) to PageGeometry
        source_key: Document identity used for caching (URL or content hash)
        metadata: Document info fields (creator, producer, title, ...)
    """
    total_pages: int
    pages: Dict[int, PageGeometry]
    source_key: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    def page(self, page_number: int) -> PageGeometry:
        """Get geometry of one page.

        Raises:
            ParseError: If the page does not exist
        """
        try:
            return self.pages[page_number]
        except KeyError:
            raise ParseError(
                f"Page {page_number} not found. Document has {self.total_pages} pages.",
                page_number=page_number,
            ) from None

    def has_page(self, page_number: int) -> bool:
        return page_number in self.pages

    @property
    def orientations(self) -> List[Orientation]:
        return [self.pages[n].orientation for n in sorted(self.pages)]

    def check_consistency(self, tolerance: float = 1.0) -> ConsistencyReport:
        """Check whether all pages share the first page's size and rotation.

        Mixed-size documents are legal; this is informational only.
        """
        if not self.pages:
            return ConsistencyReport(is_consistent=True)

        first = self.pages[min(self.pages)]
        variations = [
            geometry
            for _, geometry in sorted(self.pages.items())
            if abs(geometry.display_width - first.display_width) > tolerance
            or abs(geometry.display_height - first.display_height) > tolerance
            or geometry.rotation != first.rotation
        ]
        return ConsistencyReport(is_consistent=not variations, variations=variations)


@dataclass(frozen=True)
class FlattenedPageInfo:
    """Per-page outcome of flattening.

    Attributes:
        original_rotation: Rotation declared on the source page
        effective_width: Output page width (equals source display width)
        effective_height: Output page height (equals source display height)
        was_flattened: True if the page was rotated or the document was anomalous
        copy_strategy: Strategy that produced the page ("blank" when recovered)
    """
    original_rotation: int
    effective_width: float
    effective_height: float
    was_flattened: bool
    copy_strategy: Optional[str] = None
