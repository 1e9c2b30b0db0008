"""Signature placement schemas - boxes, coordinate spaces and placement requests."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union


class CoordinateSpace(str, Enum):
    """Coordinate space a target box is expressed in.

    SCREEN: pixels at a zoom scale, top-left origin
    RELATIVE: fractions of the displayed page in [0, 1], top-left origin
    TOP_LEFT: points, top-left origin
    PDF: points, bottom-left origin (PDF content space)
    """
    SCREEN = "screen"
    RELATIVE = "relative"
    TOP_LEFT = "top_left"
    PDF = "pdf"


class SignatureSource(str, Enum):
    """Known capture sources."""
    CANVAS = "canvas"
    WACOM = "wacom"


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Box:
    """Axis-aligned box; the origin convention depends on its CoordinateSpace."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def top(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height if self.height else 0.0


@dataclass(frozen=True)
class RelativeBox:
    """Box in relative page coordinates, all values in [0, 1], top-left origin."""
    relative_x: float
    relative_y: float
    relative_width: float
    relative_height: float


@dataclass(frozen=True)
class FinalBox:
    """Computed signature placement in PDF space (bottom-left origin).

    Attributes:
        x, y, width, height: Drawn image rectangle
        offset_x: Horizontal letterbox margin inside the target box
        offset_y: Vertical letterbox margin inside the target box
        adjusted: True if a strategy changed the fitted dimensions
    """
    x: float
    y: float
    width: float
    height: float
    offset_x: float = 0.0
    offset_y: float = 0.0
    adjusted: bool = False

    def as_box(self) -> Box:
        return Box(self.x, self.y, self.width, self.height)


@dataclass
class SignaturePlacement:
    """One signature to place on a page.

    Attributes:
        page_number: Target page (1-based)
        box: Target box (RelativeBox when space is RELATIVE)
        image_data: PNG/JPEG bytes or a data URI
        space: Coordinate space of box
        source: Capture source tag ("canvas", "wacom", ...)
        id: Optional stable identifier used in reports
        scale: Zoom scale, only meaningful for SCREEN space
    """
    page_number: int
    box: Union[Box, RelativeBox]
    image_data: Union[bytes, str]
    space: CoordinateSpace = CoordinateSpace.TOP_LEFT
    source: str = SignatureSource.CANVAS.value
    id: Optional[str] = None
    scale: float = 1.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignaturePlacement":
        """Build a placement from the external signature shape.

        Accepts either absolute ``{id, page, x, y, width, height, imageData,
        source}`` (top-left points unless ``space`` says otherwise) or the
        persisted ``{relativeX, relativeY, relativeWidth, relativeHeight, page}``
        shape.
        """
        image_data = data.get("imageData") or data.get("image_data") or data.get("dataUrl")
        source = data.get("source") or data.get("signatureSource") or SignatureSource.CANVAS.value
        page_number = int(data.get("page", data.get("page_number", 1)))

        if "relativeX" in data:
            return cls(
                page_number=page_number,
                box=RelativeBox(
                    relative_x=float(data["relativeX"]),
                    relative_y=float(data["relativeY"]),
                    relative_width=float(data["relativeWidth"]),
                    relative_height=float(data["relativeHeight"]),
                ),
                image_data=image_data,
                space=CoordinateSpace.RELATIVE,
                source=source,
                id=data.get("id"),
            )

        return cls(
            page_number=page_number,
            box=Box(
                x=float(data["x"]),
                y=float(data["y"]),
                width=float(data["width"]),
                height=float(data["height"]),
            ),
            image_data=image_data,
            space=CoordinateSpace(data.get("space", CoordinateSpace.TOP_LEFT.value)),
            source=source,
            id=data.get("id"),
            scale=float(data.get("scale", 1.0)),
        )


@dataclass(frozen=True)
class SignatureField:
    """Persisted signature field stored by the application in relative coordinates."""
    page: int
    relative_x: float
    relative_y: float
    relative_width: float
    relative_height: float
    label: str = ""

    @property
    def relative_box(self) -> RelativeBox:
        return RelativeBox(
            self.relative_x,
            self.relative_y,
            self.relative_width,
            self.relative_height,
        )

    def to_absolute(self, geometry: Any) -> Box:
        """Top-left box in points on the page described by geometry."""
        from ..core.transform import field_to_absolute

        return field_to_absolute(self, geometry)

    @classmethod
    def from_absolute(cls, box: Box, geometry: Any, label: str = "") -> "SignatureField":
        """Persist a top-left box in points as relative coordinates."""
        from ..core.transform import field_from_absolute

        return field_from_absolute(box, geometry, label)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page": self.page,
            "relativeX": self.relative_x,
            "relativeY": self.relative_y,
            "relativeWidth": self.relative_width,
            "relativeHeight": self.relative_height,
            "label": self.label,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignatureField":
        return cls(
            page=int(data["page"]),
            relative_x=float(data["relativeX"]),
            relative_y=float(data["relativeY"]),
            relative_width=float(data["relativeWidth"]),
            relative_height=float(data["relativeHeight"]),
            label=data.get("label", ""),
        )
