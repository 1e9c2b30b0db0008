"""Coordinate conversions between screen, relative and PDF spaces.

Three spaces are in play:

- screen: pixels at a zoom ``scale``, origin top-left, Y grows downward
- relative: fractions of the displayed page in [0, 1], origin top-left
- PDF: points, origin bottom-left, Y grows upward

All functions are pure. The only Y flip in the package happens here.
"""

import math
from typing import Tuple, Union

import fitz  # pymupdf

from ..exceptions import InvalidCoordinateError
from ..schemas.geometry import PageGeometry
from ..schemas.placement import Box, CoordinateSpace, Point, RelativeBox, SignatureField

# (cos, sin) of the counter-rotation angle -rotation, kept exact
_COUNTER_ROTATION = {
    0: (1, 0),
    90: (0, -1),
    180: (-1, 0),
    270: (0, 1),
}


def _check_finite(name: str, value: float) -> None:
    if value is None or not math.isfinite(value):
        raise InvalidCoordinateError(f"{name} must be a finite number, got {value!r}", field=name)


def _check_scale(scale: float) -> None:
    _check_finite("scale", scale)
    if scale <= 0:
        raise InvalidCoordinateError(f"scale must be positive, got {scale}", field="scale")


def _check_point(point: Point) -> None:
    _check_finite("x", point.x)
    _check_finite("y", point.y)


def _check_box(box: Box) -> None:
    _check_finite("x", box.x)
    _check_finite("y", box.y)
    _check_finite("width", box.width)
    _check_finite("height", box.height)
    if box.width < 0 or box.height < 0:
        raise InvalidCoordinateError(
            f"Box size must be non-negative, got {box.width}x{box.height}",
            field="width" if box.width < 0 else "height",
        )


def screen_to_pdf(point: Point, geometry: PageGeometry, scale: float = 1.0) -> Point:
    """Convert a screen pixel position to PDF space.

    Args:
        point: Position in pixels, top-left origin
        geometry: Geometry of the page the point lies on
        scale: Zoom scale the page was displayed at

    Returns:
        Point in PDF points, bottom-left origin

    Raises:
        InvalidCoordinateError: On NaN/inf input or non-positive scale
    """
    _check_point(point)
    _check_scale(scale)
    return Point(point.x / scale, geometry.display_height - point.y / scale)


def pdf_to_screen(point: Point, geometry: PageGeometry, scale: float = 1.0) -> Point:
    """Inverse of screen_to_pdf."""
    _check_point(point)
    _check_scale(scale)
    return Point(point.x * scale, (geometry.display_height - point.y) * scale)


def screen_box_to_pdf_box(box: Box, geometry: PageGeometry, scale: float = 1.0) -> Box:
    """Convert a screen box (top-left corner, pixels) to a PDF box (bottom-left corner, points)."""
    _check_box(box)
    _check_scale(scale)
    width = box.width / scale
    height = box.height / scale
    return Box(
        x=box.x / scale,
        y=geometry.display_height - box.y / scale - height,
        width=width,
        height=height,
    )


def pdf_box_to_screen_box(box: Box, geometry: PageGeometry, scale: float = 1.0) -> Box:
    """Inverse of screen_box_to_pdf_box."""
    _check_box(box)
    _check_scale(scale)
    return Box(
        x=box.x * scale,
        y=(geometry.display_height - box.y - box.height) * scale,
        width=box.width * scale,
        height=box.height * scale,
    )


def top_left_box_to_pdf_box(box: Box, geometry: PageGeometry) -> Box:
    """Flip a top-left-origin box in points to PDF space."""
    return screen_box_to_pdf_box(box, geometry, scale=1.0)


def pdf_box_to_top_left_box(box: Box, geometry: PageGeometry) -> Box:
    """Flip a PDF-space box to top-left origin, in points."""
    return pdf_box_to_screen_box(box, geometry, scale=1.0)


def relative_to_absolute(rel_box: RelativeBox, geometry: PageGeometry) -> Box:
    """Scale a relative box to points on the displayed page (top-left origin kept)."""
    for name in ("relative_x", "relative_y", "relative_width", "relative_height"):
        _check_finite(name, getattr(rel_box, name))
    if rel_box.relative_width < 0 or rel_box.relative_height < 0:
        raise InvalidCoordinateError("Relative box size must be non-negative", field="relative_width")

    return Box(
        x=rel_box.relative_x * geometry.display_width,
        y=rel_box.relative_y * geometry.display_height,
        width=rel_box.relative_width * geometry.display_width,
        height=rel_box.relative_height * geometry.display_height,
    )


def absolute_to_relative(box: Box, geometry: PageGeometry) -> RelativeBox:
    """Inverse of relative_to_absolute."""
    _check_box(box)
    return RelativeBox(
        relative_x=box.x / geometry.display_width,
        relative_y=box.y / geometry.display_height,
        relative_width=box.width / geometry.display_width,
        relative_height=box.height / geometry.display_height,
    )


def to_pdf_box(
    box: Union[Box, RelativeBox],
    space: CoordinateSpace,
    geometry: PageGeometry,
    scale: float = 1.0,
) -> Box:
    """Convert a box from any supported space to PDF space.

    Raises:
        InvalidCoordinateError: If the box type does not match the space or values are invalid
    """
    space = CoordinateSpace(space)

    if space is CoordinateSpace.RELATIVE:
        if not isinstance(box, RelativeBox):
            raise InvalidCoordinateError("relative space requires a RelativeBox", field="box")
        return top_left_box_to_pdf_box(relative_to_absolute(box, geometry), geometry)

    if not isinstance(box, Box):
        raise InvalidCoordinateError(f"{space.value} space requires a Box", field="box")

    if space is CoordinateSpace.SCREEN:
        return screen_box_to_pdf_box(box, geometry, scale)
    if space is CoordinateSpace.TOP_LEFT:
        return top_left_box_to_pdf_box(box, geometry)

    _check_box(box)
    return box


def clamp_box(box: Box, page_width: float, page_height: float) -> Box:
    """Shrink and shift a box so it lies inside [0, page_width] x [0, page_height].

    Size is reduced only when the box is larger than the page.
    """
    _check_box(box)
    width = min(box.width, page_width)
    height = min(box.height, page_height)
    x = min(max(box.x, 0.0), page_width - width)
    y = min(max(box.y, 0.0), page_height - height)
    return Box(x, y, width, height)


def counter_rotation_matrix(
    rotation: int,
    effective_width: float,
    effective_height: float,
    origin: Tuple[float, float] = (0.0, 0.0),
) -> fitz.Matrix:
    """Matrix that bakes a page's /Rotate into its content.

    Rotates content space by -rotation and translates it back into the
    positive quadrant of a (effective_width x effective_height) page, so
    the result looks exactly like the viewer's rendering of the rotated
    original. ``origin`` is the lower-left corner of the source box.

    - 0: identity
    - 90: translate up by effective_height
    - 180: translate by (effective_width, effective_height)
    - 270: translate right by effective_width

    Returns:
        fitz.Matrix in PDF (bottom-left) content space
    """
    normalized = rotation % 360
    if normalized not in _COUNTER_ROTATION:
        raise InvalidCoordinateError(f"Unsupported rotation {rotation}", field="rotation")

    cos, sin = _COUNTER_ROTATION[normalized]
    a, b, c, d = cos, sin, -sin, cos

    if normalized == 0:
        e, f = 0.0, 0.0
    elif normalized == 90:
        e, f = 0.0, effective_height
    elif normalized == 180:
        e, f = effective_width, effective_height
    else:
        e, f = effective_width, 0.0

    x0, y0 = origin
    e -= a * x0 + c * y0
    f -= b * x0 + d * y0

    return fitz.Matrix(a, b, c, d, e, f)


def map_to_flattened(point: Point, geometry: PageGeometry) -> Point:
    """Map a point in original (unrotated) content space to the flattened page."""
    _check_point(point)
    matrix = counter_rotation_matrix(
        geometry.rotation,
        geometry.display_width,
        geometry.display_height,
    )
    mapped = fitz.Point(point.x, point.y) * matrix
    return Point(mapped.x, mapped.y)


def field_to_absolute(signature_field: SignatureField, geometry: PageGeometry) -> Box:
    """Resolve a persisted field to a top-left box in points."""
    return relative_to_absolute(signature_field.relative_box, geometry)


def field_from_absolute(box: Box, geometry: PageGeometry, label: str = "") -> SignatureField:
    """Build a persisted field from a top-left box in points."""
    rel = absolute_to_relative(box, geometry)
    return SignatureField(
        page=geometry.page_number,
        relative_x=rel.relative_x,
        relative_y=rel.relative_y,
        relative_width=rel.relative_width,
        relative_height=rel.relative_height,
        label=label,
    )
