"""Signature placement: fit the image into its target box and draw it."""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple, Union

import fitz  # pymupdf

from ..exceptions import ImageDecodeError, InvalidCoordinateError, PlacementOutOfBoundsError
from ..schemas.config import PlacementConfig
from ..schemas.placement import Box, FinalBox, SignatureSource
from ..utils.images import DecodedImage, decode_image

logger = logging.getLogger(__name__)

Size = Tuple[float, float]


class FitStrategy(ABC):
    """Computes where an image goes inside a target box.

    All boxes are in PDF space (points, bottom-left origin).
    """

    name: str = ""

    @abstractmethod
    def compute_placement(self, image_size: Size, target_box: Box, page_size: Size) -> FinalBox:
        """Compute the drawn rectangle.

        Args:
            image_size: Intrinsic (width, height) of the image in pixels
            target_box: Box the user drew, in PDF space
            page_size: (width, height) of the page in points

        Returns:
            FinalBox in PDF space
        """
        raise NotImplementedError


def _centered(target_box: Box, width: float, height: float, adjusted: bool) -> FinalBox:
    offset_x = (target_box.width - width) / 2
    offset_y = (target_box.height - height) / 2
    return FinalBox(
        x=target_box.x + offset_x,
        y=target_box.y + offset_y,
        width=width,
        height=height,
        offset_x=offset_x,
        offset_y=offset_y,
        adjusted=adjusted,
    )


class StandardFit(FitStrategy):
    """Letterbox: largest aspect-preserving size inside the box, centered."""

    name = "standard"

    def compute_placement(self, image_size, target_box, page_size):
        image_w, image_h = image_size
        scale = min(target_box.width / image_w, target_box.height / image_h)
        return _centered(target_box, image_w * scale, image_h * scale, adjusted=False)


class WacomFit(FitStrategy):
    """Fit for tablet signatures, which are thin strokes on wide canvases.

    When the image and box aspect ratios are close the image fills the box.
    Otherwise the image is fitted preserving aspect and its short axis is
    grown toward a minimum thickness so the stroke stays legible.
    """

    name = "wacom"

    def __init__(self, config: Optional[PlacementConfig] = None) -> None:
        self.config = config if config is not None else PlacementConfig()

    def compute_placement(self, image_size, target_box, page_size):
        image_w, image_h = image_size
        image_ratio = image_w / image_h
        box_ratio = target_box.width / target_box.height

        if abs(image_ratio - box_ratio) <= self.config.wacom_aspect_tolerance:
            return _centered(target_box, target_box.width, target_box.height, adjusted=False)

        width, height = target_box.width, target_box.height
        if image_ratio > box_ratio:
            height = width / image_ratio
            floor = max(self.config.wacom_min_thickness, self.config.wacom_min_fill_ratio * target_box.height)
            height = max(height, min(floor, target_box.height))
        else:
            width = height * image_ratio
            floor = max(self.config.wacom_min_thickness, self.config.wacom_min_fill_ratio * target_box.width)
            width = max(width, min(floor, target_box.width))

        # target_box is clamped to the page by the caller
        min_side = self.config.wacom_min_dimension
        width = min(max(width, min_side), target_box.width)
        height = min(max(height, min_side), target_box.height)

        logger.debug(
            f"WacomFit: image ratio {image_ratio:.3f} vs box ratio {box_ratio:.3f} "
            f"-> {width:.2f}x{height:.2f}"
        )
        return _centered(target_box, width, height, adjusted=True)


def apply_minimum_size(final: FinalBox, min_width: float, min_height: float) -> FinalBox:
    """Grow a box to at least min_width x min_height, keeping aspect and center."""
    if final.width >= min_width and final.height >= min_height:
        return final

    factor = max(min_width / final.width, min_height / final.height)
    width = final.width * factor
    height = final.height * factor
    center_x = final.x + final.width / 2
    center_y = final.y + final.height / 2

    logger.debug(f"Minimum size applied: {final.width:.2f}x{final.height:.2f} -> {width:.2f}x{height:.2f}")

    return FinalBox(
        x=center_x - width / 2,
        y=center_y - height / 2,
        width=width,
        height=height,
        offset_x=final.offset_x - (width - final.width) / 2,
        offset_y=final.offset_y - (height - final.height) / 2,
        adjusted=True,
    )


class SignaturePlacer:
    """Fits signature images into target boxes and draws them at rotation 0."""

    def __init__(self, config: Optional[PlacementConfig] = None) -> None:
        """Initialize placer with the default strategy registry.

        Args:
            config: Sizing rules
        """
        self.config = config if config is not None else PlacementConfig()
        self.default_strategy: FitStrategy = StandardFit()
        self._strategies: Dict[str, FitStrategy] = {
            SignatureSource.CANVAS.value: self.default_strategy,
            SignatureSource.WACOM.value: WacomFit(self.config),
        }

    def register_strategy(self, source: str, strategy: FitStrategy) -> None:
        """Use strategy for signatures tagged with source."""
        self._strategies[source.lower()] = strategy
        logger.info(f"Registered fit strategy '{strategy.name}' for source '{source}'")

    def strategy_for(self, source: Optional[str]) -> FitStrategy:
        """Strategy for a source tag; unknown tags use StandardFit."""
        return self._strategies.get((source or "").lower(), self.default_strategy)

    def compute(
        self,
        image_size: Size,
        target_box: Box,
        page_size: Size,
        source: Optional[str] = None,
        page_number: int = 1,
    ) -> FinalBox:
        """Compute the final box without drawing.

        Raises:
            InvalidCoordinateError: If the target box is empty
            PlacementOutOfBoundsError: If the final box leaves the page
        """
        if target_box.width <= 0 or target_box.height <= 0:
            raise InvalidCoordinateError(
                f"Target box is empty: {target_box.width}x{target_box.height}",
                field="width",
            )

        strategy = self.strategy_for(source)
        final = strategy.compute_placement(image_size, target_box, page_size)
        final = apply_minimum_size(final, self.config.min_width, self.config.min_height)
        self.validate_bounds(final, page_size, page_number)

        logger.debug(
            f"Page {page_number}: {strategy.name} placement "
            f"({final.x:.2f}, {final.y:.2f}, {final.width:.2f}x{final.height:.2f})"
        )
        return final

    def validate_bounds(self, final: FinalBox, page_size: Size, page_number: int) -> None:
        """Raise PlacementOutOfBoundsError if final is not inside the page."""
        page_w, page_h = page_size
        tol = self.config.bounds_tolerance
        inside = (
            final.x >= -tol
            and final.y >= -tol
            and final.x + final.width <= page_w + tol
            and final.y + final.height <= page_h + tol
        )
        if not inside:
            raise PlacementOutOfBoundsError(
                page_number,
                (final.x, final.y, final.width, final.height),
                (page_w, page_h),
            )

    def place(
        self,
        page: fitz.Page,
        target_box: Box,
        image: Union[DecodedImage, bytes, str],
        source: Optional[str] = None,
        signature_id: Optional[str] = None,
    ) -> FinalBox:
        """Fit image into target_box and draw it on page.

        Args:
            page: Page with rotation 0
            target_box: Box in PDF space
            image: Decoded image, raw PNG/JPEG bytes, or data URI
            source: Capture source tag selecting the fit strategy
            signature_id: Identifier used in error reports

        Returns:
            FinalBox actually drawn, in PDF space

        Raises:
            ImageDecodeError: If the image is not a valid PNG/JPEG
            InvalidCoordinateError: If the target box is empty
            PlacementOutOfBoundsError: If the final box leaves the page
        """
        decoded = image if isinstance(image, DecodedImage) else decode_image(image, signature_id)

        page_w, page_h = page.rect.width, page.rect.height
        final = self.compute(
            (decoded.width, decoded.height),
            target_box,
            (page_w, page_h),
            source=source,
            page_number=page.number + 1,
        )

        # PyMuPDF rects are top-left based
        rect = fitz.Rect(final.x, page_h - final.y - final.height, final.x + final.width, page_h - final.y)
        try:
            if not page.is_wrapped:
                page.wrap_contents()
            page.insert_image(rect, stream=decoded.data, keep_proportion=False)
        except (RuntimeError, ValueError) as exc:
            raise ImageDecodeError(str(exc), signature_id) from exc

        return final
