"""Tests for MergeOrchestrator."""

import base64
import math
from io import BytesIO
from unittest.mock import patch

import fitz
import pytest
from PIL import Image

from pdf_sign_engine.core.cache import GeometryCache
from pdf_sign_engine.core.orchestrator import MergeOrchestrator, MergeSession, MergeState
from pdf_sign_engine.exceptions import ParseError
from pdf_sign_engine.schemas.config import EngineConfig
from pdf_sign_engine.schemas.placement import Box, CoordinateSpace, SignaturePlacement


@pytest.fixture
def orchestrator() -> MergeOrchestrator:
    return MergeOrchestrator(EngineConfig(cache_max_entries=8))


def _images(pdf_bytes: bytes, page_number: int = 1):
    doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    try:
        page = doc[page_number - 1]
        return [fitz.Rect(info["bbox"]) for info in page.get_image_info()], page.rotation, page.rect
    finally:
        doc.close()


class TestMergeSignatures:
    """merge_signatures end to end."""

    def test_letter_page_placement(self, orchestrator: MergeOrchestrator, letter_pdf: bytes, png_2x1: bytes) -> None:
        """Top-left {100, 650, 150, 75} on a 612x792 page lands at PDF (100, 67)."""
        result = orchestrator.merge_signatures(
            letter_pdf,
            [{"id": "s1", "page": 1, "x": 100, "y": 650, "width": 150, "height": 75, "imageData": png_2x1}],
        )

        assert result.stats.signatures_applied == 1
        assert result.stats.strategy == "direct"
        assert not result.stats.was_flattened
        assert result.applied_ids == ["s1"]

        rects, _, page_rect = _images(result.pdf_bytes)
        assert len(rects) == 1
        assert rects[0].x0 == pytest.approx(100, abs=0.01)
        assert page_rect.height - rects[0].y1 == pytest.approx(67, abs=0.01)
        assert rects[0].width == pytest.approx(150, abs=0.01)
        assert rects[0].height == pytest.approx(75, abs=0.01)

    def test_partial_failure(self, orchestrator: MergeOrchestrator, letter_pdf: bytes, make_image) -> None:
        """One corrupt image out of three: merge succeeds with two signatures."""
        signatures = [
            {"id": "a", "page": 1, "x": 50, "y": 50, "width": 100, "height": 50, "imageData": make_image(200, 100, "red")},
            {"id": "b", "page": 1, "x": 50, "y": 200, "width": 100, "height": 50, "imageData": b"\x89PNG broken"},
            {"id": "c", "page": 1, "x": 50, "y": 400, "width": 100, "height": 50, "imageData": make_image(200, 100, "blue")},
        ]

        result = orchestrator.merge_signatures(letter_pdf, signatures)

        assert result.stats.signatures_requested == 3
        assert result.stats.signatures_applied == 2
        assert result.stats.is_partial
        assert result.applied_ids == ["a", "c"]
        assert len(result.skipped) == 1
        assert result.skipped[0].signature_id == "b"
        assert result.skipped[0].index == 1
        assert result.skipped[0].code == "IMAGE_DECODE_ERROR"

        rects, _, _ = _images(result.pdf_bytes)
        assert len(rects) == 2

    def test_rotated_document_is_flattened(self, orchestrator: MergeOrchestrator, rotated_pdf: bytes, png_2x1: bytes) -> None:
        """Coordinates on a rotated page refer to what the viewer showed."""
        placement = SignaturePlacement(
            page_number=1,
            box=Box(50, 50, 100, 50),
            image_data=png_2x1,
            id="r1",
        )

        result = orchestrator.merge_signatures(rotated_pdf, [placement])

        assert result.stats.was_flattened
        assert result.stats.strategy == "embed"
        assert result.stats.copy_failures == []

        rects, rotation, page_rect = _images(result.pdf_bytes)
        assert rotation == 0
        assert (page_rect.width, page_rect.height) == (792, 612)
        assert rects[0].x0 == pytest.approx(50, abs=0.01)
        assert rects[0].y0 == pytest.approx(50, abs=0.01)
        assert rects[0].x1 == pytest.approx(150, abs=0.01)
        assert rects[0].y1 == pytest.approx(100, abs=0.01)

    def test_relative_and_screen_spaces(self, orchestrator: MergeOrchestrator, letter_pdf: bytes, png_2x1: bytes) -> None:
        """Equivalent boxes in different spaces produce the same placement."""
        data_uri = "data:image/png;base64," + base64.b64encode(png_2x1).decode("ascii")
        signatures = [
            {"page": 1, "relativeX": 100 / 612, "relativeY": 650 / 792,
             "relativeWidth": 150 / 612, "relativeHeight": 75 / 792, "imageData": data_uri},
            {"page": 1, "x": 200, "y": 1300, "width": 300, "height": 150,
             "space": "screen", "scale": 2.0, "imageData": png_2x1},
        ]

        result = orchestrator.merge_signatures(letter_pdf, signatures)

        rects, _, _ = _images(result.pdf_bytes)
        assert len(rects) == 2
        for rect in rects:
            assert rect.x0 == pytest.approx(100, abs=0.01)
            assert rect.y0 == pytest.approx(650, abs=0.01)

    def test_out_of_range_box_is_clamped(self, orchestrator: MergeOrchestrator, letter_pdf: bytes, png_2x1: bytes) -> None:
        result = orchestrator.merge_signatures(
            letter_pdf,
            [{"page": 1, "x": 580, "y": 780, "width": 100, "height": 50, "imageData": png_2x1}],
        )
        rects, _, _ = _images(result.pdf_bytes)
        assert rects[0].x1 == pytest.approx(612, abs=0.01)
        assert rects[0].y1 == pytest.approx(792, abs=0.01)

    def test_invalid_coordinates_skipped(self, orchestrator: MergeOrchestrator, letter_pdf: bytes, png_2x1: bytes) -> None:
        placement = SignaturePlacement(page_number=1, box=Box(math.nan, 10, 100, 50), image_data=png_2x1, id="nan")
        result = orchestrator.merge_signatures(letter_pdf, [placement])
        assert result.stats.signatures_applied == 0
        assert result.skipped[0].code == "INVALID_COORDINATE"

    def test_out_of_bounds_skipped(self, orchestrator: MergeOrchestrator, letter_pdf: bytes, png_2x1: bytes) -> None:
        placement = SignaturePlacement(
            page_number=1,
            box=Box(0, 0, 4, 2),
            image_data=png_2x1,
            space=CoordinateSpace.PDF,
        )
        result = orchestrator.merge_signatures(letter_pdf, [placement])
        assert result.skipped[0].code == "PLACEMENT_OUT_OF_BOUNDS"

    def test_missing_page_is_fatal(self, orchestrator: MergeOrchestrator, letter_pdf: bytes, png_2x1: bytes) -> None:
        with pytest.raises(ParseError) as exc_info:
            orchestrator.merge_signatures(
                letter_pdf,
                [{"page": 2, "x": 0, "y": 0, "width": 100, "height": 50, "imageData": png_2x1}],
            )
        assert exc_info.value.page_number == 2

    def test_invalid_pdf_is_fatal(self, orchestrator: MergeOrchestrator, png_2x1: bytes) -> None:
        with pytest.raises(ParseError):
            orchestrator.merge_signatures(b"garbage", [])

    def test_no_signatures(self, orchestrator: MergeOrchestrator, letter_pdf: bytes) -> None:
        result = orchestrator.merge_signatures(letter_pdf, [])
        assert result.stats.signatures_requested == 0
        assert result.stats.pages_processed == 1
        assert not result.stats.is_partial
        assert result.to_data_url().startswith("data:application/pdf;base64,")

    def test_uncompressed_output(self, letter_pdf: bytes) -> None:
        orchestrator = MergeOrchestrator(EngineConfig(compress=False))
        result = orchestrator.merge_signatures(letter_pdf, [])
        assert result.pdf_bytes.startswith(b"%PDF")
        assert result.stats.compression_ratio == pytest.approx(result.stats.final_size / result.stats.original_size, abs=1e-4)


class TestMergeSession:
    """State machine."""

    def test_direct_history(self, orchestrator: MergeOrchestrator, letter_pdf: bytes) -> None:
        orchestrator.merge_signatures(letter_pdf, [])
        assert orchestrator.last_session.history == [
            MergeState.LOADED,
            MergeState.ANALYZED,
            MergeState.DIRECT,
            MergeState.SIGNATURES_APPLIED,
            MergeState.SERIALIZED,
        ]

    def test_flattened_history(self, orchestrator: MergeOrchestrator, rotated_pdf: bytes) -> None:
        orchestrator.merge_signatures(rotated_pdf, [])
        assert MergeState.FLATTENED in orchestrator.last_session.history
        assert MergeState.DIRECT not in orchestrator.last_session.history

    def test_illegal_transition(self) -> None:
        session = MergeSession()
        with pytest.raises(RuntimeError):
            session.advance(MergeState.SERIALIZED)


class TestGeometryAndPreview:
    """extract_geometry and render_preview."""

    def test_extract_geometry_cached(self, rotated_pdf: bytes) -> None:
        cache = GeometryCache(max_entries=4)
        orchestrator = MergeOrchestrator(cache=cache)

        with patch.object(orchestrator.extractor, "extract", wraps=orchestrator.extractor.extract) as spy:
            first = orchestrator.extract_geometry(rotated_pdf)
            second = orchestrator.extract_geometry(rotated_pdf)

        assert first is second
        spy.assert_called_once()
        assert first.page(1).display_width == 792
        assert cache.stats().hits == 1

    def test_extract_geometry_from_data_uri(self, orchestrator: MergeOrchestrator, letter_pdf: bytes) -> None:
        uri = "data:application/pdf;base64," + base64.b64encode(letter_pdf).decode("ascii")
        assert orchestrator.extract_geometry(uri).total_pages == 1

    def test_extract_geometry_url_uses_loader_once(self, orchestrator: MergeOrchestrator, letter_pdf: bytes) -> None:
        with patch.object(orchestrator.loader, "fetch", return_value=letter_pdf) as fetch:
            first = orchestrator.extract_geometry("https://files.example.com/doc.pdf")
            second = orchestrator.extract_geometry("https://files.example.com/doc.pdf")

        fetch.assert_called_once_with("https://files.example.com/doc.pdf")
        assert first is second
        assert first.source_key == "https://files.example.com/doc.pdf"

    def test_render_preview_matches_screen_space(self, orchestrator: MergeOrchestrator, rotated_pdf: bytes) -> None:
        """Preview pixels equal displayed size times scale."""
        png = orchestrator.render_preview(rotated_pdf, 1, scale=1.5)
        img = Image.open(BytesIO(png))
        assert img.format == "PNG"
        assert img.size == (1188, 918)

    def test_injected_empty_cache_is_used(self, letter_pdf: bytes) -> None:
        """A fresh cache passed in is shared, not replaced."""
        cache = GeometryCache(max_entries=4)
        first = MergeOrchestrator(cache=cache)
        second = MergeOrchestrator(cache=cache)

        assert first.cache is cache
        assert second.cache is cache

        geometry = first.extract_geometry(letter_pdf)
        assert second.extract_geometry(letter_pdf) is geometry
        assert cache.stats().hits == 1
        assert len(cache) == 1
