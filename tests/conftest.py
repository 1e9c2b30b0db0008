"""Root conftest: shared PDF/image fixtures and file logging to 04_logs/."""

import logging
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence, Tuple

import fitz
import pytest
from PIL import Image

# === File logging to 04_logs/ ===
LOGS_DIR = Path(__file__).resolve().parent.parent / "04_logs"
LOGS_DIR.mkdir(parents=True, exist_ok=True)

_ts = datetime.now().strftime("%Y-%m-%d_%H%M%S")
_log_file = LOGS_DIR / f"run_{_ts}.log"

_file_handler = logging.FileHandler(_log_file, encoding="utf-8")
_file_handler.setLevel(logging.DEBUG)
_file_handler.setFormatter(logging.Formatter(
    "%(asctime)s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
))

logging.getLogger("pdf_sign_engine").addHandler(_file_handler)
logging.getLogger("pdf_sign_engine").setLevel(logging.DEBUG)


# (width, height, rotation) of a page before rotation is applied
PageSpec = Tuple[float, float, int]


def build_pdf(
    pages: Sequence[PageSpec],
    metadata: Optional[Dict[str, str]] = None,
    with_content: bool = True,
) -> bytes:
    """Build a PDF in memory.

    Content is drawn in unrotated coordinates before /Rotate is set:
    a label and a red block in the top-left area of the unrotated page.
    """
    doc = fitz.open()
    for index, (width, height, rotation) in enumerate(pages):
        page = doc.new_page(width=width, height=height)
        if with_content:
            page.insert_text((20, height - 20), f"Page {index + 1}", fontsize=12)
            page.draw_rect(fitz.Rect(10, 10, 60, 40), color=(1, 0, 0), fill=(1, 0, 0))
        if rotation:
            page.set_rotation(rotation)
    if metadata:
        doc.set_metadata(metadata)
    data = doc.tobytes()
    doc.close()
    return data


def build_image(width: int, height: int, color: str = "black", fmt: str = "PNG") -> bytes:
    """Solid-color raster of the given pixel size."""
    mode = "RGB" if fmt == "JPEG" else "RGBA"
    img = Image.new(mode, (width, height), color=color)
    buf = BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def make_pdf() -> Callable[..., bytes]:
    """Factory fixture wrapping build_pdf."""
    return build_pdf


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    """Factory fixture wrapping build_image."""
    return build_image


@pytest.fixture
def letter_pdf() -> bytes:
    """Single unrotated US Letter page (612x792)."""
    return build_pdf([(612, 792, 0)])


@pytest.fixture
def rotated_pdf() -> bytes:
    """Single US Letter page with /Rotate 90 (displayed 792x612)."""
    return build_pdf([(612, 792, 90)])


@pytest.fixture
def png_2x1() -> bytes:
    """200x100 PNG signature."""
    return build_image(200, 100)
