"""PDF input handling and preview rendering."""

from .renderer import PDFRenderer, RenderConfig
from .source_loader import PdfSourceLoader, is_url

__all__ = ["PDFRenderer", "RenderConfig", "PdfSourceLoader", "is_url"]
