from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import AbstractContextManager
from typing import Any

from PIL import Image

from loanscan.imaging.encoder import JpegEncoder
from loanscan.imaging.models import PageImage
from loanscan.logging.logger import Log
from loanscan.pdf.exceptions import ConversionError

POINTS_PER_INCH = 72


class BasePdfRasterizer(ABC):
    """Contract for all PDF rasterization adapters.

    Pages are rendered in order at ``dpi``, shrunk to fit within
    ``max_width`` x ``max_height`` pixels, and JPEG-encoded. A page that
    fails is dropped; the PDF only fails when no page survives.
    """

    def __init__(
        self,
        encoder: JpegEncoder,
        *,
        dpi: int = 200,
        max_width: int = 2000,
        max_height: int = 2800,
    ) -> None:
        self._encoder = encoder
        self._dpi = dpi
        self._max_width = max_width
        self._max_height = max_height

    def rasterize(self, pdf_bytes: bytes) -> list[PageImage]:
        """Render every page of a PDF.

        Raises:
            ConversionError: if the PDF cannot be opened or no page renders.
        """
        try:
            with self._open_document(pdf_bytes) as document:
                images = list(self._render_all(document))
        except Exception as exc:
            Log.error(f"Error converting PDF to images: {exc}")
            raise ConversionError("Failed to convert PDF to images") from exc

        if not images:
            raise ConversionError("Failed to convert PDF to images")
        return images

    def scale_for(self, width_pt: float, height_pt: float) -> float:
        """Zoom factor from PDF points to pixels, bounded by the max output size."""
        scale = self._dpi / POINTS_PER_INCH
        if width_pt > 0:
            scale = min(scale, self._max_width / width_pt)
        if height_pt > 0:
            scale = min(scale, self._max_height / height_pt)
        return scale

    def _render_all(self, document: Any) -> Iterator[PageImage]:
        total = self._page_count(document)
        for index in range(total):
            page_number = index + 1
            try:
                content = self._encoder.encode(self._render_page(document, index))
            except Exception as exc:
                Log.warning(f"Dropping page {page_number} of {total}: {exc}")
                continue
            yield PageImage(page_number=page_number, content=content)

    @abstractmethod
    def _open_document(self, pdf_bytes: bytes) -> AbstractContextManager[Any]:
        """Open the PDF and yield the engine's document handle."""

    @abstractmethod
    def _page_count(self, document: Any) -> int:
        """Number of pages in an open document."""

    @abstractmethod
    def _render_page(self, document: Any, index: int) -> Image.Image:
        """Load the page at a 0-based index and render it to an RGB image."""
