import io
from collections.abc import Iterator
from contextlib import contextmanager

import pdfplumber
from PIL import Image

from loanscan.pdf.base import POINTS_PER_INCH, BasePdfRasterizer


class PdfPlumberRasterizer(BasePdfRasterizer):
    """Rasterizes PDF pages using pdfplumber's page renderer."""

    @contextmanager
    def _open_document(self, pdf_bytes: bytes) -> Iterator[pdfplumber.PDF]:
        with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
            yield pdf

    def _page_count(self, document: pdfplumber.PDF) -> int:
        return len(document.pages)

    def _render_page(self, document: pdfplumber.PDF, index: int) -> Image.Image:
        page = document.pages[index]
        scale = self.scale_for(float(page.width), float(page.height))
        rendered = page.to_image(resolution=scale * POINTS_PER_INCH)
        return rendered.original.convert("RGB")
