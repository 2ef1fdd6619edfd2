from collections.abc import Iterator
from contextlib import contextmanager

import pymupdf
from PIL import Image

from loanscan.pdf.base import BasePdfRasterizer


class PyMuPdfRasterizer(BasePdfRasterizer):
    """Rasterizes PDF pages using PyMuPDF."""

    @contextmanager
    def _open_document(self, pdf_bytes: bytes) -> Iterator[pymupdf.Document]:
        with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
            yield doc

    def _page_count(self, document: pymupdf.Document) -> int:
        return document.page_count

    def _render_page(self, document: pymupdf.Document, index: int) -> Image.Image:
        page = document.load_page(index)
        scale = self.scale_for(page.rect.width, page.rect.height)
        pixmap = page.get_pixmap(matrix=pymupdf.Matrix(scale, scale), alpha=False)
        return Image.frombytes("RGB", (pixmap.width, pixmap.height), pixmap.samples)
