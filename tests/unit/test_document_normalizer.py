from unittest.mock import MagicMock

import pytest

from loanscan.database.models import FileKind
from loanscan.imaging.encoder import JpegEncoder
from loanscan.imaging.exceptions import EncodingError
from loanscan.imaging.models import PageImage
from loanscan.imaging.normalizer import DocumentNormalizer
from loanscan.pdf.exceptions import ConversionError


class TestDocumentNormalizer:
    def test_image_yields_exactly_one_page(self, png_bytes: bytes) -> None:
        rasterizer = MagicMock()
        normalizer = DocumentNormalizer(rasterizer=rasterizer, encoder=JpegEncoder())

        pages = normalizer.normalize(png_bytes, FileKind.IMAGE)

        assert len(pages) == 1
        assert pages[0].page_number == 1
        assert pages[0].content[:2] == b"\xff\xd8"
        rasterizer.rasterize.assert_not_called()

    def test_pdf_delegates_to_rasterizer(self) -> None:
        rasterizer = MagicMock()
        rasterizer.rasterize.return_value = [PageImage(1, b"a"), PageImage(2, b"b")]
        normalizer = DocumentNormalizer(rasterizer=rasterizer, encoder=JpegEncoder())

        pages = normalizer.normalize(b"%PDF-1.4", FileKind.PDF)

        assert [page.page_number for page in pages] == [1, 2]
        rasterizer.rasterize.assert_called_once_with(b"%PDF-1.4")

    def test_unreadable_image_raises_encoding_error(self) -> None:
        normalizer = DocumentNormalizer(rasterizer=MagicMock(), encoder=JpegEncoder())

        with pytest.raises(EncodingError):
            normalizer.normalize(b"garbage", FileKind.IMAGE)

    def test_conversion_error_propagates(self) -> None:
        rasterizer = MagicMock()
        rasterizer.rasterize.side_effect = ConversionError("Failed to convert PDF to images")
        normalizer = DocumentNormalizer(rasterizer=rasterizer, encoder=JpegEncoder())

        with pytest.raises(ConversionError):
            normalizer.normalize(b"%PDF", FileKind.PDF)
