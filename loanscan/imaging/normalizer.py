from loanscan.database.models import FileKind
from loanscan.imaging.encoder import JpegEncoder
from loanscan.imaging.models import PageImage
from loanscan.logging.logger import Log
from loanscan.pdf.base import BasePdfRasterizer


class DocumentNormalizer:
    """Turns an uploaded file into ordered JPEG pages for extraction."""

    def __init__(self, rasterizer: BasePdfRasterizer, encoder: JpegEncoder) -> None:
        self._rasterizer = rasterizer
        self._encoder = encoder

    def normalize(self, raw_bytes: bytes, kind: FileKind) -> list[PageImage]:
        """Return one page for an image, or every surviving page of a PDF.

        Raises:
            EncodingError: if an image cannot be re-encoded.
            ConversionError: if a PDF yields no pages at all.
        """
        if kind == FileKind.IMAGE:
            pages = [PageImage(page_number=1, content=self._encoder.reencode(raw_bytes))]
        else:
            pages = self._rasterizer.rasterize(raw_bytes)
        Log.info(f"Normalized {kind.value} into {len(pages)} page(s)")
        return pages
