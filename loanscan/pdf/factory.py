from loanscan.config.settings import Settings
from loanscan.imaging.encoder import JpegEncoder
from loanscan.pdf.base import BasePdfRasterizer
from loanscan.pdf.pdfplumber_adapter import PdfPlumberRasterizer
from loanscan.pdf.pymupdf_adapter import PyMuPdfRasterizer


class PdfRasterizerFactory:
    """Creates the correct PDF rasterizer based on settings."""

    ADAPTERS: dict[str, type[BasePdfRasterizer]] = {
        "pdfplumber": PdfPlumberRasterizer,
        "pymupdf": PyMuPdfRasterizer,
    }

    @classmethod
    def create(cls, settings: Settings, encoder: JpegEncoder) -> BasePdfRasterizer:
        engine = settings.pdf_engine.lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls(
            encoder,
            dpi=settings.pdf_render_dpi,
            max_width=settings.pdf_max_width,
            max_height=settings.pdf_max_height,
        )
