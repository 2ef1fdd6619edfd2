import io
from collections.abc import Callable
from datetime import datetime, timezone

import pytest
from PIL import Image
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from loanscan.database.models import FileKind, NewDocument
from loanscan.database.repositories.memory_repository import InMemoryDocumentRepository
from loanscan.extraction.base import BaseFieldExtractor
from loanscan.extraction.models import ExtractedFields, LoanField


def _pdf_with_pages(*texts: str) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    for text in texts:
        c.drawString(72, 720, text)
        c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    return _pdf_with_pages("CIF 123456")


@pytest.fixture()
def three_page_pdf_bytes() -> bytes:
    """Generate a three-page loan PDF."""
    return _pdf_with_pages("Pagina uno", "Pagina dos", "Nro. Prestamo 998877")


@pytest.fixture()
def png_bytes() -> bytes:
    """Generate a small RGBA PNG, which must be flattened before JPEG encoding."""
    buf = io.BytesIO()
    Image.new("RGBA", (64, 48), (200, 30, 30, 255)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture()
def fixed_clock() -> Callable[[], datetime]:
    return lambda: datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def repository() -> InMemoryDocumentRepository:
    return InMemoryDocumentRepository()


@pytest.fixture()
def make_new_document() -> Callable[..., NewDocument]:
    def _make(
        file_path: str = "/uploads/1-1.pdf",
        file_type: FileKind = FileKind.PDF,
    ) -> NewDocument:
        mime_type = "application/pdf" if file_type == FileKind.PDF else "image/png"
        return NewDocument(
            filename=file_path.rsplit("/", 1)[-1],
            original_filename="prestamo.pdf" if file_type == FileKind.PDF else "prestamo.png",
            file_type=file_type,
            mime_type=mime_type,
            file_size=1024,
            file_path=file_path,
        )

    return _make


@pytest.fixture()
def make_fields() -> Callable[..., ExtractedFields]:
    """Build a page result the way the parser would."""

    def _make(
        values: dict[LoanField, str] | None = None,
        confidence: dict[LoanField, int] | None = None,
    ) -> ExtractedFields:
        values = values or {}
        return ExtractedFields(
            values=values,
            fields_found=[f.value for f in values],
            fields_not_found=[f.value for f in LoanField if f not in values],
            confidence=confidence or {},
        )

    return _make


class StubExtractor(BaseFieldExtractor):
    """Returns (or raises) the queued outcomes in page order, then repeats the last."""

    def __init__(self, outcomes: list[ExtractedFields | Exception]) -> None:
        self._outcomes = list(outcomes)
        self.calls: list[bytes] = []

    def extract(self, image_bytes: bytes) -> ExtractedFields:
        self.calls.append(image_bytes)
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture()
def make_stub_extractor() -> Callable[..., StubExtractor]:
    return lambda *outcomes: StubExtractor(list(outcomes))
