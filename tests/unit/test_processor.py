import asyncio
import time
from collections.abc import Callable
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from PIL import Image

from loanscan.config.settings import Settings
from loanscan.database.exceptions import InvalidStatusTransitionError
from loanscan.database.models import Document, DocumentStatus, FileKind, NewDocument
from loanscan.database.repositories.memory_repository import InMemoryDocumentRepository
from loanscan.extraction.base import BaseFieldExtractor
from loanscan.extraction.exceptions import ExtractionServiceError
from loanscan.extraction.models import ExtractedFields, LoanField
from loanscan.pdf.exceptions import ConversionError
from loanscan.processor.exceptions import FileReadError, NoDataExtractedError
from loanscan.processor.pipeline import PipelineContext, PipelineStep
from loanscan.processor.processor import Processor, build_processor
from loanscan.processor.steps import MarkProcessingStep

ALL_FIELDS = {
    LoanField.CIF: "123456",
    LoanField.LOAN_NUMBER: "998877",
    LoanField.ACCOUNT: "55-0001",
    LoanField.FULL_NAME: "Ana Lopez",
    LoanField.DPI: "2543 12345 0101",
    LoanField.LOAN_AMOUNT: "Q 15,000.00",
}


def _settings(**overrides: object) -> Settings:
    return Settings(_env_file=None, pdf_engine="pymupdf", **overrides)  # type: ignore[call-arg]


def _store(
    repository: InMemoryDocumentRepository,
    make_new_document: Callable[..., NewDocument],
    path: Path,
    content: bytes,
    file_type: FileKind = FileKind.PDF,
) -> int:
    path.write_bytes(content)
    return repository.create(make_new_document(file_path=str(path), file_type=file_type)).id


class _SlowExtractor(BaseFieldExtractor):
    def __init__(self, result: ExtractedFields, delay_seconds: float) -> None:
        self._result = result
        self._delay_seconds = delay_seconds

    def extract(self, image_bytes: bytes) -> ExtractedFields:
        time.sleep(self._delay_seconds)
        return self._result


def _recording_step(name: str, calls: list[str]) -> AsyncMock:
    step = AsyncMock(spec=PipelineStep)

    async def _run(context: PipelineContext) -> PipelineContext:
        calls.append(name)
        return context

    step.run.side_effect = _run
    return step


class TestProcessor:
    def test_runs_steps_in_order(self) -> None:
        calls: list[str] = []
        steps = [_recording_step(name, calls) for name in ("claim", "load", "extract")]
        failed_step = _recording_step("failed", calls)

        context = asyncio.run(Processor(steps, failed_step).process(5))

        assert calls == ["claim", "load", "extract"]
        assert context.document_id == 5

    def test_failure_runs_failed_step_and_reraises(self) -> None:
        calls: list[str] = []
        broken = AsyncMock(spec=PipelineStep)
        broken.run.side_effect = ConversionError("Failed to convert PDF to images")
        failed_step = _recording_step("failed", calls)
        steps = [_recording_step("claim", calls), broken, _recording_step("never", calls)]

        with pytest.raises(ConversionError):
            asyncio.run(Processor(steps, failed_step).process(5))

        assert calls == ["claim", "failed"]
        context = failed_step.run.call_args.args[0]
        assert context.error_message == "Failed to convert PDF to images"

    def test_empty_exception_message_uses_type_name(self) -> None:
        broken = AsyncMock(spec=PipelineStep)
        broken.run.side_effect = RuntimeError()
        failed_step = _recording_step("failed", [])

        with pytest.raises(RuntimeError):
            asyncio.run(Processor([broken], failed_step).process(5))

        assert failed_step.run.call_args.args[0].error_message == "RuntimeError"

    def test_failed_step_error_does_not_mask_original(self) -> None:
        broken = AsyncMock(spec=PipelineStep)
        broken.run.side_effect = ValueError("original")
        failed_step = AsyncMock(spec=PipelineStep)
        failed_step.run.side_effect = RuntimeError("store down")

        with pytest.raises(ValueError, match="original"):
            asyncio.run(Processor([broken], failed_step).process(5))


class TestBuildProcessorScenarios:
    def test_image_round_trip(
        self,
        tmp_path: Path,
        png_bytes: bytes,
        repository: InMemoryDocumentRepository,
        make_new_document: Callable[..., NewDocument],
        make_fields: Callable[..., ExtractedFields],
        make_stub_extractor: Callable[..., object],
    ) -> None:
        document_id = _store(
            repository, make_new_document, tmp_path / "1-1.png", png_bytes, FileKind.IMAGE
        )
        extractor = make_stub_extractor(
            make_fields(ALL_FIELDS, {loan_field: 90 for loan_field in ALL_FIELDS})
        )
        processor = build_processor(_settings(), repository, extractor=extractor)

        asyncio.run(processor.process(document_id))

        document = repository.get(document_id)
        assert document is not None
        assert document.status == DocumentStatus.PROCESSED
        assert document.confidence == 90
        assert document.error_message is None
        assert document.processed_at is not None
        assert document.processing_time is not None and document.processing_time >= 0
        payload = document.to_payload()["extractedData"]
        assert payload["fullName"] == "Ana Lopez"
        assert len(payload["fieldsFound"]) == 6
        assert payload["fieldsNotFound"] == []
        assert extractor.calls[0][:2] == b"\xff\xd8"

    def test_partial_rasterization_failure_still_processes(
        self,
        tmp_path: Path,
        three_page_pdf_bytes: bytes,
        repository: InMemoryDocumentRepository,
        make_new_document: Callable[..., NewDocument],
        make_fields: Callable[..., ExtractedFields],
        make_stub_extractor: Callable[..., object],
    ) -> None:
        document_id = _store(
            repository, make_new_document, tmp_path / "1-1.pdf", three_page_pdf_bytes
        )
        extractor = make_stub_extractor(
            make_fields(
                {LoanField.CIF: "123456", LoanField.DPI: "2543 12345 0101"},
                {LoanField.CIF: 90, LoanField.DPI: 80},
            )
        )
        processor = build_processor(_settings(), repository, extractor=extractor)
        page_render = [
            RuntimeError("damaged page"),
            RuntimeError("damaged page"),
            Image.new("RGB", (120, 160), "white"),
        ]

        with patch(
            "loanscan.pdf.pymupdf_adapter.PyMuPdfRasterizer._render_page",
            side_effect=page_render,
        ):
            asyncio.run(processor.process(document_id))

        document = repository.get(document_id)
        assert document is not None
        assert document.status == DocumentStatus.PROCESSED
        assert document.extracted_data is not None
        assert document.extracted_data.fields_found == ["cif", "dpi"]
        assert len(document.extracted_data.fields_not_found) == 4
        assert document.confidence == 85
        assert len(extractor.calls) == 1

    def test_all_pages_failing_extraction_marks_failed(
        self,
        tmp_path: Path,
        three_page_pdf_bytes: bytes,
        repository: InMemoryDocumentRepository,
        make_new_document: Callable[..., NewDocument],
        make_stub_extractor: Callable[..., object],
    ) -> None:
        document_id = _store(
            repository, make_new_document, tmp_path / "1-1.pdf", three_page_pdf_bytes
        )
        extractor = make_stub_extractor(ExtractionServiceError("Vision provider API error"))
        processor = build_processor(_settings(), repository, extractor=extractor)

        with pytest.raises(NoDataExtractedError):
            asyncio.run(processor.process(document_id))

        document = repository.get(document_id)
        assert document is not None
        assert document.status == DocumentStatus.FAILED
        assert document.error_message == "No data could be extracted from any page"
        assert document.extracted_data is None
        assert len(extractor.calls) == 3

    def test_best_confidence_wins_across_pages(
        self,
        tmp_path: Path,
        three_page_pdf_bytes: bytes,
        repository: InMemoryDocumentRepository,
        make_new_document: Callable[..., NewDocument],
        make_fields: Callable[..., ExtractedFields],
        make_stub_extractor: Callable[..., object],
    ) -> None:
        document_id = _store(
            repository, make_new_document, tmp_path / "1-1.pdf", three_page_pdf_bytes
        )
        extractor = make_stub_extractor(
            make_fields({LoanField.CIF: "111"}, {LoanField.CIF: 60}),
            ExtractionServiceError("Extraction timed out after 60s"),
            make_fields({LoanField.CIF: "222"}, {LoanField.CIF: 95}),
        )
        processor = build_processor(_settings(), repository, extractor=extractor)

        asyncio.run(processor.process(document_id))

        document = repository.get(document_id)
        assert document is not None
        assert document.extracted_data is not None
        assert document.extracted_data.value_of(LoanField.CIF) == "222"
        assert document.confidence == 95

    def test_missing_file_marks_failed(
        self,
        tmp_path: Path,
        repository: InMemoryDocumentRepository,
        make_new_document: Callable[..., NewDocument],
        make_stub_extractor: Callable[..., object],
        make_fields: Callable[..., ExtractedFields],
    ) -> None:
        document = repository.create(make_new_document(file_path=str(tmp_path / "gone.pdf")))
        processor = build_processor(
            _settings(), repository, extractor=make_stub_extractor(make_fields())
        )

        with pytest.raises(FileReadError, match="Could not read file"):
            asyncio.run(processor.process(document.id))

        failed = repository.get(document.id)
        assert failed is not None
        assert failed.status == DocumentStatus.FAILED
        assert failed.error_message is not None
        assert failed.error_message.startswith("Could not read file")

    def test_invalid_pdf_marks_failed(
        self,
        tmp_path: Path,
        repository: InMemoryDocumentRepository,
        make_new_document: Callable[..., NewDocument],
        make_stub_extractor: Callable[..., object],
        make_fields: Callable[..., ExtractedFields],
    ) -> None:
        document_id = _store(repository, make_new_document, tmp_path / "1-1.pdf", b"not a pdf")
        processor = build_processor(
            _settings(), repository, extractor=make_stub_extractor(make_fields())
        )

        with pytest.raises(ConversionError):
            asyncio.run(processor.process(document_id))

        document = repository.get(document_id)
        assert document is not None
        assert document.status == DocumentStatus.FAILED
        assert document.error_message == "Failed to convert PDF to images"

    def test_page_timeout_is_skipped(
        self,
        tmp_path: Path,
        png_bytes: bytes,
        repository: InMemoryDocumentRepository,
        make_new_document: Callable[..., NewDocument],
        make_fields: Callable[..., ExtractedFields],
    ) -> None:
        document_id = _store(
            repository, make_new_document, tmp_path / "1-1.png", png_bytes, FileKind.IMAGE
        )
        processor = build_processor(
            _settings(page_extraction_timeout_seconds=0.05),
            repository,
            extractor=_SlowExtractor(make_fields(), delay_seconds=0.5),
        )

        with pytest.raises(NoDataExtractedError):
            asyncio.run(processor.process(document_id))

        document = repository.get(document_id)
        assert document is not None
        assert document.status == DocumentStatus.FAILED

    def test_document_not_queued_is_left_alone(
        self,
        tmp_path: Path,
        png_bytes: bytes,
        repository: InMemoryDocumentRepository,
        make_new_document: Callable[..., NewDocument],
        make_stub_extractor: Callable[..., object],
        make_fields: Callable[..., ExtractedFields],
    ) -> None:
        document_id = _store(
            repository, make_new_document, tmp_path / "1-1.png", png_bytes, FileKind.IMAGE
        )
        repository.update(document_id, status=DocumentStatus.PROCESSING)
        processor = build_processor(
            _settings(), repository, extractor=make_stub_extractor(make_fields())
        )

        with pytest.raises(InvalidStatusTransitionError, match="processing -> processing"):
            asyncio.run(processor.process(document_id))

        document = repository.get(document_id)
        assert document is not None
        assert document.status == DocumentStatus.PROCESSING
        assert document.error_message is None


class _SlowUpdateRepository(InMemoryDocumentRepository):
    """Each update blocks like a database round trip."""

    def update(self, document_id: int, **changes: object) -> Document | None:
        time.sleep(0.3)
        return super().update(document_id, **changes)


class TestStepsDoNotBlockEachOther:
    def test_store_calls_overlap_across_documents(
        self, make_new_document: Callable[..., NewDocument]
    ) -> None:
        repository = _SlowUpdateRepository()
        ids = [repository.create(make_new_document()).id for _ in range(2)]
        step = MarkProcessingStep(repository)

        async def scenario() -> float:
            started = time.monotonic()
            await asyncio.gather(*(step.run(PipelineContext(document_id=i)) for i in ids))
            return time.monotonic() - started

        elapsed = asyncio.run(scenario())

        assert elapsed < 0.5
        assert all(repository.get(i).status == DocumentStatus.PROCESSING for i in ids)  # type: ignore[union-attr]
