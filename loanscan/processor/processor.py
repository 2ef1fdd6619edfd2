from pathlib import Path

from loanscan.config.settings import Settings
from loanscan.database.repositories.base import BaseDocumentRepository
from loanscan.extraction.base import BaseFieldExtractor
from loanscan.extraction.factory import ExtractorFactory
from loanscan.imaging.encoder import JpegEncoder
from loanscan.imaging.normalizer import DocumentNormalizer
from loanscan.logging.logger import Log
from loanscan.pdf.factory import PdfRasterizerFactory
from loanscan.processor.field_merger import FieldMerger
from loanscan.processor.file_loader import FileLoader
from loanscan.processor.pipeline import PipelineContext, PipelineStep
from loanscan.processor.steps import (
    ExtractFieldsStep,
    LoadDocumentStep,
    MarkFailedStep,
    MarkProcessingStep,
    MergeFieldsStep,
    NormalizeStep,
    PersistProcessedStep,
)


class Processor:
    """Drives one document through its pipeline steps.

    Pipeline: mark processing -> load -> normalize -> extract -> merge -> persist.
    Any step error runs the failed step, which records the message, and is
    then re-raised to the caller.
    """

    def __init__(self, steps: list[PipelineStep], failed_step: PipelineStep) -> None:
        self._steps = steps
        self._failed_step = failed_step

    async def process(self, document_id: int) -> PipelineContext:
        Log.info(f"Processing document {document_id}")
        context = PipelineContext(document_id=document_id)
        try:
            for step in self._steps:
                context = await step.run(context)
        except Exception as exc:
            context.error_message = str(exc) or type(exc).__name__
            await self._record_failure(context)
            raise
        return context

    async def _record_failure(self, context: PipelineContext) -> None:
        try:
            await self._failed_step.run(context)
        except Exception:
            Log.exception(f"Could not record failure for document {context.document_id}")


def build_processor(
    settings: Settings,
    repository: BaseDocumentRepository,
    *,
    extractor: BaseFieldExtractor | None = None,
    files_root: Path | None = None,
) -> Processor:
    """Build a Processor with all required adapters."""
    encoder = JpegEncoder(quality=settings.jpeg_quality)
    normalizer = DocumentNormalizer(
        rasterizer=PdfRasterizerFactory.create(settings, encoder),
        encoder=encoder,
    )
    steps: list[PipelineStep] = [
        MarkProcessingStep(repository),
        LoadDocumentStep(file_loader=FileLoader(files_root=files_root), repository=repository),
        NormalizeStep(normalizer=normalizer),
        ExtractFieldsStep(
            extractor=extractor or ExtractorFactory.create(settings),
            timeout_seconds=settings.page_extraction_timeout_seconds,
        ),
        MergeFieldsStep(merger=FieldMerger()),
        PersistProcessedStep(repository),
    ]
    return Processor(steps=steps, failed_step=MarkFailedStep(repository))
