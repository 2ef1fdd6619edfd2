import asyncio
import time

from loanscan.database.models import DocumentStatus
from loanscan.database.repositories.base import BaseDocumentRepository
from loanscan.extraction.base import BaseFieldExtractor
from loanscan.extraction.exceptions import ExtractionServiceError
from loanscan.extraction.models import ExtractedFields
from loanscan.imaging.models import PageImage
from loanscan.imaging.normalizer import DocumentNormalizer
from loanscan.logging.logger import Log
from loanscan.processor.exceptions import DocumentNotFoundError
from loanscan.processor.field_merger import FieldMerger
from loanscan.processor.file_loader import FileLoader
from loanscan.processor.pipeline import PipelineContext, PipelineStep


class MarkProcessingStep(PipelineStep):
    def __init__(self, repository: BaseDocumentRepository) -> None:
        self._repository = repository

    async def run(self, context: PipelineContext) -> PipelineContext:
        updated = await asyncio.to_thread(
            self._repository.update, context.document_id, status=DocumentStatus.PROCESSING
        )
        context.claimed = updated is not None
        Log.info(f"Document {context.document_id} marked as processing")
        return context


class LoadDocumentStep(PipelineStep):
    def __init__(
        self,
        file_loader: FileLoader,
        repository: BaseDocumentRepository,
    ) -> None:
        self._file_loader = file_loader
        self._repository = repository

    async def run(self, context: PipelineContext) -> PipelineContext:
        document = await asyncio.to_thread(self._repository.get, context.document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {context.document_id} not found")
        context.document = document
        context.started_at = time.monotonic()
        context.raw_bytes = await asyncio.to_thread(self._file_loader.load, document)
        Log.info(
            f"Loaded {len(context.raw_bytes)} bytes for document {context.document_id}",
            original_filename=document.original_filename,
        )
        return context


class NormalizeStep(PipelineStep):
    def __init__(self, normalizer: DocumentNormalizer) -> None:
        self._normalizer = normalizer

    async def run(self, context: PipelineContext) -> PipelineContext:
        if context.document is None:
            raise ValueError("PipelineContext.document must be set before normalization")
        context.pages = await asyncio.to_thread(
            self._normalizer.normalize,
            context.raw_bytes,
            context.document.file_type,
        )
        return context


class ExtractFieldsStep(PipelineStep):
    """Calls the extractor once per page, in page order.

    A page whose call fails or times out is skipped; the merge step decides
    whether anything usable is left.
    """

    def __init__(self, extractor: BaseFieldExtractor, timeout_seconds: float) -> None:
        self._extractor = extractor
        self._timeout_seconds = timeout_seconds

    async def run(self, context: PipelineContext) -> PipelineContext:
        total = len(context.pages)
        for page in context.pages:
            Log.info(
                f"Processing page {page.page_number} of {total} "
                f"for document {context.document_id}"
            )
            try:
                context.page_results.append(await self._extract_page(page))
            except ExtractionServiceError as exc:
                Log.warning(
                    f"Skipping page {page.page_number} of document "
                    f"{context.document_id}: {exc}"
                )
        return context

    async def _extract_page(self, page: PageImage) -> ExtractedFields:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._extractor.extract, page.content),
                timeout=self._timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise ExtractionServiceError(
                f"Extraction timed out after {self._timeout_seconds}s"
            ) from exc


class MergeFieldsStep(PipelineStep):
    def __init__(self, merger: FieldMerger) -> None:
        self._merger = merger

    async def run(self, context: PipelineContext) -> PipelineContext:
        context.merge_result = self._merger.merge(context.page_results)
        Log.info(
            f"Merged {len(context.page_results)} page result(s) for document "
            f"{context.document_id}: {len(context.merge_result.fields.fields_found)} "
            "fields found"
        )
        return context


class PersistProcessedStep(PipelineStep):
    def __init__(self, repository: BaseDocumentRepository) -> None:
        self._repository = repository

    async def run(self, context: PipelineContext) -> PipelineContext:
        if context.merge_result is None:
            raise ValueError("PipelineContext.merge_result must be set before persist")
        processing_time = round((time.monotonic() - context.started_at) * 1000)
        updated = await asyncio.to_thread(
            self._repository.update,
            context.document_id,
            status=DocumentStatus.PROCESSED,
            extracted_data=context.merge_result.fields,
            processing_time=processing_time,
            confidence=context.merge_result.average_confidence,
            error_message=None,
        )
        if updated is None:
            raise DocumentNotFoundError(f"Document {context.document_id} not found")
        Log.info(
            f"Successfully processed document {context.document_id} "
            f"in {processing_time}ms"
        )
        return context


class MarkFailedStep(PipelineStep):
    def __init__(self, repository: BaseDocumentRepository) -> None:
        self._repository = repository

    async def run(self, context: PipelineContext) -> PipelineContext:
        if not context.claimed:
            Log.warning(
                f"Document {context.document_id} was never marked processing; "
                "leaving its status unchanged"
            )
            return context
        updated = await asyncio.to_thread(
            self._repository.update,
            context.document_id,
            status=DocumentStatus.FAILED,
            error_message=context.error_message,
        )
        if updated is None:
            Log.warning(f"Document {context.document_id} vanished before it could be marked failed")
        else:
            Log.error(f"Document {context.document_id} marked as failed: {context.error_message}")
        return context
