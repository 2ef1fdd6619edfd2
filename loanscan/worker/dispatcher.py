import asyncio

from loanscan.config.settings import Settings
from loanscan.database.models import DocumentFilter, DocumentStatus
from loanscan.database.repositories.base import BaseDocumentRepository
from loanscan.logging.logger import Log
from loanscan.processor.exceptions import DocumentNotFoundError, RetryNotAllowedError
from loanscan.worker.pipeline_runner import PipelineRunner


class PipelineDispatcher:
    """Schedules pipeline runs as asyncio tasks with bounded concurrency.

    Each submitted document gets its own task. At most
    ``max_concurrent_pipelines`` runs execute at once; the rest wait while
    their documents stay queued. A document id never has two runs in flight.
    """

    def __init__(
        self,
        runner: PipelineRunner,
        repository: BaseDocumentRepository,
        settings: Settings,
    ) -> None:
        self._runner = runner
        self._repository = repository
        self._semaphore = asyncio.Semaphore(max(1, settings.max_concurrent_pipelines))
        self._in_flight: set[int] = set()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> frozenset[int]:
        return frozenset(self._in_flight)

    def submit(self, document_id: int) -> bool:
        """Schedule a run for a document. Must be called from a running event loop.

        Returns False when the document already has a run in flight.
        """
        if document_id in self._in_flight:
            Log.warning(f"Document {document_id} already has a pipeline run in flight")
            return False
        self._in_flight.add(document_id)
        task = asyncio.get_running_loop().create_task(self._run(document_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    def retry(self, document_id: int) -> None:
        """Reset a failed document to queued and schedule it again.

        Raises:
            DocumentNotFoundError: if the document does not exist.
            RetryNotAllowedError: if the document is not failed.
        """
        document = self._repository.get(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        if document.status != DocumentStatus.FAILED:
            raise RetryNotAllowedError("Only failed documents can be retried")
        if document_id in self._in_flight:
            raise RetryNotAllowedError(f"Document {document_id} is still finishing its run")
        self._requeue(document_id)

    def retry_failed(self) -> int:
        """Requeue every currently failed document. Returns how many were requeued."""
        failed = [
            document
            for document in self._repository.list(
                DocumentFilter(status=DocumentStatus.FAILED.value)
            )
            if document.id not in self._in_flight
        ]
        for document in failed:
            self._requeue(document.id)
        Log.info(f"{len(failed)} documents queued for retry")
        return len(failed)

    async def drain(self) -> None:
        """Wait until every scheduled run has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _requeue(self, document_id: int) -> None:
        self._repository.update(
            document_id, status=DocumentStatus.QUEUED, error_message=None
        )
        Log.info(f"Document {document_id} queued for retry")
        self.submit(document_id)

    async def _run(self, document_id: int) -> None:
        try:
            async with self._semaphore:
                await self._runner.run(document_id)
        finally:
            self._in_flight.discard(document_id)
