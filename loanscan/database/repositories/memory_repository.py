import threading
from collections.abc import Callable
from datetime import datetime, timezone, tzinfo
from typing import Any

from loanscan.database.models import (
    Document,
    DocumentFilter,
    DocumentStats,
    DocumentStatus,
    NewDocument,
)
from loanscan.database.repositories.base import BaseDocumentRepository, apply_changes


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryDocumentRepository(BaseDocumentRepository):
    """Process-local store. One lock guards every read and read-modify-write."""

    def __init__(
        self,
        reference_timezone: tzinfo = timezone.utc,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._documents: dict[int, Document] = {}
        self._next_id = 1
        self._lock = threading.Lock()
        self._reference_timezone = reference_timezone
        self._clock = clock

    def get(self, document_id: int) -> Document | None:
        with self._lock:
            return self._documents.get(document_id)

    def list(self, filters: DocumentFilter | None = None) -> list[Document]:
        filters = filters or DocumentFilter()
        with self._lock:
            documents = list(self._documents.values())
        matching = [doc for doc in documents if self._matches(doc, filters)]
        return sorted(matching, key=lambda doc: (doc.uploaded_at, doc.id), reverse=True)

    def create(self, new_document: NewDocument) -> Document:
        with self._lock:
            document = Document(
                id=self._next_id,
                filename=new_document.filename,
                original_filename=new_document.original_filename,
                file_type=new_document.file_type,
                mime_type=new_document.mime_type,
                file_size=new_document.file_size,
                file_path=new_document.file_path,
                status=DocumentStatus.QUEUED,
                uploaded_at=self._clock(),
            )
            self._documents[document.id] = document
            self._next_id += 1
            return document

    def update(self, document_id: int, **changes: Any) -> Document | None:
        with self._lock:
            existing = self._documents.get(document_id)
            if existing is None:
                return None
            updated = apply_changes(existing, changes, self._clock())
            self._documents[document_id] = updated
            return updated

    def delete(self, document_id: int) -> bool:
        with self._lock:
            return self._documents.pop(document_id, None) is not None

    def stats(self) -> DocumentStats:
        with self._lock:
            statuses = [doc.status for doc in self._documents.values()]
        return DocumentStats(
            total=len(statuses),
            queued=statuses.count(DocumentStatus.QUEUED),
            processing=statuses.count(DocumentStatus.PROCESSING),
            processed=statuses.count(DocumentStatus.PROCESSED),
            failed=statuses.count(DocumentStatus.FAILED),
        )

    def _matches(self, document: Document, filters: DocumentFilter) -> bool:
        status = filters.status_value
        if status is not None and document.status.value != status:
            return False
        if filters.upload_date is not None:
            local_day = document.uploaded_at.astimezone(self._reference_timezone).date()
            if local_day != filters.upload_date:
                return False
        return True
