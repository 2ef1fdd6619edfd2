from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from typing import Any

from loanscan.database.exceptions import InvalidStatusTransitionError, RecordInvariantError
from loanscan.database.models import (
    MUTABLE_FIELDS,
    Document,
    DocumentFilter,
    DocumentStats,
    DocumentStatus,
    NewDocument,
)


class BaseDocumentRepository(ABC):
    """Keyed store of Document records. Every call is atomic per document."""

    @abstractmethod
    def get(self, document_id: int) -> Document | None:
        """Return the current snapshot of a document, or None."""

    @abstractmethod
    def list(self, filters: DocumentFilter | None = None) -> list[Document]:
        """Return matching documents, newest upload first."""

    @abstractmethod
    def create(self, new_document: NewDocument) -> Document:
        """Insert a queued document, assigning its id and upload time."""

    @abstractmethod
    def update(self, document_id: int, **changes: Any) -> Document | None:
        """Merge changes into a document. Returns None if it does not exist.

        Raises:
            InvalidStatusTransitionError: on an illegal status change.
            RecordInvariantError: if the result would be inconsistent.
        """

    @abstractmethod
    def delete(self, document_id: int) -> bool:
        """Remove a document. Returns False if it did not exist."""

    @abstractmethod
    def stats(self) -> DocumentStats:
        """Count documents by current status."""


def apply_changes(existing: Document, changes: dict[str, Any], now: datetime) -> Document:
    """Validate and apply an update to a document snapshot.

    Raises:
        ValueError: if a change names an immutable or unknown field.
        InvalidStatusTransitionError: if the status change is not a legal edge.
        RecordInvariantError: if the merged record breaks a lifecycle invariant.
    """
    unknown = set(changes) - MUTABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update fields: {sorted(unknown)}")

    if "status" in changes:
        target = DocumentStatus(changes["status"])
        if not existing.status.can_transition_to(target):
            raise InvalidStatusTransitionError(
                f"Document {existing.id}: {existing.status.value} -> {target.value} "
                "is not allowed"
            )
        changes = {**changes, "status": target}

    updated = replace(existing, **changes)
    if updated.status == DocumentStatus.PROCESSED and updated.processed_at is None:
        updated = replace(updated, processed_at=now)

    _check_invariants(updated)
    return updated


def _check_invariants(document: Document) -> None:
    is_processed = document.status == DocumentStatus.PROCESSED
    if (document.extracted_data is not None) != is_processed:
        raise RecordInvariantError(
            f"Document {document.id}: extracted data must be present "
            "exactly when status is processed"
        )
    if document.status == DocumentStatus.QUEUED and document.error_message is not None:
        raise RecordInvariantError(
            f"Document {document.id}: a queued document cannot carry an error message"
        )
