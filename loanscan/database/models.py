from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from loanscan.extraction.models import ExtractedFields


class DocumentStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"

    def can_transition_to(self, target: "DocumentStatus") -> bool:
        return target in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.QUEUED: frozenset({DocumentStatus.PROCESSING}),
    DocumentStatus.PROCESSING: frozenset({DocumentStatus.PROCESSED, DocumentStatus.FAILED}),
    DocumentStatus.PROCESSED: frozenset(),
    DocumentStatus.FAILED: frozenset({DocumentStatus.QUEUED}),
}


class FileKind(str, Enum):
    PDF = "pdf"
    IMAGE = "image"

    @classmethod
    def from_mime_type(cls, mime_type: str) -> "FileKind":
        return cls.IMAGE if mime_type.startswith("image/") else cls.PDF


@dataclass(frozen=True)
class NewDocument:
    """Fields fixed when an upload is accepted."""

    filename: str
    original_filename: str
    file_type: FileKind
    mime_type: str
    file_size: int
    file_path: str


@dataclass(frozen=True)
class Document:
    """One uploaded file and its processing lifecycle."""

    id: int
    filename: str
    original_filename: str
    file_type: FileKind
    mime_type: str
    file_size: int
    file_path: str
    status: DocumentStatus
    uploaded_at: datetime
    processed_at: datetime | None = None
    extracted_data: ExtractedFields | None = None
    error_message: str | None = None
    processing_time: int | None = None
    confidence: int | None = None

    def to_payload(self) -> dict[str, Any]:
        """Render the persisted artifact shape consumed by exports and reports."""
        return {
            "id": self.id,
            "filename": self.filename,
            "originalFilename": self.original_filename,
            "fileType": self.file_type.value,
            "mimeType": self.mime_type,
            "fileSize": self.file_size,
            "filePath": self.file_path,
            "status": self.status.value,
            "uploadedAt": self.uploaded_at.isoformat(),
            "processedAt": self.processed_at.isoformat() if self.processed_at else None,
            "extractedData": (
                self.extracted_data.to_payload() if self.extracted_data else None
            ),
            "errorMessage": self.error_message,
            "processingTime": self.processing_time,
            "confidence": self.confidence,
        }


MUTABLE_FIELDS = frozenset(
    {"status", "extracted_data", "error_message", "processing_time", "confidence"}
)


@dataclass(frozen=True)
class DocumentFilter:
    """Listing predicate. Both parts are optional and combined with AND."""

    status: str | None = None
    upload_date: date | None = None

    @property
    def status_value(self) -> str | None:
        """The status to match, or None when the filter accepts every status."""
        if not self.status or self.status == "all":
            return None
        return self.status


@dataclass(frozen=True)
class DocumentStats:
    total: int = 0
    queued: int = 0
    processing: int = 0
    processed: int = 0
    failed: int = 0
