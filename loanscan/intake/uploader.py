import mimetypes
import random
import time
from pathlib import Path

from loanscan.config.settings import Settings
from loanscan.database.models import Document, FileKind, NewDocument
from loanscan.database.repositories.base import BaseDocumentRepository
from loanscan.intake.exceptions import FileTooLargeError, UnsupportedFileTypeError
from loanscan.logging.logger import Log
from loanscan.worker.dispatcher import PipelineDispatcher

ALLOWED_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/jpg", "application/pdf"})


def stored_filename(original_filename: str) -> str:
    """Unique on-disk name: <epoch-ms>-<random><original extension>."""
    suffix = Path(original_filename).suffix
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9 - 1)}{suffix}"


class DocumentUploader:
    """Accepts an uploaded file, stores it, records it as queued and schedules it."""

    def __init__(
        self,
        repository: BaseDocumentRepository,
        dispatcher: PipelineDispatcher,
        settings: Settings,
    ) -> None:
        self._repository = repository
        self._dispatcher = dispatcher
        self._uploads_dir = Path(settings.uploads_dir)
        self._max_size = settings.max_upload_size_bytes

    def upload(
        self,
        original_filename: str,
        content: bytes,
        mime_type: str | None = None,
    ) -> Document:
        """Store and enqueue one file. Must be called from a running event loop.

        Raises:
            UnsupportedFileTypeError: if the MIME type is not accepted.
            FileTooLargeError: if the file exceeds the size limit.
        """
        mime_type = mime_type or mimetypes.guess_type(original_filename)[0] or ""
        if mime_type not in ALLOWED_MIME_TYPES:
            raise UnsupportedFileTypeError(
                f"File type not allowed ({mime_type or 'unknown'}). "
                "Only PDF, JPG and PNG are accepted."
            )
        if len(content) > self._max_size:
            raise FileTooLargeError(
                f"{original_filename} is {len(content)} bytes; "
                f"the limit is {self._max_size} bytes"
            )

        self._uploads_dir.mkdir(parents=True, exist_ok=True)
        filename = stored_filename(original_filename)
        path = self._uploads_dir / filename
        path.write_bytes(content)

        try:
            document = self._repository.create(
                NewDocument(
                    filename=filename,
                    original_filename=original_filename,
                    file_type=FileKind.from_mime_type(mime_type),
                    mime_type=mime_type,
                    file_size=len(content),
                    file_path=str(path),
                )
            )
        except Exception:
            path.unlink(missing_ok=True)
            raise
        Log.info(
            f"Accepted upload {original_filename} as document {document.id}",
            file_type=document.file_type.value,
        )
        self._dispatcher.submit(document.id)
        return document
