from pathlib import Path

from loanscan.database.models import Document
from loanscan.processor.exceptions import FileReadError


class FileLoader:
    """Reads a document's bytes from its storage path."""

    def __init__(self, files_root: Path | None = None) -> None:
        self._files_root = files_root

    def load(self, document: Document) -> bytes:
        """Read document bytes from disk.

        Raises:
            FileReadError: if the file is missing or unreadable.
        """
        path = self._resolve_path(document)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise FileReadError(f"Could not read file {path}: {exc.strerror or exc}") from exc

    def _resolve_path(self, document: Document) -> Path:
        path = Path(document.file_path)
        if self._files_root is not None and not path.is_absolute():
            return self._files_root / path
        return path
