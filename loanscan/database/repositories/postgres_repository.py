from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from psycopg.types.json import Jsonb

from loanscan.database.connection import get_connection
from loanscan.database.models import (
    Document,
    DocumentFilter,
    DocumentStats,
    DocumentStatus,
    FileKind,
    NewDocument,
)
from loanscan.database.repositories.base import BaseDocumentRepository, apply_changes
from loanscan.extraction.models import ExtractedFields

_SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schema.sql"

_COLUMNS = """
    id, filename, original_filename, file_type, mime_type, file_size, file_path,
    status, uploaded_at, processed_at, extracted_data, error_message,
    processing_time, confidence
"""


class PostgresDocumentRepository(BaseDocumentRepository):
    """Database operations for the documents table."""

    def __init__(self, reference_timezone: str = "UTC") -> None:
        self._reference_timezone = reference_timezone

    def ensure_schema(self) -> None:
        """Create the documents table if it does not exist yet."""
        with get_connection() as conn:
            conn.execute(_SCHEMA_PATH.read_text(encoding="utf-8"))
            conn.commit()

    def get(self, document_id: int) -> Document | None:
        with get_connection() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM documents WHERE id = %s",
                (document_id,),
            ).fetchone()
        return _row_to_document(row) if row is not None else None

    def list(self, filters: DocumentFilter | None = None) -> list[Document]:
        filters = filters or DocumentFilter()
        clauses: list[str] = []
        params: list[Any] = []
        if filters.status_value is not None:
            clauses.append("status = %s")
            params.append(filters.status_value)
        if filters.upload_date is not None:
            clauses.append("(uploaded_at AT TIME ZONE %s)::date = %s")
            params.extend([self._reference_timezone, filters.upload_date])
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with get_connection() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM documents {where} "
                "ORDER BY uploaded_at DESC, id DESC",
                params,
            ).fetchall()
        return [_row_to_document(row) for row in rows]

    def create(self, new_document: NewDocument) -> Document:
        with get_connection() as conn:
            row = conn.execute(
                f"""
                INSERT INTO documents
                    (filename, original_filename, file_type, mime_type,
                     file_size, file_path, status)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                RETURNING {_COLUMNS}
                """,
                (
                    new_document.filename,
                    new_document.original_filename,
                    new_document.file_type.value,
                    new_document.mime_type,
                    new_document.file_size,
                    new_document.file_path,
                    DocumentStatus.QUEUED.value,
                ),
            ).fetchone()
            conn.commit()
        return _row_to_document(row)

    def update(self, document_id: int, **changes: Any) -> Document | None:
        with get_connection() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM documents WHERE id = %s FOR UPDATE",
                (document_id,),
            ).fetchone()
            if row is None:
                conn.rollback()
                return None
            try:
                updated = apply_changes(
                    _row_to_document(row), changes, datetime.now(timezone.utc)
                )
            except Exception:
                conn.rollback()
                raise
            conn.execute(
                """
                UPDATE documents
                SET status = %s,
                    processed_at = %s,
                    extracted_data = %s,
                    error_message = %s,
                    processing_time = %s,
                    confidence = %s
                WHERE id = %s
                """,
                (
                    updated.status.value,
                    updated.processed_at,
                    (
                        Jsonb(updated.extracted_data.to_payload())
                        if updated.extracted_data is not None
                        else None
                    ),
                    updated.error_message,
                    updated.processing_time,
                    updated.confidence,
                    document_id,
                ),
            )
            conn.commit()
        return updated

    def delete(self, document_id: int) -> bool:
        with get_connection() as conn:
            cur = conn.execute("DELETE FROM documents WHERE id = %s", (document_id,))
            conn.commit()
            return cur.rowcount > 0

    def stats(self) -> DocumentStats:
        with get_connection() as conn:
            rows = conn.execute(
                "SELECT status, COUNT(*) AS count FROM documents GROUP BY status"
            ).fetchall()
        counts = {row["status"]: row["count"] for row in rows}
        return DocumentStats(
            total=sum(counts.values()),
            queued=counts.get(DocumentStatus.QUEUED.value, 0),
            processing=counts.get(DocumentStatus.PROCESSING.value, 0),
            processed=counts.get(DocumentStatus.PROCESSED.value, 0),
            failed=counts.get(DocumentStatus.FAILED.value, 0),
        )


def _row_to_document(row: dict[str, Any]) -> Document:
    extracted = row["extracted_data"]
    return Document(
        id=row["id"],
        filename=row["filename"],
        original_filename=row["original_filename"],
        file_type=FileKind(row["file_type"]),
        mime_type=row["mime_type"],
        file_size=row["file_size"],
        file_path=row["file_path"],
        status=DocumentStatus(row["status"]),
        uploaded_at=row["uploaded_at"],
        processed_at=row["processed_at"],
        extracted_data=ExtractedFields.from_payload(extracted) if extracted else None,
        error_message=row["error_message"],
        processing_time=row["processing_time"],
        confidence=row["confidence"],
    )
