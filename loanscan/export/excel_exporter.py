from collections.abc import Iterable
from datetime import date, datetime, tzinfo
from pathlib import Path
from typing import IO, Any
from zoneinfo import ZoneInfo

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from loanscan.database.models import Document, DocumentStatus
from loanscan.extraction.models import LoanField

SHEET_TITLE = "Documentos Procesados"

FIELD_COLUMNS: tuple[tuple[str, LoanField], ...] = (
    ("CIF", LoanField.CIF),
    ("Nro. Préstamo", LoanField.LOAN_NUMBER),
    ("Cuenta", LoanField.ACCOUNT),
    ("Nombre Apellido", LoanField.FULL_NAME),
    ("Nro. DPI", LoanField.DPI),
    ("Monto del Préstamo", LoanField.LOAN_AMOUNT),
)

HEADERS: tuple[str, ...] = (
    "ID",
    "Nombre Archivo",
    "Fecha Subida",
    "Fecha Procesado",
    *(header for header, _ in FIELD_COLUMNS),
    "Confianza (%)",
    "Tiempo Procesamiento (ms)",
)


def export_filename(today: date) -> str:
    return f"documentos-{today.isoformat()}.xlsx"


def build_export_rows(
    documents: Iterable[Document],
    reference_timezone: tzinfo = ZoneInfo("UTC"),
) -> list[dict[str, Any]]:
    """One row per processed document, keyed by the Spanish column headers."""
    rows: list[dict[str, Any]] = []
    for document in documents:
        data = document.extracted_data
        if document.status != DocumentStatus.PROCESSED or data is None:
            continue
        row: dict[str, Any] = {
            "ID": document.id,
            "Nombre Archivo": document.original_filename,
            "Fecha Subida": _format_day(document.uploaded_at, reference_timezone),
            "Fecha Procesado": _format_day(document.processed_at, reference_timezone),
        }
        for header, loan_field in FIELD_COLUMNS:
            row[header] = data.value_of(loan_field) or ""
        row["Confianza (%)"] = document.confidence or 0
        row["Tiempo Procesamiento (ms)"] = document.processing_time or 0
        rows.append(row)
    return rows


def _format_day(moment: datetime | None, reference_timezone: tzinfo) -> str:
    if moment is None:
        return ""
    return moment.astimezone(reference_timezone).strftime("%d/%m/%Y")


class ExcelExporter:
    """Writes processed documents to a single-sheet workbook."""

    def __init__(self, reference_timezone: tzinfo = ZoneInfo("UTC")) -> None:
        self._reference_timezone = reference_timezone

    def write(self, documents: Iterable[Document], destination: Path | IO[bytes]) -> int:
        """Render the workbook. Returns the number of data rows written."""
        rows = build_export_rows(documents, self._reference_timezone)
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = SHEET_TITLE
        sheet.append(list(HEADERS))
        for row in rows:
            sheet.append([row[header] for header in HEADERS])
        for index, header in enumerate(HEADERS, start=1):
            sheet.column_dimensions[get_column_letter(index)].width = max(12, len(header) + 2)
        workbook.save(destination)
        return len(rows)
