import argparse
import asyncio
import json
import sys
from datetime import date, datetime
from pathlib import Path
from zoneinfo import ZoneInfo

from loanscan.config.settings import Settings
from loanscan.database.connection import close_pool
from loanscan.database.repositories.base import BaseDocumentRepository
from loanscan.database.repositories.factory import DocumentRepositoryFactory
from loanscan.export.excel_exporter import ExcelExporter, export_filename
from loanscan.intake.exceptions import IntakeError
from loanscan.intake.uploader import DocumentUploader
from loanscan.logging.logger import Log
from loanscan.processor.processor import build_processor
from loanscan.worker.dispatcher import PipelineDispatcher
from loanscan.worker.pipeline_runner import PipelineRunner


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="loanscan",
        description="Extract loan fields from scanned PDF and image documents.",
    )
    parser.add_argument("files", nargs="+", type=Path, help="PDF, JPG or PNG files")
    parser.add_argument(
        "--export",
        type=Path,
        help="write processed documents to this .xlsx file (or into this directory)",
    )
    parser.add_argument(
        "--retry-failed",
        action="store_true",
        help="retry every failed document once after the first pass",
    )
    return parser.parse_args(argv)


def _today(reference_timezone: str) -> date:
    return datetime.now(ZoneInfo(reference_timezone)).date()


async def _run(
    args: argparse.Namespace,
    settings: Settings,
    repository: BaseDocumentRepository,
) -> int:
    processor = build_processor(settings, repository)
    dispatcher = PipelineDispatcher(PipelineRunner(processor), repository, settings)
    uploader = DocumentUploader(repository, dispatcher, settings)

    for path in args.files:
        try:
            uploader.upload(path.name, path.read_bytes())
        except (IntakeError, OSError) as exc:
            Log.error(f"Rejected {path}: {exc}")
    Log.info(f"Upload complete: {repository.stats()}")
    await dispatcher.drain()

    if args.retry_failed and dispatcher.retry_failed():
        await dispatcher.drain()

    stats = repository.stats()
    Log.info(f"Processing complete: {stats}")
    documents = repository.list()
    print(json.dumps([doc.to_payload() for doc in documents], ensure_ascii=False, indent=2))

    if args.export is not None:
        destination = args.export
        if destination.is_dir():
            destination = destination / export_filename(_today(settings.reference_timezone))
        exporter = ExcelExporter(ZoneInfo(settings.reference_timezone))
        written = exporter.write(documents, destination)
        Log.info(f"Exported {written} processed documents to {destination}")

    return 1 if stats.failed else 0


def main(argv: list[str] | None = None) -> int:
    """Entry point: configure -> build dependencies -> upload, process and report."""
    args = _parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)
    try:
        repository = DocumentRepositoryFactory.create(settings)
        return asyncio.run(_run(args, settings, repository))
    finally:
        close_pool()


if __name__ == "__main__":
    sys.exit(main())
