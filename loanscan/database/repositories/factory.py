from zoneinfo import ZoneInfo

from loanscan.config.settings import Settings
from loanscan.database.connection import init_pool
from loanscan.database.repositories.base import BaseDocumentRepository
from loanscan.database.repositories.memory_repository import InMemoryDocumentRepository
from loanscan.database.repositories.postgres_repository import PostgresDocumentRepository


class DocumentRepositoryFactory:
    """Creates the record store backend named by settings."""

    BACKENDS = ("memory", "postgres")

    @classmethod
    def create(cls, settings: Settings) -> BaseDocumentRepository:
        backend = settings.store_backend.lower()
        if backend == "memory":
            return InMemoryDocumentRepository(
                reference_timezone=ZoneInfo(settings.reference_timezone)
            )
        if backend == "postgres":
            init_pool(settings)
            repository = PostgresDocumentRepository(settings.reference_timezone)
            repository.ensure_schema()
            return repository
        raise ValueError(
            f"Unknown store backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
