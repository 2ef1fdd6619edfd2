class RepositoryError(Exception):
    """Base exception for record store errors."""


class InvalidStatusTransitionError(RepositoryError):
    """Raised when an update would move a document along an illegal status edge."""


class RecordInvariantError(RepositoryError):
    """Raised when an update would leave a document in an inconsistent state."""
