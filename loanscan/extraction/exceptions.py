class ExtractionError(Exception):
    """Raised when field extraction fails."""


class ExtractionServiceError(ExtractionError):
    """Raised when the vision model call fails (network, auth, model or timeout)."""
