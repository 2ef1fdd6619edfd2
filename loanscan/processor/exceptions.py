class ProcessorError(Exception):
    """Base exception for all processor-related errors."""


class DocumentNotFoundError(ProcessorError):
    """Raised when a document cannot be found in the record store."""


class FileReadError(ProcessorError):
    """Raised when a document's file cannot be read from storage."""


class NoDataExtractedError(ProcessorError):
    """Raised when no page produced an extraction result."""


class RetryNotAllowedError(ProcessorError):
    """Raised when a retry is requested for a document that has not failed."""
