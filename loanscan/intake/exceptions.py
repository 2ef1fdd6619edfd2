class IntakeError(Exception):
    """Base exception for rejected uploads."""


class UnsupportedFileTypeError(IntakeError):
    """Raised when an upload is not a PDF, JPEG or PNG."""


class FileTooLargeError(IntakeError):
    """Raised when an upload exceeds the configured size limit."""
