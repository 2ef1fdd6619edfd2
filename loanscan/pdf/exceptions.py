class ConversionError(Exception):
    """Raised when a PDF cannot be rasterized into any page image."""
