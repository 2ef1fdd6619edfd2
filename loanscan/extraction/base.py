from abc import ABC, abstractmethod

from loanscan.extraction.models import ExtractedFields


class BaseFieldExtractor(ABC):
    """Contract for all page-level field extractors."""

    @abstractmethod
    def extract(self, image_bytes: bytes) -> ExtractedFields:
        """Extract the loan fields visible on one JPEG page.

        Args:
            image_bytes: One normalized page image.

        Returns:
            ExtractedFields for that page; fields the model could not read are absent.

        Raises:
            ExtractionServiceError: if the external model call fails.
        """
