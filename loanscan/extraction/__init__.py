from loanscan.extraction.base import BaseFieldExtractor
from loanscan.extraction.extractor import FieldExtractor
from loanscan.extraction.factory import ExtractorFactory
from loanscan.extraction.models import ExtractedFields, LoanField

__all__ = [
    "BaseFieldExtractor",
    "ExtractedFields",
    "ExtractorFactory",
    "FieldExtractor",
    "LoanField",
]
