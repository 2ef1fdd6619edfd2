import math
from collections.abc import Sequence
from dataclasses import dataclass

from loanscan.extraction.models import ExtractedFields, LoanField
from loanscan.processor.exceptions import NoDataExtractedError


@dataclass(frozen=True)
class MergeResult:
    fields: ExtractedFields
    average_confidence: int


class FieldMerger:
    """Folds per-page extraction results into one field set.

    For each field the first page with a value wins, and a later page only
    replaces it with a strictly higher confidence.
    """

    def merge(self, pages: Sequence[ExtractedFields]) -> MergeResult:
        if not pages:
            raise NoDataExtractedError("No data could be extracted from any page")

        values: dict[LoanField, str] = {}
        confidence: dict[LoanField, int] = {}
        for loan_field in LoanField:
            for page in pages:
                value = page.value_of(loan_field)
                if not value:
                    continue
                score = page.confidence_of(loan_field)
                if loan_field not in values or score > confidence[loan_field]:
                    values[loan_field] = value
                    confidence[loan_field] = score

        merged = ExtractedFields(
            values=values,
            fields_found=[f.value for f in LoanField if f in values],
            fields_not_found=[f.value for f in LoanField if f not in values],
            confidence=confidence,
        )
        return MergeResult(fields=merged, average_confidence=_average(confidence))


def _average(confidence: dict[LoanField, int]) -> int:
    if not confidence:
        return 0
    return math.floor(sum(confidence.values()) / len(confidence) + 0.5)
