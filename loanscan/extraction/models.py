from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class LoanField(str, Enum):
    """The fixed set of fields extracted from a loan document, in schema order."""

    CIF = "cif"
    LOAN_NUMBER = "loanNumber"
    ACCOUNT = "account"
    FULL_NAME = "fullName"
    DPI = "dpi"
    LOAN_AMOUNT = "loanAmount"


@dataclass(frozen=True)
class ExtractedFields:
    """Field values and per-field confidence for one page or a merged document."""

    values: dict[LoanField, str] = field(default_factory=dict)
    fields_found: list[str] = field(default_factory=list)
    fields_not_found: list[str] = field(default_factory=list)
    confidence: dict[LoanField, int] = field(default_factory=dict)

    def value_of(self, loan_field: LoanField) -> str | None:
        return self.values.get(loan_field)

    def confidence_of(self, loan_field: LoanField) -> int:
        return self.confidence.get(loan_field, 0)

    def to_payload(self) -> dict[str, Any]:
        """Render the persisted shape: camelCase field keys, absent fields omitted."""
        payload: dict[str, Any] = {
            loan_field.value: self.values[loan_field]
            for loan_field in LoanField
            if loan_field in self.values
        }
        payload["fieldsFound"] = list(self.fields_found)
        payload["fieldsNotFound"] = list(self.fields_not_found)
        payload["confidence"] = {
            loan_field.value: score for loan_field, score in self.confidence.items()
        }
        return payload

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ExtractedFields":
        """Rebuild from a payload previously produced by to_payload()."""
        values = {
            loan_field: payload[loan_field.value]
            for loan_field in LoanField
            if payload.get(loan_field.value)
        }
        confidence = {
            LoanField(key): int(score)
            for key, score in (payload.get("confidence") or {}).items()
        }
        return cls(
            values=values,
            fields_found=list(payload.get("fieldsFound") or []),
            fields_not_found=list(payload.get("fieldsNotFound") or []),
            confidence=confidence,
        )
