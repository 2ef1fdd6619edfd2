"""Lenient conversion of a raw model answer into ExtractedFields.

A malformed or incomplete answer never raises: anything that does not fit
the schema is dropped and the rest is kept.
"""

import json
import math
from typing import Any

from loanscan.extraction.models import ExtractedFields, LoanField
from loanscan.logging.logger import Log

_NULL_MARKERS = frozenset({"null", "none"})


def parse_extraction_response(raw: str) -> ExtractedFields:
    data = _load_object(raw)
    values = _build_values(data)
    return ExtractedFields(
        values=values,
        fields_found=_build_name_list(data.get("fieldsFound")),
        fields_not_found=_build_name_list(data.get("fieldsNotFound")),
        confidence=_build_confidence(data.get("confidence"), values),
    )


def _load_object(raw: str) -> dict[str, Any]:
    cleaned = _strip_code_fence(raw or "")
    if not cleaned:
        return {}
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        Log.warning(f"Model answer is not valid JSON, treating as empty: {exc}")
        return {}
    if not isinstance(parsed, dict):
        Log.warning("Model answer is not a JSON object, treating as empty")
        return {}
    return parsed


def _strip_code_fence(raw: str) -> str:
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        lines = cleaned.splitlines()
        if lines and lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = "\n".join(lines).strip()
    return cleaned


def _build_values(data: dict[str, Any]) -> dict[LoanField, str]:
    values: dict[LoanField, str] = {}
    for loan_field in LoanField:
        raw_value = data.get(loan_field.value)
        if not isinstance(raw_value, str):
            continue
        value = raw_value.strip()
        if value and value.lower() not in _NULL_MARKERS:
            values[loan_field] = value
    return values


def _build_name_list(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    return [item for item in raw if isinstance(item, str)]


def _build_confidence(raw: Any, values: dict[LoanField, str]) -> dict[LoanField, int]:
    if not isinstance(raw, dict):
        return {}
    confidence: dict[LoanField, int] = {}
    for loan_field in LoanField:
        score = raw.get(loan_field.value)
        if loan_field not in values or not _is_number(score):
            continue
        confidence[loan_field] = max(0, min(100, math.floor(score + 0.5)))
    return confidence


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)
