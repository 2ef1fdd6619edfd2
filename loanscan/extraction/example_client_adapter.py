"""Offline extraction client adapter.

Implements BaseExtractionClient without network calls so the whole pipeline
can run locally. Register new providers in ExtractorFactory.
"""

import json
from typing import ClassVar

from loanscan.extraction.client_base import BaseExtractionClient


class ExampleClientAdapter(BaseExtractionClient):
    """Returns a fixed answer in which every field is missing."""

    DEFAULT_RESPONSE: ClassVar[dict[str, object]] = {
        "cif": None,
        "loanNumber": None,
        "account": None,
        "fullName": None,
        "dpi": None,
        "loanAmount": None,
        "fieldsFound": [],
        "fieldsNotFound": ["cif", "loanNumber", "account", "fullName", "dpi", "loanAmount"],
        "confidence": {},
    }

    def __init__(self, response: dict[str, object] | None = None) -> None:
        self._response = response if response is not None else self.DEFAULT_RESPONSE

    def create_vision_completion(
        self,
        *,
        model: str,
        temperature: float,
        max_tokens: int,
        system_prompt: str,
        user_prompt: str,
        image_base64: str,
    ) -> str:
        _ = model, temperature, max_tokens, system_prompt, user_prompt, image_base64
        return json.dumps(self._response)
