"""Vision-model backed loan field extractor."""

import base64
from pathlib import Path

from loanscan.extraction.base import BaseFieldExtractor
from loanscan.extraction.client_base import BaseExtractionClient
from loanscan.extraction.models import ExtractedFields
from loanscan.extraction.parser import parse_extraction_response
from loanscan.extraction.prompt_loader import load_system_prompt, load_user_prompt
from loanscan.logging.logger import Log


class FieldExtractor(BaseFieldExtractor):
    """Extracts loan fields from a page image with one stateless model call."""

    def __init__(
        self,
        *,
        client: BaseExtractionClient,
        model: str,
        temperature: float = 0.0,
        max_tokens: int = 1000,
        system_prompt_path: Path | None = None,
        user_prompt_path: Path | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = max(0.0, min(0.2, temperature))
        self._max_tokens = max_tokens
        self._system_prompt = load_system_prompt(system_prompt_path)
        self._user_prompt = load_user_prompt(user_prompt_path)

    def extract(self, image_bytes: bytes) -> ExtractedFields:
        image_base64 = base64.b64encode(image_bytes).decode("ascii")
        raw_response = self._client.create_vision_completion(
            model=self._model,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            system_prompt=self._system_prompt,
            user_prompt=self._user_prompt,
            image_base64=image_base64,
        )
        Log.debug(f"Vision model raw response:\n{raw_response}")

        result = parse_extraction_response(raw_response)
        Log.info(f"Page extraction complete: {len(result.values)} fields found")
        return result
