import httpx
import openai

from loanscan.extraction.client_base import BaseExtractionClient
from loanscan.extraction.exceptions import ExtractionServiceError
from loanscan.logging.logger import Log


class OpenAIClientAdapter(BaseExtractionClient):
    """Vision extraction client built on the OpenAI-compatible chat API."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
            max_retries=0,
        )

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
        try:
            response = self._client.chat.completions.create(
                model=model,
                temperature=temperature,
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": system_prompt},
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": user_prompt},
                            {
                                "type": "image_url",
                                "image_url": {
                                    "url": f"data:image/jpeg;base64,{image_base64}"
                                },
                            },
                        ],
                    },
                ],
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ExtractionServiceError(
                f"Vision provider network error: {exc}"
            ) from exc
        except openai.APIError as exc:
            raise ExtractionServiceError(
                f"Vision provider API error: {exc}"
            ) from exc

        if not response.choices:
            Log.warning("Vision provider returned no choices")
            return "{}"
        return response.choices[0].message.content or "{}"
