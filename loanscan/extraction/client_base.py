from abc import ABC, abstractmethod


class BaseExtractionClient(ABC):
    """Contract for provider-specific vision model clients."""

    @abstractmethod
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
        """Send one JPEG page to the model and return its raw text answer.

        Raises:
            ExtractionServiceError: if the provider call itself fails.
        """
