from typing import ClassVar

from loanscan.config.settings import Settings
from loanscan.extraction.base import BaseFieldExtractor
from loanscan.extraction.client_base import BaseExtractionClient
from loanscan.extraction.example_client_adapter import ExampleClientAdapter
from loanscan.extraction.extractor import FieldExtractor
from loanscan.extraction.openai_client_adapter import OpenAIClientAdapter


class ExtractorFactory:
    """Creates the configured field extractor."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "together": "https://api.together.xyz/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseFieldExtractor:
        """Create a configured extractor from application settings."""
        provider = settings.extraction_provider.lower()
        return FieldExtractor(
            client=cls._create_client(provider, settings),
            model=settings.extraction_model_name,
            temperature=settings.extraction_temperature,
            max_tokens=settings.extraction_max_tokens,
        )

    @classmethod
    def _create_client(cls, provider: str, settings: Settings) -> BaseExtractionClient:
        if provider == "example":
            return ExampleClientAdapter()
        return OpenAIClientAdapter(
            api_key=settings.extraction_api_key,
            timeout_seconds=settings.extraction_timeout_seconds,
            base_url=cls._resolve_base_url(provider, settings),
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        configured = settings.extraction_base_url.strip() or None
        if provider == "openai":
            return configured
        if provider == "openai_compatible":
            if configured is None:
                raise ValueError(
                    "extraction_base_url is required for "
                    "extraction_provider=openai_compatible"
                )
            return configured
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return configured or default_base_url
        supported = [
            "example",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(
            f"Unknown extraction provider '{provider}'. Choose from: {supported}"
        )
