from typing import ClassVar

from enhancer.analysis.analyzer import Analyzer
from enhancer.analysis.example_client_adapter import ExampleClientAdapter
from enhancer.analysis.openai_client_adapter import OpenAIClientAdapter
from enhancer.config.settings import Settings


class AnalyzerFactory:
    """Creates the configured document analyzer."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(cls, settings: Settings) -> Analyzer:
        """Create a configured analyzer from application settings."""
        provider = settings.analysis_provider.lower()
        if provider == "example":
            return Analyzer(
                client=ExampleClientAdapter(),
                vision_model="example",
                text_model="example",
                temperature=0.0,
            )
        client = OpenAIClientAdapter(
            api_key=cls._resolve_api_key(provider, settings),
            timeout_seconds=settings.analysis_openai_timeout_seconds,
            base_url=cls._resolve_base_url(provider, settings),
        )
        vision_model, text_model = cls._resolve_model_names(provider, settings)
        return Analyzer(
            client=client,
            vision_model=vision_model,
            text_model=text_model,
            premium_text_model=cls._resolve_premium_model_name(provider, settings),
            temperature=settings.analysis_openai_temperature,
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        if provider == "openai":
            return None
        if provider == "openai_compatible":
            url = (settings.analysis_openai_compatible_base_url or "").strip()
            if not url:
                raise ValueError(
                    "analysis_openai_compatible_base_url is required for "
                    "analysis_provider=openai_compatible"
                )
            return url
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return default_base_url
        supported = [
            "example",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(
            f"Unknown analysis provider '{provider}'. Choose from: {supported}"
        )

    @classmethod
    def _resolve_api_key(cls, provider: str, settings: Settings) -> str:
        key_map = {
            "openai": settings.analysis_openai_api_key,
            "openai_compatible": settings.analysis_openai_compatible_api_key,
            "openrouter": settings.analysis_openrouter_api_key,
            "ollama": settings.analysis_ollama_api_key,
        }
        return key_map.get(provider, "") or ""

    @classmethod
    def _resolve_model_names(cls, provider: str, settings: Settings) -> tuple[str, str]:
        if provider == "ollama":
            return (
                settings.analysis_ollama_vision_model_name,
                settings.analysis_ollama_text_model_name,
            )
        return (
            settings.analysis_openai_vision_model_name,
            settings.analysis_openai_text_model_name,
        )

    @classmethod
    def _resolve_premium_model_name(cls, provider: str, settings: Settings) -> str | None:
        if provider == "ollama":
            return None
        return settings.analysis_openai_premium_text_model_name
