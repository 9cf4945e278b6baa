from enhancer.config.settings import Settings
from enhancer.imagegen.example_image_adapter import ExampleImageAdapter
from enhancer.imagegen.generator import ImageGenerator
from enhancer.imagegen.openai_image_adapter import OpenAIImageAdapter


class ImageGeneratorFactory:
    """Creates the configured image generator."""

    PROVIDERS = ("example", "openai")

    @classmethod
    def create(cls, settings: Settings) -> ImageGenerator:
        provider = settings.image_provider.lower()
        if provider == "example":
            return ImageGenerator(ExampleImageAdapter())
        if provider == "openai":
            return ImageGenerator(
                OpenAIImageAdapter(
                    api_key=settings.image_openai_api_key,
                    timeout_seconds=settings.image_openai_timeout_seconds,
                )
            )
        raise ValueError(
            f"Unknown image provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )
