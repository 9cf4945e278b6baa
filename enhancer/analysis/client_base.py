from abc import ABC, abstractmethod


class BaseAnalysisClient(ABC):
    """Contract for provider-specific vision/text AI clients."""

    @abstractmethod
    def analyze_image(
        self,
        *,
        model: str,
        temperature: float,
        prompt: str,
        image_bytes: bytes,
        schema_name: str,
        json_schema: dict[str, object],
    ) -> str:
        """Return the provider's answer about an image as plain text."""

    @abstractmethod
    def generate(
        self,
        *,
        model: str,
        temperature: float,
        prompt: str,
        schema_name: str,
        json_schema: dict[str, object],
    ) -> str:
        """Return the provider's answer to a text-only prompt as plain text."""
