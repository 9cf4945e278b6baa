from abc import ABC, abstractmethod


class BaseImageClient(ABC):
    """Contract for provider-specific image generation clients."""

    @abstractmethod
    def generate_image(
        self,
        *,
        model: str,
        prompt: str,
        size: str,
        quality: str,
    ) -> bytes:
        """Return the generated image as encoded bytes (PNG or JPEG)."""
