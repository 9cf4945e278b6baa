import base64

import httpx
import openai

from enhancer.imagegen.client_base import BaseImageClient
from enhancer.imagegen.exceptions import ImageGenerationError


class OpenAIImageAdapter(BaseImageClient):
    """Image client built on the OpenAI images API."""

    def __init__(self, *, api_key: str, timeout_seconds: int) -> None:
        self._client = openai.OpenAI(api_key=api_key, timeout=timeout_seconds)

    def generate_image(
        self,
        *,
        model: str,
        prompt: str,
        size: str,
        quality: str,
    ) -> bytes:
        options: dict[str, str] = {}
        if model.startswith("dall-e"):
            options["response_format"] = "b64_json"
        if model == "dall-e-3":
            options["quality"] = quality
        try:
            response = self._client.images.generate(
                model=model,
                prompt=prompt,
                size=size,  # type: ignore[arg-type]
                n=1,
                **options,  # type: ignore[arg-type]
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ImageGenerationError(f"Image provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise ImageGenerationError(f"Image provider API error: {exc}") from exc

        if not response.data:
            raise ImageGenerationError("Image provider returned no images")
        encoded = response.data[0].b64_json
        if not encoded:
            raise ImageGenerationError("Image provider returned an empty image")
        return base64.b64decode(encoded)
