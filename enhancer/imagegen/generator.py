from dataclasses import dataclass

from enhancer.imagegen.client_base import BaseImageClient
from enhancer.imagegen.policy import MODEL_COSTS, closest_size, resolve_model
from enhancer.logging.logger import Log
from enhancer.pipeline.cancellation import CancellationToken, check_cancelled
from enhancer.pipeline.models import SubscriptionTier


@dataclass(frozen=True)
class StyleOptions:
    tier: SubscriptionTier
    width: int = 1024
    height: int = 1024
    quality: str = "standard"
    model: str | None = None


@dataclass(frozen=True)
class GenerationResult:
    image_bytes: bytes
    model: str
    cost: float
    size: str


class ImageGenerator:
    """Generates images while enforcing which models a tier may request."""

    def __init__(self, client: BaseImageClient) -> None:
        self._client = client

    def generate(
        self,
        prompt: str,
        style_options: StyleOptions,
        cancel_token: CancellationToken | None = None,
    ) -> GenerationResult:
        """Generate one image.

        Raises:
            ImageGenerationError: if the tier may not use the model or the
                provider call fails.
            CancellationRequested: if the run is cancelled around the call.
        """
        model = resolve_model(style_options.tier, style_options.model)
        size = closest_size(model, style_options.width, style_options.height)
        check_cancelled(cancel_token)
        image_bytes = self._client.generate_image(
            model=model,
            prompt=prompt,
            size=size,
            quality=style_options.quality,
        )
        check_cancelled(cancel_token)
        cost = MODEL_COSTS.get(model, 0.0)
        Log.info(f"Generated {size} image with {model} (cost ${cost:.2f})")
        return GenerationResult(image_bytes=image_bytes, model=model, cost=cost, size=size)
