"""Which image models each subscription tier may request."""

from enhancer.imagegen.exceptions import ImageGenerationError
from enhancer.pipeline.models import SubscriptionTier

TIER_MODELS: dict[SubscriptionTier, tuple[str, ...]] = {
    SubscriptionTier.FREE: (),
    SubscriptionTier.BASIC: (),
    SubscriptionTier.PRO: ("dall-e-2",),
    SubscriptionTier.PREMIUM: ("dall-e-3", "gpt-image-1"),
}

# USD per image at standard quality
MODEL_COSTS: dict[str, float] = {
    "dall-e-2": 0.02,
    "dall-e-3": 0.04,
    "gpt-image-1": 0.04,
    "example": 0.0,
}

MODEL_SIZES: dict[str, tuple[str, ...]] = {
    "dall-e-2": ("256x256", "512x512", "1024x1024"),
    "dall-e-3": ("1024x1024", "1792x1024", "1024x1792"),
    "gpt-image-1": ("1024x1024", "1536x1024", "1024x1536"),
}


def allowed_models(tier: SubscriptionTier) -> tuple[str, ...]:
    return TIER_MODELS[tier]


def resolve_model(tier: SubscriptionTier, requested: str | None = None) -> str:
    """Return the model to use for `tier`, validating an explicit request.

    Raises:
        ImageGenerationError: if the tier may not use image generation or
            the requested model.
    """
    models = allowed_models(tier)
    if not models:
        raise ImageGenerationError(f"Image generation is not available for tier '{tier.value}'")
    if requested is None:
        return models[0]
    if requested not in models:
        raise ImageGenerationError(
            f"Model '{requested}' is not available for tier '{tier.value}'. Choose from: {list(models)}"
        )
    return requested


def closest_size(model: str, width: int, height: int) -> str:
    """Pick the supported size whose aspect ratio is nearest the request.

    Among sizes with the same aspect ratio the largest wins.
    """
    sizes = MODEL_SIZES.get(model, ("1024x1024",))
    target = width / height if height > 0 else 1.0

    def distance(size: str) -> tuple[float, int]:
        w, h = (int(part) for part in size.split("x"))
        return abs(w / h - target), -w * h

    return min(sizes, key=distance)
