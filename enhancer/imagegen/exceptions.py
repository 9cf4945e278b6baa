from enhancer.pipeline.exceptions import UpstreamError


class ImageGenerationError(UpstreamError):
    """Raised when an image cannot be generated or the model is not allowed."""

    code = "image_generation_error"
