"""Example image client adapter.

Renders a flat two-tone placeholder instead of calling a provider.
"""

import io

from PIL import Image, ImageDraw

from enhancer.imagegen.client_base import BaseImageClient


class ExampleImageAdapter(BaseImageClient):
    """Offline image client for local development and tests."""

    FILL = (219, 234, 254)
    ACCENT = (37, 99, 235)

    def generate_image(
        self,
        *,
        model: str,
        prompt: str,
        size: str,
        quality: str,
    ) -> bytes:
        _ = model, prompt, quality
        width, height = (int(part) for part in size.split("x"))
        image = Image.new("RGB", (width, height), self.FILL)
        draw = ImageDraw.Draw(image)
        draw.ellipse(
            (width * 0.3, height * 0.3, width * 0.7, height * 0.7),
            fill=self.ACCENT,
        )
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()
