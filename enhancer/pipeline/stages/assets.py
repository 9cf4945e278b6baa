"""Asset generation: render, upload and describe the planned assets."""

import itertools
import math
import random
import time
from collections.abc import Callable, Iterator

from PIL import Image, ImageOps

from enhancer.assets.renderers import (
    BACKGROUND_HEIGHT,
    BACKGROUND_WIDTH,
    DECORATION_SIZES,
    GRAPHIC_CAPTIONS,
    AssetPalette,
    render_background,
    render_decoration,
    render_graphic,
)
from enhancer.documents.exceptions import DocumentReadError
from enhancer.documents.images import open_image, to_png
from enhancer.imagegen.exceptions import ImageGenerationError
from enhancer.imagegen.generator import ImageGenerator, StyleOptions
from enhancer.logging.logger import Log
from enhancer.pipeline.cancellation import CancellationToken, check_cancelled
from enhancer.pipeline.exceptions import EnhancementError
from enhancer.pipeline.models import (
    BackgroundRequirement,
    BackgroundStyle,
    DecorationPlacement,
    DecorativeRequirement,
    EnhancementPlan,
    GeneratedAssets,
    GeneratedBackground,
    GeneratedElement,
    GeneratedGraphic,
    GraphicRequirement,
    GraphicType,
    PipelineContext,
    SubscriptionTier,
)
from enhancer.storage.base import BaseStorage
from enhancer.storage.exceptions import StorageError

PNG = "image/png"
EDGE_INSET = 50
PLACEMENT_INSET = 100

GRAPHIC_PROMPTS: dict[GraphicType, str] = {
    GraphicType.CHART: "Create a modern, clean {style} chart visualization. {colors}. Simple and professional design.",
    GraphicType.DIAGRAM: "Create a {style} diagram illustration. {colors}. Clear, minimalist design with simple shapes.",
    GraphicType.INFOGRAPHIC: "Create a {style} infographic element. {colors}. Clean, modern design with icons and simple graphics.",
    GraphicType.ILLUSTRATION: "Create a {style} illustration. {colors}. Professional, minimalist style suitable for documents.",
}


def background_prompt(requirement: BackgroundRequirement) -> str:
    return (
        f"Create a {requirement.theme} background image with subtle {requirement.style.value} elements. "
        f"Use a color palette based on {', '.join(requirement.colors)}. "
        "The image should be abstract, professional, and suitable as a document background. "
        "No text or specific objects, just aesthetic patterns or textures."
    )


def graphic_prompt(requirement: GraphicRequirement, palette: AssetPalette) -> str:
    colors = f"Use these colors: primary {palette.primary}, accent {palette.accent}"
    return GRAPHIC_PROMPTS[requirement.type].format(style=requirement.style, colors=colors)


def element_position(
    placement: DecorationPlacement,
    index: int,
    total: int,
    rng: random.Random,
    canvas: tuple[int, int] = (BACKGROUND_WIDTH, BACKGROUND_HEIGHT),
) -> tuple[float, float]:
    """Anchor point of the `index`-th of `total` elements on the background canvas."""
    width, height = canvas
    if placement is DecorationPlacement.CORNERS:
        corners = (
            (EDGE_INSET, EDGE_INSET),
            (width - EDGE_INSET, EDGE_INSET),
            (EDGE_INSET, height - EDGE_INSET),
            (width - EDGE_INSET, height - EDGE_INSET),
        )
        x, y = corners[index % 4]
        return float(x), float(y)
    if placement is DecorationPlacement.EDGES:
        if total == 1:
            return width / 2, float(EDGE_INSET)
        span = width - 2 * PLACEMENT_INSET
        y = EDGE_INSET if index % 2 == 0 else height - EDGE_INSET
        return PLACEMENT_INSET + span / (total - 1) * index, float(y)
    if placement is DecorationPlacement.GRID:
        columns = math.ceil(math.sqrt(total))
        rows = math.ceil(total / columns)
        column, row = index % columns, index // columns
        return (
            PLACEMENT_INSET + (width - 2 * PLACEMENT_INSET) / columns * column,
            PLACEMENT_INSET + (height - 2 * PLACEMENT_INSET) / rows * row,
        )
    return (
        PLACEMENT_INSET + rng.random() * (width - 2 * PLACEMENT_INSET),
        PLACEMENT_INSET + rng.random() * (height - 2 * PLACEMENT_INSET),
    )


def _fit(image_bytes: bytes, width: int, height: int) -> Image.Image:
    """Contain a generated image inside a transparent canvas of the given size."""
    fitted = ImageOps.contain(open_image(image_bytes).convert("RGBA"), (width, height))
    canvas = Image.new("RGBA", (width, height), (255, 255, 255, 0))
    canvas.paste(fitted, ((width - fitted.width) // 2, (height - fitted.height) // 2))
    return canvas


class AssetGenerationStage:
    """Produces backgrounds, decorative elements and educational graphics.

    Everything is rendered procedurally from the planned colors. Premium runs
    ask the image generator for photographic backgrounds and for graphics,
    and fall back to the procedural renderer when that fails. An asset whose
    upload fails is left out; the others are still returned.
    """

    def __init__(
        self,
        *,
        storage: BaseStorage,
        image_generator: ImageGenerator | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._storage = storage
        self._image_generator = image_generator
        self._clock = clock

    def run(
        self,
        context: PipelineContext,
        plan: EnhancementPlan,
        cancel_token: CancellationToken | None = None,
    ) -> GeneratedAssets:
        check_cancelled(cancel_token)
        requirements = plan.asset_requirements
        if requirements is None or requirements.empty:
            Log.info(f"No assets planned for document {context.document_id}")
            return GeneratedAssets()

        palette = AssetPalette.from_plan(plan.color_enhancements)
        # one sequence per run keeps keys unique within the same millisecond
        sequence = itertools.count(1)
        backgrounds = self._backgrounds(context, requirements.backgrounds, palette, sequence, cancel_token)
        elements = self._elements(context, requirements.decorative_elements, palette, sequence, cancel_token)
        graphics: tuple[GeneratedGraphic, ...] = ()
        if context.subscription_tier.at_least(SubscriptionTier.PRO):
            graphics = self._graphics(
                context, requirements.educational_graphics, palette, sequence, cancel_token
            )

        storage_used = (
            sum(b.file_size for b in backgrounds)
            + sum(e.file_size for e in elements)
            + sum(g.file_size for g in graphics)
        )
        assets = GeneratedAssets(
            backgrounds=backgrounds,
            decorative_elements=elements,
            educational_graphics=graphics,
            storage_used=storage_used,
        )
        Log.info(
            f"Generated {assets.total_assets} assets for document {context.document_id} "
            f"({storage_used} bytes)"
        )
        return assets

    def _backgrounds(
        self,
        context: PipelineContext,
        requirements: tuple[BackgroundRequirement, ...],
        palette: AssetPalette,
        sequence: Iterator[int],
        cancel_token: CancellationToken | None,
    ) -> tuple[GeneratedBackground, ...]:
        generated: list[GeneratedBackground] = []
        for index, requirement in enumerate(requirements):
            check_cancelled(cancel_token)
            image, style, source = self._background_image(
                context, requirement, palette, index, cancel_token
            )
            data = to_png(image)
            url = self._upload(data, self._key(context, "bg", sequence))
            if url is None:
                continue
            generated.append(
                GeneratedBackground(
                    id=f"bg-{len(generated) + 1}",
                    url=url,
                    style=style,
                    width=image.width,
                    height=image.height,
                    file_size=len(data),
                    metadata={"theme": requirement.theme, "opacity": requirement.opacity, "source": source},
                )
            )
        return tuple(generated)

    def _background_image(
        self,
        context: PipelineContext,
        requirement: BackgroundRequirement,
        palette: AssetPalette,
        index: int,
        cancel_token: CancellationToken | None,
    ) -> tuple[Image.Image, BackgroundStyle, str]:
        seed = f"{context.document_id}-{index}"
        if requirement.style is not BackgroundStyle.IMAGE:
            return render_background(requirement, palette, seed), requirement.style, "procedural"

        if self._uses_ai(context):
            generated = self._generate(
                background_prompt(requirement),
                context,
                BACKGROUND_WIDTH,
                BACKGROUND_HEIGHT,
                cancel_token,
            )
            if generated is not None:
                return generated, BackgroundStyle.IMAGE, "ai"

        # without AI imagery an image background degrades to a pattern
        fallback = BackgroundRequirement(
            style=BackgroundStyle.PATTERN,
            theme=requirement.theme,
            colors=requirement.colors,
            opacity=requirement.opacity,
        )
        return render_background(fallback, palette, seed), BackgroundStyle.PATTERN, "procedural"

    def _elements(
        self,
        context: PipelineContext,
        requirements: tuple[DecorativeRequirement, ...],
        palette: AssetPalette,
        sequence: Iterator[int],
        cancel_token: CancellationToken | None,
    ) -> tuple[GeneratedElement, ...]:
        generated: list[GeneratedElement] = []
        counter = 0
        for requirement in requirements:
            image = render_decoration(requirement, palette)
            data = to_png(image)
            width, height = DECORATION_SIZES[requirement.type]
            for i in range(requirement.quantity):
                check_cancelled(cancel_token)
                rng = random.Random(f"{context.document_id}-{counter}")
                counter += 1
                x, y = element_position(requirement.placement, i, requirement.quantity, rng)
                rotation = rng.random() * 360 if requirement.placement is DecorationPlacement.RANDOM else 0.0
                url = self._upload(data, self._key(context, "elem", sequence))
                if url is None:
                    continue
                generated.append(
                    GeneratedElement(
                        id=f"elem-{len(generated) + 1}",
                        url=url,
                        type=requirement.type,
                        x=x,
                        y=y,
                        width=width,
                        height=height,
                        file_size=len(data),
                        rotation=rotation,
                    )
                )
        return tuple(generated)

    def _graphics(
        self,
        context: PipelineContext,
        requirements: tuple[GraphicRequirement, ...],
        palette: AssetPalette,
        sequence: Iterator[int],
        cancel_token: CancellationToken | None,
    ) -> tuple[GeneratedGraphic, ...]:
        generated: list[GeneratedGraphic] = []
        for requirement in requirements:
            check_cancelled(cancel_token)
            image = None
            if self._uses_ai(context):
                image = self._generate(
                    graphic_prompt(requirement, palette),
                    context,
                    requirement.width,
                    requirement.height,
                    cancel_token,
                )
            if image is None:
                image = render_graphic(requirement, palette)
            data = to_png(image)
            url = self._upload(data, self._key(context, "graphic", sequence))
            if url is None:
                continue
            generated.append(
                GeneratedGraphic(
                    id=f"graphic-{len(generated) + 1}",
                    url=url,
                    type=requirement.type,
                    width=requirement.width,
                    height=requirement.height,
                    file_size=len(data),
                    caption=GRAPHIC_CAPTIONS[requirement.type],
                    embed_data=requirement.data,
                )
            )
        return tuple(generated)

    def _uses_ai(self, context: PipelineContext) -> bool:
        return self._image_generator is not None and context.subscription_tier is SubscriptionTier.PREMIUM

    def _generate(
        self,
        prompt: str,
        context: PipelineContext,
        width: int,
        height: int,
        cancel_token: CancellationToken | None,
    ) -> Image.Image | None:
        if self._image_generator is None:
            raise EnhancementError("Image generation requested without an image generator")
        options = StyleOptions(tier=context.subscription_tier, width=width, height=height)
        try:
            result = self._image_generator.generate(prompt, options, cancel_token)
            return _fit(result.image_bytes, width, height)
        except (ImageGenerationError, DocumentReadError) as exc:
            Log.warning(f"AI image generation failed, using procedural asset: {exc}")
            return None

    def _upload(self, data: bytes, key: str) -> str | None:
        try:
            return self._storage.upload(data, key, PNG)
        except StorageError as exc:
            Log.warning(f"Skipping asset {key}: upload failed: {exc}")
            return None

    def _key(self, context: PipelineContext, prefix: str, sequence: Iterator[int]) -> str:
        millis = int(self._clock() * 1000)
        return f"assets/{context.user_id}/{context.document_id}/{prefix}-{millis}-{next(sequence)}.png"
