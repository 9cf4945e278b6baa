"""Final composition: layer the assets over the original and publish the result."""

import time
from collections.abc import Callable, Mapping

import numpy as np
from PIL import Image, ImageDraw, ImageFilter, ImageFont

from enhancer.assets.renderers import BACKGROUND_HEIGHT, BACKGROUND_WIDTH
from enhancer.composition.blend import blend_channels
from enhancer.composition.engine import Composition, CompositionEngine
from enhancer.composition.models import (
    BlendMode,
    CompositionLayer,
    LayerContent,
    LayerGeometry,
    LayerMetadata,
    LayerType,
)
from enhancer.composition.placement import (
    ArrangeItem,
    ArrangeLayout,
    FlowAlignment,
    Margins,
    PlacementAlignment,
    PlacementConstraints,
    PlacementRequest,
    SmartPlacement,
    arrange_objects,
)
from enhancer.documents.base import BasePdfReader
from enhancer.documents.images import encode, open_image, thumbnail
from enhancer.documents.pdf_overlay import PdfOverlay, apply_overlay
from enhancer.engines.color import hex_to_rgb
from enhancer.engines.geometry import Size
from enhancer.logging.logger import Log
from enhancer.pipeline.cancellation import CancellationToken, check_cancelled
from enhancer.pipeline.models import (
    CompositionResult,
    EnhancementPlan,
    FileType,
    GeneratedAssets,
    GeneratedGraphic,
    Improvements,
    InitialAnalysisResult,
    OutputMetadata,
    PipelineContext,
    PipelineStage,
    ProcessingTime,
    QualityScore,
    ScoreChange,
    SubscriptionTier,
)
from enhancer.storage.base import BaseStorage
from enhancer.storage.exceptions import StorageError

WATERMARK_TEXT = "Enhanced with Document Enhancer (free plan)"
TARGET_BALANCE = 0.85
BALANCE_CORRECTION_THRESHOLD = 0.7
VIGNETTE_THRESHOLD = 0.6
THUMBNAIL_DPI = 72
GRAPHIC_SPACING = 60

# disjoint z bands per layer kind; decorations and graphics count up inside theirs
Z_BACKGROUND = 0
Z_ORIGINAL = 1
Z_COLOR_OVERLAY = 2
Z_DECORATION = 100
Z_GRAPHIC = 500
Z_WATERMARK = 999

CONTENT_TYPES: dict[FileType, str] = {
    FileType.PDF: "application/pdf",
    FileType.PNG: "image/png",
    FileType.JPEG: "image/jpeg",
    FileType.WEBP: "image/webp",
}


def improve_score(score: int, estimated_impact: float) -> int:
    return min(100, round(score + (100 - score) * estimated_impact / 100))


def calculate_improvements(scores: QualityScore, estimated_impact: float) -> Improvements:
    def change(before: int) -> ScoreChange:
        return ScoreChange(before=before, after=improve_score(before, estimated_impact))

    return Improvements(
        color=change(scores.color),
        typography=change(scores.typography),
        layout=change(scores.layout),
        visuals=change(scores.visuals),
        overall=change(scores.overall),
    )


def applied_enhancements(
    plan: EnhancementPlan,
    assets: GeneratedAssets | None,
    composition: Composition | None = None,
) -> tuple[str, ...]:
    """Human-readable list of what the run changed."""
    applied: list[str] = []
    if plan.color_enhancements is not None and plan.color_enhancements.adjustments:
        applied.append("Color palette optimization")
    if plan.typography_enhancements is not None and plan.typography_enhancements.heading_font.family != "Arial":
        applied.append("Typography improvements")
    if plan.layout_enhancements is not None and plan.layout_enhancements.whitespace_adjustments:
        applied.append("Layout restructuring")
    if assets is not None:
        if assets.backgrounds:
            applied.append(f"{len(assets.backgrounds)} background(s) added")
        if assets.decorative_elements:
            applied.append(f"{len(assets.decorative_elements)} decorative element(s)")
        if assets.educational_graphics:
            applied.append(f"{len(assets.educational_graphics)} graphic(s) generated")
    if composition is not None and composition.optimizations_applied:
        applied.append("Visual balance optimization")
    return tuple(applied)


# Rendering


def _layer_image(layer: CompositionLayer, size: tuple[int, int]) -> Image.Image | None:
    """RGBA pixels for a layer at its on-canvas size."""
    content = layer.content
    width, height = size
    if content.data is not None:
        image = open_image(content.data).convert("RGBA").resize(size)
    elif content.colors:
        image = _fill(content.colors, size)
    elif content.text:
        image = Image.new("RGBA", size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(image)
        font = ImageFont.load_default(size=16)
        left, top, right, bottom = draw.textbbox((0, 0), content.text, font=font)
        position = ((width - (right - left)) / 2, height - 30 - (bottom - top))
        draw.text(position, content.text, font=font, fill=(102, 102, 102, 128))
    else:
        return None
    if layer.geometry.rotation:
        image = image.rotate(-layer.geometry.rotation, resample=Image.Resampling.BICUBIC)
    return image


def _fill(colors: tuple[str, ...], size: tuple[int, int]) -> Image.Image:
    """Solid fill for one color, diagonal gradient across the first two otherwise."""
    width, height = size
    start = np.array(hex_to_rgb(colors[0]), dtype=np.float64)
    end = np.array(hex_to_rgb(colors[1] if len(colors) > 1 else colors[0]), dtype=np.float64)
    xs = np.linspace(0.0, 1.0, width)[None, :]
    ys = np.linspace(0.0, 1.0, height)[:, None]
    t = ((xs + ys) / 2)[..., None]
    rgb = start + (end - start) * t
    alpha = np.full((height, width, 1), 255.0)
    return Image.fromarray(np.concatenate([rgb, alpha], axis=2).astype(np.uint8), "RGBA")


def _draw(canvas: np.ndarray, layer: CompositionLayer) -> None:
    """Blend one layer into the float RGB canvas in place."""
    g = layer.geometry
    width, height = max(1, round(g.width)), max(1, round(g.height))
    image = _layer_image(layer, (width, height))
    if image is None:
        return
    pixels = np.asarray(image, dtype=np.float64)

    canvas_h, canvas_w = canvas.shape[:2]
    x0, y0 = round(g.x), round(g.y)
    left, top = max(0, x0), max(0, y0)
    right, bottom = min(canvas_w, x0 + width), min(canvas_h, y0 + height)
    if right <= left or bottom <= top:
        return

    region = pixels[top - y0:bottom - y0, left - x0:right - x0]
    base = canvas[top:bottom, left:right]
    blended = blend_channels(base, region[..., :3], g.blend_mode)
    alpha = region[..., 3:4] / 255.0 * min(1.0, max(0.0, g.opacity))
    canvas[top:bottom, left:right] = base + (blended - base) * alpha


def _correct_balance(canvas: np.ndarray, composition: Composition) -> None:
    """Darken toward the edges or the light side when balance stays low."""
    balance = composition.balance
    height, width = canvas.shape[:2]
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)

    if balance.radial < VIGNETTE_THRESHOLD:
        radius = max(width, height) / 2
        distance = np.hypot(xs - width / 2, ys - height / 2) / radius
        alpha = np.clip((distance - 0.7) / 0.3, 0.0, 1.0) * 0.2
        canvas *= (1.0 - alpha)[..., None]

    if balance.horizontal < BALANCE_CORRECTION_THRESHOLD or balance.vertical < BALANCE_CORRECTION_THRESHOLD:
        com_x, com_y = balance.center_of_mass
        start_x = 0.0 if com_x > width / 2 else float(width)
        start_y = 0.0 if com_y > height / 2 else float(height)
        dx, dy = width - 2 * start_x, height - 2 * start_y
        length_sq = dx * dx + dy * dy or 1.0
        t = ((xs - start_x) * dx + (ys - start_y) * dy) / length_sq
        alpha = np.clip(1.0 - 2.0 * t, 0.0, 1.0) * 0.05
        canvas *= (1.0 - alpha)[..., None]


def _graphic_layer(
    graphic: GeneratedGraphic,
    data: bytes,
    x: float,
    y: float,
    width: float,
    height: float,
    z_index: int,
) -> CompositionLayer:
    return CompositionLayer(
        id=f"graphic-{graphic.id}",
        type=LayerType.GRAPHIC,
        geometry=LayerGeometry(x=x, y=y, width=width, height=height, opacity=0.95, z_index=z_index),
        content=LayerContent(data=data),
        metadata=LayerMetadata(0.8, 2.0, f"educational-{graphic.type.value}"),
    )


def render(composition: Composition, size: tuple[int, int]) -> Image.Image:
    """Paint the composed layers in render order and sharpen the result."""
    width, height = size
    canvas = np.full((height, width, 3), 255.0)
    for layer in composition.layers:
        _draw(canvas, layer)
    if composition.balance.overall < BALANCE_CORRECTION_THRESHOLD:
        _correct_balance(canvas, composition)
    image = Image.fromarray(np.clip(canvas, 0, 255).astype(np.uint8), "RGB")
    return image.filter(ImageFilter.UnsharpMask(radius=1, percent=60, threshold=2))


class FinalCompositionStage:
    """Builds the enhanced document, its thumbnail and the improvement report.

    Raster documents are recomposed pixel by pixel. PDFs keep their content
    and only receive an overlay (tint, a few marks and the free-tier
    watermark).
    """

    def __init__(
        self,
        *,
        storage: BaseStorage,
        pdf_reader: BasePdfReader,
        engine: CompositionEngine | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._storage = storage
        self._pdf_reader = pdf_reader
        self._engine = engine or CompositionEngine()
        self._clock = clock

    def run(
        self,
        context: PipelineContext,
        analysis: InitialAnalysisResult,
        plan: EnhancementPlan,
        assets: GeneratedAssets | None,
        stage_durations: Mapping[PipelineStage, int],
        cancel_token: CancellationToken | None = None,
    ) -> CompositionResult:
        started = self._clock()
        check_cancelled(cancel_token)
        original = self._storage.download(context.original_file_url)
        check_cancelled(cancel_token)

        composition: Composition | None = None
        if context.file_type.is_pdf:
            enhanced, preview, metadata = self._compose_pdf(context, original, assets)
        else:
            enhanced, preview, metadata, composition = self._compose_image(
                context, original, plan, assets, cancel_token
            )

        check_cancelled(cancel_token)
        millis = int(self._clock() * 1000)
        prefix = f"enhanced/{context.user_id}/{context.document_id}"
        enhanced_url = self._storage.upload(
            enhanced,
            f"{prefix}/final-{millis}.{context.file_type.value}",
            CONTENT_TYPES[context.file_type],
        )
        thumbnail_url = self._storage.upload(thumbnail(preview), f"{prefix}/thumb-{millis}.png", "image/png")

        composition_ms = int((self._clock() - started) * 1000)
        durations = {
            "analysis": stage_durations.get(PipelineStage.INITIAL_ANALYSIS, 0),
            "planning": stage_durations.get(PipelineStage.ENHANCEMENT_PLANNING, 0),
            "generation": stage_durations.get(PipelineStage.ASSET_GENERATION, 0),
            "composition": composition_ms,
        }
        result = CompositionResult(
            enhanced_file_url=enhanced_url,
            thumbnail_url=thumbnail_url,
            improvements=calculate_improvements(analysis.current_score, plan.strategy.estimated_impact),
            applied_enhancements=applied_enhancements(plan, assets, composition),
            processing_time=ProcessingTime(total=sum(durations.values()), **durations),
            metadata=metadata,
        )
        Log.info(
            f"Composed document {context.document_id}: "
            f"overall {result.improvements.overall.before} -> {result.improvements.overall.after}"
        )
        return result

    def _compose_pdf(
        self,
        context: PipelineContext,
        original: bytes,
        assets: GeneratedAssets | None,
    ) -> tuple[bytes, Image.Image, OutputMetadata]:
        decorations: tuple[tuple[float, float], ...] = ()
        tint = False
        if assets is not None:
            tint = bool(assets.backgrounds)
            decorations = tuple(
                (e.x / BACKGROUND_WIDTH, e.y / BACKGROUND_HEIGHT) for e in assets.decorative_elements
            )
        overlay = PdfOverlay(
            tint_background=tint,
            decorations=decorations,
            watermark=WATERMARK_TEXT if context.subscription_tier is SubscriptionTier.FREE else None,
        )
        enhanced = apply_overlay(original, overlay)
        snapshot = self._pdf_reader.read(enhanced, THUMBNAIL_DPI)
        metadata = OutputMetadata(
            file_size=len(enhanced),
            format="pdf",
            dimensions=Size(snapshot.width, snapshot.height),
            page_count=snapshot.page_count,
        )
        return enhanced, open_image(snapshot.page_png), metadata

    def _compose_image(
        self,
        context: PipelineContext,
        original: bytes,
        plan: EnhancementPlan,
        assets: GeneratedAssets | None,
        cancel_token: CancellationToken | None,
    ) -> tuple[bytes, Image.Image, OutputMetadata, Composition]:
        source = open_image(original)
        size = (source.width, source.height)
        canvas = Size(float(source.width), float(source.height))
        layers = self._build_layers(context, original, canvas, plan, assets, cancel_token)
        composition = self._engine.compose(
            layers,
            canvas,
            optimize_balance=True,
            target_balance=TARGET_BALANCE,
            auto_blend_modes=True,
        )
        image = render(composition, size)
        enhanced = encode(image, context.file_type.value)
        metadata = OutputMetadata(file_size=len(enhanced), format=context.file_type.value, dimensions=canvas)
        return enhanced, image, metadata, composition

    def _build_layers(
        self,
        context: PipelineContext,
        original: bytes,
        canvas: Size,
        plan: EnhancementPlan,
        assets: GeneratedAssets | None,
        cancel_token: CancellationToken | None,
    ) -> list[CompositionLayer]:
        layers: list[CompositionLayer] = []
        full = {"x": 0.0, "y": 0.0, "width": canvas.width, "height": canvas.height}

        if assets is not None and assets.backgrounds:
            data = self._fetch(assets.backgrounds[0].url, cancel_token)
            if data is not None:
                layers.append(
                    CompositionLayer(
                        id="background-main",
                        type=LayerType.BACKGROUND,
                        geometry=LayerGeometry(**full, opacity=0.3, z_index=Z_BACKGROUND),
                        content=LayerContent(data=data),
                        metadata=LayerMetadata(0.3, 0.5, "contextual-background"),
                    )
                )

        layers.append(
            CompositionLayer(
                id="original-image",
                type=LayerType.ORIGINAL,
                geometry=LayerGeometry(**full, z_index=Z_ORIGINAL),
                content=LayerContent(data=original),
                metadata=LayerMetadata(1.0, 10.0, "main-content"),
            )
        )

        colors = plan.color_enhancements
        if colors is not None and colors.adjustments:
            layers.append(
                CompositionLayer(
                    id="color-enhancement",
                    type=LayerType.OVERLAY,
                    geometry=LayerGeometry(
                        **full, opacity=0.1, blend_mode=BlendMode.OVERLAY, z_index=Z_COLOR_OVERLAY
                    ),
                    content=LayerContent(colors=(colors.primary_color, colors.accent_color)),
                    metadata=LayerMetadata(0.5, 0.3, "color-correction"),
                )
            )

        if assets is not None:
            layers.extend(self._decoration_layers(assets, canvas, cancel_token))
            layers.extend(self._graphic_layers(assets, canvas, layers, cancel_token))

        if context.subscription_tier is SubscriptionTier.FREE:
            layers.append(
                CompositionLayer(
                    id="watermark",
                    type=LayerType.TEXT,
                    geometry=LayerGeometry(**full, opacity=0.5, z_index=Z_WATERMARK),
                    content=LayerContent(text=WATERMARK_TEXT),
                    metadata=LayerMetadata(0.1, 0.1, "watermark"),
                )
            )
        return layers

    def _decoration_layers(
        self,
        assets: GeneratedAssets,
        canvas: Size,
        cancel_token: CancellationToken | None,
    ) -> list[CompositionLayer]:
        # element anchors were laid out on the background canvas
        scale_x = canvas.width / BACKGROUND_WIDTH
        scale_y = canvas.height / BACKGROUND_HEIGHT
        layers: list[CompositionLayer] = []
        for element in assets.decorative_elements:
            data = self._fetch(element.url, cancel_token)
            if data is None:
                continue
            layers.append(
                CompositionLayer(
                    id=f"decorative-{element.id}",
                    type=LayerType.DECORATION,
                    geometry=LayerGeometry(
                        x=element.x * scale_x - element.width / 2,
                        y=element.y * scale_y - element.height / 2,
                        width=element.width,
                        height=element.height,
                        rotation=element.rotation,
                        opacity=0.8,
                        blend_mode=BlendMode.SOFT_LIGHT,
                        z_index=Z_DECORATION + len(layers),
                    ),
                    content=LayerContent(data=data),
                    metadata=LayerMetadata(0.4, 0.5, f"decoration-{element.type.value}"),
                )
            )
        return layers

    def _graphic_layers(
        self,
        assets: GeneratedAssets,
        canvas: Size,
        existing: list[CompositionLayer],
        cancel_token: CancellationToken | None,
    ) -> list[CompositionLayer]:
        fetched = []
        for graphic in assets.educational_graphics:
            data = self._fetch(graphic.url, cancel_token)
            if data is not None:
                fetched.append((graphic, data))
        if not fetched:
            return []
        if len(fetched) == 1:
            graphic, data = fetched[0]
            return [self._placed_graphic(graphic, data, canvas, existing)]
        return self._arranged_graphics(fetched, canvas)

    @staticmethod
    def _placed_graphic(
        graphic: GeneratedGraphic,
        data: bytes,
        canvas: Size,
        existing: list[CompositionLayer],
    ) -> CompositionLayer:
        fit = min(1.0, canvas.width / 3 / graphic.width, canvas.height / 3 / graphic.height)
        width, height = graphic.width * fit, graphic.height * fit
        placement = SmartPlacement.find_optimal_placement(
            PlacementRequest(width=width, height=height, kind="educational", importance=0.8),
            canvas,
            [layer for layer in existing if layer.type not in (LayerType.BACKGROUND, LayerType.ORIGINAL)],
            PlacementConstraints(
                margins=Margins.uniform(GRAPHIC_SPACING),
                avoid_overlap=True,
                alignment=PlacementAlignment.RULE_OF_THIRDS,
            ),
        )
        return _graphic_layer(graphic, data, placement.x, placement.y, width, height, Z_GRAPHIC)

    @staticmethod
    def _arranged_graphics(
        fetched: list[tuple[GeneratedGraphic, bytes]],
        canvas: Size,
    ) -> list[CompositionLayer]:
        """Several graphics share a centered row across the lower third of the page."""
        band = Size(canvas.width, canvas.height / 3)
        slot_width = max(1.0, (band.width - GRAPHIC_SPACING * (len(fetched) + 1)) / len(fetched))
        slot_height = max(1.0, band.height - GRAPHIC_SPACING)
        sizes = {}
        for graphic, _data in fetched:
            fit = min(1.0, slot_width / graphic.width, slot_height / graphic.height)
            sizes[graphic.id] = (graphic.width * fit, graphic.height * fit)
        positions = arrange_objects(
            [ArrangeItem(graphic.id, *sizes[graphic.id], importance=0.8) for graphic, _data in fetched],
            band,
            ArrangeLayout.FLOW,
            spacing=GRAPHIC_SPACING,
            alignment=FlowAlignment.CENTER,
        )
        top = canvas.height - band.height - GRAPHIC_SPACING
        layers = []
        for index, (graphic, data) in enumerate(fetched):
            x, y = positions[graphic.id]
            width, height = sizes[graphic.id]
            layers.append(_graphic_layer(graphic, data, x, top + y, width, height, Z_GRAPHIC + index))
        return layers

    def _fetch(self, url: str, cancel_token: CancellationToken | None) -> bytes | None:
        check_cancelled(cancel_token)
        try:
            data = self._storage.download(url)
        except StorageError as exc:
            Log.warning(f"Skipping layer for {url}: {exc}")
            return None
        check_cancelled(cancel_token)
        return data
