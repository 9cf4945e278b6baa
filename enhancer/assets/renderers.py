"""Deterministic procedural rendering of backgrounds, decorations and graphics.

Every style enum has exactly one handler; the tables are checked at import
so adding a variant without a renderer fails loudly. Output is always RGBA.
"""

import math
import random
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import numpy as np
from PIL import Image, ImageDraw, ImageFilter

from enhancer.engines.color import hex_to_rgb, is_valid_hex
from enhancer.pipeline.models import (
    BackgroundRequirement,
    BackgroundStyle,
    ColorEnhancements,
    DecorationType,
    DecorativeRequirement,
    GraphicRequirement,
    GraphicType,
)

BACKGROUND_WIDTH = 1792
BACKGROUND_HEIGHT = 1024
DECORATION_SIZES: dict[DecorationType, tuple[int, int]] = {
    DecorationType.ICON: (100, 100),
    DecorationType.SHAPE: (100, 100),
    DecorationType.BORDER: (200, 10),
    DecorationType.DIVIDER: (300, 2),
}
GRAPHIC_CAPTIONS: dict[GraphicType, str] = {
    GraphicType.CHART: "Data visualization",
    GraphicType.DIAGRAM: "Process diagram",
    GraphicType.ILLUSTRATION: "Illustration",
    GraphicType.INFOGRAPHIC: "Key information",
}
_DEFAULT_CHART_VALUES = (3.0, 5.0, 2.0, 6.0, 4.0)

RGBA = tuple[int, int, int, int]


@dataclass(frozen=True)
class AssetPalette:
    primary: str = "#2563EB"
    secondary: str = "#64748B"
    accent: str = "#F59E0B"
    background: str = "#FFFFFF"
    text: str = "#1F2937"

    @classmethod
    def from_plan(cls, colors: ColorEnhancements | None) -> "AssetPalette":
        if colors is None:
            return cls()
        return cls(
            primary=colors.primary_color,
            secondary=colors.secondary_color,
            accent=colors.accent_color,
            background=colors.background_color,
            text=colors.text_color,
        )


def _rgba(color: str, alpha: float = 1.0) -> RGBA:
    r, g, b = hex_to_rgb(color)
    return r, g, b, int(round(255 * min(1.0, max(0.0, alpha))))


def _requirement_colors(requirement: BackgroundRequirement, *fallback: str) -> list[str]:
    colors = [c for c in requirement.colors if is_valid_hex(c)]
    return colors or list(fallback)


# Backgrounds

BackgroundRenderer = Callable[[BackgroundRequirement, AssetPalette, random.Random], Image.Image]


def _gradient_background(req: BackgroundRequirement, palette: AssetPalette, rng: random.Random) -> Image.Image:
    _ = rng
    colors = _requirement_colors(req, palette.primary, palette.secondary)
    start = np.array(hex_to_rgb(colors[0]), dtype=np.float64)
    end = np.array(hex_to_rgb(colors[1] if len(colors) > 1 else colors[0]), dtype=np.float64)
    xs = np.linspace(0.0, 1.0, BACKGROUND_WIDTH)
    ys = np.linspace(0.0, 1.0, BACKGROUND_HEIGHT)
    t = (xs[np.newaxis, :] + ys[:, np.newaxis]) / 2
    rgb = start + (end - start) * t[..., np.newaxis]
    alpha = np.full(t.shape + (1,), 255 * req.opacity)
    pixels = np.concatenate([rgb, alpha], axis=-1).round().astype(np.uint8)
    return Image.fromarray(pixels)


def _pattern_background(req: BackgroundRequirement, palette: AssetPalette, rng: random.Random) -> Image.Image:
    _ = rng
    color = _rgba(_requirement_colors(req, palette.accent)[0], req.opacity)
    image = Image.new("RGBA", (BACKGROUND_WIDTH, BACKGROUND_HEIGHT), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    for x in range(20, BACKGROUND_WIDTH, 40):
        for y in range(20, BACKGROUND_HEIGHT, 40):
            draw.ellipse((x - 3, y - 3, x + 3, y + 3), fill=color)
    return image


def _image_background(req: BackgroundRequirement, palette: AssetPalette, rng: random.Random) -> Image.Image:
    colors = _requirement_colors(req, palette.primary, palette.secondary, palette.accent)
    image = Image.new("RGBA", (BACKGROUND_WIDTH, BACKGROUND_HEIGHT), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    for index in range(12):
        radius = rng.randint(120, 360)
        cx = rng.randint(0, BACKGROUND_WIDTH)
        cy = rng.randint(0, BACKGROUND_HEIGHT)
        draw.ellipse(
            (cx - radius, cy - radius, cx + radius, cy + radius),
            fill=_rgba(colors[index % len(colors)], req.opacity),
        )
    return image.filter(ImageFilter.GaussianBlur(60))


def _solid_background(req: BackgroundRequirement, palette: AssetPalette, rng: random.Random) -> Image.Image:
    _ = rng
    color = _rgba(_requirement_colors(req, palette.background)[0], req.opacity)
    return Image.new("RGBA", (BACKGROUND_WIDTH, BACKGROUND_HEIGHT), color)


BACKGROUND_RENDERERS: dict[BackgroundStyle, BackgroundRenderer] = {
    BackgroundStyle.GRADIENT: _gradient_background,
    BackgroundStyle.PATTERN: _pattern_background,
    BackgroundStyle.IMAGE: _image_background,
    BackgroundStyle.SOLID: _solid_background,
}


# Decorations

DecorationRenderer = Callable[[DecorativeRequirement, AssetPalette], Image.Image]


def _star(cx: float, cy: float, outer: float, inner: float) -> list[tuple[float, float]]:
    points = []
    for i in range(10):
        radius = outer if i % 2 == 0 else inner
        angle = -math.pi / 2 + i * math.pi / 5
        points.append((cx + radius * math.cos(angle), cy + radius * math.sin(angle)))
    return points


def _icon(req: DecorativeRequirement, palette: AssetPalette) -> Image.Image:
    _ = req
    width, height = DECORATION_SIZES[DecorationType.ICON]
    image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    ImageDraw.Draw(image).polygon(_star(width / 2, height / 2 + 4, 38, 16), fill=_rgba(palette.accent))
    return image


def _shape(req: DecorativeRequirement, palette: AssetPalette) -> Image.Image:
    width, height = DECORATION_SIZES[DecorationType.SHAPE]
    image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    fill = _rgba(palette.primary, 0.2)
    if req.style == "geometric":
        draw.regular_polygon((width / 2, height / 2, 40), n_sides=6, fill=fill)
    else:
        draw.ellipse((10, 10, width - 10, height - 10), fill=fill)
    return image


def _border(req: DecorativeRequirement, palette: AssetPalette) -> Image.Image:
    _ = req
    width, height = DECORATION_SIZES[DecorationType.BORDER]
    image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    draw.rectangle((0, 4, width, 5), fill=_rgba(palette.primary))
    draw.ellipse((width / 2 - 5, 0, width / 2 + 5, 10), fill=_rgba(palette.accent))
    return image


def _divider(req: DecorativeRequirement, palette: AssetPalette) -> Image.Image:
    _ = req
    width, height = DECORATION_SIZES[DecorationType.DIVIDER]
    return Image.new("RGBA", (width, height), _rgba(palette.primary, 0.3))


DECORATION_RENDERERS: dict[DecorationType, DecorationRenderer] = {
    DecorationType.ICON: _icon,
    DecorationType.SHAPE: _shape,
    DecorationType.BORDER: _border,
    DecorationType.DIVIDER: _divider,
}


# Educational graphics

GraphicRenderer = Callable[[GraphicRequirement, AssetPalette], Image.Image]


def _canvas(req: GraphicRequirement) -> tuple[Image.Image, ImageDraw.ImageDraw, int, int]:
    width, height = max(40, req.width), max(40, req.height)
    image = Image.new("RGBA", (width, height), (255, 255, 255, 0))
    return image, ImageDraw.Draw(image), width, height


def _chart_values(req: GraphicRequirement) -> tuple[float, ...]:
    raw = (req.data or {}).get("values")
    if isinstance(raw, list):
        values = tuple(
            float(v) for v in raw if isinstance(v, (int, float)) and not isinstance(v, bool) and v >= 0
        )
        if values and max(values) > 0:
            return values
    return _DEFAULT_CHART_VALUES


def _chart(req: GraphicRequirement, palette: AssetPalette) -> Image.Image:
    image, draw, width, height = _canvas(req)
    values = _chart_values(req)
    colors = (palette.primary, palette.secondary, palette.accent)
    pad = width * 0.1
    slot = (width - 2 * pad) / len(values)
    top = max(values)
    baseline = height - pad
    for index, value in enumerate(values):
        bar_height = (height - 2 * pad) * value / top
        x0 = pad + index * slot + slot * 0.15
        draw.rectangle(
            (x0, baseline - bar_height, x0 + slot * 0.7, baseline),
            fill=_rgba(colors[index % len(colors)]),
        )
    draw.line((pad, baseline, width - pad, baseline), fill=_rgba(palette.text), width=2)
    return image


def _diagram(req: GraphicRequirement, palette: AssetPalette) -> Image.Image:
    image, draw, width, height = _canvas(req)
    steps = 3
    box_w = width / (steps * 2)
    box_h = height / 3
    y0 = (height - box_h) / 2
    for index in range(steps):
        x0 = box_w / 2 + index * box_w * 2
        draw.rounded_rectangle(
            (x0, y0, x0 + box_w, y0 + box_h),
            radius=8,
            outline=_rgba(palette.primary),
            fill=_rgba(palette.primary, 0.15),
            width=3,
        )
        if index < steps - 1:
            ax0, ax1 = x0 + box_w + 6, x0 + box_w * 2 - 6
            ay = y0 + box_h / 2
            draw.line((ax0, ay, ax1, ay), fill=_rgba(palette.accent), width=3)
            draw.polygon([(ax1, ay), (ax1 - 10, ay - 6), (ax1 - 10, ay + 6)], fill=_rgba(palette.accent))
    return image


def _illustration(req: GraphicRequirement, palette: AssetPalette) -> Image.Image:
    image, draw, width, height = _canvas(req)
    draw.ellipse(
        (width * 0.65, height * 0.1, width * 0.85, height * 0.1 + width * 0.2),
        fill=_rgba(palette.accent, 0.9),
    )
    draw.polygon(
        [(0, height), (width * 0.35, height * 0.45), (width * 0.7, height)],
        fill=_rgba(palette.primary, 0.8),
    )
    draw.polygon(
        [(width * 0.35, height), (width * 0.7, height * 0.55), (width, height)],
        fill=_rgba(palette.secondary, 0.8),
    )
    return image


def _infographic(req: GraphicRequirement, palette: AssetPalette) -> Image.Image:
    image, draw, width, height = _canvas(req)
    colors = (palette.primary, palette.secondary, palette.accent)
    radius = min(width / 8, height / 4)
    for index, color in enumerate(colors):
        cx = width * (index + 1) / 4
        cy = height * 0.4
        draw.ellipse((cx - radius, cy - radius, cx + radius, cy + radius), fill=_rgba(color))
        label = str(index + 1)
        left, top, right, bottom = draw.textbbox((0, 0), label)
        draw.text((cx - (right - left) / 2, cy - (bottom - top) / 2), label, fill=_rgba("#FFFFFF"))
        bar_w = radius * (0.8 + 0.4 * index)
        draw.rectangle(
            (cx - bar_w, height * 0.75, cx + bar_w, height * 0.75 + 6),
            fill=_rgba(color, 0.6),
        )
    return image


GRAPHIC_RENDERERS: dict[GraphicType, GraphicRenderer] = {
    GraphicType.CHART: _chart,
    GraphicType.DIAGRAM: _diagram,
    GraphicType.ILLUSTRATION: _illustration,
    GraphicType.INFOGRAPHIC: _infographic,
}


def _ensure_exhaustive(enum_cls: type[Enum], table: dict) -> None:
    missing = set(enum_cls) - set(table)
    if missing:
        raise RuntimeError(
            f"{enum_cls.__name__} variants without renderer: {sorted(m.value for m in missing)}"
        )


_ensure_exhaustive(BackgroundStyle, BACKGROUND_RENDERERS)
_ensure_exhaustive(DecorationType, DECORATION_RENDERERS)
_ensure_exhaustive(GraphicType, GRAPHIC_RENDERERS)
_ensure_exhaustive(DecorationType, DECORATION_SIZES)
_ensure_exhaustive(GraphicType, GRAPHIC_CAPTIONS)


def render_background(requirement: BackgroundRequirement, palette: AssetPalette, seed: str) -> Image.Image:
    return BACKGROUND_RENDERERS[requirement.style](requirement, palette, random.Random(seed))


def render_decoration(requirement: DecorativeRequirement, palette: AssetPalette) -> Image.Image:
    return DECORATION_RENDERERS[requirement.type](requirement, palette)


def render_graphic(requirement: GraphicRequirement, palette: AssetPalette) -> Image.Image:
    return GRAPHIC_RENDERERS[requirement.type](requirement, palette)
