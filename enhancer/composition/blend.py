"""Per-channel blend math on 0..255 values.

Every function accepts scalars, RGB triples or whole HxWx3 numpy arrays,
so the same code blends swatches and renders layers.
"""

from collections.abc import Callable
from dataclasses import dataclass

import numpy as np

from enhancer.composition.models import BlendMode, LayerType
from enhancer.engines.color import hex_to_rgb, relative_luminance, rgb_to_hex

BlendFunction = Callable[[np.ndarray, np.ndarray], np.ndarray]


def _normal(base: np.ndarray, overlay: np.ndarray) -> np.ndarray:
    return overlay


def _multiply(base: np.ndarray, overlay: np.ndarray) -> np.ndarray:
    return base * overlay / 255.0


def _screen(base: np.ndarray, overlay: np.ndarray) -> np.ndarray:
    return 255.0 - (255.0 - base) * (255.0 - overlay) / 255.0


def _overlay(base: np.ndarray, overlay: np.ndarray) -> np.ndarray:
    return np.where(
        base < 128,
        2.0 * base * overlay / 255.0,
        255.0 - 2.0 * (255.0 - base) * (255.0 - overlay) / 255.0,
    )


def _soft_light(base: np.ndarray, overlay: np.ndarray) -> np.ndarray:
    b = base / 255.0
    o = overlay / 255.0
    d = np.where(b <= 0.25, ((16.0 * b - 12.0) * b + 4.0) * b, np.sqrt(b))
    result = np.where(o <= 0.5, b - (1.0 - 2.0 * o) * b * (1.0 - b), b + (2.0 * o - 1.0) * (d - b))
    return result * 255.0


def _hard_light(base: np.ndarray, overlay: np.ndarray) -> np.ndarray:
    return _overlay(overlay, base)


def _color_dodge(base: np.ndarray, overlay: np.ndarray) -> np.ndarray:
    with np.errstate(divide="ignore", invalid="ignore"):
        dodged = np.minimum(255.0, base * 255.0 / (255.0 - overlay))
    return np.where(overlay >= 255, 255.0, dodged)


def _color_burn(base: np.ndarray, overlay: np.ndarray) -> np.ndarray:
    with np.errstate(divide="ignore", invalid="ignore"):
        burned = np.maximum(0.0, 255.0 - (255.0 - base) * 255.0 / overlay)
    return np.where(overlay <= 0, 0.0, burned)


def _darken(base: np.ndarray, overlay: np.ndarray) -> np.ndarray:
    return np.minimum(base, overlay)


def _lighten(base: np.ndarray, overlay: np.ndarray) -> np.ndarray:
    return np.maximum(base, overlay)


def _difference(base: np.ndarray, overlay: np.ndarray) -> np.ndarray:
    return np.abs(base - overlay)


def _exclusion(base: np.ndarray, overlay: np.ndarray) -> np.ndarray:
    return base + overlay - 2.0 * base * overlay / 255.0


BLEND_FUNCTIONS: dict[BlendMode, BlendFunction] = {
    BlendMode.NORMAL: _normal,
    BlendMode.MULTIPLY: _multiply,
    BlendMode.SCREEN: _screen,
    BlendMode.OVERLAY: _overlay,
    BlendMode.SOFT_LIGHT: _soft_light,
    BlendMode.HARD_LIGHT: _hard_light,
    BlendMode.COLOR_DODGE: _color_dodge,
    BlendMode.COLOR_BURN: _color_burn,
    BlendMode.DARKEN: _darken,
    BlendMode.LIGHTEN: _lighten,
    BlendMode.DIFFERENCE: _difference,
    BlendMode.EXCLUSION: _exclusion,
}

_missing = set(BlendMode) - set(BLEND_FUNCTIONS)
if _missing:
    raise RuntimeError(f"Blend modes without implementation: {sorted(m.value for m in _missing)}")


def blend_channels(
    base: np.ndarray,
    overlay: np.ndarray,
    mode: BlendMode,
    opacity: float = 1.0,
) -> np.ndarray:
    """Blend, then mix linearly back toward the base by `1 - opacity`."""
    base = np.asarray(base, dtype=np.float64)
    overlay = np.asarray(overlay, dtype=np.float64)
    opacity = min(1.0, max(0.0, float(opacity)))
    blended = BLEND_FUNCTIONS[BlendMode(mode)](base, overlay)
    result = base + (blended - base) * opacity
    return np.clip(result, 0.0, 255.0)


def blend(base: str, overlay: str, mode: BlendMode, opacity: float = 1.0) -> str:
    """Blend two hex colors and return the resulting hex color."""
    result = blend_channels(np.array(hex_to_rgb(base)), np.array(hex_to_rgb(overlay)), mode, opacity)
    return rgb_to_hex(*(float(c) for c in result))


@dataclass(frozen=True)
class BlendSuggestion:
    mode: BlendMode
    opacity: float
    reasoning: str


def suggest_blend_mode(layer_type: LayerType, base_color: str, overlay_color: str) -> BlendSuggestion:
    """Default mode and opacity for a layer type given the colors involved."""
    base_luminance = relative_luminance(base_color)
    overlay_luminance = relative_luminance(overlay_color)

    if layer_type is LayerType.BACKGROUND:
        return BlendSuggestion(BlendMode.NORMAL, 0.3, "Subtle background presence")
    if layer_type is LayerType.OVERLAY:
        if base_luminance > 0.5 and overlay_luminance > 0.5:
            return BlendSuggestion(BlendMode.MULTIPLY, 0.2, "Darken light areas for contrast")
        if base_luminance < 0.5 and overlay_luminance < 0.5:
            return BlendSuggestion(BlendMode.SCREEN, 0.2, "Lighten dark areas for visibility")
        return BlendSuggestion(BlendMode.OVERLAY, 0.15, "Balanced enhancement")
    if layer_type is LayerType.DECORATION:
        return BlendSuggestion(BlendMode.SOFT_LIGHT, 0.6, "Decorative elements blend naturally")
    if layer_type is LayerType.TEXT:
        return BlendSuggestion(BlendMode.NORMAL, 1.0, "Text must remain readable")
    if layer_type is LayerType.EFFECT:
        return BlendSuggestion(BlendMode.OVERLAY, 0.3, "Effects enhance without overwhelming")
    return BlendSuggestion(BlendMode.NORMAL, 1.0, "Default blending")
