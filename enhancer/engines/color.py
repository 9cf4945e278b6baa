"""Color theory helpers: harmonies, contrast repair, palette checks.

All functions are pure. Colors are "#RRGGBB" strings; hue is in degrees,
saturation and lightness are in 0..1. Unparseable input is treated as a
neutral gray rather than raising, and numeric arguments are clamped.
"""

import colorsys
import math
import re
from dataclasses import dataclass, field, replace
from enum import Enum

_HEX_RE = re.compile(r"^#?([0-9A-Fa-f]{6}|[0-9A-Fa-f]{3})$")
_FALLBACK_HEX = "#808080"
_LAB_KN = 18.0
_WHITE = "#FFFFFF"

AA_RATIO = 4.5
AAA_RATIO = 7.0
COLORBLIND_DELTA_E_THRESHOLD = 20.0


class HarmonyType(str, Enum):
    MONOCHROMATIC = "monochromatic"
    ANALOGOUS = "analogous"
    COMPLEMENTARY = "complementary"
    SPLIT_COMPLEMENTARY = "split-complementary"
    TRIADIC = "triadic"
    TETRADIC = "tetradic"
    CHAOTIC = "chaotic"


class HarmonizeMethod(str, Enum):
    HUE_SHIFT = "hue-shift"
    SATURATION_MATCH = "saturation-match"
    LUMINANCE_SPREAD = "luminance-spread"


class ColorBlindness(str, Enum):
    PROTANOPIA = "protanopia"
    DEUTERANOPIA = "deuteranopia"
    TRITANOPIA = "tritanopia"


@dataclass(frozen=True)
class ContrastFix:
    foreground: str
    background: str
    ratio: float
    iterations: int
    target_met: bool


@dataclass(frozen=True)
class SemanticColors:
    success: str = "#10B981"
    warning: str = "#F59E0B"
    error: str = "#EF4444"
    info: str = "#3B82F6"


@dataclass(frozen=True)
class ColorPalette:
    primary: str
    secondary: str
    accent: str
    neutral: tuple[str, ...] = ()
    semantic: SemanticColors = field(default_factory=SemanticColors)


@dataclass(frozen=True)
class ColorBlindReport:
    safe: bool
    issues: tuple[str, ...]
    suggestions: tuple[str, ...]


@dataclass(frozen=True)
class AccessibilityReport:
    palette: ColorPalette
    wcag_compliant: bool
    colorblind_safe: bool
    issues: tuple[str, ...]
    suggestions: tuple[str, ...]


# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def is_valid_hex(color: object) -> bool:
    return isinstance(color, str) and bool(_HEX_RE.match(color.strip()))


def normalize_hex(color: str) -> str:
    """Return "#RRGGBB" upper-case, or the neutral fallback."""
    if not is_valid_hex(color):
        return _FALLBACK_HEX
    digits = color.strip().lstrip("#")
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return f"#{digits.upper()}"


def hex_to_rgb(color: str) -> tuple[int, int, int]:
    digits = normalize_hex(color)[1:]
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def rgb_to_hex(r: float, g: float, b: float) -> str:
    channels = [int(round(_clamp(c, 0, 255))) for c in (r, g, b)]
    return "#{:02X}{:02X}{:02X}".format(*channels)


def hex_to_hsl(color: str) -> tuple[float, float, float]:
    r, g, b = hex_to_rgb(color)
    h, lightness, s = colorsys.rgb_to_hls(r / 255, g / 255, b / 255)
    return h * 360, s, lightness


def hsl_to_hex(hue: float, saturation: float, lightness: float) -> str:
    r, g, b = colorsys.hls_to_rgb(
        (hue % 360) / 360,
        _clamp(lightness, 0.0, 1.0),
        _clamp(saturation, 0.0, 1.0),
    )
    return rgb_to_hex(r * 255, g * 255, b * 255)


def _linearize(channel: float) -> float:
    c = channel / 255
    return c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4


def _delinearize(value: float) -> float:
    v = value * 12.92 if value <= 0.0031308 else 1.055 * value ** (1 / 2.4) - 0.055
    return _clamp(v * 255, 0, 255)


def relative_luminance(color: str) -> float:
    r, g, b = hex_to_rgb(color)
    return 0.2126 * _linearize(r) + 0.7152 * _linearize(g) + 0.0722 * _linearize(b)


def contrast_ratio(first: str, second: str) -> float:
    lum_a = relative_luminance(first)
    lum_b = relative_luminance(second)
    lighter, darker = max(lum_a, lum_b), min(lum_a, lum_b)
    return (lighter + 0.05) / (darker + 0.05)


def _rgb_to_xyz(color: str) -> tuple[float, float, float]:
    r, g, b = (_linearize(c) for c in hex_to_rgb(color))
    x = (0.4124564 * r + 0.3575761 * g + 0.1804375 * b) / 0.95047
    y = 0.2126729 * r + 0.7151522 * g + 0.0721750 * b
    z = (0.0193339 * r + 0.1191920 * g + 0.9503041 * b) / 1.08883
    return x, y, z


def _lab_f(t: float) -> float:
    return t ** (1 / 3) if t > 0.008856452 else t / 0.128418549 + 0.137931034


def _lab_f_inv(t: float) -> float:
    return t ** 3 if t > 0.206896552 else 0.128418549 * (t - 0.137931034)


def hex_to_lab(color: str) -> tuple[float, float, float]:
    x, y, z = _rgb_to_xyz(color)
    fx, fy, fz = _lab_f(x), _lab_f(y), _lab_f(z)
    return 116 * fy - 16, 500 * (fx - fy), 200 * (fy - fz)


def lab_to_hex(lightness: float, a: float, b: float) -> str:
    fy = (lightness + 16) / 116
    fx = fy + a / 500
    fz = fy - b / 200
    x = _lab_f_inv(fx) * 0.95047
    y = _lab_f_inv(fy)
    z = _lab_f_inv(fz) * 1.08883
    r = 3.2404542 * x - 1.5371385 * y - 0.4985314 * z
    g = -0.9692660 * x + 1.8760108 * y + 0.0415560 * z
    bl = 0.0556434 * x - 0.2040259 * y + 1.0572252 * z
    return rgb_to_hex(*(_delinearize(_clamp(c, 0.0, 1.0)) for c in (r, g, bl)))


def delta_e(first: str, second: str) -> float:
    """CIE76 color difference."""
    l1, a1, b1 = hex_to_lab(first)
    l2, a2, b2 = hex_to_lab(second)
    return math.sqrt((l1 - l2) ** 2 + (a1 - a2) ** 2 + (b1 - b2) ** 2)


# ---------------------------------------------------------------------------
# Adjustments
# ---------------------------------------------------------------------------


def darken(color: str, amount: float = 1.0) -> str:
    lightness, a, b = hex_to_lab(color)
    return lab_to_hex(lightness - _LAB_KN * amount, a, b)


def brighten(color: str, amount: float = 1.0) -> str:
    return darken(color, -amount)


def saturate(color: str, amount: float = 1.0) -> str:
    """Shift saturation by `amount` tenths, clamped to 0..1."""
    hue, sat, lightness = hex_to_hsl(color)
    return hsl_to_hex(hue, _clamp(sat + 0.1 * amount, 0.0, 1.0), lightness)


def adjust_saturation(color: str, factor: float) -> str:
    """Scale saturation by `factor` (0.5 halves it, 1.3 boosts it 30%)."""
    hue, sat, lightness = hex_to_hsl(color)
    return hsl_to_hex(hue, _clamp(sat * max(0.0, factor), 0.0, 1.0), lightness)


def with_luminance(color: str, target: float, tolerance: float = 1e-3) -> str:
    """Mix toward white or black until relative luminance matches `target`."""
    target = _clamp(target, 0.0, 1.0)
    current = relative_luminance(color)
    if abs(current - target) <= tolerance:
        return normalize_hex(color)
    r, g, b = hex_to_rgb(color)
    anchor = (255, 255, 255) if target > current else (0, 0, 0)
    low, high = 0.0, 1.0
    candidate = normalize_hex(color)
    for _ in range(30):
        mid = (low + high) / 2
        candidate = rgb_to_hex(
            r + (anchor[0] - r) * mid,
            g + (anchor[1] - g) * mid,
            b + (anchor[2] - b) * mid,
        )
        lum = relative_luminance(candidate)
        if abs(lum - target) <= tolerance:
            break
        moving_up = target > current
        if (lum < target) == moving_up:
            low = mid
        else:
            high = mid
    return candidate


# ---------------------------------------------------------------------------
# Harmony generators
# ---------------------------------------------------------------------------


def generate_complementary(
    base: str,
    preserve_luminance: bool = True,
    variations: int = 0,
) -> list[str]:
    base = normalize_hex(base)
    hue, sat, lightness = hex_to_hsl(base)
    complement = hsl_to_hex(hue + 180, sat, lightness if preserve_luminance else 0.5)
    colors = [base, complement]
    if variations > 0:
        colors += [brighten(base), brighten(complement)]
        if variations > 1:
            colors += [darken(base), darken(complement)]
    return colors


def generate_split_complementary(base: str, angle: float = 30.0) -> list[str]:
    base = normalize_hex(base)
    hue, sat, lightness = hex_to_hsl(base)
    return [
        base,
        hsl_to_hex(hue + 180 - angle, sat * 0.8, lightness),
        hsl_to_hex(hue + 180 + angle, sat * 0.8, lightness),
    ]


def generate_analogous(base: str, count: int = 3, angle: float = 30.0) -> list[str]:
    base = normalize_hex(base)
    hue, sat, lightness = hex_to_hsl(base)
    return [base] + [hsl_to_hex(hue + angle * i, sat, lightness) for i in range(1, max(1, count))]


def generate_triadic(base: str) -> list[str]:
    base = normalize_hex(base)
    hue, sat, lightness = hex_to_hsl(base)
    return [base, hsl_to_hex(hue + 120, sat, lightness), hsl_to_hex(hue + 240, sat, lightness)]


def generate_tetradic(base: str) -> list[str]:
    base = normalize_hex(base)
    hue, sat, lightness = hex_to_hsl(base)
    return [base] + [hsl_to_hex(hue + offset, sat, lightness) for offset in (90, 180, 270)]


def generate_monochromatic(base: str, count: int = 5) -> list[str]:
    base = normalize_hex(base)
    half = max(0, count) // 2
    colors = [base]
    colors += [brighten(base, i * 0.5) for i in range(1, half + 1)]
    colors += [darken(base, i * 0.5) for i in range(1, half + 1)]
    return colors[: max(1, count)]


# ---------------------------------------------------------------------------
# Contrast
# ---------------------------------------------------------------------------


def fix_contrast(
    foreground: str,
    background: str,
    target_ratio: float = AA_RATIO,
    max_iterations: int = 50,
    prefer_lightness: bool = False,
) -> ContrastFix:
    """Nudge one color's lightness in 0.1 steps until the target ratio holds.

    The color that moves is pushed away from the other one's luminance, so the
    ratio never decreases between iterations. With `prefer_lightness` the
    background moves instead of the foreground. Exhausting the budget is not
    an error: `target_met` is False and the best ratio reached is returned.
    """
    fg = normalize_hex(foreground)
    bg = normalize_hex(background)
    target_ratio = _clamp(target_ratio, 1.0, 21.0)
    max_iterations = max(0, int(max_iterations))
    ratio = contrast_ratio(fg, bg)
    iterations = 0

    while ratio < target_ratio and iterations < max_iterations:
        iterations += 1
        if prefer_lightness:
            new_bg = _step_away(bg, fg)
            if contrast_ratio(fg, new_bg) > ratio:
                bg = new_bg
            else:
                # background is pinned at black or white; fall back to the other side
                fg = _step_away(fg, bg) if contrast_ratio(_step_away(fg, bg), bg) > ratio else fg
        else:
            new_fg = _step_away(fg, bg)
            if contrast_ratio(new_fg, bg) > ratio:
                fg = new_fg
            else:
                bg = _step_away(bg, fg) if contrast_ratio(fg, _step_away(bg, fg)) > ratio else bg
        ratio = contrast_ratio(fg, bg)

    return ContrastFix(
        foreground=fg,
        background=bg,
        ratio=ratio,
        iterations=iterations,
        target_met=ratio >= target_ratio,
    )


def _step_away(moving: str, anchor: str) -> str:
    if relative_luminance(moving) <= relative_luminance(anchor):
        return darken(moving, 0.1)
    return brighten(moving, 0.1)


def readable_text_color(background: str) -> str:
    return "#1A202C" if relative_luminance(background) > 0.5 else "#F7FAFC"


# ---------------------------------------------------------------------------
# Harmony detection and harmonization
# ---------------------------------------------------------------------------


def _hue_distance(a: float, b: float) -> float:
    diff = abs(a - b) % 360
    return min(diff, 360 - diff)


def detect_harmony_type(colors: list[str]) -> HarmonyType:
    """Classify by the average hue distance from the first color."""
    if len(colors) < 2:
        return HarmonyType.MONOCHROMATIC
    hues = [hex_to_hsl(c)[0] for c in colors]
    diffs = [abs(h - hues[0]) for h in hues[1:]]
    avg = sum(diffs) / len(diffs)
    if avg < 30:
        return HarmonyType.ANALOGOUS
    if 150 < avg < 210:
        return HarmonyType.COMPLEMENTARY
    if 100 < avg < 140:
        return HarmonyType.TRIADIC
    return HarmonyType.ANALOGOUS


def classify_harmony(colors: list[str]) -> HarmonyType:
    """Name the relationship between the chromatic colors of a palette.

    Grays (saturation below 0.1) are ignored. Unlike `detect_harmony_type`
    this can answer CHAOTIC, which analysis treats as a design issue.
    """
    chromatic = [hex_to_hsl(c) for c in colors if is_valid_hex(c)]
    hues = [h for h, s, _ in chromatic if s >= 0.1]
    if len(hues) < 2:
        return HarmonyType.MONOCHROMATIC
    distances = [
        _hue_distance(hues[i], hues[j])
        for i in range(len(hues))
        for j in range(i + 1, len(hues))
    ]
    spread = max(distances)
    if spread <= 15:
        return HarmonyType.MONOCHROMATIC
    if spread <= 60:
        return HarmonyType.ANALOGOUS
    if len(hues) == 2 and 150 <= spread <= 210:
        return HarmonyType.COMPLEMENTARY
    if all(100 <= d <= 140 for d in distances):
        return HarmonyType.TRIADIC
    base = hues[0]
    from_base = sorted(_hue_distance(base, h) for h in hues[1:])
    if len(from_base) == 2 and all(130 <= d <= 170 for d in from_base):
        return HarmonyType.SPLIT_COMPLEMENTARY
    if len(hues) == 4 and all(d % 90 <= 15 or d % 90 >= 75 for d in distances):
        return HarmonyType.TETRADIC
    if len(hues) == 2 and 150 <= spread:
        return HarmonyType.COMPLEMENTARY
    return HarmonyType.CHAOTIC


def harmonize_palette(
    colors: list[str],
    method: HarmonizeMethod = HarmonizeMethod.HUE_SHIFT,
) -> list[str]:
    colors = [normalize_hex(c) for c in colors]
    if len(colors) < 2:
        return colors
    if method is HarmonizeMethod.HUE_SHIFT:
        return _harmonize_by_hue_shift(colors)
    if method is HarmonizeMethod.SATURATION_MATCH:
        return _harmonize_by_saturation(colors)
    return _harmonize_by_luminance(colors)


def _harmonize_by_hue_shift(colors: list[str]) -> list[str]:
    base_hue = hex_to_hsl(colors[0])[0]
    target = detect_harmony_type(colors)
    result = [colors[0]]
    for index, color in enumerate(colors[1:], start=1):
        hue, sat, lightness = hex_to_hsl(color)
        if target is HarmonyType.ANALOGOUS:
            hue = base_hue + 30 * index
        elif target is HarmonyType.TRIADIC:
            hue = base_hue + 120 * index
        elif target is HarmonyType.COMPLEMENTARY and index == 1:
            hue = base_hue + 180
        result.append(hsl_to_hex(hue, sat, lightness))
    return result


def _harmonize_by_saturation(colors: list[str]) -> list[str]:
    base_sat = hex_to_hsl(colors[0])[1]
    result = []
    for color in colors:
        hue, _sat, lightness = hex_to_hsl(color)
        result.append(hsl_to_hex(hue, base_sat, lightness))
    return result


def _harmonize_by_luminance(colors: list[str]) -> list[str]:
    luminances = [relative_luminance(c) for c in colors]
    low, high = min(luminances), max(luminances)
    if high - low < 0.2:
        return colors
    step = (high - low) / (len(colors) - 1)
    return [with_luminance(c, low + step * i) for i, c in enumerate(colors)]


# ---------------------------------------------------------------------------
# Accessibility
# ---------------------------------------------------------------------------


def simulate_color_blindness(color: str, kind: ColorBlindness) -> str:
    r, g, b = hex_to_rgb(color)
    if kind is ColorBlindness.PROTANOPIA:
        return rgb_to_hex(g, g, b)
    if kind is ColorBlindness.DEUTERANOPIA:
        return rgb_to_hex(r, r, b)
    return rgb_to_hex(r, g, g)


def check_colorblind_safety(
    colors: list[str],
    kinds: tuple[ColorBlindness, ...] = (ColorBlindness.PROTANOPIA, ColorBlindness.DEUTERANOPIA),
) -> ColorBlindReport:
    issues: list[str] = []
    suggestions: list[str] = []
    for kind in kinds:
        simulated = [simulate_color_blindness(c, kind) for c in colors]
        for i in range(len(simulated)):
            for j in range(i + 1, len(simulated)):
                if delta_e(simulated[i], simulated[j]) < COLORBLIND_DELTA_E_THRESHOLD:
                    issues.append(f"Colors {i + 1} and {j + 1} are too similar for {kind.value}")
                    suggestions.append(
                        f"Increase hue or luminance difference between colors {i + 1} and {j + 1}"
                    )
    return ColorBlindReport(safe=not issues, issues=tuple(issues), suggestions=tuple(suggestions))


def ensure_accessibility(
    palette: ColorPalette,
    level: str = "AA",
    colorblind_kinds: tuple[ColorBlindness, ...] = (
        ColorBlindness.PROTANOPIA,
        ColorBlindness.DEUTERANOPIA,
    ),
) -> AccessibilityReport:
    """Enforce minimum contrast against white for primary and semantic colors."""
    level = "AAA" if str(level).upper() == "AAA" else "AA"
    min_ratio = AAA_RATIO if level == "AAA" else AA_RATIO
    suggestions: list[str] = []

    primary = palette.primary
    if contrast_ratio(primary, _WHITE) < min_ratio:
        primary = fix_contrast(primary, _WHITE, min_ratio).foreground
        suggestions.append(f"Adjusted primary color for {level} compliance")

    semantic_values: dict[str, str] = {}
    for name in ("success", "warning", "error", "info"):
        color = getattr(palette.semantic, name)
        if contrast_ratio(color, _WHITE) < min_ratio:
            color = fix_contrast(color, _WHITE, min_ratio).foreground
            suggestions.append(f"Adjusted {name} color for {level} compliance")
        semantic_values[name] = color

    fixed = replace(palette, primary=primary, semantic=SemanticColors(**semantic_values))
    blind = check_colorblind_safety([fixed.primary, fixed.secondary, fixed.accent], colorblind_kinds)
    issues = list(blind.issues)
    suggestions += blind.suggestions
    return AccessibilityReport(
        palette=fixed,
        wcag_compliant=not issues,
        colorblind_safe=blind.safe,
        issues=tuple(issues),
        suggestions=tuple(suggestions),
    )


def generate_accessible_variations(
    base: str,
    count: int = 5,
    include_neutrals: bool = False,
) -> list[str]:
    count = max(1, count)
    step = 0.8 / count
    variations = [with_luminance(base, 0.1 + step * i) for i in range(count)]
    if include_neutrals:
        hue = hex_to_hsl(base)[0]
        variations += [hsl_to_hex(hue, 0.1, 0.95), hsl_to_hex(hue, 0.1, 0.15)]
    return variations


def optimize_for_screen(colors: list[str]) -> list[str]:
    """Tame oversaturated colors and lift near-black ones."""
    result = []
    for color in colors:
        hue, sat, lightness = hex_to_hsl(color)
        if sat > 0.9:
            result.append(hsl_to_hex(hue, 0.85, lightness))
        elif relative_luminance(color) < 0.05:
            result.append(with_luminance(color, 0.05))
        else:
            result.append(normalize_hex(color))
    return result


def generate_palette_from_analysis(
    dominant_colors: list[str],
    style: str = "professional",
    preserve_brand: str | None = None,
) -> ColorPalette:
    """Build a full palette from colors observed in a document.

    `style` is one of vibrant, muted, monochrome or professional.
    """
    primary = normalize_hex(preserve_brand or (dominant_colors[0] if dominant_colors else "#3B82F6"))
    if style == "vibrant":
        primary = saturate(primary, 2)
    elif style == "muted":
        primary = saturate(primary, -2)
    elif style == "monochrome":
        primary = saturate(primary, -3)

    if style == "monochrome":
        scheme = generate_monochromatic(primary, 3)
    else:
        scheme = generate_complementary(primary, variations=1)

    neutral_base = saturate(primary, -3)
    neutrals = tuple(with_luminance(neutral_base, lum) for lum in (0.95, 0.85, 0.45, 0.15, 0.05))
    if style == "monochrome":
        semantic = SemanticColors(*(neutrals[3],) * 4)
    else:
        semantic = SemanticColors()

    return ColorPalette(
        primary=primary,
        secondary=scheme[1] if len(scheme) > 1 else darken(primary),
        accent=scheme[2] if len(scheme) > 2 else brighten(primary),
        neutral=neutrals,
        semantic=semantic,
    )
