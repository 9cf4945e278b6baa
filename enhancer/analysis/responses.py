"""Typed views over the JSON the analysis AI returns.

Every builder accepts whatever came back and never raises: a missing,
mistyped or out-of-range field takes its documented default. A valid zero
is kept; only absent or unusable values fall back.
"""

import math
from collections.abc import Mapping
from enum import Enum
from typing import Any, TypeVar

from enhancer.engines.color import classify_harmony, contrast_ratio, is_valid_hex, normalize_hex
from enhancer.engines.geometry import Rect
from enhancer.pipeline.models import (
    ColorFindings,
    ColorSaturation,
    ContrastIssue,
    DocumentPalette,
    EngagementFindings,
    GridFindings,
    HierarchyFindings,
    HierarchyLevel,
    LayoutFindings,
    LayoutSection,
    LayoutStructure,
    PageMargins,
    ScanPath,
    SectionType,
    SpacingMetrics,
    Temperature,
    TextAlignment,
    TypographyFindings,
)

E = TypeVar("E", bound=Enum)

DEFAULT_SECONDARY = "#6B7280"
DEFAULT_ACCENT = "#3B82F6"
DEFAULT_NEUTRALS = ("#F3F4F6", "#E5E7EB", "#9CA3AF")
DEFAULT_MARGIN = 50.0
_FULL_PAGE = Rect(0.0, 0.0, 100.0, 100.0)
_DEFAULT_LEVELS = (
    HierarchyLevel(importance=100.0, elements=("Primary content",), visual_weight=80.0),
    HierarchyLevel(importance=50.0, elements=("Secondary content",), visual_weight=50.0),
)


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _items(value: Any) -> list[Any]:
    return list(value) if isinstance(value, list) else []


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _number(value: Any, default: float, low: float = 0.0, high: float = 100.0) -> float:
    if not _is_number(value):
        return default
    return min(high, max(low, float(value)))


def _count(value: Any, default: int, low: int = 0, high: int = 50) -> int:
    return int(round(_number(value, default, low, high)))


def _text(value: Any, default: str = "") -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _choice(enum_cls: type[E], value: Any, default: E) -> E:
    if not isinstance(value, str):
        return default
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        return default


def _hex(value: Any, default: str) -> str:
    return normalize_hex(value) if is_valid_hex(value) else default


def _hex_list(value: Any) -> tuple[str, ...]:
    return tuple(normalize_hex(v) for v in _items(value) if is_valid_hex(v))


# Layout


def margin_consistency(values: list[float]) -> float:
    """100 minus the summed deviation from the mean, relative to the mean."""
    avg = sum(values) / len(values) if values else 0.0
    if avg <= 0:
        return 100.0
    spread = sum(abs(v - avg) for v in values) / avg
    return min(100.0, max(0.0, 100.0 - spread))


def _bounds(raw: Any) -> Rect:
    data = _mapping(raw)
    values = [data.get(key) for key in ("x", "y", "width", "height")]
    if not all(_is_number(v) for v in values):
        return _FULL_PAGE
    x, y, width, height = (min(100.0, max(0.0, float(v))) for v in values)
    return Rect(x, y, width, height)


def _section(index: int, raw: Any) -> LayoutSection:
    data = _mapping(raw)
    return LayoutSection(
        id=f"section-{index}",
        type=_choice(SectionType, data.get("type"), SectionType.CONTENT),
        bounds=_bounds(data.get("bounds")),
        z_index=index,
    )


def build_layout_findings(raw: Mapping[str, Any]) -> LayoutFindings:
    margins_raw = _mapping(raw.get("margins"))
    margins = [
        _number(margins_raw.get(side), DEFAULT_MARGIN, 0.0, 10_000.0)
        for side in ("top", "right", "bottom", "left")
    ]
    spacing = _mapping(raw.get("spacing"))
    grid = _mapping(raw.get("grid"))
    alignment = _mapping(raw.get("alignment"))
    whitespace = _mapping(raw.get("whitespace"))
    balance = _mapping(raw.get("balance"))

    return LayoutFindings(
        structure=_choice(LayoutStructure, raw.get("structure"), LayoutStructure.SINGLE_COLUMN),
        sections=tuple(_section(i, item) for i, item in enumerate(_items(raw.get("sections")))),
        margins=PageMargins(*margins, consistency=margin_consistency(margins)),
        spacing=SpacingMetrics(
            line_height=_number(spacing.get("line_height"), 1.5, 0.5, 4.0),
            paragraph_spacing=_number(spacing.get("paragraph_spacing"), 20.0, 0.0, 1_000.0),
            element_spacing=_number(spacing.get("element_spacing"), 30.0, 0.0, 1_000.0),
            consistency=_number(spacing.get("consistency_score"), 75.0),
        ),
        grid=GridFindings(
            has_grid=grid.get("has_grid") is True,
            columns=_count(grid.get("columns"), 0, 0, 48),
            gutters=_number(grid.get("gutters"), 0.0, 0.0, 1_000.0),
            baseline=_number(grid.get("baseline"), 0.0, 0.0, 1_000.0),
        ),
        alignment=_choice(TextAlignment, alignment.get("primary"), TextAlignment.LEFT),
        alignment_score=_number(alignment.get("score"), 75.0),
        whitespace=_number(whitespace.get("percentage"), 20.0),
        balance_score=_number(balance.get("overall"), 75.0),
    )


# Color


def _contrast_issue(raw: Any) -> ContrastIssue:
    data = _mapping(raw)
    foreground = _hex(data.get("foreground"), "#000000")
    background = _hex(data.get("background"), "#FFFFFF")
    # measured rather than trusted
    ratio = contrast_ratio(foreground, background)
    return ContrastIssue(
        foreground=foreground,
        background=background,
        ratio=ratio,
        passes_aa=ratio >= 4.5,
        passes_aaa=ratio >= 7.0,
        location=_text(data.get("location")),
    )


def build_color_findings(raw: Mapping[str, Any], dominant: str) -> ColorFindings:
    """`dominant` is the image's measured dominant color, used when the AI gives none."""
    dominant = _hex(dominant, "#808080")
    dominant_colors = _hex_list(raw.get("dominant_colors")) or (dominant,)
    palette = _mapping(raw.get("palette"))
    contrast = _mapping(raw.get("contrast"))
    properties = _mapping(raw.get("properties"))

    return ColorFindings(
        dominant_colors=dominant_colors,
        palette=DocumentPalette(
            primary=_hex(palette.get("primary"), dominant),
            secondary=_hex(palette.get("secondary"), DEFAULT_SECONDARY),
            accent=_hex(palette.get("accent"), DEFAULT_ACCENT),
            background=_hex(palette.get("background"), "#FFFFFF"),
            text=_hex(palette.get("text"), "#000000"),
            neutrals=_hex_list(palette.get("neutrals")) or DEFAULT_NEUTRALS,
        ),
        harmony=classify_harmony(list(dominant_colors)),
        contrast_score=_number(contrast.get("overall_score"), 85.0),
        contrast_issues=tuple(_contrast_issue(item) for item in _items(contrast.get("issues"))),
        temperature=_choice(Temperature, properties.get("temperature"), Temperature.NEUTRAL),
        saturation=_choice(ColorSaturation, properties.get("saturation"), ColorSaturation.MODERATE),
    )


# Typography


def readability_score(font_count: int, line_length: float, line_height: float, pairing_score: float) -> float:
    score = 100.0
    if font_count > 3:
        score -= 15
    if font_count > 4:
        score -= 10
    if line_length < 45 or line_length > 90:
        score -= 20
    elif line_length < 50 or line_length > 75:
        score -= 10
    if line_height < 1.2 or line_height > 2.0:
        score -= 15
    elif line_height < 1.4 or line_height > 1.8:
        score -= 5
    score = score * 0.7 + pairing_score * 0.3
    return float(max(0, min(100, round(score))))


def typography_consistency(ratios: tuple[float, ...], size_count: int) -> float:
    score = 100.0
    if ratios:
        avg = sum(ratios) / len(ratios)
        deviation = sum(abs(r - avg) for r in ratios) / len(ratios)
        score -= deviation * 50
    if size_count > 6:
        score -= 20
    elif size_count > 5:
        score -= 10
    return float(max(0, min(100, round(score))))


def build_typography_findings(raw: Mapping[str, Any]) -> TypographyFindings:
    fonts = _mapping(raw.get("fonts"))
    sizes = _mapping(raw.get("sizes"))
    readability = _mapping(raw.get("readability"))
    hierarchy = _mapping(raw.get("hierarchy"))

    font_count = _count(fonts.get("count"), 1, 1, 50)
    size_count = _count(sizes.get("count"), 3, 1, 50)
    ratios = tuple(float(r) for r in _items(sizes.get("ratios")) if _is_number(r) and r > 0)
    line_length = _number(readability.get("line_length"), 65.0, 1.0, 500.0)
    line_height = _number(readability.get("line_height"), 1.5, 0.5, 4.0)
    pairing = _number(fonts.get("pairing_score"), 80.0)

    return TypographyFindings(
        font_count=font_count,
        families=tuple(_text(f) for f in _items(fonts.get("families")) if _text(f)),
        size_count=size_count,
        size_ratios=ratios,
        line_length=line_length,
        line_height=line_height,
        pairing_score=pairing,
        readability=readability_score(font_count, line_length, line_height, pairing),
        consistency=typography_consistency(ratios, size_count),
        hierarchy_levels=_count(hierarchy.get("levels"), 3, 1, 12),
        clarity=_number(hierarchy.get("clarity"), 75.0),
    )


# Hierarchy and engagement


def scan_path_from(pattern: Any) -> ScanPath:
    """Missing pattern reads as F-pattern; an unrecognized one as chaotic."""
    if not isinstance(pattern, str):
        return ScanPath.F_PATTERN
    text = pattern.lower()
    if "f-pattern" in text or "f pattern" in text:
        return ScanPath.F_PATTERN
    if "z-pattern" in text or "z pattern" in text:
        return ScanPath.Z_PATTERN
    if "circular" in text:
        return ScanPath.CIRCULAR
    return ScanPath.CHAOTIC


def _level(raw: Any) -> HierarchyLevel:
    data = _mapping(raw)
    return HierarchyLevel(
        importance=_number(data.get("importance"), 50.0),
        elements=tuple(_text(e) for e in _items(data.get("elements")) if _text(e)),
        visual_weight=_number(data.get("visual_weight"), 50.0),
    )


def build_hierarchy_findings(raw: Mapping[str, Any]) -> HierarchyFindings:
    flow = _mapping(raw.get("flow"))
    emphasis = _mapping(raw.get("emphasis"))
    levels = tuple(_level(item) for item in _items(raw.get("levels")) if isinstance(item, Mapping))
    return HierarchyFindings(
        levels=levels or _DEFAULT_LEVELS,
        scan_path=scan_path_from(flow.get("pattern")),
        flow_score=_number(flow.get("score"), 70.0),
        emphasis_balance=_number(emphasis.get("balance"), 75.0),
    )


def build_engagement_findings(raw: Mapping[str, Any]) -> EngagementFindings:
    emotion = _mapping(raw.get("emotional_impact"))
    return EngagementFindings(
        visual_appeal=_number(raw.get("visual_appeal"), 70.0),
        readability=_number(raw.get("readability"), 75.0),
        professional_score=_number(raw.get("professional_score"), 80.0),
        energy=_number(emotion.get("energy"), 60.0),
        trust=_number(emotion.get("trust"), 75.0),
        creativity=_number(emotion.get("creativity"), 50.0),
        predicted_engagement=_number(raw.get("predicted_engagement"), 70.0),
    )
