"""Enhancement planning: decide what to change and how strongly."""

import re
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from enhancer.analysis.analyzer import Analyzer, Prompt
from enhancer.analysis.exceptions import AnalysisError
from enhancer.engines.color import (
    AA_RATIO,
    ColorPalette,
    HarmonizeMethod,
    HarmonyType,
    adjust_saturation,
    classify_harmony,
    contrast_ratio,
    ensure_accessibility,
    fix_contrast,
    generate_palette_from_analysis,
    harmonize_palette,
    normalize_hex,
    readable_text_color,
    relative_luminance,
)
from enhancer.engines.geometry import LayoutElement, Rect, Size
from enhancer.engines.layout import (
    FlowPattern,
    SpacingMethod,
    apply_grid_system,
    correct_alignment,
    improve_visual_flow,
    optimize_spacing,
)
from enhancer.engines.typography import (
    FONT_CHARACTERISTICS,
    FontPairing,
    PairingStrategy,
    calculate_line_height,
    find_font_pairings,
    optimize_size_hierarchy,
)
from enhancer.logging.logger import Log
from enhancer.pipeline.cancellation import CancellationToken, check_cancelled
from enhancer.pipeline.models import (
    Approach,
    Arrangement,
    AssetRequirements,
    BackgroundRequirement,
    BackgroundStyle,
    ColorAdjustment,
    ColorEnhancements,
    ColorMood,
    ColorSaturation,
    ColorScheme,
    DecorationPlacement,
    DecorationType,
    DecorativeRequirement,
    Dimension,
    DocumentType,
    EnhancementPlan,
    FontSelection,
    Formality,
    GraphicRequirement,
    GraphicType,
    GridSpec,
    InitialAnalysisResult,
    IssueType,
    LayoutDensity,
    LayoutEnhancements,
    LayoutPreference,
    LayoutStructure,
    PipelineContext,
    PlannedSection,
    SaturationLevel,
    ScanPath,
    SectionType,
    Severity,
    Strategy,
    StyleProfile,
    SubscriptionTier,
    TargetStyle,
    Temperature,
    TypePersonality,
    TypeSizes,
    TypographyEnhancements,
    VisualQuantity,
    VisualStyle,
    WhitespaceAdjustment,
)

_HEX6_LENGTH = 7

# Style profiles


def _profile(
    mood: ColorMood,
    temperature: Temperature,
    saturation: SaturationLevel,
    personality: TypePersonality,
    formality: Formality,
    density: LayoutDensity,
    arrangement: Arrangement,
    visual_style: VisualStyle,
    visual_quantity: VisualQuantity,
) -> StyleProfile:
    return StyleProfile(
        mood=mood,
        temperature=temperature,
        saturation=saturation,
        personality=personality,
        formality=formality,
        density=density,
        arrangement=arrangement,
        visual_style=visual_style,
        visual_quantity=visual_quantity,
    )


DOCUMENT_PROFILES: dict[DocumentType, StyleProfile] = {
    DocumentType.EDUCATIONAL: _profile(
        ColorMood.PLAYFUL, Temperature.WARM, SaturationLevel.MEDIUM,
        TypePersonality.FRIENDLY, Formality.SEMI_FORMAL,
        LayoutDensity.SPACIOUS, Arrangement.GRID,
        VisualStyle.ILLUSTRATIVE, VisualQuantity.MODERATE,
    ),
    DocumentType.PRESENTATION: _profile(
        ColorMood.PROFESSIONAL, Temperature.NEUTRAL, SaturationLevel.MEDIUM,
        TypePersonality.MODERN, Formality.FORMAL,
        LayoutDensity.BALANCED, Arrangement.GRID,
        VisualStyle.MINIMALIST, VisualQuantity.MODERATE,
    ),
    DocumentType.MARKETING: _profile(
        ColorMood.VIBRANT, Temperature.WARM, SaturationLevel.HIGH,
        TypePersonality.MODERN, Formality.SEMI_FORMAL,
        LayoutDensity.BALANCED, Arrangement.ASYMMETRIC,
        VisualStyle.PHOTOGRAPHIC, VisualQuantity.RICH,
    ),
    DocumentType.BUSINESS: _profile(
        ColorMood.PROFESSIONAL, Temperature.COOL, SaturationLevel.LOW,
        TypePersonality.CLASSIC, Formality.FORMAL,
        LayoutDensity.BALANCED, Arrangement.GRID,
        VisualStyle.MINIMALIST, VisualQuantity.MINIMAL,
    ),
    DocumentType.CREATIVE: _profile(
        ColorMood.VIBRANT, Temperature.WARM, SaturationLevel.HIGH,
        TypePersonality.CREATIVE, Formality.CASUAL,
        LayoutDensity.SPACIOUS, Arrangement.ORGANIC,
        VisualStyle.ILLUSTRATIVE, VisualQuantity.RICH,
    ),
    DocumentType.TECHNICAL: _profile(
        ColorMood.TECHNICAL, Temperature.COOL, SaturationLevel.LOW,
        TypePersonality.MODERN, Formality.FORMAL,
        LayoutDensity.COMPACT, Arrangement.GRID,
        VisualStyle.MINIMALIST, VisualQuantity.MINIMAL,
    ),
    DocumentType.GENERAL: _profile(
        ColorMood.PROFESSIONAL, Temperature.NEUTRAL, SaturationLevel.MEDIUM,
        TypePersonality.MODERN, Formality.SEMI_FORMAL,
        LayoutDensity.BALANCED, Arrangement.GRID,
        VisualStyle.MINIMALIST, VisualQuantity.MODERATE,
    ),
}

TARGET_STYLE_OVERRIDES: dict[TargetStyle, dict[str, object]] = {
    TargetStyle.MODERN: {
        "mood": ColorMood.VIBRANT,
        "personality": TypePersonality.MODERN,
        "arrangement": Arrangement.ASYMMETRIC,
    },
    TargetStyle.CLASSIC: {
        "mood": ColorMood.ELEGANT,
        "personality": TypePersonality.CLASSIC,
        "arrangement": Arrangement.GRID,
    },
    TargetStyle.PLAYFUL: {
        "mood": ColorMood.PLAYFUL,
        "personality": TypePersonality.FRIENDLY,
        "visual_style": VisualStyle.ILLUSTRATIVE,
    },
    TargetStyle.PROFESSIONAL: {
        "mood": ColorMood.PROFESSIONAL,
        "personality": TypePersonality.SERIOUS,
        "density": LayoutDensity.BALANCED,
    },
    TargetStyle.EDUCATIONAL: {},
}

COLOR_SCHEME_OVERRIDES: dict[ColorScheme, dict[str, object]] = {
    ColorScheme.VIBRANT: {"saturation": SaturationLevel.HIGH},
    ColorScheme.PASTEL: {"saturation": SaturationLevel.LOW, "mood": ColorMood.PLAYFUL},
    ColorScheme.MONOCHROME: {"saturation": SaturationLevel.LOW, "temperature": Temperature.NEUTRAL},
    ColorScheme.BRAND: {},
    ColorScheme.AUTO: {},
}

LAYOUT_PREFERENCE_OVERRIDES: dict[LayoutPreference, dict[str, object]] = {
    LayoutPreference.MINIMAL: {"visual_quantity": VisualQuantity.MINIMAL},
    LayoutPreference.BALANCED: {"density": LayoutDensity.BALANCED},
    LayoutPreference.RICH: {"visual_quantity": VisualQuantity.RICH},
    LayoutPreference.AUTO: {},
}

SPACIOUS_WHITESPACE = 30


def build_style_profile(context: PipelineContext, analysis: InitialAnalysisResult) -> StyleProfile:
    """Document-type defaults, then user settings, then measured whitespace."""
    profile = DOCUMENT_PROFILES[analysis.document_type]
    settings = context.settings
    if settings.target_style is not None:
        profile = profile.with_changes(**TARGET_STYLE_OVERRIDES[settings.target_style])
    profile = profile.with_changes(**COLOR_SCHEME_OVERRIDES[settings.color_scheme])
    profile = profile.with_changes(**LAYOUT_PREFERENCE_OVERRIDES[settings.layout_preference])
    if analysis.layout_analysis.whitespace > SPACIOUS_WHITESPACE:
        profile = profile.with_changes(density=LayoutDensity.SPACIOUS)
    return profile


# Impact scores


@dataclass(frozen=True)
class ImpactScores:
    """How much each dimension stands to gain, 0..100."""

    color: float
    typography: float
    layout: float
    visuals: float

    @property
    def overall(self) -> float:
        return self.color * 0.25 + self.typography * 0.25 + self.layout * 0.3 + self.visuals * 0.2

    def of(self, dimension: Dimension) -> float:
        return {
            Dimension.COLOR: self.color,
            Dimension.TYPOGRAPHY: self.typography,
            Dimension.LAYOUT: self.layout,
            Dimension.VISUALS: self.visuals,
        }[dimension]


def _bounded(value: float) -> float:
    return float(max(0.0, min(100.0, value)))


def _issue_points(analysis: InitialAnalysisResult, *types: IssueType) -> float:
    points = 0.0
    for issue in analysis.issues_of(*types):
        if issue.severity is Severity.HIGH:
            points += 10
        elif issue.severity is Severity.MEDIUM:
            points += 5
    return points


def color_impact(analysis: InitialAnalysisResult) -> float:
    color = analysis.detailed.color
    impact = 100.0 - analysis.current_score.color
    if color.harmony is HarmonyType.CHAOTIC:
        impact += 20
    if color.contrast_issues:
        impact += 15
    if color.saturation is ColorSaturation.MUTED and analysis.current_score.visuals < 60:
        impact += 10
    impact += _issue_points(analysis, IssueType.COLOR, IssueType.CONTRAST)
    return _bounded(impact)


def typography_impact(analysis: InitialAnalysisResult) -> float:
    typography = analysis.detailed.typography
    impact = 100.0 - analysis.current_score.typography
    if typography.font_count > 3:
        impact += 15
    if typography.readability < 70:
        impact += 20
    if typography.consistency < 70:
        impact += 15
    if typography.clarity < 70:
        impact += 10
    impact += _issue_points(analysis, IssueType.TYPOGRAPHY)
    return _bounded(impact)


def layout_impact(analysis: InitialAnalysisResult) -> float:
    layout = analysis.detailed.layout
    impact = 100.0 - analysis.current_score.layout
    if layout.alignment_score < 70:
        impact += 15
    if layout.balance_score < 70:
        impact += 15
    if layout.margins.consistency < 70:
        impact += 10
    if not layout.grid.has_grid and layout.structure is not LayoutStructure.FREEFORM:
        impact += 10
    whitespace = analysis.layout_analysis.whitespace
    if whitespace < 15 or whitespace > 50:
        impact += 15
    impact += _issue_points(analysis, IssueType.LAYOUT, IssueType.SPACING, IssueType.ALIGNMENT)
    return _bounded(impact)


def visual_impact(analysis: InitialAnalysisResult) -> float:
    engagement = analysis.detailed.engagement
    hierarchy = analysis.detailed.hierarchy
    impact = 100.0 - analysis.current_score.visuals
    if not analysis.metadata.has_images:
        impact += 30
    if engagement.visual_appeal < 70:
        impact += 20
    if engagement.predicted_engagement < 70:
        impact += 15
    if hierarchy.flow_score < 70:
        impact += 10
    if hierarchy.scan_path is ScanPath.CHAOTIC:
        impact += 15
    return _bounded(impact)


def calculate_impacts(analysis: InitialAnalysisResult) -> ImpactScores:
    return ImpactScores(
        color=color_impact(analysis),
        typography=typography_impact(analysis),
        layout=layout_impact(analysis),
        visuals=visual_impact(analysis),
    )


# Strategy

DIMENSION_ORDER = (Dimension.COLOR, Dimension.TYPOGRAPHY, Dimension.LAYOUT, Dimension.VISUALS)
BASIC_VISUALS_IMPACT = 80


def determine_approach(impacts: ImpactScores, tier: SubscriptionTier) -> Approach:
    if tier is SubscriptionTier.FREE:
        return Approach.SUBTLE
    if impacts.overall > 70:
        return Approach.DRAMATIC
    if impacts.overall > 40:
        return Approach.MODERATE
    return Approach.SUBTLE


def allowed_dimensions(impacts: ImpactScores, tier: SubscriptionTier) -> frozenset[Dimension]:
    """Free gets color and typography; basic gets visuals only when badly needed."""
    if tier is SubscriptionTier.FREE:
        return frozenset({Dimension.COLOR, Dimension.TYPOGRAPHY})
    if tier is SubscriptionTier.BASIC and impacts.visuals <= BASIC_VISUALS_IMPACT:
        return frozenset({Dimension.COLOR, Dimension.TYPOGRAPHY, Dimension.LAYOUT})
    return frozenset(DIMENSION_ORDER)


def determine_priority(impacts: ImpactScores, tier: SubscriptionTier) -> tuple[Dimension, ...]:
    """Highest impact first; ties keep color, typography, layout, visuals order."""
    allowed = allowed_dimensions(impacts, tier)
    ranked = sorted(DIMENSION_ORDER, key=lambda d: -impacts.of(d))
    return tuple(d for d in ranked if d in allowed)


def _format_issues(analysis: InitialAnalysisResult, *types: IssueType, limit: int | None = None) -> str:
    issues = analysis.issues_of(*types) if types else analysis.design_issues
    if limit is not None:
        issues = issues[:limit]
    if not issues:
        return "- None"
    return "\n".join(f"- {i.type.value}: {i.description} ({i.severity.value})" for i in issues)


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _positive_int(value: Any, default: int, high: int = 10_000) -> int:
    number = _number(value)
    if number is None or number <= 0:
        return default
    return int(min(high, round(number)))


def _valid_hex6(value: Any) -> bool:
    if not isinstance(value, str) or len(value) != _HEX6_LENGTH or not value.startswith("#"):
        return False
    return all(ch in "0123456789abcdefABCDEF" for ch in value[1:])


def merge_strategy(
    answer: Mapping[str, Any],
    *,
    approach: Approach,
    priority: tuple[Dimension, ...],
    impacts: ImpactScores,
    tier: SubscriptionTier,
) -> Strategy:
    """Accept the AI's refinement where it is valid for the tier."""
    refined_approach = approach
    raw_approach = answer.get("approach")
    if tier is not SubscriptionTier.FREE and raw_approach in {a.value for a in Approach}:
        refined_approach = Approach(raw_approach)

    allowed = allowed_dimensions(impacts, tier)
    refined_priority: list[Dimension] = []
    raw_priority = answer.get("priority")
    for item in raw_priority if isinstance(raw_priority, list) else []:
        if item in {d.value for d in Dimension}:
            dimension = Dimension(item)
            if dimension in allowed and dimension not in refined_priority:
                refined_priority.append(dimension)

    estimated = _number(answer.get("estimated_impact"))
    return Strategy(
        approach=refined_approach,
        priority=tuple(refined_priority) or priority,
        estimated_impact=_bounded(estimated if estimated is not None else impacts.overall),
    )


# Color plan

_Palette = dict[str, str]


def _palette(primary: str, secondary: str, accent: str, background: str, text: str) -> _Palette:
    return {
        "primary": primary,
        "secondary": secondary,
        "accent": accent,
        "background": background,
        "text": text,
    }


MOOD_PALETTES: dict[ColorMood, dict[Temperature, _Palette]] = {
    ColorMood.VIBRANT: {
        Temperature.WARM: _palette("#FF6B6B", "#4ECDC4", "#FFE66D", "#FFFFFF", "#2D3436"),
        Temperature.COOL: _palette("#4ECDC4", "#45B7D1", "#96CEB4", "#FFFFFF", "#2C3E50"),
        Temperature.NEUTRAL: _palette("#6C5CE7", "#A29BFE", "#FDCB6E", "#FFFFFF", "#2D3436"),
    },
    ColorMood.PROFESSIONAL: {
        Temperature.WARM: _palette("#E17055", "#FAB1A0", "#74B9FF", "#FAFAFA", "#2D3436"),
        Temperature.COOL: _palette("#0984E3", "#74B9FF", "#A29BFE", "#F8F9FA", "#2C3E50"),
        Temperature.NEUTRAL: _palette("#2D3436", "#636E72", "#0984E3", "#FFFFFF", "#2D3436"),
    },
    ColorMood.PLAYFUL: {
        Temperature.WARM: _palette("#FF7979", "#F9CA24", "#6AB04C", "#FFF5F5", "#2C3E50"),
        Temperature.COOL: _palette("#686DE0", "#4834D4", "#22A6B3", "#F0F3FF", "#130F40"),
        Temperature.NEUTRAL: _palette("#BE2EDD", "#6C5CE7", "#0984E3", "#FFEEFF", "#2D3436"),
    },
    ColorMood.ELEGANT: {
        Temperature.WARM: _palette("#B8926A", "#D4AF37", "#8B7355", "#FAF8F6", "#2C2416"),
        Temperature.COOL: _palette("#4A5568", "#718096", "#2D3748", "#F7FAFC", "#1A202C"),
        Temperature.NEUTRAL: _palette("#2D3436", "#636E72", "#B2BEC3", "#FAFAFA", "#2D3436"),
    },
    ColorMood.TECHNICAL: {
        Temperature.WARM: _palette("#FF6B6B", "#4ECDC4", "#FFE66D", "#1E1E1E", "#E0E0E0"),
        Temperature.COOL: _palette("#00D2D3", "#01A3A4", "#00B894", "#0F0F0F", "#F0F0F0"),
        Temperature.NEUTRAL: _palette("#4A90E2", "#50E3C2", "#F5A623", "#FFFFFF", "#333333"),
    },
}

SATURATION_FACTORS: dict[SaturationLevel, tuple[float, float, float]] = {
    SaturationLevel.LOW: (0.5, 0.5, 0.6),
    SaturationLevel.MEDIUM: (1.0, 1.0, 1.0),
    SaturationLevel.HIGH: (1.3, 1.2, 1.4),
}


def base_palette(profile: StyleProfile, analysis: InitialAnalysisResult, scheme: ColorScheme) -> _Palette:
    """Mood/temperature palette with saturation applied.

    The brand scheme keeps the document's own primary color and derives the
    secondary and accent colors from it.
    """
    palette = dict(MOOD_PALETTES[profile.mood][profile.temperature])
    if scheme is ColorScheme.BRAND:
        brand = analysis.detailed.color.palette.primary
        derived = generate_palette_from_analysis(
            list(analysis.detailed.color.dominant_colors), preserve_brand=brand
        )
        palette.update(primary=derived.primary, secondary=derived.secondary, accent=derived.accent)
        return palette

    primary_f, secondary_f, accent_f = SATURATION_FACTORS[profile.saturation]
    palette["primary"] = adjust_saturation(palette["primary"], primary_f)
    palette["secondary"] = adjust_saturation(palette["secondary"], secondary_f)
    palette["accent"] = adjust_saturation(palette["accent"], accent_f)
    return palette


def validate_palette(answer: Mapping[str, Any], base: _Palette) -> _Palette:
    """AI colors where they are well-formed; text pushed to AA contrast on the background."""
    palette = {
        key: normalize_hex(answer[f"{key}_color"])
        if _valid_hex6(answer.get(f"{key}_color"))
        else base[key]
        for key in ("primary", "secondary", "accent", "background", "text")
    }
    if contrast_ratio(palette["text"], palette["background"]) < AA_RATIO:
        fixed = fix_contrast(palette["text"], palette["background"], AA_RATIO)
        palette["text"] = fixed.foreground if fixed.target_met else readable_text_color(palette["background"])
    return palette


_CHROMATIC_ROLES = ("primary", "secondary", "accent")


def refine_palette(palette: _Palette) -> tuple[_Palette, tuple[ColorAdjustment, ...]]:
    """Harmonize a chaotic palette, then hold primary to AA on light backgrounds.

    Returns the refined palette with one adjustment per changed role.
    """
    refined = dict(palette)
    adjustments: list[ColorAdjustment] = []

    chromatic = [palette[role] for role in _CHROMATIC_ROLES]
    if classify_harmony(chromatic) is HarmonyType.CHAOTIC:
        harmonized = harmonize_palette(chromatic, HarmonizeMethod.HUE_SHIFT)
        for role, before, after in zip(_CHROMATIC_ROLES, chromatic, harmonized):
            if after != before:
                refined[role] = after
                adjustments.append(ColorAdjustment(role, before, after, "Create harmonious color relationships"))

    # accessibility is measured against white, so dark themes keep their primary
    if relative_luminance(refined["background"]) > 0.5:
        report = ensure_accessibility(
            ColorPalette(primary=refined["primary"], secondary=refined["secondary"], accent=refined["accent"])
        )
        if report.palette.primary != refined["primary"]:
            adjustments.append(
                ColorAdjustment("primary", refined["primary"], report.palette.primary, report.suggestions[0])
            )
            refined["primary"] = report.palette.primary
        for issue in report.issues:
            Log.debug(f"Palette accessibility: {issue}")
    return refined, tuple(adjustments)


def color_adjustments(
    analysis: InitialAnalysisResult,
    palette: _Palette,
    suggested: Any,
    refinements: tuple[ColorAdjustment, ...] = (),
) -> tuple[ColorAdjustment, ...]:
    current = analysis.detailed.color
    adjustments: list[ColorAdjustment] = list(refinements)
    if analysis.issues_of(IssueType.CONTRAST):
        adjustments.append(
            ColorAdjustment(
                "text",
                current.palette.text,
                palette["text"],
                "Improve text contrast for better readability",
            )
        )
    if current.harmony is HarmonyType.CHAOTIC:
        adjustments.append(
            ColorAdjustment(
                "accent",
                current.palette.accent,
                palette["accent"],
                "Create harmonious color relationships",
            )
        )
    for item in suggested if isinstance(suggested, list) else []:
        if not isinstance(item, Mapping):
            continue
        target = item.get("target")
        to_color = item.get("to")
        if not isinstance(target, str) or not target or not _valid_hex6(to_color):
            continue
        from_color = item.get("from")
        reason = item.get("reason")
        adjustments.append(
            ColorAdjustment(
                target,
                normalize_hex(from_color) if _valid_hex6(from_color) else "#000000",
                normalize_hex(to_color),
                reason if isinstance(reason, str) and reason else "Enhance visual appeal",
            )
        )

    unique: list[ColorAdjustment] = []
    seen: set[tuple[str, str]] = set()
    for adjustment in adjustments:
        key = (adjustment.target, adjustment.to_color)
        if key not in seen:
            seen.add(key)
            unique.append(adjustment)
    return tuple(unique)


# Typography plan

FONT_RECOMMENDATIONS: dict[TypePersonality, tuple[tuple[str, str, str], ...]] = {
    TypePersonality.MODERN: (
        ("Inter", "Inter", "clean and versatile"),
        ("Montserrat", "Open Sans", "contemporary"),
        ("Poppins", "Roboto", "geometric modern"),
    ),
    TypePersonality.CLASSIC: (
        ("Playfair Display", "Lora", "elegant serif"),
        ("Merriweather", "Source Sans Pro", "traditional"),
        ("Georgia", "Helvetica", "timeless"),
    ),
    TypePersonality.FRIENDLY: (
        ("Fredoka", "Nunito", "approachable"),
        ("Quicksand", "Lato", "soft and friendly"),
        ("Comfortaa", "Open Sans", "rounded"),
    ),
    TypePersonality.SERIOUS: (
        ("Roboto Slab", "Roboto", "professional"),
        ("IBM Plex Sans", "IBM Plex Sans", "corporate"),
        ("Source Serif Pro", "Source Sans Pro", "authoritative"),
    ),
    TypePersonality.CREATIVE: (
        ("Bebas Neue", "Montserrat", "bold and impactful"),
        ("Righteous", "Karla", "unique"),
        ("Space Grotesk", "Inter", "futuristic"),
    ),
}

APPROACH_SCALES: dict[Approach, str] = {
    Approach.SUBTLE: "major-second",
    Approach.MODERATE: "major-third",
    Approach.DRAMATIC: "perfect-fourth",
}

PAIRING_STRATEGIES: dict[Formality, PairingStrategy] = {
    Formality.FORMAL: PairingStrategy.SAFE,
    Formality.SEMI_FORMAL: PairingStrategy.CONTRAST,
    Formality.CASUAL: PairingStrategy.HARMONY,
}

# offsets from the engine's body line height
LINE_HEIGHT_OFFSETS: dict[DocumentType, float] = {
    DocumentType.EDUCATIONAL: 0.2,
    DocumentType.PRESENTATION: 0.0,
    DocumentType.MARKETING: 0.1,
    DocumentType.BUSINESS: 0.0,
    DocumentType.CREATIVE: -0.1,
    DocumentType.TECHNICAL: 0.1,
    DocumentType.GENERAL: 0.0,
}

HEADING_FALLBACK = ("Helvetica Neue", "Arial", "sans-serif")
BODY_FALLBACK = ("Helvetica", "Arial", "sans-serif")
DEFAULT_BODY_SIZE = 16


def font_pairings(profile: StyleProfile) -> tuple[FontPairing, ...]:
    """Scored partners for the personality's lead heading font, then its curated pairs."""
    curated = FONT_RECOMMENDATIONS[profile.personality]
    lead = curated[0][0]
    pairings: list[FontPairing] = []
    if lead in FONT_CHARACTERISTICS:
        pairings = find_font_pairings(lead, PAIRING_STRATEGIES[profile.formality])
    seen = {(p.primary, p.secondary) for p in pairings}
    for heading, body, style in curated:
        if (heading, body) not in seen:
            pairings.append(FontPairing(heading, body, 0.0, style))
    return tuple(pairings)


def type_sizes(body: int, approach: Approach) -> TypeSizes:
    """Plan sizes from the approach's modular scale: h1 is body x ratio^3."""
    scale = optimize_size_hierarchy(body, APPROACH_SCALES[approach])
    return TypeSizes(h1=scale.h2, h2=scale.h3, h3=scale.h4, body=scale.body, caption=scale.small)


def body_font_line_height(body_size: float, family: str, document_type: DocumentType) -> float:
    traits = FONT_CHARACTERISTICS.get(family)
    category = traits.category if traits is not None else "sans-serif"
    return round(calculate_line_height(body_size, font_category=category) + LINE_HEIGHT_OFFSETS[document_type], 2)


def _font(raw: Any, default_family: str, default_weight: int, default_fallback: tuple[str, ...]) -> FontSelection:
    data = raw if isinstance(raw, Mapping) else {}
    family = data.get("family")
    fallback = data.get("fallback")
    fallback_names = tuple(f for f in fallback if isinstance(f, str) and f) if isinstance(fallback, list) else ()
    return FontSelection(
        family=family if isinstance(family, str) and family.strip() else default_family,
        weight=_positive_int(data.get("weight"), default_weight, 900),
        style="normal",
        fallback=fallback_names or default_fallback,
    )


def _size(raw: Mapping[str, Any], key: str, default: int) -> int:
    number = _number(raw.get(key))
    if number is None or number < 6 or number > 200:
        return default
    return round(number)


# Layout plan

GRID_PRESETS: dict[LayoutDensity, GridSpec] = {
    LayoutDensity.SPACIOUS: GridSpec(columns=12, gutter=32, margin=64),
    LayoutDensity.BALANCED: GridSpec(columns=12, gutter=24, margin=48),
    LayoutDensity.COMPACT: GridSpec(columns=16, gutter=16, margin=32),
}

DENSITY_MULTIPLIERS: dict[LayoutDensity, float] = {
    LayoutDensity.SPACIOUS: 1.5,
    LayoutDensity.BALANCED: 1.0,
    LayoutDensity.COMPACT: 0.75,
}
WHITESPACE_AREAS = frozenset({"margins", "padding", "spacing"})
WHITESPACE_UNITS = frozenset({"px", "%", "em"})


def grid_for(profile: StyleProfile, page_width: float) -> GridSpec:
    """Density preset narrowed for small pages."""
    grid = GRID_PRESETS[profile.density]
    if page_width < 768:
        return GridSpec(columns=4, gutter=round(grid.gutter * 0.75), margin=round(grid.margin * 0.75))
    if page_width < 1200:
        return GridSpec(columns=8, gutter=grid.gutter, margin=round(grid.margin * 0.875))
    return grid


SPACING_METHODS: dict[LayoutDensity, SpacingMethod] = {
    LayoutDensity.SPACIOUS: SpacingMethod.PROPORTIONAL,
    LayoutDensity.BALANCED: SpacingMethod.EQUAL,
    LayoutDensity.COMPACT: SpacingMethod.EQUAL,
}
# text-led documents read in an F; the rest scan in a Z
F_FLOW_TYPES = frozenset(
    {DocumentType.EDUCATIONAL, DocumentType.BUSINESS, DocumentType.TECHNICAL, DocumentType.GENERAL}
)
ALIGNMENT_THRESHOLD = 5


def _to_pixels(bounds: Rect, page: Size) -> Rect:
    return Rect(
        bounds.x * page.width / 100,
        bounds.y * page.height / 100,
        bounds.width * page.width / 100,
        bounds.height * page.height / 100,
    )


def _to_percent(bounds: Rect, page: Size) -> Rect:
    width = min(100.0, bounds.width / page.width * 100)
    height = min(100.0, bounds.height / page.height * 100)
    return Rect(
        round(max(0.0, min(100.0 - width, bounds.x / page.width * 100)), 2),
        round(max(0.0, min(100.0 - height, bounds.y / page.height * 100)), 2),
        round(width, 2),
        round(height, 2),
    )


def _mentions(change: str, section_id: str) -> bool:
    return re.search(rf"\b{re.escape(section_id)}\b", change) is not None


def restructure_sections(
    analysis: InitialAnalysisResult,
    bounds: Mapping[str, Rect],
    profile: StyleProfile,
    grid: GridSpec,
) -> tuple[dict[str, Rect], dict[str, list[str]]]:
    """Align, space and, for a chaotic scan path, reflow sections on the page.

    The layout engine works in page pixels; bounds come in and go out as page
    percentages. Returns the new bounds and the engine's notes per section.
    """
    sections = analysis.layout_analysis.sections
    page = analysis.metadata.dimensions
    result = dict(bounds)
    notes: dict[str, list[str]] = {section.id: [] for section in sections}
    if not sections or page.width <= 0 or page.height <= 0:
        return result, notes

    original = tuple(
        LayoutElement(s.id, s.type.value, _to_pixels(bounds[s.id], page), z_index=s.z_index) for s in sections
    )
    aligned = correct_alignment(
        original, threshold=ALIGNMENT_THRESHOLD, optical=profile.arrangement is Arrangement.ORGANIC
    )
    method = SPACING_METHODS[profile.density]
    if profile.arrangement is Arrangement.ORGANIC:
        method = SpacingMethod.RHYTHMIC
    spaced = optimize_spacing(aligned.elements, method, min_spacing=grid.gutter, max_spacing=grid.margin)
    changes = [*aligned.corrections, *spaced.changes]
    elements = spaced.elements

    if analysis.detailed.hierarchy.scan_path is ScanPath.CHAOTIC:
        pattern = FlowPattern.F if analysis.document_type in F_FLOW_TYPES else FlowPattern.Z
        flowed = improve_visual_flow(elements, pattern)
        for before, after in zip(elements, flowed.elements):
            if after.bounds != before.bounds:
                notes[after.id].extend(flowed.improvements)
        elements = flowed.elements

    for element, start in zip(elements, original):
        notes[element.id][:0] = [change for change in changes if _mentions(change, element.id)]
        if element.bounds != start.bounds:
            result[element.id] = _to_percent(element.bounds, page)
    return result, notes


def _rect(raw: Any) -> Rect | None:
    if not isinstance(raw, Mapping):
        return None
    values = [_number(raw.get(key)) for key in ("x", "y", "width", "height")]
    numbers = [max(0.0, min(100.0, v)) for v in values if v is not None]
    if len(numbers) != 4:
        return None
    x, y, width, height = numbers
    if width <= 0 or height <= 0:
        return None
    return Rect(x, y, width, height)


def plan_sections(
    analysis: InitialAnalysisResult,
    suggestions: Any,
    profile: StyleProfile,
    grid: GridSpec,
) -> tuple[PlannedSection, ...]:
    sections = analysis.layout_analysis.sections
    suggested = [s for s in suggestions if isinstance(s, Mapping)] if isinstance(suggestions, list) else []
    by_id = {s.get("id"): s for s in suggested}

    bounds = {section.id: section.bounds for section in sections}
    if profile.arrangement is Arrangement.GRID and sections:
        # section bounds are page percentages, so the grid spans 100 units
        snapped = apply_grid_system(
            [LayoutElement(s.id, s.type.value, s.bounds) for s in sections],
            Size(100.0, 100.0),
            columns=grid.columns,
            gutter=0,
            margin=0,
        )
        bounds = {element.id: element.bounds for element in snapped.elements}
    bounds, notes = restructure_sections(analysis, bounds, profile, grid)

    planned: list[PlannedSection] = []
    for index, section in enumerate(sections):
        modifications: list[str] = []
        new_bounds = bounds[section.id]
        if profile.arrangement is Arrangement.GRID:
            modifications.append("Align to grid system")
        modifications.extend(notes[section.id])

        suggestion = by_id.get(section.id) or (suggested[index] if index < len(suggested) else None)
        if suggestion is not None:
            new_bounds = _rect(suggestion.get("new_bounds")) or new_bounds
            raw_mods = suggestion.get("modifications")
            if isinstance(raw_mods, list):
                modifications.extend(m for m in raw_mods if isinstance(m, str) and m)

        if profile.density is LayoutDensity.SPACIOUS and section.type is SectionType.CONTENT:
            modifications.append("Increase padding and margins")
        elif profile.density is LayoutDensity.COMPACT:
            modifications.append("Optimize space usage")

        planned.append(
            PlannedSection(
                id=section.id,
                type=section.type,
                new_bounds=new_bounds,
                modifications=tuple(modifications),
            )
        )
    return tuple(planned)


def whitespace_adjustments(
    analysis: InitialAnalysisResult,
    profile: StyleProfile,
    suggestions: Any,
) -> tuple[WhitespaceAdjustment, ...]:
    multiplier = DENSITY_MULTIPLIERS[profile.density]
    adjustments = [WhitespaceAdjustment("margins", round(48 * multiplier), "px")]
    if analysis.layout_analysis.whitespace < 20:
        adjustments.append(WhitespaceAdjustment("padding", round(24 * multiplier), "px"))
    if analysis.detailed.layout.spacing.consistency < 70:
        adjustments.append(WhitespaceAdjustment("spacing", round(16 * multiplier), "px"))
    for item in suggestions if isinstance(suggestions, list) else []:
        if not isinstance(item, Mapping):
            continue
        area = item.get("area")
        value = _number(item.get("value"))
        unit = item.get("unit")
        if area in WHITESPACE_AREAS and value is not None and value > 0:
            adjustments.append(
                WhitespaceAdjustment(area, value, unit if unit in WHITESPACE_UNITS else "px")
            )
    return tuple(adjustments)


# Asset requirements


@dataclass(frozen=True)
class TierAssetLimits:
    backgrounds: int
    decorative: int
    graphics: int


TIER_ASSET_LIMITS: dict[SubscriptionTier, TierAssetLimits] = {
    SubscriptionTier.FREE: TierAssetLimits(0, 0, 0),
    SubscriptionTier.BASIC: TierAssetLimits(1, 3, 0),
    SubscriptionTier.PRO: TierAssetLimits(2, 8, 2),
    SubscriptionTier.PREMIUM: TierAssetLimits(5, 20, 5),
}

DEFAULT_BACKGROUNDS: dict[VisualStyle, BackgroundRequirement] = {
    VisualStyle.MINIMALIST: BackgroundRequirement(
        BackgroundStyle.GRADIENT, "subtle", ("#FAFAFA", "#F5F5F5"), 0.05
    ),
    VisualStyle.DECORATIVE: BackgroundRequirement(
        BackgroundStyle.PATTERN, "geometric", ("#E0E0E0", "#F0F0F0"), 0.1
    ),
    VisualStyle.ILLUSTRATIVE: BackgroundRequirement(
        BackgroundStyle.GRADIENT, "colorful", ("#FFE5E5", "#E5F3FF"), 0.15
    ),
    VisualStyle.PHOTOGRAPHIC: BackgroundRequirement(
        BackgroundStyle.IMAGE, "abstract", ("#000000", "#FFFFFF"), 0.1
    ),
}

TEMPERATURE_BACKGROUND_COLORS: dict[Temperature, tuple[str, str]] = {
    Temperature.WARM: ("#FFF5E6", "#FFE0CC"),
    Temperature.COOL: ("#E6F3FF", "#CCE7FF"),
    Temperature.NEUTRAL: ("#F5F5F5", "#EBEBEB"),
}

DEFAULT_DECORATIONS: dict[VisualStyle, tuple[DecorativeRequirement, ...]] = {
    VisualStyle.MINIMALIST: (
        DecorativeRequirement(DecorationType.SHAPE, "geometric", 2, DecorationPlacement.CORNERS),
    ),
    VisualStyle.DECORATIVE: (
        DecorativeRequirement(DecorationType.BORDER, "ornamental", 1, DecorationPlacement.EDGES),
        DecorativeRequirement(DecorationType.SHAPE, "organic", 3, DecorationPlacement.RANDOM),
    ),
    VisualStyle.ILLUSTRATIVE: (
        DecorativeRequirement(DecorationType.ICON, "flat", 4, DecorationPlacement.GRID),
    ),
    VisualStyle.PHOTOGRAPHIC: (),
}

_LEARNING_WORDS = ("learn", "understand", "example")


@dataclass(frozen=True)
class AssetNeeds:
    background: int
    decorative: int
    graphics: int


def calculate_asset_needs(analysis: InitialAnalysisResult, profile: StyleProfile) -> AssetNeeds:
    metadata = analysis.metadata
    visuals = analysis.current_score.visuals
    body = analysis.extracted_text.body_text

    background = 0
    if not metadata.has_images:
        background += 40
    if visuals < 60:
        background += 30
    if profile.visual_style is not VisualStyle.MINIMALIST:
        background += 20
    if analysis.detailed.engagement.visual_appeal < 70:
        background += 10

    decorative = 0
    if analysis.layout_analysis.whitespace > 40:
        decorative += 30
    if profile.visual_quantity is not VisualQuantity.MINIMAL:
        decorative += 30
    if analysis.detailed.hierarchy.emphasis_balance < 70:
        decorative += 20
    if visuals < 50:
        decorative += 20

    graphics = 0
    if any(word in text.lower() for text in body for word in _LEARNING_WORDS):
        graphics += 40
    if profile.visual_style is VisualStyle.ILLUSTRATIVE:
        graphics += 30
    if len(body) > 10 and not metadata.has_images:
        graphics += 30

    return AssetNeeds(min(100, background), min(100, decorative), min(100, graphics))


def _enum_value(enum_cls: type, value: Any, default: Any) -> Any:
    if isinstance(value, str) and value in {member.value for member in enum_cls}:
        return enum_cls(value)
    return default


def _opacity(value: Any, default: float) -> float:
    number = _number(value)
    if number is None or number <= 0:
        return default
    return min(1.0, number)


def build_asset_requirements(
    answer: Mapping[str, Any],
    tier: SubscriptionTier,
    profile: StyleProfile,
    needs: AssetNeeds,
) -> AssetRequirements:
    limits = TIER_ASSET_LIMITS[tier]
    if tier is SubscriptionTier.FREE:
        return AssetRequirements()

    def suggestions(key: str) -> list[Mapping[str, Any]]:
        raw = answer.get(key)
        return [item for item in raw if isinstance(item, Mapping)] if isinstance(raw, list) else []

    backgrounds: list[BackgroundRequirement] = []
    suggested_backgrounds = suggestions("backgrounds")
    if needs.background > 50 or suggested_backgrounds:
        backgrounds.append(DEFAULT_BACKGROUNDS[profile.visual_style])
    default_opacity = 0.05 if profile.visual_style is VisualStyle.MINIMALIST else 0.15
    for item in suggested_backgrounds[: max(0, limits.backgrounds - 1)]:
        colors = tuple(normalize_hex(c) for c in item.get("colors") or () if _valid_hex6(c))
        theme = item.get("theme")
        backgrounds.append(
            BackgroundRequirement(
                style=_enum_value(BackgroundStyle, item.get("style"), BackgroundStyle.GRADIENT),
                theme=theme if isinstance(theme, str) and theme else profile.mood.value,
                colors=colors or TEMPERATURE_BACKGROUND_COLORS[profile.temperature],
                opacity=_opacity(item.get("opacity"), default_opacity),
            )
        )

    decorations: list[DecorativeRequirement] = []
    if needs.decorative > 30:
        decorations.extend(DEFAULT_DECORATIONS[profile.visual_style])
    max_quantity = 5 if profile.visual_quantity is VisualQuantity.RICH else 3
    for item in suggestions("decorative_elements"):
        style = item.get("style")
        decorations.append(
            DecorativeRequirement(
                type=_enum_value(DecorationType, item.get("type"), DecorationType.SHAPE),
                style=style if isinstance(style, str) and style else profile.visual_style.value,
                quantity=min(_positive_int(item.get("quantity"), 1), max_quantity),
                placement=_enum_value(
                    DecorationPlacement, item.get("placement"), DecorationPlacement.CORNERS
                ),
            )
        )

    graphics: list[GraphicRequirement] = []
    for item in suggestions("educational_graphics")[: limits.graphics]:
        style = item.get("style")
        graphics.append(
            GraphicRequirement(
                type=_enum_value(GraphicType, item.get("type"), GraphicType.ILLUSTRATION),
                style=style if isinstance(style, str) and style else profile.visual_style.value,
                width=_positive_int(item.get("width"), 400, 2048),
                height=_positive_int(item.get("height"), 300, 2048),
            )
        )

    return AssetRequirements(
        backgrounds=tuple(backgrounds[: limits.backgrounds]),
        decorative_elements=tuple(decorations[: limits.decorative]),
        educational_graphics=tuple(graphics),
    )


# Stage


@dataclass(frozen=True)
class _PlanInputs:
    context: PipelineContext
    analysis: InitialAnalysisResult
    strategy: Strategy
    profile: StyleProfile
    cancel_token: CancellationToken | None


class EnhancementPlanningStage:
    """Turns an analysis into a strategy plus one sub-plan per prioritized dimension.

    Sub-plans are independent reads of the same frozen analysis, so they run
    on a thread pool. A failed AI answer falls back to the rule-based plan.
    """

    def __init__(self, *, analyzer: Analyzer, max_workers: int = 4) -> None:
        self._analyzer = analyzer
        self._max_workers = max(1, max_workers)
        self._planners: dict[Dimension, Callable[[_PlanInputs], object]] = {
            Dimension.COLOR: self._plan_color,
            Dimension.TYPOGRAPHY: self._plan_typography,
            Dimension.LAYOUT: self._plan_layout,
            Dimension.VISUALS: self._plan_assets,
        }

    def run(
        self,
        context: PipelineContext,
        analysis: InitialAnalysisResult,
        cancel_token: CancellationToken | None = None,
    ) -> EnhancementPlan:
        check_cancelled(cancel_token)
        tier = context.subscription_tier
        profile = build_style_profile(context, analysis)
        impacts = calculate_impacts(analysis)
        approach = determine_approach(impacts, tier)
        priority = determine_priority(impacts, tier)
        Log.info(
            f"Planning {analysis.document_type.value} document {context.document_id}: "
            f"approach={approach.value} priority={[d.value for d in priority]}"
        )

        answer = self._ask(
            Prompt.STRATEGY_REFINEMENT,
            cancel_token,
            premium=tier is SubscriptionTier.PREMIUM,
            document_type=analysis.document_type.value,
            overall=analysis.current_score.overall,
            color=analysis.current_score.color,
            typography=analysis.current_score.typography,
            layout=analysis.current_score.layout,
            visuals=analysis.current_score.visuals,
            color_impact=round(impacts.color),
            typography_impact=round(impacts.typography),
            layout_impact=round(impacts.layout),
            visual_impact=round(impacts.visuals),
            mood=profile.mood.value,
            personality=profile.personality.value,
            arrangement=profile.arrangement.value,
            visual_style=profile.visual_style.value,
            approach=approach.value,
            priority=" -> ".join(d.value for d in priority),
            tier=tier.value,
            issues=_format_issues(analysis, limit=5),
        )
        strategy = merge_strategy(
            answer, approach=approach, priority=priority, impacts=impacts, tier=tier
        )

        inputs = _PlanInputs(context, analysis, strategy, profile, cancel_token)
        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            futures = {
                dimension: executor.submit(self._planners[dimension], inputs)
                for dimension in strategy.priority
            }
            results = {dimension: future.result() for dimension, future in futures.items()}

        return EnhancementPlan(
            strategy=strategy,
            document_type=analysis.document_type,
            style_profile=profile,
            color_enhancements=results.get(Dimension.COLOR),  # type: ignore[arg-type]
            typography_enhancements=results.get(Dimension.TYPOGRAPHY),  # type: ignore[arg-type]
            layout_enhancements=results.get(Dimension.LAYOUT),  # type: ignore[arg-type]
            asset_requirements=results.get(Dimension.VISUALS),  # type: ignore[arg-type]
        )

    def _ask(
        self,
        prompt: Prompt,
        cancel_token: CancellationToken | None,
        premium: bool = False,
        **fields: Any,
    ) -> Mapping[str, Any]:
        try:
            return self._analyzer.generate(prompt, cancel_token, premium=premium, **fields)
        except AnalysisError as exc:
            Log.warning(f"{prompt.value} failed, using rule-based plan: {exc}")
            return {}

    def _plan_color(self, inputs: _PlanInputs) -> ColorEnhancements:
        analysis = inputs.analysis
        profile = inputs.profile
        color = analysis.detailed.color
        base = base_palette(profile, analysis, inputs.context.settings.color_scheme)
        answer = self._ask(
            Prompt.COLOR_PLAN,
            inputs.cancel_token,
            dominant_colors=", ".join(color.dominant_colors[:3]),
            harmony=color.harmony.value,
            contrast_score=round(color.contrast_score),
            temperature=color.temperature.value,
            saturation=color.saturation.value,
            issues=_format_issues(analysis, IssueType.COLOR, IssueType.CONTRAST),
            mood=profile.mood.value,
            profile_temperature=profile.temperature.value,
            profile_saturation=profile.saturation.value,
            approach=inputs.strategy.approach.value,
            **base,
        )
        palette, refinements = refine_palette(validate_palette(answer, base))
        return ColorEnhancements(
            primary_color=palette["primary"],
            secondary_color=palette["secondary"],
            accent_color=palette["accent"],
            background_color=palette["background"],
            text_color=palette["text"],
            adjustments=color_adjustments(analysis, palette, answer.get("adjustments"), refinements),
        )

    def _plan_typography(self, inputs: _PlanInputs) -> TypographyEnhancements:
        analysis = inputs.analysis
        profile = inputs.profile
        typography = analysis.detailed.typography
        text = analysis.extracted_text
        pairings = font_pairings(profile)
        answer = self._ask(
            Prompt.TYPOGRAPHY_PLAN,
            inputs.cancel_token,
            document_type=analysis.document_type.value,
            font_count=typography.font_count,
            size_count=typography.size_count,
            readability=round(typography.readability),
            consistency=round(typography.consistency),
            clarity=round(typography.clarity),
            has_title="present" if text.title else "missing",
            heading_count=len(text.headings),
            body_count=len(text.body_text),
            caption_count=len(text.captions),
            personality=profile.personality.value,
            formality=profile.formality.value,
            approach=inputs.strategy.approach.value,
            pairings="\n".join(f"- {p.primary} + {p.secondary} ({p.rationale})" for p in pairings),
        )

        raw_sizes = answer.get("sizes")
        sizes_answer: Mapping[str, Any] = raw_sizes if isinstance(raw_sizes, Mapping) else {}
        body = _size(sizes_answer, "body", DEFAULT_BODY_SIZE)
        scale = type_sizes(body, inputs.strategy.approach)
        sizes = TypeSizes(
            h1=_size(sizes_answer, "h1", scale.h1),
            h2=_size(sizes_answer, "h2", scale.h2),
            h3=_size(sizes_answer, "h3", scale.h3),
            body=body,
            caption=_size(sizes_answer, "caption", scale.caption),
        )

        heading_font = _font(answer.get("heading_font"), pairings[0].primary, 700, HEADING_FALLBACK)
        body_font = _font(answer.get("body_font"), pairings[0].secondary, 400, BODY_FALLBACK)
        line_height = _number(answer.get("line_height"))
        if line_height is None or not 1.0 <= line_height <= 3.0:
            line_height = body_font_line_height(body, body_font.family, analysis.document_type)
        letter_spacing = _number(answer.get("letter_spacing"))
        if letter_spacing is None or abs(letter_spacing) > 0.5:
            letter_spacing = 0.02 if profile.personality is TypePersonality.MODERN else 0.0

        return TypographyEnhancements(
            heading_font=heading_font,
            body_font=body_font,
            sizes=sizes,
            line_height=line_height,
            letter_spacing=letter_spacing,
        )

    def _plan_layout(self, inputs: _PlanInputs) -> LayoutEnhancements:
        analysis = inputs.analysis
        profile = inputs.profile
        findings = analysis.detailed.layout
        grid = grid_for(profile, analysis.metadata.dimensions.width)
        margins = findings.margins
        answer = self._ask(
            Prompt.LAYOUT_PLAN,
            inputs.cancel_token,
            structure=analysis.layout_analysis.structure.value,
            sections=", ".join(
                f"{s.id} {s.type.value}({s.bounds.width:.0f}x{s.bounds.height:.0f})"
                for s in analysis.layout_analysis.sections
            )
            or "none",
            whitespace=round(analysis.layout_analysis.whitespace),
            alignment_score=round(findings.alignment_score),
            balance_score=round(findings.balance_score),
            margins=(
                f"T:{margins.top:.0f} R:{margins.right:.0f} "
                f"B:{margins.bottom:.0f} L:{margins.left:.0f}"
            ),
            issues=_format_issues(analysis, IssueType.LAYOUT, IssueType.SPACING, IssueType.ALIGNMENT),
            density=profile.density.value,
            arrangement=profile.arrangement.value,
            approach=inputs.strategy.approach.value,
            columns=grid.columns,
            gutter=grid.gutter,
            margin=grid.margin,
        )

        raw_grid = answer.get("grid")
        grid_answer: Mapping[str, Any] = raw_grid if isinstance(raw_grid, Mapping) else {}
        final_grid = GridSpec(
            columns=_positive_int(grid_answer.get("columns"), grid.columns, 24),
            gutter=_positive_int(grid_answer.get("gutter"), grid.gutter, 200),
            margin=_positive_int(grid_answer.get("margin"), grid.margin, 400),
        )
        return LayoutEnhancements(
            grid=final_grid,
            sections=plan_sections(analysis, answer.get("sections"), profile, grid),
            whitespace_adjustments=whitespace_adjustments(
                analysis, profile, answer.get("whitespace_adjustments")
            ),
        )

    def _plan_assets(self, inputs: _PlanInputs) -> AssetRequirements:
        context = inputs.context
        analysis = inputs.analysis
        profile = inputs.profile
        tier = context.subscription_tier
        if tier is SubscriptionTier.FREE:
            return AssetRequirements()

        needs = calculate_asset_needs(analysis, profile)
        limits = TIER_ASSET_LIMITS[tier]
        metadata = analysis.metadata
        answer = self._ask(
            Prompt.ASSET_PLAN,
            inputs.cancel_token,
            premium=tier is SubscriptionTier.PREMIUM,
            document_type=analysis.document_type.value,
            visual_score=analysis.current_score.visuals,
            existing_images=f"{metadata.image_count} images" if metadata.has_images else "none",
            visual_appeal=round(analysis.detailed.engagement.visual_appeal),
            predicted_engagement=round(analysis.detailed.engagement.predicted_engagement),
            visual_style=profile.visual_style.value,
            visual_quantity=profile.visual_quantity.value,
            mood=profile.mood.value,
            approach=inputs.strategy.approach.value,
            background_need=needs.background,
            decorative_need=needs.decorative,
            graphics_need=needs.graphics,
            tier=tier.value,
            max_backgrounds=limits.backgrounds,
            max_decorations=limits.decorative,
            max_graphics=limits.graphics,
        )
        return build_asset_requirements(answer, tier, profile, needs)
