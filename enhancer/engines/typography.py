"""Typography heuristics: font pairing, modular scales, spacing, readability."""

from dataclasses import dataclass
from enum import Enum


class PairingStrategy(str, Enum):
    CONTRAST = "contrast"
    HARMONY = "harmony"
    SAFE = "safe"


class PairingPurpose(str, Enum):
    HEADING_BODY = "heading-body"
    DISPLAY_TEXT = "display-text"
    UI = "ui"


class TextPurpose(str, Enum):
    BODY = "body"
    HEADING = "heading"
    DISPLAY = "display"
    CAPS = "caps"


class Density(str, Enum):
    TIGHT = "tight"
    NORMAL = "normal"
    LOOSE = "loose"


class ReadabilityTarget(str, Enum):
    COMFORTABLE = "comfortable"
    COMPACT = "compact"
    SPACIOUS = "spacious"


SCALE_RATIOS: dict[str, float] = {
    "minor-second": 1.067,
    "major-second": 1.125,
    "minor-third": 1.2,
    "major-third": 1.25,
    "perfect-fourth": 1.333,
    "augmented-fourth": 1.414,
    "perfect-fifth": 1.5,
    "golden-ratio": 1.618,
}


@dataclass(frozen=True)
class FontTraits:
    category: str
    personality: str
    readability: str


FONT_CHARACTERISTICS: dict[str, FontTraits] = {
    "Inter": FontTraits("sans-serif", "modern", "excellent"),
    "Roboto": FontTraits("sans-serif", "friendly", "excellent"),
    "Open Sans": FontTraits("sans-serif", "neutral", "excellent"),
    "Montserrat": FontTraits("sans-serif", "geometric", "good"),
    "Poppins": FontTraits("sans-serif", "playful", "good"),
    "Playfair Display": FontTraits("serif", "elegant", "moderate"),
    "Merriweather": FontTraits("serif", "traditional", "excellent"),
    "Lora": FontTraits("serif", "friendly", "excellent"),
    "Lato": FontTraits("sans-serif", "warm", "excellent"),
    "Source Sans Pro": FontTraits("sans-serif", "clean", "excellent"),
    "Source Serif Pro": FontTraits("serif", "professional", "excellent"),
    "IBM Plex Sans": FontTraits("sans-serif", "technical", "excellent"),
    "IBM Plex Serif": FontTraits("serif", "technical", "good"),
    "Roboto Slab": FontTraits("slab-serif", "modern", "good"),
}

FONT_PAIRINGS: dict[str, tuple[str, ...]] = {
    "Inter": ("Source Serif Pro", "Merriweather", "Lora", "IBM Plex Sans"),
    "Roboto": ("Roboto Slab", "Playfair Display", "Lora", "Open Sans"),
    "Open Sans": ("Merriweather", "Playfair Display", "Montserrat", "Source Serif Pro"),
    "Montserrat": ("Source Serif Pro", "Lora", "Open Sans", "Roboto"),
    "Poppins": ("Lora", "Source Serif Pro", "Inter", "IBM Plex Sans"),
    "Playfair Display": ("Open Sans", "Lato", "Source Sans Pro", "Roboto"),
    "Merriweather": ("Open Sans", "Montserrat", "Lato", "Source Sans Pro"),
    "Lato": ("Merriweather", "Playfair Display", "Source Serif Pro", "Roboto Slab"),
    "Source Sans Pro": ("Source Serif Pro", "Playfair Display", "Merriweather", "Lora"),
    "IBM Plex Sans": ("IBM Plex Serif", "Merriweather", "Source Serif Pro", "Lora"),
}

_READABILITY_POINTS = {"excellent": 20, "good": 10, "moderate": 0}


@dataclass(frozen=True)
class FontPairing:
    primary: str
    secondary: str
    score: float
    rationale: str


_DEFAULT_PAIRINGS = (
    FontPairing("Inter", "Source Serif Pro", 90, "Classic sans-serif and serif combination"),
    FontPairing("Roboto", "Roboto Slab", 85, "Same family provides consistency"),
    FontPairing("Open Sans", "Merriweather", 88, "Popular and highly readable pairing"),
)


@dataclass(frozen=True)
class TypeScale:
    base: int
    ratio: float
    h1: int
    h2: int
    h3: int
    h4: int
    h5: int
    h6: int
    body: int
    small: int
    tiny: int


@dataclass(frozen=True)
class TypographyMetrics:
    line_height: float
    letter_spacing: float
    paragraph_spacing: float
    word_spacing: float
    readability_score: float


@dataclass(frozen=True)
class ReadabilityReview:
    recommendations: tuple[str, ...]
    improved_metrics: TypographyMetrics
    score_before: float
    score_after: float


@dataclass(frozen=True)
class FontSet:
    heading: str
    body: str
    mono: str


@dataclass(frozen=True)
class TypographySystem:
    fonts: FontSet
    scale: TypeScale
    metrics: TypographyMetrics
    weights: dict[str, int]


def find_font_pairings(
    primary_font: str,
    strategy: PairingStrategy = PairingStrategy.CONTRAST,
    purpose: PairingPurpose = PairingPurpose.HEADING_BODY,
    count: int = 3,
) -> list[FontPairing]:
    """Rank known partners for `primary_font`, best first.

    Unknown fonts get the curated default pairings.
    """
    primary = FONT_CHARACTERISTICS.get(primary_font)
    if primary is None:
        return list(_DEFAULT_PAIRINGS[: max(0, count)])

    pairings = []
    for secondary_font in FONT_PAIRINGS.get(primary_font, ()):
        secondary = FONT_CHARACTERISTICS.get(secondary_font)
        if secondary is None:
            continue
        pairings.append(
            FontPairing(
                primary=primary_font,
                secondary=secondary_font,
                score=score_pairing(primary, secondary, strategy, purpose),
                rationale=pairing_rationale(primary, secondary),
            )
        )
    pairings.sort(key=lambda p: p.score, reverse=True)
    return pairings[: max(0, count)]


def score_pairing(
    primary: FontTraits,
    secondary: FontTraits,
    strategy: PairingStrategy,
    purpose: PairingPurpose,
) -> float:
    score = 50.0
    if strategy is PairingStrategy.CONTRAST:
        if primary.category != secondary.category:
            score += 30
        if primary.personality != secondary.personality:
            score += 20
    elif strategy is PairingStrategy.HARMONY:
        if primary.category == secondary.category:
            score += 20
        if primary.personality == secondary.personality:
            score += 30
    elif strategy is PairingStrategy.SAFE:
        if secondary.readability == "excellent":
            score += 30
        if primary.category != secondary.category:
            score += 20

    categories = {primary.category, secondary.category}
    if purpose is PairingPurpose.HEADING_BODY:
        if categories == {"serif", "sans-serif"}:
            score += 20
    elif purpose is PairingPurpose.DISPLAY_TEXT:
        if primary.personality in ("elegant", "playful"):
            score += 15
        if secondary.readability == "excellent":
            score += 25
    elif purpose is PairingPurpose.UI:
        if primary.readability == "excellent" and secondary.readability == "excellent":
            score += 30
        if categories == {"sans-serif"}:
            score += 10

    score += _READABILITY_POINTS.get(primary.readability, 0) / 2
    score += _READABILITY_POINTS.get(secondary.readability, 0) / 2
    return min(100.0, score)


def pairing_rationale(primary: FontTraits, secondary: FontTraits) -> str:
    if primary.category != secondary.category:
        contrast = f"{primary.category} and {secondary.category} create visual contrast"
    else:
        contrast = f"Both {primary.category} fonts create consistency"
    if primary.personality != secondary.personality:
        personality = f"{primary.personality} paired with {secondary.personality} adds character"
    else:
        personality = f"Matching {primary.personality} personality maintains tone"
    return f"{contrast}. {personality}."


def optimize_size_hierarchy(
    base_size: float,
    scale: str = "major-third",
    min_size: int = 12,
    max_size: int = 72,
) -> TypeScale:
    """Derive heading and small sizes as integer powers of a named ratio.

    h1 uses the 4th power, h2 the 3rd, down to h5 at the square root; h6 and
    body equal the base. Unknown scale names fall back to major-third.
    """
    ratio = SCALE_RATIOS.get(scale, SCALE_RATIOS["major-third"])
    base = int(round(min(max(base_size, 6), 96)))
    return TypeScale(
        base=base,
        ratio=ratio,
        h1=min(max_size, round(base * ratio**4)),
        h2=min(max_size, round(base * ratio**3)),
        h3=round(base * ratio**2),
        h4=round(base * ratio),
        h5=round(base * ratio**0.5),
        h6=base,
        body=base,
        small=max(min_size, round(base / ratio)),
        tiny=max(min_size - 2, round(base / ratio**2)),
    )


def calculate_line_height(
    font_size: float,
    line_length: int = 65,
    font_category: str = "sans-serif",
    purpose: TextPurpose = TextPurpose.BODY,
) -> float:
    ratio = 1.5
    if font_size < 14:
        ratio = 1.6
    elif font_size > 20:
        ratio = 1.4

    if line_length > 80:
        ratio += 0.1
    elif line_length < 45:
        ratio -= 0.1

    if font_category == "serif":
        ratio += 0.05
    elif font_category == "mono":
        ratio += 0.1

    if purpose is TextPurpose.HEADING:
        ratio = max(1.2, ratio - 0.3)
    elif purpose is TextPurpose.DISPLAY:
        ratio = max(1.1, ratio - 0.4)
    return round(ratio, 2)


def calculate_letter_spacing(
    font_size: float,
    font_weight: int = 400,
    purpose: TextPurpose = TextPurpose.BODY,
    density: Density = Density.NORMAL,
) -> float:
    """Letter spacing in em."""
    spacing = 0.0
    if purpose is TextPurpose.HEADING:
        if font_size > 24:
            spacing = -0.02
        if font_weight > 600:
            spacing -= 0.01
    elif purpose is TextPurpose.DISPLAY:
        if font_size > 36:
            spacing = -0.03
        if font_weight > 700:
            spacing -= 0.02
    elif purpose is TextPurpose.CAPS:
        spacing = 0.1
    elif font_size < 14:
        spacing = 0.01

    if density is Density.TIGHT:
        spacing -= 0.02
    elif density is Density.LOOSE:
        spacing += 0.02
    return round(spacing, 3)


def calculate_readability_score(
    font_size: float = 16,
    line_height: float = 1.5,
    line_length: float = 65,
    contrast: float = 7,
) -> float:
    score = 50.0

    if 16 <= font_size <= 18:
        score += 20
    elif 14 <= font_size < 16:
        score += 10
    elif 18 < font_size <= 20:
        score += 15
    elif font_size < 14:
        score -= 10

    if 1.4 <= line_height <= 1.6:
        score += 15
    elif 1.3 <= line_height < 1.4:
        score += 10
    elif 1.6 < line_height <= 1.7:
        score += 10
    else:
        score -= 5

    if 45 <= line_length <= 75:
        score += 15
    elif 75 < line_length <= 85:
        score += 5
    elif 35 <= line_length < 45:
        score += 5
    else:
        score -= 10

    if contrast >= 7:
        score += 10
    elif contrast >= 4.5:
        score += 5
    return min(100.0, max(0.0, score))


def fix_spacing(
    font_size: float,
    line_length: int = 65,
    font_category: str = "sans-serif",
    target: ReadabilityTarget = ReadabilityTarget.COMFORTABLE,
) -> TypographyMetrics:
    line_height = calculate_line_height(font_size, line_length, font_category, TextPurpose.BODY)
    density = {
        ReadabilityTarget.COMPACT: Density.TIGHT,
        ReadabilityTarget.SPACIOUS: Density.LOOSE,
    }.get(target, Density.NORMAL)
    letter_spacing = calculate_letter_spacing(font_size, purpose=TextPurpose.BODY, density=density)

    paragraph_spacing = line_height * 0.75
    word_spacing = 0.0
    if target is ReadabilityTarget.SPACIOUS:
        paragraph_spacing *= 1.25
        word_spacing = 0.05
    elif target is ReadabilityTarget.COMPACT:
        paragraph_spacing *= 0.75
        word_spacing = -0.02

    return TypographyMetrics(
        line_height=line_height,
        letter_spacing=letter_spacing,
        paragraph_spacing=round(paragraph_spacing, 3),
        word_spacing=word_spacing,
        readability_score=calculate_readability_score(font_size, line_height, line_length, 10),
    )


def enhance_readability(
    font_size: float,
    line_height: float,
    line_length: int,
) -> ReadabilityReview:
    recommendations = []
    before = calculate_readability_score(font_size, line_height, line_length)

    if font_size < 14:
        recommendations.append("Increase body font size to at least 16px for better readability")
    if line_length > 75:
        recommendations.append("Reduce line length to 65-75 characters for optimal reading")
    elif line_length < 45:
        recommendations.append("Increase line length to at least 45 characters")

    optimal = calculate_line_height(font_size, line_length)
    if abs(line_height - optimal) > 0.1:
        recommendations.append(f"Adjust line height to {optimal} for better readability")

    improved_size = max(16.0, font_size)
    improved_length = min(75, max(45, line_length))
    improved = fix_spacing(improved_size, improved_length)
    after = calculate_readability_score(improved_size, improved.line_height, improved_length, 10)
    return ReadabilityReview(
        recommendations=tuple(recommendations),
        improved_metrics=improved,
        score_before=before,
        score_after=after,
    )


_STYLE_FONTS = {
    "modern": FontSet("Inter", "Inter", "JetBrains Mono"),
    "classic": FontSet("Playfair Display", "Lora", "Courier New"),
    "playful": FontSet("Poppins", "Open Sans", "Fira Code"),
    "technical": FontSet("IBM Plex Sans", "IBM Plex Sans", "IBM Plex Mono"),
}

_PURPOSE_SCALES = {
    "website": "major-third",
    "app": "major-second",
    "document": "minor-third",
    "presentation": "perfect-fourth",
}


def generate_typography_system(
    base_size: int = 16,
    style: str = "modern",
    purpose: str = "website",
    primary_font: str | None = None,
) -> TypographySystem:
    if primary_font:
        fonts = FontSet(primary_font, primary_font, "monospace")
    else:
        fonts = _STYLE_FONTS.get(style, _STYLE_FONTS["modern"])
    scale = optimize_size_hierarchy(base_size, _PURPOSE_SCALES.get(purpose, "major-third"))
    target = ReadabilityTarget.SPACIOUS if purpose == "document" else ReadabilityTarget.COMFORTABLE
    return TypographySystem(
        fonts=fonts,
        scale=scale,
        metrics=fix_spacing(base_size, target=target),
        weights={"light": 300, "regular": 400, "medium": 500, "semibold": 600, "bold": 700},
    )
