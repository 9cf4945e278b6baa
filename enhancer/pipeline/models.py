"""Domain records exchanged between pipeline stages.

Everything here is frozen. Stages build new records instead of editing the
ones they receive, so a result stored in the cache or in the pipeline
state can be shared freely.
"""

from dataclasses import dataclass, field, replace
from enum import Enum

from enhancer.engines.color import HarmonyType
from enhancer.engines.geometry import Rect, Size


class SubscriptionTier(str, Enum):
    FREE = "free"
    BASIC = "basic"
    PRO = "pro"
    PREMIUM = "premium"

    @property
    def rank(self) -> int:
        return _TIER_ORDER.index(self)

    def at_least(self, other: "SubscriptionTier") -> bool:
        return self.rank >= other.rank


_TIER_ORDER = (
    SubscriptionTier.FREE,
    SubscriptionTier.BASIC,
    SubscriptionTier.PRO,
    SubscriptionTier.PREMIUM,
)


class TargetStyle(str, Enum):
    MODERN = "modern"
    CLASSIC = "classic"
    PLAYFUL = "playful"
    PROFESSIONAL = "professional"
    EDUCATIONAL = "educational"


class ColorScheme(str, Enum):
    VIBRANT = "vibrant"
    PASTEL = "pastel"
    MONOCHROME = "monochrome"
    BRAND = "brand"
    AUTO = "auto"


class LayoutPreference(str, Enum):
    MINIMAL = "minimal"
    BALANCED = "balanced"
    RICH = "rich"
    AUTO = "auto"


class FileType(str, Enum):
    PDF = "pdf"
    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"

    @property
    def is_pdf(self) -> bool:
        return self is FileType.PDF


@dataclass(frozen=True)
class EnhancementSettings:
    target_style: TargetStyle | None = None
    color_scheme: ColorScheme = ColorScheme.AUTO
    layout_preference: LayoutPreference = LayoutPreference.AUTO
    generate_assets: bool = True
    preserve_content: bool = True


@dataclass(frozen=True)
class PipelineContext:
    """Immutable descriptor of one enhancement request."""

    document_id: str
    user_id: str
    subscription_tier: SubscriptionTier
    original_file_url: str
    file_type: FileType
    start_time: float
    settings: EnhancementSettings = field(default_factory=EnhancementSettings)


class PipelineStage(str, Enum):
    INITIAL_ANALYSIS = "initial-analysis"
    ENHANCEMENT_PLANNING = "enhancement-planning"
    ASSET_GENERATION = "asset-generation"
    FINAL_COMPOSITION = "final-composition"


STAGE_ORDER = (
    PipelineStage.INITIAL_ANALYSIS,
    PipelineStage.ENHANCEMENT_PLANNING,
    PipelineStage.ASSET_GENERATION,
    PipelineStage.FINAL_COMPOSITION,
)


class PipelineStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class StageStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


class DocumentType(str, Enum):
    EDUCATIONAL = "educational"
    PRESENTATION = "presentation"
    MARKETING = "marketing"
    BUSINESS = "business"
    CREATIVE = "creative"
    TECHNICAL = "technical"
    GENERAL = "general"


# Initial analysis


@dataclass(frozen=True)
class ExtractedText:
    title: str | None = None
    headings: tuple[str, ...] = ()
    body_text: tuple[str, ...] = ()
    captions: tuple[str, ...] = ()

    def all_text(self) -> str:
        return " ".join([self.title or "", *self.headings, *self.body_text])


class LayoutStructure(str, Enum):
    SINGLE_COLUMN = "single-column"
    MULTI_COLUMN = "multi-column"
    GRID = "grid"
    FREEFORM = "freeform"


class SectionType(str, Enum):
    HEADER = "header"
    CONTENT = "content"
    SIDEBAR = "sidebar"
    FOOTER = "footer"
    IMAGE = "image"
    TEXT = "text"


class TextAlignment(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    JUSTIFIED = "justified"
    MIXED = "mixed"


@dataclass(frozen=True)
class LayoutSection:
    """A region of the page; bounds are percentages of the page size."""

    id: str
    type: SectionType
    bounds: Rect
    z_index: int = 0


@dataclass(frozen=True)
class LayoutAnalysis:
    structure: LayoutStructure
    sections: tuple[LayoutSection, ...]
    whitespace: float
    alignment: TextAlignment


class IssueType(str, Enum):
    COLOR = "color"
    TYPOGRAPHY = "typography"
    LAYOUT = "layout"
    SPACING = "spacing"
    ALIGNMENT = "alignment"
    CONTRAST = "contrast"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class DesignIssue:
    type: IssueType
    severity: Severity
    description: str
    location: Rect | None = None

    @property
    def significant(self) -> bool:
        return self.severity in (Severity.MEDIUM, Severity.HIGH)


@dataclass(frozen=True)
class QualityScore:
    overall: int
    color: int
    typography: int
    layout: int
    visuals: int


@dataclass(frozen=True)
class DocumentMetadata:
    dimensions: Size
    file_size: int
    has_images: bool = False
    image_count: int = 0
    page_count: int | None = None


@dataclass(frozen=True)
class PageMargins:
    top: float
    right: float
    bottom: float
    left: float
    consistency: float


@dataclass(frozen=True)
class SpacingMetrics:
    line_height: float
    paragraph_spacing: float
    element_spacing: float
    consistency: float


@dataclass(frozen=True)
class GridFindings:
    has_grid: bool
    columns: int = 0
    gutters: float = 0.0
    baseline: float = 0.0


@dataclass(frozen=True)
class LayoutFindings:
    structure: LayoutStructure
    sections: tuple[LayoutSection, ...]
    margins: PageMargins
    spacing: SpacingMetrics
    grid: GridFindings
    alignment: TextAlignment
    alignment_score: float
    whitespace: float
    balance_score: float


class Temperature(str, Enum):
    WARM = "warm"
    COOL = "cool"
    NEUTRAL = "neutral"


class ColorSaturation(str, Enum):
    MUTED = "muted"
    MODERATE = "moderate"
    VIBRANT = "vibrant"


@dataclass(frozen=True)
class DocumentPalette:
    primary: str
    secondary: str
    accent: str
    background: str
    text: str
    neutrals: tuple[str, ...] = ()


@dataclass(frozen=True)
class ContrastIssue:
    foreground: str
    background: str
    ratio: float
    passes_aa: bool
    passes_aaa: bool
    location: str = ""


@dataclass(frozen=True)
class ColorFindings:
    dominant_colors: tuple[str, ...]
    palette: DocumentPalette
    harmony: HarmonyType
    contrast_score: float
    contrast_issues: tuple[ContrastIssue, ...]
    temperature: Temperature
    saturation: ColorSaturation


@dataclass(frozen=True)
class TypographyFindings:
    font_count: int
    families: tuple[str, ...]
    size_count: int
    size_ratios: tuple[float, ...]
    line_length: float
    line_height: float
    pairing_score: float
    readability: float
    consistency: float
    hierarchy_levels: int
    clarity: float


class ScanPath(str, Enum):
    F_PATTERN = "f-pattern"
    Z_PATTERN = "z-pattern"
    CIRCULAR = "circular"
    CHAOTIC = "chaotic"


@dataclass(frozen=True)
class HierarchyLevel:
    importance: float
    elements: tuple[str, ...]
    visual_weight: float


@dataclass(frozen=True)
class HierarchyFindings:
    levels: tuple[HierarchyLevel, ...]
    scan_path: ScanPath
    flow_score: float
    emphasis_balance: float


@dataclass(frozen=True)
class EngagementFindings:
    visual_appeal: float
    readability: float
    professional_score: float
    energy: float
    trust: float
    creativity: float
    predicted_engagement: float


@dataclass(frozen=True)
class DetailedAnalysis:
    layout: LayoutFindings
    color: ColorFindings
    typography: TypographyFindings
    hierarchy: HierarchyFindings
    engagement: EngagementFindings


@dataclass(frozen=True)
class InitialAnalysisResult:
    extracted_text: ExtractedText
    layout_analysis: LayoutAnalysis
    design_issues: tuple[DesignIssue, ...]
    current_score: QualityScore
    metadata: DocumentMetadata
    detailed: DetailedAnalysis
    document_type: DocumentType = DocumentType.GENERAL

    def issues_of(self, *types: IssueType) -> tuple[DesignIssue, ...]:
        return tuple(issue for issue in self.design_issues if issue.type in types)


# Enhancement plan


class Approach(str, Enum):
    SUBTLE = "subtle"
    MODERATE = "moderate"
    DRAMATIC = "dramatic"


class Dimension(str, Enum):
    COLOR = "color"
    TYPOGRAPHY = "typography"
    LAYOUT = "layout"
    VISUALS = "visuals"


@dataclass(frozen=True)
class Strategy:
    approach: Approach
    priority: tuple[Dimension, ...]
    estimated_impact: float


class ColorMood(str, Enum):
    VIBRANT = "vibrant"
    PROFESSIONAL = "professional"
    PLAYFUL = "playful"
    ELEGANT = "elegant"
    TECHNICAL = "technical"


class SaturationLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TypePersonality(str, Enum):
    MODERN = "modern"
    CLASSIC = "classic"
    FRIENDLY = "friendly"
    SERIOUS = "serious"
    CREATIVE = "creative"


class Formality(str, Enum):
    FORMAL = "formal"
    SEMI_FORMAL = "semi-formal"
    CASUAL = "casual"


class LayoutDensity(str, Enum):
    SPACIOUS = "spacious"
    BALANCED = "balanced"
    COMPACT = "compact"


class Arrangement(str, Enum):
    GRID = "grid"
    ASYMMETRIC = "asymmetric"
    ORGANIC = "organic"


class VisualStyle(str, Enum):
    MINIMALIST = "minimalist"
    DECORATIVE = "decorative"
    ILLUSTRATIVE = "illustrative"
    PHOTOGRAPHIC = "photographic"


class VisualQuantity(str, Enum):
    MINIMAL = "minimal"
    MODERATE = "moderate"
    RICH = "rich"


@dataclass(frozen=True)
class StyleProfile:
    mood: ColorMood
    temperature: Temperature
    saturation: SaturationLevel
    personality: TypePersonality
    formality: Formality
    density: LayoutDensity
    arrangement: Arrangement
    visual_style: VisualStyle
    visual_quantity: VisualQuantity

    def with_changes(self, **changes: object) -> "StyleProfile":
        return replace(self, **changes)  # type: ignore[arg-type]


@dataclass(frozen=True)
class ColorAdjustment:
    target: str
    from_color: str
    to_color: str
    reason: str


@dataclass(frozen=True)
class ColorEnhancements:
    primary_color: str
    secondary_color: str
    accent_color: str
    background_color: str
    text_color: str
    adjustments: tuple[ColorAdjustment, ...] = ()


@dataclass(frozen=True)
class FontSelection:
    family: str
    weight: int = 400
    style: str = "normal"
    fallback: tuple[str, ...] = ()


@dataclass(frozen=True)
class TypeSizes:
    h1: int
    h2: int
    h3: int
    body: int
    caption: int


@dataclass(frozen=True)
class TypographyEnhancements:
    heading_font: FontSelection
    body_font: FontSelection
    sizes: TypeSizes
    line_height: float
    letter_spacing: float


@dataclass(frozen=True)
class GridSpec:
    columns: int
    gutter: int
    margin: int


@dataclass(frozen=True)
class PlannedSection:
    id: str
    type: SectionType
    new_bounds: Rect
    modifications: tuple[str, ...] = ()


@dataclass(frozen=True)
class WhitespaceAdjustment:
    area: str
    value: float
    unit: str = "px"


@dataclass(frozen=True)
class LayoutEnhancements:
    grid: GridSpec
    sections: tuple[PlannedSection, ...]
    whitespace_adjustments: tuple[WhitespaceAdjustment, ...]


class BackgroundStyle(str, Enum):
    GRADIENT = "gradient"
    PATTERN = "pattern"
    IMAGE = "image"
    SOLID = "solid"


class DecorationType(str, Enum):
    ICON = "icon"
    SHAPE = "shape"
    BORDER = "border"
    DIVIDER = "divider"


class DecorationPlacement(str, Enum):
    RANDOM = "random"
    GRID = "grid"
    EDGES = "edges"
    CORNERS = "corners"


class GraphicType(str, Enum):
    CHART = "chart"
    DIAGRAM = "diagram"
    ILLUSTRATION = "illustration"
    INFOGRAPHIC = "infographic"


@dataclass(frozen=True)
class BackgroundRequirement:
    style: BackgroundStyle
    theme: str
    colors: tuple[str, ...]
    opacity: float


@dataclass(frozen=True)
class DecorativeRequirement:
    type: DecorationType
    style: str
    quantity: int
    placement: DecorationPlacement


@dataclass(frozen=True)
class GraphicRequirement:
    type: GraphicType
    style: str
    width: int = 400
    height: int = 300
    data: dict[str, object] | None = None


@dataclass(frozen=True)
class AssetRequirements:
    backgrounds: tuple[BackgroundRequirement, ...] = ()
    decorative_elements: tuple[DecorativeRequirement, ...] = ()
    educational_graphics: tuple[GraphicRequirement, ...] = ()

    @property
    def empty(self) -> bool:
        return not (self.backgrounds or self.decorative_elements or self.educational_graphics)


@dataclass(frozen=True)
class EnhancementPlan:
    """Strategy plus one sub-plan per prioritized dimension.

    A dimension left out of `strategy.priority` has no sub-plan (`None`).
    """

    strategy: Strategy
    document_type: DocumentType
    style_profile: StyleProfile
    color_enhancements: ColorEnhancements | None = None
    typography_enhancements: TypographyEnhancements | None = None
    layout_enhancements: LayoutEnhancements | None = None
    asset_requirements: AssetRequirements | None = None


# Generated assets


@dataclass(frozen=True)
class GeneratedBackground:
    id: str
    url: str
    style: BackgroundStyle
    width: int
    height: int
    file_size: int
    metadata: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class GeneratedElement:
    id: str
    url: str
    type: DecorationType
    x: float
    y: float
    width: int
    height: int
    file_size: int
    rotation: float = 0.0


@dataclass(frozen=True)
class GeneratedGraphic:
    id: str
    url: str
    type: GraphicType
    width: int
    height: int
    file_size: int
    caption: str = ""
    embed_data: dict[str, object] | None = None


@dataclass(frozen=True)
class GeneratedAssets:
    backgrounds: tuple[GeneratedBackground, ...] = ()
    decorative_elements: tuple[GeneratedElement, ...] = ()
    educational_graphics: tuple[GeneratedGraphic, ...] = ()
    storage_used: int = 0

    @property
    def total_assets(self) -> int:
        return len(self.backgrounds) + len(self.decorative_elements) + len(self.educational_graphics)


# Final composition


@dataclass(frozen=True)
class ScoreChange:
    before: int
    after: int


@dataclass(frozen=True)
class Improvements:
    color: ScoreChange
    typography: ScoreChange
    layout: ScoreChange
    visuals: ScoreChange
    overall: ScoreChange


@dataclass(frozen=True)
class ProcessingTime:
    """Stage durations in milliseconds."""

    analysis: int
    planning: int
    generation: int
    composition: int
    total: int


@dataclass(frozen=True)
class OutputMetadata:
    file_size: int
    format: str
    dimensions: Size
    page_count: int | None = None


@dataclass(frozen=True)
class CompositionResult:
    enhanced_file_url: str
    thumbnail_url: str
    improvements: Improvements
    applied_enhancements: tuple[str, ...]
    processing_time: ProcessingTime
    metadata: OutputMetadata
