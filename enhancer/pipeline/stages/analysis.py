"""Initial analysis: what the document looks like and what is wrong with it."""

from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from enhancer.analysis.analyzer import Analyzer, Prompt
from enhancer.analysis.exceptions import AnalysisError
from enhancer.analysis.responses import (
    build_color_findings,
    build_engagement_findings,
    build_hierarchy_findings,
    build_layout_findings,
    build_typography_findings,
)
from enhancer.documents.loader import DocumentLoader, LoadedDocument
from enhancer.engines.color import HarmonyType
from enhancer.logging.logger import Log
from enhancer.pipeline.cancellation import CancellationToken, check_cancelled
from enhancer.pipeline.models import (
    DesignIssue,
    DetailedAnalysis,
    DocumentMetadata,
    DocumentType,
    ExtractedText,
    InitialAnalysisResult,
    IssueType,
    LayoutAnalysis,
    LayoutStructure,
    PipelineContext,
    QualityScore,
    ScanPath,
    Severity,
)
from enhancer.storage.base import BaseStorage

VISION_PROMPTS = (
    Prompt.LAYOUT_ANALYSIS,
    Prompt.COLOR_ANALYSIS,
    Prompt.TYPOGRAPHY_ANALYSIS,
    Prompt.HIERARCHY_ANALYSIS,
    Prompt.ENGAGEMENT_ANALYSIS,
)

SEVERITY_PENALTIES: dict[Severity, float] = {
    Severity.HIGH: 15.0,
    Severity.MEDIUM: 8.0,
    Severity.LOW: 3.0,
}
MAX_CATEGORY_PENALTY = 40.0
MIN_CATEGORY_SCORE = 20.0
_HARMONIOUS = frozenset({HarmonyType.COMPLEMENTARY, HarmonyType.ANALOGOUS, HarmonyType.TRIADIC})

DOCUMENT_KEYWORDS: dict[DocumentType, tuple[str, ...]] = {
    DocumentType.EDUCATIONAL: (
        "lesson", "worksheet", "exercise", "quiz", "test", "homework",
        "student", "teacher", "learn", "practice", "answer", "question",
    ),
    DocumentType.PRESENTATION: (
        "slide", "agenda", "overview", "summary", "conclusion", "objectives", "goals",
    ),
    DocumentType.MARKETING: (
        "sale", "offer", "discount", "buy", "shop", "deal", "promotion", "new",
        "exclusive", "limited",
    ),
    DocumentType.BUSINESS: (
        "report", "analysis", "strategy", "financial", "quarterly", "revenue",
        "growth", "metrics",
    ),
    DocumentType.CREATIVE: (
        "design", "art", "creative", "inspiration", "portfolio", "showcase", "gallery",
    ),
    DocumentType.TECHNICAL: (
        "technical", "specification", "documentation", "api", "code",
        "implementation", "architecture",
    ),
}
MIN_DOCUMENT_TYPE_SCORE = 2


class InitialAnalysisStage:
    """Downloads the document, asks the vision model about it and scores it.

    Each of the five vision prompts degrades to its documented defaults when
    the AI call or its JSON fails; only download and decode errors propagate.
    """

    def __init__(
        self,
        *,
        analyzer: Analyzer,
        storage: BaseStorage,
        loader: DocumentLoader,
        max_workers: int = len(VISION_PROMPTS),
    ) -> None:
        self._analyzer = analyzer
        self._storage = storage
        self._loader = loader
        self._max_workers = max(1, max_workers)

    def run(
        self,
        context: PipelineContext,
        cancel_token: CancellationToken | None = None,
    ) -> InitialAnalysisResult:
        check_cancelled(cancel_token)
        data = self._storage.download(context.original_file_url)
        check_cancelled(cancel_token)
        Log.info(f"Downloaded {len(data)} bytes for document {context.document_id}")

        document = self._loader.load(data, context.file_type)
        answers = self._ask_all(document.page_png, cancel_token)
        detailed = DetailedAnalysis(
            layout=build_layout_findings(answers[Prompt.LAYOUT_ANALYSIS]),
            color=build_color_findings(answers[Prompt.COLOR_ANALYSIS], document.dominant_color),
            typography=build_typography_findings(answers[Prompt.TYPOGRAPHY_ANALYSIS]),
            hierarchy=build_hierarchy_findings(answers[Prompt.HIERARCHY_ANALYSIS]),
            engagement=build_engagement_findings(answers[Prompt.ENGAGEMENT_ANALYSIS]),
        )
        return build_analysis_result(document, detailed)

    def _ask_all(
        self,
        page_png: bytes,
        cancel_token: CancellationToken | None,
    ) -> dict[Prompt, Mapping[str, Any]]:
        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            answers = list(
                executor.map(lambda prompt: self._ask(prompt, page_png, cancel_token), VISION_PROMPTS)
            )
        return dict(zip(VISION_PROMPTS, answers))

    def _ask(
        self,
        prompt: Prompt,
        page_png: bytes,
        cancel_token: CancellationToken | None,
    ) -> Mapping[str, Any]:
        try:
            return self._analyzer.analyze_image(prompt, page_png, cancel_token)
        except AnalysisError as exc:
            Log.warning(f"{prompt.value} failed, using defaults: {exc}")
            return {}


def build_analysis_result(document: LoadedDocument, detailed: DetailedAnalysis) -> InitialAnalysisResult:
    issues = detect_design_issues(detailed)
    layout = detailed.layout
    return InitialAnalysisResult(
        extracted_text=document.extracted_text,
        layout_analysis=LayoutAnalysis(
            structure=layout.structure,
            sections=layout.sections,
            whitespace=layout.whitespace,
            alignment=layout.alignment,
        ),
        design_issues=issues,
        current_score=score_document(detailed, issues),
        metadata=document.metadata,
        detailed=detailed,
        document_type=detect_document_type(
            document.extracted_text, document.metadata, detailed, layout.structure
        ),
    )


def _below(score: float, threshold: float = 70, severe: float = 50) -> Severity | None:
    if score >= threshold:
        return None
    return Severity.HIGH if score < severe else Severity.MEDIUM


def detect_design_issues(detailed: DetailedAnalysis) -> tuple[DesignIssue, ...]:
    """Rule-based issues, each rule reading one measured property."""
    layout = detailed.layout
    color = detailed.color
    typography = detailed.typography
    hierarchy = detailed.hierarchy
    issues: list[DesignIssue] = []

    def add(issue_type: IssueType, severity: Severity | None, description: str) -> None:
        if severity is not None:
            issues.append(DesignIssue(issue_type, severity, description))

    add(
        IssueType.ALIGNMENT,
        _below(layout.alignment_score),
        "Elements are not properly aligned to a consistent grid",
    )
    add(IssueType.LAYOUT, _below(layout.balance_score), "Document layout lacks visual balance")
    if layout.margins.consistency < 70:
        add(IssueType.SPACING, Severity.MEDIUM, "Inconsistent margins throughout the document")
    add(IssueType.SPACING, _below(layout.spacing.consistency), "Inconsistent spacing between elements")

    if color.harmony is HarmonyType.CHAOTIC:
        add(IssueType.COLOR, Severity.HIGH, "Color palette lacks harmony and cohesion")
    for contrast in color.contrast_issues:
        if contrast.passes_aa:
            continue
        add(
            IssueType.CONTRAST,
            Severity.HIGH if contrast.ratio < 3 else Severity.MEDIUM,
            f"Poor contrast ratio ({contrast.ratio:.1f}:1) between foreground and background colors",
        )

    if typography.font_count > 3:
        add(
            IssueType.TYPOGRAPHY,
            Severity.HIGH if typography.font_count > 4 else Severity.MEDIUM,
            f"Too many font families used ({typography.font_count}). Recommended maximum is 3.",
        )
    add(
        IssueType.TYPOGRAPHY,
        _below(typography.readability),
        "Typography choices negatively impact readability",
    )
    if typography.consistency < 70:
        add(IssueType.TYPOGRAPHY, Severity.MEDIUM, "Inconsistent typography sizing and spacing")

    add(IssueType.LAYOUT, _below(hierarchy.flow_score), "Document lacks clear visual flow and reading path")
    if hierarchy.scan_path is ScanPath.CHAOTIC:
        add(
            IssueType.LAYOUT,
            Severity.HIGH,
            "No clear scanning pattern - information is presented chaotically",
        )
    if typography.clarity < 70:
        add(
            IssueType.TYPOGRAPHY,
            Severity.MEDIUM,
            "Visual hierarchy is unclear - headings and body text lack sufficient differentiation",
        )

    if layout.whitespace < 15:
        add(
            IssueType.SPACING,
            Severity.HIGH,
            "Document is too dense - insufficient whitespace for visual breathing room",
        )
    elif layout.whitespace > 50:
        add(
            IssueType.SPACING,
            Severity.MEDIUM,
            "Excessive whitespace - document feels empty or unfinished",
        )
    return tuple(issues)


def _clamp_score(value: float) -> int:
    return max(0, min(100, round(value)))


def score_document(detailed: DetailedAnalysis, issues: tuple[DesignIssue, ...]) -> QualityScore:
    """Category scores from the findings, lowered by the issues found.

    Each category loses at most 40 points to issues and never drops below
    20. Layout-family issues cost the visual score half as much again.
    """
    layout = detailed.layout
    color = detailed.color
    typography = detailed.typography
    hierarchy = detailed.hierarchy
    engagement = detailed.engagement

    harmony = 85.0
    if color.harmony is HarmonyType.CHAOTIC:
        harmony -= 25
    elif color.harmony in _HARMONIOUS:
        harmony += 5
    color_score = harmony * 0.6 + color.contrast_score * 0.4

    typography_score = (
        typography.readability * 0.5 + typography.consistency * 0.3 + typography.clarity * 0.2
    )

    layout_score = (
        layout.alignment_score * 0.3
        + layout.balance_score * 0.3
        + hierarchy.flow_score * 0.2
        + layout.spacing.consistency * 0.2
    )
    if 20 <= layout.whitespace <= 40:
        layout_score = min(100.0, layout_score + 5)

    visual_score = (
        engagement.visual_appeal * 0.4
        + hierarchy.emphasis_balance * 0.3
        + engagement.professional_score * 0.3
    )

    penalties = {"color": 0.0, "typography": 0.0, "layout": 0.0, "visual": 0.0}
    for issue in issues:
        penalty = SEVERITY_PENALTIES[issue.severity]
        if issue.type in (IssueType.COLOR, IssueType.CONTRAST):
            penalties["color"] += penalty
        elif issue.type is IssueType.TYPOGRAPHY:
            penalties["typography"] += penalty
        else:
            penalties["layout"] += penalty
            penalties["visual"] += penalty * 0.5

    def penalize(score: float, key: str) -> float:
        return max(MIN_CATEGORY_SCORE, score - min(MAX_CATEGORY_PENALTY, penalties[key]))

    color_score = penalize(color_score, "color")
    typography_score = penalize(typography_score, "typography")
    layout_score = penalize(layout_score, "layout")
    visual_score = penalize(visual_score, "visual")

    overall = (
        color_score * 0.2 + typography_score * 0.25 + layout_score * 0.3 + visual_score * 0.25
    )
    return QualityScore(
        overall=_clamp_score(overall),
        color=_clamp_score(color_score),
        typography=_clamp_score(typography_score),
        layout=_clamp_score(layout_score),
        visuals=_clamp_score(visual_score),
    )


def detect_document_type(
    text: ExtractedText,
    metadata: DocumentMetadata,
    detailed: DetailedAnalysis,
    structure: LayoutStructure,
) -> DocumentType:
    """Keyword votes plus structural hints; fewer than two votes means general."""
    content = text.all_text().lower()
    scores = {
        doc_type: sum(1 for keyword in keywords if keyword in content)
        for doc_type, keywords in DOCUMENT_KEYWORDS.items()
    }

    if metadata.page_count is not None and metadata.page_count > 5:
        scores[DocumentType.PRESENTATION] += 3
    if structure is LayoutStructure.GRID and len(text.body_text) < 5:
        scores[DocumentType.EDUCATIONAL] += 2
    if metadata.has_images and metadata.image_count > 3:
        scores[DocumentType.MARKETING] += 2
        scores[DocumentType.CREATIVE] += 2
    if detailed.engagement.professional_score > 85:
        scores[DocumentType.BUSINESS] += 3
    if detailed.engagement.creativity > 70:
        scores[DocumentType.CREATIVE] += 3

    best = DocumentType.GENERAL
    best_score = 0
    for doc_type, score in scores.items():
        if score > best_score:
            best, best_score = doc_type, score
    if best_score < MIN_DOCUMENT_TYPE_SCORE:
        return DocumentType.GENERAL
    return best
