import pytest

from enhancer.analysis.responses import (
    DEFAULT_ACCENT,
    build_color_findings,
    build_engagement_findings,
    build_hierarchy_findings,
    build_layout_findings,
    build_typography_findings,
    margin_consistency,
    readability_score,
    scan_path_from,
)
from enhancer.engines.color import HarmonyType
from enhancer.engines.geometry import Rect
from enhancer.pipeline.models import LayoutStructure, ScanPath, SectionType, TextAlignment


class TestLayoutFindings:
    def test_defaults_for_empty_answer(self) -> None:
        findings = build_layout_findings({})

        assert findings.structure is LayoutStructure.SINGLE_COLUMN
        assert findings.alignment is TextAlignment.LEFT
        assert findings.margins.consistency == 100
        assert findings.alignment_score == 75
        assert findings.whitespace == 20
        assert findings.grid.has_grid is False

    def test_valid_zero_is_kept(self) -> None:
        assert build_layout_findings({"whitespace": {"percentage": 0}}).whitespace == 0

    def test_out_of_range_is_clamped(self) -> None:
        assert build_layout_findings({"balance": {"overall": 150}}).balance_score == 100

    def test_wrong_types_fall_back(self) -> None:
        findings = build_layout_findings({"structure": 7, "alignment": "left", "spacing": {"consistency_score": "high"}})

        assert findings.structure is LayoutStructure.SINGLE_COLUMN
        assert findings.spacing.consistency == 75

    def test_sections(self) -> None:
        raw = {
            "structure": "Multi-Column",
            "sections": [
                {"type": "header", "bounds": {"x": 0, "y": 0, "width": 100, "height": 15}},
                {"type": "poster", "bounds": {"x": "left"}},
            ],
        }

        findings = build_layout_findings(raw)

        assert findings.structure is LayoutStructure.MULTI_COLUMN
        assert findings.sections[0].type is SectionType.HEADER
        assert findings.sections[0].bounds == Rect(0, 0, 100, 15)
        assert findings.sections[1].type is SectionType.CONTENT
        assert findings.sections[1].bounds == Rect(0, 0, 100, 100)

    def test_margin_consistency(self) -> None:
        assert margin_consistency([10, 30, 10, 30]) == pytest.approx(98)
        assert margin_consistency([0, 0, 0, 0]) == 100


class TestColorFindings:
    def test_measured_dominant_color_is_the_fallback(self) -> None:
        findings = build_color_findings({"palette": {"primary": "blue"}}, "#1e40af")

        assert findings.dominant_colors == ("#1E40AF",)
        assert findings.palette.primary == "#1E40AF"
        assert findings.palette.accent == DEFAULT_ACCENT
        assert findings.harmony is HarmonyType.MONOCHROMATIC

    def test_contrast_ratio_is_measured(self) -> None:
        raw = {"contrast": {"issues": [{"foreground": "#777777", "background": "#FFFFFF", "ratio": 21}]}}

        issue = build_color_findings(raw, "#FFFFFF").contrast_issues[0]

        assert issue.ratio == pytest.approx(4.48, abs=0.01)
        assert issue.passes_aa is False

    def test_harmony_from_dominant_colors(self) -> None:
        findings = build_color_findings({"dominant_colors": ["#FF0000", "#00FFFF"]}, "#FFFFFF")

        assert findings.harmony is HarmonyType.COMPLEMENTARY


class TestTypographyFindings:
    def test_defaults(self) -> None:
        findings = build_typography_findings({})

        assert findings.font_count == 1
        assert findings.readability == 94
        assert findings.consistency == 100

    def test_readability_penalties(self) -> None:
        assert readability_score(5, 100, 2.5, 80) == 52

    def test_consistency_drops_with_uneven_ratios(self) -> None:
        findings = build_typography_findings({"sizes": {"ratios": [1.0, 2.0], "count": 7}})

        assert findings.consistency == 55


class TestHierarchyAndEngagement:
    @pytest.mark.parametrize(
        ("pattern", "expected"),
        [
            (None, ScanPath.F_PATTERN),
            ("Classic F pattern", ScanPath.F_PATTERN),
            ("z-pattern", ScanPath.Z_PATTERN),
            ("circular flow", ScanPath.CIRCULAR),
            ("all over the place", ScanPath.CHAOTIC),
        ],
    )
    def test_scan_path(self, pattern: object, expected: ScanPath) -> None:
        assert scan_path_from(pattern) is expected

    def test_default_levels(self) -> None:
        assert len(build_hierarchy_findings({}).levels) == 2

    def test_booleans_are_not_numbers(self) -> None:
        assert build_engagement_findings({"visual_appeal": True}).visual_appeal == 70
