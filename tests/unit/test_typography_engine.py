import pytest

from enhancer.engines.typography import (
    Density,
    PairingPurpose,
    PairingStrategy,
    ReadabilityTarget,
    TextPurpose,
    calculate_letter_spacing,
    calculate_line_height,
    calculate_readability_score,
    enhance_readability,
    find_font_pairings,
    fix_spacing,
    generate_typography_system,
    optimize_size_hierarchy,
)


class TestFontPairings:
    def test_sorted_best_first(self) -> None:
        pairings = find_font_pairings("Inter", count=4)
        scores = [p.score for p in pairings]
        assert scores == sorted(scores, reverse=True)
        assert all(p.primary == "Inter" for p in pairings)

    def test_contrast_prefers_other_category(self) -> None:
        best = find_font_pairings("Inter", PairingStrategy.CONTRAST, PairingPurpose.HEADING_BODY, 1)[0]
        assert best.secondary in ("Source Serif Pro", "Merriweather", "Lora")
        assert "create visual contrast" in best.rationale

    def test_unknown_font_gets_defaults(self) -> None:
        pairings = find_font_pairings("Comic Sans MS")
        assert [p.primary for p in pairings] == ["Inter", "Roboto", "Open Sans"]

    def test_scores_capped_at_100(self) -> None:
        for strategy in PairingStrategy:
            for purpose in PairingPurpose:
                assert all(p.score <= 100 for p in find_font_pairings("Playfair Display", strategy, purpose))


class TestSizeHierarchy:
    def test_major_third_from_16(self) -> None:
        scale = optimize_size_hierarchy(16, "major-third")
        assert (scale.h1, scale.h2, scale.h3, scale.h4) == (39, 31, 25, 20)
        assert scale.body == 16
        assert scale.small == 13

    def test_sizes_strictly_descend(self) -> None:
        scale = optimize_size_hierarchy(16, "perfect-fourth")
        assert scale.h1 > scale.h2 > scale.h3 > scale.h4 > scale.body

    def test_max_size_caps_headings(self) -> None:
        scale = optimize_size_hierarchy(40, "golden-ratio", max_size=72)
        assert scale.h1 == 72
        assert scale.h2 == 72

    def test_unknown_scale_falls_back(self) -> None:
        assert optimize_size_hierarchy(16, "nonsense").ratio == pytest.approx(1.25)

    @pytest.mark.parametrize("base", [16, 15.6, 11])
    def test_rescaling_from_base_is_idempotent(self, base: float) -> None:
        scale = optimize_size_hierarchy(base, "perfect-fourth")

        assert optimize_size_hierarchy(scale.base, "perfect-fourth") == scale


class TestSpacing:
    def test_body_line_height(self) -> None:
        assert calculate_line_height(16) == pytest.approx(1.5)

    def test_small_long_serif_text_gets_more_leading(self) -> None:
        assert calculate_line_height(12, 90, "serif") == pytest.approx(1.75)

    def test_heading_is_tighter(self) -> None:
        assert calculate_line_height(32, purpose=TextPurpose.HEADING) == pytest.approx(1.2)

    def test_caps_are_tracked_out(self) -> None:
        assert calculate_letter_spacing(16, purpose=TextPurpose.CAPS) == pytest.approx(0.1)

    def test_bold_large_heading_is_tightened(self) -> None:
        assert calculate_letter_spacing(32, 700, TextPurpose.HEADING) == pytest.approx(-0.03)

    def test_loose_density_adds_tracking(self) -> None:
        assert calculate_letter_spacing(16, density=Density.LOOSE) == pytest.approx(0.02)

    def test_spacious_target_widens_paragraphs(self) -> None:
        comfortable = fix_spacing(16)
        spacious = fix_spacing(16, target=ReadabilityTarget.SPACIOUS)
        assert spacious.paragraph_spacing > comfortable.paragraph_spacing
        assert spacious.word_spacing == pytest.approx(0.05)


class TestReadability:
    def test_ideal_settings_score_100(self) -> None:
        assert calculate_readability_score(16, 1.5, 65, 7) == 100

    def test_score_is_clamped(self) -> None:
        assert calculate_readability_score(8, 3.0, 200, 1) >= 0

    def test_enhance_recommends_fixes(self) -> None:
        review = enhance_readability(12, 1.1, 110)
        assert any("font size" in r for r in review.recommendations)
        assert any("line length" in r for r in review.recommendations)
        assert review.score_after > review.score_before


class TestTypographySystem:
    def test_document_purpose_is_spacious(self) -> None:
        system = generate_typography_system(16, "classic", "document")
        assert system.fonts.heading == "Playfair Display"
        assert system.scale.ratio == pytest.approx(1.2)
        assert system.metrics.word_spacing == pytest.approx(0.05)

    def test_primary_font_overrides_style(self) -> None:
        system = generate_typography_system(primary_font="Lato")
        assert system.fonts.heading == "Lato"
        assert system.fonts.body == "Lato"
