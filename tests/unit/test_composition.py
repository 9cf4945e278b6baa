import numpy as np
import pytest

from enhancer.composition.balance import VisualBalanceOptimizer, calculate_visual_weight
from enhancer.composition.blend import blend, blend_channels, suggest_blend_mode
from enhancer.composition.engine import CompositionEngine
from enhancer.composition.layer_manager import LayerManager
from enhancer.composition.models import (
    BlendMode,
    CompositionLayer,
    LayerContent,
    LayerGeometry,
    LayerMetadata,
    LayerType,
)
from enhancer.composition.placement import (
    ArrangeItem,
    ArrangeLayout,
    FlowAlignment,
    Margins,
    PlacementAlignment,
    PlacementConstraints,
    PlacementRequest,
    SmartPlacement,
    arrange_objects,
)
from enhancer.engines.geometry import Rect, Size


def _layer(
    layer_id: str,
    x: float = 0,
    y: float = 0,
    w: float = 100,
    h: float = 100,
    z: int = 0,
    layer_type: LayerType = LayerType.GRAPHIC,
    importance: float = 0.5,
    weight: float | None = None,
    colors: tuple[str, ...] = (),
) -> CompositionLayer:
    return CompositionLayer(
        id=layer_id,
        type=layer_type,
        geometry=LayerGeometry(x=x, y=y, width=w, height=h, z_index=z),
        content=LayerContent(colors=colors),
        metadata=LayerMetadata(importance=importance, visual_weight=weight),
    )


class TestBlend:
    def test_multiply_with_white_is_identity(self) -> None:
        assert blend("#808080", "#FFFFFF", BlendMode.MULTIPLY) == "#808080"

    def test_screen_with_black_is_identity(self) -> None:
        assert blend("#336699", "#000000", BlendMode.SCREEN) == "#336699"

    def test_difference(self) -> None:
        assert blend("#FFFFFF", "#000000", BlendMode.DIFFERENCE) == "#FFFFFF"

    def test_zero_opacity_keeps_base(self) -> None:
        assert blend("#123456", "#FEDCBA", BlendMode.NORMAL, opacity=0.0) == "#123456"

    def test_every_mode_stays_in_range(self) -> None:
        base = np.array([[0.0, 128.0, 255.0]])
        overlay = np.array([[255.0, 0.0, 128.0]])
        for mode in BlendMode:
            result = blend_channels(base, overlay, mode)
            assert result.min() >= 0 and result.max() <= 255, mode

    def test_decoration_suggestion(self) -> None:
        suggestion = suggest_blend_mode(LayerType.DECORATION, "#FFFFFF", "#000000")
        assert suggestion.mode is BlendMode.SOFT_LIGHT
        assert suggestion.opacity == pytest.approx(0.6)

    def test_light_on_light_overlay_multiplies(self) -> None:
        assert suggest_blend_mode(LayerType.OVERLAY, "#FFFFFF", "#EEEEEE").mode is BlendMode.MULTIPLY


class TestLayerManager:
    def test_render_order_follows_z_index(self) -> None:
        manager = LayerManager([_layer("top", z=5), _layer("bottom", z=0), _layer("middle", z=2)])

        assert [layer.id for layer in manager.render_order()] == ["bottom", "middle", "top"]

    def test_equal_z_keeps_insertion_order(self) -> None:
        manager = LayerManager([_layer("a", z=1), _layer("b", z=1)])

        assert [layer.id for layer in manager.render_order()] == ["a", "b"]

    def test_update_z_index_reorders(self) -> None:
        manager = LayerManager([_layer("a", z=0), _layer("b", z=1)])

        manager.update("a", z_index=9)

        assert [layer.id for layer in manager.render_order()] == ["b", "a"]

    def test_update_leaves_old_record_untouched(self) -> None:
        original = _layer("a", x=10)
        manager = LayerManager([original])

        manager.update("a", x=50)

        assert original.geometry.x == 10
        assert manager.get("a").geometry.x == 50  # type: ignore[union-attr]

    def test_reorder_renumbers(self) -> None:
        manager = LayerManager([_layer("a", z=3), _layer("b", z=7)])

        manager.reorder(["b", "a"])

        assert [(layer.id, layer.geometry.z_index) for layer in manager.render_order()] == [("b", 0), ("a", 1)]

    def test_reorder_rejects_unknown_ids(self) -> None:
        manager = LayerManager([_layer("a")])

        with pytest.raises(ValueError, match="Invalid layer IDs"):
            manager.reorder(["a", "ghost"])

    def test_merge_unions_bounds(self) -> None:
        manager = LayerManager([_layer("a", 0, 0, 50, 50, z=1), _layer("b", 100, 100, 50, 50, z=3)])

        merged = manager.merge(["a", "b"], "ab")

        assert merged.geometry.bounds == Rect(0, 0, 150, 150)
        assert merged.geometry.z_index == 3
        assert "a" not in manager and "ab" in manager

    def test_merge_needs_two_layers(self) -> None:
        with pytest.raises(ValueError, match="at least 2 layers"):
            LayerManager([_layer("a")]).merge(["a"], "x")

    def test_group_members(self) -> None:
        manager = LayerManager([_layer("a"), _layer("b"), _layer("c")])

        manager.group(["a", "c"], "icons")

        assert [layer.id for layer in manager.group_members("icons")] == ["a", "c"]


class TestSmartPlacement:
    def test_avoid_overlap_picks_a_clear_spot(self) -> None:
        blocker = _layer("blocker", 200, 100, 200, 200)
        constraints = PlacementConstraints(
            margins=Margins.uniform(20),
            avoid_overlap=True,
            alignment=PlacementAlignment.RULE_OF_THIRDS,
        )

        spot = SmartPlacement.find_optimal_placement(
            PlacementRequest(100, 100), Size(900, 600), [blocker], constraints
        )

        assert spot.overlap == 0
        assert Rect(spot.x, spot.y, 100, 100).overlap_area(blocker.geometry.bounds) == 0

    def test_oversized_object_is_centered(self) -> None:
        spot = SmartPlacement.find_optimal_placement(PlacementRequest(1000, 1000), Size(900, 600))

        assert spot.reasoning.startswith("Centered fallback")

    def test_grid_candidates_respect_margins(self) -> None:
        constraints = PlacementConstraints(margins=Margins.uniform(40), alignment=PlacementAlignment.GRID)

        spot = SmartPlacement.find_optimal_placement(PlacementRequest(100, 80), Size(800, 600), (), constraints)

        assert spot.x >= 40 and spot.y >= 40
        assert spot.x + 100 <= 760 and spot.y + 80 <= 560

    def test_golden_ratio_points(self) -> None:
        constraints = PlacementConstraints(alignment=PlacementAlignment.GOLDEN)

        spot = SmartPlacement.find_optimal_placement(PlacementRequest(100, 100), Size(1000, 600), (), constraints)

        assert spot.reasoning.startswith("Golden ratio point")
        assert round(spot.x + 50) in (382, 618)
        assert round(spot.y + 50) in (229, 371)

    def test_free_placement_prefers_the_center(self) -> None:
        constraints = PlacementConstraints(margins=Margins.uniform(0), alignment=PlacementAlignment.FREE)

        spot = SmartPlacement.find_optimal_placement(PlacementRequest(100, 100), Size(500, 500), (), constraints)

        assert (spot.x, spot.y) == (200, 200)
        assert spot.reasoning == "Free placement"


class TestArrangeObjects:
    def test_flow_places_left_to_right(self) -> None:
        items = [ArrangeItem("a", 100, 50), ArrangeItem("b", 100, 50)]

        positions = arrange_objects(items, Size(500, 400), ArrangeLayout.FLOW, spacing=20)

        assert positions == {"a": (20, 20), "b": (140, 20)}

    def test_flow_wraps_rows(self) -> None:
        items = [ArrangeItem("a", 200, 50), ArrangeItem("b", 200, 60), ArrangeItem("c", 200, 50)]

        positions = arrange_objects(items, Size(500, 400), ArrangeLayout.FLOW, spacing=20)

        assert positions["c"] == (20, 100)

    def test_most_important_first(self) -> None:
        items = [ArrangeItem("minor", 50, 50, 0.1), ArrangeItem("major", 50, 50, 0.9)]

        positions = arrange_objects(items, Size(500, 400), ArrangeLayout.GRID, spacing=10)

        assert positions["major"] == (10, 10)

    def test_grid_uses_square_columns(self) -> None:
        items = [ArrangeItem(name, 50, 50) for name in "abcd"]

        positions = arrange_objects(items, Size(500, 500), ArrangeLayout.GRID, spacing=20)

        assert positions == {"a": (20, 20), "b": (260, 20), "c": (20, 260), "d": (260, 260)}

    def test_masonry_fills_the_shortest_column(self) -> None:
        items = [
            ArrangeItem("a", 200, 100, 0.9),
            ArrangeItem("b", 200, 50, 0.8),
            ArrangeItem("c", 200, 50, 0.7),
            ArrangeItem("d", 200, 80, 0.6),
        ]

        positions = arrange_objects(items, Size(620, 800), ArrangeLayout.MASONRY, spacing=20)

        assert positions["a"] == (20, 20)
        assert positions["c"] == (460, 20)
        assert positions["d"] == (240, 90)

    def test_radial_circles_the_center(self) -> None:
        items = [ArrangeItem(name, 20, 20) for name in "abcd"]

        positions = arrange_objects(items, Size(400, 400), ArrangeLayout.RADIAL)

        assert positions["a"] == pytest.approx((310, 190))
        assert positions["b"] == pytest.approx((190, 310))
        assert positions["c"] == pytest.approx((70, 190))

    def test_justify_spreads_row_to_both_margins(self) -> None:
        items = [ArrangeItem(name, 100, 50) for name in "abc"]

        positions = arrange_objects(
            items, Size(500, 400), ArrangeLayout.FLOW, spacing=20, alignment=FlowAlignment.JUSTIFY
        )

        assert positions == {"a": (20, 20), "b": (200, 20), "c": (380, 20)}

    def test_justify_leaves_single_item_rows(self) -> None:
        positions = arrange_objects(
            [ArrangeItem("a", 100, 50)], Size(500, 400), ArrangeLayout.FLOW, spacing=20, alignment=FlowAlignment.JUSTIFY
        )

        assert positions == {"a": (20, 20)}


class TestVisualBalance:
    def test_explicit_weight_wins(self) -> None:
        assert calculate_visual_weight(_layer("a", weight=7)) == 7

    def test_weight_from_area_and_type(self) -> None:
        assert calculate_visual_weight(_layer("a", layer_type=LayerType.TEXT)) == pytest.approx(1.5)

    def test_centered_layer_is_balanced(self) -> None:
        balance = VisualBalanceOptimizer.calculate_balance([_layer("a", 450, 250)], Size(1000, 600))

        assert balance.overall == pytest.approx(1.0)

    def test_left_heavy_suggests_right_side(self) -> None:
        balance = VisualBalanceOptimizer.calculate_balance([_layer("a", 0, 250)], Size(1000, 600))

        assert balance.horizontal < 0.7
        assert any("right side" in s for s in balance.suggestions)

    def test_balanced_layout_needs_no_adjustment(self) -> None:
        adjustments = VisualBalanceOptimizer.optimize_balance([_layer("a", 450, 250)], Size(1000, 600))

        assert adjustments == ()

    def test_corner_layer_is_moved_toward_center(self) -> None:
        adjustments = VisualBalanceOptimizer.optimize_balance([_layer("b", 0, 0, 20, 20)], Size(200, 200))

        assert adjustments[0].layer_id == "b"
        assert (adjustments[0].dx, adjustments[0].dy) == (20, 20)

    def test_important_layers_are_not_moved(self) -> None:
        adjustments = VisualBalanceOptimizer.optimize_balance(
            [_layer("b", 0, 0, 20, 20, importance=0.9)], Size(200, 200)
        )

        assert adjustments == ()


class TestCompositionEngine:
    def test_applies_one_adjustment_per_layer(self) -> None:
        layer = _layer("b", 0, 0, 20, 20)

        composition = CompositionEngine().compose([layer], Size(200, 200), optimize_balance=True, target_balance=0.9)

        assert composition.optimizations_applied == ("Adjusted b for balance",)
        assert composition.layers[0].geometry.x == 20
        assert layer.geometry.x == 0

    def test_stops_once_target_balance_is_reached(self) -> None:
        # each move alone centers the mass; both together overshoot it
        layers = [_layer("a", 70, 90, 20, 20, weight=1), _layer("b", 90, 90, 20, 20, weight=1)]

        composition = CompositionEngine().compose(layers, Size(200, 200), optimize_balance=True, target_balance=0.99)

        assert len(composition.adjustments) >= 2
        assert composition.optimizations_applied == ("Adjusted a for balance",)
        assert composition.balance.overall == pytest.approx(1.0)

    def test_rejects_adjustment_that_no_longer_helps(self) -> None:
        layers = [_layer("a", 70, 90, 20, 20, weight=1), _layer("b", 90, 90, 20, 20, weight=1)]

        composition = CompositionEngine().compose(layers, Size(200, 200), optimize_balance=True, target_balance=1.01)

        by_id = {layer.id: layer for layer in composition.layers}
        assert composition.optimizations_applied == ("Adjusted a for balance",)
        assert by_id["a"].geometry.x == 90
        assert by_id["b"].geometry.x == 90

    def test_auto_blend_modes(self) -> None:
        layers = [
            _layer("bg", layer_type=LayerType.BACKGROUND, colors=("#FFFFFF",), z=0),
            _layer("deco", layer_type=LayerType.DECORATION, z=1),
        ]

        composition = CompositionEngine().compose(layers, Size(100, 100), auto_blend_modes=True)

        deco = composition.layers[1]
        assert deco.geometry.blend_mode is BlendMode.SOFT_LIGHT
        assert composition.layers[0].geometry.blend_mode is BlendMode.NORMAL
        assert set(composition.blend_modes_used) == {BlendMode.NORMAL, BlendMode.SOFT_LIGHT}
        assert composition.total_layers == 2
