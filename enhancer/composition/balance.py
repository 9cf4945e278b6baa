import math
from collections.abc import Sequence
from dataclasses import dataclass

from enhancer.composition.models import CompositionLayer, LayerType
from enhancer.engines.geometry import Size

TYPE_WEIGHTS = {
    LayerType.TEXT: 1.5,
    LayerType.GRAPHIC: 1.3,
    LayerType.DECORATION: 0.8,
    LayerType.BACKGROUND: 0.3,
    LayerType.EFFECT: 0.5,
    LayerType.ORIGINAL: 1.0,
    LayerType.OVERLAY: 0.7,
}

_POSITION_TRIALS = ((-20, 0), (20, 0), (0, -20), (0, 20), (-20, -20), (20, 20))
_SCALE_TRIALS = (0.9, 1.1)
_MIN_IMPROVEMENT = 0.05
_CLUSTER_DISTANCE = 50


@dataclass(frozen=True)
class VisualBalance:
    horizontal: float
    vertical: float
    radial: float
    overall: float
    center_of_mass: tuple[float, float]
    suggestions: tuple[str, ...]


@dataclass(frozen=True)
class BalanceAdjustment:
    layer_id: str
    improvement: float
    dx: float = 0.0
    dy: float = 0.0
    scale: float = 1.0

    def apply(self, layer: CompositionLayer) -> CompositionLayer:
        g = layer.geometry
        return layer.with_geometry(
            x=g.x + self.dx,
            y=g.y + self.dy,
            width=g.width * self.scale,
            height=g.height * self.scale,
            scale=g.scale * self.scale,
        )


def calculate_visual_weight(layer: CompositionLayer) -> float:
    """Explicit metadata weight wins; otherwise sqrt(area)/100 x opacity x type factor."""
    if layer.metadata.visual_weight:
        return layer.metadata.visual_weight
    g = layer.geometry
    weight = math.sqrt(max(0.0, g.width) * max(0.0, g.height)) / 100
    weight *= min(1.0, max(0.0, g.opacity))
    return weight * TYPE_WEIGHTS.get(layer.type, 1.0)


class VisualBalanceOptimizer:
    @classmethod
    def calculate_balance(cls, layers: Sequence[CompositionLayer], canvas: Size) -> VisualBalance:
        canvas = Size(max(1.0, canvas.width), max(1.0, canvas.height))
        center_x, center_y = canvas.width / 2, canvas.height / 2
        mass_x, mass_y = cls._center_of_mass(layers, canvas)

        horizontal = max(0.0, 1 - abs(mass_x - center_x) / center_x)
        vertical = max(0.0, 1 - abs(mass_y - center_y) / center_y)
        radial = max(0.0, 1 - math.hypot(mass_x - center_x, mass_y - center_y) / math.hypot(center_x, center_y))
        overall = (horizontal + vertical + radial) / 3
        suggestions = cls._suggestions(horizontal, vertical, radial, (mass_x, mass_y), layers, canvas)
        return VisualBalance(horizontal, vertical, radial, overall, (mass_x, mass_y), suggestions)

    @staticmethod
    def _center_of_mass(layers: Sequence[CompositionLayer], canvas: Size) -> tuple[float, float]:
        total = weighted_x = weighted_y = 0.0
        for layer in layers:
            weight = calculate_visual_weight(layer)
            bounds = layer.geometry.bounds
            weighted_x += bounds.center_x * weight
            weighted_y += bounds.center_y * weight
            total += weight
        if total <= 0:
            return canvas.width / 2, canvas.height / 2
        return weighted_x / total, weighted_y / total

    @classmethod
    def _suggestions(
        cls,
        horizontal: float,
        vertical: float,
        radial: float,
        center_of_mass: tuple[float, float],
        layers: Sequence[CompositionLayer],
        canvas: Size,
    ) -> tuple[str, ...]:
        suggestions = []
        if horizontal < 0.7:
            side = "right" if center_of_mass[0] < canvas.width / 2 else "left"
            suggestions.append(f"Add visual weight to the {side} side for better horizontal balance")
        if vertical < 0.7:
            side = "bottom" if center_of_mass[1] < canvas.height / 2 else "top"
            suggestions.append(f"Add visual weight to the {side} for better vertical balance")
        if radial < 0.7:
            suggestions.append("Consider moving elements closer to the center for better radial balance")
        if cls._has_clusters(layers):
            suggestions.append("Elements are clustered - consider spreading them out more evenly")
        empty = cls._empty_quadrants(layers, canvas)
        if empty:
            suggestions.append(f"Consider adding elements to the {', '.join(empty)} quadrant(s)")
        return tuple(suggestions)

    @staticmethod
    def _has_clusters(layers: Sequence[CompositionLayer]) -> bool:
        processed: set[str] = set()
        for layer in layers:
            if layer.id in processed:
                continue
            processed.add(layer.id)
            size = 1
            for other in layers:
                if other.id in processed:
                    continue
                distance = math.hypot(layer.geometry.x - other.geometry.x, layer.geometry.y - other.geometry.y)
                if distance < _CLUSTER_DISTANCE:
                    processed.add(other.id)
                    size += 1
            if size > 2:
                return True
        return False

    @staticmethod
    def _empty_quadrants(layers: Sequence[CompositionLayer], canvas: Size) -> list[str]:
        filled = set()
        for layer in layers:
            bounds = layer.geometry.bounds
            vertical = "top" if bounds.center_y < canvas.height / 2 else "bottom"
            horizontal = "left" if bounds.center_x < canvas.width / 2 else "right"
            filled.add(f"{vertical}-{horizontal}")
        return [q for q in ("top-left", "top-right", "bottom-left", "bottom-right") if q not in filled]

    @classmethod
    def optimize_balance(
        cls,
        layers: Sequence[CompositionLayer],
        canvas: Size,
        target: float = 0.8,
        top_n: int = 5,
    ) -> tuple[BalanceAdjustment, ...]:
        """Rank small moves and rescales that raise overall balance.

        Nothing is applied: each trial swaps one adjusted copy into a new
        tuple, and the best `top_n` adjustments are returned.
        """
        current = cls.calculate_balance(layers, canvas).overall
        if current >= target:
            return ()

        trials: list[BalanceAdjustment] = [
            BalanceAdjustment(layer_id="", improvement=0.0, dx=dx, dy=dy) for dx, dy in _POSITION_TRIALS
        ] + [BalanceAdjustment(layer_id="", improvement=0.0, scale=s) for s in _SCALE_TRIALS]

        found: list[BalanceAdjustment] = []
        for index, layer in enumerate(layers):
            if layer.metadata.importance > 0.8:
                continue
            for trial in trials:
                candidate = trial.apply(layer)
                trial_layers = tuple(layers[:index]) + (candidate,) + tuple(layers[index + 1:])
                improvement = cls.calculate_balance(trial_layers, canvas).overall - current
                if improvement > _MIN_IMPROVEMENT:
                    found.append(
                        BalanceAdjustment(
                            layer_id=layer.id,
                            improvement=improvement,
                            dx=trial.dx,
                            dy=trial.dy,
                            scale=trial.scale,
                        )
                    )
        found.sort(key=lambda a: a.improvement, reverse=True)
        return tuple(found[: max(0, top_n)])
