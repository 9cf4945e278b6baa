from collections.abc import Sequence
from dataclasses import dataclass

from enhancer.composition.balance import BalanceAdjustment, VisualBalance, VisualBalanceOptimizer
from enhancer.composition.blend import suggest_blend_mode
from enhancer.composition.layer_manager import LayerManager
from enhancer.composition.models import BlendMode, CompositionLayer
from enhancer.engines.geometry import Size
from enhancer.logging.logger import Log

_DEFAULT_BASE_COLOR = "#FFFFFF"
_DEFAULT_OVERLAY_COLOR = "#000000"


@dataclass(frozen=True)
class Composition:
    layers: tuple[CompositionLayer, ...]
    balance: VisualBalance
    blend_modes_used: tuple[BlendMode, ...]
    adjustments: tuple[BalanceAdjustment, ...]
    optimizations_applied: tuple[str, ...]

    @property
    def total_layers(self) -> int:
        return len(self.layers)


class CompositionEngine:
    """Orders layers, picks blend modes and nudges layers toward balance.

    Each call works on its own `LayerManager`; the input layers are never
    modified.
    """

    def compose(
        self,
        layers: Sequence[CompositionLayer],
        canvas: Size,
        optimize_balance: bool = False,
        target_balance: float = 0.8,
        auto_blend_modes: bool = False,
    ) -> Composition:
        manager = LayerManager(layers)

        if auto_blend_modes:
            self._apply_auto_blend_modes(manager)

        adjustments: tuple[BalanceAdjustment, ...] = ()
        applied: list[str] = []
        if optimize_balance:
            adjustments = VisualBalanceOptimizer.optimize_balance(
                manager.render_order(), canvas, target=target_balance
            )
            current = VisualBalanceOptimizer.calculate_balance(manager.render_order(), canvas).overall
            seen: set[str] = set()
            for adjustment in adjustments:
                # ranked best first; one adjustment per layer, each judged on the layers as they now stand
                if current >= target_balance:
                    break
                if adjustment.layer_id in seen:
                    continue
                layer = manager.get(adjustment.layer_id)
                if layer is None:
                    continue
                seen.add(adjustment.layer_id)
                manager.replace(adjustment.apply(layer))
                measured = VisualBalanceOptimizer.calculate_balance(manager.render_order(), canvas).overall
                if measured <= current:
                    manager.replace(layer)
                    continue
                current = measured
                applied.append(f"Adjusted {layer.id} for balance")

        final = manager.render_order()
        balance = VisualBalanceOptimizer.calculate_balance(final, canvas)
        modes = tuple(dict.fromkeys(layer.geometry.blend_mode for layer in final))
        Log.debug(
            f"Composed {len(final)} layers: balance={balance.overall:.2f}, "
            f"adjustments={len(applied)}"
        )
        return Composition(
            layers=final,
            balance=balance,
            blend_modes_used=modes,
            adjustments=adjustments,
            optimizations_applied=tuple(applied),
        )

    @staticmethod
    def _apply_auto_blend_modes(manager: LayerManager) -> None:
        ordered = manager.render_order()
        for below, layer in zip(ordered, ordered[1:]):
            if layer.geometry.blend_mode is not BlendMode.NORMAL:
                continue
            base_color = below.content.colors[0] if below.content.colors else _DEFAULT_BASE_COLOR
            overlay_color = layer.content.colors[0] if layer.content.colors else _DEFAULT_OVERLAY_COLOR
            suggestion = suggest_blend_mode(layer.type, base_color, overlay_color)
            manager.update(layer.id, blend_mode=suggestion.mode, opacity=suggestion.opacity)
