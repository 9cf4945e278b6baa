import bisect
from collections.abc import Iterable, Sequence

from enhancer.composition.models import (
    BlendMode,
    CompositionLayer,
    LayerContent,
    LayerGeometry,
    LayerMetadata,
    LayerType,
)


class LayerManager:
    """Arena of layers keyed by id plus a render order sorted by z-order.

    Layers are frozen; every change swaps a new record into the arena, so
    callers holding an older layer never observe the update.
    """

    def __init__(self, layers: Iterable[CompositionLayer] = ()) -> None:
        self._layers: dict[str, CompositionLayer] = {}
        self._order: list[str] = []
        for layer in layers:
            self.add(layer)

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, layer_id: object) -> bool:
        return layer_id in self._layers

    def add(self, layer: CompositionLayer) -> None:
        if layer.id in self._layers:
            self.remove(layer.id)
        self._layers[layer.id] = layer
        keys = [self._layers[i].geometry.z_index for i in self._order]
        # equal z-order keeps insertion order
        index = bisect.bisect_right(keys, layer.geometry.z_index)
        self._order.insert(index, layer.id)

    def remove(self, layer_id: str) -> CompositionLayer | None:
        layer = self._layers.pop(layer_id, None)
        if layer is not None:
            self._order.remove(layer_id)
        return layer

    def get(self, layer_id: str) -> CompositionLayer | None:
        return self._layers.get(layer_id)

    def update(self, layer_id: str, **geometry: object) -> CompositionLayer:
        layer = self._layers[layer_id]
        updated = layer.with_geometry(**geometry)
        if updated.geometry.z_index != layer.geometry.z_index:
            self.add(updated)
        else:
            self._layers[layer_id] = updated
        return updated

    def replace(self, layer: CompositionLayer) -> None:
        """Swap in a new version of an existing layer."""
        if layer.id not in self._layers:
            raise KeyError(layer.id)
        self.add(layer)

    def render_order(self) -> tuple[CompositionLayer, ...]:
        return tuple(self._layers[i] for i in self._order)

    def reorder(self, new_order: Sequence[str]) -> None:
        """Apply an explicit order and renumber z-order to match it."""
        if set(new_order) != set(self._layers) or len(new_order) != len(self._layers):
            raise ValueError("Invalid layer IDs in new order")
        self._order = list(new_order)
        for index, layer_id in enumerate(self._order):
            self._layers[layer_id] = self._layers[layer_id].with_geometry(z_index=index)

    def merge(self, layer_ids: Sequence[str], new_id: str) -> CompositionLayer:
        layers = [self._layers[i] for i in layer_ids if i in self._layers]
        if len(layers) < 2:
            raise ValueError("Need at least 2 layers to merge")

        bounds = layers[0].geometry.bounds
        for layer in layers[1:]:
            bounds = bounds.union(layer.geometry.bounds)
        merged = CompositionLayer(
            id=new_id,
            type=LayerType.OVERLAY,
            geometry=LayerGeometry(
                x=bounds.x,
                y=bounds.y,
                width=bounds.width,
                height=bounds.height,
                blend_mode=BlendMode.NORMAL,
                z_index=max(layer.geometry.z_index for layer in layers),
            ),
            content=LayerContent(),
            metadata=LayerMetadata(
                importance=max(layer.metadata.importance for layer in layers),
                visual_weight=sum(layer.metadata.visual_weight or 0.0 for layer in layers),
                semantic_type="merged",
            ),
        )
        for layer in layers:
            self.remove(layer.id)
        self.add(merged)
        return merged

    def group(self, layer_ids: Sequence[str], group_id: str) -> None:
        for layer_id in layer_ids:
            layer = self._layers.get(layer_id)
            if layer is not None:
                self._layers[layer_id] = layer.with_metadata(semantic_type=f"group-{group_id}")

    def group_members(self, group_id: str) -> tuple[CompositionLayer, ...]:
        tag = f"group-{group_id}"
        return tuple(layer for layer in self.render_order() if layer.metadata.semantic_type == tag)
