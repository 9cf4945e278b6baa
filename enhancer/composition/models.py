from dataclasses import dataclass, field, replace
from enum import Enum

from enhancer.engines.geometry import Rect


class LayerType(str, Enum):
    BACKGROUND = "background"
    ORIGINAL = "original"
    OVERLAY = "overlay"
    DECORATION = "decoration"
    TEXT = "text"
    GRAPHIC = "graphic"
    EFFECT = "effect"


class BlendMode(str, Enum):
    NORMAL = "normal"
    MULTIPLY = "multiply"
    SCREEN = "screen"
    OVERLAY = "overlay"
    SOFT_LIGHT = "soft-light"
    HARD_LIGHT = "hard-light"
    COLOR_DODGE = "color-dodge"
    COLOR_BURN = "color-burn"
    DARKEN = "darken"
    LIGHTEN = "lighten"
    DIFFERENCE = "difference"
    EXCLUSION = "exclusion"


@dataclass(frozen=True)
class LayerContent:
    """What a layer draws.

    `url` points at a stored asset, `data` holds raw image bytes, `colors`
    describes a procedural fill (one color is solid, more is a gradient) and
    `text` is drawn as a caption.
    """

    url: str | None = None
    data: bytes | None = None
    colors: tuple[str, ...] = ()
    text: str | None = None


@dataclass(frozen=True)
class LayerGeometry:
    x: float
    y: float
    width: float
    height: float
    rotation: float = 0.0
    scale: float = 1.0
    opacity: float = 1.0
    blend_mode: BlendMode = BlendMode.NORMAL
    z_index: int = 0

    @property
    def bounds(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)


@dataclass(frozen=True)
class LayerMetadata:
    importance: float = 0.5
    visual_weight: float | None = None
    semantic_type: str | None = None


@dataclass(frozen=True)
class CompositionLayer:
    id: str
    type: LayerType
    geometry: LayerGeometry
    content: LayerContent = field(default_factory=LayerContent)
    metadata: LayerMetadata = field(default_factory=LayerMetadata)

    def with_geometry(self, **changes: object) -> "CompositionLayer":
        return replace(self, geometry=replace(self.geometry, **changes))

    def with_metadata(self, **changes: object) -> "CompositionLayer":
        return replace(self, metadata=replace(self.metadata, **changes))
