from dataclasses import dataclass, field, replace


@dataclass(frozen=True)
class Rect:
    """Axis-aligned box in canvas pixels."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    def overlap_area(self, other: "Rect") -> float:
        overlap_w = min(self.right, other.right) - max(self.x, other.x)
        overlap_h = min(self.bottom, other.bottom) - max(self.y, other.y)
        if overlap_w <= 0 or overlap_h <= 0:
            return 0.0
        return overlap_w * overlap_h

    def union(self, other: "Rect") -> "Rect":
        left = min(self.x, other.x)
        top = min(self.y, other.y)
        return Rect(
            x=left,
            y=top,
            width=max(self.right, other.right) - left,
            height=max(self.bottom, other.bottom) - top,
        )


@dataclass(frozen=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True)
class LayoutElement:
    """A positioned block the layout engine reasons about.

    `kind` is a free label such as "header", "text", "image" or "section".
    """

    id: str
    kind: str
    bounds: Rect
    z_index: int = 0
    font_weight: int = 400
    metadata: dict[str, object] = field(default_factory=dict)

    def moved(self, **changes: float) -> "LayoutElement":
        return replace(self, bounds=replace(self.bounds, **changes))
