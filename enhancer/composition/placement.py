import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from enhancer.composition.models import CompositionLayer
from enhancer.engines.geometry import Rect, Size

PHI = 1.618033988749895
_GRID_COLUMNS = 12
_GRID_ROWS = 8
_FREE_STEP = 50
_OVERLAP_PENALTY = 50.0
_ZONE_BONUS = 10.0
_BALANCE_FACTOR = 0.3


class PlacementAlignment(str, Enum):
    GRID = "grid"
    GOLDEN = "golden"
    RULE_OF_THIRDS = "rule-of-thirds"
    FREE = "free"


class Zone(str, Enum):
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"
    CENTER = "center"


class ArrangeLayout(str, Enum):
    MASONRY = "masonry"
    GRID = "grid"
    FLOW = "flow"
    RADIAL = "radial"


class FlowAlignment(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    JUSTIFY = "justify"


@dataclass(frozen=True)
class Margins:
    top: float = 20
    right: float = 20
    bottom: float = 20
    left: float = 20

    @classmethod
    def uniform(cls, value: float) -> "Margins":
        return cls(value, value, value, value)


@dataclass(frozen=True)
class PlacementRequest:
    width: float
    height: float
    kind: str = "graphic"
    importance: float = 0.5


@dataclass(frozen=True)
class PlacementConstraints:
    margins: Margins = field(default_factory=Margins)
    avoid_overlap: bool = False
    preferred_zones: tuple[Zone, ...] = ()
    alignment: PlacementAlignment = PlacementAlignment.FREE


@dataclass(frozen=True)
class PlacementCandidate:
    x: float
    y: float
    score: float
    reasoning: str
    overlap: float = 0.0


@dataclass(frozen=True)
class ArrangeItem:
    id: str
    width: float
    height: float
    importance: float = 0.5


class SmartPlacement:
    """Candidate generation and scoring for placing one object on a canvas."""

    @classmethod
    def find_optimal_placement(
        cls,
        obj: PlacementRequest,
        canvas: Size,
        existing: Sequence[CompositionLayer] = (),
        constraints: PlacementConstraints | None = None,
    ) -> PlacementCandidate:
        constraints = constraints or PlacementConstraints()
        canvas = Size(max(1.0, canvas.width), max(1.0, canvas.height))
        obj = PlacementRequest(
            width=max(1.0, obj.width),
            height=max(1.0, obj.height),
            kind=obj.kind,
            importance=obj.importance,
        )
        candidates = cls._generate(constraints.alignment, obj, canvas, constraints.margins)
        if not candidates:
            return cls._fallback(obj, canvas)

        scored = []
        for candidate in candidates:
            box = Rect(candidate.x, candidate.y, obj.width, obj.height)
            score = candidate.score
            overlap = 0.0
            if constraints.avoid_overlap:
                overlap = cls.overlap_penalty(box, existing)
                score -= overlap
            if constraints.preferred_zones:
                score += cls.zone_bonus(box, canvas, constraints.preferred_zones)
            score += cls.balance_score(box, existing, canvas) * _BALANCE_FACTOR
            scored.append(PlacementCandidate(candidate.x, candidate.y, score, candidate.reasoning, overlap))

        pool = scored
        if constraints.avoid_overlap:
            clear = [c for c in scored if c.overlap == 0]
            pool = clear or scored
        return max(pool, key=lambda c: c.score)

    @classmethod
    def _generate(
        cls,
        alignment: PlacementAlignment,
        obj: PlacementRequest,
        canvas: Size,
        margins: Margins,
    ) -> list[PlacementCandidate]:
        if alignment is PlacementAlignment.GRID:
            return cls._grid_candidates(obj, canvas, margins)
        if alignment is PlacementAlignment.GOLDEN:
            return cls._golden_candidates(obj, canvas, margins)
        if alignment is PlacementAlignment.RULE_OF_THIRDS:
            return cls._thirds_candidates(obj, canvas, margins)
        return cls._free_candidates(obj, canvas, margins)

    @staticmethod
    def _fits(x: float, y: float, obj: PlacementRequest, canvas: Size, margins: Margins) -> bool:
        return (
            x >= margins.left
            and y >= margins.top
            and x + obj.width <= canvas.width - margins.right
            and y + obj.height <= canvas.height - margins.bottom
        )

    @classmethod
    def _grid_candidates(cls, obj: PlacementRequest, canvas: Size, margins: Margins) -> list[PlacementCandidate]:
        cell_width = (canvas.width - margins.left - margins.right) / _GRID_COLUMNS
        cell_height = (canvas.height - margins.top - margins.bottom) / _GRID_ROWS
        candidates = []
        for row in range(_GRID_ROWS):
            for col in range(_GRID_COLUMNS):
                x = margins.left + col * cell_width
                y = margins.top + row * cell_height
                if cls._fits(x, y, obj, canvas, margins):
                    distance = abs(col - _GRID_COLUMNS / 2) + abs(row - _GRID_ROWS / 2)
                    candidates.append(
                        PlacementCandidate(x, y, 0.8 - distance * 0.05, f"Grid position ({col}, {row})")
                    )
        return candidates

    @classmethod
    def _golden_candidates(cls, obj: PlacementRequest, canvas: Size, margins: Margins) -> list[PlacementCandidate]:
        w, h = canvas.width, canvas.height
        points = (
            (w / PHI, h / PHI),
            (w - w / PHI, h / PHI),
            (w / PHI, h - h / PHI),
            (w - w / PHI, h - h / PHI),
        )
        candidates = []
        for index, (px, py) in enumerate(points, start=1):
            x, y = px - obj.width / 2, py - obj.height / 2
            if cls._fits(x, y, obj, canvas, margins):
                candidates.append(PlacementCandidate(x, y, 0.95, f"Golden ratio point {index}"))
        return candidates

    @classmethod
    def _thirds_candidates(cls, obj: PlacementRequest, canvas: Size, margins: Margins) -> list[PlacementCandidate]:
        candidates = []
        index = 0
        for i in (1, 2):
            for j in (1, 2):
                index += 1
                x = canvas.width / 3 * i - obj.width / 2
                y = canvas.height / 3 * j - obj.height / 2
                if cls._fits(x, y, obj, canvas, margins):
                    candidates.append(PlacementCandidate(x, y, 0.9, f"Rule of thirds intersection {index}"))
        return candidates

    @classmethod
    def _free_candidates(cls, obj: PlacementRequest, canvas: Size, margins: Margins) -> list[PlacementCandidate]:
        center_x, center_y = canvas.width / 2, canvas.height / 2
        max_distance = math.hypot(center_x, center_y)
        candidates = []
        x = margins.left
        while x <= canvas.width - margins.right - obj.width:
            y = margins.top
            while y <= canvas.height - margins.bottom - obj.height:
                distance = math.hypot(x + obj.width / 2 - center_x, y + obj.height / 2 - center_y)
                candidates.append(PlacementCandidate(x, y, 0.7 * (1 - distance / max_distance), "Free placement"))
                y += _FREE_STEP
            x += _FREE_STEP
        return candidates

    @staticmethod
    def _fallback(obj: PlacementRequest, canvas: Size) -> PlacementCandidate:
        x = max(0.0, (canvas.width - obj.width) / 2)
        y = max(0.0, (canvas.height - obj.height) / 2)
        return PlacementCandidate(x, y, 0.0, "Centered fallback (object does not fit inside margins)")

    @staticmethod
    def overlap_penalty(box: Rect, layers: Sequence[CompositionLayer]) -> float:
        penalty = 0.0
        for layer in layers:
            overlap = box.overlap_area(layer.geometry.bounds)
            if overlap > 0:
                penalty += overlap / box.area * _OVERLAP_PENALTY
        return penalty

    @staticmethod
    def zone_bonus(box: Rect, canvas: Size, zones: Sequence[Zone]) -> float:
        bonus = 0.0
        for zone in zones:
            if zone is Zone.TOP and box.center_y < canvas.height / 3:
                bonus += _ZONE_BONUS
            elif zone is Zone.BOTTOM and box.center_y > canvas.height * 2 / 3:
                bonus += _ZONE_BONUS
            elif zone is Zone.LEFT and box.center_x < canvas.width / 3:
                bonus += _ZONE_BONUS
            elif zone is Zone.RIGHT and box.center_x > canvas.width * 2 / 3:
                bonus += _ZONE_BONUS
            elif zone is Zone.CENTER:
                distance = math.hypot(box.center_x - canvas.width / 2, box.center_y - canvas.height / 2)
                bonus += _ZONE_BONUS * (1 - distance / (canvas.width / 2))
        return bonus

    @staticmethod
    def balance_score(box: Rect, layers: Sequence[CompositionLayer], canvas: Size) -> float:
        """0..10, higher when adding `box` keeps the center of mass near the canvas center."""
        weighted_x = box.center_x
        weighted_y = box.center_y
        total = 1.0
        for layer in layers:
            weight = layer.metadata.visual_weight or 1.0
            bounds = layer.geometry.bounds
            weighted_x += bounds.center_x * weight
            weighted_y += bounds.center_y * weight
            total += weight
        distance = math.hypot(weighted_x / total - canvas.width / 2, weighted_y / total - canvas.height / 2)
        max_distance = math.hypot(canvas.width / 2, canvas.height / 2)
        return 10 * (1 - distance / max_distance)


def arrange_objects(
    objects: Sequence[ArrangeItem],
    canvas: Size,
    layout: ArrangeLayout = ArrangeLayout.FLOW,
    spacing: float = 20,
    alignment: FlowAlignment = FlowAlignment.LEFT,
) -> dict[str, tuple[float, float]]:
    """Positions for several objects, most important first."""
    spacing = max(0.0, spacing)
    ordered = sorted(objects, key=lambda o: o.importance, reverse=True)
    if layout is ArrangeLayout.MASONRY:
        return _masonry(ordered, canvas, spacing)
    if layout is ArrangeLayout.GRID:
        return _grid(ordered, canvas, spacing)
    if layout is ArrangeLayout.RADIAL:
        return _radial(ordered, canvas)
    return _flow(ordered, canvas, spacing, alignment)


def _masonry(objects: Sequence[ArrangeItem], canvas: Size, spacing: float) -> dict[str, tuple[float, float]]:
    column_width = math.floor((canvas.width - spacing) / 3)
    heights = [spacing, spacing, spacing]
    positions = {}
    for obj in objects:
        shortest = heights.index(min(heights))
        positions[obj.id] = (spacing + shortest * (column_width + spacing), heights[shortest])
        heights[shortest] += obj.height + spacing
    return positions


def _grid(objects: Sequence[ArrangeItem], canvas: Size, spacing: float) -> dict[str, tuple[float, float]]:
    if not objects:
        return {}
    columns = math.ceil(math.sqrt(len(objects)))
    cell = (canvas.width - spacing * (columns + 1)) / columns
    return {
        obj.id: (spacing + (i % columns) * (cell + spacing), spacing + (i // columns) * (cell + spacing))
        for i, obj in enumerate(objects)
    }


def _flow(
    objects: Sequence[ArrangeItem],
    canvas: Size,
    spacing: float,
    alignment: FlowAlignment,
) -> dict[str, tuple[float, float]]:
    rows: list[list[tuple[ArrangeItem, float]]] = []
    row_tops: list[float] = []
    x, y, row_height = spacing, spacing, 0.0
    for obj in objects:
        if rows and x + obj.width + spacing > canvas.width:
            x = spacing
            y += row_height + spacing
            row_height = 0.0
        if not rows or row_tops[-1] != y:
            rows.append([])
            row_tops.append(y)
        rows[-1].append((obj, x))
        x += obj.width + spacing
        row_height = max(row_height, obj.height)

    available = canvas.width - 2 * spacing
    positions = {}
    for row, top in zip(rows, row_tops):
        first_x = row[0][1]
        last_obj, last_x = row[-1]
        row_width = last_x + last_obj.width - first_x
        offset = 0.0
        extra_per_gap = 0.0
        if alignment is FlowAlignment.CENTER:
            offset = (available - row_width) / 2
        elif alignment is FlowAlignment.RIGHT:
            offset = available - row_width
        elif alignment is FlowAlignment.JUSTIFY and len(row) > 1:
            gaps = len(row) - 1
            extra_per_gap = (available - row_width) / gaps
        for index, (obj, item_x) in enumerate(row):
            positions[obj.id] = (item_x + offset + index * extra_per_gap, top)
    return positions


def _radial(objects: Sequence[ArrangeItem], canvas: Size) -> dict[str, tuple[float, float]]:
    center_x, center_y = canvas.width / 2, canvas.height / 2
    radius = min(canvas.width, canvas.height) * 0.3
    positions = {}
    for index, obj in enumerate(objects):
        angle = index / len(objects) * math.pi * 2
        positions[obj.id] = (
            center_x + math.cos(angle) * radius - obj.width / 2,
            center_y + math.sin(angle) * radius - obj.height / 2,
        )
    return positions
