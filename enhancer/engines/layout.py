"""Layout restructuring: grids, alignment guides, spacing and reading flow.

Functions never mutate their input. They return new `LayoutElement` tuples
along with human-readable change logs that end up in the enhancement plan.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass, replace
from enum import Enum

from enhancer.engines.geometry import LayoutElement, Rect, Size

_TEXT_KINDS = frozenset({"text", "header", "heading", "title"})


class GuideType(str, Enum):
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"
    CENTER = "center"


class SpacingMethod(str, Enum):
    EQUAL = "equal"
    PROPORTIONAL = "proportional"
    RHYTHMIC = "rhythmic"


class FlowPattern(str, Enum):
    F = "F"
    Z = "Z"
    LINEAR = "linear"


@dataclass(frozen=True)
class GridSystem:
    columns: int
    gutter: float
    margin: float
    column_width: float
    breakpoints: dict[str, int]


@dataclass(frozen=True)
class GridResult:
    grid: GridSystem
    elements: tuple[LayoutElement, ...]
    changes: tuple[str, ...]


@dataclass(frozen=True)
class AlignmentGuide:
    type: GuideType
    position: float
    element_ids: tuple[str, ...]


@dataclass(frozen=True)
class AlignmentResult:
    elements: tuple[LayoutElement, ...]
    guides: tuple[AlignmentGuide, ...]
    corrections: tuple[str, ...]


@dataclass(frozen=True)
class SpacingRule:
    value: float
    target: str
    unit: str = "px"
    type: str = "gap"


@dataclass(frozen=True)
class SpacingResult:
    elements: tuple[LayoutElement, ...]
    rules: tuple[SpacingRule, ...]
    changes: tuple[str, ...]


@dataclass(frozen=True)
class VisualFlow:
    pattern: FlowPattern
    entry_point: str
    exit_point: str
    path: tuple[str, ...]
    strength: float


@dataclass(frozen=True)
class FlowResult:
    elements: tuple[LayoutElement, ...]
    flow: VisualFlow
    improvements: tuple[str, ...]


@dataclass(frozen=True)
class LayoutScores:
    alignment: float
    alignment_issues: tuple[str, ...]
    guides: tuple[AlignmentGuide, ...]
    spacing: float
    spacing_consistency: float
    spacing_rules: tuple[SpacingRule, ...]
    horizontal_balance: float
    vertical_balance: float
    visual_balance: float
    flow: VisualFlow


class _Workspace:
    """Ordered id -> element map that swaps in replaced frozen elements."""

    def __init__(self, elements: Sequence[LayoutElement]) -> None:
        self._order = [e.id for e in elements]
        self._items = {e.id: e for e in elements}

    def get(self, element_id: str) -> LayoutElement:
        return self._items[element_id]

    def update(self, element_id: str, **bounds: float) -> LayoutElement:
        updated = self._items[element_id].moved(**bounds)
        self._items[element_id] = updated
        return updated

    def set(self, element: LayoutElement) -> None:
        self._items[element.id] = element

    def elements(self) -> tuple[LayoutElement, ...]:
        return tuple(self._items[i] for i in self._order)


# ---------------------------------------------------------------------------
# Grid
# ---------------------------------------------------------------------------


def apply_grid_system(
    elements: Sequence[LayoutElement],
    container: Size,
    columns: int = 12,
    gutter: float = 24,
    margin: float = 48,
    snap: bool = True,
    preserve_relations: bool = False,
) -> GridResult:
    """Snap every element's x and width to the nearest whole-column span."""
    columns = max(1, int(columns))
    gutter = max(0.0, gutter)
    margin = max(0.0, min(margin, container.width / 2))
    content_width = max(0.0, container.width - margin * 2)
    column_width = max(1.0, (content_width - gutter * (columns - 1)) / columns)
    pitch = column_width + gutter
    grid = GridSystem(
        columns=columns,
        gutter=gutter,
        margin=margin,
        column_width=column_width,
        breakpoints={"mobile": 4, "tablet": 8, "desktop": columns},
    )

    work = _Workspace(elements)
    changes: list[str] = []
    if snap:
        for element in elements:
            relative_x = element.bounds.x - margin
            start = max(0, min(columns - 1, round(relative_x / pitch)))
            end = round((relative_x + element.bounds.width) / pitch)
            span = max(1, min(columns - start, end - start))
            new_x = margin + start * pitch
            new_width = span * column_width + (span - 1) * gutter
            if abs(new_x - element.bounds.x) > 1 or abs(new_width - element.bounds.width) > 1:
                work.update(element.id, x=new_x, width=new_width)
                changes.append(f"Aligned {element.id} to {span}-column grid")

    if preserve_relations:
        _preserve_relationships(work, elements)
    return GridResult(grid=grid, elements=work.elements(), changes=tuple(changes))


def _preserve_relationships(work: _Workspace, originals: Sequence[LayoutElement]) -> None:
    for previous, original in zip(originals, originals[1:]):
        new_prev = work.get(previous.id)
        new_el = work.get(original.id)
        original_gap = original.bounds.x - previous.bounds.right
        new_gap = new_el.bounds.x - new_prev.bounds.right
        if abs(original_gap) < 100 and abs(new_gap - original_gap) > 10:
            work.update(original.id, x=new_prev.bounds.right + original_gap)


# ---------------------------------------------------------------------------
# Alignment
# ---------------------------------------------------------------------------


def _cluster(values: list[tuple[str, float]], threshold: float) -> list[tuple[float, list[str]]]:
    clusters: list[tuple[float, list[str]]] = []
    for element_id, raw in values:
        value = round(raw)
        for anchor, members in clusters:
            if abs(anchor - value) <= threshold:
                members.append(element_id)
                break
        else:
            clusters.append((value, [element_id]))
    return clusters


def detect_alignment_guides(
    elements: Sequence[LayoutElement],
    threshold: float = 5,
) -> tuple[AlignmentGuide, ...]:
    """Guides shared by two or more elements: left edges, top edges, centers."""
    guides: list[AlignmentGuide] = []
    sources = (
        (GuideType.VERTICAL, [(e.id, e.bounds.x) for e in elements]),
        (GuideType.HORIZONTAL, [(e.id, e.bounds.y) for e in elements]),
        (GuideType.CENTER, [(e.id, e.bounds.center_x) for e in elements]),
    )
    for guide_type, values in sources:
        for position, members in _cluster(values, threshold):
            if len(members) > 1:
                guides.append(AlignmentGuide(guide_type, position, tuple(members)))
    return tuple(guides)


def calculate_mode(values: Sequence[float], threshold: float) -> float:
    """Average of the largest group of near-equal values."""
    groups: list[list[float]] = []
    for value in values:
        for group in groups:
            if abs(group[0] - value) <= threshold:
                group.append(value)
                break
        else:
            groups.append([value])
    if not groups:
        return 0.0
    largest = max(groups, key=len)
    return sum(largest) / len(largest)


def correct_alignment(
    elements: Sequence[LayoutElement],
    threshold: float = 5,
    optical: bool = False,
) -> AlignmentResult:
    threshold = max(0.0, threshold)
    guides = detect_alignment_guides(elements, threshold)
    work = _Workspace(elements)
    corrections: list[str] = []

    for guide in guides:
        members = [work.get(i) for i in guide.element_ids]
        if guide.type is GuideType.VERTICAL:
            target = calculate_mode([m.bounds.x for m in members], threshold)
            for member in members:
                if abs(member.bounds.x - target) > 0.1:
                    work.update(member.id, x=target)
                    corrections.append(f"Aligned {member.id} to vertical guide at {target:g}")
        elif guide.type is GuideType.HORIZONTAL:
            target = calculate_mode([m.bounds.y for m in members], threshold)
            for member in members:
                if abs(member.bounds.y - target) > 0.1:
                    work.update(member.id, y=target)
                    corrections.append(f"Aligned {member.id} to horizontal guide at {target:g}")
        else:
            xs = [m.bounds.x for m in members]
            ys = [m.bounds.y for m in members]
            in_row = max(xs) - min(xs) > max(ys) - min(ys)
            if in_row:
                target = calculate_mode([m.bounds.center_y for m in members], threshold)
            else:
                target = calculate_mode([m.bounds.center_x for m in members], threshold)
            for member in members:
                current = member.bounds.center_y if in_row else member.bounds.center_x
                if abs(current - target) <= 0.1:
                    continue
                if in_row:
                    work.update(member.id, y=target - member.bounds.height / 2)
                else:
                    work.update(member.id, x=target - member.bounds.width / 2)
                corrections.append(f"Aligned {member.id} to center guide at {target:g}")

    if optical:
        for element in work.elements():
            if element.kind == "text" and element.bounds.height > 100:
                work.update(element.id, y=element.bounds.y - element.bounds.height * 0.02)
                corrections.append(f"Applied optical alignment to {element.id}")

    return AlignmentResult(elements=work.elements(), guides=guides, corrections=tuple(corrections))


# ---------------------------------------------------------------------------
# Spacing
# ---------------------------------------------------------------------------


def _center_distance(a: LayoutElement, b: LayoutElement) -> float:
    return math.hypot(b.bounds.center_x - a.bounds.center_x, b.bounds.center_y - a.bounds.center_y)


def group_by_proximity(
    elements: Sequence[LayoutElement],
    max_distance: float,
) -> list[list[LayoutElement]]:
    groups: list[list[LayoutElement]] = []
    assigned: set[str] = set()
    for element in elements:
        if element.id in assigned:
            continue
        group = [element]
        assigned.add(element.id)
        for other in elements:
            if other.id not in assigned and _center_distance(element, other) <= max_distance:
                group.append(other)
                assigned.add(other.id)
        groups.append(group)
    return groups


def _in_row(elements: Sequence[LayoutElement]) -> bool:
    if len(elements) < 2:
        return False
    ys = [e.bounds.y for e in elements]
    avg = sum(ys) / len(ys)
    return max(abs(y - avg) for y in ys) < 20


_RHYTHM = (1, 2, 1, 3)


def _apply_spacing(
    work: _Workspace,
    ordered_ids: list[str],
    vertical: bool,
    method: SpacingMethod,
    min_spacing: float,
    max_spacing: float,
    changes: list[str],
) -> None:
    axis = "vertical" if vertical else "horizontal"
    for index in range(1, len(ordered_ids)):
        prev = work.get(ordered_ids[index - 1])
        current = work.get(ordered_ids[index])
        if method is SpacingMethod.EQUAL:
            spacing = min_spacing
            label = f"Applied {spacing:g}px {axis} spacing to {current.id}"
        elif method is SpacingMethod.PROPORTIONAL:
            if vertical:
                avg_size = (prev.bounds.height + current.bounds.height) / 2
            else:
                avg_size = (prev.bounds.width + current.bounds.width) / 2
            spacing = max(min_spacing, min(max_spacing, avg_size * 0.2))
            label = f"Applied proportional spacing ({round(spacing)}px) to {current.id}"
        else:
            multiplier = _RHYTHM[(index - 1) % len(_RHYTHM)]
            spacing = min_spacing * multiplier
            label = f"Applied rhythmic spacing ({multiplier}x = {spacing:g}px) to {current.id}"

        if vertical:
            new_position, old_position = prev.bounds.bottom + spacing, current.bounds.y
        else:
            new_position, old_position = prev.bounds.right + spacing, current.bounds.x
        if abs(new_position - old_position) <= 1:
            continue
        if vertical:
            work.update(current.id, y=new_position)
        else:
            work.update(current.id, x=new_position)
        changes.append(label)


def optimize_spacing(
    elements: Sequence[LayoutElement],
    method: SpacingMethod = SpacingMethod.PROPORTIONAL,
    min_spacing: float = 16,
    max_spacing: float = 64,
) -> SpacingResult:
    """Normalize gaps inside proximity groups along each group's main axis."""
    min_spacing = max(0.0, min_spacing)
    max_spacing = max(min_spacing, max_spacing)
    work = _Workspace(elements)
    changes: list[str] = []
    groups = group_by_proximity(elements, max_spacing * 2)

    for group in groups:
        if len(group) < 2:
            continue
        ids = [e.id for e in group]
        if _in_row(group):
            by_x = sorted(ids, key=lambda i: work.get(i).bounds.x)
            _apply_spacing(work, by_x, False, method, min_spacing, max_spacing, changes)
        else:
            by_y = sorted(ids, key=lambda i: work.get(i).bounds.y)
            _apply_spacing(work, by_y, True, method, min_spacing, max_spacing, changes)

    result = work.elements()
    new_groups = [[work.get(e.id) for e in g] for g in groups]
    return SpacingResult(
        elements=result,
        rules=generate_spacing_rules(new_groups),
        changes=tuple(changes),
    )


def find_common_value(values: Sequence[float]) -> float | None:
    """Most frequent value on a 4px grid, if it covers over 30% of samples."""
    if not values:
        return None
    counts: dict[int, int] = {}
    for value in values:
        key = round(value / 4) * 4
        counts[key] = counts.get(key, 0) + 1
    common, count = max(counts.items(), key=lambda item: item[1])
    return float(common) if count > len(values) * 0.3 else None


def generate_spacing_rules(groups: Sequence[Sequence[LayoutElement]]) -> tuple[SpacingRule, ...]:
    vertical: list[float] = []
    horizontal: list[float] = []
    for group in groups:
        for prev, current in zip(group, group[1:]):
            v_space = current.bounds.y - prev.bounds.bottom
            h_space = current.bounds.x - prev.bounds.right
            if 0 < v_space < 200:
                vertical.append(v_space)
            if 0 < h_space < 200:
                horizontal.append(h_space)
    rules = []
    common_vertical = find_common_value(vertical)
    if common_vertical:
        rules.append(SpacingRule(value=common_vertical, target="vertical"))
    common_horizontal = find_common_value(horizontal)
    if common_horizontal:
        rules.append(SpacingRule(value=common_horizontal, target="horizontal"))
    return tuple(rules)


# ---------------------------------------------------------------------------
# Visual flow
# ---------------------------------------------------------------------------


def detect_flow_pattern(elements: Sequence[LayoutElement]) -> FlowPattern:
    if len(elements) < 3:
        return FlowPattern.LINEAR
    left = sum(1 for e in elements if e.bounds.x < 200)
    right = sum(1 for e in elements if e.bounds.x > 400)
    if left > right * 1.5:
        return FlowPattern.F

    quadrants = set()
    for element in elements:
        x, y = element.bounds.x, element.bounds.y
        column = "left" if x < 200 else "right" if x > 400 else None
        row = "top" if y < 200 else "bottom" if y > 400 else None
        if column and row:
            quadrants.add((column, row))
    if len(quadrants) == 4:
        return FlowPattern.Z
    return FlowPattern.LINEAR


def _flow_strength(ordered: Sequence[LayoutElement], pattern: FlowPattern) -> float:
    score = 50.0
    if pattern is FlowPattern.F:
        first_third = ordered[: len(ordered) // 3]
        top = sum(1 for e in first_third if e.bounds.y < 300)
        if first_third and top > len(first_third) * 0.7:
            score += 30
    elif pattern is FlowPattern.Z:
        for prev, current in zip(ordered, ordered[1:]):
            if current.bounds.x > prev.bounds.x or current.bounds.y > prev.bounds.y:
                score += 5
    else:
        for prev, current in zip(ordered, ordered[1:]):
            if current.bounds.y > prev.bounds.y:
                score += 10
    return min(100.0, score)


def analyze_visual_flow(elements: Sequence[LayoutElement]) -> VisualFlow:
    if not elements:
        return VisualFlow(FlowPattern.LINEAR, "", "", (), 0.0)
    ordered = sorted(elements, key=lambda e: e.bounds.y * 2 + e.bounds.x)
    pattern = detect_flow_pattern(ordered)
    return VisualFlow(
        pattern=pattern,
        entry_point=ordered[0].id,
        exit_point=ordered[-1].id,
        path=tuple(e.id for e in ordered),
        strength=_flow_strength(ordered, pattern),
    )


_F_SLOTS = ((50, 50), (400, 50), (50, 200))
_Z_SLOTS = ((50, 50), (600, 50), (50, 400), (600, 400))


def improve_visual_flow(
    elements: Sequence[LayoutElement],
    pattern: FlowPattern = FlowPattern.F,
    emphasize_hierarchy: bool = False,
    reading_path: bool = False,
) -> FlowResult:
    """Force key elements into canonical F, Z or linear positions."""
    work = _Workspace(elements)
    improvements: list[str] = []

    if pattern is FlowPattern.F:
        important = [e for e in elements if e.kind in ("header", "text")]
        if len(important) >= 3:
            for element, (x, y) in zip(important, _F_SLOTS):
                work.update(element.id, x=x, y=y)
            improvements.append("Arranged key elements in F-pattern layout")
    elif pattern is FlowPattern.Z:
        if len(elements) >= 4:
            for element, (x, y) in zip(elements, _Z_SLOTS):
                work.update(element.id, x=x, y=y)
            improvements.append("Arranged elements in Z-pattern layout")
    else:
        current_y = 50.0
        for element in elements:
            work.update(element.id, x=50, y=current_y)
            current_y += element.bounds.height + 30
        improvements.append("Arranged elements in linear vertical flow")

    if emphasize_hierarchy:
        headers = [work.get(e.id) for e in elements if e.kind == "header"]
        for header in headers:
            work.update(header.id, width=header.bounds.width * 1.2, height=header.bounds.height * 1.2)
        if headers:
            improvements.append("Emphasized headers by increasing size")

    if reading_path:
        reordered = optimize_reading_path(work.elements())
        for element in reordered:
            work.set(element)
        improvements.append("Optimized reading path with proper z-index ordering")

    final = work.elements()
    return FlowResult(elements=final, flow=analyze_visual_flow(final), improvements=tuple(improvements))


def optimize_reading_path(elements: Sequence[LayoutElement]) -> tuple[LayoutElement, ...]:
    """Assign z-order 1..n to text elements in reading order (rows within 20px)."""
    text = sorted((e for e in elements if e.kind in _TEXT_KINDS), key=lambda e: e.bounds.y)

    rows: list[list[LayoutElement]] = []
    for element in text:
        if rows and abs(rows[-1][0].bounds.y - element.bounds.y) <= 20:
            rows[-1].append(element)
        else:
            rows.append([element])
    ordered = [e for row in rows for e in sorted(row, key=lambda e: e.bounds.x)]

    z_by_id = {e.id: i + 1 for i, e in enumerate(ordered)}
    return tuple(replace(e, z_index=z_by_id[e.id]) if e.id in z_by_id else e for e in elements)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def _alignment_score(elements: Sequence[LayoutElement], guides: Sequence[AlignmentGuide]) -> float:
    if not elements:
        return 50.0
    aligned = {i for g in guides for i in g.element_ids}
    score = 50 + len(aligned) / len(elements) * 30
    avg_members = sum(len(g.element_ids) for g in guides) / (len(guides) or 1)
    if avg_members > 2:
        score += 10
    if avg_members > 3:
        score += 10
    return min(100.0, score)


def _alignment_issues(
    elements: Sequence[LayoutElement],
    guides: Sequence[AlignmentGuide],
) -> tuple[str, ...]:
    aligned = {i for g in guides for i in g.element_ids}
    issues = []
    unaligned = [e for e in elements if e.id not in aligned]
    if len(unaligned) > len(elements) * 0.3:
        issues.append(f"{len(unaligned)} elements are not aligned to any guide")
    for element in unaligned:
        for guide in guides:
            if guide.type is GuideType.VERTICAL:
                distance = abs(element.bounds.x - guide.position)
            elif guide.type is GuideType.HORIZONTAL:
                distance = abs(element.bounds.y - guide.position)
            else:
                distance = abs(element.bounds.center_x - guide.position)
            if 5 < distance < 20:
                issues.append(f"{element.id} is slightly misaligned (off by {round(distance)}px)")
                break
    return tuple(issues)


def _min_spacing(a: LayoutElement, b: LayoutElement) -> float:
    x_gap = max(b.bounds.x - a.bounds.right, a.bounds.x - b.bounds.right)
    y_gap = max(b.bounds.y - a.bounds.bottom, a.bounds.y - b.bounds.bottom)
    return max(x_gap, y_gap)


def _spacing_score(elements: Sequence[LayoutElement]) -> float:
    score = 70.0
    spacings = [
        gap
        for i, a in enumerate(elements)
        for b in elements[i + 1:]
        if 0 <= (gap := _min_spacing(a, b)) < 200
    ]
    if not spacings:
        return score
    avg = sum(spacings) / len(spacings)
    std_dev = math.sqrt(sum((s - avg) ** 2 for s in spacings) / len(spacings))
    variation = std_dev / avg if avg else 0.0
    if variation < 0.3:
        score += 20
    elif variation > 0.6:
        score -= 10
    if 16 <= avg <= 48:
        score += 10
    return min(100.0, max(0.0, score))


def _spacing_consistency(elements: Sequence[LayoutElement]) -> float:
    ordered = sorted(elements, key=lambda e: e.bounds.y)
    spacings = [
        gap for prev, current in zip(ordered, ordered[1:])
        if 0 < (gap := current.bounds.y - prev.bounds.bottom) < 200
    ]
    if len(spacings) < 2:
        return 100.0
    counts: dict[int, int] = {}
    for gap in spacings:
        key = round(gap / 4) * 4
        counts[key] = counts.get(key, 0) + 1
    return float(round(max(counts.values()) / len(spacings) * 100))


def _balance(elements: Sequence[LayoutElement]) -> tuple[float, float, float]:
    if not elements:
        return 50.0, 50.0, 50.0
    box = elements[0].bounds
    for element in elements[1:]:
        box = box.union(element.bounds)
    left = right = top = bottom = 0.0
    for element in elements:
        area = element.bounds.area
        if element.bounds.center_x < box.center_x:
            left += area
        else:
            right += area
        if element.bounds.center_y < box.center_y:
            top += area
        else:
            bottom += area

    def side_balance(a: float, b: float) -> float:
        total = a + b
        return 100.0 if total == 0 else 50 + 50 * (1 - abs(a - b) / total)

    horizontal = side_balance(left, right)
    vertical = side_balance(top, bottom)
    return float(round(horizontal)), float(round(vertical)), float(round((horizontal + vertical) / 2))


def analyze_layout(elements: Sequence[LayoutElement]) -> LayoutScores:
    guides = detect_alignment_guides(elements, 5)
    horizontal, vertical, visual = _balance(elements)
    ordered = sorted(elements, key=lambda e: e.bounds.y)
    return LayoutScores(
        alignment=_alignment_score(elements, guides),
        alignment_issues=_alignment_issues(elements, guides),
        guides=guides,
        spacing=_spacing_score(elements),
        spacing_consistency=_spacing_consistency(elements),
        spacing_rules=generate_spacing_rules([ordered]),
        horizontal_balance=horizontal,
        vertical_balance=vertical,
        visual_balance=visual,
        flow=analyze_visual_flow(elements),
    )


def bounding_box(elements: Sequence[LayoutElement]) -> Rect | None:
    if not elements:
        return None
    box = elements[0].bounds
    for element in elements[1:]:
        box = box.union(element.bounds)
    return box
