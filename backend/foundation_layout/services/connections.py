# backend/foundation_layout/services/connections.py
# Wall/footing runs between selected column intersections
# Segment derivation, column placement and intersection hit-testing

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple
import math
import logging

from ..schemas import Column, ColumnType, GridLine, GridOrientation
from .geometry import GridTransform, split_grid_lines

logger = logging.getLogger(__name__)

# Minimum click radius (plan pixels) for picking an intersection
MIN_HIT_RADIUS = 15


@dataclass(frozen=True)
class Segment:
    """One run between two adjacent selected columns, in sheet pixels."""
    x1: float
    y1: float
    x2: float
    y2: float
    orientation: GridOrientation
    line_label: str
    start_id: str
    end_id: str

    @property
    def length(self) -> float:
        return math.hypot(self.x2 - self.x1, self.y2 - self.y1)

    @property
    def direction(self) -> Tuple[float, float]:
        """Unit vector from start to end"""
        length = self.length
        return ((self.x2 - self.x1) / length, (self.y2 - self.y1) / length)

    @property
    def normal(self) -> Tuple[float, float]:
        """Unit normal (-dy, dx) / len"""
        dx, dy = self.direction
        return (-dy, dx)


@dataclass(frozen=True)
class ColumnPlacement:
    """Selected column resolved to a sheet position."""
    intersection_id: str
    x: float
    y: float
    width_mm: float
    height_mm: float
    column_type: ColumnType = ColumnType.SQUARE


@dataclass(frozen=True)
class Intersection:
    """Grid intersection in plan pixels."""
    id: str
    x: float
    y: float


def intersection_id(v_label: str, h_label: str) -> str:
    return f"{v_label}-{h_label}"


def _index_by_label(lines: Sequence[GridLine]) -> Dict[str, GridLine]:
    index = {}
    for line in lines:
        # First line in sorted order wins when labels repeat
        index.setdefault(line.label, line)
    return index


def resolve_intersection(
    column_id: str,
    v_index: Dict[str, GridLine],
    h_index: Dict[str, GridLine]
) -> Optional[Tuple[GridLine, GridLine]]:
    """
    Resolve an intersection id to its (vertical, horizontal) grid lines.

    Accepts "<v>-<h>" and "<h>-<v>", and labels that themselves contain
    hyphens. Returns None when either label no longer exists.
    """
    for i, char in enumerate(column_id):
        if char != '-':
            continue
        first, second = column_id[:i], column_id[i + 1:]
        if first in v_index and second in h_index:
            return v_index[first], h_index[second]
        if first in h_index and second in v_index:
            return v_index[second], h_index[first]
    return None


def _resolve_all(
    columns: Sequence[Column],
    v_lines: Sequence[GridLine],
    h_lines: Sequence[GridLine]
) -> List[Tuple[Column, GridLine, GridLine]]:
    v_index = _index_by_label(v_lines)
    h_index = _index_by_label(h_lines)

    resolved = []
    seen = set()
    for column in columns:
        pair = resolve_intersection(column.intersection_id, v_index, h_index)
        if pair is None:
            logger.debug(f"Skipping column {column.intersection_id}: grid line no longer exists")
            continue
        key = (pair[0].id, pair[1].id)
        if key in seen:
            continue
        seen.add(key)
        resolved.append((column, pair[0], pair[1]))
    return resolved


# =============================================================================
# SEGMENTS
# =============================================================================

def _segments_along(
    lines: Sequence[GridLine],
    resolved: Sequence[Tuple[Column, GridLine, GridLine]],
    transform: GridTransform,
    is_vertical: bool
) -> List[Segment]:
    segments = []
    for line in lines:
        # (orthogonal plan position, intersection id) for columns on this line
        on_line = []
        for column, v_line, h_line in resolved:
            own, other = (v_line, h_line) if is_vertical else (h_line, v_line)
            if own.id == line.id:
                on_line.append((other.position, column.intersection_id))
        on_line.sort(key=lambda item: item[0])

        for (pos_a, id_a), (pos_b, id_b) in zip(on_line, on_line[1:]):
            if pos_a == pos_b:
                logger.debug(f"Skipping zero-length run {id_a} -> {id_b} on {line.label}")
                continue
            if is_vertical:
                x = transform.map_x(line.position)
                start = (x, transform.map_y(pos_a))
                end = (x, transform.map_y(pos_b))
            else:
                y = transform.map_y(line.position)
                start = (transform.map_x(pos_a), y)
                end = (transform.map_x(pos_b), y)
            segments.append(Segment(
                x1=start[0], y1=start[1], x2=end[0], y2=end[1],
                orientation=line.orientation,
                line_label=line.label,
                start_id=id_a,
                end_id=id_b,
            ))
    return segments


def resolve_segments(
    grid_lines: Sequence[GridLine],
    columns: Sequence[Column],
    transform: GridTransform
) -> List[Segment]:
    """
    Build the runs connecting adjacent selected columns along every grid line.

    Vertical lines are processed first, then horizontal lines. A run only
    joins two consecutive selected columns on the same line; a line with
    fewer than two selected columns contributes nothing.
    """
    v_lines, h_lines = split_grid_lines(grid_lines)
    resolved = _resolve_all(columns, v_lines, h_lines)

    segments = _segments_along(v_lines, resolved, transform, is_vertical=True)
    segments += _segments_along(h_lines, resolved, transform, is_vertical=False)
    return segments


def resolve_columns(
    grid_lines: Sequence[GridLine],
    columns: Sequence[Column],
    transform: GridTransform
) -> List[ColumnPlacement]:
    """Map every selected column whose grid lines still exist to a sheet position."""
    v_lines, h_lines = split_grid_lines(grid_lines)
    placements = []
    for column, v_line, h_line in _resolve_all(columns, v_lines, h_lines):
        placements.append(ColumnPlacement(
            intersection_id=column.intersection_id,
            x=transform.map_x(v_line.position),
            y=transform.map_y(h_line.position),
            width_mm=column.width,
            height_mm=column.height,
            column_type=column.type,
        ))
    return placements


# =============================================================================
# INTERSECTIONS
# =============================================================================

def list_intersections(grid_lines: Sequence[GridLine]) -> List[Intersection]:
    """All vertical x horizontal crossings in plan pixels"""
    v_lines = [l for l in grid_lines if l.orientation == GridOrientation.VERTICAL]
    h_lines = [l for l in grid_lines if l.orientation == GridOrientation.HORIZONTAL]
    return [
        Intersection(id=intersection_id(v.label, h.label), x=v.position, y=h.position)
        for v in v_lines
        for h in h_lines
    ]


def hit_radius(image_width: float) -> float:
    return max(MIN_HIT_RADIUS, image_width / 100)


def find_intersection_at(
    grid_lines: Sequence[GridLine],
    x: float,
    y: float,
    image_width: float
) -> Optional[Intersection]:
    """
    Find the intersection under a click on the source plan.

    Returns the first intersection within the hit radius, or None.
    """
    radius = hit_radius(image_width)
    for crossing in list_intersections(grid_lines):
        if math.hypot(crossing.x - x, crossing.y - y) < radius:
            return crossing
    return None
