# backend/foundation_layout/services/grid_labels.py
# Sequential grid labels: letters for vertical lines, numbers for horizontal

from typing import Optional, Sequence, Tuple
import re
import uuid
import logging

from ..schemas import GridLine, GridOrientation

logger = logging.getLogger(__name__)

FIRST_VERTICAL_LABEL = "A"
FIRST_HORIZONTAL_LABEL = "1"

_LEADING_INT_RE = re.compile(r'^\s*([+-]?\d+)')


def new_grid_line_id() -> str:
    return uuid.uuid4().hex[:9]


def _leading_int(label: str) -> Optional[int]:
    """Integer prefix of a label ("12", "3a" -> 3), or None"""
    match = _LEADING_INT_RE.match(label)
    return int(match.group(1)) if match else None


def _next_letter(label: str) -> Optional[str]:
    """Next letter after the label's first character, within A-Y / a-y"""
    if not label:
        return None
    char = label[0]
    if 'A' <= char < 'Z' or 'a' <= char < 'z':
        return chr(ord(char) + 1)
    return None


def next_grid_label(
    grid_lines: Sequence[GridLine],
    orientation: GridOrientation
) -> Tuple[str, bool]:
    """
    Allocate the label for a new grid line.

    Vertical lines continue from the last vertical line's letter. There is
    no multi-letter scheme: past "Z"/"z" (or for non-letter labels) the
    allocation falls back to "A".

    Horizontal lines take the largest numeric label + 1, or count + 1 when
    no label is numeric.

    Returns:
        (label, collision) where collision is True if the label is already
        in use on that axis
    """
    lines = [l for l in grid_lines if l.orientation == orientation]
    used = {l.label for l in lines}

    if orientation == GridOrientation.VERTICAL:
        if not lines:
            return FIRST_VERTICAL_LABEL, False
        label = _next_letter(lines[-1].label) or FIRST_VERTICAL_LABEL
    else:
        if not lines:
            return FIRST_HORIZONTAL_LABEL, False
        numbers = [n for n in (_leading_int(l.label) for l in lines) if n is not None]
        if numbers:
            label = str(max(numbers) + 1)
        else:
            label = str(len(lines) + 1)

    collision = label in used
    if collision:
        logger.warning(
            f"Grid label '{label}' already used on {orientation.value} axis "
            f"({len(lines)} lines); labels will collide"
        )
    return label, collision
