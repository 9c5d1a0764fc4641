# backend/foundation_layout/services/geometry.py
# Coordinate mapping from plan pixels to the output drawing sheet
# Real-world scale inference, centring and paper-scale conversion

from dataclasses import dataclass
from typing import List, Sequence, Tuple
import logging

from ..schemas import GridLine, GridOrientation, ProjectSettings

logger = logging.getLogger(__name__)

# =============================================================================
# SHEET CONSTANTS
# =============================================================================

PAPER_W_MM = 420  # A3 landscape
PAPER_H_MM = 297
DEFAULT_DPI = 300
MM_PER_INCH = 25.4

# Fallbacks when an axis has a single grid line
FALLBACK_PX_PER_REAL_MM = 0.1
FALLBACK_GRID_EXTENT_MM = 1000


class InsufficientGridError(ValueError):
    """Raised when the grid has no vertical or no horizontal line."""


@dataclass(frozen=True)
class Sheet:
    """Output raster sheet at a fixed print resolution."""
    width_mm: float = PAPER_W_MM
    height_mm: float = PAPER_H_MM
    dpi: int = DEFAULT_DPI

    @property
    def ppi(self) -> float:
        """Pixels per paper millimetre"""
        return self.dpi / MM_PER_INCH

    @property
    def width_px(self) -> int:
        return int(self.width_mm * self.ppi)

    @property
    def height_px(self) -> int:
        return int(self.height_mm * self.ppi)

    def paper_px(self, paper_mm: float) -> float:
        """Convert a paper-space length (mm on the printed sheet) to pixels"""
        return paper_mm * self.ppi


@dataclass(frozen=True)
class GridTransform:
    """
    Plan-pixel to sheet-pixel transform.

    Real-world spacing is inferred from the outermost vertical lines and
    treated as uniform: every adjacent pair of lines is assumed to be
    `grid_spacing` apart, intermediate lines are not calibrated.
    """
    sheet: Sheet
    scale: int
    px_per_real_mm: float
    origin_x: float  # pixel position of the first vertical line
    origin_y: float  # pixel position of the first horizontal line
    total_grid_w: float  # mm
    total_grid_h: float  # mm
    offset_x: float
    offset_y: float

    def to_px(self, real_mm: float) -> float:
        """Real-world millimetres to sheet pixels at the drawing scale"""
        return real_mm / self.scale * self.sheet.ppi

    def real_mm_x(self, pixel_x: float) -> float:
        return (pixel_x - self.origin_x) / self.px_per_real_mm

    def real_mm_y(self, pixel_y: float) -> float:
        return (pixel_y - self.origin_y) / self.px_per_real_mm

    def map_x(self, pixel_x: float) -> float:
        return self.offset_x + self.to_px(self.real_mm_x(pixel_x))

    def map_y(self, pixel_y: float) -> float:
        return self.offset_y + self.to_px(self.real_mm_y(pixel_y))

    def map_point(self, pixel_x: float, pixel_y: float) -> Tuple[float, float]:
        return (self.map_x(pixel_x), self.map_y(pixel_y))

    @property
    def grid_bounds(self) -> Tuple[float, float, float, float]:
        """Sheet-pixel bounds (x0, y0, x1, y1) of the nominal grid extent"""
        return (
            self.offset_x,
            self.offset_y,
            self.offset_x + self.to_px(self.total_grid_w),
            self.offset_y + self.to_px(self.total_grid_h),
        )


# =============================================================================
# GRID HELPERS
# =============================================================================

def split_grid_lines(grid_lines: Sequence[GridLine]) -> Tuple[List[GridLine], List[GridLine]]:
    """
    Split grid lines by orientation, each sorted by pixel position.

    Returns:
        (vertical_lines, horizontal_lines)
    """
    v_lines = sorted(
        (l for l in grid_lines if l.orientation == GridOrientation.VERTICAL),
        key=lambda l: l.position
    )
    h_lines = sorted(
        (l for l in grid_lines if l.orientation == GridOrientation.HORIZONTAL),
        key=lambda l: l.position
    )
    return v_lines, h_lines


def grid_extent(line_count: int, grid_spacing: float) -> float:
    """Nominal real-world extent (mm) covered by `line_count` evenly spaced lines"""
    if line_count > 1:
        return grid_spacing * (line_count - 1)
    return FALLBACK_GRID_EXTENT_MM


# =============================================================================
# TRANSFORM
# =============================================================================

def build_transform(
    grid_lines: Sequence[GridLine],
    settings: ProjectSettings,
    sheet: Sheet = None
) -> GridTransform:
    """
    Build the plan-to-sheet transform for a grid.

    Args:
        grid_lines: All grid lines (any order)
        settings: Project settings (scale and grid spacing are used)
        sheet: Output sheet, A3 landscape at 300 DPI by default

    Returns:
        GridTransform centred on the sheet

    Raises:
        InsufficientGridError: fewer than one line on either axis
    """
    sheet = sheet or Sheet()
    v_lines, h_lines = split_grid_lines(grid_lines)

    if not v_lines or not h_lines:
        raise InsufficientGridError(
            f"Need at least one vertical and one horizontal grid line "
            f"(have {len(v_lines)} vertical, {len(h_lines)} horizontal)"
        )

    grid_spacing = settings.grid_spacing
    px_per_real_mm = FALLBACK_PX_PER_REAL_MM
    if len(v_lines) > 1:
        span_px = v_lines[-1].position - v_lines[0].position
        if span_px > 0:
            px_per_real_mm = span_px / (grid_spacing * (len(v_lines) - 1))
        else:
            logger.warning("Vertical grid lines share one position, using nominal pixel ratio")

    total_grid_w = grid_extent(len(v_lines), grid_spacing)
    total_grid_h = grid_extent(len(h_lines), grid_spacing)

    def to_px(mm): return mm / settings.scale * sheet.ppi

    offset_x = sheet.width_px / 2 - to_px(total_grid_w) / 2
    offset_y = sheet.height_px / 2 - to_px(total_grid_h) / 2

    transform = GridTransform(
        sheet=sheet,
        scale=settings.scale,
        px_per_real_mm=px_per_real_mm,
        origin_x=v_lines[0].position,
        origin_y=h_lines[0].position,
        total_grid_w=total_grid_w,
        total_grid_h=total_grid_h,
        offset_x=offset_x,
        offset_y=offset_y,
    )
    logger.debug(
        f"Grid transform: {px_per_real_mm:.5f} px/mm, "
        f"extent {total_grid_w}x{total_grid_h}mm at 1:{settings.scale}"
    )
    return transform
