# backend/foundation_layout/services/layout_renderer.py
"""
Foundation Layout Renderer
==========================

Paints the foundation setting-out drawing onto a raster sheet.

Layers (back to front):
- Paper and border
- Excavation lines (dashed, working space each side of the footing)
- Blinding lines (fine dash)
- Strip footings (white fill, concrete hatch, outline)
- Walls (solid)
- Column pads and columns
- Grid lines and grid bubbles
- Dimension tiers (setting-out, spans, overall)
- Title block, notes and scale bar

Line weights follow ISO pen sizes at paper scale; all structural sizes are
real-world millimetres converted through the grid transform.
"""

import math
import os
import logging
from datetime import date
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Sequence, Tuple

from PIL import Image, ImageChops, ImageColor, ImageDraw, ImageFont

from ..schemas import ColumnType, GridLine, ProjectSettings
from .connections import ColumnPlacement, Segment
from .geometry import GridTransform, split_grid_lines

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


# =============================================================================
# CONSTANTS
# =============================================================================

# ISO pen widths in paper millimetres
ISO_PENS = {
    'HAIR': 0.13,
    'THIN': 0.18,
    'MED': 0.35,
    'THICK': 0.50,
    'XTHICK': 0.70,
}

# Colours
PAPER_COLOR = '#ffffff'
INK_COLOR = '#000000'
EXCAVATION_COLOR = '#94a3b8'   # slate 400
BLINDING_COLOR = '#cbd5e1'     # slate 300
HATCH_COLOR = '#475569'        # slate 600
WALL_COLOR = '#1e293b'         # slate 800
GRID_COLOR = '#ef4444'         # red 500

# Dash patterns in real-world mm (on, off, ...)
EXCAVATION_DASH = (100, 100)
BLINDING_DASH = (50, 50)
GRID_DASH = (800, 150, 100, 150)  # long dash, dot

# Real-world sizes (mm)
GRID_EXTENSION = 2500
BUBBLE_RADIUS = 350
TEXT_HEIGHT = 300
DIM_TEXT_OFFSET = 150
DIM_TICK = 150
DIM_WITNESS = 250
DIM_GAP = 800
DIM_TIER_EXTRA = 400
SETTING_OUT_CLEARANCE = 500
COLUMN_PAD_MARGIN = 200
COLUMN_PAD_MIN = 1200
COLUMN_MIN = 300
COLUMN_EXPLICIT_MIN = 50  # sizes at or below this are treated as unset
SCALE_BAR_LENGTH = 5000

# Paper sizes (mm on the printed sheet)
BORDER_MARGIN = 10
BORDER_INNER = 12
TITLE_BLOCK_W = 170
TITLE_BLOCK_H = 40
NOTES_H = 34
HATCH_SPACING = 1.5
TITLE_TEXT = 5
META_TEXT = 3
NOTE_TEXT = 2.5

FONT_PATH = os.getenv("DRAWING_FONT", "DejaVuSans.ttf")
BOLD_FONT_PATH = os.getenv("DRAWING_FONT_BOLD", "DejaVuSans-Bold.ttf")

DRAWING_TITLE = "FOUNDATION LAYOUT PLAN"
DEFAULT_PROJECT_NAME = "ARCH-AUTO-GEN"
DRAWING_NUMBER = "FL-01"

LAYER_ORDER = (
    'paper',
    'excavation',
    'blinding',
    'footings',
    'walls',
    'columns',
    'grid_lines',
    'grid_bubbles',
    'dimensions',
    'title_block',
)


# =============================================================================
# FONTS
# =============================================================================

@lru_cache(maxsize=32)
def load_font(size: int, bold: bool = False):
    """TrueType font at a pixel size, falling back to Pillow's bundled font."""
    size = max(6, int(size))
    paths = [BOLD_FONT_PATH, FONT_PATH] if bold else [FONT_PATH]
    for path in paths:
        try:
            return ImageFont.truetype(path, size)
        except OSError:
            continue
    logger.debug(f"Font {paths[0]} not found, using Pillow default")
    return ImageFont.load_default(size=size)


# =============================================================================
# GEOMETRY HELPERS
# =============================================================================

def offset_point(point: Point, normal: Point, distance: float) -> Point:
    return (point[0] + normal[0] * distance, point[1] + normal[1] * distance)


def band_polygon(segment: Segment, width: float, extend: float = 0.0) -> List[Point]:
    """
    Rectangle of `width` centred on the segment, optionally extended
    lengthwise by `extend` past each end.
    """
    ux, uy = segment.direction
    normal = segment.normal
    half = width / 2
    start = (segment.x1 - ux * extend, segment.y1 - uy * extend)
    end = (segment.x2 + ux * extend, segment.y2 + uy * extend)
    return [
        offset_point(start, normal, half),
        offset_point(end, normal, half),
        offset_point(end, normal, -half),
        offset_point(start, normal, -half),
    ]


def parallel_lines(segment: Segment, width: float, extend: float = 0.0) -> Tuple[Tuple[Point, Point], Tuple[Point, Point]]:
    """The two long edges of `band_polygon` as separate lines"""
    a, b, c, d = band_polygon(segment, width, extend)
    return (a, b), (d, c)


def clip_range(start: Point, end: Point, bounds: Tuple[float, float, float, float]) -> Optional[Tuple[float, float]]:
    """
    Liang-Barsky clip of a line to a rectangle.

    Returns:
        (t0, t1) as distances from `start` along the line, or None when
        the line misses the rectangle
    """
    x1, y1 = start
    dx, dy = end[0] - x1, end[1] - y1
    left, top, right, bottom = bounds
    t0, t1 = 0.0, 1.0
    for p, q in ((-dx, x1 - left), (dx, right - x1), (-dy, y1 - top), (dy, bottom - y1)):
        if p == 0:
            if q < 0:
                return None
            continue
        t = q / p
        if p < 0:
            t0 = max(t0, t)
        else:
            t1 = min(t1, t)
        if t0 > t1:
            return None
    length = math.hypot(dx, dy)
    return t0 * length, t1 * length


def dashed_line(draw: ImageDraw.ImageDraw, start: Point, end: Point,
                pattern: Sequence[float], fill, width: int):
    """
    Draw a dashed line; `pattern` alternates on/off lengths in pixels.

    Only the part on the image is walked. The dash phase is still measured
    from `start`.
    """
    x1, y1 = start
    x2, y2 = end
    length = math.hypot(x2 - x1, y2 - y1)
    if length == 0:
        return

    img_w, img_h = draw.im.size
    clipped = clip_range(start, end, (-width, -width, img_w + width, img_h + width))
    if clipped is None:
        return
    t0, t1 = clipped
    ux, uy = (x2 - x1) / length, (y2 - y1) / length

    if not pattern:
        draw.line([(x1 + ux * t0, y1 + uy * t0), (x1 + ux * t1, y1 + uy * t1)], fill=fill, width=width)
        return

    # An odd-length pattern swaps on/off every pass
    cycle = [max(1.0, p) for p in pattern]
    if len(cycle) % 2:
        cycle = cycle * 2
    period = sum(cycle)

    pos = (t0 // period) * period
    i = 0
    while pos < t1:
        step = cycle[i % len(cycle)]
        if i % 2 == 0:
            a = max(pos, t0)
            b = min(pos + step, t1)
            if b > a:
                draw.line(
                    [(x1 + ux * a, y1 + uy * a), (x1 + ux * b, y1 + uy * b)],
                    fill=fill, width=width
                )
        pos += step
        i += 1


@dataclass(frozen=True)
class SegmentBands:
    """Derived foundation geometry for one segment, in sheet pixels."""
    segment: Segment
    excavation_width: float
    blinding_width: float
    footing_width: float
    wall_width: float
    excavation_lines: Tuple[Tuple[Point, Point], Tuple[Point, Point]]
    blinding_lines: Tuple[Tuple[Point, Point], Tuple[Point, Point]]
    footing_polygon: List[Point]
    wall_polygon: List[Point]


def derive_bands(segment: Segment, settings: ProjectSettings, transform: GridTransform) -> SegmentBands:
    """
    Offset geometry for a segment.

    Excavation spans footing + working space, blinding spans footing plus the
    blinding offset on each side. Footing and excavation run past the
    segment ends by half their width so runs meeting at a column overlap.
    """
    excavation_w = transform.to_px(settings.footing_width + settings.working_space)
    blinding_w = transform.to_px(settings.footing_width + 2 * settings.blinding_offset)
    footing_w = transform.to_px(settings.footing_width)
    wall_w = transform.to_px(settings.wall_width)

    return SegmentBands(
        segment=segment,
        excavation_width=excavation_w,
        blinding_width=blinding_w,
        footing_width=footing_w,
        wall_width=wall_w,
        excavation_lines=parallel_lines(segment, excavation_w, excavation_w / 2),
        blinding_lines=parallel_lines(segment, blinding_w, blinding_w / 2),
        footing_polygon=band_polygon(segment, footing_w, footing_w / 2),
        wall_polygon=band_polygon(segment, wall_w),
    )


def column_pad_size(settings: ProjectSettings) -> float:
    """Pad (mm) drawn around every column"""
    return max(settings.footing_width + settings.working_space + COLUMN_PAD_MARGIN, COLUMN_PAD_MIN)


def column_core_size(column: ColumnPlacement, settings: ProjectSettings) -> Tuple[float, float]:
    """
    Column (width, height) in mm; explicit sizes only count above 50mm.

    Square columns take the larger of the two explicit sizes.
    """
    if column.width_mm > COLUMN_EXPLICIT_MIN and column.height_mm > COLUMN_EXPLICIT_MIN:
        if column.column_type == ColumnType.SQUARE:
            side = max(column.width_mm, column.height_mm)
            return side, side
        return column.width_mm, column.height_mm
    default = max(COLUMN_MIN, settings.wall_width)
    return default, default


# =============================================================================
# RENDERER
# =============================================================================

class FoundationLayoutRenderer:
    """Render a foundation layout sheet with Pillow"""

    def __init__(self, transform: GridTransform, settings: ProjectSettings,
                 hatch: bool = True, border: bool = True):
        self.transform = transform
        self.settings = settings
        self.sheet = transform.sheet
        self.hatch = hatch
        self.border = border
        self.rendered_layers: List[str] = []

        self.w_hair = self._pen('HAIR')
        self.w_thin = self._pen('THIN')
        self.w_med = self._pen('MED')
        self.w_thick = self._pen('THICK')
        self.w_xthick = self._pen('XTHICK')

    def _pen(self, name: str) -> int:
        return max(1, round(self.sheet.paper_px(ISO_PENS[name])))

    def to_px(self, real_mm: float) -> float:
        return self.transform.to_px(real_mm)

    def render(self, grid_lines: Sequence[GridLine], segments: Sequence[Segment],
               columns: Sequence[ColumnPlacement], project_name: Optional[str] = None,
               drawing_date: Optional[date] = None) -> Image.Image:
        """Paint every layer in order and return the sheet image"""
        self.rendered_layers = []
        image = Image.new('RGB', (self.sheet.width_px, self.sheet.height_px), PAPER_COLOR)
        draw = ImageDraw.Draw(image)

        v_lines, h_lines = split_grid_lines(grid_lines)
        bands = [derive_bands(s, self.settings, self.transform) for s in segments if s.length > 0]

        self._draw_paper(draw)
        self._draw_excavation(draw, bands)
        self._draw_blinding(draw, bands)
        self._draw_footings(image, draw, bands)
        self._draw_walls(draw, bands)
        self._draw_columns(draw, columns)
        self._draw_grid_lines(draw, v_lines, h_lines)
        self._draw_grid_bubbles(image, draw, v_lines, h_lines)
        self._draw_dimensions(image, draw, v_lines, h_lines, segments, columns)
        self._draw_title_block(image, draw, project_name, drawing_date)

        logger.info(
            f"Rendered sheet {image.width}x{image.height}px: "
            f"{len(bands)} runs, {len(columns)} columns, "
            f"{len(v_lines)}x{len(h_lines)} grid"
        )
        return image

    # =========================================================================
    # TEXT
    # =========================================================================

    def _draw_text(self, image: Image.Image, center: Point, text: str, font,
                   fill=INK_COLOR, rotate: int = 0):
        """Draw text centred on a point, optionally rotated (degrees, CCW)"""
        draw = ImageDraw.Draw(image)
        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        if not rotate:
            draw.text(
                (center[0] - (left + right) / 2, center[1] - (top + bottom) / 2),
                text, font=font, fill=fill
            )
            return

        tile = Image.new('L', (max(1, int(right - left) + 2), max(1, int(bottom - top) + 2)), 0)
        ImageDraw.Draw(tile).text((1 - left, 1 - top), text, font=font, fill=255)
        tile = tile.rotate(rotate, expand=True)
        box = (int(center[0] - tile.width / 2), int(center[1] - tile.height / 2))
        image.paste(ImageColor.getrgb(fill), box, tile)

    def _draw_text_left(self, draw: ImageDraw.ImageDraw, origin: Point, text: str, font, fill=INK_COLOR):
        """Draw text with its left edge at origin[0], vertically centred on origin[1]"""
        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        draw.text((origin[0] - left, origin[1] - (top + bottom) / 2), text, font=font, fill=fill)

    # =========================================================================
    # PAPER
    # =========================================================================

    def _draw_paper(self, draw: ImageDraw.ImageDraw):
        if self.border:
            w, h = self.sheet.width_px, self.sheet.height_px
            outer = self.sheet.paper_px(BORDER_MARGIN)
            inner = self.sheet.paper_px(BORDER_INNER)
            draw.rectangle([outer, outer, w - outer, h - outer], outline=INK_COLOR, width=self.w_xthick)
            draw.rectangle([inner, inner, w - inner, h - inner], outline=INK_COLOR, width=self.w_thin)
        self.rendered_layers.append('paper')

    # =========================================================================
    # FOUNDATION BANDS
    # =========================================================================

    def _draw_excavation(self, draw: ImageDraw.ImageDraw, bands: Sequence[SegmentBands]):
        pattern = [self.to_px(p) for p in EXCAVATION_DASH]
        for band in bands:
            for start, end in band.excavation_lines:
                dashed_line(draw, start, end, pattern, EXCAVATION_COLOR, self.w_hair)
        self.rendered_layers.append('excavation')

    def _draw_blinding(self, draw: ImageDraw.ImageDraw, bands: Sequence[SegmentBands]):
        pattern = [self.to_px(p) for p in BLINDING_DASH]
        for band in bands:
            for start, end in band.blinding_lines:
                dashed_line(draw, start, end, pattern, BLINDING_COLOR, self.w_hair)
        self.rendered_layers.append('blinding')

    def _draw_footings(self, image: Image.Image, draw: ImageDraw.ImageDraw, bands: Sequence[SegmentBands]):
        """
        White fill first for every footing so the excavation lines are
        hidden, then the concrete hatch, then all outlines.
        """
        for band in bands:
            draw.polygon(band.footing_polygon, fill=PAPER_COLOR)

        if self.hatch and bands:
            self._hatch_polygons(image, [b.footing_polygon for b in bands])

        for band in bands:
            outline = band.footing_polygon + [band.footing_polygon[0]]
            draw.line(outline, fill=INK_COLOR, width=self.w_med, joint='curve')
        self.rendered_layers.append('footings')

    def _hatch_polygons(self, image: Image.Image, polygons: Sequence[List[Point]]):
        """45 degree section hatch clipped to the union of polygons"""
        mask = Image.new('L', image.size, 0)
        mask_draw = ImageDraw.Draw(mask)
        for polygon in polygons:
            mask_draw.polygon(polygon, fill=255)

        xs = [x for polygon in polygons for x, _ in polygon]
        ys = [y for polygon in polygons for _, y in polygon]
        x0, x1 = max(0, int(min(xs))), min(image.width, int(max(xs)) + 1)
        y0, y1 = max(0, int(min(ys))), min(image.height, int(max(ys)) + 1)
        if x1 <= x0 or y1 <= y0:
            return

        hatch = Image.new('L', image.size, 0)
        hatch_draw = ImageDraw.Draw(hatch)
        spacing = max(3, int(self.sheet.paper_px(HATCH_SPACING)))
        height = y1 - y0
        for c in range(x0 - height, x1 + spacing, spacing):
            hatch_draw.line([(c, y1), (c + height, y0)], fill=255, width=self.w_hair)

        clipped = ImageChops.multiply(mask, hatch)
        image.paste(ImageColor.getrgb(HATCH_COLOR), (0, 0), clipped)

    def _draw_walls(self, draw: ImageDraw.ImageDraw, bands: Sequence[SegmentBands]):
        for band in bands:
            draw.polygon(band.wall_polygon, fill=WALL_COLOR)
        self.rendered_layers.append('walls')

    def _draw_columns(self, draw: ImageDraw.ImageDraw, columns: Sequence[ColumnPlacement]):
        half_pad = self.to_px(column_pad_size(self.settings)) / 2
        for column in columns:
            draw.rectangle(
                [column.x - half_pad, column.y - half_pad, column.x + half_pad, column.y + half_pad],
                fill=PAPER_COLOR, outline=INK_COLOR, width=self.w_thin
            )
            width_mm, height_mm = column_core_size(column, self.settings)
            hw, hh = self.to_px(width_mm) / 2, self.to_px(height_mm) / 2
            draw.rectangle(
                [column.x - hw, column.y - hh, column.x + hw, column.y + hh],
                fill=INK_COLOR
            )
        self.rendered_layers.append('columns')

    # =========================================================================
    # GRID
    # =========================================================================

    def _grid_limits(self) -> Tuple[float, float, float, float, float]:
        x0, y0, x1, y1 = self.transform.grid_bounds
        return x0, y0, x1, y1, self.to_px(GRID_EXTENSION)

    def _draw_grid_lines(self, draw: ImageDraw.ImageDraw, v_lines: Sequence[GridLine], h_lines: Sequence[GridLine]):
        x0, y0, x1, y1, ext = self._grid_limits()
        pattern = [self.to_px(p) for p in GRID_DASH]

        for line in v_lines:
            x = self.transform.map_x(line.position)
            dashed_line(draw, (x, y0 - ext), (x, y1 + ext), pattern, GRID_COLOR, self.w_hair)
        for line in h_lines:
            y = self.transform.map_y(line.position)
            dashed_line(draw, (x0 - ext, y), (x1 + ext, y), pattern, GRID_COLOR, self.w_hair)
        self.rendered_layers.append('grid_lines')

    def _draw_bubble(self, image: Image.Image, draw: ImageDraw.ImageDraw, center: Point, label: str, font):
        r = self.to_px(BUBBLE_RADIUS)
        cx, cy = center
        draw.ellipse([cx - r, cy - r, cx + r, cy + r], fill=PAPER_COLOR, outline=INK_COLOR, width=self.w_thin)
        self._draw_text(image, center, label, font)

    def _draw_grid_bubbles(self, image: Image.Image, draw: ImageDraw.ImageDraw,
                           v_lines: Sequence[GridLine], h_lines: Sequence[GridLine]):
        x0, y0, _, _, ext = self._grid_limits()
        r = self.to_px(BUBBLE_RADIUS)
        font = load_font(self.to_px(TEXT_HEIGHT), bold=True)

        for line in v_lines:
            self._draw_bubble(image, draw, (self.transform.map_x(line.position), y0 - ext - r), line.label, font)
        for line in h_lines:
            self._draw_bubble(image, draw, (x0 - ext - r, self.transform.map_y(line.position)), line.label, font)
        self.rendered_layers.append('grid_bubbles')

    # =========================================================================
    # DIMENSIONS
    # =========================================================================

    def _draw_dim_line(self, image: Image.Image, draw: ImageDraw.ImageDraw,
                       start: Point, end: Point, value: float, vertical: bool, font):
        """Dimension line with witness ticks, architectural slashes and centred value"""
        (x1, y1), (x2, y2) = start, end
        if (x1, y1) == (x2, y2):
            return

        draw.line([start, end], fill=INK_COLOR, width=self.w_hair)

        witness = self.to_px(DIM_WITNESS)
        tick = self.to_px(DIM_TICK)
        for tx, ty in (start, end):
            if vertical:
                draw.line([(tx - witness, ty), (tx + witness, ty)], fill=INK_COLOR, width=self.w_hair)
            else:
                draw.line([(tx, ty - witness), (tx, ty + witness)], fill=INK_COLOR, width=self.w_hair)
            draw.line([(tx - tick, ty + tick), (tx + tick, ty - tick)], fill=INK_COLOR, width=self.w_med)

        text = str(int(round(value)))
        offset = self.to_px(DIM_TEXT_OFFSET)
        mid_x, mid_y = (x1 + x2) / 2, (y1 + y2) / 2
        _, top, _, bottom = draw.textbbox((0, 0), text, font=font)
        half_text = (bottom - top) / 2
        if vertical:
            self._draw_text(image, (mid_x - offset - half_text, mid_y), text, font, rotate=90)
        else:
            self._draw_text(image, (mid_x, mid_y - offset - half_text), text, font)

    def _draw_dimensions(self, image: Image.Image, draw: ImageDraw.ImageDraw,
                         v_lines: Sequence[GridLine], h_lines: Sequence[GridLine],
                         segments: Sequence[Segment], columns: Sequence[ColumnPlacement]):
        """
        Top and left: per-span tier nearest the grid, overall tier outside it.
        Bottom and right: setting-out of footing edges at the outermost
        loaded grid lines.
        """
        x0, y0, x1, y1, ext = self._grid_limits()
        bubble_d = 2 * self.to_px(BUBBLE_RADIUS)
        gap = self.to_px(DIM_GAP)
        font = load_font(self.to_px(TEXT_HEIGHT))
        t = self.transform

        span_y = y0 - ext - bubble_d - gap
        overall_y = span_y - gap - self.to_px(DIM_TIER_EXTRA)
        span_x = x0 - ext - bubble_d - gap
        overall_x = span_x - gap - self.to_px(DIM_TIER_EXTRA)

        # Every bay is labelled with the nominal spacing
        span = self.settings.grid_spacing
        for a, b in zip(v_lines, v_lines[1:]):
            self._draw_dim_line(image, draw, (t.map_x(a.position), span_y), (t.map_x(b.position), span_y),
                                span, False, font)
        if len(v_lines) > 1:
            self._draw_dim_line(image, draw,
                                (t.map_x(v_lines[0].position), overall_y),
                                (t.map_x(v_lines[-1].position), overall_y),
                                t.total_grid_w, False, font)

        for a, b in zip(h_lines, h_lines[1:]):
            self._draw_dim_line(image, draw, (span_x, t.map_y(a.position)), (span_x, t.map_y(b.position)),
                                span, True, font)
        if len(h_lines) > 1:
            self._draw_dim_line(image, draw,
                                (overall_x, t.map_y(h_lines[0].position)),
                                (overall_x, t.map_y(h_lines[-1].position)),
                                t.total_grid_h, True, font)

        self._draw_setting_out(image, draw, segments, columns, font)
        self.rendered_layers.append('dimensions')

    def _draw_setting_out(self, image: Image.Image, draw: ImageDraw.ImageDraw,
                          segments: Sequence[Segment], columns: Sequence[ColumnPlacement], font):
        """Footing edge offsets either side of the first and last loaded grid line"""
        loaded_x = {c.x for c in columns} | {s.x1 for s in segments if s.x1 == s.x2}
        loaded_y = {c.y for c in columns} | {s.y1 for s in segments if s.y1 == s.y2}
        if not loaded_x or not loaded_y:
            return

        half_footing_mm = self.settings.footing_width / 2
        half_footing = self.to_px(half_footing_mm)
        clearance = self.to_px(column_pad_size(self.settings) / 2 + SETTING_OUT_CLEARANCE)
        _, _, x1, y1 = self.transform.grid_bounds
        row_y = max(y1, max(loaded_y)) + clearance
        col_x = max(x1, max(loaded_x)) + clearance

        for x in sorted({min(loaded_x), max(loaded_x)}):
            self._draw_dim_line(image, draw, (x - half_footing, row_y), (x, row_y), half_footing_mm, False, font)
            self._draw_dim_line(image, draw, (x, row_y), (x + half_footing, row_y), half_footing_mm, False, font)
        for y in sorted({min(loaded_y), max(loaded_y)}):
            self._draw_dim_line(image, draw, (col_x, y - half_footing), (col_x, y), half_footing_mm, True, font)
            self._draw_dim_line(image, draw, (col_x, y), (col_x, y + half_footing), half_footing_mm, True, font)

    # =========================================================================
    # TITLE BLOCK
    # =========================================================================

    def _draw_title_block(self, image: Image.Image, draw: ImageDraw.ImageDraw,
                          project_name: Optional[str], drawing_date: Optional[date]):
        """Title block, general notes and scale bar anchored to the sheet corners"""
        p = self.sheet.paper_px
        tb_w, tb_h = p(TITLE_BLOCK_W), p(TITLE_BLOCK_H)
        x = self.sheet.width_px - p(BORDER_INNER + 3) - tb_w
        y = self.sheet.height_px - p(BORDER_INNER + 3) - tb_h

        draw.rectangle([x, y, x + tb_w, y + tb_h], fill=PAPER_COLOR, outline=INK_COLOR, width=self.w_thick)
        draw.line([(x, y + tb_h / 2), (x + tb_w, y + tb_h / 2)], fill=INK_COLOR, width=self.w_thin)
        split_x = x + tb_w * 0.68
        draw.line([(split_x, y + tb_h / 2), (split_x, y + tb_h)], fill=INK_COLOR, width=self.w_thin)

        title_font = load_font(p(TITLE_TEXT), bold=True)
        meta_font = load_font(p(META_TEXT))
        pad = p(3)

        self._draw_text_left(draw, (x + pad, y + tb_h / 4), DRAWING_TITLE, title_font)

        stamp = (drawing_date or date.today()).strftime('%d/%m/%Y')
        name = project_name or DEFAULT_PROJECT_NAME
        self._draw_text_left(draw, (x + pad, y + tb_h * 0.625),
                             f"PROJ: {name} | SCALE 1:{self.settings.scale}", meta_font)
        self._draw_text_left(draw, (x + pad, y + tb_h * 0.875), f"DATE: {stamp}", meta_font)
        self._draw_text_left(draw, (split_x + pad, y + tb_h * 0.625), f"DWG No. {DRAWING_NUMBER}", meta_font)
        self._draw_text_left(draw, (split_x + pad, y + tb_h * 0.875), "SHEET A3", meta_font)

        self._draw_notes(draw, x, y - p(NOTES_H) - p(3), tb_w)
        self._draw_scale_bar(image, draw)
        self.rendered_layers.append('title_block')

    def _draw_notes(self, draw: ImageDraw.ImageDraw, x: float, y: float, width: float):
        s = self.settings
        p = self.sheet.paper_px
        notes = [
            "NOTES:",
            "1. ALL DIMENSIONS IN MILLIMETRES.",
            f"2. {s.wall_width} WALL ON {s.footing_width} WIDE STRIP FOOTING.",
            f"3. EXCAVATION {s.footing_width + s.working_space} WIDE INCL. {s.working_space} WORKING SPACE.",
            f"4. MIN. TRENCH WIDTH {s.trench_width}.",
            f"5. BLINDING {s.blinding_offset} BEYOND FOOTING EACH SIDE.",
            f"6. GRID SPACING {s.grid_spacing} NOMINAL.",
        ]
        draw.rectangle([x, y, x + width, y + p(NOTES_H)], fill=PAPER_COLOR, outline=INK_COLOR, width=self.w_thin)
        font = load_font(p(NOTE_TEXT))
        bold = load_font(p(NOTE_TEXT), bold=True)
        line_h = p(NOTES_H) / (len(notes) + 1)
        for i, note in enumerate(notes):
            self._draw_text_left(draw, (x + p(3), y + line_h * (i + 1)), note, bold if i == 0 else font)

    def _draw_scale_bar(self, image: Image.Image, draw: ImageDraw.ImageDraw):
        """5m bar with alternating fills at the drawing scale"""
        p = self.sheet.paper_px
        x = p(BORDER_INNER + 8)
        y = self.sheet.height_px - p(BORDER_INNER + 10)
        bar_length = self.to_px(SCALE_BAR_LENGTH)
        bar_h = p(2)

        step = bar_length / 5
        for i in range(5):
            fill = INK_COLOR if i % 2 == 0 else PAPER_COLOR
            draw.rectangle([x + i * step, y, x + (i + 1) * step, y + bar_h], fill=fill)
        draw.rectangle([x, y, x + bar_length, y + bar_h], outline=INK_COLOR, width=self.w_thin)

        font = load_font(p(NOTE_TEXT))
        self._draw_text(image, (x, y + bar_h + p(2.5)), "0", font)
        self._draw_text(image, (x + bar_length, y + bar_h + p(2.5)), "5m", font)
        self._draw_text_left(draw, (x, y - p(3)), f"SCALE 1:{self.settings.scale}", load_font(p(META_TEXT)))
