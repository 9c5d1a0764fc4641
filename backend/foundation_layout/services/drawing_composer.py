# backend/foundation_layout/services/drawing_composer.py
# Runs the full pipeline: transform -> segments -> rendered sheet -> PNG

import io
import os
import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence

from PIL import Image

from ..schemas import Column, GridLine, ProjectSettings
from .connections import ColumnPlacement, Segment, resolve_columns, resolve_segments
from .geometry import DEFAULT_DPI, GridTransform, Sheet, build_transform
from .layout_renderer import FoundationLayoutRenderer

logger = logging.getLogger(__name__)

DRAWING_DPI = int(os.getenv("DRAWING_DPI", DEFAULT_DPI))
PLAN_FILENAME = "foundation_pro.png"


@dataclass
class DrawingResult:
    """Rendered sheet plus the geometry it was drawn from."""
    image: Image.Image
    transform: GridTransform
    segments: List[Segment]
    columns: List[ColumnPlacement]
    layers: List[str]

    def to_png(self) -> bytes:
        buffer = io.BytesIO()
        self.image.save(buffer, format='PNG', dpi=(self.transform.sheet.dpi, self.transform.sheet.dpi))
        return buffer.getvalue()


def build_geometry(
    grid_lines: Sequence[GridLine],
    columns: Sequence[Column],
    settings: ProjectSettings,
    dpi: int = None
):
    """
    Transform, segments and column placements without rendering.

    Raises:
        InsufficientGridError: fewer than one line on either axis
    """
    sheet = Sheet(dpi=dpi or DRAWING_DPI)
    transform = build_transform(grid_lines, settings, sheet)
    segments = resolve_segments(grid_lines, columns, transform)
    placements = resolve_columns(grid_lines, columns, transform)
    return transform, segments, placements


def compose_drawing(
    grid_lines: Sequence[GridLine],
    columns: Sequence[Column],
    settings: ProjectSettings,
    project_name: Optional[str] = None,
    drawing_date: Optional[date] = None,
    dpi: int = None,
    hatch: bool = True,
    border: bool = True
) -> DrawingResult:
    """
    Render a foundation layout sheet from an immutable snapshot of the grid.

    A grid with no runs still renders (grid, dimensions and title block only).

    Raises:
        InsufficientGridError: fewer than one line on either axis
    """
    grid_lines = tuple(grid_lines)
    columns = tuple(columns)

    transform, segments, placements = build_geometry(grid_lines, columns, settings, dpi)
    renderer = FoundationLayoutRenderer(transform, settings, hatch=hatch, border=border)
    image = renderer.render(grid_lines, segments, placements, project_name, drawing_date)

    return DrawingResult(
        image=image,
        transform=transform,
        segments=segments,
        columns=placements,
        layers=list(renderer.rendered_layers),
    )


def render_plan_png(
    grid_lines: Sequence[GridLine],
    columns: Sequence[Column],
    settings: ProjectSettings,
    project_name: Optional[str] = None,
    drawing_date: Optional[date] = None,
    dpi: int = None
) -> bytes:
    """Render the sheet and encode it as PNG bytes"""
    result = compose_drawing(grid_lines, columns, settings, project_name, drawing_date, dpi)
    png = result.to_png()
    logger.info(f"Encoded plan PNG: {len(png)} bytes, {len(result.segments)} runs")
    return png
