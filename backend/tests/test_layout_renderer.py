"""Foundation bands, layer order and rendered output."""

from datetime import date

import pytest
from PIL import Image, ImageColor, ImageDraw

from conftest import horizontal, vertical
from foundation_layout.schemas import Column, ColumnType, GridOrientation, ProjectSettings
from foundation_layout.services.connections import ColumnPlacement, resolve_segments
from foundation_layout.services.drawing_composer import compose_drawing
from foundation_layout.services.geometry import InsufficientGridError, Sheet, build_transform
from foundation_layout.services.layout_renderer import (
    EXCAVATION_COLOR,
    GRID_COLOR,
    HATCH_COLOR,
    LAYER_ORDER,
    WALL_COLOR,
    FoundationLayoutRenderer,
    column_core_size,
    column_pad_size,
    dashed_line,
    derive_bands,
)

DPI = 100
FIXED_DATE = date(2024, 3, 1)


def colors_in(image):
    return {color for _, color in image.getcolors(maxcolors=image.width * image.height)}


def rgb(hex_color):
    return ImageColor.getrgb(hex_color)


def test_band_widths_are_ordered(grid_2x2, rectangle_columns, settings):
    transform = build_transform(grid_2x2, settings, Sheet(dpi=DPI))
    segment = next(
        s for s in resolve_segments(grid_2x2, rectangle_columns, transform)
        if s.orientation == GridOrientation.HORIZONTAL
    )
    bands = derive_bands(segment, settings, transform)

    assert bands.wall_width < bands.footing_width < bands.blinding_width < bands.excavation_width
    assert bands.wall_width == pytest.approx(transform.to_px(225))
    assert bands.footing_width == pytest.approx(transform.to_px(1000))
    assert bands.excavation_width == pytest.approx(transform.to_px(1300))
    assert bands.blinding_width == pytest.approx(transform.to_px(1100))


def test_footing_extends_past_segment_ends(grid_2x2, rectangle_columns, settings):
    transform = build_transform(grid_2x2, settings, Sheet(dpi=DPI))
    segment = resolve_segments(grid_2x2, rectangle_columns, transform)[0]
    bands = derive_bands(segment, settings, transform)

    ys = [y for _, y in bands.footing_polygon]
    assert min(ys) == pytest.approx(segment.y1 - bands.footing_width / 2)
    assert max(ys) == pytest.approx(segment.y2 + bands.footing_width / 2)

    wall_ys = [y for _, y in bands.wall_polygon]
    assert (min(wall_ys), max(wall_ys)) == pytest.approx((segment.y1, segment.y2))


def test_column_sizes():
    settings = ProjectSettings()
    assert column_pad_size(settings) == 1500
    assert column_pad_size(ProjectSettings(footing_width=500, working_space=100)) == 1200

    default = ColumnPlacement("A-1", 0, 0, width_mm=20, height_mm=20)
    explicit = ColumnPlacement("A-1", 0, 0, width_mm=400, height_mm=600, column_type=ColumnType.RECTANGULAR)
    square = ColumnPlacement("A-1", 0, 0, width_mm=400, height_mm=600, column_type=ColumnType.SQUARE)
    assert column_core_size(default, settings) == (300, 300)
    assert column_core_size(explicit, settings) == (400, 600)
    assert column_core_size(square, settings) == (600, 600)
    assert column_core_size(default, ProjectSettings(wall_width=350)) == (350, 350)


def test_layers_render_in_order(grid_2x2, rectangle_columns, settings):
    result = compose_drawing(grid_2x2, rectangle_columns, settings, drawing_date=FIXED_DATE, dpi=DPI)
    assert tuple(result.layers) == LAYER_ORDER


def test_sheet_size_follows_dpi(grid_2x2, settings):
    result = compose_drawing(grid_2x2, [], settings, dpi=DPI)
    assert result.image.size == (Sheet(dpi=DPI).width_px, Sheet(dpi=DPI).height_px)


def test_rectangle_draws_every_band(grid_2x2, rectangle_columns, settings):
    result = compose_drawing(grid_2x2, rectangle_columns, settings, drawing_date=FIXED_DATE, dpi=DPI)
    colors = colors_in(result.image)
    for color in (WALL_COLOR, HATCH_COLOR, EXCAVATION_COLOR, GRID_COLOR):
        assert rgb(color) in colors
    assert len(result.segments) == 4
    assert len(result.columns) == 4


def test_wall_fills_run(grid_2x2, settings):
    columns = [Column(intersection_id="A-1"), Column(intersection_id="A-2")]
    result = compose_drawing(grid_2x2, columns, settings, drawing_date=FIXED_DATE, dpi=DPI)
    segment = result.segments[0]
    mid_y = int((segment.y1 + segment.y2) / 2)
    assert result.image.getpixel((int(segment.x1) + 3, mid_y)) == rgb(WALL_COLOR)


def test_hatch_can_be_disabled(grid_2x2, rectangle_columns, settings):
    result = compose_drawing(grid_2x2, rectangle_columns, settings, dpi=DPI, hatch=False)
    assert rgb(HATCH_COLOR) not in colors_in(result.image)


def test_no_runs_still_renders_grid(grid_2x2, settings):
    result = compose_drawing(grid_2x2, [], settings, drawing_date=FIXED_DATE, dpi=DPI)
    colors = colors_in(result.image)
    assert result.segments == []
    assert rgb(GRID_COLOR) in colors
    assert rgb(WALL_COLOR) not in colors
    assert rgb(EXCAVATION_COLOR) not in colors


def test_dangling_columns_render_safely(grid_2x2, settings):
    columns = [Column(intersection_id="A-1"), Column(intersection_id="Q-7"), Column(intersection_id="B-1")]
    result = compose_drawing(grid_2x2, columns, settings, dpi=DPI)
    assert len(result.segments) == 1
    assert [c.intersection_id for c in result.columns] == ["A-1", "B-1"]


def test_rendering_is_idempotent(grid_2x2, rectangle_columns, settings):
    first = compose_drawing(grid_2x2, rectangle_columns, settings, drawing_date=FIXED_DATE, dpi=DPI)
    second = compose_drawing(grid_2x2, rectangle_columns, settings, drawing_date=FIXED_DATE, dpi=DPI)
    assert first.image.tobytes() == second.image.tobytes()


def test_explicit_column_size(grid_2x2, settings):
    columns = [Column(intersection_id="A-1", type=ColumnType.RECTANGULAR, width=400, height=800)]
    result = compose_drawing(grid_2x2, columns, settings, dpi=DPI)
    assert result.columns[0].width_mm == 400
    assert result.columns[0].height_mm == 800


def test_insufficient_grid(settings):
    with pytest.raises(InsufficientGridError):
        compose_drawing([], [], settings, dpi=DPI)


def test_png_encoding(grid_2x2, rectangle_columns, settings):
    png = compose_drawing(grid_2x2, rectangle_columns, settings, dpi=DPI).to_png()
    assert png.startswith(b"\x89PNG\r\n\x1a\n")


def test_dashed_line_leaves_gaps():
    image = Image.new('RGB', (100, 5), 'white')
    dashed_line(ImageDraw.Draw(image), (0, 2), (100, 2), [10, 10], '#000000', 1)
    assert image.getpixel((5, 2)) == (0, 0, 0)
    assert image.getpixel((15, 2)) == (255, 255, 255)
    assert image.getpixel((25, 2)) == (0, 0, 0)


def test_dashed_line_phase_starts_off_sheet():
    image = Image.new('RGB', (100, 5), 'white')
    dashed_line(ImageDraw.Draw(image), (-20, 2), (100, 2), [10, 10], '#000000', 1)
    assert image.getpixel((5, 2)) == (0, 0, 0)
    assert image.getpixel((15, 2)) == (255, 255, 255)


def test_dashed_line_only_walks_visible_part():
    image = Image.new('RGB', (100, 5), 'white')
    draw = ImageDraw.Draw(image)
    calls = []
    original = draw.line

    def counting_line(*args, **kwargs):
        calls.append(args)
        original(*args, **kwargs)

    draw.line = counting_line
    dashed_line(draw, (-1e7, 2), (1e7, 2), [10, 10], '#000000', 1)

    assert len(calls) <= 7
    assert image.getpixel((5, 2)) == (0, 0, 0)
    assert image.getpixel((15, 2)) == (255, 255, 255)


def test_dashed_line_off_sheet_draws_nothing():
    image = Image.new('RGB', (100, 5), 'white')
    dashed_line(ImageDraw.Draw(image), (0, 50), (100, 50), [10, 10], '#000000', 1)
    assert colors_in(image) == {(255, 255, 255)}


def test_huge_grid_spacing_renders(grid_2x2):
    settings = ProjectSettings(scale=1, grid_spacing=1_000_000)
    result = compose_drawing(grid_2x2, [], settings, dpi=20)
    assert tuple(result.layers) == LAYER_ORDER


def test_span_and_overall_dimensions_agree(monkeypatch, settings):
    # Bays drawn closer together vertically than horizontally
    grid = [vertical("va", "A", 100), vertical("vb", "B", 500), horizontal("h1", "1", 100), horizontal("h2", "2", 200)]
    values = {True: [], False: []}

    def record(self, image, draw, start, end, value, is_vertical, font):
        values[is_vertical].append(value)

    monkeypatch.setattr(FoundationLayoutRenderer, "_draw_dim_line", record)
    compose_drawing(grid, [], settings, dpi=DPI)

    assert values[False] == [4000, 4000]
    assert values[True] == [4000, 4000]
