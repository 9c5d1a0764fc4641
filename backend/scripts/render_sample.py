import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

import argparse
import logging

from foundation_layout.schemas import Column, GridLine, GridOrientation, ProjectSettings
from foundation_layout.services.drawing_composer import PLAN_FILENAME, render_plan_png

logging.basicConfig(level=logging.INFO, format='%(levelname)s - %(message)s')


def sample_grid(bays_x: int, bays_y: int, bay_px: float = 200.0):
    """Evenly spaced grid A.. x 1.. with a column at every crossing"""
    grid_lines = []
    for i in range(bays_x + 1):
        grid_lines.append(GridLine(
            id=f"v{i}", label=chr(ord('A') + i),
            position=100 + i * bay_px, orientation=GridOrientation.VERTICAL
        ))
    for j in range(bays_y + 1):
        grid_lines.append(GridLine(
            id=f"h{j}", label=str(j + 1),
            position=100 + j * bay_px, orientation=GridOrientation.HORIZONTAL
        ))

    columns = [
        Column(intersection_id=f"{chr(ord('A') + i)}-{j + 1}")
        for i in range(bays_x + 1)
        for j in range(bays_y + 1)
    ]
    return grid_lines, columns


def render_sample(output: str, bays_x: int, bays_y: int, scale: int, dpi: int):
    grid_lines, columns = sample_grid(bays_x, bays_y)
    settings = ProjectSettings(scale=scale)
    png = render_plan_png(grid_lines, columns, settings, project_name="SAMPLE", dpi=dpi)

    with open(output, 'wb') as f:
        f.write(png)
    print(f"Wrote {output} ({len(png)} bytes)")


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="Render a sample foundation layout sheet")
    parser.add_argument('-o', '--output', default=PLAN_FILENAME)
    parser.add_argument('--bays-x', type=int, default=3)
    parser.add_argument('--bays-y', type=int, default=2)
    parser.add_argument('--scale', type=int, default=100)
    parser.add_argument('--dpi', type=int, default=None)
    args = parser.parse_args()

    if args.bays_x < 1 or args.bays_x > 24 or args.bays_y < 1:
        parser.error("need 1-24 bays across and at least 1 bay down")

    render_sample(args.output, args.bays_x, args.bays_y, args.scale, args.dpi)
