# backend/foundation_layout/routers/plans.py
# Foundation layout drawings: stateless render, geometry preview, project plan export

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from io import BytesIO
import logging

from .. import schemas
from ..analytics import analytics
from ..services.drawing_composer import PLAN_FILENAME, build_geometry, render_plan_png
from ..services.geometry import InsufficientGridError
from ..services.project_store import ProjectSession
from .projects import get_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["plans"])


def png_response(png: bytes) -> StreamingResponse:
    return StreamingResponse(
        BytesIO(png),
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{PLAN_FILENAME}"'}
    )


def insufficient_grid(e: InsufficientGridError) -> HTTPException:
    return HTTPException(status_code=409, detail=str(e))


@router.post("/api/v1/plans/render")
def render_plan(request: schemas.PlanRequest):
    """Render a foundation layout PNG from a grid, column selection and settings."""
    try:
        png = render_plan_png(
            request.grid_lines,
            request.columns,
            request.settings,
            project_name=request.project_name
        )
    except InsufficientGridError as e:
        raise insufficient_grid(e)

    analytics.track_event("plan_rendered", properties={
        "grid_lines": len(request.grid_lines),
        "columns": len(request.columns)
    })
    return png_response(png)


@router.post("/api/v1/plans/segments", response_model=schemas.PlanGeometryResponse)
def plan_segments(request: schemas.PlanRequest):
    """Resolve wall runs and column positions on the sheet without drawing."""
    try:
        transform, segments, placements = build_geometry(
            request.grid_lines, request.columns, request.settings
        )
    except InsufficientGridError as e:
        raise insufficient_grid(e)

    return schemas.PlanGeometryResponse(
        canvas_width=transform.sheet.width_px,
        canvas_height=transform.sheet.height_px,
        px_per_real_mm=transform.px_per_real_mm,
        segments=[
            schemas.SegmentResponse(
                x1=s.x1, y1=s.y1, x2=s.x2, y2=s.y2,
                orientation=s.orientation,
                line_label=s.line_label,
                start_id=s.start_id,
                end_id=s.end_id
            )
            for s in segments
        ],
        columns=[
            schemas.ColumnPlacementResponse(intersection_id=c.intersection_id, x=c.x, y=c.y)
            for c in placements
        ]
    )


@router.get("/api/v1/projects/{project_id}/plan.png")
def project_plan(session: ProjectSession = Depends(get_session)):
    """Generate the drawing for a project's current grid and keep it on the session."""
    with session.lock:
        grid_lines, columns, settings = session.grid_lines, session.columns, session.settings

    try:
        png = render_plan_png(grid_lines, columns, settings)
    except InsufficientGridError as e:
        raise insufficient_grid(e)

    with session.lock:
        session.generated_png = png

    logger.info(f"Project {session.id}: generated plan ({len(png)} bytes)")
    analytics.track_event("plan_generated", session.id, {"grid_lines": len(grid_lines)})
    return png_response(png)


@router.get("/api/v1/projects/{project_id}/plan/latest")
def latest_project_plan(session: ProjectSession = Depends(get_session)):
    """Download the most recently generated drawing without re-rendering."""
    with session.lock:
        png = session.generated_png
    if png is None:
        raise HTTPException(status_code=404, detail="No plan generated yet")
    return png_response(png)
