# backend/foundation_layout/routers/projects.py
# Project sessions: plan upload, grid editing, column selection, undo/redo

from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File
from io import BytesIO
import os
import logging

from PIL import Image, UnidentifiedImageError

from .. import schemas
from ..analytics import analytics
from ..services.gemini_service import GridDetectionError, detect_grid_lines
from ..services.project_store import (
    IntersectionNotFoundError,
    ProjectNotFoundError,
    ProjectSession,
    ProjectStore,
    project_store,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/projects", tags=["projects"])

# Allowed file types
ALLOWED_IMAGE_EXTENSIONS = {'.png', '.jpg', '.jpeg'}
MAX_FILE_SIZE = 50 * 1024 * 1024  # 50MB

CONTENT_TYPES = {
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
}


def get_store() -> ProjectStore:
    return project_store


def get_session(project_id: str, store: ProjectStore = Depends(get_store)) -> ProjectSession:
    """Helper to load a project session or 404."""
    try:
        return store.get(project_id)
    except ProjectNotFoundError:
        raise HTTPException(status_code=404, detail="Project not found")


def to_response(session: ProjectSession) -> schemas.ProjectResponse:
    return schemas.ProjectResponse(
        id=session.id,
        image_width=session.image_width,
        image_height=session.image_height,
        grid_lines=list(session.grid_lines),
        columns=list(session.columns),
        settings=session.settings,
        can_undo=session.history.can_undo,
        can_redo=session.history.can_redo,
        has_generated_plan=session.generated_png is not None,
    )


# =============================================================================
# PROJECTS
# =============================================================================

@router.post("/", response_model=schemas.ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    file: UploadFile = File(...),
    store: ProjectStore = Depends(get_store)
):
    """Upload a floor-plan image and open a project session for it."""
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No filename provided"
        )

    file_ext = os.path.splitext(file.filename)[1].lower()
    if file_ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File type not allowed. Allowed types: {', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))}"
        )

    content = await file.read()
    if len(content) > MAX_FILE_SIZE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large. Maximum size: {MAX_FILE_SIZE // (1024 * 1024)}MB"
        )

    try:
        with Image.open(BytesIO(content)) as img:
            width, height = img.size
    except UnidentifiedImageError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is not a readable image"
        )

    session = store.create(content, CONTENT_TYPES[file_ext], width, height)
    analytics.track_event("project_created", session.id, {"width": width, "height": height})
    return to_response(session)


@router.get("/{project_id}", response_model=schemas.ProjectResponse)
async def get_project(session: ProjectSession = Depends(get_session)):
    """Get the current project state."""
    return to_response(session)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(project_id: str, store: ProjectStore = Depends(get_store)):
    """Discard a project session."""
    try:
        store.delete(project_id)
    except ProjectNotFoundError:
        raise HTTPException(status_code=404, detail="Project not found")


@router.patch("/{project_id}/settings", response_model=schemas.ProjectSettings)
async def update_settings(
    update: schemas.SettingsUpdate,
    session: ProjectSession = Depends(get_session)
):
    """Update foundation settings; invalid values are rejected before any change."""
    return session.update_settings(update.model_dump(exclude_none=True))


@router.put("/{project_id}/settings/{field_name}", response_model=schemas.ProjectSettings)
async def set_setting_input(
    field_name: str,
    setting: schemas.SettingInput,
    session: ProjectSession = Depends(get_session)
):
    """
    Apply one raw settings form field (snake_case or camelCase name).

    Input that is not a positive whole number is ignored and the current
    settings are returned unchanged.
    """
    try:
        return session.apply_form_input(field_name, setting.value)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


# =============================================================================
# GRID LINES
# =============================================================================

@router.post("/{project_id}/grid-lines", response_model=schemas.GridLineCreated,
             status_code=status.HTTP_201_CREATED)
async def add_grid_line(
    grid_line: schemas.GridLineCreate,
    session: ProjectSession = Depends(get_session)
):
    """Place a grid line; the label is allocated when not given."""
    line, collision = session.add_grid_line(grid_line.orientation, grid_line.position, grid_line.label)
    return schemas.GridLineCreated(grid_line=line, label_collision=collision)


@router.delete("/{project_id}/grid-lines/{line_id}", response_model=schemas.ProjectResponse)
async def remove_grid_line(line_id: str, session: ProjectSession = Depends(get_session)):
    """Remove one grid line. Column selections referencing it are kept but no longer drawn."""
    if not session.remove_grid_line(line_id):
        raise HTTPException(status_code=404, detail="Grid line not found")
    return to_response(session)


@router.delete("/{project_id}/grid-lines", response_model=schemas.ProjectResponse)
async def clear_grid(session: ProjectSession = Depends(get_session)):
    """Remove all grid lines and column selections."""
    session.clear_grid()
    return to_response(session)


@router.post("/{project_id}/grid-lines/detect", response_model=schemas.ProjectResponse)
def detect_grid(session: ProjectSession = Depends(get_session)):
    """
    Auto-detect the structural grid with Gemini.

    On failure the project is left unchanged and a recoverable notice is returned.
    """
    try:
        lines = detect_grid_lines(
            session.image_bytes,
            session.mime_type,
            session.image_width,
            session.image_height
        )
    except GridDetectionError as e:
        logger.warning(f"Project {session.id}: grid detection failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Detection failed. Place grid lines manually or try again."
        )

    session.replace_grid_lines(lines)
    analytics.track_event("grid_detected", session.id, {"line_count": len(lines)})
    return to_response(session)


# =============================================================================
# COLUMNS
# =============================================================================

@router.post("/{project_id}/columns/toggle", response_model=schemas.ProjectResponse)
async def toggle_column(
    toggle: schemas.ColumnToggle,
    session: ProjectSession = Depends(get_session)
):
    """Select or deselect the column at an intersection."""
    try:
        session.toggle_column(toggle.intersection_id)
    except IntersectionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return to_response(session)


@router.post("/{project_id}/columns/select-at", response_model=schemas.ProjectResponse)
async def select_column_at(
    click: schemas.ColumnSelectAt,
    session: ProjectSession = Depends(get_session)
):
    """Toggle the column nearest to a click on the plan (plan pixels)."""
    if session.toggle_column_at(click.x, click.y) is None:
        raise HTTPException(status_code=404, detail="No grid intersection at this position")
    return to_response(session)


@router.put("/{project_id}/columns/{intersection_id}", response_model=schemas.Column)
async def set_column_dimensions(
    intersection_id: str,
    dimensions: schemas.ColumnDimensions,
    session: ProjectSession = Depends(get_session)
):
    """Give a selected column explicit dimensions (mm)."""
    try:
        return session.set_column_dimensions(
            intersection_id, dimensions.type, dimensions.width, dimensions.height
        )
    except IntersectionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# =============================================================================
# HISTORY
# =============================================================================

@router.post("/{project_id}/undo", response_model=schemas.ProjectResponse)
async def undo(session: ProjectSession = Depends(get_session)):
    """Restore the previous grid/column snapshot."""
    if not session.undo():
        raise HTTPException(status_code=409, detail="Nothing to undo")
    return to_response(session)


@router.post("/{project_id}/redo", response_model=schemas.ProjectResponse)
async def redo(session: ProjectSession = Depends(get_session)):
    """Re-apply the most recently undone snapshot."""
    if not session.redo():
        raise HTTPException(status_code=409, detail="Nothing to redo")
    return to_response(session)
