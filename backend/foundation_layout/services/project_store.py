# backend/foundation_layout/services/project_store.py
# In-memory project sessions: uploaded plan, grid, columns, settings, history
#
# Nothing is persisted; sessions live for the lifetime of the process.

import threading
import uuid
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

from ..schemas import (
    Column,
    ColumnType,
    GridLine,
    GridOrientation,
    ProjectSettings,
)
from ..validators import apply_setting_input
from .connections import find_intersection_at, list_intersections
from .grid_labels import new_grid_line_id, next_grid_label
from .history import HistoryManager, Snapshot

logger = logging.getLogger(__name__)

# Default size for a freshly toggled column (below the explicit-size threshold)
DEFAULT_COLUMN_SIZE = 20


class ProjectNotFoundError(KeyError):
    """No project session with the given id."""


class IntersectionNotFoundError(ValueError):
    """The intersection id does not match the current grid."""


@dataclass
class ProjectSession:
    """Mutable working state of one project; mutations record history."""
    id: str
    image_bytes: bytes
    mime_type: str
    image_width: int
    image_height: int
    grid_lines: Tuple[GridLine, ...] = ()
    columns: Tuple[Column, ...] = ()
    settings: ProjectSettings = field(default_factory=ProjectSettings)
    generated_png: Optional[bytes] = None
    history: HistoryManager = field(default_factory=HistoryManager)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    # =========================================================================
    # SNAPSHOTS
    # =========================================================================

    def snapshot(self) -> Snapshot:
        return Snapshot(grid_lines=self.grid_lines, columns=self.columns)

    def _restore(self, snapshot: Snapshot):
        self.grid_lines = snapshot.grid_lines
        self.columns = snapshot.columns

    def _commit(self, grid_lines: Tuple[GridLine, ...] = None, columns: Tuple[Column, ...] = None):
        """Record the current state, then apply the change"""
        self.history.record(self.snapshot())
        if grid_lines is not None:
            self.grid_lines = grid_lines
        if columns is not None:
            self.columns = columns

    def undo(self) -> bool:
        with self.lock:
            previous = self.history.undo(self.snapshot())
            if previous is None:
                return False
            self._restore(previous)
            return True

    def redo(self) -> bool:
        with self.lock:
            following = self.history.redo(self.snapshot())
            if following is None:
                return False
            self._restore(following)
            return True

    # =========================================================================
    # GRID LINES
    # =========================================================================

    def add_grid_line(self, orientation: GridOrientation, position: float,
                      label: Optional[str] = None) -> Tuple[GridLine, bool]:
        """
        Append a grid line, allocating the next label when none is given.

        Returns:
            (grid_line, label_collision)
        """
        with self.lock:
            if label is None:
                label, collision = next_grid_label(self.grid_lines, orientation)
            else:
                collision = any(l.label == label and l.orientation == orientation for l in self.grid_lines)

            line = GridLine(id=new_grid_line_id(), label=label, position=position, orientation=orientation)
            self._commit(grid_lines=self.grid_lines + (line,))
            logger.info(f"Project {self.id}: added {orientation.value} grid line {label} at {position:.1f}px")
            return line, collision

    def remove_grid_line(self, line_id: str) -> bool:
        with self.lock:
            remaining = tuple(l for l in self.grid_lines if l.id != line_id)
            if len(remaining) == len(self.grid_lines):
                return False
            self._commit(grid_lines=remaining)
            return True

    def clear_grid(self):
        """Remove every grid line and column selection"""
        with self.lock:
            self._commit(grid_lines=(), columns=())

    def replace_grid_lines(self, grid_lines: Sequence[GridLine]):
        """Apply a complete grid (e.g. from AI detection) as one undoable step"""
        with self.lock:
            self._commit(grid_lines=tuple(grid_lines))

    # =========================================================================
    # COLUMNS
    # =========================================================================

    def _intersection_ids(self):
        return {i.id for i in list_intersections(self.grid_lines)}

    def toggle_column(self, intersection_id: str) -> bool:
        """
        Select or deselect a column at an intersection.

        Returns:
            True if the column is now selected
        """
        with self.lock:
            if any(c.intersection_id == intersection_id for c in self.columns):
                self._commit(columns=tuple(c for c in self.columns if c.intersection_id != intersection_id))
                return False

            if intersection_id not in self._intersection_ids():
                raise IntersectionNotFoundError(f"No grid intersection '{intersection_id}'")
            column = Column(
                intersection_id=intersection_id,
                type=ColumnType.SQUARE,
                width=DEFAULT_COLUMN_SIZE,
                height=DEFAULT_COLUMN_SIZE,
            )
            self._commit(columns=self.columns + (column,))
            return True

    def toggle_column_at(self, x: float, y: float) -> Optional[Tuple[str, bool]]:
        """
        Toggle the column under a click on the source plan.

        Returns:
            (intersection_id, selected), or None if nothing was hit
        """
        with self.lock:
            hit = find_intersection_at(self.grid_lines, x, y, self.image_width)
            if hit is None:
                return None
            return hit.id, self.toggle_column(hit.id)

    def set_column_dimensions(self, intersection_id: str, column_type: ColumnType,
                              width: float, height: float) -> Column:
        with self.lock:
            for i, column in enumerate(self.columns):
                if column.intersection_id == intersection_id:
                    updated = column.model_copy(update={'type': column_type, 'width': width, 'height': height})
                    self._commit(columns=self.columns[:i] + (updated,) + self.columns[i + 1:])
                    return updated
            raise IntersectionNotFoundError(f"Column '{intersection_id}' is not selected")

    # =========================================================================
    # SETTINGS
    # =========================================================================

    def update_settings(self, changes: Dict[str, Any]) -> ProjectSettings:
        """Apply already-validated settings changes (not part of undo history)"""
        with self.lock:
            updates = {k: v for k, v in changes.items() if v is not None}
            if updates:
                self.settings = self.settings.model_copy(update=updates)
            return self.settings

    def apply_form_input(self, field_name: str, raw_value: Any) -> ProjectSettings:
        """Apply one raw form value; unparseable input is ignored"""
        with self.lock:
            self.settings = apply_setting_input(self.settings, field_name, raw_value)
            return self.settings


class ProjectStore:
    """Thread-safe map of project sessions"""

    def __init__(self):
        self._projects: Dict[str, ProjectSession] = {}
        self._lock = threading.Lock()

    def create(self, image_bytes: bytes, mime_type: str, width: int, height: int) -> ProjectSession:
        session = ProjectSession(
            id=uuid.uuid4().hex,
            image_bytes=image_bytes,
            mime_type=mime_type,
            image_width=width,
            image_height=height,
        )
        with self._lock:
            self._projects[session.id] = session
        logger.info(f"Created project {session.id} ({width}x{height}px {mime_type})")
        return session

    def get(self, project_id: str) -> ProjectSession:
        with self._lock:
            session = self._projects.get(project_id)
        if session is None:
            raise ProjectNotFoundError(project_id)
        return session

    def delete(self, project_id: str):
        with self._lock:
            if self._projects.pop(project_id, None) is None:
                raise ProjectNotFoundError(project_id)

    def __len__(self):
        with self._lock:
            return len(self._projects)


project_store = ProjectStore()
