# backend/foundation_layout/services/history.py
# Linear undo/redo over {grid_lines, columns} snapshots

from collections import deque
from dataclasses import dataclass
from typing import Optional, Tuple
import logging

from ..schemas import Column, GridLine

logger = logging.getLogger(__name__)

MAX_HISTORY_DEPTH = 20


@dataclass(frozen=True)
class Snapshot:
    """Value snapshot of the editable grid state."""
    grid_lines: Tuple[GridLine, ...] = ()
    columns: Tuple[Column, ...] = ()


class HistoryManager:
    """
    Two bounded stacks of snapshots.

    Call `record(current)` before every mutation; it clears the redo stack.
    `undo(current)` and `redo(current)` take the live state so it can be
    pushed onto the opposite stack, and return the snapshot to restore
    (or None when there is nothing to restore).
    """

    def __init__(self, max_depth: int = MAX_HISTORY_DEPTH):
        self.max_depth = max_depth
        self._past = deque(maxlen=max_depth)
        self._future = deque(maxlen=max_depth)

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    @property
    def depth(self) -> Tuple[int, int]:
        return (len(self._past), len(self._future))

    def record(self, current: Snapshot):
        self._past.append(current)
        self._future.clear()

    def undo(self, current: Snapshot) -> Optional[Snapshot]:
        if not self._past:
            return None
        previous = self._past.pop()
        self._future.appendleft(current)
        logger.debug(f"Undo: history depth {self.depth}")
        return previous

    def redo(self, current: Snapshot) -> Optional[Snapshot]:
        if not self._future:
            return None
        following = self._future.popleft()
        self._past.append(current)
        logger.debug(f"Redo: history depth {self.depth}")
        return following
