# backend/foundation_layout/analytics.py
# Drawing workflow events: logged with project context and counted in-process

from collections import Counter
from datetime import datetime, timezone
from typing import Dict
import threading
import logging

logger = logging.getLogger(__name__)


class Analytics:
    """Event tracking for uploads, detections and renders"""

    def __init__(self):
        self._counts = Counter()
        self._lock = threading.Lock()

    def track_event(self, event_name: str, project_id: str = None, properties: dict = None):
        """Log an event and bump its counter"""
        with self._lock:
            self._counts[event_name] += 1
        logger.info(f"Event: {event_name}", extra={
            "project_id": project_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "properties": properties or {}
        })

    def summary(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def reset(self):
        with self._lock:
            self._counts.clear()


analytics = Analytics()
