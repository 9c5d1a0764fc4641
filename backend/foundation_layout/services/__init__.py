# backend/foundation_layout/services/__init__.py
# Foundation layout services

from .geometry import (
    build_transform,
    split_grid_lines,
    grid_extent,
    GridTransform,
    Sheet,
    InsufficientGridError,
    PAPER_W_MM,
    PAPER_H_MM,
    DEFAULT_DPI
)

from .connections import (
    resolve_segments,
    resolve_columns,
    resolve_intersection,
    list_intersections,
    find_intersection_at,
    intersection_id,
    Segment,
    ColumnPlacement,
    Intersection
)

from .grid_labels import (
    next_grid_label,
    new_grid_line_id
)

from .history import (
    HistoryManager,
    Snapshot,
    MAX_HISTORY_DEPTH
)

from .layout_renderer import (
    FoundationLayoutRenderer,
    derive_bands,
    SegmentBands,
    LAYER_ORDER
)

from .drawing_composer import (
    compose_drawing,
    build_geometry,
    render_plan_png,
    DrawingResult,
    PLAN_FILENAME
)

from .gemini_service import (
    get_gemini_client,
    detect_grid_lines,
    parse_detection_response,
    denormalize_grid_lines,
    GridDetectionError,
    GRID_DETECTION_MODEL
)

from .project_store import (
    ProjectStore,
    ProjectSession,
    ProjectNotFoundError,
    IntersectionNotFoundError,
    project_store
)

__all__ = [
    # Geometry
    'build_transform',
    'split_grid_lines',
    'grid_extent',
    'GridTransform',
    'Sheet',
    'InsufficientGridError',

    # Connections
    'resolve_segments',
    'resolve_columns',
    'resolve_intersection',
    'list_intersections',
    'find_intersection_at',
    'Segment',
    'ColumnPlacement',

    # Grid Labels
    'next_grid_label',
    'new_grid_line_id',

    # History
    'HistoryManager',
    'Snapshot',

    # Layout Renderer
    'FoundationLayoutRenderer',
    'derive_bands',
    'LAYER_ORDER',

    # Drawing Composer
    'compose_drawing',
    'build_geometry',
    'render_plan_png',
    'DrawingResult',

    # Gemini Service
    'detect_grid_lines',
    'parse_detection_response',
    'denormalize_grid_lines',
    'GridDetectionError',

    # Project Store
    'ProjectStore',
    'ProjectSession',
    'project_store',
]
