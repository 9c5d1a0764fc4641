from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Union
from enum import Enum
from .validators import SettingsValidators

# Enums
class GridOrientation(str, Enum):
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"

class ColumnType(str, Enum):
    SQUARE = "square"
    RECTANGULAR = "rectangular"

# Grid Schemas
class GridLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str = Field(..., min_length=1, max_length=10)
    position: float  # pixel coordinate on the source plan
    orientation: GridOrientation

class GridLineCreate(BaseModel):
    orientation: GridOrientation
    position: float = Field(..., ge=0)
    label: Optional[str] = Field(None, min_length=1, max_length=10)

class GridLineCreated(BaseModel):
    grid_line: GridLine
    label_collision: bool = False

# Column Schemas
class Column(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    intersection_id: str = Field(..., alias="intersectionId", min_length=3)
    type: ColumnType = ColumnType.SQUARE
    width: float = Field(20, ge=0)  # mm
    height: float = Field(20, ge=0)  # mm

class ColumnToggle(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    intersection_id: str = Field(..., alias="intersectionId", min_length=3)

class ColumnSelectAt(BaseModel):
    x: float
    y: float

class ColumnDimensions(BaseModel):
    type: ColumnType = ColumnType.SQUARE
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)

# Settings Schemas
class ProjectSettings(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    scale: int = 100  # 1:X
    grid_spacing: int = Field(4000, alias="gridSpacing")
    wall_width: int = Field(225, alias="wallWidth")
    trench_width: int = Field(600, alias="trenchWidth")
    footing_width: int = Field(1000, alias="footingWidth")
    working_space: int = Field(300, alias="workingSpace")
    blinding_offset: int = Field(50, alias="blindingOffset")

    @field_validator(
        'scale', 'grid_spacing', 'wall_width', 'trench_width',
        'footing_width', 'working_space', 'blinding_offset',
        mode='before'
    )
    @classmethod
    def validate_dimension(cls, v):
        return SettingsValidators.validate_positive_int(v)

class SettingInput(BaseModel):
    value: Optional[Union[int, float, str]] = None  # raw form value, parsed leniently

class SettingsUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    scale: Optional[int] = None
    grid_spacing: Optional[int] = Field(None, alias="gridSpacing")
    wall_width: Optional[int] = Field(None, alias="wallWidth")
    trench_width: Optional[int] = Field(None, alias="trenchWidth")
    footing_width: Optional[int] = Field(None, alias="footingWidth")
    working_space: Optional[int] = Field(None, alias="workingSpace")
    blinding_offset: Optional[int] = Field(None, alias="blindingOffset")

    @field_validator(
        'scale', 'grid_spacing', 'wall_width', 'trench_width',
        'footing_width', 'working_space', 'blinding_offset',
        mode='before'
    )
    @classmethod
    def validate_dimension(cls, v):
        if v is None:
            return v
        return SettingsValidators.validate_positive_int(v)

# AI Detection Schemas
class DetectedGridLine(BaseModel):
    label: str = Field(..., min_length=1, max_length=10)
    orientation: GridOrientation
    position: float = Field(..., ge=0, le=1)  # normalized

class GridDetectionPayload(BaseModel):
    grid_lines: List[DetectedGridLine] = Field(..., alias="gridLines")

# Plan Schemas
class PlanRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    grid_lines: List[GridLine] = Field(default_factory=list, alias="gridLines")
    columns: List[Column] = Field(default_factory=list)
    settings: ProjectSettings = Field(default_factory=ProjectSettings)
    project_name: Optional[str] = Field(None, alias="projectName", max_length=60)

class SegmentResponse(BaseModel):
    x1: float
    y1: float
    x2: float
    y2: float
    orientation: GridOrientation
    line_label: str
    start_id: str
    end_id: str

class ColumnPlacementResponse(BaseModel):
    intersection_id: str
    x: float
    y: float

class PlanGeometryResponse(BaseModel):
    canvas_width: int
    canvas_height: int
    px_per_real_mm: float
    segments: List[SegmentResponse]
    columns: List[ColumnPlacementResponse]

# Project Schemas
class ProjectResponse(BaseModel):
    id: str
    image_width: int
    image_height: int
    grid_lines: List[GridLine]
    columns: List[Column]
    settings: ProjectSettings
    can_undo: bool
    can_redo: bool
    has_generated_plan: bool
