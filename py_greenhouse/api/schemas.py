"""Request/response models shared by the API routers."""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from ..config import settings

Cell = Tuple[int, int]


def _check_cells(cells: List[Cell]) -> List[Cell]:
    size = settings.grid_size
    outside = [cell for cell in cells if not (0 <= cell[0] < size and 0 <= cell[1] < size)]
    if outside:
        raise ValueError(f"cells outside the {size}x{size} grid: {outside[:5]}")
    return cells


class ExpansionRequest(BaseModel):
    """Request to order the unlocking of locked cells."""

    unlocked_cells: List[Cell] = Field(default_factory=list, description="Cells already unlocked")
    locked_cells: List[Cell] = Field(default_factory=list, description="Candidate cells to unlock")
    metric: Optional[str] = Field(None, description="Potential metric name (defaults to server setting)")

    @field_validator("unlocked_cells")
    @classmethod
    def unlocked_in_grid(cls, cells: List[Cell]) -> List[Cell]:
        return _check_cells(cells)

    @field_validator("locked_cells")
    @classmethod
    def locked_in_grid(cls, cells: List[Cell]) -> List[Cell]:
        if len(cells) > settings.max_candidates:
            raise ValueError(f"at most {settings.max_candidates} locked cells are accepted")
        return _check_cells(cells)


class ExpansionStepModel(BaseModel):
    """One recommended unlock."""

    order: int
    cell: Cell
    gloomgourd_potential: int
    gloomgourd_gain: int


class ExpansionResponse(BaseModel):
    """Ordered unlock plan."""

    steps: List[ExpansionStepModel]
    total_steps: int
    final_gloomgourd_count: int


class DefaultsResponse(BaseModel):
    """Grid defaults for a fresh client."""

    grid_size: int
    default_unlocked_cells: List[Cell]
    metrics: List[str]
    default_metric: str


class JobSubmitRequest(BaseModel):
    """Submit a background job."""

    type: str = Field(description="Job type, e.g. greenhouse_expansion")
    params: Dict[str, Any] = Field(default_factory=dict, description="Job parameters")


class JobSubmitResponse(BaseModel):
    job_id: str
    status: str
    message: str


class JobProgress(BaseModel):
    phase: str
    percentage: Optional[int] = None
    current_activity: str = ""
    elapsed_seconds: float = 0.0


class JobStatusResponse(BaseModel):
    """Status of a background job; timestamps are epoch seconds."""

    id: str
    status: str
    created_at: float
    started_at: Optional[float] = None
    completed_at: Optional[float] = None
    progress: Optional[JobProgress] = None
    queue_position: Optional[int] = None
    result: Optional[ExpansionResponse] = None
    error: Optional[str] = None
