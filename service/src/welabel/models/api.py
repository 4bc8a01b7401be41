"""HTTP request and response models."""

from typing import List, Optional

from pydantic import Field

from .base import RecordModel
from .element import RelatedElement, UIElementInfo
from .geometry import Point


class AnalyzeRequest(RecordModel):
    """Relationship analysis request for one element of a UI snapshot."""

    root: UIElementInfo = Field(..., description="Root of the UI snapshot")
    target_path: List[int] = Field(
        default_factory=list,
        description="Child positions from the root down to the target element",
    )
    position: Optional[Point] = Field(
        None, description="Interaction position; defaults to the target's center"
    )


class AnalyzeResponse(RecordModel):
    target: UIElementInfo
    related: List[RelatedElement]


class SessionSummary(RecordModel):
    """One row of the session listing."""

    id: str
    start_time: str
    end_time: Optional[str] = None
    project_id: Optional[str] = None
    interaction_count: int
    screenshot_count: int
    is_active: bool = False


class ExportResponse(RecordModel):
    session_id: str
    export_path: str
    archive_path: Optional[str] = None
