"""Models for UI element snapshots and the relationships inferred between them."""

import math
from enum import Enum
from typing import Any, Optional, Tuple

from pydantic import Field, field_validator

from .base import RecordModel
from .geometry import Point, Rect


class UIElementInfo(RecordModel):
    """
    Immutable snapshot of one UI control as reported by the element tree provider.

    Equality is structural. Parents are never stored here; parent and sibling
    context comes from an ElementTree passed alongside the element.
    """

    role: str = Field(..., description="Accessibility role (e.g. 'button', 'AXTextField')")
    title: Optional[str] = Field(None, description="Visible title")
    identifier: Optional[str] = Field(None, description="Developer-assigned identifier")
    frame: Rect = Field(default_factory=Rect, description="Frame in screen coordinates")
    children: Optional[Tuple["UIElementInfo", ...]] = Field(
        None, description="Ordered children, absent when not traversed"
    )
    value: Optional[str] = Field(None, description="Current value")
    description: Optional[str] = Field(None, description="Accessibility description")
    is_enabled: bool = True
    is_selected: bool = False
    has_focus: bool = False

    @property
    def center(self) -> Point:
        return self.frame.center

    def contains(self, other: "UIElementInfo") -> bool:
        return self.frame.contains(other.frame)

    def overlap_area(self, other: "UIElementInfo") -> float:
        return self.frame.overlap_area(other.frame)

    def distance_to(self, other: "UIElementInfo") -> float:
        """Euclidean distance between frame centers."""
        return self.center.distance_to(other.center)

    @property
    def short_description(self) -> str:
        return f"{self.role} [{self.title or 'untitled'}]"


UIElementInfo.model_rebuild()


class RelationshipType(str, Enum):
    """How a related element connects to the analyzed one."""

    # Hierarchy
    PARENT = "parent"
    CHILD = "child"
    SIBLING = "sibling"
    CONTAINER = "container"
    CONTAINED = "contained"

    # Inferred
    FUNCTIONAL = "functional"
    LOGICAL = "logical"


class RelatedElement(RecordModel):
    """A UI element related to an analysis target, with a relevance score in [0, 1]."""

    relationship_type: RelationshipType
    element: UIElementInfo
    relevance_score: float
    notes: Optional[str] = None

    @field_validator("relevance_score", mode="before")
    @classmethod
    def _clamp_score(cls, value: Any) -> float:
        score = float(value)
        if math.isnan(score):
            return 0.0
        return min(max(score, 0.0), 1.0)

    @field_validator("element")
    @classmethod
    def _own_copy(cls, value: UIElementInfo) -> UIElementInfo:
        # Results must outlive the tree snapshot they were computed from
        return value.model_copy(deep=True)

    def describe(self) -> str:
        details = f" ({self.notes})" if self.notes else ""
        return (
            f"[{self.relationship_type.value}] {self.element.short_description}"
            f" - Score: {self.relevance_score:.2f}{details}"
        )
