"""Interaction context: one interaction plus the screens around it."""

from typing import Optional

from pydantic import Field

from .base import RecordModel
from .interactions import UserInteraction


class InteractionContext(RecordModel):
    """
    A single interaction with the screenshots taken before and after it.

    This is the unit sent to the captioning service. Screenshots are
    referenced by file name inside the screenshot store.
    """

    before_screenshot: str = Field(..., description="Screenshot file name before the interaction")
    interaction: UserInteraction = Field(..., description="The recorded interaction")
    after_screenshot: str = Field(..., description="Screenshot file name after the interaction")
    ai_analysis: Optional[str] = Field(None, description="Caption returned by the captioning service")

    def with_analysis(self, analysis: str) -> "InteractionContext":
        return self.model_copy(update={"ai_analysis": analysis})
