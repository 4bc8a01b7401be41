"""Data models for WeLabel Recorder."""

from .context import InteractionContext
from .element import RelatedElement, RelationshipType, UIElementInfo
from .geometry import Point, Rect, SpatialRelation, spatial_relation
from .interactions import (
    KeyInteraction,
    MouseButton,
    MouseClickInteraction,
    MouseMoveInteraction,
    MouseScrollInteraction,
    ScreenshotInteraction,
    UIElementAction,
    UIElementInteraction,
    UserInteraction,
    decode_interaction,
    decode_stored_interaction,
    encode_interaction,
    encode_stored_interaction,
)

__all__ = [
    "InteractionContext",
    "RelatedElement",
    "RelationshipType",
    "UIElementInfo",
    "Point",
    "Rect",
    "SpatialRelation",
    "spatial_relation",
    "KeyInteraction",
    "MouseButton",
    "MouseClickInteraction",
    "MouseMoveInteraction",
    "MouseScrollInteraction",
    "ScreenshotInteraction",
    "UIElementAction",
    "UIElementInteraction",
    "UserInteraction",
    "decode_interaction",
    "decode_stored_interaction",
    "encode_interaction",
    "encode_stored_interaction",
]
