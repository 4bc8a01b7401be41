"""Recorded user interactions as a closed, tagged union.

Every variant carries a literal ``type`` discriminant. The encoder always
writes that tag into the payload, so a decoder can pick the variant before
attempting a full decode and reject tags it does not know.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Type, Union

from pydantic import Field, ValidationError
from pydantic_core import PydanticSerializationError

from ..exceptions import DecodeError, EncodeError
from .base import RecordModel
from .element import UIElementInfo
from .geometry import Point, Rect


class MouseButton(str, Enum):
    """Mouse button that produced a click."""

    LEFT = "left"
    RIGHT = "right"
    MIDDLE = "middle"
    OTHER = "other"

    @classmethod
    def from_button_number(cls, number: int) -> "MouseButton":
        """Map an OS button number (0 left, 1 right, 2 middle) to a button."""
        return {0: cls.LEFT, 1: cls.RIGHT, 2: cls.MIDDLE}.get(number, cls.OTHER)


class UIElementAction(str, Enum):
    """What the user did to a UI element."""

    CLICK = "click"
    FOCUS = "focus"
    HOVER = "hover"
    INPUT = "input"
    SCROLL = "scroll"


class InteractionBase(RecordModel):
    """Fields shared by every interaction variant."""

    timestamp: datetime = Field(default_factory=datetime.now)


class MouseClickInteraction(InteractionBase):
    type: Literal["mouseClick"] = "mouseClick"
    position: Point
    button: MouseButton = MouseButton.LEFT
    click_count: int = Field(default=1, ge=0)


class MouseMoveInteraction(InteractionBase):
    type: Literal["mouseMove"] = "mouseMove"
    from_position: Point
    to_position: Point


class MouseScrollInteraction(InteractionBase):
    type: Literal["mouseScroll"] = "mouseScroll"
    position: Point
    delta_x: float = 0.0
    delta_y: float = 0.0


class KeyInteraction(InteractionBase):
    type: Literal["key"] = "key"
    is_down: bool
    key_code: int = Field(..., ge=0)
    characters: Optional[str] = None
    modifiers: int = Field(default=0, ge=0, description="Modifier flags bitmask")


class ScreenshotInteraction(InteractionBase):
    type: Literal["screenshot"] = "screenshot"
    image_file_name: str = Field(..., min_length=1)
    screen_bounds: Rect


class UIElementInteraction(InteractionBase):
    type: Literal["uiElement"] = "uiElement"
    element_info: UIElementInfo
    action: UIElementAction
    position: Point


UserInteraction = Annotated[
    Union[
        MouseClickInteraction,
        MouseMoveInteraction,
        MouseScrollInteraction,
        KeyInteraction,
        ScreenshotInteraction,
        UIElementInteraction,
    ],
    Field(discriminator="type"),
]

INTERACTION_VARIANTS: Tuple[Type[InteractionBase], ...] = (
    MouseClickInteraction,
    MouseMoveInteraction,
    MouseScrollInteraction,
    KeyInteraction,
    ScreenshotInteraction,
    UIElementInteraction,
)

# Discriminant -> variant model
INTERACTION_MODELS: Dict[str, Type[InteractionBase]] = {
    model.model_fields["type"].default: model for model in INTERACTION_VARIANTS
}

STORED_TAG_KEY = "type"
STORED_DATA_KEY = "data"


def encode_interaction(interaction: Any) -> Dict[str, Any]:
    """
    Serialize an interaction to a JSON-safe dict with its discriminant.

    Raises:
        EncodeError: If the object is not a known variant or cannot be
            represented as strict JSON.
    """
    tag = getattr(interaction, "type", None)
    model = INTERACTION_MODELS.get(tag) if isinstance(tag, str) else None
    if model is None or not isinstance(interaction, model):
        raise EncodeError(
            f"Not a recordable interaction: {type(interaction).__name__}"
        )

    try:
        # Revalidate: instances built with model_construct skip the finite checks
        model.model_validate(interaction.model_dump())
        payload = interaction.model_dump(mode="json", by_alias=True)
        payload[STORED_TAG_KEY] = tag
        json.dumps(payload, allow_nan=False)
    except (ValidationError, PydanticSerializationError, TypeError, ValueError) as e:
        raise EncodeError(f"Failed to encode {tag} interaction", detail=str(e)) from e

    return payload


def decode_interaction(payload: Any) -> InteractionBase:
    """
    Rebuild an interaction from its encoded dict.

    The ``type`` tag is read first and selects the variant model.

    Raises:
        DecodeError: Unknown tag, non-object payload, or a payload that does
            not match the claimed variant.
    """
    if not isinstance(payload, dict):
        raise DecodeError("Interaction payload must be a JSON object")

    tag = payload.get(STORED_TAG_KEY)
    model = INTERACTION_MODELS.get(tag) if isinstance(tag, str) else None
    if model is None:
        raise DecodeError(f"Unknown interaction type: {tag!r}", detail=str(tag))

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise DecodeError(f"Malformed {tag} interaction", detail=str(e)) from e


def encode_stored_interaction(interaction: Any) -> Dict[str, Any]:
    """Durable envelope: ``{"type": tag, "data": payload}``."""
    payload = encode_interaction(interaction)
    return {STORED_TAG_KEY: payload[STORED_TAG_KEY], STORED_DATA_KEY: payload}


def decode_stored_interaction(entry: Any) -> InteractionBase:
    """
    Decode one durable envelope.

    Raises:
        DecodeError: If the envelope is malformed, its tag disagrees with the
            payload's own tag, or the payload fails to decode.
    """
    if not isinstance(entry, dict):
        raise DecodeError("Stored interaction must be a JSON object")

    tag = entry.get(STORED_TAG_KEY)
    data = entry.get(STORED_DATA_KEY)
    if not isinstance(tag, str) or not isinstance(data, dict):
        raise DecodeError("Stored interaction is missing its type or data")

    payload_tag = data.get(STORED_TAG_KEY, tag)
    if payload_tag != tag:
        raise DecodeError(
            f"Stored type {tag!r} disagrees with payload type {payload_tag!r}"
        )

    return decode_interaction({**data, STORED_TAG_KEY: tag})
