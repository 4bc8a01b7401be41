"""Tests for interaction encoding and decoding."""

import math
from datetime import datetime

import pytest
from pydantic import ValidationError

from welabel.exceptions import DecodeError, EncodeError
from welabel.models import (
    InteractionContext,
    KeyInteraction,
    MouseButton,
    MouseClickInteraction,
    MouseMoveInteraction,
    MouseScrollInteraction,
    Point,
    Rect,
    ScreenshotInteraction,
    UIElementAction,
    UIElementInfo,
    UIElementInteraction,
    decode_interaction,
    decode_stored_interaction,
    encode_interaction,
    encode_stored_interaction,
)

STAMP = datetime(2024, 5, 1, 12, 30, 15, 123456)


def test_click_round_trip_preserves_fields():
    """A click survives encode/decode unchanged."""
    click = MouseClickInteraction(
        timestamp=STAMP,
        position=Point(x=100.25, y=200.5),
        button=MouseButton.RIGHT,
        click_count=2,
    )

    decoded = decode_interaction(encode_interaction(click))

    assert decoded == click
    assert isinstance(decoded, MouseClickInteraction)


def test_encoded_payload_uses_wire_names_and_tag():
    """Payloads carry the discriminant and camelCase field names."""
    payload = encode_interaction(
        MouseClickInteraction(timestamp=STAMP, position=Point(x=1, y=2), click_count=3)
    )

    assert payload["type"] == "mouseClick"
    assert payload["clickCount"] == 3
    assert payload["position"] == {"x": 1.0, "y": 2.0}
    assert payload["button"] == "left"


def test_key_interaction_keeps_absent_characters():
    """Optional fields stay absent after a round trip."""
    key = KeyInteraction(timestamp=STAMP, is_down=False, key_code=36, modifiers=256)

    decoded = decode_interaction(encode_interaction(key))

    assert decoded == key
    assert decoded.characters is None
    assert decoded.is_down is False


def test_ui_element_interaction_round_trip_with_children():
    """Nested element snapshots survive a round trip."""
    element = UIElementInfo(
        role="group",
        title="Login",
        frame=Rect(x=0, y=0, width=300, height=200),
        children=(
            UIElementInfo(role="textField", identifier="login_username"),
            UIElementInfo(role="button", title="Sign in", is_enabled=False),
        ),
    )
    interaction = UIElementInteraction(
        timestamp=STAMP,
        element_info=element,
        action=UIElementAction.CLICK,
        position=Point(x=10, y=20),
    )

    assert decode_interaction(encode_interaction(interaction)) == interaction


@pytest.mark.parametrize(
    "interaction",
    [
        pytest.param(
            MouseClickInteraction(timestamp=STAMP, position=Point(x=0.1, y=-7.3), button=MouseButton.OTHER),
            id="click",
        ),
        pytest.param(
            MouseMoveInteraction(
                timestamp=STAMP,
                from_position=Point(x=10.125, y=20.7),
                to_position=Point(x=-3.33, y=1e-3),
            ),
            id="move",
        ),
        pytest.param(
            MouseScrollInteraction(timestamp=STAMP, position=Point(x=512.5, y=384.25), delta_x=0.3, delta_y=-2.75),
            id="scroll",
        ),
        pytest.param(
            MouseScrollInteraction(timestamp=STAMP, position=Point(x=1.5, y=2.5)),
            id="scroll-defaults",
        ),
        pytest.param(
            KeyInteraction(timestamp=STAMP, is_down=True, key_code=12, characters="q", modifiers=1048576),
            id="key-with-characters",
        ),
        pytest.param(
            KeyInteraction(timestamp=STAMP, is_down=False, key_code=12),
            id="key-without-characters",
        ),
        pytest.param(
            ScreenshotInteraction(
                timestamp=STAMP,
                image_file_name="screenshot_1714566615123_0a1b2c3d.png",
                screen_bounds=Rect(x=-1440.5, y=0.25, width=1440.5, height=900.75),
            ),
            id="screenshot",
        ),
        pytest.param(
            UIElementInteraction(
                timestamp=STAMP,
                element_info=UIElementInfo(
                    role="AXTextField",
                    title="Email",
                    identifier="login_email",
                    value="a@example.com",
                    description="Email address",
                    frame=Rect(x=10.5, y=20.25, width=200.125, height=24.6),
                    has_focus=True,
                ),
                action=UIElementAction.FOCUS,
                position=Point(x=110.6, y=32.4),
            ),
            id="ui-element",
        ),
        pytest.param(
            UIElementInteraction(
                timestamp=STAMP,
                element_info=UIElementInfo(role="button"),
                action=UIElementAction.HOVER,
                position=Point(),
            ),
            id="ui-element-minimal",
        ),
    ],
)
def test_every_variant_round_trips(interaction):
    """decode(encode(x)) == x for all variants, optional fields set or not."""
    decoded = decode_interaction(encode_interaction(interaction))

    assert decoded == interaction
    assert type(decoded) is type(interaction)
    assert decode_stored_interaction(encode_stored_interaction(interaction)) == interaction


def test_every_variant_has_distinct_tag():
    """Each variant encodes with its own discriminant."""
    interactions = [
        MouseClickInteraction(position=Point()),
        MouseMoveInteraction(from_position=Point(), to_position=Point(x=9, y=9)),
        MouseScrollInteraction(position=Point(), delta_y=-3.5),
        KeyInteraction(is_down=True, key_code=0),
        ScreenshotInteraction(image_file_name="a.png", screen_bounds=Rect(width=10, height=10)),
        UIElementInteraction(
            element_info=UIElementInfo(role="button"),
            action=UIElementAction.HOVER,
            position=Point(),
        ),
    ]

    tags = [encode_interaction(i)["type"] for i in interactions]

    assert tags == ["mouseClick", "mouseMove", "mouseScroll", "key", "screenshot", "uiElement"]


def test_decode_unknown_tag_fails():
    """Unknown tags are rejected before any field decoding."""
    with pytest.raises(DecodeError) as exc_info:
        decode_interaction({"type": "teleport", "timestamp": STAMP.isoformat()})

    assert exc_info.value.code == "decode_failed"


def test_decode_missing_tag_fails():
    with pytest.raises(DecodeError):
        decode_interaction({"position": {"x": 1, "y": 2}})


def test_decode_non_object_fails():
    with pytest.raises(DecodeError):
        decode_interaction(["mouseClick"])


def test_decode_shape_mismatch_fails():
    """A known tag with the wrong payload shape is a decode error."""
    with pytest.raises(DecodeError):
        decode_interaction({"type": "screenshot", "imageFileName": "x.png"})


def test_encode_rejects_non_interactions():
    with pytest.raises(EncodeError):
        encode_interaction({"type": "mouseClick"})

    with pytest.raises(EncodeError):
        encode_interaction(Point(x=1, y=2))


def test_encode_rejects_non_finite_values():
    """Values that bypassed validation still cannot be encoded."""
    broken = MouseScrollInteraction.model_construct(
        type="mouseScroll",
        timestamp=STAMP,
        position=Point(x=1, y=1),
        delta_x=math.nan,
        delta_y=0.0,
    )

    with pytest.raises(EncodeError):
        encode_interaction(broken)


def test_models_reject_non_finite_coordinates():
    with pytest.raises(ValidationError):
        Point(x=math.inf, y=0)


def test_stored_envelope_round_trip():
    """The durable envelope wraps the payload under its tag."""
    shot = ScreenshotInteraction(
        timestamp=STAMP,
        image_file_name="shot1.png",
        screen_bounds=Rect(x=0, y=0, width=1920, height=1080),
    )

    entry = encode_stored_interaction(shot)

    assert entry["type"] == "screenshot"
    assert entry["data"]["imageFileName"] == "shot1.png"
    assert decode_stored_interaction(entry) == shot


def test_stored_envelope_tag_mismatch_fails():
    entry = encode_stored_interaction(KeyInteraction(timestamp=STAMP, is_down=True, key_code=4))
    entry["type"] = "mouseClick"

    with pytest.raises(DecodeError):
        decode_stored_interaction(entry)


def test_stored_envelope_missing_data_fails():
    with pytest.raises(DecodeError):
        decode_stored_interaction({"type": "key"})


def test_mouse_button_from_number():
    assert MouseButton.from_button_number(0) == MouseButton.LEFT
    assert MouseButton.from_button_number(1) == MouseButton.RIGHT
    assert MouseButton.from_button_number(2) == MouseButton.MIDDLE
    assert MouseButton.from_button_number(7) == MouseButton.OTHER


def test_interactions_are_immutable():
    click = MouseClickInteraction(position=Point(x=1, y=1))

    with pytest.raises(ValidationError):
        click.click_count = 5


def test_interaction_context_round_trip():
    """Contexts keep their interaction variant through serialization."""
    context = InteractionContext(
        before_screenshot="before.png",
        interaction=KeyInteraction(timestamp=STAMP, is_down=True, key_code=36, characters="\r"),
        after_screenshot="after.png",
    )

    payload = context.to_dict()
    restored = InteractionContext.model_validate(payload)

    assert payload["beforeScreenshot"] == "before.png"
    assert payload["interaction"]["type"] == "key"
    assert restored == context
    assert restored.with_analysis("Submitted the form").ai_analysis == "Submitted the form"
    assert context.ai_analysis is None
