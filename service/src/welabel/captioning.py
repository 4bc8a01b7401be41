"""Optional captioning of interactions from before/after screenshots."""

import asyncio
import base64
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from anthropic import APIError, AsyncAnthropic

from .exceptions import CaptioningError, StorageError
from .models.context import InteractionContext
from .models.interactions import (
    InteractionBase,
    KeyInteraction,
    MouseClickInteraction,
    MouseMoveInteraction,
    MouseScrollInteraction,
    ScreenshotInteraction,
    UIElementInteraction,
)
from .screenshot_store import ScreenshotStore

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You analyze user interactions with a desktop interface. You receive a "
    "screenshot taken before a user action, a description of the action, and "
    "a screenshot taken after it. Describe briefly what the user was trying to "
    "achieve, what the result was, and why the user may have taken this action."
)


def is_debug() -> bool:
    """Check if debug logging is enabled."""
    return logger.isEnabledFor(logging.DEBUG)


def describe_interaction(interaction: InteractionBase) -> str:
    """Plain-language description of an interaction for the captioning prompt."""
    if isinstance(interaction, MouseClickInteraction):
        repeat = f" ({interaction.click_count} times)" if interaction.click_count > 1 else ""
        return (
            f"Mouse click at X: {interaction.position.x}, Y: {interaction.position.y} "
            f"with the {interaction.button.value} button{repeat}"
        )
    if isinstance(interaction, MouseMoveInteraction):
        return (
            f"Mouse moved from X: {interaction.from_position.x}, Y: {interaction.from_position.y} "
            f"to X: {interaction.to_position.x}, Y: {interaction.to_position.y}"
        )
    if isinstance(interaction, MouseScrollInteraction):
        return (
            f"Scroll at X: {interaction.position.x}, Y: {interaction.position.y} "
            f"by delta X: {interaction.delta_x}, Y: {interaction.delta_y}"
        )
    if isinstance(interaction, KeyInteraction):
        direction = "down" if interaction.is_down else "up"
        return f"Key {interaction.key_code} ({interaction.characters or ''}) {direction}"
    if isinstance(interaction, UIElementInteraction):
        element = interaction.element_info
        return (
            f"Interaction with UI element: {element.role} "
            f"{element.title or 'untitled'} action: {interaction.action.value}"
        )
    if isinstance(interaction, ScreenshotInteraction):
        return "A screenshot was taken"
    return f"Interaction of type {getattr(interaction, 'type', 'unknown')}"


class CaptioningService(ABC):
    """Turns a before/after screenshot pair plus an action into a caption."""

    @abstractmethod
    async def analyze(self, before_image: bytes, after_image: bytes, description: str) -> str:
        """
        Caption one interaction.

        Raises:
            CaptioningError: The service failed or returned no text.
        """
        pass

    async def shutdown(self) -> None:
        """Cleanup on service shutdown."""
        pass


def _image_block(data: bytes, media_type: str) -> Dict[str, Any]:
    return {
        "type": "image",
        "source": {
            "type": "base64",
            "media_type": media_type,
            "data": base64.b64encode(data).decode("ascii"),
        },
    }


class AnthropicCaptioningService(CaptioningService):
    """
    Captioning through the Anthropic Messages API.

    Requires: ANTHROPIC_API_KEY from console.anthropic.com
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 500,
        media_type: str = "image/png",
    ):
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.media_type = media_type
        self._client: Optional[AsyncAnthropic] = None
        self._lock = asyncio.Lock()

    async def get_client(self) -> AsyncAnthropic:
        """Get or create Anthropic client instance (thread-safe lazy init)."""
        async with self._lock:
            if self._client is None:
                self._client = self._create_client()
            return self._client

    def _create_client(self) -> AsyncAnthropic:
        logger.info(f"Initializing Anthropic client for captioning (model: {self.model})")
        try:
            return AsyncAnthropic(api_key=self.api_key)
        except Exception as e:
            logger.error(f"Failed to initialize Anthropic client: {e}")
            raise CaptioningError("Captioning service is not configured", detail=str(e)) from e

    def build_content(
        self, before_image: bytes, after_image: bytes, description: str
    ) -> List[Dict[str, Any]]:
        return [
            {"type": "text", "text": "Screen BEFORE the interaction:"},
            _image_block(before_image, self.media_type),
            {"type": "text", "text": f"The user performed this action: {description}"},
            {"type": "text", "text": "Screen AFTER the interaction:"},
            _image_block(after_image, self.media_type),
            {
                "type": "text",
                "text": (
                    "What was the user trying to do, what was the result, and why "
                    "might they have taken this action? Answer in at most 3 sentences."
                ),
            },
        ]

    async def analyze(self, before_image: bytes, after_image: bytes, description: str) -> str:
        client = await self.get_client()

        if is_debug():
            logger.debug(f"Captioning interaction: {description}")

        try:
            response = await client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=SYSTEM_PROMPT,
                messages=[
                    {
                        "role": "user",
                        "content": self.build_content(before_image, after_image, description),
                    }
                ],
            )
        except APIError as e:
            logger.error(f"Captioning request failed: {e}")
            raise CaptioningError("Captioning request failed", detail=str(e)) from e

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        ).strip()
        if not text:
            raise CaptioningError("Captioning service returned no text")
        return text

    async def shutdown(self) -> None:
        if self._client:
            logger.info("Shutting down Anthropic client...")
            await self._client.close()
            self._client = None


async def caption_context(
    service: CaptioningService,
    context: InteractionContext,
    screenshot_store: ScreenshotStore,
) -> InteractionContext:
    """
    Caption an interaction context.

    Returns:
        A copy of ``context`` with ``ai_analysis`` set.

    Raises:
        CaptioningError: Screenshots could not be loaded or the service failed.
    """
    try:
        before = await screenshot_store.read(context.before_screenshot)
        after = await screenshot_store.read(context.after_screenshot)
    except StorageError as e:
        raise CaptioningError("Failed to load screenshots", detail=e.message) from e

    caption = await service.analyze(before, after, describe_interaction(context.interaction))
    return context.with_analysis(caption)
