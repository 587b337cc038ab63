"""Pytest configuration and fixtures."""

from typing import Any, List, Optional

import pytest

from observer.domain.capture.screen_capture import ScreenCaptureProvider
from observer.domain.context.memory.agent_store import InMemoryAgentStore
from observer.domain.models.agent_state import CompleteAgent, OCRResult
from observer.infrastructure.config.settings import set_settings
from observer.infrastructure.observability.logging import metrics


PNG_BASE64 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="


class FakeScreenCapture(ScreenCaptureProvider):
    """Scripted screen capture provider that records its calls."""

    def __init__(
        self,
        ocr_results: Optional[List[OCRResult]] = None,
        images: Optional[List[Optional[str]]] = None,
        started: bool = True,
    ) -> None:
        self.ocr_results = list(ocr_results or [])
        self.images = list(images or [])
        self.started = started
        self.start_calls = 0
        self.ocr_calls = 0
        self.image_calls = 0
        self.ocr_error: Optional[Exception] = None
        self.image_error: Optional[Exception] = None

    async def start_capture(self) -> Optional[Any]:
        self.start_calls += 1
        return object() if self.started else None

    async def capture_frame_and_ocr(self) -> OCRResult:
        self.ocr_calls += 1
        if self.ocr_error:
            raise self.ocr_error
        if len(self.ocr_results) > 1:
            return self.ocr_results.pop(0)
        return self.ocr_results[0]

    async def capture_screen_image(self) -> Optional[str]:
        self.image_calls += 1
        if self.image_error:
            raise self.image_error
        if len(self.images) > 1:
            return self.images.pop(0)
        return self.images[0] if self.images else None


def make_agent(agent_id: str = "bot1", **overrides: Any) -> CompleteAgent:
    fields = {
        "id": agent_id,
        "name": f"Agent {agent_id}",
        "description": "Watches the screen",
        "model_name": "gemma3:4b",
        "system_prompt": "Describe $SCREEN_OCR",
        "loop_interval_seconds": 30,
    }
    fields.update(overrides)
    return CompleteAgent(**fields)


@pytest.fixture(autouse=True)
def reset_global_state():
    """Reset process-wide metrics and settings around each test."""
    metrics.reset()
    set_settings(None)
    yield
    metrics.reset()
    set_settings(None)


@pytest.fixture
def screen():
    return FakeScreenCapture(
        ocr_results=[OCRResult(success=True, text="HELLO")],
        images=[PNG_BASE64],
    )


@pytest.fixture
def store():
    return InMemoryAgentStore()
