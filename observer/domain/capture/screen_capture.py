from abc import ABC, abstractmethod
from typing import Any, Optional
import structlog

from observer.domain.models.agent_state import OCRResult

logger = structlog.get_logger(__name__)


class ScreenCaptureError(Exception):
    """The capture stream could not be started or read"""


class ScreenCaptureProvider(ABC):
    """Access to a live screen capture stream.

    A single provider is usually shared by every agent in the process. Callers
    do not serialize access; an implementation backed by one capture stream
    must do so itself.
    """

    @abstractmethod
    async def start_capture(self) -> Optional[Any]:
        """Ensure capture is running and return its handle, or None on failure"""
        pass

    @abstractmethod
    async def capture_frame_and_ocr(self) -> OCRResult:
        """Grab the current frame and run text recognition on it"""
        pass

    @abstractmethod
    async def capture_screen_image(self) -> Optional[str]:
        """Grab the current frame as a base64 encoded image"""
        pass


class HeadlessScreenCapture(ScreenCaptureProvider):
    """Provider for processes without a display; every capture fails"""

    async def start_capture(self) -> Optional[Any]:
        logger.debug("Screen capture requested on a headless provider")
        return None

    async def capture_frame_and_ocr(self) -> OCRResult:
        return OCRResult(success=False, error="No display available")

    async def capture_screen_image(self) -> Optional[str]:
        return None
