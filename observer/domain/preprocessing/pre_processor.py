from typing import List, Optional
import time

import structlog

from observer.domain.capture.screen_capture import ScreenCaptureError, ScreenCaptureProvider
from observer.domain.context.memory.agent_store import AgentStore
from observer.domain.models.agent_state import (
    DirectiveKind, DirectiveOccurrence, PreProcessorResult, ResolutionOutcome
)
from observer.infrastructure.config.settings import get_settings
from observer.infrastructure.observability.logging import agent_logger, metrics
from .directives import (
    BASE64_PATTERN, CAPTURE_FAILED_ERROR, DIRECTIVE_REGISTRY, INVALID_IMAGE_ERROR,
    MEMORY_ERROR, OCR_ERROR, SCREEN_CAPTURE_ERROR, DirectiveDefinition, find_directives
)
from .exceptions import DirectiveIterationLimitExceeded, PreProcessingError

logger = structlog.get_logger(__name__)


class PreProcessor:
    """Expands directives in an agent prompt before it is sent to the model.

    Each directive kind is drained in registry order. After every substitution
    the scan restarts from the top of the prompt, so a marker reintroduced by a
    replacement is resolved as well; the iteration limit bounds that loop.

    There are two error layers:

    - a resolver never raises; provider failures become a bracketed literal in
      place of the marker and processing continues
    - anything else that fails during the pass returns the original prompt
      with no images, discarding partial substitutions
    """

    def __init__(
        self,
        screen_capture: ScreenCaptureProvider,
        memory_store: AgentStore,
        max_iterations_per_directive: Optional[int] = None
    ):
        self.screen_capture = screen_capture
        self.memory_store = memory_store
        if max_iterations_per_directive is not None:
            self.max_iterations = max_iterations_per_directive
        else:
            self.max_iterations = get_settings().max_directive_iterations

    async def process(self, agent_id: str, prompt: str) -> PreProcessorResult:
        """Resolve every directive in prompt. Never raises."""

        try:
            agent_logger.log_preprocessing(
                agent_id, "start", occurrences=len(find_directives(prompt))
            )

            working = prompt
            images: List[str] = []

            for definition in DIRECTIVE_REGISTRY:
                working = await self._drain(agent_id, definition, working, images)

            agent_logger.log_preprocessing(agent_id, "complete", images=len(images))
            return PreProcessorResult(modified_prompt=working, images=images)

        except Exception as e:
            logger.error(
                "Error in pre-processing, using original prompt",
                agent_id=agent_id,
                error=str(e),
                error_type=type(e).__name__
            )
            metrics.increment_counter("preprocess.rollback")
            return PreProcessorResult(modified_prompt=prompt, images=[])

    async def _drain(
        self,
        agent_id: str,
        definition: DirectiveDefinition,
        working: str,
        images: List[str]
    ) -> str:
        """Resolve occurrences of one directive until none are left"""

        position = 0
        resolved = 0
        # Every marker present up front, plus re-resolutions up to the limit
        budget = len(definition.pattern.findall(working)) + self.max_iterations

        while True:
            match = definition.pattern.search(working, position)
            if match is None:
                return working

            resolved += 1
            if resolved > budget:
                raise DirectiveIterationLimitExceeded(definition.kind, self.max_iterations)

            occurrence = definition.occurrence_from_match(match)
            outcome = await self._dispatch(agent_id, working, occurrence)

            if outcome.replacement_text is not None:
                # First textual occurrence of the marker, then rescan from the top
                working = working.replace(occurrence.marker, outcome.replacement_text, 1)
                position = 0
            else:
                position = match.end()

            images.extend(outcome.images)

    async def _dispatch(
        self,
        agent_id: str,
        prompt: str,
        occurrence: DirectiveOccurrence
    ) -> ResolutionOutcome:
        """Route an occurrence to the resolver for its kind"""

        if occurrence.kind == DirectiveKind.SCREEN_OCR:
            return await self._resolve_screen_ocr(agent_id, prompt, occurrence)
        elif occurrence.kind == DirectiveKind.MEMORY:
            return await self._resolve_memory(agent_id, prompt, occurrence)
        elif occurrence.kind == DirectiveKind.SCREEN_64:
            return await self._resolve_screen_image(agent_id, prompt, occurrence)

        raise PreProcessingError(f"No resolver for directive {occurrence.kind}")

    async def _resolve_screen_ocr(
        self,
        agent_id: str,
        prompt: str,
        occurrence: DirectiveOccurrence
    ) -> ResolutionOutcome:
        """Replace the marker with text recognized on screen"""

        started = time.perf_counter()
        try:
            await self._ensure_capture(agent_id)

            ocr_result = await self.screen_capture.capture_frame_and_ocr()

            if ocr_result.success and ocr_result.text:
                return self._succeeded(
                    agent_id, occurrence, started,
                    ResolutionOutcome(replacement_text=ocr_result.text)
                )
            return self._failed(
                agent_id, occurrence, started, OCR_ERROR,
                ocr_result.error or "Unknown error"
            )
        except Exception as e:
            return self._failed(agent_id, occurrence, started, SCREEN_CAPTURE_ERROR, str(e))

    async def _resolve_memory(
        self,
        agent_id: str,
        prompt: str,
        occurrence: DirectiveOccurrence
    ) -> ResolutionOutcome:
        """Replace the marker with another agent's memory, verbatim"""

        started = time.perf_counter()
        try:
            memory = await self.memory_store.get_memory(occurrence.parameter)

            return self._succeeded(
                agent_id, occurrence, started,
                ResolutionOutcome(replacement_text=memory)
            )
        except Exception as e:
            return self._failed(agent_id, occurrence, started, MEMORY_ERROR, repr(e))

    async def _resolve_screen_image(
        self,
        agent_id: str,
        prompt: str,
        occurrence: DirectiveOccurrence
    ) -> ResolutionOutcome:
        """Remove the marker and attach a screenshot"""

        started = time.perf_counter()
        try:
            await self._ensure_capture(agent_id)

            base64_image = await self.screen_capture.capture_screen_image()

            if not base64_image:
                return self._failed(
                    agent_id, occurrence, started, CAPTURE_FAILED_ERROR, "Screen capture failed"
                )

            if not BASE64_PATTERN.fullmatch(base64_image):
                return self._failed(
                    agent_id, occurrence, started, INVALID_IMAGE_ERROR, "Invalid base64 image data"
                )

            logger.debug("Captured screen image", agent_id=agent_id, prefix=base64_image[:20])
            return self._succeeded(
                agent_id, occurrence, started,
                ResolutionOutcome(replacement_text="", images=[base64_image])
            )
        except Exception as e:
            return self._failed(agent_id, occurrence, started, SCREEN_CAPTURE_ERROR, str(e))

    async def _ensure_capture(self, agent_id: str) -> None:
        """Start the shared capture stream if needed"""

        logger.debug("Initializing screen capture", agent_id=agent_id)
        stream = await self.screen_capture.start_capture()
        if not stream:
            raise ScreenCaptureError("Failed to start screen capture")

    def _succeeded(
        self,
        agent_id: str,
        occurrence: DirectiveOccurrence,
        started: float,
        outcome: ResolutionOutcome
    ) -> ResolutionOutcome:
        duration_ms = (time.perf_counter() - started) * 1000
        metrics.record_latency(f"directive.{occurrence.kind.value}", duration_ms)
        agent_logger.log_directive_resolution(
            agent_id, occurrence.marker, success=True, duration_ms=duration_ms
        )
        return outcome

    def _failed(
        self,
        agent_id: str,
        occurrence: DirectiveOccurrence,
        started: float,
        literal: str,
        error: str
    ) -> ResolutionOutcome:
        duration_ms = (time.perf_counter() - started) * 1000
        metrics.record_latency(f"directive.{occurrence.kind.value}", duration_ms)
        metrics.increment_counter(f"directive.{occurrence.kind.value}.failure")
        agent_logger.log_directive_resolution(
            agent_id, occurrence.marker, success=False, duration_ms=duration_ms, error=error
        )
        return ResolutionOutcome(replacement_text=literal)
