"""
Directive registry.

A directive is a marker embedded in an agent's prompt template that asks for
dynamic content at execution time:

    $SCREEN_OCR          text recognized on the current screen
    $MEMORY@<agent_id>   persisted memory of another agent
    $SCREEN_64           a screenshot, attached as a base64 image

The table is fixed at import time and iterated in registration order.
"""

from typing import List, Tuple
import re

from pydantic import BaseModel, ConfigDict

from observer.domain.models.agent_state import DirectiveKind, DirectiveOccurrence


# Replacement literals substituted for a marker when its resolver fails
OCR_ERROR = "[Error performing OCR]"
SCREEN_CAPTURE_ERROR = "[Error with screen capture]"
MEMORY_ERROR = "[Error with memory retrieval]"
INVALID_IMAGE_ERROR = "[Error: Invalid image data]"
CAPTURE_FAILED_ERROR = "[Error capturing screen]"

BASE64_PATTERN = re.compile(r"[A-Za-z0-9+/=]+")


class DirectiveDefinition(BaseModel):
    """Pattern and kind of a supported directive"""
    model_config = ConfigDict(frozen=True)

    kind: DirectiveKind
    pattern: re.Pattern
    description: str

    def occurrence_from_match(self, match: "re.Match[str]") -> DirectiveOccurrence:
        """Build an occurrence from a regex match"""

        return DirectiveOccurrence(
            kind=self.kind,
            marker=match.group(0),
            parameter=match.group(1) if self.pattern.groups else None,
            start=match.start(),
            end=match.end(),
        )


DIRECTIVE_REGISTRY: Tuple[DirectiveDefinition, ...] = (
    DirectiveDefinition(
        kind=DirectiveKind.SCREEN_OCR,
        pattern=re.compile(r"\$SCREEN_OCR"),
        description="Recognized text of the current screen",
    ),
    DirectiveDefinition(
        kind=DirectiveKind.MEMORY,
        pattern=re.compile(r"\$MEMORY@([a-zA-Z0-9_]+)"),
        description="Persisted memory of the referenced agent",
    ),
    DirectiveDefinition(
        kind=DirectiveKind.SCREEN_64,
        pattern=re.compile(r"\$SCREEN_64"),
        description="Screenshot attached as a base64 image",
    ),
)


def get_directive(kind: DirectiveKind) -> DirectiveDefinition:
    """Look up the definition for a directive kind"""

    for definition in DIRECTIVE_REGISTRY:
        if definition.kind == kind:
            return definition
    raise KeyError(kind)


def find_directives(text: str) -> List[DirectiveOccurrence]:
    """List every directive occurrence in text, grouped in registry order"""

    occurrences = []
    for definition in DIRECTIVE_REGISTRY:
        for match in definition.pattern.finditer(text):
            occurrences.append(definition.occurrence_from_match(match))
    return occurrences

