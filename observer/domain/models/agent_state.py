from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from enum import Enum


AGENT_ID_PATTERN = r"^[a-zA-Z0-9_]+$"


class AgentStatus(str, Enum):
    """Agent loop status"""
    RUNNING = "running"
    STOPPED = "stopped"


class DirectiveKind(str, Enum):
    """Closed set of prompt directives"""
    SCREEN_OCR = "SCREEN_OCR"
    MEMORY = "MEMORY"
    SCREEN_64 = "SCREEN_64"


class CompleteAgent(BaseModel):
    """A long-running agent driven by a prompt template"""
    id: str = Field(pattern=AGENT_ID_PATTERN, description="Unique agent identifier")
    name: str = Field(description="Display name")
    description: str = Field(default="", description="What the agent does")
    status: AgentStatus = Field(default=AgentStatus.STOPPED)
    model_name: str = Field(description="Model the prompt is sent to")
    system_prompt: str = Field(description="Prompt template, may contain directives")
    loop_interval_seconds: float = Field(gt=0, description="Seconds between execution cycles")


class OCRResult(BaseModel):
    """Outcome of a capture-and-recognize call"""
    success: bool
    text: Optional[str] = None
    error: Optional[str] = None


class DirectiveOccurrence(BaseModel):
    """A single directive match inside the working prompt"""
    kind: DirectiveKind
    marker: str = Field(description="Full matched marker text, e.g. $MEMORY@bot1")
    parameter: Optional[str] = Field(None, description="Captured parameter, if the directive takes one")
    start: int
    end: int


class ResolutionOutcome(BaseModel):
    """What a resolver produced for one occurrence"""
    replacement_text: Optional[str] = None
    images: List[str] = Field(default_factory=list)


class PreProcessorResult(BaseModel):
    """Expanded prompt plus the images to ship with it"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    modified_prompt: str
    images: List[str] = Field(default_factory=list, description="Base64 encoded images")
