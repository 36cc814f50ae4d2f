"""Generated script models and quality score."""

from typing import Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

TimeValue = Union[str, float]


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class Transition(_WireModel):
    time_offset: Optional[TimeValue] = Field(default=None, alias="timeOffset")
    kind: Optional[str] = Field(default=None, validation_alias=AliasChoices("kind", "type"))
    description: Optional[str] = None


class BRollCue(_WireModel):
    time_range: Optional[TimeValue] = Field(default=None, alias="timeRange")
    content: Optional[str] = None


class TextOverlay(_WireModel):
    time: Optional[TimeValue] = None
    text: Optional[str] = None
    style: Optional[str] = None


class SoundEffect(_WireModel):
    time: Optional[TimeValue] = None
    effect: Optional[str] = None


class ScriptResult(_WireModel):
    """Structured script as returned by the generation service.

    Every field is optional because the service omits sections it did not
    produce. Unknown keys are kept so nothing the service sent is lost.
    """

    script: Optional[str] = None
    transitions: list[Transition] = Field(default_factory=list)
    b_roll: list[BRollCue] = Field(default_factory=list, alias="bRoll")
    text_overlays: list[TextOverlay] = Field(default_factory=list, alias="textOverlays")
    sound_effects: list[SoundEffect] = Field(default_factory=list, alias="soundEffects")


# A generation result is either a plain text blob or a structured record.
GenerationResult = Union[ScriptResult, str]


def script_text(result: Optional[GenerationResult]) -> str:
    """Return the spoken script of a result, whatever its shape."""
    if result is None:
        return ""
    if isinstance(result, str):
        return result
    return result.script or ""


class QualityScore(BaseModel):
    """Heuristic 0-100 ratings of a generated script."""

    overall: int = Field(ge=0, le=100)
    creativity: int = Field(ge=0, le=100)
    engagement: int = Field(ge=0, le=100)
    clarity: int = Field(ge=0, le=100)
    timing: int = Field(ge=0, le=100)
