"""Wizard session state."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..errors import GenerationError
from .chat import ChatTurn, Speaker
from .result import GenerationResult, QualityScore, script_text

OTHER_STYLE = "other"


class WizardStep(str, Enum):
    STYLE = "style"
    TOPIC = "topic"
    SETTINGS = "settings"
    REFINEMENT = "refinement"
    RESULT = "result"

    @property
    def index(self) -> int:
        return STEP_ORDER.index(self)


STEP_ORDER = [
    WizardStep.STYLE,
    WizardStep.TOPIC,
    WizardStep.SETTINGS,
    WizardStep.REFINEMENT,
    WizardStep.RESULT,
]


class WizardState(BaseModel):
    """Single source of truth for one wizard session.

    Only the user-facing fields end up in a persisted snapshot. Flags that
    describe in-flight work (loading, streaming text, last error) and the
    derived score are runtime-only and marked ``exclude``.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    step: WizardStep = WizardStep.STYLE
    style: Optional[str] = None
    custom_style_label: str = ""
    topic_keyword: str = ""
    target_duration_seconds: int = Field(default=60, gt=0)
    language: Optional[str] = None
    tone: Optional[str] = None
    include_call_to_action: bool = True
    conversation_history: list[ChatTurn] = Field(default_factory=list)
    refinement_skipped: bool = False
    result: Optional[GenerationResult] = None

    has_attempted_fetch: bool = Field(default=False, exclude=True)
    score_data: Optional[QualityScore] = Field(default=None, exclude=True)
    last_error: Optional[GenerationError] = Field(default=None, exclude=True)
    is_loading: bool = Field(default=False, exclude=True)
    streaming_text: str = Field(default="", exclude=True)
    has_unsaved_changes: bool = Field(default=False, exclude=True)

    @property
    def style_label(self) -> str:
        if self.style == OTHER_STYLE:
            return self.custom_style_label.strip()
        return self.style or ""

    @property
    def script_text(self) -> str:
        return script_text(self.result)

    def append_turn(self, turn: ChatTurn, limit: int = 50) -> None:
        """Append a turn, dropping the oldest ones beyond ``limit``."""
        self.conversation_history.append(turn)
        overflow = len(self.conversation_history) - limit
        if overflow > 0:
            del self.conversation_history[:overflow]

    def last_assistant_turn(self) -> Optional[ChatTurn]:
        for turn in reversed(self.conversation_history):
            if turn.speaker == Speaker.ASSISTANT:
                return turn
        return None

    def clear_refinement(self) -> None:
        self.conversation_history = []
        self.has_attempted_fetch = False
        self.refinement_skipped = False

    def clear_output(self) -> None:
        self.result = None
        self.score_data = None
        self.last_error = None
        self.streaming_text = ""

    def to_snapshot(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> "WizardState":
        return cls.model_validate(data)
