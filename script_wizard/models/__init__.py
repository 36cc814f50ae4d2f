from .chat import ChatTurn, Speaker, TurnIdSequence
from .result import (
    BRollCue,
    GenerationResult,
    QualityScore,
    ScriptResult,
    SoundEffect,
    TextOverlay,
    Transition,
    script_text,
)
from .state import OTHER_STYLE, STEP_ORDER, WizardState, WizardStep

__all__ = [
    "ChatTurn",
    "Speaker",
    "TurnIdSequence",
    "BRollCue",
    "GenerationResult",
    "QualityScore",
    "ScriptResult",
    "SoundEffect",
    "TextOverlay",
    "Transition",
    "script_text",
    "OTHER_STYLE",
    "STEP_ORDER",
    "WizardState",
    "WizardStep",
]
