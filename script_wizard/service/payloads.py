"""Request bodies for the three phases of the generation service."""

from typing import Any, Optional

from ..catalog import language_code
from ..models import ChatTurn, Speaker, WizardState

QUESTION_PHASE = "refinement-question-only"
FINAL_PHASE = "final"
OUTPUT_TYPE = "script"


def build_question_payload(state: WizardState) -> dict[str, Any]:
    return {
        "phase": QUESTION_PHASE,
        "conversationHistory": [turn.to_request_entry() for turn in state.conversation_history],
        "keyword": state.topic_keyword.strip(),
        "style": state.style_label,
        "scriptLength": state.target_duration_seconds,
        "tone": state.tone,
        "language": language_code(state.language or ""),
    }


def build_refinement_context(history: list[ChatTurn]) -> Optional[str]:
    """Flatten answered questions into ``Q:``/``A:`` lines.

    Returns None when the user never answered anything.
    """
    lines = []
    pending_question = None
    for turn in history:
        if turn.speaker == Speaker.ASSISTANT:
            pending_question = turn.text
        elif pending_question is not None:
            lines.append(f"Q: {pending_question}")
            lines.append(f"A: {turn.text}")
            pending_question = None
    return "\n".join(lines) if lines else None


def _script_fields(state: WizardState) -> dict[str, Any]:
    return {
        "style": state.style_label,
        "length": state.target_duration_seconds,
        "tone": state.tone,
        "language": language_code(state.language or ""),
        "ctaInclusion": state.include_call_to_action,
        "outputType": OUTPUT_TYPE,
    }


def build_final_payload(state: WizardState) -> dict[str, Any]:
    context = None
    if not state.refinement_skipped:
        context = build_refinement_context(state.conversation_history)

    payload = {"text": state.topic_keyword.strip()}
    payload.update(_script_fields(state))
    payload["refinementContext"] = context
    payload["phase"] = FINAL_PHASE
    return payload


def build_edit_payload(state: WizardState, instruction: str, previous_script: str) -> dict[str, Any]:
    payload = {"text": f"{state.topic_keyword.strip()} - {instruction.strip()}"}
    payload.update(_script_fields(state))
    payload["previousScript"] = previous_script
    return payload
