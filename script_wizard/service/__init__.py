from .client import GenerationClient, QuestionReply, backoff_delay_ms
from .normalize import coerce_result, normalize_response, parse_body
from .payloads import (
    build_edit_payload,
    build_final_payload,
    build_question_payload,
    build_refinement_context,
)
from .stream import PublishThrottle, StreamAccumulator

__all__ = [
    "GenerationClient",
    "QuestionReply",
    "backoff_delay_ms",
    "coerce_result",
    "normalize_response",
    "parse_body",
    "build_edit_payload",
    "build_final_payload",
    "build_question_payload",
    "build_refinement_context",
    "PublishThrottle",
    "StreamAccumulator",
]
