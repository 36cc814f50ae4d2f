"""Heuristic quality scoring for generated scripts."""

import math
import re
from typing import Optional

from loguru import logger

from .models import GenerationResult, QualityScore, script_text

WORDS_PER_MINUTE = 150
IDEAL_SENTENCE_WORDS = 15
CALL_TO_ACTION_WORDS = ("subscribe", "follow", "like")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def expected_word_count(target_duration_seconds: int) -> float:
    """Words a narrator reads in the target duration at 150 words/minute."""
    return target_duration_seconds / 60 * WORDS_PER_MINUTE


def timing_score(text: str, target_duration_seconds: int) -> float:
    """Score how close the script length is to the target duration.

    Args:
        text: Script text.
        target_duration_seconds: Requested video length.

    Returns:
        100 for an exact match, falling linearly to 0 as the word count
        drifts away from the expected count.
    """
    words = len(text.split())
    expected = expected_word_count(target_duration_seconds)
    if words == 0 or expected <= 0:
        return 0.0
    return max(0.0, 100 - abs(words - expected) / expected * 100)


def clarity_score(text: str) -> float:
    """Score sentence length against an ideal of 15 words per sentence.

    Sentences are split on `.`, `!`, and `?` characters.
    """
    sentences = re.split(r"[.!?]+", text)
    sentences = [s.strip() for s in sentences if s.strip()]
    if not sentences:
        return 0.0

    mean_words = sum(len(s.split()) for s in sentences) / len(sentences)
    return max(0.0, 100 - abs(mean_words - IDEAL_SENTENCE_WORDS) * 5)


def engagement_score(text: str, include_call_to_action: bool) -> float:
    """Reward questions to the viewer and a requested call to action."""
    if not text.split():
        return 0.0

    score = 70.0
    if "?" in text:
        score += 15
    lowered = text.lower()
    if include_call_to_action and any(word in lowered for word in CALL_TO_ACTION_WORDS):
        score += 15
    return score


def creativity_score(text: str) -> float:
    """Vocabulary diversity proxy: unique/total tokens, doubled and capped.

    Tokens are runs of letters and digits in any script.
    """
    tokens = re.findall(r"[^\W_]+", text.lower())
    if not tokens:
        return 0.0
    return min(100.0, len(set(tokens)) / len(tokens) * 200)


def score_script(
    text: str, target_duration_seconds: int, include_call_to_action: bool
) -> QualityScore:
    """Compute every quality component for a script.

    Text without any words scores 0 on every component.
    """
    if not text.split():
        return QualityScore(overall=0, creativity=0, engagement=0, clarity=0, timing=0)

    timing = timing_score(text, target_duration_seconds)
    clarity = clarity_score(text)
    engagement = engagement_score(text, include_call_to_action)
    creativity = creativity_score(text)
    overall = (timing + clarity + engagement + creativity) / 4

    score = QualityScore(
        overall=_round_half_up(overall),
        creativity=_round_half_up(creativity),
        engagement=_round_half_up(engagement),
        clarity=_round_half_up(clarity),
        timing=_round_half_up(timing),
    )
    logger.debug("Scored script ({} words): {}", len(text.split()), score)
    return score


def score_result(
    result: Optional[GenerationResult],
    target_duration_seconds: int,
    include_call_to_action: bool,
) -> QualityScore:
    """Score the script text carried by either result shape."""
    return score_script(script_text(result), target_duration_seconds, include_call_to_action)
