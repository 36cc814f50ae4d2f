"""Conversation turns exchanged during refinement."""

import itertools
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable

from pydantic import BaseModel, Field


class Speaker(str, Enum):
    ASSISTANT = "assistant"
    USER = "user"


class ChatTurn(BaseModel):
    id: int
    speaker: Speaker
    text: str
    offered_options: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_request_entry(self) -> dict:
        """Map the turn to the history entry the service expects."""
        if self.speaker == Speaker.ASSISTANT:
            entry = {"role": "assistant", "question": self.text}
            if self.offered_options:
                entry["options"] = list(self.offered_options)
            return entry
        return {"role": "user", "answer": self.text}


class TurnIdSequence:
    """Hands out increasing turn ids for one wizard session."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)

    @classmethod
    def after(cls, turns: Iterable[ChatTurn]) -> "TurnIdSequence":
        """Create a sequence that continues past the highest existing id."""
        highest = max((turn.id for turn in turns), default=0)
        return cls(highest + 1)

    def next(self) -> int:
        return next(self._counter)
