"""Incremental ingestion of event-stream responses."""

import re
import time
from typing import Callable, Optional

SSE_DATA_FIELD = "data"
SSE_DONE = "[DONE]"
_EVENT_SEPARATOR = re.compile(r"\r?\n\r?\n")


class StreamAccumulator:
    """Accumulates decoded chunks of a streamed body.

    Chunk boundaries never matter: the final payload is derived from the
    whole buffer once the stream ends.
    """

    def __init__(self):
        self._parts: list[str] = []

    def feed(self, chunk: str) -> str:
        self._parts.append(chunk)
        return self.text

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def payload(self) -> str:
        """Return the body with server-sent-event framing removed, if any.

        Events are separated by blank lines. Only ``data:`` fields are kept:
        the lines of one event are joined with newlines and consecutive
        events are concatenated. ``event:``, ``id:``, ``retry:`` and comment
        lines are dropped, as is the ``[DONE]`` sentinel. A body without any
        ``data:`` line is returned untouched.
        """
        text = self.text
        events = []
        framed = False

        for block in _EVENT_SEPARATOR.split(text):
            data = []
            for line in block.splitlines():
                if line.startswith(":"):
                    continue
                field, _, value = line.partition(":")
                if field != SSE_DATA_FIELD:
                    continue
                framed = True
                if value.startswith(" "):
                    value = value[1:]
                data.append(value)

            if not data:
                continue
            event = "\n".join(data)
            if event.strip() == SSE_DONE:
                continue
            events.append(event)

        if not framed:
            return text
        return "".join(events)


class PublishThrottle:
    """Lets partial snapshots through at most once per ``interval`` seconds."""

    def __init__(self, interval: float = 0.1, clock: Callable[[], float] = time.monotonic):
        self.interval = interval
        self._clock = clock
        self._last: Optional[float] = None

    def ready(self) -> bool:
        now = self._clock()
        if self._last is not None and now - self._last < self.interval:
            return False
        self._last = now
        return True
