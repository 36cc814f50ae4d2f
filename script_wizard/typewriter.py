import asyncio
from typing import Any, Awaitable, Callable, Optional


class Typewriter:
    """Reveals assistant messages one character at a time."""

    def __init__(self, delay: float = 0.015, sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self.delay = delay
        self._sleep = sleep

    async def type(
        self,
        text: str,
        on_update: Optional[Callable[[str], None]] = None,
        stopped: Optional[Callable[[], bool]] = None,
    ) -> bool:
        """Reveal ``text``, calling ``on_update`` with each growing prefix.

        Returns True once the whole message is visible, or False as soon as
        ``stopped`` reports the reveal was abandoned.
        """
        for end in range(1, len(text) + 1):
            if stopped is not None and stopped():
                return False
            if on_update is not None:
                on_update(text[:end])
            if self.delay:
                await self._sleep(self.delay)
        return stopped is None or not stopped()
