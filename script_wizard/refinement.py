"""Service-driven question/answer dialogue that runs before final generation.

The service poses one question at a time. Each question is revealed with a
typing animation and only becomes part of the history once fully shown; the
user's answer is appended before the next question is requested. A reply of
``question: null`` ends the dialogue and hands control back to the wizard.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from loguru import logger

from .config import ChatConfig
from .errors import RefinementBusyError
from .models import ChatTurn, Speaker, TurnIdSequence, WizardState
from .service import GenerationClient, build_question_payload
from .typewriter import Typewriter

FALLBACK_MESSAGE = (
    "I couldn't load the next question right now. "
    "Please use Skip to go straight to your script."
)
CLOSING_MESSAGE = "Thanks, that's everything I need. Writing your script now..."


class RefinementChatEngine:
    """Runs the refinement dialogue against the state handed out by ``state_provider``.

    The state is looked up on every use rather than captured once, so the
    engine always acts on the wizard's current session.
    """

    def __init__(
        self,
        client: GenerationClient,
        state_provider: Callable[[], WizardState],
        ids: TurnIdSequence,
        config: Optional[ChatConfig] = None,
        typewriter: Optional[Typewriter] = None,
        on_complete: Optional[Callable[[], Awaitable[Any]]] = None,
        on_change: Optional[Callable[[], None]] = None,
        on_typing: Optional[Callable[[str], None]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config or ChatConfig()
        self.ids = ids
        self._client = client
        self._state = state_provider
        self._typewriter = typewriter or Typewriter(self.config.typing_delay, sleep)
        self._on_complete = on_complete
        self._on_change = on_change
        self._on_typing = on_typing
        self._sleep = sleep

        self._generation = 0
        self._awaiting_answer = False
        self.is_fetching = False
        self.is_typing = False
        self.is_complete = False
        self.typing_text = ""

    @property
    def can_answer(self) -> bool:
        return self._awaiting_answer and not (self.is_fetching or self.is_typing or self.is_complete)

    def cancel(self) -> None:
        """Drop any in-flight fetch or reveal and forget dialogue progress."""
        self._generation += 1
        self._awaiting_answer = False
        self.is_fetching = False
        self.is_typing = False
        self.is_complete = False
        self.typing_text = ""

    async def start(self) -> None:
        """Fetch the first question, once per refinement entry."""
        state = self._state()
        if state.conversation_history or state.has_attempted_fetch or self.is_fetching:
            return
        logger.info("Starting refinement dialogue")
        await self._request_next_question()

    async def resume(self) -> None:
        """Pick a restored dialogue back up where it stopped."""
        history = self._state().conversation_history
        if not history:
            await self.start()
            return

        last = history[-1]
        if last.speaker == Speaker.USER:
            await self._request_next_question()
        elif last.text == CLOSING_MESSAGE:
            await self._complete(self._generation)
        elif last.text != FALLBACK_MESSAGE:
            self._awaiting_answer = True

    async def answer(self, text: str) -> None:
        """Record the user's answer and move on to the next question."""
        text = text.strip()
        if not text:
            raise ValueError("Answer must not be empty")
        if not self.can_answer:
            raise RefinementBusyError("Wait for the current question before answering")

        state = self._state()
        question = state.last_assistant_turn()
        if question is not None:
            question.offered_options = []
        state.append_turn(
            ChatTurn(id=self.ids.next(), speaker=Speaker.USER, text=text),
            self.config.history_limit,
        )
        self._awaiting_answer = False
        self._changed()

        generation = self._generation
        await self._sleep(self.config.answer_delay)
        if generation != self._generation:
            return
        await self._request_next_question()

    async def choose_option(self, option: str) -> None:
        """Answer with one of the options offered on the current question."""
        question = self._state().last_assistant_turn()
        if question is None or option not in question.offered_options:
            raise ValueError(f"'{option}' is not one of the offered options")
        await self.answer(option)

    async def _request_next_question(self) -> None:
        generation = self._generation
        state = self._state()
        state.has_attempted_fetch = True
        self.is_fetching = True

        try:
            reply = await self._client.fetch_question(build_question_payload(state))
        finally:
            if generation == self._generation:
                self.is_fetching = False

        if generation != self._generation:
            logger.debug("Discarding question reply for a cancelled dialogue")
            return

        if reply.failed:
            await self._reveal(FALLBACK_MESSAGE)
            return

        if reply.question is None:
            logger.info("Service has no more questions")
            if await self._reveal(CLOSING_MESSAGE):
                await self._sleep(self.config.closing_pause)
                await self._complete(generation)
            return

        if await self._reveal(reply.question, reply.options):
            self._awaiting_answer = True

    async def _reveal(self, text: str, options: Optional[list[str]] = None) -> bool:
        """Type out a message and append it once fully shown.

        Returns False if the dialogue was cancelled while typing.
        """
        generation = self._generation
        self.is_typing = True
        self.typing_text = ""

        finished = await self._typewriter.type(
            text, self._typed, stopped=lambda: generation != self._generation
        )
        if not finished:
            return False

        self.is_typing = False
        self.typing_text = ""
        self._state().append_turn(
            ChatTurn(
                id=self.ids.next(),
                speaker=Speaker.ASSISTANT,
                text=text,
                offered_options=list(options or []),
            ),
            self.config.history_limit,
        )
        self._changed()
        return True

    async def _complete(self, generation: int) -> None:
        if generation != self._generation:
            return
        self.is_complete = True
        if self._on_complete is not None:
            await self._on_complete()

    def _typed(self, partial: str) -> None:
        self.typing_text = partial
        if self._on_typing is not None:
            self._on_typing(partial)

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()
