"""Step state machine coordinating the whole wizard session.

The controller is the only writer of ``WizardState`` apart from the two
producers it drives (the refinement dialogue and the generation client).
It performs no I/O itself: it calls those collaborators, and the session
store, at fixed transition points.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from loguru import logger

from .config import Config
from .errors import GenerationError, TransitionError
from .models import OTHER_STYLE, STEP_ORDER, TurnIdSequence, WizardState, WizardStep
from .refinement import RefinementChatEngine
from .scoring import score_result
from .service import GenerationClient, build_edit_payload, build_final_payload
from .session import SessionStore
from .typewriter import Typewriter

StateListener = Callable[[WizardState], None]


def can_advance(state: WizardState) -> bool:
    """Whether the generic "next" action is allowed from the current step."""
    step = state.step
    if step == WizardStep.STYLE:
        if not state.style:
            return False
        if state.style == OTHER_STYLE:
            return bool(state.custom_style_label.strip())
        return True
    if step == WizardStep.TOPIC:
        return bool(state.topic_keyword.strip())
    if step == WizardStep.SETTINGS:
        return state.tone is not None and state.language is not None
    # Refinement is left through the dialogue or skip; Result is terminal
    return False


class WizardController:
    """Drives a wizard session from style selection to the generated script."""

    def __init__(
        self,
        client: GenerationClient,
        config: Optional[Config] = None,
        state: Optional[WizardState] = None,
        store: Optional[SessionStore] = None,
        typewriter: Optional[Typewriter] = None,
        on_typing: Optional[Callable[[str], None]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config or Config()
        self.client = client
        self.store = store
        self.state = state or WizardState()
        self.notices: list[str] = []

        self._listeners: list[StateListener] = []
        self._epoch = 0
        self._skip_pending = False
        self._failed_instruction: Optional[str] = None

        if store is not None:
            store.notify = self.notify

        self.chat = RefinementChatEngine(
            client,
            lambda: self.state,
            TurnIdSequence.after(self.state.conversation_history),
            config=self.config.chat,
            typewriter=typewriter,
            on_complete=self._finish_refinement,
            on_change=self._changed,
            on_typing=on_typing,
            sleep=sleep,
        )

    @classmethod
    def from_store(
        cls, client: GenerationClient, store: SessionStore, config: Optional[Config] = None, **kwargs
    ) -> "WizardController":
        """Build a controller, restoring the stored session if it is still fresh."""
        controller = cls(client, config=config, store=store, **kwargs)
        state = store.restore()
        if state is not None:
            controller.load(state)
        return controller

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def skip_pending(self) -> bool:
        return self._skip_pending

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def notify(self, message: str) -> None:
        logger.info(f"Notice: {message}")
        self.notices.append(message)

    def dismiss_notices(self) -> None:
        self.notices.clear()

    def can_advance(self) -> bool:
        return can_advance(self.state)

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    def select_style(self, style: str, custom_label: str = "") -> None:
        self._require_step(WizardStep.STYLE)
        self.state.style = style
        self.state.custom_style_label = custom_label if style == OTHER_STYLE else ""
        self._touch()

    def set_topic(self, keyword: str) -> None:
        self._require_step(WizardStep.TOPIC)
        self.state.topic_keyword = keyword
        self._touch()

    def configure(
        self,
        target_duration_seconds: Optional[int] = None,
        tone: Optional[str] = None,
        language: Optional[str] = None,
        include_call_to_action: Optional[bool] = None,
    ) -> None:
        self._require_step(WizardStep.SETTINGS)
        if target_duration_seconds is not None:
            if target_duration_seconds <= 0:
                raise ValueError("Target duration must be positive")
            self.state.target_duration_seconds = target_duration_seconds
        if tone is not None:
            self.state.tone = tone
        if language is not None:
            self.state.language = language
        if include_call_to_action is not None:
            self.state.include_call_to_action = include_call_to_action
        self._touch()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def advance(self) -> bool:
        """Move to the next step if the current one is complete."""
        if not self.can_advance():
            logger.debug(f"Cannot advance from '{self.state.step.value}'")
            return False

        step = self.state.step
        if step == WizardStep.SETTINGS:
            await self._enter_refinement()
        else:
            self.state.step = STEP_ORDER[step.index + 1]
            self._changed()
        return True

    def retreat(self) -> bool:
        """Move one step back. Leaving refinement or result restarts the dialogue.

        Returns False when already on the first step.
        """
        step = self.state.step
        if step == WizardStep.STYLE:
            return False

        self._epoch += 1
        self._skip_pending = False
        self._failed_instruction = None

        if step in (WizardStep.REFINEMENT, WizardStep.RESULT):
            self.chat.cancel()
            self.state.clear_refinement()
            self.state.clear_output()
            self.state.is_loading = False
            self.state.step = WizardStep.SETTINGS
        else:
            self.state.step = STEP_ORDER[step.index - 1]

        logger.debug(f"Retreated from '{step.value}' to '{self.state.step.value}'")
        self._changed()
        return True

    def reset(self) -> None:
        """Abandon the session and start over from the first step."""
        self._epoch += 1
        self._skip_pending = False
        self._failed_instruction = None
        self.chat.cancel()
        self.chat.ids = TurnIdSequence()
        self.state = WizardState()
        if self.store is not None:
            self.store.clear()
        logger.info("Wizard reset")
        self._broadcast()

    def request_skip(self) -> None:
        """First half of skipping refinement; ``confirm_skip`` completes it."""
        step = self.state.step
        if step == WizardStep.SETTINGS and not self.can_advance():
            raise TransitionError("Choose a tone and language before skipping")
        if step not in (WizardStep.SETTINGS, WizardStep.REFINEMENT):
            raise TransitionError(f"Cannot skip refinement from '{step.value}'")
        self._skip_pending = True

    def cancel_skip(self) -> None:
        self._skip_pending = False

    async def confirm_skip(self) -> None:
        if not self._skip_pending:
            raise TransitionError("Skip must be requested before it is confirmed")
        self._skip_pending = False
        self.chat.cancel()
        self.state.refinement_skipped = True
        logger.info("Refinement skipped")
        await self._enter_result()

    async def resume(self) -> None:
        """Re-run the entry action of a restored step."""
        step = self.state.step
        if step == WizardStep.REFINEMENT:
            await self.chat.resume()
        elif step == WizardStep.RESULT and self.state.result is None:
            await self.generate()

    def load(self, state: WizardState) -> None:
        """Replace the session state, e.g. with a restored snapshot."""
        self._epoch += 1
        self.chat.cancel()
        self.chat.ids = TurnIdSequence.after(state.conversation_history)
        self.state = state
        if state.result is not None and state.score_data is None:
            state.score_data = score_result(
                state.result, state.target_duration_seconds, state.include_call_to_action
            )
        self._broadcast()

    async def _enter_refinement(self) -> None:
        self.chat.cancel()
        self.state.clear_refinement()
        self.state.step = WizardStep.REFINEMENT
        self._skip_pending = False
        self._changed()
        await self.chat.start()

    async def _finish_refinement(self) -> None:
        if self.state.step != WizardStep.REFINEMENT:
            return
        self.state.refinement_skipped = False
        await self._enter_result()

    async def _enter_result(self) -> None:
        self.state.step = WizardStep.RESULT
        self.state.clear_output()
        self._failed_instruction = None
        self._changed()
        await self.generate()

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate(self) -> bool:
        """Generate the script once per result-step entry.

        Does nothing unless the wizard is on the result step with no result
        and no request in flight. Returns True when a result landed.
        """
        state = self.state
        if state.step != WizardStep.RESULT or state.result is not None or state.is_loading:
            return False
        payload = build_final_payload(state)
        return await self._run(self.client.generate_script, payload)

    async def regenerate(self, instruction: str) -> bool:
        """Rewrite the current script following a free-text instruction."""
        instruction = instruction.strip()
        if not instruction:
            raise ValueError("Edit instruction must not be empty")
        state = self.state
        if state.step != WizardStep.RESULT or state.result is None:
            raise TransitionError("There is no script to edit yet")
        if state.is_loading:
            return False

        payload = build_edit_payload(state, instruction, state.script_text)
        landed = await self._run(self.client.regenerate_script, payload)
        if not landed and state.last_error is not None:
            self._failed_instruction = instruction
        return landed

    async def retry(self) -> bool:
        """Repeat the last failed generation when the error allows it."""
        error = self.state.last_error
        if error is None or not error.retryable:
            raise TransitionError("Nothing to retry")
        self.state.last_error = None
        if self._failed_instruction is not None:
            instruction, self._failed_instruction = self._failed_instruction, None
            return await self.regenerate(instruction)
        return await self.generate()

    async def _run(self, call, payload: dict) -> bool:
        epoch = self._epoch
        state = self.state
        state.last_error = None
        state.is_loading = True
        state.streaming_text = ""
        self._changed()

        try:
            result = await call(payload, on_partial=self._partial_publisher(epoch))
        except GenerationError as e:
            if epoch != self._epoch:
                return False
            logger.error(f"Generation failed ({e.kind.value}, retryable={e.retryable}): {e.message}")
            state.is_loading = False
            state.streaming_text = ""
            state.last_error = e
            self._changed()
            return False
        except asyncio.CancelledError:
            if epoch == self._epoch:
                state.is_loading = False
            raise

        if epoch != self._epoch:
            logger.debug("Discarding generation result for an abandoned session")
            return False

        state.result = result
        state.score_data = score_result(
            result, state.target_duration_seconds, state.include_call_to_action
        )
        state.is_loading = False
        state.streaming_text = ""
        logger.success(f"Script ready (overall score {state.score_data.overall})")
        self._changed()
        return True

    def _partial_publisher(self, epoch: int) -> Callable[[str], None]:
        def publish(text: str) -> None:
            if epoch == self._epoch:
                self.state.streaming_text = text
                self._broadcast()

        return publish

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_step(self, step: WizardStep) -> None:
        if self.state.step != step:
            raise TransitionError(
                f"Expected step '{step.value}', wizard is at '{self.state.step.value}'"
            )

    def _touch(self) -> None:
        self.state.has_unsaved_changes = True
        self._changed()

    def _changed(self) -> None:
        if self.store is not None and self.config.session.autosave:
            self.store.save(self.state)
        self._broadcast()

    def _broadcast(self) -> None:
        for listener in self._listeners:
            listener(self.state)
