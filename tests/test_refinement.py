"""Tests for the refinement question/answer dialogue."""

import httpx
import pytest

from script_wizard.config import ChatConfig
from script_wizard.errors import RefinementBusyError
from script_wizard.models import ChatTurn, Speaker, TurnIdSequence, WizardState, WizardStep
from script_wizard.refinement import CLOSING_MESSAGE, FALLBACK_MESSAGE, RefinementChatEngine


def question(text, options=None):
    body = {"question": text}
    if options is not None:
        body["options"] = options
    return httpx.Response(200, json=body)


def done():
    return httpx.Response(200, json={"question": None})


@pytest.fixture
def state():
    return WizardState(
        step=WizardStep.REFINEMENT,
        style="storytelling",
        topic_keyword="lighthouses",
        target_duration_seconds=60,
        tone="calm",
        language="English",
    )


@pytest.fixture
def completions():
    return []


@pytest.fixture
def make_engine(service, fast_config, state, sleeper, completions):
    def factory(chat_config=None, **kwargs):
        async def on_complete():
            completions.append(state.step)

        client = service.client(fast_config.service, sleep=sleeper)
        return RefinementChatEngine(
            client,
            lambda: state,
            TurnIdSequence(),
            config=chat_config or fast_config.chat,
            on_complete=on_complete,
            sleep=sleeper,
            **kwargs,
        )

    return factory


class TestStart:
    @pytest.mark.asyncio
    async def test_first_question_fetched_with_empty_history(self, service, make_engine, state):
        service.add(question("Who is the audience?", ["Sailors", "Tourists"]))
        engine = make_engine()

        await engine.start()

        request = service.requests[0]
        assert request["phase"] == "refinement-question-only"
        assert request["conversationHistory"] == []
        assert request["keyword"] == "lighthouses"
        assert request["language"] == "en"

        [turn] = state.conversation_history
        assert turn.speaker == Speaker.ASSISTANT
        assert turn.text == "Who is the audience?"
        assert turn.offered_options == ["Sailors", "Tourists"]
        assert state.has_attempted_fetch is True
        assert engine.can_answer

    @pytest.mark.asyncio
    async def test_start_fetches_only_once(self, service, make_engine):
        service.add(question("Q1?"))
        engine = make_engine()

        await engine.start()
        await engine.start()

        assert len(service.requests) == 1

    @pytest.mark.asyncio
    async def test_failure_shows_fallback_and_does_not_retry(self, service, make_engine, state):
        service.add(*[httpx.Response(500) for _ in range(3)])
        engine = make_engine()

        await engine.start()
        await engine.start()

        assert [t.text for t in state.conversation_history] == [FALLBACK_MESSAGE]
        assert len(service.requests) == 3
        assert not engine.can_answer

    @pytest.mark.asyncio
    async def test_message_appended_only_after_typing(self, service, make_engine, state):
        service.add(question("Ready?"))
        seen = []
        engine = None

        def on_typing(partial):
            seen.append((partial, engine.is_typing, len(state.conversation_history)))

        engine = make_engine(on_typing=on_typing)
        await engine.start()

        assert [partial for partial, _, _ in seen] == ["R", "Re", "Rea", "Read", "Ready", "Ready?"]
        assert all(typing for _, typing, _ in seen)
        assert all(count == 0 for _, _, count in seen)
        assert len(state.conversation_history) == 1
        assert not engine.is_typing


class TestAnswer:
    @pytest.mark.asyncio
    async def test_answer_then_next_question(self, service, make_engine, state, sleeper, fast_config):
        service.add(question("Who is the audience?", ["Sailors", "Tourists"]), question("Any hook?"))
        engine = make_engine(chat_config=fast_config.chat.model_copy(update={"answer_delay": 0.6}))

        await engine.start()
        await engine.choose_option("Tourists")

        assert service.requests[1]["conversationHistory"] == [
            {"role": "assistant", "question": "Who is the audience?"},
            {"role": "user", "answer": "Tourists"},
        ]
        texts = [t.text for t in state.conversation_history]
        assert texts == ["Who is the audience?", "Tourists", "Any hook?"]
        assert state.conversation_history[0].offered_options == []
        assert 0.6 in sleeper.calls

    @pytest.mark.asyncio
    async def test_turn_ids_increase(self, service, make_engine, state):
        service.add(question("Q1?"), question("Q2?"))
        engine = make_engine()

        await engine.start()
        await engine.answer("A1")

        ids = [t.id for t in state.conversation_history]
        assert ids == sorted(ids)
        assert len(set(ids)) == 3

    @pytest.mark.asyncio
    async def test_answer_before_question_is_rejected(self, make_engine):
        engine = make_engine()
        with pytest.raises(RefinementBusyError):
            await engine.answer("too early")

    @pytest.mark.asyncio
    async def test_empty_answer_rejected(self, service, make_engine):
        service.add(question("Q1?"))
        engine = make_engine()
        await engine.start()

        with pytest.raises(ValueError):
            await engine.answer("   ")

    @pytest.mark.asyncio
    async def test_unknown_option_rejected(self, service, make_engine):
        service.add(question("Pick one", ["A", "B"]))
        engine = make_engine()
        await engine.start()

        with pytest.raises(ValueError):
            await engine.choose_option("C")

    @pytest.mark.asyncio
    async def test_no_more_questions_completes(self, service, make_engine, state, completions):
        service.add(question("Q1?"), done())
        engine = make_engine()

        await engine.start()
        await engine.answer("A1")

        assert state.conversation_history[-1].text == CLOSING_MESSAGE
        assert engine.is_complete
        assert completions == [WizardStep.REFINEMENT]
        assert not engine.can_answer

    @pytest.mark.asyncio
    async def test_history_is_capped(self, service, make_engine, state, fast_config):
        service.add(question("Q1?"), question("Q2?"), question("Q3?"))
        engine = make_engine(chat_config=fast_config.chat.model_copy(update={"history_limit": 3}))

        await engine.start()
        await engine.answer("A1")
        await engine.answer("A2")

        assert [t.text for t in state.conversation_history] == ["Q2?", "A2", "Q3?"]


class TestCancellation:
    @pytest.mark.asyncio
    async def test_reply_after_cancel_is_ignored(self, service, make_engine, state):
        engine = None

        def cancel_mid_flight(request):
            engine.cancel()
            return question("Stale?")

        service.add(cancel_mid_flight)
        engine = make_engine()

        await engine.start()

        assert state.conversation_history == []
        assert not engine.is_fetching

    @pytest.mark.asyncio
    async def test_cancel_during_typing_drops_message(self, service, make_engine, state):
        engine = None
        seen = []

        def on_typing(partial):
            seen.append(partial)
            if len(partial) == 2:
                engine.cancel()

        service.add(question("Hello there"))
        engine = make_engine(on_typing=on_typing)

        await engine.start()

        assert state.conversation_history == []
        assert seen == ["H", "He"]
        assert engine.typing_text == ""
        assert not engine.is_typing


class TestResume:
    @pytest.mark.asyncio
    async def test_resume_after_unanswered_question(self, make_engine, state, service):
        state.conversation_history = [ChatTurn(id=1, speaker=Speaker.ASSISTANT, text="Q1?")]
        engine = make_engine()

        await engine.resume()

        assert engine.can_answer
        assert service.requests == []

    @pytest.mark.asyncio
    async def test_resume_after_answer_fetches_next(self, make_engine, state, service):
        state.conversation_history = [
            ChatTurn(id=1, speaker=Speaker.ASSISTANT, text="Q1?"),
            ChatTurn(id=2, speaker=Speaker.USER, text="A1"),
        ]
        service.add(question("Q2?"))
        engine = make_engine()
        engine.ids = TurnIdSequence.after(state.conversation_history)

        await engine.resume()

        assert state.conversation_history[-1].text == "Q2?"
        assert state.conversation_history[-1].id == 3

    @pytest.mark.asyncio
    async def test_resume_after_fallback_waits_for_skip(self, make_engine, state, service):
        state.conversation_history = [ChatTurn(id=1, speaker=Speaker.ASSISTANT, text=FALLBACK_MESSAGE)]
        engine = make_engine()

        await engine.resume()

        assert not engine.can_answer
        assert service.requests == []
