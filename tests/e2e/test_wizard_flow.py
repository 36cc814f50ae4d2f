"""End-to-end tests for a complete wizard session."""

import pytest

from script_wizard.models import ScriptResult, Speaker, WizardStep
from script_wizard.refinement import CLOSING_MESSAGE
from script_wizard.rendering import result_to_markdown
from script_wizard.session import SessionStore
from script_wizard.wizard import WizardController


async def _fill_parameters(controller):
    controller.select_style("educational")
    assert await controller.advance()
    controller.set_topic("lighthouses")
    assert await controller.advance()
    controller.configure(60, "calm", "French", True)


class TestFullSession:
    @pytest.mark.asyncio
    async def test_style_to_result_with_refinement(self, e2e_config, fake_service):
        store = SessionStore(e2e_config.session)
        controller = WizardController(fake_service.client(e2e_config.service), e2e_config, store=store)
        loading = []
        steps = []
        controller.subscribe(lambda state: loading.append(state.is_loading))
        controller.subscribe(lambda state: steps.append(state.step))

        await _fill_parameters(controller)
        assert await controller.advance()
        assert controller.state.step == WizardStep.REFINEMENT
        assert controller.chat.can_answer

        await controller.chat.choose_option("Sailors")
        await controller.chat.answer("Respect for the keepers")

        state = controller.state
        assert state.step == WizardStep.RESULT
        assert isinstance(state.result, ScriptResult)
        assert state.result.sound_effects[0].effect == "foghorn"
        assert state.score_data is not None
        assert 0 <= state.score_data.overall <= 100

        # Loading went up while the final request was in flight and came back down
        assert True in loading
        assert loading[-1] is False

        visited = list(dict.fromkeys(steps))
        assert visited == [
            WizardStep.STYLE, WizardStep.TOPIC, WizardStep.SETTINGS,
            WizardStep.REFINEMENT, WizardStep.RESULT,
        ]

        history = state.conversation_history
        assert [t.speaker for t in history] == [
            Speaker.ASSISTANT, Speaker.USER, Speaker.ASSISTANT, Speaker.USER, Speaker.ASSISTANT,
        ]
        assert history[-1].text == CLOSING_MESSAGE

        final_request = fake_service.requests[-1]
        assert final_request["phase"] == "final"
        assert final_request["language"] == "fr"
        assert final_request["refinementContext"] == (
            "Q: Who is the video for?\nA: Sailors\n"
            "Q: What should viewers feel at the end?\nA: Respect for the keepers"
        )

        markdown = result_to_markdown(state.result, state.topic_keyword, state.score_data)
        assert "## Sound effects" in markdown

    @pytest.mark.asyncio
    async def test_skip_then_edit(self, e2e_config, fake_service):
        controller = WizardController(fake_service.client(e2e_config.service), e2e_config)

        await _fill_parameters(controller)
        controller.request_skip()
        await controller.confirm_skip()

        original = controller.state.script_text
        assert await controller.regenerate("add a foghorn")

        assert controller.state.script_text == original + " Now with extra foghorn."
        edit_request = fake_service.requests[-1]
        assert edit_request["text"] == "lighthouses - add a foghorn"
        assert not any(r.get("phase") == "refinement-question-only" for r in fake_service.requests)

    @pytest.mark.asyncio
    async def test_interrupted_session_resumes_from_snapshot(self, e2e_config, fake_service):
        store = SessionStore(e2e_config.session)
        first = WizardController(fake_service.client(e2e_config.service), e2e_config, store=store)
        await _fill_parameters(first)
        await first.advance()
        await first.chat.choose_option("History fans")

        # A new process picks the dialogue up where the first one stopped
        second = WizardController.from_store(
            fake_service.client(e2e_config.service), SessionStore(e2e_config.session), e2e_config
        )
        await second.resume()

        assert second.state.step == WizardStep.REFINEMENT
        assert second.chat.can_answer
        assert second.state.conversation_history[-1].text == "What should viewers feel at the end?"

        await second.chat.answer("Curious")
        assert second.state.step == WizardStep.RESULT
        assert second.state.result is not None

        ids = [t.id for t in second.state.conversation_history]
        assert len(ids) == len(set(ids))
