"""Shared fixtures for end-to-end tests.

The fake service below answers like the real one: refinement requests get
the next scripted question (or ``null`` once the script runs out) and final
or edit requests get a structured script.
"""

import json

import httpx
import pytest

from script_wizard.config import ChatConfig, Config, ServiceConfig, SessionConfig
from script_wizard.service import GenerationClient

SAMPLE_SCRIPT = {
    "script": (
        "Did you know lighthouses once burned whale oil? "
        "Keepers climbed hundreds of steps every night to keep the flame alive. "
        "Today most lights run on their own, but the towers still guard the coast. "
        "Follow for more forgotten history."
    ),
    "transitions": [{"timeOffset": "0:05", "type": "cut", "description": "close-up of the lamp"}],
    "bRoll": [{"timeRange": "0:00-0:05", "content": "waves hitting rocks at dusk"}],
    "textOverlays": [{"time": "0:02", "text": "Whale oil?!", "style": "bold"}],
    "soundEffects": [{"time": "0:00", "effect": "foghorn"}],
}


class FakeScriptService:
    """Routes requests by their ``phase`` the way the generation service does."""

    def __init__(self, questions, script=None):
        self.questions = list(questions)
        self.script = script or SAMPLE_SCRIPT
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)

        if body.get("phase") == "refinement-question-only":
            if not self.questions:
                return httpx.Response(200, json={"question": None})
            text, options = self.questions.pop(0)
            return httpx.Response(200, json={"question": text, "options": options})

        script = dict(self.script)
        if "previousScript" in body:
            script["script"] = body["previousScript"] + " Now with extra foghorn."
        return httpx.Response(200, json={"result": script})

    def client(self, config: ServiceConfig) -> GenerationClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return GenerationClient(config, http_client=http_client)


@pytest.fixture
def e2e_config(tmp_path):
    """Configuration with instant chat pacing and a tmp session directory."""
    return Config(
        service=ServiceConfig(endpoint="http://service.test/generate"),
        chat=ChatConfig(answer_delay=0, closing_pause=0, typing_delay=0),
        session=SessionConfig(directory=tmp_path / "session"),
        log_level="DEBUG",
    )


@pytest.fixture
def fake_service():
    return FakeScriptService([
        ("Who is the video for?", ["History fans", "Sailors"]),
        ("What should viewers feel at the end?", []),
    ])
