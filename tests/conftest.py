"""Shared fixtures: a scripted generation service and instant timers."""

import json

import httpx
import pytest

from script_wizard.config import ChatConfig, Config, ServiceConfig, SessionConfig
from script_wizard.service import GenerationClient


class ServiceStub:
    """Scripted stand-in for the generation service.

    Each entry in ``responses`` answers one HTTP request, in order. An entry
    may be an ``httpx.Response``, an exception to raise, or a callable taking
    the request (sync or async) and returning a response.
    """

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.requests = []

    def add(self, *responses):
        self.responses.extend(responses)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if not self.responses:
            raise AssertionError("Unexpected request to the generation service")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            response = response(request)
            if not isinstance(response, httpx.Response):
                response = await response
        return response

    def client(self, config: ServiceConfig, **kwargs) -> GenerationClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return GenerationClient(config, http_client=http_client, **kwargs)


class SleepRecorder:
    """Async sleep replacement that returns immediately and records delays."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)


@pytest.fixture
def service():
    return ServiceStub()


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def fast_config(tmp_path):
    return Config(
        service=ServiceConfig(endpoint="http://service.test/generate"),
        chat=ChatConfig(answer_delay=0, closing_pause=0, typing_delay=0),
        session=SessionConfig(directory=tmp_path / "session"),
    )
