import asyncio

import pytest

from config import RoleType
from context.models import ContextSnapshot
from systems.role_catalog import RoleCatalog
from services.llm_generator import (
    GenerativeCapability, OllamaCapability, build_comment_prompt, clean_response,
)
from errors import ExternalCapabilityFailure


class FakeOllamaClient:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.requests = []

    async def chat(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        return {'message': {'content': self.content}}


@pytest.fixture
def reaction():
    return RoleCatalog().get(RoleType.REACTION)


CONTEXT = ContextSnapshot(recent_transcript="we finally beat the boss", current_topic="games")


class TestPrompting:
    def test_prompt_mentions_role_topic_and_speech(self, reaction):
        prompt = build_comment_prompt(CONTEXT, reaction)
        assert "reaction comment" in prompt
        assert "Topic: games" in prompt
        assert "we finally beat the boss" in prompt

    def test_clean_response(self):
        assert clean_response(' "so cute"\n') == "so cute"
        assert len(clean_response("x" * 300)) == 100


class TestOllamaCapability:
    def test_satisfies_protocol(self):
        assert isinstance(OllamaCapability(client=FakeOllamaClient("hi")), GenerativeCapability)

    def test_generate(self, reaction):
        client = FakeOllamaClient(' "no way"\n')
        capability = OllamaCapability(model="test-model", client=client)
        assert asyncio.run(capability.generate(CONTEXT, reaction)) == "no way"
        request = client.requests[0]
        assert request["model"] == "test-model"
        assert request["messages"][0]["role"] == "system"
        assert "reaction" in request["messages"][1]["content"]

    def test_client_error_is_wrapped(self, reaction):
        capability = OllamaCapability(client=FakeOllamaClient(error=ConnectionError("refused")))
        with pytest.raises(ExternalCapabilityFailure):
            asyncio.run(capability.generate(CONTEXT, reaction))

    def test_empty_reply_is_a_failure(self, reaction):
        capability = OllamaCapability(client=FakeOllamaClient('  ""  '))
        with pytest.raises(ExternalCapabilityFailure):
            asyncio.run(capability.generate(CONTEXT, reaction))

    def test_not_ready_until_initialized(self, reaction):
        capability = OllamaCapability()
        assert capability.is_ready() is False
        with pytest.raises(ExternalCapabilityFailure):
            asyncio.run(capability.generate(CONTEXT, reaction))

    def test_initialize_and_close(self):
        capability = OllamaCapability(host="http://localhost:11434")
        assert asyncio.run(capability.initialize()) is True
        assert capability.is_ready() is True
        asyncio.run(capability.close())
        assert capability.is_ready() is False
