"""Shared fixtures: a scripted stand-in for the LLM behind SemanticOracle."""

import json
from types import SimpleNamespace

import pytest

from carveout.core.config import reset_config_cache
from carveout.core.oracle import SemanticOracle


class ScriptedLLM:
    """Answers each prompt with the first reply whose needle occurs in it.

    A reply may be a dict (sent as JSON), a str (sent verbatim), a callable
    taking the prompt, or an exception instance (raised).
    """

    def __init__(self, replies):
        self.replies = list(replies)
        self.prompts = []

    async def acomplete(self, prompt, **kwargs):
        self.prompts.append(prompt)
        for needle, reply in self.replies:
            if needle in prompt:
                if callable(reply):
                    reply = reply(prompt)
                if isinstance(reply, BaseException):
                    raise reply
                text = reply if isinstance(reply, str) else json.dumps(reply)
                return SimpleNamespace(text=text)
        raise ConnectionError("no scripted reply for prompt")


@pytest.fixture
def scripted_oracle():
    """Factory: ``oracle, llm = scripted_oracle([(needle, reply), ...])``."""

    def _make(replies, **kwargs):
        llm = ScriptedLLM(replies)
        return SemanticOracle(llm=llm, **kwargs), llm

    return _make


@pytest.fixture(autouse=True)
def _fresh_config():
    reset_config_cache()
    yield
    reset_config_cache()
