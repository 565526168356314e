from types import SimpleNamespace

import httpx
import openai
import pytest

from app.backend.errors import ConfigurationMissing, MalformedModelOutput, ModelUnavailable
from app.backend.llm_client import LLMClient, SystemBlock, build_system_message


REQUEST = httpx.Request("POST", "https://api.gptsapi.net/v1/chat/completions")


def _response(text, prompt_tokens=1200, completion_tokens=80, cached=0):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
        usage=SimpleNamespace(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            prompt_tokens_details=SimpleNamespace(cached_tokens=cached),
        ),
    )


class FakeCompletions:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeOpenAI:
    def __init__(self, outcomes):
        self.completions = FakeCompletions(outcomes)
        self.chat = SimpleNamespace(completions=self.completions)
        self.options = []
        self.closed = False

    def with_options(self, **options):
        self.options.append(options)
        return self

    def close(self):
        self.closed = True


def _client(outcomes):
    fake = FakeOpenAI(outcomes)
    return LLMClient(api_key="k", model="claude-sonnet-4-5-20250929", client=fake), fake


def test_build_system_message_marks_cacheable_blocks():
    message = build_system_message([SystemBlock("statisch", cache=True), SystemBlock("dynamisch")])
    assert message["role"] == "system"
    assert message["content"][0] == {
        "type": "text",
        "text": "statisch",
        "cache_control": {"type": "ephemeral"},
    }
    assert "cache_control" not in message["content"][1]


def test_complete_sends_prefill_as_trailing_assistant_message():
    llm, fake = _client([_response(" true</complete>", cached=1000)])
    completion = llm.complete(
        system_blocks=[SystemBlock("regeln", cache=True)],
        messages=[{"role": "user", "content": "Hallo"}],
        max_tokens=2000,
        temperature=0.7,
        timeout_seconds=15,
        prefill="<phase_status>\n<complete>",
    )
    request = fake.completions.requests[0]
    assert request["messages"][0]["role"] == "system"
    assert request["messages"][-1] == {"role": "assistant", "content": "<phase_status>\n<complete>"}
    assert request["temperature"] == 0.7
    assert fake.options == [{"timeout": 15, "max_retries": 0}]

    assert completion.text == " true</complete>"
    assert completion.usage.input_tokens == 200
    assert completion.usage.cache_read_tokens == 1000
    assert completion.usage.output_tokens == 80


def test_complete_retries_once_without_unsupported_temperature():
    rejected = openai.BadRequestError(
        "Unsupported value: 'temperature' does not support 0.3. Only the default (1) value is supported.",
        response=httpx.Response(400, request=REQUEST),
        body=None,
    )
    llm, fake = _client([rejected, _response("ok")])
    completion = llm.complete(
        system_blocks=[],
        messages=[{"role": "user", "content": "x"}],
        max_tokens=10,
        temperature=0.3,
        timeout_seconds=5,
    )
    assert completion.text == "ok"
    assert "temperature" in fake.completions.requests[0]
    assert "temperature" not in fake.completions.requests[1]


def test_transport_errors_become_model_unavailable():
    llm, _ = _client([openai.APITimeoutError(request=REQUEST)])
    with pytest.raises(ModelUnavailable):
        llm.complete(system_blocks=[], messages=[], max_tokens=10, temperature=None, timeout_seconds=1)

    failure = openai.InternalServerError("upstream down", response=httpx.Response(502, request=REQUEST), body=None)
    llm, _ = _client([failure])
    with pytest.raises(ModelUnavailable, match="502"):
        llm.complete(system_blocks=[], messages=[], max_tokens=10, temperature=None, timeout_seconds=1)


def test_empty_choices_are_malformed():
    llm, _ = _client([SimpleNamespace(choices=[], usage=None)])
    with pytest.raises(MalformedModelOutput):
        llm.complete(system_blocks=[], messages=[], max_tokens=10, temperature=None, timeout_seconds=1)


def test_missing_key_raises_configuration_missing():
    llm = LLMClient(api_key="  ")
    assert llm.configured is False
    with pytest.raises(ConfigurationMissing):
        llm.complete(system_blocks=[], messages=[], max_tokens=10, temperature=None, timeout_seconds=1)
