"""
Tests for the text generation gateway's model fallback.
"""
import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from support_bot.errors import (
    AllModelsExhausted,
    GenerationAuthenticationFailed,
    GenerationError,
    InvalidGenerationRequest,
    UpstreamUnavailable,
)
from support_bot.services.generation import (
    EMPTY_COMPLETION_TEXT,
    TextGenerationGateway,
    build_openai_client,
)

MODELS = ["model-a", "model-b", "model-c"]
_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _status_error(cls, status_code):
    return cls("upstream said no", response=httpx.Response(status_code, request=_REQUEST), body=None)


def _quota():
    return _status_error(openai.RateLimitError, 429)


def _completion(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


@pytest.fixture
def client():
    mock = MagicMock()
    mock.with_options.return_value = mock
    return mock


def _models_called(client):
    return [c.kwargs["model"] for c in client.chat.completions.create.call_args_list]


def test_first_model_success(client):
    client.chat.completions.create.return_value = _completion("hello")
    gateway = TextGenerationGateway(client, models=MODELS, timeout=5)

    client.with_options.assert_called_once_with(max_retries=0)
    assert gateway.generate("hi") == "hello"
    assert _models_called(client) == ["model-a"]

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["messages"] == [{"role": "user", "content": "hi"}]
    assert kwargs["timeout"] == 5


def test_falls_back_past_quota_errors(client):
    client.chat.completions.create.side_effect = [_quota(), _quota(), _completion("third time lucky")]
    gateway = TextGenerationGateway(client, models=MODELS)

    assert gateway.generate("hi") == "third time lucky"
    assert _models_called(client) == MODELS


def test_all_models_exhausted(client):
    client.chat.completions.create.side_effect = [_quota(), _quota(), _quota()]
    gateway = TextGenerationGateway(client, models=MODELS)

    with pytest.raises(AllModelsExhausted) as exc_info:
        gateway.generate("hi")

    assert isinstance(exc_info.value, UpstreamUnavailable)
    assert exc_info.value.models == MODELS
    assert str(exc_info.value) == "All text generation models exhausted or failed"


def test_timeout_moves_to_next_model(client):
    client.chat.completions.create.side_effect = [
        openai.APITimeoutError(request=_REQUEST),
        _completion("from b"),
    ]
    gateway = TextGenerationGateway(client, models=MODELS)

    assert gateway.generate("hi") == "from b"


def test_bad_request_fails_immediately(client):
    client.chat.completions.create.side_effect = [_status_error(openai.BadRequestError, 400)]
    gateway = TextGenerationGateway(client, models=MODELS)

    with pytest.raises(InvalidGenerationRequest):
        gateway.generate("hi")
    assert _models_called(client) == ["model-a"]


def test_authentication_error_fails_immediately(client):
    client.chat.completions.create.side_effect = [_status_error(openai.AuthenticationError, 401)]
    gateway = TextGenerationGateway(client, models=MODELS)

    with pytest.raises(GenerationAuthenticationFailed):
        gateway.generate("hi")
    assert _models_called(client) == ["model-a"]


def test_other_errors_surface_message(client):
    client.chat.completions.create.side_effect = [openai.APIConnectionError(request=_REQUEST)]
    gateway = TextGenerationGateway(client, models=MODELS)

    with pytest.raises(GenerationError):
        gateway.generate("hi")
    assert _models_called(client) == ["model-a"]


def test_empty_completion(client):
    client.chat.completions.create.return_value = _completion(None)
    gateway = TextGenerationGateway(client, models=MODELS)

    assert gateway.generate("hi") == EMPTY_COMPLETION_TEXT


def test_requires_at_least_one_model(client):
    with pytest.raises(ValueError):
        TextGenerationGateway(client, models=[])


def test_build_client_without_key(monkeypatch):
    monkeypatch.setattr("support_bot.config.OPENAI_API_KEY", "")
    with pytest.raises(RuntimeError):
        build_openai_client()


def _transport_client(status_by_model, calls):
    """Real OpenAI client (default SDK retries) over a mock HTTP transport."""

    def handler(request):
        model = json.loads(request.content)["model"]
        calls.append(model)
        status_code = status_by_model.get(model, 200)
        if status_code != 200:
            return httpx.Response(status_code, json={"error": {"message": "quota exceeded"}})
        return httpx.Response(200, json={
            "id": "chatcmpl-1",
            "object": "chat.completion",
            "created": 0,
            "model": model,
            "choices": [{
                "index": 0,
                "message": {"role": "assistant", "content": f"answer from {model}"},
                "finish_reason": "stop",
            }],
        })

    return openai.OpenAI(
        api_key="sk-test",
        base_url="https://llm.test/v1",
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


def test_quota_error_is_not_retried_on_the_same_model():
    calls = []
    gateway = TextGenerationGateway(_transport_client({"m1": 429}, calls), models=["m1", "m2"])

    assert gateway.generate("hi") == "answer from m2"
    assert calls == ["m1", "m2"]


def test_every_model_gets_a_single_attempt():
    calls = []
    gateway = TextGenerationGateway(_transport_client({"m1": 429, "m2": 429}, calls), models=["m1", "m2"])

    with pytest.raises(AllModelsExhausted):
        gateway.generate("hi")
    assert calls == ["m1", "m2"]
