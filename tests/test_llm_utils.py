from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest

from runcoach.utils import llm_utils
from runcoach.utils.llm_utils import LLMError, LLMTimeout, generate_chat_response

MESSAGES = [{"role": "user", "content": "Plan please"}]


def _completion(content):
    completion = MagicMock()
    completion.choices = [MagicMock()]
    completion.choices[0].message.content = content
    completion.usage.prompt_tokens = 10
    completion.usage.completion_tokens = 20
    return completion


@pytest.fixture
def openai_client(monkeypatch):
    monkeypatch.setattr(llm_utils.Config, "OPENAI_API_KEY", "sk-test")
    with patch("runcoach.utils.llm_utils.OpenAI") as client_cls:
        yield client_cls


def test_openai_response(openai_client):
    openai_client.return_value.chat.completions.create.return_value = _completion("2025-09-04|Thu|Rest|0|0|Low|Rest")

    text = generate_chat_response(MESSAGES, system_prompt="coach", provider="openai", timeout=30, max_tokens=100)

    assert text.startswith("2025-09-04")
    assert openai_client.call_args.kwargs["timeout"] == 30
    sent = openai_client.return_value.chat.completions.create.call_args.kwargs
    assert sent["messages"][0] == {"role": "system", "content": "coach"}
    assert sent["max_completion_tokens"] == 100


def test_empty_completion_is_an_error(openai_client):
    openai_client.return_value.chat.completions.create.return_value = _completion("   ")
    with pytest.raises(LLMError):
        generate_chat_response(MESSAGES, provider="openai")


def test_timeout_is_distinct(openai_client):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    openai_client.return_value.chat.completions.create.side_effect = openai.APITimeoutError(request=request)
    with pytest.raises(LLMTimeout):
        generate_chat_response(MESSAGES, provider="openai")


def test_api_errors_are_wrapped(openai_client):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    openai_client.return_value.chat.completions.create.side_effect = openai.APIConnectionError(request=request)
    with pytest.raises(LLMError) as excinfo:
        generate_chat_response(MESSAGES, provider="openai")
    assert not isinstance(excinfo.value, LLMTimeout)


def test_missing_key(monkeypatch):
    monkeypatch.setattr(llm_utils.Config, "OPENAI_API_KEY", None)
    with pytest.raises(LLMError):
        generate_chat_response(MESSAGES, provider="openai")


def test_unknown_provider():
    with pytest.raises(LLMError):
        generate_chat_response(MESSAGES, provider="carrier-pigeon")
