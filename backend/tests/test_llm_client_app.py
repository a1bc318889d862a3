from __future__ import annotations

from types import SimpleNamespace

import pytest

from rehearse.core.config import AppConfig
from rehearse.core.errors import RemoteError
from rehearse.core.llm_client_app import LLMClientApp, build_llm_client


class _Completions:
    def __init__(self, response=None, error=None) -> None:
        self.response = response
        self.error = error
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.response


def _client(completions: _Completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def _response(content):
    message = SimpleNamespace(content=content)
    usage = SimpleNamespace(total_tokens=30, prompt_tokens=20, completion_tokens=10)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)], usage=usage)


def test_generate_text_sends_one_request() -> None:
    completions = _Completions(response=_response("  1. Question?  "))
    llm = LLMClientApp("sk-test", model="gpt-4o-mini", client=_client(completions))

    result = llm.generate_text("system", "user")

    assert result["text"] == "1. Question?"
    assert result["usage"]["total_tokens"] == 30
    assert completions.kwargs["temperature"] == 0.7
    assert completions.kwargs["max_tokens"] == 1000
    assert completions.kwargs["messages"][0] == {"role": "system", "content": "system"}


def test_generate_text_wraps_sdk_errors() -> None:
    completions = _Completions(error=RuntimeError("rate limited"))
    llm = LLMClientApp("sk-test", model="gpt-4o-mini", client=_client(completions))

    with pytest.raises(RemoteError, match="OpenAI API request failed: rate limited"):
        llm.generate_text("system", "user")


def test_generate_text_rejects_empty_content() -> None:
    llm = LLMClientApp("sk-test", model="gpt-4o-mini", client=_client(_Completions(response=_response(None))))

    with pytest.raises(RemoteError, match="Invalid response"):
        llm.generate_text("system", "user")


def test_build_llm_client_requires_a_key() -> None:
    config = AppConfig(supabase_url="https://abc.supabase.co", supabase_anon_key="anon")

    assert build_llm_client(config) is None


def test_build_llm_client_uses_configured_model() -> None:
    config = AppConfig(
        supabase_url="https://abc.supabase.co",
        supabase_anon_key="anon",
        openai_api_key="sk-test",
        openai_model="gpt-4o",
    )

    llm = build_llm_client(config)

    assert llm is not None
    assert llm.model == "gpt-4o"
