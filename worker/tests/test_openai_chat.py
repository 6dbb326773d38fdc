import types

import pytest

from plantscout.vendors import openai_chat


class DummyCompletions:
    def __init__(self, completion):
        self.completion = completion
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        return self.completion


def _install(monkeypatch, completion):
    completions = DummyCompletions(completion)
    created = {}

    def fake_client(api_key):
        created["api_key"] = api_key
        return types.SimpleNamespace(chat=types.SimpleNamespace(completions=completions))

    monkeypatch.setattr(openai_chat.openai, "OpenAI", fake_client)
    return completions, created


def _choice(content, finish_reason="stop"):
    return types.SimpleNamespace(message=types.SimpleNamespace(content=content), finish_reason=finish_reason)


def test_complete_returns_content(monkeypatch):
    completions, created = _install(monkeypatch, types.SimpleNamespace(choices=[_choice("[]")]))

    assert openai_chat.complete("prompt", " sk-test ") == "[]"
    assert created["api_key"] == "sk-test"
    assert completions.kwargs["model"] == "gpt-4o"
    assert completions.kwargs["temperature"] == 0.2
    assert completions.kwargs["messages"] == [{"role": "user", "content": "prompt"}]


def test_complete_without_choices(monkeypatch):
    _install(monkeypatch, types.SimpleNamespace(choices=[]))
    with pytest.raises(openai_chat.EmptyCompletionError, match="no choices"):
        openai_chat.complete("prompt", "sk")


def test_complete_reports_content_filter(monkeypatch):
    _install(monkeypatch, types.SimpleNamespace(choices=[_choice(None, "content_filter")]))
    with pytest.raises(openai_chat.EmptyCompletionError, match="filtered"):
        openai_chat.complete("prompt", "sk")
