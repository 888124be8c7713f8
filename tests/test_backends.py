"""Tests for completion backends and the backend factory."""

import pytest

from fo_engine.config.settings import LLM_CONFIG
from fo_engine.llm.backends import CallableBackend, CompletionBackend, create_backend, resolve_api_key


def test_callable_backend():
    backend = CallableBackend(lambda prompt: '{"ok": true}')
    assert isinstance(backend, CompletionBackend)
    assert backend.name == "callable"
    assert backend.complete("anything") == '{"ok": true}'


def test_callable_backend_custom_name():
    assert CallableBackend(str, name="identity").name == "identity"


def test_backend_is_abstract():
    with pytest.raises(TypeError):
        CompletionBackend()


def test_resolve_api_key_prefers_explicit(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "env-key")
    assert resolve_api_key("openai", "explicit") == "explicit"
    assert resolve_api_key("openai") == "env-key"


def test_resolve_api_key_uses_provider_variable(monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "router-key")
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    assert resolve_api_key("anthropic") == ""


def test_unknown_provider_raises():
    with pytest.raises(ValueError, match="Unknown provider"):
        create_backend(provider="nonexistent_provider_xyz", api_key="k")


def test_missing_key_raises(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(ValueError, match="OPENAI_API_KEY"):
        create_backend(provider="openai")


def test_openrouter_backend_configuration():
    pytest.importorskip("openai")
    backend = create_backend(provider="openrouter", api_key="test-key", model="some/model")
    assert backend.name == "openrouter"
    assert backend.model == "some/model"
    assert "openrouter.ai" in str(backend.client.base_url)


def test_anthropic_backend_default_model(monkeypatch):
    pytest.importorskip("anthropic")
    monkeypatch.setitem(LLM_CONFIG, "model", "")
    backend = create_backend(provider="anthropic", api_key="test-key")
    assert backend.name == "anthropic"
    assert backend.model.startswith("claude")
