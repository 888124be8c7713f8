"""
Text-completion backends
========================
The classifier and scorer only depend on ``CompletionBackend.complete``:
prompt string in, untrusted response string out.

Providers:
- openrouter / openai (OpenAI SDK)
- anthropic (Anthropic SDK)
- any ``str -> str`` callable via ``CallableBackend``
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..config.settings import DEFAULT_MODELS, LLM_CONFIG, PROVIDER_API_KEY_ENV

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a strict entity analyst. Always respond with valid JSON only."


class CompletionBackend(ABC):
    """A text-completion capability."""

    name: str = ""

    @abstractmethod
    def complete(self, prompt: str) -> str:
        """Return the model's raw text response for *prompt*."""


class CallableBackend(CompletionBackend):
    """Adapt a plain ``prompt -> text`` function into a backend."""

    name = "callable"

    def __init__(self, func: Callable[[str], str], name: Optional[str] = None):
        self._func = func
        if name:
            self.name = name

    def complete(self, prompt: str) -> str:
        return self._func(prompt)


class OpenAIBackend(CompletionBackend):
    """
    Chat-completions backend for OpenAI and OpenRouter.

    Both providers use the same SDK interface; OpenRouter only needs a base
    URL and attribution headers.
    """

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        provider: str = "openrouter",
        base_url: Optional[str] = None,
        temperature: float = LLM_CONFIG["temperature"],
        max_tokens: int = LLM_CONFIG["max_tokens"],
        timeout: Optional[float] = LLM_CONFIG["timeout_seconds"],
    ):
        try:
            from openai import OpenAI
        except ImportError as exc:  # pragma: no cover
            raise ImportError("The 'openai' package is required: pip install openai") from exc

        self.name = provider
        self.model = model or LLM_CONFIG["model"] or DEFAULT_MODELS[provider]
        self.temperature = temperature
        self.max_tokens = max_tokens

        if provider == "openrouter":
            self.client = OpenAI(
                api_key=api_key,
                base_url=base_url or LLM_CONFIG["base_url"],
                timeout=timeout,
                default_headers={
                    "HTTP-Referer": LLM_CONFIG["site_url"],
                    "X-Title": LLM_CONFIG["app_name"],
                },
            )
        else:
            self.client = OpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    def complete(self, prompt: str) -> str:
        logger.debug("%s request model=%s prompt_chars=%d", self.name, self.model, len(prompt))
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return response.choices[0].message.content or ""


class AnthropicBackend(CompletionBackend):
    """Messages API backend for Claude models."""

    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        temperature: float = LLM_CONFIG["temperature"],
        max_tokens: int = LLM_CONFIG["max_tokens"],
        timeout: Optional[float] = LLM_CONFIG["timeout_seconds"],
    ):
        try:
            from anthropic import Anthropic
        except ImportError as exc:  # pragma: no cover
            raise ImportError("The 'anthropic' package is required: pip install anthropic") from exc

        self.model = model or LLM_CONFIG["model"] or DEFAULT_MODELS["anthropic"]
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = Anthropic(api_key=api_key, timeout=timeout)

    def complete(self, prompt: str) -> str:
        logger.debug("anthropic request model=%s prompt_chars=%d", self.model, len(prompt))
        response = self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}],
        )
        return response.content[0].text


def resolve_api_key(provider: str, api_key: Optional[str] = None) -> str:
    """Explicit key, else the provider's environment variable"""
    if api_key:
        return api_key
    env_name = PROVIDER_API_KEY_ENV.get(provider, "")
    return os.getenv(env_name, "") if env_name else ""


def create_backend(
    provider: Optional[str] = None,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    timeout: Optional[float] = None,
) -> CompletionBackend:
    """
    Build a backend for a configured provider.

    Args:
        provider: "openrouter", "openai" or "anthropic" (defaults to LLM_CONFIG)
        api_key: API key (defaults to the provider's environment variable)
        model: Model identifier override
        timeout: Per-request timeout in seconds

    Returns:
        A ready CompletionBackend

    Raises:
        ValueError: Unknown provider or missing API key
    """
    provider = (provider or LLM_CONFIG["provider"]).lower()
    if provider not in PROVIDER_API_KEY_ENV:
        available = ", ".join(sorted(PROVIDER_API_KEY_ENV))
        raise ValueError(f"Unknown provider {provider!r}. Available: {available}")

    key = resolve_api_key(provider, api_key)
    if not key:
        raise ValueError(
            f"No API key for provider {provider!r}: set {PROVIDER_API_KEY_ENV[provider]}"
        )

    timeout = timeout if timeout is not None else LLM_CONFIG["timeout_seconds"]
    if provider == "anthropic":
        return AnthropicBackend(api_key=key, model=model, timeout=timeout)
    return OpenAIBackend(api_key=key, model=model, provider=provider, timeout=timeout)
