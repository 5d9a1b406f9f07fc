"""
LLM-based rewriting backends.

This module provides:
- OpenAI-compatible rewriter (OpenAI, Ollama, Gemini's OpenAI endpoint)
- Anthropic Claude rewriter
- create_rewriter() factory keyed by provider name

Clients are created lazily on the first call, so building a rewriter never
needs network access or an API key. Every SDK error is wrapped in
UpstreamError; retries are left to the SDK clients.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Optional

from mdlingo.config import DEFAULT_MODELS, GEMINI_BASE_URL, OLLAMA_BASE_URL
from mdlingo.errors import InvalidConfigError, UpstreamError
from mdlingo.keys import KeyManager, require_key
from mdlingo.translate.base import (
    ChatRequest,
    ChatResponse,
    DummyRewriter,
    Rewriter,
    StreamChunk,
    TokenUsage,
)

logger = logging.getLogger(__name__)


@dataclass
class LLMConfig:
    """Configuration for LLM rewriters."""
    model: str = "gpt-4o"
    temperature: float = 0.3
    max_tokens: int = 8192
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout: float = 600.0
    max_retries: int = 2


class BaseLLMRewriter(Rewriter):
    """Common settings handling for SDK-backed rewriters."""

    key_service = ""

    def __init__(self, config: Optional[LLMConfig] = None, key_manager: KeyManager | None = None):
        self.config = config or LLMConfig()
        self.key_manager = key_manager
        self._client = None

    @property
    def model(self) -> str:
        return self.config.model

    def _api_key(self) -> str:
        if self.config.api_key:
            return self.config.api_key
        return require_key(self.key_service, self.key_manager)

    def _params(self, request: ChatRequest) -> tuple[str, float, int]:
        model = request.model or self.config.model
        temperature = request.temperature if request.temperature is not None else self.config.temperature
        max_tokens = request.max_tokens or self.config.max_tokens
        return model, temperature, max_tokens


class OpenAIRewriter(BaseLLMRewriter):
    """Rewriter for any OpenAI-compatible chat completions endpoint.

    Usage:
        rewriter = OpenAIRewriter(LLMConfig(model="gpt-4o"))
        response = rewriter.chat(request)
    """

    key_service = "openai"

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        key_manager: KeyManager | None = None,
        label: str = "openai",
        key_service: str = "openai",
    ):
        super().__init__(config, key_manager)
        self.label = label
        self.key_service = key_service

    @property
    def name(self) -> str:
        return f"{self.label}-{self.config.model}"

    def _get_client(self):
        """Lazy initialization of OpenAI client."""
        if self._client is None:
            from openai import OpenAI

            kwargs = {
                "api_key": self._api_key(),
                "timeout": self.config.timeout,
                "max_retries": self.config.max_retries,
            }
            if self.config.base_url:
                kwargs["base_url"] = self.config.base_url
            self._client = OpenAI(**kwargs)

        return self._client

    def _create(self, request: ChatRequest, stream: bool = False):
        import openai

        model, temperature, max_tokens = self._params(request)
        try:
            return self._get_client().chat.completions.create(
                model=model,
                messages=[m.to_dict() for m in request.messages],
                temperature=temperature,
                max_tokens=max_tokens,
                stream=stream,
            )
        except openai.OpenAIError as e:
            raise UpstreamError(f"{self.label} request failed: {e}") from e

    def chat(self, request: ChatRequest) -> ChatResponse:
        response = self._create(request)
        choice = response.choices[0] if response.choices else None
        usage = response.usage
        return ChatResponse(
            content=(choice.message.content if choice else "") or "",
            model=response.model,
            usage=TokenUsage(
                prompt_tokens=usage.prompt_tokens if usage else 0,
                completion_tokens=usage.completion_tokens if usage else 0,
                total_tokens=usage.total_tokens if usage else 0,
            ),
            finish_reason=(choice.finish_reason if choice else None) or "unknown",
        )

    def chat_stream(self, request: ChatRequest) -> Iterator[StreamChunk]:
        import openai

        stream = self._create(request, stream=True)
        try:
            for event in stream:
                if event.choices and event.choices[0].delta.content:
                    yield StreamChunk(content=event.choices[0].delta.content)
        except openai.OpenAIError as e:
            raise UpstreamError(f"{self.label} stream failed: {e}") from e
        yield StreamChunk(content="", done=True)


class AnthropicRewriter(BaseLLMRewriter):
    """Anthropic Claude rewriter."""

    key_service = "anthropic"

    def __init__(self, config: Optional[LLMConfig] = None, key_manager: KeyManager | None = None):
        config = config or LLMConfig(model=DEFAULT_MODELS["claude"])
        super().__init__(config, key_manager)

    @property
    def name(self) -> str:
        return f"anthropic-{self.config.model}"

    def _get_client(self):
        """Lazy initialization of Anthropic client."""
        if self._client is None:
            import anthropic

            self._client = anthropic.Anthropic(
                api_key=self._api_key(),
                timeout=self.config.timeout,
                max_retries=self.config.max_retries,
            )

        return self._client

    def _payload(self, request: ChatRequest) -> dict:
        model, temperature, max_tokens = self._params(request)
        payload = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [m.to_dict() for m in request.messages if m.role != "system"],
        }
        if request.system_prompt:
            payload["system"] = request.system_prompt
        return payload

    def chat(self, request: ChatRequest) -> ChatResponse:
        import anthropic

        try:
            response = self._get_client().messages.create(**self._payload(request))
        except anthropic.AnthropicError as e:
            raise UpstreamError(f"Anthropic request failed: {e}") from e

        text = "".join(block.text for block in response.content if block.type == "text")
        prompt_tokens = response.usage.input_tokens
        completion_tokens = response.usage.output_tokens
        return ChatResponse(
            content=text,
            model=response.model,
            usage=TokenUsage(prompt_tokens, completion_tokens, prompt_tokens + completion_tokens),
            finish_reason=response.stop_reason or "unknown",
        )

    def chat_stream(self, request: ChatRequest) -> Iterator[StreamChunk]:
        import anthropic

        try:
            with self._get_client().messages.stream(**self._payload(request)) as stream:
                for text in stream.text_stream:
                    if text:
                        yield StreamChunk(content=text)
        except anthropic.AnthropicError as e:
            raise UpstreamError(f"Anthropic stream failed: {e}") from e
        yield StreamChunk(content="", done=True)


def create_rewriter(
    provider: str,
    model: Optional[str] = None,
    base_url: Optional[str] = None,
    api_key: Optional[str] = None,
    key_manager: KeyManager | None = None,
) -> Rewriter:
    """Create a rewriter by provider name.

    Args:
        provider: 'claude' (or 'anthropic'), 'openai', 'gemini', 'ollama', 'dummy'
        model: Model name (provider default if None)
        base_url: Endpoint override for OpenAI-compatible providers
        api_key: Explicit key (overrides env, keychain and key file)
        key_manager: KeyManager used to resolve keys lazily

    Returns:
        Configured rewriter
    """
    provider = provider.lower()
    if provider == "anthropic":
        provider = "claude"

    if provider == "dummy":
        mode = model or "echo"
        if mode not in DummyRewriter.MODES:
            raise InvalidConfigError(
                f"Unknown model for the dummy provider: {mode!r}",
                hint=f"Use one of: {', '.join(DummyRewriter.MODES)}",
            )
        return DummyRewriter(mode)

    if provider not in DEFAULT_MODELS:
        raise InvalidConfigError(
            f"Unsupported provider: {provider!r}",
            hint=f"Supported providers: {', '.join(DEFAULT_MODELS)}",
        )

    config = LLMConfig(model=model or DEFAULT_MODELS[provider], api_key=api_key, base_url=base_url)
    logger.info("Using provider %s with model %s", provider, config.model)

    if provider == "claude":
        return AnthropicRewriter(config, key_manager)
    if provider == "gemini":
        config.base_url = config.base_url or GEMINI_BASE_URL
        return OpenAIRewriter(config, key_manager, label="gemini", key_service="gemini")
    if provider == "ollama":
        config.base_url = config.base_url or OLLAMA_BASE_URL
        # the SDK insists on a key; Ollama ignores it
        config.api_key = config.api_key or "ollama"
        return OpenAIRewriter(config, key_manager, label="ollama")
    return OpenAIRewriter(config, key_manager)
