"""
Rewriting backends.

- base: request/response types, Rewriter interface, DummyRewriter, streaming
- llm: OpenAI-compatible and Anthropic rewriters, create_rewriter()
"""

from mdlingo.translate.base import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    DummyRewriter,
    LoggedRewriter,
    Rewriter,
    StreamChunk,
    TokenUsage,
    stream_response,
)
from mdlingo.translate.llm import (
    AnthropicRewriter,
    LLMConfig,
    OpenAIRewriter,
    create_rewriter,
)

__all__ = [
    "AnthropicRewriter",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "DummyRewriter",
    "LLMConfig",
    "LoggedRewriter",
    "OpenAIRewriter",
    "Rewriter",
    "StreamChunk",
    "TokenUsage",
    "create_rewriter",
    "stream_response",
]
