"""
Base rewriter interface and implementations.

This module defines:
- The chat request/response types exchanged with rewriting backends
- Abstract Rewriter interface that all backends implement
- DummyRewriter for testing (echo or prefix transformations)
- LoggedRewriter, which records every call in the execution log
- stream_response, which accumulates a streamed reply into one string

Design Philosophy:
- Rewriters are stateless: they receive the full message list in each call
- All rewriters return ChatResponse with token usage
- Streaming is a thin layer over the same request type
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional

from mdlingo.errors import UpstreamError
from mdlingo.logger import ExecutionLogger, LogEntry


@dataclass
class ChatMessage:
    """A single role-tagged message ('system', 'user' or 'assistant')."""
    role: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class TokenUsage:
    """Token counters reported by a backend."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: TokenUsage) -> TokenUsage:
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


@dataclass
class ChatRequest:
    """Request sent to a rewriter.

    Attributes:
        messages: Ordered messages (system instruction first)
        model: Model override; empty means the rewriter's default
        temperature: Optional sampling temperature
        max_tokens: Optional response budget
    """
    messages: list[ChatMessage]
    model: str = ""
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None

    @property
    def system_prompt(self) -> str:
        return "\n\n".join(m.content for m in self.messages if m.role == "system")


@dataclass
class ChatResponse:
    """Response returned by a rewriter."""
    content: str
    model: str = ""
    usage: TokenUsage = field(default_factory=TokenUsage)
    finish_reason: str = "stop"


@dataclass
class StreamChunk:
    """One increment of a streamed response."""
    content: str
    done: bool = False


class Rewriter(ABC):
    """Abstract base class for all rewriting backends.

    All rewriters must implement:
    - name: backend identifier used in logs
    - chat(): send a request and return the full response

    chat_stream() defaults to yielding the whole chat() reply at once;
    backends with native streaming override it.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the rewriter name (e.g., 'openai-gpt-4o', 'dummy-echo')."""
        pass

    @property
    def model(self) -> str:
        return ""

    @abstractmethod
    def chat(self, request: ChatRequest) -> ChatResponse:
        """Send a request and return the response.

        Raises:
            UpstreamError: If the backend fails
        """
        pass

    def chat_stream(self, request: ChatRequest) -> Iterator[StreamChunk]:
        response = self.chat(request)
        if response.content:
            yield StreamChunk(content=response.content)
        yield StreamChunk(content="", done=True)


class DummyRewriter(Rewriter):
    """A dummy rewriter for testing and dry runs.

    Modes:
    - 'echo': Return the user content unchanged
    - 'prefix': Add a [TRANSLATED] prefix to the user content
    """

    MODES = ("echo", "prefix")

    def __init__(self, mode: str = "echo"):
        if mode not in self.MODES:
            raise ValueError(f"Unknown dummy mode: {mode}")
        self.mode = mode
        self.requests: list[ChatRequest] = []

    @property
    def name(self) -> str:
        return f"dummy-{self.mode}"

    def chat(self, request: ChatRequest) -> ChatResponse:
        self.requests.append(request)
        text = "".join(m.content for m in request.messages if m.role == "user")
        if self.mode == "prefix":
            text = f"[TRANSLATED] {text}"

        prompt_tokens = sum(len(m.content.split()) for m in request.messages)
        completion_tokens = len(text.split())
        return ChatResponse(
            content=text,
            model=self.name,
            usage=TokenUsage(prompt_tokens, completion_tokens, prompt_tokens + completion_tokens),
        )


class LoggedRewriter(Rewriter):
    """Wraps a rewriter and appends one execution log record per call."""

    def __init__(
        self,
        base: Rewriter,
        logger: ExecutionLogger,
        provider: str,
        task_type: str = "translate",
    ):
        self.base = base
        self.logger = logger
        self.provider = provider
        self.task_type = task_type

    @property
    def name(self) -> str:
        return self.base.name

    @property
    def model(self) -> str:
        return self.base.model

    def chat(self, request: ChatRequest) -> ChatResponse:
        started = time.perf_counter()
        try:
            response = self.base.chat(request)
        except UpstreamError as e:
            self._log(started, TokenUsage(), success=False, error=str(e))
            raise
        self._log(started, response.usage, success=True)
        return response

    def _log(self, started: float, usage: TokenUsage, success: bool, error: str | None = None) -> None:
        self.logger.log(LogEntry(
            provider=self.provider,
            model=self.base.model or self.base.name,
            task_type=self.task_type,
            input_tokens=usage.prompt_tokens,
            output_tokens=usage.completion_tokens,
            latency_ms=int((time.perf_counter() - started) * 1000),
            success=success,
            error=error,
        ))


def stream_response(
    rewriter: Rewriter,
    request: ChatRequest,
    on_chunk: Callable[[str], None] | None = None,
    on_done: Callable[[], None] | None = None,
) -> str:
    """Consume a streamed reply and return the accumulated text."""
    parts = []
    for chunk in rewriter.chat_stream(request):
        if chunk.done:
            if on_done is not None:
                on_done()
            break
        parts.append(chunk.content)
        if on_chunk is not None:
            on_chunk(chunk.content)
    return "".join(parts)
