"""
Main translation pipeline for mdlingo.

This module orchestrates the translation of one Markdown document:
1. Read and validate the source
2. Separate frontmatter (never sent to the rewriter)
3. Protect code spans with placeholders
4. Split the body into line-aligned chunks
5. Rewrite each chunk, strictly in order, summing token usage
6. Restore placeholders and prepend the frontmatter
7. Write the result

Design Philosophy:
- Pipeline is configurable via PipelineConfig
- Each stage is a plain function that can be tested on its own
- Progress callbacks for CLI integration
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from mdlingo.chunking import DEFAULT_CHUNK_BYTES, split_into_chunks
from mdlingo.errors import EmptyInputError, InvalidInputError, NotFoundError, PlaceholderError
from mdlingo.glossary.report import glossary_prompt
from mdlingo.glossary.store import GlossaryConfig
from mdlingo.masking import (
    protect_code,
    restore_code,
    separate_frontmatter,
    validate_placeholders,
)
from mdlingo.translate.base import ChatMessage, ChatRequest, Rewriter, TokenUsage

logger = logging.getLogger(__name__)

# Type alias for progress callbacks
ProgressCallback = Callable[[str, float], None]


DEFAULT_TEMPLATE = """\
You are a professional translator. Translate the following Markdown document to {{targetLanguage}}.

Rules:
- Preserve all Markdown formatting (headings, links, code blocks, tables, lists)
- Do not translate code blocks, URLs, or file paths
- Maintain the same document structure
- Produce natural, fluent text in the target language
- Output only the translated document, without explanations

Link and URL preservation:
- NEVER modify any URLs or link paths. Keep all href/src values exactly as-is.
- NEVER change internal link paths (e.g., /ja/..., /en/..., ./relative-path).
- NEVER convert external URLs to different language versions.
- Only the visible link text may be translated: [紹介](/ja/intro) keeps "/ja/intro".

{{content}}"""

PLACEHOLDER_INSTRUCTIONS = """

IMPORTANT - Placeholder preservation:
- Tokens like <<CODEBLK_000>> or <<CODE_000>> stand for code blocks and inline code.
- Output them VERBATIM and UNCHANGED. Do NOT translate, modify, or remove them.
- Example: if the input has <<CODEBLK_000>>, the output must contain <<CODEBLK_000>> exactly."""


@dataclass
class PipelineConfig:
    """Configuration for the translation pipeline.

    Attributes:
        target_lang: Target language code (e.g. 'ja')
        template: Prompt template with {{targetLanguage}} / {{content}}
        glossary: Glossary whose terms are added to the system prompt
        max_chunk_bytes: Chunk bound in UTF-8 bytes
        strict_placeholders: Fail when the rewriter drops a placeholder
        temperature: Sampling temperature passed with every request
    """
    target_lang: str = "ja"
    template: Optional[str] = None
    glossary: Optional[GlossaryConfig] = None
    max_chunk_bytes: int = DEFAULT_CHUNK_BYTES
    strict_placeholders: bool = True
    temperature: Optional[float] = None

    def to_dict(self) -> dict:
        """Serialize config for logging/debugging."""
        return {
            "target_lang": self.target_lang,
            "custom_template": self.template is not None,
            "glossary_terms": len(self.glossary) if self.glossary else 0,
            "max_chunk_bytes": self.max_chunk_bytes,
            "strict_placeholders": self.strict_placeholders,
        }


@dataclass
class TranslationResult:
    """Result of translating one document.

    Attributes:
        text: Final document text (frontmatter and code restored)
        usage: Token usage summed over all chunks
        chunk_count: Number of chunks the body was split into
        output_path: Where the document was written (None if not persisted)
        placeholders: Number of code spans protected
        missing_placeholders: Placeholders the rewriter dropped (lenient mode)
    """
    text: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    chunk_count: int = 0
    output_path: Optional[Path] = None
    placeholders: int = 0
    missing_placeholders: list[str] = field(default_factory=list)


def resolve_output_path(
    input_path: str | Path,
    target_lang: str,
    output_path: str | Path | None = None,
) -> Path:
    """Explicit output path, else ``<stem>.<lang><suffix>`` beside the input."""
    if output_path:
        return Path(output_path)
    input_path = Path(input_path)
    return input_path.with_name(f"{input_path.stem}.{target_lang}{input_path.suffix}")


def build_messages(
    content: str,
    target_lang: str,
    has_placeholders: bool = False,
    template: Optional[str] = None,
    glossary: Optional[GlossaryConfig] = None,
) -> list[ChatMessage]:
    """Build the system instruction and user message for one chunk.

    ``{{targetLanguage}}`` is substituted in the template; ``{{content}}``
    is dropped from the system prompt because the chunk travels as the
    user message.
    """
    system_prompt = (
        (template or DEFAULT_TEMPLATE)
        .replace("{{targetLanguage}}", target_lang)
        .replace("{{content}}", "")
        .rstrip()
    )

    if has_placeholders:
        system_prompt += PLACEHOLDER_INSTRUCTIONS

    if glossary is not None:
        system_prompt += glossary_prompt(glossary, target_lang)

    return [
        ChatMessage(role="system", content=system_prompt),
        ChatMessage(role="user", content=content),
    ]


def load_template(path: str | Path) -> str:
    """Read a custom prompt template.

    Raises:
        NotFoundError: If the file does not exist
    """
    path = Path(path)
    if not path.is_file():
        raise NotFoundError(f"Template file not found: {path}")
    return path.read_text(encoding="utf-8")


def read_source(input_path: str | Path) -> str:
    """Read a source document.

    Raises:
        NotFoundError: If the file does not exist
        InvalidInputError: If the file is not valid UTF-8
        EmptyInputError: If the file holds only whitespace
    """
    input_path = Path(input_path)
    if not input_path.is_file():
        raise NotFoundError(
            f"Input file not found: {input_path}",
            hint="Check the file path and try again.",
        )
    try:
        text = input_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise InvalidInputError(
            f"Input file is not valid UTF-8: {input_path}: {e.reason}",
            hint="Convert the file to UTF-8 and try again.",
        ) from e
    if not text.strip():
        raise EmptyInputError(f"Input file is empty: {input_path}")
    return text


class TranslationPipeline:
    """Translate Markdown documents through a rewriter.

    Usage:
        pipeline = TranslationPipeline(rewriter, PipelineConfig(target_lang="ja"))
        result = pipeline.translate_file("docs/intro.md")
        print(result.output_path, result.usage.total_tokens)
    """

    def __init__(
        self,
        rewriter: Rewriter,
        config: PipelineConfig | None = None,
        progress_callback: ProgressCallback | None = None,
    ):
        self.rewriter = rewriter
        self.config = config or PipelineConfig()
        self.progress_callback = progress_callback or (lambda msg, pct: None)

    def translate_text(self, text: str) -> TranslationResult:
        """Translate document text without touching the filesystem."""
        config = self.config
        logger.debug("Pipeline config: %s", config.to_dict())

        self.progress_callback("Separating frontmatter...", 0.05)
        split = separate_frontmatter(text)

        self.progress_callback("Protecting code...", 0.1)
        protected = protect_code(split.body)

        chunks = split_into_chunks(protected.text, config.max_chunk_bytes)
        logger.info(
            "Translating to %s: %d chunk(s), %d placeholder(s)",
            config.target_lang, len(chunks), len(protected.registry),
        )

        usage = TokenUsage()
        parts = []
        missing_all: list[str] = []

        for chunk in chunks:
            self.progress_callback(
                f"Rewriting chunk {chunk.index + 1}/{len(chunks)}...",
                0.1 + 0.8 * (chunk.index / len(chunks)),
            )

            if chunk.is_blank:
                parts.append(chunk.content)
                continue

            request = ChatRequest(
                messages=build_messages(
                    chunk.content,
                    config.target_lang,
                    has_placeholders=protected.has_placeholders,
                    template=config.template,
                    glossary=config.glossary,
                ),
                temperature=config.temperature,
            )
            response = self.rewriter.chat(request)
            usage = usage + response.usage

            missing = validate_placeholders(chunk.content, response.content, protected.registry)
            if missing:
                if config.strict_placeholders:
                    raise PlaceholderError(
                        f"Rewriter dropped {len(missing)} placeholder(s) in chunk {chunk.index + 1}: "
                        + ", ".join(missing),
                        missing=missing,
                        hint="Retry, or use a model that follows formatting instructions more closely.",
                    )
                logger.warning(
                    "Chunk %d lost placeholder(s) %s; their code will be missing",
                    chunk.index + 1, ", ".join(missing),
                )
                missing_all.extend(missing)

            parts.append(response.content)

        self.progress_callback("Restoring code...", 0.95)
        body = restore_code("".join(parts), protected.registry)
        if split.has_frontmatter:
            body = split.frontmatter + body

        return TranslationResult(
            text=body,
            usage=usage,
            chunk_count=len(chunks),
            placeholders=len(protected.registry),
            missing_placeholders=missing_all,
        )

    def translate_file(
        self,
        input_path: str | Path,
        output_path: str | Path | None = None,
    ) -> TranslationResult:
        """Translate a file and write the result.

        Args:
            input_path: Source Markdown file
            output_path: Destination (default ``<stem>.<lang><suffix>``)

        Raises:
            NotFoundError: If the source does not exist
            EmptyInputError: If the source is blank
            UpstreamError: If the rewriter fails
        """
        text = read_source(input_path)
        destination = resolve_output_path(input_path, self.config.target_lang, output_path)

        result = self.translate_text(text)

        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(result.text, encoding="utf-8")
        result.output_path = destination

        self.progress_callback("Complete", 1.0)
        logger.info("Wrote %s (%d tokens)", destination, result.usage.total_tokens)
        return result


def translate_file(
    rewriter: Rewriter,
    input_path: str | Path,
    target_lang: str,
    output_path: str | Path | None = None,
    template: Optional[str] = None,
    glossary: Optional[GlossaryConfig] = None,
    max_chunk_bytes: int = DEFAULT_CHUNK_BYTES,
) -> TranslationResult:
    """Convenience wrapper: translate one file with a fresh pipeline."""
    config = PipelineConfig(
        target_lang=target_lang,
        template=template,
        glossary=glossary,
        max_chunk_bytes=max_chunk_bytes,
    )
    return TranslationPipeline(rewriter, config).translate_file(input_path, output_path)
