"""
Batch translation of every file matching a glob pattern.

Files are processed one at a time in sorted order. A failure on one file
is recorded and the batch moves on; the result lists every failure.

Output placement:
- ``output_dir`` given: the path below the pattern's static base is kept
  (``docs/en/guide/a.md`` with ``docs/en/**/*.md`` -> ``<out>/guide/a.md``)
- otherwise: ``<stem>.<lang><suffix>`` beside the input
"""

from __future__ import annotations

import glob
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from mdlingo.errors import MdlingoError, NotFoundError
from mdlingo.glossary.store import GlossaryConfig
from mdlingo.pipeline import PipelineConfig, TranslationPipeline, resolve_output_path
from mdlingo.translate.base import Rewriter, TokenUsage

logger = logging.getLogger(__name__)

GLOB_CHARS = re.compile(r'[*?\[\]{}]')


@dataclass
class BatchError:
    """A file that failed to translate."""
    file: str
    error: str


@dataclass
class BatchProgress:
    """Progress after one file was handled.

    Attributes:
        total: Number of matched files
        current: 1-based index of the file just handled
        input_path: The file just handled
        output_path: Where its translation went (or would go)
        error: Failure message, None on success
    """
    total: int
    current: int
    input_path: str
    output_path: Path
    error: Optional[str] = None

    @property
    def prefix(self) -> str:
        return f"[{self.current}/{self.total}]"


@dataclass
class BatchResult:
    """Summary of a batch run."""
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: list[BatchError] = field(default_factory=list)
    usage: TokenUsage = field(default_factory=TokenUsage)

    @property
    def success(self) -> bool:
        return self.failed == 0


def is_glob_pattern(value: str) -> bool:
    """Whether the string contains glob metacharacters."""
    return GLOB_CHARS.search(value) is not None


def generate_output_path(
    input_path: str | Path,
    target_lang: str,
    output_dir: str | Path | None = None,
    input_base: str | Path | None = None,
    explicit_output: str | Path | None = None,
) -> Path:
    """Decide where a translated file goes.

    Precedence: explicit output, then ``output_dir`` with the path relative
    to ``input_base``, then ``<stem>.<lang><suffix>`` beside the input.
    """
    if explicit_output:
        return Path(explicit_output)
    if output_dir and input_base:
        return Path(output_dir) / os.path.relpath(input_path, input_base)
    return resolve_output_path(input_path, target_lang)


def determine_input_base(pattern: str, files: list[str]) -> Optional[str]:
    """Base directory that ``output_dir`` mirrors.

    Uses the pattern's static directory prefix when it has one, otherwise
    the deepest directory shared by all matched files (None if that is the
    working directory).
    """
    static_prefix = GLOB_CHARS.split(pattern)[0]
    if static_prefix and "/" in static_prefix:
        return static_prefix.rstrip("/")

    if not files:
        return None

    common = os.path.commonpath([os.path.dirname(f) or "." for f in files])
    return None if common in ("", ".") else common


def match_files(pattern: str) -> list[str]:
    """Regular files matching ``pattern`` (``**`` recursive), sorted."""
    return sorted(p for p in glob.glob(pattern, recursive=True) if os.path.isfile(p))


def batch_translate(
    pattern: str,
    target_lang: str,
    rewriter: Rewriter,
    output_dir: str | Path | None = None,
    dry_run: bool = False,
    progress_callback: Callable[[BatchProgress], None] | None = None,
    template: Optional[str] = None,
    glossary: Optional[GlossaryConfig] = None,
) -> BatchResult:
    """Translate every file matching ``pattern``.

    Args:
        pattern: Glob pattern, ``**`` matches across directories
        target_lang: Target language code
        rewriter: Backend used for every file
        output_dir: Mirror the input tree under this directory
        dry_run: Only report planned output paths
        progress_callback: Called after each file
        template: Custom prompt template
        glossary: Glossary added to the prompt

    Raises:
        NotFoundError: If no file matches
    """
    files = match_files(pattern)
    if not files:
        raise NotFoundError(
            f"No files matched pattern: {pattern}",
            hint="Quote the pattern so the shell does not expand it.",
        )

    input_base = determine_input_base(pattern, files) if output_dir else None
    pipeline = TranslationPipeline(
        rewriter,
        PipelineConfig(target_lang=target_lang, template=template, glossary=glossary),
    )
    result = BatchResult(total=len(files))
    logger.info("Batch: %d file(s) matched %s", len(files), pattern)

    for i, input_path in enumerate(files, start=1):
        output_path = generate_output_path(input_path, target_lang, output_dir, input_base)
        error = None

        if dry_run:
            result.succeeded += 1
        else:
            try:
                translated = pipeline.translate_file(input_path, output_path)
                result.usage = result.usage + translated.usage
                result.succeeded += 1
            except (MdlingoError, OSError) as e:
                error = str(e)
                logger.warning("Failed to translate %s: %s", input_path, error)
                result.errors.append(BatchError(file=input_path, error=error))
                result.failed += 1

        if progress_callback is not None:
            progress_callback(BatchProgress(
                total=len(files),
                current=i,
                input_path=input_path,
                output_path=output_path,
                error=error,
            ))

    return result
