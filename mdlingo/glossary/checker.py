"""
Glossary checker: find forbidden term variants in a document.

Prose (Markdown) documents are scanned line by line after the frontmatter
is dropped and code spans are blanked out. Structured documents (JSON,
YAML) are walked recursively and every string leaf is scanned, located by
its key path.

Suppressed contexts:
- fenced and inline code spans
- frontmatter
- absolute URLs and Markdown link destinations
- occurrences covered, at the same position, by the term's canonical
  translation (e.g. "サブスク" inside "サブスクリプション")
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Optional

import yaml

from mdlingo.errors import (
    InvalidConfigError,
    InvalidInputError,
    NotFoundError,
    UnsupportedLanguageError,
)
from mdlingo.glossary.store import GlossaryConfig, require_glossary
from mdlingo.masking import blank_code_spans, blank_links, separate_frontmatter

logger = logging.getLogger(__name__)

STRUCTURED_SUFFIXES = {".json", ".yaml", ".yml"}


@dataclass
class GlossaryIssue:
    """A forbidden variant found in a document.

    Attributes:
        forbidden: The forbidden variant that was found
        canonical: The term's canonical name
        line: 1-based line in the original file (prose documents)
        key_path: Key path of the string leaf (structured documents)
        column: 1-based column of the occurrence within its line or leaf
        suggestion: Canonical translation for the checked language, if any
    """
    forbidden: str
    canonical: str
    line: Optional[int] = None
    key_path: Optional[str] = None
    column: Optional[int] = None
    suggestion: Optional[str] = None

    @property
    def location(self) -> str:
        if self.key_path is not None:
            return self.key_path
        return f"line {self.line}"


# ============================================================================
# Occurrence Matching
# ============================================================================

def find_occurrences(text: str, word: str) -> Iterator[int]:
    """Yield start offsets of non-overlapping occurrences of ``word``."""
    if not word:
        return
    pos = text.find(word)
    while pos != -1:
        yield pos
        pos = text.find(word, pos + len(word))


def covered_by_canonical(text: str, pos: int, forbidden: str, canonical: Optional[str]) -> bool:
    """Whether the occurrence at ``pos`` lies inside the canonical translation.

    For every offset at which ``forbidden`` occurs inside ``canonical``, check
    whether ``canonical`` appears in ``text`` anchored so that it covers
    ``pos``.
    """
    if not canonical or forbidden not in canonical:
        return False
    for offset in find_all(canonical, forbidden):
        start = pos - offset
        if start >= 0 and text.startswith(canonical, start):
            return True
    return False


def find_all(text: str, word: str) -> Iterator[int]:
    """Yield every start offset of ``word``, overlapping ones included."""
    pos = text.find(word)
    while pos != -1:
        yield pos
        pos = text.find(word, pos + 1)


def scan_text(text: str, forbidden: str, canonical: Optional[str]) -> Iterator[int]:
    """Yield the offset of every unsuppressed occurrence of ``forbidden``.

    ``text`` must already have code, URLs and link targets blanked out.
    """
    for pos in find_occurrences(text, forbidden):
        if not covered_by_canonical(text, pos, forbidden, canonical):
            yield pos


def _check_language(glossary: GlossaryConfig, lang: str) -> None:
    if lang not in glossary.languages:
        raise UnsupportedLanguageError(
            f"Language '{lang}' is not defined in glossary",
            hint=f"Declared languages: {', '.join(glossary.languages)}",
        )


# ============================================================================
# Prose Documents
# ============================================================================

def check_text(text: str, glossary: GlossaryConfig, lang: str) -> list[GlossaryIssue]:
    """Check a Markdown document's text.

    Line numbers refer to the original text, frontmatter included.
    """
    _check_language(glossary, lang)

    split = separate_frontmatter(text)
    lines = blank_links(blank_code_spans(split.body)).split("\n")
    offset = split.line_offset

    candidates = [({"line": offset + i + 1}, line) for i, line in enumerate(lines)]
    return _scan(candidates, glossary, lang)


def _scan(candidates: list[tuple[dict, str]], glossary: GlossaryConfig, lang: str) -> list[GlossaryIssue]:
    """Scan (location, text) candidates; issues come out in term, variant, position order."""
    issues = []
    for term in glossary.terms:
        canonical = term.translation(lang)
        for forbidden in term.forbidden(lang):
            for location, text in candidates:
                for pos in scan_text(text, forbidden, canonical):
                    issues.append(GlossaryIssue(
                        forbidden=forbidden,
                        canonical=term.canonical,
                        column=pos + 1,
                        suggestion=canonical,
                        **location,
                    ))
    return issues


# ============================================================================
# Structured Documents
# ============================================================================

def iter_string_leaves(data: Any, path: str = "") -> Iterator[tuple[str, str]]:
    """Yield (key_path, value) for every string leaf, in document order."""
    if isinstance(data, dict):
        for key, value in data.items():
            child = f"{path}.{key}" if path else str(key)
            yield from iter_string_leaves(value, child)
    elif isinstance(data, list):
        for i, value in enumerate(data):
            yield from iter_string_leaves(value, f"{path}[{i}]")
    elif isinstance(data, str):
        yield path, data


def check_data(data: Any, glossary: GlossaryConfig, lang: str) -> list[GlossaryIssue]:
    """Check every string leaf of parsed JSON/YAML data."""
    _check_language(glossary, lang)

    candidates = [
        ({"key_path": key_path}, blank_links(value))
        for key_path, value in iter_string_leaves(data)
    ]
    return _scan(candidates, glossary, lang)


def _load_structured(path: Path, text: str) -> Any:
    try:
        if path.suffix.lower() == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise InvalidConfigError(f"Cannot parse structured document: {path}: {e}") from e


# ============================================================================
# Entry Points
# ============================================================================

def check_document(doc_path: str | Path, glossary: GlossaryConfig, lang: str) -> list[GlossaryIssue]:
    """Check a document file against a loaded glossary.

    JSON and YAML files are checked as structured data, anything else as
    Markdown prose.

    Raises:
        NotFoundError: If the document does not exist
        UnsupportedLanguageError: If ``lang`` is not declared in the glossary
    """
    _check_language(glossary, lang)

    doc_path = Path(doc_path)
    if not doc_path.is_file():
        raise NotFoundError(f"Document not found: {doc_path}")
    try:
        text = doc_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise InvalidInputError(f"Document is not valid UTF-8: {doc_path}: {e.reason}") from e

    if doc_path.suffix.lower() in STRUCTURED_SUFFIXES:
        issues = check_data(_load_structured(doc_path, text), glossary, lang)
    else:
        issues = check_text(text, glossary, lang)

    logger.info("Checked %s (%s): %d issue(s)", doc_path, lang, len(issues))
    return issues


def check_glossary(doc_path: str | Path, glossary_path: str | Path, lang: str) -> list[GlossaryIssue]:
    """Load the glossary file, then check the document against it."""
    return check_document(doc_path, require_glossary(glossary_path), lang)
