"""
Glossary store: loading, validating and writing ``glossary.yaml``.

File format::

    version: 1
    languages: [ja, en]
    terms:
      - canonical: "API"
        type: noun
        translations: {ja: "API", en: "API"}
        do_not_use: {ja: ["ＡＰＩ"]}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from mdlingo.errors import GlossaryExistsError, InvalidConfigError, NotFoundError


SKELETON_TEMPLATE = """\
version: 1
languages: [ja, en]
terms:
  - canonical: "API"
    type: noun
    translations:
      ja: "API"
      en: "API"
    do_not_use:
      ja: ["ＡＰＩ", "えーぴーあい"]
  # Add more terms below:
  # - canonical: "webhook"
  #   type: noun
  #   translations:
  #     ja: "Webhook"
  #     en: "webhook"
  #   do_not_use:
  #     ja: ["ウェブフック"]
  #     en: ["web hook"]
"""


@dataclass
class GlossaryTerm:
    """One managed vocabulary entry.

    Attributes:
        canonical: Authoritative source-language name
        type: Part of speech or category (e.g. "noun")
        translations: Language code -> canonical translation
        do_not_use: Language code -> forbidden variants, in file order
    """
    canonical: str
    type: str = ""
    translations: dict[str, str] = field(default_factory=dict)
    do_not_use: dict[str, list[str]] = field(default_factory=dict)

    def translation(self, lang: str) -> Optional[str]:
        return self.translations.get(lang) or None

    def forbidden(self, lang: str) -> list[str]:
        return list(self.do_not_use.get(lang, []))

    def to_dict(self) -> dict:
        data: dict = {
            "canonical": self.canonical,
            "type": self.type,
            "translations": dict(self.translations),
        }
        if self.do_not_use:
            data["do_not_use"] = {lang: list(words) for lang, words in self.do_not_use.items()}
        return data


@dataclass
class GlossaryConfig:
    """A versioned glossary."""
    version: int
    languages: list[str]
    terms: list[GlossaryTerm] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.terms)

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "languages": list(self.languages),
            "terms": [term.to_dict() for term in self.terms],
        }


# ============================================================================
# Parsing and Validation
# ============================================================================

def _require_mapping(value, what: str, path: Path) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise InvalidConfigError(f"Invalid glossary file: {path}: {what} must be a mapping")
    return value


def _parse_term(raw, index: int, languages: list[str], path: Path) -> GlossaryTerm:
    if not isinstance(raw, dict):
        raise InvalidConfigError(f"Invalid glossary file: {path}: terms[{index}] must be a mapping")

    canonical = raw.get("canonical")
    if not isinstance(canonical, str) or not canonical:
        raise InvalidConfigError(
            f"Invalid glossary file: {path}: terms[{index}] is missing 'canonical'"
        )

    translations = _require_mapping(raw.get("translations"), f"'{canonical}' translations", path)
    do_not_use = _require_mapping(raw.get("do_not_use"), f"'{canonical}' do_not_use", path)

    for lang in list(translations) + list(do_not_use):
        if lang not in languages:
            raise InvalidConfigError(
                f"Invalid glossary file: {path}: '{canonical}' uses undeclared language '{lang}'",
                hint=f"Declared languages: {', '.join(languages)}",
            )

    forbidden: dict[str, list[str]] = {}
    for lang, words in do_not_use.items():
        if isinstance(words, str):
            words = [words]
        if not isinstance(words, list):
            raise InvalidConfigError(
                f"Invalid glossary file: {path}: '{canonical}' do_not_use.{lang} must be a list"
            )
        forbidden[lang] = [str(word) for word in words if word]

    return GlossaryTerm(
        canonical=canonical,
        type=str(raw.get("type") or ""),
        translations={lang: "" if value is None else str(value) for lang, value in translations.items()},
        do_not_use=forbidden,
    )


def parse_glossary(raw, path: Path) -> GlossaryConfig:
    """Validate parsed YAML and build a GlossaryConfig."""
    if not raw or not isinstance(raw, dict):
        raise InvalidConfigError(f"Invalid glossary file: {path}")

    languages = raw.get("languages")
    if not isinstance(languages, list):
        raise InvalidConfigError(
            f"Invalid glossary file: {path}: 'languages' must be a list",
            hint="Example: languages: [ja, en]",
        )
    languages = [str(lang) for lang in languages]

    terms_raw = raw.get("terms")
    if not isinstance(terms_raw, list):
        raise InvalidConfigError(f"Invalid glossary file: {path}: 'terms' must be a list")

    terms = [_parse_term(item, i, languages, path) for i, item in enumerate(terms_raw)]

    seen: set[str] = set()
    for term in terms:
        if term.canonical in seen:
            raise InvalidConfigError(
                f"Invalid glossary file: {path}: duplicate canonical term '{term.canonical}'"
            )
        seen.add(term.canonical)

    version = raw.get("version", 1)
    if not isinstance(version, int):
        raise InvalidConfigError(f"Invalid glossary file: {path}: 'version' must be an integer")

    return GlossaryConfig(version=version, languages=languages, terms=terms)


# ============================================================================
# Loading and Saving
# ============================================================================

def load_glossary(path: str | Path) -> Optional[GlossaryConfig]:
    """Load a glossary file.

    Returns:
        The glossary, or None if the file does not exist

    Raises:
        InvalidConfigError: If the file is malformed
    """
    path = Path(path)
    if not path.exists():
        return None

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise InvalidConfigError(f"Invalid glossary file: {path}: {e}") from e

    return parse_glossary(raw, path)


def require_glossary(path: str | Path) -> GlossaryConfig:
    """Load a glossary file, raising NotFoundError if it is absent."""
    glossary = load_glossary(path)
    if glossary is None:
        raise NotFoundError(
            f"Glossary file not found: {path}",
            hint="Run `mdlingo glossary init` to create one.",
        )
    return glossary


def save_glossary(glossary: GlossaryConfig, path: str | Path) -> None:
    """Write a glossary back to YAML, keeping key order and unicode.

    When the file already holds the same terms, only each term's
    ``translations`` mapping is replaced, so unknown keys and empty
    ``do_not_use`` entries survive. YAML comments are not preserved.
    """
    path = Path(path)
    data = glossary.to_dict()

    if path.exists():
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        raw_terms = raw.get("terms") if isinstance(raw, dict) else None
        if isinstance(raw_terms, list) and len(raw_terms) == len(glossary.terms):
            for raw_term, term in zip(raw_terms, glossary.terms):
                raw_term["translations"] = dict(term.translations)
            data = raw

    path.write_text(
        yaml.safe_dump(data, sort_keys=False, allow_unicode=True),
        encoding="utf-8",
    )


def init_glossary(path: str | Path, force: bool = False) -> Path:
    """Write a skeleton glossary with one worked example.

    Raises:
        GlossaryExistsError: If the file exists and ``force`` is False
    """
    path = Path(path)
    if path.exists() and not force:
        raise GlossaryExistsError(
            f"Glossary file already exists: {path}",
            hint="Use --force to overwrite.",
        )
    path.write_text(SKELETON_TEMPLATE, encoding="utf-8")
    return path
