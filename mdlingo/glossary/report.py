"""
Glossary reporting: coverage sync, review report and prompt instructions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from mdlingo.glossary.store import GlossaryConfig, GlossaryTerm, require_glossary, save_glossary

logger = logging.getLogger(__name__)


@dataclass
class MissingTranslation:
    """A term lacking translations for some declared languages."""
    canonical: str
    missing_languages: list[str]


@dataclass
class SyncResult:
    """Per-language coverage of a glossary.

    Attributes:
        total_terms: Number of terms in the glossary
        terms_by_language: Language -> terms that have a translation
        missing_translations: Terms with at least one missing language
        stubs_created: Empty-string entries added for missing pairs
    """
    total_terms: int
    terms_by_language: dict[str, list[GlossaryTerm]] = field(default_factory=dict)
    missing_translations: list[MissingTranslation] = field(default_factory=list)
    stubs_created: int = 0

    def coverage(self, lang: str) -> float:
        if self.total_terms == 0:
            return 1.0
        return len(self.terms_by_language.get(lang, [])) / self.total_terms


def compute_coverage(glossary: GlossaryConfig) -> SyncResult:
    """Partition terms into translated / missing for every declared language."""
    result = SyncResult(
        total_terms=len(glossary.terms),
        terms_by_language={lang: [] for lang in glossary.languages},
    )
    for term in glossary.terms:
        missing = []
        for lang in glossary.languages:
            if term.translation(lang):
                result.terms_by_language[lang].append(term)
            else:
                missing.append(lang)
        if missing:
            result.missing_translations.append(MissingTranslation(term.canonical, missing))
    return result


def apply_stubs(glossary: GlossaryConfig) -> int:
    """Add an empty translation for every missing (term, language) key.

    Existing entries, empty or not, are left alone.

    Returns:
        Number of stubs added
    """
    created = 0
    for term in glossary.terms:
        for lang in glossary.languages:
            if lang not in term.translations:
                term.translations[lang] = ""
                created += 1
    return created


def sync_glossary(glossary_path: str | Path, write_stubs: bool = True) -> SyncResult:
    """Report translation coverage and write stubs for missing translations.

    Args:
        glossary_path: Glossary file
        write_stubs: Persist stub entries (False only reports)

    Raises:
        NotFoundError: If the glossary file does not exist
    """
    glossary = require_glossary(glossary_path)
    result = compute_coverage(glossary)

    if write_stubs and result.missing_translations:
        result.stubs_created = apply_stubs(glossary)
        if result.stubs_created:
            save_glossary(glossary, glossary_path)
            logger.info("Wrote %d stub(s) to %s", result.stubs_created, glossary_path)

    return result


@dataclass
class ReviewReport:
    """Structured glossary review."""
    terms: list[GlossaryTerm]
    languages: list[str]

    @property
    def summary(self) -> dict:
        return {"total_terms": len(self.terms), "languages": list(self.languages)}

    def to_markdown(self) -> str:
        lines = [
            "# Glossary Review Report",
            "",
            f"**Total Terms:** {len(self.terms)}",
            f"**Languages:** {', '.join(self.languages)}",
            "",
            "## Terms",
            "",
        ]

        for term in self.terms:
            lines.append(f"### {term.canonical}")
            lines.append("")
            lines.append(f"- **Type:** {term.type}")
            lines.append("- **Translations:**")
            for lang, translation in term.translations.items():
                lines.append(f"  - `{lang}`: {translation}")
            if term.do_not_use:
                lines.append("- **Do not use:**")
                for lang, words in term.do_not_use.items():
                    lines.append(f"  - `{lang}`: {', '.join(words)}")
            lines.append("")

        return "\n".join(lines)


def review_glossary(glossary_path: str | Path) -> ReviewReport:
    """Build a review report for a glossary file.

    Raises:
        NotFoundError: If the glossary file does not exist
    """
    glossary = require_glossary(glossary_path)
    return ReviewReport(terms=list(glossary.terms), languages=list(glossary.languages))


def glossary_prompt(glossary: GlossaryConfig, target_lang: str) -> str:
    """Instruction block listing canonical translations and forbidden variants.

    Returns an empty string when no term concerns ``target_lang``.
    """
    relevant = [
        term for term in glossary.terms
        if term.translation(target_lang) or term.forbidden(target_lang)
    ]
    if not relevant:
        return ""

    lines = ["", "Glossary - use these canonical translations and avoid forbidden terms:"]
    for term in relevant:
        canonical = term.translation(target_lang) or term.canonical
        line = f'- "{term.canonical}" → "{canonical}"'
        forbidden = term.forbidden(target_lang)
        if forbidden:
            line += " (do NOT use: " + ", ".join(f'"{word}"' for word in forbidden) + ")"
        lines.append(line)
    return "\n".join(lines)
