"""
Glossary management for terminology consistency.

- store: load, validate and write glossary.yaml
- checker: find forbidden variants in documents
- report: coverage sync, review report, prompt instructions
"""

from mdlingo.glossary.checker import (
    GlossaryIssue,
    check_data,
    check_document,
    check_glossary,
    check_text,
)
from mdlingo.glossary.report import (
    MissingTranslation,
    ReviewReport,
    SyncResult,
    apply_stubs,
    glossary_prompt,
    review_glossary,
    sync_glossary,
)
from mdlingo.glossary.store import (
    GlossaryConfig,
    GlossaryTerm,
    init_glossary,
    load_glossary,
    require_glossary,
    save_glossary,
)

__all__ = [
    "GlossaryConfig",
    "GlossaryIssue",
    "GlossaryTerm",
    "MissingTranslation",
    "ReviewReport",
    "SyncResult",
    "apply_stubs",
    "check_data",
    "check_document",
    "check_glossary",
    "check_text",
    "glossary_prompt",
    "init_glossary",
    "load_glossary",
    "require_glossary",
    "review_glossary",
    "save_glossary",
    "sync_glossary",
]
