"""
mdlingo: Document-safe Markdown translation with terminology checks

Translates Markdown documents through an LLM while keeping frontmatter,
code blocks and inline code byte-for-byte intact, and checks documents
against a multilingual glossary of canonical terms.

License: MIT
"""

__version__ = "0.1.0"

from mdlingo.glossary import GlossaryConfig, GlossaryTerm, check_document
from mdlingo.pipeline import PipelineConfig, TranslationPipeline, TranslationResult, translate_file

__all__ = [
    "GlossaryConfig",
    "GlossaryTerm",
    "PipelineConfig",
    "TranslationPipeline",
    "TranslationResult",
    "check_document",
    "translate_file",
]
