"""
Error types raised by mdlingo.

Every error carries a human-readable message and an optional hint that the
CLI prints below it. The classes also derive from the matching builtin
exception so callers can catch ``FileNotFoundError`` or ``ValueError``
without importing this module.
"""

from __future__ import annotations


class MdlingoError(Exception):
    """Base class for all mdlingo errors."""

    def __init__(self, message: str, hint: str = ""):
        super().__init__(message)
        self.message = message
        self.hint = hint


class NotFoundError(MdlingoError, FileNotFoundError):
    """A source document, glossary or config file does not exist."""


class EmptyInputError(MdlingoError, ValueError):
    """The source document is empty after trimming whitespace."""


class InvalidInputError(MdlingoError, ValueError):
    """The source document is not valid UTF-8 text."""


class InvalidConfigError(MdlingoError, ValueError):
    """A glossary or config file is malformed or missing required fields."""


class UnsupportedLanguageError(MdlingoError, ValueError):
    """The requested language is not declared in the glossary."""


class GlossaryExistsError(MdlingoError, FileExistsError):
    """Refusing to overwrite an existing glossary file."""


class ConfigExistsError(MdlingoError, FileExistsError):
    """Refusing to overwrite an existing config file."""


class UpstreamError(MdlingoError, RuntimeError):
    """The rewriting backend failed or timed out."""


class PlaceholderError(UpstreamError):
    """The rewriting backend dropped or mangled a code placeholder.

    Attributes:
        missing: Placeholders present in the request but absent from the reply
    """

    def __init__(self, message: str, missing: list[str], hint: str = ""):
        super().__init__(message, hint)
        self.missing = missing
