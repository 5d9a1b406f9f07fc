"""
Masking module for protecting non-translatable Markdown content.

This module handles:
- Separating the leading frontmatter block from the document body
- Replacing fenced code blocks and inline code with placeholders
- Restoring placeholders after the body went through a rewriter
- Blanking code spans, URLs and link targets for the glossary checker

Design:
- Each span class has its own prefix (<<CODEBLK_000>>, <<CODE_000>>)
- Masks are reversible: the registry stores originals in creation order
- Fenced blocks are found by a line scanner that tracks the open fence
  character and length, so a longer outer fence can contain shorter ones
- Inline code is matched only after fenced blocks became placeholders
"""

from __future__ import annotations

import re
from collections import OrderedDict
from dataclasses import dataclass, field


BLOCK_PREFIX = "CODEBLK"
INLINE_PREFIX = "CODE"


# ============================================================================
# Pattern Definitions
# ============================================================================

# Frontmatter: "---" on the first line, closing "---" with optional trailing
# blanks, followed by a newline or the end of the text
FRONTMATTER_PATTERN = re.compile(r'---\n(?:[\s\S]*?\n)?---[ \t]*(?:\n|$)')

# Fence lines, at any indentation (fences nest inside list items)
FENCE_OPEN_PATTERN = re.compile(r'^[ \t]*(`{3,}|~{3,})(.*)$')
FENCE_CLOSE_PATTERN = re.compile(r'^[ \t]*(`{3,}|~{3,})[ \t\r]*$')

# Inline code
INLINE_CODE_PATTERN = re.compile(r'`[^`\n]+`')

# URLs
URL_PATTERN = re.compile(
    r'https?://[^\s<>\[\]()"\']+'
    r'|www\.[^\s<>\[\]()"\']+'
)

# Markdown link destination: the "(...)" right after "]"
LINK_TARGET_PATTERN = re.compile(r'(?<=\])\([^)\n]*\)')

# Reference-style link definition: "[label]: /path"
LINK_DEFINITION_PATTERN = re.compile(r'^( {0,3}\[[^\]\n]+\]:[ \t]*)(\S+)', re.MULTILINE)

PLACEHOLDER_PATTERN = re.compile(r'<<([A-Z]+)_\d{3,}>>')


# ============================================================================
# Frontmatter
# ============================================================================

@dataclass
class FrontmatterSplit:
    """A document split into its frontmatter block and body.

    Attributes:
        frontmatter: The block including both delimiter lines, or None
        body: Everything after the block (line endings normalized to LF)
    """
    frontmatter: str | None
    body: str

    @property
    def has_frontmatter(self) -> bool:
        return self.frontmatter is not None

    @property
    def line_offset(self) -> int:
        """Number of lines the frontmatter occupies before the body."""
        if self.frontmatter is None:
            return 0
        return self.frontmatter.count("\n")


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n")


def separate_frontmatter(text: str) -> FrontmatterSplit:
    """Split a leading frontmatter block from the document body.

    Handles LF and CRLF input, an empty block, trailing blanks after the
    closing delimiter and a document that ends right after the block.

    Args:
        text: Full document text

    Returns:
        FrontmatterSplit; ``frontmatter`` is None when no block starts the text
    """
    normalized = normalize_newlines(text)
    match = FRONTMATTER_PATTERN.match(normalized)
    if match is None:
        return FrontmatterSplit(frontmatter=None, body=normalized)
    end = match.end()
    return FrontmatterSplit(frontmatter=normalized[:end], body=normalized[end:])


# ============================================================================
# Placeholder Registry
# ============================================================================

@dataclass
class MaskRegistry:
    """Stores mappings between placeholders and original content.

    Mappings are kept in creation order. Counters are per prefix and start
    at zero, so a fresh registry always yields the same placeholders for
    the same input. Tokens already present in the source are reserved and
    never issued, so restoring leaves literal token text alone.
    """
    mappings: OrderedDict = field(default_factory=OrderedDict)  # placeholder -> original
    counters: dict[str, int] = field(default_factory=dict)  # prefix -> count
    reserved: set[str] = field(default_factory=set)

    def __len__(self) -> int:
        return len(self.mappings)

    def __contains__(self, placeholder: str) -> bool:
        return placeholder in self.mappings

    def reserve(self, text: str) -> None:
        """Reserve every placeholder-shaped token that occurs in text."""
        self.reserved.update(extract_placeholders(text))

    def register(self, prefix: str, original: str) -> str:
        """Register content and return a placeholder."""
        count = self.counters.get(prefix, 0)
        placeholder = f"<<{prefix}_{count:03d}>>"
        while placeholder in self.reserved:
            count += 1
            placeholder = f"<<{prefix}_{count:03d}>>"
        self.counters[prefix] = count + 1
        self.mappings[placeholder] = original
        return placeholder

    def restore(self, text: str) -> str:
        """Restore all placeholders in text with original content."""
        result = text
        for placeholder, original in reversed(self.mappings.items()):
            result = result.replace(placeholder, original)
        return result


@dataclass
class ProtectedText:
    """Body text with code spans replaced by placeholders."""
    text: str
    registry: MaskRegistry

    @property
    def has_placeholders(self) -> bool:
        return len(self.registry) > 0


# ============================================================================
# Code Spans
# ============================================================================

def find_fenced_blocks(text: str) -> list[tuple[int, int]]:
    """Locate fenced code blocks.

    A block opens with a line of three or more backticks or tildes and
    closes with a line holding a run of the same character that is at
    least as long. Blocks that never close are ignored.

    Returns:
        (start, end) offsets; ``end`` excludes the closing line's newline
    """
    spans: list[tuple[int, int]] = []
    fence: str | None = None
    block_start = 0
    offset = 0

    for line in text.split("\n"):
        line_start = offset
        line_end = offset + len(line)
        offset = line_end + 1

        if fence is None:
            match = FENCE_OPEN_PATTERN.match(line)
            if match is None:
                continue
            run, info = match.group(1), match.group(2)
            # a backtick fence's info string cannot contain backticks
            if run[0] == "`" and "`" in info:
                continue
            fence = run
            block_start = line_start
        else:
            match = FENCE_CLOSE_PATTERN.match(line)
            if match is None:
                continue
            run = match.group(1)
            if run[0] == fence[0] and len(run) >= len(fence):
                spans.append((block_start, line_end))
                fence = None

    return spans


def _replace_spans(text: str, spans: list[tuple[int, int]], replace) -> str:
    parts = []
    last = 0
    for start, end in spans:
        parts.append(text[last:start])
        parts.append(replace(text[start:end]))
        last = end
    parts.append(text[last:])
    return "".join(parts)


def protect_code(text: str, registry: MaskRegistry | None = None) -> ProtectedText:
    """Replace fenced code blocks, then inline code, with placeholders.

    Args:
        text: Markdown body
        registry: Registry to record mappings in (a fresh one if None)

    Returns:
        ProtectedText holding the masked text and its registry
    """
    if registry is None:
        registry = MaskRegistry()
    registry.reserve(text)

    result = _replace_spans(
        text,
        find_fenced_blocks(text),
        lambda span: registry.register(BLOCK_PREFIX, span),
    )
    result = INLINE_CODE_PATTERN.sub(
        lambda match: registry.register(INLINE_PREFIX, match.group(0)),
        result,
    )
    return ProtectedText(text=result, registry=registry)


def restore_code(text: str, registry: MaskRegistry) -> str:
    """Restore code placeholders in text.

    Args:
        text: Text with placeholders
        registry: MaskRegistry containing mappings

    Returns:
        Text with original code restored
    """
    return registry.restore(text)


def _blank(span: str) -> str:
    return re.sub(r'[^\n]', ' ', span)


def blank_code_spans(text: str) -> str:
    """Overwrite code spans with spaces, keeping offsets and line numbers."""
    result = _replace_spans(text, find_fenced_blocks(text), _blank)
    return INLINE_CODE_PATTERN.sub(lambda match: _blank(match.group(0)), result)


def blank_links(text: str) -> str:
    """Overwrite link destinations and absolute URLs with spaces.

    Visible link text stays in place so it can still be scanned.
    """
    result = LINK_TARGET_PATTERN.sub(lambda match: _blank(match.group(0)), text)
    result = LINK_DEFINITION_PATTERN.sub(
        lambda match: match.group(1) + _blank(match.group(2)),
        result,
    )
    return URL_PATTERN.sub(lambda match: _blank(match.group(0)), result)


# ============================================================================
# Utility Functions
# ============================================================================

def extract_placeholders(text: str) -> list[str]:
    """Extract all placeholders from text."""
    return [match.group(0) for match in PLACEHOLDER_PATTERN.finditer(text)]


def validate_placeholders(
    source_masked: str,
    rewritten: str,
    registry: MaskRegistry | None = None,
) -> list[str]:
    """Check that every placeholder of the source survives in the rewrite.

    Args:
        source_masked: Text that was sent to the rewriter
        rewritten: Text the rewriter returned
        registry: When given, only tokens it issued are checked

    Returns:
        Missing placeholders in source order (empty if all present)
    """
    present = set(extract_placeholders(rewritten))
    return [
        p for p in extract_placeholders(source_masked)
        if p not in present and (registry is None or p in registry)
    ]
