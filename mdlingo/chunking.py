"""
Line-aligned chunking of protected document bodies.

Rewriting backends have finite context and response budgets, so bodies
above the bound are cut into chunks that are rewritten one at a time.
Cuts only fall between lines, never inside one, which keeps placeholders
and Markdown constructs intact.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_CHUNK_BYTES = 50 * 1024


@dataclass(frozen=True)
class Chunk:
    """A slice of the protected body.

    Attributes:
        content: Chunk text, including line endings
        index: Position of the chunk in the body (0-based)
    """
    content: str
    index: int

    @property
    def size(self) -> int:
        return byte_length(self.content)

    @property
    def is_blank(self) -> bool:
        return not self.content.strip()


def byte_length(text: str) -> int:
    return len(text.encode("utf-8"))


def split_lines(text: str) -> list[str]:
    """Split on LF, keeping the newline on every line that had one."""
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def split_into_chunks(text: str, max_bytes: int = DEFAULT_CHUNK_BYTES) -> list[Chunk]:
    """Split text into line-aligned chunks of at most ``max_bytes`` each.

    A single line longer than the bound becomes a chunk of its own.
    Joining the chunk contents in order gives back ``text`` exactly.

    Args:
        text: Protected body to split
        max_bytes: Size bound in UTF-8 bytes

    Returns:
        Chunks in document order
    """
    if max_bytes <= 0:
        raise ValueError(f"max_bytes must be positive, got {max_bytes}")

    if byte_length(text) <= max_bytes:
        return [Chunk(content=text, index=0)]

    contents: list[str] = []
    buffer: list[str] = []
    buffer_size = 0

    for line in split_lines(text):
        line_size = byte_length(line)
        if buffer and buffer_size + line_size > max_bytes:
            contents.append("".join(buffer))
            buffer, buffer_size = [], 0
        buffer.append(line)
        buffer_size += line_size

    if buffer:
        tail = "".join(buffer)
        if tail.strip() or not contents:
            contents.append(tail)
        else:
            # whitespace-only tail rides on the previous chunk
            contents[-1] += tail

    return [Chunk(content=content, index=i) for i, content in enumerate(contents)]
