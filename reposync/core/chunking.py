"""
Chunk planners for oversized single files.

Every planner returns cumulative prefixes of the content: each element is
a prefix of the next one and the last element is the complete content, so
every intermediate commit is a snapshot that grows toward the final file.
"""

from __future__ import annotations

from typing import List

from ..models import ChunkStrategy, SyncConfig


def structure_chunks(content: str, chunk_size: int) -> List[str]:
    """
    Cut at line boundaries whenever the growth since the previous cut would
    exceed ``chunk_size`` bytes.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be positive")

    lines = content.split("\n")
    chunks: List[str] = []
    pending_lines = 0
    pending_bytes = 0

    for index, line in enumerate(lines):
        line_bytes = len(line.encode("utf-8")) + 1
        if pending_lines and pending_bytes + line_bytes > chunk_size:
            chunks.append("\n".join(lines[:index]))
            pending_lines = 0
            pending_bytes = 0
        pending_lines += 1
        pending_bytes += line_bytes

    chunks.append(content)
    return chunks


def ultra_small_chunks(content: str, chunk_size: int) -> List[str]:
    """
    Grow by windows of at most ``chunk_size`` characters, ending each window
    just after its last newline when it has one.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be positive")

    chunks: List[str] = []
    position = 0
    length = len(content)

    while position < length:
        end = min(position + chunk_size, length)
        if end < length:
            newline = content.rfind("\n", position + 1, end)
            if newline > position:
                end = newline + 1
        chunks.append(content[:end])
        position = end

    return chunks or [content]


def line_count_chunks(content: str, lines_per_chunk: int) -> List[str]:
    """Grow by ``lines_per_chunk`` source lines at a time."""

    if lines_per_chunk < 1:
        raise ValueError("lines_per_chunk must be positive")

    lines = content.split("\n")
    chunks = [
        "\n".join(lines[:end])
        for end in range(lines_per_chunk, len(lines) + 1, lines_per_chunk)
    ]
    if not chunks or chunks[-1] != content:
        chunks.append(content)
    return chunks


def plan_chunks(content: str, strategy: ChunkStrategy, config: SyncConfig) -> List[str]:
    if strategy is ChunkStrategy.STRUCTURE:
        return structure_chunks(content, config.chunk_size)
    if strategy is ChunkStrategy.ULTRA_SMALL:
        return ultra_small_chunks(content, config.ultra_small_chunk_size)
    return line_count_chunks(content, config.lines_per_chunk)


__all__ = [
    "structure_chunks",
    "ultra_small_chunks",
    "line_count_chunks",
    "plan_chunks",
]
