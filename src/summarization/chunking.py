"""Split a flattened transcript into size-bounded chunks."""

from __future__ import annotations

from collections.abc import Iterator

from src.errors import ChunkingError
from src.summarization.models import Chunk

DEFAULT_CHUNK_SIZE = 8000


def _iter_chunks(text: str, max_size: int) -> Iterator[Chunk]:
    for index, offset in enumerate(range(0, len(text), max_size)):
        yield Chunk(index=index, text=text[offset : offset + max_size])


def chunk_text(text: str, max_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[Chunk]:
    """Lazily split *text* into consecutive chunks of at most *max_size* characters.

    Splits fall on raw character offsets, so a chunk may end mid-word. The
    chunks are lossless: joining their text in index order gives back *text*.
    Each call returns a fresh iterator starting at offset 0.

    Args:
        text: Flattened transcript.
        max_size: Maximum characters per chunk; must be positive.

    Raises:
        ChunkingError: If *max_size* is not positive. Raised at call time,
            not on first iteration.
    """
    if max_size <= 0:
        raise ChunkingError(f"max_size must be > 0, got {max_size}")
    return _iter_chunks(text, max_size)
