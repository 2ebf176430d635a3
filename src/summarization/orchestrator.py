"""Map-reduce summarization of documents too long for a single LLM call.

Map: every chunk is summarized concurrently. Reduce: the surviving chunk
summaries, in chunk order, are synthesized into one :class:`FinalArtifact`.
Individual chunk failures are absorbed; only total map failure or a failed
reduce show up, as degraded artifacts rather than exceptions.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import replace

from src.errors import ChunkingError, MapFailure, ReduceFailure
from src.summarization.chunking import DEFAULT_CHUNK_SIZE, chunk_text
from src.summarization.models import (
    NO_CONTENT_MESSAGE,
    REDUCE_FAILED_MESSAGE,
    ArtifactStatus,
    Chunk,
    FinalArtifact,
    PartialResult,
)

logger = logging.getLogger(__name__)

MapFn = Callable[[str], Awaitable[str]]
ReduceFn = Callable[[list[str]], Awaitable[FinalArtifact | None]]


async def _map_chunk(
    map_fn: MapFn,
    chunk: Chunk,
    semaphore: asyncio.Semaphore | None,
) -> PartialResult:
    """Run one map call, converting any failure into an empty partial."""
    try:
        if semaphore is None:
            summary = await map_fn(chunk.text)
        else:
            async with semaphore:
                summary = await map_fn(chunk.text)
        if not isinstance(summary, str) or not summary.strip():
            raise MapFailure(chunk.index, "empty or non-text summary")
    except MapFailure as exc:
        logger.warning("Map call produced no summary: %s", exc)
        return PartialResult(chunk_index=chunk.index, error=exc.reason)
    except Exception as exc:
        logger.warning(
            "Map call failed for chunk %d: %s: %s", chunk.index, type(exc).__name__, exc
        )
        return PartialResult(chunk_index=chunk.index, error=f"{type(exc).__name__}: {exc}")
    return PartialResult(chunk_index=chunk.index, summary_text=summary.strip())


async def map_chunks(
    chunks: list[Chunk],
    map_fn: MapFn,
    max_concurrency: int | None = None,
) -> list[PartialResult]:
    """Summarize all chunks concurrently and return partials in chunk-index order.

    Args:
        chunks: Chunks to summarize.
        map_fn: Async callable from chunk text to summary text.
        max_concurrency: Cap on simultaneous in-flight calls; ``None`` or ``0``
            dispatches everything at once.

    Raises:
        ChunkingError: If *max_concurrency* is negative.
    """
    if max_concurrency is not None and max_concurrency < 0:
        raise ChunkingError(f"max_concurrency must be 0 or more, got {max_concurrency}")
    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None
    results = await asyncio.gather(*(_map_chunk(map_fn, c, semaphore) for c in chunks))
    # Reduce input must follow chunk order.
    return sorted(results, key=lambda r: r.chunk_index)


async def _reduce(reduce_fn: ReduceFn, summaries: list[str]) -> FinalArtifact:
    artifact = await reduce_fn(summaries)
    if artifact is None or not artifact.summary.strip():
        raise ReduceFailure("reduce call returned no usable summary")
    return artifact


async def summarize_long(
    text: str,
    map_fn: MapFn,
    reduce_fn: ReduceFn,
    *,
    max_chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_concurrency: int | None = None,
) -> FinalArtifact:
    """Summarize an arbitrarily long text with one map call per chunk and one reduce call.

    Args:
        text: Flattened transcript.
        map_fn: Async per-chunk summarizer.
        reduce_fn: Async synthesizer over the ordered, non-empty chunk summaries.
        max_chunk_size: Chunk size in characters.
        max_concurrency: Bound on simultaneous map calls (``None`` = unbounded).

    Returns:
        A :class:`FinalArtifact`. Its ``status`` is ``no_content`` when every map
        call failed and ``reduce_failed`` when the synthesis step failed.

    Raises:
        ChunkingError: Non-positive chunk size or negative concurrency.
    """
    t0 = time.monotonic()
    chunks = list(chunk_text(text, max_chunk_size))
    logger.info(
        "Summarizing %d characters in %d chunks (concurrency=%s)",
        len(text),
        len(chunks),
        max_concurrency or "unbounded",
    )

    partials = await map_chunks(chunks, map_fn, max_concurrency)
    failed = [p.chunk_index for p in partials if not p.ok]
    summaries = [p.summary_text for p in partials if p.ok]

    if not summaries:
        logger.warning("All %d map calls failed; skipping reduce", len(chunks))
        return FinalArtifact(
            summary=NO_CONTENT_MESSAGE,
            status=ArtifactStatus.NO_CONTENT,
            chunk_count=len(chunks),
            failed_chunks=failed,
        )

    try:
        artifact = await _reduce(reduce_fn, summaries)
    except Exception:
        logger.exception("Reduce failed over %d chunk summaries", len(summaries))
        return FinalArtifact(
            summary=REDUCE_FAILED_MESSAGE,
            status=ArtifactStatus.REDUCE_FAILED,
            chunk_summaries=summaries,
            chunk_count=len(chunks),
            failed_chunks=failed,
        )

    artifact = replace(
        artifact,
        status=ArtifactStatus.COMPLETED,
        chunk_summaries=summaries,
        chunk_count=len(chunks),
        failed_chunks=failed,
    )
    logger.info(
        "Summary complete: chunks=%d failed=%d elapsed_ms=%.0f",
        len(chunks),
        len(failed),
        (time.monotonic() - t0) * 1000,
    )
    return artifact
