"""End-to-end pipeline: XML -> segments -> transcript -> map-reduce summary (-> job)."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field

from src.config import settings
from src.documents.structurer import Segment, extract_metadata, flatten, structure
from src.documents.tree import from_xml
from src.jobs.registry import JobRegistry
from src.summarization.llm import ClaudeSummarizer
from src.summarization.models import FinalArtifact
from src.summarization.orchestrator import summarize_long

logger = logging.getLogger(__name__)


@dataclass
class StructuredDocument:
    """A structured source document and its flattened transcript."""

    metadata: dict[str, str] = field(default_factory=dict)
    segments: list[Segment] = field(default_factory=list)
    transcript: str = ""


def structure_document(raw: bytes | str) -> StructuredDocument:
    """Parse and structure a Hansard XML document.

    Raises:
        StructuringError: Malformed XML or missing body container.
    """
    tree = from_xml(raw)
    segments = structure(tree)
    return StructuredDocument(
        metadata=extract_metadata(tree),
        segments=segments,
        transcript=flatten(segments),
    )


async def summarize_transcript(
    transcript: str,
    summarizer: ClaudeSummarizer | None = None,
    *,
    chunk_size: int | None = None,
    concurrency: int | None = None,
) -> FinalArtifact:
    """Run the map-reduce summarizer over a flattened transcript.

    ``chunk_size`` and ``concurrency`` default to the configured settings;
    a concurrency of 0 means unbounded.
    """
    summarizer = summarizer or ClaudeSummarizer()
    if concurrency is None:
        concurrency = settings.map_concurrency
    return await summarize_long(
        transcript,
        summarizer.summarize_chunk,
        summarizer.combine,
        max_chunk_size=settings.chunk_size if chunk_size is None else chunk_size,
        max_concurrency=concurrency or None,
    )


def document_key(transcript: str) -> str:
    """Idempotency key for a transcript: SHA-256 of its UTF-8 bytes."""
    return hashlib.sha256(transcript.encode("utf-8")).hexdigest()


def submit_summary_job(
    registry: JobRegistry,
    transcript: str,
    *,
    reuse_existing: bool = False,
    summarizer: ClaudeSummarizer | None = None,
    chunk_size: int | None = None,
    concurrency: int | None = None,
) -> str:
    """Schedule a background summary of *transcript* and return the job id.

    With ``reuse_existing`` a live job for the identical transcript is returned
    instead of starting another one; otherwise every call starts a fresh job.
    """
    key = document_key(transcript) if reuse_existing else None
    job_id = registry.submit(
        lambda: summarize_transcript(
            transcript, summarizer, chunk_size=chunk_size, concurrency=concurrency
        ),
        key=key,
    )
    logger.info("Summary job %s covers %d characters", job_id, len(transcript))
    return job_id
