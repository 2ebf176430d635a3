"""Data models for the map-reduce summarization pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

NO_CONTENT_MESSAGE = "Could not generate a summary from the provided transcript."
REDUCE_FAILED_MESSAGE = "Failed to produce a final summary."


@dataclass(frozen=True)
class Chunk:
    """A contiguous slice of the flattened transcript."""

    index: int
    text: str


@dataclass(frozen=True)
class PartialResult:
    """Output of one map call. ``summary_text`` is empty when the call failed."""

    chunk_index: int
    summary_text: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return bool(self.summary_text.strip())


class ArtifactStatus(str, Enum):
    """How the orchestration ended."""

    COMPLETED = "completed"
    NO_CONTENT = "no_content"
    REDUCE_FAILED = "reduce_failed"


@dataclass(frozen=True)
class FinalArtifact:
    """The final, reduced summary of a long document.

    Frozen; derive variants with :func:`dataclasses.replace`.
    """

    summary: str
    topics: list[str] = field(default_factory=list)
    bills_referenced: list[str] = field(default_factory=list)
    status: ArtifactStatus = ArtifactStatus.COMPLETED
    # Debug info: the ordered reduce input and which chunks were dropped.
    chunk_summaries: list[str] = field(default_factory=list)
    chunk_count: int = 0
    failed_chunks: list[int] = field(default_factory=list)
