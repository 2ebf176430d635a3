"""Error taxonomy for document structuring, summarization and job tracking."""

from __future__ import annotations


class DigestError(Exception):
    """Base class for all errors raised by this package."""


class AcquisitionError(DigestError):
    """The document source was unreachable or answered with a non-2xx status."""

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {reason}")


class StructuringError(DigestError):
    """The parsed document is missing its root container or is not a tree at all."""


class ChunkingError(DigestError, ValueError):
    """Invalid chunker configuration (a programming error, not a runtime condition)."""


class MapFailure(DigestError):
    """A per-chunk summarization call failed or returned unusable content."""

    def __init__(self, chunk_index: int, reason: str) -> None:
        self.chunk_index = chunk_index
        self.reason = reason
        super().__init__(f"Chunk {chunk_index}: {reason}")


class ReduceFailure(DigestError):
    """The final synthesis call failed or returned unusable content."""


class JobNotFound(DigestError, KeyError):
    """Polled job id is unknown, or its result has already been evicted."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(job_id)

    def __str__(self) -> str:
        return f"Job not found: {self.job_id}"
