"""Pydantic request/response schemas for the Hansard Digest API."""

from __future__ import annotations

from pydantic import BaseModel, model_validator

from src.documents.structurer import SegmentKind
from src.jobs.models import JobState
from src.summarization.models import ArtifactStatus


class StructureRequest(BaseModel):
    """Request body for the /api/hansard/structure endpoint.

    Exactly one of ``xml`` (inline document) or ``url`` must be given.
    """

    xml: str | None = None
    url: str | None = None

    @model_validator(mode="after")
    def _one_source(self) -> StructureRequest:
        if (self.xml is None) == (self.url is None):
            raise ValueError("Provide exactly one of 'xml' or 'url'")
        return self


class SegmentResponse(BaseModel):
    """A single structured segment."""

    kind: SegmentKind
    text: str
    speaker_name: str | None = None
    affiliation: str | None = None


class StructureResponse(BaseModel):
    """Response body for the /api/hansard/structure endpoint."""

    metadata: dict[str, str]
    segments: list[SegmentResponse]
    transcript: str


class SummaryRequest(BaseModel):
    """Request body for the /api/summaries endpoint.

    ``transcript`` is flattened plain text; ``url`` points at Hansard XML that
    is fetched and structured first. Exactly one of the two must be given.
    """

    transcript: str | None = None
    url: str | None = None
    reuse_existing: bool = False

    @model_validator(mode="after")
    def _one_source(self) -> SummaryRequest:
        if (self.transcript is None) == (self.url is None):
            raise ValueError("Provide exactly one of 'transcript' or 'url'")
        return self


class SummaryJobResponse(BaseModel):
    """Response body for a newly submitted summary job."""

    job_id: str
    state: JobState
    poll_interval_seconds: int


class FinalSummary(BaseModel):
    """The reduced summary of a transcript."""

    status: ArtifactStatus
    summary: str
    topics: list[str] = []
    bills_referenced: list[str] = []
    chunk_summaries: list[str] = []
    chunk_count: int = 0
    failed_chunks: list[int] = []


class JobStatusResponse(BaseModel):
    """Response body for the /api/summaries/{job_id} endpoint."""

    job_id: str
    state: JobState
    result: FinalSummary | None = None
    error: str | None = None
