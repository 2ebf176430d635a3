"""Summary job endpoints: submit a long transcript, then poll for the result."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from src.api.models import FinalSummary, JobStatusResponse, SummaryJobResponse, SummaryRequest
from src.api.routes.hansard import load_document
from src.config import settings
from src.errors import JobNotFound
from src.jobs.models import JobState
from src.jobs.registry import get_job_registry
from src.summarization.models import FinalArtifact
from src.summarization.pipeline import submit_summary_job

router = APIRouter()

# Below this many characters there is nothing worth summarizing.
MIN_TRANSCRIPT_CHARS = 50


@router.post("/api/summaries", response_model=SummaryJobResponse, status_code=202)
async def start_summary(request: SummaryRequest) -> SummaryJobResponse:
    """Start a background map-reduce summary and return its job id immediately.

    Clients poll ``GET /api/summaries/{job_id}`` every ``poll_interval_seconds``
    until the state is ``completed`` or ``failed``.
    """
    if request.url is not None:
        transcript = (await load_document(request.url, None)).transcript
    else:
        transcript = request.transcript or ""

    if len(transcript.strip()) < MIN_TRANSCRIPT_CHARS:
        raise HTTPException(status_code=400, detail="Not enough content to create a full summary.")

    job_id = submit_summary_job(
        get_job_registry(),
        transcript,
        reuse_existing=request.reuse_existing,
    )
    return SummaryJobResponse(
        job_id=job_id,
        state=JobState.PENDING,
        poll_interval_seconds=settings.poll_interval_seconds,
    )


def _to_response(result: FinalArtifact) -> FinalSummary:
    return FinalSummary(
        status=result.status,
        summary=result.summary,
        topics=result.topics,
        bills_referenced=result.bills_referenced,
        chunk_summaries=result.chunk_summaries,
        chunk_count=result.chunk_count,
        failed_chunks=result.failed_chunks,
    )


@router.get("/api/summaries/{job_id}", response_model=JobStatusResponse)
async def get_summary(job_id: str) -> JobStatusResponse:
    """Poll a summary job. Unknown or expired ids return 404, never ``pending``."""
    try:
        status = get_job_registry().poll(job_id)
    except JobNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    return JobStatusResponse(
        job_id=status.job_id,
        state=status.state,
        result=_to_response(status.result) if status.state is JobState.COMPLETED else None,
        error=status.error,
    )
