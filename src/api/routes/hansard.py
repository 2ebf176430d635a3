"""Hansard endpoint: fetch and structure a debate transcript."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, HTTPException

from src.api.models import SegmentResponse, StructureRequest, StructureResponse
from src.documents.sources import fetch_document
from src.errors import AcquisitionError, StructuringError
from src.summarization.pipeline import StructuredDocument, structure_document

router = APIRouter()


async def load_document(url: str | None, xml: str | bytes | None) -> StructuredDocument:
    """Fetch (when *url* is given) and structure a Hansard XML document.

    Raises:
        HTTPException(502): The source could not be fetched.
        HTTPException(400): The document is not a Hansard transcript.
    """
    if url is not None:
        try:
            # httpx client is synchronous; keep it off the event loop.
            xml = await asyncio.to_thread(fetch_document, url)
        except AcquisitionError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc

    try:
        return structure_document(xml or "")
    except StructuringError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post("/api/hansard/structure", response_model=StructureResponse)
async def structure_hansard(request: StructureRequest) -> StructureResponse:
    """Return a transcript's metadata, ordered segments and flattened text."""
    doc = await load_document(request.url, request.xml)
    return StructureResponse(
        metadata=doc.metadata,
        segments=[
            SegmentResponse(
                kind=s.kind,
                text=s.text,
                speaker_name=s.speaker_name,
                affiliation=s.affiliation,
            )
            for s in doc.segments
        ],
        transcript=doc.transcript,
    )
