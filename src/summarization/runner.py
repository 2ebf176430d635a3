"""Command-line runner: structure a Hansard transcript and summarize it.

Entry point
-----------
Run as a module::

    python -m src.summarization.runner --url https://www.ourcommons.ca/.../HAN021-E.XML
    python -m src.summarization.runner --file HAN021-E.XML --structure-only

The summary runs as a background job on an in-process registry, polled at a
fixed interval exactly as the API's clients do. Output is JSON on stdout.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from src.config import settings
from src.documents.sources import fetch_document
from src.errors import AcquisitionError, StructuringError
from src.jobs.models import JobState
from src.jobs.registry import JobRegistry
from src.summarization.pipeline import StructuredDocument, structure_document, submit_summary_job


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m src.summarization.runner",
        description="Structure a Hansard XML transcript and produce a map-reduce summary.",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--file", type=Path, help="Path to a Hansard XML file.")
    source.add_argument(
        "--url",
        help=f"URL of a Hansard XML file (default: {settings.hansard_default_url}).",
    )
    parser.add_argument(
        "--structure-only",
        action="store_true",
        default=False,
        help="Print metadata and segments without calling the LLM.",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=settings.chunk_size,
        help=f"Characters per map chunk (default: {settings.chunk_size}).",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=settings.map_concurrency,
        help="Maximum simultaneous map calls; 0 for unbounded "
        f"(default: {settings.map_concurrency}).",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=float(settings.poll_interval_seconds),
        help=f"Seconds between job polls (default: {settings.poll_interval_seconds}).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


def _load(args: argparse.Namespace) -> StructuredDocument:
    if args.file is not None:
        return structure_document(args.file.read_bytes())
    return structure_document(fetch_document(args.url or settings.hansard_default_url))


async def _summarize(
    transcript: str,
    chunk_size: int,
    concurrency: int,
    poll_interval: float,
) -> dict[str, object]:
    registry = JobRegistry()
    job_id = submit_summary_job(
        registry, transcript, chunk_size=chunk_size, concurrency=concurrency
    )
    print(f"Summary job {job_id} started; polling every {poll_interval:g}s …", file=sys.stderr)

    while True:
        await asyncio.sleep(poll_interval)
        status = registry.poll(job_id)
        if status.state is JobState.COMPLETED:
            return {"job_id": job_id, "state": status.state.value, "result": asdict(status.result)}
        if status.state is JobState.FAILED:
            return {"job_id": job_id, "state": status.state.value, "error": status.error}
        print("Polling… summary still pending.", file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.chunk_size <= 0:
        parser.error("--chunk-size must be positive")
    if args.concurrency < 0:
        parser.error("--concurrency must be 0 or more")

    try:
        doc = _load(args)
    except (AcquisitionError, StructuringError, OSError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    if args.structure_only:
        output: dict[str, object] = {
            "metadata": doc.metadata,
            "segments": [asdict(s) for s in doc.segments],
        }
    else:
        if not doc.transcript.strip():
            print("ERROR: Document has no speech to summarize.", file=sys.stderr)
            return 1
        output = asyncio.run(
            _summarize(doc.transcript, args.chunk_size, args.concurrency, args.poll_interval)
        )

    json.dump(output, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
