"""Claude-powered map and reduce calls for long-transcript summarization."""

from __future__ import annotations

import json
import logging
from typing import Any

from anthropic import AsyncAnthropic
from anthropic.types import TextBlock

from src.config import settings
from src.summarization.models import FinalArtifact

logger = logging.getLogger(__name__)

CHUNK_SYSTEM_PROMPT = (
    "You are an expert parliamentary analyst. You have been provided with a chunk "
    "of a parliamentary debate transcript. Your task is to summarize this chunk "
    "accurately and concisely. Focus on the key topics, debates and decisions, and "
    "name the main speakers."
)

FINAL_SYSTEM_PROMPT = (
    "You are an expert parliamentary analyst. You have been provided with a series "
    "of summaries of sequential chunks of a parliamentary debate. Synthesize them "
    "into a single, accurate and comprehensive final summary that is about a page "
    "long.\n\n"
    "Identify the main bills discussed, outline key arguments from the main "
    "speakers, mention significant events, and keep a neutral tone that captures "
    "the overall flow and conclusion of the sitting.\n\n"
    "Use the store_final_summary tool to return your results."
)

# Tool definition for Claude structured output
FINAL_SUMMARY_TOOL: dict[str, Any] = {
    "name": "store_final_summary",
    "description": "Store the final synthesized summary of a parliamentary debate.",
    "input_schema": {
        "type": "object",
        "properties": {
            "summary": {
                "type": "string",
                "description": "Detailed, page-long summary of the debate.",
            },
            "topics": {
                "type": "array",
                "description": "Distinct topics or themes discussed during the debate.",
                "items": {"type": "string"},
            },
            "bills_referenced": {
                "type": "array",
                "description": "Name or number of each bill mentioned in the summaries.",
                "items": {"type": "string"},
            },
        },
        "required": ["summary", "topics", "bills_referenced"],
    },
}


def _parse_final_response(response: Any) -> FinalArtifact | None:
    """Parse the Claude tool_use response into a FinalArtifact.

    Returns None when the model did not call the tool or the payload does not
    match the schema; the caller treats that as a failed reduce.
    """
    for block in response.content:
        if block.type != "tool_use":
            continue
        if block.name != "store_final_summary":
            continue

        data = block.input
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError:
                logger.warning("store_final_summary input is not valid JSON")
                return None
        if not isinstance(data, dict):
            return None

        summary = data.get("summary")
        if not isinstance(summary, str) or not summary.strip():
            return None

        return FinalArtifact(
            summary=summary.strip(),
            topics=[str(t) for t in data.get("topics") or [] if str(t).strip()],
            bills_referenced=[str(b) for b in data.get("bills_referenced") or [] if str(b).strip()],
        )

    logger.warning("Claude response contained no store_final_summary tool call")
    return None


class ClaudeSummarizer:
    """Map/reduce collaborator backed by the Anthropic Messages API."""

    def __init__(
        self,
        client: AsyncAnthropic | None = None,
        model: str | None = None,
        map_max_tokens: int | None = None,
        reduce_max_tokens: int | None = None,
    ) -> None:
        self.client = client or AsyncAnthropic(api_key=settings.anthropic_api_key)
        self.model = model or settings.llm_model
        self.map_max_tokens = map_max_tokens or settings.map_max_tokens
        self.reduce_max_tokens = reduce_max_tokens or settings.reduce_max_tokens

    async def summarize_chunk(self, chunk: str) -> str:
        """Summarize one transcript chunk. Returns "" if Claude sent no text."""
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=self.map_max_tokens,
            system=CHUNK_SYSTEM_PROMPT,
            messages=[
                {
                    "role": "user",
                    "content": f"Here is the chunk of the debate:\n---\n{chunk}\n---",
                }
            ],
        )
        texts = [b.text for b in response.content if isinstance(b, TextBlock)]
        return "\n".join(texts).strip()

    async def combine(self, summaries: list[str]) -> FinalArtifact | None:
        """Synthesize ordered chunk summaries into the final artifact."""
        bullet_list = "\n".join(f"- {s}" for s in summaries)
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=self.reduce_max_tokens,
            system=FINAL_SYSTEM_PROMPT,
            tools=[FINAL_SUMMARY_TOOL],
            tool_choice={"type": "tool", "name": "store_final_summary"},
            messages=[
                {
                    "role": "user",
                    "content": (
                        f"Here are the summaries of the debate chunks:\n---\n{bullet_list}\n---"
                    ),
                }
            ],
        )
        return _parse_final_response(response)
