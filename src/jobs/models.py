"""Job states and the read-only snapshots handed to pollers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class JobState(str, Enum):
    """Lifecycle of a background job. COMPLETED and FAILED are terminal."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self is not JobState.PENDING


@dataclass(frozen=True)
class JobStatus:
    """Snapshot of a job as seen by a poller."""

    job_id: str
    state: JobState
    result: Any = None
    error: str | None = None
