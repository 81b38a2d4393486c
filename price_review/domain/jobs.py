"""Domain entities for remote pricing jobs."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class JobState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    POLLING = "polling"
    FETCHING = "fetching"
    DONE = "done"
    ERROR = "error"

    @property
    def is_active(self) -> bool:
        return self in {JobState.STARTING, JobState.POLLING, JobState.FETCHING}


@dataclass(slots=True)
class JobRecord:
    """The single remote job tracked by the orchestrator."""

    state: JobState = JobState.IDLE
    job_id: str | None = None
    status_url: str | None = None
    result_url: str | None = None
    status_text: str | None = None
    progress: float | None = None
    message: str | None = None
    record_count: int | None = None
