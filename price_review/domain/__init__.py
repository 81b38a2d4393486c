"""Domain layer definitions."""

from .jobs import JobRecord, JobState
from .session import (
    MalformedDatasetError,
    RecordNotFoundError,
    ReviewSession,
    UnknownCandidateError,
)

__all__ = [
    "JobRecord",
    "JobState",
    "MalformedDatasetError",
    "RecordNotFoundError",
    "ReviewSession",
    "UnknownCandidateError",
]
