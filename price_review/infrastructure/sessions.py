"""Infrastructure layer for review session persistence."""
from __future__ import annotations

from typing import Protocol

from price_review.domain import ReviewSession


class SessionRepository(Protocol):
    """Persistence contract for the active review session."""

    def get(self) -> ReviewSession: ...

    def replace(self, session: ReviewSession) -> ReviewSession: ...

    def reset(self) -> None: ...


class InMemorySessionRepository:
    """Holds the single transient session of the process.

    Sessions are immutable values, so replacing the reference is the only
    write this repository performs.
    """

    def __init__(self) -> None:
        self._session = ReviewSession()

    def get(self) -> ReviewSession:
        return self._session

    def replace(self, session: ReviewSession) -> ReviewSession:
        self._session = session
        return session

    def reset(self) -> None:
        self._session = ReviewSession()
