"""Application services."""

from .review import ExportedFile, ReviewService, get_review_service, reset_review_state

__all__ = [
    "ExportedFile",
    "ReviewService",
    "get_review_service",
    "reset_review_state",
]
