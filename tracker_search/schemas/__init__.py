"""Pydantic schemas package for request/response validation."""

from .search import RecordChange, RecordChangeResponse

__all__ = [
    "RecordChange",
    "RecordChangeResponse",
]
