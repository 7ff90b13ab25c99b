"""Pydantic schemas for search sync notifications."""

from typing import Optional

from pydantic import BaseModel, Field

from ..search import ChangeKind


class RecordChange(BaseModel):
    """Committed change of one tracker record, reported by the tracker."""

    change: ChangeKind = Field(
        ...,
        description="Kind of change that was committed",
        examples=["update"],
    )
    parent_id: Optional[int] = Field(
        None,
        description="Owning project after the change (null for projects)",
    )
    previous_parent_id: Optional[int] = Field(
        None,
        description="Owning project before the change, when the record was moved",
    )


class RecordChangeResponse(BaseModel):
    """Acknowledgement of an accepted record change."""

    status: str = "sync_enqueued"
    type: str
    id: int
