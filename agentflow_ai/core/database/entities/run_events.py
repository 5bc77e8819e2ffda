"""
Run event entity models.

Events form an append-only timeline for each run, providing
auditability and debugging capabilities.
"""

from __future__ import annotations

from datetime import datetime

from sqlmodel import Field

from ..base import Base


class RunEventRecord(Base, table=True):
    """Entity for the run event stream.

    Table: af_run_events
    """

    __tablename__ = "af_run_events"

    # Primary identifiers
    id: str = Field(primary_key=True, max_length=64)
    run_id: str = Field(max_length=64, index=True, description="Associated run ID")

    # Event metadata
    type: str = Field(max_length=64, description="Event type identifier")
    payload: str = Field(default="{}", description="JSON event payload data")

    # Timestamp
    created_at: datetime = Field(index=True)

    def __repr__(self) -> str:
        return f"RunEventRecord(id={self.id}, run_id={self.run_id}, type={self.type})"
