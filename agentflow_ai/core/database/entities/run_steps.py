"""
Run step entity models.

One row per executed step. A step row is written when the step starts
(``running``) and overwritten once it finishes (``done`` or ``error``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base


class RunStepRecord(Base, table=True):
    """Entity for per-step execution records.

    Table: af_run_steps
    """

    __tablename__ = "af_run_steps"

    # Primary identifiers
    id: str = Field(primary_key=True, max_length=96, description="'<run_id>:<index>'")
    run_id: str = Field(max_length=64, index=True)
    index: int = Field(description="1-based execution position within the run")
    node_id: Optional[str] = Field(default=None, max_length=128)

    # Execution data (stored as JSON strings for SQLModel compatibility)
    tool: str = Field(max_length=32, index=True)
    status: str = Field(max_length=16, index=True)
    request: str = Field(default="{}")
    response: Optional[str] = Field(default=None)
    error: Optional[str] = Field(default=None)

    # Usage
    credits: int = Field(default=0)
    tokens_in: int = Field(default=0)
    tokens_out: int = Field(default=0)

    # Timestamps
    started_at: datetime = Field()
    finished_at: Optional[datetime] = Field(default=None)

    def __repr__(self) -> str:
        return f"RunStepRecord(run_id={self.run_id}, index={self.index}, tool={self.tool}, status={self.status})"
