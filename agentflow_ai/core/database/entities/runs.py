"""
Run entity models.

This module contains the database entity for the workflow run lifecycle.
A run row is inserted when the run is created and updated as it moves
through ``pending -> running -> succeeded|failed|cancelled``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base


class RunRecord(Base, table=True):
    """Entity for workflow run lifecycle and totals.

    Graph, output and summary payloads are stored as JSON/Markdown text.

    Table: af_runs
    """

    __tablename__ = "af_runs"

    # Primary identifiers
    id: str = Field(primary_key=True, max_length=64)
    user_id: str = Field(max_length=128, index=True)
    project_id: Optional[str] = Field(default=None, max_length=128, index=True)

    # Execution configuration
    mode: str = Field(max_length=16)
    goal: Optional[str] = Field(default=None)
    graph: Optional[str] = Field(default=None, description="JSON workflow graph")
    model: str = Field(max_length=128)
    plan_tier: str = Field(max_length=32)

    # Status and totals
    status: str = Field(max_length=16, index=True)
    tokens_in: int = Field(default=0)
    tokens_out: int = Field(default=0)
    credits: int = Field(default=0)

    # Results
    output: Optional[str] = Field(default=None, description="JSON output of the last completed step")
    error: Optional[str] = Field(default=None)
    summary: Optional[str] = Field(default=None, description="Markdown run summary")

    # Timestamps
    created_at: datetime = Field(index=True)
    started_at: Optional[datetime] = Field(default=None)
    finished_at: Optional[datetime] = Field(default=None)

    def __repr__(self) -> str:
        return f"RunRecord(id={self.id}, mode={self.mode}, status={self.status})"
