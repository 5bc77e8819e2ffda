"""
Usage ledger entity models.

Append-only accounting of credits and tokens, one row per billing call.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base


class UsageRecord(Base, table=True):
    """Entity for credit and token accounting.

    Table: af_usage_ledger
    """

    __tablename__ = "af_usage_ledger"

    # Primary identifiers
    id: str = Field(primary_key=True, max_length=64)
    run_id: str = Field(max_length=64, index=True)
    user_id: str = Field(max_length=128, index=True)
    project_id: Optional[str] = Field(default=None, max_length=128, index=True)
    step_index: int = Field()

    # Billing details
    label: str = Field(max_length=64, index=True)
    model: str = Field(max_length=128, index=True)
    tokens_in: int = Field()
    tokens_out: int = Field()
    credits: int = Field()
    meta: str = Field(default="{}")

    # Timestamp
    created_at: datetime = Field(index=True)

    def __repr__(self) -> str:
        return f"UsageRecord(id={self.id}, run_id={self.run_id}, label={self.label}, credits={self.credits})"
