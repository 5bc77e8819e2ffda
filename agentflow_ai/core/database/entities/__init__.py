"""
Database entity models.

Each module represents one table of the run persistence layer:

- runs: Run lifecycle, totals and final output
- run_steps: Per-step request/response records
- usage: Append-only credit and token accounting
- run_events: Append-only audit trail for runs
"""

from .run_events import RunEventRecord
from .run_steps import RunStepRecord
from .runs import RunRecord
from .usage import UsageRecord

__all__ = [
    "RunEventRecord",
    "RunRecord",
    "RunStepRecord",
    "UsageRecord",
]
