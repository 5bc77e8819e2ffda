"""Persistence layer for runs, steps, usage and events."""

from .interfaces import EventRepository, RunRepository, StepRepository, UsageRepository
from .memory import (
    InMemoryEventRepository,
    InMemoryRunRepository,
    InMemoryStepRepository,
    InMemoryUsageRepository,
)

__all__ = [
    "EventRepository",
    "InMemoryEventRepository",
    "InMemoryRunRepository",
    "InMemoryStepRepository",
    "InMemoryUsageRepository",
    "RunRepository",
    "StepRepository",
    "UsageRepository",
]
