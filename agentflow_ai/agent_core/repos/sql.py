from __future__ import annotations

"""SQLAlchemy async repository implementations.

This module provides a database-backed persistence implementation for the
repository interfaces defined in ``agentflow_ai.agent_core.repos.interfaces``.

Usage
-----

- Create an async engine with ``create_engine`` (Postgres URLs are rewritten
  to ``asyncpg``; SQLite works through ``aiosqlite``).
- Create tables with ``create_all``.
- Create a session factory with ``create_sessionmaker``.
- Build repository instances with ``build_sql_repos``.

Transaction model
-----------------

Each repository method opens an ``AsyncSession``, performs its operation, and
commits, so every persisted step or event is durable when the method returns.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...core.database.base import dump_json, load_json
from ...core.database.entities import RunEventRecord, RunRecord, RunStepRecord, UsageRecord
from ..schemas.domain import (
    Run,
    RunEvent,
    RunEventType,
    RunMode,
    RunStatus,
    RunStep,
    StepStatus,
    ToolName,
    UsageLedgerEntry,
    WorkflowGraph,
)
from .interfaces import EventRepository, RunRepository, StepRepository, UsageRepository


def _run_values(run: Run) -> dict:
    return {
        "user_id": run.user_id,
        "project_id": run.project_id,
        "mode": run.mode.value,
        "goal": run.goal,
        "graph": dump_json(run.graph.model_dump(mode="json")) if run.graph is not None else None,
        "model": run.model,
        "plan_tier": run.plan_tier,
        "status": run.status.value,
        "tokens_in": run.tokens_in,
        "tokens_out": run.tokens_out,
        "credits": run.credits,
        "output": dump_json(run.output) if run.output is not None else None,
        "error": run.error,
        "summary": run.summary,
        "created_at": run.created_at,
        "started_at": run.started_at,
        "finished_at": run.finished_at,
    }


def _row_to_run(row: RunRecord) -> Run:
    graph = load_json(row.graph)
    return Run(
        id=row.id,
        user_id=row.user_id,
        project_id=row.project_id,
        mode=RunMode(row.mode),
        goal=row.goal,
        graph=WorkflowGraph.model_validate(graph) if graph is not None else None,
        model=row.model,
        plan_tier=row.plan_tier,
        status=RunStatus(row.status),
        tokens_in=row.tokens_in,
        tokens_out=row.tokens_out,
        credits=row.credits,
        created_at=row.created_at,
        started_at=row.started_at,
        finished_at=row.finished_at,
        output=load_json(row.output),
        error=row.error,
        summary=row.summary,
    )


@dataclass(frozen=True)
class SqlRunRepository(RunRepository):
    """SQL implementation of ``RunRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    async def create(self, run: Run) -> None:
        """
        Persist a new run record.

        Args:
            run: The run to insert.
        """
        async with self.session_factory() as s:
            s.add(RunRecord(id=run.id, **_run_values(run)))
            await s.commit()

    async def update(self, run: Run) -> None:
        """
        Overwrite an existing run record; unknown runs are inserted.

        Args:
            run: The current run state.
        """
        async with self.session_factory() as s:
            row = await s.get(RunRecord, run.id)
            if row is None:
                s.add(RunRecord(id=run.id, **_run_values(run)))
            else:
                for key, value in _run_values(run).items():
                    setattr(row, key, value)
            await s.commit()

    async def get(self, run_id: str) -> Optional[Run]:
        async with self.session_factory() as s:
            row = await s.get(RunRecord, run_id)
            return _row_to_run(row) if row is not None else None


def _step_key(run_id: str, index: int) -> str:
    return f"{run_id}:{index}"


@dataclass(frozen=True)
class SqlStepRepository(StepRepository):
    """SQL implementation of ``StepRepository`` (upsert per run and index)."""

    session_factory: async_sessionmaker[AsyncSession]

    async def persist(self, step: RunStep) -> None:
        values = {
            "run_id": step.run_id,
            "index": step.index,
            "node_id": step.node_id,
            "tool": step.tool.value,
            "status": step.status.value,
            "request": dump_json(step.request),
            "response": dump_json(step.response) if step.response is not None else None,
            "error": step.error,
            "credits": step.credits,
            "tokens_in": step.tokens_in,
            "tokens_out": step.tokens_out,
            "started_at": step.started_at,
            "finished_at": step.finished_at,
        }
        key = _step_key(step.run_id, step.index)
        async with self.session_factory() as s:
            row = await s.get(RunStepRecord, key)
            if row is None:
                s.add(RunStepRecord(id=key, **values))
            else:
                for name, value in values.items():
                    setattr(row, name, value)
            await s.commit()

    async def list(self, run_id: str) -> list[RunStep]:
        async with self.session_factory() as s:
            stmt = select(RunStepRecord).where(RunStepRecord.run_id == run_id).order_by(RunStepRecord.index.asc())
            rows = (await s.execute(stmt)).scalars().all()
            return [
                RunStep(
                    run_id=row.run_id,
                    index=row.index,
                    node_id=row.node_id,
                    tool=ToolName(row.tool),
                    status=StepStatus(row.status),
                    request=load_json(row.request),
                    response=load_json(row.response),
                    error=row.error,
                    credits=row.credits,
                    tokens_in=row.tokens_in,
                    tokens_out=row.tokens_out,
                    started_at=row.started_at,
                    finished_at=row.finished_at,
                )
                for row in rows
            ]


@dataclass(frozen=True)
class SqlUsageRepository(UsageRepository):
    """SQL implementation of ``UsageRepository`` (append-only)."""

    session_factory: async_sessionmaker[AsyncSession]

    async def append(self, entry: UsageLedgerEntry) -> None:
        async with self.session_factory() as s:
            s.add(
                UsageRecord(
                    id=entry.id,
                    run_id=entry.run_id,
                    user_id=entry.user_id,
                    project_id=entry.project_id,
                    step_index=entry.step_index,
                    label=entry.label,
                    model=entry.model,
                    tokens_in=entry.tokens_in,
                    tokens_out=entry.tokens_out,
                    credits=entry.credits,
                    meta=dump_json(entry.meta),
                    created_at=entry.created_at,
                )
            )
            await s.commit()

    async def list(self, run_id: str) -> list[UsageLedgerEntry]:
        async with self.session_factory() as s:
            stmt = select(UsageRecord).where(UsageRecord.run_id == run_id).order_by(UsageRecord.created_at.asc())
            rows = (await s.execute(stmt)).scalars().all()
            return [
                UsageLedgerEntry(
                    id=row.id,
                    run_id=row.run_id,
                    user_id=row.user_id,
                    project_id=row.project_id,
                    step_index=row.step_index,
                    label=row.label,
                    model=row.model,
                    tokens_in=row.tokens_in,
                    tokens_out=row.tokens_out,
                    credits=row.credits,
                    meta=load_json(row.meta) or {},
                    created_at=row.created_at,
                )
                for row in rows
            ]


@dataclass(frozen=True)
class SqlEventRepository(EventRepository):
    """SQL implementation of ``EventRepository`` (append-only)."""

    session_factory: async_sessionmaker[AsyncSession]

    async def append(self, event: RunEvent) -> None:
        """
        Append a new event to the store.

        Args:
            event: The event to record.
        """
        async with self.session_factory() as s:
            s.add(
                RunEventRecord(
                    id=event.id,
                    run_id=event.run_id,
                    type=event.type.value,
                    payload=dump_json(event.payload),
                    created_at=event.created_at,
                )
            )
            await s.commit()

    async def list(self, run_id: str, limit: int = 1000) -> list[RunEvent]:
        async with self.session_factory() as s:
            stmt = (
                select(RunEventRecord)
                .where(RunEventRecord.run_id == run_id)
                .order_by(RunEventRecord.created_at.asc())
                .limit(limit)
            )
            rows = (await s.execute(stmt)).scalars().all()
            return [
                RunEvent(
                    id=row.id,
                    run_id=row.run_id,
                    type=RunEventType(row.type),
                    payload=load_json(row.payload) or {},
                    created_at=row.created_at,
                )
                for row in rows
            ]


@dataclass(frozen=True)
class SqlRepoBundle:
    """Convenience bundle of all SQL repositories for dependency injection."""

    runs: SqlRunRepository
    steps: SqlStepRepository
    usage: SqlUsageRepository
    events: SqlEventRepository


def build_sql_repos(*, session_factory: async_sessionmaker[AsyncSession]) -> SqlRepoBundle:
    """Build a ``SqlRepoBundle`` sharing one session factory."""
    return SqlRepoBundle(
        runs=SqlRunRepository(session_factory),
        steps=SqlStepRepository(session_factory),
        usage=SqlUsageRepository(session_factory),
        events=SqlEventRepository(session_factory),
    )
