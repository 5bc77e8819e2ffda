from __future__ import annotations

import pytest

from agentflow_ai.agent_core.repos.memory import (
    InMemoryEventRepository,
    InMemoryRunRepository,
    InMemoryStepRepository,
    InMemoryUsageRepository,
)
from agentflow_ai.agent_core.schemas.domain import (
    Run,
    RunEvent,
    RunEventType,
    RunMode,
    RunStatus,
    RunStep,
    StepStatus,
    ToolName,
    UsageLedgerEntry,
)


@pytest.mark.asyncio
async def test_run_repository_stores_copies() -> None:
    repo = InMemoryRunRepository()
    run = Run(id="r1", user_id="u", mode=RunMode.linear, goal="g", model="gpt-4o", plan_tier="free")
    await repo.create(run)

    run.status = RunStatus.running
    assert (await repo.get("r1")).status is RunStatus.pending

    await repo.update(run)
    assert (await repo.get("r1")).status is RunStatus.running
    assert await repo.get("missing") is None


@pytest.mark.asyncio
async def test_step_repository_upserts_by_index() -> None:
    repo = InMemoryStepRepository()
    await repo.persist(RunStep(run_id="r1", index=2, tool=ToolName.llm))
    await repo.persist(RunStep(run_id="r1", index=1, tool=ToolName.plan))
    await repo.persist(RunStep(run_id="r1", index=1, tool=ToolName.plan, status=StepStatus.done))
    await repo.persist(RunStep(run_id="r2", index=1, tool=ToolName.llm))

    steps = await repo.list("r1")

    assert [(s.index, s.status) for s in steps] == [(1, StepStatus.done), (2, StepStatus.running)]


@pytest.mark.asyncio
async def test_usage_and_event_repositories_filter_by_run() -> None:
    usage = InMemoryUsageRepository()
    events = InMemoryEventRepository()
    for run_id in ("r1", "r2", "r1"):
        await usage.append(
            UsageLedgerEntry(
                run_id=run_id,
                user_id="u",
                step_index=1,
                label="agent.llm",
                model="gpt-4o",
                tokens_in=1,
                tokens_out=1,
                credits=2,
            )
        )
        await events.append(RunEvent(run_id=run_id, type=RunEventType.step_started))

    assert len(await usage.list("r1")) == 2
    assert len(await events.list("r1")) == 2
    assert len(await events.list("r1", limit=1)) == 1
