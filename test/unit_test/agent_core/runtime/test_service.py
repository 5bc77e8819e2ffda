from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from agentflow_ai.agent_core.providers.base import ToolDeps
from agentflow_ai.agent_core.schemas.domain import RunRequest, RunStatus, StepStatus, WorkflowGraph
from agentflow_ai.agent_core.service import RunService


class _GatedCompletion:
    """Completion provider that blocks until the test opens the gate."""

    def __init__(self) -> None:
        self.entered = asyncio.Event()
        self.gate = asyncio.Event()
        self.calls = 0

    async def complete(self, prompt: str, *, system: Optional[str] = None) -> str:
        self.calls += 1
        self.entered.set()
        await self.gate.wait()
        return f"done: {prompt}"


def _two_step_graph() -> WorkflowGraph:
    return WorkflowGraph.model_validate(
        {
            "nodes": [
                {"id": "a", "data": {"tool": "llm", "input": "one"}},
                {"id": "b", "data": {"tool": "llm", "input": "two"}},
            ],
            "edges": [{"source": "a", "target": "b"}],
        }
    )


@pytest.mark.asyncio
async def test_execute_runs_inline(make_engine) -> None:
    service = RunService(engine=make_engine())

    result = await service.execute(RunRequest(user_id="u", goal="hello"))

    assert result.run.status is RunStatus.succeeded
    assert service.active_run_ids() == []


@pytest.mark.asyncio
async def test_submit_and_cancel_between_steps(make_engine, repos) -> None:
    completion = _GatedCompletion()
    service = RunService(engine=make_engine(tool_deps=ToolDeps(completion=completion)))

    handle = service.submit(RunRequest(run_id="bg-1", user_id="u", graph=_two_step_graph()))
    await asyncio.wait_for(completion.entered.wait(), timeout=5)

    assert service.active_run_ids() == ["bg-1"]
    assert service.get_handle("bg-1") is handle
    with pytest.raises(ValueError, match="already active"):
        service.submit(RunRequest(run_id="bg-1", user_id="u", goal="dup"))

    assert service.cancel("bg-1") is True
    completion.gate.set()
    result = await asyncio.wait_for(handle.result(), timeout=5)
    await asyncio.sleep(0)

    assert result.run.status is RunStatus.cancelled
    assert [s.node_id for s in result.steps] == ["a"]
    assert completion.calls == 1
    assert handle.done
    assert service.active_run_ids() == []
    assert service.cancel("bg-1") is False
    assert (await repos["runs"].get("bg-1")).status is RunStatus.cancelled


@pytest.mark.asyncio
async def test_task_cancellation_finalizes_run(make_engine, repos, ledger) -> None:
    completion = _GatedCompletion()
    service = RunService(engine=make_engine(tool_deps=ToolDeps(completion=completion)))

    handle = service.submit(RunRequest(run_id="bg-2", user_id="u", graph=_two_step_graph()))
    await asyncio.wait_for(completion.entered.wait(), timeout=5)
    handle.task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await handle.result()

    assert (await repos["runs"].get("bg-2")).status is RunStatus.cancelled
    assert ledger.active_runs("u") == 0
    assert ledger.reserved("u") == 0
    (step,) = await repos["steps"].list("bg-2")
    assert step.node_id == "a"
    assert step.status is StepStatus.error
    assert step.error == "cancelled"
    assert step.finished_at is not None
    run = await repos["runs"].get("bg-2")
    assert "| 1 | llm | a | error |" in run.summary


@pytest.mark.asyncio
async def test_concurrent_runs_cannot_share_the_last_credit(make_engine, ledger) -> None:
    ledger.charge("u", 49_999)
    completion = _GatedCompletion()
    service = RunService(engine=make_engine(tool_deps=ToolDeps(completion=completion)))
    graph = WorkflowGraph.model_validate({"nodes": [{"id": "a", "data": {"tool": "llm", "input": "one"}}]})

    first = service.submit(RunRequest(run_id="bg-3", user_id="u", graph=graph))
    await asyncio.wait_for(completion.entered.wait(), timeout=5)
    second = await service.execute(RunRequest(run_id="bg-4", user_id="u", graph=graph))
    completion.gate.set()
    first_result = await asyncio.wait_for(first.result(), timeout=5)

    assert second.run.status is RunStatus.failed
    assert second.exception.quota == "daily_credits"
    assert second.steps == []
    assert first_result.run.status is RunStatus.succeeded
    assert completion.calls == 1
    assert ledger.reserved("u") == 0
