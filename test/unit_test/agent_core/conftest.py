from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from agentflow_ai.agent_core.billing.ledger import CreditLedger
from agentflow_ai.agent_core.factory import build_default_registry
from agentflow_ai.agent_core.providers.base import ToolDeps
from agentflow_ai.agent_core.repos.memory import (
    InMemoryEventRepository,
    InMemoryRunRepository,
    InMemoryStepRepository,
    InMemoryUsageRepository,
)
from agentflow_ai.agent_core.runtime.engine import RunEngine
from agentflow_ai.agent_core.runtime.models import EngineDeps
from agentflow_ai.agent_core.tools.base import ToolContext
from agentflow_ai.agent_core.tools.registry import ToolRegistry


class FakeCompletion:
    """Completion provider answering from a list of replies (or a callable)."""

    def __init__(self, replies: Union[List[Union[str, Exception]], Callable[[str, Optional[str]], str], None] = None):
        self._replies = replies if replies is not None else []
        self.calls: List[Dict[str, Any]] = []

    async def complete(self, prompt: str, *, system: Optional[str] = None) -> str:
        self.calls.append({"prompt": prompt, "system": system})
        if callable(self._replies):
            return self._replies(prompt, system)
        if not self._replies:
            return f"echo: {prompt}"
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def completion() -> FakeCompletion:
    return FakeCompletion()


@pytest.fixture
def ledger() -> CreditLedger:
    return CreditLedger()


@pytest.fixture
def repos() -> Dict[str, Any]:
    return {
        "runs": InMemoryRunRepository(),
        "steps": InMemoryStepRepository(),
        "usage": InMemoryUsageRepository(),
        "events": InMemoryEventRepository(),
    }


@pytest.fixture
def make_engine(repos: Dict[str, Any], ledger: CreditLedger, completion: FakeCompletion):
    def _make(
        *,
        registry: Optional[ToolRegistry] = None,
        tool_deps: Optional[ToolDeps] = None,
        tool_timeout_seconds: Optional[float] = None,
        default_plan_tier: str = "pro",
    ) -> RunEngine:
        deps = EngineDeps(
            runs=repos["runs"],
            steps=repos["steps"],
            tools=registry or build_default_registry(),
            ledger=ledger,
            tool_deps=tool_deps or ToolDeps(completion=completion),
            usage=repos["usage"],
            events=repos["events"],
        )
        return RunEngine(
            deps=deps,
            default_model="gpt-4o",
            default_plan_tier=default_plan_tier,
            tool_timeout_seconds=tool_timeout_seconds,
        )

    return _make


@pytest.fixture
def make_ctx(ledger: CreditLedger, completion: FakeCompletion):
    def _make(*, deps: Optional[ToolDeps] = None, model: str = "gpt-4o", registry: Optional[ToolRegistry] = None):
        return ToolContext(
            run_id="run-1",
            user_id="user-1",
            project_id="proj-1",
            model=model,
            deps=deps if deps is not None else ToolDeps(completion=completion),
            ledger=ledger,
            step_index=1,
            registry=registry if registry is not None else build_default_registry(),
        )

    return _make


@pytest.fixture
def completion_cls():
    return FakeCompletion
