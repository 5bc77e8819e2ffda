from __future__ import annotations

import pytest

from agentflow_ai.agent_core.factory import build_engine, build_service, build_tool_deps
from agentflow_ai.agent_core.providers import HttpSearchProvider, LocalCommandExecutor, PydanticAICompletionProvider
from agentflow_ai.agent_core.providers.base import ToolDeps
from agentflow_ai.agent_core.schemas.domain import RunRequest, RunStatus
from agentflow_ai.core.config import Settings


def test_tool_deps_from_default_settings() -> None:
    deps = build_tool_deps(Settings(AGENTFLOW_COMPLETION_MODEL="openai:gpt-4o"))

    assert isinstance(deps.completion, PydanticAICompletionProvider)
    assert deps.completion.model_name == "openai:gpt-4o"
    assert deps.search is None
    assert deps.executor is None
    assert deps.retriever is None


def test_tool_deps_wires_optional_providers() -> None:
    deps = build_tool_deps(
        Settings(AGENTFLOW_SEARCH_BASE_URL="http://mock/api", AGENTFLOW_ENABLE_LOCAL_EXECUTOR=True)
    )

    assert isinstance(deps.search, HttpSearchProvider)
    assert deps.search.base_url == "http://mock/api"
    assert isinstance(deps.executor, LocalCommandExecutor)


def test_engine_takes_defaults_from_settings() -> None:
    engine = build_engine(
        settings=Settings(AGENTFLOW_DEFAULT_PLAN_TIER="enterprise", AGENTFLOW_TOOL_TIMEOUT_SECONDS=3),
        tool_deps=ToolDeps(),
    )

    assert engine._default_plan_tier == "enterprise"
    assert engine._tool_timeout == 3
    assert engine.deps.usage is not None
    assert engine.deps.events is not None


@pytest.mark.asyncio
async def test_service_runs_with_in_memory_defaults(completion) -> None:
    service = build_service(settings=Settings(), tool_deps=ToolDeps(completion=completion))

    result = await service.execute(RunRequest(user_id="u", goal="say hi"))

    assert result.run.status is RunStatus.succeeded
    assert result.run.plan_tier == "free"
    assert result.run.model == "gpt-4o-mini"
    stored = await service.engine.deps.runs.get(result.run.id)
    assert stored.status is RunStatus.succeeded
