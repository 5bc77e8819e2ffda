from __future__ import annotations

"""Convenience factories for wiring the engine.

Helpers to build the default tool registry, the provider bundle from
settings and a ready-to-use ``RunEngine`` / ``RunService``. Deployments and
tests can pass their own registry, providers, ledger and repositories.
"""

from typing import Optional

from ..core.config import Settings, get_settings
from .billing.ledger import CreditLedger
from .providers import (
    HttpSearchProvider,
    LocalCommandExecutor,
    PydanticAICompletionProvider,
    ToolDeps,
)
from .repos import (
    EventRepository,
    InMemoryEventRepository,
    InMemoryRunRepository,
    InMemoryStepRepository,
    InMemoryUsageRepository,
    RunRepository,
    StepRepository,
    UsageRepository,
)
from .runtime import EngineDeps, RunEngine
from .service import RunService
from .tools.builtin import DataAnalysisTool, LlmTool, OperatorExecTool, PlanTool, RagSearchTool, WebSearchTool
from .tools.registry import ToolRegistry


def build_default_registry() -> ToolRegistry:
    """Build the default ``ToolRegistry`` holding every built-in tool."""
    reg = ToolRegistry()
    reg.register(PlanTool())
    reg.register(LlmTool())
    reg.register(WebSearchTool())
    reg.register(OperatorExecTool())
    reg.register(RagSearchTool())
    reg.register(DataAnalysisTool())
    return reg


def build_tool_deps(settings: Optional[Settings] = None) -> ToolDeps:
    """Build the provider bundle described by ``settings``.

    The command executor is only wired when local execution is explicitly
    enabled; there is no default retriever.
    """
    settings = settings or get_settings()
    search = settings.search
    return ToolDeps(
        completion=PydanticAICompletionProvider(settings.completion.model),
        search=(
            HttpSearchProvider(search.base_url, api_key=search.api_key, timeout=search.timeout)
            if search.base_url
            else None
        ),
        executor=LocalCommandExecutor() if settings.engine.enable_local_executor else None,
    )


def build_engine(
    *,
    settings: Optional[Settings] = None,
    registry: Optional[ToolRegistry] = None,
    tool_deps: Optional[ToolDeps] = None,
    ledger: Optional[CreditLedger] = None,
    runs: Optional[RunRepository] = None,
    steps: Optional[StepRepository] = None,
    usage: Optional[UsageRepository] = None,
    events: Optional[EventRepository] = None,
) -> RunEngine:
    """Construct a ``RunEngine``; anything not given falls back to settings and in-memory defaults."""
    settings = settings or get_settings()
    deps = EngineDeps(
        runs=runs if runs is not None else InMemoryRunRepository(),
        steps=steps if steps is not None else InMemoryStepRepository(),
        tools=registry if registry is not None else build_default_registry(),
        ledger=ledger if ledger is not None else CreditLedger(),
        tool_deps=tool_deps if tool_deps is not None else build_tool_deps(settings),
        usage=usage if usage is not None else InMemoryUsageRepository(),
        events=events if events is not None else InMemoryEventRepository(),
    )
    return RunEngine(
        deps=deps,
        default_model=settings.completion.pricing_model,
        default_plan_tier=settings.engine.default_plan_tier,
        tool_timeout_seconds=settings.engine.tool_timeout_seconds,
    )


def build_service(**kwargs) -> RunService:
    """Construct a ``RunService`` around ``build_engine(**kwargs)``."""
    return RunService(engine=build_engine(**kwargs))
