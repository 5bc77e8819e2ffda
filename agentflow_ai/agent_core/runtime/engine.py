from __future__ import annotations

"""LangGraph run engine.

``RunEngine`` executes one run of either a compiled workflow graph or a
planned linear sequence of tool calls.

Execution model
---------------

- A run is created and persisted as ``pending``, takes a concurrent-run
  slot from the credit ledger and moves to ``running``.
- The LangGraph state machine (``start -> execute* -> finish``) prepares the
  steps in ``start`` and executes exactly one step per ``execute`` pass.
- Graph mode compiles the graph and resolves ``{{step:<node_id>.<path>}}``
  placeholders against the outputs bag of completed nodes.
- Linear mode runs the ``plan`` tool as step 1, checks the planned step count
  against the plan tier and runs the planned steps in order; a step can only
  reference the previous result, as ``{{step:prev.<path>}}``.

Failure model
-------------

Structural problems (invalid graph, unknown tool, exhausted quota) stop the
run before any further tool is invoked. A failing tool marks its step
``error`` and aborts the remaining steps. Cancellation is honoured between
steps. Whatever happens, the run is finalized: the slot is released, totals,
output and the Markdown summary are recorded and the run reaches exactly one
terminal status. Credits already charged are never refunded.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional

from langgraph.graph import END, StateGraph

from ...core import monitoring
from ..errors import (
    QuotaExceededError,
    RunCancelledError,
    StructuralError,
    ToolTimeoutError,
    UnknownToolError,
)
from ..graph.compiler import compile_graph
from ..graph.outputs import OutputsBag
from ..graph.templates import resolve_templates
from ..pricing import DEFAULT_PRICING_MODEL
from ..schemas.domain import (
    Run,
    RunEvent,
    RunEventType,
    RunMode,
    RunRequest,
    RunStatus,
    RunStep,
    StepStatus,
    ToolName,
    UsageLedgerEntry,
)
from ..summary import compose_run_summary
from ..tools.base import ToolContext
from .models import CancellationToken, EngineDeps, RunResult, _GraphState, _RunScope

logger = logging.getLogger(__name__)

PREVIOUS_STEP_ALIAS = "prev"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _terminal_status(exc: Optional[BaseException]) -> RunStatus:
    if exc is None:
        return RunStatus.succeeded
    if isinstance(exc, RunCancelledError):
        return RunStatus.cancelled
    return RunStatus.failed


class RunEngine:
    """Execute workflow runs with quota enforcement, billing and persistence.

    The engine is orchestration only: tools do the work, the credit ledger
    holds the quota state and repositories receive every state transition.
    """

    def __init__(
        self,
        *,
        deps: EngineDeps,
        default_model: str = DEFAULT_PRICING_MODEL,
        default_plan_tier: str = "free",
        tool_timeout_seconds: Optional[float] = None,
    ) -> None:
        """
        Initialize the RunEngine.

        Args:
            deps: Repositories, tool registry, providers and credit ledger.
            default_model: Pricing model for requests that do not name one.
            default_plan_tier: Plan tier for requests that do not name one.
            tool_timeout_seconds: Optional limit for every tool invocation.
        """
        self._deps = deps
        self._default_model = default_model
        self._default_plan_tier = default_plan_tier
        self._tool_timeout = tool_timeout_seconds
        self._graph = self._build_graph()

    @property
    def deps(self) -> EngineDeps:
        return self._deps

    def _build_graph(self):
        """Build and compile the LangGraph state machine."""
        g: StateGraph = StateGraph(_GraphState)
        g.add_node("start", self._node_start)
        g.add_node("execute", self._node_execute_next)
        g.add_node("finish", self._node_finish)

        g.set_entry_point("start")
        g.add_conditional_edges(
            "start",
            self._route,
            {
                "finish": "finish",
                "continue": "execute",
            },
        )
        g.add_conditional_edges(
            "execute",
            self._route,
            {
                "finish": "finish",
                "continue": "execute",
            },
        )
        g.add_edge("finish", END)
        return g.compile()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def execute(self, request: RunRequest, *, cancel_token: Optional[CancellationToken] = None) -> RunResult:
        """Create, execute and finalize one run.

        Failures are recorded on the returned run rather than raised; call
        ``RunResult.raise_for_status()`` to surface them.
        """
        has_nodes = request.graph is not None and bool(request.graph.nodes)
        run = Run(
            id=request.run_id,
            user_id=request.user_id,
            project_id=request.project_id,
            mode=RunMode.graph if has_nodes else RunMode.linear,
            goal=request.goal,
            graph=request.graph,
            model=request.model or self._default_model,
            plan_tier=request.plan_tier or self._default_plan_tier,
        )
        scope = _RunScope(
            run=run,
            token=cancel_token or CancellationToken(),
            limits=self._deps.ledger.limits(run.plan_tier),
        )

        await self._deps.runs.create(run)
        await self._emit(run.id, RunEventType.run_created, {"mode": run.mode.value, "plan_tier": run.plan_tier})
        logger.info(f"Run {run.id} created: mode={run.mode.value} user={run.user_id} tier={run.plan_tier}")

        started = time.monotonic()
        slot_acquired = False
        try:
            self._deps.ledger.acquire_run_slot(run.user_id, run.plan_tier)
            slot_acquired = True

            run.status = RunStatus.running
            run.started_at = _utc_now()
            await self._deps.runs.update(run)
            await self._emit(run.id, RunEventType.run_started, {})
            monitoring.log_run_started(run.id, run.user_id, run.mode.value, run.goal)

            state: _GraphState = {
                "run_id": run.id,
                "steps": [],
                "idx": 0,
                "outputs": OutputsBag(),
                "scope": scope,
            }
            final = await self._graph.ainvoke(
                state, config={"recursion_limit": scope.limits.max_steps_per_run + 10}
            )
            outputs = final["outputs"]
        except asyncio.CancelledError:
            scope.exception = RunCancelledError(run.id)
            await self._finalize(scope, started)
            raise
        except Exception as e:
            logger.error(f"Run {run.id} aborted: {e}")
            scope.exception = e
            outputs = OutputsBag()
        finally:
            if slot_acquired:
                self._deps.ledger.release_run_slot(run.user_id)

        await self._finalize(scope, started)
        return RunResult(
            run=run.model_copy(deep=True),
            steps=list(scope.records),
            outputs=outputs,
            exception=scope.exception,
        )

    # ------------------------------------------------------------------
    # Graph nodes
    # ------------------------------------------------------------------

    async def _node_start(self, state: _GraphState) -> _GraphState:
        """Prepare the steps: compile the graph, or run the planner in linear mode."""
        scope = state["scope"]
        run = scope.run
        try:
            if run.mode == RunMode.graph:
                state["steps"] = self._prepare_graph(scope)
            elif run.goal and run.goal.strip():
                state["steps"], state["outputs"] = await self._prepare_linear(scope, state["outputs"])
            else:
                raise StructuralError("A run needs a workflow graph with at least one node or a goal")
        except Exception as e:
            scope.exception = e
            state["_finished"] = True
        return state

    async def _node_execute_next(self, state: _GraphState) -> _GraphState:
        """Execute the next prepared step, or flag the run finished."""
        scope = state["scope"]
        steps = state["steps"]
        idx = state["idx"]
        if idx >= len(steps):
            state["_finished"] = True
            return state

        step = steps[idx]
        outputs = state["outputs"]
        mode = scope.run.mode
        if mode == RunMode.graph:
            key = step["node_id"]
            lookup = outputs
        else:
            key = f"step-{len(scope.records) + 1}"
            previous = outputs.get(f"step-{len(scope.records)}")
            lookup = {PREVIOUS_STEP_ALIAS: previous} if previous is not None else {}

        try:
            request, response = await self._run_step(
                scope,
                node_id=step["node_id"],
                tool=ToolName(step["tool"]),
                raw_input=step["input"],
                lookup=lookup,
            )
        except Exception as e:
            scope.exception = e
            state["_finished"] = True
            return state

        state["outputs"] = outputs.with_output(key, request, response)
        state["idx"] = idx + 1
        return state

    async def _node_finish(self, state: _GraphState) -> _GraphState:
        scope = state["scope"]
        state["_terminal_status"] = _terminal_status(scope.exception).value
        logger.debug(f"Run {state['run_id']} finished executing: {state['_terminal_status']}")
        return state

    def _route(self, state: _GraphState) -> str:
        if state.get("_finished"):
            return "finish"
        return "continue"

    # ------------------------------------------------------------------
    # Preparation
    # ------------------------------------------------------------------

    def _check_step_count(self, scope: _RunScope, count: int) -> None:
        limit = scope.limits.max_steps_per_run
        if count > limit:
            raise QuotaExceededError("max_steps_per_run", limit=limit, actual=count, plan_tier=scope.run.plan_tier)

    def _prepare_graph(self, scope: _RunScope) -> list[dict[str, Any]]:
        compiled = compile_graph(scope.run.graph or {}, known_tools=self._deps.tools.names())
        self._check_step_count(scope, len(compiled))
        logger.info(f"Run {scope.run.id}: compiled {len(compiled)} step(s)")
        return [{"node_id": s.node_id, "tool": s.tool.value, "input": s.input} for s in compiled]

    async def _prepare_linear(self, scope: _RunScope, outputs: OutputsBag) -> tuple[list[dict[str, Any]], OutputsBag]:
        run = scope.run
        if not self._deps.tools.has(ToolName.plan):
            raise UnknownToolError(ToolName.plan)

        request, response = await self._run_step(
            scope, node_id=None, tool=ToolName.plan, raw_input={"goal": run.goal}, lookup={}
        )
        planned = list(response.get("steps") or [])
        await self._emit(run.id, RunEventType.plan_created, {"steps": planned})

        self._check_step_count(scope, len(planned))
        for item in planned:
            if not self._deps.tools.has(item.get("tool")):
                raise UnknownToolError(item.get("tool"))
        logger.info(f"Run {run.id}: planned {len(planned)} step(s)")
        steps = [{"node_id": None, "tool": item["tool"], "input": item.get("input") or {}} for item in planned]
        return steps, outputs.with_output("step-1", request, response)

    # ------------------------------------------------------------------
    # Step execution
    # ------------------------------------------------------------------

    async def _run_step(
        self,
        scope: _RunScope,
        *,
        node_id: Optional[str],
        tool: ToolName,
        raw_input: Any,
        lookup: Any,
    ) -> tuple[Any, Any]:
        """Run one step end to end and return its ``(request, response)``.

        Cancellation is checked and a slice of the daily budget is reserved
        first, so a step that is refused leaves no record. A step that starts
        is always persisted twice: ``running`` and then ``done`` or ``error``,
        even when the surrounding task is cancelled mid-call.
        """
        run = scope.run
        if scope.token.cancelled:
            raise RunCancelledError(run.id)
        ledger = self._deps.ledger
        ledger.reserve_step_budget(run.user_id, run.plan_tier)
        try:
            return await self._run_reserved_step(
                scope, node_id=node_id, tool=tool, raw_input=raw_input, lookup=lookup
            )
        finally:
            ledger.release_step_budget(run.user_id)

    async def _run_reserved_step(
        self,
        scope: _RunScope,
        *,
        node_id: Optional[str],
        tool: ToolName,
        raw_input: Any,
        lookup: Any,
    ) -> tuple[Any, Any]:
        run = scope.run

        index = len(scope.records) + 1
        unresolved: list[dict[str, str]] = []
        request = resolve_templates(
            raw_input,
            lookup,
            on_missing=lambda nid, path, placeholder: unresolved.append(
                {"node_id": nid, "path": path, "placeholder": placeholder}
            ),
        )
        for item in unresolved:
            await self._emit(run.id, RunEventType.template_unresolved, {"step_index": index, **item})

        step = RunStep(run_id=run.id, index=index, node_id=node_id, tool=tool, request=request)
        await self._deps.steps.persist(step)
        await self._emit(run.id, RunEventType.step_started, {"step_index": index, "tool": tool.value, "node_id": node_id})
        logger.debug(f"Run {run.id}: step {index} ({tool.value}) started")

        ctx = ToolContext(
            run_id=run.id,
            user_id=run.user_id,
            project_id=run.project_id,
            model=run.model,
            deps=self._deps.tool_deps,
            ledger=self._deps.ledger,
            step_index=index,
            registry=self._deps.tools,
        )
        try:
            response = await self._invoke(tool, ctx, request)
        except asyncio.CancelledError:
            await self._finish_step(scope, step, ctx.drain_usage(), error="cancelled")
            await self._emit(run.id, RunEventType.step_failed, {"step_index": index, "error": "cancelled"})
            logger.info(f"Run {run.id}: step {index} ({tool.value}) cancelled")
            raise
        except Exception as e:
            failed = await self._finish_step(scope, step, ctx.drain_usage(), error=str(e) or type(e).__name__)
            await self._emit(run.id, RunEventType.step_failed, {"step_index": index, "error": failed.error})
            monitoring.log_error(type(e).__name__, str(e), {"run_id": run.id, "step_index": index})
            logger.warning(f"Run {run.id}: step {index} ({tool.value}) failed: {e}")
            raise

        await self._finish_step(scope, step, ctx.drain_usage(), response=response)
        scope.last_output = response
        await self._emit(run.id, RunEventType.step_completed, {"step_index": index, "tool": tool.value})
        logger.debug(f"Run {run.id}: step {index} ({tool.value}) done")
        return request, response

    async def _invoke(self, tool: ToolName, ctx: ToolContext, request: Any) -> Any:
        call = self._deps.tools.invoke(tool, ctx, request)
        if self._tool_timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self._tool_timeout)
        except asyncio.TimeoutError:
            raise ToolTimeoutError(tool, self._tool_timeout) from None

    async def _finish_step(
        self,
        scope: _RunScope,
        step: RunStep,
        usage: list[UsageLedgerEntry],
        *,
        response: Any = None,
        error: Optional[str] = None,
    ) -> RunStep:
        credits = sum(e.credits for e in usage)
        tokens_in = sum(e.tokens_in for e in usage)
        tokens_out = sum(e.tokens_out for e in usage)
        final = step.model_copy(
            update={
                "status": StepStatus.error if error is not None else StepStatus.done,
                "response": response,
                "error": error,
                "credits": credits,
                "tokens_in": tokens_in,
                "tokens_out": tokens_out,
                "finished_at": _utc_now(),
            }
        )
        scope.records.append(final)

        run = scope.run
        run.credits += credits
        run.tokens_in += tokens_in
        run.tokens_out += tokens_out

        await self._deps.steps.persist(final)
        for entry in usage:
            if self._deps.usage is not None:
                await self._deps.usage.append(entry)
            await self._emit(
                run.id,
                RunEventType.usage_recorded,
                {"usage_id": entry.id, "label": entry.label, "credits": entry.credits},
            )
        monitoring.log_tool_call(run.id, step.tool.value, final.status.value, credits, tokens_in, tokens_out)
        return final

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    async def _finalize(self, scope: _RunScope, started: float) -> None:
        run = scope.run
        exc = scope.exception
        run.status = _terminal_status(exc)
        run.error = (str(exc) or type(exc).__name__) if exc is not None else None
        run.finished_at = _utc_now()
        run.output = scope.last_output
        run.summary = compose_run_summary(run, scope.records).to_markdown()
        await self._deps.runs.update(run)

        event = {
            RunStatus.succeeded: RunEventType.run_completed,
            RunStatus.cancelled: RunEventType.run_cancelled,
        }.get(run.status, RunEventType.run_failed)
        await self._emit(run.id, event, {"status": run.status.value, "credits": run.credits, "error": run.error})

        duration_ms = (time.monotonic() - started) * 1000
        monitoring.log_run_completed(run.id, run.status.value, run.credits, duration_ms)
        logger.info(
            f"Run {run.id} {run.status.value}: steps={len(scope.records)} credits={run.credits} "
            f"tokens={run.tokens_in}/{run.tokens_out} duration={duration_ms:.0f}ms"
        )

    async def _emit(self, run_id: str, event_type: RunEventType, payload: dict[str, Any]) -> None:
        if self._deps.events is None:
            return
        await self._deps.events.append(RunEvent(run_id=run_id, type=event_type, payload=payload))
