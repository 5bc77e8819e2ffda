from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, ClassVar, Optional
from urllib.parse import quote_plus

from pydantic import ValidationError

from ..errors import ToolExecutionError
from ..pricing import estimate_tokens
from ..schemas.domain import ToolName
from ..schemas.tools import (
    DataAnalysisInput,
    DataAnalysisOutput,
    LlmInput,
    LlmOutput,
    OperatorExecInput,
    OperatorExecOutput,
    Passage,
    PlanInput,
    PlannedStep,
    PlanOutput,
    RagSearchInput,
    RagSearchOutput,
    SearchResult,
    WebSearchInput,
    WebSearchOutput,
)
from .base import Tool, ToolContext

logger = logging.getLogger(__name__)

EMPTY_COMPLETION_TEXT = "I apologize, but I couldn't generate a response."

WEB_SEARCH_TOKENS = (10, 50)
OPERATOR_EXEC_INPUT_TOKENS = 20
OPERATOR_EXEC_MAX_OUTPUT_TOKENS = 200
DATA_ANALYSIS_MAX_CHARS = 2000

_JSON_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


def _plannable_tools(ctx: ToolContext) -> list[ToolName]:
    names = ctx.registry.names() if ctx.registry is not None else list(ToolName)
    return [n for n in names if n is not ToolName.plan]


def _plan_system_prompt(tools: list[ToolName]) -> str:
    return (
        "You are the planner of a workflow engine. Decompose the user's goal into 2 to 6 sequential steps.\n"
        f"Each step uses exactly one tool from: {', '.join(t.value for t in tools)}.\n"
        "Tool inputs: llm {\"prompt\": str}, web_search {\"query\": str}, "
        "operator_exec {\"cmd\": str}, rag_search {\"question\": str}, "
        "data_analysis {\"data\": any, \"question\": str}.\n"
        "A step may use the previous step's output with a placeholder such as "
        "{{step:prev.text}} or {{step:prev.results[0].snippet}}.\n"
        'Respond with JSON only, shaped as {"steps": [{"tool": str, "input": object, "note": str}]}.'
    )


def _extract_json(text: str) -> str:
    match = _JSON_FENCE.search(text)
    return (match.group(1) if match else text).strip()


def parse_plan(text: str, allowed: list[ToolName]) -> Optional[list[PlannedStep]]:
    """Parse a planner completion; returns ``None`` when it is not a usable plan."""
    try:
        data = json.loads(_extract_json(text))
    except (json.JSONDecodeError, TypeError):
        return None
    raw_steps = data.get("steps") if isinstance(data, dict) else None
    if not isinstance(raw_steps, list) or not raw_steps:
        return None
    try:
        steps = [PlannedStep.model_validate(item) for item in raw_steps]
    except ValidationError:
        return None
    if any(step.tool not in allowed for step in steps):
        return None
    return steps


@dataclass(frozen=True)
class PlanTool(Tool):
    """
    Decompose a free-text goal into planned steps.

    Never raises: when no completion provider is configured, the provider fails
    or its answer is not a usable plan, the plan is a single ``llm`` step whose
    prompt is the goal. The step count is not clamped here.
    """

    name: ToolName = ToolName.plan
    input_model: ClassVar[type[PlanInput]] = PlanInput
    text_field: ClassVar[Optional[str]] = "goal"

    @staticmethod
    def fallback(goal: str) -> PlanOutput:
        return PlanOutput(steps=[PlannedStep(tool=ToolName.llm, input={"prompt": goal})])

    async def execute(self, ctx: ToolContext, payload: PlanInput) -> PlanOutput:
        completion = ctx.deps.completion
        if completion is None:
            logger.warning("plan: no completion provider configured, using single-step fallback")
            return self.fallback(payload.goal)

        allowed = _plannable_tools(ctx)
        system = _plan_system_prompt(allowed)
        try:
            text = await completion.complete(payload.goal, system=system)
        except Exception as e:
            logger.warning(f"plan: completion failed ({e}), using single-step fallback")
            return self.fallback(payload.goal)

        ctx.bill(estimate_tokens(system + payload.goal), estimate_tokens(text), "agent.plan")
        steps = parse_plan(text or "", allowed)
        if steps is None:
            logger.warning("plan: completion was not a usable plan, using single-step fallback")
            return self.fallback(payload.goal)
        return PlanOutput(steps=steps)


@dataclass(frozen=True)
class LlmTool(Tool):
    """Single completion call."""

    name: ToolName = ToolName.llm
    input_model: ClassVar[type[LlmInput]] = LlmInput
    text_field: ClassVar[Optional[str]] = "prompt"

    async def execute(self, ctx: ToolContext, payload: LlmInput) -> LlmOutput:
        completion = ctx.deps.completion
        if completion is None:
            raise ToolExecutionError(self.name, "no completion provider configured")
        try:
            text = await completion.complete(payload.prompt, system=payload.system)
        except Exception as e:
            raise ToolExecutionError(self.name, str(e) or type(e).__name__) from e

        text = (text or "").strip() or EMPTY_COMPLETION_TEXT
        ctx.bill(
            estimate_tokens((payload.system or "") + payload.prompt),
            estimate_tokens(text),
            "agent.llm",
        )
        return LlmOutput(text=text, model=ctx.model)


@dataclass(frozen=True)
class WebSearchTool(Tool):
    """
    Web search through the configured search provider.

    Degrades to a single placeholder result when no provider is configured
    or the provider fails, and bills a nominal cost either way.
    """

    name: ToolName = ToolName.web_search
    input_model: ClassVar[type[WebSearchInput]] = WebSearchInput
    text_field: ClassVar[Optional[str]] = "query"

    @staticmethod
    def placeholder(query: str) -> list[SearchResult]:
        return [
            SearchResult(
                title=f"Search Results for: {query}",
                snippet=f"No live search results are available for '{query}'.",
                url=f"https://example.com/search?q={quote_plus(query)}",
                source="placeholder",
            )
        ]

    async def execute(self, ctx: ToolContext, payload: WebSearchInput) -> WebSearchOutput:
        results: Optional[list[SearchResult]] = None
        search = ctx.deps.search
        if search is None:
            logger.warning("web_search: no search provider configured, returning placeholder result")
        else:
            try:
                results = list(await search.search(payload.query, provider=payload.provider, limit=payload.limit))
            except Exception as e:
                logger.warning(f"web_search: provider failed ({e}), returning placeholder result")

        in_tokens, out_tokens = WEB_SEARCH_TOKENS
        ctx.bill(in_tokens, out_tokens, "agent.web_search", {"query": payload.query})
        return WebSearchOutput(
            results=results if results is not None else self.placeholder(payload.query),
            query=payload.query,
        )


@dataclass(frozen=True)
class OperatorExecTool(Tool):
    """Run a command through the configured command executor."""

    name: ToolName = ToolName.operator_exec
    input_model: ClassVar[type[OperatorExecInput]] = OperatorExecInput
    text_field: ClassVar[Optional[str]] = "cmd"

    async def execute(self, ctx: ToolContext, payload: OperatorExecInput) -> OperatorExecOutput:
        executor = ctx.deps.executor
        if executor is None:
            raise ToolExecutionError(self.name, "no command executor configured")
        try:
            result = await executor.run(payload.cmd, timeout=payload.timeout)
        except ToolExecutionError:
            raise
        except Exception as e:
            raise ToolExecutionError(self.name, str(e) or type(e).__name__) from e

        out_tokens = min(estimate_tokens(result.stdout + result.stderr), OPERATOR_EXEC_MAX_OUTPUT_TOKENS)
        ctx.bill(OPERATOR_EXEC_INPUT_TOKENS, out_tokens, "agent.operator", {"cmd": payload.cmd})
        return result


def _rag_prompt(question: str, passages: list[Passage]) -> str:
    if not passages:
        return question
    context = "\n\n".join(
        f"[{i}] {p.text}" + (f" (source: {p.source})" if p.source else "") for i, p in enumerate(passages, start=1)
    )
    return f"Context passages:\n{context}\n\nQuestion: {question}"


@dataclass(frozen=True)
class RagSearchTool(Tool):
    """
    Retrieval-augmented answer.

    Passages come from the configured retriever (empty when there is none or
    it fails); the answer is produced by the ``llm`` tool.
    """

    name: ToolName = ToolName.rag_search
    input_model: ClassVar[type[RagSearchInput]] = RagSearchInput
    text_field: ClassVar[Optional[str]] = "question"

    system_prompt: ClassVar[str] = (
        "Answer the question using the context passages when they are relevant. "
        "Cite passages by their [number]."
    )

    async def execute(self, ctx: ToolContext, payload: RagSearchInput) -> RagSearchOutput:
        passages: list[Passage] = []
        retriever = ctx.deps.retriever
        if retriever is not None:
            try:
                passages = list(await retriever.retrieve(payload.question, limit=payload.limit))
            except Exception as e:
                logger.warning(f"rag_search: retrieval failed ({e}), answering without passages")

        answer: dict[str, Any] = await ctx.invoke(
            ToolName.llm,
            {"prompt": _rag_prompt(payload.question, passages), "system": self.system_prompt},
        )
        return RagSearchOutput(passages=passages, answer=str(answer.get("text") or ""))


def _data_text(data: Any) -> str:
    if isinstance(data, str):
        return data
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


@dataclass(frozen=True)
class DataAnalysisTool(Tool):
    """Answer a question about a piece of data; the analysis is written by the ``llm`` tool."""

    name: ToolName = ToolName.data_analysis
    input_model: ClassVar[type[DataAnalysisInput]] = DataAnalysisInput
    text_field: ClassVar[Optional[str]] = "question"

    system_prompt: ClassVar[str] = (
        "You are a data analyst. Analyze the provided data and answer the user's question. "
        "Provide insights, patterns, and actionable recommendations. Format your response in markdown."
    )

    async def execute(self, ctx: ToolContext, payload: DataAnalysisInput) -> DataAnalysisOutput:
        text = _data_text(payload.data)
        prompt = f"Data to analyze:\n```\n{text[:DATA_ANALYSIS_MAX_CHARS]}\n```\n\nQuestion: {payload.question}"
        answer: dict[str, Any] = await ctx.invoke(ToolName.llm, {"prompt": prompt, "system": self.system_prompt})
        return DataAnalysisOutput(
            analysis=str(answer.get("text") or ""),
            data_size=len(text),
            question=payload.question,
            type=payload.type or "general",
        )
