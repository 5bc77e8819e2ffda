"""Typed input/output payloads for the built-in tools."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import Field

from .base import BaseSchema
from .domain import ToolName


class PlanInput(BaseSchema):
    goal: str = Field(min_length=1)


class PlannedStep(BaseSchema):
    tool: ToolName
    input: Any = Field(default_factory=dict)
    note: Optional[str] = None


class PlanOutput(BaseSchema):
    steps: list[PlannedStep]


class LlmInput(BaseSchema):
    prompt: str
    system: Optional[str] = None


class LlmOutput(BaseSchema):
    text: str
    model: str


class WebSearchInput(BaseSchema):
    query: str
    provider: Optional[str] = None
    limit: int = Field(default=5, ge=1, le=50)


class SearchResult(BaseSchema):
    title: str
    snippet: str = ""
    url: str
    source: Optional[str] = None


class WebSearchOutput(BaseSchema):
    results: list[SearchResult]
    query: str


class OperatorExecInput(BaseSchema):
    cmd: str = Field(min_length=1)
    timeout: Optional[float] = Field(default=None, gt=0)


class OperatorExecOutput(BaseSchema):
    stdout: str = ""
    stderr: str = ""
    returncode: int


class RagSearchInput(BaseSchema):
    question: str
    limit: int = Field(default=5, ge=1, le=50)


class Passage(BaseSchema):
    text: str
    source: Optional[str] = None
    score: Optional[float] = None


class RagSearchOutput(BaseSchema):
    passages: list[Passage]
    answer: str



class DataAnalysisInput(BaseSchema):
    question: str
    data: Any = None
    type: Optional[str] = None


class DataAnalysisOutput(BaseSchema):
    analysis: str
    data_size: int
    question: str
    type: str
