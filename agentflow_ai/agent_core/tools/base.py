from __future__ import annotations

"""Tool protocol and execution context.

A tool is the concrete execution unit behind a workflow node or planned step.

The run engine resolves a step's ``ToolName`` through a ``ToolRegistry`` and
executes it with a ``ToolContext``. Tools:

- receive an already validated, template-resolved input model,
- return an output model (the registry turns it into plain JSON data),
- report every billable call through ``ctx.bill`` and never compute
  credits themselves.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Dict, Optional, Protocol

from ..billing.ledger import CreditLedger
from ..pricing import estimate_credits
from ..providers.base import ToolDeps
from ..schemas.base import BaseSchema
from ..schemas.domain import ToolName, UsageLedgerEntry

if TYPE_CHECKING:
    from .registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class ToolContext:
    """Execution context passed to tool implementations.

    Attributes
    ----------
    run_id / step_index:
        Identify the step the usage is attributed to.
    user_id / project_id:
        The billed user and optional project.
    model:
        Model name used for pricing and reported in completion outputs.
    deps:
        Provider bundle (completion, search, executor, retriever).
    ledger:
        The shared credit ledger charged by ``bill``.
    registry:
        The registry invoking the tool, for tools that delegate to other tools.
    """

    run_id: str
    user_id: str
    project_id: Optional[str]
    model: str
    deps: ToolDeps
    ledger: CreditLedger
    step_index: int = 0
    registry: Optional["ToolRegistry"] = None
    _usage: list[UsageLedgerEntry] = field(default_factory=list, repr=False)

    def bill(self, in_tokens: int, out_tokens: int, label: str, meta: Optional[Dict[str, Any]] = None) -> int:
        """
        Price a call, charge the ledger and record a usage entry.

        Returns:
            The credits charged.
        """
        in_tokens = max(int(in_tokens), 0)
        out_tokens = max(int(out_tokens), 0)
        credits = estimate_credits(self.model, in_tokens, out_tokens)
        self.ledger.charge(self.user_id, credits)
        self._usage.append(
            UsageLedgerEntry(
                run_id=self.run_id,
                user_id=self.user_id,
                project_id=self.project_id,
                step_index=self.step_index,
                label=label,
                model=self.model,
                tokens_in=in_tokens,
                tokens_out=out_tokens,
                credits=credits,
                meta=dict(meta or {}),
            )
        )
        logger.debug(f"Billed {credits} credit(s) for {label}: in={in_tokens} out={out_tokens}")
        return credits

    @property
    def usage(self) -> list[UsageLedgerEntry]:
        return list(self._usage)

    def drain_usage(self) -> list[UsageLedgerEntry]:
        """Return and forget the usage entries recorded so far."""
        entries, self._usage = self._usage, []
        return entries

    async def invoke(self, name: ToolName, raw_input: Any) -> Dict[str, Any]:
        """Invoke another registered tool within the same step."""
        if self.registry is None:
            raise RuntimeError("ToolContext has no registry to delegate to")
        return await self.registry.invoke(name, self, raw_input)


class Tool(Protocol):
    """Protocol for tool implementations.

    ``text_field`` names the input field a bare string payload is mapped to,
    e.g. ``"goal"`` for ``plan``.
    """

    name: ToolName
    input_model: ClassVar[type[BaseSchema]]
    text_field: ClassVar[Optional[str]]

    async def execute(self, ctx: ToolContext, payload: Any) -> BaseSchema: ...
