"""Credit pricing and plan-tier quotas.

Pure lookup and arithmetic: model rates are expressed in credits per one
million tokens and every charge is rounded up to a whole credit.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional


@dataclass(frozen=True)
class ModelPrice:
    input_per_million: int
    output_per_million: int


DEFAULT_PRICING_MODEL = "gpt-4o-mini"

MODEL_PRICES: Mapping[str, ModelPrice] = {
    "gpt-5": ModelPrice(750_000, 2_250_000),
    "gpt-4o": ModelPrice(500_000, 1_500_000),
    "gpt-4o-mini": ModelPrice(5_000, 15_000),
    "gpt-4": ModelPrice(600_000, 1_800_000),
    "gpt-3.5-turbo": ModelPrice(50_000, 150_000),
    "claude-3-5-sonnet-latest": ModelPrice(300_000, 1_000_000),
    "gemini-1.5-pro": ModelPrice(350_000, 1_050_000),
}


def _bare_model_name(model: str) -> str:
    # pydantic-ai identifiers carry a provider prefix, e.g. "openai:gpt-4o".
    return model.split(":", 1)[1] if ":" in model else model


def price_for(model: Optional[str]) -> ModelPrice:
    """Return the rate for ``model``; unknown models are priced as the default model."""
    if model:
        price = MODEL_PRICES.get(_bare_model_name(model))
        if price is not None:
            return price
    return MODEL_PRICES[DEFAULT_PRICING_MODEL]


def estimate_credits(model: Optional[str], tokens_in: int, tokens_out: int) -> int:
    """Credits for a call, rounded up: ``ceil((in * rate_in + out * rate_out) / 1e6)``."""
    price = price_for(model)
    cost = max(tokens_in, 0) * price.input_per_million + max(tokens_out, 0) * price.output_per_million
    return math.ceil(cost / 1_000_000)


def estimate_tokens(text: Optional[str]) -> int:
    """Rough token count of ``text`` (four characters per token, rounded up)."""
    if not text:
        return 0
    return math.ceil(len(text) / 4)


class PlanTier(str, Enum):
    free = "free"
    pro = "pro"
    enterprise = "enterprise"


@dataclass(frozen=True)
class PlanLimits:
    daily_credits: int
    max_concurrent_runs: int
    max_steps_per_run: int


PLAN_LIMITS: Mapping[PlanTier, PlanLimits] = {
    PlanTier.free: PlanLimits(daily_credits=1_000, max_concurrent_runs=2, max_steps_per_run=3),
    PlanTier.pro: PlanLimits(daily_credits=50_000, max_concurrent_runs=20, max_steps_per_run=10),
    PlanTier.enterprise: PlanLimits(daily_credits=500_000, max_concurrent_runs=100, max_steps_per_run=50),
}


def limits_for(plan_tier: Optional[str]) -> PlanLimits:
    """Return the quotas for ``plan_tier``; unknown tiers get the free limits."""
    try:
        return PLAN_LIMITS[PlanTier((plan_tier or "").lower())]
    except ValueError:
        return PLAN_LIMITS[PlanTier.free]
