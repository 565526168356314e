from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from .models import TokenUsage


TOKENS_PER_PRICE_UNIT = 1_000_000


@dataclass(frozen=True)
class ModelPricing:
    input_per_million: float
    output_per_million: float
    cache_write_per_million: float
    cache_read_per_million: float


@dataclass(frozen=True)
class CallCost:
    input: float
    output: float
    cache_write: float
    cache_read: float

    @property
    def total(self) -> float:
        return self.input + self.output + self.cache_write + self.cache_read

    def breakdown(self) -> Dict[str, float]:
        return {
            "input": self.input,
            "output": self.output,
            "cache_write": self.cache_write,
            "cache_read": self.cache_read,
        }


SONNET_PRICING = ModelPricing(
    input_per_million=3.00,
    output_per_million=15.00,
    cache_write_per_million=3.75,
    cache_read_per_million=0.30,
)
MODEL_PRICING: Dict[str, ModelPricing] = {
    "claude-sonnet-4-5-20250929": SONNET_PRICING,
    "claude-sonnet-4-20250514": SONNET_PRICING,
    "claude-3-5-haiku-20241022": ModelPricing(0.80, 4.00, 1.00, 0.08),
    "claude-opus-4-1-20250805": ModelPricing(15.00, 75.00, 18.75, 1.50),
}
DEFAULT_PRICING = SONNET_PRICING


def pricing_for(model: str) -> ModelPricing:
    return MODEL_PRICING.get((model or "").strip(), DEFAULT_PRICING)


def calculate_cost(usage: TokenUsage, model: str) -> CallCost:
    pricing = pricing_for(model)
    return CallCost(
        input=(usage.input_tokens / TOKENS_PER_PRICE_UNIT) * pricing.input_per_million,
        output=(usage.output_tokens / TOKENS_PER_PRICE_UNIT) * pricing.output_per_million,
        cache_write=(usage.cache_write_tokens / TOKENS_PER_PRICE_UNIT) * pricing.cache_write_per_million,
        cache_read=(usage.cache_read_tokens / TOKENS_PER_PRICE_UNIT) * pricing.cache_read_per_million,
    )


def format_cost(total: float) -> str:
    return f"{total:.6f}"


def build_call_metrics(usage: TokenUsage, model: str, latency_ms: int) -> dict:
    cost = calculate_cost(usage, model)
    return {
        "latency_ms": int(latency_ms),
        "input_tokens": usage.input_tokens,
        "output_tokens": usage.output_tokens,
        "cache_read_tokens": usage.cache_read_tokens,
        "cache_write_tokens": usage.cache_write_tokens,
        "cost_usd": format_cost(cost.total),
    }
