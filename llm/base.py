"""Base LLM provider interfaces and response schema."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class LLMResponse:
    text: str
    usage: dict[str, int]
    latency_ms: float
    raw_response: dict[str, object]
    model_id: str


def _empty_metrics() -> dict[str, float | int]:
    return {
        "calls": 0,
        "total_latency_ms": 0.0,
        "total_input_tokens": 0,
        "total_output_tokens": 0,
        "errors": 0,
    }


class BaseLLMProvider(ABC):
    """Abstract interface for LLM providers returning schema-constrained JSON."""

    provider_id: str
    model_name: str

    def __init__(self, provider_id: str, model_name: str) -> None:
        self.provider_id = provider_id
        self.model_name = model_name
        self._metrics = _empty_metrics()

    @abstractmethod
    def generate(
        self,
        prompt: str,
        *,
        temperature: float,
        max_tokens: int,
        response_schema: Mapping[str, object] | None = None,
        thinking_budget: int | None = None,
    ) -> LLMResponse:
        """Generate a completion for the prompt, constrained to ``response_schema`` when given."""

    @abstractmethod
    def get_provider_info(self) -> dict[str, object]:
        """Return metadata about the provider/model."""

    def record_call(self, response: LLMResponse) -> None:
        self._metrics["calls"] += 1
        self._metrics["total_latency_ms"] += response.latency_ms
        self._metrics["total_input_tokens"] += response.usage.get("prompt_tokens", 0)
        self._metrics["total_output_tokens"] += response.usage.get("completion_tokens", 0)

    def record_error(self) -> None:
        self._metrics["calls"] += 1
        self._metrics["errors"] += 1

    def get_metrics(self) -> dict[str, object]:
        """Get current metrics."""
        metrics: dict[str, object] = dict(self._metrics)
        calls = int(self._metrics["calls"])
        if calls > 0:
            metrics["avg_latency_ms"] = float(self._metrics["total_latency_ms"]) / calls
        else:
            metrics["avg_latency_ms"] = 0.0
        return metrics

    def reset_metrics(self) -> None:
        """Reset metrics."""
        self._metrics = _empty_metrics()
