"""LLM provider implementations."""

from __future__ import annotations

import hashlib
import importlib
import json
import os
import re
import time
from collections.abc import Mapping, Sequence
from typing import Protocol, cast

from nexus_core.schemas import LLMProviderConfig

from .base import BaseLLMProvider, LLMResponse
from .prompts import IDEAS_SCHEMA, PATTERNS_SCHEMA, SCORES_SCHEMA


GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
WRAPPED_ARRAY_KEY = "items"


def _wrap_array_schema(schema: Mapping[str, object]) -> dict[str, object]:
    """OpenAI structured outputs only accept an object root."""
    return {
        "type": "object",
        "properties": {WRAPPED_ARRAY_KEY: dict(schema)},
        "required": [WRAPPED_ARRAY_KEY],
        "additionalProperties": False,
    }


def _unwrap_array_text(text: str) -> str:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return text
    if isinstance(payload, dict) and WRAPPED_ARRAY_KEY in payload:
        return json.dumps(payload[WRAPPED_ARRAY_KEY])
    return text


class _ChatCompletions(Protocol):
    def create(self, **kwargs: object) -> object: ...


class _Chat(Protocol):
    completions: _ChatCompletions


class _OpenAIClient(Protocol):
    chat: _Chat


def _load_openai_client(
    api_key: str | None,
    base_url: str | None,
    timeout_seconds: int,
) -> _OpenAIClient:
    try:
        module = importlib.import_module("openai")
    except ModuleNotFoundError as exc:  # pragma: no cover - optional dependency at runtime
        raise ImportError("openai is required to use OpenAIProvider") from exc
    openai_client = getattr(module, "OpenAI", None)
    if openai_client is None:
        raise ImportError("openai.OpenAI client is unavailable")
    return cast(
        _OpenAIClient,
        openai_client(api_key=api_key, base_url=base_url, timeout=timeout_seconds),
    )


def _extract_usage(raw_usage: object) -> dict[str, int]:
    if raw_usage is None:
        return {}
    model_dump = getattr(raw_usage, "model_dump", None)
    if callable(model_dump):
        raw_usage = model_dump()
    if isinstance(raw_usage, Mapping):
        typed_usage = cast(Mapping[str, object], raw_usage)
        usage: dict[str, int] = {}
        for key, value in typed_usage.items():
            if isinstance(value, bool):
                usage[key] = int(value)
            elif isinstance(value, (int, float)):
                usage[key] = int(value)
            elif isinstance(value, str):
                try:
                    usage[key] = int(float(value))
                except ValueError:
                    continue
        return usage
    return {}


def _response_to_dict(response: object) -> dict[str, object]:
    if response is None:
        return {}
    model_dump = getattr(response, "model_dump", None)
    if callable(model_dump):
        dumped = model_dump()
        if isinstance(dumped, Mapping):
            return dict(cast(Mapping[str, object], dumped))
    if isinstance(response, Mapping):
        return dict(cast(Mapping[str, object], response))
    return {"repr": repr(response)}


def _extract_text(response: object) -> str:
    if response is None:
        return ""
    choices = cast(Sequence[object] | None, getattr(response, "choices", None))
    if not choices:
        return ""
    choice = choices[0]
    message = cast(object, getattr(choice, "message", None))
    content = cast(object | None, getattr(message, "content", None)) if message is not None else None
    if content is not None:
        return str(content)
    return ""


class OpenAIProvider(BaseLLMProvider):
    """OpenAI-compatible provider (OpenAI, Gemini's compatibility endpoint, etc.)."""

    provider_type: str
    _client: _OpenAIClient
    _base_url: str | None
    _timeout_seconds: int

    def __init__(
        self,
        provider_id: str,
        model_name: str,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_seconds: int = 120,
        provider_type: str = "openai",
    ) -> None:
        super().__init__(provider_id=provider_id, model_name=model_name)
        self.provider_type = provider_type
        if api_key:
            api_key_value = api_key
        elif provider_type == "gemini":
            api_key_value = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
        else:
            api_key_value = os.getenv("OPENAI_API_KEY")
        if base_url is None and provider_type == "gemini":
            base_url = GEMINI_OPENAI_BASE_URL
        self._client = _load_openai_client(api_key_value, base_url, timeout_seconds)
        self._base_url = base_url
        self._timeout_seconds = timeout_seconds

    def _wraps_arrays(self, response_schema: Mapping[str, object] | None) -> bool:
        return (
            response_schema is not None
            and self.provider_type != "gemini"
            and response_schema.get("type") == "array"
        )

    def _request_options(
        self,
        response_schema: Mapping[str, object] | None,
        thinking_budget: int | None,
    ) -> dict[str, object]:
        options: dict[str, object] = {}
        if response_schema is not None:
            schema = (
                _wrap_array_schema(response_schema)
                if self._wraps_arrays(response_schema)
                else dict(response_schema)
            )
            options["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": "response", "schema": schema},
            }
        # only Gemini's endpoint understands thinking_config; other types ignore the budget
        if thinking_budget and self.provider_type == "gemini":
            options["extra_body"] = {
                "extra_body": {"google": {"thinking_config": {"thinking_budget": thinking_budget}}}
            }
        return options

    def generate(  # pyright: ignore[reportImplicitOverride]
        self,
        prompt: str,
        *,
        temperature: float,
        max_tokens: int,
        response_schema: Mapping[str, object] | None = None,
        thinking_budget: int | None = None,
    ) -> LLMResponse:
        start = time.perf_counter()
        try:
            response = self._client.chat.completions.create(
                model=self.model_name,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                max_tokens=max_tokens,
                **self._request_options(response_schema, thinking_budget),
            )
        except Exception:
            self.record_error()
            raise
        latency_ms = (time.perf_counter() - start) * 1000

        text = _extract_text(response)
        if self._wraps_arrays(response_schema):
            text = _unwrap_array_text(text)
        result = LLMResponse(
            text=text,
            usage=_extract_usage(getattr(response, "usage", None)),
            latency_ms=latency_ms,
            raw_response=_response_to_dict(response),
            model_id=str(getattr(response, "model", None) or self.model_name),
        )
        self.record_call(result)
        return result

    def get_provider_info(self) -> dict[str, object]:  # pyright: ignore[reportImplicitOverride]
        return {
            "provider_id": self.provider_id,
            "provider_type": self.provider_type,
            "model_name": self.model_name,
            "base_url": self._base_url,
            "timeout_seconds": self._timeout_seconds,
        }


_FAKE_THEMES = (
    "Adaptive Onboarding",
    "Predictive Outreach",
    "Community Loop",
    "Usage Insights",
    "Micro Rewards",
    "Workflow Autopilot",
    "Peer Benchmarks",
    "Smart Nudges",
)


def _digest(text: str) -> int:
    return int(hashlib.sha256(text.encode("utf-8")).hexdigest()[:8], 16)


class FakeProvider(BaseLLMProvider):
    """Deterministic fake provider for offline tests and demo runs.

    Answers each of the gateway's output schemas with valid JSON derived from a
    hash of the prompt, so repeated prompts give repeated answers.
    """

    call_count: int
    prompts: list[str]

    def __init__(self, provider_id: str, model_name: str = "fake-model") -> None:
        super().__init__(provider_id=provider_id, model_name=model_name)
        self.call_count = 0
        self.prompts = []

    def generate(  # pyright: ignore[reportImplicitOverride]
        self,
        prompt: str,
        *,
        temperature: float,
        max_tokens: int,
        response_schema: Mapping[str, object] | None = None,
        thinking_budget: int | None = None,
    ) -> LLMResponse:
        self.call_count += 1
        self.prompts.append(prompt)
        if response_schema == SCORES_SCHEMA:
            payload: object = self._scores(prompt)
        elif response_schema == PATTERNS_SCHEMA:
            payload = self._patterns(prompt)
        elif response_schema == IDEAS_SCHEMA:
            payload = self._ideas(prompt)
        else:
            payload = {"echo": prompt[:80]}
        text = json.dumps(payload)
        usage = {
            "prompt_tokens": len(prompt.split()),
            "completion_tokens": len(text.split()),
            "total_tokens": len(prompt.split()) + len(text.split()),
        }
        response = LLMResponse(
            text=text,
            usage=usage,
            latency_ms=0.0,
            raw_response={
                "fake": True,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "thinking_budget": thinking_budget,
            },
            model_id=self.model_name,
        )
        self.record_call(response)
        return response

    def _ideas(self, prompt: str) -> list[dict[str, str]]:
        match = re.search(r"Generate (\d+)", prompt)
        count = int(match.group(1)) if match else 20
        batch = _digest(prompt) % 1000
        refined = "SYSTEMATIC EVOLUTION" in prompt
        ideas: list[dict[str, str]] = []
        for index in range(count):
            theme = _FAKE_THEMES[(batch + index) % len(_FAKE_THEMES)]
            prefix = "Refined " if refined else ""
            ideas.append(
                {
                    "title": f"{prefix}{theme} #{batch}-{index + 1}",
                    "description": f"A {theme.lower()} approach tailored to the stated constraints (variant {index + 1}).",
                }
            )
        return ideas

    def _scores(self, prompt: str) -> list[dict[str, object]]:
        _, _, raw_ideas = prompt.partition("Ideas to evaluate:\n")
        ideas = cast(list[dict[str, str]], json.loads(raw_ideas or "[]"))
        scored: list[dict[str, object]] = []
        for idea in ideas:
            seed = _digest(idea["title"])
            scored.append(
                {
                    "title": idea["title"],
                    "scores": {
                        "novelty": float(seed % 11),
                        "feasibility": float((seed >> 4) % 11),
                        "impact": float((seed >> 8) % 11),
                        "costEfficiency": float((seed >> 12) % 11),
                    },
                    "rationale": f"Deterministic assessment of '{idea['title']}'.",
                }
            )
        return scored

    def _patterns(self, prompt: str) -> list[str]:
        match = re.search(r"extract (\d+)", prompt)
        count = int(match.group(1)) if match else 5
        seed = _digest(prompt)
        return [
            f"Pattern {index + 1}: lean on {_FAKE_THEMES[(seed + index) % len(_FAKE_THEMES)].lower()}"
            for index in range(count)
        ]

    def get_provider_info(self) -> dict[str, object]:  # pyright: ignore[reportImplicitOverride]
        return {
            "provider_id": self.provider_id,
            "provider_type": "fake",
            "model_name": self.model_name,
        }


def create_provider(config: LLMProviderConfig) -> BaseLLMProvider:
    provider_type = config.provider_type.lower()
    if provider_type in {"openai", "gemini"}:
        return OpenAIProvider(
            provider_id=config.provider_id,
            model_name=config.model_name,
            api_key=config.api_key,
            base_url=config.base_url,
            timeout_seconds=config.timeout_seconds,
            provider_type=provider_type,
        )
    if provider_type == "fake":
        return FakeProvider(provider_id=config.provider_id, model_name=config.model_name)
    raise ValueError(f"Unsupported provider type: {config.provider_type}")
