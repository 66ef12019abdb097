"""Engine configuration with YAML support."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import Field

from nexus_core.schemas import BaseSchema, LLMProviderConfig, StageSettings


API_KEY_ENV_VARS = ("GEMINI_API_KEY", "API_KEY")


class EngineConfig(BaseSchema):
    """Model provider, population shape and per-stage generation settings."""

    provider: LLMProviderConfig = Field(default_factory=LLMProviderConfig)

    population_size: int = Field(default=20, gt=0)
    top_k: int = Field(default=5, gt=0)
    max_iterations: int = Field(default=5, gt=0)
    pattern_count: int = Field(default=5, gt=0)

    # Scoring and pattern extraction get a thinking budget, generation does not
    generation: StageSettings = Field(default_factory=StageSettings)
    scoring: StageSettings = Field(
        default_factory=lambda: StageSettings(max_output_tokens=8000, thinking_budget=4000)
    )
    patterns: StageSettings = Field(
        default_factory=lambda: StageSettings(max_output_tokens=3000, thinking_budget=2000)
    )


def load_config(yaml_path: str | Path | None = None) -> EngineConfig:
    """Load engine configuration from a YAML file.

    Args:
        yaml_path: Path to YAML configuration file, or None for defaults

    Returns:
        EngineConfig instance

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        ValueError: If YAML is invalid or contains invalid fields
    """
    if yaml_path is None:
        return EngineConfig()

    yaml_path = Path(yaml_path)

    if not yaml_path.exists():
        raise FileNotFoundError(f"Config file not found: {yaml_path}")

    with open(yaml_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not data:
        raise ValueError(f"Empty or invalid YAML file: {yaml_path}")
    if not isinstance(data, dict):
        raise ValueError(f"Config root must be a mapping: {yaml_path}")

    try:
        return EngineConfig.from_dict(data)
    except Exception as e:
        raise ValueError(f"Invalid configuration in {yaml_path}: {e}") from e


def save_config(config: EngineConfig, yaml_path: str | Path) -> None:
    """Save engine configuration to YAML, leaving the API key out."""
    yaml_path = Path(yaml_path)
    yaml_path.parent.mkdir(parents=True, exist_ok=True)

    data = config.to_dict()
    provider = data.get("provider")
    if isinstance(provider, dict):
        provider.pop("api_key", None)

    with open(yaml_path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False, indent=2)


def resolve_api_key(config: EngineConfig) -> EngineConfig:
    """Fill the provider's API key from the environment (and a .env file) once at startup."""
    if config.provider.api_key or config.provider.provider_type == "fake":
        return config
    load_dotenv(find_dotenv(usecwd=True))
    for name in API_KEY_ENV_VARS:
        value = os.getenv(name)
        if value:
            provider = config.provider.model_copy(update={"api_key": value})
            return config.model_copy(update={"provider": provider})
    return config
