"""
LLM Module

Model gateway and provider abstraction.

This module provides:
- Unified BaseLLMProvider interface with call/latency/token metrics
- OpenAI-compatible provider (Gemini compatibility endpoint by default)
- Deterministic fake provider for offline runs
- Prompt templates and JSON output schemas
- ModelGateway: generate, score and extract-patterns operations
"""

__version__ = "0.1.0"
