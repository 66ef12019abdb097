"""
Engine Module

Configuration, reporting and entry points.

This module provides:
- YAML-based configuration loading and API key resolution
- Provider/gateway/workflow wiring and the headless runner
- Clipboard text report and Markdown summary
- Matplotlib evolution chart
- Typer CLI (browser UI launcher and headless run)
"""

__version__ = "0.1.0"
