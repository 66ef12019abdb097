"""CLI interface: launch the browser UI or run the workflow headless."""

from __future__ import annotations

import logging
import subprocess
import sys
from pathlib import Path
from typing import Optional

import typer

from engine.config import load_config, resolve_api_key
from engine.report import ReportGenerator
from engine.runner import HeadlessRunner, build_workflow
from nexus_core.errors import GenerationError, WorkflowError
from nexus_core.schemas import Constraints

app = typer.Typer(help="Nexus Creative Engine CLI")

UI_SCRIPT = Path(__file__).resolve().parent.parent / "ui" / "app.py"


@app.command()
def ui(
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to engine YAML config"),
    port: int = typer.Option(8501, help="Port for the Streamlit server"),
    demo: bool = typer.Option(False, "--demo", help="Use the offline fake provider (no API key needed)"),
) -> None:
    """Launch the browser UI."""
    command = [
        sys.executable,
        "-m",
        "streamlit",
        "run",
        str(UI_SCRIPT),
        "--server.port",
        str(port),
    ]
    app_args: list[str] = []
    if config_path:
        app_args += ["--config", config_path]
    if demo:
        app_args.append("--demo")
    if app_args:
        command += ["--", *app_args]
    typer.secho(f"🚀 Starting Nexus UI on port {port}", fg=typer.colors.BLUE)
    raise typer.Exit(subprocess.call(command))


@app.command()
def run(
    domain: str = typer.Option(..., help="Domain of the problem"),
    problem: str = typer.Option(..., help="The problem or challenge to solve"),
    budget: str = typer.Option("", help="Budget limit"),
    timeline: str = typer.Option("", help="Timeline"),
    other: str = typer.Option("", help="Other requirements"),
    iterations: int = typer.Option(3, min=1, help="Number of iterations to run (capped by config)"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to engine YAML config"),
    demo: bool = typer.Option(False, "--demo", help="Use the offline fake provider (no API key needed)"),
    report_path: Optional[str] = typer.Option(None, "--report", help="Also write a Markdown report here"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable INFO logging"),
) -> None:
    """Run generate -> score -> evolve without the browser and print the report."""
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        config = resolve_api_key(load_config(config_path))
    except FileNotFoundError as e:
        typer.secho(f"❌ Config file not found: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except ValueError as e:
        typer.secho(f"❌ Invalid config: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    if not demo and not config.provider.api_key and config.provider.provider_type != "fake":
        typer.secho("❌ No API key found. Set GEMINI_API_KEY or use --demo.", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    constraints = Constraints(
        domain=domain,
        problem=problem,
        budget_limit=budget,
        timeline=timeline,
        other_requirements=other,
    )
    workflow = build_workflow(config, demo=demo)

    try:
        history = HeadlessRunner(workflow).run(constraints, iterations)
    except (GenerationError, WorkflowError) as e:
        typer.secho(f"❌ Run failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    generator = ReportGenerator(history, top_k=config.top_k)
    typer.echo("\n" + "=" * 80)
    typer.echo(generator.generate_text())
    typer.echo("=" * 80)

    if report_path:
        generator.generate_markdown(Path(report_path))
        typer.secho(f"✅ Report written: {report_path}", fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()
