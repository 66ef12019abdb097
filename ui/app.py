"""Streamlit browser UI for the Nexus Creative Engine.

Run with ``nexus ui`` or ``streamlit run ui/app.py -- --config engine.yaml``.
One workflow lives in each browser session's ``st.session_state``.
"""

from __future__ import annotations

import argparse
import sys

import matplotlib.pyplot as plt
import streamlit as st

from engine.config import EngineConfig, load_config, resolve_api_key
from engine.plotting import PlotGenerator
from engine.runner import build_workflow
from nexus_core.errors import GenerationError, WorkflowError
from nexus_core.schemas import Constraints
from nexus_core.workflow import IterationWorkflow, WorkflowState
from ui.views import (
    DEFAULT_CONSTRAINTS,
    LOADING_HINT,
    IterationSummaryView,
    build_summary,
    evolve_button_label,
    footer_text,
    screen_for,
)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("--config", default=None)
    parser.add_argument("--demo", action="store_true")
    args, _ = parser.parse_known_args(argv)
    return args


@st.cache_resource
def _engine_config(config_path: str | None) -> EngineConfig:
    # read once per process, including the API key
    return resolve_api_key(load_config(config_path))


def _workflow(config: EngineConfig, demo: bool) -> IterationWorkflow:
    if "workflow" not in st.session_state:
        st.session_state.workflow = build_workflow(config, demo=demo)
    return st.session_state.workflow


def _run_stage(workflow: IterationWorkflow, action: str, constraints: Constraints | None = None) -> None:
    status = st.empty()

    def _show(state: WorkflowState, message: str) -> None:
        if message:
            status.info(f"⏳ {message}\n\n{LOADING_HINT}")

    workflow.on_transition = _show
    try:
        with st.spinner("Working..."):
            if action == "start" and constraints is not None:
                workflow.start(constraints)
            elif action == "evolve":
                workflow.evolve()
    except GenerationError as exc:
        if action == "start":
            st.session_state.alert = f"An error occurred during generation. Please check your API key. ({exc})"
        else:
            st.session_state.alert = f"Failed to evolve iteration. ({exc})"
    except WorkflowError as exc:
        st.session_state.alert = str(exc)
    finally:
        workflow.on_transition = None
        status.empty()
    st.rerun()


def _render_form(workflow: IterationWorkflow) -> None:
    st.subheader("Define Constraints")
    st.caption('Precise constraints act as "scaffolding" for AI creativity, preventing decision fatigue.')
    defaults = DEFAULT_CONSTRAINTS
    with st.form("constraints"):
        domain = st.text_input("Domain", value=defaults.domain, placeholder="e.g., Marketing, Hardware, Education")
        problem = st.text_area("The Problem / Challenge", value=defaults.problem, height=90)
        col_budget, col_timeline = st.columns(2)
        budget = col_budget.text_input("Budget Limit", value=defaults.budget_limit, placeholder="e.g. < $1,000")
        timeline = col_timeline.text_input("Timeline", value=defaults.timeline, placeholder="e.g. 6 months")
        other = st.text_area("Other Requirements", value=defaults.other_requirements, height=70)
        submitted = st.form_submit_button(
            "Start Systematic Process", type="primary", use_container_width=True, disabled=workflow.is_busy
        )
    if submitted:
        constraints = Constraints(
            domain=domain,
            problem=problem,
            budget_limit=budget,
            timeline=timeline,
            other_requirements=other,
        )
        _run_stage(workflow, "start", constraints)


def _render_summary(view: IterationSummaryView, workflow: IterationWorkflow) -> None:
    step_cols = st.columns(len(view.steps))
    for col, step in zip(step_cols, view.steps):
        marker = "🟣" if step.reached else "⚪"
        col.markdown(f"{marker} **Stage {step.number}**  \n{step.name}")

    main, sidebar = st.columns([2, 1])
    with main:
        st.header(view.heading)
        st.caption("Quantitative analysis of the evolutionary gradient.")
        for col, card in zip(st.columns(len(view.stats)), view.stats):
            col.metric(card.label, card.value, help=card.sub)

        fig = PlotGenerator().plot_evolution_curve(workflow.history)
        st.pyplot(fig)
        plt.close(fig)

        st.subheader("Top Performers")
        card_cols = st.columns(2)
        for position, card in enumerate(view.top_cards):
            with card_cols[position % 2].container(border=True):
                st.markdown(f"**#{card.rank} {card.title}** · {card.score}")
                st.write(card.description)
                st.caption(" · ".join(f"{name}: {value:.1f}" for name, value in card.dimensions.items()))
                if card.rationale:
                    st.caption(f"_{card.rationale}_")

    with sidebar:
        st.subheader("⚡ Success Patterns")
        if view.patterns_hint:
            st.caption(view.patterns_hint)
        for idx, pattern in enumerate(view.patterns, start=1):
            st.info(f"**Pattern 0{idx}**\n\n{pattern}")
        st.metric("Total Improvement", view.total_improvement)
        st.subheader("Report")
        st.code(view.report, language=None)

    st.subheader("Generation Manifest")
    manifest = [{"Concept": row.concept, "Mechanism": row.mechanism, "Metric": row.metric} for row in view.manifest]
    st.dataframe(manifest, hide_index=True, use_container_width=True)

    st.divider()
    info, reset_col, evolve_col = st.columns([2, 1, 1])
    info.caption(footer_text(workflow.history))
    if reset_col.button("Reset Process", use_container_width=True, disabled=workflow.is_busy):
        workflow.reset()
        st.rerun()
    if evolve_col.button(
        evolve_button_label(workflow.history, workflow.max_iterations),
        type="primary",
        use_container_width=True,
        disabled=not workflow.can_evolve,
    ):
        _run_stage(workflow, "evolve")


def main() -> None:
    args = _parse_args(sys.argv[1:])
    st.set_page_config(page_title="Nexus Creative Engine", layout="wide")
    st.title("Nexus Creative Engine")

    config = _engine_config(args.config)
    workflow = _workflow(config, demo=args.demo)

    alert = st.session_state.pop("alert", None)
    if alert:
        st.error(alert)

    screen = screen_for(workflow.state)
    if screen == "form":
        _render_form(workflow)
    elif screen == "loading":
        st.info(f"⏳ {workflow.loading_message}\n\n{LOADING_HINT}")
    else:
        _render_summary(build_summary(workflow.history, top_k=workflow.top_k), workflow)


if __name__ == "__main__":
    main()
