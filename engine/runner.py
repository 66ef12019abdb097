"""Wiring of provider, gateway and workflow, plus the headless run loop."""

from __future__ import annotations

from collections.abc import Callable

from tqdm import tqdm

from llm.gateway import ModelGateway
from llm.prompts import PromptTemplate
from llm.providers import create_provider
from nexus_core.errors import GenerationError
from nexus_core.schemas import Constraints, Iteration, LLMProviderConfig
from nexus_core.workflow import IterationWorkflow, TransitionCallback

from engine.config import EngineConfig


def build_gateway(config: EngineConfig, demo: bool = False) -> ModelGateway:
    provider_config = config.provider
    if demo:
        provider_config = LLMProviderConfig(provider_id="demo", provider_type="fake", model_name="fake-model")
    provider = create_provider(provider_config)
    prompts = PromptTemplate(
        population_size=config.population_size,
        pattern_count=config.pattern_count,
    )
    return ModelGateway(
        provider,
        prompts=prompts,
        generation=config.generation,
        scoring=config.scoring,
        patterns=config.patterns,
    )


def build_workflow(
    config: EngineConfig,
    demo: bool = False,
    on_transition: TransitionCallback | None = None,
    gateway: ModelGateway | None = None,
) -> IterationWorkflow:
    return IterationWorkflow(
        gateway or build_gateway(config, demo=demo),
        max_iterations=config.max_iterations,
        top_k=config.top_k,
        population_size=config.population_size,
        on_transition=on_transition,
    )


class HeadlessRunner:
    """Runs start plus successive evolutions without a browser, with a progress bar."""

    def __init__(
        self,
        workflow: IterationWorkflow,
        write: Callable[[str], None] | None = None,
    ) -> None:
        self.workflow = workflow
        self.write = write or tqdm.write

    def run(self, constraints: Constraints, iterations: int) -> list[Iteration]:
        if iterations <= 0:
            raise ValueError("iterations must be positive")
        target = min(iterations, self.workflow.max_iterations)

        pbar = tqdm(
            range(target),
            desc="🧬 Evolution",
            unit="gen",
            ncols=100,
            bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}]",
        )
        for step in pbar:
            if step == 0:
                iteration = self.workflow.start(constraints)
            else:
                try:
                    iteration = self.workflow.evolve()
                except GenerationError as exc:
                    # a failed evolution keeps the history; stop and report what exists
                    self.write(f"  ⚠️  Evolution failed: {exc}")
                    break
            pbar.set_postfix({"Avg": f"{iteration.average_score * 10:.1f}%", "Delta": f"{iteration.delta_score * 10:+.1f}%"})
        pbar.close()
        return list(self.workflow.history)
