"""
Pipeline Executors

Three interchangeable strategies for running the agents of one task:
sequential with result threading, fully parallel fan-out/fan-in, and
conditional (sequential plus gating on earlier results).
"""

from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, Mapping, Sequence

from ..agents.base import AgentContext, AnalysisAgent
from ..core.logging import get_logger
from ..core.metrics import increment_agent_event, observe_agent_latency
from ..schemas.agents import AgentKind, AgentResult
from ..schemas.tasks import AnalysisTask
from .enums import PipelineMode
from .exceptions import AgentExecutionError, UnsupportedPipelineError
from .gating import GatingPolicy
from .status import TaskStatusTracker

logger = get_logger(name=__name__)


def _coerce_result(agent_name: str, raw: Any) -> AgentResult:
    if isinstance(raw, AgentResult):
        return raw
    if isinstance(raw, Mapping):
        return AgentResult.model_validate({"agent_name": agent_name, **raw})
    raise AgentExecutionError(agent_name, f"Agent {agent_name} returned {type(raw).__name__}, expected AgentResult")


async def invoke_agent(
    agent: AnalysisAgent,
    records: Sequence[Any],
    context: AgentContext,
    *,
    timeout_seconds: float | None = None,
) -> AgentResult:
    """Run one agent and always hand back a well-formed AgentResult.

    Exceptions and timeouts become failed results with a zero processing time.
    """
    kind = getattr(agent, "kind", AgentKind.GENERIC)
    increment_agent_event(agent=agent.name, event="started")
    start_time = time.perf_counter()
    try:
        outcome = agent.execute(records, context)
        if inspect.isawaitable(outcome):
            if timeout_seconds is not None:
                outcome = await asyncio.wait_for(outcome, timeout=timeout_seconds)
            else:
                outcome = await outcome
        result = _coerce_result(agent.name, outcome)
    except Exception as exc:
        increment_agent_event(agent=agent.name, event="failed")
        if isinstance(exc, asyncio.TimeoutError) and timeout_seconds is not None:
            logger.warning("agent_timeout", task_id=context.task_id, agent=agent.name, timeout=timeout_seconds)
            return AgentResult.failure(
                agent.name, f"Agent {agent.name} timed out after {timeout_seconds}s", kind=kind
            )
        logger.exception("agent_failed", task_id=context.task_id, agent=agent.name, error=str(exc))
        return AgentResult.failure(agent.name, str(exc) or exc.__class__.__name__, kind=kind)

    elapsed = time.perf_counter() - start_time
    observe_agent_latency(agent=agent.name, latency=elapsed)
    processing_time = result.processing_time if result.processing_time is not None else elapsed * 1000
    result = result.model_copy(
        update={"agent_name": agent.name, "agent_kind": kind, "processing_time": processing_time}
    )
    increment_agent_event(agent=agent.name, event="completed" if result.success else "failed")
    if not result.success:
        logger.warning("agent_reported_failure", task_id=context.task_id, agent=agent.name, error=result.error)
    return result


class Pipeline:
    mode: PipelineMode

    def __init__(self, tracker: TaskStatusTracker, *, timeout_seconds: float | None = None) -> None:
        self._tracker = tracker
        self._timeout_seconds = timeout_seconds

    async def execute(self, agents: Sequence[AnalysisAgent], task: AnalysisTask) -> list[AgentResult]:
        raise NotImplementedError


class SequentialPipeline(Pipeline):
    """Runs agents one at a time; each sees every earlier result of the task."""

    mode = PipelineMode.SEQUENTIAL

    async def execute(self, agents: Sequence[AnalysisAgent], task: AnalysisTask) -> list[AgentResult]:
        results: list[AgentResult] = []
        total = len(agents)
        for index, agent in enumerate(agents):
            await self._tracker.update_progress(
                task.id,
                progress=index / total * 100 if total else 0.0,
                current_agent=agent.name,
            )
            if index > 0 and not self._should_run(agent, task, results):
                continue
            context = AgentContext(
                task_id=task.id,
                user_context=dict(task.user_context),
                previous_results=tuple(results),
            )
            results.append(
                await invoke_agent(agent, task.records, context, timeout_seconds=self._timeout_seconds)
            )
        return results

    def _should_run(self, agent: AnalysisAgent, task: AnalysisTask, results: Sequence[AgentResult]) -> bool:
        return True


class ConditionalPipeline(SequentialPipeline):
    """Sequential execution where every agent after the first passes a gating policy."""

    mode = PipelineMode.CONDITIONAL

    def __init__(
        self,
        tracker: TaskStatusTracker,
        *,
        timeout_seconds: float | None = None,
        gating: GatingPolicy | None = None,
    ) -> None:
        super().__init__(tracker, timeout_seconds=timeout_seconds)
        self._gating = gating or GatingPolicy()

    def _should_run(self, agent: AnalysisAgent, task: AnalysisTask, results: Sequence[AgentResult]) -> bool:
        decision = self._gating.evaluate(getattr(agent, "kind", AgentKind.GENERIC), results)
        if not decision.run:
            logger.info("agent_skipped", task_id=task.id, agent=agent.name, reason=decision.reason)
            increment_agent_event(agent=agent.name, event="skipped")
        return decision.run


class ParallelPipeline(Pipeline):
    """Launches every agent at once against one shared context and waits for all."""

    mode = PipelineMode.PARALLEL

    async def execute(self, agents: Sequence[AnalysisAgent], task: AnalysisTask) -> list[AgentResult]:
        context = AgentContext(task_id=task.id, user_context=dict(task.user_context))
        await self._tracker.update_progress(task.id, progress=0.0)
        results = await asyncio.gather(
            *(
                invoke_agent(agent, task.records, context, timeout_seconds=self._timeout_seconds)
                for agent in agents
            )
        )
        await self._tracker.update_progress(task.id, progress=100.0)
        return list(results)


def build_pipeline(
    mode: PipelineMode | str,
    tracker: TaskStatusTracker,
    *,
    timeout_seconds: float | None = None,
    gating: GatingPolicy | None = None,
) -> Pipeline:
    if mode is PipelineMode.SEQUENTIAL:
        return SequentialPipeline(tracker, timeout_seconds=timeout_seconds)
    if mode is PipelineMode.PARALLEL:
        return ParallelPipeline(tracker, timeout_seconds=timeout_seconds)
    if mode is PipelineMode.CONDITIONAL:
        return ConditionalPipeline(tracker, timeout_seconds=timeout_seconds, gating=gating)
    raise UnsupportedPipelineError(mode)
