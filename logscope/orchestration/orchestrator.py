from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Mapping

from ..agents.base import AnalysisAgent
from ..agents.registry import AgentRegistry
from ..core.config import OrchestratorSettings, Settings
from ..core.logging import get_logger, task_log_context
from ..core.metrics import mark_task_finished, mark_task_started
from ..schemas.agents import RegisteredAgent
from ..schemas.tasks import AnalysisResult, AnalysisTask, PerformanceStats, TaskStatus, task_from_legacy
from .aggregator import aggregate_results, summarize_results
from .enums import PipelineMode
from .exceptions import UnresolvedAgentError
from .gating import GatingPolicy
from .pipelines import build_pipeline
from .stats import PerformanceStatsCollector
from .status import TaskStatusTracker
from .validator import validate_task

logger = get_logger(name=__name__)


def _pipeline_label(pipeline: PipelineMode | str) -> str:
    return pipeline.value if isinstance(pipeline, PipelineMode) else str(pipeline)


class AnalysisOrchestrator:
    """Single entry point for running analysis tasks over registered agents.

    Owns the agent registry, the task status table and the performance
    statistics for the lifetime of the instance.
    """

    def __init__(
        self,
        registry: AgentRegistry | None = None,
        *,
        settings: OrchestratorSettings | None = None,
        gating: GatingPolicy | None = None,
    ) -> None:
        self._settings = settings or OrchestratorSettings()
        self.registry = registry if registry is not None else AgentRegistry()
        self.status_tracker = TaskStatusTracker(retention=self._settings.status_retention)
        self.stats = PerformanceStatsCollector(window=self._settings.stats_window)
        self._gating = gating or GatingPolicy()

    @classmethod
    def from_settings(cls, settings: Settings, *, agents: Iterable[AnalysisAgent] = ()) -> "AnalysisOrchestrator":
        return cls(AgentRegistry(agents), settings=settings.orchestrator)

    @property
    def settings(self) -> OrchestratorSettings:
        return self._settings

    @asynccontextmanager
    async def lifecycle(self) -> AsyncIterator["AnalysisOrchestrator"]:
        logger.info("orchestrator_started", agents=self.registry.list())
        try:
            yield self
        finally:
            self.status_tracker.clear()
            logger.info("orchestrator_stopped")

    def register_agent(self, agent: AnalysisAgent) -> None:
        self.registry.register(agent)

    def available_agents(self) -> list[str]:
        return self.registry.list()

    def list_agents(self) -> list[RegisteredAgent]:
        return self.registry.describe()

    async def check_agent_health(self, name: str) -> bool:
        return await self.registry.health_check(name)

    def get_task_status(self, task_id: str) -> TaskStatus | None:
        return self.status_tracker.get(task_id)

    def get_performance_stats(self) -> PerformanceStats:
        return self.stats.snapshot()

    def legacy_task(self, descriptor: Mapping[str, Any], pipeline: PipelineMode | str) -> AnalysisTask:
        return task_from_legacy(descriptor, pipeline, available_agents=self.available_agents())

    async def orchestrate(self, task: AnalysisTask) -> AnalysisResult:
        """Validate, dispatch and aggregate one task.

        Agent failures are folded into the result; task-level failures mark the
        status FAILED, count against the statistics and are re-raised.
        """
        with task_log_context(task_id=task.id, pipeline=_pipeline_label(task.pipeline)):
            return await self._orchestrate(task)

    async def _orchestrate(self, task: AnalysisTask) -> AnalysisResult:
        start_time = time.perf_counter()
        pipeline_label = _pipeline_label(task.pipeline)
        await self.stats.record_submission()
        mark_task_started(pipeline=pipeline_label)
        logger.info(
            "task_started",
            task_id=task.id,
            pipeline=pipeline_label,
            agents=list(task.required_agents),
            records=len(task.records),
        )
        status_created = False
        try:
            validate_task(task, self.registry)
            await self.status_tracker.start(task.id)
            status_created = True
            agents = await self._prepare_agents(task)
            pipeline = build_pipeline(
                task.pipeline,
                self.status_tracker,
                timeout_seconds=self._settings.agent_timeout_seconds,
                gating=self._gating,
            )
            logger.debug("pipeline_selected", task_id=task.id, mode=pipeline.mode.value, agents=len(agents))
            agent_results = await pipeline.execute(agents, task)
            result = AnalysisResult(
                task_id=task.id,
                success=True,
                total_processing_time=(time.perf_counter() - start_time) * 1000,
                agent_results=agent_results,
                aggregated_data=aggregate_results(agent_results),
                summary=summarize_results(agent_results),
            )
        except Exception as exc:
            elapsed = time.perf_counter() - start_time
            if status_created:
                await self.status_tracker.fail(task.id, str(exc))
            await self.stats.record_completion(success=False, processing_time=elapsed * 1000)
            mark_task_finished(pipeline=pipeline_label, status="failed", latency=elapsed)
            logger.warning("task_failed", task_id=task.id, error=str(exc), error_type=exc.__class__.__name__)
            raise

        await self.status_tracker.complete(task.id)
        await self.stats.record_completion(success=True, processing_time=result.total_processing_time)
        mark_task_finished(pipeline=pipeline_label, status="completed", latency=result.total_processing_time / 1000)
        logger.info(
            "task_completed",
            task_id=task.id,
            duration_ms=round(result.total_processing_time, 2),
            successful_agents=result.summary.successful_agents,
            failed_agents=result.summary.failed_agents,
        )
        return result

    async def _prepare_agents(self, task: AnalysisTask) -> list[AnalysisAgent]:
        agents: list[AnalysisAgent] = []
        for name in task.required_agents:
            agent = self.registry.get(name)
            if agent is None:
                raise UnresolvedAgentError([name])
            agents.append(agent)
        if self._settings.health_check_on_dispatch:
            health = await asyncio.gather(*(self.registry.health_check(agent.name) for agent in agents))
            for agent, healthy in zip(agents, health):
                if not healthy:
                    logger.warning("agent_health_check_failed", task_id=task.id, agent=agent.name)
        return agents
