from __future__ import annotations

import time

import pytest

from logscope.agents.base import AgentContext
from logscope.orchestration.enums import PipelineMode
from logscope.orchestration.exceptions import UnsupportedPipelineError
from logscope.orchestration.pipelines import (
    ConditionalPipeline,
    ParallelPipeline,
    SequentialPipeline,
    build_pipeline,
    invoke_agent,
)
from logscope.orchestration.status import TaskStatusTracker
from logscope.schemas.agents import AgentKind
from logscope.schemas.tasks import new_analysis_task
from tests.helpers.stubs import StubAgent, sample_records


def _task(agent_names: list[str], task_id: str = "task-1"):
    return new_analysis_task(sample_records(), required_agents=agent_names, task_id=task_id)


@pytest.mark.asyncio
async def test_invoke_agent_converts_exception_into_failed_result() -> None:
    agent = StubAgent("broken", kind=AgentKind.ERROR_ANALYSIS, raises=RuntimeError("disk full"))
    context = AgentContext(task_id="task-1", user_context={})

    result = await invoke_agent(agent, sample_records(), context)

    assert result.success is False
    assert result.error == "disk full"
    assert result.agent_name == "broken"
    assert result.agent_kind is AgentKind.ERROR_ANALYSIS
    assert result.processing_time == 0.0


@pytest.mark.asyncio
async def test_invoke_agent_measures_processing_time_when_missing() -> None:
    agent = StubAgent("slowish", delay=0.02, data={"ok": True})
    result = await invoke_agent(agent, sample_records(), AgentContext(task_id="t", user_context={}))

    assert result.success is True
    assert result.processing_time is not None
    assert result.processing_time >= 15


@pytest.mark.asyncio
async def test_invoke_agent_accepts_mapping_results() -> None:
    agent = StubAgent("mapper", returns={"success": True, "data": {"count": 2}, "confidence": 0.7})
    result = await invoke_agent(agent, sample_records(), AgentContext(task_id="t", user_context={}))

    assert result.success is True
    assert result.agent_name == "mapper"
    assert result.data == {"count": 2}
    assert result.confidence == 0.7


@pytest.mark.asyncio
async def test_invoke_agent_rejects_malformed_result() -> None:
    agent = StubAgent("weird", returns=42)
    result = await invoke_agent(agent, sample_records(), AgentContext(task_id="t", user_context={}))

    assert result.success is False
    assert "int" in (result.error or "")


@pytest.mark.asyncio
async def test_invoke_agent_timeout_produces_failure() -> None:
    agent = StubAgent("sleepy", delay=1.0)
    result = await invoke_agent(
        agent, sample_records(), AgentContext(task_id="t", user_context={}), timeout_seconds=0.01
    )

    assert result.success is False
    assert "timed out" in (result.error or "")
    assert result.processing_time == 0.0


@pytest.mark.asyncio
async def test_sequential_threads_previous_results_in_order() -> None:
    tracker = TaskStatusTracker()
    first = StubAgent("A", data={"step": 1})
    second = StubAgent("B", data={"step": 2})
    third = StubAgent("C", data={"step": 3})
    task = _task(["A", "B", "C"])
    await tracker.start(task.id)

    results = await SequentialPipeline(tracker).execute([first, second, third], task)

    assert [result.agent_name for result in results] == ["A", "B", "C"]
    assert first.calls[0].previous_results == ()
    assert [r.agent_name for r in second.calls[0].previous_results] == ["A"]
    assert [r.agent_name for r in third.calls[0].previous_results] == ["A", "B"]
    assert third.calls[0].previous_results[1].data == {"step": 2}


@pytest.mark.asyncio
async def test_sequential_continues_after_failure() -> None:
    tracker = TaskStatusTracker()
    task = _task(["A", "B", "C"])
    agents = [StubAgent("A"), StubAgent("B", raises=ValueError("bad input")), StubAgent("C")]
    await tracker.start(task.id)

    results = await SequentialPipeline(tracker).execute(agents, task)

    assert [result.success for result in results] == [True, False, True]
    assert agents[2].calls[0].previous_results[1].error == "bad input"


@pytest.mark.asyncio
async def test_sequential_reports_progress_before_each_agent() -> None:
    tracker = TaskStatusTracker()
    task = _task(["A", "B", "C", "D"])
    seen: list[tuple[float, str | None]] = []

    def capture(context: AgentContext) -> None:
        status = tracker.get(context.task_id)
        assert status is not None
        seen.append((status.progress, status.current_agent))

    agents = [StubAgent(name, on_execute=capture) for name in ["A", "B", "C", "D"]]
    await tracker.start(task.id)

    await SequentialPipeline(tracker).execute(agents, task)

    assert seen == [(0.0, "A"), (25.0, "B"), (50.0, "C"), (75.0, "D")]


@pytest.mark.asyncio
async def test_parallel_shares_empty_context_and_overlaps() -> None:
    tracker = TaskStatusTracker()
    task = _task(["A", "B", "C"])
    agents = [StubAgent("A", delay=0.05), StubAgent("B", delay=0.05), StubAgent("C", delay=0.3)]
    await tracker.start(task.id)

    started = time.perf_counter()
    results = await ParallelPipeline(tracker).execute(agents, task)
    elapsed = time.perf_counter() - started

    assert [result.agent_name for result in results] == ["A", "B", "C"]
    assert all(agent.calls[0].previous_results == () for agent in agents)
    assert elapsed < 0.3 + 0.2
    status = tracker.get(task.id)
    assert status is not None and status.progress == 100.0


@pytest.mark.asyncio
async def test_parallel_failure_does_not_cancel_siblings() -> None:
    tracker = TaskStatusTracker()
    task = _task(["A", "B"])
    agents = [StubAgent("A", raises=RuntimeError("boom")), StubAgent("B", delay=0.02, data={"ok": 1})]

    results = await ParallelPipeline(tracker).execute(agents, task)

    assert results[0].success is False
    assert results[1].success is True
    assert results[1].data == {"ok": 1}


@pytest.mark.asyncio
async def test_conditional_skips_anomaly_detection_without_suspicious_patterns() -> None:
    tracker = TaskStatusTracker()
    task = _task(["features", "anomalies"])
    features = StubAgent("features", kind=AgentKind.FEATURE_EXTRACTION, data={"has_suspicious_patterns": False})
    anomalies = StubAgent("anomalies", kind=AgentKind.ANOMALY_DETECTION)

    results = await ConditionalPipeline(tracker).execute([features, anomalies], task)

    assert [result.agent_name for result in results] == ["features"]
    assert anomalies.calls == []


@pytest.mark.asyncio
async def test_conditional_runs_anomaly_detection_when_flagged() -> None:
    tracker = TaskStatusTracker()
    task = _task(["features", "anomalies"])
    features = StubAgent("features", kind=AgentKind.FEATURE_EXTRACTION, data={"has_suspicious_patterns": True})
    anomalies = StubAgent("anomalies", kind=AgentKind.ANOMALY_DETECTION)

    results = await ConditionalPipeline(tracker).execute([features, anomalies], task)

    assert [result.agent_name for result in results] == ["features", "anomalies"]


@pytest.mark.asyncio
async def test_conditional_never_gates_first_agent() -> None:
    tracker = TaskStatusTracker()
    task = _task(["anomalies"])
    anomalies = StubAgent("anomalies", kind=AgentKind.ANOMALY_DETECTION)

    results = await ConditionalPipeline(tracker).execute([anomalies], task)

    assert len(results) == 1


def test_build_pipeline_selects_strategy() -> None:
    tracker = TaskStatusTracker()
    assert isinstance(build_pipeline(PipelineMode.SEQUENTIAL, tracker), SequentialPipeline)
    assert isinstance(build_pipeline(PipelineMode.PARALLEL, tracker), ParallelPipeline)
    assert isinstance(build_pipeline(PipelineMode.CONDITIONAL, tracker), ConditionalPipeline)
    for mode in PipelineMode:
        assert build_pipeline(mode, tracker).mode is mode


def test_build_pipeline_rejects_unknown_mode() -> None:
    with pytest.raises(UnsupportedPipelineError, match="BROADCAST"):
        build_pipeline("BROADCAST", TaskStatusTracker())


@pytest.mark.asyncio
async def test_agents_can_look_up_earlier_results_by_kind() -> None:
    tracker = TaskStatusTracker()
    task = _task(["features", "errors", "report"])
    seen: list[object] = []
    features = StubAgent("features", kind=AgentKind.FEATURE_EXTRACTION, data={"has_suspicious_patterns": True})
    errors = StubAgent("errors", kind=AgentKind.ERROR_ANALYSIS, data={"count": 2})
    report = StubAgent(
        "report",
        kind=AgentKind.REPORT_GENERATION,
        on_execute=lambda context: seen.append(context.latest_result_for(AgentKind.ERROR_ANALYSIS)),
    )

    await SequentialPipeline(tracker).execute([features, errors, report], task)

    [latest] = seen
    assert latest is not None and latest.data == {"count": 2}
    assert report.calls[0].latest_result_for(AgentKind.ANOMALY_DETECTION) is None
