from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Sequence

import httpx
import pytest
from fastapi import FastAPI

from logscope.core.config import Settings
from logscope.main import create_app
from logscope.schemas.agents import AgentKind
from logscope.services.log_records import LogRecord
from tests.helpers.stubs import StubAgent

PREFIX = "/api/v1/agent-orchestrator"


@asynccontextmanager
async def _client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    try:
        async with app.router.lifespan_context(app):
            async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
                yield client
    finally:
        await transport.aclose()


def _app(agents: Sequence[StubAgent], **orchestrator) -> FastAPI:
    return create_app(agents=agents, app_settings=Settings(environment="test", orchestrator=orchestrator))


@pytest.mark.asyncio
async def test_comprehensive_analysis_runs_all_registered_agents() -> None:
    errors = StubAgent("errors", kind=AgentKind.ERROR_ANALYSIS, data={"risk_level": "HIGH"}, confidence=0.8)
    report = StubAgent("report", kind=AgentKind.REPORT_GENERATION, data={"summary": "ok"}, confidence=0.6)
    app = _app([errors, report])

    async with _client(app) as client:
        response = await client.post(
            f"{PREFIX}/analyze/comprehensive",
            json={
                "user_feedback": "checkout fails",
                "log_data": ["2024-03-01 10:00:00 ERROR payment declined", "INFO retry scheduled"],
            },
        )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert [item["agent_name"] for item in body["agent_results"]] == ["errors", "report"]
    assert body["aggregated_data"]["overall_risk_level"] == "HIGH"
    assert body["aggregated_data"]["report"] == {"summary": "ok"}
    assert body["summary"]["successful_agents"] == 2

    records = errors.received_records[0]
    assert all(isinstance(record, LogRecord) for record in records)
    assert records[0].level == "ERROR"
    assert errors.calls[0].user_context == {"user_feedback": "checkout fails"}
    assert [r.agent_name for r in report.calls[0].previous_results] == ["errors"]


@pytest.mark.asyncio
async def test_comprehensive_analysis_rejects_unregistered_agent() -> None:
    app = _app([StubAgent("errors")])

    async with _client(app) as client:
        response = await client.post(
            f"{PREFIX}/analyze/comprehensive",
            json={"user_feedback": "x", "log_data": ["ERROR boom"], "required_agents": ["ghost"]},
        )

    assert response.status_code == 422
    assert "ghost" in response.json()["detail"]


@pytest.mark.asyncio
async def test_comprehensive_analysis_rejects_empty_logs() -> None:
    app = _app([StubAgent("errors")])

    async with _client(app) as client:
        response = await client.post(
            f"{PREFIX}/analyze/comprehensive",
            json={"user_feedback": "x", "log_data": []},
        )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_comprehensive_analysis_rejects_malformed_records() -> None:
    app = _app([StubAgent("errors")])

    async with _client(app) as client:
        response = await client.post(
            f"{PREFIX}/analyze/comprehensive",
            json={"user_feedback": "x", "log_data": [{"level": "ERROR"}]},
        )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_quick_analysis_returns_insights() -> None:
    anomalies = StubAgent(
        "anomalies",
        kind=AgentKind.ANOMALY_DETECTION,
        confidence=0.9,
        data={"anomalies": [{"id": 1}, {"id": 2}, {"id": 3}, {"id": 4}], "risk_level": "MEDIUM"},
    )
    report = StubAgent(
        "report",
        kind=AgentKind.REPORT_GENERATION,
        confidence=0.9,
        data={"recommendations": {"immediate": ["scale workers"]}},
    )
    app = _app([anomalies, report])

    async with _client(app) as client:
        response = await client.post(
            f"{PREFIX}/analyze/quick",
            json={"user_feedback": "latency spike", "log_data": ["WARN queue backlog growing"]},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["task_id"].startswith("quick_")
    assert body["quick_insights"] == {
        "top_issues": [{"id": 1}, {"id": 2}, {"id": 3}],
        "risk_level": "MEDIUM",
        "urgent_actions": ["scale workers"],
        "system_health": "GOOD",
    }
    # Quick analysis fans out by default.
    assert report.calls[0].previous_results == ()


@pytest.mark.asyncio
async def test_quick_analysis_honours_pipeline_option() -> None:
    first = StubAgent("first")
    second = StubAgent("second")
    app = _app([first, second])

    async with _client(app) as client:
        response = await client.post(
            f"{PREFIX}/analyze/quick",
            json={"user_feedback": "x", "log_data": ["INFO ok"], "options": {"pipeline": "SEQUENTIAL"}},
        )

    assert response.status_code == 200
    assert [r.agent_name for r in second.calls[0].previous_results] == ["first"]


@pytest.mark.asyncio
async def test_error_analysis_without_errors_is_skipped() -> None:
    agent = StubAgent("errors", kind=AgentKind.ERROR_ANALYSIS)
    app = _app([agent])

    async with _client(app) as client:
        response = await client.post(
            f"{PREFIX}/analyze/errors",
            json={"user_feedback": "x", "log_data": ["INFO fine", "WARN hmm"]},
        )

    assert response.status_code == 200
    assert response.json()["message"] == "No ERROR or FATAL level records found"
    assert agent.calls == []


@pytest.mark.asyncio
async def test_error_analysis_filters_records() -> None:
    agent = StubAgent("errors", kind=AgentKind.ERROR_ANALYSIS)
    app = _app([agent])

    async with _client(app) as client:
        response = await client.post(
            f"{PREFIX}/analyze/errors",
            json={"user_feedback": "x", "log_data": ["INFO fine", "ERROR broken", "FATAL dead"]},
        )

    assert response.status_code == 200
    assert response.json()["task_id"].startswith("error_analysis_")
    assert [record.level for record in agent.received_records[0]] == ["ERROR", "FATAL"]
    assert agent.calls[0].user_context["error_count"] == 2


@pytest.mark.asyncio
async def test_agent_listing_counts_healthy_agents() -> None:
    app = _app(
        [
            StubAgent("errors", kind=AgentKind.ERROR_ANALYSIS, capabilities=["error_classification"]),
            StubAgent("report", kind=AgentKind.REPORT_GENERATION, healthy=False),
        ]
    )

    async with _client(app) as client:
        response = await client.get(f"{PREFIX}/agents")

    assert response.status_code == 200
    body = response.json()
    assert body["total_count"] == 2
    assert body["healthy_count"] == 1
    assert body["agents"][0] == {
        "name": "errors",
        "version": "1.0.0",
        "kind": "error_analysis",
        "capabilities": ["error_classification"],
        "status": "active",
    }


@pytest.mark.asyncio
async def test_agent_health_endpoint() -> None:
    app = _app([StubAgent("errors")])

    async with _client(app) as client:
        healthy = await client.get(f"{PREFIX}/agents/errors/health")
        missing = await client.get(f"{PREFIX}/agents/ghost/health")

    assert healthy.status_code == 200
    assert healthy.json()["is_healthy"] is True
    assert missing.json()["is_healthy"] is False


@pytest.mark.asyncio
async def test_task_status_endpoint() -> None:
    app = _app([StubAgent("errors")])

    async with _client(app) as client:
        analysis = await client.post(
            f"{PREFIX}/analyze/comprehensive",
            json={"user_feedback": "x", "log_data": ["ERROR broken"]},
        )
        task_id = analysis.json()["task_id"]
        found = await client.get(f"{PREFIX}/tasks/{task_id}/status")
        missing = await client.get(f"{PREFIX}/tasks/unknown/status")

    assert found.status_code == 200
    assert found.json()["status"] == "COMPLETED"
    assert found.json()["progress"] == 100.0
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Task not found or expired"


@pytest.mark.asyncio
async def test_performance_stats_endpoint() -> None:
    app = _app([StubAgent("errors")])

    async with _client(app) as client:
        await client.post(f"{PREFIX}/analyze/comprehensive", json={"user_feedback": "x", "log_data": ["ERROR a"]})
        await client.post(
            f"{PREFIX}/analyze/comprehensive",
            json={"user_feedback": "x", "log_data": ["ERROR a"], "required_agents": ["ghost"]},
        )
        response = await client.get(f"{PREFIX}/stats/performance")

    body = response.json()
    assert body["total_tasks"] == 2
    assert body["successful_tasks"] == 1
    assert body["failed_tasks"] == 1
    assert body["success_rate"] == pytest.approx(0.5)


@pytest.mark.asyncio
async def test_root_endpoint() -> None:
    async with _client(_app([])) as client:
        response = await client.get("/")

    assert response.status_code == 200
    assert response.json() == {"message": "logscope orchestrator running"}


@pytest.mark.asyncio
async def test_comprehensive_analysis_keeps_explicit_empty_context() -> None:
    agent = StubAgent("errors")
    app = _app([agent])

    async with _client(app) as client:
        response = await client.post(
            f"{PREFIX}/analyze/comprehensive",
            json={"user_feedback": "x", "log_data": ["ERROR a"], "user_context": {}},
        )

    assert response.status_code == 200
    assert agent.calls[0].user_context == {}
