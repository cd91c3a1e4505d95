from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Sequence

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError

from ..dependencies import get_orchestrator
from ..orchestration.enums import PipelineMode, TaskPriority, TaskType
from ..orchestration.exceptions import TaskValidationError, UnsupportedPipelineError
from ..orchestration.orchestrator import AnalysisOrchestrator
from ..schemas.agents import AgentHealthResponse, AgentListResponse
from ..schemas.tasks import (
    AnalysisResult,
    AnalysisTask,
    ComprehensiveAnalysisRequest,
    ErrorAnalysisSkipped,
    PerformanceStats,
    QuickAnalysisRequest,
    QuickAnalysisResponse,
    TaskStatus,
    generate_task_id,
    new_analysis_task,
)
from ..services.insights import extract_quick_insights
from ..services.log_records import LogRecord, error_records, normalize_log_data


router = APIRouter(prefix="/agent-orchestrator")


def _normalize_records(log_data: Sequence[Any], user_feedback: str) -> list[LogRecord]:
    try:
        return normalize_log_data(log_data, user_feedback)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.errors()) from exc


async def _run_task(orchestrator: AnalysisOrchestrator, task: AnalysisTask) -> AnalysisResult:
    try:
        return await orchestrator.orchestrate(task)
    except TaskValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except UnsupportedPipelineError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.post("/analyze/comprehensive", response_model=AnalysisResult, tags=["analysis"])
async def create_comprehensive_analysis(
    payload: ComprehensiveAnalysisRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> AnalysisResult:
    records = _normalize_records(payload.log_data, payload.user_feedback)
    required_agents = payload.required_agents
    if required_agents is None:
        required_agents = orchestrator.available_agents()
    user_context = payload.user_context
    if user_context is None:
        user_context = {"user_feedback": payload.user_feedback}
    task = new_analysis_task(
        records,
        required_agents=required_agents,
        task_type=payload.analysis_type or TaskType.BATCH,
        priority=payload.priority or TaskPriority.MEDIUM,
        user_context=user_context,
        pipeline=payload.pipeline or orchestrator.settings.default_pipeline,
        metadata=payload.metadata,
    )
    return await _run_task(orchestrator, task)


@router.post("/analyze/quick", response_model=QuickAnalysisResponse, tags=["analysis"])
async def quick_log_analysis(
    payload: QuickAnalysisRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> QuickAnalysisResponse:
    options = payload.options
    records = _normalize_records(payload.log_data, payload.user_feedback)
    task = orchestrator.legacy_task(
        {
            "id": generate_task_id("quick"),
            "type": TaskType.REAL_TIME,
            "priority": (options.priority if options else None) or TaskPriority.HIGH,
            "log_data": records,
            "user_context": {"user_feedback": payload.user_feedback, "source": "quick_analysis"},
        },
        (options.pipeline if options else None) or orchestrator.settings.quick_pipeline,
    )
    result = await _run_task(orchestrator, task)
    return QuickAnalysisResponse(**result.model_dump(), quick_insights=extract_quick_insights(result))


@router.post("/analyze/errors", response_model=None, tags=["analysis"])
async def analyze_errors(
    payload: QuickAnalysisRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> AnalysisResult | ErrorAnalysisSkipped:
    errors = error_records(_normalize_records(payload.log_data, payload.user_feedback))
    if not errors:
        return ErrorAnalysisSkipped(
            message="No ERROR or FATAL level records found",
            suggestion="Check WARN level records or lower the log level threshold",
        )
    task = orchestrator.legacy_task(
        {
            "id": generate_task_id("error_analysis"),
            "type": TaskType.ERROR_FOCUSED_ANALYSIS,
            "priority": TaskPriority.HIGH,
            "log_data": errors,
            "user_context": {
                "user_feedback": payload.user_feedback,
                "source": "error_focused_analysis",
                "error_count": len(errors),
            },
        },
        PipelineMode.CONDITIONAL,
    )
    return await _run_task(orchestrator, task)


@router.get("/agents", response_model=AgentListResponse, tags=["agents"])
async def list_agents(orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)) -> AgentListResponse:
    agents = orchestrator.list_agents()
    health = await asyncio.gather(*(orchestrator.check_agent_health(agent.name) for agent in agents))
    return AgentListResponse(
        agents=agents,
        total_count=len(agents),
        healthy_count=sum(1 for healthy in health if healthy),
    )


@router.get("/agents/{agent_name}/health", response_model=AgentHealthResponse, tags=["agents"])
async def check_agent_health(
    agent_name: str,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> AgentHealthResponse:
    is_healthy = await orchestrator.check_agent_health(agent_name)
    return AgentHealthResponse(
        agent_name=agent_name,
        is_healthy=is_healthy,
        last_checked=datetime.now(timezone.utc),
    )


@router.get("/tasks/{task_id}/status", response_model=TaskStatus, tags=["tasks"])
async def get_task_status(
    task_id: str,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> TaskStatus:
    task_status = orchestrator.get_task_status(task_id)
    if task_status is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found or expired")
    return task_status


@router.get("/stats/performance", response_model=PerformanceStats, tags=["stats"])
async def get_performance_stats(orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)) -> PerformanceStats:
    return orchestrator.get_performance_stats()
