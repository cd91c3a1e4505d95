from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Request

from .orchestration.orchestrator import AnalysisOrchestrator


async def get_orchestrator(request: Request) -> AsyncIterator[AnalysisOrchestrator]:
    yield request.app.state.orchestrator
