"""Normalisation of raw log input into structured records.

Callers may send plain log lines or already-structured records; both end up
as ``LogRecord`` instances before a task is built.
"""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from typing import Any, Iterable, Literal, Sequence

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARN", "ERROR", "FATAL"]

_LEVEL_PATTERN = re.compile(r"\b(DEBUG|INFO|WARN|WARNING|ERROR|FATAL|CRITICAL)\b", re.IGNORECASE)
_TIMESTAMP_PATTERN = re.compile(r"(\d{4}-\d{2}-\d{2}[\sT]\d{2}:\d{2}:\d{2})")
_SERVICE_PATTERN = re.compile(r"service[:\s]+([a-zA-Z0-9\-_]+)", re.IGNORECASE)
_JSON_FRAGMENT_PATTERN = re.compile(r"\{[^{}]*\}")

_LEVEL_ALIASES = {"WARNING": "WARN", "CRITICAL": "FATAL"}

# Checked in order; first keyword hit wins.
_SOURCE_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("frontend", ("frontend", "react", "js")),
    ("backend", ("backend", "server", "api")),
    ("mobile", ("mobile", "app")),
    ("database", ("database", "db")),
)


class LogRecord(BaseModel):
    id: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    level: LogLevel = "INFO"
    source: str = "unknown"
    service: str | None = None
    message: str
    stack_trace: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            upper = value.strip().upper()
            return _LEVEL_ALIASES.get(upper, upper)
        return value


def _infer_source(line: str) -> str:
    lowered = line.lower()
    for source, keywords in _SOURCE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return source
    return "unknown"


def _parse_timestamp(line: str) -> datetime | None:
    match = _TIMESTAMP_PATTERN.search(line)
    if not match:
        return None
    try:
        parsed = datetime.fromisoformat(match.group(1).replace(" ", "T"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _embedded_json(line: str) -> dict[str, Any]:
    match = _JSON_FRAGMENT_PATTERN.search(line)
    if not match:
        return {}
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError:
        return {}
    return payload if isinstance(payload, dict) else {}


def parse_log_line(line: str, index: int, user_feedback: str | None = None) -> LogRecord:
    level_match = _LEVEL_PATTERN.search(line)
    service_match = _SERVICE_PATTERN.search(line)
    metadata: dict[str, Any] = {
        "original_format": "string",
        "user_feedback": user_feedback,
        "parse_index": index,
    }
    metadata.update(_embedded_json(line))
    return LogRecord(
        id=f"string_log_{index + 1}",
        timestamp=_parse_timestamp(line) or datetime.now(timezone.utc),
        level=level_match.group(1) if level_match else "INFO",
        source=_infer_source(line),
        service=service_match.group(1) if service_match else "unknown",
        message=line,
        metadata=metadata,
    )


def normalize_log_data(data: Sequence[Any], user_feedback: str | None = None) -> list[LogRecord]:
    if data and isinstance(data[0], str):
        return [parse_log_line(str(line), index, user_feedback) for index, line in enumerate(data)]
    return [item if isinstance(item, LogRecord) else LogRecord.model_validate(item) for item in data]


def error_records(records: Iterable[LogRecord]) -> list[LogRecord]:
    return [record for record in records if record.level in {"ERROR", "FATAL"}]
