from __future__ import annotations

import json
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from datetime import datetime, timezone
from time import perf_counter
from uuid import UUID, uuid4

_TRACE_CONTEXT: ContextVar["QueryTrace | None"] = ContextVar("query_trace", default=None)

STAGES = ("ingestion", "db", "ranking")


def _round_or_none(value: float | None) -> float | None:
    if value is None:
        return None
    return round(value, 3)


@dataclass
class QueryTrace:
    request_id: UUID = field(default_factory=uuid4)
    path: str = ""
    method: str = "GET"
    request_start_timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    category: str | None = None
    city: str | None = None
    state: str | None = None
    page: int | None = None
    ingestion_time_ms: float | None = None
    db_time_ms: float | None = None
    ranking_time_ms: float | None = None
    total_time_ms: float | None = None
    result_count: int | None = None
    provider_calls: int = 0
    ranking_active: bool = False
    _request_perf_counter_start: float = field(default_factory=perf_counter, repr=False)
    _recorded_stages: set[str] = field(default_factory=set, repr=False)

    def mark_query(self, category: str, city: str, state: str, page: int) -> None:
        self.category = category
        self.city = city
        self.state = state
        self.page = page
        self.ranking_active = True

    def record_stage_time(self, stage: str, duration_ms: float) -> None:
        if stage not in STAGES:
            return
        self._recorded_stages.add(stage)
        attribute = f"{stage}_time_ms"
        setattr(self, attribute, (getattr(self, attribute) or 0.0) + duration_ms)

    def record_provider_call(self) -> None:
        self.provider_calls += 1

    def set_result_count(self, result_count: int) -> None:
        self.result_count = result_count

    def finalize(self) -> None:
        if self.total_time_ms is None:
            self.total_time_ms = (perf_counter() - self._request_perf_counter_start) * 1000.0

        if self.ranking_active:
            for stage in STAGES:
                attribute = f"{stage}_time_ms"
                if getattr(self, attribute) is None:
                    setattr(self, attribute, 0.0)
            if self.result_count is None:
                self.result_count = 0

    def to_header_value(self) -> str:
        payload = {
            "request_id": str(self.request_id),
            "ingestion_time_ms": _round_or_none(self.ingestion_time_ms),
            "db_time_ms": _round_or_none(self.db_time_ms),
            "ranking_time_ms": _round_or_none(self.ranking_time_ms),
            "total_time_ms": _round_or_none(self.total_time_ms),
            "result_count": self.result_count,
            "provider_calls": self.provider_calls,
        }
        return json.dumps(payload, separators=(",", ":"))

    def missing_required_stages(self) -> list[str]:
        if not self.ranking_active:
            return []
        return [stage for stage in STAGES if stage not in self._recorded_stages]


def get_current_trace() -> QueryTrace | None:
    return _TRACE_CONTEXT.get()


def set_current_trace(trace: QueryTrace) -> Token:
    return _TRACE_CONTEXT.set(trace)


def reset_current_trace(token: Token) -> None:
    _TRACE_CONTEXT.reset(token)
