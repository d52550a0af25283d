"""Catalog source health monitoring utilities."""

from __future__ import annotations

import time
from dataclasses import dataclass


@dataclass
class SourceCallRecord:
    """Represents a single call made to a catalog source."""

    duration_ms: float
    success: bool
    timestamp: float
    source_id: str
    operation: str
    error_message: str | None = None


class SourceHealthMonitor:
    """Collects lightweight health metrics for catalog source calls."""

    def __init__(self, max_records: int = 1000) -> None:
        self._max_records = max_records
        self._records: list[SourceCallRecord] = []

    def record_call(
        self,
        *,
        source_id: str,
        operation: str,
        duration_ms: float,
        success: bool,
        error_message: str | None = None,
    ) -> None:
        self._records.append(
            SourceCallRecord(
                source_id=source_id,
                operation=operation,
                duration_ms=duration_ms,
                success=success,
                error_message=error_message,
                timestamp=time.time(),
            )
        )
        if len(self._records) > self._max_records:
            excess = len(self._records) - self._max_records
            self._records = self._records[excess:]

    def failure_count(self, operation: str | None = None) -> int:
        return sum(
            1
            for record in self._records
            if not record.success and (operation is None or record.operation == operation)
        )

    def summary(self) -> dict[str, object]:
        if not self._records:
            return {
                "recent_calls": 0,
                "avg_duration_ms": 0.0,
                "success_rate": 1.0,
            }

        durations = [record.duration_ms for record in self._records]
        successes = sum(1 for record in self._records if record.success)
        errors = [record.error_message for record in self._records if record.error_message]
        calls_by_operation: dict[str, int] = {}
        for record in self._records:
            calls_by_operation[record.operation] = calls_by_operation.get(record.operation, 0) + 1

        return {
            "recent_calls": len(self._records),
            "avg_duration_ms": sum(durations) / len(durations),
            "success_rate": successes / len(self._records),
            "recent_errors": errors[-5:],  # limit to last few messages
            "calls_by_operation": calls_by_operation,
        }
