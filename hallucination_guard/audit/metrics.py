"""
Audit - Metrics Collector

Running counters over recorded validations, with derived rates and
threshold alerts.
"""

import threading
from datetime import datetime, timezone
from typing import List, Sequence

from hallucination_guard.config import get_settings
from hallucination_guard.schemas import Alert, Hallucination, MetricsSnapshot, SanitizationAction


class MetricsCollector:
    """Process-wide validation counters. All updates are serialized."""

    def __init__(self, settings=None):
        self.settings = settings or get_settings()
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self._total_queries = 0
            self._hallucinations_detected = 0
            self._responses_blocked = 0
            self._responses_modified = 0
            self._responses_passed = 0
            self._by_type = {}
            self._severity_sum = 0.0
            self._confidence_sum = 0.0
            self._response_time_sum = 0
            self._period_start = datetime.now(timezone.utc)

    def record(
        self,
        hallucinations: Sequence[Hallucination],
        action: SanitizationAction,
        confidence: float = 0.0,
        response_time_ms: int = 0,
    ) -> None:
        """Count one processed query."""
        with self._lock:
            self._total_queries += 1
            self._confidence_sum += confidence
            self._response_time_sum += response_time_ms

            self._hallucinations_detected += len(hallucinations)
            for h in hallucinations:
                self._by_type[h.type.value] = self._by_type.get(h.type.value, 0) + 1
                self._severity_sum += h.severity

            if action == SanitizationAction.BLOCKED:
                self._responses_blocked += 1
            elif action in (SanitizationAction.REDACTED, SanitizationAction.WARNED):
                self._responses_modified += 1
            else:
                self._responses_passed += 1

    def get_metrics(self) -> MetricsSnapshot:
        with self._lock:
            total = self._total_queries
            detected = self._hallucinations_detected

            def rate(count):
                return round(count / total, 2) if total else 0.0

            return MetricsSnapshot(
                total_queries=total,
                hallucinations_detected=detected,
                responses_blocked=self._responses_blocked,
                responses_modified=self._responses_modified,
                responses_passed=self._responses_passed,
                hallucinations_by_type=dict(self._by_type),
                hallucination_rate=rate(detected),
                block_rate=rate(self._responses_blocked),
                modification_rate=rate(self._responses_modified),
                pass_rate=rate(self._responses_passed),
                avg_confidence=rate(self._confidence_sum),
                avg_severity=round(self._severity_sum / detected, 2) if detected else 0.0,
                avg_response_time_ms=round(self._response_time_sum / total) if total else 0,
                period_start=self._period_start,
                period_end=datetime.now(timezone.utc),
            )

    def check_alerts(self) -> List[Alert]:
        """Alerts for every monitored rate above its threshold."""
        metrics = self.get_metrics()
        config = self.settings.audit
        alerts = []

        if metrics.hallucination_rate > config.alert_hallucination_rate:
            alerts.append(Alert(
                metric="hallucinationRate",
                value=metrics.hallucination_rate,
                threshold=config.alert_hallucination_rate,
                message=(
                    f"Hallucination rate ({metrics.hallucination_rate * 100:.1f}%) "
                    f"exceeds threshold"
                ),
            ))

        if metrics.block_rate > config.alert_block_rate:
            alerts.append(Alert(
                metric="blockRate",
                value=metrics.block_rate,
                threshold=config.alert_block_rate,
                message=f"Block rate ({metrics.block_rate * 100:.1f}%) exceeds threshold",
            ))

        if metrics.avg_severity > config.alert_avg_severity:
            alerts.append(Alert(
                metric="avgSeverity",
                value=metrics.avg_severity,
                threshold=config.alert_avg_severity,
                message=f"Average severity ({metrics.avg_severity:.2f}) exceeds threshold",
            ))

        return alerts
