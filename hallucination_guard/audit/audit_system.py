"""
Audit - Hallucination Audit System

Facade combining the audit log, metrics, incident tracking and alerting.
One instance is built by the process bootstrap and injected where needed.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from hallucination_guard.audit.audit_logger import AuditLogger
from hallucination_guard.audit.incidents import IncidentTracker
from hallucination_guard.audit.metrics import MetricsCollector
from hallucination_guard.config import get_settings
from hallucination_guard.schemas import (
    Alert,
    Hallucination,
    MetricsSnapshot,
    SanitizationAction,
    Source,
)

logger = logging.getLogger(__name__)

AlertHandler = Callable[[Alert], Any]


class HallucinationAudit:
    """Records every validation outcome and watches the aggregate rates."""

    def __init__(self, settings=None, audit_logger: Optional[AuditLogger] = None):
        self.settings = settings or get_settings()
        self.audit_logger = audit_logger or AuditLogger(self.settings)
        self.metrics = MetricsCollector(self.settings)
        self.incidents = IncidentTracker(self.settings)

        self._lock = threading.Lock()
        self._alert_handlers: List[AlertHandler] = []

    def add_alert_handler(self, handler: AlertHandler) -> None:
        self._alert_handlers.append(handler)

    def record(
        self,
        query: str,
        response: str,
        hallucinations: Optional[Sequence[Hallucination]],
        action: SanitizationAction,
        sources: Sequence[Source] = (),
        confidence: float = 0.0,
        response_time_ms: int = 0,
        session_id: str = "unknown",
    ) -> str:
        """
        Record one validation outcome.

        Logs the entry, updates metrics, tracks an incident when the
        answer contained hallucinations and checks alert thresholds.

        Returns:
            Audit entry id
        """
        hallucinations = list(hallucinations or [])

        with self._lock:
            entry = self.audit_logger.log(
                query=query,
                response=response,
                hallucinations=hallucinations,
                action=action,
                sources=sources,
                confidence=confidence,
                response_time_ms=response_time_ms,
                session_id=session_id,
            )

            self.metrics.record(
                hallucinations=hallucinations,
                action=action,
                confidence=confidence,
                response_time_ms=response_time_ms,
            )

            if hallucinations:
                self.incidents.record_incident(
                    entry_id=entry.id,
                    hallucinations=entry.hallucinations,
                    action=action,
                    query=entry.query,
                )

            alerts = self.metrics.check_alerts()

        if alerts:
            self._handle_alerts(alerts)

        return entry.id

    def _handle_alerts(self, alerts: List[Alert]) -> None:
        for alert in alerts:
            logger.warning(f"ALERT: {alert.message}")
            for handler in self._alert_handlers:
                try:
                    handler(alert)
                except Exception as e:
                    logger.error(f"Alert handler {handler!r} failed: {e}")

    def get_metrics(self) -> MetricsSnapshot:
        return self.metrics.get_metrics()

    def get_report(self) -> Dict[str, Any]:
        """Metrics, incident summary, active alerts and the 10 latest incidents."""
        return {
            "metrics": self.metrics.get_metrics().to_wire(),
            "incidents": self.incidents.get_summary().to_wire(),
            "alerts": [a.to_wire() for a in self.metrics.check_alerts()],
            "recentIncidents": [i.to_wire() for i in self.incidents.get_recent_incidents(10)],
        }

    def export(self) -> Dict[str, Any]:
        """Everything needed for offline analysis."""
        return {
            "exportedAt": datetime.now(timezone.utc).isoformat(),
            "metrics": self.metrics.get_metrics().to_wire(),
            "incidents": self.incidents.get_summary().to_wire(),
            "entries": [e.to_wire() for e in self.audit_logger.get_all_entries()],
        }

    def reset(self) -> None:
        """Reset metrics, incidents and unflushed entries."""
        with self._lock:
            self.metrics.reset()
            self.incidents.clear()
            self.audit_logger.clear_memory()

    def start(self) -> None:
        self.audit_logger.start_auto_flush()

    def close(self) -> None:
        """Stop auto-flush and persist buffered entries."""
        self.audit_logger.close()
