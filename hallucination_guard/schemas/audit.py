"""
Schemas - Audit Models

Audit entries, alerts, incidents and metrics snapshots.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from hallucination_guard.schemas.base import WireModel
from hallucination_guard.schemas.sanitization import SanitizationAction


class AuditHallucination(WireModel):
    """Privacy-filtered view of a hallucination stored in the log."""
    type: str
    severity: float = 0.0
    detected: str = ""


class AuditEntryMetrics(WireModel):
    confidence: float = 0.0
    response_time_ms: int = 0
    hallucination_count: int = 0
    max_severity: float = 0.0


class AuditSource(WireModel):
    title: str = ""
    score: float = 0.0


class AuditEntry(WireModel):
    """One immutable record of a validation outcome."""
    id: str
    timestamp: datetime
    session_id: str = "unknown"
    query: str = ""
    response_hash: str = ""
    hallucinations: List[AuditHallucination] = []
    action: SanitizationAction = SanitizationAction.PASSED
    metrics: AuditEntryMetrics = Field(default_factory=AuditEntryMetrics)
    sources: List[AuditSource] = []

    model_config = {"frozen": True}


class Alert(WireModel):
    """A monitored rate crossing its threshold."""
    metric: str
    value: float
    threshold: float
    message: str


class Incident(WireModel):
    """A recorded validation outcome that contained hallucinations."""
    id: str
    timestamp: datetime
    entry_id: str
    query: str = ""
    hallucinations: List[AuditHallucination] = []
    action: SanitizationAction = SanitizationAction.PASSED


class RecurringPattern(WireModel):
    type: str
    hash: str
    occurrences: int


class IncidentSummary(WireModel):
    total_incidents: int = 0
    by_type: Dict[str, int] = {}
    recurring_patterns: List[RecurringPattern] = []
    oldest_incident: Optional[datetime] = None
    newest_incident: Optional[datetime] = None


class MetricsSnapshot(WireModel):
    """Running counters plus derived rates."""
    total_queries: int = 0
    hallucinations_detected: int = 0
    responses_blocked: int = 0
    responses_modified: int = 0
    responses_passed: int = 0
    hallucinations_by_type: Dict[str, int] = {}
    hallucination_rate: float = 0.0
    block_rate: float = 0.0
    modification_rate: float = 0.0
    pass_rate: float = 0.0
    avg_confidence: float = 0.0
    avg_severity: float = 0.0
    avg_response_time_ms: int = 0
    period_start: datetime
    period_end: datetime
